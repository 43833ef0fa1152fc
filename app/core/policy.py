# app/core/policy.py
"""
Authorization policy.

Every gateway handler resolves the caller's claim (possibly None) and calls
`enforce(operation, claim, owner_id=...)` before touching a service. The
rules for each operation live in one table below so REST and GraphQL can
never drift apart.

Ownership rule: a caller may act on a resource owned by `owner_id` if the
caller IS that owner, or holds the ADMIN role.
"""
import logging
from dataclasses import dataclass
from enum import Enum

from app.core.errors import ForbiddenError, UnauthenticatedError
from app.core.roles import Role
from app.schemas.auth import TokenClaim

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
    NOT_OWNER = "NOT_OWNER"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None


ALLOW = Decision(allowed=True)


def authorize(claim: TokenClaim | None, required_role: Role) -> Decision:
    """
    Role gate. An absent claim counts as ANONYMOUS, so requiring ANONYMOUS
    always passes.
    """
    if claim is None:
        if required_role == Role.ANONYMOUS:
            return ALLOW
        return Decision(allowed=False, reason=DenyReason.UNAUTHENTICATED)

    if claim.role.satisfies(required_role):
        return ALLOW
    return Decision(allowed=False, reason=DenyReason.INSUFFICIENT_ROLE)


def can_act(claim: TokenClaim | None, owner_id: int) -> bool:
    if claim is None:
        return False
    return claim.id == owner_id or claim.role == Role.ADMIN


@dataclass(frozen=True)
class OperationRule:
    min_role: Role = Role.ANONYMOUS
    login_required: bool = False
    owner_scoped: bool = False
    unauthenticated_detail: str = "You must be logged in"
    forbidden_detail: str = "You don't have permission to perform this action"


_ADMIN_ONLY = OperationRule(
    min_role=Role.ADMIN,
    login_required=True,
    forbidden_detail="Admin access required",
)
_SELF_OR_ADMIN = OperationRule(
    login_required=True,
    owner_scoped=True,
    forbidden_detail="You can only access your own account",
)
_SHOPPER = OperationRule(
    min_role=Role.CUSTOMER,
    login_required=True,
    owner_scoped=True,
    forbidden_detail="You don't have permission to access this resource",
)
_PUBLIC = OperationRule()


OPERATIONS: dict[str, OperationRule] = {
    # ---- users ----
    "users.create": _PUBLIC,
    "users.create_with_role": OperationRule(
        min_role=Role.ADMIN,
        login_required=True,
        unauthenticated_detail="You must be logged in to set user role",
        forbidden_detail="Only admins can set the role of a new user",
    ),
    "users.list": _ADMIN_ONLY,
    "users.read": _SELF_OR_ADMIN,
    "users.update": _SELF_OR_ADMIN,
    "users.update_role": OperationRule(
        min_role=Role.ADMIN,
        login_required=True,
        forbidden_detail="Only admins can change user roles",
    ),
    "users.delete": _SELF_OR_ADMIN,
    "auth.login": _PUBLIC,
    # ---- carts ----
    "carts.read": _SHOPPER,
    "carts.update": _SHOPPER,
    "carts.delete": _SHOPPER,
    # ---- orders ----
    "orders.reserve": _SHOPPER,
    "orders.shipping": _SHOPPER,
    "orders.read": _SHOPPER,
    "orders.cancel": _SHOPPER,
    "orders.attention": _ADMIN_ONLY,
    "orders.ship": _ADMIN_ONLY,
    # ---- products ----
    "products.read": _PUBLIC,
    "products.search": _PUBLIC,
    "products.create": _ADMIN_ONLY,
    "products.update": _ADMIN_ONLY,
    "products.delete": _ADMIN_ONLY,
}


def enforce(
    operation: str,
    claim: TokenClaim | None,
    owner_id: int | None = None,
    owner_username: str | None = None,
) -> TokenClaim | None:
    """
    Apply the rule for `operation` and return the claim on success.

    Rules:
      - login required and no claim            => 401
      - role below the operation's minimum     => 403
      - owner-scoped and caller not owner/admin => 403

    Raises:
        KeyError: unknown operation name (programming error).
    """
    rule = OPERATIONS[operation]

    if claim is None and rule.login_required:
        logger.info("Denied %s: not logged in", operation)
        raise UnauthenticatedError(rule.unauthenticated_detail)

    decision = authorize(claim, rule.min_role)
    if not decision.allowed:
        logger.info("Denied %s: %s", operation, decision.reason.value)
        if decision.reason == DenyReason.UNAUTHENTICATED:
            raise UnauthenticatedError(rule.unauthenticated_detail)
        raise ForbiddenError(rule.forbidden_detail)

    if rule.owner_scoped:
        owns = (owner_id is None or can_act(claim, owner_id)) and (
            owner_username is None or _owns_username(claim, owner_username)
        )
        if not owns:
            logger.info("Denied %s: %s", operation, DenyReason.NOT_OWNER.value)
            raise ForbiddenError(rule.forbidden_detail)

    return claim


def _owns_username(claim: TokenClaim | None, username: str) -> bool:
    if claim is None:
        return False
    return claim.username == username or claim.role == Role.ADMIN
