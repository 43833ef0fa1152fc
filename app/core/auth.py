# app/core/auth.py
import logging

from fastapi import Request

from app.core.tokens import InvalidTokenError, TokenService
from app.schemas.auth import TokenClaim

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


def authenticate(header_value: str | None, tokens: TokenService) -> TokenClaim | None:
    """
    Turn a raw Authorization header into a verified claim.

    Flow:
      1. Missing / empty header => None (anonymous caller).
      2. Split on spaces; the first part must be exactly "Bearer".
         Only the part right after it is used as the credential.
      3. Verify the credential; any failure => None.

    Never raises: a bad token is indistinguishable from no token, and the
    authorization layer decides what an anonymous caller may do.
    """
    if not header_value:
        return None

    parts = header_value.split(" ")
    if parts[0] != BEARER_SCHEME or len(parts) < 2 or not parts[1]:
        return None

    try:
        return tokens.verify(parts[1])
    except InvalidTokenError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return None


def get_claim(request: Request) -> TokenClaim | None:
    """
    FastAPI dependency resolving the caller's claim (or None for guests).

    Usage:

        @router.get("/example")
        def example(claim: TokenClaim | None = Depends(get_claim)):
            ...
    """
    tokens: TokenService = request.app.state.services.tokens
    return authenticate(request.headers.get("Authorization"), tokens)
