# app/core/roles.py
from enum import Enum


class Role(str, Enum):
    """
    Application roles, totally ordered:

        ANONYMOUS < CUSTOMER < ADMIN

    ANONYMOUS is both the role of a freshly registered account and the
    effective role of a caller without a token.
    """

    ANONYMOUS = "ANONYMOUS"
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def satisfies(self, required: "Role") -> bool:
        """True if this role is at least as privileged as `required`."""
        return self.rank >= required.rank


_RANKS: dict[Role, int] = {
    Role.ANONYMOUS: 0,
    Role.CUSTOMER: 1,
    Role.ADMIN: 2,
}
