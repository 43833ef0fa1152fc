# app/models/user.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

from app.core.roles import Role


class User(SQLModel, table=True):
    """
    Persistent account (the credential store).

    Role:
      - ANONYMOUS | CUSTOMER | ADMIN
      - new accounts start as ANONYMOUS unless an admin sets a role

    Deletion is soft: `deleted_at` is set and the row disappears from every
    lookup, but the username stays reserved.
    """

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)

    username: str = Field(
        max_length=50,
        unique=True,
        index=True,
        description="Login name, alphanumeric",
    )

    password_hash: str = Field(description="bcrypt hash, never returned to clients")

    role: Role = Field(default=Role.ANONYMOUS, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    deleted_at: datetime | None = Field(default=None, index=True)
