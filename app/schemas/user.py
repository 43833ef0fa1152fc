# app/schemas/user.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.core.roles import Role
from app.schemas.auth import check_username


class UserCreate(SQLModel):
    """
    Registration payload.

    `role` is optional; supplying it is an admin-only action (checked by the
    gateway before the service is called). Without it the account starts
    as ANONYMOUS.
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=8, max_length=72)
    role: Role | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)


class UserRead(SQLModel):
    """Response schema returned to clients. Never includes the password hash."""

    id: int
    username: str
    role: Role
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


class UserWithToken(UserRead):
    """Returned by registration and login so the client can start a session."""

    token: str


class UserUpdate(SQLModel):
    """
    Partial account update. At least one field must be present.
    Changing `role` is admin-only.
    """

    model_config = ConfigDict(extra="forbid")

    username: str | None = Field(default=None, min_length=1, max_length=50)
    password: str | None = Field(default=None, min_length=8, max_length=72)
    role: Role | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        return check_username(v)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)
