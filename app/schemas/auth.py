# app/schemas/auth.py
import re

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.core.roles import Role

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")


def check_username(v: str | None) -> str | None:
    if v is not None and not USERNAME_PATTERN.match(v):
        raise ValueError("username must be alphanumeric")
    return v


class TokenClaim(SQLModel):
    """
    Identity carried inside a bearer token.
    A verified token always yields all three fields.
    """

    id: int
    username: str
    role: Role


class LoginRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=8, max_length=72)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)
