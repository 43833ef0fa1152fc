# app/core/tokens.py
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import ValidationError

from app.schemas.auth import TokenClaim


class InvalidTokenError(Exception):
    """Raised when a bearer token is malformed, tampered with or expired."""


class TokenService:
    """
    Issues and verifies signed bearer tokens.

    Payload layout:
      - id, username, role : the identity claim
      - iat, exp           : issue / expiry timestamps (exp is mandatory)

    Tokens minted before `id` existed carried the user id in `sub`;
    those are still accepted on verify.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, claim: TokenClaim) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "id": claim.id,
            "username": claim.username,
            "role": claim.role.value,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaim:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_aud": False, "require_exp": True},
            )
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        user_id = payload.get("id", payload.get("sub"))
        try:
            return TokenClaim(
                id=user_id,
                username=payload.get("username"),
                role=payload.get("role"),
            )
        except ValidationError as exc:
            raise InvalidTokenError("Token payload is missing identity fields") from exc
