# app/services/auth_service.py
import logging

from sqlmodel import Session

from app.core.errors import NotFoundError, UnauthenticatedError
from app.core.security import verify_password
from app.core.tokens import TokenService
from app.repositories.user_repo import UserRepository
from app.schemas.auth import LoginRequest
from app.schemas.user import UserRead, UserWithToken
from app.services.user_service import claim_for

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, repo: UserRepository, tokens: TokenService):
        self.repo = repo
        self.tokens = tokens

    def login(self, session: Session, payload: LoginRequest) -> UserWithToken:
        """
        Exchange username + password for a bearer token.

        Raises:
            NotFoundError(404): no live user with that username.
            UnauthenticatedError(401): password mismatch.
        """
        user = self.repo.get_by_username(session, payload.username)
        if user is None:
            raise NotFoundError("Username not found")
        if not verify_password(payload.password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            raise UnauthenticatedError("Password is wrong")

        token = self.tokens.issue(claim_for(user))
        return UserWithToken(**UserRead.model_validate(user).model_dump(), token=token)
