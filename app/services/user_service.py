# app/services/user_service.py
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.core.errors import ConflictError, NotFoundError, UpstreamError, ValidationFailedError
from app.core.roles import Role
from app.core.security import hash_password
from app.core.tokens import TokenService
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.auth import TokenClaim
from app.schemas.user import UserCreate, UserRead, UserUpdate, UserWithToken

logger = logging.getLogger(__name__)


def claim_for(user: User) -> TokenClaim:
    return TokenClaim(id=user.id, username=user.username, role=user.role)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - hash passwords, never expose the hash
      - map unique-username violations to 409
      - issue a token on registration
      - orchestrate repository operations

    Role rules (who may set / change a role) are enforced by the gateway.
    """

    def __init__(self, repo: UserRepository, tokens: TokenService):
        self.repo = repo
        self.tokens = tokens

    def _save(self, session: Session, user: User, create: bool = False) -> User:
        try:
            if create:
                return self.repo.create(session, user)
            return self.repo.update(session, user)
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError("Username already exists") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Saving user %s failed", user.username)
            raise UpstreamError() from exc

    # ----- Registration -----

    def create_user(self, session: Session, payload: UserCreate) -> UserWithToken:
        user = User(
            username=payload.username,
            password_hash=hash_password(payload.password),
            role=payload.role or Role.ANONYMOUS,
        )
        user = self._save(session, user, create=True)
        logger.info("User %s registered with role %s", user.id, user.role.value)

        token = self.tokens.issue(claim_for(user))
        return UserWithToken(**UserRead.model_validate(user).model_dump(), token=token)

    # ----- Reads -----

    def list_users(self, session: Session, skip: int = 0, limit: int = 50) -> list[User]:
        return self.repo.list(session, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: int) -> User:
        user = self.repo.get_by_id(session, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_by_username(self, session: Session, username: str) -> User:
        user = self.repo.get_by_username(session, username)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # ----- Writes -----

    def update_user(self, session: Session, user_id: int, payload: UserUpdate) -> User:
        """
        Partial update.

        Rules:
          - at least one field must be provided
          - a new password is re-hashed
        """
        if payload.is_empty():
            raise ValidationFailedError("no valid fields provided to update")

        user = self.get_user(session, user_id)
        if payload.username is not None:
            user.username = payload.username
        if payload.password is not None:
            user.password_hash = hash_password(payload.password)
        if payload.role is not None:
            user.role = payload.role

        return self._save(session, user)

    def delete_user(self, session: Session, user_id: int) -> None:
        user = self.get_user(session, user_id)
        try:
            self.repo.soft_delete(session, user)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Deleting user %s failed", user_id)
            raise UpstreamError() from exc
        logger.info("User %s deleted", user_id)
