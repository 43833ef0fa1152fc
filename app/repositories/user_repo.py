# app/repositories/user_repo.py
from datetime import datetime, timezone

from sqlmodel import Session, select

from app.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - Soft-deleted rows are invisible to every lookup
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, user_id: int) -> User | None:
        """Return a live User by primary key, or None."""
        stmt = select(User).where(User.id == user_id, User.deleted_at.is_(None))
        return session.exec(stmt).first()

    def get_by_username(self, session: Session, username: str) -> User | None:
        """Return a live User by unique username, or None."""
        stmt = select(User).where(User.username == username, User.deleted_at.is_(None))
        return session.exec(stmt).first()

    def list(self, session: Session, skip: int = 0, limit: int = 50) -> list[User]:
        stmt = (
            select(User)
            .where(User.deleted_at.is_(None))
            .order_by(User.id)
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    # ----- Writes -----

    def create(self, session: Session, user: User) -> User:
        """
        Insert a new User and return the persisted row.

        Raises:
            sqlalchemy.exc.IntegrityError: username already taken.
        """
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        user.updated_at = datetime.now(timezone.utc)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def soft_delete(self, session: Session, user: User) -> None:
        now = datetime.now(timezone.utc)
        user.deleted_at = now
        user.updated_at = now
        session.add(user)
        session.commit()
