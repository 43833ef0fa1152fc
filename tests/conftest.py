import os
from dataclasses import dataclass

os.environ.setdefault("JWT_SECRET", "0123456789abcdef0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import Settings
from app.core.roles import Role
from app.core.security import hash_password
from app.main import create_app
from app.models.user import User
from app.schemas.auth import TokenClaim
from app.schemas.product import ProductCreate

SECRET = "0123456789abcdef0123456789abcdef"
PASSWORD = "password123"


@dataclass
class Account:
    id: int
    username: str
    role: Role
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """SQLite file with one connection per session, for multi-threaded tests."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'shop.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def settings():
    return Settings(JWT_SECRET=SECRET, DATABASE_URL="sqlite://", _env_file=None)


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def services(app):
    return app.state.services


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_account(engine, services):
    """Insert a user directly and hand back its id and a valid token."""

    def _make(username: str, role: Role = Role.CUSTOMER) -> Account:
        with Session(engine) as s:
            user = User(username=username, password_hash=hash_password(PASSWORD), role=role)
            s.add(user)
            s.commit()
            s.refresh(user)
            claim = TokenClaim(id=user.id, username=user.username, role=user.role)
            return Account(user.id, user.username, user.role, services.tokens.issue(claim))

    return _make


@pytest.fixture
def admin(make_account):
    return make_account("admin", Role.ADMIN)


@pytest.fixture
def make_product(engine, services):
    def _make(name: str, stock_count: int = 10, price: int = 1000, **extra):
        payload = ProductCreate(
            name=name,
            price=price,
            stock_count=stock_count,
            category=extra.pop("category", "general"),
            tags=extra.pop("tags", []),
            **extra,
        )
        with Session(engine) as s:
            return services.products.create_product(s, payload)

    return _make
