# app/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - JWT_SECRET (hex string, 16-64 chars, signs every bearer token)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file)
      - REDIS_URL (product cache and cross-worker locks; in-process if unset)
      - CATALOG_SERVICE_URL (remote catalog; in-process catalog if unset)
    """

    PROJECT_NAME: str = "Storefront API"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Token signing
    JWT_SECRET: str = Field(pattern=r"^[a-fA-F0-9]{16,64}$")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60, gt=0)

    # Product read path
    REDIS_URL: str | None = None
    CACHE_TTL_SECONDS: int = Field(default=60, gt=0)

    # Cart line / order locks (Redis backend only)
    LOCK_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    LOCK_WAIT_SECONDS: float = Field(default=5.0, gt=0)

    # Cart -> catalog stock lookups
    CATALOG_SERVICE_URL: str | None = None
    CATALOG_TIMEOUT_SECONDS: float = 2.0

    # GraphQL gateway
    ENABLE_GRAPHQL: bool = True
    GRAPHQL_PATH: str = Field(default="/graphql", pattern=r"^/[a-zA-Z0-9_/-]+$")

    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
