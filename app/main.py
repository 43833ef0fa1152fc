# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from sqlalchemy.engine import Engine

from app.core.config import Settings, get_settings
from app.core.errors import register_exception_handlers
from app.database import build_engine, create_db_and_tables
from app.services.container import build_services

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401

# Routers
from app.routers.auth import router as auth_router
from app.routers.users import router as users_router
from app.routers.products import router as products_router
from app.routers.carts import router as carts_router
from app.routers.orders import router as orders_router
from app.routers.graphql_gateway import build_graphql_router

logger = logging.getLogger("uvicorn")


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """
    Build the application.

    `settings` and `engine` default to the environment-driven ones; tests
    pass their own (e.g. an in-memory SQLite engine).
    """
    settings = settings or get_settings()
    engine = engine or build_engine(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Startup:
          - Verify DB connectivity and create tables.

        Shutdown:
          - Release pooled connections.
        """
        logger.info("Startup: connecting to database...")
        try:
            create_db_and_tables(engine)
            logger.info("Startup: DB connection OK, tables verified.")
        except Exception as e:
            logger.error(f"Startup: DB connection FAILED: {e}")
            raise
        yield
        engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.services = build_services(settings, engine)

    # --- CORS configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(products_router)
    app.include_router(carts_router)
    app.include_router(orders_router)

    if settings.ENABLE_GRAPHQL:
        app.include_router(build_graphql_router(), prefix=settings.GRAPHQL_PATH)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "storefront-backend"}

    return app


logging.basicConfig(level=get_settings().LOG_LEVEL)

app = create_app()
