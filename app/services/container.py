# app/services/container.py
"""
Wiring for every service, built once at startup and stored on
`app.state.services`. Handlers reach it through `get_services`.
"""
import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.engine import Engine

from app.core.cache import Cache, MemoryCache, RedisCache
from app.core.config import Settings
from app.core.tokens import TokenService
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService
from app.services.cart_service import CartService
from app.services.catalog_client import CatalogClient, HttpCatalogClient, LocalCatalogClient
from app.services.locks import KeyedLock, Locks, RedisKeyedLock
from app.services.order_service import OrderService
from app.services.product_service import ProductService
from app.services.search import SqlSearchIndex
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    tokens: TokenService
    auth: AuthService
    users: UserService
    products: ProductService
    carts: CartService
    orders: OrderService


def build_cache(settings: Settings) -> Cache:
    if settings.REDIS_URL:
        logger.info("Product cache: redis")
        return RedisCache(settings.REDIS_URL)
    logger.info("Product cache: in-memory")
    return MemoryCache()


def build_catalog_client(settings: Settings, engine: Engine, product_repo: ProductRepository) -> CatalogClient:
    if settings.CATALOG_SERVICE_URL:
        logger.info("Catalog client: %s", settings.CATALOG_SERVICE_URL)
        return HttpCatalogClient(settings.CATALOG_SERVICE_URL, timeout=settings.CATALOG_TIMEOUT_SECONDS)
    return LocalCatalogClient(engine, product_repo)


def build_locks(settings: Settings) -> Locks:
    if settings.REDIS_URL:
        logger.info("Cart and order locks: redis")
        return RedisKeyedLock.from_url(
            settings.REDIS_URL,
            timeout=settings.LOCK_TIMEOUT_SECONDS,
            wait=settings.LOCK_WAIT_SECONDS,
        )
    logger.info("Cart and order locks: in-process")
    return KeyedLock()


def build_services(
    settings: Settings,
    engine: Engine,
    cache: Cache | None = None,
    catalog: CatalogClient | None = None,
    locks: Locks | None = None,
) -> Services:
    tokens = TokenService(
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )

    user_repo = UserRepository()
    product_repo = ProductRepository()
    cart_repo = CartRepository()
    order_repo = OrderRepository()
    if locks is None:
        locks = build_locks(settings)

    products = ProductService(
        product_repo,
        cache or build_cache(settings),
        SqlSearchIndex(product_repo),
        cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
    )

    return Services(
        tokens=tokens,
        auth=AuthService(user_repo, tokens),
        users=UserService(user_repo, tokens),
        products=products,
        carts=CartService(
            cart_repo,
            user_repo,
            catalog or build_catalog_client(settings, engine, product_repo),
            locks=locks,
        ),
        orders=OrderService(
            order_repo,
            cart_repo,
            product_repo,
            on_stock_change=products.invalidate,
            locks=locks,
        ),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
