# app/services/catalog_client.py
"""
Stock lookups used by the cart.

The cart never reads the products table itself; it asks a CatalogClient.
Two implementations:

  - LocalCatalogClient: catalog lives in this process (default)
  - HttpCatalogClient : catalog runs as a separate service
    (CATALOG_SERVICE_URL), GET {base}/products/{id}
"""
import logging
from typing import Protocol

import httpx
from sqlalchemy.engine import Engine
from sqlmodel import Session
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.errors import UpstreamError
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import ProductStock

logger = logging.getLogger(__name__)


class ProductNotFound(Exception):
    pass


class CatalogClient(Protocol):
    def get_product(self, product_id: str) -> ProductStock:
        """
        Raises:
            ProductNotFound: unknown or deleted product.
            UpstreamError: catalog unreachable.
        """
        ...


class LocalCatalogClient:
    def __init__(self, engine: Engine, product_repo: ProductRepository):
        self.engine = engine
        self.product_repo = product_repo

    def get_product(self, product_id: str) -> ProductStock:
        with Session(self.engine) as session:
            product = self.product_repo.get_by_id(session, product_id)
            if product is None:
                raise ProductNotFound(product_id)
            return ProductStock(id=product.id, stock_count=product.stock_count)


class HttpCatalogClient:
    def __init__(self, base_url: str, timeout: float = 2.0, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(httpx.TransportError),
    )
    def _fetch(self, product_id: str) -> httpx.Response:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            return client.get(f"{self.base_url}/products/{product_id}")

    def get_product(self, product_id: str) -> ProductStock:
        try:
            response = self._fetch(product_id)
        except httpx.HTTPError as exc:
            logger.error("Catalog lookup for %s failed: %s", product_id, exc)
            raise UpstreamError() from exc

        if response.status_code in (400, 404):
            raise ProductNotFound(product_id)
        if response.status_code >= 400:
            logger.error("Catalog returned %s for %s", response.status_code, product_id)
            raise UpstreamError()

        data = response.json()
        return ProductStock(id=data["id"], stock_count=data["stock_count"])
