# app/services/product_service.py
import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.core.cache import Cache
from app.core.errors import ConflictError, NotFoundError, UpstreamError, ValidationFailedError
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    ProductCreate,
    ProductRead,
    ProductSearch,
    ProductUpdate,
    SearchPage,
)
from app.services.search import SqlSearchIndex

logger = logging.getLogger(__name__)

PRODUCT_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def cache_key(product_id: str) -> str:
    return f"product.{product_id}"


class ProductService:
    """
    Business logic for the catalog.

    Responsibilities:
      - slug generation & uniqueness
      - read-through cache on single-product reads (key: product.<id>)
      - cache invalidation on every write, including stock changes made
        by order reservation / cancellation
      - search with filters, sorting and paging
      - admin-only operations (enforced at the gateway)
    """

    def __init__(
        self,
        repo: ProductRepository,
        cache: Cache,
        search_index: SqlSearchIndex,
        cache_ttl_seconds: int = 60,
    ):
        self.repo = repo
        self.cache = cache
        self.search_index = search_index
        self.cache_ttl_seconds = cache_ttl_seconds

    # ----- Helpers -----

    @staticmethod
    def _slugify(raw: str) -> str:
        """
        Basic slugification:
          - lowercase
          - non-alphanumeric -> '-'
          - collapse multiple '-'
          - strip leading/trailing '-'
        """
        value = raw.strip().lower()
        value = re.sub(r"[^a-z0-9]+", "-", value)
        value = re.sub(r"-+", "-", value)
        value = value.strip("-")
        return value or "product"

    def _ensure_unique_slug(self, session: Session, base_slug: str) -> str:
        """
        Ensure slug is unique by appending -2, -3, ... if needed.
        """
        slug = base_slug
        i = 2
        while self.repo.get_by_slug(session, slug) is not None:
            slug = f"{base_slug}-{i}"
            i += 1
        return slug

    def _get_or_404(self, session: Session, product_id: str) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def invalidate(self, product_id: str) -> None:
        self.cache.delete(cache_key(product_id))

    # ----- Products -----

    def create_product(self, session: Session, payload: ProductCreate) -> ProductRead:
        if payload.slug is None:
            slug = self._ensure_unique_slug(session, self._slugify(payload.name))
        elif self.repo.get_by_slug(session, payload.slug) is not None:
            raise ConflictError("Slug already in use")
        else:
            slug = payload.slug

        product = Product(**payload.model_dump(exclude={"slug"}), slug=slug)
        try:
            product = self.repo.create(session, product)
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError("Slug already in use") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Product create failed")
            raise UpstreamError() from exc

        logger.info("Product %s created (%s)", product.id, product.slug)
        return ProductRead.model_validate(product)

    def get_product(self, session: Session, id_or_slug: str) -> ProductRead:
        """
        Read one product.

        A well-formed id goes through the cache (read-through, TTL from
        settings). Anything else is treated as a slug and read directly.
        """
        if not PRODUCT_ID_PATTERN.match(id_or_slug):
            product = self.repo.get_by_slug(session, id_or_slug)
            if product is None:
                raise NotFoundError("Product not found")
            return ProductRead.model_validate(product)

        cached = self.cache.get(cache_key(id_or_slug))
        if cached is not None:
            return ProductRead.model_validate(cached)

        product = ProductRead.model_validate(self._get_or_404(session, id_or_slug))
        self.cache.set(cache_key(product.id), product.model_dump(mode="json"), self.cache_ttl_seconds)
        return product

    def update_product(self, session: Session, product_id: str, payload: ProductUpdate) -> ProductRead:
        if payload.is_empty():
            raise ValidationFailedError("no valid fields provided to update")

        product = self._get_or_404(session, product_id)
        data = payload.model_dump(exclude_none=True)

        if "slug" in data and data["slug"] != product.slug:
            if self.repo.get_by_slug(session, data["slug"]) is not None:
                raise ConflictError("Slug already in use")

        for field, value in data.items():
            setattr(product, field, value)

        try:
            product = self.repo.update(session, product)
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError("Slug already in use") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Product update failed for %s", product_id)
            raise UpstreamError() from exc

        self.invalidate(product_id)
        return ProductRead.model_validate(product)

    def delete_product(self, session: Session, product_id: str) -> None:
        product = self._get_or_404(session, product_id)
        try:
            self.repo.soft_delete(session, product)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Product delete failed for %s", product_id)
            raise UpstreamError() from exc
        self.invalidate(product_id)
        logger.info("Product %s deleted", product_id)

    def search(self, session: Session, query: ProductSearch) -> SearchPage:
        total, products = self.search_index.search(session, query)
        if total == 0:
            raise NotFoundError("No products found matching the search criteria")
        return SearchPage(
            total=total,
            page=query.page,
            limit=query.limit,
            items=[ProductRead.model_validate(p) for p in products],
        )
