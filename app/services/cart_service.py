# app/services/cart_service.py
import logging
from contextlib import AbstractContextManager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.core.errors import (
    InsufficientStockError,
    NotFoundError,
    ServiceError,
    UpstreamError,
)
from app.models.cart import Cart
from app.repositories.cart_repo import CartRepository
from app.repositories.user_repo import UserRepository
from app.schemas.cart import CartLineRead, CartRead
from app.services.catalog_client import CatalogClient, ProductNotFound
from app.services.locks import KeyedLock, Locks

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for carts.

    Responsibilities:
      - create the cart on first use (owner must exist)
      - set (not add to) a product's quantity; 0 removes the line
      - never store a quantity above the catalog's current stock
      - keep each (owner, product) read-modify-write atomic

    Authorization is the gateway's job; every method here assumes the
    caller may act on `owner_id`.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        user_repo: UserRepository,
        catalog: CatalogClient,
        locks: Locks | None = None,
    ):
        self.cart_repo = cart_repo
        self.user_repo = user_repo
        self.catalog = catalog
        self.locks = KeyedLock() if locks is None else locks

    # ---- internal helpers ----

    def _snapshot(self, session: Session, cart: Cart) -> CartRead:
        lines = self.cart_repo.list_lines(session, cart.owner_id)
        return CartRead(
            owner_id=cart.owner_id,
            lines=[CartLineRead(product_id=line.product_id, quantity=line.quantity) for line in lines],
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )

    def _ensure_stock(self, product_id: str, quantity: int) -> None:
        try:
            product = self.catalog.get_product(product_id)
        except ProductNotFound:
            raise NotFoundError("Can't find product with given id")
        if product.stock_count < quantity:
            logger.info("Rejected %s x%s: only %s in stock", product_id, quantity, product.stock_count)
            raise InsufficientStockError(
                "Not enough products in stock to add given quantity to cart"
            )

    def _get_or_create_cart(self, session: Session, owner_id: int) -> Cart:
        """Existing cart, or a new empty one committed on its own."""
        cart = self.cart_repo.get_cart(session, owner_id)
        if cart is not None:
            return cart
        if self.user_repo.get_by_id(session, owner_id) is None:
            raise NotFoundError("Can't find user with given id")

        try:
            cart = self.cart_repo.create_cart(session, owner_id)
            session.commit()
        except IntegrityError as exc:
            # Another product's update created it first
            session.rollback()
            cart = self.cart_repo.get_cart(session, owner_id)
            if cart is None:
                raise UpstreamError() from exc
        logger.info("Cart created for user %s", owner_id)
        return cart

    def line_lock(self, owner_id: int, product_id: str) -> AbstractContextManager[None]:
        return self.locks.hold(("cart", owner_id, product_id))

    # ---- public operations ----

    def set_quantity(
        self,
        session: Session,
        owner_id: int,
        product_id: str,
        quantity: int,
    ) -> CartRead:
        """
        Set the quantity of `product_id` in the owner's cart.

        Rules:
          - no cart yet and owner unknown     => 404
          - no cart yet                       => empty cart created first
          - quantity 0 on a missing line      => 404
          - quantity > current catalog stock  => 400, lines unchanged
          - quantity 0 on an existing line    => line removed
        """
        with self.line_lock(owner_id, product_id):
            try:
                cart = self._get_or_create_cart(session, owner_id)
                line = self.cart_repo.get_line(session, owner_id, product_id)

                if line is None and quantity == 0:
                    raise NotFoundError("Cart does not contain given product")

                if quantity > 0:
                    self._ensure_stock(product_id, quantity)

                if line is None:
                    self.cart_repo.add_line(session, owner_id, product_id, quantity)
                elif quantity == 0:
                    self.cart_repo.delete_line(session, line)
                else:
                    self.cart_repo.set_line_quantity(session, line, quantity)

                self.cart_repo.touch(session, cart)
                session.commit()
            except ServiceError:
                session.rollback()
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Cart update failed for user %s", owner_id)
                raise UpstreamError() from exc

            logger.info("Cart %s: %s set to %s", owner_id, product_id, quantity)
            return self._snapshot(session, cart)

    def read_cart(self, session: Session, owner_id: int) -> CartRead:
        cart = self.cart_repo.get_cart(session, owner_id)
        if cart is None:
            raise NotFoundError("Can't find cart with given id")
        return self._snapshot(session, cart)

    def delete_cart(self, session: Session, owner_id: int) -> CartRead:
        """Remove every line and the cart itself; returns what was deleted."""
        cart = self.cart_repo.get_cart(session, owner_id)
        if cart is None:
            raise NotFoundError("Can't find cart with given id")

        snapshot = self._snapshot(session, cart)
        try:
            self.cart_repo.delete_cart(session, cart)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Cart delete failed for user %s", owner_id)
            raise UpstreamError() from exc
        return snapshot
