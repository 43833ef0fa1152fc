# app/services/order_service.py
import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ServiceError,
    UpstreamError,
    ValidationFailedError,
)
from app.models.order import Order, OrderStatus
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import OrderLineRead, OrderRead, ShippingInfo
from app.services.locks import KeyedLock, Locks

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Turn the owner's cart into a RESERVED order, taking stock out of
        the catalog for every line in one transaction
      - Attach shipping details to the reserved order
      - Cancel a reserved order and give its stock back
      - Admin queue: reserved orders with shipping info, and shipping them

    Status transitions:
      RESERVED -> SHIPPED | CANCELLED. Nothing leaves SHIPPED or CANCELLED.

    Owner-facing writes run under the owner's order lock, so two concurrent
    reservations cannot both pass the one-RESERVED-order check.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        on_stock_change: Callable[[str], None] | None = None,
        locks: Locks | None = None,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        # Called with each product id whose stock moved (cache invalidation)
        self.on_stock_change = on_stock_change
        self.locks = KeyedLock() if locks is None else locks

    # -------- internal helpers --------

    def _to_read(self, session: Session, order: Order) -> OrderRead:
        lines = self.order_repo.list_lines(session, order.id)
        return OrderRead(
            id=order.id,
            owner_id=order.owner_id,
            status=order.status,
            lines=[OrderLineRead(product_id=line.product_id, quantity=line.quantity) for line in lines],
            receiver_name=order.receiver_name,
            address=order.address,
            city=order.city,
            postal_code=order.postal_code,
            phone_number=order.phone_number,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )

    def _get_reserved(self, session: Session, owner_id: int) -> Order:
        order = self.order_repo.get_reserved_for_owner(session, owner_id)
        if order is None:
            raise NotFoundError("No reserved order found for this user")
        return order

    def _notify(self, product_ids: list[str]) -> None:
        if self.on_stock_change is None:
            return
        for product_id in product_ids:
            self.on_stock_change(product_id)

    def _commit(self, session: Session, action: str, subject: int) -> None:
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Order %s failed for %s", action, subject)
            raise UpstreamError() from exc

    def _owner_lock(self, owner_id: int):
        return self.locks.hold(("order", owner_id))

    # -------- User-facing operations --------

    def reserve(self, session: Session, owner_id: int) -> OrderRead:
        """
        Convert the owner's cart into a RESERVED order.

        Steps:
          1. Cart must exist and have at least one line.
          2. Owner must not already have a RESERVED order.
          3. Decrement stock for every line (conditional UPDATE); if any
             line lacks stock, roll everything back.
          4. Create Order + OrderLines, delete the cart, commit.
        """
        with self._owner_lock(owner_id):
            cart = self.cart_repo.get_cart(session, owner_id)
            if cart is None:
                raise NotFoundError("Can't find cart with given id")
            lines = self.cart_repo.list_lines(session, owner_id)
            if not lines:
                raise ValidationFailedError("Cart is empty")
            if self.order_repo.get_reserved_for_owner(session, owner_id) is not None:
                raise ConflictError("User already has a reserved order")

            reserved = [line.product_id for line in lines]
            try:
                for line in lines:
                    if not self.product_repo.decrement_stock(session, line.product_id, line.quantity):
                        raise InsufficientStockError(
                            f"Not enough products in stock for product {line.product_id}"
                        )

                order = self.order_repo.create_order(session, Order(owner_id=owner_id))
                for line in lines:
                    self.order_repo.add_line(session, order.id, line.product_id, line.quantity)
                self.cart_repo.delete_cart(session, cart)
                session.commit()
            except ServiceError:
                session.rollback()
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Order reservation failed for user %s", owner_id)
                raise UpstreamError() from exc

            logger.info("Order %s reserved for user %s (%d lines)", order.id, owner_id, len(reserved))
            self._notify(reserved)
            return self._to_read(session, order)

    def attach_shipping(self, session: Session, owner_id: int, payload: ShippingInfo) -> OrderRead:
        with self._owner_lock(owner_id):
            order = self._get_reserved(session, owner_id)
            for field, value in payload.model_dump().items():
                setattr(order, field, value)
            self.order_repo.update_order(session, order)
            self._commit(session, "shipping update", owner_id)
            return self._to_read(session, order)

    def read(self, session: Session, owner_id: int) -> OrderRead:
        """Return the owner's most recent order, whatever its status."""
        order = self.order_repo.get_latest_for_owner(session, owner_id)
        if order is None:
            raise NotFoundError("Can't find order for given user")
        return self._to_read(session, order)

    def cancel(self, session: Session, owner_id: int) -> OrderRead:
        with self._owner_lock(owner_id):
            order = self._get_reserved(session, owner_id)
            lines = self.order_repo.list_lines(session, order.id)

            try:
                for line in lines:
                    self.product_repo.increment_stock(session, line.product_id, line.quantity)
                order.status = OrderStatus.CANCELLED
                self.order_repo.update_order(session, order)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Order cancel failed for user %s", owner_id)
                raise UpstreamError() from exc

            logger.info("Order %s cancelled by user %s", order.id, owner_id)
            self._notify([line.product_id for line in lines])
            return self._to_read(session, order)

    # -------- Admin operations --------

    def needs_attention(self, session: Session) -> list[OrderRead]:
        return [self._to_read(session, o) for o in self.order_repo.list_needing_attention(session)]

    def get_attention(self, session: Session, order_id: int) -> OrderRead:
        order = self.order_repo.get_by_id(session, order_id)
        if order is None or order.status != OrderStatus.RESERVED or not order.has_shipping:
            raise NotFoundError("Order not found or does not need attention")
        return self._to_read(session, order)

    def ship(self, session: Session, order_id: int) -> OrderRead:
        order = self.order_repo.get_by_id(session, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if order.status != OrderStatus.RESERVED:
            raise ValidationFailedError(
                f"Order is {order.status.value}; only reserved orders can be shipped"
            )
        if not order.has_shipping:
            raise ValidationFailedError("Shipping info required before shipping")

        order.status = OrderStatus.SHIPPED
        self.order_repo.update_order(session, order)
        self._commit(session, "ship", order_id)
        logger.info("Order %s shipped", order_id)
        return self._to_read(session, order)
