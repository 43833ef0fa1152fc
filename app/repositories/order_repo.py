# app/repositories/order_repo.py
from datetime import datetime, timezone

from sqlmodel import Session, select

from app.models.order import Order, OrderLine, OrderStatus


class OrderRepository:
    """
    Data access layer for orders and order_lines.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def get_by_id(self, session: Session, order_id: int) -> Order | None:
        return session.get(Order, order_id)

    def get_reserved_for_owner(self, session: Session, owner_id: int) -> Order | None:
        stmt = select(Order).where(
            Order.owner_id == owner_id, Order.status == OrderStatus.RESERVED
        )
        return session.exec(stmt).first()

    def get_latest_for_owner(self, session: Session, owner_id: int) -> Order | None:
        stmt = (
            select(Order)
            .where(Order.owner_id == owner_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return session.exec(stmt).first()

    def list_needing_attention(self, session: Session) -> list[Order]:
        """Reserved orders whose owner already attached shipping info."""
        stmt = (
            select(Order)
            .where(Order.status == OrderStatus.RESERVED, Order.address.is_not(None))
            .order_by(Order.created_at, Order.id)
        )
        return session.exec(stmt).all()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        order.updated_at = datetime.now(timezone.utc)
        session.add(order)
        session.flush()
        return order

    # ---- Lines ----

    def add_line(self, session: Session, order_id: int, product_id: str, quantity: int) -> OrderLine:
        line = OrderLine(order_id=order_id, product_id=product_id, quantity=quantity)
        session.add(line)
        return line

    def list_lines(self, session: Session, order_id: int) -> list[OrderLine]:
        stmt = select(OrderLine).where(OrderLine.order_id == order_id).order_by(OrderLine.product_id)
        return session.exec(stmt).all()
