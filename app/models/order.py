# app/models/order.py
from datetime import datetime, timezone
from enum import Enum

from sqlmodel import SQLModel, Field


class OrderStatus(str, Enum):
    RESERVED = "RESERVED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"


class Order(SQLModel, table=True):
    """
    An order created from a cart.

    Lifecycle:
      RESERVED -> SHIPPED     (admin, shipping info required)
      RESERVED -> CANCELLED   (owner, stock is given back)

    A user has at most one RESERVED order at a time. Shipping fields stay
    NULL until the owner attaches them.
    """

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)

    owner_id: int = Field(index=True)

    status: OrderStatus = Field(default=OrderStatus.RESERVED, index=True)

    receiver_name: str | None = Field(default=None, max_length=100)
    address: str | None = Field(default=None, max_length=300)
    city: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    phone_number: str | None = Field(default=None, max_length=30)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_shipping(self) -> bool:
        return self.address is not None


class OrderLine(SQLModel, table=True):
    """Product quantity reserved by an order."""

    __tablename__ = "order_lines"

    id: int | None = Field(default=None, primary_key=True)

    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: str = Field(max_length=64)
    quantity: int = Field(ge=1)
