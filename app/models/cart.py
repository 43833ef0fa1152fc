# app/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Cart(SQLModel, table=True):
    """
    One cart per user, keyed by the owner's id.

    Created implicitly the first time a quantity is set, removed by the
    cart delete operation or when the cart is turned into an order.
    """

    __tablename__ = "carts"

    owner_id: int = Field(primary_key=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CartLine(SQLModel, table=True):
    """
    Quantity of one product in a cart.

    Rules:
      - at most one line per (owner_id, product_id)
      - quantity >= 1 (setting 0 removes the line)
    """

    __tablename__ = "cart_lines"
    __table_args__ = (UniqueConstraint("owner_id", "product_id", name="uq_cart_line_product"),)

    id: int | None = Field(default=None, primary_key=True)

    owner_id: int = Field(foreign_key="carts.owner_id", index=True)

    # Catalog product id; not a foreign key, the catalog owns products.
    product_id: str = Field(max_length=64, index=True)

    quantity: int = Field(ge=1)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
