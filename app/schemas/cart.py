# app/schemas/cart.py
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class CartLineUpdate(SQLModel):
    """
    Set the quantity of one product in the cart.

    - quantity == 0 removes the line
    - quantity  > 0 sets it (not adds to it)
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=0)


class CartLineRead(SQLModel):
    product_id: str
    quantity: int


class CartRead(SQLModel):
    owner_id: int
    lines: list[CartLineRead]
    created_at: datetime
    updated_at: datetime


class ProductStock(SQLModel):
    """What the cart needs to know about a product: that it exists, and its stock."""

    id: str
    stock_count: int
