# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


def new_product_id() -> str:
    return uuid.uuid4().hex


class Product(SQLModel, table=True):
    """
    Catalog product.

    - id is a 32-char hex string
    - price is an integer amount in the smallest currency unit
    - stock_count is the authoritative inventory figure; it is only
      lowered by a conditional UPDATE so it can never go negative
    """

    __tablename__ = "products"

    id: str = Field(
        default_factory=new_product_id,
        primary_key=True,
        max_length=32,
    )

    name: str = Field(max_length=200, index=True)
    slug: str = Field(max_length=200, unique=True, index=True)
    description: str = Field(default="")

    price: int = Field(ge=0)
    stock_count: int = Field(default=0, ge=0)

    category: str = Field(max_length=100, index=True)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    deleted_at: datetime | None = Field(default=None, index=True)
