# app/schemas/order.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.models.order import OrderStatus


class ShippingInfo(SQLModel):
    """Delivery details attached to a reserved order by its owner."""

    model_config = ConfigDict(extra="forbid")

    receiver_name: str = Field(max_length=100)
    address: str = Field(max_length=300)
    city: str = Field(max_length=100)
    postal_code: str = Field(max_length=20)
    phone_number: str = Field(max_length=30)

    @field_validator("receiver_name", "address", "city", "postal_code", "phone_number")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class OrderLineRead(SQLModel):
    product_id: str
    quantity: int


class OrderRead(SQLModel):
    id: int
    owner_id: int
    status: OrderStatus
    lines: list[OrderLineRead]

    receiver_name: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    phone_number: str | None = None

    created_at: datetime
    updated_at: datetime
