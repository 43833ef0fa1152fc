# app/schemas/product.py
import re
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9 ]+$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
TAG_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")

SortField = Literal["name", "price", "stock_count", "created_at"]
SortOrder = Literal["asc", "desc"]


def _check_tags(tags: list[str]) -> list[str]:
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if not TAG_PATTERN.match(tag):
            raise ValueError(f"invalid tag: {tag!r}")
        cleaned.append(tag)
    return cleaned


def _check_name(v: str | None) -> str | None:
    if v is not None and not NAME_PATTERN.match(v):
        raise ValueError("name may only contain letters, digits and spaces")
    return v


def _check_slug(v: str | None) -> str | None:
    if v is not None and not SLUG_PATTERN.match(v):
        raise ValueError("slug must be lowercase words separated by '-'")
    return v


class ProductCreate(SQLModel):
    """
    Payload for creating a product (admin).

    - slug is optional: if omitted, generated from `name`
    - an explicit slug must be unique, lowercase words joined by '-'
    - price is an integer in the smallest currency unit
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    slug: str | None = Field(default=None, min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    price: int = Field(ge=0)
    stock_count: int = Field(default=0, ge=0)
    category: str = Field(min_length=1, max_length=100)
    tags: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        return _check_slug(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _check_tags(v)


class ProductUpdate(SQLModel):
    """Partial update; only provided fields are changed."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=200)
    slug: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: int | None = Field(default=None, ge=0)
    stock_count: int | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    tags: list[str] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return _check_name(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        return _check_slug(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else _check_tags(v)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ProductRead(SQLModel):
    id: str
    name: str
    slug: str
    description: str
    price: int
    stock_count: int
    category: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class ProductSearch(SQLModel):
    """
    Search request.

    - q matches name, category and tags (case-insensitive substring)
    - category is an exact filter
    - tags keeps products carrying at least one of the given tags
    """

    q: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_field: SortField | None = None
    sort_order: SortOrder = "asc"


class SearchPage(SQLModel):
    total: int
    page: int
    limit: int
    items: list[ProductRead]
