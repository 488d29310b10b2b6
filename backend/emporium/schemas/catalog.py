"""Pydantic models for categories and products.

Request shapes forbid unknown fields: they double as the payload shapes stored
on approval jobs, and a product-shaped body must not validate as a category.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

NAME_PATTERN = r"^[a-zA-Z0-9\s\-\.\,&']+$"
URL_PATTERN = r"^https?://\S+$"


def _no_outer_whitespace(value: str | None, field: str) -> str | None:
    if value is not None and value != value.strip():
        raise ValueError(f"The field {field} cannot contain leading or trailing spaces.")
    return value


# ── Categories ──────────────────────────────────────────────────


class CreateCategoryRequest(BaseModel):
    name: str = Field(min_length=3, max_length=120, pattern=NAME_PATTERN)

    model_config = {"extra": "forbid"}


class UpdateCategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)

    model_config = {"extra": "forbid"}


class CategoryResponse(BaseModel):
    id: int
    name: str
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


# ── Inventory (inline on products) ──────────────────────────────


class CreateInventoryInlineRequest(BaseModel):
    total: int = Field(ge=0)
    available: int = Field(ge=0)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _available_within_total(self) -> "CreateInventoryInlineRequest":
        if self.available > self.total:
            raise ValueError("The field Available cannot be greater than Total.")
        return self


class UpdateInventoryInlineRequest(BaseModel):
    total: int | None = Field(default=None, ge=0)
    available: int | None = Field(default=None, ge=0)

    model_config = {"extra": "forbid"}


# ── Products ────────────────────────────────────────────────────


class CreateProductRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(ge=0, le=Decimal("999999999999.99"), decimal_places=2)
    description: str | None = Field(default=None, max_length=2000)
    image_url: str | None = Field(default=None, max_length=2048, pattern=URL_PATTERN)
    rating_rate: float = Field(default=0, ge=0, le=5)
    count: int = Field(default=0, ge=0)
    category: str = Field(min_length=3, max_length=120, pattern=NAME_PATTERN)
    inventory: CreateInventoryInlineRequest | None = None

    model_config = {"extra": "forbid"}

    @field_validator("title", "description", "image_url")
    @classmethod
    def _trimmed(cls, v, info):
        return _no_outer_whitespace(v, info.field_name)


class UpdateProductRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    price: Decimal | None = Field(default=None, ge=0, le=Decimal("999999999999.99"), decimal_places=2)
    description: str | None = Field(default=None, max_length=2000)
    image_url: str | None = Field(default=None, max_length=2048, pattern=URL_PATTERN)
    rating_rate: float | None = Field(default=None, ge=0, le=5)
    count: int | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, max_length=120)
    inventory: UpdateInventoryInlineRequest | None = None

    model_config = {"extra": "forbid"}

    @field_validator("title", "description", "image_url")
    @classmethod
    def _trimmed(cls, v, info):
        return _no_outer_whitespace(v, info.field_name)


class ProductResponse(BaseModel):
    id: int
    title: str
    price: Decimal
    description: str | None = None
    image_url: str | None = None
    rating_rate: float
    count: int
    category: str
    inventory_total: int | None = None
    inventory_available: int | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, product, category_name: str) -> "ProductResponse":
        inv = product.inventory
        return cls(
            id=product.id,
            title=product.title,
            price=product.price,
            description=product.description,
            image_url=product.image_url,
            rating_rate=product.rating_rate,
            count=product.count,
            category=category_name,
            inventory_total=inv.total if inv is not None else None,
            inventory_available=inv.available if inv is not None else None,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class CategoryPage(BaseModel):
    total: int
    items: list[CategoryResponse]


class ProductPage(BaseModel):
    total: int
    items: list[ProductResponse]
