"""Pydantic models describing Product payloads and derived inventory views."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_serializer

from inventory_api.api.schemas.common import CamelModel

PRICE_FIELD = {"gt": 0, "max_digits": 10, "decimal_places": 2}


class ProductCreate(CamelModel):
    """Every business field is required on create."""

    name: StrictStr = Field(..., min_length=2, max_length=100)
    description: StrictStr = Field(..., max_length=500)
    price: Decimal = Field(..., **PRICE_FIELD)
    stock_quantity: StrictInt = Field(..., ge=0)
    category_id: StrictInt = Field(..., gt=0)


class ProductUpdate(CamelModel):
    """Every field is optional; absent fields are tracked by ``model_fields_set``.

    Defaults are never validated, so an explicit ``null`` is rejected while an
    omitted key simply stays out of ``changes()``.
    """

    name: StrictStr = Field(None, min_length=2, max_length=100)
    description: StrictStr = Field(None, max_length=500)
    price: Decimal = Field(None, **PRICE_FIELD)
    stock_quantity: StrictInt = Field(None, ge=0)
    category_id: StrictInt = Field(None, gt=0)
    is_active: StrictBool = Field(None)

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class StrictProductUpdate(ProductUpdate):
    model_config = ConfigDict(extra="forbid")


class StockUpdate(CamelModel):
    quantity: StrictInt
    mode: Literal["delta", "absolute"] = "delta"

    @property
    def absolute(self) -> bool:
        return self.mode == "absolute"


class ProductRead(CamelModel):
    id: int
    name: str
    description: str
    price: Decimal
    stock_quantity: int
    category_id: int
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("price", when_used="json")
    def serialize_price(self, value: Decimal) -> float:
        return float(value)


class ProductPage(CamelModel):
    products: list[ProductRead]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return -(-self.total // self.limit)


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class ProductListData(CamelModel):
    products: list[ProductRead]
    pagination: Pagination

    @classmethod
    def from_page(cls, page: ProductPage) -> "ProductListData":
        return cls(
            products=page.products,
            pagination=Pagination(
                current_page=page.page,
                total_pages=page.total_pages,
                total_items=page.total,
                items_per_page=page.limit,
            ),
        )


class InventoryStats(CamelModel):
    total_products: int
    active_products: int
    total_stock: int
    total_value: Decimal
    average_price: Decimal
    low_stock_count: int
    threshold: int

    @field_serializer("total_value", "average_price", when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)
