"""Storage contract for product records.

Every mutating method is one transaction at the storage boundary. Callers
never read a record and write it back in two steps; they hand a merge
function (or a stock delta) to the repository instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable

from inventory_api.api.schemas.product import ProductCreate, ProductRead

MergeFn = Callable[[ProductRead], ProductRead]
Transition = tuple[ProductRead, ProductRead]


@dataclass(frozen=True)
class StockLevel:
    price: Decimal
    stock_quantity: int
    is_active: bool


@dataclass(frozen=True)
class InventoryAggregate:
    """Totals derived from one snapshot of stock levels."""

    total_products: int
    active_products: int
    total_stock: int
    total_value: Decimal
    price_sum: Decimal
    low_stock_count: int

    @classmethod
    def from_levels(cls, levels: Iterable[StockLevel], threshold: int) -> "InventoryAggregate":
        total_products = active_products = total_stock = low_stock_count = 0
        total_value = price_sum = Decimal("0")
        for level in levels:
            total_products += 1
            if level.stock_quantity <= threshold:
                low_stock_count += 1
            if not level.is_active:
                continue
            active_products += 1
            total_stock += level.stock_quantity
            price_sum += level.price
            # Value is computed per row, from the same row, before summing.
            total_value += level.price * level.stock_quantity
        return cls(
            total_products=total_products,
            active_products=active_products,
            total_stock=total_stock,
            total_value=total_value,
            price_sum=price_sum,
            low_stock_count=low_stock_count,
        )


class ProductRepository(ABC):
    """Deleted products are invisible to every method."""

    @abstractmethod
    def get(self, product_id: int) -> ProductRead | None:
        ...

    @abstractmethod
    def list_page(
        self,
        offset: int,
        limit: int,
        *,
        search: str | None = None,
        category_id: int | None = None,
    ) -> list[ProductRead]:
        """Products ordered by id ascending."""

    @abstractmethod
    def count(self, *, search: str | None = None, category_id: int | None = None) -> int:
        ...

    @abstractmethod
    def insert(self, record: ProductCreate) -> ProductRead:
        """Persist a new active product and return it with its assigned id."""

    @abstractmethod
    def update_atomic(self, product_id: int, merge: MergeFn) -> Transition | None:
        """Lock the row, apply ``merge`` to it and commit, all in one transaction.

        Returns ``(before, after)``, or None when the product does not exist.
        Any exception raised by ``merge`` rolls the transaction back.
        """

    @abstractmethod
    def adjust_stock(
        self, product_id: int, quantity: int, *, absolute: bool = False
    ) -> Transition | None:
        """Conditionally add ``quantity`` to stock (or set it, when absolute).

        Raises ``InsufficientStockError`` when the result would be negative;
        returns None when the product does not exist.
        """

    @abstractmethod
    def delete(self, product_id: int) -> ProductRead | None:
        """Remove the product; returns the removed record or None."""

    @abstractmethod
    def aggregate(self, threshold: int) -> InventoryAggregate:
        ...

    @abstractmethod
    def list_low_stock(self, threshold: int) -> list[ProductRead]:
        """Products with stock <= threshold, by stock then id ascending."""
