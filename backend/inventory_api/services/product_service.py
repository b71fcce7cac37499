"""Business logic for products: validation, atomic mutations, inventory views.

The service owns the inventory invariants (price > 0, stock >= 0) and keeps
the business gauges in step with every successful mutation. It never retries
and never swallows a failure: errors are classified ``AppError`` subclasses
that propagate to the HTTP error handlers.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterator

from inventory_api.api.schemas.product import (
    InventoryStats,
    ProductCreate,
    ProductPage,
    ProductRead,
    ProductUpdate,
    StockUpdate,
)
from inventory_api.core.config import Settings
from inventory_api.core.errors import (
    AppError,
    FieldViolation,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from inventory_api.repositories.product_repository import ProductRepository
from inventory_api.services.metrics import NullMetrics
from inventory_api.utils.product_validator import (
    validate_create,
    validate_stock_update,
    validate_update,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _not_found(product_id: int) -> NotFoundError:
    return NotFoundError(f"Product {product_id} not found")


def check_invariants(product: ProductRead) -> None:
    """Reject a merged record that would break the stored invariants."""
    if product.price <= 0:
        raise InvalidOperationError(
            f"Product {product.id} price must stay greater than 0"
        )
    if product.stock_quantity < 0:
        raise InvalidOperationError(
            f"Product {product.id} stock cannot be negative"
        )


class ProductService:
    def __init__(
        self,
        repository: ProductRepository,
        metrics: NullMetrics | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._repository = repository
        self._metrics = metrics if metrics is not None else NullMetrics()
        self._settings = settings if settings is not None else Settings()

    @contextmanager
    def _track(self, operation: str) -> Iterator[None]:
        try:
            yield
        except AppError as exc:
            self._metrics.record_operation(operation, exc.kind.value)
            raise
        except Exception:
            self._metrics.record_operation(operation, "error")
            raise
        self._metrics.record_operation(operation, "success")

    def _threshold(self, threshold: int | None) -> int:
        return self._settings.low_stock_threshold if threshold is None else threshold

    def _is_low(self, product: ProductRead) -> bool:
        return product.stock_quantity <= self._settings.low_stock_threshold

    def resolve_paging(self, page: int | None, limit: int | None) -> tuple[int, int]:
        """Apply the configured pagination policy to raw page/limit values."""
        default_limit = self._settings.default_page_size
        max_limit = self._settings.max_page_size

        if self._settings.pagination_policy == "reject":
            violations = []
            if page is not None and page < 1:
                violations.append(
                    FieldViolation("page", "Page must be greater than or equal to 1")
                )
            if limit is not None and not 1 <= limit <= max_limit:
                violations.append(
                    FieldViolation("limit", f"Limit must be between 1 and {max_limit}")
                )
            if violations:
                raise ValidationError(violations)

        page = page if page is not None and page >= 1 else 1
        if limit is None or limit < 1:
            limit = default_limit
        limit = min(limit, max_limit)
        return page, limit

    def list_products(
        self,
        page: int | None = None,
        limit: int | None = None,
        *,
        search: str | None = None,
        category_id: int | None = None,
    ) -> ProductPage:
        with self._track("list"):
            page, limit = self.resolve_paging(page, limit)
            total = self._repository.count(search=search, category_id=category_id)
            products = self._repository.list_page(
                (page - 1) * limit, limit, search=search, category_id=category_id
            )
            return ProductPage(products=products, total=total, page=page, limit=limit)

    def get_product(self, product_id: int) -> ProductRead:
        with self._track("get"):
            product = self._repository.get(product_id)
            if product is None:
                raise _not_found(product_id)
            return product

    def create_product(self, payload: ProductCreate | dict[str, Any]) -> ProductRead:
        with self._track("create"):
            record = validate_create(payload)
            product = self._repository.insert(record)
            self._metrics.product_added(self._is_low(product))
            logger.info(f"Created product {product.id}")
            return product

    def update_product(
        self, product_id: int, payload: ProductUpdate | dict[str, Any]
    ) -> ProductRead:
        with self._track("update"):
            update = validate_update(payload, strict=self._settings.strict_payloads)
            changes = update.changes()

            def merge(current: ProductRead) -> ProductRead:
                merged = current.model_copy(update=changes)
                check_invariants(merged)
                return merged

            transition = self._repository.update_atomic(product_id, merge)
            if transition is None:
                raise _not_found(product_id)
            before, after = transition
            self._metrics.low_stock_transition(self._is_low(before), self._is_low(after))
            if changes:
                logger.info(f"Updated product {product_id}: {', '.join(sorted(changes))}")
            return after

    def delete_product(self, product_id: int) -> None:
        with self._track("delete"):
            removed = self._repository.delete(product_id)
            if removed is None:
                raise _not_found(product_id)
            self._metrics.product_removed(self._is_low(removed))
            logger.info(f"Deleted product {product_id}")

    def update_stock(
        self,
        product_id: int,
        payload: StockUpdate | dict[str, Any] | int,
        mode: str = "delta",
    ) -> ProductRead:
        """Apply a stock delta (or absolute level) as one conditional update."""
        with self._track("update_stock"):
            if isinstance(payload, int) and not isinstance(payload, bool):
                payload = {"quantity": payload, "mode": mode}
            stock = validate_stock_update(payload)
            transition = self._repository.adjust_stock(
                product_id, stock.quantity, absolute=stock.absolute
            )
            if transition is None:
                raise _not_found(product_id)
            before, after = transition
            self._metrics.low_stock_transition(self._is_low(before), self._is_low(after))
            logger.info(
                f"Stock for product {product_id} changed "
                f"{before.stock_quantity} -> {after.stock_quantity}"
            )
            return after

    def get_inventory_stats(self, threshold: int | None = None) -> InventoryStats:
        with self._track("stats"):
            threshold = self._threshold(threshold)
            aggregate = self._repository.aggregate(threshold)
            average_price = Decimal("0")
            if aggregate.active_products:
                average_price = aggregate.price_sum / aggregate.active_products
            return InventoryStats(
                total_products=aggregate.total_products,
                active_products=aggregate.active_products,
                total_stock=aggregate.total_stock,
                total_value=aggregate.total_value.quantize(CENTS, rounding=ROUND_HALF_UP),
                average_price=average_price.quantize(CENTS, rounding=ROUND_HALF_UP),
                low_stock_count=aggregate.low_stock_count,
                threshold=threshold,
            )

    def get_low_stock_products(self, threshold: int | None = None) -> list[ProductRead]:
        with self._track("low_stock"):
            return self._repository.list_low_stock(self._threshold(threshold))

    def refresh_business_metrics(self) -> None:
        """Reset product gauges from a single storage snapshot."""
        aggregate = self._repository.aggregate(self._settings.low_stock_threshold)
        self._metrics.set_product_totals(
            aggregate.total_products, aggregate.low_stock_count
        )
        logger.debug(
            f"Business metrics refreshed: products={aggregate.total_products} "
            f"low_stock={aggregate.low_stock_count}"
        )
