"""Metrics sinks updated by the product service and the HTTP middleware.

``NullMetrics`` is the no-op base used where nothing should be recorded.
``PrometheusMetrics`` owns its own ``CollectorRegistry``, so every app (and
every test) gets an isolated set of series instead of process-wide globals.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

REQUEST_LABELS = ["method", "route", "status_code"]
REQUEST_DURATION_BUCKETS = (0.1, 0.5, 1, 2, 5)


class NullMetrics:
    """Metrics sink that records nothing."""

    content_type = CONTENT_TYPE_LATEST

    def record_request(
        self, method: str, route: str, status_code: int, duration: float
    ) -> None:
        pass

    def connection_opened(self) -> None:
        pass

    def connection_closed(self) -> None:
        pass

    def set_pool_size(self, size: int) -> None:
        pass

    def record_operation(self, operation: str, outcome: str) -> None:
        pass

    def product_added(self, low_stock: bool) -> None:
        pass

    def product_removed(self, low_stock: bool) -> None:
        pass

    def low_stock_transition(self, was_low: bool, is_low: bool) -> None:
        pass

    def set_product_totals(self, total_products: int, low_stock_products: int) -> None:
        pass

    def category_added(self) -> None:
        pass

    def category_removed(self) -> None:
        pass

    def set_total_categories(self, total: int) -> None:
        pass

    def set_total_users(self, total: int) -> None:
        pass

    def render(self) -> bytes:
        return b""


class PrometheusMetrics(NullMetrics):
    """Counters, histograms and gauges backed by ``prometheus_client``."""

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        *,
        include_runtime_collectors: bool = True,
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        if include_runtime_collectors:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            REQUEST_LABELS,
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            REQUEST_LABELS,
            buckets=REQUEST_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.active_connections = Gauge(
            "active_connections",
            "Number of active connections",
            registry=self.registry,
        )
        self.database_connection_pool_size = Gauge(
            "database_connection_pool_size",
            "Size of database connection pool",
            registry=self.registry,
        )
        self.inventory_operations_total = Counter(
            "inventory_operations_total",
            "Product service operations by outcome",
            ["operation", "outcome"],
            registry=self.registry,
        )

        # Business gauges
        self.total_users = Gauge(
            "total_users",
            "Total number of users in the system",
            registry=self.registry,
        )
        self.total_products = Gauge(
            "total_products",
            "Total number of products in the system",
            registry=self.registry,
        )
        self.low_stock_products = Gauge(
            "low_stock_products",
            "Number of products with low stock",
            registry=self.registry,
        )
        self.total_categories = Gauge(
            "total_categories",
            "Total number of categories in the system",
            registry=self.registry,
        )

    def record_request(
        self, method: str, route: str, status_code: int, duration: float
    ) -> None:
        labels = {"method": method, "route": route, "status_code": str(status_code)}
        self.http_requests_total.labels(**labels).inc()
        self.http_request_duration.labels(**labels).observe(duration)

    def connection_opened(self) -> None:
        self.active_connections.inc()

    def connection_closed(self) -> None:
        self.active_connections.dec()

    def set_pool_size(self, size: int) -> None:
        self.database_connection_pool_size.set(size)

    def record_operation(self, operation: str, outcome: str) -> None:
        self.inventory_operations_total.labels(operation=operation, outcome=outcome).inc()

    def product_added(self, low_stock: bool) -> None:
        self.total_products.inc()
        if low_stock:
            self.low_stock_products.inc()

    def product_removed(self, low_stock: bool) -> None:
        self.total_products.dec()
        if low_stock:
            self.low_stock_products.dec()

    def low_stock_transition(self, was_low: bool, is_low: bool) -> None:
        if was_low and not is_low:
            self.low_stock_products.dec()
        elif is_low and not was_low:
            self.low_stock_products.inc()

    def set_product_totals(self, total_products: int, low_stock_products: int) -> None:
        self.total_products.set(total_products)
        self.low_stock_products.set(low_stock_products)

    def category_added(self) -> None:
        self.total_categories.inc()

    def category_removed(self) -> None:
        self.total_categories.dec()

    def set_total_categories(self, total: int) -> None:
        self.total_categories.set(total)

    def set_total_users(self, total: int) -> None:
        """Users live with the external auth service; it reports the count here."""
        self.total_users.set(total)

    def render(self) -> bytes:
        return generate_latest(self.registry)
