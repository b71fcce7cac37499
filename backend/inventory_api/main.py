"""FastAPI application factory with router, middleware and service wiring."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.routing import Match
from starlette.types import ASGIApp

from inventory_api.api.error_handlers import register_error_handlers
from inventory_api.api.routers import categories, health, products
from inventory_api.api.routers import metrics as metrics_routes
from inventory_api.api.schemas.common import iso_timestamp
from inventory_api.core.config import Settings, get_settings
from inventory_api.core.errors import AppError
from inventory_api.core.logging import configure_logging
from inventory_api.db.session import (
    create_db_engine,
    create_session_factory,
    init_db,
    pool_size,
)
from inventory_api.repositories.product_repository import ProductRepository
from inventory_api.repositories.sql_product_repository import SqlAlchemyProductRepository
from inventory_api.services.category_service import CategoryService
from inventory_api.services.metrics import NullMetrics, PrometheusMetrics
from inventory_api.services.product_service import ProductService

logger = logging.getLogger(__name__)

UNMATCHED_ROUTE = "<unmatched>"


def route_template(request: Request) -> str:
    """Full path template (prefix included) of the route serving ``request``."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match is Match.FULL:
            return getattr(route, "path_format", None) or getattr(route, "path", UNMATCHED_ROUTE)
    return UNMATCHED_ROUTE


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count requests, time them, and track in-flight connections."""

    def __init__(self, app: ASGIApp, metrics: NullMetrics) -> None:
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        status_code = 500
        self.metrics.connection_opened()
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            self.metrics.connection_closed()
            self.metrics.record_request(
                request.method,
                route_template(request),
                status_code,
                time.perf_counter() - start,
            )


def refresh_business_metrics(app: FastAPI) -> None:
    """Re-sync business gauges with storage; failures are logged, not raised."""
    try:
        app.state.product_service.refresh_business_metrics()
        app.state.category_service.refresh_business_metrics()
    except AppError as e:
        logger.error(f"Error updating business metrics: {e}", exc_info=True)


async def _refresh_loop(app: FastAPI, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        await asyncio.to_thread(refresh_business_metrics, app)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    await asyncio.to_thread(refresh_business_metrics, app)

    refresh_task = None
    if settings.metrics_refresh_interval > 0:
        refresh_task = asyncio.create_task(
            _refresh_loop(app, settings.metrics_refresh_interval)
        )
        logger.info(
            f"Business metrics will update every {settings.metrics_refresh_interval:g} seconds"
        )
    try:
        yield
    finally:
        if refresh_task is not None:
            refresh_task.cancel()
            with suppress(asyncio.CancelledError):
                await refresh_task
        app.state.engine.dispose()


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    metrics: NullMetrics | None = None,
    repository: ProductRepository | None = None,
) -> FastAPI:
    """Instantiate the FastAPI app, its services and top-level routers."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = engine if engine is not None else create_db_engine(settings.database_url)
    if settings.auto_create_tables:
        init_db(engine)
    session_factory = create_session_factory(engine)

    metrics = metrics if metrics is not None else PrometheusMetrics()
    metrics.set_pool_size(pool_size(engine))
    repository = repository or SqlAlchemyProductRepository(session_factory)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.metrics = metrics
    app.state.product_service = ProductService(repository, metrics, settings)
    app.state.category_service = CategoryService(session_factory, metrics)

    # Innermost first: error shaping, then metrics, then CORS on the outside
    register_error_handlers(app)
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(health.router)
    app.include_router(metrics_routes.router)
    app.include_router(
        products.router, prefix=f"{settings.api_prefix}/products", tags=["products"]
    )
    app.include_router(
        categories.router,
        prefix=f"{settings.api_prefix}/categories",
        tags=["categories"],
    )

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        return {
            "service": settings.app_name,
            "version": settings.version,
            "status": "Running",
            "timestamp": iso_timestamp(),
            "endpoints": {
                "health": "/health/live",
                "metrics": "/metrics",
                "api": settings.api_prefix,
            },
        }

    logger.info(f"{settings.app_name} configured ({settings.environment})")
    return app
