"""Request-scoped access to the services built in ``create_app``."""

from fastapi import Request

from inventory_api.services.category_service import CategoryService
from inventory_api.services.metrics import NullMetrics
from inventory_api.services.product_service import ProductService


def get_product_service(request: Request) -> ProductService:
    """FastAPI dependency returning the app's product service."""
    return request.app.state.product_service


def get_category_service(request: Request) -> CategoryService:
    return request.app.state.category_service


def get_metrics(request: Request) -> NullMetrics:
    return request.app.state.metrics
