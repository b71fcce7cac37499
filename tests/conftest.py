"""Shared fixtures: an in-memory SQLite database, services and a test client."""

import pytest
from fastapi.testclient import TestClient

from inventory_api.core.config import Settings
from inventory_api.db.models import Category
from inventory_api.db.session import create_db_engine, create_session_factory, init_db
from inventory_api.main import create_app
from inventory_api.repositories.sql_product_repository import SqlAlchemyProductRepository
from inventory_api.services.category_service import CategoryService
from inventory_api.services.metrics import PrometheusMetrics
from inventory_api.services.product_service import ProductService


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite://",
        "environment": "test",
        "metrics_refresh_interval": 0,
        "low_stock_threshold": 10,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def settings():
    return make_settings()


@pytest.fixture()
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture()
def category_id(session_factory):
    """Id of a seeded, active category every product test can reference."""
    with session_factory.begin() as session:
        category = Category(name="Electronics", description="Devices and gadgets")
        session.add(category)
        session.flush()
        return category.id


@pytest.fixture()
def metrics():
    return PrometheusMetrics(include_runtime_collectors=False)


@pytest.fixture()
def repository(session_factory):
    return SqlAlchemyProductRepository(session_factory)


@pytest.fixture()
def product_service(repository, metrics, settings):
    return ProductService(repository, metrics, settings)


@pytest.fixture()
def category_service(session_factory, metrics):
    return CategoryService(session_factory, metrics)


@pytest.fixture()
def app(settings, engine, metrics, category_id):
    return create_app(settings, engine=engine, metrics=metrics)


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)


def product_payload(category_id: int = 1, **overrides) -> dict:
    payload = {
        "name": "Wireless Mouse",
        "description": "2.4GHz optical mouse",
        "price": 19.99,
        "stockQuantity": 25,
        "categoryId": category_id,
    }
    payload.update(overrides)
    return payload
