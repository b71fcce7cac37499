"""Settings parsing from the environment."""

from inventory_api.core.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    settings = Settings(_env_file=None)

    assert settings.default_page_size == 10
    assert settings.max_page_size == 100
    assert settings.low_stock_threshold == 10
    assert settings.pagination_policy == "clamp"
    assert settings.is_production is False
    assert settings.cors_origins == ["http://localhost:3000", "http://localhost:5173"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "Production")
    monkeypatch.setenv("LOW_STOCK_THRESHOLD", "3")
    monkeypatch.setenv("CORS_ORIGINS", "https://shop.example.com/, https://admin.example.com")

    settings = Settings(_env_file=None)

    assert settings.is_production is True
    assert settings.low_stock_threshold == 3
    assert settings.cors_origins == ["https://shop.example.com", "https://admin.example.com"]


def test_heroku_style_database_url_is_rewritten():
    settings = Settings(_env_file=None, database_url="postgres://u:p@db:5432/inventory")

    assert settings.database_url == "postgresql+psycopg://u:p@db:5432/inventory"


def test_api_prefix_is_normalized():
    assert Settings(_env_file=None, api_prefix="api/v2/").api_prefix == "/api/v2"
