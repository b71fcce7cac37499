"""Centralized application settings using pydantic settings."""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
# Look for .env in the backend directory or project root
env_path = Path(__file__).parent.parent.parent / ".env"
if not env_path.exists():
    env_path = Path(__file__).parent.parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


class Settings(BaseSettings):
    """Environment-aware configuration (DB URL, paging bounds, runtime mode)."""

    # Application settings
    app_name: str = "Inventory Management API"
    version: str = "1.0.0"
    environment: str = Field(
        default="development",
        description="Runtime mode; 'production' hides internal error details",
    )
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"

    # Database settings
    database_url: str = Field(
        default="sqlite:///./inventory.db",
        description="Database connection URL",
    )
    auto_create_tables: bool = Field(
        default=True,
        description="Create missing tables when the app starts",
    )

    # Listing and inventory policy
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)
    pagination_policy: Literal["clamp", "reject"] = Field(
        default="clamp",
        description="What to do with out-of-range page/limit values",
    )
    low_stock_threshold: int = Field(
        default=10,
        description="Default inclusive threshold for low-stock queries",
    )
    strict_payloads: bool = Field(
        default=False,
        description="Reject unknown fields on update payloads",
    )

    # Metrics settings
    metrics_refresh_interval: float = Field(
        default=30.0,
        description="Seconds between business gauge refreshes (0 disables)",
    )

    # CORS settings - stored as string, converted to list via property
    cors_origins_raw: str | None = Field(
        default=None,
        validation_alias="CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins",
        exclude=True,
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string to list."""
        if self.cors_origins_raw is None or not self.cors_origins_raw.strip():
            return list(DEFAULT_CORS_ORIGINS)
        origins = [
            origin.strip().rstrip("/")
            for origin in self.cors_origins_raw.split(",")
            if origin.strip()
        ]
        return origins if origins else list(DEFAULT_CORS_ORIGINS)

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v: str | None) -> str:
        """Fix Heroku-style DATABASE_URL format (postgres:// -> postgresql+psycopg://)."""
        if v is None:
            return "sqlite:///./inventory.db"
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+psycopg://", 1)
        return v

    @field_validator("api_prefix", mode="after")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """Keep a single leading slash and no trailing slash."""
        v = v.strip().strip("/")
        return f"/{v}" if v else ""


@lru_cache
def get_settings() -> Settings:
    """Provide singleton-like access for dependency injection."""
    return Settings()
