"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field(
        "json",
        description="Log format: 'json' for structured output, 'plain' for humans",
    )
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file' (default logs/app.log)",
    )
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file at this size; 0 disables rotation",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class NewsSettings(BaseSettings):
    """News upstream configuration."""

    provider: str = Field("newsapi", description="News provider name (newsapi)")
    api_key: str | None = Field(
        None,
        description="API key for the news provider",
    )
    base_url: str = Field(
        "https://newsapi.org/v2",
        description="Base URL of the news provider API",
    )
    country: str = Field("us", description="Default country for top headlines")
    timeout_seconds: float = Field(10.0, description="Upstream request timeout in seconds")

    model_config = SettingsConfigDict(
        env_prefix="NEWS_",
        case_sensitive=False,
    )


class MarketSettings(BaseSettings):
    """Market data upstream configuration."""

    provider: str = Field("finnhub", description="Market data provider name (finnhub)")
    api_key: str | None = Field(
        None,
        description="API key for the market data provider",
    )
    base_url: str = Field(
        "https://finnhub.io/api/v1",
        description="Base URL of the market data provider API",
    )
    timeout_seconds: float = Field(10.0, description="Upstream request timeout in seconds")

    model_config = SettingsConfigDict(
        env_prefix="MARKET_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file. Every field
    has a default, so the service starts without upstream keys; calls that
    need a key fail with ``upstream_not_configured`` instead.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    news: NewsSettings = Field(default_factory=NewsSettings)
    market: MarketSettings = Field(default_factory=MarketSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
