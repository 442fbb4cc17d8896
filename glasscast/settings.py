"""Centralized configuration management for the Glasscast sync layer."""

from __future__ import annotations

import logging
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load a local .env before the settings singleton is built so every consumer
# importing :mod:`glasscast.settings` observes the same environment.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_CACHE_DATABASE_URL = "sqlite+aiosqlite:///./data/cache.db"
POSTGRES_ASYNC_PREFIX = "postgresql+psycopg://"
POSTGRES_SYNC_PREFIXES = ("postgres://", "postgresql://")
SQLITE_ASYNC_PREFIX = "sqlite+aiosqlite://"
DEFAULT_OPENWEATHERMAP_BASE_URL = "https://api.openweathermap.org/data/2.5"
DEFAULT_OPENWEATHERMAP_GEO_URL = "https://api.openweathermap.org/geo/1.0"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_WIDGET_DATA_KEY = "glasscast:widget:weather"
DEFAULT_LOG_LEVEL = "INFO"


def is_placeholder(value: str | None) -> bool:
    """Return ``True`` for unset, blank, or unexpanded template values.

    Build pipelines occasionally ship literal ``$(NAME)`` tokens or sample
    values such as ``your_api_key``; both are treated as missing so that the
    affected subsystem reports *not configured* instead of calling out with
    garbage credentials.
    """

    if value is None:
        return True
    stripped = value.strip()
    if not stripped:
        return True
    if stripped.startswith("$(") and stripped.endswith(")"):
        return True
    return "your_" in stripped.lower()


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description=(
            "Connection string for the remote saved-city backend. Sync Postgres"
            " URLs are coerced into the async psycopg driver string."
        ),
    )
    cache_database_url: str = Field(
        default=DEFAULT_CACHE_DATABASE_URL,
        alias="CACHE_DATABASE_URL",
        description="Durable local database backing the persistent cache store.",
    )
    openweathermap_api_key: str | None = Field(
        default=None,
        alias="OPENWEATHERMAP_API_KEY",
        description="API key for the current, forecast and geocoding endpoints.",
    )
    openweathermap_base_url: str = Field(
        default=DEFAULT_OPENWEATHERMAP_BASE_URL,
        alias="OPENWEATHERMAP_BASE_URL",
    )
    openweathermap_geo_url: str = Field(
        default=DEFAULT_OPENWEATHERMAP_GEO_URL,
        alias="OPENWEATHERMAP_GEO_URL",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        alias="HTTP_TIMEOUT_SECONDS",
        description="Timeout applied to every weather provider request.",
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Shared key/value store read by the home-screen widget.",
    )
    widget_data_key: str = Field(
        default=DEFAULT_WIDGET_DATA_KEY,
        alias="WIDGET_DATA_KEY",
    )
    search_debounce_seconds: float = Field(
        default=0.5,
        alias="SEARCH_DEBOUNCE_SECONDS",
        description="Quiet period before a typed search query hits the network.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )
    slow_query_threshold: float = Field(
        default=0.1,
        alias="SLOW_QUERY_THRESHOLD",
        description="Seconds after which remote queries are logged as slow.",
    )

    @property
    def resolved_database_url(self) -> str | None:
        """Return the async-compatible remote URL, or ``None`` when unset."""

        if is_placeholder(self.database_url):
            return None

        url = self.database_url.strip()
        for prefix in POSTGRES_SYNC_PREFIXES:
            if url.startswith(prefix):
                return url.replace(prefix, POSTGRES_ASYNC_PREFIX, 1)

        if url.startswith(POSTGRES_ASYNC_PREFIX) or url.startswith(SQLITE_ASYNC_PREFIX):
            return url

        raise RuntimeError(
            f"Expected a PostgreSQL or aiosqlite connection string, received: {url}"
        )

    @property
    def remote_configured(self) -> bool:
        return self.resolved_database_url is not None

    @property
    def weather_configured(self) -> bool:
        return not is_placeholder(self.openweathermap_api_key)

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self.remote_configured:
            warnings.append(
                "DATABASE_URL is not set - saved cities will only be served from cache"
            )
        if not self.weather_configured:
            warnings.append(
                "OPENWEATHERMAP_API_KEY is not set - weather and search are disabled"
            )
        if self.redis_url == DEFAULT_REDIS_URL:
            warnings.append(
                "REDIS_URL is not set - widget hand-off targets a localhost instance"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_CACHE_DATABASE_URL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_OPENWEATHERMAP_BASE_URL",
    "DEFAULT_OPENWEATHERMAP_GEO_URL",
    "DEFAULT_REDIS_URL",
    "DEFAULT_WIDGET_DATA_KEY",
    "POSTGRES_ASYNC_PREFIX",
    "SQLITE_ASYNC_PREFIX",
    "get_settings",
    "is_placeholder",
]
