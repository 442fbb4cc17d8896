"""Tests for environment-driven configuration."""

from __future__ import annotations

import logging

import pytest

from glasscast.db.connection import sanitize_database_url, validate_database_url
from glasscast.settings import AppSettings, is_placeholder

ENV_NAMES = ("DATABASE_URL", "OPENWEATHERMAP_API_KEY", "REDIS_URL", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def _settings(**values) -> AppSettings:
    return AppSettings(_env_file=None, **values)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgres://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
        ("postgresql+psycopg://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
        ("sqlite+aiosqlite:///./remote.db", "sqlite+aiosqlite:///./remote.db"),
    ],
)
def test_database_url_is_coerced_to_async_driver(raw: str, expected: str) -> None:
    settings = _settings(DATABASE_URL=raw)

    assert settings.resolved_database_url == expected
    assert settings.remote_configured is True


def test_unsupported_database_url_is_rejected() -> None:
    with pytest.raises(RuntimeError):
        _ = _settings(DATABASE_URL="mysql://u:p@db/app").resolved_database_url


@pytest.mark.parametrize(
    "value",
    [None, "", "   ", "$(OPENWEATHERMAP_API_KEY)", "your_api_key_here"],
)
def test_placeholders_count_as_unset(value: str | None) -> None:
    assert is_placeholder(value) is True
    assert _settings(OPENWEATHERMAP_API_KEY=value).weather_configured is False


def test_real_key_is_configured() -> None:
    assert is_placeholder("8f3c2b") is False
    assert _settings(OPENWEATHERMAP_API_KEY="8f3c2b").weather_configured is True


def test_environment_variables_are_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/app")
    monkeypatch.setenv("OPENWEATHERMAP_API_KEY", "8f3c2b")

    settings = _settings()

    assert settings.resolved_database_url == "postgresql+psycopg://u:p@db/app"
    assert settings.weather_configured is True


def test_warnings_list_every_missing_subsystem() -> None:
    warnings = _settings().optional_config_warnings()

    assert any("DATABASE_URL" in warning for warning in warnings)
    assert any("OPENWEATHERMAP_API_KEY" in warning for warning in warnings)
    assert any("REDIS_URL" in warning for warning in warnings)


def test_no_warnings_when_fully_configured() -> None:
    settings = _settings(
        DATABASE_URL="postgres://u:p@db/app",
        OPENWEATHERMAP_API_KEY="8f3c2b",
        REDIS_URL="redis://cache:6379/1",
    )

    assert settings.optional_config_warnings() == []


@pytest.mark.parametrize(
    ("level", "expected"),
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("chatty", logging.INFO)],
)
def test_log_level_numeric(level: str, expected: int) -> None:
    assert _settings(LOG_LEVEL=level).log_level_numeric == expected


def test_validate_database_url_normalizes_postgres() -> None:
    assert validate_database_url("postgres://u:p@db/app") == "postgresql+psycopg://u:p@db/app"


def test_sanitize_database_url_hides_password() -> None:
    sanitized = sanitize_database_url("postgresql+psycopg://user:secret@db:5432/app")

    assert "secret" not in sanitized
    assert "user" in sanitized
