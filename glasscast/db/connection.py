from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator
from urllib.parse import urlsplit

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from glasscast.settings import POSTGRES_ASYNC_PREFIX, SQLITE_ASYNC_PREFIX

logger = logging.getLogger(__name__)


def validate_database_url(database_url: str) -> str:
    """Normalize and validate a remote connection string.

    Legacy ``postgres://`` DSNs are upgraded to SQLAlchemy's async psycopg
    driver syntax; ``sqlite+aiosqlite`` URLs pass through for local runs and
    tests.
    """

    normalized_url = database_url.strip()
    if not normalized_url:
        raise RuntimeError(
            "DATABASE_URL is set but empty. Provide a valid PostgreSQL connection string."
        )

    if normalized_url.startswith("postgres://"):
        normalized_url = normalized_url.replace("postgres://", POSTGRES_ASYNC_PREFIX, 1)
    elif normalized_url.startswith("postgresql://"):
        normalized_url = normalized_url.replace("postgresql://", POSTGRES_ASYNC_PREFIX, 1)

    if normalized_url.startswith(SQLITE_ASYNC_PREFIX):
        return normalized_url

    if not normalized_url.startswith(POSTGRES_ASYNC_PREFIX):
        raise RuntimeError(
            "DATABASE_URL must use the PostgreSQL scheme. "
            "Expected a URL beginning with 'postgresql://', 'postgres://', or 'postgresql+psycopg://'."
        )

    parts = urlsplit(normalized_url)
    if not parts.hostname or not parts.path:
        raise RuntimeError(
            "DATABASE_URL appears malformed. Verify the host and database name are present."
        )

    return normalized_url


def sanitize_database_url(url: str) -> str:
    """Hide the password portion of ``url`` for logging."""

    if "://" not in url:
        return url

    scheme, rest = url.split("://", 1)
    if "@" in rest:
        auth, host_db = rest.split("@", 1)
        if ":" in auth:
            user, _ = auth.split(":", 1)
            return f"{scheme}://{user}:***@{host_db}"
        return f"{scheme}://{auth}@{host_db}"
    return url


def _ensure_sqlite_directory(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_remote_engine(
    database_url: str, *, slow_query_threshold: float | None = None
) -> AsyncEngine:
    """Create the async engine used by the remote city persistence."""

    url = validate_database_url(database_url)
    if url.startswith(SQLITE_ASYNC_PREFIX):
        _ensure_sqlite_directory(url)
        engine = create_async_engine(url, future=True, echo=False)
    else:
        engine = create_async_engine(
            url,
            future=True,
            echo=False,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,  # Validate connections before use
            pool_recycle=1800,
            pool_timeout=30,
        )

    if slow_query_threshold is not None:
        from glasscast.monitoring import setup_query_monitoring

        setup_query_monitoring(engine, slow_query_threshold=slow_query_threshold)

    return engine


def create_cache_engine(cache_database_url: str) -> AsyncEngine:
    """Create the engine for the local durable cache file."""

    if not cache_database_url.startswith(SQLITE_ASYNC_PREFIX):
        raise RuntimeError(
            "CACHE_DATABASE_URL must be an sqlite+aiosqlite URL pointing at local storage."
        )
    _ensure_sqlite_directory(cache_database_url)
    return create_async_engine(cache_database_url, future=True, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error."""

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


__all__ = [
    "create_cache_engine",
    "create_remote_engine",
    "create_session_factory",
    "sanitize_database_url",
    "session_scope",
    "validate_database_url",
]
