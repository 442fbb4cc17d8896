"""Durable, category-aware cache for weather readings and the saved-city list.

Entries live in the local ``cache_entries`` table and are mirrored in memory
after the first read.  Every access goes through the store's lock, writes are
committed before ``put``/``invalidate``/``clear_all`` return, and no method
raises: a storage failure or an unparseable payload simply reads as a miss.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from glasscast.db.connection import create_session_factory, session_scope
from glasscast.db.models.cache import CacheBase, CacheEntryRecord
from glasscast.schemas.city import SavedCity
from glasscast.schemas.weather import ForecastDay, WeatherSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheCategory(str, Enum):
    WEATHER = "weather"
    FORECAST = "forecast"
    CITIES = "cities"

    @property
    def ttl_seconds(self) -> int:
        return _TTL_SECONDS[self]


_TTL_SECONDS: dict[CacheCategory, int] = {
    CacheCategory.WEATHER: 600,
    CacheCategory.FORECAST: 1800,
    CacheCategory.CITIES: 3600,
}

_ADAPTERS: dict[CacheCategory, TypeAdapter[Any]] = {
    CacheCategory.WEATHER: TypeAdapter(WeatherSnapshot),
    CacheCategory.FORECAST: TypeAdapter(list[ForecastDay]),
    CacheCategory.CITIES: TypeAdapter(list[SavedCity]),
}


def weather_key(lat: float, lon: float) -> str:
    """Coordinates rounded to two decimals, so nearby requests share an entry."""

    return f"{lat:.2f},{lon:.2f}"


def cities_key(owner_id: str) -> str:
    """The city list entry belongs to one owner; another owner's list is a miss."""

    return f"owner:{owner_id}"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached payload together with the epoch second it was captured."""

    data: T
    cached_at: float

    def is_expired(self, ttl: float, now: float) -> bool:
        return now - self.cached_at > ttl


class PersistentCacheStore:
    """Serialized read/write access to the durable cache.

    ``clock`` returns epoch seconds and is injectable so expiry can be tested
    without sleeping.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._rows: dict[tuple[str, str], tuple[str, float]] = {}
        self._loaded = False

    async def initialize(self) -> None:
        """Create the cache table if it does not exist yet."""

        async with self._engine.begin() as conn:
            await conn.run_sync(CacheBase.metadata.create_all)

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return

        async with self._session_factory() as session:
            result = await session.execute(select(CacheEntryRecord))
            records = result.scalars().all()

        self._rows = {
            (record.category, record.key): (record.payload, record.cached_at)
            for record in records
        }
        self._loaded = True
        logger.debug("Loaded %d cache entries from durable storage", len(self._rows))

    async def get_entry(self, category: CacheCategory, key: str) -> CacheEntry[Any] | None:
        """Return the entry regardless of age, or ``None`` on a miss."""

        async with self._lock:
            try:
                await self._ensure_loaded()
            except (SQLAlchemyError, OSError) as exc:
                logger.warning("Cache storage unavailable, treating as miss: %s", exc)
                return None
            row = self._rows.get((category.value, key))

        if row is None:
            logger.debug("Cache miss for %s:%s", category.value, key)
            return None

        payload, cached_at = row
        try:
            data = _ADAPTERS[category].validate_json(payload)
        except (ValidationError, ValueError) as exc:
            logger.debug("Discarding unparseable cache entry %s:%s: %s", category.value, key, exc)
            return None
        return CacheEntry(data=data, cached_at=cached_at)

    async def get(self, category: CacheCategory, key: str) -> Any | None:
        """Return the payload when present and younger than the category's TTL."""

        entry = await self.get_entry(category, key)
        if entry is None:
            return None
        if entry.is_expired(category.ttl_seconds, self._clock()):
            logger.debug("Cache entry %s:%s expired", category.value, key)
            return None
        return entry.data

    async def put(self, category: CacheCategory, key: str, payload: Any) -> None:
        """Store ``payload`` stamped with the current time, replacing any prior entry."""

        serialized = _ADAPTERS[category].dump_json(payload).decode("utf-8")
        cached_at = self._clock()

        async with self._lock:
            try:
                await self._ensure_loaded()
                async with session_scope(self._session_factory) as session:
                    await session.merge(
                        CacheEntryRecord(
                            category=category.value,
                            key=key,
                            payload=serialized,
                            cached_at=cached_at,
                        )
                    )
            except (SQLAlchemyError, OSError) as exc:
                logger.warning("Failed to persist cache entry %s:%s: %s", category.value, key, exc)
            self._rows[(category.value, key)] = (serialized, cached_at)

    async def warm(self) -> int:
        """Mirror the durable rows in memory and return how many there are."""

        async with self._lock:
            try:
                await self._ensure_loaded()
            except (SQLAlchemyError, OSError) as exc:
                logger.warning("Cache storage unavailable during warmup: %s", exc)
                return 0
            return len(self._rows)

    async def invalidate(self, category: CacheCategory, key: str | None = None) -> None:
        """Drop one entry, or every entry of ``category`` when ``key`` is omitted."""

        statement = delete(CacheEntryRecord).where(CacheEntryRecord.category == category.value)
        if key is not None:
            statement = statement.where(CacheEntryRecord.key == key)

        async with self._lock:
            try:
                async with session_scope(self._session_factory) as session:
                    await session.execute(statement)
            except (SQLAlchemyError, OSError) as exc:
                logger.warning("Failed to invalidate cache entry %s:%s: %s", category.value, key, exc)
                # Re-read storage on next access instead of trusting the mirror.
                self._loaded = False
                return

            for row_key in list(self._rows):
                if row_key[0] == category.value and (key is None or row_key[1] == key):
                    del self._rows[row_key]

    async def clear_all(self) -> None:
        """Remove every entry of every category."""

        async with self._lock:
            try:
                async with session_scope(self._session_factory) as session:
                    await session.execute(delete(CacheEntryRecord))
            except (SQLAlchemyError, OSError) as exc:
                logger.warning("Failed to clear durable cache: %s", exc)
                self._loaded = False
                return

            self._rows.clear()
            self._loaded = True


__all__ = [
    "CacheCategory",
    "CacheEntry",
    "PersistentCacheStore",
    "cities_key",
    "weather_key",
]
