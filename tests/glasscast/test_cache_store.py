"""Tests for the durable, category-aware cache store."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from glasscast.cache import (
    CacheCategory,
    CacheEntry,
    PersistentCacheStore,
    cities_key,
    weather_key,
)
from glasscast.schemas.city import SavedCity
from glasscast.schemas.weather import ForecastDay, WeatherCondition, WeatherSnapshot
from tests.glasscast.support.fakes import FakeClock

OWNER_KEY = cities_key("U1")


def _snapshot(temperature: float = 21.0) -> WeatherSnapshot:
    return WeatherSnapshot(
        city_name="Lagos",
        country="NG",
        temperature=temperature,
        feels_like=temperature + 1,
        temp_min=18.0,
        temp_max=24.0,
        humidity=70,
        wind_speed=18.0,
        condition=WeatherCondition.CLOUDS,
        description="Broken Clouds",
        icon_code="04d",
        rain_chance=0,
        timestamp=datetime(2026, 1, 1, 12, tzinfo=UTC),
    )


def _forecast() -> list[ForecastDay]:
    return [ForecastDay(date=date(2026, 1, 2), temp_min=20.0, temp_max=30.0)]


def _cities() -> list[SavedCity]:
    return [
        SavedCity(
            id="c1",
            user_id="U1",
            city_name="Lagos",
            country="NG",
            lat=6.52,
            lon=3.38,
            created_at=datetime(2026, 1, 1, tzinfo=UTC),
            is_favorite=True,
        )
    ]


def test_weather_key_rounds_to_two_decimals() -> None:
    assert weather_key(6.52449, 3.37961) == "6.52,3.38"
    assert weather_key(6.521, 3.381) == weather_key(6.524, 3.379)


def test_cache_entry_expiry_is_strict() -> None:
    entry = CacheEntry(data="payload", cached_at=100.0)

    assert entry.is_expired(ttl=10, now=110.0) is False
    assert entry.is_expired(ttl=10, now=110.5) is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("category", "key", "payload_factory", "ttl"),
    [
        (CacheCategory.WEATHER, "6.52,3.38", _snapshot, 600),
        (CacheCategory.FORECAST, "6.52,3.38", _forecast, 1800),
        (CacheCategory.CITIES, OWNER_KEY, _cities, 3600),
    ],
)
async def test_entries_expire_after_category_ttl(
    cache_store: PersistentCacheStore,
    clock: FakeClock,
    category: CacheCategory,
    key: str,
    payload_factory,
    ttl: int,
) -> None:
    payload = payload_factory()
    await cache_store.put(category, key, payload)

    clock.advance(ttl - 1)
    assert await cache_store.get(category, key) == payload

    clock.advance(2)
    assert await cache_store.get(category, key) is None
    # Expired entries remain available for stale fallback.
    stale = await cache_store.get_entry(category, key)
    assert stale is not None
    assert stale.data == payload


@pytest.mark.asyncio
async def test_categories_expire_independently(
    cache_store: PersistentCacheStore, clock: FakeClock
) -> None:
    key = "6.52,3.38"
    await cache_store.put(CacheCategory.WEATHER, key, _snapshot())
    await cache_store.put(CacheCategory.FORECAST, key, _forecast())

    clock.advance(700)

    assert await cache_store.get(CacheCategory.WEATHER, key) is None
    assert await cache_store.get(CacheCategory.FORECAST, key) == _forecast()


@pytest.mark.asyncio
async def test_put_overwrites_previous_entry(cache_store: PersistentCacheStore) -> None:
    key = "6.52,3.38"
    await cache_store.put(CacheCategory.WEATHER, key, _snapshot(20.0))
    await cache_store.put(CacheCategory.WEATHER, key, _snapshot(25.0))

    cached = await cache_store.get(CacheCategory.WEATHER, key)
    assert cached.temperature == 25.0


@pytest.mark.asyncio
async def test_entries_survive_a_new_store_instance(
    cache_store: PersistentCacheStore, cache_engine: AsyncEngine, clock: FakeClock
) -> None:
    await cache_store.put(CacheCategory.CITIES, OWNER_KEY, _cities())

    reopened = PersistentCacheStore(cache_engine, clock=clock)

    assert await reopened.get(CacheCategory.CITIES, OWNER_KEY) == _cities()


@pytest.mark.asyncio
async def test_invalidate_removes_only_the_named_entry(
    cache_store: PersistentCacheStore, cache_engine: AsyncEngine, clock: FakeClock
) -> None:
    await cache_store.put(CacheCategory.CITIES, OWNER_KEY, _cities())
    await cache_store.put(CacheCategory.WEATHER, "6.52,3.38", _snapshot())

    await cache_store.invalidate(CacheCategory.CITIES, OWNER_KEY)

    assert await cache_store.get(CacheCategory.CITIES, OWNER_KEY) is None
    assert await cache_store.get(CacheCategory.WEATHER, "6.52,3.38") is not None
    reopened = PersistentCacheStore(cache_engine, clock=clock)
    assert await reopened.get_entry(CacheCategory.CITIES, OWNER_KEY) is None


@pytest.mark.asyncio
async def test_clear_all_wipes_every_category_durably(
    cache_store: PersistentCacheStore, cache_engine: AsyncEngine, clock: FakeClock
) -> None:
    await cache_store.put(CacheCategory.CITIES, OWNER_KEY, _cities())
    await cache_store.put(CacheCategory.WEATHER, "6.52,3.38", _snapshot())
    await cache_store.put(CacheCategory.FORECAST, "6.52,3.38", _forecast())

    await cache_store.clear_all()

    for category, key in (
        (CacheCategory.CITIES, OWNER_KEY),
        (CacheCategory.WEATHER, "6.52,3.38"),
        (CacheCategory.FORECAST, "6.52,3.38"),
    ):
        assert await cache_store.get_entry(category, key) is None

    reopened = PersistentCacheStore(cache_engine, clock=clock)
    assert await reopened.get_entry(CacheCategory.CITIES, OWNER_KEY) is None


@pytest.mark.asyncio
async def test_malformed_payload_reads_as_miss(
    cache_store: PersistentCacheStore, cache_engine: AsyncEngine, clock: FakeClock
) -> None:
    async with cache_engine.begin() as conn:
        await conn.execute(
            text(
                "INSERT INTO cache_entries (category, key, payload, cached_at) "
                "VALUES ('weather', '1.00,2.00', '{not json', :cached_at)"
            ),
            {"cached_at": clock()},
        )

    reopened = PersistentCacheStore(cache_engine, clock=clock)

    assert await reopened.get(CacheCategory.WEATHER, "1.00,2.00") is None
    assert await reopened.get_entry(CacheCategory.WEATHER, "1.00,2.00") is None


@pytest.mark.asyncio
async def test_reads_do_not_raise_when_table_is_missing(
    cache_engine: AsyncEngine, clock: FakeClock
) -> None:
    store = PersistentCacheStore(cache_engine, clock=clock)

    assert await store.get(CacheCategory.CITIES, OWNER_KEY) is None


@pytest.mark.asyncio
async def test_invalidate_without_key_drops_the_whole_category(
    cache_store: PersistentCacheStore,
) -> None:
    other_key = cities_key("U2")
    await cache_store.put(CacheCategory.CITIES, OWNER_KEY, _cities())
    await cache_store.put(CacheCategory.CITIES, other_key, [])
    await cache_store.put(CacheCategory.WEATHER, "6.52,3.38", _snapshot())

    await cache_store.invalidate(CacheCategory.CITIES)

    assert await cache_store.get_entry(CacheCategory.CITIES, OWNER_KEY) is None
    assert await cache_store.get_entry(CacheCategory.CITIES, other_key) is None
    assert await cache_store.get(CacheCategory.WEATHER, "6.52,3.38") is not None


async def _block_deletes(cache_engine: AsyncEngine) -> None:
    async with cache_engine.begin() as conn:
        await conn.execute(
            text(
                "CREATE TRIGGER block_cache_deletes BEFORE DELETE ON cache_entries "
                "BEGIN SELECT RAISE(ABORT, 'cache storage is read-only'); END"
            )
        )


@pytest.mark.asyncio
async def test_failed_clear_all_keeps_memory_in_line_with_storage(
    cache_store: PersistentCacheStore, cache_engine: AsyncEngine, clock: FakeClock
) -> None:
    await cache_store.put(CacheCategory.CITIES, OWNER_KEY, _cities())
    await _block_deletes(cache_engine)

    await cache_store.clear_all()

    reopened = PersistentCacheStore(cache_engine, clock=clock)
    assert await reopened.get(CacheCategory.CITIES, OWNER_KEY) == _cities()
    assert await cache_store.get(CacheCategory.CITIES, OWNER_KEY) == _cities()


@pytest.mark.asyncio
async def test_failed_invalidate_keeps_memory_in_line_with_storage(
    cache_store: PersistentCacheStore, cache_engine: AsyncEngine
) -> None:
    await cache_store.put(CacheCategory.WEATHER, "6.52,3.38", _snapshot())
    await _block_deletes(cache_engine)

    await cache_store.invalidate(CacheCategory.WEATHER, "6.52,3.38")

    assert await cache_store.get(CacheCategory.WEATHER, "6.52,3.38") == _snapshot()


@pytest.mark.asyncio
async def test_warm_reports_mirrored_entries(
    cache_store: PersistentCacheStore, cache_engine: AsyncEngine, clock: FakeClock
) -> None:
    await cache_store.put(CacheCategory.CITIES, OWNER_KEY, _cities())
    await cache_store.put(CacheCategory.WEATHER, "6.52,3.38", _snapshot())

    reopened = PersistentCacheStore(cache_engine, clock=clock)

    assert await reopened.warm() == 2
