"""In-memory doubles for the remote persistence, Redis and the clocks."""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime, timedelta

from redis.exceptions import ConnectionError as RedisConnectionError

from glasscast.db.repositories import CityPersistenceProtocol
from glasscast.errors import MissingFavoriteColumnError
from glasscast.schemas.city import CityCandidate, SavedCity


class RemoteUnavailable(ConnectionError):
    """Simulated network failure (an ``OSError`` like the real driver raises)."""


class InMemoryCityPersistence(CityPersistenceProtocol):
    """Stores saved cities in a dict and records every remote call.

    ``fail_fetch``/``fail_update``/... make the next calls raise
    :class:`RemoteUnavailable`; ``fail_update_ids`` fails updates for the
    listed ids only.  ``update_gate`` blocks ``update_favorite``
    until the event is set, keeping a toggle in flight for concurrency tests.
    """

    def __init__(self, *, favorite_column: bool = True) -> None:
        self.rows: dict[str, SavedCity] = {}
        self.favorite_column = favorite_column
        self.fetch_calls = 0
        self.insert_calls = 0
        self.update_calls: list[tuple[str, bool]] = []
        self.delete_calls: list[str] = []
        self.fail_fetch = False
        self.fail_insert = False
        self.fail_update = False
        self.fail_update_ids: set[str] = set()
        self.fail_delete = False
        self.update_gate: asyncio.Event | None = None
        self._tick = 0

    def _next_created_at(self) -> datetime:
        self._tick += 1
        return datetime(2026, 1, 1, tzinfo=UTC) + timedelta(seconds=self._tick)

    def seed(
        self,
        owner_id: str,
        name: str,
        country: str | None = "NG",
        *,
        is_favorite: bool = False,
        lat: float = 6.52,
        lon: float = 3.38,
    ) -> SavedCity:
        city = SavedCity(
            id=str(uuid.uuid4()),
            user_id=owner_id,
            city_name=name,
            country=country,
            lat=lat,
            lon=lon,
            created_at=self._next_created_at(),
            is_favorite=is_favorite,
        )
        self.rows[city.id] = city
        return city

    async def fetch_cities(self, owner_id: str) -> list[SavedCity]:
        self.fetch_calls += 1
        await asyncio.sleep(0)
        if self.fail_fetch:
            raise RemoteUnavailable("backend unreachable")
        owned = [city for city in self.rows.values() if city.user_id == owner_id]
        owned.sort(key=lambda city: city.created_at, reverse=True)
        return [city.model_copy() for city in owned]

    async def insert_city(self, owner_id: str, candidate: CityCandidate) -> SavedCity:
        self.insert_calls += 1
        await asyncio.sleep(0)
        if self.fail_insert:
            raise RemoteUnavailable("backend unreachable")
        return self.seed(
            owner_id,
            candidate.name,
            candidate.country,
            lat=candidate.lat,
            lon=candidate.lon,
        ).model_copy()

    async def update_favorite(self, city_id: str, value: bool) -> None:
        self.update_calls.append((city_id, value))
        if self.update_gate is not None:
            await self.update_gate.wait()
        else:
            await asyncio.sleep(0)
        if not self.favorite_column:
            raise MissingFavoriteColumnError("saved_cities.is_favorite does not exist")
        if self.fail_update or city_id in self.fail_update_ids:
            raise RemoteUnavailable("backend unreachable")
        if city_id in self.rows:
            self.rows[city_id] = self.rows[city_id].model_copy(update={"is_favorite": value})

    async def delete_city(self, city_id: str) -> None:
        self.delete_calls.append(city_id)
        await asyncio.sleep(0)
        if self.fail_delete:
            raise RemoteUnavailable("backend unreachable")
        self.rows.pop(city_id, None)

    async def favorite_column_ready(self) -> bool:
        return self.favorite_column


class InMemoryRedis:
    """Subset of ``redis.asyncio.Redis`` used by the widget publisher."""

    def __init__(self, *, fail: bool = False) -> None:
        self.store: dict[str, str] = {}
        self.fail = fail
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("redis unavailable")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.store[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: float = 1_767_225_600.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


__all__ = [
    "FakeClock",
    "InMemoryCityPersistence",
    "InMemoryRedis",
    "RemoteUnavailable",
]
