"""Cache-aware CRUD boundary over the remote saved-city backend."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from glasscast.cache import CacheCategory, PersistentCacheStore, cities_key
from glasscast.db.repositories import CityPersistenceProtocol
from glasscast.errors import (
    AddFailedError,
    AlreadyExistsError,
    DecodeFailedError,
    DeleteFailedError,
    FetchFailedError,
    MissingFavoriteColumnError,
    NotAuthenticatedError,
    NotConfiguredError,
    UpdateFailedError,
)
from glasscast.schemas.city import CityCandidate, SavedCity

logger = logging.getLogger(__name__)

# Failures raised by the SQL driver stack for an unreachable or failing backend.
REMOTE_ERRORS = (SQLAlchemyError, OSError)


class RemoteCityRepository:
    """Reads the owner's saved cities through the persistent cache.

    ``persistence`` is ``None`` when no backend is configured; every remote
    operation then raises :class:`NotConfiguredError`, while cached reads keep
    working.  Each owner's list occupies its own cache entry, and every
    successful mutation invalidates the city category as a whole.
    """

    def __init__(
        self,
        persistence: CityPersistenceProtocol | None,
        cache: PersistentCacheStore,
    ) -> None:
        self._persistence = persistence
        self._cache = cache
        self._add_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return self._persistence is not None

    def _require_persistence(self) -> CityPersistenceProtocol:
        if self._persistence is None:
            raise NotConfiguredError()
        return self._persistence

    async def get_all_cities(
        self, owner_id: str | None, force_refresh: bool = False
    ) -> list[SavedCity]:
        """Return the owner's cities, newest first."""

        if not owner_id:
            raise NotAuthenticatedError()

        key = cities_key(owner_id)
        if not force_refresh:
            cached = await self._cache.get(CacheCategory.CITIES, key)
            if cached is not None:
                return cached

        persistence = self._require_persistence()
        try:
            cities = await persistence.fetch_cities(owner_id)
        except DecodeFailedError as exc:
            failure: DecodeFailedError | FetchFailedError = exc
        except REMOTE_ERRORS as exc:
            failure = FetchFailedError(cause=exc)
        else:
            await self._cache.put(CacheCategory.CITIES, key, cities)
            return cities

        stale = await self._cache.get_entry(CacheCategory.CITIES, key)
        if stale is not None:
            logger.warning("Serving stale city list after fetch failure: %s", failure)
            return stale.data
        raise failure from failure.cause

    async def get_favorites(
        self, owner_id: str | None, force_refresh: bool = False
    ) -> list[SavedCity]:
        cities = await self.get_all_cities(owner_id, force_refresh=force_refresh)
        return [city for city in cities if city.is_favorite]

    async def city_exists(self, owner_id: str | None, name: str, country: str | None) -> bool:
        cities = await self.get_all_cities(owner_id)
        return any(city.matches(name, country) for city in cities)

    async def is_favorite_city(
        self, owner_id: str | None, name: str, country: str | None
    ) -> bool:
        cities = await self.get_all_cities(owner_id)
        return any(city.matches(name, country) and city.is_favorite for city in cities)

    async def add_city(self, owner_id: str | None, candidate: CityCandidate) -> SavedCity:
        """Insert ``candidate`` unless the owner already saved the same name and country."""

        persistence = self._require_persistence()
        async with self._add_lock:
            existing = await self.get_all_cities(owner_id)
            if any(city.matches(candidate.name, candidate.country) for city in existing):
                raise AlreadyExistsError(_duplicate_message(candidate))

            try:
                city = await persistence.insert_city(owner_id, candidate)
            except IntegrityError as exc:
                raise AlreadyExistsError(_duplicate_message(candidate), cause=exc) from exc
            except REMOTE_ERRORS as exc:
                raise AddFailedError(cause=exc) from exc

            await self._cache.invalidate(CacheCategory.CITIES)
            logger.info("Added %s for owner %s", candidate.short_display_name, owner_id)
            return city

    async def toggle_favorite(self, city_id: str, new_value: bool) -> None:
        """Persist the favorite flag; a legacy schema makes this a no-op."""

        persistence = self._require_persistence()
        try:
            await persistence.update_favorite(city_id, new_value)
        except MissingFavoriteColumnError as exc:
            logger.warning("Favorite flag not persisted for %s: %s", city_id, exc)
            return
        except REMOTE_ERRORS as exc:
            raise UpdateFailedError(cause=exc) from exc

        await self._cache.invalidate(CacheCategory.CITIES)

    async def delete_city(self, city_id: str) -> None:
        persistence = self._require_persistence()
        try:
            await persistence.delete_city(city_id)
        except REMOTE_ERRORS as exc:
            raise DeleteFailedError(cause=exc) from exc

        await self._cache.invalidate(CacheCategory.CITIES)


def _duplicate_message(candidate: CityCandidate) -> str:
    return f"{AlreadyExistsError.default_message} ({candidate.short_display_name})"


__all__ = ["RemoteCityRepository"]
