"""Debounced city search backed by the provider's geocoding endpoint."""

from __future__ import annotations

import asyncio
import logging

from glasscast.errors import (
    DecodeFailedError,
    FetchFailedError,
    NotConfiguredError,
    WeatherProviderError,
)
from glasscast.integrations.openweather import OpenWeatherClient
from glasscast.schemas.city import CityCandidate
from glasscast.services.favorites_manager import FavoritesManager

logger = logging.getLogger(__name__)

DEFAULT_RESULT_LIMIT = 5


class CitySearchPipeline:
    """Runs at most one search at a time; a newer query supersedes older ones.

    Each ``submit`` cancels the previous search if it has not finished, waits
    for the debounce delay, and only then calls the provider.  Results of a
    superseded search are never applied.
    """

    def __init__(
        self,
        client: OpenWeatherClient | None,
        manager: FavoritesManager,
        *,
        debounce_seconds: float = 0.5,
        limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self._client = client
        self._manager = manager
        self._debounce_seconds = debounce_seconds
        self._limit = limit
        self._task: asyncio.Task[list[CityCandidate]] | None = None
        self._query = ""
        self._results: list[CityCandidate] = []

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self) -> list[CityCandidate]:
        return list(self._results)

    @property
    def is_searching(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def clear(self) -> None:
        self.cancel()
        self._query = ""
        self._results = []

    async def submit(self, query: str) -> list[CityCandidate] | None:
        """Search for ``query``; returns ``None`` if a newer query superseded it."""

        self.cancel()
        self._query = query
        if not query.strip():
            self._results = []
            return []

        if self._client is None:
            raise NotConfiguredError()

        task = asyncio.create_task(self._search(self._client, query))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.debug("Search for %r superseded", query)
            return None

    async def _search(self, client: OpenWeatherClient, query: str) -> list[CityCandidate]:
        await asyncio.sleep(self._debounce_seconds)
        try:
            results = await client.search_cities(query, limit=self._limit)
        except (WeatherProviderError, DecodeFailedError) as exc:
            if self._task is asyncio.current_task():
                self._results = []
            raise FetchFailedError(cause=exc) from exc

        if self._task is asyncio.current_task():
            self._results = results
        return results

    def is_added(self, candidate: CityCandidate) -> bool:
        return self._manager.contains_city(candidate.name, candidate.country)

    def is_favorite(self, candidate: CityCandidate) -> bool:
        return self._manager.is_favorite_by_name(candidate.name, candidate.country)


__all__ = ["CitySearchPipeline"]
