"""Composition root and FastAPI dependency wiring.

Every stateful component is constructed exactly once by
:func:`build_container` and shared through :class:`AppContainer`.  Routers
resolve collaborators through the small ``get_*`` functions below, which tests
replace via ``app.dependency_overrides[get_container]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx
from fastapi import Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine

from glasscast.cache import PersistentCacheStore
from glasscast.db.connection import (
    create_cache_engine,
    create_remote_engine,
    create_session_factory,
    sanitize_database_url,
)
from glasscast.db.models import Base
from glasscast.db.repositories import CityPersistenceProtocol, SavedCityPersistence
from glasscast.integrations.openweather import OpenWeatherClient
from glasscast.services.city_repository import RemoteCityRepository
from glasscast.services.favorites_manager import FavoritesManager
from glasscast.services.search import CitySearchPipeline
from glasscast.services.session import OwnerSession
from glasscast.services.weather_cache import WeatherReadThroughCache
from glasscast.services.widget import WidgetPublisher, connect_redis
from glasscast.settings import SQLITE_ASYNC_PREFIX, AppSettings

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    settings: AppSettings
    cache: PersistentCacheStore
    repository: RemoteCityRepository
    manager: FavoritesManager
    weather: WeatherReadThroughCache
    search: CitySearchPipeline
    widget: WidgetPublisher
    session: OwnerSession
    client: OpenWeatherClient | None = None
    persistence: CityPersistenceProtocol | None = None
    engines: list[AsyncEngine] = field(default_factory=list)

    async def aclose(self) -> None:
        """Release the HTTP client, Redis connection and database engines."""

        self.search.cancel()
        if self.client is not None:
            await self.client.aclose()
        await self.widget.aclose()
        for engine in self.engines:
            await engine.dispose()


async def _build_persistence(
    settings: AppSettings, engines: list[AsyncEngine]
) -> CityPersistenceProtocol | None:
    url = settings.resolved_database_url
    if url is None:
        return None

    logger.info(f"Remote database URL: {sanitize_database_url(url)}")
    engine = create_remote_engine(url, slow_query_threshold=settings.slow_query_threshold)
    engines.append(engine)
    if url.startswith(SQLITE_ASYNC_PREFIX):
        # Local development backend; production schemas are managed remotely.
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    return SavedCityPersistence(create_session_factory(engine))


async def build_container(
    settings: AppSettings,
    *,
    persistence: CityPersistenceProtocol | None = None,
    http_client: httpx.AsyncClient | None = None,
    redis: Redis | None = None,
    connect_widget: bool = True,
) -> AppContainer:
    """Construct every component once, wired to each other.

    Explicit ``persistence``, ``http_client`` and ``redis`` arguments take
    precedence over the settings.
    """

    engines: list[AsyncEngine] = []

    cache_engine = create_cache_engine(settings.cache_database_url)
    engines.append(cache_engine)
    cache = PersistentCacheStore(cache_engine)
    await cache.initialize()

    if persistence is None:
        persistence = await _build_persistence(settings, engines)

    client: OpenWeatherClient | None = None
    if settings.weather_configured:
        client = OpenWeatherClient(
            settings.openweathermap_api_key,
            base_url=settings.openweathermap_base_url,
            geo_url=settings.openweathermap_geo_url,
            timeout=settings.http_timeout_seconds,
            http_client=http_client,
        )

    if redis is None and connect_widget:
        redis = await connect_redis(settings.redis_url)

    session = OwnerSession()
    repository = RemoteCityRepository(persistence, cache)
    manager = FavoritesManager(repository, session.owner_id)
    widget = WidgetPublisher(redis, settings.widget_data_key)
    session.bind(manager=manager, cache=cache, widget=widget)

    return AppContainer(
        settings=settings,
        cache=cache,
        repository=repository,
        manager=manager,
        weather=WeatherReadThroughCache(client, cache),
        search=CitySearchPipeline(
            client, manager, debounce_seconds=settings.search_debounce_seconds
        ),
        widget=widget,
        session=session,
        client=client,
        persistence=persistence,
        engines=engines,
    )


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_manager(container: AppContainer = Depends(get_container)) -> FavoritesManager:
    return container.manager


def get_repository(container: AppContainer = Depends(get_container)) -> RemoteCityRepository:
    return container.repository


def get_weather(container: AppContainer = Depends(get_container)) -> WeatherReadThroughCache:
    return container.weather


def get_search(container: AppContainer = Depends(get_container)) -> CitySearchPipeline:
    return container.search


def get_owner_session(container: AppContainer = Depends(get_container)) -> OwnerSession:
    return container.session


__all__ = [
    "AppContainer",
    "build_container",
    "get_container",
    "get_manager",
    "get_owner_session",
    "get_repository",
    "get_search",
    "get_weather",
]
