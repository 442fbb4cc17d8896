"""Shared fixtures: temporary SQLite files for the cache and remote backend."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from glasscast.cache import PersistentCacheStore
from glasscast.db.connection import create_cache_engine
from glasscast.db.models import Base
from glasscast.services.city_repository import RemoteCityRepository
from glasscast.services.favorites_manager import FavoritesManager
from tests.glasscast.support.fakes import FakeClock, InMemoryCityPersistence


class OwnerHolder:
    """Mutable owner id handed to the manager as its provider."""

    def __init__(self, owner_id: str | None = "U1") -> None:
        self.owner_id = owner_id

    def __call__(self) -> str | None:
        return self.owner_id


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}"


@pytest_asyncio.fixture
async def cache_engine(cache_url: str) -> AsyncIterator[AsyncEngine]:
    engine = create_cache_engine(cache_url)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def cache_store(cache_engine: AsyncEngine, clock: FakeClock) -> PersistentCacheStore:
    store = PersistentCacheStore(cache_engine, clock=clock)
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def remote_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """A SQLite file standing in for the remote backend, schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'remote.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def remote_session_factory(remote_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(remote_engine, expire_on_commit=False)


@pytest.fixture
def persistence() -> InMemoryCityPersistence:
    return InMemoryCityPersistence()


@pytest.fixture
def repository(
    persistence: InMemoryCityPersistence, cache_store: PersistentCacheStore
) -> RemoteCityRepository:
    return RemoteCityRepository(persistence, cache_store)


@pytest.fixture
def owner() -> OwnerHolder:
    return OwnerHolder()


@pytest.fixture
def manager(repository: RemoteCityRepository, owner: OwnerHolder) -> FavoritesManager:
    return FavoritesManager(repository, owner)
