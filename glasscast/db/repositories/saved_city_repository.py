"""Database access for the remote ``saved_cities`` table."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from pydantic import ValidationError
from sqlalchemy import delete, inspect, insert, select, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from glasscast.db.connection import session_scope
from glasscast.db.models import SavedCityRecord, new_city_id, utcnow
from glasscast.errors import DecodeFailedError, MissingFavoriteColumnError
from glasscast.schemas.city import CityCandidate, SavedCity

logger = logging.getLogger(__name__)

_TABLE = SavedCityRecord.__table__
_FAVORITE_COLUMN = "is_favorite"


@runtime_checkable
class CityPersistenceProtocol(Protocol):
    """Operations the city repository needs from the remote backend."""

    async def fetch_cities(self, owner_id: str) -> list[SavedCity]:
        """Return every row owned by ``owner_id``, newest first.

        Raises :class:`DecodeFailedError` when a row does not fit :class:`SavedCity`.
        """

    async def insert_city(self, owner_id: str, candidate: CityCandidate) -> SavedCity:
        """Insert one row and return it as stored."""

    async def update_favorite(self, city_id: str, value: bool) -> None:
        """Set ``is_favorite`` on one row."""

    async def delete_city(self, city_id: str) -> None:
        """Delete one row by id."""

    async def favorite_column_ready(self) -> bool:
        """Report whether the remote schema carries ``is_favorite``."""


class SavedCityPersistence:
    """SQLAlchemy-backed implementation of :class:`CityPersistenceProtocol`.

    The remote schema may predate the favorites migration.  The presence of the
    ``is_favorite`` column is probed once through the inspector and every
    statement is built from the columns that actually exist, so legacy
    deployments keep listing and adding cities.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._favorite_column: bool | None = None

    async def favorite_column_ready(self) -> bool:
        if self._favorite_column is not None:
            return self._favorite_column

        def _check_columns(sync_session) -> bool:
            inspector = inspect(sync_session.connection())
            if not inspector.has_table(_TABLE.name):
                return False
            columns = {column["name"] for column in inspector.get_columns(_TABLE.name)}
            return _FAVORITE_COLUMN in columns

        async with self._session_factory() as session:
            ready = await session.run_sync(_check_columns)

        if not ready:
            logger.warning(
                "Remote table %s has no %s column; every saved city is treated as a favorite",
                _TABLE.name,
                _FAVORITE_COLUMN,
            )
        self._favorite_column = ready
        return ready

    async def _columns(self) -> list:
        columns = [
            _TABLE.c.id,
            _TABLE.c.user_id,
            _TABLE.c.city_name,
            _TABLE.c.country,
            _TABLE.c.lat,
            _TABLE.c.lon,
            _TABLE.c.created_at,
        ]
        if await self.favorite_column_ready():
            columns.append(_TABLE.c.is_favorite)
        return columns

    async def fetch_cities(self, owner_id: str) -> list[SavedCity]:
        query = (
            select(*await self._columns())
            .where(_TABLE.c.user_id == owner_id)
            .order_by(_TABLE.c.created_at.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            rows = result.mappings().all()
        try:
            return [SavedCity.model_validate(dict(row)) for row in rows]
        except ValidationError as exc:
            raise DecodeFailedError(cause=exc) from exc

    async def insert_city(self, owner_id: str, candidate: CityCandidate) -> SavedCity:
        values = {
            "id": new_city_id(),
            "user_id": owner_id,
            "city_name": candidate.name,
            "country": candidate.country,
            "lat": candidate.lat,
            "lon": candidate.lon,
            "created_at": utcnow(),
        }
        if await self.favorite_column_ready():
            values[_FAVORITE_COLUMN] = False

        async with session_scope(self._session_factory) as session:
            await session.execute(insert(_TABLE).values(**values))

        logger.debug("Inserted saved city %s for owner %s", values["id"], owner_id)
        return SavedCity.model_validate(values)

    async def update_favorite(self, city_id: str, value: bool) -> None:
        if not await self.favorite_column_ready():
            raise MissingFavoriteColumnError(
                f"{_TABLE.name}.{_FAVORITE_COLUMN} does not exist"
            )

        statement = (
            update(_TABLE).where(_TABLE.c.id == city_id).values(is_favorite=value)
        )
        try:
            async with session_scope(self._session_factory) as session:
                await session.execute(statement)
        except DBAPIError as exc:
            if _FAVORITE_COLUMN in str(exc.orig or exc).lower():
                # Column dropped after the probe ran.
                self._favorite_column = False
                raise MissingFavoriteColumnError(str(exc)) from exc
            raise

    async def delete_city(self, city_id: str) -> None:
        async with session_scope(self._session_factory) as session:
            await session.execute(delete(_TABLE).where(_TABLE.c.id == city_id))


__all__ = ["CityPersistenceProtocol", "SavedCityPersistence"]
