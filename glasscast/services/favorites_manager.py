"""Single in-memory authority over saved cities and their favorite flags.

Every screen reads the manager's projections instead of keeping its own copy.
State changes happen in synchronous sections between awaits, so on one event
loop no two mutations interleave their read-modify-write steps.

Favorite toggles are optimistic and follow a small state machine per city
id: ``idle -> pending(previous, desired) -> committed | reverted``.  The
pending map doubles as the in-flight set; an entry is created and removed by
a scoped guard so it is released on success, failure and cancellation alike.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from glasscast.errors import GlasscastError
from glasscast.schemas.city import SavedCity
from glasscast.services.city_repository import RemoteCityRepository

logger = logging.getLogger(__name__)


class ToggleOutcome(str, Enum):
    SKIPPED = "skipped"
    COMMITTED = "committed"
    REVERTED = "reverted"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of a reload: the cities now held, plus the error if it failed."""

    cities: tuple[SavedCity, ...]
    error: GlasscastError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class FavoritesSnapshot:
    cities: tuple[SavedCity, ...] = ()
    favorite_ids: frozenset[str] = field(default_factory=frozenset)
    toggling_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class PendingToggle:
    previous: bool
    desired: bool


OwnerProvider = Callable[[], str | None]
Listener = Callable[[FavoritesSnapshot], None]


class FavoritesManager:
    """Authoritative city list with optimistic, de-duplicated favorite toggles."""

    def __init__(
        self,
        repository: RemoteCityRepository,
        owner_provider: OwnerProvider,
    ) -> None:
        self._repository = repository
        self._owner_provider = owner_provider
        self._cities: list[SavedCity] = []
        self._favorite_ids: frozenset[str] = frozenset()
        self._pending: dict[str, PendingToggle] = {}
        self._listeners: list[Listener] = []
        self._last_error: GlasscastError | None = None

    # -- projections ---------------------------------------------------------

    @property
    def cities(self) -> list[SavedCity]:
        return list(self._cities)

    @property
    def favorite_ids(self) -> frozenset[str]:
        return self._favorite_ids

    @property
    def toggling_ids(self) -> frozenset[str]:
        return frozenset(self._pending)

    @property
    def favorites(self) -> list[SavedCity]:
        return [city for city in self._cities if city.id in self._favorite_ids]

    @property
    def last_error(self) -> GlasscastError | None:
        return self._last_error

    def get_city(self, city_id: str) -> SavedCity | None:
        for city in self._cities:
            if city.id == city_id:
                return city
        return None

    def is_favorite(self, city_id: str) -> bool:
        return city_id in self._favorite_ids

    def is_favorite_by_name(self, name: str, country: str | None) -> bool:
        return any(
            city.matches(name, country) and city.id in self._favorite_ids
            for city in self._cities
        )

    def contains_city(self, name: str, country: str | None) -> bool:
        return any(city.matches(name, country) for city in self._cities)

    def is_toggling(self, city_id: str) -> bool:
        return city_id in self._pending

    def snapshot(self) -> FavoritesSnapshot:
        return FavoritesSnapshot(
            cities=tuple(self._cities),
            favorite_ids=self._favorite_ids,
            toggling_ids=frozenset(self._pending),
        )

    # -- observers -----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Favorites listener %r failed", listener)

    def _recompute(self) -> None:
        self._favorite_ids = frozenset(city.id for city in self._cities if city.is_favorite)
        self._notify()

    def _apply_flag(self, city_id: str, value: bool) -> None:
        self._cities = [
            city.model_copy(update={"is_favorite": value}) if city.id == city_id else city
            for city in self._cities
        ]
        self._recompute()

    # -- loading -------------------------------------------------------------

    async def load_cities(self, force_refresh: bool = False) -> LoadResult:
        """Replace the sequence with the repository's view.

        Failures leave the current state untouched and are returned rather
        than raised.  Cities with a toggle still pending keep their optimistic
        flag so a reload cannot undo an unsettled flip.
        """

        owner_id = self._owner_provider()
        try:
            loaded = await self._repository.get_all_cities(owner_id, force_refresh=force_refresh)
        except GlasscastError as exc:
            logger.warning("Keeping current cities after failed reload: %s", exc)
            self._last_error = exc
            return LoadResult(cities=tuple(self._cities), error=exc)

        reconciled: list[SavedCity] = []
        for city in loaded:
            pending = self._pending.get(city.id)
            if pending is not None and city.is_favorite != pending.desired:
                city = city.model_copy(update={"is_favorite": pending.desired})
            reconciled.append(city)

        self._cities = reconciled
        self._last_error = None
        self._recompute()
        return LoadResult(cities=tuple(self._cities))

    async def refresh(self) -> LoadResult:
        return await self.load_cities(force_refresh=True)

    # -- toggling ------------------------------------------------------------

    @contextmanager
    def _in_flight(self, city_id: str, pending: PendingToggle) -> Iterator[None]:
        self._pending[city_id] = pending
        try:
            yield
        finally:
            if self._pending.get(city_id) is pending:
                del self._pending[city_id]
            self._notify()

    async def toggle_favorite(self, city: SavedCity) -> ToggleOutcome:
        """Flip the favorite flag of ``city`` optimistically.

        The flag is read from the authoritative sequence, not from ``city``,
        which may be a stale copy.  A city the manager does not hold, or a
        second toggle for the same id while the first is outstanding, is
        skipped without a remote write.
        """

        city_id = city.id
        if city_id in self._pending:
            logger.debug("Toggle for %s already in flight; skipping", city_id)
            return ToggleOutcome.SKIPPED

        current = self.get_city(city_id)
        if current is None:
            logger.debug("Toggle for unknown city %s; skipping", city_id)
            return ToggleOutcome.SKIPPED
        previous = current.is_favorite
        desired = not previous

        with self._in_flight(city_id, PendingToggle(previous=previous, desired=desired)):
            self._apply_flag(city_id, desired)
            try:
                await self._repository.toggle_favorite(city_id, desired)
            except GlasscastError as exc:
                logger.warning("Reverting favorite toggle for %s: %s", city_id, exc)
                self._apply_flag(city_id, previous)
                return ToggleOutcome.REVERTED
            except BaseException:
                self._apply_flag(city_id, previous)
                raise

        return ToggleOutcome.COMMITTED

    async def toggle_favorite_by_id(self, city_id: str) -> ToggleOutcome:
        city = self.get_city(city_id)
        if city is None:
            return ToggleOutcome.SKIPPED
        return await self.toggle_favorite(city)

    # -- local mutations -----------------------------------------------------

    def add_city(self, city: SavedCity) -> None:
        if any(existing.id == city.id for existing in self._cities):
            return
        self._cities = [city, *self._cities]
        self._recompute()

    def remove_city(self, city_id: str) -> None:
        self._cities = [city for city in self._cities if city.id != city_id]
        self._recompute()

    def clear_all_data(self) -> None:
        """Forget every city, favorite and pending toggle."""

        self._cities = []
        self._pending.clear()
        self._last_error = None
        self._recompute()


__all__ = [
    "FavoritesManager",
    "FavoritesSnapshot",
    "LoadResult",
    "PendingToggle",
    "ToggleOutcome",
]
