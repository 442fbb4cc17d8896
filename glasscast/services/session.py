"""Owner identity established by the external sign-in transport."""

from __future__ import annotations

import logging

from glasscast.cache import PersistentCacheStore
from glasscast.services.favorites_manager import FavoritesManager
from glasscast.services.widget import WidgetPublisher

logger = logging.getLogger(__name__)


class OwnerSession:
    """Holds the signed-in owner id and wipes local state on sign-out.

    ``owner_id`` is the provider handed to the favorites manager, so every
    reload reads the identity current at call time.
    """

    def __init__(self) -> None:
        self._owner_id: str | None = None
        self._manager: FavoritesManager | None = None
        self._cache: PersistentCacheStore | None = None
        self._widget: WidgetPublisher | None = None

    def bind(
        self,
        *,
        manager: FavoritesManager,
        cache: PersistentCacheStore,
        widget: WidgetPublisher,
    ) -> None:
        self._manager = manager
        self._cache = cache
        self._widget = widget

    def owner_id(self) -> str | None:
        return self._owner_id

    @property
    def is_signed_in(self) -> bool:
        return self._owner_id is not None

    def sign_in(self, owner_id: str) -> None:
        if self._owner_id is not None and self._owner_id != owner_id and self._manager:
            # Switching accounts must not show the previous owner's cities.
            self._manager.clear_all_data()
        self._owner_id = owner_id
        logger.info("Owner %s signed in", owner_id)

    async def sign_out(self) -> None:
        """Clear manager state, the durable cache and the widget, then forget the owner."""

        if self._manager is not None:
            self._manager.clear_all_data()
        if self._cache is not None:
            await self._cache.clear_all()
        if self._widget is not None:
            await self._widget.clear()
        previous, self._owner_id = self._owner_id, None
        logger.info("Owner %s signed out", previous)


__all__ = ["OwnerSession"]
