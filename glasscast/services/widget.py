"""One-way hand-off of the latest weather to the home-screen widget.

The widget reads a single JSON document from the shared Redis store.  Writes
are best effort: a failing or unreachable Redis is logged and never changes the
outcome of the weather load that triggered the publish.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from glasscast.schemas.weather import WeatherSnapshot, WidgetWeatherData

logger = logging.getLogger(__name__)

WIDGET_ERRORS = (RedisError, OSError)


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def connect_redis(url: str) -> Redis | None:
    """Return a connected client, or ``None`` when Redis cannot be reached."""

    client = Redis.from_url(url, decode_responses=True, encoding="utf-8")
    try:
        await client.ping()
    except WIDGET_ERRORS as exc:
        logger.warning(f"Redis connection failed: {exc}. Widget hand-off will be disabled.")
        await client.aclose()
        return None
    logger.info("Redis connection established successfully")
    return client


class WidgetPublisher:
    def __init__(
        self,
        redis: Redis | None,
        key: str,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._redis = redis
        self._key = key
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def publish(self, snapshot: WeatherSnapshot, city_name: str) -> bool:
        """Store ``snapshot`` for the widget; returns whether the write landed."""

        if self._redis is None:
            return False
        payload = WidgetWeatherData.from_snapshot(
            snapshot, city_name=city_name, updated_at=self._clock()
        )
        try:
            await self._redis.set(self._key, payload.model_dump_json())
        except WIDGET_ERRORS as exc:
            logger.warning(f"Widget publish failed for {city_name}: {exc}")
            return False
        return True

    async def load(self) -> WidgetWeatherData | None:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(self._key)
        except WIDGET_ERRORS as exc:
            logger.debug(f"Widget read failed: {exc}")
            return None
        if raw is None:
            return None
        try:
            return WidgetWeatherData.model_validate_json(raw)
        except ValidationError:
            return None

    async def clear(self) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.delete(self._key)
        except WIDGET_ERRORS as exc:
            logger.warning(f"Widget clear failed: {exc}")

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


__all__ = ["WidgetPublisher", "connect_redis"]
