"""Per-coordinate read-through cache for current weather and the daily forecast."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime

from glasscast.cache import CacheCategory, PersistentCacheStore, weather_key
from glasscast.errors import (
    DecodeFailedError,
    FetchFailedError,
    NotConfiguredError,
    WeatherProviderError,
)
from glasscast.integrations.openweather import ForecastEntry, OpenWeatherClient
from glasscast.schemas.weather import (
    ForecastDay,
    TodayHighLow,
    WeatherBundle,
    WeatherCondition,
    WeatherSnapshot,
)

logger = logging.getLogger(__name__)

FORECAST_DAYS = 5
MIDDAY_HOURS = range(11, 15)

PROVIDER_ERRORS = (WeatherProviderError, DecodeFailedError)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def group_forecast(entries: Iterable[ForecastEntry], now: datetime) -> list[ForecastDay]:
    """Collapse 3-hour entries into one :class:`ForecastDay` per calendar day.

    Days are taken in the timezone of ``now``; today is skipped and at most
    five following days are returned.  The representative condition comes from
    the first entry between 11:00 and 14:00, falling back to the middle entry.
    """

    tz = now.tzinfo or UTC
    today = now.date()
    by_day: dict[date, list[ForecastEntry]] = {}
    for entry in entries:
        by_day.setdefault(entry.captured_at(tz).date(), []).append(entry)

    days: list[ForecastDay] = []
    for day in sorted(d for d in by_day if d > today)[:FORECAST_DAYS]:
        items = by_day[day]
        midday = next(
            (item for item in items if item.captured_at(tz).hour in MIDDAY_HOURS),
            items[len(items) // 2],
        )
        info = midday.condition_info
        days.append(
            ForecastDay(
                date=day,
                temp_min=min(item.main.temp_min for item in items),
                temp_max=max(item.main.temp_max for item in items),
                condition=WeatherCondition.from_api(info.main),
                icon_code=info.icon,
                rain_chance=int(max(item.pop for item in items) * 100),
            )
        )
    return days


def today_high_low(entries: Iterable[ForecastEntry], now: datetime) -> TodayHighLow | None:
    """Min of minimums and max of maximums over the entries captured today."""

    tz = now.tzinfo or UTC
    today = now.date()
    todays = [entry for entry in entries if entry.captured_at(tz).date() == today]
    if not todays:
        return None
    return TodayHighLow(
        temp_min=min(entry.main.temp_min for entry in todays),
        temp_max=max(entry.main.temp_max for entry in todays),
    )


class WeatherReadThroughCache:
    """Network-first weather reads with a stale-tolerant cache fallback.

    ``clock`` returns an aware datetime; its timezone defines what "today"
    means for forecast grouping and the calendar-day high/low.
    """

    def __init__(
        self,
        client: OpenWeatherClient | None,
        cache: PersistentCacheStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._cache = cache
        self._clock = clock

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> OpenWeatherClient:
        if self._client is None:
            raise NotConfiguredError()
        return self._client

    async def get_cached_weather(self, lat: float, lon: float) -> WeatherSnapshot | None:
        return await self._cache.get(CacheCategory.WEATHER, weather_key(lat, lon))

    async def get_cached_forecast(self, lat: float, lon: float) -> list[ForecastDay] | None:
        return await self._cache.get(CacheCategory.FORECAST, weather_key(lat, lon))

    async def _stale_or_raise(self, category: CacheCategory, key: str, exc: Exception):
        entry = await self._cache.get_entry(category, key)
        if entry is None:
            raise FetchFailedError(cause=exc) from exc
        logger.warning("Serving cached %s for %s after fetch failure: %s", category.value, key, exc)
        return entry.data

    async def fetch_weather(self, lat: float, lon: float) -> WeatherSnapshot:
        client = self._require_client()
        key = weather_key(lat, lon)
        try:
            snapshot = await client.fetch_current(lat, lon)
        except PROVIDER_ERRORS as exc:
            return await self._stale_or_raise(CacheCategory.WEATHER, key, exc)

        await self._cache.put(CacheCategory.WEATHER, key, snapshot)
        return snapshot

    async def fetch_forecast(self, lat: float, lon: float) -> list[ForecastDay]:
        client = self._require_client()
        key = weather_key(lat, lon)
        try:
            entries = await client.fetch_forecast(lat, lon)
        except PROVIDER_ERRORS as exc:
            return await self._stale_or_raise(CacheCategory.FORECAST, key, exc)

        forecast = group_forecast(entries, self._clock())
        await self._cache.put(CacheCategory.FORECAST, key, forecast)
        return forecast

    async def get_today_high_low(self, lat: float, lon: float) -> TodayHighLow | None:
        """Always asks the provider; any provider failure yields ``None``."""

        client = self._require_client()
        try:
            entries = await client.fetch_forecast(lat, lon)
        except PROVIDER_ERRORS as exc:
            logger.debug("Today's high/low unavailable for %s: %s", weather_key(lat, lon), exc)
            return None
        return today_high_low(entries, self._clock())

    async def load_weather(self, lat: float, lon: float) -> WeatherBundle:
        """Fetch snapshot, forecast and today's range together.

        The calendar-day range replaces the provider's rolling min/max on the
        snapshot whenever it is available.
        """

        weather, forecast, high_low = await asyncio.gather(
            self.fetch_weather(lat, lon),
            self.fetch_forecast(lat, lon),
            self.get_today_high_low(lat, lon),
        )
        if high_low is not None:
            weather = weather.model_copy(
                update={"temp_min": high_low.temp_min, "temp_max": high_low.temp_max}
            )
        return WeatherBundle(weather=weather, forecast=forecast)


__all__ = [
    "WeatherReadThroughCache",
    "group_forecast",
    "today_high_low",
]
