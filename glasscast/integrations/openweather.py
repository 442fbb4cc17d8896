"""Async client for the OpenWeatherMap current, forecast and geocoding endpoints."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, tzinfo
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from glasscast.errors import DecodeFailedError, WeatherProviderError
from glasscast.schemas.city import CityCandidate
from glasscast.schemas.weather import WeatherCondition, WeatherSnapshot

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

KMH_PER_MS = 3.6


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ConditionInfo(_ProviderModel):
    main: str = ""
    description: str = ""
    icon: str = ""


class MainInfo(_ProviderModel):
    temp: float
    feels_like: float
    temp_min: float
    temp_max: float
    humidity: int


class WindInfo(_ProviderModel):
    speed: float = 0.0


class RainInfo(_ProviderModel):
    one_hour: float | None = Field(None, alias="1h")
    three_hour: float | None = Field(None, alias="3h")


class SysInfo(_ProviderModel):
    country: str | None = None


class CurrentWeatherResponse(_ProviderModel):
    """Body of ``GET /weather``."""

    name: str = ""
    dt: int
    main: MainInfo
    weather: list[ConditionInfo] = Field(default_factory=list)
    wind: WindInfo = Field(default_factory=WindInfo)
    rain: RainInfo | None = None
    sys: SysInfo = Field(default_factory=SysInfo)

    def to_snapshot(self) -> WeatherSnapshot:
        info = self.weather[0] if self.weather else ConditionInfo()
        rain_volume = self.rain.one_hour if self.rain and self.rain.one_hour else 0.0
        return WeatherSnapshot(
            city_name=self.name,
            country=self.sys.country or "",
            temperature=self.main.temp,
            feels_like=self.main.feels_like,
            temp_min=self.main.temp_min,
            temp_max=self.main.temp_max,
            humidity=self.main.humidity,
            wind_speed=self.wind.speed * KMH_PER_MS,
            condition=WeatherCondition.from_api(info.main),
            description=info.description.title(),
            icon_code=info.icon,
            rain_chance=int(rain_volume * 10),
            timestamp=datetime.fromtimestamp(self.dt, tz=UTC),
        )


class ForecastEntry(_ProviderModel):
    """One 3-hour slot of the 5-day forecast."""

    dt: int
    main: MainInfo
    weather: list[ConditionInfo] = Field(default_factory=list)
    pop: float = 0.0

    @property
    def condition_info(self) -> ConditionInfo:
        return self.weather[0] if self.weather else ConditionInfo()

    def captured_at(self, tz: tzinfo) -> datetime:
        return datetime.fromtimestamp(self.dt, tz=tz)


class ForecastResponse(_ProviderModel):
    """Body of ``GET /forecast``."""

    entries: list[ForecastEntry] = Field(default_factory=list, alias="list")


class GeocodingResult(_ProviderModel):
    name: str
    lat: float
    lon: float
    country: str | None = None
    state: str | None = None

    def to_candidate(self) -> CityCandidate:
        return CityCandidate(
            name=self.name,
            country=self.country,
            state=self.state,
            lat=self.lat,
            lon=self.lon,
        )


_GEOCODING_ADAPTER = TypeAdapter(list[GeocodingResult])


class OpenWeatherClient:
    """Thin wrapper over ``httpx.AsyncClient``.

    Transport failures and non-2xx statuses raise
    :class:`~glasscast.errors.WeatherProviderError`; a body that does not match
    the expected shape raises :class:`~glasscast.errors.DecodeFailedError`.
    Temperatures are always requested in metric units.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str,
        geo_url: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._geo_url = geo_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, url: str, params: dict[str, Any]) -> Any:
        query = {**params, "appid": self._api_key}
        try:
            response = await self._client.get(url, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("Weather provider returned HTTP %s for %s", status, url)
            raise WeatherProviderError(
                f"Weather provider returned HTTP {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Weather provider request to %s failed: %s", url, exc)
            raise WeatherProviderError(f"Weather provider request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeFailedError(cause=exc) from exc

    @staticmethod
    def _parse(model: type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)  # type: ignore[attr-defined]
        except ValidationError as exc:
            raise DecodeFailedError(cause=exc) from exc

    async def fetch_current(self, lat: float, lon: float) -> WeatherSnapshot:
        payload = await self._get_json(
            f"{self._base_url}/weather",
            {"lat": lat, "lon": lon, "units": "metric"},
        )
        return self._parse(CurrentWeatherResponse, payload).to_snapshot()

    async def fetch_forecast(self, lat: float, lon: float) -> list[ForecastEntry]:
        """Return the raw 3-hour entries; grouping happens in the weather cache."""

        payload = await self._get_json(
            f"{self._base_url}/forecast",
            {"lat": lat, "lon": lon, "units": "metric"},
        )
        return self._parse(ForecastResponse, payload).entries

    async def search_cities(self, query: str, limit: int = 5) -> list[CityCandidate]:
        if not query.strip():
            return []

        payload = await self._get_json(
            f"{self._geo_url}/direct",
            {"q": query.strip(), "limit": limit},
        )
        try:
            results = _GEOCODING_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            raise DecodeFailedError(cause=exc) from exc
        return [result.to_candidate() for result in results]


__all__ = [
    "CurrentWeatherResponse",
    "ForecastEntry",
    "ForecastResponse",
    "GeocodingResult",
    "OpenWeatherClient",
]
