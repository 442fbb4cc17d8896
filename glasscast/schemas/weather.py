"""Pydantic schemas describing weather readings and forecasts."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class WeatherCondition(str, Enum):
    """Closed set of conditions understood by the presentation layer."""

    CLEAR = "Clear"
    CLOUDS = "Clouds"
    RAIN = "Rain"
    DRIZZLE = "Drizzle"
    THUNDERSTORM = "Thunderstorm"
    SNOW = "Snow"
    MIST = "Mist"
    FOG = "Fog"
    HAZE = "Haze"
    DUST = "Dust"
    SMOKE = "Smoke"
    UNKNOWN = "Unknown"

    @classmethod
    def from_api(cls, keyword: str | None) -> "WeatherCondition":
        """Map a provider keyword onto the enum; unrecognized values become ``UNKNOWN``."""

        if not keyword:
            return cls.UNKNOWN
        try:
            return cls(keyword)
        except ValueError:
            return cls.UNKNOWN


class WeatherSnapshot(BaseModel):
    """Immutable point-in-time reading for a coordinate pair.

    Temperatures are canonical Celsius and wind speed is km/h.  Snapshots are
    superseded by newer readings, never patched; overrides such as today's
    calendar-day high/low produce a copy via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    city_name: str
    country: str = ""
    temperature: float
    feels_like: float
    temp_min: float
    temp_max: float
    humidity: int
    wind_speed: float = Field(..., description="Wind speed in km/h")
    condition: WeatherCondition = WeatherCondition.UNKNOWN
    description: str = ""
    icon_code: str = ""
    rain_chance: int = Field(0, ge=0, description="Precipitation chance, 0-100")
    timestamp: dt.datetime


class ForecastDay(BaseModel):
    """Daily aggregate built from the provider's 3-hour entries."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    temp_min: float
    temp_max: float
    condition: WeatherCondition = WeatherCondition.UNKNOWN
    icon_code: str = ""
    rain_chance: int = Field(0, ge=0)


class TodayHighLow(BaseModel):
    """Calendar-day minimum and maximum derived from forecast entries."""

    model_config = ConfigDict(frozen=True)

    temp_min: float
    temp_max: float


class WeatherBundle(BaseModel):
    """Snapshot plus forecast returned by a full display load."""

    weather: WeatherSnapshot
    forecast: list[ForecastDay] = Field(default_factory=list)


class WidgetWeatherData(BaseModel):
    """Payload handed to the home-screen widget through the shared store."""

    city_name: str
    temperature: float
    temp_min: float
    temp_max: float
    condition: WeatherCondition
    icon_code: str = ""
    updated_at: dt.datetime

    @classmethod
    def from_snapshot(
        cls, snapshot: WeatherSnapshot, *, city_name: str, updated_at: dt.datetime
    ) -> "WidgetWeatherData":
        return cls(
            city_name=city_name,
            temperature=snapshot.temperature,
            temp_min=snapshot.temp_min,
            temp_max=snapshot.temp_max,
            condition=snapshot.condition,
            icon_code=snapshot.icon_code,
            updated_at=updated_at,
        )


class CachedWeatherResponse(BaseModel):
    """Cache-only read used for instant first paint; either part may be missing."""

    weather: WeatherSnapshot | None = None
    forecast: list[ForecastDay] | None = None
