from .city import (
    CityCandidate,
    CityListResponse,
    SavedCity,
    SearchResponse,
    SearchResult,
    SessionCreate,
    SessionResponse,
    ToggleResponse,
)
from .weather import (
    CachedWeatherResponse,
    ForecastDay,
    TodayHighLow,
    WeatherBundle,
    WeatherCondition,
    WeatherSnapshot,
    WidgetWeatherData,
)

__all__ = [
    "CachedWeatherResponse",
    "CityCandidate",
    "CityListResponse",
    "ForecastDay",
    "SavedCity",
    "SearchResponse",
    "SearchResult",
    "SessionCreate",
    "SessionResponse",
    "TodayHighLow",
    "ToggleResponse",
    "WeatherBundle",
    "WeatherCondition",
    "WeatherSnapshot",
    "WidgetWeatherData",
]
