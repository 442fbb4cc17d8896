"""Weather endpoints: full network load and cache-only first paint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from glasscast.schemas.weather import CachedWeatherResponse, WeatherBundle
from glasscast.services.dependencies import AppContainer, get_container, get_weather
from glasscast.services.weather_cache import WeatherReadThroughCache

router = APIRouter()


@router.get("", response_model=WeatherBundle)
async def load_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    city_name: str | None = Query(
        None, description="Display name; when given the reading is handed to the widget"
    ),
    container: AppContainer = Depends(get_container),
) -> WeatherBundle:
    bundle = await container.weather.load_weather(lat, lon)
    if city_name:
        await container.widget.publish(bundle.weather, city_name)
    return bundle


@router.get("/cached", response_model=CachedWeatherResponse)
async def cached_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    weather: WeatherReadThroughCache = Depends(get_weather),
) -> CachedWeatherResponse:
    return CachedWeatherResponse(
        weather=await weather.get_cached_weather(lat, lon),
        forecast=await weather.get_cached_forecast(lat, lon),
    )
