"""Pydantic schemas for saved cities and geocoding candidates."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from glasscast.schemas.weather import WeatherSnapshot


class CityCandidate(BaseModel):
    """A city returned by geocoding, or submitted for addition."""

    name: str = Field(..., min_length=1, max_length=255)
    country: str | None = Field(None, max_length=64)
    state: str | None = Field(None, max_length=255)
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    @property
    def display_name(self) -> str:
        parts = [self.name]
        if self.state:
            parts.append(self.state)
        if self.country:
            parts.append(self.country)
        return ", ".join(parts)

    @property
    def short_display_name(self) -> str:
        if self.country:
            return f"{self.name}, {self.country}"
        return self.name


class SavedCity(BaseModel):
    """A city on the owner's list, mirroring the remote ``saved_cities`` row.

    ``is_favorite`` defaults to ``True`` when the backend omits the column so
    deployments that never ran the favorites migration keep treating every
    saved city as a favorite.  ``weather`` is attached transiently for display
    and never serialized back to the backend or the cache.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    city_name: str
    country: str | None = None
    lat: float
    lon: float
    created_at: datetime
    is_favorite: bool = True
    weather: WeatherSnapshot | None = Field(default=None, exclude=True)

    @field_validator("is_favorite", mode="before")
    @classmethod
    def _legacy_rows_are_favorites(cls, value: object) -> object:
        return True if value is None else value

    def __eq__(self, other: object) -> bool:
        # List membership is by identity of the remote row.
        if isinstance(other, SavedCity):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.id)

    def matches(self, name: str, country: str | None) -> bool:
        """Return ``True`` when the (name, country) pair identifies this city."""

        return self.city_name == name and self.country == country


class CityListResponse(BaseModel):
    """Manager state as served to the presentation layer."""

    total: int
    cities: list[SavedCity]
    favorite_ids: list[str]
    error: str | None = Field(
        None,
        description="Message of the last failed reload; the list is then the last known state.",
    )


class SearchResult(BaseModel):
    candidate: CityCandidate
    is_added: bool = False
    is_favorite: bool = False


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResult]
    superseded: bool = False


class ToggleResponse(BaseModel):
    city_id: str
    outcome: str
    is_favorite: bool | None


class SessionCreate(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=128)


class SessionResponse(BaseModel):
    owner_id: str | None
    signed_in: bool
