"""FastAPI router over the favorites manager and the remote city repository."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from glasscast.errors import NotAuthenticatedError
from glasscast.schemas.city import (
    CityCandidate,
    CityListResponse,
    SavedCity,
    ToggleResponse,
)
from glasscast.services.city_repository import RemoteCityRepository
from glasscast.services.dependencies import get_manager, get_owner_session, get_repository
from glasscast.services.favorites_manager import FavoritesManager
from glasscast.services.session import OwnerSession

router = APIRouter()


def _list_response(
    cities: list[SavedCity], manager: FavoritesManager, error: str | None = None
) -> CityListResponse:
    return CityListResponse(
        total=len(cities),
        cities=cities,
        favorite_ids=sorted(manager.favorite_ids),
        error=error,
    )


def _require_owner(session: OwnerSession) -> str:
    owner_id = session.owner_id()
    if owner_id is None:
        raise NotAuthenticatedError()
    return owner_id


@router.get("", response_model=CityListResponse)
async def list_cities(
    force_refresh: bool = Query(False, description="Bypass the cached city list"),
    manager: FavoritesManager = Depends(get_manager),
) -> CityListResponse:
    """Reload the manager and return its state.

    A failed reload is reported in ``error`` alongside the last known cities;
    only a missing sign-in is surfaced as an HTTP error.
    """

    result = await manager.load_cities(force_refresh=force_refresh)
    if isinstance(result.error, NotAuthenticatedError):
        raise result.error
    error = result.error.message if result.error is not None else None
    return _list_response(list(result.cities), manager, error)


@router.get("/favorites", response_model=CityListResponse)
async def list_favorites(
    manager: FavoritesManager = Depends(get_manager),
) -> CityListResponse:
    return _list_response(manager.favorites, manager)


@router.post("", response_model=SavedCity, status_code=status.HTTP_201_CREATED)
async def add_city(
    candidate: CityCandidate,
    repository: RemoteCityRepository = Depends(get_repository),
    manager: FavoritesManager = Depends(get_manager),
    session: OwnerSession = Depends(get_owner_session),
) -> SavedCity:
    city = await repository.add_city(session.owner_id(), candidate)
    manager.add_city(city)
    return city


@router.delete("/{city_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_city(
    city_id: str,
    repository: RemoteCityRepository = Depends(get_repository),
    manager: FavoritesManager = Depends(get_manager),
    session: OwnerSession = Depends(get_owner_session),
) -> Response:
    _require_owner(session)
    await repository.delete_city(city_id)
    manager.remove_city(city_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{city_id}/favorite", response_model=ToggleResponse)
async def toggle_favorite(
    city_id: str,
    manager: FavoritesManager = Depends(get_manager),
    session: OwnerSession = Depends(get_owner_session),
) -> ToggleResponse:
    """Flip the favorite flag; ``outcome`` reports skipped, committed or reverted."""

    _require_owner(session)
    if manager.get_city(city_id) is None:
        raise HTTPException(status_code=404, detail="City not found")

    outcome = await manager.toggle_favorite_by_id(city_id)
    city = manager.get_city(city_id)
    return ToggleResponse(
        city_id=city_id,
        outcome=outcome.value,
        is_favorite=city.is_favorite if city is not None else None,
    )
