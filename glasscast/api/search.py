from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from glasscast.schemas.city import SearchResponse, SearchResult
from glasscast.services.dependencies import get_search
from glasscast.services.search import CitySearchPipeline

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search_cities(
    q: str = Query("", max_length=100, description="City name to geocode"),
    pipeline: CitySearchPipeline = Depends(get_search),
) -> SearchResponse:
    """Debounced geocoding search; a superseded query returns no results."""

    candidates = await pipeline.submit(q)
    if candidates is None:
        return SearchResponse(query=q, results=[], superseded=True)

    return SearchResponse(
        query=q,
        results=[
            SearchResult(
                candidate=candidate,
                is_added=pipeline.is_added(candidate),
                is_favorite=pipeline.is_favorite(candidate),
            )
            for candidate in candidates
        ],
    )
