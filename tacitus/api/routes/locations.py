"""Stored locations: list, fetch, and create from a place name."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from tacitus.api.auth import require_api_key
from tacitus.api.dependencies import get_location_store, get_resolver
from tacitus.api.schemas import (
    ErrorResponse,
    LocationDetailResponse,
    LocationListResponse,
    SearchLocationRequest,
    SearchLocationResponse,
)
from tacitus.errors import LocationNotFound, PersistenceError
from tacitus.services.context_resolver import ContextResolver
from tacitus.services.location_store import LocationStore

router = APIRouter(prefix="/api", tags=["locations"], dependencies=[Depends(require_api_key)])


@router.get(
    "/locations",
    summary="List stored locations",
    description="All stored locations, newest first. Articles are omitted.",
    response_model=LocationListResponse,
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid API key"}},
)
async def list_locations(store: LocationStore = Depends(get_location_store)):
    return {"success": True, "locations": await store.list_all()}


@router.get(
    "/locations/{location_id}",
    summary="Get one location",
    response_model=LocationDetailResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid API key"},
        404: {"model": ErrorResponse, "description": "Location not found"},
    },
)
async def get_location(location_id: int, store: LocationStore = Depends(get_location_store)):
    record = await store.get_by_id(location_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return {"success": True, "location": record}


@router.post(
    "/search-location",
    summary="Geocode and store a place",
    description=(
        "Geocode the place name with Nominatim, collect up to 10 Wikipedia "
        "articles within 10 km of it, and store a new location record. If "
        "Wikipedia is unreachable or has nothing nearby, a single article "
        "URL built from the place name is stored instead and `degraded` is "
        "true. Searching the same place twice stores two records."
    ),
    response_model=SearchLocationResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid API key"},
        404: {"model": ErrorResponse, "description": "Place name could not be geocoded"},
        500: {"model": ErrorResponse, "description": "Geocoder or database failure"},
    },
)
async def search_location(
    body: SearchLocationRequest,
    resolver: ContextResolver = Depends(get_resolver),
):
    outcome = await resolver.create_location(body.location)

    if not outcome.succeeded:
        if isinstance(outcome.error, LocationNotFound):
            raise HTTPException(status_code=404, detail="Location not found")
        if isinstance(outcome.error, PersistenceError):
            raise HTTPException(status_code=500, detail="Database error")
        raise HTTPException(
            status_code=500, detail="Error getting coordinates for this location"
        )

    record = outcome.value
    return {
        "success": True,
        "message": f'Location data for "{record.location_name}" has been processed and stored',
        "degraded": outcome.is_degraded,
        "location": {
            "id": record.id,
            "latitude": record.latitude,
            "longitude": record.longitude,
            "location_name": record.location_name,
            "articles": record.articles,
        },
    }
