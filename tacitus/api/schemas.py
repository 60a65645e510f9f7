"""Request and response models for the HTTP API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Structured error returned by all non-2xx responses."""

    error: bool = Field(True, description="Always true for error responses")
    status_code: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable error message")


class HealthResponse(BaseModel):
    status: str = Field(..., description="'ok' or 'degraded'")
    database: str = Field(..., description="'connected' or 'unreachable'")
    message: str | None = None
    detail: str | None = Field(None, description="Error detail when the database is unreachable")
    uptime_seconds: float | None = None


# ---------------------------------------------------------------------------
# /api/query
# ---------------------------------------------------------------------------


class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Question transcribed or typed by the user")
    latitude: float = Field(..., description="Latitude of the device")
    longitude: float = Field(..., description="Longitude of the device")


class QueryResponse(BaseModel):
    answer: str = Field(..., description="Answer text, or an apology when the model is unreachable")


# ---------------------------------------------------------------------------
# /api/locations, /api/search-location
# ---------------------------------------------------------------------------


class SearchLocationRequest(BaseModel):
    location: str = Field(..., min_length=1, description="Place name to geocode, e.g. 'Paris, France'")


class LocationSummaryModel(BaseModel):
    id: int
    latitude: float
    longitude: float
    location_name: str
    created_at: datetime | None = None


class LocationDetailModel(LocationSummaryModel):
    articles: list[str] = Field(..., description="Wikipedia article URLs, most relevant first")


class CreatedLocationModel(BaseModel):
    id: int
    latitude: float
    longitude: float
    location_name: str
    articles: list[str]


class SearchLocationResponse(BaseModel):
    success: bool = True
    message: str
    degraded: bool = Field(
        False, description="True when Wikipedia was unavailable and a fallback article was stored"
    )
    location: CreatedLocationModel


class LocationListResponse(BaseModel):
    success: bool = True
    locations: list[LocationSummaryModel]


class LocationDetailResponse(BaseModel):
    success: bool = True
    location: LocationDetailModel
