from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from tacitus.config import settings
from tacitus.errors import LocationNotFound, PersistenceError, UpstreamUnavailable
from tacitus.services.geocoder import Coordinates, NominatimGeocoder
from tacitus.services.location_store import LocationRecord, LocationStore
from tacitus.services.metrics import metrics
from tacitus.services.outcome import Outcome
from tacitus.services.request_context import processing_place
from tacitus.services.wikipedia import WikipediaClient, article_url

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "unknown location"


class QueryContext(BaseModel):
    """What the answer prompt knows about where the user is standing."""

    latitude: float
    longitude: float
    name: str
    articles: list[str] = Field(default_factory=list)


class ContextResolver:
    """Match query coordinates to stored places and create new places.

    Holds no state of its own; everything durable goes through the
    :class:`LocationStore` it was built with.
    """

    def __init__(
        self,
        store: LocationStore,
        geocoder: NominatimGeocoder,
        wikipedia: WikipediaClient,
        *,
        tolerance: float | None = None,
    ) -> None:
        self._store = store
        self._geocoder = geocoder
        self._wikipedia = wikipedia
        self._tolerance = tolerance if tolerance is not None else settings.match_tolerance_deg

    async def resolve_query_context(self, latitude: float, longitude: float) -> QueryContext:
        """Context for a query at (*latitude*, *longitude*).

        The caller's coordinates are always echoed back, even when a stored
        record matched, since that is where the user actually is.  Raises
        only :class:`PersistenceError`.
        """
        record = await self._store.find_nearest(latitude, longitude, self._tolerance)
        metrics.inc_context(record is not None)

        if record is None:
            logger.info("No stored location near (%s, %s)", latitude, longitude)
            return QueryContext(latitude=latitude, longitude=longitude, name=UNKNOWN_LOCATION)

        logger.debug("Query (%s, %s) matched location id=%d", latitude, longitude, record.id)
        return QueryContext(
            latitude=latitude,
            longitude=longitude,
            name=record.location_name,
            articles=record.articles,
        )

    async def create_location(
        self, place_name: str, *, text_search: bool = False
    ) -> Outcome[LocationRecord]:
        """Geocode *place_name*, gather articles and persist a new record.

        Geocoding or storage failure yields a ``FAILED`` outcome and nothing
        is written.  A Wikipedia failure or empty result only degrades the
        outcome: a single article URL derived from *place_name* is stored.
        Repeated calls for the same place create separate records.
        """
        with processing_place(place_name):
            return await self._create_location(place_name, text_search)

    async def _create_location(
        self, place_name: str, text_search: bool
    ) -> Outcome[LocationRecord]:
        try:
            coords = await self._geocoder.resolve(place_name)
        except (LocationNotFound, UpstreamUnavailable) as exc:
            logger.warning("Cannot create location %r: %s", place_name, exc)
            return Outcome.failed(exc)

        articles, degraded_reason = await self._gather_articles(place_name, coords, text_search)

        try:
            record = await self._store.insert(
                coords.latitude, coords.longitude, place_name, articles
            )
        except PersistenceError as exc:
            return Outcome.failed(exc)

        metrics.inc_location_created(degraded_reason is not None)
        if degraded_reason is not None:
            return Outcome.degraded(record, degraded_reason)
        return Outcome.ok(record)

    async def _gather_articles(
        self, place_name: str, coords: Coordinates, text_search: bool
    ) -> tuple[list[str], str | None]:
        try:
            if text_search:
                articles = await self._wikipedia.search_by_text(place_name)
            else:
                articles = await self._wikipedia.search_by_coordinates(
                    coords.latitude, coords.longitude
                )
        except UpstreamUnavailable as exc:
            logger.warning("Wikipedia lookup failed for %r; using fallback article", place_name)
            return [article_url(place_name)], f"wikipedia unavailable: {exc.detail}"

        if not articles:
            return [article_url(place_name)], "no wikipedia articles found"
        return articles, None
