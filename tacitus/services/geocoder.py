from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel

from tacitus.config import settings
from tacitus.errors import LocationNotFound, UpstreamUnavailable
from tacitus.services.metrics import metrics

logger = logging.getLogger(__name__)


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class NominatimGeocoder:
    """Resolve a free-text place name to coordinates via OpenStreetMap Nominatim."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._url = url or settings.nominatim_url
        # Nominatim's usage policy rejects requests without an identifying UA.
        self._user_agent = user_agent or settings.nominatim_user_agent
        self._timeout = timeout or settings.geocoder_timeout

    async def resolve(self, place_name: str) -> Coordinates:
        params = {"q": place_name, "format": "json", "limit": 1}
        headers = {"User-Agent": self._user_agent}
        try:
            resp = await self._client.get(
                self._url, params=params, headers=headers, timeout=self._timeout
            )
            resp.raise_for_status()
            results = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            metrics.inc_geocoder("failure")
            logger.warning("Nominatim request failed for %r: %s", place_name, exc)
            raise UpstreamUnavailable("geocoder", str(exc)) from exc

        if not isinstance(results, list):
            metrics.inc_geocoder("failure")
            logger.warning("Unexpected Nominatim response for %r: %r", place_name, results)
            raise UpstreamUnavailable("geocoder", f"malformed response: {results!r}")

        if not results:
            metrics.inc_geocoder("not_found")
            raise LocationNotFound(place_name)

        hit = results[0]
        try:
            coords = Coordinates(latitude=float(hit["lat"]), longitude=float(hit["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            metrics.inc_geocoder("failure")
            raise UpstreamUnavailable("geocoder", f"malformed result: {hit!r}") from exc

        metrics.inc_geocoder("ok")
        logger.debug("Geocoded %r -> %s, %s", place_name, coords.latitude, coords.longitude)
        return coords
