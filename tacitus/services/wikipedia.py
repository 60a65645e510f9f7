"""Wikipedia search client: article URLs for a place name or a coordinate pair."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from tacitus.config import settings
from tacitus.errors import UpstreamUnavailable
from tacitus.services.metrics import metrics

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone besides the ones quote() always keeps.
_URL_SAFE = "!~*'()"


def article_url(title: str, base: str | None = None) -> str:
    """Canonical article URL: spaces become underscores, the rest percent-encoded."""
    base = base or settings.wikipedia_article_base
    return base + quote(title.replace(" ", "_"), safe=_URL_SAFE)


class WikipediaClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_url: str | None = None,
        article_base: str | None = None,
        limit: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._api_url = api_url or settings.wikipedia_api_url
        self._article_base = article_base or settings.wikipedia_article_base
        self._limit = limit or settings.article_limit
        self._timeout = timeout or settings.wikipedia_timeout

    async def search_by_text(self, place_name: str) -> list[str]:
        """Up to ``limit`` article URLs in Wikipedia's relevance order."""
        params = {
            "action": "query",
            "list": "search",
            "srsearch": place_name,
            "srlimit": self._limit,
            "format": "json",
            "utf8": 1,
        }
        return await self._query(params, "search")

    async def search_by_coordinates(
        self,
        latitude: float,
        longitude: float,
        radius_m: int | None = None,
    ) -> list[str]:
        """Up to ``limit`` article URLs nearest to the point, closest first."""
        params = {
            "action": "query",
            "list": "geosearch",
            "gscoord": f"{latitude}|{longitude}",
            "gsradius": radius_m or settings.geosearch_radius_m,
            "gslimit": self._limit,
            "format": "json",
        }
        return await self._query(params, "geosearch")

    async def _query(self, params: dict, list_key: str) -> list[str]:
        try:
            resp = await self._client.get(
                self._api_url, params=params, timeout=self._timeout
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            metrics.inc_wikipedia("failure")
            logger.warning("Wikipedia %s request failed: %s", list_key, exc)
            raise UpstreamUnavailable("wikipedia", str(exc)) from exc

        if not isinstance(data, dict):
            metrics.inc_wikipedia("failure")
            raise UpstreamUnavailable("wikipedia", "malformed response")

        if "error" in data:
            metrics.inc_wikipedia("failure")
            error = data["error"]
            info = error.get("info", "unknown error") if isinstance(error, dict) else str(error)
            raise UpstreamUnavailable("wikipedia", info)

        query = data.get("query") or {}
        hits = query.get(list_key) if isinstance(query, dict) else None
        if hits is None:
            hits = []
        elif not isinstance(hits, list):
            metrics.inc_wikipedia("failure")
            raise UpstreamUnavailable("wikipedia", "malformed response")

        urls = [
            article_url(hit["title"], self._article_base)
            for hit in hits[: self._limit]
            if isinstance(hit, dict) and isinstance(hit.get("title"), str) and hit["title"]
        ]
        metrics.inc_wikipedia("ok" if urls else "empty")
        return urls
