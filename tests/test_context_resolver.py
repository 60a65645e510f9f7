"""Matching query coordinates to stored places and creating new places."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from tacitus.errors import LocationNotFound, PersistenceError, UpstreamUnavailable
from tacitus.services.context_resolver import UNKNOWN_LOCATION, ContextResolver, QueryContext
from tacitus.services.geocoder import NominatimGeocoder
from tacitus.services.outcome import Status
from tacitus.services.request_context import get_place
from tacitus.services.wikipedia import WikipediaClient

PARIS_ARTICLES = [
    "https://en.wikipedia.org/wiki/Louvre",
    "https://en.wikipedia.org/wiki/Notre-Dame_de_Paris",
]


@pytest.fixture
def resolver(store, geocoder, wikipedia):
    return ContextResolver(store, geocoder, wikipedia, tolerance=0.1)


# ---------------------------------------------------------------------------
# resolve_query_context
# ---------------------------------------------------------------------------


class TestResolveQueryContext:
    @pytest.mark.asyncio
    async def test_match_uses_record_name_and_query_coordinates(self, resolver, store):
        await store.insert(48.8566, 2.3522, "Paris, France", PARIS_ARTICLES)

        ctx = await resolver.resolve_query_context(48.86, 2.35)

        assert ctx == QueryContext(
            latitude=48.86, longitude=2.35, name="Paris, France", articles=PARIS_ARTICLES
        )

    @pytest.mark.asyncio
    async def test_empty_store_gives_unknown_location(self, resolver):
        ctx = await resolver.resolve_query_context(0.0, 0.0)

        assert ctx.model_dump() == {
            "latitude": 0.0,
            "longitude": 0.0,
            "name": "unknown location",
            "articles": [],
        }

    @pytest.mark.asyncio
    async def test_far_away_record_is_ignored(self, resolver, store):
        await store.insert(48.8566, 2.3522, "Paris, France", PARIS_ARTICLES)

        ctx = await resolver.resolve_query_context(51.5074, -0.1278)

        assert ctx.name == UNKNOWN_LOCATION
        assert ctx.articles == []
        assert ctx.latitude == 51.5074

    @pytest.mark.asyncio
    async def test_picks_closest_of_several(self, resolver, store):
        await store.insert(48.90, 2.30, "Batignolles", [])
        await store.insert(48.861, 2.336, "Louvre", ["https://en.wikipedia.org/wiki/Louvre"])

        ctx = await resolver.resolve_query_context(48.86, 2.34)

        assert ctx.name == "Louvre"

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, geocoder, wikipedia):
        store = AsyncMock()
        store.find_nearest.side_effect = PersistenceError("down")
        resolver = ContextResolver(store, geocoder, wikipedia)

        with pytest.raises(PersistenceError):
            await resolver.resolve_query_context(1.0, 1.0)


# ---------------------------------------------------------------------------
# create_location
# ---------------------------------------------------------------------------


class TestCreateLocation:
    @pytest.mark.asyncio
    async def test_success_stores_geosearch_articles(self, resolver, store, wikipedia):
        outcome = await resolver.create_location("Paris, France")

        assert outcome.status is Status.OK
        record = outcome.value
        assert record.location_name == "Paris, France"
        assert record.latitude == pytest.approx(48.8566)
        assert record.articles == wikipedia.articles
        assert wikipedia.geo_calls == [(48.8566, 2.3522)]

        stored = await store.get_by_id(record.id)
        assert stored.articles == wikipedia.articles

    @pytest.mark.asyncio
    async def test_text_search_mode(self, resolver, wikipedia):
        outcome = await resolver.create_location("Paris, France", text_search=True)

        assert outcome.status is Status.OK
        assert wikipedia.text_calls == ["Paris, France"]
        assert wikipedia.geo_calls == []

    @pytest.mark.asyncio
    async def test_no_articles_falls_back_to_synthetic_url(self, resolver, wikipedia):
        wikipedia.articles = []

        outcome = await resolver.create_location("Paris, France")

        assert outcome.status is Status.DEGRADED
        assert outcome.value.articles == ["https://en.wikipedia.org/wiki/Paris%2C_France"]

    @pytest.mark.asyncio
    async def test_wikipedia_failure_degrades_instead_of_failing(self, resolver, store, wikipedia):
        wikipedia.error = UpstreamUnavailable("wikipedia", "timeout")

        outcome = await resolver.create_location("Paris, France")

        assert outcome.succeeded
        assert outcome.is_degraded
        assert "timeout" in outcome.reason
        assert outcome.value.articles == ["https://en.wikipedia.org/wiki/Paris%2C_France"]
        assert len(await store.list_all()) == 1

    @pytest.mark.asyncio
    async def test_synthetic_url_uses_caller_name(self, resolver, geocoder, wikipedia):
        geocoder.places = {"the big apple": (40.7128, -74.0060)}
        wikipedia.articles = []

        outcome = await resolver.create_location("the big apple")

        assert outcome.value.articles == ["https://en.wikipedia.org/wiki/the_big_apple"]
        assert outcome.value.location_name == "the big apple"

    @pytest.mark.asyncio
    async def test_not_found_persists_nothing(self, resolver, store, wikipedia):
        outcome = await resolver.create_location("Nowhereville")

        assert outcome.status is Status.FAILED
        assert isinstance(outcome.error, LocationNotFound)
        assert await store.list_all() == []
        assert wikipedia.geo_calls == []

    @pytest.mark.asyncio
    async def test_geocoder_unavailable_persists_nothing(self, resolver, store, geocoder):
        geocoder.error = UpstreamUnavailable("geocoder", "503")

        outcome = await resolver.create_location("Paris, France")

        assert outcome.status is Status.FAILED
        assert isinstance(outcome.error, UpstreamUnavailable)
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_store_failure_is_failed_outcome(self, geocoder, wikipedia):
        store = AsyncMock()
        store.insert.side_effect = PersistenceError("disk full")
        resolver = ContextResolver(store, geocoder, wikipedia)

        outcome = await resolver.create_location("Paris, France")

        assert outcome.status is Status.FAILED
        assert isinstance(outcome.error, PersistenceError)

    @pytest.mark.asyncio
    async def test_repeated_creation_is_not_deduplicated(self, resolver, store):
        first = await resolver.create_location("Paris, France")
        second = await resolver.create_location("Paris, France")

        assert first.value.id != second.value.id
        ids = {s.id for s in await store.list_all()}
        assert ids == {first.value.id, second.value.id}

    @pytest.mark.asyncio
    async def test_created_location_is_then_used_as_context(self, resolver):
        await resolver.create_location("Paris, France")

        ctx = await resolver.resolve_query_context(48.86, 2.35)

        assert ctx.name == "Paris, France"
        assert ctx.latitude == 48.86


# ---------------------------------------------------------------------------
# Malformed upstream bodies through the real HTTP clients
# ---------------------------------------------------------------------------


def _mock_http(body) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(lambda req: httpx.Response(200, json=body))
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"error": "rate limited"}, [], {"query": ["x"]}])
async def test_malformed_wikipedia_body_degrades(store, geocoder, body):
    wiki = WikipediaClient(_mock_http(body), api_url="https://wiki.test/w/api.php")
    resolver = ContextResolver(store, geocoder, wiki)

    outcome = await resolver.create_location("Paris, France")

    assert outcome.status is Status.DEGRADED
    assert outcome.value.articles == ["https://en.wikipedia.org/wiki/Paris%2C_France"]
    assert len(await store.list_all()) == 1


@pytest.mark.asyncio
async def test_geocoder_error_object_is_failed_outcome(store, wikipedia):
    nominatim = NominatimGeocoder(
        _mock_http({"error": "Unable to geocode"}), url="https://nominatim.test/search"
    )
    resolver = ContextResolver(store, nominatim, wikipedia)

    outcome = await resolver.create_location("Paris, France")

    assert outcome.status is Status.FAILED
    assert isinstance(outcome.error, UpstreamUnavailable)
    assert await store.list_all() == []


@pytest.mark.asyncio
async def test_create_location_sets_place_for_log_lines(resolver, wikipedia):
    seen: list[str] = []

    async def search(lat, lng, radius_m=None):
        seen.append(get_place())
        return PARIS_ARTICLES

    wikipedia.search_by_coordinates = search

    await resolver.create_location("Paris, France")

    assert seen == ["Paris, France"]
    assert get_place() == ""
