from __future__ import annotations

import httpx
import pytest

from tacitus.errors import LocationNotFound, UpstreamUnavailable
from tacitus.services.geocoder import Coordinates, NominatimGeocoder
from tacitus.services.metrics import metrics

NOMINATIM_URL = "https://nominatim.test/search"


def _geocoder(handler) -> NominatimGeocoder:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NominatimGeocoder(client, url=NOMINATIM_URL, user_agent="Tacitus-Test/1.0")


@pytest.mark.asyncio
async def test_resolve_parses_first_candidate():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {"lat": "48.8566", "lon": "2.3522", "display_name": "Paris, Île-de-France"},
                {"lat": "33.66", "lon": "-95.55", "display_name": "Paris, Texas"},
            ],
        )

    coords = await _geocoder(handler).resolve("Paris, France")

    assert isinstance(coords, Coordinates)
    assert coords.latitude == pytest.approx(48.8566)
    assert coords.longitude == pytest.approx(2.3522)
    assert metrics.geocoder_ok == 1

    request = seen[0]
    assert request.headers["User-Agent"] == "Tacitus-Test/1.0"
    assert request.url.params["q"] == "Paris, France"
    assert request.url.params["format"] == "json"
    assert request.url.params["limit"] == "1"


@pytest.mark.asyncio
async def test_resolve_no_results_raises_not_found():
    geocoder = _geocoder(lambda req: httpx.Response(200, json=[]))

    with pytest.raises(LocationNotFound) as excinfo:
        await geocoder.resolve("Nowhereville")

    assert excinfo.value.place_name == "Nowhereville"
    assert metrics.geocoder_not_found == 1


@pytest.mark.asyncio
async def test_resolve_server_error_raises_upstream_unavailable():
    geocoder = _geocoder(lambda req: httpx.Response(503, text="busy"))

    with pytest.raises(UpstreamUnavailable) as excinfo:
        await geocoder.resolve("Paris")

    assert excinfo.value.service == "geocoder"
    assert metrics.geocoder_failures == 1


@pytest.mark.asyncio
async def test_resolve_connection_error_raises_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        await _geocoder(handler).resolve("Paris")


@pytest.mark.asyncio
async def test_resolve_malformed_candidate_raises_upstream_unavailable():
    geocoder = _geocoder(lambda req: httpx.Response(200, json=[{"display_name": "?"}]))

    with pytest.raises(UpstreamUnavailable):
        await geocoder.resolve("Paris")


@pytest.mark.asyncio
async def test_resolve_non_json_body_raises_upstream_unavailable():
    geocoder = _geocoder(lambda req: httpx.Response(200, text="<html>rate limited</html>"))

    with pytest.raises(UpstreamUnavailable):
        await geocoder.resolve("Paris")


@pytest.mark.asyncio
async def test_resolve_error_object_body_raises_upstream_unavailable():
    geocoder = _geocoder(
        lambda req: httpx.Response(200, json={"error": "Unable to geocode"})
    )

    with pytest.raises(UpstreamUnavailable) as excinfo:
        await geocoder.resolve("Paris")
    assert excinfo.value.service == "geocoder"
    assert metrics.geocoder_failures == 1
