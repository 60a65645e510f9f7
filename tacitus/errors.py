"""Exception taxonomy shared by the store, the upstream clients and the API."""

from __future__ import annotations


class TacitusError(Exception):
    """Base class for all domain errors."""


class PersistenceError(TacitusError):
    """The location database is unavailable or rejected a write."""


class LocationNotFound(TacitusError):
    """The geocoder returned no candidates for a place name."""

    def __init__(self, place_name: str) -> None:
        self.place_name = place_name
        super().__init__(f"No geocoding results for: {place_name}")


class UpstreamUnavailable(TacitusError):
    """A remote service (geocoder, Wikipedia, language model) failed."""

    def __init__(self, service: str, detail: str) -> None:
        self.service = service
        self.detail = detail
        super().__init__(f"{service} unavailable: {detail}")
