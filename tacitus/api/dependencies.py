"""FastAPI dependency providers.

Long-lived objects (the shared ``httpx.AsyncClient`` and the language-model
backend) are created in the app lifespan and kept on ``app.state``; the
services below are assembled per request around them.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tacitus.db.session import async_session
from tacitus.services.answerer import AnswerService
from tacitus.services.context_resolver import ContextResolver
from tacitus.services.geocoder import NominatimGeocoder
from tacitus.services.location_store import LocationStore
from tacitus.services.wikipedia import WikipediaClient


async def get_db() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_location_store(session: AsyncSession = Depends(get_db)) -> LocationStore:
    return LocationStore(session)


def get_geocoder(client: httpx.AsyncClient = Depends(get_http_client)) -> NominatimGeocoder:
    return NominatimGeocoder(client)


def get_wikipedia(client: httpx.AsyncClient = Depends(get_http_client)) -> WikipediaClient:
    return WikipediaClient(client)


def get_resolver(
    store: LocationStore = Depends(get_location_store),
    geocoder: NominatimGeocoder = Depends(get_geocoder),
    wikipedia: WikipediaClient = Depends(get_wikipedia),
) -> ContextResolver:
    return ContextResolver(store, geocoder, wikipedia)


def get_answer_service(request: Request) -> AnswerService:
    return AnswerService(request.app.state.llm_backend)
