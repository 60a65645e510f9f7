import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tacitus.api.dependencies import (
    get_answer_service,
    get_db,
    get_geocoder,
    get_wikipedia,
)
from tacitus.api.main import app
from tacitus.db.models import Base
from tacitus.errors import LocationNotFound
from tacitus.services.answerer import AnswerService
from tacitus.services.geocoder import Coordinates
from tacitus.services.location_store import LocationStore
from tacitus.services.metrics import metrics


class FakeGeocoder:
    """Geocoder stand-in: known places resolve, anything else is not found.

    Set ``error`` to make every call raise it.
    """

    def __init__(self, places: dict[str, tuple[float, float]] | None = None):
        self.places = places or {"Paris, France": (48.8566, 2.3522)}
        self.error: Exception | None = None
        self.calls: list[str] = []

    async def resolve(self, place_name: str) -> Coordinates:
        self.calls.append(place_name)
        if self.error is not None:
            raise self.error
        if place_name not in self.places:
            raise LocationNotFound(place_name)
        lat, lng = self.places[place_name]
        return Coordinates(latitude=lat, longitude=lng)


class FakeWikipedia:
    def __init__(self, articles: list[str] | None = None):
        self.articles = articles if articles is not None else [
            "https://en.wikipedia.org/wiki/Louvre",
            "https://en.wikipedia.org/wiki/Notre-Dame_de_Paris",
        ]
        self.error: Exception | None = None
        self.geo_calls: list[tuple[float, float]] = []
        self.text_calls: list[str] = []

    async def search_by_coordinates(self, latitude, longitude, radius_m=None):
        self.geo_calls.append((latitude, longitude))
        if self.error is not None:
            raise self.error
        return list(self.articles)

    async def search_by_text(self, place_name):
        self.text_calls.append(place_name)
        if self.error is not None:
            raise self.error
        return list(self.articles)


class FakeBackend:
    def __init__(self, reply: str = "The Louvre is nearby."):
        self.reply = reply
        self.error: Exception | None = None
        self.messages: list[list[dict]] = []

    async def complete(self, messages):
        self.messages.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session):
    return LocationStore(db_session)


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def wikipedia():
    return FakeWikipedia()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
async def client(db_session, geocoder, wikipedia, backend):
    """API client wired to the in-memory database and the fakes above."""

    async def _db():
        yield db_session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_wikipedia] = lambda: wikipedia
    app.dependency_overrides[get_answer_service] = lambda: AnswerService(backend)

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()
