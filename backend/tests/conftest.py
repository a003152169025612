"""
Test fixtures for farecast backend tests.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from httpx import AsyncClient, ASGITransport

from farecast.database import Base, get_db, get_session_factory
from farecast.api.search import get_fetcher
from farecast.main import app
import farecast.models  # noqa: F401
from farecast.services.flight_price_fetcher import FetchResult, FlightPriceFetcher, PriceSource
from farecast.services.search_service import wait_for_recordings


class FakeSource(PriceSource):
    """In-memory provider returning canned raw offers (or failing)."""

    max_retries = 0
    retry_delay = 0.0

    def __init__(self, name, offers=None, error=None, available=True, raises=None):
        self.name = name
        self.offers = offers or []
        self.error = error
        self.available = available
        self.raises = raises
        self.calls = []

    def is_available(self) -> bool:
        return self.available

    async def fetch_offers(self, query):
        self.calls.append(query)
        if self.raises is not None:
            raise self.raises
        if self.error:
            return FetchResult(success=False, source=self.name, error=self.error)
        offers = self.offers(query) if callable(self.offers) else self.offers
        return FetchResult(success=True, offers=list(offers), source=self.name)


def serpapi_offer(carrier="6E", number="123", price=200, depart="2026-11-20 06:00",
                  arrive="2026-11-20 08:30", legs=1, airline="IndiGo"):
    """Raw SerpAPI-shaped offer."""
    flights = [{
        "flight_number": f"{carrier} {number}",
        "airline": airline,
        "departure_airport": {"id": "DEL", "time": depart},
        "arrival_airport": {"id": "BOM", "time": arrive},
    }]
    for i in range(1, legs):
        flights.append({
            "flight_number": f"{carrier} {int(number) + i}",
            "airline": airline,
            "departure_airport": {"id": "XXX", "time": depart},
            "arrival_airport": {"id": "BOM", "time": arrive},
        })
    return {"flights": flights, "total_duration": 150, "price": price}


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """
    File-backed SQLite database per test.
    Background recordings and worker threads get their own connections.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'farecast-test.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """A session on the per-test database."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def fake_fetcher():
    """Provider chain with a single SerpAPI-shaped source; tests set `.offers`."""
    source = FakeSource("serpapi")
    return FlightPriceFetcher(sources=[source], timeout=5.0)


@pytest.fixture(scope="function")
def override_get_db(db_session):
    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    return _override_get_db


@pytest.fixture(scope="function")
async def client(override_get_db, session_factory, fake_fetcher):
    """
    Async test client with the database and provider chain overridden.
    """
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_fetcher] = lambda: fake_fetcher
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await wait_for_recordings()
    app.dependency_overrides.clear()
