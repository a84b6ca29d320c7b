"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from cryptography.fernet import Fernet
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from contact_groups.api.app import app
from contact_groups.api.deps import (
    get_db,
    get_grouping_config,
    get_lookup_client,
    get_venue_cache,
)
from contact_groups.config.settings import get_settings
from contact_groups.errors import ExternalServiceError
from contact_groups.grouping.config import GroupingConfig, SearchConfig
from contact_groups.grouping.domain import (
    Contact,
    DiscoveryMethod,
    EventInfo,
    Location,
    VenueCandidate,
)
from contact_groups.models.base import Base
from contact_groups.venues.cache import VenueCache
from contact_groups.venues.client import TextSearchResult

BASE_TIME = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def make_contact(
    contact_id: str,
    company: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    city: str | None = None,
    event: str | None = None,
    at: datetime | None = None,
) -> Contact:
    location = Location(lat, lon, city) if lat is not None and lon is not None else None
    return Contact(
        id=contact_id,
        name=f"Contact {contact_id}",
        submitted_at=at or BASE_TIME,
        company=company,
        location=location,
        event_info=EventInfo(event) if event else None,
    )


def make_venue(
    venue_id: str,
    name: str,
    lat: float = 37.7840,
    lon: float = -122.4010,
    types: tuple[str, ...] = ("convention_center",),
    rating: float | None = 4.6,
    count: int | None = 5000,
    status: str | None = "OPERATIONAL",
    method: DiscoveryMethod = DiscoveryMethod.NEARBY_SEARCH,
) -> VenueCandidate:
    return VenueCandidate(
        id=venue_id,
        name=name,
        location=Location(lat, lon),
        types=frozenset(types),
        rating=rating,
        user_rating_count=count,
        business_status=status,
        discovery_method=method,
    )


class FakeLookupClient:
    """In-memory ``VenueLookupClient`` recording every call.

    ``failing`` holds ``(lat, lon)`` pairs (rounded to 4 dp) whose
    nearby search raises ``ExternalServiceError``.  ``before_request`` is
    awaited once per simulated HTTP request, one per text query.
    ``delay_s`` keeps each nearby search in flight for that long;
    ``peak_in_flight`` records the most concurrent nearby searches.
    """

    def __init__(
        self,
        nearby: list[VenueCandidate] | None = None,
        text: list[TextSearchResult] | None = None,
        failing: set[tuple[float, float]] | None = None,
        delay_s: float = 0.0,
    ) -> None:
        self.nearby = nearby or []
        self.text = text or []
        self.failing = failing or set()
        self.nearby_calls: list[dict] = []
        self.text_calls: list[dict] = []
        self.delay_s = delay_s
        self.in_flight = 0
        self.peak_in_flight = 0

    async def search_nearby(
        self,
        center,
        radius_m,
        included_types,
        max_results=20,
        rank_preference="POPULARITY",
        before_request=None,
    ):
        if before_request is not None:
            await before_request()
        self.nearby_calls.append(
            {"center": center, "radius_m": radius_m, "types": list(included_types)}
        )
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay_s:
                await asyncio.sleep(self.delay_s)
        finally:
            self.in_flight -= 1
        if (round(center.latitude, 4), round(center.longitude, 4)) in self.failing:
            raise ExternalServiceError("boom", provider_name="fake", status_code=503)
        return list(self.nearby)

    async def contextual_text_search(self, center, query_context, before_request=None):
        if before_request is not None:
            for _ in query_context.queries:
                await before_request()
        self.text_calls.append({"center": center, "queries": list(query_context.queries)})
        return list(self.text)


def fast_config(**overrides) -> GroupingConfig:
    """Grouping config with batching delays switched off."""
    search = SearchConfig(batch_delay_ms=0, min_request_interval_ms=0)
    return GroupingConfig(search=search, **overrides)


@pytest.fixture
def token_secret(monkeypatch) -> str:
    secret = Fernet.generate_key().decode()
    monkeypatch.setenv("CONTACT_GROUPS_TOKEN_SECRET", secret)
    get_settings.cache_clear()
    yield secret
    get_settings.cache_clear()


@pytest.fixture
async def test_engine():
    """Create an async SQLite in-memory engine for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture
async def api_client(test_session_factory, token_secret):
    """Async HTTP client hitting the FastAPI app with test DB and no venue lookups."""

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    config = fast_config()
    cache = VenueCache()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_grouping_config] = lambda: config
    app.dependency_overrides[get_venue_cache] = lambda: cache
    app.dependency_overrides[get_lookup_client] = lambda: None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
