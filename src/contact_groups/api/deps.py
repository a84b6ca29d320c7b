"""FastAPI dependencies: DB session, grouping config, venue lookup."""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from contact_groups.db.session import get_session_factory
from contact_groups.grouping.config import GroupingConfig
from contact_groups.venues.cache import VenueCache
from contact_groups.venues.client import VenueLookupClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session for request handling."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_grouping_config(request: Request) -> GroupingConfig:
    return request.app.state.grouping_config


def get_venue_cache(request: Request) -> VenueCache:
    return request.app.state.venue_cache


def get_lookup_client(request: Request) -> VenueLookupClient | None:
    """The shared Places client, or ``None`` when no API key is configured."""
    return getattr(request.app.state, "lookup_client", None)
