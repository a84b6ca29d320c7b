"""FastAPI application for the contact group generation API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from contact_groups.api.routes.groups import router as groups_router
from contact_groups.api.routes.health import router as health_router
from contact_groups.config.settings import get_settings
from contact_groups.db.engine import dispose_engine
from contact_groups.errors import (
    AuthenticationError,
    ConfigurationError,
    ContactGroupsError,
    PersistenceError,
    ValidationError,
)
from contact_groups.grouping.config import load_grouping_config
from contact_groups.logging_config import configure_logging
from contact_groups.venues.cache import VenueCache
from contact_groups.venues.client import PlacesApiClient

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the process-wide grouping config, venue cache and HTTP client."""
    settings = get_settings()
    configure_logging(json_output=settings.log_json, log_level=settings.log_level)

    config = load_grouping_config(settings.grouping_config_path)
    app.state.grouping_config = config
    app.state.venue_cache = VenueCache(
        ttl_seconds=config.cache.ttl_hours * 3600,
        max_entries=config.cache.max_entries,
    )

    async with httpx.AsyncClient() as http_client:
        app.state.lookup_client = None
        if settings.places_api_key:
            app.state.lookup_client = PlacesApiClient(
                http_client,
                api_key=settings.places_api_key,
                base_url=settings.places_base_url,
                timeout=settings.places_timeout_seconds,
            )
        logger.info(
            "api_startup",
            venue_lookup_enabled=app.state.lookup_client is not None,
            config_path=str(settings.grouping_config_path),
        )
        yield
    await dispose_engine()
    logger.info("api_shutdown", cache=app.state.venue_cache.stats())


app = FastAPI(title="Contact Groups API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid options", "details": exc.message, "field": exc.field},
    )


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"error": "Unauthorized", "details": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    logger.error("configuration_error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=500, content={"error": "Server misconfigured"})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("persistence_error", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to auto-generate groups", "details": exc.message},
    )


@app.exception_handler(ContactGroupsError)
async def contact_groups_error_handler(
    request: Request, exc: ContactGroupsError
) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to auto-generate groups", "details": str(exc)},
    )


app.include_router(health_router)
app.include_router(groups_router)
