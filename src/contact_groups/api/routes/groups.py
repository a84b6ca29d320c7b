"""Automatic contact group generation endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from contact_groups.api.auth import get_current_user_id
from contact_groups.api.deps import (
    get_db,
    get_grouping_config,
    get_lookup_client,
    get_venue_cache,
)
from contact_groups.api.schemas import AutoGenerateRequest, AutoGenerateResponse
from contact_groups.errors import ContactGroupsError
from contact_groups.generation.orchestrator import (
    GenerationOptions,
    GenerationOrchestrator,
    validate_options,
)
from contact_groups.generation.persistence import (
    append_groups,
    filter_new_groups,
    load_contacts,
    load_existing_group_names,
)
from contact_groups.grouping.config import GroupingConfig
from contact_groups.venues.cache import VenueCache
from contact_groups.venues.client import VenueLookupClient

logger = structlog.get_logger()

router = APIRouter(prefix="/api/contacts/groups", tags=["groups"])


def _camel_keys(data: dict) -> dict:
    return {to_camel(key): value for key, value in data.items()}


@router.post(
    "/auto-generate",
    response_model=AutoGenerateResponse,
    response_model_exclude_none=True,
)
async def auto_generate_groups(
    body: AutoGenerateRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    config: GroupingConfig = Depends(get_grouping_config),
    cache: VenueCache = Depends(get_venue_cache),
    lookup_client: VenueLookupClient | None = Depends(get_lookup_client),
):
    """Generate groups from the user's contacts and append the new ones.

    Generated groups whose name already exists for the user (ignoring
    case) are skipped.  A client disconnect stops further venue lookup
    batches; whatever was found up to then is still saved.
    """
    options = GenerationOptions(**body.options.model_dump())
    validate_options(options)
    log = logger.bind(user_id=user_id)

    try:
        contacts = await load_contacts(db, user_id)
        if not contacts:
            return AutoGenerateResponse(groups_created=0, message="No contacts to group.")

        orchestrator = GenerationOrchestrator(config, lookup_client=lookup_client, cache=cache)
        result = await orchestrator.generate(
            contacts, options, should_stop=request.is_disconnected
        )
        if not result.groups:
            return AutoGenerateResponse(
                groups_created=0, message="No new groups could be generated."
            )

        existing = await load_existing_group_names(db, user_id)
        new_groups = filter_new_groups(result.groups, existing)
        if not new_groups:
            return AutoGenerateResponse(
                groups_created=0, message="All potential groups already exist."
            )

        created = await append_groups(db, user_id, new_groups)
    except ContactGroupsError:
        raise
    except Exception as exc:
        log.error("auto_generate_failed", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to auto-generate groups", "details": str(exc)},
        )

    log.info("auto_generate_complete", created=created, skipped=len(result.groups) - created)
    analytics = _camel_keys(result.summary)
    analytics["generation"] = _camel_keys(result.stats.to_dict())
    return AutoGenerateResponse(
        groups_created=created,
        new_groups=[g.to_dict() for g in new_groups],
        analytics=analytics,
        message=f"Successfully generated {created} new groups.",
    )
