"""Contact loading and generated-group persistence.

Provides the storage side of auto-generation:

- ``load_contacts``: a user's stored contacts as pipeline ``Contact`` objects.
- ``load_existing_group_names``: lower-cased names of the user's groups.
- ``filter_new_groups``: drop generated groups whose name already exists.
- ``append_groups``: write new groups in a single transaction.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from contact_groups.errors import PersistenceError
from contact_groups.grouping.domain import Contact, EventInfo, GroupCandidate, Location
from contact_groups.models.contact import ContactRecord
from contact_groups.models.contact_group import ContactGroupRecord

logger = structlog.get_logger()


def _to_contact(record: ContactRecord) -> Contact:
    location = None
    if record.latitude is not None and record.longitude is not None:
        location = Location(
            latitude=record.latitude, longitude=record.longitude, city=record.city
        )
    return Contact(
        id=record.id,
        name=record.name or "",
        submitted_at=record.submitted_at,
        company=record.company,
        location=location,
        event_info=EventInfo(event_name=record.event_name) if record.event_name else None,
    )


async def load_contacts(session: AsyncSession, user_id: str) -> list[Contact]:
    """Load a user's contacts ordered by submission time."""
    try:
        result = await session.execute(
            select(ContactRecord)
            .where(ContactRecord.user_id == user_id)
            .order_by(ContactRecord.submitted_at, ContactRecord.id)
        )
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to load contacts: {exc}") from exc
    return [_to_contact(r) for r in result.scalars().all()]


async def load_existing_group_names(session: AsyncSession, user_id: str) -> set[str]:
    """Return the user's existing group names, lower-cased and trimmed."""
    try:
        result = await session.execute(
            select(ContactGroupRecord.name).where(ContactGroupRecord.user_id == user_id)
        )
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to load existing groups: {exc}") from exc
    return {name.strip().lower() for name in result.scalars().all() if name}


def filter_new_groups(
    groups: list[GroupCandidate], existing_names: set[str]
) -> list[GroupCandidate]:
    """Keep groups whose name matches no existing group, ignoring case.

    A name repeated within ``groups`` is only kept the first time.
    """
    seen = {name.strip().lower() for name in existing_names}
    new_groups = []
    for group in groups:
        key = group.name.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        new_groups.append(group)
    return new_groups


async def append_groups(
    session: AsyncSession, user_id: str, groups: list[GroupCandidate]
) -> int:
    """Insert ``groups`` for ``user_id`` and commit.

    Raises:
        PersistenceError: If the write fails; nothing is committed.
    """
    records = [
        ContactGroupRecord(
            user_id=user_id,
            name=group.name,
            group_type=group.type.value,
            contact_ids=list(group.contact_ids),
            confidence=group.confidence.value,
            reason=group.reason,
            discovery_method=group.discovery_method.value,
            payload=group.payload.to_dict(),
            auto_generated=True,
        )
        for group in groups
    ]
    try:
        session.add_all(records)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("append_groups_failed", user_id=user_id, error=str(exc))
        raise PersistenceError(f"Failed to save generated groups: {exc}") from exc

    logger.info("groups_appended", user_id=user_id, count=len(records))
    return len(records)
