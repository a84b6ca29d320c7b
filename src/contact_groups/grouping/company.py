"""Company-based grouping.

Contacts whose company names normalise to the same key form one
``"{display} Team"`` group, where *display* is the first original
spelling seen for that key.
"""

from __future__ import annotations

import re

from contact_groups.grouping.domain import (
    CompanyPayload,
    Contact,
    DiscoveryMethod,
    GroupCandidate,
    confidence_for_size,
)

_NON_WORD = re.compile(r"[^\w]+")


def normalize_company(name: str | None) -> str:
    """Normalise a company name into a grouping key.

    Trims, lowercases and removes every non-word character (spaces and
    punctuation included), so ``"Acme Inc."`` and ``"ACME INC"`` share
    the key ``"acmeinc"``.  The function is idempotent.
    """
    if not name:
        return ""
    return _NON_WORD.sub("", name.strip().lower())


def group_by_company(
    contacts: list[Contact], min_group_size: int = 2
) -> list[GroupCandidate]:
    """Group contacts sharing a normalised company name.

    Groups are returned in order of first appearance of their key.
    """
    members: dict[str, list[str]] = {}
    display: dict[str, str] = {}

    for contact in contacts:
        key = normalize_company(contact.company)
        if not key:
            continue
        if key not in members:
            members[key] = []
            display[key] = contact.company.strip()
        members[key].append(contact.id)

    groups: list[GroupCandidate] = []
    for key, ids in members.items():
        unique_ids = list(dict.fromkeys(ids))
        if len(unique_ids) < min_group_size:
            continue
        name = display[key]
        groups.append(
            GroupCandidate(
                name=f"{name} Team",
                contact_ids=tuple(unique_ids),
                confidence=confidence_for_size(len(unique_ids)),
                reason=f"{len(unique_ids)} contacts work at {name}",
                discovery_method=DiscoveryMethod.COMPANY_NAME,
                payload=CompanyPayload(company_name=name, normalized_key=key),
            )
        )
    return groups
