"""Venue-aware clustering used by the event detector.

Two contacts are linked when they are within the distance threshold and
their accepted venues overlap, either by place id or by fuzzy name
similarity (rapidfuzz ``token_sort_ratio``).
"""

from __future__ import annotations

from rapidfuzz import fuzz

from contact_groups.grouping.domain import Contact, VenueCandidate
from contact_groups.grouping.geo import haversine_km

from .proximity import greedy_clusters


def shares_venue(
    venues_a: tuple[VenueCandidate, ...],
    venues_b: tuple[VenueCandidate, ...],
    min_name_similarity: float = 0.6,
) -> bool:
    """Return True when the two venue lists share a venue.

    A shared place id is decisive; otherwise any pair of names whose
    normalised ``token_sort_ratio`` reaches ``min_name_similarity``
    counts as the same venue.
    """
    if not venues_a or not venues_b:
        return False
    if {v.id for v in venues_a} & {v.id for v in venues_b}:
        return True
    for a in venues_a:
        for b in venues_b:
            ratio = fuzz.token_sort_ratio(a.name.lower(), b.name.lower()) / 100.0
            if ratio >= min_name_similarity:
                return True
    return False


def cluster_by_venue(
    contacts: list[Contact],
    venues_by_contact: dict[str, tuple[VenueCandidate, ...]],
    threshold_km: float = 1.0,
    min_group_size: int = 2,
    min_name_similarity: float = 0.6,
) -> list[tuple[Contact, ...]]:
    """Greedy clustering of contacts that are close *and* share a venue.

    Only contacts with a location and at least one venue in
    ``venues_by_contact`` take part.
    """
    eligible = [
        c for c in contacts
        if c.location is not None and venues_by_contact.get(c.id)
    ]

    def linked(a: Contact, b: Contact) -> bool:
        distance = haversine_km(
            a.location.latitude, a.location.longitude,
            b.location.latitude, b.location.longitude,
        )
        if distance > threshold_km:
            return False
        return shares_venue(
            venues_by_contact[a.id], venues_by_contact[b.id], min_name_similarity
        )

    return greedy_clusters(eligible, linked, min_group_size)
