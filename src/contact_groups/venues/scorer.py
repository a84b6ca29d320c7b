"""Event-likelihood scoring for venue candidates.

Combines five weighted signals into a score in [0, 1]:

- **venue type** -- highest priority among the venue's known types, / 10
- **name keywords** -- share of event keywords present in the name
- **quality** -- operational status, rating and review volume
- **temporal** -- hour-of-day multiplier
- **discovery method** -- text search results get a larger bonus than
  nearby search results
"""

from __future__ import annotations

import dataclasses

from contact_groups.grouping.config import ScoringTables, ThresholdConfig, VenueScoringWeights
from contact_groups.grouping.domain import (
    DiscoveryMethod,
    VenueCandidate,
    confidence_for_score,
)


def venue_type_score(types: frozenset[str] | set[str], tables: ScoringTables) -> float:
    """Max priority over the venue's known types, scaled to [0, 1].

    Unknown types contribute nothing; a known type without an explicit
    priority counts as the ``default`` priority (1).
    """
    known = set(tables.known_venue_types) | (set(tables.type_priorities) - {"default"})
    default_priority = tables.type_priorities.get("default", 1)
    best = 0
    for venue_type in types:
        if venue_type not in known:
            continue
        best = max(best, tables.type_priorities.get(venue_type, default_priority))
    return min(best / 10.0, 1.0)


def name_keyword_score(name: str, tables: ScoringTables) -> float:
    keywords = tables.name_keywords
    if not keywords or not name:
        return 0.0
    lowered = name.lower()
    matches = sum(1 for kw in keywords if kw in lowered)
    return min(matches / len(keywords) * 2, 1.0)


def quality_score(candidate: VenueCandidate, tables: ScoringTables) -> float:
    score = 0.0
    if candidate.business_status == "OPERATIONAL":
        score += 0.3
    if candidate.rating is not None and candidate.rating >= tables.min_rating_for_bonus:
        score += candidate.rating / 5.0 * 0.4
    count = candidate.user_rating_count
    if count is not None and count >= tables.min_review_count_for_bonus:
        score += min(count / tables.review_count_saturation, 1.0) * 0.3
    return score


def temporal_score(hour: int | None, tables: ScoringTables) -> float:
    if hour is None:
        return tables.default_hour_multiplier
    return tables.hour_multipliers.get(hour, tables.default_hour_multiplier)


def discovery_bonus(method: DiscoveryMethod, tables: ScoringTables) -> float:
    if method == DiscoveryMethod.TEXT_SEARCH:
        return tables.text_search_bonus
    return tables.nearby_search_bonus


def score_venue(
    candidate: VenueCandidate,
    discovery_method: DiscoveryMethod,
    *,
    hour: int | None = None,
    tables: ScoringTables | None = None,
    weights: VenueScoringWeights | None = None,
) -> float:
    """Compute the event score of a venue candidate.

    Args:
        candidate: The venue to score.
        discovery_method: How the venue was found.
        hour: Local hour of the contact submission; ``None`` uses the
            default hour multiplier.
        tables: Scoring lookup tables (defaults if omitted).
        weights: Signal weights (defaults if omitted).

    Returns:
        Weighted score clamped to [0, 1].
    """
    if tables is None:
        tables = ScoringTables()
    if weights is None:
        weights = VenueScoringWeights()

    total = (
        weights.venue_type * venue_type_score(candidate.types, tables)
        + weights.name_keywords * name_keyword_score(candidate.name, tables)
        + weights.quality * quality_score(candidate, tables)
        + weights.temporal * temporal_score(hour, tables)
        + weights.discovery_method * discovery_bonus(discovery_method, tables)
    )
    return max(0.0, min(total, 1.0))


def is_accepted(
    score: float, discovery_method: DiscoveryMethod, thresholds: ThresholdConfig | None = None
) -> bool:
    """Whether a scored venue qualifies as a likely event venue."""
    if thresholds is None:
        thresholds = ThresholdConfig()
    if discovery_method == DiscoveryMethod.TEXT_SEARCH:
        return score > thresholds.text_min_score
    return score > thresholds.nearby_min_score


def apply_score(
    candidate: VenueCandidate,
    discovery_method: DiscoveryMethod,
    *,
    hour: int | None = None,
    tables: ScoringTables | None = None,
    weights: VenueScoringWeights | None = None,
    thresholds: ThresholdConfig | None = None,
) -> VenueCandidate:
    """Return a copy of ``candidate`` carrying its score and confidence."""
    if thresholds is None:
        thresholds = ThresholdConfig()
    score = score_venue(
        candidate, discovery_method, hour=hour, tables=tables, weights=weights
    )
    return dataclasses.replace(
        candidate,
        discovery_method=discovery_method,
        event_score=score,
        confidence=confidence_for_score(
            score, thresholds.high_confidence, thresholds.medium_confidence
        ),
    )
