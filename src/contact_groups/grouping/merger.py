"""Overlap-based deduplication of candidate groups across strategies.

Candidates are visited in input order.  A candidate whose contact set
overlaps an already accepted group by more than the threshold (overlap =
intersection / smaller set) is absorbed into the *first* such group;
otherwise it is accepted as a new group.  The pass is greedy and
non-transitive: an absorbed candidate never triggers further merges.
"""

from __future__ import annotations

import dataclasses

import structlog

from contact_groups.grouping.domain import GroupCandidate, GroupType
from contact_groups.grouping.stats import GenerationStats

logger = structlog.get_logger()

TYPE_RANK: dict[GroupType, int] = {
    GroupType.EVENT: 3,
    GroupType.COMPANY: 2,
    GroupType.LOCATION: 1,
    GroupType.TEMPORAL: 1,
}


def overlap_ratio(a: tuple[str, ...], b: tuple[str, ...]) -> float:
    """Intersection size over the size of the smaller set."""
    set_a, set_b = set(a), set(b)
    smaller = min(len(set_a), len(set_b))
    if smaller == 0:
        return 0.0
    return len(set_a & set_b) / smaller


def group_priority(group: GroupCandidate) -> int:
    return group.confidence.rank * 10 + TYPE_RANK[group.type]


def merge_pair(accepted: GroupCandidate, candidate: GroupCandidate) -> GroupCandidate:
    """Absorb ``candidate`` into ``accepted``.

    The union keeps the accepted group's contact order first.  The
    higher-priority group supplies name, payload and discovery method;
    on a tie the accepted group wins.
    """
    winner = candidate if group_priority(candidate) > group_priority(accepted) else accepted
    confidence = max(accepted.confidence, candidate.confidence, key=lambda c: c.rank)
    reasons = [accepted.reason]
    if candidate.reason and candidate.reason not in reasons:
        reasons.append(candidate.reason)
    return dataclasses.replace(
        winner,
        contact_ids=accepted.contact_ids + candidate.contact_ids,
        confidence=confidence,
        reason="; ".join(reasons),
        merged_from=(accepted.merged_from or (accepted.name,)) + (candidate.name,),
    )


def merge_groups(
    candidates: list[GroupCandidate],
    overlap_threshold: float = 0.70,
    stats: GenerationStats | None = None,
) -> list[GroupCandidate]:
    """Deduplicate candidates, merging those that mostly overlap.

    Args:
        candidates: Candidate groups in priority order.
        overlap_threshold: Merge when the overlap ratio is strictly
            greater than this.
        stats: Run statistics; the merge count is added to ``merges``.

    Returns:
        Accepted groups in order of first acceptance.
    """
    accepted: list[GroupCandidate] = []
    merges = 0
    for candidate in candidates:
        for index, group in enumerate(accepted):
            if overlap_ratio(group.contact_ids, candidate.contact_ids) > overlap_threshold:
                accepted[index] = merge_pair(group, candidate)
                merges += 1
                logger.debug(
                    "groups_merged",
                    into=accepted[index].name,
                    absorbed=candidate.name,
                    size=accepted[index].size,
                )
                break
        else:
            accepted.append(candidate)

    if stats is not None and merges:
        stats.increment("merges", merges)
    return accepted
