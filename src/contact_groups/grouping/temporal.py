"""Submission-time clustering.

Contacts are bucketed by the calendar date of ``submitted_at``; inside a
day they are sorted and split wherever two consecutive submissions are
more than ``gap_hours`` apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from contact_groups.grouping.domain import (
    Contact,
    DiscoveryMethod,
    GroupCandidate,
    TemporalPayload,
    confidence_for_size,
)


@dataclass(frozen=True)
class TemporalCluster:
    """A same-day run of contacts with bounded gaps between submissions."""

    day: date
    contacts: tuple[Contact, ...]

    @property
    def start(self) -> datetime:
        return self.contacts[0].submitted_at

    @property
    def end(self) -> datetime:
        return self.contacts[-1].submitted_at

    @property
    def span(self) -> timedelta:
        return self.end - self.start


def cluster_by_time(
    contacts: list[Contact],
    gap_hours: float = 3.0,
    min_group_size: int = 2,
) -> list[TemporalCluster]:
    """Split contacts into same-day runs separated by gaps over ``gap_hours``.

    Days are processed in chronological order; contacts sharing an
    identical timestamp keep their input order.
    """
    max_gap = timedelta(hours=gap_hours)
    by_day: dict[date, list[Contact]] = {}
    for contact in contacts:
        by_day.setdefault(contact.submitted_at.date(), []).append(contact)

    clusters: list[TemporalCluster] = []
    for day in sorted(by_day):
        ordered = sorted(by_day[day], key=lambda c: c.submitted_at)
        run: list[Contact] = [ordered[0]]
        for prev, current in zip(ordered, ordered[1:]):
            if current.submitted_at - prev.submitted_at <= max_gap:
                run.append(current)
                continue
            if len(run) >= min_group_size:
                clusters.append(TemporalCluster(day=day, contacts=tuple(run)))
            run = [current]
        if len(run) >= min_group_size:
            clusters.append(TemporalCluster(day=day, contacts=tuple(run)))
    return clusters


def temporal_groups(
    contacts: list[Contact],
    gap_hours: float = 3.0,
    min_group_size: int = 2,
) -> list[GroupCandidate]:
    """Turn temporal clusters into ``temporal`` group candidates."""
    groups = []
    for cluster in cluster_by_time(contacts, gap_hours, min_group_size):
        size = len(cluster.contacts)
        window = f"{cluster.start:%H:%M}-{cluster.end:%H:%M}"
        groups.append(
            GroupCandidate(
                name=f"Met on {cluster.day:%b %d, %Y} ({window})",
                contact_ids=tuple(c.id for c in cluster.contacts),
                confidence=confidence_for_size(size),
                reason=(
                    f"{size} contacts added on {cluster.day.isoformat()} "
                    f"within {cluster.span.total_seconds() / 3600:.1f}h"
                ),
                discovery_method=DiscoveryMethod.TEMPORAL,
                payload=TemporalPayload(day=cluster.day, start=cluster.start, end=cluster.end),
            )
        )
    return groups
