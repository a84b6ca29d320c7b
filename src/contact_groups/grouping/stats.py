"""Per-run statistics accumulator and group summary helpers."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field, fields

from contact_groups.grouping.domain import Contact, GroupCandidate

_COUNTER_FIELDS = frozenset(
    {
        "company_groups",
        "metadata_event_groups",
        "venue_event_groups",
        "location_groups",
        "temporal_groups",
        "merges",
        "cache_hits",
        "cache_misses",
        "external_calls",
        "venues_found",
        "locations_processed",
        "locations_skipped",
    }
)


@dataclass
class GenerationStats:
    """Counters for one generation run.

    Workers must go through :meth:`increment` and
    :meth:`record_location_error`; both are lock-guarded so concurrent
    lookups never race on the counters.

    Attributes:
        company_groups: Candidates produced by the company grouper.
        metadata_event_groups: Candidates from explicit event names.
        venue_event_groups: Candidates from venue-lookup clustering.
        location_groups: Candidates from the proximity clusterer.
        temporal_groups: Candidates from the temporal clusterer.
        merges: Candidates absorbed by the group merger.
        cache_hits: Venue cache hits during this run.
        cache_misses: Venue cache misses during this run.
        external_calls: Venue lookup operations issued.
        venues_found: Accepted venue candidates across all locations.
        locations_processed: Distinct locations looked up.
        locations_skipped: Locations skipped as too close to a processed one.
        location_errors: One entry per failed location lookup.
        cancelled: Set when the run stopped issuing batches early.
        duration_ms: Wall time of the run.
    """

    company_groups: int = 0
    metadata_event_groups: int = 0
    venue_event_groups: int = 0
    location_groups: int = 0
    temporal_groups: int = 0
    merges: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    external_calls: int = 0
    venues_found: int = 0
    locations_processed: int = 0
    locations_skipped: int = 0
    location_errors: list[dict] = field(default_factory=list)
    cancelled: bool = False
    duration_ms: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in _COUNTER_FIELDS:
            raise KeyError(f"Unknown stats counter: {name}")
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)

    def record_location_error(self, location_key: str, error: str) -> None:
        with self._lock:
            self.location_errors.append({"location": location_key, "error": error})

    def mark_cancelled(self) -> None:
        with self._lock:
            self.cancelled = True

    @property
    def cache_hit_rate(self) -> float | None:
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return None
        return self.cache_hits / lookups

    def to_dict(self) -> dict:
        with self._lock:
            data = {
                f.name: getattr(self, f.name)
                for f in fields(self)
                if not f.name.startswith("_")
            }
            data["location_errors"] = [dict(e) for e in self.location_errors]
        data["cache_hit_rate"] = self.cache_hit_rate
        return data


def summarize_groups(groups: list[GroupCandidate], contacts: list[Contact]) -> dict:
    """Aggregate size/type statistics over a list of groups."""
    type_counts = Counter(g.type.value for g in groups)
    grouped_ids: set[str] = set()
    largest = None
    smallest = None
    for group in groups:
        grouped_ids.update(group.contact_ids)
        if largest is None or group.size > largest["size"]:
            largest = {"name": group.name, "size": group.size}
        if smallest is None or group.size < smallest["size"]:
            smallest = {"name": group.name, "size": group.size}

    average = round(sum(g.size for g in groups) / len(groups), 1) if groups else 0.0
    return {
        "total_groups": len(groups),
        "total_contacts_in_groups": len(grouped_ids),
        "average_group_size": average,
        "largest_group": largest,
        "smallest_group": smallest,
        "group_types": dict(type_counts),
        "ungrouped_contacts": len({c.id for c in contacts} - grouped_ids),
    }
