"""Top-level group generation pipeline.

Runs the enabled strategies in a fixed order (company, events, temporal,
location), merges overlapping candidates and truncates to ``max_groups``.
All venue lookups finish before clustering and merging start; those
later steps are plain single-threaded passes over the collected data.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field

import structlog

from contact_groups.clustering import cluster_by_proximity, location_groups
from contact_groups.errors import ValidationError
from contact_groups.grouping.company import group_by_company
from contact_groups.grouping.config import GroupingConfig
from contact_groups.grouping.domain import Contact, GroupCandidate
from contact_groups.grouping.merger import merge_groups
from contact_groups.grouping.stats import GenerationStats, summarize_groups
from contact_groups.grouping.temporal import temporal_groups
from contact_groups.venues.cache import VenueCache
from contact_groups.venues.client import VenueLookupClient
from contact_groups.venues.detector import EventDetector, StopCheck

logger = structlog.get_logger()


@dataclass(frozen=True)
class GenerationOptions:
    """Strategy switches and limits for one generation run."""

    group_by_company: bool = True
    group_by_location: bool = True
    group_by_events: bool = True
    group_by_time: bool = True
    min_group_size: int = 2
    max_groups: int = 50
    enhanced_event_detection: bool = False


def validate_options(options: GenerationOptions) -> None:
    """Reject malformed options before any work is done."""
    for name in (
        "group_by_company",
        "group_by_location",
        "group_by_events",
        "group_by_time",
        "enhanced_event_detection",
    ):
        if not isinstance(getattr(options, name), bool):
            raise ValidationError(f"{name} must be a boolean", field=name)

    for name in ("min_group_size", "max_groups"):
        value = getattr(options, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer", field=name)
        if value < 1:
            raise ValidationError(f"{name} must be at least 1, got {value}", field=name)


@dataclass
class GenerationResult:
    groups: list[GroupCandidate] = field(default_factory=list)
    stats: GenerationStats = field(default_factory=GenerationStats)
    summary: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "stats": self.stats.to_dict(),
            "summary": self.summary,
        }


class GenerationOrchestrator:
    """Entry point assembling candidate groups from every strategy.

    Parameters
    ----------
    config:
        Grouping configuration; defaults when omitted.
    lookup_client:
        Venue lookup service used by enhanced event detection.
    cache:
        Shared venue cache, normally the process-wide instance held on
        the application state.
    """

    def __init__(
        self,
        config: GroupingConfig | None = None,
        lookup_client: VenueLookupClient | None = None,
        cache: VenueCache | None = None,
        detector: EventDetector | None = None,
    ) -> None:
        self.config = config or GroupingConfig()
        self.detector = detector or EventDetector(
            self.config, lookup_client=lookup_client, cache=cache
        )

    async def generate(
        self,
        contacts: list[Contact],
        options: GenerationOptions | None = None,
        *,
        should_stop: StopCheck | None = None,
    ) -> GenerationResult:
        """Generate merged candidate groups for ``contacts``.

        Args:
            contacts: The user's contacts.
            options: Strategy switches and limits.
            should_stop: Polled before every venue lookup batch; once it
                reports true no further batches run and the partial
                result is returned with ``stats.cancelled`` set.

        Raises:
            ValidationError: If ``options`` are malformed.
        """
        if options is None:
            options = GenerationOptions()
        validate_options(options)

        stats = GenerationStats()
        log = logger.bind(run_id=str(uuid.uuid4())[:8], contacts=len(contacts))
        log.info("generation_start", options=options.__dict__)
        started = time.perf_counter()

        candidates: list[GroupCandidate] = []
        min_size = options.min_group_size

        if options.group_by_company:
            company = group_by_company(contacts, min_size)
            stats.increment("company_groups", len(company))
            candidates.extend(company)

        if options.group_by_events:
            candidates.extend(
                await self.detector.detect(
                    contacts,
                    stats,
                    min_group_size=min_size,
                    enhanced=options.enhanced_event_detection,
                    should_stop=should_stop,
                )
            )

        if options.group_by_time:
            temporal = temporal_groups(contacts, self.config.temporal.gap_hours, min_size)
            stats.increment("temporal_groups", len(temporal))
            candidates.extend(temporal)

        if options.group_by_location:
            clusters = cluster_by_proximity(
                contacts,
                threshold_km=self.config.cluster.proximity_threshold_km,
                min_group_size=min_size,
                transitive=self.config.cluster.transitive,
            )
            located = location_groups(clusters)
            stats.increment("location_groups", len(located))
            candidates.extend(located)

        merged = merge_groups(candidates, self.config.merge.overlap_threshold, stats)
        groups = merged[: options.max_groups]
        stats.duration_ms = (time.perf_counter() - started) * 1000

        log.info(
            "generation_complete",
            candidates=len(candidates),
            groups=len(groups),
            merges=stats.merges,
            external_calls=stats.external_calls,
            cache_hits=stats.cache_hits,
            cache_misses=stats.cache_misses,
            location_errors=len(stats.location_errors),
            cancelled=stats.cancelled,
            duration_ms=round(stats.duration_ms, 1),
        )
        self._warn_on_performance(log, stats)

        return GenerationResult(
            groups=groups,
            stats=stats,
            summary=summarize_groups(groups, contacts),
        )

    def _warn_on_performance(self, log, stats: GenerationStats) -> None:
        perf = self.config.performance
        if stats.duration_ms > perf.warn_processing_ms:
            log.warning(
                "slow_generation",
                duration_ms=round(stats.duration_ms, 1),
                threshold_ms=perf.warn_processing_ms,
            )
        if stats.external_calls > perf.warn_external_calls:
            log.warning(
                "high_external_call_count",
                external_calls=stats.external_calls,
                threshold=perf.warn_external_calls,
            )
        hit_rate = stats.cache_hit_rate
        if hit_rate is not None and hit_rate < perf.min_cache_hit_rate:
            log.warning(
                "low_cache_hit_rate",
                hit_rate=round(hit_rate, 3),
                threshold=perf.min_cache_hit_rate,
            )
