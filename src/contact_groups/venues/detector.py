"""Event detection: explicit event metadata plus venue-based discovery.

Three passes:

1. **Metadata** -- contacts sharing a trimmed ``eventInfo.eventName``.
2. **Venue lookup** -- distinct contact locations are looked up in
   batches through a :class:`VenueLookupClient`, behind the venue cache,
   a concurrency semaphore and a fixed-interval rate limiter.  Thin
   nearby results trigger a contextual text-search fallback.  Every HTTP
   request, each text query included, waits on the limiter and counts as
   one external call.
3. **Venue clustering** -- located contacts that are close together and
   share a venue become ``"{venue} Attendees"`` groups.

A failure at one location is logged and recorded in the run stats; the
other locations are still processed.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog

from contact_groups.clustering import cluster_by_venue
from contact_groups.errors import ExternalServiceError
from contact_groups.grouping.config import GroupingConfig
from contact_groups.grouping.domain import (
    Confidence,
    Contact,
    DiscoveryMethod,
    EventPayload,
    GroupCandidate,
    Location,
    VenueCandidate,
    confidence_for_score,
)
from contact_groups.grouping.geo import is_valid_location
from contact_groups.grouping.stats import GenerationStats

from .cache import VenueCache
from .client import QueryContext, VenueLookupClient
from .radius import generate_contextual_queries, search_parameters, should_process_location
from .rate_limit import RateLimiter
from .scorer import apply_score, is_accepted

logger = structlog.get_logger()

StopCheck = Callable[[], "bool | Awaitable[bool]"]


def location_key(location: Location) -> str:
    """Dedup key for lookups: coordinates at 4 decimal places (~11 m)."""
    return f"{location.latitude:.4f},{location.longitude:.4f}"


async def _should_stop(check: StopCheck | None) -> bool:
    if check is None:
        return False
    result = check()
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


class EventDetector:
    """Detects event groups from metadata and, optionally, venue lookups.

    Parameters
    ----------
    config:
        Grouping configuration (scoring, thresholds, search, clustering).
    lookup_client:
        Venue lookup service; without one only the metadata pass runs.
    cache:
        Shared venue cache.  A private cache is created when omitted.
    sleep:
        Awaitable used for the inter-batch delay.
    """

    def __init__(
        self,
        config: GroupingConfig | None = None,
        lookup_client: VenueLookupClient | None = None,
        cache: VenueCache | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or GroupingConfig()
        self.lookup_client = lookup_client
        self.cache = cache or VenueCache(
            ttl_seconds=self.config.cache.ttl_hours * 3600,
            max_entries=self.config.cache.max_entries,
        )
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Metadata pass
    # ------------------------------------------------------------------

    def metadata_groups(
        self, contacts: list[Contact], min_group_size: int = 2
    ) -> list[GroupCandidate]:
        by_event: dict[str, list[str]] = {}
        for contact in contacts:
            if contact.event_info is None:
                continue
            name = contact.event_info.event_name.strip()
            if name:
                by_event.setdefault(name, []).append(contact.id)

        groups = []
        for name, ids in by_event.items():
            unique_ids = tuple(dict.fromkeys(ids))
            if len(unique_ids) < min_group_size:
                continue
            groups.append(
                GroupCandidate(
                    name=name,
                    contact_ids=unique_ids,
                    confidence=Confidence.HIGH,
                    reason=f"{len(unique_ids)} contacts tagged with event {name!r}",
                    discovery_method=DiscoveryMethod.METADATA,
                    payload=EventPayload(source="metadata", event_name=name),
                )
            )
        return groups

    # ------------------------------------------------------------------
    # Venue lookup pass
    # ------------------------------------------------------------------

    def _score_all(
        self, raw: list[VenueCandidate], method: DiscoveryMethod, hour: int | None
    ) -> list[VenueCandidate]:
        accepted = []
        for candidate in raw:
            scored = apply_score(
                candidate,
                method,
                hour=hour,
                tables=self.config.scoring,
                weights=self.config.weights,
                thresholds=self.config.thresholds,
            )
            if is_accepted(scored.event_score, method, self.config.thresholds):
                accepted.append(scored)
        return accepted

    async def _lookup_location(
        self,
        location: Location,
        when: datetime | None,
        stats: GenerationStats,
        semaphore: asyncio.Semaphore,
        limiter: RateLimiter,
    ) -> tuple[VenueCandidate, ...]:
        search = self.config.search
        params = search_parameters(location, when, self.config.radius, search)

        cached = self.cache.get(location.latitude, location.longitude, params.radius_m, params.types)
        if cached is not None:
            stats.increment("cache_hits")
            return cached
        stats.increment("cache_misses")

        hour = when.hour if when is not None else None
        complete = True

        async def before_request() -> None:
            await limiter.wait()
            stats.increment("external_calls")

        async with semaphore:
            raw = await self.lookup_client.search_nearby(
                location,
                params.radius_m,
                list(params.types),
                max_results=search.max_results_per_location,
                rank_preference=search.rank_preference,
                before_request=before_request,
            )
            venues = self._score_all(raw, DiscoveryMethod.NEARBY_SEARCH, hour)

            if len(venues) < search.min_venues_before_text_search and when is not None:
                text = self.config.text_search
                context = QueryContext(
                    queries=tuple(
                        generate_contextual_queries(location.city, when, params.types, text)
                    ),
                    radius_m=text.radius_m,
                    max_results=text.max_results,
                )
                try:
                    results = await self.lookup_client.contextual_text_search(
                        location, context, before_request=before_request
                    )
                except ExternalServiceError as exc:
                    # Nearby results stand on their own; the partial
                    # list is not cached so a later run can retry.
                    complete = False
                    results = []
                    logger.warning(
                        "text_search_fallback_failed",
                        location=location_key(location),
                        error=str(exc),
                    )
                    stats.record_location_error(location_key(location), str(exc))
                seen = {v.id for v in venues}
                for result in results:
                    for venue in self._score_all(result.places, DiscoveryMethod.TEXT_SEARCH, hour):
                        if venue.id not in seen:
                            seen.add(venue.id)
                            venues.append(venue)

        venues.sort(key=lambda v: v.event_score, reverse=True)
        found = tuple(venues)
        if complete:
            self.cache.set(
                location.latitude, location.longitude, params.radius_m, params.types, found
            )
        logger.debug(
            "venue_lookup_complete",
            location=location_key(location),
            radius_m=params.radius_m,
            known_event=params.known_event.key if params.known_event else None,
            venues=len(found),
        )
        return found

    async def lookup_venues(
        self,
        contacts: list[Contact],
        stats: GenerationStats,
        should_stop: StopCheck | None = None,
    ) -> dict[str, tuple[VenueCandidate, ...]]:
        """Look up venues for every located contact.

        Returns a mapping of contact id to the accepted venues near the
        contact, best score first.  Contacts whose lookup failed are
        absent from the mapping.
        """
        if self.lookup_client is None:
            return {}
        search = self.config.search

        # Distinct locations in first-seen order, with the earliest
        # submission time seen at each.
        members: dict[str, list[str]] = {}
        locations: dict[str, Location] = {}
        first_seen: dict[str, datetime] = {}
        for contact in contacts:
            loc = contact.location
            if loc is None or not is_valid_location(loc.latitude, loc.longitude):
                continue
            key = location_key(loc)
            if key not in locations:
                locations[key] = loc
                first_seen[key] = contact.submitted_at
                members[key] = []
            members[key].append(contact.id)

        # Locations within the minimum distance of an earlier one reuse
        # its lookup.
        representative: dict[str, str] = {}
        to_process: list[str] = []
        for key, loc in locations.items():
            nearby = next(
                (
                    other for other in to_process
                    if not should_process_location(
                        loc, [locations[other]], search.min_distance_between_locations_m
                    )
                ),
                None,
            )
            if nearby is None:
                to_process.append(key)
                representative[key] = key
            else:
                representative[key] = nearby
                stats.increment("locations_skipped")

        semaphore = asyncio.Semaphore(search.max_concurrent_requests)
        limiter = RateLimiter(search.min_request_interval_ms / 1000.0)
        venues_by_location: dict[str, tuple[VenueCandidate, ...]] = {}

        batches = [
            to_process[i:i + search.batch_size]
            for i in range(0, len(to_process), max(search.batch_size, 1))
        ]
        for index, batch in enumerate(batches):
            if await _should_stop(should_stop):
                stats.mark_cancelled()
                logger.info(
                    "venue_lookup_cancelled",
                    batches_done=index,
                    batches_total=len(batches),
                )
                break

            results = await asyncio.gather(
                *[
                    self._lookup_location(
                        locations[key], first_seen[key], stats, semaphore, limiter
                    )
                    for key in batch
                ],
                return_exceptions=True,
            )
            for key, result in zip(batch, results):
                stats.increment("locations_processed")
                if isinstance(result, Exception):
                    logger.warning("venue_lookup_failed", location=key, error=str(result))
                    stats.record_location_error(key, str(result))
                    continue
                venues_by_location[key] = result
                stats.increment("venues_found", len(result))

            if index < len(batches) - 1 and search.batch_delay_ms > 0:
                await self._sleep(search.batch_delay_ms / 1000.0)

        venues_by_contact: dict[str, tuple[VenueCandidate, ...]] = {}
        for key, contact_ids in members.items():
            venues = venues_by_location.get(representative[key])
            if not venues:
                continue
            for contact_id in contact_ids:
                venues_by_contact[contact_id] = venues
        return venues_by_contact

    # ------------------------------------------------------------------
    # Venue clustering pass
    # ------------------------------------------------------------------

    def venue_groups(
        self,
        contacts: list[Contact],
        venues_by_contact: dict[str, tuple[VenueCandidate, ...]],
        min_group_size: int = 2,
    ) -> list[GroupCandidate]:
        cluster_cfg = self.config.cluster
        thresholds = self.config.thresholds
        clusters = cluster_by_venue(
            contacts,
            venues_by_contact,
            threshold_km=cluster_cfg.event_threshold_km,
            min_group_size=min_group_size,
            min_name_similarity=cluster_cfg.min_venue_name_similarity,
        )

        groups = []
        for members in clusters:
            best: dict[str, VenueCandidate] = {}
            for contact in members:
                for venue in venues_by_contact[contact.id]:
                    current = best.get(venue.id)
                    if current is None or venue.event_score > current.event_score:
                        best[venue.id] = venue
            venues = sorted(best.values(), key=lambda v: v.event_score, reverse=True)
            primary = venues[0]
            average = sum(v.event_score for v in venues) / len(venues)
            groups.append(
                GroupCandidate(
                    name=f"{primary.name} Attendees",
                    contact_ids=tuple(c.id for c in members),
                    confidence=confidence_for_score(
                        average, thresholds.high_confidence, thresholds.medium_confidence
                    ),
                    reason=(
                        f"{len(members)} contacts met near {primary.name} "
                        f"(venue score {primary.event_score:.2f})"
                    ),
                    discovery_method=DiscoveryMethod.VENUE_CLUSTERING,
                    payload=EventPayload(
                        source="venue_detection",
                        primary_venue=primary.name,
                        venue_ids=tuple(v.id for v in venues),
                        venue_names=tuple(v.name for v in venues),
                        average_score=average,
                    ),
                )
            )
        return groups

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def detect(
        self,
        contacts: list[Contact],
        stats: GenerationStats,
        *,
        min_group_size: int = 2,
        enhanced: bool = False,
        should_stop: StopCheck | None = None,
    ) -> list[GroupCandidate]:
        """Run the metadata pass and, when enabled, the venue passes."""
        groups = self.metadata_groups(contacts, min_group_size)
        stats.increment("metadata_event_groups", len(groups))

        if not enhanced or self.lookup_client is None:
            return groups

        venues_by_contact = await self.lookup_venues(contacts, stats, should_stop)
        venue_groups = self.venue_groups(contacts, venues_by_contact, min_group_size)
        stats.increment("venue_event_groups", len(venue_groups))
        return groups + venue_groups
