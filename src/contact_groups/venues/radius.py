"""Search radius selection, known-event detection and query generation.

The nearby search radius starts from the largest base radius of the
requested venue types and is scaled by a city density multiplier and
by the mean of the weekday, hour and season multipliers for the time of
contact.  Major recurring events (CES, SXSW, ...) override the computed
radius and types when the contact falls inside one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from itertools import zip_longest

from contact_groups.grouping.config import RadiusConfig, SearchConfig, TextSearchConfig
from contact_groups.grouping.domain import Location
from contact_groups.grouping.geo import haversine_m


@dataclass(frozen=True)
class KnownEvent:
    key: str
    description: str
    radius_m: int
    types: tuple[str, ...]


@dataclass(frozen=True)
class SearchParameters:
    """Resolved nearby-search parameters for one location."""

    radius_m: int
    types: tuple[str, ...]
    known_event: KnownEvent | None = None


def _city_key(city: str) -> str:
    return " ".join(city.strip().lower().replace("_", " ").split())


def _city_lookup(table: dict, city: str | None):
    if not city:
        return None
    key = _city_key(city)
    if key in table:
        return table[key]
    return table.get(key.replace(" ", "_"))


def optimal_radius(
    types: list[str] | tuple[str, ...],
    city: str | None = None,
    when: datetime | None = None,
    config: RadiusConfig | None = None,
) -> int:
    """Compute the nearby-search radius in meters.

    Args:
        types: Venue types the search will request.
        city: City name of the contact, if known.
        when: Time of contact; ``None`` skips temporal scaling.
        config: Radius tables and bounds.

    Returns:
        The radius rounded to whole meters and clamped to
        ``[min_radius_m, max_radius_m]``.
    """
    if config is None:
        config = RadiusConfig()

    default = config.base_radius_m.get("default", 1000)
    base = max((config.base_radius_m.get(t, default) for t in types), default=default)

    city_multiplier = _city_lookup(config.city_multipliers, city) or 1.0

    temporal = 1.0
    if when is not None:
        factors = (
            config.weekday_multipliers.get(when.weekday(), 1.0),
            config.hour_multipliers.get(when.hour, 1.0),
            config.seasonal_multipliers.get(when.month, 1.0),
        )
        temporal = sum(factors) / len(factors)

    radius = round(base * city_multiplier * temporal)
    return max(config.min_radius_m, min(radius, config.max_radius_m))


def detect_known_event(
    city: str | None, when: datetime | None, config: RadiusConfig | None = None
) -> KnownEvent | None:
    """Return the recurring event happening in ``city`` on ``when``, if any."""
    if not city or when is None:
        return None
    if config is None:
        config = RadiusConfig()

    key = _city_key(city)
    for event_key, event in config.known_events.items():
        if _city_key(event["city"]) != key:
            continue
        if event["month"] == when.month and when.day in event["days"]:
            return KnownEvent(
                key=event_key,
                description=event.get("description", event_key),
                radius_m=int(event["radius_m"]),
                types=tuple(event["types"]),
            )
    return None


def search_parameters(
    location: Location,
    when: datetime | None,
    radius_config: RadiusConfig | None = None,
    search_config: SearchConfig | None = None,
) -> SearchParameters:
    """Resolve radius and venue types for a nearby search at ``location``."""
    if radius_config is None:
        radius_config = RadiusConfig()
    if search_config is None:
        search_config = SearchConfig()

    known = detect_known_event(location.city, when, radius_config)
    if known is not None:
        return SearchParameters(radius_m=known.radius_m, types=known.types, known_event=known)

    types = tuple(search_config.search_types)
    return SearchParameters(
        radius_m=optimal_radius(types, location.city, when, radius_config),
        types=types,
    )


def _fill_placeholders(template: str, when: datetime) -> str:
    return (
        template.replace("{currentDate}", when.date().isoformat())
        .replace("{currentMonth}", when.strftime("%B"))
        .replace("{currentYear}", str(when.year))
    )


def generate_contextual_queries(
    city: str | None,
    when: datetime,
    types: list[str] | tuple[str, ...] = (),
    config: TextSearchConfig | None = None,
) -> list[str]:
    """Build text-search queries for the contextual fallback.

    Current-event and business templates always apply; tech and cultural
    templates apply when ``types`` includes a matching venue type, and
    city templates when the city has any.  Categories are interleaved so
    each one is represented before the ``max_queries`` cap, and
    duplicates are removed.
    """
    if config is None:
        config = TextSearchConfig()

    categories = [
        config.templates.get("current_events", []),
        config.templates.get("business_events", []),
    ]
    type_set = set(types)
    if type_set & set(config.tech_venue_types):
        categories.append(config.templates.get("tech_conferences", []))
    if type_set & set(config.cultural_venue_types):
        categories.append(config.templates.get("cultural_events", []))
    city_templates = _city_lookup(config.city_templates, city)
    if city_templates:
        categories.append(city_templates)

    queries: list[str] = []
    for row in zip_longest(*categories):
        for template in row:
            if template is None:
                continue
            query = _fill_placeholders(template, when)
            if query not in queries:
                queries.append(query)
            if len(queries) >= config.max_queries:
                return queries
    return queries


def should_process_location(
    location: Location,
    processed: list[Location],
    min_distance_m: float = 100.0,
) -> bool:
    """False when ``location`` is closer than ``min_distance_m`` to a processed one."""
    return not any(
        haversine_m(location.latitude, location.longitude, p.latitude, p.longitude)
        < min_distance_m
        for p in processed
    )
