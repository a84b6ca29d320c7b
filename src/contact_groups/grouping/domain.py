"""Domain types for contact group generation.

Contacts and venue candidates are immutable inputs; a ``GroupCandidate``
pairs a contact-id set with exactly one typed payload, and the payload
class determines the group type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Union


class GroupType(str, Enum):
    COMPANY = "company"
    LOCATION = "location"
    EVENT = "event"
    TEMPORAL = "temporal"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {Confidence.LOW: 1, Confidence.MEDIUM: 2, Confidence.HIGH: 3}


class DiscoveryMethod(str, Enum):
    METADATA = "metadata"
    NEARBY_SEARCH = "nearby_search"
    TEXT_SEARCH = "text_search"
    VENUE_CLUSTERING = "venue_clustering"
    COMPANY_NAME = "company_name"
    PROXIMITY = "proximity"
    TEMPORAL = "temporal"


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    city: str | None = None


@dataclass(frozen=True)
class EventInfo:
    event_name: str


@dataclass(frozen=True)
class Contact:
    """A single contact as handed to the pipeline by the calling system."""

    id: str
    name: str
    submitted_at: datetime
    company: str | None = None
    location: Location | None = None
    event_info: EventInfo | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Contact":
        """Build a contact from the camelCase JSON shape used by the API and CLI."""
        loc = data.get("location") or None
        location = None
        if loc and loc.get("latitude") is not None and loc.get("longitude") is not None:
            location = Location(
                latitude=float(loc["latitude"]),
                longitude=float(loc["longitude"]),
                city=loc.get("city"),
            )
        info = data.get("eventInfo") or None
        event_info = None
        if info and info.get("eventName"):
            event_info = EventInfo(event_name=info["eventName"])
        submitted = data["submittedAt"]
        if isinstance(submitted, str):
            submitted = datetime.fromisoformat(submitted.replace("Z", "+00:00"))
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            submitted_at=submitted,
            company=data.get("company") or None,
            location=location,
            event_info=event_info,
        )


@dataclass(frozen=True)
class VenueCandidate:
    """A place returned by a venue lookup, not yet confirmed as event-worthy."""

    id: str
    name: str
    location: Location
    types: frozenset[str] = frozenset()
    rating: float | None = None
    user_rating_count: int | None = None
    business_status: str | None = None
    formatted_address: str | None = None
    discovery_method: DiscoveryMethod = DiscoveryMethod.NEARBY_SEARCH
    search_query: str | None = None
    event_score: float = 0.0
    confidence: Confidence = Confidence.LOW

    def __post_init__(self) -> None:
        if not 0.0 <= self.event_score <= 1.0:
            raise ValueError(f"event_score out of range: {self.event_score}")


# ---------------------------------------------------------------------------
# Group payloads (one variant per group type)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompanyPayload:
    group_type: ClassVar[GroupType] = GroupType.COMPANY

    company_name: str
    normalized_key: str

    def to_dict(self) -> dict:
        return {"companyName": self.company_name, "normalizedKey": self.normalized_key}


@dataclass(frozen=True)
class LocationPayload:
    group_type: ClassVar[GroupType] = GroupType.LOCATION

    center_latitude: float
    center_longitude: float
    radius_m: float
    city: str | None = None

    def to_dict(self) -> dict:
        return {
            "center": {"latitude": self.center_latitude, "longitude": self.center_longitude},
            "radiusMeters": round(self.radius_m, 1),
            "city": self.city,
        }


@dataclass(frozen=True)
class EventPayload:
    group_type: ClassVar[GroupType] = GroupType.EVENT

    source: str
    event_name: str | None = None
    primary_venue: str | None = None
    venue_ids: tuple[str, ...] = ()
    venue_names: tuple[str, ...] = ()
    average_score: float | None = None

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "eventName": self.event_name,
            "primaryVenue": self.primary_venue,
            "venueIds": list(self.venue_ids),
            "venues": list(self.venue_names),
            "averageScore": (
                round(self.average_score, 4) if self.average_score is not None else None
            ),
        }


@dataclass(frozen=True)
class TemporalPayload:
    group_type: ClassVar[GroupType] = GroupType.TEMPORAL

    day: date
    start: datetime
    end: datetime

    @property
    def span_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60.0

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "spanMinutes": round(self.span_minutes, 1),
        }


GroupPayload = Union[CompanyPayload, LocationPayload, EventPayload, TemporalPayload]

_PAYLOAD_KEYS = {
    GroupType.COMPANY: "companyData",
    GroupType.LOCATION: "locationData",
    GroupType.EVENT: "eventData",
    GroupType.TEMPORAL: "timeData",
}


@dataclass(frozen=True)
class GroupCandidate:
    """A candidate group produced by one strategy.

    ``contact_ids`` keeps first-seen order with duplicates removed and
    must never be empty.
    """

    name: str
    contact_ids: tuple[str, ...]
    confidence: Confidence
    reason: str
    discovery_method: DiscoveryMethod
    payload: GroupPayload
    merged_from: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        unique = tuple(dict.fromkeys(self.contact_ids))
        if not unique:
            raise ValueError(f"Group {self.name!r} has no contacts")
        object.__setattr__(self, "contact_ids", unique)

    @property
    def type(self) -> GroupType:
        return self.payload.group_type

    @property
    def size(self) -> int:
        return len(self.contact_ids)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type.value,
            "contactIds": list(self.contact_ids),
            "confidence": self.confidence.value,
            "reason": self.reason,
            "discoveryMethod": self.discovery_method.value,
            _PAYLOAD_KEYS[self.type]: self.payload.to_dict(),
        }


def confidence_for_score(score: float, high: float = 0.7, medium: float = 0.4) -> Confidence:
    """Map a [0, 1] score onto a confidence label (strict thresholds)."""
    if score > high:
        return Confidence.HIGH
    if score > medium:
        return Confidence.MEDIUM
    return Confidence.LOW


def confidence_for_size(size: int) -> Confidence:
    """Map a group size onto a confidence label: >5 high, 3-5 medium, else low."""
    if size > 5:
        return Confidence.HIGH
    if size >= 3:
        return Confidence.MEDIUM
    return Confidence.LOW
