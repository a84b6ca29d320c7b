"""Group generation configuration with sensible defaults.

All parameters can be overridden via ``config/grouping.yaml``.
If the file does not exist, defaults are used.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, model_validator

from contact_groups.grouping import tables


class VenueScoringWeights(BaseModel):
    """Relative weights for the five venue scoring signals."""

    venue_type: float = 0.40
    name_keywords: float = 0.25
    quality: float = 0.20
    temporal: float = 0.10
    discovery_method: float = 0.05

    @model_validator(mode="after")
    def warn_if_weights_dont_sum(self) -> "VenueScoringWeights":
        """Log a warning if weights do not sum to approximately 1.0."""
        total = (
            self.venue_type
            + self.name_keywords
            + self.quality
            + self.temporal
            + self.discovery_method
        )
        if abs(total - 1.0) > 0.01:
            structlog.get_logger().warning(
                "venue_weights_sum_mismatch",
                total=round(total, 4),
                expected=1.0,
            )
        return self


class ScoringTables(BaseModel):
    """Lookup tables consumed by the venue scorer."""

    type_priorities: dict[str, int] = Field(
        default_factory=lambda: dict(tables.VENUE_TYPE_PRIORITIES)
    )
    known_venue_types: list[str] = Field(
        default_factory=lambda: [t for t in tables.VENUE_BASE_RADIUS_M if t != "default"]
    )
    name_keywords: list[str] = Field(
        default_factory=lambda: list(tables.EVENT_NAME_KEYWORDS)
    )
    hour_multipliers: dict[int, float] = Field(
        default_factory=lambda: dict(tables.HOUR_MULTIPLIERS)
    )
    default_hour_multiplier: float = 0.5
    min_rating_for_bonus: float = 3.5
    min_review_count_for_bonus: int = 20
    review_count_saturation: int = 500
    text_search_bonus: float = 0.8
    nearby_search_bonus: float = 0.5


class ThresholdConfig(BaseModel):
    """Acceptance and confidence thresholds for scored venues."""

    nearby_min_score: float = 0.3
    text_min_score: float = 0.4
    high_confidence: float = 0.7
    medium_confidence: float = 0.4


class RadiusConfig(BaseModel):
    """Inputs to the search radius selection."""

    base_radius_m: dict[str, int] = Field(
        default_factory=lambda: dict(tables.VENUE_BASE_RADIUS_M)
    )
    city_multipliers: dict[str, float] = Field(
        default_factory=lambda: dict(tables.CITY_MULTIPLIERS)
    )
    weekday_multipliers: dict[int, float] = Field(
        default_factory=lambda: dict(tables.WEEKDAY_MULTIPLIERS)
    )
    hour_multipliers: dict[int, float] = Field(
        default_factory=lambda: dict(tables.HOUR_MULTIPLIERS)
    )
    seasonal_multipliers: dict[int, float] = Field(
        default_factory=lambda: dict(tables.SEASONAL_MULTIPLIERS)
    )
    known_events: dict[str, dict] = Field(
        default_factory=lambda: {k: dict(v) for k, v in tables.KNOWN_EVENTS.items()}
    )
    min_radius_m: int = 300
    max_radius_m: int = 8000


class TextSearchConfig(BaseModel):
    """Query templates for the contextual text search fallback."""

    templates: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in tables.TEXT_SEARCH_TEMPLATES.items()}
    )
    city_templates: dict[str, list[str]] = Field(
        default_factory=lambda: {
            k: list(v) for k, v in tables.CITY_TEXT_SEARCH_TEMPLATES.items()
        }
    )
    tech_venue_types: list[str] = Field(
        default_factory=lambda: list(tables.TECH_VENUE_TYPES)
    )
    cultural_venue_types: list[str] = Field(
        default_factory=lambda: list(tables.CULTURAL_VENUE_TYPES)
    )
    max_queries: int = 8
    radius_m: int = 2000
    max_results: int = 15


class SearchConfig(BaseModel):
    """Batching and rate-limit parameters for venue lookups."""

    batch_size: int = 3
    max_concurrent_requests: int = 3
    min_request_interval_ms: int = 100
    batch_delay_ms: int = 200
    max_results_per_location: int = 20
    rank_preference: str = "POPULARITY"
    min_venues_before_text_search: int = 2
    min_distance_between_locations_m: float = 100.0
    search_types: list[str] = Field(
        default_factory=lambda: list(tables.DEFAULT_SEARCH_TYPES)
    )


class ClusterConfig(BaseModel):
    """Proximity clustering parameters."""

    proximity_threshold_km: float = 0.5
    event_threshold_km: float = 1.0
    transitive: bool = False
    min_venue_name_similarity: float = 0.6


class TemporalConfig(BaseModel):
    """Submission-time clustering parameters."""

    gap_hours: float = 3.0


class MergeConfig(BaseModel):
    """Overlap-based group merging parameters."""

    overlap_threshold: float = 0.70


class CacheConfig(BaseModel):
    """Venue lookup cache parameters."""

    ttl_hours: float = 4.0
    max_entries: int = 1024


class PerformanceConfig(BaseModel):
    """Thresholds that trigger warnings after a generation run."""

    warn_processing_ms: int = 5000
    warn_external_calls: int = 50
    min_cache_hit_rate: float = 0.4


class GroupingConfig(BaseModel):
    """Top-level group generation configuration combining all sub-configs."""

    weights: VenueScoringWeights = VenueScoringWeights()
    scoring: ScoringTables = ScoringTables()
    thresholds: ThresholdConfig = ThresholdConfig()
    radius: RadiusConfig = RadiusConfig()
    text_search: TextSearchConfig = TextSearchConfig()
    search: SearchConfig = SearchConfig()
    cluster: ClusterConfig = ClusterConfig()
    temporal: TemporalConfig = TemporalConfig()
    merge: MergeConfig = MergeConfig()
    cache: CacheConfig = CacheConfig()
    performance: PerformanceConfig = PerformanceConfig()


def load_grouping_config(path: Path) -> GroupingConfig:
    """Load grouping configuration from a YAML file.

    If the file does not exist, returns a ``GroupingConfig`` with all
    default values.  Partial overrides are supported -- only the keys
    present in the YAML file replace defaults.
    """
    if not path.exists():
        return GroupingConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return GroupingConfig(**data)
