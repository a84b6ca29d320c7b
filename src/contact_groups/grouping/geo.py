"""Great-circle distance helpers using the Haversine formula."""

from __future__ import annotations

import math
from collections.abc import Iterable

EARTH_RADIUS_M = 6_371_000.0
EARTH_RADIUS_KM = 6371.0


def _central_angle(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    return 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in meters."""
    return EARTH_RADIUS_M * _central_angle(lat1, lon1, lat2, lon2)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    return EARTH_RADIUS_KM * _central_angle(lat1, lon1, lat2, lon2)


def within_radius(
    lat1: float, lon1: float, lat2: float, lon2: float, radius_m: float
) -> bool:
    return haversine_m(lat1, lon1, lat2, lon2) <= radius_m


def is_valid_location(latitude: float | None, longitude: float | None) -> bool:
    """Check that coordinates are present, in range and not the (0, 0) placeholder."""
    if latitude is None or longitude is None:
        return False
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        return False
    return not (latitude == 0.0 and longitude == 0.0)


def centroid(points: Iterable[tuple[float, float]]) -> tuple[float, float]:
    """Arithmetic mean of (lat, lon) pairs.

    Adequate for the sub-kilometre clusters produced here; it is not a
    spherical centroid and misbehaves across the antimeridian.
    """
    pts = list(points)
    if not pts:
        raise ValueError("centroid of an empty point set")
    lat = sum(p[0] for p in pts) / len(pts)
    lon = sum(p[1] for p in pts) / len(pts)
    return lat, lon
