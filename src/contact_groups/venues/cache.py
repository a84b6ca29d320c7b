"""In-memory TTL cache for venue lookup results.

Backed by ``cachetools.TTLCache``: entries expire after ``ttl_seconds``
and the least-recently-used entry is evicted once ``max_entries`` is
reached.  Instances are created explicitly (one per process, held on
the FastAPI app state) and guarded by a lock so concurrent lookups can
share them.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog
from cachetools import TTLCache

from contact_groups.grouping.domain import VenueCandidate

logger = structlog.get_logger()


def cache_key(lat: float, lon: float, radius_m: float, types: Iterable[str]) -> str:
    """Deterministic key from rounded coordinates, radius and sorted types."""
    # Adding 0.0 folds -0.0 into 0.0 so both sides of 0 share a key.
    lat, lon = round(lat, 3) + 0.0, round(lon, 3) + 0.0
    return f"{lat},{lon}:{radius_m}:{','.join(sorted(types))}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: tuple[VenueCandidate, ...]
    inserted_at: float
    ttl: float


class VenueCache:
    """TTL + LRU cache of accepted venues keyed by search parameters.

    Parameters
    ----------
    ttl_seconds:
        Lifetime of an entry; expired entries are treated as misses.
    max_entries:
        Upper bound on stored entries.
    timer:
        Clock used for expiry, ``time.monotonic`` by default.
    """

    def __init__(
        self,
        ttl_seconds: float = 4 * 3600,
        max_entries: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._timer = timer
        self._cache: TTLCache[str, CacheEntry] = TTLCache(
            maxsize=max_entries, ttl=ttl_seconds, timer=timer
        )
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(
        self, lat: float, lon: float, radius_m: float, types: Iterable[str]
    ) -> tuple[VenueCandidate, ...] | None:
        """Return cached venues, or ``None`` on a miss or expired entry."""
        key = cache_key(lat, lon, radius_m, types)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
        logger.debug("venue_cache_lookup", key=key, hit=entry is not None)
        return entry.value if entry is not None else None

    def set(
        self,
        lat: float,
        lon: float,
        radius_m: float,
        types: Iterable[str],
        results: Iterable[VenueCandidate],
    ) -> None:
        key = cache_key(lat, lon, radius_m, types)
        with self._lock:
            self._cache[key] = CacheEntry(
                key=key,
                value=tuple(results),
                inserted_at=self._timer(),
                ttl=self._ttl,
            )

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict:
        with self._lock:
            self._cache.expire()
            lookups = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": self._cache.currsize,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }
