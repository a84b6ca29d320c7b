"""Tests for the venue lookup TTL cache."""

from contact_groups.venues.cache import VenueCache, cache_key
from tests.conftest import make_venue


class FakeTimer:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestCacheKey:
    def test_rounding_and_type_order(self) -> None:
        a = cache_key(37.77491, -122.41941, 2000, ["stadium", "museum"])
        b = cache_key(37.77489, -122.41939, 2000, ["museum", "stadium"])
        assert a == b
        assert a == "37.775,-122.419:2000:museum,stadium"

    def test_radius_is_part_of_key(self) -> None:
        assert cache_key(1.0, 2.0, 1000, []) != cache_key(1.0, 2.0, 1500, [])

    def test_coordinates_rounding_to_zero_share_a_key(self) -> None:
        assert cache_key(-0.0004, -0.0004, 500, []) == cache_key(0.0004, 0.0004, 500, [])
        assert cache_key(-0.0004, 0.0, 500, []) == "0.0,0.0:500:"


class TestVenueCache:
    def test_miss_then_hit(self) -> None:
        cache = VenueCache()
        venues = (make_venue("v1", "Moscone Center"),)
        assert cache.get(37.784, -122.401, 2000, ["convention_center"]) is None
        cache.set(37.784, -122.401, 2000, ["convention_center"], venues)
        assert cache.get(37.784, -122.401, 2000, ["convention_center"]) == venues
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1
        assert stats["hit_rate"] == 0.5

    def test_empty_result_is_cached(self) -> None:
        cache = VenueCache()
        cache.set(1.0, 2.0, 500, [], ())
        assert cache.get(1.0, 2.0, 500, []) == ()

    def test_expired_entry_is_a_miss(self) -> None:
        timer = FakeTimer()
        cache = VenueCache(ttl_seconds=60, timer=timer)
        cache.set(1.0, 2.0, 500, [], (make_venue("v", "V"),))
        timer.now += 59
        assert cache.get(1.0, 2.0, 500, []) is not None
        timer.now += 2
        assert cache.get(1.0, 2.0, 500, []) is None
        assert cache.stats()["size"] == 0

    def test_bounded_size_evicts_least_recently_used(self) -> None:
        cache = VenueCache(max_entries=2)
        cache.set(1.0, 1.0, 500, [], ())
        cache.set(2.0, 2.0, 500, [], ())
        cache.get(1.0, 1.0, 500, [])
        cache.set(3.0, 3.0, 500, [], ())
        assert cache.get(2.0, 2.0, 500, []) is None
        assert cache.get(1.0, 1.0, 500, []) == ()

    def test_clear(self) -> None:
        cache = VenueCache()
        cache.set(1.0, 1.0, 500, [], ())
        cache.get(1.0, 1.0, 500, [])
        cache.clear()
        assert cache.stats() == {"hits": 0, "misses": 0, "size": 0, "hit_rate": 0.0}
