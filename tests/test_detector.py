"""Tests for event detection: metadata pass, venue lookups and clustering."""

import time

import httpx

from contact_groups.grouping.config import GroupingConfig, SearchConfig
from contact_groups.grouping.domain import Confidence, DiscoveryMethod, GroupType
from contact_groups.grouping.stats import GenerationStats
from contact_groups.venues.cache import VenueCache
from contact_groups.venues.client import PlacesApiClient, TextSearchResult
from contact_groups.venues.detector import EventDetector, location_key
from tests.conftest import FakeLookupClient, fast_config, make_contact, make_venue

MOSCONE = make_venue("v1", "Moscone Convention Center")
MOSCONE_WEST = make_venue("v2", "Moscone West Hall")


def sf_contacts():
    return [
        make_contact("c1", lat=37.7840, lon=-122.4010, city="San Francisco"),
        # ~14 m from c1
        make_contact("c2", lat=37.7841, lon=-122.4011, city="San Francisco"),
        # ~9 km north, across the bay
        make_contact("c3", lat=37.8620, lon=-122.4194, city="Sausalito"),
    ]


class TestMetadataGroups:
    def test_groups_by_trimmed_event_name(self) -> None:
        contacts = [
            make_contact("1", event="PyCon US"),
            make_contact("2", event="  PyCon US "),
            make_contact("3", event="DjangoCon"),
        ]
        groups = EventDetector(fast_config()).metadata_groups(contacts)

        assert len(groups) == 1
        group = groups[0]
        assert group.name == "PyCon US"
        assert group.contact_ids == ("1", "2")
        assert group.type == GroupType.EVENT
        assert group.confidence == Confidence.HIGH
        assert group.discovery_method == DiscoveryMethod.METADATA
        assert group.payload.source == "metadata"

    def test_min_group_size(self) -> None:
        contacts = [make_contact(str(i), event="Summit") for i in range(3)]
        assert EventDetector().metadata_groups(contacts, min_group_size=4) == []

    async def test_detect_without_enhanced_skips_lookups(self) -> None:
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        stats = GenerationStats()
        contacts = sf_contacts() + [
            make_contact("e1", event="Expo"),
            make_contact("e2", event="Expo"),
        ]
        groups = await EventDetector(fast_config(), lookup_client=client).detect(
            contacts, stats, enhanced=False
        )

        assert [g.name for g in groups] == ["Expo"]
        assert client.nearby_calls == []
        assert stats.metadata_event_groups == 1
        assert stats.external_calls == 0

    async def test_detect_without_client_runs_metadata_only(self) -> None:
        stats = GenerationStats()
        groups = await EventDetector(fast_config()).detect(sf_contacts(), stats, enhanced=True)
        assert groups == []
        assert stats.cache_misses == 0


class TestVenueLookup:
    async def test_nearby_locations_share_one_lookup(self) -> None:
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        stats = GenerationStats()
        detector = EventDetector(fast_config(), lookup_client=client)

        venues = await detector.lookup_venues(sf_contacts(), stats)

        assert len(client.nearby_calls) == 2
        assert client.text_calls == []
        assert stats.external_calls == 2
        assert stats.locations_processed == 2
        assert stats.locations_skipped == 1
        assert stats.cache_misses == 2
        assert stats.venues_found == 4
        assert set(venues) == {"c1", "c2", "c3"}
        assert venues["c1"] == venues["c2"]
        assert [v.id for v in venues["c1"]] == ["v1", "v2"]
        assert venues["c1"][0].event_score > 0.7

    async def test_contacts_without_location_ignored(self) -> None:
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        stats = GenerationStats()
        contacts = [make_contact("a"), make_contact("b", lat=0.0, lon=0.0)]
        venues = await EventDetector(fast_config(), lookup_client=client).lookup_venues(
            contacts, stats
        )
        assert venues == {}
        assert client.nearby_calls == []

    async def test_text_fallback_when_nearby_is_thin(self) -> None:
        text_venue = make_venue(
            "t1", "Downtown Tech Conference Center", method=DiscoveryMethod.TEXT_SEARCH
        )
        client = FakeLookupClient(
            nearby=[],
            text=[TextSearchResult(query="tech summit 2026", places=[text_venue])],
        )
        stats = GenerationStats()
        contacts = [make_contact("c1", lat=37.7840, lon=-122.4010, city="San Francisco")]

        venues = await EventDetector(fast_config(), lookup_client=client).lookup_venues(
            contacts, stats
        )

        assert len(client.text_calls) == 1
        queries = client.text_calls[0]["queries"]
        assert len(queries) > 1
        # One nearby search plus one request per text query.
        assert stats.external_calls == 1 + len(queries)
        assert [v.id for v in venues["c1"]] == ["t1"]
        assert venues["c1"][0].discovery_method == DiscoveryMethod.TEXT_SEARCH

    async def test_text_queries_spaced_by_rate_limiter(self) -> None:
        sent: list[tuple[str, float]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append((request.url.path.rsplit(":", 1)[-1], time.monotonic()))
            return httpx.Response(200, json={"places": []})

        config = GroupingConfig(
            search=SearchConfig(batch_delay_ms=0, min_request_interval_ms=30)
        )
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = PlacesApiClient(http, api_key="k", base_url="https://places.test/v1/places")
        stats = GenerationStats()
        contacts = [make_contact("c1", lat=37.7840, lon=-122.4010, city="San Francisco")]

        await EventDetector(config, lookup_client=client).lookup_venues(contacts, stats)
        await http.aclose()

        operations = [op for op, _ in sent]
        assert operations[0] == "searchNearby"
        assert operations.count("searchText") == len(sent) - 1 > 1
        gaps = [b - a for (_, a), (_, b) in zip(sent, sent[1:])]
        assert all(gap >= 0.025 for gap in gaps)
        assert stats.external_calls == len(sent)

    async def test_concurrent_lookups_bounded_by_semaphore(self) -> None:
        config = GroupingConfig(
            search=SearchConfig(
                batch_size=6,
                max_concurrent_requests=2,
                batch_delay_ms=0,
                min_request_interval_ms=0,
            )
        )
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST], delay_s=0.02)
        # Six locations about 11 km apart from each other.
        contacts = [make_contact(f"c{i}", lat=37.0 + i * 0.1, lon=-122.0) for i in range(6)]
        stats = GenerationStats()

        await EventDetector(config, lookup_client=client).lookup_venues(contacts, stats)

        assert len(client.nearby_calls) == 6
        assert client.peak_in_flight == 2
        assert stats.locations_processed == 6

    async def test_low_scoring_venues_rejected(self) -> None:
        dull = make_venue(
            "d1", "Parking Lot", types=("parking",), rating=None, count=None, status=None
        )
        client = FakeLookupClient(nearby=[dull])
        stats = GenerationStats()
        contacts = [make_contact("c1", lat=37.7840, lon=-122.4010)]
        venues = await EventDetector(fast_config(), lookup_client=client).lookup_venues(
            contacts, stats
        )
        assert venues == {}
        assert stats.venues_found == 0

    async def test_failed_location_recorded_others_continue(self) -> None:
        client = FakeLookupClient(
            nearby=[MOSCONE, MOSCONE_WEST], failing={(37.8620, -122.4194)}
        )
        stats = GenerationStats()
        venues = await EventDetector(fast_config(), lookup_client=client).lookup_venues(
            sf_contacts(), stats
        )

        assert set(venues) == {"c1", "c2"}
        assert stats.locations_processed == 2
        assert len(stats.location_errors) == 1
        assert stats.location_errors[0]["location"] == "37.8620,-122.4194"
        assert "boom" in stats.location_errors[0]["error"]

    async def test_shared_cache_avoids_repeat_calls(self) -> None:
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        cache = VenueCache()
        contacts = [make_contact("c1", lat=37.7840, lon=-122.4010, city="San Francisco")]

        first = GenerationStats()
        await EventDetector(fast_config(), client, cache).lookup_venues(contacts, first)
        second = GenerationStats()
        venues = await EventDetector(fast_config(), client, cache).lookup_venues(
            contacts, second
        )

        assert first.external_calls == 1
        assert second.cache_hits == 1
        assert second.cache_misses == 0
        assert second.external_calls == 0
        assert len(client.nearby_calls) == 1
        assert [v.id for v in venues["c1"]] == ["v1", "v2"]

    async def test_batch_delay_between_batches(self) -> None:
        sleeps = []

        async def record_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        config = GroupingConfig(
            search=SearchConfig(batch_size=1, batch_delay_ms=50, min_request_interval_ms=0)
        )
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        detector = EventDetector(config, lookup_client=client, sleep=record_sleep)
        await detector.lookup_venues(sf_contacts(), GenerationStats())

        assert sleeps == [0.05]


class TestCancellation:
    def _config(self) -> GroupingConfig:
        return GroupingConfig(
            search=SearchConfig(batch_size=1, batch_delay_ms=0, min_request_interval_ms=0)
        )

    async def test_sync_stop_check_between_batches(self) -> None:
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        stats = GenerationStats()
        detector = EventDetector(self._config(), lookup_client=client)

        venues = await detector.lookup_venues(
            sf_contacts(), stats, should_stop=lambda: len(client.nearby_calls) >= 1
        )

        assert stats.cancelled
        assert len(client.nearby_calls) == 1
        assert stats.locations_processed == 1
        assert set(venues) == {"c1", "c2"}

    async def test_async_stop_check(self) -> None:
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        stats = GenerationStats()

        async def disconnected() -> bool:
            return True

        venues = await EventDetector(self._config(), lookup_client=client).lookup_venues(
            sf_contacts(), stats, should_stop=disconnected
        )

        assert venues == {}
        assert stats.cancelled
        assert client.nearby_calls == []


class TestVenueGroups:
    async def test_contacts_at_same_venue_grouped(self) -> None:
        client = FakeLookupClient(nearby=[MOSCONE, MOSCONE_WEST])
        stats = GenerationStats()
        groups = await EventDetector(fast_config(), lookup_client=client).detect(
            sf_contacts(), stats, enhanced=True
        )

        assert len(groups) == 1
        group = groups[0]
        assert group.name == "Moscone Convention Center Attendees"
        assert group.contact_ids == ("c1", "c2")
        assert group.discovery_method == DiscoveryMethod.VENUE_CLUSTERING
        assert group.confidence == Confidence.HIGH
        assert group.payload.source == "venue_detection"
        assert group.payload.venue_ids == ("v1", "v2")
        assert stats.venue_event_groups == 1

    def test_fuzzy_venue_names_link_contacts(self) -> None:
        a = make_contact("a", lat=37.7840, lon=-122.4010)
        b = make_contact("b", lat=37.7850, lon=-122.4020)
        venues = {
            "a": (make_venue("p1", "Moscone Center North"),),
            "b": (make_venue("p2", "Moscone North Center"),),
        }
        groups = EventDetector(fast_config()).venue_groups([a, b], venues)
        assert len(groups) == 1
        assert groups[0].contact_ids == ("a", "b")


def test_location_key_four_decimals() -> None:
    contact = make_contact("x", lat=37.784012, lon=-122.40104)
    assert location_key(contact.location) == "37.7840,-122.4010"
