"""Tests for grouping configuration and settings."""

from pathlib import Path

from contact_groups.config.settings import Settings
from contact_groups.grouping.config import GroupingConfig, load_grouping_config

SHIPPED_CONFIG = Path(__file__).resolve().parents[1] / "config" / "grouping.yaml"


class TestGroupingConfig:
    def test_defaults(self) -> None:
        config = GroupingConfig()
        assert config.thresholds.nearby_min_score == 0.3
        assert config.thresholds.text_min_score == 0.4
        assert config.cluster.proximity_threshold_km == 0.5
        assert config.cluster.event_threshold_km == 1.0
        assert config.merge.overlap_threshold == 0.70
        assert config.temporal.gap_hours == 3.0
        assert config.search.batch_size == 3
        assert config.cache.ttl_hours == 4.0
        assert config.scoring.type_priorities["convention_center"] == 10

    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        config = load_grouping_config(tmp_path / "missing.yaml")
        assert config == GroupingConfig()

    def test_partial_override(self, tmp_path) -> None:
        path = tmp_path / "grouping.yaml"
        path.write_text(
            "merge:\n"
            "  overlap_threshold: 0.5\n"
            "radius:\n"
            "  city_multipliers:\n"
            "    freiburg: 1.1\n"
        )
        config = load_grouping_config(path)
        assert config.merge.overlap_threshold == 0.5
        assert config.radius.city_multipliers == {"freiburg": 1.1}
        assert config.temporal.gap_hours == 3.0

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "grouping.yaml"
        path.write_text("")
        assert load_grouping_config(path) == GroupingConfig()

    def test_shipped_config_loads(self) -> None:
        config = load_grouping_config(SHIPPED_CONFIG)
        assert config.thresholds.high_confidence == 0.7
        assert config.search.min_venues_before_text_search == 2


class TestSettings:
    def test_env_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("CONTACT_GROUPS_PLACES_API_KEY", "k-123")
        monkeypatch.setenv("CONTACT_GROUPS_LOG_JSON", "false")
        monkeypatch.setenv("CONTACT_GROUPS_TOKEN_TTL_SECONDS", "60")
        settings = Settings()
        assert settings.places_api_key == "k-123"
        assert settings.log_json is False
        assert settings.token_ttl_seconds == 60

    def test_default_config_path(self) -> None:
        assert Settings().grouping_config_path == SHIPPED_CONFIG
