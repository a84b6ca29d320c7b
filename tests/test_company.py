"""Tests for company-name grouping."""

import pytest

from contact_groups.grouping.company import group_by_company, normalize_company
from contact_groups.grouping.domain import Confidence, DiscoveryMethod, GroupType
from tests.conftest import make_contact


class TestNormalizeCompany:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Acme Inc.", "acmeinc"),
            ("  ACME INC  ", "acmeinc"),
            ("Acme, Inc.", "acmeinc"),
            ("Müller GmbH", "müllergmbh"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected) -> None:
        assert normalize_company(raw) == expected

    @pytest.mark.parametrize("raw", ["Acme Inc.", "O'Reilly Media", "AT&T", "  x  y  "])
    def test_idempotent(self, raw) -> None:
        once = normalize_company(raw)
        assert normalize_company(once) == once


class TestGroupByCompany:
    def test_case_and_punctuation_variants_share_a_group(self) -> None:
        contacts = [make_contact("1", "Acme Inc."), make_contact("2", "ACME INC")]
        groups = group_by_company(contacts, min_group_size=2)

        assert len(groups) == 1
        group = groups[0]
        assert group.name == "Acme Inc. Team"
        assert group.contact_ids == ("1", "2")
        assert group.confidence == Confidence.LOW
        assert group.type == GroupType.COMPANY
        assert group.discovery_method == DiscoveryMethod.COMPANY_NAME
        assert group.payload.normalized_key == "acmeinc"

    def test_first_seen_spelling_is_display_name(self) -> None:
        contacts = [make_contact("1", "ACME INC"), make_contact("2", "Acme Inc.")]
        assert group_by_company(contacts)[0].name == "ACME INC Team"

    def test_small_groups_dropped(self) -> None:
        contacts = [make_contact("1", "Acme"), make_contact("2", "Globex"), make_contact("3", "Acme")]
        groups = group_by_company(contacts, min_group_size=3)
        assert groups == []

    def test_contacts_without_company_ignored(self) -> None:
        contacts = [make_contact("1"), make_contact("2", "  "), make_contact("3", "Acme")]
        assert group_by_company(contacts, min_group_size=1)[0].contact_ids == ("3",)

    def test_confidence_by_size(self) -> None:
        medium = [make_contact(str(i), "Initech") for i in range(3)]
        high = [make_contact(f"h{i}", "Globex") for i in range(6)]
        groups = {g.name: g for g in group_by_company(medium + high)}
        assert groups["Initech Team"].confidence == Confidence.MEDIUM
        assert groups["Globex Team"].confidence == Confidence.HIGH

    def test_groups_in_first_appearance_order(self) -> None:
        contacts = [
            make_contact("1", "Globex"),
            make_contact("2", "Acme"),
            make_contact("3", "Acme"),
            make_contact("4", "Globex"),
        ]
        assert [g.name for g in group_by_company(contacts)] == ["Globex Team", "Acme Team"]
