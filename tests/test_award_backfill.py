"""Tests for award-row → curated-location matching (pure, no database)."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from place_sense.resolution.award_backfill import (
    BackfillReport,
    addresses_agree,
    name_score,
    plan_links,
    tier_columns,
)

BERNARDIN_ADDRESS = "155 W 51st St, New York"


def location(location_id: str, name: str, address: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(id=location_id, name=name, address=address)


def award(award_id: int, name: str, address: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(id=award_id, name=name, address=address)


class TestTierColumns:
    @pytest.mark.parametrize(
        ("label", "stars", "distinction"),
        [
            ("3 Stars", 3, None),
            ("1 Star", 1, None),
            ("Bib Gourmand", None, "Bib Gourmand"),
            ("Selected Restaurants", None, "Michelin Plate"),
            ("", None, None),
            (None, None, None),
        ],
    )
    def test_label(self, label: str | None, stars: int | None, distinction: str | None) -> None:
        columns = tier_columns(label, False)
        assert columns["michelin_stars"] == stars
        assert columns["michelin_distinction"] == distinction

    def test_green_star(self) -> None:
        assert tier_columns("1 Star", True)["michelin_green_star"] is True
        assert tier_columns("1 Star", None)["michelin_green_star"] is False


class TestNameScore:
    def test_equal_after_normalization(self) -> None:
        assert name_score("Le Bernardin", "  LE BERNARDIN! ") == 100.0

    def test_close_names_clear_the_default_threshold(self) -> None:
        assert name_score("Le Bernardin", "Le Bernardin NYC") > 80

    def test_unrelated_names(self) -> None:
        assert name_score("Le Bernardin", "Joe's Pizza") < 50

    @pytest.mark.parametrize(("a", "b"), [("", "Le Bernardin"), (None, "Le Bernardin"), ("!!", "!!")])
    def test_missing_name_scores_zero(self, a: str | None, b: str) -> None:
        assert name_score(a, b) == 0.0


class TestAddressesAgree:
    def test_missing_side_agrees(self) -> None:
        assert addresses_agree(None, BERNARDIN_ADDRESS)
        assert addresses_agree(BERNARDIN_ADDRESS, "")

    def test_same_address(self) -> None:
        assert addresses_agree(BERNARDIN_ADDRESS, "155 W. 51st St., New York")

    def test_different_address(self) -> None:
        assert not addresses_agree(BERNARDIN_ADDRESS, "Via Roma 7, Milano")


class TestPlanLinks:
    def test_exact_name_links(self) -> None:
        links = plan_links([location("loc-a", "Le Bernardin")], [award(7, "Le Bernardin")])
        assert [(l.location_id, l.award_id, l.name_score) for l in links] == [("loc-a", 7, 100.0)]

    def test_best_score_wins(self) -> None:
        links = plan_links(
            [location("loc-a", "Le Bernardin")],
            [award(1, "Le Bernardin NYC"), award(2, "Le Bernardin")],
        )
        assert [l.award_id for l in links] == [2]

    def test_ties_go_to_lower_award_id(self) -> None:
        links = plan_links(
            [location("loc-a", "Le Bernardin")],
            [award(9, "Le Bernardin"), award(3, "Le Bernardin")],
        )
        assert [l.award_id for l in links] == [3]

    def test_each_award_row_used_once(self) -> None:
        links = plan_links(
            [location("loc-a", "Le Bernardin"), location("loc-b", "Le Bernardin")],
            [award(7, "Le Bernardin")],
        )
        assert [(l.location_id, l.award_id) for l in links] == [("loc-a", 7)]

    def test_claimed_rows_are_skipped(self) -> None:
        links = plan_links(
            [location("loc-a", "Le Bernardin")], [award(7, "Le Bernardin")], claimed={7}
        )
        assert links == []

    def test_address_disagreement_blocks(self) -> None:
        links = plan_links(
            [location("loc-a", "Le Bernardin", BERNARDIN_ADDRESS)],
            [award(7, "Le Bernardin", "Via Roma 7, Milano")],
        )
        assert links == []

    def test_below_threshold(self) -> None:
        links = plan_links([location("loc-a", "Le Bernardin")], [award(7, "Bernardaud")])
        assert links == []

    def test_custom_threshold(self) -> None:
        links = plan_links(
            [location("loc-a", "Le Bernardin")],
            [award(7, "Le Bernardin NYC")],
            name_threshold=90,
        )
        assert links == []


def test_report_total() -> None:
    assert BackfillReport(refreshed=2, linked=1, seeded=4).total == 7
    assert BackfillReport().total == 0
