"""Tests for LocationRecord / SearchCandidate builders."""

from __future__ import annotations

import math

import pytest

from place_sense.models.enums import AwardKind, SourceKind
from place_sense.resolution.identity_key import Coordinates
from place_sense.resolution.records import (
    LocationRecord,
    award_marker_id,
    award_tier_of,
    location_record_from,
    location_records_from,
    search_candidate_from,
    search_candidates_from,
)
from place_sense.utils.awards import stars


class TestLocationRecordFrom:
    def test_camel_case_payload(self) -> None:
        record = location_record_from(
            {
                "id": "loc-1",
                "name": " Katz's Delicatessen ",
                "placeId": "ChIJ-katz",
                "lat": 40.7223,
                "lng": -73.9874,
                "lvEditorScore": 8.7,
                "lvAvgUserScore": 9.1,
                "tags": ["Deli", "deli", "Late night"],
                "favoritesCount": 12,
            },
            source=SourceKind.LV,
        )
        assert record.id == "loc-1"
        assert record.source == SourceKind.LV
        assert record.name == "Katz's Delicatessen"
        assert record.cross_ref_id == "ChIJ-katz"
        assert record.is_linked
        assert record.coordinates == Coordinates(40.7223, -73.9874)
        assert record.has_lv_rating
        assert record.display_rating == 8.7
        assert record.tags == ("Deli", "Late night")
        assert record.favorites_count == 12

    def test_crowd_score_is_fallback_rating(self) -> None:
        record = location_record_from({"id": "x", "lvAvgUserScore": 0.0}, source=SourceKind.LV)
        assert record.has_lv_rating
        assert record.display_rating == 0.0

    def test_unrated_is_none_not_zero(self) -> None:
        record = location_record_from({"id": "x"}, source=SourceKind.LV)
        assert not record.has_lv_rating
        assert record.display_rating is None

    def test_award_source_uses_row_id(self) -> None:
        record = location_record_from({"id": 42, "Award": "2 Stars"}, source=SourceKind.AWARD)
        assert record.id == "42"
        assert record.award_record_id == "42"
        assert record.award_tier == stars(2)
        assert record.has_award_tier

    def test_lv_source_reads_award_reference(self) -> None:
        record = location_record_from({"id": "loc-1", "michelinId": 42}, source=SourceKind.LV)
        assert record.award_record_id == "42"

    def test_legacy_score_counts_as_award(self) -> None:
        record = location_record_from({"id": "x", "michelinScore": 7}, source=SourceKind.LV)
        assert not record.award_tier.is_awarded
        assert record.has_award_tier

    def test_green_star_variants(self) -> None:
        assert location_record_from({"GreenStar": "yes"}, source=SourceKind.AWARD).green_star
        assert location_record_from({"michelinGreenStar": True}, source=SourceKind.LV).green_star
        assert not location_record_from({"GreenStar": "no"}, source=SourceKind.AWARD).green_star

    @pytest.mark.parametrize("count", [-3, None, "lots", math.inf, math.nan])
    def test_bad_counts_are_zero(self, count: object) -> None:
        record = location_record_from({"id": "x", "wantToGoCount": count}, source=SourceKind.LV)
        assert record.want_to_go_count == 0

    def test_malformed_fields_never_raise(self) -> None:
        record = location_record_from(
            {"id": ["nope"], "name": 12, "lat": "north", "lvEditorScore": "great", "tags": "one"},
            source=SourceKind.LV,
        )
        assert record.id == ""
        assert record.name == ""
        assert record.coordinates is None
        assert record.editor_score is None
        assert record.tags == ()

    def test_existing_record_passes_through(self) -> None:
        record = LocationRecord(id="x", source=SourceKind.LV)
        assert location_record_from(record, source=SourceKind.AWARD) is record

    def test_records_from_none(self) -> None:
        assert location_records_from(None, source=SourceKind.LV) == ()


class TestAwardTierOf:
    def test_split_fields_beat_label(self) -> None:
        payload = {"michelinStars": 1, "Award": "3 Stars"}
        assert award_tier_of(payload) == stars(1)

    def test_label_beats_legacy_score(self) -> None:
        payload = {"Award": "Bib Gourmand", "michelinScore": 2}
        assert award_tier_of(payload).kind == AwardKind.BIB_GOURMAND

    def test_legacy_score_last(self) -> None:
        assert award_tier_of({"michelinScore": 3}) == stars(3)


class TestAwardMarkerId:
    def test_prefix(self) -> None:
        record = location_record_from({"id": 42}, source=SourceKind.AWARD)
        assert award_marker_id(record) == "award-42"


class TestSearchCandidateFrom:
    def test_provider_payload(self) -> None:
        candidate = search_candidate_from(
            {
                "id": "ChIJ-katz",
                "displayName": {"text": "Katz's Delicatessen", "languageCode": "en"},
                "formattedAddress": "205 E Houston St, New York, NY 10002, USA",
                "location": {"latitude": 40.7223, "longitude": -73.9874},
                "rating": 4.5,
                "userRatingCount": 10234,
                "types": ["restaurant", 7, "food"],
                "priceLevel": "PRICE_LEVEL_MODERATE",
            }
        )
        assert candidate is not None
        assert candidate.id == "ChIJ-katz"
        assert candidate.cross_ref_id == "ChIJ-katz"
        assert candidate.display_name == "Katz's Delicatessen"
        assert candidate.formatted_address == "205 E Houston St, New York, NY 10002, USA"
        assert candidate.coordinates == Coordinates(40.7223, -73.9874)
        assert candidate.rating == 4.5
        assert candidate.user_rating_count == 10234
        assert candidate.types == ("restaurant", "food")
        assert candidate.price_level == "PRICE_LEVEL_MODERATE"
        assert candidate.distance_meters is None

    def test_place_id_alias(self) -> None:
        candidate = search_candidate_from({"place_id": "ChIJ-x", "name": "X"})
        assert candidate is not None
        assert candidate.id == "ChIJ-x"

    def test_missing_id_is_dropped(self) -> None:
        assert search_candidate_from({"displayName": {"text": "No id"}}) is None
        assert search_candidates_from([{"name": "a"}, {"id": "b"}, None]) == [
            search_candidate_from({"id": "b"})
        ]

    def test_rating_count_absent_stays_none(self) -> None:
        candidate = search_candidate_from({"id": "b"})
        assert candidate is not None
        assert candidate.user_rating_count is None
