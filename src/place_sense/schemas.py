"""Pydantic schemas for the HTTP API."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, field_validator

from place_sense.models.enums import MarkerCategory, SourceKind, ValidationStatus
from place_sense.resolution.candidate_scorer import CandidateMatch, SuggestionResult
from place_sense.resolution.composition import MarkerDescriptor, UserContext
from place_sense.resolution.marker_type import ViewFilters


def _coerce_id(v: Any) -> str:
    """Award ids arrive as ints, everything else as strings."""
    if v is None:
        return ""
    return str(v)


IdStr = Annotated[str, BeforeValidator(_coerce_id)]


class FiltersIn(BaseModel):
    lv_markers: bool = True
    award_markers: bool = True
    show_search_results: bool = False

    def to_filters(self) -> ViewFilters:
        return ViewFilters(
            lv_markers=self.lv_markers,
            award_markers=self.award_markers,
            show_search_results=self.show_search_results,
        )


class ComposeRequest(BaseModel):
    """Snapshots to compose. Records are passed through as raw payloads."""

    lv_records: list[dict[str, Any]] = Field(default_factory=list)
    award_records: list[dict[str, Any]] = Field(default_factory=list)
    want_to_go_records: list[dict[str, Any]] = Field(default_factory=list)
    search_results: list[dict[str, Any]] = Field(default_factory=list)

    is_authenticated: bool = False
    favorite_ids: list[IdStr] = Field(default_factory=list)
    want_to_go_ids: list[IdStr] = Field(default_factory=list)

    filters: FiltersIn = Field(default_factory=FiltersIn)

    def user_context(self) -> UserContext:
        return UserContext.of(
            is_authenticated=self.is_authenticated,
            favorite_ids=self.favorite_ids,
            want_to_go_ids=self.want_to_go_ids,
        )


class MarkerOut(BaseModel):
    marker_id: str
    lat: float | None = None
    lng: float | None = None
    category: MarkerCategory | None = None
    source: SourceKind
    source_record_id: str
    cross_ref_id: str | None = None
    name: str = ""
    display_rating: float | None = None
    is_favorite: bool = False
    is_want_to_go: bool = False
    has_lv_rating: bool = False
    award: str | None = Field(default=None, description="Award label, e.g. '2 Stars'")
    green_star: bool = False
    favorites_count: int = 0
    want_to_go_count: int = 0

    @classmethod
    def from_descriptor(cls, marker: MarkerDescriptor) -> MarkerOut:
        position = marker.position
        return cls(
            marker_id=marker.marker_id,
            lat=position.lat if position else None,
            lng=position.lng if position else None,
            category=marker.category,
            source=marker.source,
            source_record_id=marker.source_record_id,
            cross_ref_id=marker.cross_ref_id,
            name=marker.name,
            display_rating=marker.display_rating,
            is_favorite=marker.is_favorite,
            is_want_to_go=marker.is_want_to_go,
            has_lv_rating=marker.has_lv_rating,
            award=marker.award_tier.label if marker.award_tier.is_awarded else None,
            green_star=marker.green_star,
            favorites_count=marker.favorites_count,
            want_to_go_count=marker.want_to_go_count,
        )


class SuggestedPlaceOut(BaseModel):
    id: str
    name: str
    formatted_address: str | None = None
    distance_meters: float | None = None


class CandidateOut(BaseModel):
    place_id: str
    name: str
    confidence: int = Field(ge=0, le=100)
    distance_meters: float | None = None
    signals: dict[str, float] = Field(default_factory=dict)

    @classmethod
    def from_match(cls, match: CandidateMatch) -> CandidateOut:
        return cls(
            place_id=match.candidate.id,
            name=match.candidate.display_name,
            confidence=match.confidence,
            distance_meters=match.distance_meters,
            signals=match.signal_scores,
        )


class SuggestionOut(BaseModel):
    award_id: str
    has_place_id: bool
    existing_place_id: str | None = None
    has_results: bool
    confidence_score: int = Field(ge=0, le=100)
    suggested_place: SuggestedPlaceOut | None = None
    candidates: list[CandidateOut] = Field(default_factory=list)
    auto_applied: bool = False

    @classmethod
    def from_result(cls, result: SuggestionResult) -> SuggestionOut:
        place = result.suggested_place
        return cls(
            award_id=result.award_record_id,
            has_place_id=result.has_place_id,
            existing_place_id=result.existing_place_id,
            has_results=result.has_results,
            confidence_score=result.confidence_score,
            suggested_place=(
                SuggestedPlaceOut(
                    id=place.id,
                    name=place.name,
                    formatted_address=place.formatted_address,
                    distance_meters=place.distance_meters,
                )
                if place is not None
                else None
            ),
            candidates=[CandidateOut.from_match(m) for m in result.candidates],
            auto_applied=result.auto_applied,
        )


class ValidatePlaceRequest(BaseModel):
    place_id: str = Field(validation_alias=AliasChoices("place_id", "placeId"), min_length=1)
    status: ValidationStatus
    user_id: str | None = Field(
        default=None, validation_alias=AliasChoices("user_id", "userId")
    )

    @field_validator("status")
    @classmethod
    def _decision_only(cls, v: ValidationStatus) -> ValidationStatus:
        if v == ValidationStatus.PENDING:
            raise ValueError("status must be confirmed, rejected or unsure")
        return v


class ValidatePlaceResponse(BaseModel):
    auto_updated: bool
    unlinked: bool = False
