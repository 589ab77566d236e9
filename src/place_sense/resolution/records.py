"""Normalized, typed views over collaborator-shaped records.

Builders here turn any payload shape (camelCase API dicts, snake_case rows,
ORM objects, provider JSON) into immutable records. Field-name knowledge
stays in ``identity_key``; this module only decides how the values combine.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from place_sense.models.enums import SourceKind
from place_sense.resolution.identity_key import (
    Coordinates,
    award_record_id_of,
    coordinates_of,
    cross_ref_of,
    read_field,
    record_id_of,
)
from place_sense.utils.awards import (
    NO_AWARD,
    AwardTier,
    parse_award_label,
    tier_from_fields,
    tier_from_legacy_score,
)
from place_sense.utils.tags import dedupe_tags

AWARD_MARKER_PREFIX = "award-"


@dataclass(frozen=True)
class LocationRecord:
    """Canonical place view shared by every source.

    A record with ``cross_ref_id`` is linked; without one it can only be
    matched by coordinate proximity.
    """

    id: str
    source: SourceKind
    name: str = ""
    address: str | None = None
    cross_ref_id: str | None = None
    award_record_id: str | None = None
    coordinates: Coordinates | None = None

    editor_score: float | None = None
    crowd_score: float | None = None
    """Independent scales; None means not yet rated, not zero."""

    award_tier: AwardTier = NO_AWARD
    legacy_award_score: float | None = None
    green_star: bool = False

    tags: tuple[str, ...] = ()
    category: str | None = None
    favorites_count: int = 0
    want_to_go_count: int = 0

    @property
    def is_linked(self) -> bool:
        return self.cross_ref_id is not None

    @property
    def has_lv_rating(self) -> bool:
        return self.editor_score is not None or self.crowd_score is not None

    @property
    def has_award_tier(self) -> bool:
        """Tier present, counting the legacy single-number score as fallback."""
        if self.award_tier.is_awarded:
            return True
        return self.legacy_award_score is not None and self.legacy_award_score > 0

    @property
    def display_rating(self) -> float | None:
        if self.editor_score is not None:
            return self.editor_score
        return self.crowd_score


@dataclass(frozen=True)
class SearchCandidate:
    """A result from the place-search provider."""

    id: str
    display_name: str = ""
    formatted_address: str | None = None
    coordinates: Coordinates | None = None
    rating: float | None = None
    user_rating_count: int | None = None
    types: tuple[str, ...] = ()
    price_level: str | None = None
    distance_meters: float | None = None
    """Pre-computed by the provider if available; the scorer fills it otherwise."""

    @property
    def cross_ref_id(self) -> str:
        """A search result's own id is a cross-reference id."""
        return self.id


def location_record_from(payload: object, *, source: SourceKind) -> LocationRecord:
    """Build a LocationRecord from any collaborator shape.

    Never raises for missing or malformed optional fields.
    """
    if isinstance(payload, LocationRecord):
        return payload

    record_id = record_id_of(payload) or ""
    if source == SourceKind.AWARD:
        award_id = record_id or award_record_id_of(payload)
    else:
        award_id = award_record_id_of(payload)

    legacy = _as_float(read_field(payload, "legacy_award_score"))

    return LocationRecord(
        id=record_id,
        source=source,
        name=_as_text(read_field(payload, "name")) or "",
        address=_as_text(read_field(payload, "address")),
        cross_ref_id=cross_ref_of(payload),
        award_record_id=award_id,
        coordinates=coordinates_of(payload),
        editor_score=_as_float(read_field(payload, "editor_score")),
        crowd_score=_as_float(read_field(payload, "crowd_score")),
        award_tier=award_tier_of(payload),
        legacy_award_score=legacy,
        green_star=_as_bool(read_field(payload, "green_star")),
        tags=dedupe_tags(_as_iterable(read_field(payload, "tags"))),
        category=_as_text(read_field(payload, "category")),
        favorites_count=_as_count(read_field(payload, "favorites_count")),
        want_to_go_count=_as_count(read_field(payload, "want_to_go_count")),
    )


def location_records_from(
    payloads: Iterable[object] | None,
    *,
    source: SourceKind,
) -> tuple[LocationRecord, ...]:
    if not payloads:
        return ()
    return tuple(location_record_from(p, source=source) for p in payloads)


def award_tier_of(payload: object) -> AwardTier:
    """Tier from new-style fields, then the award label, then the legacy score."""
    tier = tier_from_fields(
        read_field(payload, "award_stars"),
        read_field(payload, "award_distinction"),
    )
    if tier.is_awarded:
        return tier

    label = read_field(payload, "award_label")
    if isinstance(label, str):
        tier = parse_award_label(label)
        if tier.is_awarded:
            return tier

    return tier_from_legacy_score(read_field(payload, "legacy_award_score"))


def search_candidate_from(payload: object) -> SearchCandidate | None:
    """Build a SearchCandidate; returns None when the payload has no id."""
    if isinstance(payload, SearchCandidate):
        return payload

    candidate_id = cross_ref_of(payload) or record_id_of(payload)
    if candidate_id is None:
        return None

    name = read_field(payload, "name")
    if isinstance(name, Mapping):
        # Provider returns {"text": ..., "languageCode": ...}
        name = name.get("text")  # pyright: ignore[reportUnknownMemberType]

    types = _as_iterable(read_field(payload, "types"))
    count = read_field(payload, "user_rating_count")

    return SearchCandidate(
        id=candidate_id,
        display_name=_as_text(name) or "",
        formatted_address=_as_text(read_field(payload, "address")),
        coordinates=coordinates_of(payload),
        rating=_as_float(read_field(payload, "rating")),
        user_rating_count=_as_count(count) if count is not None else None,
        types=tuple(t for t in types if isinstance(t, str)),
        price_level=_as_text(read_field(payload, "price_level")),
        distance_meters=_as_float(read_field(payload, "distance_meters")),
    )


def search_candidates_from(payloads: Iterable[object] | None) -> list[SearchCandidate]:
    if not payloads:
        return []
    candidates: list[SearchCandidate] = []
    for payload in payloads:
        candidate = search_candidate_from(payload)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def award_marker_id(record: LocationRecord) -> str:
    """Id under which clients store list membership for award-only places."""
    return f"{AWARD_MARKER_PREFIX}{record.id}"


def _as_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _as_float(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


def _as_count(value: object) -> int:
    number = _as_float(value)
    if number is None or number < 0 or number == float("inf"):
        return 0
    return int(number)


def _as_iterable(value: object) -> Iterable[Any]:
    if value is None or isinstance(value, (str, bytes, Mapping)):
        return ()
    if isinstance(value, Iterable):
        return value  # pyright: ignore[reportUnknownVariableType]
    return ()
