"""Confidence scoring of search candidates for an unlinked award record.

Key principles:
- Signal weights are renormalized among available signals (ignore missing)
- Distance decays smoothly, there is no hard radius cutoff
- An award record that already carries a cross-reference id is never scored

Signals:
- name: token-set similarity of normalized names (rapidfuzz)
- distance: exp(-d / scale) over the great-circle distance
- category: does the candidate's type list fit the award record's category
"""

from __future__ import annotations

import logging
import math
import re
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass

from rapidfuzz import fuzz

from place_sense.config import settings
from place_sense.models.enums import SourceKind
from place_sense.resolution.identity_key import Coordinates, haversine_meters, normalize_id
from place_sense.resolution.records import (
    LocationRecord,
    SearchCandidate,
    location_record_from,
    search_candidates_from,
)

logger = logging.getLogger(__name__)

# Provider types that count as "a place you eat at"
FOOD_TYPES = frozenset({
    "restaurant",
    "food",
    "meal_takeaway",
    "meal_delivery",
    "cafe",
    "bar",
    "bakery",
    "fine_dining_restaurant",
})

# Award-record categories that map onto provider types
CATEGORY_TYPES: dict[str, frozenset[str]] = {
    "hotel": frozenset({"lodging", "hotel", "resort_hotel", "bed_and_breakfast"}),
    "bar": frozenset({"bar", "wine_bar", "cocktail_bar", "pub"}),
    "cafe": frozenset({"cafe", "coffee_shop", "bakery"}),
}

_PUNCT_RX = re.compile(r"[^\w\s]")
_SPACE_RX = re.compile(r"\s+")


@dataclass(frozen=True)
class ScoringPolicy:
    """Tunable weights behind the confidence contract."""

    name_weight: float = 0.6
    distance_weight: float = 0.3
    category_weight: float = 0.1
    distance_scale_meters: float = 150.0

    @classmethod
    def from_settings(cls) -> ScoringPolicy:
        return cls(
            name_weight=settings.scoring_name_weight,
            distance_weight=settings.scoring_distance_weight,
            category_weight=settings.scoring_category_weight,
            distance_scale_meters=settings.scoring_distance_scale_meters,
        )

    @property
    def weights(self) -> dict[str, float]:
        return {
            "name": self.name_weight,
            "distance": self.distance_weight,
            "category": self.category_weight,
        }


@dataclass(frozen=True)
class SignalResult:
    """Result of a single signal computation."""

    signal_name: str
    score: float
    weight: float
    available: bool = True


@dataclass(frozen=True)
class CandidateMatch:
    """One scored candidate. Ephemeral, never persisted."""

    award_record_id: str
    candidate: SearchCandidate
    confidence: int
    """0-100."""

    distance_meters: float | None
    signals: tuple[SignalResult, ...] = ()

    @property
    def signal_scores(self) -> dict[str, float]:
        return {s.signal_name: s.score for s in self.signals if s.available}


@dataclass(frozen=True)
class SuggestedPlace:
    id: str
    name: str
    formatted_address: str | None = None
    distance_meters: float | None = None
    coordinates: Coordinates | None = None

    @classmethod
    def from_match(cls, match: CandidateMatch) -> SuggestedPlace:
        candidate = match.candidate
        return cls(
            id=candidate.id,
            name=candidate.display_name,
            formatted_address=candidate.formatted_address,
            distance_meters=match.distance_meters,
            coordinates=candidate.coordinates,
        )


@dataclass(frozen=True)
class SuggestionResult:
    """Outcome of scoring candidates for one award record.

    ``has_results=False`` is a normal outcome, not an error.
    """

    award_record_id: str
    has_place_id: bool = False
    existing_place_id: str | None = None
    has_results: bool = False
    confidence_score: int = 0
    suggested_place: SuggestedPlace | None = None
    candidates: tuple[CandidateMatch, ...] = ()
    auto_applied: bool = False

    @property
    def best(self) -> CandidateMatch | None:
        return self.candidates[0] if self.candidates else None


def normalize_name(name: str | None) -> str:
    """Lowercase, NFKC, punctuation to spaces, whitespace collapsed."""
    if not name:
        return ""
    text = unicodedata.normalize("NFKC", name).lower()
    text = _PUNCT_RX.sub(" ", text)
    return _SPACE_RX.sub(" ", text).strip()


class CandidateScorer:
    """Scores nearby search results against an unlinked award record.

    Usage:
        scorer = CandidateScorer()
        result = scorer.score(award_row, candidates)
        if result.has_results:
            print(result.confidence_score, result.suggested_place)
    """

    def __init__(self, policy: ScoringPolicy | None = None) -> None:
        self._policy = policy or ScoringPolicy.from_settings()

    @property
    def policy(self) -> ScoringPolicy:
        return self._policy

    def score(
        self,
        award_record: object,
        candidates: Iterable[object] | None,
        *,
        exclude_ids: Iterable[str] = (),
    ) -> SuggestionResult:
        """Score candidates for one award record.

        Args:
            award_record: Award row, payload or LocationRecord.
            candidates: Search results (SearchCandidate or provider payloads).
            exclude_ids: Candidate ids never to offer again (e.g. rejected
                earlier in the session).

        Returns:
            SuggestionResult with candidates ordered by descending confidence,
            then ascending distance, then input order.
        """
        record = location_record_from(award_record, source=SourceKind.AWARD)

        if record.is_linked:
            return SuggestionResult(
                award_record_id=record.id,
                has_place_id=True,
                existing_place_id=record.cross_ref_id,
            )

        excluded = {i for i in (normalize_id(e) for e in exclude_ids) if i is not None}
        pool = [c for c in search_candidates_from(candidates) if c.id not in excluded]

        scored = [
            (idx, self.score_candidate(record, candidate))
            for idx, candidate in enumerate(pool)
        ]
        scored.sort(
            key=lambda item: (
                -item[1].confidence,
                item[1].distance_meters if item[1].distance_meters is not None else math.inf,
                item[0],
            )
        )
        matches = tuple(match for _, match in scored)

        if not matches:
            logger.debug("No candidates for award record %s", record.id)
            return SuggestionResult(award_record_id=record.id)

        best = matches[0]
        logger.debug(
            "Award record %s: best candidate %s confidence=%d signals=%s",
            record.id,
            best.candidate.id,
            best.confidence,
            best.signal_scores,
        )
        return SuggestionResult(
            award_record_id=record.id,
            has_results=True,
            confidence_score=best.confidence,
            suggested_place=SuggestedPlace.from_match(best),
            candidates=matches,
        )

    def score_candidate(
        self,
        record: LocationRecord,
        candidate: SearchCandidate,
    ) -> CandidateMatch:
        """Score a single candidate against a normalized award record."""
        distance = candidate.distance_meters
        if distance is None:
            distance = haversine_meters(record, candidate)

        signals = (
            self._signal("name", *self._name_signal(record, candidate)),
            self._signal("distance", *self._distance_signal(distance)),
            self._signal("category", *self._category_signal(record, candidate)),
        )

        available = [s for s in signals if s.available]
        w_present = sum(s.weight for s in available)
        if w_present <= 0:
            weighted = 0.0
        else:
            weighted = sum((s.weight / w_present) * s.score for s in available)

        confidence = max(0, min(100, round(100 * weighted)))
        return CandidateMatch(
            award_record_id=record.id,
            candidate=candidate,
            confidence=confidence,
            distance_meters=distance,
            signals=signals,
        )

    def _signal(self, name: str, score: float, available: bool) -> SignalResult:
        return SignalResult(
            signal_name=name,
            score=score,
            weight=self._policy.weights[name],
            available=available,
        )

    def _name_signal(
        self,
        record: LocationRecord,
        candidate: SearchCandidate,
    ) -> tuple[float, bool]:
        a = normalize_name(record.name)
        b = normalize_name(candidate.display_name)
        if not a:
            return 0.0, False
        # A nameless candidate is no name match
        if not b:
            return 0.0, True
        return fuzz.token_set_ratio(a, b) / 100.0, True

    def _distance_signal(self, distance: float | None) -> tuple[float, bool]:
        if distance is None:
            return 0.0, False
        scale = self._policy.distance_scale_meters
        if scale <= 0:
            return (1.0 if distance == 0 else 0.0), True
        return math.exp(-max(distance, 0.0) / scale), True

    def _category_signal(
        self,
        record: LocationRecord,
        candidate: SearchCandidate,
    ) -> tuple[float, bool]:
        if not candidate.types:
            return 0.0, False

        types = {t.lower() for t in candidate.types}
        category = (record.category or "restaurant").strip().lower()

        if "restaurant" in category:
            fits = bool(types & FOOD_TYPES) or any(t.endswith("_restaurant") for t in types)
        else:
            fits = category in types or bool(types & CATEGORY_TYPES.get(category, frozenset()))
        return (1.0 if fits else 0.0), True
