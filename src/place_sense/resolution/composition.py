"""MarkerCompositionPipeline: fold four sources into one marker per place.

Algorithm (fixed order, the order is load-bearing):

1. Curated (LV) records
2. Award records not already represented
3. Want-to-go records not already represented (signed-in users only)

Each pass tests every candidate with ``is_same_place`` against everything
accumulated so far. Because box matching is not transitive this is an
explicit ordered fold, never a clustering step: clustering would chain
near-matches and merge unrelated places.

Live search results take a separate path. While search results are shown,
composition is bypassed and the results become uncategorized markers with
no merging against the persisted sources.

Markers are derived values, recomputed on every input change; they carry
no identity across recompositions.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from place_sense.models.enums import MarkerCategory, SourceKind
from place_sense.resolution.identity_key import Coordinates, normalize_id
from place_sense.resolution.marker_type import (
    MarkerFlags,
    ViewFilters,
    resolve_marker_category,
)
from place_sense.resolution.matcher import matches_any
from place_sense.resolution.records import (
    LocationRecord,
    award_marker_id,
    location_records_from,
    search_candidates_from,
)
from place_sense.utils.awards import NO_AWARD, AwardTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserContext:
    """Who is looking at the map and what is on their lists.

    Membership is tested by record id, award marker id or cross-reference id.
    """

    is_authenticated: bool = False
    favorite_ids: frozenset[str] = frozenset()
    want_to_go_ids: frozenset[str] = frozenset()

    @classmethod
    def of(
        cls,
        *,
        is_authenticated: bool,
        favorite_ids: Iterable[object] | None = None,
        want_to_go_ids: Iterable[object] | None = None,
    ) -> UserContext:
        return cls(
            is_authenticated=is_authenticated,
            favorite_ids=_id_set(favorite_ids),
            want_to_go_ids=_id_set(want_to_go_ids),
        )

    def is_favorite(self, *keys: str | None) -> bool:
        return any(key is not None and key in self.favorite_ids for key in keys)

    def is_want_to_go(self, *keys: str | None) -> bool:
        return any(key is not None and key in self.want_to_go_ids for key in keys)


ANONYMOUS = UserContext()


@dataclass(frozen=True)
class MarkerDescriptor:
    """One rendered marker. Never persisted."""

    marker_id: str
    position: Coordinates | None
    category: MarkerCategory | None
    """None only for live search-result markers."""

    source: SourceKind
    source_record_id: str
    cross_ref_id: str | None = None
    name: str = ""
    display_rating: float | None = None
    is_favorite: bool = False
    is_want_to_go: bool = False
    has_lv_rating: bool = False
    award_tier: AwardTier = NO_AWARD
    green_star: bool = False
    favorites_count: int = 0
    want_to_go_count: int = 0


class MarkerCompositionPipeline:
    """Composes the deduplicated marker list.

    Usage:
        pipeline = MarkerCompositionPipeline()
        markers = pipeline.compose(
            lv_records, award_records, want_to_go_records,
            UserContext.of(is_authenticated=True, favorite_ids=fav_ids),
            ViewFilters(lv_markers=True, award_markers=True),
        )
    """

    def __init__(self, *, epsilon_degrees: float | None = None) -> None:
        """Initialize the pipeline.

        Args:
            epsilon_degrees: Coordinate box half-width (default from config).
        """
        self._epsilon = epsilon_degrees

    def compose(
        self,
        lv_records: Iterable[object] | None,
        award_records: Iterable[object] | None,
        want_to_go_records: Iterable[object] | None,
        user: UserContext = ANONYMOUS,
        filters: ViewFilters | None = None,
        *,
        search_results: Iterable[object] | None = None,
    ) -> list[MarkerDescriptor]:
        """Fold the three persisted sources into one marker per place.

        Pure and idempotent: identical inputs give an identical list, order
        included. Records may be LocationRecords or any collaborator payload.

        Args:
            lv_records: Curated database records.
            award_records: Award dataset records.
            want_to_go_records: The user's want-to-go snapshots.
            user: Authentication state and list membership.
            filters: View toggles (defaults: both rating filters on).
            search_results: Live search results, used only while
                ``filters.show_search_results`` is on.

        Returns:
            Markers in insertion order (pass 1, then 2, then 3).
        """
        filters = filters or ViewFilters()

        if filters.show_search_results:
            return self.compose_search_results(search_results)

        markers: list[MarkerDescriptor] = []
        skipped: Counter[str] = Counter()

        # Pass 1: curated records
        for record in location_records_from(lv_records, source=SourceKind.LV):
            if self._already_represented(record, markers):
                skipped["lv"] += 1
                continue
            flags = MarkerFlags(
                has_lv_rating=record.has_lv_rating,
                has_award_tier=record.has_award_tier,
                is_favorite=user.is_favorite(record.id, record.cross_ref_id),
                is_want_to_go=user.is_want_to_go(record.id, record.cross_ref_id),
            )
            self._emit(markers, record, flags, filters, user, marker_id=record.id)

        # Pass 2: award records not already represented
        for record in location_records_from(award_records, source=SourceKind.AWARD):
            if self._already_represented(record, markers):
                skipped["award"] += 1
                continue
            marker_id = award_marker_id(record)
            flags = MarkerFlags(
                has_lv_rating=False,
                has_award_tier=record.has_award_tier,
                is_favorite=user.is_favorite(marker_id, record.cross_ref_id),
                is_want_to_go=user.is_want_to_go(marker_id, record.cross_ref_id),
            )
            self._emit(markers, record, flags, filters, user, marker_id=marker_id)

        # Pass 3: personal want-to-go entries not already represented
        if user.is_authenticated:
            wtg = location_records_from(want_to_go_records, source=SourceKind.WANT_TO_GO)
            for idx, record in enumerate(wtg):
                if self._already_represented(record, markers):
                    skipped["want_to_go"] += 1
                    continue
                flags = MarkerFlags(
                    has_lv_rating=record.has_lv_rating,
                    has_award_tier=record.has_award_tier,
                    is_favorite=False,
                    is_want_to_go=True,
                )
                marker_id = record.id or record.cross_ref_id or f"want-to-go-{idx}"
                self._emit(markers, record, flags, filters, user, marker_id=marker_id)

        if logger.isEnabledFor(logging.DEBUG):
            by_category = Counter(m.category.value for m in markers if m.category)
            logger.debug(
                "Composed %d markers %s (deduped: %s, filters: lv=%s award=%s)",
                len(markers),
                dict(by_category),
                dict(skipped),
                filters.lv_markers,
                filters.award_markers,
            )

        return markers

    def compose_search_results(
        self,
        search_results: Iterable[object] | None,
    ) -> list[MarkerDescriptor]:
        """Render live search results as a disjoint, uncategorized marker set."""
        return [
            MarkerDescriptor(
                marker_id=candidate.id,
                position=candidate.coordinates,
                category=None,
                source=SourceKind.SEARCH,
                source_record_id=candidate.id,
                cross_ref_id=candidate.id,
                name=candidate.display_name,
                display_rating=candidate.rating,
            )
            for candidate in search_candidates_from(search_results)
        ]

    def _already_represented(
        self,
        record: LocationRecord,
        markers: list[MarkerDescriptor],
    ) -> bool:
        return matches_any(record, markers, epsilon_degrees=self._epsilon)

    def _emit(
        self,
        markers: list[MarkerDescriptor],
        record: LocationRecord,
        flags: MarkerFlags,
        filters: ViewFilters,
        user: UserContext,
        *,
        marker_id: str,
    ) -> None:
        category = resolve_marker_category(
            flags, filters, is_authenticated=user.is_authenticated
        )
        if category is None:
            return

        markers.append(
            MarkerDescriptor(
                marker_id=marker_id,
                position=record.coordinates,
                category=category,
                source=record.source,
                source_record_id=record.id,
                cross_ref_id=record.cross_ref_id,
                name=record.name,
                display_rating=record.display_rating,
                is_favorite=flags.is_favorite,
                is_want_to_go=flags.is_want_to_go,
                has_lv_rating=flags.has_lv_rating,
                award_tier=record.award_tier,
                green_star=record.green_star,
                favorites_count=record.favorites_count,
                want_to_go_count=record.want_to_go_count,
            )
        )


def compose(
    lv_records: Iterable[object] | None,
    award_records: Iterable[object] | None,
    want_to_go_records: Iterable[object] | None,
    user: UserContext = ANONYMOUS,
    filters: ViewFilters | None = None,
    *,
    search_results: Iterable[object] | None = None,
) -> list[MarkerDescriptor]:
    """Compose with the default pipeline (epsilon from config)."""
    return MarkerCompositionPipeline().compose(
        lv_records,
        award_records,
        want_to_go_records,
        user,
        filters,
        search_results=search_results,
    )


def _id_set(ids: Iterable[object] | None) -> frozenset[str]:
    if not ids:
        return frozenset()
    normalized = (normalize_id(i) for i in ids)
    return frozenset(i for i in normalized if i is not None)
