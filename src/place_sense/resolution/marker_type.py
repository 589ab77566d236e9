"""MarkerTypeResolver: pick exactly one display category per place.

A place can be LV-rated, award-tiered, favorited and want-to-go'd at once,
but the map renders one marker. Institutional ratings outrank personal
lists; a rating only counts while its view filter is on.
"""

from __future__ import annotations

from dataclasses import dataclass

from place_sense.models.enums import MarkerCategory


@dataclass(frozen=True)
class MarkerFlags:
    """Attributes of one place, computed per composition pass."""

    has_lv_rating: bool = False
    has_award_tier: bool = False
    is_favorite: bool = False
    is_want_to_go: bool = False


@dataclass(frozen=True)
class ViewFilters:
    """View-level toggles, not properties of any place."""

    lv_markers: bool = True
    award_markers: bool = True
    show_search_results: bool = False


def resolve_marker_category(
    flags: MarkerFlags,
    filters: ViewFilters,
    *,
    is_authenticated: bool,
) -> MarkerCategory | None:
    """Resolve the display category; first match wins.

    1. LV filter on and place has an LV rating      -> LV
    2. Award filter on and place has an award tier  -> AWARD
    3. Signed in and place is a favorite            -> FAVORITE
    4. Signed in and place is on want-to-go         -> WANT_TO_GO
    5. Otherwise                                    -> None (no marker)
    """
    if filters.lv_markers and flags.has_lv_rating:
        return MarkerCategory.LV
    if filters.award_markers and flags.has_award_tier:
        return MarkerCategory.AWARD
    if is_authenticated and flags.is_favorite:
        return MarkerCategory.FAVORITE
    if is_authenticated and flags.is_want_to_go:
        return MarkerCategory.WANT_TO_GO
    return None
