"""Enumerations for PlaceSense data model."""

from enum import Enum


class SourceKind(str, Enum):
    """Which collaborator a location-like record came from."""

    LV = "lv"  # Curated ratings database
    AWARD = "award"  # Fine-dining award dataset
    WANT_TO_GO = "want_to_go"  # User's personal want-to-go list
    SEARCH = "search"  # Live place-search results


class MarkerCategory(str, Enum):
    """Display category of a composed marker. One per place."""

    LV = "lv"
    AWARD = "award"
    FAVORITE = "favorite"
    WANT_TO_GO = "want_to_go"


class AwardKind(str, Enum):
    """Distinction tier from the award dataset.

    Green star is orthogonal and tracked separately.
    """

    NONE = "none"
    STARS = "stars"  # 1, 2 or 3 stars
    BIB_GOURMAND = "bib_gourmand"
    PLATE = "plate"  # "Selected Restaurants" / Michelin Plate


class ValidationStatus(str, Enum):
    """Lifecycle status of a candidate-match review.

    PENDING is the only non-terminal state.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    UNSURE = "unsure"  # Same effect as rejected, recorded distinctly
