"""Database models for PlaceSense."""

from place_sense.models.award_restaurant import AwardRestaurant
from place_sense.models.base import Base
from place_sense.models.enums import (
    AwardKind,
    MarkerCategory,
    SourceKind,
    ValidationStatus,
)
from place_sense.models.location import Location
from place_sense.models.place_validation import PlaceValidation
from place_sense.models.user_list import Favorite, WantToGo

__all__ = [
    "AwardKind",
    "AwardRestaurant",
    "Base",
    "Favorite",
    "Location",
    "MarkerCategory",
    "PlaceValidation",
    "SourceKind",
    "ValidationStatus",
    "WantToGo",
]
