"""Persistence and orchestration services for PlaceSense."""

from place_sense.services.location_store import (
    AwardRestaurantNotFoundError,
    LocationStore,
    Viewport,
)
from place_sense.services.place_suggestion import PlaceSuggestionService
from place_sense.services.snapshot_cache import SnapshotCache

__all__ = [
    "AwardRestaurantNotFoundError",
    "LocationStore",
    "PlaceSuggestionService",
    "SnapshotCache",
    "Viewport",
]
