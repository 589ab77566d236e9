"""Utility modules for PlaceSense."""

from place_sense.utils.awards import (
    NO_AWARD,
    AwardTier,
    parse_award_label,
    tier_from_fields,
    tier_from_legacy_score,
)
from place_sense.utils.tags import dedupe_tags

__all__ = [
    "NO_AWARD",
    "AwardTier",
    "dedupe_tags",
    "parse_award_label",
    "tier_from_fields",
    "tier_from_legacy_score",
]
