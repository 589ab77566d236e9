"""Award tier parsing.

The award dataset publishes a free-text label ("2 Stars", "Bib Gourmand",
"Selected Restaurants"), curated rows carry the new-style split fields
(``michelin_stars`` / ``michelin_distinction``), and older payloads only
have a single numeric ``michelinScore``. All three converge on AwardTier.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from place_sense.models.enums import AwardKind

_STARS_RX = re.compile(r"\b([123])\s*(?:michelin\s+)?stars?\b", re.IGNORECASE)


@dataclass(frozen=True)
class AwardTier:
    """Tagged award tier: NONE, STARS(1|2|3), BIB_GOURMAND or PLATE."""

    kind: AwardKind = AwardKind.NONE
    stars: int | None = None

    def __post_init__(self) -> None:
        if self.kind == AwardKind.STARS:
            if self.stars not in (1, 2, 3):
                msg = f"STARS tier requires 1-3 stars, got {self.stars!r}"
                raise ValueError(msg)
        elif self.stars is not None:
            msg = f"{self.kind.value} tier cannot carry stars"
            raise ValueError(msg)

    @property
    def is_awarded(self) -> bool:
        return self.kind != AwardKind.NONE

    @property
    def label(self) -> str:
        if self.kind == AwardKind.STARS:
            return f"{self.stars} Star" + ("s" if self.stars != 1 else "")
        if self.kind == AwardKind.BIB_GOURMAND:
            return "Bib Gourmand"
        if self.kind == AwardKind.PLATE:
            return "Michelin Plate"
        return ""


NO_AWARD = AwardTier()


def stars(count: int) -> AwardTier:
    return AwardTier(AwardKind.STARS, count)


def parse_award_label(label: str | None) -> AwardTier:
    """Parse the dataset's award label.

    Any non-empty label that is neither stars nor Bib Gourmand is treated
    as a Plate-level distinction.
    """
    if not label or not label.strip():
        return NO_AWARD

    match = _STARS_RX.search(label)
    if match:
        return stars(int(match.group(1)))

    lowered = label.lower()
    if "bib gourmand" in lowered:
        return AwardTier(AwardKind.BIB_GOURMAND)
    return AwardTier(AwardKind.PLATE)


def tier_from_fields(
    michelin_stars: object = None,
    distinction: object = None,
) -> AwardTier:
    """Build a tier from the new-style split fields."""
    count = _as_number(michelin_stars)
    if count is not None and int(count) in (1, 2, 3) and count == int(count):
        return stars(int(count))

    if isinstance(distinction, str) and distinction.strip():
        lowered = distinction.lower()
        if "bib" in lowered:
            return AwardTier(AwardKind.BIB_GOURMAND)
        if "plate" in lowered or "selected" in lowered:
            return AwardTier(AwardKind.PLATE)

    return NO_AWARD


def tier_from_legacy_score(score: object) -> AwardTier:
    """Map the deprecated single-number award score.

    1-3 are stars, 0.5 and 4 were both used for Bib Gourmand, 5 for Plate.
    """
    value = _as_number(score)
    if value is None or value <= 0:
        return NO_AWARD
    if value in (1, 2, 3):
        return stars(int(value))
    if value in (0.5, 4):
        return AwardTier(AwardKind.BIB_GOURMAND)
    if value == 5:
        return AwardTier(AwardKind.PLATE)
    return NO_AWARD


def _as_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
