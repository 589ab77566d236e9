"""Fold award-dataset rows into the curated locations table.

Three steps, in order:
1. Refresh: a location that already carries an award row's id takes that
   row's current tier.
2. Link: a location without an award id takes the best unclaimed award row
   whose name matches, provided the addresses do not disagree.
3. Seed: award rows still unclaimed and with coordinates become new
   locations. Seeded rows never copy the cross-reference id; it is attached
   later through the validation workflow.

Matching here is by name, not by coordinates or cross-reference id.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from rapidfuzz import fuzz

from place_sense.config import settings
from place_sense.models.enums import AwardKind
from place_sense.resolution.candidate_scorer import normalize_name
from place_sense.utils.awards import parse_award_label


@dataclass(frozen=True)
class BackfillLink:
    """A curated location paired with the award row it now carries."""

    location_id: str
    award_id: int
    name_score: float


@dataclass(frozen=True)
class BackfillReport:
    refreshed: int = 0
    linked: int = 0
    seeded: int = 0

    @property
    def total(self) -> int:
        return self.refreshed + self.linked + self.seeded


def tier_columns(award_label: str | None, green_star: bool | None) -> dict[str, Any]:
    """Curated tier columns for an award row's label.

    >>> tier_columns("2 Stars", False)
    {'michelin_stars': 2, 'michelin_distinction': None, 'michelin_green_star': False}
    """
    tier = parse_award_label(award_label)
    return {
        "michelin_stars": tier.stars,
        "michelin_distinction": (
            tier.label if tier.kind in (AwardKind.BIB_GOURMAND, AwardKind.PLATE) else None
        ),
        "michelin_green_star": bool(green_star),
    }


def name_score(a: str | None, b: str | None) -> float:
    """0-100 similarity of two place names; 100 when equal after normalization."""
    left, right = normalize_name(a), normalize_name(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 100.0
    return fuzz.ratio(left, right)


def addresses_agree(a: str | None, b: str | None, threshold: float | None = None) -> bool:
    """True unless both addresses are present and dissimilar."""
    threshold = settings.backfill_address_similarity if threshold is None else threshold
    left, right = normalize_name(a), normalize_name(b)
    if not left or not right:
        return True
    return fuzz.ratio(left, right) > threshold


def plan_links(
    locations: Sequence[Any],
    awards: Iterable[Any],
    *,
    claimed: Iterable[int] = (),
    name_threshold: float | None = None,
    address_threshold: float | None = None,
) -> list[BackfillLink]:
    """Pair unseeded locations with unclaimed award rows.

    Locations are visited in the given order; each takes its best-scoring
    award row (ties go to the lower award id) and every award row is used
    at most once.
    """
    name_threshold = (
        settings.backfill_name_similarity if name_threshold is None else name_threshold
    )
    taken = set(claimed)
    pool = [a for a in awards if a.id not in taken]

    links: list[BackfillLink] = []
    for location in locations:
        best: tuple[float, int] | None = None
        for award in pool:
            if award.id in taken:
                continue
            score = name_score(location.name, award.name)
            if score < 100.0 and score <= name_threshold:
                continue
            if not addresses_agree(location.address, award.address, address_threshold):
                continue
            if best is None or (score, -award.id) > (best[0], -best[1]):
                best = (score, award.id)

        if best is not None:
            taken.add(best[1])
            links.append(BackfillLink(location.id, best[1], best[0]))
    return links
