"""LocationMatcher: the single "same physical place" predicate.

Every component that compares two location-like records goes through
``is_same_place`` so dedup behaves identically everywhere.

The relation is symmetric and reflexive for records with coordinates or a
cross-reference id, but NOT transitive: box matching lets A~B and B~C
while A and C are more than one box apart. Callers that dedupe must fold
in a fixed order against an accumulator (see ``composition``), never
cluster.
"""

from __future__ import annotations

from collections.abc import Sequence

from place_sense.config import settings
from place_sense.resolution.identity_key import same_coordinates, same_cross_ref


def is_same_place(
    a: object,
    b: object,
    *,
    epsilon_degrees: float | None = None,
) -> bool:
    """True iff ``a`` and ``b`` share a cross-reference id or fall in one coordinate box."""
    if same_cross_ref(a, b):
        return True
    eps = settings.coordinate_epsilon_degrees if epsilon_degrees is None else epsilon_degrees
    return same_coordinates(a, b, eps)


def matches_any(
    candidate: object,
    accumulated: Sequence[object],
    *,
    epsilon_degrees: float | None = None,
) -> bool:
    """True if ``candidate`` is the same place as anything already accumulated."""
    return any(
        is_same_place(candidate, existing, epsilon_degrees=epsilon_degrees)
        for existing in accumulated
    )
