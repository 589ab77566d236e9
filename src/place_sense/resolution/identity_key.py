"""Identity key utilities: field aliases, cross-reference ids and coordinates.

The curated database, the award dataset, the user's lists and the
place-search provider evolved their schemas independently, so the same
concept shows up under different field names (``google_place_id``,
``googlePlaceId``, ``place_id``, ``placeId`` for the cross-reference id;
``lvEditorScore`` vs the deprecated ``lvEditorsScore``; ...).

This module is the only place that knows those names. Everything else
reads records through ``read_field`` / ``cross_ref_of`` / ``coordinates_of``
or works on the normalized ``LocationRecord`` view built from them.

Every predicate here is total: malformed, missing or sentinel values are
treated as absent and never raise.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass

# Production box half-width (~100 m of latitude)
DEFAULT_EPSILON_DEGREES = 0.001

EARTH_RADIUS_M = 6_371_000.0

# Values clients send when they mean "no id"
ABSENT_SENTINELS = frozenset({"", "undefined", "null", "none"})

_UUID_RX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "record_id": ("id", "location_id", "locationId"),
    "cross_ref_id": (
        "google_place_id",
        "googlePlaceId",
        "place_id",
        "placeId",
        "cross_ref_id",
        "crossRefId",
    ),
    "award_record_id": ("michelin_id", "michelinId", "award_record_id", "awardRecordId"),
    "name": ("name", "display_name", "displayName", "Name"),
    "address": ("address", "formatted_address", "formattedAddress", "Address"),
    "lat": ("lat", "latitude", "Latitude"),
    "lng": ("lng", "lon", "longitude", "Longitude"),
    "editor_score": (
        "lv_editor_score",
        "lvEditorScore",
        "editor_score",
        "editorScore",
        "lvEditorsScore",  # deprecated
    ),
    "crowd_score": (
        "lv_avg_user_score",
        "lvAvgUserScore",
        "crowd_score",
        "crowdScore",
        "lvCrowdsourceScore",  # deprecated
    ),
    "award_stars": ("michelin_stars", "michelinStars"),
    "award_distinction": ("michelin_distinction", "michelinDistinction"),
    "award_label": ("award", "Award"),
    "legacy_award_score": ("michelinScore", "michelin_score", "legacy_award_score"),
    "green_star": (
        "michelin_green_star",
        "michelinGreenStar",
        "green_star",
        "greenStar",
        "GreenStar",
    ),
    "tags": ("tags",),
    "category": ("category",),
    "types": ("types",),
    "favorites_count": ("favorites_count", "favoritesCount"),
    "want_to_go_count": ("want_to_go_count", "wantToGoCount"),
    "rating": ("rating", "googleRating", "google_rating"),
    "user_rating_count": ("userRatingCount", "user_ratings_total", "user_rating_count"),
    "price_level": ("priceLevel", "price_level"),
    "distance_meters": ("distance_meters", "distanceMeters", "distance"),
}


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude in degrees (WGS84)."""

    lat: float
    lng: float


def read_field(obj: object, field: str) -> object | None:
    """Return the first non-None value of ``field`` under any known alias.

    Works on mappings (camelCase or snake_case payloads), ORM rows,
    dataclasses and pydantic models alike.
    """
    aliases = FIELD_ALIASES.get(field, (field,))
    for name in aliases:
        value = _raw(obj, name)
        if value is not None:
            return value
    return None


def _raw(obj: object, name: str) -> object | None:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)  # pyright: ignore[reportUnknownMemberType]
    try:
        return getattr(obj, name, None)
    except Exception:  # noqa: BLE001 - lazy ORM attributes may raise on detached rows
        return None


def normalize_id(value: object) -> str | None:
    """Trim an identifier and map sentinels to None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if cleaned.lower() in ABSENT_SENTINELS:
        return None
    return cleaned


def looks_like_opaque_id(value: object) -> bool:
    """True if ``value`` has the canonical 8-4-4-4-12 UUID shape.

    Internal ids are UUIDs; provider cross-reference ids never are.
    """
    if not isinstance(value, str):
        return False
    return bool(_UUID_RX.match(value.strip()))


def cross_ref_of(obj: object) -> str | None:
    """Cross-reference id of a location-like value, or None if absent.

    A plain string is taken as the id itself. Values that look like
    internal UUIDs are ignored: some clients copy the record id into
    ``place_id`` when no provider id exists.
    """
    if isinstance(obj, str):
        candidates: tuple[object, ...] = (obj,)
    else:
        candidates = tuple(_raw(obj, name) for name in FIELD_ALIASES["cross_ref_id"])

    for raw in candidates:
        if isinstance(raw, int) and not isinstance(raw, bool):
            # Provider ids are strings; numeric values are some other key
            continue
        value = normalize_id(raw)
        if value is None or looks_like_opaque_id(value):
            continue
        return value
    return None


def record_id_of(obj: object) -> str | None:
    """Source-owned record id as a string."""
    return normalize_id(read_field(obj, "record_id"))


def award_record_id_of(obj: object) -> str | None:
    return normalize_id(read_field(obj, "award_record_id"))


def coordinates_of(obj: object) -> Coordinates | None:
    """Coordinates of a location-like value, or None if missing/invalid.

    Looks at, in order: a Coordinates value itself, a ``coordinates`` or
    ``position`` attribute, a provider-style ``location`` mapping, and
    finally flat lat/lng fields.
    """
    if isinstance(obj, Coordinates):
        return obj

    for name in ("coordinates", "position"):
        nested = _raw(obj, name)
        if isinstance(nested, Coordinates):
            return nested
        if isinstance(nested, Mapping):
            found = coordinates_of(nested)
            if found is not None:
                return found

    location = _raw(obj, "location")
    if isinstance(location, Mapping):
        found = coordinates_of(location)
        if found is not None:
            return found

    lat = _as_degrees(read_field(obj, "lat"), limit=90.0)
    lng = _as_degrees(read_field(obj, "lng"), limit=180.0)
    if lat is None or lng is None:
        return None
    return Coordinates(lat=lat, lng=lng)


def _as_degrees(value: object, *, limit: float) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or abs(number) > limit:
        return None
    return number


def same_cross_ref(a: object, b: object) -> bool:
    """True iff both carry a cross-reference id and the ids are equal.

    Absent ids (None, "", "undefined", "null") never compare equal,
    not even to themselves.
    """
    ref_a = cross_ref_of(a)
    if ref_a is None:
        return False
    return ref_a == cross_ref_of(b)


def same_coordinates(
    a: object,
    b: object,
    epsilon_degrees: float = DEFAULT_EPSILON_DEGREES,
) -> bool:
    """Fixed-box proximity: both |Δlat| and |Δlng| below epsilon.

    Not a geodesic radius. At 60° latitude a 0.001° longitude step is
    only ~55 m, so the box narrows east-west as latitude grows.
    """
    coords_a = coordinates_of(a)
    coords_b = coordinates_of(b)
    if coords_a is None or coords_b is None:
        return False
    return (
        abs(coords_a.lat - coords_b.lat) < epsilon_degrees
        and abs(coords_a.lng - coords_b.lng) < epsilon_degrees
    )


def haversine_meters(a: object, b: object) -> float | None:
    """Great-circle distance in meters, or None if either side lacks coordinates."""
    coords_a = coordinates_of(a)
    coords_b = coordinates_of(b)
    if coords_a is None or coords_b is None:
        return None

    lat1, lon1 = math.radians(coords_a.lat), math.radians(coords_a.lng)
    lat2, lon2 = math.radians(coords_b.lat), math.radians(coords_b.lng)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))
