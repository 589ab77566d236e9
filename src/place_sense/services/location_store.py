"""Persistence boundary for the identity-resolution layer.

Reads hand out immutable snapshots (tuples of ``LocationRecord`` and
frozensets of ids) through a ``SnapshotCache``. Mutations flush through the
session and invalidate exactly the cache keys they affect; committing is
left to the caller. The same keys are dropped again when the session's
outer transaction commits or rolls back, so a snapshot another session
cached between the flush and the commit does not outlive the commit.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, event, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, SessionTransaction

from place_sense.config import settings
from place_sense.models import AwardRestaurant, Favorite, Location, PlaceValidation, WantToGo
from place_sense.models.enums import SourceKind, ValidationStatus
from place_sense.resolution.award_backfill import BackfillReport, plan_links, tier_columns
from place_sense.resolution.identity_key import cross_ref_of, normalize_id
from place_sense.resolution.records import LocationRecord, location_records_from
from place_sense.services.snapshot_cache import SnapshotCache

logger = logging.getLogger(__name__)

LOCATIONS_KEY = "locations"
AWARDS_KEY = "awards"


def favorites_key(user_id: str) -> str:
    return f"favorites:{user_id}"


def want_to_go_key(user_id: str) -> str:
    return f"want_to_go:{user_id}"


class AwardRestaurantNotFoundError(LookupError):
    """No award record with the given id."""

    def __init__(self, award_id: object) -> None:
        super().__init__(f"Award restaurant not found: {award_id}")
        self.award_id = award_id


@dataclass(frozen=True)
class Viewport:
    """Bounding box in degrees. Does not handle the antimeridian."""

    south: float
    west: float
    north: float
    east: float

    @property
    def cache_key(self) -> str:
        return f"{self.south:.4f},{self.west:.4f},{self.north:.4f},{self.east:.4f}"


@dataclass(frozen=True)
class StoreStats:
    locations: int
    award_restaurants: int
    linked_award_restaurants: int
    validations: dict[str, int]


class LocationStore:
    """Reads snapshots for composition and applies link decisions.

    Usage:
        async with async_session_factory() as session:
            store = LocationStore(session, cache)
            lv = await store.list_locations()
            awards = await store.list_award_restaurants()
    """

    def __init__(self, session: AsyncSession, cache: SnapshotCache | None = None) -> None:
        """Initialize the store.

        Args:
            session: Database session (caller owns commit/rollback).
            cache: Shared snapshot cache. A private one is created if omitted.
        """
        self._session = session
        self._cache = cache if cache is not None else SnapshotCache()
        self._pending: set[tuple[str, bool]] = set()
        self._listening = False

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    # ── Snapshot reads ───────────────────────────────────────────────────────

    async def list_locations(self) -> tuple[LocationRecord, ...]:
        async def fetch() -> tuple[LocationRecord, ...]:
            rows = await self._session.scalars(select(Location).order_by(Location.id))
            return location_records_from(rows.all(), source=SourceKind.LV)

        return await self._cache.get_or_fetch(
            LOCATIONS_KEY, fetch, settings.cache_ttl_locations_seconds
        )

    async def list_award_restaurants(
        self,
        viewport: Viewport | None = None,
    ) -> tuple[LocationRecord, ...]:
        key = AWARDS_KEY if viewport is None else f"{AWARDS_KEY}:{viewport.cache_key}"

        async def fetch() -> tuple[LocationRecord, ...]:
            stmt = select(AwardRestaurant).order_by(AwardRestaurant.id)
            if viewport is not None:
                stmt = stmt.where(
                    AwardRestaurant.lat.between(viewport.south, viewport.north),
                    AwardRestaurant.lng.between(viewport.west, viewport.east),
                )
            rows = await self._session.scalars(stmt)
            return location_records_from(rows.all(), source=SourceKind.AWARD)

        return await self._cache.get_or_fetch(key, fetch, settings.cache_ttl_awards_seconds)

    async def list_want_to_go(self, user_id: str) -> tuple[LocationRecord, ...]:
        async def fetch() -> tuple[LocationRecord, ...]:
            rows = await self._want_to_go_rows(user_id)
            snapshots = [{**(row.snapshot or {}), "id": row.location_id} for row in rows]
            return location_records_from(snapshots, source=SourceKind.WANT_TO_GO)

        return await self._cache.get_or_fetch(
            want_to_go_key(user_id), fetch, settings.cache_ttl_user_lists_seconds
        )

    async def favorite_ids(self, user_id: str) -> frozenset[str]:
        async def fetch() -> frozenset[str]:
            rows = await self._session.scalars(
                select(Favorite.location_id).where(Favorite.user_id == user_id)
            )
            return frozenset(rows.all())

        return await self._cache.get_or_fetch(
            favorites_key(user_id), fetch, settings.cache_ttl_user_lists_seconds
        )

    async def want_to_go_ids(self, user_id: str) -> frozenset[str]:
        """Entry ids plus any cross-reference id captured in the snapshots."""
        records = await self.list_want_to_go(user_id)
        ids: set[str] = set()
        for record in records:
            if record.id:
                ids.add(record.id)
            if record.cross_ref_id:
                ids.add(record.cross_ref_id)
        return frozenset(ids)

    # ── List mutations ───────────────────────────────────────────────────────

    async def add_favorite(self, user_id: str, location_id: str) -> None:
        existing = await self._session.get(Favorite, (user_id, location_id))
        if existing is None:
            self._session.add(Favorite(user_id=user_id, location_id=location_id))
            await self._session.flush()
        self._invalidate(favorites_key(user_id))

    async def remove_favorite(self, user_id: str, location_id: str) -> None:
        await self._session.execute(
            delete(Favorite).where(
                Favorite.user_id == user_id,
                Favorite.location_id == location_id,
            )
        )
        self._invalidate(favorites_key(user_id))

    async def add_want_to_go(
        self,
        user_id: str,
        location_id: str,
        snapshot: Mapping[str, Any] | None = None,
    ) -> None:
        row = await self._session.get(WantToGo, (user_id, location_id))
        if row is None:
            self._session.add(
                WantToGo(user_id=user_id, location_id=location_id, snapshot=dict(snapshot or {}))
            )
        else:
            row.snapshot = dict(snapshot or {})
        await self._session.flush()
        self._invalidate(want_to_go_key(user_id))

    async def remove_want_to_go(self, user_id: str, location_id: str) -> None:
        await self._session.execute(
            delete(WantToGo).where(
                WantToGo.user_id == user_id,
                WantToGo.location_id == location_id,
            )
        )
        self._invalidate(want_to_go_key(user_id))

    # ── Award records and validations ────────────────────────────────────────

    async def get_award_restaurant(self, award_id: int | str) -> AwardRestaurant | None:
        pk = _award_pk(award_id)
        if pk is None:
            return None
        return await self._session.get(AwardRestaurant, pk)

    async def link_award_restaurant(self, award_id: int | str, place_id: str) -> AwardRestaurant:
        """Set the award record's cross-reference id.

        Raises:
            AwardRestaurantNotFoundError: Unknown award id.
            ValueError: ``place_id`` is empty or a sentinel.
        """
        cleaned = cross_ref_of(place_id)
        if cleaned is None:
            raise ValueError(f"Invalid place id: {place_id!r}")

        award = await self.get_award_restaurant(award_id)
        if award is None:
            raise AwardRestaurantNotFoundError(award_id)

        award.google_place_id = cleaned
        await self._session.flush()
        self._invalidate_prefix(AWARDS_KEY)

        logger.info("Linked award restaurant %s to place %s", award.id, cleaned)
        return award

    async def unlink_award_restaurant(self, award_id: int | str) -> AwardRestaurant:
        """Clear the award record's cross-reference id.

        Raises:
            AwardRestaurantNotFoundError: Unknown award id.
        """
        award = await self.get_award_restaurant(award_id)
        if award is None:
            raise AwardRestaurantNotFoundError(award_id)

        previous = award.google_place_id
        award.google_place_id = None
        await self._session.flush()
        self._invalidate_prefix(AWARDS_KEY)

        logger.info("Unlinked award restaurant %s from place %s", award.id, previous)
        return award

    async def record_validation(
        self,
        award_id: int | str,
        place_id: str,
        status: ValidationStatus,
        *,
        confidence: int | None = None,
        auto_applied: bool = False,
        user_id: str | None = None,
    ) -> PlaceValidation:
        pk = _award_pk(award_id)
        if pk is None:
            raise AwardRestaurantNotFoundError(award_id)

        row = PlaceValidation(
            award_restaurant_id=pk,
            candidate_place_id=place_id,
            status=status,
            confidence=confidence,
            auto_applied=auto_applied,
            user_id=user_id,
        )
        self._session.add(row)
        await self._session.flush()

        logger.info(
            "Recorded %s for award %s -> %s (auto_applied=%s)",
            status.value,
            pk,
            place_id,
            auto_applied,
        )
        return row

    async def latest_auto_applied(
        self,
        award_id: int | str,
        place_id: str,
    ) -> PlaceValidation | None:
        """Most recent speculative link of ``place_id`` to this award record."""
        pk = _award_pk(award_id)
        if pk is None:
            return None
        stmt = (
            select(PlaceValidation)
            .where(
                PlaceValidation.award_restaurant_id == pk,
                PlaceValidation.candidate_place_id == place_id,
                PlaceValidation.auto_applied.is_(True),
            )
            .order_by(PlaceValidation.id.desc())
            .limit(1)
        )
        return await self._session.scalar(stmt)

    # ── Award dataset backfill ───────────────────────────────────────────────

    async def backfill_award_locations(self, *, seed: bool = True) -> BackfillReport:
        """Refresh, link and (optionally) seed curated locations from award rows.

        Never touches a location's cross-reference id.
        """
        awards = (
            await self._session.scalars(select(AwardRestaurant).order_by(AwardRestaurant.id))
        ).all()
        locations = (await self._session.scalars(select(Location).order_by(Location.id))).all()
        awards_by_id = {str(a.id): a for a in awards}

        claimed: set[int] = set()
        refreshed = 0
        for location in locations:
            award = awards_by_id.get(normalize_id(location.michelin_id) or "")
            if award is None:
                continue
            _apply_tier(location, award)
            claimed.add(award.id)
            refreshed += 1

        unseeded = [loc for loc in locations if normalize_id(loc.michelin_id) is None]
        links = plan_links(unseeded, awards, claimed=claimed)
        locations_by_id = {loc.id: loc for loc in unseeded}
        for link in links:
            location = locations_by_id[link.location_id]
            award = awards_by_id[str(link.award_id)]
            location.michelin_id = str(award.id)
            _apply_tier(location, award)
            claimed.add(award.id)
            logger.debug(
                "Backfill linked location %s to award %s (name score %.1f)",
                location.id,
                award.id,
                link.name_score,
            )

        seeded = 0
        if seed:
            for award in awards:
                if award.id in claimed or award.lat is None or award.lng is None:
                    continue
                self._session.add(
                    Location(
                        id=str(uuid.uuid4()),
                        name=award.name,
                        address=award.address,
                        city=award.location,
                        lat=award.lat,
                        lng=award.lng,
                        category="restaurant",
                        michelin_id=str(award.id),
                        google_place_id=None,
                        **tier_columns(award.award, award.green_star),
                    )
                )
                seeded += 1

        await self._session.flush()
        report = BackfillReport(refreshed=refreshed, linked=len(links), seeded=seeded)
        if report.total:
            self._invalidate(LOCATIONS_KEY)

        logger.info(
            "Award backfill: refreshed=%d linked=%d seeded=%d",
            report.refreshed,
            report.linked,
            report.seeded,
        )
        return report

    async def stats(self) -> StoreStats:
        locations = await self._session.scalar(select(func.count()).select_from(Location))
        awards = await self._session.scalar(select(func.count()).select_from(AwardRestaurant))
        linked = await self._session.scalar(
            select(func.count())
            .select_from(AwardRestaurant)
            .where(
                AwardRestaurant.google_place_id.is_not(None),
                AwardRestaurant.google_place_id != "",
            )
        )
        by_status = await self._session.execute(
            select(PlaceValidation.status, func.count()).group_by(PlaceValidation.status)
        )
        return StoreStats(
            locations=locations or 0,
            award_restaurants=awards or 0,
            linked_award_restaurants=linked or 0,
            validations={status.value: count for status, count in by_status.all()},
        )

    # ── Cache invalidation ───────────────────────────────────────────────────

    def _invalidate(self, key: str) -> None:
        self._cache.invalidate(key)
        self._defer(key, prefix=False)

    def _invalidate_prefix(self, prefix: str) -> None:
        self._cache.invalidate_prefix(prefix)
        self._defer(prefix, prefix=True)

    def _defer(self, key: str, *, prefix: bool) -> None:
        if not self._listening:
            event.listen(
                self._session.sync_session, "after_transaction_end", self._on_transaction_end
            )
            self._listening = True
        self._pending.add((key, prefix))

    def _on_transaction_end(self, session: Session, transaction: SessionTransaction) -> None:
        # Flushes and savepoints end nested transactions
        if transaction.parent is not None or not self._pending:
            return
        pending, self._pending = self._pending, set()
        for key, prefix in pending:
            if prefix:
                self._cache.invalidate_prefix(key)
            else:
                self._cache.invalidate(key)
        logger.debug("Dropped %d cache key(s) at transaction end", len(pending))

    async def _want_to_go_rows(self, user_id: str) -> Sequence[WantToGo]:
        rows = await self._session.scalars(
            select(WantToGo)
            .where(WantToGo.user_id == user_id)
            .order_by(WantToGo.created_at, WantToGo.location_id)
        )
        return rows.all()


def _award_pk(award_id: int | str) -> int | None:
    value = normalize_id(award_id)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _apply_tier(location: Location, award: AwardRestaurant) -> None:
    for column, value in tier_columns(award.award, award.green_star).items():
        setattr(location, column, value)
