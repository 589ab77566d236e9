"""Suggest-place / validate-place orchestration for award records.

suggest_place:
    1. Load the award record (404 if unknown)
    2. Already linked -> short-circuit, no provider call
    3. Text search near the record's coordinates
    4. Score candidates
    5. Confidence >= auto-apply threshold -> link speculatively and record
       a PENDING, auto_applied validation row

validate_place:
    CONFIRMED -> link, unless the same candidate was already auto-applied
                 (then report auto_updated=True and do not link again)
    REJECTED / UNSURE -> record; if the refused candidate is the current
                         auto-applied link, clear it (unlinked=True)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from place_sense.clients.places import PlacesClient
from place_sense.config import settings
from place_sense.models import AwardRestaurant
from place_sense.models.enums import SourceKind, ValidationStatus
from place_sense.resolution.candidate_scorer import CandidateScorer, SuggestionResult
from place_sense.resolution.identity_key import cross_ref_of
from place_sense.resolution.records import location_record_from
from place_sense.resolution.validation import (
    InvalidTransitionError,
    SubmissionResult,
    Submitter,
    should_auto_apply,
)
from place_sense.services.location_store import AwardRestaurantNotFoundError, LocationStore

logger = logging.getLogger(__name__)


class PlaceSuggestionService:
    """Server side of the link-validation workflow.

    Usage:
        async with async_session_factory() as session, PlacesClient() as places:
            service = PlaceSuggestionService(LocationStore(session), places)
            result = await service.suggest_place(42)
            await session.commit()
    """

    def __init__(
        self,
        store: LocationStore,
        places: PlacesClient,
        *,
        scorer: CandidateScorer | None = None,
        auto_apply_threshold: int | None = None,
    ) -> None:
        self._store = store
        self._places = places
        self._scorer = scorer or CandidateScorer()
        self._auto_apply_threshold = (
            settings.auto_apply_confidence_threshold
            if auto_apply_threshold is None
            else auto_apply_threshold
        )

    async def suggest_place(
        self,
        award_id: int | str,
        *,
        exclude_ids: Iterable[str] = (),
    ) -> SuggestionResult:
        """Score provider candidates for an award record.

        Raises:
            AwardRestaurantNotFoundError: Unknown award id.
            PlacesClientError: Provider failure.
        """
        award = await self._require_award(award_id)
        record = location_record_from(award, source=SourceKind.AWARD)

        if record.is_linked:
            return self._scorer.score(record, ())

        candidates = await self._places.search_text(
            _search_query(award),
            near=record.coordinates,
        )
        result = self._scorer.score(record, candidates, exclude_ids=exclude_ids)

        if (
            result.suggested_place is not None
            and should_auto_apply(result.confidence_score, self._auto_apply_threshold)
        ):
            place_id = result.suggested_place.id
            await self._store.link_award_restaurant(award.id, place_id)
            await self._store.record_validation(
                award.id,
                place_id,
                ValidationStatus.PENDING,
                confidence=result.confidence_score,
                auto_applied=True,
            )
            logger.info(
                "Auto-applied place %s to award %s (confidence=%d)",
                place_id,
                award.id,
                result.confidence_score,
            )
            result = replace(result, auto_applied=True)

        return result

    async def validate_place(
        self,
        award_id: int | str,
        place_id: str,
        status: ValidationStatus,
        *,
        user_id: str | None = None,
    ) -> SubmissionResult:
        """Apply and record a human decision.

        Raises:
            AwardRestaurantNotFoundError: Unknown award id.
            InvalidTransitionError: ``status`` is PENDING.
            ValueError: ``place_id`` is empty or a sentinel.
        """
        if status == ValidationStatus.PENDING:
            raise InvalidTransitionError("A decision cannot be PENDING")

        cleaned = cross_ref_of(place_id)
        if cleaned is None:
            raise ValueError(f"Invalid place id: {place_id!r}")

        award = await self._require_award(award_id)
        prior = await self._store.latest_auto_applied(award.id, cleaned)

        auto_updated = unlinked = False
        speculative = prior is not None and award.google_place_id == cleaned
        if status == ValidationStatus.CONFIRMED:
            if speculative:
                auto_updated = True
            else:
                await self._store.link_award_restaurant(award.id, cleaned)
        elif speculative:
            # Refused auto-applied link: the record goes back to unlinked
            await self._store.unlink_award_restaurant(award.id)
            unlinked = True

        await self._store.record_validation(
            award.id,
            cleaned,
            status,
            confidence=prior.confidence if prior is not None else None,
            user_id=user_id,
        )
        return SubmissionResult(auto_updated=auto_updated, unlinked=unlinked)

    def submitter(self, *, user_id: str | None = None) -> Submitter:
        """Adapter for ``ValidationWorkflow.decide``."""

        async def submit(
            award_record_id: str,
            candidate_id: str,
            status: ValidationStatus,
        ) -> SubmissionResult:
            return await self.validate_place(
                award_record_id, candidate_id, status, user_id=user_id
            )

        return submit

    async def _require_award(self, award_id: int | str) -> AwardRestaurant:
        award = await self._store.get_award_restaurant(award_id)
        if award is None:
            raise AwardRestaurantNotFoundError(award_id)
        return award


def _search_query(award: AwardRestaurant) -> str:
    parts = [award.name, award.address or award.location]
    return ", ".join(p.strip() for p in parts if p and p.strip())
