"""ValidationWorkflow: human review of a suggested cross-reference link.

State machine, terminal on any transition out of PENDING:

    PENDING -> CONFIRMED | REJECTED | UNSURE

Entry: a suggestion opens a prompt only if it has results, the award
record is still unlinked, and the best confidence reaches the review
threshold (70 by default; 69 never prompts).

Any decision clears the prompt BEFORE the submission is awaited. A failed
submission is reported in the outcome; the prompt is not restored.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from place_sense.config import settings
from place_sense.models.enums import ValidationStatus
from place_sense.resolution.candidate_scorer import (
    CandidateMatch,
    SuggestedPlace,
    SuggestionResult,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({
    ValidationStatus.CONFIRMED,
    ValidationStatus.REJECTED,
    ValidationStatus.UNSURE,
})


class InvalidTransitionError(Exception):
    """Raised when a review prompt is moved out of a terminal state."""


@dataclass(frozen=True)
class SubmissionResult:
    """What the persistence side reports back for a decision."""

    auto_updated: bool = False
    unlinked: bool = False
    """A refused auto-applied link was cleared."""


Submitter = Callable[[str, str, ValidationStatus], Awaitable[SubmissionResult]]
"""(award_record_id, candidate_id, status) -> SubmissionResult"""


@dataclass
class ReviewPrompt:
    award_record_id: str
    place: SuggestedPlace
    confidence: int
    status: ValidationStatus = ValidationStatus.PENDING

    @property
    def is_open(self) -> bool:
        return self.status == ValidationStatus.PENDING

    def transition(self, status: ValidationStatus) -> None:
        if not self.is_open:
            raise InvalidTransitionError(
                f"Review of {self.award_record_id} already {self.status.value}"
            )
        if status not in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Cannot transition to {status.value}")
        self.status = status


@dataclass(frozen=True)
class ValidationOutcome:
    award_record_id: str
    candidate_id: str
    status: ValidationStatus
    auto_updated: bool = False
    unlinked: bool = False
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def needs_reload(self) -> bool:
        """True when the caller should refetch the award record."""
        return self.succeeded and (
            self.auto_updated or self.unlinked or self.status == ValidationStatus.CONFIRMED
        )


def should_prompt(suggestion: SuggestionResult, threshold: int | None = None) -> bool:
    threshold = settings.review_confidence_threshold if threshold is None else threshold
    return (
        suggestion.has_results
        and not suggestion.has_place_id
        and suggestion.confidence_score >= threshold
    )


def should_auto_apply(confidence: int, threshold: int | None = None) -> bool:
    threshold = settings.auto_apply_confidence_threshold if threshold is None else threshold
    return confidence >= threshold


@dataclass
class ValidationWorkflow:
    """Per-session review state.

    Usage:
        workflow = ValidationWorkflow()
        prompt = workflow.offer(suggestion)
        if prompt:
            outcome = await workflow.decide(ValidationStatus.CONFIRMED, submit)
    """

    review_threshold: int = field(default_factory=lambda: settings.review_confidence_threshold)
    _prompt: ReviewPrompt | None = field(default=None, init=False)
    _dismissed: dict[str, set[str]] = field(default_factory=dict, init=False)  # pyright: ignore[reportUnknownVariableType]

    @property
    def pending(self) -> ReviewPrompt | None:
        return self._prompt

    def dismissed_ids(self, award_record_id: str) -> frozenset[str]:
        """Candidates rejected or left unsure for this record in this session."""
        return frozenset(self._dismissed.get(award_record_id, ()))

    def offer(self, suggestion: SuggestionResult) -> ReviewPrompt | None:
        """Open a prompt for the best candidate that has not been dismissed."""
        if not should_prompt(suggestion, self.review_threshold):
            return None

        dismissed = self._dismissed.get(suggestion.award_record_id, set())
        match = self._first_offerable(suggestion.candidates, dismissed)
        if match is None:
            if suggestion.candidates or suggestion.suggested_place is None:
                return None
            # Result built without a candidate list
            if suggestion.suggested_place.id in dismissed:
                return None
            place, confidence = suggestion.suggested_place, suggestion.confidence_score
        else:
            place, confidence = SuggestedPlace.from_match(match), match.confidence

        self._prompt = ReviewPrompt(
            award_record_id=suggestion.award_record_id,
            place=place,
            confidence=confidence,
        )
        return self._prompt

    async def decide(self, status: ValidationStatus, submit: Submitter) -> ValidationOutcome:
        """Apply a decision to the open prompt and submit it.

        Raises:
            InvalidTransitionError: No open prompt, or ``status`` is PENDING.
        """
        prompt = self._prompt
        if prompt is None:
            raise InvalidTransitionError("No review is pending")

        prompt.transition(status)
        self._prompt = None

        if status in (ValidationStatus.REJECTED, ValidationStatus.UNSURE):
            self._dismissed.setdefault(prompt.award_record_id, set()).add(prompt.place.id)

        try:
            result = await submit(prompt.award_record_id, prompt.place.id, status)
        except Exception as e:
            logger.warning(
                "Validation submit failed for %s -> %s (%s): %s",
                prompt.award_record_id,
                prompt.place.id,
                status.value,
                e,
            )
            return ValidationOutcome(
                award_record_id=prompt.award_record_id,
                candidate_id=prompt.place.id,
                status=status,
                error=e,
            )

        return ValidationOutcome(
            award_record_id=prompt.award_record_id,
            candidate_id=prompt.place.id,
            status=status,
            auto_updated=result.auto_updated,
            unlinked=result.unlinked,
        )

    def _first_offerable(
        self,
        candidates: tuple[CandidateMatch, ...],
        dismissed: set[str],
    ) -> CandidateMatch | None:
        for match in candidates:
            if match.confidence < self.review_threshold:
                return None
            if match.candidate.id not in dismissed:
                return match
        return None
