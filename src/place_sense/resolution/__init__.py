"""Location identity resolution for PlaceSense.

Submodules:
- identity_key: field aliases, cross-reference ids, coordinate boxes
- records: normalized LocationRecord / SearchCandidate views
- matcher: the single is_same_place predicate
- marker_type: one display category per place
- composition: three-pass marker fold
- candidate_scorer: confidence-scored link suggestions
- validation: human review state machine
"""

from place_sense.resolution.candidate_scorer import (
    CandidateMatch,
    CandidateScorer,
    ScoringPolicy,
    SuggestedPlace,
    SuggestionResult,
)
from place_sense.resolution.composition import (
    MarkerCompositionPipeline,
    MarkerDescriptor,
    UserContext,
)
from place_sense.resolution.identity_key import (
    Coordinates,
    looks_like_opaque_id,
    same_coordinates,
    same_cross_ref,
)
from place_sense.resolution.marker_type import MarkerFlags, ViewFilters, resolve_marker_category
from place_sense.resolution.matcher import is_same_place
from place_sense.resolution.records import LocationRecord, SearchCandidate
from place_sense.resolution.validation import (
    InvalidTransitionError,
    ReviewPrompt,
    SubmissionResult,
    ValidationOutcome,
    ValidationWorkflow,
    should_prompt,
)

__all__ = [
    "CandidateMatch",
    "CandidateScorer",
    "Coordinates",
    "InvalidTransitionError",
    "LocationRecord",
    "MarkerCompositionPipeline",
    "MarkerDescriptor",
    "MarkerFlags",
    "ReviewPrompt",
    "ScoringPolicy",
    "SearchCandidate",
    "SubmissionResult",
    "SuggestedPlace",
    "SuggestionResult",
    "UserContext",
    "ValidationOutcome",
    "ValidationWorkflow",
    "ViewFilters",
    "is_same_place",
    "looks_like_opaque_id",
    "resolve_marker_category",
    "same_coordinates",
    "same_cross_ref",
    "should_prompt",
]
