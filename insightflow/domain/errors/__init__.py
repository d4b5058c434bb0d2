"""Domain errors for insightflow.

All exceptions inherit from InsightflowError.
"""

from insightflow.domain.errors.analysis import (
    AnalysisAlreadyRunningError,
    CompletionServiceError,
    DiscussionNotFoundError,
    ExternalServiceError,
    InvalidAnalysisTypeError,
    MalformedCompletionError,
)
from insightflow.domain.errors.session import (
    ConcurrencyConflictError,
    InvalidStateError,
    NotParticipantError,
    NotSessionHostError,
    ParticipantNotFoundError,
    SessionArchivedError,
    SessionNotFoundError,
    TallyNotFinalizedError,
    ValidationError,
    VoteSettingsValidationError,
)
from insightflow.domain.errors.vote import (
    DuplicateVoteError,
    ReasonRequiredError,
    SelfVoteError,
    SessionNotActiveError,
    VoteLimitExceededError,
    VoteRejectedError,
)

__all__: list[str] = [
    "AnalysisAlreadyRunningError",
    "CompletionServiceError",
    "ConcurrencyConflictError",
    "DiscussionNotFoundError",
    "DuplicateVoteError",
    "ExternalServiceError",
    "InvalidAnalysisTypeError",
    "InvalidStateError",
    "MalformedCompletionError",
    "NotParticipantError",
    "NotSessionHostError",
    "ParticipantNotFoundError",
    "ReasonRequiredError",
    "SelfVoteError",
    "SessionArchivedError",
    "SessionNotActiveError",
    "SessionNotFoundError",
    "TallyNotFinalizedError",
    "ValidationError",
    "VoteLimitExceededError",
    "VoteRejectedError",
    "VoteSettingsValidationError",
]
