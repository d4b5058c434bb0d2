"""Analysis pipeline and completion service errors.

External service errors are split into retryable (timeouts, rate limits,
5xx) and fatal (auth failure, invalid request). Only the caller of a whole
pipeline run decides whether to retry; individual discussions are never
retried mid-loop.
"""

from __future__ import annotations

from uuid import UUID

from insightflow.domain.errors.session import ConcurrencyConflictError, ValidationError
from insightflow.domain.exceptions import InsightflowError


class ExternalServiceError(InsightflowError):
    """Base class for failures of external collaborators.

    Attributes:
        retryable: True if retrying the whole operation may succeed.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message)


class CompletionServiceError(ExternalServiceError):
    """Raised when the completion service call fails.

    Attributes:
        code: Short machine-readable code (RATE_LIMIT, SERVER_ERROR, ...).
        status_code: HTTP status of the upstream response, if any.
    """

    def __init__(
        self,
        message: str,
        code: str,
        retryable: bool,
        status_code: int | None = None,
    ) -> None:
        self.code = code
        self.status_code = status_code
        super().__init__(message, retryable=retryable)


class MalformedCompletionError(ExternalServiceError):
    """Raised when a completion response cannot be parsed into a document."""

    def __init__(self, message: str, raw_excerpt: str = "") -> None:
        self.raw_excerpt = raw_excerpt
        super().__init__(message, retryable=False)


class AnalysisAlreadyRunningError(ConcurrencyConflictError):
    """Raised when a second run is claimed while one is processing."""

    def __init__(self, session_id: UUID, running_run_id: UUID | None) -> None:
        from insightflow.domain.models.session import AnalysisStatus

        self.running_run_id = running_run_id
        super().__init__(
            session_id=session_id,
            expected_status=None,
            actual_status=None,
            operation=f"analysis claim ({AnalysisStatus.PROCESSING.value} run {running_run_id})",
        )


class InvalidAnalysisTypeError(ValidationError):
    """Raised when an unknown analysis type is requested."""

    def __init__(self, analysis_type: str) -> None:
        self.analysis_type = analysis_type
        super().__init__(f"Invalid analysis type: {analysis_type!r}")


class DiscussionNotFoundError(InsightflowError):
    """Raised when a discussion does not exist or was deleted."""

    def __init__(self, discussion_id: UUID | None = None, participant_id: UUID | None = None) -> None:
        self.discussion_id = discussion_id
        self.participant_id = participant_id
        if discussion_id is not None:
            message = f"Discussion not found: {discussion_id}"
        else:
            message = f"No discussion for participant {participant_id}"
        super().__init__(message)
