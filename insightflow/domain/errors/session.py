"""Session lifecycle errors.

Errors raised by the session state machine and by any component that
checks session status before writing (votes, discussions, analyses).

Taxonomy:
- ValidationError: bad input, user-correctable, rejected immediately
- InvalidStateError: illegal transition, rejected, never retried
- ConcurrencyConflictError: lost an atomic check-and-set race
- NotFoundError: session or participant missing
- AuthorizationError: principal is not allowed to act on the session
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from insightflow.domain.exceptions import InsightflowError

if TYPE_CHECKING:
    from insightflow.domain.models.session import SessionStatus


class ValidationError(InsightflowError):
    """Base class for user-correctable input errors."""

    pass


class InvalidStateError(InsightflowError):
    """Raised when an operation is attempted from the wrong session status.

    Attributes:
        session_id: ID of the session.
        current_status: Status the session is actually in.
        operation: The operation that was attempted.
        allowed_statuses: Statuses the operation may run from.
    """

    def __init__(
        self,
        session_id: UUID,
        current_status: SessionStatus,
        operation: str,
        allowed_statuses: list[SessionStatus] | None = None,
    ) -> None:
        """Initialize InvalidStateError.

        Args:
            session_id: ID of the session.
            current_status: Current session status.
            operation: Name of the rejected operation.
            allowed_statuses: Valid source statuses (optional).
        """
        self.session_id = session_id
        self.current_status = current_status
        self.operation = operation
        self.allowed_statuses = allowed_statuses or []

        allowed_str = (
            f" Allowed from: {[s.value for s in self.allowed_statuses]}"
            if self.allowed_statuses
            else ""
        )
        super().__init__(
            f"Cannot {operation} session {session_id} in status "
            f"{current_status.value}.{allowed_str}"
        )


class SessionArchivedError(InvalidStateError):
    """Raised when writing to an archived session.

    Archived is terminal: votes, discussions, analyses and progress
    writes are all rejected.
    """

    def __init__(self, session_id: UUID, operation: str) -> None:
        from insightflow.domain.models.session import SessionStatus

        super().__init__(
            session_id=session_id,
            current_status=SessionStatus.ARCHIVED,
            operation=operation,
        )


class ConcurrencyConflictError(InsightflowError):
    """Raised when a conditional update loses the check-and-set race.

    The caller should refetch the session. If the resulting state matches
    what the caller intended, treat the operation as already applied;
    otherwise surface the conflict.

    Attributes:
        session_id: ID of the session being modified.
        expected_status: Status the update was conditioned on.
        actual_status: Status found at write time (None if unknown).
        operation: Description of the failed update.
    """

    def __init__(
        self,
        session_id: UUID,
        expected_status: SessionStatus | None,
        actual_status: SessionStatus | None = None,
        operation: str = "session_update",
    ) -> None:
        self.session_id = session_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        self.operation = operation
        expected_str = expected_status.value if expected_status else "any"
        actual_str = actual_status.value if actual_status else "unknown"
        super().__init__(
            f"Concurrent modification of session {session_id} during {operation}. "
            f"Expected status {expected_str}, found {actual_str}."
        )


class SessionNotFoundError(InsightflowError):
    """Raised when a session does not exist."""

    def __init__(self, session_id: UUID) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class ParticipantNotFoundError(InsightflowError):
    """Raised when a participant is missing or soft-deleted."""

    def __init__(self, participant_id: UUID, session_id: UUID | None = None) -> None:
        self.participant_id = participant_id
        self.session_id = session_id
        where = f" in session {session_id}" if session_id else ""
        super().__init__(f"Participant {participant_id} not found{where}")


class NotSessionHostError(InsightflowError):
    """Raised when a non-host principal attempts a host-only operation."""

    def __init__(self, session_id: UUID, principal_id: str, operation: str) -> None:
        self.session_id = session_id
        self.principal_id = principal_id
        self.operation = operation
        super().__init__(
            f"Principal {principal_id!r} is not the host of session {session_id} "
            f"and cannot {operation}"
        )


class NotParticipantError(InsightflowError):
    """Raised when a principal acts on behalf of a participant it is not."""

    def __init__(self, session_id: UUID, principal_id: str) -> None:
        self.session_id = session_id
        self.principal_id = principal_id
        super().__init__(
            f"Principal {principal_id!r} is not a matching participant of session {session_id}"
        )


class VoteSettingsValidationError(ValidationError):
    """Raised when a vote settings payload is structurally invalid.

    Attributes:
        field: Offending field name (None when the payload itself is bad).
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        prefix = f"vote_settings.{field}: " if field else "vote_settings: "
        super().__init__(prefix + message)


class TallyNotFinalizedError(InvalidStateError):
    """Raised when an operation needs a finalized tally that does not exist yet."""

    def __init__(self, session_id: UUID, current_status: SessionStatus, operation: str) -> None:
        super().__init__(
            session_id=session_id,
            current_status=current_status,
            operation=f"{operation} (vote tally not finalized)",
        )
