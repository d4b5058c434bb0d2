"""Vote casting errors.

All vote rejections are non-retryable and surfaced to the caller verbatim.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from insightflow.domain.errors.session import InvalidStateError, ValidationError
from insightflow.domain.exceptions import InsightflowError

if TYPE_CHECKING:
    from insightflow.domain.models.session import SessionStatus


class VoteRejectedError(InsightflowError):
    """Base class for votes refused by the tally rules."""

    pass


class DuplicateVoteError(VoteRejectedError):
    """Raised when a voter votes for the same target twice.

    Attributes:
        session_id: Session the vote was cast in.
        voter_participant_id: Participant casting the vote.
        target_participant_id: Participant already voted for.
    """

    def __init__(
        self,
        session_id: UUID,
        voter_participant_id: UUID,
        target_participant_id: UUID,
    ) -> None:
        self.session_id = session_id
        self.voter_participant_id = voter_participant_id
        self.target_participant_id = target_participant_id
        super().__init__(
            f"Participant {voter_participant_id} already voted for "
            f"{target_participant_id} in session {session_id}"
        )


class VoteLimitExceededError(VoteRejectedError):
    """Raised when a voter has no votes left.

    Attributes:
        session_id: Session the vote was cast in.
        voter_participant_id: Participant casting the vote.
        votes_cast: Votes the participant already cast.
        max_votes: Configured maximum per participant.
    """

    def __init__(
        self,
        session_id: UUID,
        voter_participant_id: UUID,
        votes_cast: int,
        max_votes: int,
    ) -> None:
        self.session_id = session_id
        self.voter_participant_id = voter_participant_id
        self.votes_cast = votes_cast
        self.max_votes = max_votes
        super().__init__(
            f"Participant {voter_participant_id} has used {votes_cast} of "
            f"{max_votes} votes in session {session_id}"
        )


class SessionNotActiveError(InvalidStateError):
    """Raised when a vote arrives outside the active voting window.

    Covers both a non-active status and an active session whose deadline
    has already passed (the timer may not have fired yet).

    Attributes:
        deadline_passed: True if the session is still active but expired.
    """

    def __init__(
        self,
        session_id: UUID,
        current_status: SessionStatus,
        deadline_passed: bool = False,
    ) -> None:
        self.deadline_passed = deadline_passed
        operation = "cast vote (deadline passed)" if deadline_passed else "cast vote"
        super().__init__(
            session_id=session_id,
            current_status=current_status,
            operation=operation,
        )


class ReasonRequiredError(ValidationError):
    """Raised when the session requires a reason and none was given."""

    def __init__(self, session_id: UUID) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} requires a reason with every vote")


class SelfVoteError(ValidationError):
    """Raised when a participant tries to vote for themself."""

    def __init__(self, session_id: UUID, participant_id: UUID) -> None:
        self.session_id = session_id
        self.participant_id = participant_id
        super().__init__(
            f"Participant {participant_id} cannot vote for themself in session {session_id}"
        )
