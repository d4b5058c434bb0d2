"""Vote repository port.

``add_vote`` is the atomic unit of vote casting: the uniqueness check,
the per-voter limit check and the insert happen together so concurrent
votes from one voter can never exceed the limit.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from insightflow.domain.models.vote import TallyResult, Vote


class VoteRepositoryProtocol(Protocol):
    """Protocol for vote and finalized tally storage."""

    async def add_vote(self, vote: Vote, max_votes: int) -> int:
        """Atomically check and insert a vote.

        Args:
            vote: The vote to record.
            max_votes: Per-voter limit for the session.

        Returns:
            Votes the voter has cast after this one.

        Raises:
            DuplicateVoteError: If the voter already voted for the target.
            VoteLimitExceededError: If the voter already cast max_votes.
            SessionNotActiveError: If voting was closed for the session.
        """
        ...

    async def list_by_session(self, session_id: UUID) -> list[Vote]:
        """List a session's votes ordered by cast_at."""
        ...

    async def count_by_voter(self, session_id: UUID, voter_participant_id: UUID) -> int:
        """Count votes a participant has cast in a session."""
        ...

    async def save_tally(self, tally: TallyResult) -> None:
        """Persist the finalized tally (replacing any previous one)."""
        ...

    async def get_tally(self, session_id: UUID) -> TallyResult | None:
        """Retrieve the finalized tally, or None if not finalized."""
        ...

    async def close_voting(self, session_id: UUID) -> None:
        """Stop accepting votes for a session.

        Waits for any add_vote already in progress. After it returns,
        add_vote for the session raises SessionNotActiveError, so the
        stored votes are final. Idempotent.
        """
        ...
