"""In-memory vote repository.

add_vote holds a lock across the closed check, the duplicate check, the
limit check and the insert, the in-memory equivalent of a unique
constraint plus a row lock on the session. close_voting takes the same
lock, so no vote can land after it returns.
"""

from __future__ import annotations

import asyncio
from uuid import UUID

from insightflow.application.ports.vote_repository import VoteRepositoryProtocol
from insightflow.domain.errors.vote import (
    DuplicateVoteError,
    SessionNotActiveError,
    VoteLimitExceededError,
)
from insightflow.domain.models.session import SessionStatus
from insightflow.domain.models.vote import TallyResult, Vote


class VoteRepositoryStub(VoteRepositoryProtocol):
    def __init__(self) -> None:
        self._votes: dict[tuple[UUID, UUID, UUID], Vote] = {}
        self._tallies: dict[UUID, TallyResult] = {}
        self._closed: set[UUID] = set()
        self._lock = asyncio.Lock()

    async def add_vote(self, vote: Vote, max_votes: int) -> int:
        async with self._lock:
            if vote.session_id in self._closed:
                raise SessionNotActiveError(
                    session_id=vote.session_id,
                    current_status=SessionStatus.ENDED,
                )
            if vote.key in self._votes:
                raise DuplicateVoteError(
                    session_id=vote.session_id,
                    voter_participant_id=vote.voter_participant_id,
                    target_participant_id=vote.voted_for_participant_id,
                )
            cast = self._count(vote.session_id, vote.voter_participant_id)
            if cast >= max_votes:
                raise VoteLimitExceededError(
                    session_id=vote.session_id,
                    voter_participant_id=vote.voter_participant_id,
                    votes_cast=cast,
                    max_votes=max_votes,
                )
            self._votes[vote.key] = vote
            return cast + 1

    def _count(self, session_id: UUID, voter_participant_id: UUID) -> int:
        return sum(
            1
            for v in self._votes.values()
            if v.session_id == session_id and v.voter_participant_id == voter_participant_id
        )

    async def list_by_session(self, session_id: UUID) -> list[Vote]:
        votes = [v for v in self._votes.values() if v.session_id == session_id]
        votes.sort(key=lambda v: v.cast_at)
        return votes

    async def count_by_voter(self, session_id: UUID, voter_participant_id: UUID) -> int:
        return self._count(session_id, voter_participant_id)

    async def save_tally(self, tally: TallyResult) -> None:
        async with self._lock:
            self._closed.add(tally.session_id)
            self._tallies[tally.session_id] = tally

    async def get_tally(self, session_id: UUID) -> TallyResult | None:
        return self._tallies.get(session_id)

    async def close_voting(self, session_id: UUID) -> None:
        async with self._lock:
            self._closed.add(session_id)

    def clear(self) -> None:
        self._votes.clear()
        self._tallies.clear()
        self._closed.clear()
