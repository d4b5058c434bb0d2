"""PostgreSQL vote and tally repository.

add_vote runs in one transaction:

    SELECT status FROM sessions WHERE id = :session_id FOR SHARE
    SELECT 1 FROM participants WHERE id = :voter FOR UPDATE
    -- duplicate check, limit check, INSERT

The shared lock on the session row means ending the vote (an UPDATE of
that row) waits for votes already in flight, and any vote that starts
afterwards sees the new status. The voter row lock serializes one
voter's concurrent votes so the limit holds. close_voting takes the
session row FOR UPDATE, which returns only once no vote transaction is
still open.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from insightflow.application.ports.vote_repository import VoteRepositoryProtocol
from insightflow.domain.errors.session import SessionNotFoundError
from insightflow.domain.errors.vote import (
    DuplicateVoteError,
    SessionNotActiveError,
    VoteLimitExceededError,
)
from insightflow.domain.models.session import SessionStatus
from insightflow.domain.models.vote import ParticipantLabel, TallyEntry, TallyResult, Vote

VOTES_DDL = (
    """
    CREATE TABLE IF NOT EXISTS votes (
        session_id UUID NOT NULL REFERENCES sessions (id),
        voter_participant_id UUID NOT NULL REFERENCES participants (id),
        voted_for_participant_id UUID NOT NULL REFERENCES participants (id),
        cast_at TIMESTAMPTZ NOT NULL,
        reason TEXT,
        PRIMARY KEY (session_id, voter_participant_id, voted_for_participant_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tallies (
        session_id UUID PRIMARY KEY REFERENCES sessions (id),
        entries JSONB NOT NULL,
        total_votes INTEGER NOT NULL,
        finalized_at TIMESTAMPTZ NOT NULL
    )
    """,
)

_VOTE_COLUMNS = "session_id, voter_participant_id, voted_for_participant_id, cast_at, reason"


def _vote_from_row(row: Mapping[str, Any]) -> Vote:
    return Vote(
        session_id=row["session_id"],
        voter_participant_id=row["voter_participant_id"],
        voted_for_participant_id=row["voted_for_participant_id"],
        cast_at=row["cast_at"],
        reason=row["reason"],
    )


def _entry_from_dict(data: Mapping[str, Any]) -> TallyEntry:
    first_vote_at = data.get("first_vote_at")
    label = data.get("label")
    return TallyEntry(
        participant_id=UUID(data["participant_id"]),
        vote_count=data["vote_count"],
        first_vote_at=datetime.fromisoformat(first_vote_at) if first_vote_at else None,
        rank=data["rank"],
        label=ParticipantLabel(label) if label else None,
    )


def _tally_to_params(tally: TallyResult) -> dict[str, Any]:
    return {
        "session_id": tally.session_id,
        "entries": json.dumps([entry.to_dict() for entry in tally.entries]),
        "total_votes": tally.total_votes,
        "finalized_at": tally.finalized_at,
    }


def _tally_from_row(row: Mapping[str, Any]) -> TallyResult:
    entries = row["entries"]
    if isinstance(entries, str):
        entries = json.loads(entries)
    return TallyResult(
        session_id=row["session_id"],
        entries=tuple(_entry_from_dict(entry) for entry in entries),
        finalized_at=row["finalized_at"],
        total_votes=row["total_votes"],
    )


class PostgresVoteRepository(VoteRepositoryProtocol):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_vote(self, vote: Vote, max_votes: int) -> int:
        async with self._session_factory() as db:
            status = (
                await db.execute(
                    text("SELECT status FROM sessions WHERE id = :session_id FOR SHARE"),
                    {"session_id": vote.session_id},
                )
            ).scalar_one_or_none()
            if status is None:
                await db.rollback()
                raise SessionNotFoundError(vote.session_id)
            if status != SessionStatus.ACTIVE.value:
                await db.rollback()
                raise SessionNotActiveError(
                    session_id=vote.session_id,
                    current_status=SessionStatus(status),
                )

            await db.execute(
                text("SELECT 1 FROM participants WHERE id = :voter FOR UPDATE"),
                {"voter": vote.voter_participant_id},
            )
            duplicate = (
                await db.execute(
                    text("""
                        SELECT 1 FROM votes
                        WHERE session_id = :session_id
                          AND voter_participant_id = :voter
                          AND voted_for_participant_id = :target
                    """),
                    {
                        "session_id": vote.session_id,
                        "voter": vote.voter_participant_id,
                        "target": vote.voted_for_participant_id,
                    },
                )
            ).first()
            if duplicate is not None:
                await db.rollback()
                raise DuplicateVoteError(
                    session_id=vote.session_id,
                    voter_participant_id=vote.voter_participant_id,
                    target_participant_id=vote.voted_for_participant_id,
                )

            cast = await self._count(db, vote.session_id, vote.voter_participant_id)
            if cast >= max_votes:
                await db.rollback()
                raise VoteLimitExceededError(
                    session_id=vote.session_id,
                    voter_participant_id=vote.voter_participant_id,
                    votes_cast=cast,
                    max_votes=max_votes,
                )

            await db.execute(
                text(f"""
                    INSERT INTO votes ({_VOTE_COLUMNS})
                    VALUES (:session_id, :voter, :target, :cast_at, :reason)
                """),
                {
                    "session_id": vote.session_id,
                    "voter": vote.voter_participant_id,
                    "target": vote.voted_for_participant_id,
                    "cast_at": vote.cast_at,
                    "reason": vote.reason,
                },
            )
            await db.commit()
        return cast + 1

    @staticmethod
    async def _count(db: AsyncSession, session_id: UUID, voter_participant_id: UUID) -> int:
        result = await db.execute(
            text("""
                SELECT COUNT(*) FROM votes
                WHERE session_id = :session_id AND voter_participant_id = :voter
            """),
            {"session_id": session_id, "voter": voter_participant_id},
        )
        return int(result.scalar_one())

    async def list_by_session(self, session_id: UUID) -> list[Vote]:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    SELECT {_VOTE_COLUMNS} FROM votes
                    WHERE session_id = :session_id
                    ORDER BY cast_at
                """),
                {"session_id": session_id},
            )
            rows = result.mappings().fetchall()
        return [_vote_from_row(row) for row in rows]

    async def count_by_voter(self, session_id: UUID, voter_participant_id: UUID) -> int:
        async with self._session_factory() as db:
            return await self._count(db, session_id, voter_participant_id)

    async def save_tally(self, tally: TallyResult) -> None:
        async with self._session_factory() as db:
            await db.execute(
                text("""
                    INSERT INTO tallies (session_id, entries, total_votes, finalized_at)
                    VALUES (:session_id, CAST(:entries AS JSONB), :total_votes, :finalized_at)
                    ON CONFLICT (session_id) DO UPDATE SET
                        entries = EXCLUDED.entries,
                        total_votes = EXCLUDED.total_votes,
                        finalized_at = EXCLUDED.finalized_at
                """),
                _tally_to_params(tally),
            )
            await db.commit()

    async def get_tally(self, session_id: UUID) -> TallyResult | None:
        async with self._session_factory() as db:
            result = await db.execute(
                text("""
                    SELECT session_id, entries, total_votes, finalized_at
                    FROM tallies WHERE session_id = :session_id
                """),
                {"session_id": session_id},
            )
            row = result.mappings().fetchone()
        return _tally_from_row(row) if row else None

    async def close_voting(self, session_id: UUID) -> None:
        # the session is already ENDED here; the lock waits out open add_vote calls
        async with self._session_factory() as db:
            await db.execute(
                text("SELECT 1 FROM sessions WHERE id = :session_id FOR UPDATE"),
                {"session_id": session_id},
            )
            await db.commit()
