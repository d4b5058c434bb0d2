"""PostgreSQL participant repository.

Participants are never removed; mark_deleted flips is_deleted and the
live queries filter on it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.domain.errors.session import ParticipantNotFoundError
from insightflow.domain.models.participant import Participant

PARTICIPANTS_DDL = (
    """
    CREATE TABLE IF NOT EXISTS participants (
        id UUID PRIMARY KEY,
        session_id UUID NOT NULL REFERENCES sessions (id),
        principal_id TEXT NOT NULL,
        display_identity TEXT NOT NULL,
        joined_at TIMESTAMPTZ NOT NULL,
        is_deleted BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
    "CREATE INDEX IF NOT EXISTS participants_session_idx ON participants (session_id, joined_at)",
)

_COLUMNS = "id, session_id, principal_id, display_identity, joined_at, is_deleted"


def _to_params(participant: Participant) -> dict[str, Any]:
    return {
        "id": participant.participant_id,
        "session_id": participant.session_id,
        "principal_id": participant.principal_id,
        "display_identity": participant.display_identity,
        "joined_at": participant.joined_at,
        "is_deleted": participant.is_deleted,
    }


def _from_row(row: Mapping[str, Any]) -> Participant:
    return Participant(
        participant_id=row["id"],
        session_id=row["session_id"],
        principal_id=row["principal_id"],
        display_identity=row["display_identity"],
        joined_at=row["joined_at"],
        is_deleted=row["is_deleted"],
    )


class PostgresParticipantRepository(ParticipantRepositoryProtocol):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, participant: Participant) -> None:
        async with self._session_factory() as db:
            try:
                await db.execute(
                    text(f"""
                        INSERT INTO participants ({_COLUMNS})
                        VALUES (
                            :id, :session_id, :principal_id, :display_identity,
                            :joined_at, :is_deleted
                        )
                    """),
                    _to_params(participant),
                )
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ValueError(
                    f"Participant already exists: {participant.participant_id}"
                ) from exc

    async def get(self, participant_id: UUID) -> Participant | None:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"SELECT {_COLUMNS} FROM participants WHERE id = :id"),
                {"id": participant_id},
            )
            row = result.mappings().fetchone()
        return _from_row(row) if row else None

    async def get_by_principal(self, session_id: UUID, principal_id: str) -> Participant | None:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    SELECT {_COLUMNS} FROM participants
                    WHERE session_id = :session_id
                      AND principal_id = :principal_id
                      AND NOT is_deleted
                    ORDER BY joined_at, id
                    LIMIT 1
                """),
                {"session_id": session_id, "principal_id": principal_id},
            )
            row = result.mappings().fetchone()
        return _from_row(row) if row else None

    async def list_by_session(
        self,
        session_id: UUID,
        include_deleted: bool = False,
    ) -> list[Participant]:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    SELECT {_COLUMNS} FROM participants
                    WHERE session_id = :session_id
                      AND (:include_deleted OR NOT is_deleted)
                    ORDER BY joined_at, CAST(id AS TEXT)
                """),
                {"session_id": session_id, "include_deleted": include_deleted},
            )
            rows = result.mappings().fetchall()
        return [_from_row(row) for row in rows]

    async def mark_deleted(self, participant_id: UUID) -> Participant:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    UPDATE participants SET is_deleted = TRUE
                    WHERE id = :id
                    RETURNING {_COLUMNS}
                """),
                {"id": participant_id},
            )
            row = result.mappings().fetchone()
            await db.commit()
        if row is None:
            raise ParticipantNotFoundError(participant_id=participant_id)
        return _from_row(row)
