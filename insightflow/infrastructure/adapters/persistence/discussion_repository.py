"""PostgreSQL discussion repository.

Messages live in a JSONB array on the discussion row and are appended
with ``messages || :message`` so concurrent appends never drop one. A
partial unique index keeps one live discussion per participant.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from insightflow.application.ports.discussion_repository import (
    DiscussionRepositoryProtocol,
)
from insightflow.domain.errors.analysis import DiscussionNotFoundError
from insightflow.domain.models.discussion import (
    AgentType,
    Discussion,
    DiscussionMessage,
    MessageRole,
)

DISCUSSIONS_DDL = (
    """
    CREATE TABLE IF NOT EXISTS discussions (
        id UUID PRIMARY KEY,
        session_id UUID NOT NULL REFERENCES sessions (id),
        participant_id UUID NOT NULL REFERENCES participants (id),
        agent_type TEXT NOT NULL,
        messages JSONB NOT NULL DEFAULT '[]',
        is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS discussions_live_participant_idx
        ON discussions (session_id, participant_id) WHERE NOT is_deleted
    """,
)

_COLUMNS = "id, session_id, participant_id, agent_type, messages, is_deleted, created_at"


def _message_from_dict(data: Mapping[str, Any]) -> DiscussionMessage:
    return DiscussionMessage(
        role=MessageRole(data["role"]),
        content=data["content"],
        timestamp=datetime.fromisoformat(data["timestamp"]),
    )


def _to_params(discussion: Discussion) -> dict[str, Any]:
    return {
        "id": discussion.discussion_id,
        "session_id": discussion.session_id,
        "participant_id": discussion.participant_id,
        "agent_type": discussion.agent_type.value,
        "messages": json.dumps([message.to_dict() for message in discussion.messages]),
        "is_deleted": discussion.is_deleted,
        "created_at": discussion.created_at,
    }


def _from_row(row: Mapping[str, Any]) -> Discussion:
    messages = row["messages"]
    if isinstance(messages, str):
        messages = json.loads(messages)
    return Discussion(
        discussion_id=row["id"],
        session_id=row["session_id"],
        participant_id=row["participant_id"],
        agent_type=AgentType(row["agent_type"]),
        messages=tuple(_message_from_dict(message) for message in messages),
        is_deleted=row["is_deleted"],
        created_at=row["created_at"],
    )


class PostgresDiscussionRepository(DiscussionRepositoryProtocol):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, discussion: Discussion) -> Discussion:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    INSERT INTO discussions ({_COLUMNS})
                    VALUES (
                        :id, :session_id, :participant_id, :agent_type,
                        CAST(:messages AS JSONB), :is_deleted, :created_at
                    )
                    ON CONFLICT (session_id, participant_id) WHERE NOT is_deleted
                    DO NOTHING
                    RETURNING {_COLUMNS}
                """),
                _to_params(discussion),
            )
            row = result.mappings().fetchone()
            await db.commit()
        if row is not None:
            return _from_row(row)
        existing = await self.get_by_participant(discussion.session_id, discussion.participant_id)
        if existing is None:
            raise DiscussionNotFoundError(participant_id=discussion.participant_id)
        return existing

    async def get(self, discussion_id: UUID) -> Discussion | None:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"SELECT {_COLUMNS} FROM discussions WHERE id = :id"),
                {"id": discussion_id},
            )
            row = result.mappings().fetchone()
        return _from_row(row) if row else None

    async def get_by_participant(self, session_id: UUID, participant_id: UUID) -> Discussion | None:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    SELECT {_COLUMNS} FROM discussions
                    WHERE session_id = :session_id
                      AND participant_id = :participant_id
                      AND NOT is_deleted
                """),
                {"session_id": session_id, "participant_id": participant_id},
            )
            row = result.mappings().fetchone()
        return _from_row(row) if row else None

    async def list_by_session(
        self,
        session_id: UUID,
        include_deleted: bool = False,
    ) -> list[Discussion]:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    SELECT {_COLUMNS} FROM discussions
                    WHERE session_id = :session_id
                      AND (:include_deleted OR NOT is_deleted)
                    ORDER BY created_at, CAST(id AS TEXT)
                """),
                {"session_id": session_id, "include_deleted": include_deleted},
            )
            rows = result.mappings().fetchall()
        return [_from_row(row) for row in rows]

    async def append_message(self, discussion_id: UUID, message: DiscussionMessage) -> Discussion:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    UPDATE discussions
                    SET messages = messages || CAST(:message AS JSONB)
                    WHERE id = :id AND NOT is_deleted
                    RETURNING {_COLUMNS}
                """),
                {"id": discussion_id, "message": json.dumps([message.to_dict()])},
            )
            row = result.mappings().fetchone()
            await db.commit()
        if row is None:
            raise DiscussionNotFoundError(discussion_id=discussion_id)
        return _from_row(row)
