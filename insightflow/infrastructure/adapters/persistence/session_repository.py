"""PostgreSQL session repository.

Conditional updates are a single statement:

    UPDATE sessions SET ... , version = :new_version
    WHERE id = :id AND status = :expected_status AND version = :expected_version
    RETURNING *

Zero rows returned means either the session is missing or the race was
lost; a follow-up SELECT tells which.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.domain.errors.session import ConcurrencyConflictError, SessionNotFoundError
from insightflow.domain.models.session import (
    AnalysisStatus,
    Session,
    SessionStatus,
    VoteSettings,
)

logger = get_logger()

SESSIONS_DDL = """
CREATE TABLE IF NOT EXISTS sessions (
    id UUID PRIMARY KEY,
    host_id TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    vote_settings JSONB,
    created_at TIMESTAMPTZ NOT NULL,
    started_at TIMESTAMPTZ,
    ended_at TIMESTAMPTZ,
    tally_finalized_at TIMESTAMPTZ,
    ai_discussion_started_at TIMESTAMPTZ,
    archived_at TIMESTAMPTZ,
    analysis_status TEXT,
    analysis_progress INTEGER NOT NULL DEFAULT 0
        CHECK (analysis_progress BETWEEN 0 AND 100),
    analysis_type TEXT,
    analysis_run_id UUID,
    analysis_failure_reason TEXT,
    version INTEGER NOT NULL
)
"""

_COLUMNS = (
    "id, host_id, title, status, vote_settings, created_at, started_at, ended_at, "
    "tally_finalized_at, ai_discussion_started_at, archived_at, analysis_status, "
    "analysis_progress, analysis_type, analysis_run_id, analysis_failure_reason, version"
)


def _to_params(session: Session) -> dict[str, Any]:
    return {
        "id": session.session_id,
        "host_id": session.host_id,
        "title": session.title,
        "status": session.status.value,
        "vote_settings": (
            json.dumps(session.vote_settings.to_dict()) if session.vote_settings else None
        ),
        "created_at": session.created_at,
        "started_at": session.started_at,
        "ended_at": session.ended_at,
        "tally_finalized_at": session.tally_finalized_at,
        "ai_discussion_started_at": session.ai_discussion_started_at,
        "archived_at": session.archived_at,
        "analysis_status": session.analysis_status.value if session.analysis_status else None,
        "analysis_progress": session.analysis_progress,
        "analysis_type": session.analysis_type,
        "analysis_run_id": session.analysis_run_id,
        "analysis_failure_reason": session.analysis_failure_reason,
        "version": session.version,
    }


def _from_row(row: Mapping[str, Any]) -> Session:
    raw_settings = row["vote_settings"]
    if isinstance(raw_settings, str):
        raw_settings = json.loads(raw_settings)
    return Session(
        session_id=row["id"],
        host_id=row["host_id"],
        title=row["title"],
        status=SessionStatus(row["status"]),
        vote_settings=VoteSettings.from_payload(raw_settings) if raw_settings else None,
        created_at=row["created_at"],
        started_at=row["started_at"],
        ended_at=row["ended_at"],
        tally_finalized_at=row["tally_finalized_at"],
        ai_discussion_started_at=row["ai_discussion_started_at"],
        archived_at=row["archived_at"],
        analysis_status=(
            AnalysisStatus(row["analysis_status"]) if row["analysis_status"] else None
        ),
        analysis_progress=row["analysis_progress"],
        analysis_type=row["analysis_type"],
        analysis_run_id=row["analysis_run_id"],
        analysis_failure_reason=row["analysis_failure_reason"],
        version=row["version"],
    )


class PostgresSessionRepository(SessionRepositoryProtocol):
    """SessionRepositoryProtocol backed by PostgreSQL via SQLAlchemy async."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, session: Session) -> None:
        async with self._session_factory() as db:
            try:
                await db.execute(
                    text(f"""
                        INSERT INTO sessions ({_COLUMNS})
                        VALUES (
                            :id, :host_id, :title, :status, CAST(:vote_settings AS JSONB),
                            :created_at, :started_at, :ended_at, :tally_finalized_at,
                            :ai_discussion_started_at, :archived_at, :analysis_status,
                            :analysis_progress, :analysis_type, :analysis_run_id,
                            :analysis_failure_reason, :version
                        )
                    """),
                    _to_params(session),
                )
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ValueError(f"Session already exists: {session.session_id}") from exc

    async def get(self, session_id: UUID) -> Session | None:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"SELECT {_COLUMNS} FROM sessions WHERE id = :id"),
                {"id": session_id},
            )
            row = result.mappings().fetchone()
        return _from_row(row) if row else None

    async def update_if(
        self,
        session: Session,
        expected_status: SessionStatus,
        expected_version: int,
    ) -> Session:
        params = _to_params(session)
        params["expected_status"] = expected_status.value
        params["expected_version"] = expected_version

        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    UPDATE sessions SET
                        title = :title,
                        status = :status,
                        vote_settings = CAST(:vote_settings AS JSONB),
                        started_at = :started_at,
                        ended_at = :ended_at,
                        tally_finalized_at = :tally_finalized_at,
                        ai_discussion_started_at = :ai_discussion_started_at,
                        archived_at = :archived_at,
                        analysis_status = :analysis_status,
                        analysis_progress = :analysis_progress,
                        analysis_type = :analysis_type,
                        analysis_run_id = :analysis_run_id,
                        analysis_failure_reason = :analysis_failure_reason,
                        version = :version
                    WHERE id = :id
                      AND status = :expected_status
                      AND version = :expected_version
                    RETURNING {_COLUMNS}
                """),
                params,
            )
            row = result.mappings().fetchone()
            if row is not None:
                await db.commit()
                return _from_row(row)

            await db.rollback()
            current = await db.execute(
                text("SELECT status FROM sessions WHERE id = :id"),
                {"id": session.session_id},
            )
            status_row = current.fetchone()

        if status_row is None:
            raise SessionNotFoundError(session.session_id)
        logger.info(
            "session_update_conflict",
            session_id=str(session.session_id),
            expected_status=expected_status.value,
            expected_version=expected_version,
            actual_status=status_row[0],
        )
        raise ConcurrencyConflictError(
            session_id=session.session_id,
            expected_status=expected_status,
            actual_status=SessionStatus(status_row[0]),
        )

    async def list_by_status(self, status: SessionStatus) -> list[Session]:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"SELECT {_COLUMNS} FROM sessions WHERE status = :status ORDER BY created_at"),
                {"status": status.value},
            )
            rows = result.mappings().fetchall()
        return [_from_row(row) for row in rows]
