"""PostgreSQL analysis repository.

Upserts supersede the active row and insert the new one in the same
transaction. Partial unique indexes on ``status = 'active'`` hold the
one-active-row-per-key rule in the database as well.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from insightflow.application.ports.analysis_repository import AnalysisRepositoryProtocol
from insightflow.domain.models.analysis import (
    AnalysisRecordStatus,
    AnalysisType,
    DiscussionAnalysis,
    GlobalAnalysis,
)

ANALYSES_DDL = (
    """
    CREATE TABLE IF NOT EXISTS discussion_analyses (
        id UUID PRIMARY KEY,
        session_id UUID NOT NULL REFERENCES sessions (id),
        discussion_id UUID NOT NULL REFERENCES discussions (id),
        analysis_type TEXT NOT NULL,
        content JSONB NOT NULL,
        run_id UUID NOT NULL,
        status TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS discussion_analyses_active_idx
        ON discussion_analyses (discussion_id, analysis_type) WHERE status = 'active'
    """,
    """
    CREATE TABLE IF NOT EXISTS global_analyses (
        id UUID PRIMARY KEY,
        session_id UUID NOT NULL REFERENCES sessions (id),
        analysis_type TEXT NOT NULL,
        content JSONB NOT NULL,
        run_id UUID NOT NULL,
        source_count INTEGER NOT NULL CHECK (source_count >= 1),
        status TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS global_analyses_active_idx
        ON global_analyses (session_id, analysis_type) WHERE status = 'active'
    """,
)

_DISCUSSION_COLUMNS = "id, session_id, discussion_id, analysis_type, content, run_id, status, created_at"
_GLOBAL_COLUMNS = "id, session_id, analysis_type, content, run_id, source_count, status, created_at"

_ACTIVE = AnalysisRecordStatus.ACTIVE.value
_SUPERSEDED = AnalysisRecordStatus.SUPERSEDED.value


def _content(raw: Any) -> dict[str, Any]:
    return json.loads(raw) if isinstance(raw, str) else raw


def _discussion_to_params(analysis: DiscussionAnalysis) -> dict[str, Any]:
    return {
        "id": analysis.analysis_id,
        "session_id": analysis.session_id,
        "discussion_id": analysis.discussion_id,
        "analysis_type": analysis.analysis_type.value,
        "content": json.dumps(analysis.content),
        "run_id": analysis.run_id,
        "status": analysis.status.value,
        "created_at": analysis.created_at,
    }


def _discussion_from_row(row: Mapping[str, Any]) -> DiscussionAnalysis:
    return DiscussionAnalysis(
        analysis_id=row["id"],
        session_id=row["session_id"],
        discussion_id=row["discussion_id"],
        analysis_type=AnalysisType(row["analysis_type"]),
        content=_content(row["content"]),
        run_id=row["run_id"],
        created_at=row["created_at"],
        status=AnalysisRecordStatus(row["status"]),
    )


def _global_to_params(analysis: GlobalAnalysis) -> dict[str, Any]:
    return {
        "id": analysis.analysis_id,
        "session_id": analysis.session_id,
        "analysis_type": analysis.analysis_type.value,
        "content": json.dumps(analysis.content),
        "run_id": analysis.run_id,
        "source_count": analysis.source_count,
        "status": analysis.status.value,
        "created_at": analysis.created_at,
    }


def _global_from_row(row: Mapping[str, Any]) -> GlobalAnalysis:
    return GlobalAnalysis(
        analysis_id=row["id"],
        session_id=row["session_id"],
        analysis_type=AnalysisType(row["analysis_type"]),
        content=_content(row["content"]),
        run_id=row["run_id"],
        source_count=row["source_count"],
        created_at=row["created_at"],
        status=AnalysisRecordStatus(row["status"]),
    )


class PostgresAnalysisRepository(AnalysisRepositoryProtocol):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def supersede_active(self, session_id: UUID, analysis_type: AnalysisType) -> int:
        params = {
            "session_id": session_id,
            "analysis_type": analysis_type.value,
            "active": _ACTIVE,
            "superseded": _SUPERSEDED,
        }
        async with self._session_factory() as db:
            superseded = 0
            for table in ("discussion_analyses", "global_analyses"):
                result = await db.execute(
                    text(f"""
                        UPDATE {table} SET status = :superseded
                        WHERE session_id = :session_id
                          AND analysis_type = :analysis_type
                          AND status = :active
                    """),
                    params,
                )
                superseded += result.rowcount
            await db.commit()
        return superseded

    async def upsert_discussion_analysis(self, analysis: DiscussionAnalysis) -> None:
        async with self._session_factory() as db:
            await db.execute(
                text("""
                    UPDATE discussion_analyses SET status = :superseded
                    WHERE discussion_id = :discussion_id
                      AND analysis_type = :analysis_type
                      AND status = :active
                """),
                {
                    "discussion_id": analysis.discussion_id,
                    "analysis_type": analysis.analysis_type.value,
                    "active": _ACTIVE,
                    "superseded": _SUPERSEDED,
                },
            )
            await db.execute(
                text(f"""
                    INSERT INTO discussion_analyses ({_DISCUSSION_COLUMNS})
                    VALUES (
                        :id, :session_id, :discussion_id, :analysis_type,
                        CAST(:content AS JSONB), :run_id, :status, :created_at
                    )
                """),
                _discussion_to_params(analysis),
            )
            await db.commit()

    async def list_active_discussion_analyses(
        self,
        session_id: UUID,
        analysis_type: AnalysisType | None = None,
    ) -> list[DiscussionAnalysis]:
        query = f"""
            SELECT {_DISCUSSION_COLUMNS} FROM discussion_analyses
            WHERE session_id = :session_id AND status = :active
        """
        params: dict[str, Any] = {"session_id": session_id, "active": _ACTIVE}
        if analysis_type is not None:
            query += " AND analysis_type = :analysis_type"
            params["analysis_type"] = analysis_type.value
        query += " ORDER BY created_at, id"

        async with self._session_factory() as db:
            result = await db.execute(text(query), params)
            rows = result.mappings().fetchall()
        return [_discussion_from_row(row) for row in rows]

    async def upsert_global_analysis(self, analysis: GlobalAnalysis) -> None:
        async with self._session_factory() as db:
            await db.execute(
                text("""
                    UPDATE global_analyses SET status = :superseded
                    WHERE session_id = :session_id
                      AND analysis_type = :analysis_type
                      AND status = :active
                """),
                {
                    "session_id": analysis.session_id,
                    "analysis_type": analysis.analysis_type.value,
                    "active": _ACTIVE,
                    "superseded": _SUPERSEDED,
                },
            )
            await db.execute(
                text(f"""
                    INSERT INTO global_analyses ({_GLOBAL_COLUMNS})
                    VALUES (
                        :id, :session_id, :analysis_type, CAST(:content AS JSONB),
                        :run_id, :source_count, :status, :created_at
                    )
                """),
                _global_to_params(analysis),
            )
            await db.commit()

    async def get_active_global_analysis(
        self,
        session_id: UUID,
        analysis_type: AnalysisType,
    ) -> GlobalAnalysis | None:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    SELECT {_GLOBAL_COLUMNS} FROM global_analyses
                    WHERE session_id = :session_id
                      AND analysis_type = :analysis_type
                      AND status = :active
                """),
                {
                    "session_id": session_id,
                    "analysis_type": analysis_type.value,
                    "active": _ACTIVE,
                },
            )
            row = result.mappings().fetchone()
        return _global_from_row(row) if row else None

    async def list_active_global_analyses(self, session_id: UUID) -> list[GlobalAnalysis]:
        async with self._session_factory() as db:
            result = await db.execute(
                text(f"""
                    SELECT {_GLOBAL_COLUMNS} FROM global_analyses
                    WHERE session_id = :session_id AND status = :active
                    ORDER BY created_at, id
                """),
                {"session_id": session_id, "active": _ACTIVE},
            )
            rows = result.mappings().fetchall()
        return [_global_from_row(row) for row in rows]
