"""In-memory analysis repository with upsert-by-supersede semantics."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import UUID

from insightflow.application.ports.analysis_repository import AnalysisRepositoryProtocol
from insightflow.domain.models.analysis import (
    AnalysisRecordStatus,
    AnalysisType,
    DiscussionAnalysis,
    GlobalAnalysis,
)

_ACTIVE = AnalysisRecordStatus.ACTIVE
_SUPERSEDED = AnalysisRecordStatus.SUPERSEDED


class AnalysisRepositoryStub(AnalysisRepositoryProtocol):
    def __init__(self) -> None:
        self._discussion_analyses: list[DiscussionAnalysis] = []
        self._global_analyses: list[GlobalAnalysis] = []
        self._lock = asyncio.Lock()

    async def supersede_active(self, session_id: UUID, analysis_type: AnalysisType) -> int:
        async with self._lock:
            superseded = 0
            for index, row in enumerate(self._discussion_analyses):
                if row.session_id == session_id and row.analysis_type == analysis_type and row.status == _ACTIVE:
                    self._discussion_analyses[index] = replace(row, status=_SUPERSEDED)
                    superseded += 1
            for index, grow in enumerate(self._global_analyses):
                if grow.session_id == session_id and grow.analysis_type == analysis_type and grow.status == _ACTIVE:
                    self._global_analyses[index] = replace(grow, status=_SUPERSEDED)
                    superseded += 1
            return superseded

    async def upsert_discussion_analysis(self, analysis: DiscussionAnalysis) -> None:
        async with self._lock:
            for index, row in enumerate(self._discussion_analyses):
                if (
                    row.discussion_id == analysis.discussion_id
                    and row.analysis_type == analysis.analysis_type
                    and row.status == _ACTIVE
                ):
                    self._discussion_analyses[index] = replace(row, status=_SUPERSEDED)
            self._discussion_analyses.append(analysis)

    async def list_active_discussion_analyses(
        self,
        session_id: UUID,
        analysis_type: AnalysisType | None = None,
    ) -> list[DiscussionAnalysis]:
        return [
            row
            for row in self._discussion_analyses
            if row.session_id == session_id
            and row.status == _ACTIVE
            and (analysis_type is None or row.analysis_type == analysis_type)
        ]

    async def upsert_global_analysis(self, analysis: GlobalAnalysis) -> None:
        async with self._lock:
            for index, row in enumerate(self._global_analyses):
                if (
                    row.session_id == analysis.session_id
                    and row.analysis_type == analysis.analysis_type
                    and row.status == _ACTIVE
                ):
                    self._global_analyses[index] = replace(row, status=_SUPERSEDED)
            self._global_analyses.append(analysis)

    async def get_active_global_analysis(
        self,
        session_id: UUID,
        analysis_type: AnalysisType,
    ) -> GlobalAnalysis | None:
        for row in self._global_analyses:
            if row.session_id == session_id and row.analysis_type == analysis_type and row.status == _ACTIVE:
                return row
        return None

    async def list_active_global_analyses(self, session_id: UUID) -> list[GlobalAnalysis]:
        return [
            row for row in self._global_analyses if row.session_id == session_id and row.status == _ACTIVE
        ]

    def all_discussion_analyses(self) -> list[DiscussionAnalysis]:
        """Every stored row including superseded ones (for test assertions)."""
        return list(self._discussion_analyses)

    def clear(self) -> None:
        self._discussion_analyses.clear()
        self._global_analyses.clear()
