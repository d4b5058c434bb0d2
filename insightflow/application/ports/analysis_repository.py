"""Analysis repository port.

Writes are upserts: storing a new DiscussionAnalysis or GlobalAnalysis
supersedes the currently active row for the same key, so at most one
active row exists per (discussion, type) and per (session, type).
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from insightflow.domain.models.analysis import (
    AnalysisType,
    DiscussionAnalysis,
    GlobalAnalysis,
)


class AnalysisRepositoryProtocol(Protocol):
    """Protocol for discussion and global analysis storage."""

    async def supersede_active(self, session_id: UUID, analysis_type: AnalysisType) -> int:
        """Mark every active analysis of a type in a session as superseded.

        Returns:
            Number of rows superseded (discussion and global).
        """
        ...

    async def upsert_discussion_analysis(self, analysis: DiscussionAnalysis) -> None:
        ...

    async def list_active_discussion_analyses(
        self,
        session_id: UUID,
        analysis_type: AnalysisType | None = None,
    ) -> list[DiscussionAnalysis]:
        """List active discussion analyses, optionally of one type."""
        ...

    async def upsert_global_analysis(self, analysis: GlobalAnalysis) -> None:
        ...

    async def get_active_global_analysis(
        self,
        session_id: UUID,
        analysis_type: AnalysisType,
    ) -> GlobalAnalysis | None:
        ...

    async def list_active_global_analyses(self, session_id: UUID) -> list[GlobalAnalysis]:
        ...
