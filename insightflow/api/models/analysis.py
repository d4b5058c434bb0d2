"""Analysis and progress API models."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from insightflow.api.models.common import DateTimeWithZ
from insightflow.domain.models.analysis import DiscussionAnalysis, GlobalAnalysis
from insightflow.domain.models.progress import ProgressSnapshot
from insightflow.domain.models.session import Session


class RunAnalysisRequest(BaseModel):
    analysis_type: str = Field(..., description="nuggets, lightbulbs or overall")
    rules: dict[str, Any] | None = Field(
        default=None, description="Per-type prompt toggles keyed by analysis type"
    )


class AnalysisAcceptedResponse(BaseModel):
    session_id: UUID
    analysis_type: str
    analysis_status: str

    @classmethod
    def from_session(cls, session: Session) -> AnalysisAcceptedResponse:
        return cls(
            session_id=session.session_id,
            analysis_type=session.analysis_type or "",
            analysis_status=session.analysis_status.value if session.analysis_status else "",
        )


class ProgressResponse(BaseModel):
    session_id: UUID
    session_status: str
    analysis_status: str | None = None
    analysis_progress: int
    analysis_type: str | None = None
    run_id: UUID | None = None
    sequence: int
    failure_reason: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: ProgressSnapshot) -> ProgressResponse:
        return cls(
            session_id=snapshot.session_id,
            session_status=snapshot.session_status.value,
            analysis_status=snapshot.analysis_status.value if snapshot.analysis_status else None,
            analysis_progress=snapshot.analysis_progress,
            analysis_type=snapshot.analysis_type,
            run_id=snapshot.run_id,
            sequence=snapshot.sequence,
            failure_reason=snapshot.failure_reason,
        )


class GlobalAnalysisModel(BaseModel):
    analysis_id: UUID
    analysis_type: str
    content: dict[str, Any]
    run_id: UUID
    source_count: int
    created_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, analysis: GlobalAnalysis) -> GlobalAnalysisModel:
        return cls(
            analysis_id=analysis.analysis_id,
            analysis_type=analysis.analysis_type.value,
            content=analysis.content,
            run_id=analysis.run_id,
            source_count=analysis.source_count,
            created_at=analysis.created_at,
        )


class DiscussionAnalysisModel(BaseModel):
    analysis_id: UUID
    discussion_id: UUID
    analysis_type: str
    content: dict[str, Any]
    run_id: UUID
    created_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, analysis: DiscussionAnalysis) -> DiscussionAnalysisModel:
        return cls(
            analysis_id=analysis.analysis_id,
            discussion_id=analysis.discussion_id,
            analysis_type=analysis.analysis_type.value,
            content=analysis.content,
            run_id=analysis.run_id,
            created_at=analysis.created_at,
        )


class AnalysisResultsResponse(BaseModel):
    session_id: UUID
    global_analyses: list[GlobalAnalysisModel]
    individual_analyses: list[DiscussionAnalysisModel] = Field(default_factory=list)
