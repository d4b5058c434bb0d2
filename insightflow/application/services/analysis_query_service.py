"""Read access to analysis status and results.

Access rules:
- the host sees everything
- a participant sees global analyses once voting has ended
- individual (per-discussion) analyses are host-only
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from insightflow.application.ports.analysis_repository import AnalysisRepositoryProtocol
from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.services.session_access import load_session
from insightflow.domain.errors.session import NotParticipantError, NotSessionHostError
from insightflow.domain.models.analysis import (
    AnalysisType,
    DiscussionAnalysis,
    GlobalAnalysis,
)
from insightflow.domain.models.progress import ProgressSnapshot
from insightflow.domain.models.session import Session, SessionStatus
from insightflow.domain.models.session_context import SessionContext

_BEFORE_RESULTS = (SessionStatus.DRAFT, SessionStatus.ACTIVE)


@dataclass(frozen=True)
class AnalysisResults:
    session_id: UUID
    global_analyses: list[GlobalAnalysis] = field(default_factory=list)
    individual_analyses: list[DiscussionAnalysis] = field(default_factory=list)


class AnalysisQueryService:
    def __init__(
        self,
        session_repository: SessionRepositoryProtocol,
        participant_repository: ParticipantRepositoryProtocol,
        analysis_repository: AnalysisRepositoryProtocol,
    ) -> None:
        self._sessions = session_repository
        self._participants = participant_repository
        self._analyses = analysis_repository

    async def _authorize(self, ctx: SessionContext, session: Session) -> bool:
        """Return True for the host; raise NotParticipantError for strangers."""
        if ctx.is_system or ctx.principal_id == session.host_id:
            return True
        participant = await self._participants.get_by_principal(session.session_id, ctx.principal_id)
        if participant is None:
            raise NotParticipantError(session_id=session.session_id, principal_id=ctx.principal_id)
        return False

    async def get_status(self, ctx: SessionContext, session_id: UUID) -> ProgressSnapshot:
        session = await load_session(self._sessions, session_id)
        await self._authorize(ctx, session)
        return ProgressSnapshot.from_session(session)

    async def get_results(
        self,
        ctx: SessionContext,
        session_id: UUID,
        analysis_type: str | AnalysisType | None = None,
        include_individual: bool = False,
    ) -> AnalysisResults:
        """Active analyses visible to the caller.

        Raises:
            InvalidAnalysisTypeError: If the type filter is unknown.
            NotParticipantError: If the caller is neither host nor participant.
            NotSessionHostError: If a participant asks for individual analyses
                or for results before voting has ended.
        """
        kind = AnalysisType.parse(analysis_type) if analysis_type is not None else None
        session = await load_session(self._sessions, session_id)
        is_host = await self._authorize(ctx, session)

        if not is_host:
            if include_individual:
                raise NotSessionHostError(
                    session_id=session_id,
                    principal_id=ctx.principal_id,
                    operation="view individual analyses",
                )
            if session.status in _BEFORE_RESULTS:
                raise NotSessionHostError(
                    session_id=session_id,
                    principal_id=ctx.principal_id,
                    operation="view analyses before voting has ended",
                )

        global_analyses = await self._analyses.list_active_global_analyses(session_id)
        if kind is not None:
            global_analyses = [g for g in global_analyses if g.analysis_type == kind]

        individual: list[DiscussionAnalysis] = []
        if include_individual:
            individual = await self._analyses.list_active_discussion_analyses(session_id, kind)

        return AnalysisResults(
            session_id=session_id,
            global_analyses=global_analyses,
            individual_analyses=individual,
        )
