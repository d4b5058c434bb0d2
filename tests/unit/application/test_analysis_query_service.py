"""Unit tests for AnalysisQueryService access rules."""

import pytest

from insightflow.domain.errors import (
    InvalidAnalysisTypeError,
    NotParticipantError,
    NotSessionHostError,
)
from insightflow.domain.models.analysis import AnalysisType
from insightflow.domain.models.discussion import AgentType, Discussion, DiscussionMessage, MessageRole
from insightflow.domain.models.session import AnalysisStatus
from insightflow.domain.models.session_context import SessionContext
from tests.helpers import participant_ctx


@pytest.fixture
def analysed_session(session_in_ai_discussion, orchestrator, discussion_repo, host_ctx, fake_time_authority):
    """Session with one completed overall analysis."""

    async def build():
        session, participants = await session_in_ai_discussion("A", "B")
        for participant in participants:
            discussion = Discussion.create(
                session.session_id, participant.participant_id, AgentType.LIGHTBULB, fake_time_authority.now()
            )
            await discussion_repo.save(
                discussion.with_message(DiscussionMessage(MessageRole.USER, "idea", fake_time_authority.now()))
            )
        await orchestrator.run(host_ctx, session.session_id, "overall")
        return session, participants

    return build


class TestResults:
    async def test_host_sees_everything(self, query_service, host_ctx, analysed_session) -> None:
        session, _ = await analysed_session()

        results = await query_service.get_results(host_ctx, session.session_id, include_individual=True)

        assert len(results.global_analyses) == 1
        assert len(results.individual_analyses) == 2

    async def test_participant_sees_global_only(self, query_service, analysed_session) -> None:
        session, (a, _) = await analysed_session()

        results = await query_service.get_results(participant_ctx(a), session.session_id)

        assert len(results.global_analyses) == 1
        assert results.individual_analyses == []
        with pytest.raises(NotSessionHostError):
            await query_service.get_results(participant_ctx(a), session.session_id, include_individual=True)

    async def test_type_filter(self, query_service, host_ctx, analysed_session) -> None:
        session, _ = await analysed_session()

        nuggets = await query_service.get_results(host_ctx, session.session_id, AnalysisType.NUGGETS)
        assert nuggets.global_analyses == []
        with pytest.raises(InvalidAnalysisTypeError):
            await query_service.get_results(host_ctx, session.session_id, "bogus")

    async def test_stranger_rejected(self, query_service, analysed_session) -> None:
        session, _ = await analysed_session()
        with pytest.raises(NotParticipantError):
            await query_service.get_results(SessionContext(principal_id="stranger"), session.session_id)

    async def test_participant_before_voting_ends(
        self, query_service, state_machine, host_ctx, draft_with_participants
    ) -> None:
        session, (a,) = await draft_with_participants("A")
        await state_machine.start_voting(host_ctx, session.session_id)

        with pytest.raises(NotSessionHostError):
            await query_service.get_results(participant_ctx(a), session.session_id)
        assert (await query_service.get_results(host_ctx, session.session_id)).global_analyses == []


class TestStatus:
    async def test_status_snapshot(self, query_service, analysed_session) -> None:
        session, (a, _) = await analysed_session()

        snapshot = await query_service.get_status(participant_ctx(a), session.session_id)

        assert snapshot.analysis_status == AnalysisStatus.COMPLETED
        assert snapshot.analysis_progress == 100
