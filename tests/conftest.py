"""
Pytest configuration and shared fixtures for insightflow tests.

Testing Standards:
- Async tests run under pytest-asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Repositories use the in-memory stubs
- Time comes from FakeTimeAuthority
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

import pytest

from insightflow.application.services.analysis_orchestrator_service import (
    AnalysisOrchestratorService,
)
from insightflow.application.services.analysis_query_service import AnalysisQueryService
from insightflow.application.services.discussion_service import DiscussionService
from insightflow.application.services.progress_notifier_service import (
    PollingProgressNotifier,
)
from insightflow.application.services.session_state_machine_service import (
    SessionStateMachineService,
)
from insightflow.application.services.vote_tally_service import VoteTallyService
from insightflow.domain.models.participant import Participant
from insightflow.domain.models.session import Session
from insightflow.domain.models.session_context import SessionContext
from insightflow.infrastructure.stubs import (
    AnalysisRepositoryStub,
    CompletionServiceStub,
    DiscussionRepositoryStub,
    ParticipantRepositoryStub,
    SessionRepositoryStub,
    VoteRepositoryStub,
)
from tests.helpers import FakeTimeAuthority, participant_ctx

HOST_ID = "host-1"


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    return FakeTimeAuthority()


@pytest.fixture
def session_repo() -> SessionRepositoryStub:
    return SessionRepositoryStub()


@pytest.fixture
def participant_repo() -> ParticipantRepositoryStub:
    return ParticipantRepositoryStub()


@pytest.fixture
def vote_repo() -> VoteRepositoryStub:
    return VoteRepositoryStub()


@pytest.fixture
def discussion_repo() -> DiscussionRepositoryStub:
    return DiscussionRepositoryStub()


@pytest.fixture
def analysis_repo() -> AnalysisRepositoryStub:
    return AnalysisRepositoryStub()


@pytest.fixture
def completion() -> CompletionServiceStub:
    return CompletionServiceStub()


@pytest.fixture
def notifier() -> PollingProgressNotifier:
    return PollingProgressNotifier()


@pytest.fixture
def host_ctx() -> SessionContext:
    return SessionContext(principal_id=HOST_ID)


@pytest.fixture
def vote_tally(
    session_repo: SessionRepositoryStub,
    participant_repo: ParticipantRepositoryStub,
    vote_repo: VoteRepositoryStub,
    fake_time_authority: FakeTimeAuthority,
) -> VoteTallyService:
    return VoteTallyService(
        session_repository=session_repo,
        participant_repository=participant_repo,
        vote_repository=vote_repo,
        time_authority=fake_time_authority,
    )


@pytest.fixture
def state_machine(
    session_repo: SessionRepositoryStub,
    participant_repo: ParticipantRepositoryStub,
    vote_tally: VoteTallyService,
    notifier: PollingProgressNotifier,
    fake_time_authority: FakeTimeAuthority,
) -> SessionStateMachineService:
    return SessionStateMachineService(
        session_repository=session_repo,
        participant_repository=participant_repo,
        vote_tally=vote_tally,
        notifier=notifier,
        time_authority=fake_time_authority,
    )


@pytest.fixture
def discussion_service(
    session_repo: SessionRepositoryStub,
    participant_repo: ParticipantRepositoryStub,
    discussion_repo: DiscussionRepositoryStub,
    vote_tally: VoteTallyService,
    completion: CompletionServiceStub,
    fake_time_authority: FakeTimeAuthority,
) -> DiscussionService:
    return DiscussionService(
        session_repository=session_repo,
        participant_repository=participant_repo,
        discussion_repository=discussion_repo,
        vote_tally=vote_tally,
        completion_service=completion,
        time_authority=fake_time_authority,
    )


@pytest.fixture
def orchestrator(
    session_repo: SessionRepositoryStub,
    discussion_repo: DiscussionRepositoryStub,
    analysis_repo: AnalysisRepositoryStub,
    completion: CompletionServiceStub,
    notifier: PollingProgressNotifier,
    fake_time_authority: FakeTimeAuthority,
) -> AnalysisOrchestratorService:
    return AnalysisOrchestratorService(
        session_repository=session_repo,
        discussion_repository=discussion_repo,
        analysis_repository=analysis_repo,
        completion_service=completion,
        notifier=notifier,
        time_authority=fake_time_authority,
    )


@pytest.fixture
def query_service(
    session_repo: SessionRepositoryStub,
    participant_repo: ParticipantRepositoryStub,
    analysis_repo: AnalysisRepositoryStub,
) -> AnalysisQueryService:
    return AnalysisQueryService(
        session_repository=session_repo,
        participant_repository=participant_repo,
        analysis_repository=analysis_repo,
    )


@pytest.fixture
def draft_with_participants(
    state_machine: SessionStateMachineService,
    host_ctx: SessionContext,
    fake_time_authority: FakeTimeAuthority,
) -> Callable[..., Awaitable[tuple[Session, list[Participant]]]]:
    """Factory: a draft session joined by ``names`` one second apart."""

    async def build(*names: str) -> tuple[Session, list[Participant]]:
        session = await state_machine.create_session(host_ctx, "Retro")
        participants = []
        for name in names:
            ctx = SessionContext(principal_id=f"user-{name}")
            participants.append(await state_machine.join_session(ctx, session.session_id, name))
            fake_time_authority.advance(seconds=1)
        return session, participants

    return build


@pytest.fixture
def session_in_ai_discussion(
    state_machine: SessionStateMachineService,
    vote_tally: VoteTallyService,
    host_ctx: SessionContext,
    draft_with_participants: Callable[..., Awaitable[tuple[Session, list[Participant]]]],
    fake_time_authority: FakeTimeAuthority,
) -> Callable[..., Awaitable[tuple[Session, list[Participant]]]]:
    """Factory: session in AI discussion; ``votes`` are (voter, target) index pairs."""

    async def build(
        *names: str,
        votes: tuple[tuple[int, int], ...] = (),
        vote_settings: dict[str, Any] | None = None,
    ) -> tuple[Session, list[Participant]]:
        session, participants = await draft_with_participants(*names)
        sid: UUID = session.session_id
        await state_machine.start_voting(host_ctx, sid, vote_settings)
        for voter, target in votes:
            await vote_tally.cast_vote(
                participant_ctx(participants[voter]),
                sid,
                participants[voter].participant_id,
                participants[target].participant_id,
            )
            fake_time_authority.advance(seconds=1)
        await state_machine.end_voting(host_ctx, sid)
        session = await state_machine.start_ai_discussion(host_ctx, sid)
        return session, participants

    return build
