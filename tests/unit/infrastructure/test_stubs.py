"""Unit tests for the in-memory repository stubs."""

import asyncio
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from insightflow.application.ports.completion_service import ModelConfig
from insightflow.domain.errors import (
    ConcurrencyConflictError,
    DiscussionNotFoundError,
    DuplicateVoteError,
    ParticipantNotFoundError,
    SessionNotActiveError,
    SessionNotFoundError,
    VoteLimitExceededError,
)
from insightflow.domain.models.analysis import AnalysisRecordStatus, AnalysisType, DiscussionAnalysis
from insightflow.domain.models.discussion import AgentType, Discussion, DiscussionMessage, MessageRole
from insightflow.domain.models.participant import Participant
from insightflow.domain.models.session import Session, SessionStatus, VoteSettings
from insightflow.domain.models.vote import Vote
from insightflow.infrastructure.stubs import (
    AnalysisRepositoryStub,
    CompletionServiceStub,
    DiscussionRepositoryStub,
    ParticipantRepositoryStub,
    SessionRepositoryStub,
    VoteRepositoryStub,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestSessionRepositoryStub:
    async def test_save_twice_rejected(self) -> None:
        repo = SessionRepositoryStub()
        session = Session.create(host_id="h", created_at=NOW)
        await repo.save(session)
        with pytest.raises(ValueError):
            await repo.save(session)

    async def test_conditional_update_single_winner(self) -> None:
        repo = SessionRepositoryStub()
        draft = Session.create(host_id="h", created_at=NOW)
        await repo.save(draft)
        started = draft.with_voting_started(VoteSettings(), now=NOW)

        results = await asyncio.gather(
            repo.update_if(started, SessionStatus.DRAFT, draft.version),
            repo.update_if(started, SessionStatus.DRAFT, draft.version),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, ConcurrencyConflictError)]
        assert len(conflicts) == 1
        assert conflicts[0].actual_status == SessionStatus.ACTIVE

    async def test_update_missing(self) -> None:
        repo = SessionRepositoryStub()
        with pytest.raises(SessionNotFoundError):
            await repo.update_if(Session.create(host_id="h"), SessionStatus.DRAFT, 1)

    async def test_list_by_status(self) -> None:
        repo = SessionRepositoryStub()
        first = Session.create(host_id="h", created_at=NOW)
        second = Session.create(host_id="h", created_at=NOW.replace(hour=10))
        await repo.save(second)
        await repo.save(first)

        assert [s.session_id for s in await repo.list_by_status(SessionStatus.DRAFT)] == [
            first.session_id,
            second.session_id,
        ]
        assert await repo.list_by_status(SessionStatus.ACTIVE) == []


class TestParticipantRepositoryStub:
    async def test_soft_delete(self) -> None:
        repo = ParticipantRepositoryStub()
        session_id = uuid4()
        participant = Participant.create(session_id, "p", "Pat", joined_at=NOW)
        await repo.save(participant)

        await repo.mark_deleted(participant.participant_id)

        assert await repo.list_by_session(session_id) == []
        assert len(await repo.list_by_session(session_id, include_deleted=True)) == 1
        assert await repo.get_by_principal(session_id, "p") is None

    async def test_mark_deleted_missing(self) -> None:
        with pytest.raises(ParticipantNotFoundError):
            await ParticipantRepositoryStub().mark_deleted(uuid4())


class TestVoteRepositoryStub:
    async def test_unique_and_limit(self) -> None:
        repo = VoteRepositoryStub()
        session_id, voter = uuid4(), uuid4()
        targets = [uuid4(), uuid4()]

        assert await repo.add_vote(Vote(session_id, voter, targets[0], NOW), max_votes=1) == 1
        with pytest.raises(DuplicateVoteError):
            await repo.add_vote(Vote(session_id, voter, targets[0], NOW), max_votes=5)
        with pytest.raises(VoteLimitExceededError):
            await repo.add_vote(Vote(session_id, voter, targets[1], NOW), max_votes=1)
        assert await repo.count_by_voter(session_id, voter) == 1

    async def test_closed_session_rejects_votes(self) -> None:
        repo = VoteRepositoryStub()
        session_id, voter, target = uuid4(), uuid4(), uuid4()
        await repo.close_voting(session_id)
        await repo.close_voting(session_id)

        with pytest.raises(SessionNotActiveError):
            await repo.add_vote(Vote(session_id, voter, target, NOW), max_votes=3)
        assert await repo.list_by_session(session_id) == []
        assert await repo.add_vote(Vote(uuid4(), voter, target, NOW), max_votes=3) == 1


class TestDiscussionRepositoryStub:
    async def test_one_live_discussion_per_participant(self) -> None:
        repo = DiscussionRepositoryStub()
        session_id, participant_id = uuid4(), uuid4()
        first = await repo.save(Discussion.create(session_id, participant_id, AgentType.NUGGET, NOW))
        second = await repo.save(Discussion.create(session_id, participant_id, AgentType.NUGGET, NOW))

        assert second.discussion_id == first.discussion_id
        assert len(await repo.list_by_session(session_id)) == 1

    async def test_append_to_missing(self) -> None:
        with pytest.raises(DiscussionNotFoundError):
            await DiscussionRepositoryStub().append_message(
                uuid4(), DiscussionMessage(MessageRole.USER, "hi", NOW)
            )


class TestAnalysisRepositoryStub:
    async def test_upsert_supersedes_previous_row(self) -> None:
        repo = AnalysisRepositoryStub()
        session_id, discussion_id = uuid4(), uuid4()
        for run in range(2):
            await repo.upsert_discussion_analysis(
                DiscussionAnalysis.create(
                    session_id, discussion_id, AnalysisType.OVERALL, {"run": run}, uuid4(), NOW
                )
            )

        active = await repo.list_active_discussion_analyses(session_id)
        assert [row.content for row in active] == [{"run": 1}]
        statuses = [row.status for row in repo.all_discussion_analyses()]
        assert statuses == [AnalysisRecordStatus.SUPERSEDED, AnalysisRecordStatus.ACTIVE]

    async def test_supersede_active_scoped_by_type(self) -> None:
        repo = AnalysisRepositoryStub()
        session_id = uuid4()
        for kind in (AnalysisType.NUGGETS, AnalysisType.LIGHTBULBS):
            await repo.upsert_discussion_analysis(
                DiscussionAnalysis.create(session_id, uuid4(), kind, {}, uuid4(), NOW)
            )

        assert await repo.supersede_active(session_id, AnalysisType.NUGGETS) == 1
        remaining = await repo.list_active_discussion_analyses(session_id)
        assert [row.analysis_type for row in remaining] == [AnalysisType.LIGHTBULBS]


class TestCompletionServiceStub:
    async def test_scripted_then_default(self) -> None:
        stub = CompletionServiceStub(default_response="default")
        stub.queue("first", RuntimeError("boom"))

        assert await stub.complete("p", ModelConfig()) == "first"
        with pytest.raises(RuntimeError):
            await stub.complete("p", ModelConfig())
        assert await stub.complete("p", ModelConfig(), system_prompt="s") == "default"
        assert [call.system_prompt for call in stub.calls] == [None, None, "s"]
