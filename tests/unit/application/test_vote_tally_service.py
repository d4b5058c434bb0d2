"""Unit tests for VoteTallyService."""

import asyncio
from uuid import uuid4

import pytest

from insightflow.domain.errors import (
    DuplicateVoteError,
    NotParticipantError,
    ParticipantNotFoundError,
    ReasonRequiredError,
    SelfVoteError,
    SessionArchivedError,
    SessionNotActiveError,
    TallyNotFinalizedError,
    VoteLimitExceededError,
)
from insightflow.domain.models.vote import ParticipantLabel
from insightflow.infrastructure.stubs import SessionRepositoryStub
from tests.helpers import participant_ctx


@pytest.fixture
def active_session(draft_with_participants, state_machine, host_ctx):
    """Factory: an active session with participants A, B, C, D."""

    async def build(**settings):
        session, participants = await draft_with_participants("A", "B", "C", "D")
        session = await state_machine.start_voting(host_ctx, session.session_id, settings or None)
        return session, participants

    return build


async def _vote(vote_tally, session, voter, target, reason=None):
    return await vote_tally.cast_vote(
        participant_ctx(voter),
        session.session_id,
        voter.participant_id,
        target.participant_id,
        reason=reason,
    )


class TestCastVote:
    """Vote acceptance and rejection rules."""

    async def test_vote_recorded(self, vote_tally, active_session) -> None:
        session, (a, b, _, _) = await active_session()

        vote = await _vote(vote_tally, session, a, b, reason="  great idea  ")

        assert vote.voter_participant_id == a.participant_id
        assert vote.voted_for_participant_id == b.participant_id
        assert vote.reason == "great idea"
        assert await vote_tally.remaining_votes(session.session_id, a.participant_id) == 2

    async def test_limit_is_enforced(self, vote_tally, active_session) -> None:
        session, (a, b, c, d) = await active_session(max_votes_per_participant=2)
        await _vote(vote_tally, session, a, b)
        await _vote(vote_tally, session, a, c)

        with pytest.raises(VoteLimitExceededError) as exc_info:
            await _vote(vote_tally, session, a, d)

        assert exc_info.value.votes_cast == 2
        assert exc_info.value.max_votes == 2
        assert await vote_tally.remaining_votes(session.session_id, a.participant_id) == 0

    async def test_concurrent_votes_cannot_exceed_limit(self, vote_tally, active_session) -> None:
        session, (a, b, c, d) = await active_session(max_votes_per_participant=2)

        results = await asyncio.gather(
            _vote(vote_tally, session, a, b),
            _vote(vote_tally, session, a, c),
            _vote(vote_tally, session, a, d),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, VoteLimitExceededError)) == 1
        assert await vote_tally.remaining_votes(session.session_id, a.participant_id) == 0

    async def test_duplicate_vote(self, vote_tally, active_session) -> None:
        session, (a, b, _, _) = await active_session()
        await _vote(vote_tally, session, a, b)

        with pytest.raises(DuplicateVoteError):
            await _vote(vote_tally, session, a, b)

    async def test_self_vote(self, vote_tally, active_session) -> None:
        session, (a, _, _, _) = await active_session()
        with pytest.raises(SelfVoteError):
            await _vote(vote_tally, session, a, a)

    async def test_reason_required(self, vote_tally, active_session) -> None:
        session, (a, b, c, _) = await active_session(require_reason=True)

        with pytest.raises(ReasonRequiredError):
            await _vote(vote_tally, session, a, b, reason="   ")
        vote = await _vote(vote_tally, session, a, c, reason="clear explanation")
        assert vote.reason == "clear explanation"

    async def test_deadline_passed(self, vote_tally, active_session, fake_time_authority) -> None:
        session, (a, b, _, _) = await active_session(voting_duration_seconds=60)
        fake_time_authority.advance(seconds=60)

        with pytest.raises(SessionNotActiveError) as exc_info:
            await _vote(vote_tally, session, a, b)
        assert exc_info.value.deadline_passed

    async def test_draft_session_rejects_votes(self, vote_tally, draft_with_participants) -> None:
        session, (a, b) = await draft_with_participants("A", "B")
        with pytest.raises(SessionNotActiveError) as exc_info:
            await _vote(vote_tally, session, a, b)
        assert not exc_info.value.deadline_passed

    async def test_archived_session_rejects_votes(
        self, vote_tally, state_machine, host_ctx, session_in_ai_discussion
    ) -> None:
        session, (a, b) = await session_in_ai_discussion("A", "B")
        await state_machine.archive(host_ctx, session.session_id)

        with pytest.raises(SessionArchivedError):
            await _vote(vote_tally, session, a, b)

    async def test_caller_must_be_the_voter(self, vote_tally, active_session) -> None:
        session, (a, b, c, _) = await active_session()
        with pytest.raises(NotParticipantError):
            await vote_tally.cast_vote(
                participant_ctx(b), session.session_id, a.participant_id, c.participant_id
            )

    async def test_removed_participant_cannot_be_voted_for(
        self, vote_tally, state_machine, host_ctx, draft_with_participants
    ) -> None:
        session, (a, b, c) = await draft_with_participants("A", "B", "C")
        await state_machine.remove_participant(host_ctx, session.session_id, c.participant_id)
        await state_machine.start_voting(host_ctx, session.session_id)

        with pytest.raises(ParticipantNotFoundError):
            await _vote(vote_tally, session, a, c)


class TestTally:
    """Live counts, finalization and labels."""

    async def test_three_participant_ranking(
        self, vote_tally, state_machine, host_ctx, active_session
    ) -> None:
        session, (a, b, c, d) = await active_session(max_votes_per_participant=2, top_voted_count=1)
        await _vote(vote_tally, session, b, a)
        await _vote(vote_tally, session, c, a)
        await _vote(vote_tally, session, a, b)

        live = await vote_tally.current_tally(session.session_id)
        assert [(e.participant_id, e.vote_count) for e in live[:3]] == [
            (a.participant_id, 2),
            (b.participant_id, 1),
            (c.participant_id, 0),
        ]
        assert all(e.label is None for e in live)

        await state_machine.end_voting(host_ctx, session.session_id)
        tally = await vote_tally.get_tally(session.session_id)

        assert tally.total_votes == 3
        assert [e.participant_id for e in tally.nuggets] == [a.participant_id]
        assert {e.participant_id for e in tally.lightbulbs} == {
            b.participant_id,
            c.participant_id,
            d.participant_id,
        }
        assert await vote_tally.label_for(session.session_id, b.participant_id) == (
            ParticipantLabel.LIGHTBULB
        )

    async def test_tally_counts_sum_to_votes(self, vote_tally, state_machine, host_ctx, active_session) -> None:
        session, people = await active_session(max_votes_per_participant=3)
        cast = 0
        for voter in people:
            for target in people:
                if voter is not target and cast < 7:
                    await _vote(vote_tally, session, voter, target)
                    cast += 1

        await state_machine.end_voting(host_ctx, session.session_id)
        tally = await vote_tally.get_tally(session.session_id)
        assert sum(e.vote_count for e in tally.entries) == tally.total_votes == 7

    async def test_get_tally_before_end(self, vote_tally, active_session) -> None:
        session, _ = await active_session()
        with pytest.raises(TallyNotFinalizedError):
            await vote_tally.get_tally(session.session_id)

    async def test_finalize_is_idempotent(
        self, vote_tally, state_machine, host_ctx, session_repo, active_session
    ) -> None:
        session, _ = await active_session()
        await state_machine.end_voting(host_ctx, session.session_id)
        ended = await session_repo.get(session.session_id)

        first = await vote_tally.get_tally(session.session_id)
        again = await vote_tally.finalize_tally(ended)
        assert again == first

    async def test_label_for_unknown_participant(
        self, vote_tally, state_machine, host_ctx, active_session
    ) -> None:
        session, _ = await active_session()
        await state_machine.end_voting(host_ctx, session.session_id)
        with pytest.raises(ParticipantNotFoundError):
            await vote_tally.label_for(session.session_id, uuid4())


class StallingSessionRepository(SessionRepositoryStub):
    """Session stub whose next read returns, then parks until released."""

    def __init__(self) -> None:
        super().__init__()
        self.read_done = asyncio.Event()
        self.release = asyncio.Event()
        self._armed = False

    def stall_next_read(self) -> None:
        self._armed = True

    async def get(self, session_id):
        session = await super().get(session_id)
        if self._armed:
            self._armed = False
            self.read_done.set()
            await self.release.wait()
        return session


class TestVoteDuringEndVoting:
    """A vote that read an ACTIVE session must not land after the tally."""

    @pytest.fixture
    def session_repo(self) -> StallingSessionRepository:
        return StallingSessionRepository()

    async def test_stale_active_read_is_rejected(
        self, vote_tally, vote_repo, session_repo, state_machine, host_ctx, active_session
    ) -> None:
        session, (a, b, _, _) = await active_session()
        session_repo.stall_next_read()
        pending = asyncio.create_task(_vote(vote_tally, session, a, b))
        await session_repo.read_done.wait()

        await state_machine.end_voting(host_ctx, session.session_id)
        session_repo.release.set()

        with pytest.raises(SessionNotActiveError):
            await pending
        tally = await vote_tally.get_tally(session.session_id)
        votes = await vote_repo.list_by_session(session.session_id)
        assert tally.total_votes == len(votes) == 0
        assert all(entry.vote_count == 0 for entry in tally.entries)

    async def test_votes_before_close_are_counted(
        self, vote_tally, vote_repo, session_repo, state_machine, host_ctx, active_session
    ) -> None:
        session, (a, b, c, _) = await active_session()
        await _vote(vote_tally, session, a, b)
        session_repo.stall_next_read()
        pending = asyncio.create_task(_vote(vote_tally, session, c, b))
        await session_repo.read_done.wait()

        await state_machine.end_voting(host_ctx, session.session_id)
        session_repo.release.set()

        with pytest.raises(SessionNotActiveError):
            await pending
        tally = await vote_tally.get_tally(session.session_id)
        assert tally.total_votes == len(await vote_repo.list_by_session(session.session_id)) == 1
