"""Unit tests for DiscussionService."""

import pytest

from insightflow.application.services.discussion_service import MAX_MESSAGE_LENGTH
from insightflow.domain.errors import (
    CompletionServiceError,
    InvalidStateError,
    NotParticipantError,
    NotSessionHostError,
    SessionArchivedError,
    ValidationError,
)
from insightflow.domain.models.discussion import AgentType, MessageRole
from tests.helpers import participant_ctx


@pytest.fixture
def labelled_session(session_in_ai_discussion):
    """Session where A is the only nugget and B a lightbulb."""

    async def build():
        return await session_in_ai_discussion(
            "A", "B", votes=((1, 0),), vote_settings={"top_voted_count": 1}
        )

    return build


class TestOpenDiscussion:
    async def test_agent_follows_label(self, discussion_service, labelled_session) -> None:
        session, (a, b) = await labelled_session()

        nugget = await discussion_service.open_discussion(
            participant_ctx(a), session.session_id, a.participant_id
        )
        lightbulb = await discussion_service.open_discussion(
            participant_ctx(b), session.session_id, b.participant_id
        )

        assert nugget.agent_type == AgentType.NUGGET
        assert lightbulb.agent_type == AgentType.LIGHTBULB

    async def test_open_twice_returns_same_discussion(self, discussion_service, labelled_session) -> None:
        session, (a, _) = await labelled_session()
        ctx = participant_ctx(a)

        first = await discussion_service.open_discussion(ctx, session.session_id, a.participant_id)
        second = await discussion_service.open_discussion(ctx, session.session_id, a.participant_id)

        assert first.discussion_id == second.discussion_id

    async def test_cannot_open_for_someone_else(self, discussion_service, labelled_session) -> None:
        session, (a, b) = await labelled_session()
        with pytest.raises(NotParticipantError):
            await discussion_service.open_discussion(
                participant_ctx(b), session.session_id, a.participant_id
            )

    async def test_requires_ai_discussion(
        self, discussion_service, state_machine, host_ctx, draft_with_participants
    ) -> None:
        session, (a,) = await draft_with_participants("A")
        await state_machine.start_voting(host_ctx, session.session_id)
        with pytest.raises(InvalidStateError):
            await discussion_service.open_discussion(
                participant_ctx(a), session.session_id, a.participant_id
            )


class TestPostMessage:
    async def test_reply_from_agent(self, discussion_service, discussion_repo, completion, labelled_session) -> None:
        session, (a, _) = await labelled_session()
        ctx = participant_ctx(a)
        discussion = await discussion_service.open_discussion(ctx, session.session_id, a.participant_id)
        completion.queue("  Congratulations! Tell me more.  ")

        user, assistant = await discussion_service.post_message(
            ctx, session.session_id, discussion.discussion_id, "  We cut costs by half.  "
        )

        assert user.role == MessageRole.USER
        assert user.content == "We cut costs by half."
        assert assistant.content == "Congratulations! Tell me more."
        stored = await discussion_repo.get(discussion.discussion_id)
        assert [m.role for m in stored.messages] == [MessageRole.USER, MessageRole.ASSISTANT]

        call = completion.calls[-1]
        assert "AI Nuggets" in call.system_prompt
        assert "Retro" in call.system_prompt
        assert call.prompt.endswith("AI NUGGETS:")
        assert call.model_config.temperature == 0.7

    async def test_transcript_carried_into_next_turn(
        self, discussion_service, completion, labelled_session
    ) -> None:
        session, (_, b) = await labelled_session()
        ctx = participant_ctx(b)
        discussion = await discussion_service.open_discussion(ctx, session.session_id, b.participant_id)
        completion.queue("First reply", "Second reply")

        await discussion_service.post_message(ctx, session.session_id, discussion.discussion_id, "Idea one")
        await discussion_service.post_message(ctx, session.session_id, discussion.discussion_id, "Idea two")

        assert "USER: Idea one\nASSISTANT: First reply" in completion.calls[-1].prompt

    async def test_user_message_survives_completion_failure(
        self, discussion_service, discussion_repo, completion, labelled_session
    ) -> None:
        session, (a, _) = await labelled_session()
        ctx = participant_ctx(a)
        discussion = await discussion_service.open_discussion(ctx, session.session_id, a.participant_id)
        completion.queue(CompletionServiceError("rate limited", code="RATE_LIMIT", retryable=True))

        with pytest.raises(CompletionServiceError):
            await discussion_service.post_message(ctx, session.session_id, discussion.discussion_id, "Hello")

        stored = await discussion_repo.get(discussion.discussion_id)
        assert [m.content for m in stored.messages] == ["Hello"]

    @pytest.mark.parametrize("content", ["", "   ", "x" * (MAX_MESSAGE_LENGTH + 1)])
    async def test_invalid_content(self, discussion_service, labelled_session, content: str) -> None:
        session, (a, _) = await labelled_session()
        ctx = participant_ctx(a)
        discussion = await discussion_service.open_discussion(ctx, session.session_id, a.participant_id)

        with pytest.raises(ValidationError):
            await discussion_service.post_message(ctx, session.session_id, discussion.discussion_id, content)

    async def test_archived_session_rejects_messages(
        self, discussion_service, state_machine, host_ctx, labelled_session
    ) -> None:
        session, (a, _) = await labelled_session()
        ctx = participant_ctx(a)
        discussion = await discussion_service.open_discussion(ctx, session.session_id, a.participant_id)
        await state_machine.archive(host_ctx, session.session_id)

        with pytest.raises(SessionArchivedError):
            await discussion_service.post_message(ctx, session.session_id, discussion.discussion_id, "Hi")


class TestReadAccess:
    async def test_host_and_owner_can_read(self, discussion_service, host_ctx, labelled_session) -> None:
        session, (a, b) = await labelled_session()
        discussion = await discussion_service.open_discussion(
            participant_ctx(a), session.session_id, a.participant_id
        )

        assert await discussion_service.get_discussion(host_ctx, session.session_id, discussion.discussion_id)
        assert await discussion_service.get_discussion(
            participant_ctx(a), session.session_id, discussion.discussion_id
        )
        with pytest.raises(NotParticipantError):
            await discussion_service.get_discussion(
                participant_ctx(b), session.session_id, discussion.discussion_id
            )

    async def test_list_is_host_only(self, discussion_service, host_ctx, labelled_session) -> None:
        session, (a, _) = await labelled_session()
        await discussion_service.open_discussion(participant_ctx(a), session.session_id, a.participant_id)

        assert len(await discussion_service.list_discussions(host_ctx, session.session_id)) == 1
        with pytest.raises(NotSessionHostError):
            await discussion_service.list_discussions(participant_ctx(a), session.session_id)
