"""Discussion service.

After voting, each participant talks to the agent their tally label
selects: nuggets to the AI journalist, lightbulbs to the idea
development partner. Discussions are only writable while the session is
in AI discussion.
"""

from __future__ import annotations

from uuid import UUID

from insightflow.application.ports.completion_service import (
    CompletionServiceProtocol,
    ModelConfig,
)
from insightflow.application.ports.discussion_repository import (
    DiscussionRepositoryProtocol,
)
from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.ports.time_authority import TimeAuthorityProtocol
from insightflow.application.prompts.agent_prompts import (
    render_agent_prompt,
    render_conversation_turn,
)
from insightflow.application.services.base import LoggingMixin
from insightflow.application.services.session_access import (
    load_live_participant,
    load_session,
    require_acting_as,
    require_host,
    require_status,
)
from insightflow.application.services.vote_tally_service import VoteTallyService
from insightflow.domain.errors.analysis import DiscussionNotFoundError
from insightflow.domain.errors.session import NotParticipantError, ValidationError
from insightflow.domain.models.discussion import (
    AgentType,
    Discussion,
    DiscussionMessage,
    MessageRole,
)
from insightflow.domain.models.session import SessionStatus
from insightflow.domain.models.session_context import SessionContext

MAX_MESSAGE_LENGTH = 4000


class DiscussionService(LoggingMixin):
    """Opens discussions, records messages and produces agent replies."""

    def __init__(
        self,
        session_repository: SessionRepositoryProtocol,
        participant_repository: ParticipantRepositoryProtocol,
        discussion_repository: DiscussionRepositoryProtocol,
        vote_tally: VoteTallyService,
        completion_service: CompletionServiceProtocol,
        time_authority: TimeAuthorityProtocol,
        model_config: ModelConfig | None = None,
        facilitator_name: str | None = None,
    ) -> None:
        self._sessions = session_repository
        self._participants = participant_repository
        self._discussions = discussion_repository
        self._tally = vote_tally
        self._completion = completion_service
        self._time = time_authority
        self._model_config = model_config or ModelConfig()
        self._facilitator_name = facilitator_name
        self._init_logger(component="discussion")

    async def open_discussion(
        self,
        ctx: SessionContext,
        session_id: UUID,
        participant_id: UUID,
    ) -> Discussion:
        """Open (or return) the participant's discussion.

        Raises:
            InvalidStateError: If the session is not in AI discussion.
            ParticipantNotFoundError: If the participant is missing.
            NotParticipantError: If the caller is not the participant.
            TallyNotFinalizedError: If there is no finalized tally.
        """
        session = await load_session(self._sessions, session_id)
        require_status(session, SessionStatus.AI_DISCUSSION, "open discussion")
        participant = await load_live_participant(self._participants, session_id, participant_id)
        require_acting_as(participant, ctx)

        label = await self._tally.label_for(session_id, participant_id)
        discussion = await self._discussions.save(
            Discussion.create(
                session_id=session_id,
                participant_id=participant_id,
                agent_type=AgentType.for_label(label),
                created_at=self._time.now(),
            )
        )
        self._log_operation(
            "open_discussion",
            session_id=str(session_id),
            discussion_id=str(discussion.discussion_id),
        ).info("discussion_opened", agent_type=discussion.agent_type.value)
        return discussion

    async def post_message(
        self,
        ctx: SessionContext,
        session_id: UUID,
        discussion_id: UUID,
        content: str,
    ) -> tuple[DiscussionMessage, DiscussionMessage]:
        """Append the participant's message and the agent's reply.

        The participant's message is stored before the completion call, so
        it survives a completion failure.

        Returns:
            (user message, assistant reply)

        Raises:
            ValidationError: If content is blank or too long.
            CompletionServiceError: If the agent reply cannot be generated.
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError("message content must not be blank")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"message content must be at most {MAX_MESSAGE_LENGTH} characters")

        log = self._log_operation(
            "post_message", session_id=str(session_id), discussion_id=str(discussion_id)
        )
        session = await load_session(self._sessions, session_id)
        require_status(session, SessionStatus.AI_DISCUSSION, "post discussion message")
        discussion = await self._load_discussion(session_id, discussion_id)
        participant = await load_live_participant(
            self._participants, session_id, discussion.participant_id
        )
        require_acting_as(participant, ctx)

        transcript = discussion.transcript()
        user_message = DiscussionMessage(
            role=MessageRole.USER, content=text, timestamp=self._time.now()
        )
        await self._discussions.append_message(discussion_id, user_message)

        reply = await self._completion.complete(
            render_conversation_turn(discussion.agent_type, transcript, text),
            self._model_config,
            system_prompt=render_agent_prompt(
                discussion.agent_type,
                program_name=session.title,
                facilitator_name=self._facilitator_name,
            ),
        )
        assistant_message = DiscussionMessage(
            role=MessageRole.ASSISTANT, content=reply.strip(), timestamp=self._time.now()
        )
        await self._discussions.append_message(discussion_id, assistant_message)

        log.info("discussion_message_posted", messages=len(discussion.messages) + 2)
        return user_message, assistant_message

    async def get_discussion(
        self,
        ctx: SessionContext,
        session_id: UUID,
        discussion_id: UUID,
    ) -> Discussion:
        """Return a discussion to its participant or the host."""
        session = await load_session(self._sessions, session_id)
        discussion = await self._load_discussion(session_id, discussion_id)
        if ctx.principal_id == session.host_id:
            return discussion
        participant = await self._participants.get(discussion.participant_id)
        if participant is None or participant.principal_id != ctx.principal_id:
            raise NotParticipantError(session_id=session_id, principal_id=ctx.principal_id)
        return discussion

    async def list_discussions(self, ctx: SessionContext, session_id: UUID) -> list[Discussion]:
        """Every live discussion of the session (host only)."""
        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "list discussions")
        return await self._discussions.list_by_session(session_id)

    async def _load_discussion(self, session_id: UUID, discussion_id: UUID) -> Discussion:
        discussion = await self._discussions.get(discussion_id)
        if discussion is None or discussion.is_deleted or discussion.session_id != session_id:
            raise DiscussionNotFoundError(discussion_id=discussion_id)
        return discussion
