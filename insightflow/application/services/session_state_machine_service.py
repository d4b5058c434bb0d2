"""Session state machine service.

Drives the linear lifecycle DRAFT -> ACTIVE -> ENDED -> AI_DISCUSSION ->
ARCHIVED and the participant registry of a session.

Every transition is a conditional write on the expected prior status and
version. When the write loses a race the session is refetched: if it is
already in the target status the call is treated as applied, otherwise
the conflict is raised. This is how a manual end voting and the deadline
timer settle on a single winner.

Host-only operations accept the system context, used by the deadline
timer.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.application.ports.progress_notifier import ProgressNotifierProtocol
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.ports.time_authority import TimeAuthorityProtocol
from insightflow.application.ports.vote_deadline_scheduler import (
    VoteDeadlineSchedulerProtocol,
)
from insightflow.application.services.base import LoggingMixin
from insightflow.application.services.session_access import (
    load_live_participant,
    load_session,
    require_host,
)
from insightflow.application.services.vote_tally_service import VoteTallyService
from insightflow.domain.errors.session import (
    ConcurrencyConflictError,
    InvalidStateError,
    SessionArchivedError,
    TallyNotFinalizedError,
    ValidationError,
)
from insightflow.domain.models.participant import Participant
from insightflow.domain.models.progress import ProgressSnapshot
from insightflow.domain.models.session import Session, SessionStatus, VoteSettings
from insightflow.domain.models.session_context import SessionContext

# Participants may join until voting closes
JOINABLE_STATUSES = (SessionStatus.DRAFT, SessionStatus.ACTIVE)

MAX_FINALIZE_ATTEMPTS = 3
MAX_TITLE_LENGTH = 200


class SessionStateMachineService(LoggingMixin):
    """Session lifecycle transitions and participant registry."""

    def __init__(
        self,
        session_repository: SessionRepositoryProtocol,
        participant_repository: ParticipantRepositoryProtocol,
        vote_tally: VoteTallyService,
        notifier: ProgressNotifierProtocol,
        time_authority: TimeAuthorityProtocol,
        deadline_scheduler: VoteDeadlineSchedulerProtocol | None = None,
        vote_defaults: VoteSettings | None = None,
    ) -> None:
        self._sessions = session_repository
        self._participants = participant_repository
        self._tally = vote_tally
        self._notifier = notifier
        self._time = time_authority
        self._scheduler = deadline_scheduler
        self._vote_defaults = vote_defaults or VoteSettings()
        self._init_logger(component="session")

    # =========================================================================
    # Registry
    # =========================================================================

    async def create_session(self, ctx: SessionContext, title: str = "") -> Session:
        """Create a draft session hosted by the caller."""
        title = title.strip()
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"title must be at most {MAX_TITLE_LENGTH} characters")
        session = Session.create(host_id=ctx.principal_id, title=title, created_at=self._time.now())
        await self._sessions.save(session)

        log = self._log_operation("create_session", session_id=str(session.session_id))
        log.info("session_created", host_id=session.host_id)
        await self._publish(session)
        return session

    async def get_session(self, session_id: UUID) -> Session:
        return await load_session(self._sessions, session_id)

    async def join_session(
        self,
        ctx: SessionContext,
        session_id: UUID,
        display_identity: str,
    ) -> Participant:
        """Join a session as a participant.

        Accepted while the session is draft or active. Joining twice with
        the same principal returns the existing participant.

        Raises:
            ValidationError: If display_identity is blank.
            InvalidStateError: If the session no longer accepts participants.
        """
        log = self._log_operation("join_session", session_id=str(session_id))
        if not display_identity or not display_identity.strip():
            raise ValidationError("display_identity must not be blank")

        session = await load_session(self._sessions, session_id)
        if session.status.is_terminal():
            raise SessionArchivedError(session_id=session_id, operation="join")
        if session.status not in JOINABLE_STATUSES:
            raise InvalidStateError(
                session_id=session_id,
                current_status=session.status,
                operation="join",
                allowed_statuses=list(JOINABLE_STATUSES),
            )

        existing = await self._participants.get_by_principal(session_id, ctx.principal_id)
        if existing is not None:
            log.info("participant_already_joined", participant_id=str(existing.participant_id))
            return existing

        participant = Participant.create(
            session_id=session_id,
            principal_id=ctx.principal_id,
            display_identity=display_identity,
            joined_at=self._time.now(),
        )
        await self._participants.save(participant)
        log.info("participant_joined", participant_id=str(participant.participant_id))
        return participant

    async def list_participants(self, session_id: UUID) -> list[Participant]:
        await load_session(self._sessions, session_id)
        return await self._participants.list_by_session(session_id)

    async def remove_participant(
        self,
        ctx: SessionContext,
        session_id: UUID,
        participant_id: UUID,
    ) -> Participant:
        """Soft-delete a participant. Host only, draft only, so no votes are orphaned."""
        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "remove participant")
        if session.status != SessionStatus.DRAFT:
            if session.status.is_terminal():
                raise SessionArchivedError(session_id=session_id, operation="remove participant")
            raise InvalidStateError(
                session_id=session_id,
                current_status=session.status,
                operation="remove participant",
                allowed_statuses=[SessionStatus.DRAFT],
            )
        await load_live_participant(self._participants, session_id, participant_id)
        removed = await self._participants.mark_deleted(participant_id)
        self._log_operation(
            "remove_participant",
            session_id=str(session_id),
            participant_id=str(participant_id),
        ).info("participant_removed")
        return removed

    # =========================================================================
    # Transitions
    # =========================================================================

    async def start_voting(
        self,
        ctx: SessionContext,
        session_id: UUID,
        vote_settings: Mapping[str, Any] | None = None,
    ) -> Session:
        """DRAFT -> ACTIVE.

        Persists the vote settings (defaults for an omitted payload),
        stamps started_at and schedules the deadline timer.

        Raises:
            VoteSettingsValidationError: If the settings payload is invalid.
            InvalidStateError: If the session is not a draft.
        """
        log = self._log_operation("start_voting", session_id=str(session_id))
        settings = VoteSettings.from_payload(vote_settings, defaults=self._vote_defaults)

        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "start voting")
        updated = session.with_voting_started(settings, now=self._time.now())
        stored = await self._sessions.update_if(updated, SessionStatus.DRAFT, session.version)

        deadline = stored.voting_deadline
        if self._scheduler is not None and deadline is not None:
            self._scheduler.schedule(session_id, deadline)

        log.info(
            "voting_started",
            deadline=deadline.isoformat() if deadline else None,
            **settings.to_dict(),
        )
        await self._publish(stored)
        return stored

    async def end_voting(self, ctx: SessionContext, session_id: UUID) -> Session:
        """ACTIVE -> ENDED, then finalize the tally.

        Idempotent: on an ENDED session the call is a no-op except that a
        missing tally finalization is completed. Timer calls (system
        context) are no-ops for any status other than ACTIVE and for an
        ACTIVE session whose deadline has not passed yet.

        Raises:
            InvalidStateError: On a manual call from draft, ai_discussion
                or archived.
        """
        log = self._log_operation("end_voting", session_id=str(session_id), by_timer=ctx.is_system)
        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "end voting")
        now = self._time.now()

        if session.status == SessionStatus.ACTIVE:
            if ctx.is_system and not session.is_voting_deadline_passed(now):
                log.info("deadline_not_reached", deadline=str(session.voting_deadline))
                return session
            try:
                session = await self._sessions.update_if(
                    session.with_voting_ended(now), SessionStatus.ACTIVE, session.version
                )
                log.info("voting_ended")
                await self._publish(session)
            except ConcurrencyConflictError:
                session = await load_session(self._sessions, session_id)
                if session.status != SessionStatus.ENDED:
                    raise
                log.info("voting_already_ended_concurrently")
            if not ctx.is_system and self._scheduler is not None:
                self._scheduler.cancel(session_id)
        elif session.status != SessionStatus.ENDED:
            if ctx.is_system:
                log.info("end_voting_ignored", status=session.status.value)
                return session
            # Raises InvalidStateError or SessionArchivedError
            session.with_voting_ended(now)
        else:
            log.info("end_voting_noop")

        if not session.is_tally_finalized:
            session = await self._complete_finalization(session)
        return session

    async def _complete_finalization(self, session: Session) -> Session:
        log = self._log_operation("finalize", session_id=str(session.session_id))
        tally = await self._tally.finalize_tally(session)

        for _ in range(MAX_FINALIZE_ATTEMPTS):
            if session.is_tally_finalized:
                return session
            try:
                stored = await self._sessions.update_if(
                    session.with_tally_finalized(tally.finalized_at),
                    SessionStatus.ENDED,
                    session.version,
                )
                log.info("session_tally_stamped")
                await self._publish(stored)
                return stored
            except ConcurrencyConflictError:
                session = await load_session(self._sessions, session.session_id)
                if session.status != SessionStatus.ENDED:
                    raise
        raise ConcurrencyConflictError(
            session_id=session.session_id,
            expected_status=SessionStatus.ENDED,
            actual_status=session.status,
            operation="stamp tally finalization",
        )

    async def start_ai_discussion(self, ctx: SessionContext, session_id: UUID) -> Session:
        """ENDED -> AI_DISCUSSION; queues the analysis job.

        Raises:
            TallyNotFinalizedError: If the tally was never finalized.
            InvalidStateError: If the session is not ended.
        """
        log = self._log_operation("start_ai_discussion", session_id=str(session_id))
        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "start AI discussion")

        if session.status == SessionStatus.AI_DISCUSSION:
            log.info("start_ai_discussion_noop")
            return session
        if session.status == SessionStatus.ENDED and not session.is_tally_finalized:
            raise TallyNotFinalizedError(
                session_id=session_id,
                current_status=session.status,
                operation="start AI discussion",
            )

        updated = session.with_ai_discussion_started(self._time.now())
        try:
            stored = await self._sessions.update_if(updated, SessionStatus.ENDED, session.version)
        except ConcurrencyConflictError:
            current = await load_session(self._sessions, session_id)
            if current.status == SessionStatus.AI_DISCUSSION:
                log.info("ai_discussion_already_started_concurrently")
                return current
            raise

        log.info("ai_discussion_started")
        await self._publish(stored)
        return stored

    async def archive(self, ctx: SessionContext, session_id: UUID) -> Session:
        """AI_DISCUSSION -> ARCHIVED (terminal)."""
        log = self._log_operation("archive", session_id=str(session_id))
        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "archive")

        if session.status == SessionStatus.ARCHIVED:
            log.info("archive_noop")
            return session

        updated = session.with_archived(self._time.now())
        try:
            stored = await self._sessions.update_if(
                updated, SessionStatus.AI_DISCUSSION, session.version
            )
        except ConcurrencyConflictError:
            current = await load_session(self._sessions, session_id)
            if current.status == SessionStatus.ARCHIVED:
                return current
            if current.status == SessionStatus.AI_DISCUSSION:
                # Lost to an analysis progress write; the status still allows archiving
                return await self.archive(ctx, session_id)
            raise

        log.info("session_archived")
        await self._publish(stored)
        return stored

    async def _publish(self, session: Session) -> None:
        await self._notifier.publish(ProgressSnapshot.from_session(session))
