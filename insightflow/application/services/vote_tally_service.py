"""Vote tally service.

Records votes while a session is active, reports live counts and
remaining votes, and freezes the final ranking when voting ends.

Vote rejections are never retried: each maps to a specific error the
caller can show verbatim. The duplicate and limit checks run inside the
repository's atomic add_vote so concurrent votes from one voter cannot
exceed the limit.
"""

from __future__ import annotations

from uuid import UUID

from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.ports.time_authority import TimeAuthorityProtocol
from insightflow.application.ports.vote_repository import VoteRepositoryProtocol
from insightflow.application.services.base import LoggingMixin
from insightflow.application.services.session_access import (
    load_live_participant,
    load_session,
    require_acting_as,
)
from insightflow.domain.errors.session import (
    InvalidStateError,
    ParticipantNotFoundError,
    SessionArchivedError,
    TallyNotFinalizedError,
)
from insightflow.domain.errors.vote import (
    ReasonRequiredError,
    SelfVoteError,
    SessionNotActiveError,
)
from insightflow.domain.models.session import Session, SessionStatus
from insightflow.domain.models.session_context import SessionContext
from insightflow.domain.models.vote import ParticipantLabel, TallyEntry, TallyResult, Vote
from insightflow.domain.services.tally_ranking import rank_participants


class VoteTallyService(LoggingMixin):
    """Vote recording, aggregation, ranking and nugget/lightbulb partition."""

    def __init__(
        self,
        session_repository: SessionRepositoryProtocol,
        participant_repository: ParticipantRepositoryProtocol,
        vote_repository: VoteRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._sessions = session_repository
        self._participants = participant_repository
        self._votes = vote_repository
        self._time = time_authority
        self._init_logger(component="voting")

    async def cast_vote(
        self,
        ctx: SessionContext,
        session_id: UUID,
        voter_participant_id: UUID,
        target_participant_id: UUID,
        reason: str | None = None,
    ) -> Vote:
        """Record one vote.

        Args:
            ctx: Caller context; the principal must be the voter.
            session_id: Session to vote in.
            voter_participant_id: Participant casting the vote.
            target_participant_id: Participant voted for.
            reason: Optional free-text reason (required if the session says so).

        Returns:
            The recorded Vote.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionArchivedError: If the session is archived.
            SessionNotActiveError: If voting is not open or the deadline passed.
            ParticipantNotFoundError: If voter or target is not a live participant.
            NotParticipantError: If the caller is not the voter.
            SelfVoteError: If voter and target are the same.
            ReasonRequiredError: If a reason is required and blank.
            DuplicateVoteError: If the voter already voted for the target.
            VoteLimitExceededError: If the voter has no votes left.
        """
        log = self._log_operation(
            "cast_vote",
            session_id=str(session_id),
            voter_participant_id=str(voter_participant_id),
            target_participant_id=str(target_participant_id),
        )

        session = await load_session(self._sessions, session_id)
        now = self._time.now()
        if session.status == SessionStatus.ARCHIVED:
            raise SessionArchivedError(session_id=session_id, operation="cast vote")
        if session.status != SessionStatus.ACTIVE:
            raise SessionNotActiveError(session_id=session_id, current_status=session.status)
        if session.is_voting_deadline_passed(now):
            raise SessionNotActiveError(
                session_id=session_id,
                current_status=session.status,
                deadline_passed=True,
            )

        voter = await load_live_participant(self._participants, session_id, voter_participant_id)
        require_acting_as(voter, ctx)
        if voter_participant_id == target_participant_id:
            raise SelfVoteError(session_id=session_id, participant_id=voter_participant_id)
        await load_live_participant(self._participants, session_id, target_participant_id)

        assert session.vote_settings is not None
        cleaned_reason = reason.strip() if reason else ""
        if session.vote_settings.require_reason and not cleaned_reason:
            raise ReasonRequiredError(session_id=session_id)

        vote = Vote(
            session_id=session_id,
            voter_participant_id=voter_participant_id,
            voted_for_participant_id=target_participant_id,
            cast_at=now,
            reason=cleaned_reason or None,
        )
        votes_cast = await self._votes.add_vote(
            vote, max_votes=session.vote_settings.max_votes_per_participant
        )

        log.info(
            "vote_cast",
            votes_cast=votes_cast,
            max_votes=session.vote_settings.max_votes_per_participant,
        )
        return vote

    async def remaining_votes(self, session_id: UUID, voter_participant_id: UUID) -> int:
        """Votes the participant may still cast (max minus cast)."""
        session = await load_session(self._sessions, session_id)
        await load_live_participant(self._participants, session_id, voter_participant_id)
        if session.vote_settings is None:
            raise InvalidStateError(
                session_id=session_id,
                current_status=session.status,
                operation="count remaining votes",
                allowed_statuses=[
                    SessionStatus.ACTIVE,
                    SessionStatus.ENDED,
                    SessionStatus.AI_DISCUSSION,
                    SessionStatus.ARCHIVED,
                ],
            )
        cast = await self._votes.count_by_voter(session_id, voter_participant_id)
        return max(0, session.vote_settings.max_votes_per_participant - cast)

    async def current_tally(self, session_id: UUID) -> list[TallyEntry]:
        """Live, unlabelled counts for every live participant."""
        await load_session(self._sessions, session_id)
        participants = await self._participants.list_by_session(session_id)
        votes = await self._votes.list_by_session(session_id)
        return rank_participants(participants, votes)

    async def finalize_tally(self, session: Session) -> TallyResult:
        """Freeze and persist the ranking for an ended session.

        Idempotent: a tally already persisted for the session is returned
        unchanged, so repeat calls after a partial failure are safe.

        Raises:
            InvalidStateError: If the session is not ENDED.
        """
        log = self._log_operation("finalize_tally", session_id=str(session.session_id))

        existing = await self._votes.get_tally(session.session_id)
        if existing is not None:
            log.info("tally_already_finalized", finalized_at=existing.finalized_at.isoformat())
            return existing

        if session.status != SessionStatus.ENDED:
            raise InvalidStateError(
                session_id=session.session_id,
                current_status=session.status,
                operation="finalize tally",
                allowed_statuses=[SessionStatus.ENDED],
            )
        assert session.vote_settings is not None

        # A cast_vote that read the session while it was still ACTIVE may be
        # about to insert; closing first makes the listed votes final.
        await self._votes.close_voting(session.session_id)
        participants = await self._participants.list_by_session(session.session_id)
        votes = await self._votes.list_by_session(session.session_id)
        entries = rank_participants(
            participants,
            votes,
            top_voted_count=session.vote_settings.top_voted_count,
        )
        tally = TallyResult(
            session_id=session.session_id,
            entries=tuple(entries),
            finalized_at=self._time.now(),
            total_votes=sum(entry.vote_count for entry in entries),
        )
        await self._votes.save_tally(tally)

        log.info(
            "tally_finalized",
            participants=len(entries),
            total_votes=tally.total_votes,
            nuggets=len(tally.nuggets),
        )
        return tally

    async def get_tally(self, session_id: UUID) -> TallyResult:
        """Return the finalized tally.

        Raises:
            TallyNotFinalizedError: If voting has not been finalized.
        """
        session = await load_session(self._sessions, session_id)
        tally = await self._votes.get_tally(session_id)
        if tally is None:
            raise TallyNotFinalizedError(
                session_id=session_id,
                current_status=session.status,
                operation="read tally",
            )
        return tally

    async def label_for(self, session_id: UUID, participant_id: UUID) -> ParticipantLabel:
        """Nugget or lightbulb label from the finalized tally.

        Raises:
            TallyNotFinalizedError: If voting has not been finalized.
            ParticipantNotFoundError: If the participant is not in the tally.
        """
        tally = await self.get_tally(session_id)
        label = tally.label_for(participant_id)
        if label is None:
            raise ParticipantNotFoundError(participant_id=participant_id, session_id=session_id)
        return label
