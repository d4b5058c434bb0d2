"""Shared session lookups and access checks for application services."""

from __future__ import annotations

from uuid import UUID

from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.domain.errors.session import (
    InvalidStateError,
    NotParticipantError,
    NotSessionHostError,
    ParticipantNotFoundError,
    SessionArchivedError,
    SessionNotFoundError,
)
from insightflow.domain.models.participant import Participant
from insightflow.domain.models.session import Session, SessionStatus
from insightflow.domain.models.session_context import SessionContext


async def load_session(repository: SessionRepositoryProtocol, session_id: UUID) -> Session:
    """Fetch a session or raise SessionNotFoundError."""
    session = await repository.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def require_host(session: Session, ctx: SessionContext, operation: str) -> None:
    """Raise NotSessionHostError unless the caller is the host or the system."""
    if ctx.is_system or ctx.principal_id == session.host_id:
        return
    raise NotSessionHostError(
        session_id=session.session_id,
        principal_id=ctx.principal_id,
        operation=operation,
    )


def require_status(session: Session, status: SessionStatus, operation: str) -> None:
    """Raise unless the session is in ``status`` (SessionArchivedError when archived)."""
    if session.status == status:
        return
    if session.status.is_terminal():
        raise SessionArchivedError(session_id=session.session_id, operation=operation)
    raise InvalidStateError(
        session_id=session.session_id,
        current_status=session.status,
        operation=operation,
        allowed_statuses=[status],
    )


async def load_live_participant(
    repository: ParticipantRepositoryProtocol,
    session_id: UUID,
    participant_id: UUID,
) -> Participant:
    """Fetch a live participant of the session or raise ParticipantNotFoundError."""
    participant = await repository.get(participant_id)
    if participant is None or not participant.is_live or participant.session_id != session_id:
        raise ParticipantNotFoundError(participant_id=participant_id, session_id=session_id)
    return participant


def require_acting_as(participant: Participant, ctx: SessionContext) -> None:
    """Raise NotParticipantError unless the caller is this participant."""
    if participant.principal_id != ctx.principal_id:
        raise NotParticipantError(session_id=participant.session_id, principal_id=ctx.principal_id)
