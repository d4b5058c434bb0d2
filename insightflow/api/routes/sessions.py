"""Session lifecycle and participant routes.

Transitions are strictly linear: draft -> active -> ended -> ai_discussion
-> archived. Repeating end-voting, start-ai-discussion or archive on a
session already past that step returns the current state unchanged.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from insightflow.api.dependencies.identity import get_session_context
from insightflow.api.dependencies.services import get_state_machine_service
from insightflow.api.errors import problem_for
from insightflow.api.models.common import ProblemResponse
from insightflow.api.models.session import (
    CreateSessionRequest,
    JoinSessionRequest,
    ParticipantListResponse,
    ParticipantResponse,
    SessionResponse,
    StartVotingRequest,
)
from insightflow.application.services.session_state_machine_service import (
    SessionStateMachineService,
)
from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.session_context import SessionContext

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])

_ERRORS = {
    400: {"model": ProblemResponse, "description": "Invalid input"},
    403: {"model": ProblemResponse, "description": "Caller is not the host"},
    404: {"model": ProblemResponse, "description": "Session not found"},
    409: {"model": ProblemResponse, "description": "Illegal transition or lost race"},
}


@router.post("", response_model=SessionResponse, status_code=201, responses=_ERRORS)
async def create_session(
    request_data: CreateSessionRequest,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> SessionResponse:
    """Create a draft session hosted by the caller."""
    try:
        session = await service.create_session(ctx, request_data.title)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return SessionResponse.from_domain(session)


@router.get("/{session_id}", response_model=SessionResponse, responses=_ERRORS)
async def get_session(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> SessionResponse:
    try:
        session = await service.get_session(session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return SessionResponse.from_domain(session)


@router.post(
    "/{session_id}/participants",
    response_model=ParticipantResponse,
    status_code=201,
    responses=_ERRORS,
)
async def join_session(
    session_id: UUID,
    request_data: JoinSessionRequest,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> ParticipantResponse:
    """Join as a participant; joining twice returns the same participant."""
    try:
        participant = await service.join_session(ctx, session_id, request_data.display_identity)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return ParticipantResponse.from_domain(participant)


@router.get(
    "/{session_id}/participants",
    response_model=ParticipantListResponse,
    responses=_ERRORS,
)
async def list_participants(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> ParticipantListResponse:
    try:
        participants = await service.list_participants(session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return ParticipantListResponse(
        participants=[ParticipantResponse.from_domain(p) for p in participants]
    )


@router.delete(
    "/{session_id}/participants/{participant_id}",
    response_model=ParticipantResponse,
    responses=_ERRORS,
)
async def remove_participant(
    session_id: UUID,
    participant_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> ParticipantResponse:
    """Soft-delete a participant (host only, before voting starts)."""
    try:
        participant = await service.remove_participant(ctx, session_id, participant_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return ParticipantResponse.from_domain(participant)


@router.post("/{session_id}/start-voting", response_model=SessionResponse, responses=_ERRORS)
async def start_voting(
    session_id: UUID,
    request: Request,
    request_data: StartVotingRequest | None = None,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> SessionResponse:
    """Open voting; omitted settings take the configured defaults."""
    vote_settings = request_data.vote_settings if request_data else None
    try:
        session = await service.start_voting(ctx, session_id, vote_settings)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return SessionResponse.from_domain(session)


@router.post("/{session_id}/end-voting", response_model=SessionResponse, responses=_ERRORS)
async def end_voting(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> SessionResponse:
    """Close voting early and finalize the tally."""
    try:
        session = await service.end_voting(ctx, session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return SessionResponse.from_domain(session)


@router.post(
    "/{session_id}/start-ai-discussion", response_model=SessionResponse, responses=_ERRORS
)
async def start_ai_discussion(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> SessionResponse:
    try:
        session = await service.start_ai_discussion(ctx, session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return SessionResponse.from_domain(session)


@router.post("/{session_id}/archive", response_model=SessionResponse, responses=_ERRORS)
async def archive_session(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: SessionStateMachineService = Depends(get_state_machine_service),
) -> SessionResponse:
    try:
        session = await service.archive(ctx, session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return SessionResponse.from_domain(session)
