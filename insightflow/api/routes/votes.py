"""Vote casting and tally routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from insightflow.api.dependencies.identity import get_session_context
from insightflow.api.dependencies.services import (
    get_state_machine_service,
    get_vote_tally_service,
)
from insightflow.api.errors import problem_for
from insightflow.api.models.common import ProblemResponse
from insightflow.api.models.session import (
    CastVoteRequest,
    RemainingVotesResponse,
    TallyResponse,
    VoteResponse,
)
from insightflow.application.services.session_state_machine_service import (
    SessionStateMachineService,
)
from insightflow.application.services.vote_tally_service import VoteTallyService
from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.session_context import SessionContext

router = APIRouter(prefix="/v1/sessions/{session_id}", tags=["votes"])


@router.post(
    "/votes",
    response_model=VoteResponse,
    status_code=201,
    responses={
        400: {"model": ProblemResponse, "description": "Self vote or missing reason"},
        403: {"model": ProblemResponse, "description": "Caller is not the voter"},
        404: {"model": ProblemResponse, "description": "Session or participant not found"},
        409: {
            "model": ProblemResponse,
            "description": "Voting closed, duplicate vote or vote limit reached",
        },
    },
)
async def cast_vote(
    session_id: UUID,
    request_data: CastVoteRequest,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    tally: VoteTallyService = Depends(get_vote_tally_service),
) -> VoteResponse:
    """Cast one vote from the calling participant."""
    try:
        vote = await tally.cast_vote(
            ctx,
            session_id,
            request_data.voter_participant_id,
            request_data.voted_for_participant_id,
            request_data.reason,
        )
        remaining = await tally.remaining_votes(session_id, request_data.voter_participant_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return VoteResponse.from_domain(vote, remaining)


@router.get(
    "/participants/{participant_id}/remaining-votes",
    response_model=RemainingVotesResponse,
    responses={404: {"model": ProblemResponse, "description": "Session not found"}},
)
async def remaining_votes(
    session_id: UUID,
    participant_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    tally: VoteTallyService = Depends(get_vote_tally_service),
) -> RemainingVotesResponse:
    try:
        remaining = await tally.remaining_votes(session_id, participant_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return RemainingVotesResponse(participant_id=participant_id, remaining_votes=remaining)


@router.get(
    "/tally",
    response_model=TallyResponse,
    responses={404: {"model": ProblemResponse, "description": "Session not found"}},
)
async def get_tally(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    sessions: SessionStateMachineService = Depends(get_state_machine_service),
    tally: VoteTallyService = Depends(get_vote_tally_service),
) -> TallyResponse:
    """Finalized ranking with labels, or live unlabelled counts before that."""
    try:
        session = await sessions.get_session(session_id)
        if session.is_tally_finalized:
            return TallyResponse.from_result(await tally.get_tally(session_id))
        return TallyResponse.from_live(session_id, await tally.current_tally(session_id))
    except InsightflowError as e:
        raise problem_for(e, request) from None
