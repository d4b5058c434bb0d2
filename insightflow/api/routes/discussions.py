"""Post-vote discussion routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from insightflow.api.dependencies.identity import get_session_context
from insightflow.api.dependencies.services import get_discussion_service
from insightflow.api.errors import problem_for
from insightflow.api.models.common import ProblemResponse
from insightflow.api.models.discussion import (
    DiscussionListResponse,
    DiscussionMessageModel,
    DiscussionResponse,
    OpenDiscussionRequest,
    PostMessageRequest,
    PostMessageResponse,
)
from insightflow.application.services.discussion_service import DiscussionService
from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.session_context import SessionContext

router = APIRouter(prefix="/v1/sessions/{session_id}/discussions", tags=["discussions"])

_ERRORS = {
    400: {"model": ProblemResponse, "description": "Invalid message"},
    403: {"model": ProblemResponse, "description": "Not the owner or host"},
    404: {"model": ProblemResponse, "description": "Session, participant or discussion not found"},
    409: {"model": ProblemResponse, "description": "Session is not in AI discussion"},
    502: {"model": ProblemResponse, "description": "Completion service rejected the request"},
    503: {"model": ProblemResponse, "description": "Completion service temporarily unavailable"},
}


@router.post("", response_model=DiscussionResponse, status_code=201, responses=_ERRORS)
async def open_discussion(
    session_id: UUID,
    request_data: OpenDiscussionRequest,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: DiscussionService = Depends(get_discussion_service),
) -> DiscussionResponse:
    """Open (or return) the caller's discussion with their assigned agent."""
    try:
        discussion = await service.open_discussion(ctx, session_id, request_data.participant_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return DiscussionResponse.from_domain(discussion)


@router.get("", response_model=DiscussionListResponse, responses=_ERRORS)
async def list_discussions(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: DiscussionService = Depends(get_discussion_service),
) -> DiscussionListResponse:
    try:
        discussions = await service.list_discussions(ctx, session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return DiscussionListResponse(
        discussions=[DiscussionResponse.from_domain(d) for d in discussions]
    )


@router.get("/{discussion_id}", response_model=DiscussionResponse, responses=_ERRORS)
async def get_discussion(
    session_id: UUID,
    discussion_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: DiscussionService = Depends(get_discussion_service),
) -> DiscussionResponse:
    try:
        discussion = await service.get_discussion(ctx, session_id, discussion_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return DiscussionResponse.from_domain(discussion)


@router.post(
    "/{discussion_id}/messages",
    response_model=PostMessageResponse,
    status_code=201,
    responses=_ERRORS,
)
async def post_message(
    session_id: UUID,
    discussion_id: UUID,
    request_data: PostMessageRequest,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: DiscussionService = Depends(get_discussion_service),
) -> PostMessageResponse:
    """Send a message and return it with the agent's reply."""
    try:
        user_message, assistant_message = await service.post_message(
            ctx, session_id, discussion_id, request_data.content
        )
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return PostMessageResponse(
        user_message=DiscussionMessageModel.from_domain(user_message),
        assistant_message=DiscussionMessageModel.from_domain(assistant_message),
    )
