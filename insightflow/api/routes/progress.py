"""Progress observation routes: polling and Server-Sent Events.

Both read the session row first, so a caller always starts from the
stored state; the stream then follows published snapshots in sequence
order and ends once the session is archived.
"""

import json
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from sse_starlette.sse import EventSourceResponse

from insightflow.api.dependencies.identity import get_session_context
from insightflow.api.dependencies.services import (
    get_analysis_query_service,
    get_progress_config,
    get_push_notifier,
)
from insightflow.api.errors import problem_for
from insightflow.api.models.analysis import ProgressResponse
from insightflow.api.models.common import ProblemResponse
from insightflow.application.services.analysis_query_service import AnalysisQueryService
from insightflow.application.services.progress_notifier_service import (
    ProgressSubscription,
    PushProgressNotifier,
)
from insightflow.config.progress_config import ProgressConfig
from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.progress import ProgressSnapshot
from insightflow.domain.models.session import AnalysisStatus, SessionStatus
from insightflow.domain.models.session_context import SessionContext

router = APIRouter(prefix="/v1/sessions/{session_id}/progress", tags=["progress"])

PROGRESS_EVENT = "progress"


def is_in_flight(snapshot: ProgressSnapshot) -> bool:
    """True while something is expected to change without host action.

    A queued analysis waits for the host to start a run, and an archived
    session never changes again even if a run was cut off mid-way.
    """
    if snapshot.session_status == SessionStatus.ARCHIVED:
        return False
    if snapshot.session_status == SessionStatus.ACTIVE:
        return True
    return snapshot.analysis_status == AnalysisStatus.PROCESSING


def to_event(snapshot: ProgressSnapshot) -> dict[str, Any]:
    return {
        "event": PROGRESS_EVENT,
        "id": str(snapshot.sequence),
        "data": json.dumps(snapshot.to_dict()),
    }


async def progress_events(
    subscription: ProgressSubscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    wait_seconds: float,
) -> AsyncIterator[dict[str, Any]]:
    """Yield SSE events for a subscription until archive or disconnect."""
    while True:
        snapshot = await subscription.get(timeout=wait_seconds)
        if snapshot is not None:
            yield to_event(snapshot)
            if snapshot.session_status == SessionStatus.ARCHIVED:
                return
        if await is_disconnected():
            return


@router.get(
    "",
    response_model=ProgressResponse,
    responses={
        403: {"model": ProblemResponse, "description": "Not a participant"},
        404: {"model": ProblemResponse, "description": "Session not found"},
    },
)
async def poll_progress(
    session_id: UUID,
    request: Request,
    response: Response,
    ctx: SessionContext = Depends(get_session_context),
    service: AnalysisQueryService = Depends(get_analysis_query_service),
    config: ProgressConfig = Depends(get_progress_config),
) -> ProgressResponse:
    """Current snapshot; Retry-After suggests the next poll while work is in flight."""
    try:
        snapshot = await service.get_status(ctx, session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    if is_in_flight(snapshot):
        response.headers["Retry-After"] = str(config.poll_interval_seconds)
    return ProgressResponse.from_snapshot(snapshot)


@router.get(
    "/stream",
    responses={
        200: {"description": "text/event-stream of progress snapshots"},
        403: {"model": ProblemResponse, "description": "Not a participant"},
        404: {"model": ProblemResponse, "description": "Session not found"},
    },
)
async def stream_progress(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: AnalysisQueryService = Depends(get_analysis_query_service),
    notifier: PushProgressNotifier = Depends(get_push_notifier),
    config: ProgressConfig = Depends(get_progress_config),
) -> EventSourceResponse:
    try:
        initial = await service.get_status(ctx, session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None

    subscription = notifier.subscribe(session_id, initial=initial)

    async def events() -> AsyncIterator[dict[str, Any]]:
        try:
            async for event in progress_events(
                subscription, request.is_disconnected, config.stream_keepalive_seconds
            ):
                yield event
        finally:
            notifier.unsubscribe(subscription)

    return EventSourceResponse(events(), ping=config.stream_keepalive_seconds)
