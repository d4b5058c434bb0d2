"""Analysis job routes.

POST queues a run and returns 202; the run itself executes as a
background task after the response is sent. Clients follow it through
the status endpoint or the progress stream.
"""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from structlog import get_logger

from insightflow.api.dependencies.identity import get_session_context
from insightflow.api.dependencies.services import (
    get_analysis_orchestrator,
    get_analysis_query_service,
)
from insightflow.api.errors import problem_for
from insightflow.api.models.analysis import (
    AnalysisAcceptedResponse,
    AnalysisResultsResponse,
    DiscussionAnalysisModel,
    GlobalAnalysisModel,
    ProgressResponse,
    RunAnalysisRequest,
)
from insightflow.api.models.common import ProblemResponse
from insightflow.application.services.analysis_orchestrator_service import (
    AnalysisOrchestratorService,
)
from insightflow.application.services.analysis_query_service import AnalysisQueryService
from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.analysis import AnalysisRules, AnalysisType
from insightflow.domain.models.session_context import SessionContext

logger = get_logger()

router = APIRouter(prefix="/v1/sessions/{session_id}/analyses", tags=["analyses"])


async def run_analysis_job(
    orchestrator: AnalysisOrchestratorService,
    ctx: SessionContext,
    session_id: UUID,
    analysis_type: AnalysisType,
    rules: AnalysisRules,
) -> None:
    """Execute a queued run; the outcome is recorded on the session."""
    log = logger.bind(
        session_id=str(session_id),
        analysis_type=analysis_type.value,
        correlation_id=ctx.correlation_id,
    )
    try:
        result = await orchestrator.run(ctx, session_id, analysis_type, rules)
    except InsightflowError as e:
        log.warning("analysis_job_rejected", error=str(e), error_type=type(e).__name__)
        return
    log.info("analysis_job_finished", status=result.status.value, run_id=str(result.run_id))


@router.post(
    "",
    response_model=AnalysisAcceptedResponse,
    status_code=202,
    responses={
        400: {"model": ProblemResponse, "description": "Unknown analysis type or bad rules"},
        403: {"model": ProblemResponse, "description": "Caller is not the host"},
        404: {"model": ProblemResponse, "description": "Session not found"},
        409: {"model": ProblemResponse, "description": "Wrong state or a run is processing"},
    },
)
async def run_analysis(
    session_id: UUID,
    request_data: RunAnalysisRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: SessionContext = Depends(get_session_context),
    orchestrator: AnalysisOrchestratorService = Depends(get_analysis_orchestrator),
) -> AnalysisAcceptedResponse:
    """Queue an analysis run of the given type."""
    try:
        kind = AnalysisType.parse(request_data.analysis_type)
        rules = AnalysisRules.from_payload(request_data.rules)
        session = await orchestrator.enqueue(ctx, session_id, kind)
    except InsightflowError as e:
        raise problem_for(e, request) from None

    background_tasks.add_task(run_analysis_job, orchestrator, ctx, session_id, kind, rules)
    return AnalysisAcceptedResponse.from_session(session)


@router.get(
    "",
    response_model=AnalysisResultsResponse,
    responses={
        400: {"model": ProblemResponse, "description": "Unknown analysis type"},
        403: {"model": ProblemResponse, "description": "Not allowed to see these results"},
        404: {"model": ProblemResponse, "description": "Session not found"},
    },
)
async def get_results(
    session_id: UUID,
    request: Request,
    analysis_type: str | None = Query(default=None),
    include_individual: bool = Query(default=False),
    ctx: SessionContext = Depends(get_session_context),
    service: AnalysisQueryService = Depends(get_analysis_query_service),
) -> AnalysisResultsResponse:
    try:
        results = await service.get_results(ctx, session_id, analysis_type, include_individual)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return AnalysisResultsResponse(
        session_id=results.session_id,
        global_analyses=[GlobalAnalysisModel.from_domain(g) for g in results.global_analyses],
        individual_analyses=[
            DiscussionAnalysisModel.from_domain(d) for d in results.individual_analyses
        ],
    )


@router.get(
    "/status",
    response_model=ProgressResponse,
    responses={
        403: {"model": ProblemResponse, "description": "Not a participant"},
        404: {"model": ProblemResponse, "description": "Session not found"},
    },
)
async def get_status(
    session_id: UUID,
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    service: AnalysisQueryService = Depends(get_analysis_query_service),
) -> ProgressResponse:
    try:
        snapshot = await service.get_status(ctx, session_id)
    except InsightflowError as e:
        raise problem_for(e, request) from None
    return ProgressResponse.from_snapshot(snapshot)
