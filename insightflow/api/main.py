"""FastAPI application entry point for insightflow."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from structlog import get_logger

from insightflow import __version__
from insightflow.api.middleware.logging_middleware import LoggingMiddleware
from insightflow.api.routes import (
    analysis_router,
    discussions_router,
    health_router,
    progress_router,
    sessions_router,
    votes_router,
)
from insightflow.bootstrap.completion import close_completion_service
from insightflow.bootstrap.logging import configure_structlog
from insightflow.bootstrap.persistence import get_session_repository, uses_postgres
from insightflow.bootstrap.services import get_state_machine_service, get_vote_deadline_service

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_structlog(os.environ.get("ENVIRONMENT", "development"))

    get_session_repository()
    if uses_postgres():
        from insightflow.bootstrap.database import get_session_factory
        from insightflow.infrastructure.adapters.persistence import ensure_schema

        await ensure_schema(get_session_factory())

    # building the state machine installs the deadline handler
    get_state_machine_service()
    deadline_service = get_vote_deadline_service()
    ended = await deadline_service.sweep()
    restored = await deadline_service.restore()
    logger.info("insightflow_started", expired_sessions_ended=ended, timers_restored=restored)

    try:
        yield
    finally:
        await deadline_service.shutdown()
        await close_completion_service()
        if uses_postgres():
            from insightflow.bootstrap.database import close_database_engine

            await close_database_engine()
        logger.info("insightflow_stopped")


app = FastAPI(
    title="insightflow API",
    description="Vote-driven workshop sessions with AI discussion and analysis",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)

app.include_router(health_router)
app.include_router(sessions_router)
app.include_router(votes_router)
app.include_router(discussions_router)
app.include_router(analysis_router)
app.include_router(progress_router)
