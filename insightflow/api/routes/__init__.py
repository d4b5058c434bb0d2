"""API routers."""

from insightflow.api.routes.analysis import router as analysis_router
from insightflow.api.routes.discussions import router as discussions_router
from insightflow.api.routes.health import router as health_router
from insightflow.api.routes.progress import router as progress_router
from insightflow.api.routes.sessions import router as sessions_router
from insightflow.api.routes.votes import router as votes_router

__all__ = [
    "analysis_router",
    "discussions_router",
    "health_router",
    "progress_router",
    "sessions_router",
    "votes_router",
]
