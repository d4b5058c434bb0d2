"""Service dependencies, resolved from the composition root."""

from insightflow.application.services.analysis_orchestrator_service import (
    AnalysisOrchestratorService,
)
from insightflow.application.services.analysis_query_service import AnalysisQueryService
from insightflow.application.services.discussion_service import DiscussionService
from insightflow.application.services.progress_notifier_service import (
    PollingProgressNotifier,
    PushProgressNotifier,
)
from insightflow.application.services.session_state_machine_service import (
    SessionStateMachineService,
)
from insightflow.application.services.vote_tally_service import VoteTallyService
from insightflow.bootstrap import progress, services
from insightflow.config.progress_config import ProgressConfig


def get_state_machine_service() -> SessionStateMachineService:
    return services.get_state_machine_service()


def get_vote_tally_service() -> VoteTallyService:
    return services.get_vote_tally_service()


def get_discussion_service() -> DiscussionService:
    return services.get_discussion_service()


def get_analysis_orchestrator() -> AnalysisOrchestratorService:
    return services.get_analysis_orchestrator()


def get_analysis_query_service() -> AnalysisQueryService:
    return services.get_analysis_query_service()


def get_polling_notifier() -> PollingProgressNotifier:
    return progress.get_polling_notifier()


def get_push_notifier() -> PushProgressNotifier:
    return progress.get_push_notifier()


def get_progress_config() -> ProgressConfig:
    return progress.get_progress_config()
