"""Bootstrap wiring for application services.

The vote deadline service and the state machine reference each other:
the state machine schedules timers, and an expired timer ends voting
through the state machine with a system context.
"""

from __future__ import annotations

from uuid import UUID

from insightflow.application.ports.time_authority import TimeAuthorityProtocol
from insightflow.application.services.analysis_orchestrator_service import (
    AnalysisOrchestratorService,
)
from insightflow.application.services.analysis_query_service import AnalysisQueryService
from insightflow.application.services.discussion_service import DiscussionService
from insightflow.application.services.session_state_machine_service import (
    SessionStateMachineService,
)
from insightflow.application.services.time_authority_service import TimeAuthorityService
from insightflow.application.services.vote_deadline_service import VoteDeadlineService
from insightflow.application.services.vote_tally_service import VoteTallyService
from insightflow.bootstrap.completion import (
    get_completion_config,
    get_completion_service,
    reset_completion,
)
from insightflow.bootstrap.persistence import (
    get_analysis_repository,
    get_discussion_repository,
    get_participant_repository,
    get_session_repository,
    get_vote_repository,
    reset_persistence,
)
from insightflow.bootstrap.progress import get_progress_notifier, reset_progress
from insightflow.config.session_config import VoteSettingsDefaults
from insightflow.domain.models.session import Session
from insightflow.domain.models.session_context import SessionContext

_time_authority: TimeAuthorityProtocol | None = None
_vote_tally_service: VoteTallyService | None = None
_vote_deadline_service: VoteDeadlineService | None = None
_state_machine_service: SessionStateMachineService | None = None
_discussion_service: DiscussionService | None = None
_analysis_orchestrator: AnalysisOrchestratorService | None = None
_analysis_query_service: AnalysisQueryService | None = None


def get_time_authority() -> TimeAuthorityProtocol:
    global _time_authority
    if _time_authority is None:
        _time_authority = TimeAuthorityService()
    return _time_authority


def get_vote_tally_service() -> VoteTallyService:
    global _vote_tally_service
    if _vote_tally_service is None:
        _vote_tally_service = VoteTallyService(
            session_repository=get_session_repository(),
            participant_repository=get_participant_repository(),
            vote_repository=get_vote_repository(),
            time_authority=get_time_authority(),
        )
    return _vote_tally_service


def get_vote_deadline_service() -> VoteDeadlineService:
    global _vote_deadline_service
    if _vote_deadline_service is None:
        _vote_deadline_service = VoteDeadlineService(
            session_repository=get_session_repository(),
            time_authority=get_time_authority(),
        )
    return _vote_deadline_service


def get_state_machine_service() -> SessionStateMachineService:
    """Get the session state machine, wired to the deadline timer."""
    global _state_machine_service
    if _state_machine_service is None:
        deadline_service = get_vote_deadline_service()
        _state_machine_service = SessionStateMachineService(
            session_repository=get_session_repository(),
            participant_repository=get_participant_repository(),
            vote_tally=get_vote_tally_service(),
            notifier=get_progress_notifier(),
            time_authority=get_time_authority(),
            deadline_scheduler=deadline_service,
            vote_defaults=VoteSettingsDefaults.from_environment().to_vote_settings(),
        )
        state_machine = _state_machine_service

        async def end_voting_on_deadline(session_id: UUID) -> Session:
            return await state_machine.end_voting(SessionContext.system(), session_id)

        deadline_service.set_handler(end_voting_on_deadline)
    return _state_machine_service


def get_discussion_service() -> DiscussionService:
    global _discussion_service
    if _discussion_service is None:
        _discussion_service = DiscussionService(
            session_repository=get_session_repository(),
            participant_repository=get_participant_repository(),
            discussion_repository=get_discussion_repository(),
            vote_tally=get_vote_tally_service(),
            completion_service=get_completion_service(),
            time_authority=get_time_authority(),
            model_config=get_completion_config().agent_model_config(),
        )
    return _discussion_service


def get_analysis_orchestrator() -> AnalysisOrchestratorService:
    global _analysis_orchestrator
    if _analysis_orchestrator is None:
        _analysis_orchestrator = AnalysisOrchestratorService(
            session_repository=get_session_repository(),
            discussion_repository=get_discussion_repository(),
            analysis_repository=get_analysis_repository(),
            completion_service=get_completion_service(),
            notifier=get_progress_notifier(),
            time_authority=get_time_authority(),
            model_config=get_completion_config().analysis_model_config(),
        )
    return _analysis_orchestrator


def get_analysis_query_service() -> AnalysisQueryService:
    global _analysis_query_service
    if _analysis_query_service is None:
        _analysis_query_service = AnalysisQueryService(
            session_repository=get_session_repository(),
            participant_repository=get_participant_repository(),
            analysis_repository=get_analysis_repository(),
        )
    return _analysis_query_service


def set_time_authority(time_authority: TimeAuthorityProtocol) -> None:
    """Set custom time authority for testing (services are rebuilt)."""
    global _time_authority
    reset_services()
    _time_authority = time_authority


def reset_services() -> None:
    """Reset service singletons, keeping repositories."""
    global _time_authority
    global _vote_tally_service
    global _vote_deadline_service
    global _state_machine_service
    global _discussion_service
    global _analysis_orchestrator
    global _analysis_query_service

    _time_authority = None
    _vote_tally_service = None
    _vote_deadline_service = None
    _state_machine_service = None
    _discussion_service = None
    _analysis_orchestrator = None
    _analysis_query_service = None


def reset_all() -> None:
    """Reset every singleton in the composition root (for testing)."""
    reset_services()
    reset_persistence()
    reset_completion()
    reset_progress()
