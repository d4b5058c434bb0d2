"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.
"""

from insightflow.application.ports.analysis_repository import AnalysisRepositoryProtocol
from insightflow.application.ports.completion_service import (
    CompletionServiceProtocol,
    ModelConfig,
)
from insightflow.application.ports.discussion_repository import DiscussionRepositoryProtocol
from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.application.ports.progress_notifier import ProgressNotifierProtocol
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.ports.time_authority import TimeAuthorityProtocol
from insightflow.application.ports.vote_deadline_scheduler import (
    VoteDeadlineSchedulerProtocol,
)
from insightflow.application.ports.vote_repository import VoteRepositoryProtocol

__all__: list[str] = [
    "AnalysisRepositoryProtocol",
    "CompletionServiceProtocol",
    "DiscussionRepositoryProtocol",
    "ModelConfig",
    "ParticipantRepositoryProtocol",
    "ProgressNotifierProtocol",
    "SessionRepositoryProtocol",
    "TimeAuthorityProtocol",
    "VoteDeadlineSchedulerProtocol",
    "VoteRepositoryProtocol",
]
