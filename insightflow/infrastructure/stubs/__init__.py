"""In-memory stub implementations for development and testing."""

from insightflow.infrastructure.stubs.analysis_repository_stub import AnalysisRepositoryStub
from insightflow.infrastructure.stubs.completion_service_stub import CompletionServiceStub
from insightflow.infrastructure.stubs.discussion_repository_stub import (
    DiscussionRepositoryStub,
)
from insightflow.infrastructure.stubs.participant_repository_stub import (
    ParticipantRepositoryStub,
)
from insightflow.infrastructure.stubs.session_repository_stub import SessionRepositoryStub
from insightflow.infrastructure.stubs.vote_repository_stub import VoteRepositoryStub

__all__: list[str] = [
    "AnalysisRepositoryStub",
    "CompletionServiceStub",
    "DiscussionRepositoryStub",
    "ParticipantRepositoryStub",
    "SessionRepositoryStub",
    "VoteRepositoryStub",
]
