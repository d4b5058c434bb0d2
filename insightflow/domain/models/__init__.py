"""Domain models."""

from insightflow.domain.models.analysis import (
    AnalysisRecordStatus,
    AnalysisRules,
    AnalysisRunResult,
    AnalysisType,
    DiscussionAnalysis,
    GlobalAnalysis,
)
from insightflow.domain.models.discussion import (
    AgentType,
    Discussion,
    DiscussionMessage,
    MessageRole,
)
from insightflow.domain.models.participant import Participant
from insightflow.domain.models.progress import ProgressSnapshot
from insightflow.domain.models.session import (
    STATUS_TRANSITION_MATRIX,
    AnalysisStatus,
    Session,
    SessionStatus,
    VoteSettings,
)
from insightflow.domain.models.session_context import SessionContext
from insightflow.domain.models.vote import ParticipantLabel, TallyEntry, TallyResult, Vote

__all__: list[str] = [
    "STATUS_TRANSITION_MATRIX",
    "AgentType",
    "AnalysisRecordStatus",
    "AnalysisRules",
    "AnalysisRunResult",
    "AnalysisStatus",
    "AnalysisType",
    "Discussion",
    "DiscussionAnalysis",
    "DiscussionMessage",
    "GlobalAnalysis",
    "MessageRole",
    "Participant",
    "ParticipantLabel",
    "ProgressSnapshot",
    "Session",
    "SessionContext",
    "SessionStatus",
    "TallyEntry",
    "TallyResult",
    "Vote",
    "VoteSettings",
]
