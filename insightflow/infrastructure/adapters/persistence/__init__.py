"""PostgreSQL persistence adapters."""

from insightflow.infrastructure.adapters.persistence.analysis_repository import (
    PostgresAnalysisRepository,
)
from insightflow.infrastructure.adapters.persistence.discussion_repository import (
    PostgresDiscussionRepository,
)
from insightflow.infrastructure.adapters.persistence.participant_repository import (
    PostgresParticipantRepository,
)
from insightflow.infrastructure.adapters.persistence.schema import ensure_schema
from insightflow.infrastructure.adapters.persistence.session_repository import (
    PostgresSessionRepository,
)
from insightflow.infrastructure.adapters.persistence.vote_repository import (
    PostgresVoteRepository,
)

__all__: list[str] = [
    "PostgresAnalysisRepository",
    "PostgresDiscussionRepository",
    "PostgresParticipantRepository",
    "PostgresSessionRepository",
    "PostgresVoteRepository",
    "ensure_schema",
]
