"""
Domain layer - Pure business logic for insightflow.

This layer contains:
- Domain entities (Session, Participant, Vote, Discussion)
- Value objects (VoteSettings, TallyResult, ProgressSnapshot)
- Domain services (tally ranking)
- Domain exceptions

This layer must NOT import from application, infrastructure, or api.
"""

from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.session import Session, SessionStatus, VoteSettings

__all__: list[str] = [
    "InsightflowError",
    "Session",
    "SessionStatus",
    "VoteSettings",
]
