"""Bootstrap wiring for repositories.

Every repository uses PostgreSQL when DATABASE_URL is set, otherwise every
one uses the in-memory stubs. The set is chosen once; the two are never
mixed, so a failed PostgreSQL setup falls back to stubs for all of them.
"""

from __future__ import annotations

from structlog import get_logger

from insightflow.application.ports.analysis_repository import AnalysisRepositoryProtocol
from insightflow.application.ports.discussion_repository import DiscussionRepositoryProtocol
from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.ports.vote_repository import VoteRepositoryProtocol
from insightflow.bootstrap.database import database_configured
from insightflow.infrastructure.stubs.analysis_repository_stub import AnalysisRepositoryStub
from insightflow.infrastructure.stubs.discussion_repository_stub import (
    DiscussionRepositoryStub,
)
from insightflow.infrastructure.stubs.participant_repository_stub import (
    ParticipantRepositoryStub,
)
from insightflow.infrastructure.stubs.session_repository_stub import SessionRepositoryStub
from insightflow.infrastructure.stubs.vote_repository_stub import VoteRepositoryStub

logger = get_logger()

_session_repository: SessionRepositoryProtocol | None = None
_participant_repository: ParticipantRepositoryProtocol | None = None
_vote_repository: VoteRepositoryProtocol | None = None
_discussion_repository: DiscussionRepositoryProtocol | None = None
_analysis_repository: AnalysisRepositoryProtocol | None = None
_uses_postgres = False


def _init_repositories() -> None:
    """Build the whole repository set.

    Uses PostgreSQL if DATABASE_URL is configured, otherwise (or if the
    engine cannot be set up) the in-memory stubs.
    """
    global _session_repository
    global _participant_repository
    global _vote_repository
    global _discussion_repository
    global _analysis_repository
    global _uses_postgres

    if database_configured():
        try:
            from insightflow.bootstrap.database import get_session_factory
            from insightflow.infrastructure.adapters.persistence import (
                PostgresAnalysisRepository,
                PostgresDiscussionRepository,
                PostgresParticipantRepository,
                PostgresSessionRepository,
                PostgresVoteRepository,
            )

            factory = get_session_factory()
            _session_repository = PostgresSessionRepository(session_factory=factory)
            _participant_repository = PostgresParticipantRepository(session_factory=factory)
            _vote_repository = PostgresVoteRepository(session_factory=factory)
            _discussion_repository = PostgresDiscussionRepository(session_factory=factory)
            _analysis_repository = PostgresAnalysisRepository(session_factory=factory)
            _uses_postgres = True
            logger.info("repositories_initialized", repository_type="PostgreSQL")
            return
        except Exception as e:
            logger.error(
                "postgres_repository_init_failed",
                error=str(e),
                message="Falling back to in-memory stubs for every repository",
            )
    else:
        logger.warning(
            "repositories_initialized",
            repository_type="InMemoryStub",
            message="DATABASE_URL not set - using in-memory stubs (data will not persist)",
        )

    _session_repository = SessionRepositoryStub()
    _participant_repository = ParticipantRepositoryStub()
    _vote_repository = VoteRepositoryStub()
    _discussion_repository = DiscussionRepositoryStub()
    _analysis_repository = AnalysisRepositoryStub()
    _uses_postgres = False


def uses_postgres() -> bool:
    """True once the repositories were built on PostgreSQL."""
    return _uses_postgres


def get_session_repository() -> SessionRepositoryProtocol:
    if _session_repository is None:
        _init_repositories()
    assert _session_repository is not None
    return _session_repository


def get_participant_repository() -> ParticipantRepositoryProtocol:
    if _participant_repository is None:
        _init_repositories()
    assert _participant_repository is not None
    return _participant_repository


def get_vote_repository() -> VoteRepositoryProtocol:
    if _vote_repository is None:
        _init_repositories()
    assert _vote_repository is not None
    return _vote_repository


def get_discussion_repository() -> DiscussionRepositoryProtocol:
    if _discussion_repository is None:
        _init_repositories()
    assert _discussion_repository is not None
    return _discussion_repository


def get_analysis_repository() -> AnalysisRepositoryProtocol:
    if _analysis_repository is None:
        _init_repositories()
    assert _analysis_repository is not None
    return _analysis_repository


def reset_persistence() -> None:
    """Reset repository singletons."""
    global _session_repository
    global _participant_repository
    global _vote_repository
    global _discussion_repository
    global _analysis_repository
    global _uses_postgres

    _session_repository = None
    _participant_repository = None
    _vote_repository = None
    _discussion_repository = None
    _analysis_repository = None
    _uses_postgres = False
