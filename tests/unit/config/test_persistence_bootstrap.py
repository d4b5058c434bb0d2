"""Tests for choosing the repository set."""

from collections.abc import Iterator

import pytest

from insightflow.bootstrap import persistence
from insightflow.bootstrap.database import reset_database_bootstrap
from insightflow.infrastructure.adapters.persistence import (
    PostgresAnalysisRepository,
    PostgresDiscussionRepository,
    PostgresParticipantRepository,
    PostgresSessionRepository,
    PostgresVoteRepository,
)
from insightflow.infrastructure.stubs import (
    AnalysisRepositoryStub,
    DiscussionRepositoryStub,
    ParticipantRepositoryStub,
    SessionRepositoryStub,
    VoteRepositoryStub,
)


@pytest.fixture(autouse=True)
def fresh_persistence() -> Iterator[None]:
    persistence.reset_persistence()
    reset_database_bootstrap()
    yield
    persistence.reset_persistence()
    reset_database_bootstrap()


def all_repositories() -> list[object]:
    return [
        persistence.get_session_repository(),
        persistence.get_participant_repository(),
        persistence.get_vote_repository(),
        persistence.get_discussion_repository(),
        persistence.get_analysis_repository(),
    ]


class TestRepositorySet:
    def test_database_url_backs_every_repository(self, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://retro:secret@db:5432/insightflow")

        repositories = all_repositories()

        assert [type(r) for r in repositories] == [
            PostgresSessionRepository,
            PostgresParticipantRepository,
            PostgresVoteRepository,
            PostgresDiscussionRepository,
            PostgresAnalysisRepository,
        ]
        assert persistence.uses_postgres() is True

    def test_unset_url_uses_stubs_everywhere(self, monkeypatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)

        repositories = all_repositories()

        assert [type(r) for r in repositories] == [
            SessionRepositoryStub,
            ParticipantRepositoryStub,
            VoteRepositoryStub,
            DiscussionRepositoryStub,
            AnalysisRepositoryStub,
        ]
        assert persistence.uses_postgres() is False

    def test_failed_setup_falls_back_for_every_repository(self, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "mysql://retro@db/insightflow")

        # first access goes through a non-session getter
        vote_repository = persistence.get_vote_repository()

        assert isinstance(vote_repository, VoteRepositoryStub)
        assert isinstance(persistence.get_session_repository(), SessionRepositoryStub)
        assert isinstance(persistence.get_analysis_repository(), AnalysisRepositoryStub)
        assert persistence.uses_postgres() is False

    def test_set_is_built_once(self, monkeypatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)

        first = all_repositories()
        second = all_repositories()

        assert all(a is b for a, b in zip(first, second))
