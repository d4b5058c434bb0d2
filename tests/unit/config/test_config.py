"""Unit tests for environment-driven configuration."""

import pytest

from insightflow.config import CompletionConfig, ProgressConfig, VoteSettingsDefaults
from insightflow.domain.errors import VoteSettingsValidationError
from insightflow.domain.models.session import VoteSettings


class TestVoteSettingsDefaults:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in (
            "DEFAULT_MAX_VOTES_PER_PARTICIPANT",
            "DEFAULT_REQUIRE_REASON",
            "DEFAULT_VOTING_DURATION_SECONDS",
            "DEFAULT_TOP_VOTED_COUNT",
        ):
            monkeypatch.delenv(key, raising=False)

        assert VoteSettingsDefaults.from_environment().to_vote_settings() == VoteSettings()

    def test_environment_values_are_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEFAULT_MAX_VOTES_PER_PARTICIPANT", "500")
        monkeypatch.setenv("DEFAULT_VOTING_DURATION_SECONDS", "5")
        monkeypatch.setenv("DEFAULT_TOP_VOTED_COUNT", "not-a-number")
        monkeypatch.setenv("DEFAULT_REQUIRE_REASON", "yes")

        defaults = VoteSettingsDefaults.from_environment()

        assert defaults.max_votes_per_participant == 50
        assert defaults.voting_duration_seconds == 30
        assert defaults.top_voted_count == 3
        assert defaults.require_reason is True

    def test_direct_construction_validates(self) -> None:
        with pytest.raises(VoteSettingsValidationError):
            VoteSettingsDefaults(max_votes_per_participant=0)


class TestCompletionConfig:
    def test_unconfigured_without_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COMPLETION_API_KEY", raising=False)
        config = CompletionConfig.from_environment()

        assert not config.is_configured
        assert config.agent_model_config().temperature == 0.7
        assert config.analysis_model_config().temperature == 0.3

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COMPLETION_API_KEY", "sk-live")
        monkeypatch.setenv("COMPLETION_API_BASE_URL", "http://localhost:8080/v1/")
        monkeypatch.setenv("COMPLETION_MODEL", "local-model")
        monkeypatch.setenv("COMPLETION_TIMEOUT_SECONDS", "9999")
        monkeypatch.setenv("COMPLETION_TEMPERATURE", "5")

        config = CompletionConfig.from_environment()

        assert config.is_configured
        assert config.base_url == "http://localhost:8080/v1"
        assert config.model == "local-model"
        assert config.timeout_seconds == 600.0
        assert config.temperature == 2.0

    @pytest.mark.parametrize(
        "kwargs",
        [{"timeout_seconds": 0}, {"base_url": "ftp://x"}, {"temperature": 3.0}, {"max_tokens": 0}],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            CompletionConfig(**kwargs)


class TestProgressConfig:
    def test_defaults(self) -> None:
        config = ProgressConfig()
        assert config.poll_interval_seconds == 2
        assert config.stream_keepalive_seconds == 15

    def test_from_environment_clamps(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROGRESS_POLL_INTERVAL_SECONDS", "0")
        monkeypatch.setenv("PROGRESS_STREAM_KEEPALIVE_SECONDS", "1000")

        config = ProgressConfig.from_environment()

        assert config.poll_interval_seconds == 1
        assert config.stream_keepalive_seconds == 300

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            ProgressConfig(poll_interval_seconds=61)
