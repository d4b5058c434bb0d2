"""Vote settings defaults.

Environment Variables:
- DEFAULT_MAX_VOTES_PER_PARTICIPANT: Votes per participant (default: 3, 1-50)
- DEFAULT_REQUIRE_REASON: Whether votes need a reason (default: false)
- DEFAULT_VOTING_DURATION_SECONDS: Voting window (default: 1200, 30-86400)
- DEFAULT_TOP_VOTED_COUNT: Participants labelled nugget (default: 3, 1-1000)
"""

from __future__ import annotations

from dataclasses import dataclass

from insightflow.config.env import _get_bool_env, _get_int_env
from insightflow.domain.models.session import (
    DEFAULT_MAX_VOTES_PER_PARTICIPANT,
    DEFAULT_REQUIRE_REASON,
    DEFAULT_TOP_VOTED_COUNT,
    DEFAULT_VOTING_DURATION_SECONDS,
    MAX_VOTES_PER_PARTICIPANT_CEILING,
    MAX_VOTING_DURATION_SECONDS,
    MIN_VOTING_DURATION_SECONDS,
    TOP_VOTED_COUNT_CEILING,
    VoteSettings,
)


@dataclass(frozen=True)
class VoteSettingsDefaults:
    """Defaults applied to omitted vote settings when voting starts."""

    max_votes_per_participant: int = DEFAULT_MAX_VOTES_PER_PARTICIPANT
    require_reason: bool = DEFAULT_REQUIRE_REASON
    voting_duration_seconds: int = DEFAULT_VOTING_DURATION_SECONDS
    top_voted_count: int = DEFAULT_TOP_VOTED_COUNT

    def __post_init__(self) -> None:
        # VoteSettings enforces the bounds
        self.to_vote_settings()

    def to_vote_settings(self) -> VoteSettings:
        return VoteSettings(
            max_votes_per_participant=self.max_votes_per_participant,
            require_reason=self.require_reason,
            voting_duration_seconds=self.voting_duration_seconds,
            top_voted_count=self.top_voted_count,
        )

    @classmethod
    def from_environment(cls) -> VoteSettingsDefaults:
        """Create defaults from environment variables, clamped to valid ranges."""
        max_votes = _get_int_env(
            "DEFAULT_MAX_VOTES_PER_PARTICIPANT", DEFAULT_MAX_VOTES_PER_PARTICIPANT
        )
        duration = _get_int_env("DEFAULT_VOTING_DURATION_SECONDS", DEFAULT_VOTING_DURATION_SECONDS)
        top_voted = _get_int_env("DEFAULT_TOP_VOTED_COUNT", DEFAULT_TOP_VOTED_COUNT)
        return cls(
            max_votes_per_participant=max(1, min(max_votes, MAX_VOTES_PER_PARTICIPANT_CEILING)),
            require_reason=_get_bool_env("DEFAULT_REQUIRE_REASON", DEFAULT_REQUIRE_REASON),
            voting_duration_seconds=max(
                MIN_VOTING_DURATION_SECONDS, min(duration, MAX_VOTING_DURATION_SECONDS)
            ),
            top_voted_count=max(1, min(top_voted, TOP_VOTED_COUNT_CEILING)),
        )
