"""Progress delivery configuration.

Environment Variables:
- PROGRESS_POLL_INTERVAL_SECONDS: Retry hint returned to polling clients (default: 2, 1-60)
- PROGRESS_STREAM_KEEPALIVE_SECONDS: Idle time before an SSE keepalive (default: 15, 1-300)
"""

from __future__ import annotations

from dataclasses import dataclass

from insightflow.config.env import _get_int_env

DEFAULT_POLL_INTERVAL_SECONDS = 2
MIN_POLL_INTERVAL_SECONDS = 1
MAX_POLL_INTERVAL_SECONDS = 60
DEFAULT_STREAM_KEEPALIVE_SECONDS = 15
MIN_STREAM_KEEPALIVE_SECONDS = 1
MAX_STREAM_KEEPALIVE_SECONDS = 300


@dataclass(frozen=True)
class ProgressConfig:
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    stream_keepalive_seconds: int = DEFAULT_STREAM_KEEPALIVE_SECONDS

    def __post_init__(self) -> None:
        if not MIN_POLL_INTERVAL_SECONDS <= self.poll_interval_seconds <= MAX_POLL_INTERVAL_SECONDS:
            raise ValueError(
                f"poll_interval_seconds must be between {MIN_POLL_INTERVAL_SECONDS} "
                f"and {MAX_POLL_INTERVAL_SECONDS}, got {self.poll_interval_seconds}"
            )
        if not MIN_STREAM_KEEPALIVE_SECONDS <= self.stream_keepalive_seconds <= MAX_STREAM_KEEPALIVE_SECONDS:
            raise ValueError(
                f"stream_keepalive_seconds must be between {MIN_STREAM_KEEPALIVE_SECONDS} "
                f"and {MAX_STREAM_KEEPALIVE_SECONDS}, got {self.stream_keepalive_seconds}"
            )

    @classmethod
    def from_environment(cls) -> ProgressConfig:
        poll = _get_int_env("PROGRESS_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS)
        keepalive = _get_int_env(
            "PROGRESS_STREAM_KEEPALIVE_SECONDS", DEFAULT_STREAM_KEEPALIVE_SECONDS
        )
        return cls(
            poll_interval_seconds=max(MIN_POLL_INTERVAL_SECONDS, min(poll, MAX_POLL_INTERVAL_SECONDS)),
            stream_keepalive_seconds=max(
                MIN_STREAM_KEEPALIVE_SECONDS, min(keepalive, MAX_STREAM_KEEPALIVE_SECONDS)
            ),
        )
