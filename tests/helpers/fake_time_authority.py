"""Frozen, manually advanced clock for tests.

Vote deadlines and analysis timestamps read time through
TimeAuthorityProtocol; tests move it forward explicitly::

    clock = FakeTimeAuthority()
    clock.advance(seconds=1200)  # default voting window
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from insightflow.application.ports.time_authority import TimeAuthorityProtocol

DEFAULT_FROZEN_AT = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


class FakeTimeAuthority(TimeAuthorityProtocol):
    def __init__(self, frozen_at: datetime = DEFAULT_FROZEN_AT) -> None:
        if frozen_at.tzinfo is None:
            frozen_at = frozen_at.replace(tzinfo=timezone.utc)
        self._now = frozen_at
        self._elapsed = 0.0

    def now(self) -> datetime:
        return self._now

    def utcnow(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._elapsed

    def advance(self, seconds: float) -> None:
        """Move both clocks forward; the past is not reachable."""
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards by {seconds}s")
        self._now += timedelta(seconds=seconds)
        self._elapsed += seconds

    def __repr__(self) -> str:
        return f"FakeTimeAuthority(now={self._now.isoformat()})"
