"""Clock port.

Deadlines, vote timestamps and analysis records are stamped from this
port so tests can freeze and advance time.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""

    @abstractmethod
    def utcnow(self) -> datetime: ...

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds on a clock that never goes back; only differences matter."""
