"""Vote deadline scheduler port.

The session state machine schedules the deadline when voting starts and
cancels it when voting ends early. The scheduler later calls back into
end voting with a system context.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID


class VoteDeadlineSchedulerProtocol(Protocol):
    def schedule(self, session_id: UUID, deadline: datetime) -> None:
        """Schedule (or reschedule) the deadline timer for a session."""
        ...

    def cancel(self, session_id: UUID) -> None:
        """Cancel a pending deadline timer; no-op if none is pending."""
        ...
