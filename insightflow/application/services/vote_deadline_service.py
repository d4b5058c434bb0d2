"""Vote deadline timers.

One asyncio task per active session sleeps until the voting deadline and
then calls the end-voting handler with the system context. A sweep
closes any active session whose deadline passed while no timer was
running (for example after a restart).

The timer and a manual end race through the session state machine's
conditional write, so firing late or twice is harmless.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from uuid import UUID

from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.ports.time_authority import TimeAuthorityProtocol
from insightflow.application.ports.vote_deadline_scheduler import (
    VoteDeadlineSchedulerProtocol,
)
from insightflow.application.services.base import LoggingMixin
from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.session import SessionStatus

DeadlineHandler = Callable[[UUID], Awaitable[object]]


class VoteDeadlineService(LoggingMixin, VoteDeadlineSchedulerProtocol):
    """Schedules, cancels and sweeps vote deadline timers."""

    def __init__(
        self,
        session_repository: SessionRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
        handler: DeadlineHandler | None = None,
    ) -> None:
        self._sessions = session_repository
        self._time = time_authority
        self._handler = handler
        self._timers: dict[UUID, asyncio.Task[None]] = {}
        self._init_logger(component="voting")

    def set_handler(self, handler: DeadlineHandler) -> None:
        """Set the callback invoked when a deadline passes."""
        self._handler = handler

    @property
    def pending(self) -> set[UUID]:
        """Sessions with a running timer."""
        return {sid for sid, task in self._timers.items() if not task.done()}

    def schedule(self, session_id: UUID, deadline: datetime) -> None:
        self.cancel(session_id)
        delay = max(0.0, (deadline - self._time.now()).total_seconds())
        self._timers[session_id] = asyncio.create_task(
            self._fire_after(session_id, delay),
            name=f"vote-deadline-{session_id}",
        )
        self._log_operation("schedule", session_id=str(session_id)).info(
            "deadline_scheduled", delay_seconds=delay
        )

    def cancel(self, session_id: UUID) -> None:
        task = self._timers.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
            self._log_operation("cancel", session_id=str(session_id)).info("deadline_cancelled")

    async def _fire_after(self, session_id: UUID, delay: float) -> None:
        await asyncio.sleep(delay)
        self._timers.pop(session_id, None)
        await self.fire(session_id)

    async def fire(self, session_id: UUID) -> None:
        """Invoke the handler for one session.

        Domain errors are logged, not raised: the timer has no caller to
        report to and the next sweep retries.
        """
        log = self._log_operation("fire", session_id=str(session_id))
        if self._handler is None:
            log.warning("deadline_handler_missing")
            return
        try:
            await self._handler(session_id)
        except InsightflowError as exc:
            log.warning("deadline_handler_failed", error=str(exc), error_type=type(exc).__name__)
        else:
            log.info("deadline_fired")

    async def sweep(self) -> int:
        """End voting for every active session whose deadline has passed.

        Returns:
            Number of sessions the handler was invoked for.
        """
        now = self._time.now()
        expired = [
            session
            for session in await self._sessions.list_by_status(SessionStatus.ACTIVE)
            if session.is_voting_deadline_passed(now)
        ]
        for session in expired:
            self.cancel(session.session_id)
            await self.fire(session.session_id)
        if expired:
            self._log_operation("sweep").info("deadline_sweep_completed", ended=len(expired))
        return len(expired)

    async def restore(self) -> int:
        """Schedule timers for every active session (call at startup)."""
        active = await self._sessions.list_by_status(SessionStatus.ACTIVE)
        for session in active:
            deadline = session.voting_deadline
            if deadline is not None:
                self.schedule(session.session_id, deadline)
        return len(active)

    async def shutdown(self) -> None:
        """Cancel every pending timer."""
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
