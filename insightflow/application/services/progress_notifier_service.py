"""Progress notifier implementations.

Snapshots carry the session version as their sequence. Every notifier
keeps, per session, only snapshots newer than the last one it accepted,
so observers never see progress go backwards.

- PollingProgressNotifier: newest snapshot per session for pull clients
- PushProgressNotifier: per-subscriber queues for streaming clients
- CompositeProgressNotifier: fans out to several notifiers
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from uuid import UUID

from insightflow.application.ports.progress_notifier import ProgressNotifierProtocol
from insightflow.application.services.base import LoggingMixin
from insightflow.domain.models.progress import ProgressSnapshot

DEFAULT_SUBSCRIBER_QUEUE_SIZE = 64


class PollingProgressNotifier(ProgressNotifierProtocol):
    """Keeps the newest snapshot per session for polling."""

    def __init__(self) -> None:
        self._latest: dict[UUID, ProgressSnapshot] = {}

    async def publish(self, snapshot: ProgressSnapshot) -> None:
        if snapshot.is_newer_than(self._latest.get(snapshot.session_id)):
            self._latest[snapshot.session_id] = snapshot

    def latest(self, session_id: UUID) -> ProgressSnapshot | None:
        return self._latest.get(session_id)


class ProgressSubscription:
    """One subscriber's ordered view of a session's snapshots.

    The queue is bounded; when a slow subscriber falls behind, the oldest
    pending snapshot is dropped, which keeps the newest value deliverable.
    """

    def __init__(self, session_id: UUID, maxsize: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE) -> None:
        self.session_id = session_id
        self._queue: asyncio.Queue[ProgressSnapshot] = asyncio.Queue(maxsize=maxsize)
        self._last_sequence = -1
        self.closed = False

    @property
    def last_sequence(self) -> int:
        return self._last_sequence

    def offer(self, snapshot: ProgressSnapshot) -> bool:
        """Enqueue a snapshot if it is newer than anything delivered so far."""
        if self.closed or snapshot.sequence <= self._last_sequence:
            return False
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(snapshot)
        self._last_sequence = snapshot.sequence
        return True

    async def get(self, timeout: float | None = None) -> ProgressSnapshot | None:
        """Next snapshot, or None if ``timeout`` elapses first."""
        if timeout is None:
            return await self._queue.get()
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def pending(self) -> int:
        return self._queue.qsize()


class PushProgressNotifier(LoggingMixin, ProgressNotifierProtocol):
    """Delivers snapshots to per-session subscriber queues."""

    def __init__(self, queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._latest: dict[UUID, ProgressSnapshot] = {}
        self._subscribers: dict[UUID, set[ProgressSubscription]] = {}
        self._init_logger(component="progress")

    async def publish(self, snapshot: ProgressSnapshot) -> None:
        if snapshot.is_newer_than(self._latest.get(snapshot.session_id)):
            self._latest[snapshot.session_id] = snapshot
        for subscription in list(self._subscribers.get(snapshot.session_id, ())):
            subscription.offer(snapshot)

    def subscribe(
        self,
        session_id: UUID,
        initial: ProgressSnapshot | None = None,
    ) -> ProgressSubscription:
        """Register a subscriber; the latest known snapshot is delivered first.

        Args:
            session_id: Session to follow.
            initial: Snapshot read from storage by the caller, used when it
                is newer than anything published so far.
        """
        subscription = ProgressSubscription(session_id, maxsize=self._queue_size)
        latest = self._latest.get(session_id)
        if initial is not None and initial.is_newer_than(latest):
            latest = initial
        if latest is not None:
            subscription.offer(latest)
        self._subscribers.setdefault(session_id, set()).add(subscription)
        self._log_operation("subscribe", session_id=str(session_id)).debug(
            "progress_subscriber_added", subscribers=len(self._subscribers[session_id])
        )
        return subscription

    def unsubscribe(self, subscription: ProgressSubscription) -> None:
        subscription.closed = True
        subscribers = self._subscribers.get(subscription.session_id)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.session_id]

    def subscriber_count(self, session_id: UUID) -> int:
        return len(self._subscribers.get(session_id, ()))


class CompositeProgressNotifier(ProgressNotifierProtocol):
    """Publishes every snapshot to each wrapped notifier in order."""

    def __init__(self, notifiers: Iterable[ProgressNotifierProtocol]) -> None:
        self._notifiers = list(notifiers)

    async def publish(self, snapshot: ProgressSnapshot) -> None:
        for notifier in self._notifiers:
            await notifier.publish(snapshot)
