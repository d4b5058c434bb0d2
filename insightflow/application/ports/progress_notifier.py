"""Progress notifier port.

Delivery is at-least-once and eventually consistent. A notifier never
delivers an older snapshot of a session after a newer one.
"""

from __future__ import annotations

from typing import Protocol

from insightflow.domain.models.progress import ProgressSnapshot


class ProgressNotifierProtocol(Protocol):
    async def publish(self, snapshot: ProgressSnapshot) -> None:
        """Publish a snapshot to observers."""
        ...
