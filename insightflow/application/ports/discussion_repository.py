"""Discussion repository port."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from insightflow.domain.models.discussion import Discussion, DiscussionMessage


class DiscussionRepositoryProtocol(Protocol):
    """Protocol for discussion storage operations."""

    async def save(self, discussion: Discussion) -> Discussion:
        """Save a discussion unless the participant already has one.

        Returns:
            The stored discussion (the existing one if already present).
        """
        ...

    async def get(self, discussion_id: UUID) -> Discussion | None:
        ...

    async def get_by_participant(self, session_id: UUID, participant_id: UUID) -> Discussion | None:
        ...

    async def list_by_session(
        self,
        session_id: UUID,
        include_deleted: bool = False,
    ) -> list[Discussion]:
        """List a session's discussions ordered by created_at."""
        ...

    async def append_message(self, discussion_id: UUID, message: DiscussionMessage) -> Discussion:
        """Append a message to a discussion.

        Raises:
            DiscussionNotFoundError: If the discussion does not exist.
        """
        ...
