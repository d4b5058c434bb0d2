"""Session repository port.

Every write after creation is a conditional update: the row changes only
if its status and version still match what the caller read. This is the
single check-and-set that settles races such as timer-driven end voting
against a manual end, or two analysis claims.

Implementation Notes:
- PostgreSQL: UPDATE ... WHERE id = :id AND status = :expected AND
  version = :version RETURNING *
- In-memory: compare and swap under an asyncio.Lock
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from insightflow.domain.models.session import Session, SessionStatus


class SessionRepositoryProtocol(Protocol):
    """Protocol for session storage operations.

    Methods:
        save: Store a new session
        get: Retrieve a session by ID
        update_if: Conditional update (check-and-set)
        list_by_status: List sessions in a status
    """

    async def save(self, session: Session) -> None:
        """Save a new session.

        Raises:
            ValueError: If a session with the same ID already exists.
        """
        ...

    async def get(self, session_id: UUID) -> Session | None:
        """Retrieve a session by ID, or None if missing."""
        ...

    async def update_if(
        self,
        session: Session,
        expected_status: SessionStatus,
        expected_version: int,
    ) -> Session:
        """Replace the stored session if status and version still match.

        Args:
            session: The new session state (version already incremented).
            expected_status: Status the stored row must have.
            expected_version: Version the stored row must have.

        Returns:
            The stored session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            ConcurrencyConflictError: If status or version changed underneath.
        """
        ...

    async def list_by_status(self, status: SessionStatus) -> list[Session]:
        """List sessions in the given status."""
        ...
