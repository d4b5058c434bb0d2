"""In-memory session repository.

Simulates the conditional UPDATE ... WHERE status AND version with an
asyncio.Lock. Not for production use.
"""

from __future__ import annotations

import asyncio
from uuid import UUID

from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.domain.errors.session import ConcurrencyConflictError, SessionNotFoundError
from insightflow.domain.models.session import Session, SessionStatus


class SessionRepositoryStub(SessionRepositoryProtocol):
    """In-memory SessionRepositoryProtocol implementation.

    Attributes:
        _sessions: Dictionary mapping session_id to Session.
    """

    def __init__(self) -> None:
        self._sessions: dict[UUID, Session] = {}
        self._cas_lock = asyncio.Lock()

    async def save(self, session: Session) -> None:
        async with self._cas_lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Session already exists: {session.session_id}")
            self._sessions[session.session_id] = session

    async def get(self, session_id: UUID) -> Session | None:
        return self._sessions.get(session_id)

    async def update_if(
        self,
        session: Session,
        expected_status: SessionStatus,
        expected_version: int,
    ) -> Session:
        async with self._cas_lock:
            current = self._sessions.get(session.session_id)
            if current is None:
                raise SessionNotFoundError(session.session_id)
            if current.status != expected_status or current.version != expected_version:
                raise ConcurrencyConflictError(
                    session_id=session.session_id,
                    expected_status=expected_status,
                    actual_status=current.status,
                )
            self._sessions[session.session_id] = session
            return session

    async def list_by_status(self, status: SessionStatus) -> list[Session]:
        matching = [s for s in self._sessions.values() if s.status == status]
        matching.sort(key=lambda s: s.created_at)
        return matching

    def clear(self) -> None:
        """Clear all stored sessions (for testing)."""
        self._sessions.clear()
