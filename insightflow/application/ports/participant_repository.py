"""Participant repository port."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from insightflow.domain.models.participant import Participant


class ParticipantRepositoryProtocol(Protocol):
    """Protocol for participant storage operations."""

    async def save(self, participant: Participant) -> None:
        """Save a new participant."""
        ...

    async def get(self, participant_id: UUID) -> Participant | None:
        """Retrieve a participant by ID (deleted ones included)."""
        ...

    async def get_by_principal(self, session_id: UUID, principal_id: str) -> Participant | None:
        """Retrieve the live participant a principal joined a session as."""
        ...

    async def list_by_session(
        self,
        session_id: UUID,
        include_deleted: bool = False,
    ) -> list[Participant]:
        """List a session's participants in join order."""
        ...

    async def mark_deleted(self, participant_id: UUID) -> Participant:
        """Soft-delete a participant.

        Raises:
            ParticipantNotFoundError: If the participant does not exist.
        """
        ...
