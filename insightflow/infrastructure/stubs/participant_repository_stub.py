"""In-memory participant repository."""

from __future__ import annotations

from uuid import UUID

from insightflow.application.ports.participant_repository import (
    ParticipantRepositoryProtocol,
)
from insightflow.domain.errors.session import ParticipantNotFoundError
from insightflow.domain.models.participant import Participant


class ParticipantRepositoryStub(ParticipantRepositoryProtocol):
    def __init__(self) -> None:
        self._participants: dict[UUID, Participant] = {}

    async def save(self, participant: Participant) -> None:
        if participant.participant_id in self._participants:
            raise ValueError(f"Participant already exists: {participant.participant_id}")
        self._participants[participant.participant_id] = participant

    async def get(self, participant_id: UUID) -> Participant | None:
        return self._participants.get(participant_id)

    async def get_by_principal(self, session_id: UUID, principal_id: str) -> Participant | None:
        for participant in self._participants.values():
            if (
                participant.session_id == session_id
                and participant.principal_id == principal_id
                and participant.is_live
            ):
                return participant
        return None

    async def list_by_session(
        self,
        session_id: UUID,
        include_deleted: bool = False,
    ) -> list[Participant]:
        matching = [
            p
            for p in self._participants.values()
            if p.session_id == session_id and (include_deleted or p.is_live)
        ]
        matching.sort(key=lambda p: (p.joined_at, str(p.participant_id)))
        return matching

    async def mark_deleted(self, participant_id: UUID) -> Participant:
        participant = self._participants.get(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id=participant_id)
        deleted = participant.with_deleted()
        self._participants[participant_id] = deleted
        return deleted

    def clear(self) -> None:
        self._participants.clear()
