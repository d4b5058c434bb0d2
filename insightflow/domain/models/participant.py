"""Session participant model."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from uuid import UUID

from uuid6 import uuid7


@dataclass(frozen=True, eq=True)
class Participant:
    """A principal that joined a session.

    Immutable after creation except for soft-deletion. Deleted participants
    neither vote, receive votes, nor count in the tally.

    Attributes:
        participant_id: UUIDv7 identifier.
        session_id: Session joined.
        principal_id: Identity of the caller that joined.
        display_identity: Name shown to other participants.
        joined_at: Join timestamp; orders zero-vote participants in the tally.
        is_deleted: Soft-deletion flag.
    """

    participant_id: UUID
    session_id: UUID
    principal_id: str
    display_identity: str
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_deleted: bool = False

    def __post_init__(self) -> None:
        if not self.display_identity.strip():
            raise ValueError("display_identity must not be blank")

    @classmethod
    def create(
        cls,
        session_id: UUID,
        principal_id: str,
        display_identity: str,
        joined_at: datetime,
    ) -> Participant:
        return cls(
            participant_id=uuid7(),
            session_id=session_id,
            principal_id=principal_id,
            display_identity=display_identity.strip(),
            joined_at=joined_at,
        )

    @property
    def is_live(self) -> bool:
        return not self.is_deleted

    def with_deleted(self) -> Participant:
        return replace(self, is_deleted=True)
