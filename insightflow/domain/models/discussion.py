"""Post-vote discussion between a participant and an AI agent."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from uuid6 import uuid7

from insightflow.domain.models.vote import ParticipantLabel


class AgentType(Enum):
    """Agent persona a discussion is held with."""

    NUGGET = "nugget"
    LIGHTBULB = "lightbulb"

    @classmethod
    def for_label(cls, label: ParticipantLabel) -> AgentType:
        return cls.NUGGET if label == ParticipantLabel.NUGGET else cls.LIGHTBULB


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, eq=True)
class DiscussionMessage:
    role: MessageRole
    content: str
    timestamp: datetime

    def to_dict(self) -> dict[str, str]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, eq=True)
class Discussion:
    """One participant's conversation with their agent.

    One per participant per session. Messages are ordered by append time.
    """

    discussion_id: UUID
    session_id: UUID
    participant_id: UUID
    agent_type: AgentType
    messages: tuple[DiscussionMessage, ...] = field(default_factory=tuple)
    is_deleted: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        session_id: UUID,
        participant_id: UUID,
        agent_type: AgentType,
        created_at: datetime,
    ) -> Discussion:
        return cls(
            discussion_id=uuid7(),
            session_id=session_id,
            participant_id=participant_id,
            agent_type=agent_type,
            created_at=created_at,
        )

    @property
    def has_messages(self) -> bool:
        return len(self.messages) > 0

    def with_message(self, message: DiscussionMessage) -> Discussion:
        return replace(self, messages=(*self.messages, message))

    def with_deleted(self) -> Discussion:
        return replace(self, is_deleted=True)

    def transcript(self) -> str:
        """Render messages as a plain role-prefixed transcript."""
        return "\n".join(
            f"{message.role.value.upper()}: {message.content}" for message in self.messages
        )
