"""Discussion API models."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from insightflow.api.models.common import DateTimeWithZ
from insightflow.domain.models.discussion import Discussion, DiscussionMessage


class OpenDiscussionRequest(BaseModel):
    participant_id: UUID


class PostMessageRequest(BaseModel):
    content: str = Field(..., description="Message text; blank or oversized text is rejected")


class DiscussionMessageModel(BaseModel):
    role: str
    content: str
    timestamp: DateTimeWithZ

    @classmethod
    def from_domain(cls, message: DiscussionMessage) -> DiscussionMessageModel:
        return cls(role=message.role.value, content=message.content, timestamp=message.timestamp)


class DiscussionResponse(BaseModel):
    discussion_id: UUID
    session_id: UUID
    participant_id: UUID
    agent_type: str
    created_at: DateTimeWithZ
    messages: list[DiscussionMessageModel]

    @classmethod
    def from_domain(cls, discussion: Discussion) -> DiscussionResponse:
        return cls(
            discussion_id=discussion.discussion_id,
            session_id=discussion.session_id,
            participant_id=discussion.participant_id,
            agent_type=discussion.agent_type.value,
            created_at=discussion.created_at,
            messages=[DiscussionMessageModel.from_domain(m) for m in discussion.messages],
        )


class DiscussionListResponse(BaseModel):
    discussions: list[DiscussionResponse]


class PostMessageResponse(BaseModel):
    user_message: DiscussionMessageModel
    assistant_message: DiscussionMessageModel
