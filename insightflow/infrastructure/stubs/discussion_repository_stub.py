"""In-memory discussion repository."""

from __future__ import annotations

import asyncio
from uuid import UUID

from insightflow.application.ports.discussion_repository import (
    DiscussionRepositoryProtocol,
)
from insightflow.domain.errors.analysis import DiscussionNotFoundError
from insightflow.domain.models.discussion import Discussion, DiscussionMessage


class DiscussionRepositoryStub(DiscussionRepositoryProtocol):
    def __init__(self) -> None:
        self._discussions: dict[UUID, Discussion] = {}
        self._lock = asyncio.Lock()

    async def save(self, discussion: Discussion) -> Discussion:
        async with self._lock:
            existing = self._find_live(discussion.session_id, discussion.participant_id)
            if existing is not None:
                return existing
            self._discussions[discussion.discussion_id] = discussion
            return discussion

    def _find_live(self, session_id: UUID, participant_id: UUID) -> Discussion | None:
        for discussion in self._discussions.values():
            if (
                discussion.session_id == session_id
                and discussion.participant_id == participant_id
                and not discussion.is_deleted
            ):
                return discussion
        return None

    async def get(self, discussion_id: UUID) -> Discussion | None:
        return self._discussions.get(discussion_id)

    async def get_by_participant(self, session_id: UUID, participant_id: UUID) -> Discussion | None:
        return self._find_live(session_id, participant_id)

    async def list_by_session(
        self,
        session_id: UUID,
        include_deleted: bool = False,
    ) -> list[Discussion]:
        matching = [
            d
            for d in self._discussions.values()
            if d.session_id == session_id and (include_deleted or not d.is_deleted)
        ]
        matching.sort(key=lambda d: (d.created_at, str(d.discussion_id)))
        return matching

    async def append_message(self, discussion_id: UUID, message: DiscussionMessage) -> Discussion:
        async with self._lock:
            discussion = self._discussions.get(discussion_id)
            if discussion is None or discussion.is_deleted:
                raise DiscussionNotFoundError(discussion_id=discussion_id)
            updated = discussion.with_message(message)
            self._discussions[discussion_id] = updated
            return updated

    def clear(self) -> None:
        self._discussions.clear()
