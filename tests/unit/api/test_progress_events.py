"""Tests for the progress stream event generator."""

import json
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from insightflow.api.routes.progress import (
    PROGRESS_EVENT,
    is_in_flight,
    progress_events,
    to_event,
)
from insightflow.application.services.progress_notifier_service import ProgressSubscription
from insightflow.domain.models.progress import ProgressSnapshot
from insightflow.domain.models.session import AnalysisStatus, SessionStatus

SESSION_ID = uuid4()


def snapshot(
    sequence: int,
    session_status: SessionStatus = SessionStatus.AI_DISCUSSION,
    analysis_status: AnalysisStatus | None = None,
    progress: int = 0,
) -> ProgressSnapshot:
    return ProgressSnapshot(
        session_id=SESSION_ID,
        session_status=session_status,
        analysis_status=analysis_status,
        analysis_progress=progress,
        analysis_type="overall" if analysis_status else None,
        run_id=None,
        sequence=sequence,
    )


async def collect(subscription, is_disconnected, wait_seconds=0.01) -> list[dict]:
    return [event async for event in progress_events(subscription, is_disconnected, wait_seconds)]


class TestIsInFlight:
    @pytest.mark.parametrize(
        "session_status,analysis_status,expected",
        [
            (SessionStatus.DRAFT, None, False),
            (SessionStatus.ACTIVE, None, True),
            (SessionStatus.ENDED, None, False),
            (SessionStatus.AI_DISCUSSION, None, False),
            (SessionStatus.AI_DISCUSSION, AnalysisStatus.QUEUED, False),
            (SessionStatus.AI_DISCUSSION, AnalysisStatus.PROCESSING, True),
            (SessionStatus.AI_DISCUSSION, AnalysisStatus.COMPLETED, False),
            (SessionStatus.AI_DISCUSSION, AnalysisStatus.FAILED, False),
            (SessionStatus.ARCHIVED, AnalysisStatus.PROCESSING, False),
            (SessionStatus.ARCHIVED, None, False),
        ],
    )
    def test_in_flight(self, session_status, analysis_status, expected) -> None:
        assert is_in_flight(snapshot(1, session_status, analysis_status)) is expected


class TestToEvent:
    def test_event_carries_sequence_as_id(self) -> None:
        event = to_event(snapshot(7, analysis_status=AnalysisStatus.PROCESSING, progress=40))

        assert event["event"] == PROGRESS_EVENT
        assert event["id"] == "7"
        data = json.loads(event["data"])
        assert data["analysis_progress"] == 40
        assert data["analysis_status"] == "processing"
        assert data["session_id"] == str(SESSION_ID)


class TestProgressEvents:
    async def test_stream_ends_after_archive(self) -> None:
        subscription = ProgressSubscription(SESSION_ID)
        subscription.offer(snapshot(1, analysis_status=AnalysisStatus.PROCESSING, progress=50))
        subscription.offer(snapshot(2, session_status=SessionStatus.ARCHIVED))
        is_disconnected = AsyncMock(return_value=False)

        events = await collect(subscription, is_disconnected)

        assert [event["id"] for event in events] == ["1", "2"]

    async def test_stream_ends_on_disconnect(self) -> None:
        subscription = ProgressSubscription(SESSION_ID)
        is_disconnected = AsyncMock(return_value=True)

        events = await collect(subscription, is_disconnected)

        assert events == []
        is_disconnected.assert_awaited_once()

    async def test_idle_waits_keep_the_stream_open(self) -> None:
        subscription = ProgressSubscription(SESSION_ID)
        is_disconnected = AsyncMock(side_effect=[False, False, True])

        events = await collect(subscription, is_disconnected)

        assert events == []
        assert is_disconnected.await_count == 3

    async def test_stale_snapshots_are_not_streamed(self) -> None:
        subscription = ProgressSubscription(SESSION_ID)
        subscription.offer(snapshot(3))
        subscription.offer(snapshot(2))
        subscription.offer(snapshot(4, session_status=SessionStatus.ARCHIVED))

        events = await collect(subscription, AsyncMock(return_value=False))

        assert [event["id"] for event in events] == ["3", "4"]
