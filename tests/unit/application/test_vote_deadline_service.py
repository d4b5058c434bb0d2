"""Unit tests for VoteDeadlineService."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from insightflow.application.services.vote_deadline_service import VoteDeadlineService
from insightflow.domain.errors import InvalidStateError
from insightflow.domain.models.session import SessionStatus
from insightflow.domain.models.session_context import SessionContext


@pytest.fixture
def handler() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def deadline_service(session_repo, fake_time_authority, handler) -> VoteDeadlineService:
    return VoteDeadlineService(
        session_repository=session_repo,
        time_authority=fake_time_authority,
        handler=handler,
    )


class TestScheduling:
    async def test_timer_fires_at_deadline(self, deadline_service, handler, fake_time_authority) -> None:
        session_id = uuid4()

        deadline_service.schedule(session_id, fake_time_authority.now())
        await asyncio.sleep(0.01)

        handler.assert_awaited_once_with(session_id)
        assert session_id not in deadline_service.pending

    async def test_cancel_prevents_firing(self, deadline_service, handler, fake_time_authority) -> None:
        session_id = uuid4()
        deadline_service.schedule(session_id, fake_time_authority.now() + timedelta(hours=1))
        assert session_id in deadline_service.pending

        deadline_service.cancel(session_id)
        await asyncio.sleep(0)

        assert session_id not in deadline_service.pending
        handler.assert_not_awaited()

    async def test_reschedule_replaces_timer(self, deadline_service, fake_time_authority) -> None:
        session_id = uuid4()
        deadline_service.schedule(session_id, fake_time_authority.now() + timedelta(hours=1))
        deadline_service.schedule(session_id, fake_time_authority.now() + timedelta(hours=2))

        assert deadline_service.pending == {session_id}
        await deadline_service.shutdown()
        assert deadline_service.pending == set()

    async def test_handler_errors_are_logged_not_raised(self, deadline_service, handler) -> None:
        session_id = uuid4()
        handler.side_effect = InvalidStateError(
            session_id=session_id, current_status=SessionStatus.DRAFT, operation="end voting"
        )

        await deadline_service.fire(session_id)

        handler.assert_awaited_once_with(session_id)

    async def test_missing_handler(self, session_repo, fake_time_authority) -> None:
        service = VoteDeadlineService(session_repo, fake_time_authority)
        await service.fire(uuid4())


class TestSweepAndRestore:
    """Startup recovery against the state machine."""

    async def _active_sessions(self, state_machine, host_ctx, durations):
        sessions = []
        for seconds in durations:
            session = await state_machine.create_session(host_ctx)
            sessions.append(
                await state_machine.start_voting(
                    host_ctx, session.session_id, {"voting_duration_seconds": seconds}
                )
            )
        return sessions

    async def test_sweep_ends_expired_sessions(
        self, session_repo, fake_time_authority, state_machine, host_ctx
    ) -> None:
        service = VoteDeadlineService(
            session_repo,
            fake_time_authority,
            handler=lambda sid: state_machine.end_voting(SessionContext.system(), sid),
        )
        short, long = await self._active_sessions(state_machine, host_ctx, [60, 3600])
        fake_time_authority.advance(seconds=120)

        ended = await service.sweep()

        assert ended == 1
        assert (await session_repo.get(short.session_id)).status == SessionStatus.ENDED
        assert (await session_repo.get(long.session_id)).status == SessionStatus.ACTIVE

    async def test_restore_schedules_active_sessions(
        self, deadline_service, state_machine, host_ctx
    ) -> None:
        sessions = await self._active_sessions(state_machine, host_ctx, [600, 900])

        restored = await deadline_service.restore()

        assert restored == 2
        assert deadline_service.pending == {s.session_id for s in sessions}
        await deadline_service.shutdown()
