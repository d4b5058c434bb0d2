"""Unit tests for correlation ID propagation into log entries."""

import asyncio

from insightflow.infrastructure.observability.correlation import (
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationId:
    async def test_processor_adds_current_id(self) -> None:
        async def in_request() -> dict:
            set_correlation_id("req-123")
            return correlation_id_processor(None, "info", {"event": "x"})

        event = await asyncio.create_task(in_request())

        assert event["correlation_id"] == "req-123"

    async def test_processor_keeps_explicit_id(self) -> None:
        async def in_request() -> dict:
            set_correlation_id("req-123")
            return correlation_id_processor(None, "info", {"event": "x", "correlation_id": "own"})

        assert (await asyncio.create_task(in_request()))["correlation_id"] == "own"

    async def test_empty_id_not_added(self) -> None:
        async def without_id() -> dict:
            set_correlation_id("")
            return correlation_id_processor(None, "info", {"event": "x"})

        event = await asyncio.create_task(without_id())

        assert "correlation_id" not in event

    async def test_id_scoped_to_task(self) -> None:
        async def in_request() -> None:
            set_correlation_id("req-456")

        before = get_correlation_id()
        await asyncio.create_task(in_request())

        assert get_correlation_id() == before

    def test_generated_ids_are_unique(self) -> None:
        assert generate_correlation_id() != generate_correlation_id()
