"""Fixtures for API tests: the real app over in-memory adapters."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from insightflow.api.main import app
from insightflow.bootstrap import services
from insightflow.bootstrap.completion import set_completion_service
from insightflow.infrastructure.stubs import CompletionServiceStub
from tests.helpers import FakeTimeAuthority
from tests.helpers.api import API_HOST, as_principal


@pytest.fixture
def api_time() -> FakeTimeAuthority:
    return FakeTimeAuthority()


@pytest.fixture
def api_completion() -> CompletionServiceStub:
    return CompletionServiceStub()


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    api_time: FakeTimeAuthority,
    api_completion: CompletionServiceStub,
) -> Iterator[TestClient]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("COMPLETION_API_KEY", raising=False)
    services.reset_all()
    services.set_time_authority(api_time)
    set_completion_service(api_completion)
    with TestClient(app) as test_client:
        yield test_client
    services.reset_all()


@pytest.fixture
def create_session(client: TestClient) -> Callable[..., dict[str, Any]]:
    def _create(title: str = "Sprint 42 retro") -> dict[str, Any]:
        response = client.post(
            "/v1/sessions", json={"title": title}, headers=as_principal(API_HOST)
        )
        assert response.status_code == 201
        return response.json()

    return _create


@pytest.fixture
def join(client: TestClient) -> Callable[[str, str], dict[str, Any]]:
    """Join as ``user-<name>`` and return the participant document."""

    def _join(session_id: str, name: str) -> dict[str, Any]:
        response = client.post(
            f"/v1/sessions/{session_id}/participants",
            json={"display_identity": name},
            headers=as_principal(f"user-{name}"),
        )
        assert response.status_code == 201
        return response.json()

    return _join
