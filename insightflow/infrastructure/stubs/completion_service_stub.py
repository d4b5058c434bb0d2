"""Scripted completion service for development and tests.

Responses are taken from a queue in call order; an exception in the
queue is raised instead of returned. When the queue is empty a default
JSON document is returned.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass

from insightflow.application.ports.completion_service import (
    CompletionServiceProtocol,
    ModelConfig,
)

DEFAULT_COMPLETION = json.dumps({"summary": "stub analysis", "insights": []})


@dataclass(frozen=True)
class CompletionCall:
    prompt: str
    model_config: ModelConfig
    system_prompt: str | None


class CompletionServiceStub(CompletionServiceProtocol):
    def __init__(self, default_response: str = DEFAULT_COMPLETION) -> None:
        self._default_response = default_response
        self._scripted: deque[str | Exception] = deque()
        self.calls: list[CompletionCall] = []

    def queue(self, *responses: str | Exception) -> None:
        """Queue responses (or exceptions to raise) for the next calls."""
        self._scripted.extend(responses)

    async def complete(
        self,
        prompt: str,
        model_config: ModelConfig,
        system_prompt: str | None = None,
    ) -> str:
        self.calls.append(CompletionCall(prompt, model_config, system_prompt))
        if not self._scripted:
            return self._default_response
        response = self._scripted.popleft()
        if isinstance(response, Exception):
            raise response
        return response
