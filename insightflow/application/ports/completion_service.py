"""Completion service port.

The analysis pipeline and the discussion agents talk to a language model
through this port. Implementations classify failures: rate limits,
timeouts and 5xx are retryable; authentication and malformed requests
are fatal. Implementations never retry on their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ModelConfig:
    """Sampling parameters for one completion call."""

    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 2000
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be between 0.0 and 2.0, got {self.temperature}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")


class CompletionServiceProtocol(Protocol):
    """Protocol for text completion."""

    async def complete(
        self,
        prompt: str,
        model_config: ModelConfig,
        system_prompt: str | None = None,
    ) -> str:
        """Generate a completion.

        Args:
            prompt: User prompt.
            model_config: Sampling parameters.
            system_prompt: Optional system instructions.

        Returns:
            The generated text.

        Raises:
            CompletionServiceError: On any failure, with ``retryable`` set.
        """
        ...
