"""Completion service adapters."""

from insightflow.infrastructure.adapters.completion.openai_completion_client import (
    OpenAICompletionClient,
    classify_response_error,
)

__all__: list[str] = ["OpenAICompletionClient", "classify_response_error"]
