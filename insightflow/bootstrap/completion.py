"""Bootstrap wiring for the completion service.

Uses the OpenAI-compatible HTTP client when COMPLETION_API_KEY is set,
otherwise the canned-response stub.
"""

from __future__ import annotations

from structlog import get_logger

from insightflow.application.ports.completion_service import CompletionServiceProtocol
from insightflow.config.completion_config import CompletionConfig
from insightflow.infrastructure.adapters.completion import OpenAICompletionClient
from insightflow.infrastructure.stubs.completion_service_stub import CompletionServiceStub

logger = get_logger()

_completion_config: CompletionConfig | None = None
_completion_service: CompletionServiceProtocol | None = None


def get_completion_config() -> CompletionConfig:
    global _completion_config
    if _completion_config is None:
        _completion_config = CompletionConfig.from_environment()
    return _completion_config


def get_completion_service() -> CompletionServiceProtocol:
    """Get completion service instance."""
    global _completion_service
    if _completion_service is None:
        config = get_completion_config()
        if config.is_configured:
            _completion_service = OpenAICompletionClient(config)
            logger.info(
                "completion_service_initialized",
                service_type="OpenAICompletionClient",
                base_url=config.base_url,
                model=config.model,
            )
        else:
            logger.warning(
                "completion_service_initialized",
                service_type="CompletionServiceStub",
                message="COMPLETION_API_KEY not set - using canned responses",
            )
            _completion_service = CompletionServiceStub()
    return _completion_service


def set_completion_service(service: CompletionServiceProtocol) -> None:
    """Set custom completion service for testing."""
    global _completion_service
    _completion_service = service


async def close_completion_service() -> None:
    global _completion_service
    if isinstance(_completion_service, OpenAICompletionClient):
        await _completion_service.aclose()
    _completion_service = None


def reset_completion() -> None:
    global _completion_config, _completion_service
    _completion_config = None
    _completion_service = None
