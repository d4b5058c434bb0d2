"""OpenAI-compatible chat completions adapter.

POSTs to ``{base_url}/chat/completions`` over httpx and maps failures to
CompletionServiceError:

| Condition                  | code             | retryable |
|----------------------------|------------------|-----------|
| 401 / 403                  | INVALID_API_KEY  | no        |
| 400 / 404 / 422            | INVALID_REQUEST  | no        |
| 429                        | RATE_LIMIT       | yes       |
| 5xx                        | SERVER_ERROR     | yes       |
| timeout                    | TIMEOUT          | yes       |
| connection failure         | NETWORK_ERROR    | yes       |
| unreadable body            | INVALID_RESPONSE | yes       |
| empty choice content       | NO_RESPONSE      | yes       |

The adapter never retries; retry policy belongs to the caller of a whole
analysis run.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from insightflow.application.ports.completion_service import (
    CompletionServiceProtocol,
    ModelConfig,
)
from insightflow.config.completion_config import CompletionConfig
from insightflow.domain.errors.analysis import CompletionServiceError

log = structlog.get_logger()

_FATAL_STATUS_CODES: dict[int, str] = {
    400: "INVALID_REQUEST",
    401: "INVALID_API_KEY",
    403: "INVALID_API_KEY",
    404: "INVALID_REQUEST",
    422: "INVALID_REQUEST",
}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text[:200]


def classify_response_error(response: httpx.Response) -> CompletionServiceError:
    """Map a non-2xx response to a CompletionServiceError."""
    status = response.status_code
    detail = _error_message(response)
    if status in _FATAL_STATUS_CODES:
        return CompletionServiceError(
            f"Completion request rejected ({status}): {detail}",
            code=_FATAL_STATUS_CODES[status],
            retryable=False,
            status_code=status,
        )
    if status == 429:
        return CompletionServiceError(
            f"Completion rate limited: {detail}",
            code="RATE_LIMIT",
            retryable=True,
            status_code=status,
        )
    if status >= 500:
        return CompletionServiceError(
            f"Completion service error ({status}): {detail}",
            code="SERVER_ERROR",
            retryable=True,
            status_code=status,
        )
    return CompletionServiceError(
        f"Unexpected completion response ({status}): {detail}",
        code="INVALID_REQUEST",
        retryable=False,
        status_code=status,
    )


class OpenAICompletionClient(CompletionServiceProtocol):
    """Completion service backed by an OpenAI-compatible HTTP API.

    Args:
        config: Connection settings.
        client: Optional shared httpx.AsyncClient (tests pass one built on
            httpx.MockTransport). When omitted the adapter owns its client.
    """

    def __init__(
        self,
        config: CompletionConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @property
    def endpoint(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/chat/completions"

    def _payload(
        self,
        prompt: str,
        model_config: ModelConfig,
        system_prompt: str | None,
    ) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": model_config.model,
            "messages": messages,
            "temperature": model_config.temperature,
            "max_tokens": model_config.max_tokens,
            "presence_penalty": model_config.presence_penalty,
            "frequency_penalty": model_config.frequency_penalty,
        }

    async def complete(
        self,
        prompt: str,
        model_config: ModelConfig,
        system_prompt: str | None = None,
    ) -> str:
        bound = log.bind(model=model_config.model, prompt_chars=len(prompt))
        try:
            response = await self._client.post(
                self.endpoint,
                json=self._payload(prompt, model_config, system_prompt),
                headers={"Authorization": f"Bearer {self._config.api_key}"},
                timeout=self._config.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            bound.warning("completion_timeout", timeout_seconds=self._config.timeout_seconds)
            raise CompletionServiceError(
                f"Completion timed out after {self._config.timeout_seconds}s",
                code="TIMEOUT",
                retryable=True,
            ) from exc
        except httpx.TransportError as exc:
            bound.warning("completion_network_error", error=str(exc))
            raise CompletionServiceError(
                f"Completion service unreachable: {exc}",
                code="NETWORK_ERROR",
                retryable=True,
            ) from exc

        if response.status_code >= 300:
            error = classify_response_error(response)
            bound.warning(
                "completion_failed",
                status_code=response.status_code,
                code=error.code,
                retryable=error.retryable,
            )
            raise error

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            bound.warning("completion_unreadable", status_code=response.status_code)
            raise CompletionServiceError(
                "Completion response has no choices[0].message.content",
                code="INVALID_RESPONSE",
                retryable=True,
                status_code=response.status_code,
            ) from exc

        if not isinstance(content, str) or not content.strip():
            bound.warning("completion_empty")
            raise CompletionServiceError(
                "Completion returned no content",
                code="NO_RESPONSE",
                retryable=True,
                status_code=response.status_code,
            )

        bound.debug("completion_succeeded", completion_chars=len(content))
        return content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
