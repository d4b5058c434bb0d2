"""Completion service configuration.

Environment Variables:
- COMPLETION_API_BASE_URL: OpenAI-compatible API root (default: https://api.openai.com/v1)
- COMPLETION_API_KEY: Bearer token (default: empty, stub completion is used)
- COMPLETION_MODEL: Model name (default: gpt-4o-mini)
- COMPLETION_TIMEOUT_SECONDS: Per-call timeout (default: 60, 1-600)
- COMPLETION_TEMPERATURE: Sampling temperature for agent replies (default: 0.7, 0-2)
- COMPLETION_ANALYSIS_TEMPERATURE: Sampling temperature for analyses (default: 0.3, 0-2)
- COMPLETION_MAX_TOKENS: Max tokens per completion (default: 2000)
"""

from __future__ import annotations

from dataclasses import dataclass

from insightflow.application.ports.completion_service import ModelConfig
from insightflow.config.env import _get_float_env, _get_int_env, _get_str_env

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 60.0
MIN_TIMEOUT_SECONDS = 1.0
MAX_TIMEOUT_SECONDS = 600.0
DEFAULT_TEMPERATURE = 0.7
DEFAULT_ANALYSIS_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 2000


@dataclass(frozen=True)
class CompletionConfig:
    """Connection and sampling settings for the completion service.

    Attributes:
        base_url: API root, without the trailing /chat/completions.
        api_key: Bearer token; empty means no real service is configured.
        model: Model name.
        timeout_seconds: Per-call timeout.
        temperature: Temperature for discussion agent replies.
        analysis_temperature: Temperature for analysis extraction.
        max_tokens: Max tokens per completion.
    """

    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    model: str = DEFAULT_MODEL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    temperature: float = DEFAULT_TEMPERATURE
    analysis_temperature: float = DEFAULT_ANALYSIS_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self) -> None:
        if not MIN_TIMEOUT_SECONDS <= self.timeout_seconds <= MAX_TIMEOUT_SECONDS:
            raise ValueError(
                f"timeout_seconds must be between {MIN_TIMEOUT_SECONDS} and "
                f"{MAX_TIMEOUT_SECONDS}, got {self.timeout_seconds}"
            )
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        # ModelConfig validates temperature and max_tokens
        self.agent_model_config()
        self.analysis_model_config()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def agent_model_config(self) -> ModelConfig:
        return ModelConfig(
            model=self.model, temperature=self.temperature, max_tokens=self.max_tokens
        )

    def analysis_model_config(self) -> ModelConfig:
        return ModelConfig(
            model=self.model, temperature=self.analysis_temperature, max_tokens=self.max_tokens
        )

    @classmethod
    def from_environment(cls) -> CompletionConfig:
        return cls(
            base_url=_get_str_env("COMPLETION_API_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            api_key=_get_str_env("COMPLETION_API_KEY", ""),
            model=_get_str_env("COMPLETION_MODEL", DEFAULT_MODEL),
            timeout_seconds=max(
                MIN_TIMEOUT_SECONDS,
                min(
                    _get_float_env("COMPLETION_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
                    MAX_TIMEOUT_SECONDS,
                ),
            ),
            temperature=max(0.0, min(_get_float_env("COMPLETION_TEMPERATURE", DEFAULT_TEMPERATURE), 2.0)),
            analysis_temperature=max(
                0.0,
                min(_get_float_env("COMPLETION_ANALYSIS_TEMPERATURE", DEFAULT_ANALYSIS_TEMPERATURE), 2.0),
            ),
            max_tokens=max(1, _get_int_env("COMPLETION_MAX_TOKENS", DEFAULT_MAX_TOKENS)),
        )
