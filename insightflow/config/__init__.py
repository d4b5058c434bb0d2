"""Configuration module for insightflow.

Available Configurations:
- VoteSettingsDefaults: Defaults for omitted vote settings
- CompletionConfig: Completion service connection and sampling
- ProgressConfig: Poll interval hint and SSE keepalive
"""

from insightflow.config.completion_config import CompletionConfig
from insightflow.config.progress_config import ProgressConfig
from insightflow.config.session_config import VoteSettingsDefaults

__all__ = [
    "CompletionConfig",
    "ProgressConfig",
    "VoteSettingsDefaults",
]
