"""Bootstrap wiring for progress notification.

Every publish goes to both the polling store (latest snapshot per
session) and the push notifier (streaming subscribers).
"""

from __future__ import annotations

from insightflow.application.ports.progress_notifier import ProgressNotifierProtocol
from insightflow.application.services.progress_notifier_service import (
    CompositeProgressNotifier,
    PollingProgressNotifier,
    PushProgressNotifier,
)
from insightflow.config.progress_config import ProgressConfig

_polling_notifier: PollingProgressNotifier | None = None
_push_notifier: PushProgressNotifier | None = None
_progress_notifier: ProgressNotifierProtocol | None = None
_progress_config: ProgressConfig | None = None


def get_progress_config() -> ProgressConfig:
    global _progress_config
    if _progress_config is None:
        _progress_config = ProgressConfig.from_environment()
    return _progress_config


def get_polling_notifier() -> PollingProgressNotifier:
    global _polling_notifier
    if _polling_notifier is None:
        _polling_notifier = PollingProgressNotifier()
    return _polling_notifier


def get_push_notifier() -> PushProgressNotifier:
    global _push_notifier
    if _push_notifier is None:
        _push_notifier = PushProgressNotifier()
    return _push_notifier


def get_progress_notifier() -> ProgressNotifierProtocol:
    global _progress_notifier
    if _progress_notifier is None:
        _progress_notifier = CompositeProgressNotifier(
            [get_polling_notifier(), get_push_notifier()]
        )
    return _progress_notifier


def set_progress_config(config: ProgressConfig) -> None:
    """Set custom progress config for testing."""
    global _progress_config
    _progress_config = config


def reset_progress() -> None:
    global _polling_notifier, _push_notifier, _progress_notifier, _progress_config
    _polling_notifier = None
    _push_notifier = None
    _progress_notifier = None
    _progress_config = None
