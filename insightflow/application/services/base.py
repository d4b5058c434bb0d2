"""Shared logging for application services."""

import structlog

from insightflow.infrastructure.observability.correlation import get_correlation_id


class LoggingMixin:
    """Gives a service a structlog logger tagged with its class and component.

    Call ``_init_logger`` at the end of ``__init__``; each public operation
    then takes ``self._log_operation(name, **ids)`` which also carries the
    correlation id of the request or timer that triggered it.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "session") -> None:
        self._log = structlog.get_logger("insightflow").bind(
            service=type(self).__name__,
            component=component,
        )

    def _log_operation(self, operation: str, **context: object) -> structlog.BoundLogger:
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )
