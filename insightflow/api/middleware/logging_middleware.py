"""Request logging with correlation ids.

Every request runs under a correlation id, taken from ``X-Correlation-ID``
when the caller sends one. The id is echoed on the response and picked up
by ``SessionContext`` so service logs for the request share it.
"""

import time
from typing import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from insightflow.api.dependencies.identity import PRINCIPAL_HEADER
from insightflow.infrastructure.observability.correlation import (
    generate_correlation_id,
    set_correlation_id,
)

CORRELATION_HEADER = "X-Correlation-ID"

# liveness probes log at debug
QUIET_PATHS = frozenset({"/health"})


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER, "").strip()
        if not correlation_id:
            correlation_id = generate_correlation_id()
        set_correlation_id(correlation_id)

        log = structlog.get_logger("insightflow.http").bind(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
            principal_id=request.headers.get(PRINCIPAL_HEADER),
        )
        emit = log.debug if request.url.path in QUIET_PATHS else log.info
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception(
                "http_request_crashed",
                duration_ms=_elapsed_ms(started),
                error_type=type(exc).__name__,
            )
            raise

        emit("http_request", status_code=response.status_code, duration_ms=_elapsed_ms(started))
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
