"""API middleware."""

from insightflow.api.middleware.logging_middleware import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
