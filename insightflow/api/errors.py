"""Domain error to RFC 7807 problem document mapping.

Routes catch InsightflowError and re-raise the HTTPException built here,
``from None`` so the domain traceback does not leak into responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from insightflow.domain.errors import (
    ConcurrencyConflictError,
    DiscussionNotFoundError,
    ExternalServiceError,
    InvalidStateError,
    NotParticipantError,
    NotSessionHostError,
    ParticipantNotFoundError,
    SessionNotFoundError,
    ValidationError,
    VoteRejectedError,
)
from insightflow.domain.exceptions import InsightflowError

ERROR_TYPE_PREFIX = "urn:insightflow:error:"

# (error class, status, type slug, title); first match wins, subclasses first
_ERROR_TABLE: tuple[tuple[type[InsightflowError], int, str, str], ...] = (
    (ValidationError, 400, "validation", "Validation Failed"),
    (NotSessionHostError, 403, "not-session-host", "Host Only"),
    (NotParticipantError, 403, "not-participant", "Not A Participant"),
    (SessionNotFoundError, 404, "session-not-found", "Session Not Found"),
    (ParticipantNotFoundError, 404, "participant-not-found", "Participant Not Found"),
    (DiscussionNotFoundError, 404, "discussion-not-found", "Discussion Not Found"),
    (VoteRejectedError, 409, "vote-rejected", "Vote Rejected"),
    (ConcurrencyConflictError, 409, "concurrency-conflict", "Concurrent Modification"),
    (InvalidStateError, 409, "invalid-state", "Invalid Session State"),
)


def problem_for(exc: InsightflowError, request: Request) -> HTTPException:
    """Build the HTTPException for a domain error."""
    if isinstance(exc, ExternalServiceError):
        status = 503 if exc.retryable else 502
        detail: dict[str, Any] = {
            "type": f"{ERROR_TYPE_PREFIX}external-service",
            "title": "Completion Service Unavailable" if exc.retryable else "Completion Service Failed",
            "status": status,
            "detail": str(exc),
            "instance": str(request.url),
            "retryable": exc.retryable,
        }
        return HTTPException(status_code=status, detail=detail)

    for error_class, status, slug, title in _ERROR_TABLE:
        if isinstance(exc, error_class):
            return HTTPException(
                status_code=status,
                detail={
                    "type": f"{ERROR_TYPE_PREFIX}{slug}",
                    "title": title,
                    "status": status,
                    "detail": str(exc),
                    "instance": str(request.url),
                },
            )

    return HTTPException(
        status_code=500,
        detail={
            "type": f"{ERROR_TYPE_PREFIX}internal",
            "title": "Internal Error",
            "status": 500,
            "detail": str(exc),
            "instance": str(request.url),
        },
    )
