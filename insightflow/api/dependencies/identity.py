"""Caller identity dependency.

The identity collaborator in front of this service authenticates the
caller and forwards the principal id in the X-Principal-Id header.
"""

from fastapi import Header, HTTPException, Request

from insightflow.domain.models.session_context import SYSTEM_PRINCIPAL_ID, SessionContext
from insightflow.infrastructure.observability.correlation import get_correlation_id

PRINCIPAL_HEADER = "X-Principal-Id"


async def get_session_context(
    request: Request,
    x_principal_id: str | None = Header(default=None, alias=PRINCIPAL_HEADER),
) -> SessionContext:
    """Build the SessionContext for the current request.

    Raises:
        HTTPException: 401 if the header is missing, 403 if the caller
            claims the reserved system principal.
    """
    principal_id = (x_principal_id or "").strip()
    if not principal_id:
        raise HTTPException(
            status_code=401,
            detail={
                "type": "urn:insightflow:error:unauthenticated",
                "title": "Missing Principal",
                "status": 401,
                "detail": f"{PRINCIPAL_HEADER} header is required",
                "instance": str(request.url),
            },
        )
    if principal_id == SYSTEM_PRINCIPAL_ID:
        raise HTTPException(
            status_code=403,
            detail={
                "type": "urn:insightflow:error:reserved-principal",
                "title": "Reserved Principal",
                "status": 403,
                "detail": f"Principal {SYSTEM_PRINCIPAL_ID!r} is reserved",
                "instance": str(request.url),
            },
        )

    correlation_id = get_correlation_id()
    if correlation_id:
        return SessionContext(principal_id=principal_id, correlation_id=correlation_id)
    return SessionContext(principal_id=principal_id)
