"""Request helpers for API tests."""

from insightflow.api.dependencies.identity import PRINCIPAL_HEADER

API_HOST = "host-1"


def as_principal(principal_id: str) -> dict[str, str]:
    return {PRINCIPAL_HEADER: principal_id}
