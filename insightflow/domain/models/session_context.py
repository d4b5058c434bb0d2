"""Caller context passed into every session operation."""

from __future__ import annotations

from dataclasses import dataclass, field

from uuid6 import uuid7

SYSTEM_PRINCIPAL_ID = "system"


@dataclass(frozen=True)
class SessionContext:
    """Identity and tracing for one call.

    Attributes:
        principal_id: Caller identity, supplied by the identity collaborator.
        correlation_id: Request correlation ID for log tracing.
        is_system: True for timer-driven calls that bypass host checks.
    """

    principal_id: str
    correlation_id: str = field(default_factory=lambda: str(uuid7()))
    is_system: bool = False

    def __post_init__(self) -> None:
        if not self.principal_id:
            raise ValueError("principal_id is required")

    @classmethod
    def system(cls, correlation_id: str | None = None) -> SessionContext:
        """Context for timer-driven transitions."""
        if correlation_id is None:
            return cls(principal_id=SYSTEM_PRINCIPAL_ID, is_system=True)
        return cls(principal_id=SYSTEM_PRINCIPAL_ID, correlation_id=correlation_id, is_system=True)
