"""Progress snapshot published to observers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from insightflow.domain.models.session import AnalysisStatus, Session, SessionStatus


@dataclass(frozen=True, eq=True)
class ProgressSnapshot:
    """Point-in-time view of a session's status and analysis progress.

    ``sequence`` is the session version at the time of the snapshot, so
    snapshots of one session are totally ordered.
    """

    session_id: UUID
    session_status: SessionStatus
    analysis_status: AnalysisStatus | None
    analysis_progress: int
    analysis_type: str | None
    run_id: UUID | None
    sequence: int
    failure_reason: str | None = None

    @classmethod
    def from_session(cls, session: Session) -> ProgressSnapshot:
        return cls(
            session_id=session.session_id,
            session_status=session.status,
            analysis_status=session.analysis_status,
            analysis_progress=session.analysis_progress,
            analysis_type=session.analysis_type,
            run_id=session.analysis_run_id,
            sequence=session.version,
            failure_reason=session.analysis_failure_reason,
        )

    def is_newer_than(self, other: ProgressSnapshot | None) -> bool:
        return other is None or self.sequence > other.sequence

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": str(self.session_id),
            "session_status": self.session_status.value,
            "analysis_status": self.analysis_status.value if self.analysis_status else None,
            "analysis_progress": self.analysis_progress,
            "analysis_type": self.analysis_type,
            "run_id": str(self.run_id) if self.run_id else None,
            "sequence": self.sequence,
            "failure_reason": self.failure_reason,
        }
