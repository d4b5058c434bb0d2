"""Workshop session aggregate.

A session moves through a strictly linear lifecycle:
DRAFT -> ACTIVE -> ENDED -> AI_DISCUSSION -> ARCHIVED

The session row also carries the analysis job record (status, progress,
run id, failure reason) so a run can be inspected independently of the
caller that started it. Every mutation returns a new instance with
``version`` incremented; repositories use the version and the expected
prior status for conditional writes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from uuid6 import uuid7

from insightflow.domain.errors.session import (
    InvalidStateError,
    SessionArchivedError,
    VoteSettingsValidationError,
)


class SessionStatus(Enum):
    """Lifecycle status of a session.

    States:
        DRAFT: Created, participants may join, voting not started
        ACTIVE: Voting open until the deadline
        ENDED: Voting closed, tally finalized
        AI_DISCUSSION: Participants talk to their nugget/lightbulb agent
        ARCHIVED: Terminal, no further mutation
    """

    DRAFT = "draft"
    ACTIVE = "active"
    ENDED = "ended"
    AI_DISCUSSION = "ai_discussion"
    ARCHIVED = "archived"

    def is_terminal(self) -> bool:
        """Check if this is the terminal ARCHIVED status."""
        return self == SessionStatus.ARCHIVED

    def next_status(self) -> SessionStatus | None:
        """Get the only status this one may move to (None if terminal)."""
        return STATUS_TRANSITION_MATRIX.get(self)


# Linear lifecycle, no skips, no backward moves
STATUS_TRANSITION_MATRIX: dict[SessionStatus, SessionStatus | None] = {
    SessionStatus.DRAFT: SessionStatus.ACTIVE,
    SessionStatus.ACTIVE: SessionStatus.ENDED,
    SessionStatus.ENDED: SessionStatus.AI_DISCUSSION,
    SessionStatus.AI_DISCUSSION: SessionStatus.ARCHIVED,
    SessionStatus.ARCHIVED: None,
}


class AnalysisStatus(Enum):
    """Status of the session's current analysis run.

    QUEUED -> PROCESSING -> COMPLETED | FAILED. COMPLETED and FAILED are
    terminal for a run; a new run may be claimed from any non-processing
    status.
    """

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


# Vote settings defaults and bounds
DEFAULT_MAX_VOTES_PER_PARTICIPANT = 3
DEFAULT_REQUIRE_REASON = False
DEFAULT_VOTING_DURATION_SECONDS = 1200
DEFAULT_TOP_VOTED_COUNT = 3

MAX_VOTES_PER_PARTICIPANT_CEILING = 50
MIN_VOTING_DURATION_SECONDS = 30
MAX_VOTING_DURATION_SECONDS = 86_400
TOP_VOTED_COUNT_CEILING = 1_000


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def _require_int(payload: Mapping[str, Any], key: str, default: int) -> int:
    value = payload.get(key, default)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise VoteSettingsValidationError(
            f"must be an integer, got {type(value).__name__}", field=key
        )
    return value


@dataclass(frozen=True, eq=True)
class VoteSettings:
    """Voting rules fixed when voting starts.

    Attributes:
        max_votes_per_participant: Votes each participant may cast.
        require_reason: Whether every vote needs a non-empty reason.
        voting_duration_seconds: Length of the voting window.
        top_voted_count: How many top-ranked participants become nuggets.
    """

    max_votes_per_participant: int = DEFAULT_MAX_VOTES_PER_PARTICIPANT
    require_reason: bool = DEFAULT_REQUIRE_REASON
    voting_duration_seconds: int = DEFAULT_VOTING_DURATION_SECONDS
    top_voted_count: int = DEFAULT_TOP_VOTED_COUNT

    def __post_init__(self) -> None:
        """Validate vote settings bounds.

        Raises:
            VoteSettingsValidationError: If any value is out of range.
        """
        if not 1 <= self.max_votes_per_participant <= MAX_VOTES_PER_PARTICIPANT_CEILING:
            raise VoteSettingsValidationError(
                f"must be between 1 and {MAX_VOTES_PER_PARTICIPANT_CEILING}, "
                f"got {self.max_votes_per_participant}",
                field="max_votes_per_participant",
            )
        if not MIN_VOTING_DURATION_SECONDS <= self.voting_duration_seconds <= MAX_VOTING_DURATION_SECONDS:
            raise VoteSettingsValidationError(
                f"must be between {MIN_VOTING_DURATION_SECONDS} and "
                f"{MAX_VOTING_DURATION_SECONDS}, got {self.voting_duration_seconds}",
                field="voting_duration_seconds",
            )
        if not 1 <= self.top_voted_count <= TOP_VOTED_COUNT_CEILING:
            raise VoteSettingsValidationError(
                f"must be between 1 and {TOP_VOTED_COUNT_CEILING}, got {self.top_voted_count}",
                field="top_voted_count",
            )

    @property
    def voting_duration(self) -> timedelta:
        return timedelta(seconds=self.voting_duration_seconds)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any] | None,
        defaults: VoteSettings | None = None,
    ) -> VoteSettings:
        """Build settings from a request payload, filling gaps with defaults.

        An omitted payload (None) means "use the defaults". Any other value
        must be a mapping whose present keys carry values of the right type.

        Args:
            payload: Raw vote settings mapping, or None.
            defaults: Defaults to fall back on (module defaults if None).

        Returns:
            Validated VoteSettings.

        Raises:
            VoteSettingsValidationError: If the payload is not a mapping or
                holds values of the wrong type or out of range.
        """
        base = defaults or cls()
        if payload is None:
            return base
        if not isinstance(payload, Mapping):
            raise VoteSettingsValidationError(
                f"expected a mapping, got {type(payload).__name__}"
            )

        unknown = set(payload) - {
            "max_votes_per_participant",
            "require_reason",
            "voting_duration_seconds",
            "top_voted_count",
        }
        if unknown:
            raise VoteSettingsValidationError(f"unknown keys {sorted(unknown)}")

        require_reason = payload.get("require_reason", base.require_reason)
        if not isinstance(require_reason, bool):
            raise VoteSettingsValidationError(
                f"must be a boolean, got {type(require_reason).__name__}",
                field="require_reason",
            )

        return cls(
            max_votes_per_participant=_require_int(
                payload, "max_votes_per_participant", base.max_votes_per_participant
            ),
            require_reason=require_reason,
            voting_duration_seconds=_require_int(
                payload, "voting_duration_seconds", base.voting_duration_seconds
            ),
            top_voted_count=_require_int(payload, "top_voted_count", base.top_voted_count),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_votes_per_participant": self.max_votes_per_participant,
            "require_reason": self.require_reason,
            "voting_duration_seconds": self.voting_duration_seconds,
            "top_voted_count": self.top_voted_count,
        }


@dataclass(frozen=True, eq=True)
class Session:
    """A host-owned workshop session.

    Attributes:
        session_id: UUIDv7 identifier.
        host_id: Principal that created and owns the session.
        title: Display title.
        status: Current lifecycle status.
        vote_settings: Voting rules (None until voting starts).
        created_at: Creation timestamp (UTC).
        started_at: When voting opened.
        ended_at: When voting closed.
        tally_finalized_at: When the vote tally was finalized.
        ai_discussion_started_at: When the AI discussion phase opened.
        archived_at: When the session was archived.
        analysis_status: Status of the current analysis run (None if never queued).
        analysis_progress: Progress of the current run, 0-100.
        analysis_type: Analysis type of the current run.
        analysis_run_id: Identifier of the current run.
        analysis_failure_reason: Why the current run failed, if it did.
        version: Optimistic locking counter, incremented on every change.
    """

    session_id: UUID
    host_id: str
    title: str = ""
    status: SessionStatus = field(default=SessionStatus.DRAFT)
    vote_settings: VoteSettings | None = field(default=None)
    created_at: datetime = field(default_factory=_utc_now)
    started_at: datetime | None = field(default=None)
    ended_at: datetime | None = field(default=None)
    tally_finalized_at: datetime | None = field(default=None)
    ai_discussion_started_at: datetime | None = field(default=None)
    archived_at: datetime | None = field(default=None)
    analysis_status: AnalysisStatus | None = field(default=None)
    analysis_progress: int = field(default=0)
    analysis_type: str | None = field(default=None)
    analysis_run_id: UUID | None = field(default=None)
    analysis_failure_reason: str | None = field(default=None)
    version: int = field(default=1)

    def __post_init__(self) -> None:
        if not 0 <= self.analysis_progress <= 100:
            raise ValueError(
                f"analysis_progress must be between 0 and 100, got {self.analysis_progress}"
            )
        if self.status != SessionStatus.DRAFT and self.vote_settings is None:
            raise ValueError("vote_settings is required once voting has started")

    @classmethod
    def create(
        cls,
        host_id: str,
        title: str = "",
        session_id: UUID | None = None,
        created_at: datetime | None = None,
    ) -> Session:
        """Create a new draft session.

        Args:
            host_id: Principal creating the session.
            title: Display title.
            session_id: Optional explicit ID (UUIDv7 generated otherwise).
            created_at: Optional creation time (now otherwise).

        Returns:
            New Session in DRAFT status.
        """
        if not host_id:
            raise ValueError("host_id is required")
        return cls(
            session_id=session_id or uuid7(),
            host_id=host_id,
            title=title,
            created_at=created_at or _utc_now(),
        )

    @property
    def voting_deadline(self) -> datetime | None:
        """When voting closes automatically (None until voting starts)."""
        if self.started_at is None or self.vote_settings is None:
            return None
        return self.started_at + self.vote_settings.voting_duration

    def is_voting_deadline_passed(self, now: datetime) -> bool:
        deadline = self.voting_deadline
        return deadline is not None and now >= deadline

    @property
    def is_tally_finalized(self) -> bool:
        return self.tally_finalized_at is not None

    def _transition(self, target: SessionStatus, operation: str, **changes: Any) -> Session:
        if self.status.is_terminal():
            raise SessionArchivedError(session_id=self.session_id, operation=operation)
        if self.status.next_status() != target:
            raise InvalidStateError(
                session_id=self.session_id,
                current_status=self.status,
                operation=operation,
                allowed_statuses=[s for s, nxt in STATUS_TRANSITION_MATRIX.items() if nxt == target],
            )
        return replace(self, status=target, version=self.version + 1, **changes)

    def _bump(self, **changes: Any) -> Session:
        return replace(self, version=self.version + 1, **changes)

    def with_voting_started(self, vote_settings: VoteSettings, now: datetime) -> Session:
        """DRAFT -> ACTIVE, persisting settings and stamping started_at."""
        return self._transition(
            SessionStatus.ACTIVE,
            "start voting",
            vote_settings=vote_settings,
            started_at=now,
        )

    def with_voting_ended(self, now: datetime) -> Session:
        """ACTIVE -> ENDED, stamping ended_at."""
        return self._transition(SessionStatus.ENDED, "end voting", ended_at=now)

    def with_tally_finalized(self, now: datetime) -> Session:
        """Record tally finalization (status must be ENDED)."""
        if self.status != SessionStatus.ENDED:
            raise InvalidStateError(
                session_id=self.session_id,
                current_status=self.status,
                operation="finalize tally",
                allowed_statuses=[SessionStatus.ENDED],
            )
        return self._bump(tally_finalized_at=now)

    def with_ai_discussion_started(self, now: datetime) -> Session:
        """ENDED -> AI_DISCUSSION; the analysis job is queued."""
        return self._transition(
            SessionStatus.AI_DISCUSSION,
            "start AI discussion",
            ai_discussion_started_at=now,
            analysis_status=AnalysisStatus.QUEUED,
            analysis_progress=0,
            analysis_failure_reason=None,
        )

    def with_archived(self, now: datetime) -> Session:
        """AI_DISCUSSION -> ARCHIVED (terminal)."""
        return self._transition(SessionStatus.ARCHIVED, "archive", archived_at=now)

    def with_analysis_queued(self, analysis_type: str) -> Session:
        return self._bump(
            analysis_status=AnalysisStatus.QUEUED,
            analysis_type=analysis_type,
            analysis_failure_reason=None,
        )

    def with_analysis_claimed(self, run_id: UUID, analysis_type: str) -> Session:
        """Start a new run: PROCESSING with progress reset to 0."""
        return self._bump(
            analysis_status=AnalysisStatus.PROCESSING,
            analysis_progress=0,
            analysis_type=analysis_type,
            analysis_run_id=run_id,
            analysis_failure_reason=None,
        )

    def with_analysis_progress(self, progress: int) -> Session:
        return self._bump(analysis_progress=progress)

    def with_analysis_completed(self) -> Session:
        return self._bump(analysis_status=AnalysisStatus.COMPLETED, analysis_progress=100)

    def with_analysis_failed(self, reason: str) -> Session:
        return self._bump(
            analysis_status=AnalysisStatus.FAILED,
            analysis_failure_reason=reason,
        )
