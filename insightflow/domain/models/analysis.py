"""Insight analysis models.

Analyses come in three types. Each type selects which discussions it
reads, shapes its extraction prompt with a set of rule toggles, and
produces per-discussion documents (DiscussionAnalysis) that are then
synthesized into one GlobalAnalysis.

Re-running a type supersedes its prior active rows rather than
appending, so at most one active row exists per (discussion, type) and
per (session, type).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from uuid6 import uuid7

from insightflow.domain.errors.analysis import InvalidAnalysisTypeError
from insightflow.domain.errors.session import ValidationError
from insightflow.domain.models.discussion import AgentType
from insightflow.domain.models.session import AnalysisStatus


class AnalysisType(Enum):
    NUGGETS = "nuggets"
    LIGHTBULBS = "lightbulbs"
    OVERALL = "overall"

    @classmethod
    def parse(cls, value: str | AnalysisType) -> AnalysisType:
        """Parse a raw analysis type.

        Raises:
            InvalidAnalysisTypeError: If the value is not a known type.
        """
        if isinstance(value, AnalysisType):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidAnalysisTypeError(str(value)) from None

    def includes(self, agent_type: AgentType) -> bool:
        """Whether discussions held with this agent belong to the population."""
        if self == AnalysisType.NUGGETS:
            return agent_type == AgentType.NUGGET
        if self == AnalysisType.LIGHTBULBS:
            return agent_type == AgentType.LIGHTBULB
        return True


class AnalysisRecordStatus(Enum):
    ACTIVE = "active"
    SUPERSEDED = "superseded"


def _parse_toggles(cls: type, payload: Mapping[str, Any] | None) -> dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValidationError(f"analysis rules must be a mapping, got {type(payload).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(payload) - known
    if unknown:
        raise ValidationError(f"unknown analysis rules {sorted(unknown)}")
    values: dict[str, Any] = {}
    for key, value in payload.items():
        if key == "custom_rules":
            if not isinstance(value, str):
                raise ValidationError("analysis rules custom_rules must be a string")
        elif not isinstance(value, bool):
            raise ValidationError(f"analysis rule {key} must be a boolean")
        values[key] = value
    return values


@dataclass(frozen=True)
class NuggetsRules:
    focus_on_key_insights: bool = True
    discover_patterns: bool = True
    quote_relevant_examples: bool = True
    custom_rules: str = ""


@dataclass(frozen=True)
class LightbulbsRules:
    capture_innovative_thinking: bool = True
    identify_cross_pollination: bool = True
    evaluate_practical_applications: bool = True
    custom_rules: str = ""


@dataclass(frozen=True)
class OverallRules:
    synthesize_all_insights: bool = True
    extract_actionable_recommendations: bool = True
    provide_session_summary: bool = True
    custom_rules: str = ""


@dataclass(frozen=True)
class AnalysisRules:
    """Prompt-shaping toggles for each analysis type."""

    nuggets: NuggetsRules = field(default_factory=NuggetsRules)
    lightbulbs: LightbulbsRules = field(default_factory=LightbulbsRules)
    overall: OverallRules = field(default_factory=OverallRules)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> AnalysisRules:
        """Build rules from a request payload; missing keys keep their defaults.

        Raises:
            ValidationError: If the payload has unknown keys or wrong types.
        """
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise ValidationError(f"analysis rules must be a mapping, got {type(payload).__name__}")
        unknown = set(payload) - {t.value for t in AnalysisType}
        if unknown:
            raise ValidationError(f"unknown analysis rule groups {sorted(unknown)}")
        return cls(
            nuggets=NuggetsRules(**_parse_toggles(NuggetsRules, payload.get("nuggets"))),
            lightbulbs=LightbulbsRules(**_parse_toggles(LightbulbsRules, payload.get("lightbulbs"))),
            overall=OverallRules(**_parse_toggles(OverallRules, payload.get("overall"))),
        )

    def for_type(self, analysis_type: AnalysisType) -> NuggetsRules | LightbulbsRules | OverallRules:
        if analysis_type == AnalysisType.NUGGETS:
            return self.nuggets
        if analysis_type == AnalysisType.LIGHTBULBS:
            return self.lightbulbs
        return self.overall


@dataclass(frozen=True, eq=True)
class DiscussionAnalysis:
    """Extraction result for one discussion."""

    analysis_id: UUID
    session_id: UUID
    discussion_id: UUID
    analysis_type: AnalysisType
    content: dict[str, Any]
    run_id: UUID
    created_at: datetime
    status: AnalysisRecordStatus = AnalysisRecordStatus.ACTIVE

    @classmethod
    def create(
        cls,
        session_id: UUID,
        discussion_id: UUID,
        analysis_type: AnalysisType,
        content: dict[str, Any],
        run_id: UUID,
        created_at: datetime,
    ) -> DiscussionAnalysis:
        return cls(
            analysis_id=uuid7(),
            session_id=session_id,
            discussion_id=discussion_id,
            analysis_type=analysis_type,
            content=content,
            run_id=run_id,
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.analysis_id),
            "session_id": str(self.session_id),
            "discussion_id": str(self.discussion_id),
            "analysis_type": self.analysis_type.value,
            "content": self.content,
            "status": self.status.value,
            "run_id": str(self.run_id),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True, eq=True)
class GlobalAnalysis:
    """Synthesis of every active discussion analysis of one type."""

    analysis_id: UUID
    session_id: UUID
    analysis_type: AnalysisType
    content: dict[str, Any]
    run_id: UUID
    source_count: int
    created_at: datetime
    status: AnalysisRecordStatus = AnalysisRecordStatus.ACTIVE

    def __post_init__(self) -> None:
        if self.source_count < 1:
            raise ValueError("A global analysis needs at least one source analysis")

    @classmethod
    def create(
        cls,
        session_id: UUID,
        analysis_type: AnalysisType,
        content: dict[str, Any],
        run_id: UUID,
        source_count: int,
        created_at: datetime,
    ) -> GlobalAnalysis:
        return cls(
            analysis_id=uuid7(),
            session_id=session_id,
            analysis_type=analysis_type,
            content=content,
            run_id=run_id,
            source_count=source_count,
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.analysis_id),
            "session_id": str(self.session_id),
            "analysis_type": self.analysis_type.value,
            "content": self.content,
            "status": self.status.value,
            "run_id": str(self.run_id),
            "source_count": self.source_count,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AnalysisRunResult:
    """Outcome of one pipeline run.

    Attributes:
        run_id: Run identifier.
        session_id: Session analysed.
        analysis_type: Type analysed.
        status: COMPLETED or FAILED.
        total_discussions: Discussions with messages in the population.
        succeeded: Discussions analysed successfully.
        failed: Discussions whose analysis failed.
        skipped: Discussions without messages.
        failure_reason: Why the run failed (None on success).
        retryable: Whether re-running the whole job may succeed.
    """

    run_id: UUID
    session_id: UUID
    analysis_type: AnalysisType
    status: AnalysisStatus
    total_discussions: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    failure_reason: str | None = None
    retryable: bool = False

    @property
    def is_success(self) -> bool:
        return self.status == AnalysisStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": str(self.run_id),
            "session_id": str(self.session_id),
            "analysis_type": self.analysis_type.value,
            "status": self.status.value,
            "total_discussions": self.total_discussions,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "failure_reason": self.failure_reason,
            "retryable": self.retryable,
        }
