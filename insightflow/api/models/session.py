"""Session, participant and voting API models."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from insightflow.api.models.common import DateTimeWithZ
from insightflow.domain.models.participant import Participant
from insightflow.domain.models.session import Session
from insightflow.domain.models.vote import TallyEntry, TallyResult, Vote


class CreateSessionRequest(BaseModel):
    title: str = Field(default="", max_length=200, description="Session title")


class VoteSettingsModel(BaseModel):
    max_votes_per_participant: int
    require_reason: bool
    voting_duration_seconds: int
    top_voted_count: int


class SessionResponse(BaseModel):
    """Current state of a session."""

    session_id: UUID
    host_id: str
    title: str
    status: str
    vote_settings: VoteSettingsModel | None = None
    created_at: DateTimeWithZ
    started_at: DateTimeWithZ | None = None
    ended_at: DateTimeWithZ | None = None
    voting_deadline: DateTimeWithZ | None = None
    tally_finalized_at: DateTimeWithZ | None = None
    ai_discussion_started_at: DateTimeWithZ | None = None
    archived_at: DateTimeWithZ | None = None
    analysis_status: str | None = None
    analysis_progress: int = 0
    analysis_type: str | None = None
    version: int

    @classmethod
    def from_domain(cls, session: Session) -> SessionResponse:
        return cls(
            session_id=session.session_id,
            host_id=session.host_id,
            title=session.title,
            status=session.status.value,
            vote_settings=(
                VoteSettingsModel(**session.vote_settings.to_dict())
                if session.vote_settings
                else None
            ),
            created_at=session.created_at,
            started_at=session.started_at,
            ended_at=session.ended_at,
            voting_deadline=session.voting_deadline,
            tally_finalized_at=session.tally_finalized_at,
            ai_discussion_started_at=session.ai_discussion_started_at,
            archived_at=session.archived_at,
            analysis_status=session.analysis_status.value if session.analysis_status else None,
            analysis_progress=session.analysis_progress,
            analysis_type=session.analysis_type,
            version=session.version,
        )


class StartVotingRequest(BaseModel):
    """Vote settings are validated by the domain so unknown keys are reported."""

    vote_settings: dict[str, Any] | None = Field(
        default=None,
        description="max_votes_per_participant, require_reason, voting_duration_seconds, top_voted_count",
    )


class JoinSessionRequest(BaseModel):
    display_identity: str = Field(..., min_length=1, max_length=100)


class ParticipantResponse(BaseModel):
    participant_id: UUID
    session_id: UUID
    display_identity: str
    joined_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, participant: Participant) -> ParticipantResponse:
        return cls(
            participant_id=participant.participant_id,
            session_id=participant.session_id,
            display_identity=participant.display_identity,
            joined_at=participant.joined_at,
        )


class ParticipantListResponse(BaseModel):
    participants: list[ParticipantResponse]


class CastVoteRequest(BaseModel):
    voter_participant_id: UUID
    voted_for_participant_id: UUID
    reason: str | None = Field(default=None, max_length=1000)


class VoteResponse(BaseModel):
    session_id: UUID
    voter_participant_id: UUID
    voted_for_participant_id: UUID
    reason: str | None = None
    cast_at: DateTimeWithZ
    remaining_votes: int

    @classmethod
    def from_domain(cls, vote: Vote, remaining_votes: int) -> VoteResponse:
        return cls(
            session_id=vote.session_id,
            voter_participant_id=vote.voter_participant_id,
            voted_for_participant_id=vote.voted_for_participant_id,
            reason=vote.reason,
            cast_at=vote.cast_at,
            remaining_votes=remaining_votes,
        )


class RemainingVotesResponse(BaseModel):
    participant_id: UUID
    remaining_votes: int


class TallyEntryModel(BaseModel):
    participant_id: UUID
    vote_count: int
    first_vote_at: DateTimeWithZ | None = None
    rank: int
    label: str | None = None

    @classmethod
    def from_domain(cls, entry: TallyEntry) -> TallyEntryModel:
        return cls(
            participant_id=entry.participant_id,
            vote_count=entry.vote_count,
            first_vote_at=entry.first_vote_at,
            rank=entry.rank,
            label=entry.label.value if entry.label else None,
        )


class TallyResponse(BaseModel):
    """Live counts while voting, the labelled ranking once finalized."""

    session_id: UUID
    finalized: bool
    finalized_at: DateTimeWithZ | None = None
    total_votes: int
    entries: list[TallyEntryModel]

    @classmethod
    def from_result(cls, result: TallyResult) -> TallyResponse:
        return cls(
            session_id=result.session_id,
            finalized=True,
            finalized_at=result.finalized_at,
            total_votes=result.total_votes,
            entries=[TallyEntryModel.from_domain(e) for e in result.entries],
        )

    @classmethod
    def from_live(cls, session_id: UUID, entries: list[TallyEntry]) -> TallyResponse:
        return cls(
            session_id=session_id,
            finalized=False,
            total_votes=sum(e.vote_count for e in entries),
            entries=[TallyEntryModel.from_domain(e) for e in entries],
        )
