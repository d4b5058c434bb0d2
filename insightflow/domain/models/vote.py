"""Vote, tally entry and finalized tally models.

A tally is derived from Vote rows. Once voting ends the ranking is
frozen into a TallyResult so later phases read labels without
recomputing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class ParticipantLabel(Enum):
    """Post-vote role of a participant.

    NUGGET: Top-voted, interviewed by the AI journalist agent.
    LIGHTBULB: Everyone else, paired with the idea development agent.
    """

    NUGGET = "nugget"
    LIGHTBULB = "lightbulb"


@dataclass(frozen=True, eq=True)
class Vote:
    """A single vote from one participant for another.

    Unique on (session_id, voter_participant_id, voted_for_participant_id).
    """

    session_id: UUID
    voter_participant_id: UUID
    voted_for_participant_id: UUID
    cast_at: datetime
    reason: str | None = None

    @property
    def key(self) -> tuple[UUID, UUID, UUID]:
        return (self.session_id, self.voter_participant_id, self.voted_for_participant_id)


@dataclass(frozen=True, eq=True)
class TallyEntry:
    """Aggregated votes for one participant.

    Attributes:
        participant_id: Participant receiving the votes.
        vote_count: Votes received.
        first_vote_at: cast_at of the earliest vote received (None if no votes).
        rank: 1-based rank, unique within a tally.
        label: Nugget or lightbulb (None for a live, unfinalized tally).
    """

    participant_id: UUID
    vote_count: int
    first_vote_at: datetime | None
    rank: int
    label: ParticipantLabel | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "participant_id": str(self.participant_id),
            "vote_count": self.vote_count,
            "first_vote_at": self.first_vote_at.isoformat() if self.first_vote_at else None,
            "rank": self.rank,
            "label": self.label.value if self.label else None,
        }


@dataclass(frozen=True, eq=True)
class TallyResult:
    """Finalized, persisted ranking of a session's participants."""

    session_id: UUID
    entries: tuple[TallyEntry, ...]
    finalized_at: datetime
    total_votes: int = field(default=0)

    def __post_init__(self) -> None:
        counted = sum(entry.vote_count for entry in self.entries)
        if counted != self.total_votes:
            raise ValueError(
                f"Tally vote counts ({counted}) do not match total votes ({self.total_votes})"
            )

    def label_for(self, participant_id: UUID) -> ParticipantLabel | None:
        for entry in self.entries:
            if entry.participant_id == participant_id:
                return entry.label
        return None

    @property
    def nuggets(self) -> list[TallyEntry]:
        return [e for e in self.entries if e.label == ParticipantLabel.NUGGET]

    @property
    def lightbulbs(self) -> list[TallyEntry]:
        return [e for e in self.entries if e.label == ParticipantLabel.LIGHTBULB]
