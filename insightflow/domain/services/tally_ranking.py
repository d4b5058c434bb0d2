"""Tally ranking domain service.

Pure functions that turn Vote rows into a ranked, labelled tally. The
ranking is deterministic:

1. vote_count descending
2. earliest first-received vote (cast_at) ascending
3. participants with no votes last, in join order (joined_at, then id)

The first ``top_voted_count`` ranked participants are nuggets, the rest
lightbulbs. Soft-deleted participants are excluded, and so are votes
involving them.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from insightflow.domain.models.participant import Participant
from insightflow.domain.models.vote import ParticipantLabel, TallyEntry, Vote


def _sort_key(
    participant: Participant,
    counts: dict[UUID, int],
    first_votes: dict[UUID, datetime],
) -> tuple:
    count = counts.get(participant.participant_id, 0)
    first = first_votes.get(participant.participant_id)
    # Zero-vote participants share (0, 1, ...) so they fall to join order
    return (
        -count,
        0 if first is not None else 1,
        first or participant.joined_at,
        participant.joined_at,
        str(participant.participant_id),
    )


def count_votes(
    participants: Iterable[Participant],
    votes: Iterable[Vote],
) -> tuple[list[Participant], dict[UUID, int], dict[UUID, datetime]]:
    """Group votes by target over live participants.

    Returns:
        (live participants, vote counts by target, first vote time by target)
    """
    live = [p for p in participants if p.is_live]
    live_ids = {p.participant_id for p in live}

    counts: dict[UUID, int] = {}
    first_votes: dict[UUID, datetime] = {}
    for vote in votes:
        target = vote.voted_for_participant_id
        if target not in live_ids or vote.voter_participant_id not in live_ids:
            continue
        counts[target] = counts.get(target, 0) + 1
        if target not in first_votes or vote.cast_at < first_votes[target]:
            first_votes[target] = vote.cast_at
    return live, counts, first_votes


def rank_participants(
    participants: Iterable[Participant],
    votes: Iterable[Vote],
    top_voted_count: int | None = None,
) -> list[TallyEntry]:
    """Rank live participants by votes received.

    Args:
        participants: Session participants (deleted ones are ignored).
        votes: Session votes.
        top_voted_count: If given, label the first N entries as nuggets
            and the rest as lightbulbs; otherwise entries are unlabelled.

    Returns:
        TallyEntry list ordered by rank (1-based).
    """
    live, counts, first_votes = count_votes(participants, votes)
    ordered = sorted(live, key=lambda p: _sort_key(p, counts, first_votes))

    entries: list[TallyEntry] = []
    for index, participant in enumerate(ordered):
        rank = index + 1
        label = None
        if top_voted_count is not None:
            label = ParticipantLabel.NUGGET if rank <= top_voted_count else ParticipantLabel.LIGHTBULB
        entries.append(
            TallyEntry(
                participant_id=participant.participant_id,
                vote_count=counts.get(participant.participant_id, 0),
                first_vote_at=first_votes.get(participant.participant_id),
                rank=rank,
                label=label,
            )
        )
    return entries


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's round() uses banker's rounding (round(2.5) == 2).

    Examples:
        >>> round_half_up(2.5)
        3
        >>> round_half_up(33.333)
        33
    """
    return int(math.floor(value + 0.5))


def phase_one_progress(attempted: int, total: int) -> int:
    """Progress for the per-discussion phase, clamped to [0, 99].

    100 is reserved for a completed run.
    """
    if total <= 0:
        return 0
    return max(0, min(99, round_half_up(100 * attempted / total)))
