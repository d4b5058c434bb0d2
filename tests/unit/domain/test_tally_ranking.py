"""Unit tests for the tally ranking domain service."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from insightflow.domain.models.participant import Participant
from insightflow.domain.models.vote import ParticipantLabel, Vote
from insightflow.domain.services.tally_ranking import (
    count_votes,
    phase_one_progress,
    rank_participants,
    round_half_up,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
SESSION_ID = uuid4()


def _participant(name: str, joined_offset: int) -> Participant:
    return Participant.create(
        session_id=SESSION_ID,
        principal_id=f"user-{name}",
        display_identity=name,
        joined_at=T0 + timedelta(seconds=joined_offset),
    )


def _vote(voter: Participant, target: Participant, offset: int) -> Vote:
    return Vote(
        session_id=SESSION_ID,
        voter_participant_id=voter.participant_id,
        voted_for_participant_id=target.participant_id,
        cast_at=T0 + timedelta(minutes=1, seconds=offset),
    )


class TestRankParticipants:
    def test_abc_scenario(self) -> None:
        """A=2, B=1, C=0 with top_voted_count=1: A is the only nugget."""
        a, b, c = _participant("A", 0), _participant("B", 1), _participant("C", 2)
        votes = [_vote(b, a, 0), _vote(c, a, 1), _vote(a, b, 2)]

        entries = rank_participants([a, b, c], votes, top_voted_count=1)

        assert [(e.participant_id, e.vote_count) for e in entries] == [
            (a.participant_id, 2),
            (b.participant_id, 1),
            (c.participant_id, 0),
        ]
        assert [e.label for e in entries] == [
            ParticipantLabel.NUGGET,
            ParticipantLabel.LIGHTBULB,
            ParticipantLabel.LIGHTBULB,
        ]
        assert [e.rank for e in entries] == [1, 2, 3]

    def test_sum_of_counts_equals_votes(self) -> None:
        people = [_participant(str(i), i) for i in range(5)]
        votes = [
            _vote(people[i], people[j], i * 5 + j)
            for i in range(5)
            for j in range(5)
            if i != j and (i + j) % 2 == 0
        ]
        entries = rank_participants(people, votes)
        assert sum(e.vote_count for e in entries) == len(votes)

    def test_tie_broken_by_earliest_first_vote(self) -> None:
        a, b, c, d = (_participant(n, i) for i, n in enumerate("ABCD"))
        # B receives its first vote before A does
        votes = [_vote(c, b, 0), _vote(d, a, 1), _vote(a, b, 2), _vote(c, a, 3)]
        entries = rank_participants([a, b, c, d], votes)
        assert entries[0].participant_id == b.participant_id
        assert entries[1].participant_id == a.participant_id

    def test_zero_vote_participants_in_join_order(self) -> None:
        late, early = _participant("late", 10), _participant("early", 5)
        entries = rank_participants([late, early], [])
        assert [e.participant_id for e in entries] == [early.participant_id, late.participant_id]
        assert all(e.first_vote_at is None for e in entries)

    def test_unlabelled_without_top_voted_count(self) -> None:
        entries = rank_participants([_participant("A", 0)], [])
        assert entries[0].label is None

    def test_top_count_larger_than_population(self) -> None:
        people = [_participant("A", 0), _participant("B", 1)]
        entries = rank_participants(people, [], top_voted_count=5)
        assert all(e.label == ParticipantLabel.NUGGET for e in entries)


class TestCountVotes:
    def test_deleted_participants_excluded_with_their_votes(self) -> None:
        a, b, c = _participant("A", 0), _participant("B", 1), _participant("C", 2)
        gone = c.with_deleted()
        votes = [_vote(a, b, 0), _vote(c, b, 1), _vote(a, c, 2)]

        live, counts, first = count_votes([a, b, gone], votes)

        assert [p.participant_id for p in live] == [a.participant_id, b.participant_id]
        assert counts == {b.participant_id: 1}
        assert first[b.participant_id] == votes[0].cast_at


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0.5, 1), (1.5, 2), (2.5, 3), (33.333, 33), (66.5, 67), (0.49, 0)],
    )
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected

    def test_phase_one_progress_clamped_below_100(self) -> None:
        assert phase_one_progress(2, 2) == 99
        assert phase_one_progress(1, 2) == 50
        assert phase_one_progress(1, 3) == 33
        assert phase_one_progress(2, 3) == 67

    def test_phase_one_progress_empty_population(self) -> None:
        assert phase_one_progress(0, 0) == 0
