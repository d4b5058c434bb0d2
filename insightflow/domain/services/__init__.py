"""Domain services - stateless rules shared by application services."""

from insightflow.domain.services.tally_ranking import (
    count_votes,
    phase_one_progress,
    rank_participants,
    round_half_up,
)

__all__: list[str] = [
    "count_votes",
    "phase_one_progress",
    "rank_participants",
    "round_half_up",
]
