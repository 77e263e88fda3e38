"""Records for challenges, submissions and results.

All records are frozen; the store swaps in new copies via dataclasses.replace.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

ScoringRule = Literal["highest-wins", "lowest-wins", "fastest-wins", "closest-wins"]
ChallengeStatus = Literal["active", "completed"]
CategoryFilter = Literal["all", "exclude_turns"]

SCORING_RULES: tuple[str, ...] = (
    "highest-wins",
    "lowest-wins",
    "fastest-wins",
    "closest-wins",
)
CATEGORY_FILTERS: tuple[str, ...] = ("all", "exclude_turns")


@dataclass(frozen=True)
class TimerState:
    started_at: datetime | None = None
    deadline: datetime | None = None

    def __post_init__(self) -> None:
        # started_at and deadline are set together or not at all
        if (self.started_at is None) != (self.deadline is None):
            raise ValueError("TimerState requires both started_at and deadline, or neither")

    @property
    def running(self) -> bool:
        return self.deadline is not None

    def expired(self, now: datetime) -> bool:
        return self.deadline is not None and now >= self.deadline


@dataclass(frozen=True)
class Submission:
    challenge_id: str
    participant_id: str
    score: float
    submitted_at: datetime


@dataclass(frozen=True)
class Result:
    challenge_id: str
    participant_id: str
    rank: int
    score: float
    points: int


@dataclass(frozen=True)
class Challenge:
    id: str
    name: str
    description: str
    rules: tuple[str, ...]
    scoring_rule: ScoringRule
    host_id: str
    is_turns: bool
    created_at: datetime
    status: ChallengeStatus = "active"
    completed_at: datetime | None = None
    timer: TimerState = TimerState()
    target: float | None = None
    submissions: tuple[Submission, ...] = ()
    results: tuple[Result, ...] = ()
    # Monotonic write counter used for compare-and-set in the store.
    version: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def submission_count(self) -> int:
        return len(self.submissions)

    def has_submitted(self, participant_id: str) -> bool:
        return any(s.participant_id == participant_id for s in self.submissions)

    def winner_ids(self) -> tuple[str, ...]:
        return tuple(r.participant_id for r in self.results if r.rank == 1)


def matches_category(challenge: Challenge, category_filter: CategoryFilter) -> bool:
    """True when the challenge is visible under the given leaderboard filter."""
    if category_filter == "exclude_turns":
        return not challenge.is_turns
    return True


__all__ = [
    "ScoringRule",
    "ChallengeStatus",
    "CategoryFilter",
    "SCORING_RULES",
    "CATEGORY_FILTERS",
    "TimerState",
    "Submission",
    "Result",
    "Challenge",
    "matches_category",
]
