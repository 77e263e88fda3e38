"""Ranking & points resolver (pure, deterministic).

Comparator per scoring rule:
- highest-wins: larger score is better
- lowest-wins / fastest-wins: smaller score is better (strokes, elapsed time)
- closest-wins: smaller distance to the challenge target is better

Points are `roster_size - (rank - 1)`, so with five players 1st gets 5 and
5th gets 1. The scale follows the roster size, not the number of submitters.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .config import TiePolicy
from .errors import ValidationError
from .models import SCORING_RULES, Result, ScoringRule, Submission


@dataclass
class _TieChunk:
    items: list[Submission]


def performance_key(score: float, scoring_rule: ScoringRule, target: float | None = None) -> float:
    """Lower key = better performance."""
    if scoring_rule == "highest-wins":
        return -score
    if scoring_rule in ("lowest-wins", "fastest-wins"):
        return score
    if scoring_rule == "closest-wins":
        if target is None:
            raise ValidationError("closest-wins requires a target value")
        return abs(score - target)
    raise ValidationError(f"scoring rule must be one of {SCORING_RULES}, got {scoring_rule}")


def points_for_rank(rank: int, roster_size: int) -> int:
    return max(roster_size - (rank - 1), 0)


def _submission_sort_key(item: Submission) -> tuple:
    return (item.submitted_at, item.participant_id)


def resolve(
    submissions: Sequence[Submission],
    scoring_rule: ScoringRule,
    roster_size: int,
    *,
    target: float | None = None,
    tie_policy: TiePolicy = "earliest_submission",
) -> tuple[Result, ...]:
    """
    Turn a submission set into ordered results with awarded points.

    Args:
      submissions: one submission per participant (any order).
      scoring_rule: comparator to apply.
      roster_size: number of participant slots; drives the point scale.
      target: required for closest-wins.
      tie_policy: 'earliest_submission' orders equal scores by submission
        time then participant id (distinct ranks); 'shared' gives equal
        scores the same rank and points, skipping the following ranks.
    """
    if roster_size < 1:
        raise ValidationError("roster_size must be positive")
    if len(submissions) > roster_size:
        raise ValidationError(
            f"{len(submissions)} submissions exceed roster size {roster_size}"
        )
    for sub in submissions:
        if isinstance(sub.score, bool) or not math.isfinite(sub.score):
            raise ValidationError(
                "result score must be a finite number",
                challenge_id=sub.challenge_id,
                participant_id=sub.participant_id,
            )

    ordered = sorted(
        submissions,
        key=lambda s: (performance_key(s.score, scoring_rule, target), *_submission_sort_key(s)),
    )

    chunks: list[_TieChunk] = []
    if tie_policy == "shared":
        i = 0
        while i < len(ordered):
            key = performance_key(ordered[i].score, scoring_rule, target)
            j = i + 1
            while j < len(ordered) and performance_key(ordered[j].score, scoring_rule, target) == key:
                j += 1
            chunks.append(_TieChunk(items=ordered[i:j]))
            i = j
    else:
        chunks = [_TieChunk(items=[item]) for item in ordered]

    results: list[Result] = []
    pos = 1
    for chunk in chunks:
        rank = pos
        for item in chunk.items:
            results.append(
                Result(
                    challenge_id=item.challenge_id,
                    participant_id=item.participant_id,
                    rank=rank,
                    score=item.score,
                    points=points_for_rank(rank, roster_size),
                )
            )
        pos += len(chunk.items)
    return tuple(results)


__all__ = ["resolve", "performance_key", "points_for_rank"]
