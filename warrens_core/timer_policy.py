"""Submission-driven challenge timer.

- fewer than 2 scores: no timer
- 2 scores: 30 day timer starts
- 3 scores: timer drops to 21 days (only if that is sooner)
- 4+ scores: timer drops to 14 days (only if that is sooner)

The policy only ever starts or tightens a timer, never lengthens one, so
applying it twice for the same count changes nothing the second time.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Mapping

from .config import DEFAULT_TIMER_STEPS
from .models import TimerState


def timer_adjustment(
    submission_count: int, steps: Mapping[int, int] = DEFAULT_TIMER_STEPS
) -> int | None:
    """Timer duration in days for the given submission count, or None."""
    applicable = [count for count in steps if count <= submission_count]
    if not applicable:
        return None
    return steps[max(applicable)]


def apply_timer_policy(
    timer: TimerState,
    submission_count: int,
    now: datetime,
    steps: Mapping[int, int] = DEFAULT_TIMER_STEPS,
) -> TimerState | None:
    """Return the adjusted timer, or None when the timer should stay as-is.

    The candidate deadline is measured from `now` (the accepted submission's
    time). An existing timer keeps its start and only moves to a strictly
    earlier deadline.
    """
    days = timer_adjustment(submission_count, steps)
    if days is None:
        return None
    candidate = now + timedelta(days=days)
    if timer.deadline is None:
        return TimerState(started_at=now, deadline=candidate)
    if candidate < timer.deadline:
        return TimerState(started_at=timer.started_at, deadline=candidate)
    return None


__all__ = ["timer_adjustment", "apply_timer_policy"]
