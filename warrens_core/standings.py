"""Standings aggregation over completed challenges.

Everything here is a pure function of its inputs and safe to recompute on
every read. Nothing in this module is stored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from .models import CategoryFilter, Challenge, matches_category
from .roster import Participant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StandingsRow:
    participant_id: str
    name: str
    color: str
    points: int
    wins: tuple[str, ...]
    position: int
    points_behind: int
    is_last: bool


@dataclass(frozen=True)
class HistoryPoint:
    """Cumulative totals after one completed challenge (challenge 0 = start)."""

    challenge_number: int
    challenge_id: str | None
    host_id: str | None
    host_challenge_number: int | None
    totals: Mapping[str, int]


def _completion_order(challenges: Iterable[Challenge], category_filter: CategoryFilter) -> list[Challenge]:
    completed = [
        c
        for c in challenges
        if c.status == "completed" and matches_category(c, category_filter)
    ]
    completed.sort(
        key=lambda c: (c.completed_at.timestamp() if c.completed_at else float("-inf"), c.id)
    )
    return completed


def compute_standings(
    participants: Sequence[Participant],
    completed_challenges: Iterable[Challenge],
    category_filter: CategoryFilter = "all",
) -> tuple[StandingsRow, ...]:
    """
    Fold completed challenges into a leaderboard.

    Ordering: points descending, then more wins, then roster order. Every
    participant appears even with no results.
    """
    totals: dict[str, int] = {p.id: 0 for p in participants}
    wins: dict[str, list[str]] = {p.id: [] for p in participants}

    for challenge in _completion_order(completed_challenges, category_filter):
        for result in challenge.results:
            if result.participant_id not in totals:
                logger.debug(
                    f"Ignoring result for unknown participant {result.participant_id} "
                    f"in challenge {challenge.id}"
                )
                continue
            totals[result.participant_id] += result.points
            if result.rank == 1:
                wins[result.participant_id].append(challenge.name)

    roster_order = {p.id: idx for idx, p in enumerate(participants)}
    ordered = sorted(
        participants,
        key=lambda p: (-totals[p.id], -len(wins[p.id]), roster_order[p.id]),
    )
    leader_points = totals[ordered[0].id] if ordered else 0
    rows: list[StandingsRow] = []
    for idx, participant in enumerate(ordered):
        rows.append(
            StandingsRow(
                participant_id=participant.id,
                name=participant.name,
                color=participant.color,
                points=totals[participant.id],
                wins=tuple(wins[participant.id]),
                position=idx + 1,
                points_behind=leader_points - totals[participant.id],
                is_last=len(ordered) > 1 and idx == len(ordered) - 1,
            )
        )
    return tuple(rows)


def compute_score_history(
    participants: Sequence[Participant],
    completed_challenges: Iterable[Challenge],
    category_filter: CategoryFilter = "all",
) -> tuple[HistoryPoint, ...]:
    """Running totals after each completed challenge, in completion order."""
    running: dict[str, int] = {p.id: 0 for p in participants}
    host_counts: dict[str, int] = {}
    points = [
        HistoryPoint(
            challenge_number=0,
            challenge_id=None,
            host_id=None,
            host_challenge_number=None,
            totals=MappingProxyType(dict(running)),
        )
    ]
    for number, challenge in enumerate(_completion_order(completed_challenges, category_filter), start=1):
        for result in challenge.results:
            if result.participant_id in running:
                running[result.participant_id] += result.points
        host_counts[challenge.host_id] = host_counts.get(challenge.host_id, 0) + 1
        points.append(
            HistoryPoint(
                challenge_number=number,
                challenge_id=challenge.id,
                host_id=challenge.host_id,
                host_challenge_number=host_counts[challenge.host_id],
                totals=MappingProxyType(dict(running)),
            )
        )
    return tuple(points)


def waiting_hosts(
    participants: Sequence[Participant], active_challenges: Iterable[Challenge]
) -> tuple[Participant, ...]:
    """Participants who are not currently hosting an active challenge."""
    hosting = {c.host_id for c in active_challenges if c.status == "active"}
    return tuple(p for p in participants if p.id not in hosting)


def deadline_warnings(
    active_challenges: Iterable[Challenge],
    category_filter: CategoryFilter = "all",
    limit: int | None = None,
) -> tuple[Challenge, ...]:
    """Active challenges with a running timer, soonest deadline first."""
    timed = [
        c
        for c in active_challenges
        if c.status == "active" and c.timer.running and matches_category(c, category_filter)
    ]
    timed.sort(key=lambda c: (c.timer.deadline, c.id))
    if limit is not None:
        timed = timed[: max(limit, 0)]
    return tuple(timed)


__all__ = [
    "StandingsRow",
    "HistoryPoint",
    "compute_standings",
    "compute_score_history",
    "waiting_hosts",
    "deadline_warnings",
]
