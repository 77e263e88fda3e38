from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from warrens_core import (
    Challenge,
    Participant,
    Result,
    TimerState,
    compute_score_history,
    compute_standings,
    deadline_warnings,
    waiting_hosts,
)

T0 = datetime(2026, 1, 10, 20, 0, tzinfo=timezone.utc)
PLAYERS = [Participant(id=x, name=f"Player {x}", color="#111111") for x in "ABCDE"]


def _completed(cid, name, placings, *, day, is_turns=False, host="A"):
    """placings: list of (participant_id, rank, points)"""
    when = T0 + timedelta(days=day)
    return Challenge(
        id=cid,
        name=name,
        description="desc",
        rules=("rule",),
        scoring_rule="highest-wins",
        host_id=host,
        is_turns=is_turns,
        created_at=when - timedelta(days=1),
        status="completed",
        completed_at=when,
        results=tuple(
            Result(challenge_id=cid, participant_id=pid, rank=rank, score=float(10 - rank), points=pts)
            for pid, rank, pts in placings
        ),
    )


def _active(cid, host, *, deadline_day=None, is_turns=False):
    timer = TimerState()
    if deadline_day is not None:
        timer = TimerState(started_at=T0, deadline=T0 + timedelta(days=deadline_day))
    return Challenge(
        id=cid,
        name=cid,
        description="desc",
        rules=("rule",),
        scoring_rule="lowest-wins",
        host_id=host,
        is_turns=is_turns,
        created_at=T0,
        timer=timer,
    )


def _league():
    return [
        _completed("c1", "Darts", [("A", 1, 5), ("B", 2, 4), ("C", 3, 3), ("D", 4, 2), ("E", 5, 1)], day=1),
        _completed("c2", "Total War", [("B", 1, 5), ("A", 2, 4), ("C", 3, 3)], day=2, is_turns=True, host="B"),
        _completed("c3", "Golf", [("C", 1, 5), ("A", 2, 4), ("B", 3, 3)], day=3, host="C"),
    ]


def _totals(rows):
    return {row.participant_id: row.points for row in rows}


def test_standings_totals_and_order():
    rows = compute_standings(PLAYERS, _league())
    assert [(r.participant_id, r.points) for r in rows] == [
        ("A", 13),
        ("B", 12),
        ("C", 11),
        ("D", 2),
        ("E", 1),
    ]
    assert [r.position for r in rows] == [1, 2, 3, 4, 5]
    assert rows[0].wins == ("Darts",)
    assert rows[1].wins == ("Total War",)
    assert rows[0].points_behind == 0
    assert rows[1].points_behind == 1
    assert rows[-1].is_last is True
    assert not any(r.is_last for r in rows[:-1])


def test_participants_without_results_still_listed():
    rows = compute_standings(PLAYERS, [])
    assert [r.participant_id for r in rows] == ["A", "B", "C", "D", "E"]
    assert all(r.points == 0 and r.wins == () for r in rows)


def test_turns_filter_excludes_and_restores():
    league = _league()
    full = compute_standings(PLAYERS, league)
    filtered = compute_standings(PLAYERS, league, "exclude_turns")
    assert _totals(filtered) == {"A": 9, "B": 7, "C": 8, "D": 2, "E": 1}
    assert [r.participant_id for r in filtered] == ["A", "C", "B", "D", "E"]
    assert next(r for r in filtered if r.participant_id == "B").wins == ()

    turns_points = {"B": 5, "A": 4, "C": 3}
    for pid, points in _totals(full).items():
        assert _totals(filtered)[pid] + turns_points.get(pid, 0) == points
    assert compute_standings(PLAYERS, league, "all") == full


def test_wins_listed_in_completion_order():
    league = [
        _completed("late", "Late Win", [("A", 1, 5)], day=9),
        _completed("early", "Early Win", [("A", 1, 5)], day=2),
    ]
    rows = compute_standings(PLAYERS, league)
    assert rows[0].wins == ("Early Win", "Late Win")


def test_equal_points_break_on_wins_then_roster_order():
    players = PLAYERS[:3]  # A, B, C
    league = [
        _completed("x", "X", [("B", 1, 3), ("A", 2, 2), ("C", 3, 1)], day=1),
        _completed("y", "Y", [("C", 1, 3), ("A", 2, 2), ("B", 3, 1)], day=2),
    ]
    rows = compute_standings(players, league)
    assert all(r.points == 4 for r in rows)
    assert [r.participant_id for r in rows] == ["B", "C", "A"]


def test_results_for_unknown_participants_are_ignored():
    league = [_completed("c", "C", [("A", 1, 5), ("Z", 2, 4)], day=1)]
    rows = compute_standings(PLAYERS, league)
    assert "Z" not in _totals(rows)
    assert _totals(rows)["A"] == 5


def test_active_challenges_do_not_count():
    rows = compute_standings(PLAYERS, [_active("a1", "A")])
    assert all(r.points == 0 for r in rows)


def test_score_history_progression():
    league = _league() + [_completed("c4", "Pool", [("D", 1, 5)], day=4, host="A")]
    history = compute_score_history(PLAYERS, league)
    assert [p.challenge_number for p in history] == [0, 1, 2, 3, 4]
    assert history[0].totals == {"A": 0, "B": 0, "C": 0, "D": 0, "E": 0}
    assert history[1].totals["A"] == 5
    assert history[3].totals == {"A": 13, "B": 12, "C": 11, "D": 2, "E": 1}
    assert [p.host_id for p in history[1:]] == ["A", "B", "C", "A"]
    assert [p.host_challenge_number for p in history[1:]] == [1, 1, 1, 2]


def test_score_history_respects_filter():
    history = compute_score_history(PLAYERS, _league(), "exclude_turns")
    assert [p.challenge_id for p in history] == [None, "c1", "c3"]
    assert history[-1].totals["B"] == 7


def test_waiting_hosts():
    active = [_active("a1", "A"), _active("a2", "C")]
    assert [p.id for p in waiting_hosts(PLAYERS, active)] == ["B", "D", "E"]


def test_deadline_warnings_sorted_and_filtered():
    active = [
        _active("no-timer", "A"),
        _active("later", "B", deadline_day=20),
        _active("sooner", "C", deadline_day=5),
        _active("turns", "D", deadline_day=1, is_turns=True),
    ]
    assert [c.id for c in deadline_warnings(active)] == ["turns", "sooner", "later"]
    assert [c.id for c in deadline_warnings(active, "exclude_turns")] == ["sooner", "later"]
    assert [c.id for c in deadline_warnings(active, limit=1)] == ["turns"]


def test_score_history_totals_are_read_only():
    history = compute_score_history(PLAYERS, _league())
    with pytest.raises(TypeError):
        history[-1].totals["A"] = 99
    assert history[-1].totals["A"] == 13
