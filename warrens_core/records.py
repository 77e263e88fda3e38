"""Convert engine objects into plain JSON-ready records (see types.py)."""
from __future__ import annotations

from datetime import datetime

from .models import Challenge, Result, Submission
from .roster import Participant
from .standings import HistoryPoint, StandingsRow
from .types import (
    ChallengeRecord,
    HistoryRecord,
    PlayerRecord,
    ResultRecord,
    StandingsRecord,
    SubmissionRecord,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def participant_to_record(participant: Participant) -> PlayerRecord:
    return {"id": participant.id, "name": participant.name, "color": participant.color}


def submission_to_record(submission: Submission) -> SubmissionRecord:
    return {
        "challengeId": submission.challenge_id,
        "participantId": submission.participant_id,
        "score": submission.score,
        "submittedAt": submission.submitted_at.isoformat(),
    }


def result_to_record(result: Result) -> ResultRecord:
    return {
        "challengeId": result.challenge_id,
        "participantId": result.participant_id,
        "rank": result.rank,
        "score": result.score,
        "points": result.points,
    }


def challenge_to_record(challenge: Challenge, *, include_submissions: bool = True) -> ChallengeRecord:
    """Serialize a challenge. Results are always in rank order."""
    record: ChallengeRecord = {
        "id": challenge.id,
        "name": challenge.name,
        "description": challenge.description,
        "rules": list(challenge.rules),
        "scoringRule": challenge.scoring_rule,
        "hostId": challenge.host_id,
        "isTurns": challenge.is_turns,
        "status": challenge.status,
        "createdAt": challenge.created_at.isoformat(),
        "completedAt": _iso(challenge.completed_at),
        "timer": {
            "startedAt": _iso(challenge.timer.started_at),
            "deadline": _iso(challenge.timer.deadline),
        },
        "target": challenge.target,
        "submissionCount": challenge.submission_count,
        "results": [
            result_to_record(r)
            for r in sorted(challenge.results, key=lambda r: (r.rank, r.participant_id))
        ],
        "version": challenge.version,
    }
    # Scores stay hidden from the UI until completion; counts are enough.
    if include_submissions:
        record["submissions"] = [submission_to_record(s) for s in challenge.submissions]
    return record


def standings_to_record(row: StandingsRow) -> StandingsRecord:
    return {
        "participantId": row.participant_id,
        "name": row.name,
        "color": row.color,
        "points": row.points,
        "wins": list(row.wins),
        "position": row.position,
        "pointsBehind": row.points_behind,
        "isLast": row.is_last,
    }


def history_to_record(point: HistoryPoint) -> HistoryRecord:
    return {
        "challengeNumber": point.challenge_number,
        "challengeId": point.challenge_id,
        "hostId": point.host_id,
        "hostChallengeNumber": point.host_challenge_number,
        "totals": dict(point.totals),
    }


__all__ = [
    "participant_to_record",
    "submission_to_record",
    "result_to_record",
    "challenge_to_record",
    "standings_to_record",
    "history_to_record",
]
