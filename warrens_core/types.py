"""Type definitions for serialized records and commands."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict


class PlayerRecord(TypedDict):
    """A roster entry as handed to the presentation layer."""
    id: str
    name: str
    color: str


class TimerRecord(TypedDict):
    # ISO-8601; both present or both None
    startedAt: Optional[str]
    deadline: Optional[str]


class SubmissionRecord(TypedDict):
    challengeId: str
    participantId: str
    score: float
    submittedAt: str


class ResultRecord(TypedDict):
    challengeId: str
    participantId: str
    rank: int
    score: float
    points: int


class ChallengeRecord(TypedDict, total=False):
    """
    A challenge with its embedded submissions and results.

    `results` is empty until the challenge completes. `target` is only set
    for closest-wins challenges.
    """
    id: str
    name: str
    description: str
    rules: List[str]
    scoringRule: str
    hostId: str
    isTurns: bool
    status: str  # 'active' | 'completed'
    createdAt: str
    completedAt: Optional[str]
    timer: TimerRecord
    target: Optional[float]
    submissionCount: int
    submissions: List[SubmissionRecord]
    results: List[ResultRecord]
    version: int


class StandingsRecord(TypedDict):
    participantId: str
    name: str
    color: str
    points: int
    wins: List[str]
    position: int
    pointsBehind: int
    isLast: bool


class HistoryRecord(TypedDict):
    challengeNumber: int
    challengeId: Optional[str]
    hostId: Optional[str]
    hostChallengeNumber: Optional[int]
    totals: Dict[str, int]


class CommandPayload(TypedDict, total=False):
    """
    TypedDict for command payloads sent to ChallengeEngine.apply_command().

    Fields vary by command type.
    """
    type: str

    # CREATE_CHALLENGE
    name: str
    description: str
    rules: Any  # str (one rule per line) or list of str
    scoringRule: str
    hostId: str
    isTurns: bool
    target: Optional[float]

    # SUBMIT_SCORE / FINALIZE
    challengeId: str
    participantId: str
    score: float
