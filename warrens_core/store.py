"""Challenge store with atomic check-and-write guards.

The in-memory store is the reference implementation of ChallengeStore.
Submissions and results are embedded in their Challenge record. Every write
bumps the challenge `version`; writes that carry an `expected_version` are
compare-and-set and fail with ConcurrencyConflict on mismatch.

Locking:
- `_lock` guards the maps and makes each individual write atomic
- `challenge_lock(id)` serializes a whole read-decide-write sequence for
  one challenge; different challenges never contend on it. The lock is
  created with the challenge, so unknown ids raise ChallengeNotActive
"""
from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager, contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator, Protocol, Sequence

from .errors import ChallengeNotActive, ConcurrencyConflict, DuplicateSubmission, ValidationError
from .models import Challenge, ChallengeStatus, Result, Submission, TimerState

logger = logging.getLogger(__name__)


class ChallengeStore(Protocol):
    def challenge_lock(self, challenge_id: str) -> AbstractContextManager[None]:
        ...

    def add_challenge(self, challenge: Challenge) -> Challenge:
        ...

    def get(self, challenge_id: str) -> Challenge | None:
        ...

    def list_challenges(self, status: ChallengeStatus | None = None) -> list[Challenge]:
        ...

    def insert_submission(self, submission: Submission) -> Challenge:
        ...

    def save_timer(self, challenge_id: str, timer: TimerState, expected_version: int) -> Challenge:
        ...

    def complete(
        self,
        challenge_id: str,
        results: Sequence[Result],
        completed_at: datetime,
        expected_version: int,
    ) -> Challenge | None:
        ...


class InMemoryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._challenges: dict[str, Challenge] = {}
        self._challenge_locks: dict[str, threading.Lock] = {}

    @contextmanager
    def challenge_lock(self, challenge_id: str) -> Iterator[None]:
        with self._lock:
            lock = self._challenge_locks.get(challenge_id)
        if lock is None:
            raise ChallengeNotActive(f"unknown challenge {challenge_id}", challenge_id=challenge_id)
        with lock:
            yield

    def add_challenge(self, challenge: Challenge) -> Challenge:
        with self._lock:
            if challenge.id in self._challenges:
                raise ValidationError(
                    f"challenge {challenge.id} already exists", challenge_id=challenge.id
                )
            stored = replace(challenge, version=1)
            self._challenges[challenge.id] = stored
            self._challenge_locks[challenge.id] = threading.Lock()
            return stored

    def get(self, challenge_id: str) -> Challenge | None:
        with self._lock:
            return self._challenges.get(challenge_id)

    def list_challenges(self, status: ChallengeStatus | None = None) -> list[Challenge]:
        with self._lock:
            return [c for c in self._challenges.values() if status is None or c.status == status]

    def _require_active(self, challenge_id: str, participant_id: str | None = None) -> Challenge:
        current = self._challenges.get(challenge_id)
        if current is None:
            raise ChallengeNotActive(
                f"unknown challenge {challenge_id}",
                challenge_id=challenge_id,
                participant_id=participant_id,
            )
        if current.status != "active":
            raise ChallengeNotActive(
                f"challenge {challenge_id} is {current.status}",
                challenge_id=challenge_id,
                participant_id=participant_id,
            )
        return current

    def insert_submission(self, submission: Submission) -> Challenge:
        with self._lock:
            current = self._require_active(submission.challenge_id, submission.participant_id)
            if current.has_submitted(submission.participant_id):
                raise DuplicateSubmission(
                    f"{submission.participant_id} already submitted to {submission.challenge_id}",
                    challenge_id=submission.challenge_id,
                    participant_id=submission.participant_id,
                )
            updated = replace(
                current,
                submissions=current.submissions + (submission,),
                version=current.version + 1,
            )
            self._challenges[current.id] = updated
            return updated

    def _check_version(self, current: Challenge, expected_version: int) -> None:
        if current.version != expected_version:
            raise ConcurrencyConflict(
                f"challenge {current.id} changed (expected v{expected_version}, found v{current.version})",
                challenge_id=current.id,
            )

    def save_timer(self, challenge_id: str, timer: TimerState, expected_version: int) -> Challenge:
        with self._lock:
            current = self._require_active(challenge_id)
            self._check_version(current, expected_version)
            updated = replace(current, timer=timer, version=current.version + 1)
            self._challenges[challenge_id] = updated
            return updated

    def complete(
        self,
        challenge_id: str,
        results: Sequence[Result],
        completed_at: datetime,
        expected_version: int,
    ) -> Challenge | None:
        """Active -> completed, once. Returns None if already completed."""
        with self._lock:
            current = self._challenges.get(challenge_id)
            if current is None:
                raise ChallengeNotActive(
                    f"unknown challenge {challenge_id}", challenge_id=challenge_id
                )
            if current.status == "completed":
                logger.debug(f"Challenge {challenge_id} already completed; finalize is a no-op")
                return None
            self._check_version(current, expected_version)
            updated = replace(
                current,
                status="completed",
                completed_at=completed_at,
                results=tuple(results),
                version=current.version + 1,
            )
            self._challenges[challenge_id] = updated
            return updated


__all__ = ["ChallengeStore", "InMemoryStore"]
