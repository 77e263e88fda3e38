"""Challenge lifecycle controller.

This module owns the Active -> Completed state machine and the operations
the presentation/storage collaborator calls.

Transitions:
- submission accepted: append to the ledger, apply the timer policy, and
  finalize once every eligible participant has scored
- deadline reached: `sweep_deadlines()` (or the next submission attempt)
  finalizes with whatever scores exist
Both converge on `_finalize_locked`, which only writes when it observes an
active challenge whose version has not moved; a second trigger is a no-op.

Concurrency:
- per-challenge critical section (store.challenge_lock) around every
  read-decide-write sequence
- store writes are compare-and-set on the challenge version, so a writer
  that bypasses the lock gets ConcurrencyConflict instead of a lost update
- change events are collected under the lock and published after it is
  released; listeners may call back into the engine
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from .config import EngineSettings
from .errors import ChallengeNotActive, ConcurrencyConflict, HostSubmissionNotAllowed, ValidationError
from .events import ChangeEvent, ChangeNotifier
from .models import CATEGORY_FILTERS, CategoryFilter, Challenge, Submission, matches_category
from .ranking import resolve
from .roster import Participant, Roster
from .standings import (
    HistoryPoint,
    StandingsRow,
    compute_score_history,
    compute_standings,
    deadline_warnings,
    waiting_hosts,
)
from .store import ChallengeStore, InMemoryStore
from .timer_policy import apply_timer_policy
from .validation import parse_challenge_draft, parse_command, parse_score

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_TIMER_WRITE_ATTEMPTS = 3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CommandOutcome:
    """Result of applying an engine command."""

    command_type: str
    payload: Dict[str, Any]
    challenge: Challenge | None = None
    submission_count: int | None = None
    finalized_ids: List[str] | None = None


def _check_category_filter(category_filter: str) -> CategoryFilter:
    if category_filter not in CATEGORY_FILTERS:
        raise ValidationError(
            f"category_filter must be one of {CATEGORY_FILTERS}, got {category_filter}"
        )
    return category_filter  # type: ignore[return-value]


class ChallengeEngine:
    def __init__(
        self,
        roster: Roster | None = None,
        store: ChallengeStore | None = None,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self.roster = roster or Roster.default()
        self.store = store if store is not None else InMemoryStore()
        self.settings = settings or EngineSettings()
        self.clock = clock or utc_now
        self.notifier = notifier or ChangeNotifier()
        # Serializes the one-active-challenge-per-host check with the insert.
        self._create_lock = threading.Lock()

    # ==================== CREATE ====================

    def create_challenge(
        self,
        name: str,
        description: str,
        rules: Any,
        scoring_rule: str,
        host_id: str,
        is_turns: bool = False,
        target: float | None = None,
    ) -> Challenge:
        draft = parse_challenge_draft(
            name=name,
            description=description,
            rules=rules,
            scoring_rule=scoring_rule,
            host_id=host_id,
            is_turns=is_turns,
            target=target,
        )
        self.roster.require(draft.host_id)

        with self._create_lock:
            if self.settings.one_active_challenge_per_host:
                for existing in self.store.list_challenges("active"):
                    if existing.host_id == draft.host_id:
                        raise ValidationError(
                            f"{draft.host_id} already hosts active challenge {existing.id}",
                            challenge_id=existing.id,
                            participant_id=draft.host_id,
                        )
            challenge = Challenge(
                id=str(uuid.uuid4()),
                name=draft.name,
                description=draft.description,
                rules=tuple(draft.rules),
                scoring_rule=draft.scoring_rule,  # type: ignore[arg-type]
                host_id=draft.host_id,
                is_turns=draft.is_turns,
                created_at=self.clock(),
                target=draft.target,
            )
            stored = self.store.add_challenge(challenge)

        logger.info(
            f"Challenge created id={stored.id} host={stored.host_id} "
            f"rule={stored.scoring_rule} turns={stored.is_turns}"
        )
        self.notifier.publish(ChangeEvent("challenge", "created", stored.id))
        return stored

    # ==================== SUBMIT ====================

    def required_submissions(self, challenge: Challenge) -> int:
        """Number of scores that completes the challenge without waiting for the timer."""
        if not self.settings.host_may_submit and challenge.host_id in self.roster:
            return max(self.roster.size - 1, 1)
        return self.roster.size

    def submit_score(self, challenge_id: str, participant_id: str, raw_score: Any) -> int:
        """
        Record one participant's score and advance the lifecycle.

        Returns:
            Submission count for the challenge after this submission.

        Raises:
            InvalidScore, ValidationError, HostSubmissionNotAllowed,
            DuplicateSubmission, ChallengeNotActive, ConcurrencyConflict
        """
        parsed = parse_score(challenge_id, participant_id, raw_score)
        self.roster.require(participant_id, challenge_id=challenge_id)
        if self.store.get(challenge_id) is None:
            raise ChallengeNotActive(
                f"unknown challenge {challenge_id}",
                challenge_id=challenge_id,
                participant_id=participant_id,
            )

        # Published once the challenge lock is released, so listeners may call back in.
        events: list[ChangeEvent] = []
        expired = False
        try:
            with self.store.challenge_lock(challenge_id):
                challenge = self.store.get(challenge_id)
                if challenge is None or not challenge.is_active:
                    status = "unknown" if challenge is None else challenge.status
                    raise ChallengeNotActive(
                        f"challenge {challenge_id} is {status}",
                        challenge_id=challenge_id,
                        participant_id=participant_id,
                    )
                now = self.clock()
                if challenge.timer.expired(now):
                    # Deadline already passed; close it out instead of accepting a late score.
                    self._finalize_locked(challenge_id, now, events)
                    expired = True
                else:
                    if not self.settings.host_may_submit and participant_id == challenge.host_id:
                        raise HostSubmissionNotAllowed(
                            f"host {participant_id} cannot score their own challenge",
                            challenge_id=challenge_id,
                            participant_id=participant_id,
                        )

                    submission = Submission(
                        challenge_id=challenge_id,
                        participant_id=participant_id,
                        score=parsed.raw_score,
                        submitted_at=now,
                    )
                    challenge = self.store.insert_submission(submission)
                    count = challenge.submission_count
                    logger.debug(
                        f"Submission accepted challenge={challenge_id} participant={participant_id} count={count}"
                    )
                    events.append(ChangeEvent("submission", "created", challenge_id, participant_id))

                    challenge = self._apply_timer_locked(challenge, count, now, events)
                    if count >= self.required_submissions(challenge):
                        self._finalize_locked(challenge_id, now, events)
        finally:
            self._publish(events)

        if expired:
            raise ChallengeNotActive(
                f"challenge {challenge_id} deadline passed",
                challenge_id=challenge_id,
                participant_id=participant_id,
            )
        return count

    def _apply_timer_locked(
        self, challenge: Challenge, count: int, now: datetime, events: list[ChangeEvent]
    ) -> Challenge:
        """Start or tighten the timer after an accepted submission.

        The submission is already committed, so a version conflict re-reads
        the challenge and re-applies the policy rather than failing the call.
        Caller must hold the challenge lock.
        """
        attempt = 0
        while True:
            attempt += 1
            new_timer = apply_timer_policy(challenge.timer, count, now, self.settings.timer_steps)
            if new_timer is None:
                return challenge
            previous = challenge.timer.deadline
            try:
                challenge = self.store.save_timer(challenge.id, new_timer, challenge.version)
            except (ChallengeNotActive, ConcurrencyConflict) as e:
                current = self.store.get(challenge.id)
                if current is None or not current.is_active:
                    return current or challenge
                if attempt == _TIMER_WRITE_ATTEMPTS:
                    raise
                logger.warning(f"Timer write retried challenge={challenge.id}: {e.message}")
                challenge = current
                continue
            if previous is None:
                logger.info(f"Timer started challenge={challenge.id} deadline={new_timer.deadline.isoformat()}")
            else:
                logger.info(
                    f"Timer tightened challenge={challenge.id} "
                    f"{previous.isoformat()} -> {new_timer.deadline.isoformat()}"
                )
            events.append(ChangeEvent("challenge", "updated", challenge.id))
            return challenge

    def _publish(self, events: list[ChangeEvent]) -> None:
        for event in events:
            self.notifier.publish(event)

    # ==================== FINALIZE ====================

    def _finalize_locked(
        self, challenge_id: str, now: datetime, events: list[ChangeEvent]
    ) -> Challenge | None:
        """Complete the challenge once. Caller must hold the challenge lock
        and publish the collected events after releasing it."""
        challenge = self.store.get(challenge_id)
        if challenge is None:
            raise ChallengeNotActive(f"unknown challenge {challenge_id}", challenge_id=challenge_id)
        if not challenge.is_active:
            return None

        results = resolve(
            challenge.submissions,
            challenge.scoring_rule,
            self.roster.size,
            target=challenge.target,
            tie_policy=self.settings.tie_policy,
        )
        try:
            completed = self.store.complete(challenge_id, results, now, challenge.version)
        except ConcurrencyConflict:
            current = self.store.get(challenge_id)
            if current is not None and not current.is_active:
                return None
            raise
        if completed is None:
            return None

        logger.info(
            f"Challenge finalized id={challenge_id} results={len(results)} "
            f"winner={','.join(completed.winner_ids()) or '-'}"
        )
        for result in completed.results:
            events.append(ChangeEvent("result", "created", challenge_id, result.participant_id))
        events.append(ChangeEvent("challenge", "updated", challenge_id))
        return completed

    def finalize_if_due(self, challenge_id: str, now: datetime | None = None) -> Challenge | None:
        """Finalize when every eligible score is in or the deadline has passed.

        Returns the completed challenge, or None if it is not due yet or was
        already completed.
        """
        now = now or self.clock()
        events: list[ChangeEvent] = []
        try:
            with self.store.challenge_lock(challenge_id):
                challenge = self.store.get(challenge_id)
                if challenge is None:
                    raise ChallengeNotActive(f"unknown challenge {challenge_id}", challenge_id=challenge_id)
                if not challenge.is_active:
                    return None
                full = challenge.submission_count >= self.required_submissions(challenge)
                if not full and not challenge.timer.expired(now):
                    return None
                return self._finalize_locked(challenge_id, now, events)
        finally:
            self._publish(events)

    def sweep_deadlines(self, now: datetime | None = None) -> list[str]:
        """Finalize every active challenge whose deadline has passed."""
        now = now or self.clock()
        finalized: list[str] = []
        for challenge in self.store.list_challenges("active"):
            if not challenge.timer.expired(now):
                continue
            events: list[ChangeEvent] = []
            try:
                with self.store.challenge_lock(challenge.id):
                    current = self.store.get(challenge.id)
                    if current is None or not current.is_active or not current.timer.expired(now):
                        continue
                    if self._finalize_locked(challenge.id, now, events) is not None:
                        finalized.append(challenge.id)
            finally:
                self._publish(events)
        if finalized:
            logger.info(f"Deadline sweep finalized {len(finalized)} challenge(s): {', '.join(finalized)}")
        return finalized


    # ==================== READ ====================

    def get_challenge(self, challenge_id: str) -> Challenge | None:
        return self.store.get(challenge_id)

    def list_active(self, category_filter: CategoryFilter = "all") -> list[Challenge]:
        """Active challenges, newest first."""
        category_filter = _check_category_filter(category_filter)
        active = [
            c for c in self.store.list_challenges("active") if matches_category(c, category_filter)
        ]
        active.sort(key=lambda c: (c.created_at, c.id), reverse=True)
        return active

    def list_completed(self, category_filter: CategoryFilter = "all") -> list[Challenge]:
        """Completed challenges with results attached, most recently completed first."""
        category_filter = _check_category_filter(category_filter)
        completed = [
            c for c in self.store.list_challenges("completed") if matches_category(c, category_filter)
        ]
        completed.sort(key=lambda c: (c.completed_at, c.id), reverse=True)
        return completed

    def get_standings(self, category_filter: CategoryFilter = "all") -> tuple[StandingsRow, ...]:
        category_filter = _check_category_filter(category_filter)
        return compute_standings(
            self.roster.participants, self.store.list_challenges("completed"), category_filter
        )

    def get_score_history(self, category_filter: CategoryFilter = "all") -> tuple[HistoryPoint, ...]:
        category_filter = _check_category_filter(category_filter)
        return compute_score_history(
            self.roster.participants, self.store.list_challenges("completed"), category_filter
        )

    def get_waiting_hosts(self) -> tuple[Participant, ...]:
        return waiting_hosts(self.roster.participants, self.store.list_challenges("active"))

    def get_deadline_warnings(
        self, category_filter: CategoryFilter = "all", limit: int | None = None
    ) -> tuple[Challenge, ...]:
        category_filter = _check_category_filter(category_filter)
        return deadline_warnings(self.store.list_challenges("active"), category_filter, limit)

    # ==================== COMMANDS ====================

    def apply_command(self, cmd: Dict[str, Any]) -> CommandOutcome:
        """Validate and dispatch a command payload (see types.CommandPayload)."""
        validated = parse_command(cmd)
        payload = dict(cmd)
        ctype = validated.type

        if ctype == "CREATE_CHALLENGE":
            challenge = self.create_challenge(
                name=validated.name,
                description=validated.description,
                rules=validated.rules,
                scoring_rule=validated.scoringRule,
                host_id=validated.hostId,
                is_turns=bool(validated.isTurns),
                target=validated.target,
            )
            payload["challengeId"] = challenge.id
            return CommandOutcome(command_type=ctype, payload=payload, challenge=challenge)

        if ctype == "SUBMIT_SCORE":
            count = self.submit_score(validated.challengeId, validated.participantId, validated.score)
            return CommandOutcome(
                command_type=ctype,
                payload=payload,
                challenge=self.store.get(validated.challengeId),
                submission_count=count,
            )

        if ctype == "FINALIZE":
            completed = self.finalize_if_due(validated.challengeId)
            return CommandOutcome(
                command_type=ctype,
                payload=payload,
                challenge=completed or self.store.get(validated.challengeId),
                finalized_ids=[completed.id] if completed is not None else [],
            )

        # SWEEP_DEADLINES
        finalized = self.sweep_deadlines()
        return CommandOutcome(command_type=ctype, payload=payload, finalized_ids=finalized)


__all__ = ["ChallengeEngine", "CommandOutcome", "Clock", "utc_now"]
