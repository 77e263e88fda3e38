"""Error taxonomy for the challenge engine.

Every failure carries enough context (challenge id, participant id) for the
caller to display or log it. None of these are fatal: callers either fix the
input or retry.

- ValidationError: malformed/missing input, never retried automatically
- InvalidScore: raw score is not a finite number
- HostSubmissionNotAllowed: host tried to score their own challenge while disabled
- DuplicateSubmission: participant already scored this challenge
- ChallengeNotActive: challenge is completed or unknown
- ConcurrencyConflict: an atomic compare-and-set lost a race; safe to retry once
"""
from __future__ import annotations


class ChallengeError(Exception):
    """Base class for all engine failures."""

    kind = "challenge_error"

    def __init__(
        self,
        message: str,
        *,
        challenge_id: str | None = None,
        participant_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.challenge_id = challenge_id
        self.participant_id = participant_id

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "challengeId": self.challenge_id,
            "participantId": self.participant_id,
        }


class ValidationError(ChallengeError, ValueError):
    kind = "validation_error"


class InvalidScore(ValidationError):
    kind = "invalid_score"


class HostSubmissionNotAllowed(ValidationError):
    kind = "host_submission_not_allowed"


class DuplicateSubmission(ChallengeError):
    kind = "duplicate_submission"


class ChallengeNotActive(ChallengeError):
    kind = "challenge_not_active"


class ConcurrencyConflict(ChallengeError):
    kind = "concurrency_conflict"


__all__ = [
    "ChallengeError",
    "ValidationError",
    "InvalidScore",
    "HostSubmissionNotAllowed",
    "DuplicateSubmission",
    "ChallengeNotActive",
    "ConcurrencyConflict",
]
