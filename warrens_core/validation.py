"""
Input validation schemas using Pydantic v2
Validates challenge drafts, score submissions and command payloads
"""

import logging
import math
import re
from typing import Any, List, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import InvalidScore, ValidationError
from .models import SCORING_RULES

logger = logging.getLogger(__name__)

COMMAND_TYPES = {
    "CREATE_CHALLENGE",
    "SUBMIT_SCORE",
    "FINALIZE",
    "SWEEP_DEADLINES",
}


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Strip whitespace, control characters and cap the length"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        value = value.strip()
        value = value.replace("\0", "")
        # Keep newlines/tabs out of single-line fields
        value = re.sub(r"[\x00-\x1f\x7f]", "", value)
        return value[:max_length]

    @staticmethod
    def sanitize_text(value: str, max_length: int = 2000) -> str:
        """Multi-line text: keep line breaks, drop other control characters"""
        if not isinstance(value, str):
            value = str(value)
        value = value.replace("\r\n", "\n").replace("\r", "\n")
        value = re.sub(r"[\x00-\x08\x0b-\x1f\x7f]", "", value)
        return value.strip()[:max_length]

    @staticmethod
    def split_rules(rules: Any) -> List[str]:
        """Normalize rules into an ordered list of non-blank lines"""
        if rules is None:
            return []
        if isinstance(rules, str):
            lines = InputSanitizer.sanitize_text(rules).split("\n")
        elif isinstance(rules, (list, tuple)):
            lines = []
            for item in rules:
                if not isinstance(item, str):
                    raise ValueError("rules must be strings")
                lines.extend(InputSanitizer.sanitize_text(item).split("\n"))
        else:
            raise ValueError("rules must be a string or a list of strings")
        return [InputSanitizer.sanitize_string(line, 500) for line in lines if line.strip()]


def _check_finite_number(v: Any, field_name: str) -> float:
    # bool is an int subclass; "True" is not a score
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    try:
        value = float(v)
    except OverflowError:
        raise ValueError(f"{field_name} must be finite")
    if not math.isfinite(value):
        raise ValueError(f"{field_name} must be finite")
    return value


class ChallengeDraft(BaseModel):
    """Validated input for creating a challenge"""

    name: str = Field(..., max_length=120, description="Challenge name")
    description: str = Field(..., max_length=2000, description="What the challenge is")
    rules: List[str] = Field(..., description="Rule lines, in order")
    scoring_rule: str = Field(..., description="One of SCORING_RULES")
    host_id: str = Field(..., max_length=64, description="Hosting participant id")
    is_turns: bool = Field(False, description="Belongs to the excludable turns category")
    target: Optional[float] = Field(None, description="Target value for closest-wins")

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", "host_id", mode="before")
    @classmethod
    def validate_single_line(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("must be a string")
        v = InputSanitizer.sanitize_string(v, 255)
        if len(v) == 0:
            raise ValueError("cannot be blank")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("description must be a string")
        v = InputSanitizer.sanitize_text(v)
        if len(v) == 0:
            raise ValueError("description cannot be blank")
        return v

    @field_validator("rules", mode="before")
    @classmethod
    def validate_rules(cls, v: Any) -> List[str]:
        lines = InputSanitizer.split_rules(v)
        if not lines:
            raise ValueError("rules cannot be blank")
        return lines

    @field_validator("scoring_rule", mode="before")
    @classmethod
    def validate_scoring_rule(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("scoring_rule must be a string")
        v = v.strip().lower()
        if v not in SCORING_RULES:
            raise ValueError(f"scoring_rule must be one of {SCORING_RULES}, got {v}")
        return v

    @field_validator("target", mode="before")
    @classmethod
    def validate_target(cls, v: Any) -> Optional[float]:
        if v is None:
            return v
        return _check_finite_number(v, "target")

    @model_validator(mode="after")
    def validate_target_matches_rule(self) -> Self:
        if self.scoring_rule == "closest-wins" and self.target is None:
            raise ValueError("closest-wins requires target")
        if self.scoring_rule != "closest-wins" and self.target is not None:
            raise ValueError("target is only allowed for closest-wins")
        return self


class ScoreSubmission(BaseModel):
    """Validated raw score for one participant"""

    challenge_id: str = Field(..., min_length=1, max_length=64)
    participant_id: str = Field(..., min_length=1, max_length=64)
    raw_score: float

    @field_validator("raw_score", mode="before")
    @classmethod
    def validate_raw_score(cls, v: Any) -> float:
        return _check_finite_number(v, "raw_score")


class ValidatedCommand(BaseModel):
    """Command payload accepted by ChallengeEngine.apply_command"""

    type: str = Field(..., min_length=1, max_length=50, description="Command type")

    # CREATE_CHALLENGE
    name: Optional[str] = None
    description: Optional[str] = None
    rules: Optional[Any] = None
    scoringRule: Optional[str] = None
    hostId: Optional[str] = None
    isTurns: Optional[bool] = None
    target: Optional[Any] = None

    # SUBMIT_SCORE / FINALIZE
    challengeId: Optional[str] = Field(None, min_length=1, max_length=64)
    participantId: Optional[str] = Field(None, min_length=1, max_length=64)
    score: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Validate command type is one of allowed types"""
        v = v.strip().upper()
        if v not in COMMAND_TYPES:
            raise ValueError(f"type must be one of {sorted(COMMAND_TYPES)}, got {v}")
        return v

    @model_validator(mode="after")
    def validate_command_fields(self) -> Self:
        """Validate required fields based on command type"""
        cmd_type = self.type

        if cmd_type == "CREATE_CHALLENGE":
            for field_name in ("name", "description", "rules", "scoringRule", "hostId"):
                if getattr(self, field_name) is None:
                    raise ValueError(f"CREATE_CHALLENGE requires {field_name}")

        elif cmd_type == "SUBMIT_SCORE":
            if self.challengeId is None:
                raise ValueError("SUBMIT_SCORE requires challengeId")
            if self.participantId is None:
                raise ValueError("SUBMIT_SCORE requires participantId")
            if self.score is None:
                raise ValueError("SUBMIT_SCORE requires score")

        elif cmd_type == "FINALIZE":
            if self.challengeId is None:
                raise ValueError("FINALIZE requires challengeId")

        return self


def _first_error_message(e: PydanticValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def parse_challenge_draft(**fields: Any) -> ChallengeDraft:
    """
    Validate challenge creation input

    Raises:
        ValidationError: if any required field is blank or malformed
    """
    try:
        return ChallengeDraft(**fields)
    except PydanticValidationError as e:
        logger.warning(f"Challenge draft rejected: {e}")
        raise ValidationError(f"Invalid challenge: {_first_error_message(e)}") from e


def parse_score(challenge_id: str, participant_id: str, raw_score: Any) -> ScoreSubmission:
    """
    Validate a raw score submission

    Raises:
        InvalidScore: if raw_score is not a finite number
        ValidationError: if the ids are blank
    """
    try:
        return ScoreSubmission(
            challenge_id=challenge_id, participant_id=participant_id, raw_score=raw_score
        )
    except PydanticValidationError as e:
        score_error = any(err.get("loc", ())[:1] == ("raw_score",) for err in e.errors())
        error_cls = InvalidScore if score_error else ValidationError
        logger.warning(f"Score rejected for {participant_id} on {challenge_id}: {e}")
        raise error_cls(
            f"Invalid score: {_first_error_message(e)}",
            challenge_id=challenge_id if isinstance(challenge_id, str) else None,
            participant_id=participant_id if isinstance(participant_id, str) else None,
        ) from e


def parse_command(cmd_dict: dict) -> ValidatedCommand:
    """
    Validate command dictionary

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(cmd_dict, dict):
        raise ValidationError("command must be an object")
    try:
        return ValidatedCommand(**cmd_dict)
    except PydanticValidationError as e:
        logger.warning(f"Command validation failed: {e}")
        raise ValidationError(f"Invalid command: {_first_error_message(e)}") from e


# ==================== EXPORT ====================

__all__ = [
    "ChallengeDraft",
    "ScoreSubmission",
    "ValidatedCommand",
    "InputSanitizer",
    "parse_challenge_draft",
    "parse_score",
    "parse_command",
]
