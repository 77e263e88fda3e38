"""Engine settings.

Policy switches that observed deployments disagree on are explicit settings
rather than hard-coded behavior. Settings can be built directly or read from
WARRENS_* environment variables.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

logger = logging.getLogger(__name__)

TiePolicy = Literal["earliest_submission", "shared"]

DEFAULT_TIMER_STEPS: Dict[int, int] = {2: 30, 3: 21, 4: 14}

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off", ""}


class EngineSettings(BaseModel):
    """Lifecycle policy switches."""

    host_may_submit: bool = Field(
        True, description="Allow the host to submit a score to their own challenge"
    )
    one_active_challenge_per_host: bool = Field(
        True, description="A host may only run one active challenge at a time"
    )
    tie_policy: TiePolicy = Field(
        "earliest_submission",
        description="'earliest_submission' breaks equal scores by submit time; 'shared' gives equal rank",
    )
    # submission count -> timer duration in days
    timer_steps: Dict[int, int] = Field(default_factory=lambda: dict(DEFAULT_TIMER_STEPS))

    model_config = ConfigDict(frozen=True)

    @field_validator("timer_steps")
    @classmethod
    def validate_timer_steps(cls, v: Dict[int, int]) -> Dict[int, int]:
        if not v:
            raise ValueError("timer_steps cannot be empty")
        for count, days in v.items():
            if count < 1:
                raise ValueError(f"timer step count must be >= 1, got {count}")
            if days <= 0:
                raise ValueError(f"timer step duration must be positive, got {days}")
        # Durations must never grow as more scores arrive.
        ordered = [v[k] for k in sorted(v)]
        if any(later > earlier for earlier, later in zip(ordered, ordered[1:])):
            raise ValueError("timer step durations must not increase with submission count")
        return dict(sorted(v.items()))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        values: dict = {}
        raw = env.get("WARRENS_HOST_MAY_SUBMIT")
        if raw is not None:
            values["host_may_submit"] = _env_bool("WARRENS_HOST_MAY_SUBMIT", raw)
        raw = env.get("WARRENS_ONE_ACTIVE_PER_HOST")
        if raw is not None:
            values["one_active_challenge_per_host"] = _env_bool("WARRENS_ONE_ACTIVE_PER_HOST", raw)
        raw = env.get("WARRENS_TIE_POLICY")
        if raw is not None:
            values["tie_policy"] = raw.strip().lower()
        try:
            return cls(**values)
        except PydanticValidationError as e:
            logger.warning(f"Engine settings rejected: {e}")
            raise ValidationError(f"Invalid engine settings: {e}") from e


def _env_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name} must be a boolean flag, got {raw!r}")


__all__ = ["EngineSettings", "TiePolicy", "DEFAULT_TIMER_STEPS"]
