from .config import DEFAULT_TIMER_STEPS, EngineSettings, TiePolicy
from .engine import ChallengeEngine, CommandOutcome, utc_now
from .errors import (
    ChallengeError,
    ChallengeNotActive,
    ConcurrencyConflict,
    DuplicateSubmission,
    HostSubmissionNotAllowed,
    InvalidScore,
    ValidationError,
)
from .events import ChangeEvent, ChangeListener, ChangeNotifier
from .models import (
    CategoryFilter,
    Challenge,
    Result,
    ScoringRule,
    Submission,
    TimerState,
    matches_category,
)
from .ranking import points_for_rank, resolve
from .records import (
    challenge_to_record,
    history_to_record,
    participant_to_record,
    standings_to_record,
)
from .roster import DEFAULT_PARTICIPANTS, Participant, Roster
from .standings import (
    HistoryPoint,
    StandingsRow,
    compute_score_history,
    compute_standings,
    deadline_warnings,
    waiting_hosts,
)
from .store import ChallengeStore, InMemoryStore
from .timer_policy import apply_timer_policy, timer_adjustment
from .types import ChallengeRecord, CommandPayload, StandingsRecord
from .validation import ChallengeDraft, InputSanitizer, ScoreSubmission, ValidatedCommand

__all__ = [
    "ChallengeEngine",
    "CommandOutcome",
    "CommandPayload",
    "utc_now",
    "EngineSettings",
    "TiePolicy",
    "DEFAULT_TIMER_STEPS",
    "ChallengeError",
    "ValidationError",
    "InvalidScore",
    "HostSubmissionNotAllowed",
    "DuplicateSubmission",
    "ChallengeNotActive",
    "ConcurrencyConflict",
    "ChangeEvent",
    "ChangeListener",
    "ChangeNotifier",
    "CategoryFilter",
    "Challenge",
    "Result",
    "ScoringRule",
    "Submission",
    "TimerState",
    "matches_category",
    "resolve",
    "points_for_rank",
    "challenge_to_record",
    "history_to_record",
    "participant_to_record",
    "standings_to_record",
    "ChallengeRecord",
    "StandingsRecord",
    "Participant",
    "Roster",
    "DEFAULT_PARTICIPANTS",
    "HistoryPoint",
    "StandingsRow",
    "compute_standings",
    "compute_score_history",
    "deadline_warnings",
    "waiting_hosts",
    "ChallengeStore",
    "InMemoryStore",
    "timer_adjustment",
    "apply_timer_policy",
    "ChallengeDraft",
    "ScoreSubmission",
    "ValidatedCommand",
    "InputSanitizer",
]
