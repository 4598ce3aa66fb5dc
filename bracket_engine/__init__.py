"""Bracket progression and match result consensus engine."""

from .advancement import AdvancementResult, RoundAdvancer
from .completion import CompletionDetector, CompletionResult
from .config import EngineConfig, read_engine_config
from .consensus import ResultConsensus, SubmissionOutcome
from .generator import BracketGenerator
from .models import (
    Bracket,
    ConflictRecord,
    Match,
    ParticipantRef,
    ResultSubmission,
    Tournament,
    utc_now_iso,
)
from .reporters import HostConfirmationPolicy, ReporterPolicy, SelfReportPolicy
from .scheduling import MatchScheduler
from .service import BracketSnapshot, TournamentEngine
from .storage import TournamentStorage
from .validation import (
    AlreadyFinalizedError,
    ConcurrentUpdateError,
    DuplicateSubmissionError,
    InvalidTransitionError,
    InvalidValueError,
    InvalidWinnerError,
    NotFoundError,
    PreconditionFailedError,
    TournamentEngineError,
    UnauthorizedError,
)

__all__ = [
    "AdvancementResult",
    "RoundAdvancer",
    "CompletionDetector",
    "CompletionResult",
    "EngineConfig",
    "read_engine_config",
    "ResultConsensus",
    "SubmissionOutcome",
    "BracketGenerator",
    "Bracket",
    "ConflictRecord",
    "Match",
    "ParticipantRef",
    "ResultSubmission",
    "Tournament",
    "utc_now_iso",
    "HostConfirmationPolicy",
    "ReporterPolicy",
    "SelfReportPolicy",
    "MatchScheduler",
    "BracketSnapshot",
    "TournamentEngine",
    "TournamentStorage",
    "AlreadyFinalizedError",
    "ConcurrentUpdateError",
    "DuplicateSubmissionError",
    "InvalidTransitionError",
    "InvalidValueError",
    "InvalidWinnerError",
    "NotFoundError",
    "PreconditionFailedError",
    "TournamentEngineError",
    "UnauthorizedError",
]
