from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import ClassVar

from .models import ISO_FORMAT, ParticipantRef


class TournamentEngineError(ValueError):
    """Base exception for recoverable engine failures."""

    reason: ClassVar[str] = "error"


class InvalidValueError(TournamentEngineError):
    """Raised when caller supplied input is malformed."""

    reason = "invalid_value"


class NotFoundError(TournamentEngineError):
    reason = "not_found"


class UnauthorizedError(TournamentEngineError):
    reason = "unauthorized"


class InvalidWinnerError(TournamentEngineError):
    reason = "invalid_winner"


class DuplicateSubmissionError(TournamentEngineError):
    reason = "duplicate_submission"


class AlreadyFinalizedError(TournamentEngineError):
    reason = "already_finalized"


class PreconditionFailedError(TournamentEngineError):
    reason = "precondition_failed"


class InvalidTransitionError(TournamentEngineError):
    """Raised when a match status change is not allowed by the state machine."""

    reason = "invalid_transition"


class ConcurrentUpdateError(TournamentEngineError):
    """Raised when optimistic writes keep losing to concurrent writers."""

    reason = "concurrent_update"


_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


def normalize_identifier(raw: str, *, label: str = "Identifier") -> str:
    value = raw.strip()
    if not value:
        raise InvalidValueError(f"{label} cannot be empty")
    if not _IDENTIFIER_PATTERN.match(value):
        raise InvalidValueError(f"{label} contains unsupported characters: {value}")
    return value


def normalize_reporter_id(raw: str) -> str:
    """Wallet addresses compare case-insensitively."""
    value = raw.strip().lower()
    if not value:
        raise InvalidValueError("Submitter identity cannot be empty")
    return value


def validate_max_teams(max_teams: int) -> int:
    if max_teams < 2:
        raise InvalidValueError("Maximum teams must be at least 2")
    if max_teams > 200:
        raise InvalidValueError("Maximum teams above 200 are not supported")
    return max_teams


def validate_round_labels(labels: Sequence[str]) -> list[str]:
    cleaned = [label.strip() for label in labels if label.strip()]
    if len(cleaned) < 2:
        raise InvalidValueError("At least two round labels are required")
    if len(set(cleaned)) != len(cleaned):
        raise InvalidValueError("Round labels must be unique")
    for label in cleaned:
        if ":" in label or "#" in label:
            raise InvalidValueError(f"Round label {label!r} contains ':' or '#'")
    return cleaned


def parse_match_time(raw: str) -> str:
    """Parse a proposed match time and return it in storage format."""
    value = raw.strip()
    if not value:
        raise InvalidValueError("A date/time value is required")

    normalized = value.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise InvalidValueError(
            "Use ISO format such as 2024-05-01T18:00 or 2024-05-01 18:00"
        ) from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    else:
        parsed = parsed.astimezone(UTC)
    return parsed.strftime(ISO_FORMAT)


def validate_competitors(
    competitors: Sequence[ParticipantRef], *, minimum: int, maximum: int
) -> list[ParticipantRef]:
    if len(competitors) < minimum:
        raise PreconditionFailedError(
            f"At least {minimum} competitors are required to create a bracket"
        )
    if len(competitors) > maximum:
        raise PreconditionFailedError(
            f"Brackets above {maximum} competitors are not supported"
        )
    # winners and seats are claimed by participant id, so ids must not repeat
    # across team and clan entries either
    seen: dict[str, str] = {}
    for competitor in competitors:
        if not competitor.participant_id:
            raise InvalidValueError("Competitor identifier cannot be empty")
        previous_kind = seen.get(competitor.participant_id)
        if previous_kind == competitor.kind:
            raise PreconditionFailedError(
                f"Competitor {competitor.participant_id} is registered twice"
            )
        if previous_kind is not None:
            raise PreconditionFailedError(
                f"Competitor id {competitor.participant_id} is used by both a "
                f"{previous_kind} and a {competitor.kind}"
            )
        seen[competitor.participant_id] = competitor.kind
    return list(competitors)


__all__ = [
    "TournamentEngineError",
    "InvalidValueError",
    "NotFoundError",
    "UnauthorizedError",
    "InvalidWinnerError",
    "DuplicateSubmissionError",
    "AlreadyFinalizedError",
    "PreconditionFailedError",
    "InvalidTransitionError",
    "ConcurrentUpdateError",
    "normalize_identifier",
    "normalize_reporter_id",
    "validate_max_teams",
    "validate_round_labels",
    "parse_match_time",
    "validate_competitors",
]
