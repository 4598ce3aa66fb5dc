"""Match lifecycle transitions."""

from __future__ import annotations

import logging

from .models import Match, MatchStatus, ParticipantRef, utc_now_iso
from .validation import InvalidTransitionError, InvalidWinnerError

log = logging.getLogger(__name__)

_RESULT_STATES: frozenset[str] = frozenset(
    {"results_pending", "results_conflict", "disputed", "completed"}
)

TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"scheduled"} | _RESULT_STATES),
    "scheduled": frozenset({"scheduled", "ready", "active", "awaiting_results"})
    | _RESULT_STATES,
    "ready": frozenset({"active", "awaiting_results"}) | _RESULT_STATES,
    "active": frozenset({"awaiting_results"}) | _RESULT_STATES,
    "awaiting_results": _RESULT_STATES,
    "results_pending": _RESULT_STATES,
    "results_conflict": frozenset({"completed"}),
    "disputed": frozenset({"completed"}),
    "completed": frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(match: Match, target: MatchStatus) -> None:
    if not can_transition(match.status, target):
        raise InvalidTransitionError(
            f"Match {match.match_id} cannot move from {match.status} to {target}"
        )


def transition(match: Match, target: MatchStatus) -> None:
    ensure_transition(match, target)
    if match.status != target:
        log.info("Match %s: %s -> %s", match.match_id, match.status, target)
    match.status = target


def complete_with_winner(
    match: Match, winner: ParticipantRef, *, completed_at: str | None = None
) -> None:
    """Record ``winner`` and close the match.

    The winner must occupy one of the match's two slots; the loser is the
    other slot (``None`` for a bye).
    """
    slot = match.competitor_by_id(winner.participant_id)
    if slot is None or not slot.same_as(winner):
        raise InvalidWinnerError(
            f"{winner.participant_id} is not a competitor in match {match.match_id}"
        )
    transition(match, "completed")
    match.winner = slot
    match.loser = match.opponent_of(slot)
    match.completed_at = completed_at or utc_now_iso()


def build_bye_match(
    bracket_id: str,
    round_label: str,
    position: int,
    competitor: ParticipantRef,
    *,
    created_at: str,
) -> Match:
    """Return a match that is already completed with its lone competitor."""
    match = Match(
        bracket_id=bracket_id,
        round=round_label,
        position=position,
        competitor_one=competitor,
        competitor_two=None,
        created_at=created_at,
    )
    complete_with_winner(match, competitor, completed_at=created_at)
    return match


__all__ = [
    "TRANSITIONS",
    "can_transition",
    "ensure_transition",
    "transition",
    "complete_with_winner",
    "build_bye_match",
]
