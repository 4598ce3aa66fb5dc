"""Two-sided agreement on when a match is played.

One competitor proposes a time and the opposing competitor approves it. Only
the latest proposal is kept; proposing again replaces it.
"""

from __future__ import annotations

import logging

from .models import Match, ParticipantRef
from .states import transition
from .storage import TournamentStorage
from .transactions import run_optimistic
from .validation import (
    InvalidTransitionError,
    PreconditionFailedError,
    UnauthorizedError,
    normalize_reporter_id,
    parse_match_time,
)

log = logging.getLogger(__name__)

_PROPOSABLE_STATUSES = frozenset({"pending", "scheduled"})
_STARTABLE_STATUSES = frozenset({"scheduled", "ready"})


def _competitor_for(match: Match, reporter_id: str) -> ParticipantRef | None:
    for competitor in match.competitors():
        if reporter_id in competitor.reporters:
            return competitor
    return None


class MatchScheduler:
    def __init__(self, storage: TournamentStorage, *, max_write_attempts: int = 5):
        self._storage = storage
        self._attempts = max_write_attempts

    def _update(self, match_id: str, mutate) -> Match:
        return run_optimistic(
            lambda: self._storage.get_match(match_id),
            mutate,
            self._storage.replace_match,
            attempts=self._attempts,
            describe=f"Match {match_id}",
        )

    def propose_time(self, match_id: str, proposer_id: str, when: str) -> Match:
        proposer = normalize_reporter_id(proposer_id)
        proposed_at = parse_match_time(when)

        def propose(match: Match) -> tuple[Match, bool]:
            if match.status not in _PROPOSABLE_STATUSES:
                raise PreconditionFailedError(
                    f"Match {match.match_id} is {match.status}; times can only be "
                    "proposed before play starts"
                )
            if len(match.competitors()) < 2:
                raise PreconditionFailedError(
                    f"Match {match.match_id} has no opponent to schedule against"
                )
            if _competitor_for(match, proposer) is None:
                raise UnauthorizedError(
                    f"{proposer} does not represent a competitor "
                    f"in match {match.match_id}"
                )
            match.proposed_at = proposed_at
            match.proposed_by = proposer
            return match, True

        match = self._update(match_id, propose)
        log.info(
            "Match %s: %s proposed %s", match.match_id, proposer, match.proposed_at
        )
        return match

    def approve_time(self, match_id: str, approver_id: str) -> Match:
        approver = normalize_reporter_id(approver_id)

        def approve(match: Match) -> tuple[Match, bool]:
            if match.proposed_at is None or match.proposed_by is None:
                raise PreconditionFailedError(
                    f"No pending time proposal found for match {match.match_id}"
                )
            approving_side = _competitor_for(match, approver)
            if approving_side is None:
                raise UnauthorizedError(
                    f"{approver} is not authorized to approve match {match.match_id}"
                )
            proposing_side = _competitor_for(match, match.proposed_by)
            if approver == match.proposed_by or approving_side.same_as(proposing_side):
                raise UnauthorizedError(
                    "The opposing competitor must approve the proposed time"
                )
            transition(match, "scheduled")
            match.scheduled_at = match.proposed_at
            match.proposed_at = None
            match.proposed_by = None
            return match, True

        match = self._update(match_id, approve)
        log.info(
            "Match %s scheduled for %s (approved by %s)",
            match.match_id,
            match.scheduled_at,
            approver,
        )
        return match

    def start_match(self, match_id: str) -> Match:
        def start(match: Match) -> tuple[Match, bool]:
            if match.status not in _STARTABLE_STATUSES:
                raise InvalidTransitionError(
                    f"Match {match.match_id} is {match.status}; only scheduled "
                    "matches can start"
                )
            transition(match, "awaiting_results")
            return match, True

        return self._update(match_id, start)


__all__ = ["MatchScheduler"]
