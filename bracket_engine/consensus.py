"""Result consensus.

Every designated reporting party attests once to a match's winner. The result
becomes authoritative only when all required attestations are in and agree;
any disagreement parks the match in a conflict state with both claims kept
verbatim for manual adjudication.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from .advancement import AdvancementResult, RoundAdvancer
from .models import (
    CONFLICT_MATCH_STATUSES,
    ConflictRecord,
    Match,
    ResultSubmission,
    utc_now_iso,
)
from .reporters import ReporterPolicy
from .states import complete_with_winner, transition
from .storage import TournamentStorage
from .transactions import run_optimistic
from .validation import (
    AlreadyFinalizedError,
    DuplicateSubmissionError,
    InvalidValueError,
    InvalidWinnerError,
    NotFoundError,
    UnauthorizedError,
    normalize_reporter_id,
)

log = logging.getLogger(__name__)

SubmissionStatus = Literal["pending", "completed", "conflict", "rejected"]

REJECTIONS = (
    NotFoundError,
    UnauthorizedError,
    DuplicateSubmissionError,
    AlreadyFinalizedError,
    InvalidWinnerError,
    InvalidValueError,
)


@dataclass(slots=True)
class SubmissionOutcome:
    """Return object describing what a result submission did to its match."""

    status: SubmissionStatus
    message: str
    match: Match | None = None
    reason: str | None = None
    advancement: AdvancementResult | None = None


class ResultConsensus:
    def __init__(
        self,
        storage: TournamentStorage,
        policy: ReporterPolicy,
        advancer: RoundAdvancer,
        *,
        max_write_attempts: int = 5,
    ) -> None:
        self._storage = storage
        self._policy = policy
        self._advancer = advancer
        self._attempts = max_write_attempts

    def submit(
        self,
        match_id: str,
        submitter_id: str,
        claimed_winner_id: str,
        notes: str = "",
        *,
        region: str | None = None,
    ) -> SubmissionOutcome:
        try:
            submitter = normalize_reporter_id(submitter_id)
            outcome = run_optimistic(
                lambda: self._storage.get_match(match_id),
                lambda match: self._record(
                    match, submitter, claimed_winner_id.strip(), notes, region
                ),
                self._storage.replace_match,
                attempts=self._attempts,
                describe=f"Match {match_id}",
            )
        except REJECTIONS as exc:
            log.warning(
                "Rejected result for match %s from %s: %s",
                match_id,
                submitter_id,
                exc,
            )
            return SubmissionOutcome(
                status="rejected", message=str(exc), reason=exc.reason
            )

        if outcome.status == "completed" and outcome.match is not None:
            outcome.advancement = self._advancer.advance(
                outcome.match.bracket_id, outcome.match.round
            )
        return outcome

    def _record(
        self,
        match: Match,
        submitter: str,
        claimed_winner_id: str,
        notes: str,
        region: str | None,
    ) -> tuple[SubmissionOutcome, bool]:
        party = self._policy.resolve_party(match, submitter, region)
        if party is None:
            raise UnauthorizedError(
                f"{submitter} is not a designated reporter for match {match.match_id}"
            )
        already_spoken = submitter in match.submitter_ids()
        if already_spoken or self._policy.seats_left(match, party) <= 0:
            raise DuplicateSubmissionError(
                f"Results for match {match.match_id} were already submitted "
                f"on behalf of {party}"
            )
        if match.status == "completed" or match.status in CONFLICT_MATCH_STATUSES:
            raise AlreadyFinalizedError(
                f"Match {match.match_id} is {match.status}; no further results accepted"
            )
        winner = match.competitor_by_id(claimed_winner_id)
        if winner is None:
            raise InvalidWinnerError(
                "Winner must be one of the competitors in this match"
            )

        now = utc_now_iso()
        match.submissions.append(
            ResultSubmission(
                submitter_id=submitter,
                claimed_winner_id=winner.participant_id,
                submitted_at=now,
                party=party,
                notes=notes.strip(),
            )
        )

        required = self._policy.required_count(match)
        if len(match.submissions) < required:
            pending_status = self._policy.pending_status
            if pending_status is not None and match.status != pending_status:
                transition(match, pending_status)
            waiting = [
                entry
                for entry in dict.fromkeys(match.reporters)
                if self._policy.seats_left(match, entry) > 0
            ]
            return (
                SubmissionOutcome(
                    status="pending",
                    message=(
                        "Results submitted. Waiting for confirmation from "
                        + ", ".join(waiting)
                    ),
                    match=match,
                ),
                True,
            )

        claims = {entry.claimed_winner_id for entry in match.submissions}
        if len(claims) == 1:
            complete_with_winner(match, winner, completed_at=now)
            log.info(
                "Match %s confirmed by %s reporters: winner %s",
                match.match_id,
                len(match.submissions),
                winner.participant_id,
            )
            return (
                SubmissionOutcome(
                    status="completed",
                    message="Match results confirmed - all reporters agree",
                    match=match,
                ),
                True,
            )

        transition(match, self._policy.conflict_status)
        match.conflict = ConflictRecord(
            submissions=[
                ResultSubmission.from_dict(entry.to_dict())
                for entry in match.submissions
            ],
            detected_at=now,
        )
        log.warning(
            "Match %s results conflict: %s",
            match.match_id,
            ", ".join(
                f"{entry.submitter_id}={entry.claimed_winner_id}"
                for entry in match.submissions
            ),
        )
        return (
            SubmissionOutcome(
                status="conflict",
                message="Reporters disagree - admin review required",
                match=match,
            ),
            True,
        )

    def adjudicate(
        self, match_id: str, admin_id: str, winner_id: str, notes: str = ""
    ) -> tuple[Match, AdvancementResult]:
        """Settle a match by administrator decision and advance its round."""
        admin = normalize_reporter_id(admin_id)

        def settle(match: Match) -> tuple[Match, bool]:
            if match.status == "completed":
                raise AlreadyFinalizedError(
                    f"Match {match.match_id} is already completed"
                )
            winner = match.competitor_by_id(winner_id.strip())
            if winner is None:
                raise InvalidWinnerError(
                    "Winner must be one of the competitors in this match"
                )
            complete_with_winner(match, winner)
            match.resolved_by = admin
            if notes.strip():
                log.info("Match %s resolution notes: %s", match.match_id, notes.strip())
            return match, True

        match = run_optimistic(
            lambda: self._storage.get_match(match_id),
            settle,
            self._storage.replace_match,
            attempts=self._attempts,
            describe=f"Match {match_id}",
        )
        log.info(
            "Match %s resolved by %s: winner %s",
            match.match_id,
            admin,
            match.winner.participant_id if match.winner else None,
        )
        return match, self._advancer.advance(match.bracket_id, match.round)


__all__ = ["ResultConsensus", "SubmissionOutcome", "SubmissionStatus"]
