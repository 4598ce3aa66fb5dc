"""Finalize a bracket and its tournament once the final has a winner."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .models import Bracket, Match, Tournament, utc_now_iso
from .storage import TournamentStorage
from .transactions import run_optimistic
from .validation import NotFoundError, PreconditionFailedError

log = logging.getLogger(__name__)


@dataclass(slots=True)
class CompletionResult:
    """``completed`` is true only for the call that finalized the tournament."""

    completed: bool
    tournament: Tournament
    bracket: Bracket


class CompletionDetector:
    def __init__(self, storage: TournamentStorage, *, max_write_attempts: int = 5):
        self._storage = storage
        self._attempts = max_write_attempts

    def complete(self, bracket_id: str, final_match: Match) -> CompletionResult:
        if final_match.status != "completed" or final_match.winner is None:
            raise PreconditionFailedError(
                f"Final match {final_match.match_id} has no authoritative winner"
            )
        champion = final_match.winner
        runner_up = final_match.loser
        now = utc_now_iso()

        def close_bracket(bracket: Bracket) -> tuple[Bracket, bool]:
            if bracket.status == "completed":
                return bracket, False
            bracket.status = "completed"
            bracket.winner = champion
            bracket.updated_at = now
            return bracket, True

        bracket = run_optimistic(
            lambda: self._storage.get_bracket(bracket_id),
            close_bracket,
            self._storage.replace_bracket,
            attempts=self._attempts,
            describe=f"bracket {bracket_id}",
        )

        def close_tournament(
            tournament: Tournament,
        ) -> tuple[tuple[Tournament, bool], bool]:
            if tournament.status == "completed":
                return (tournament, False), False
            tournament.status = "completed"
            tournament.winner = champion
            tournament.runner_up = runner_up
            tournament.completed_at = now
            tournament.updated_at = now
            return (tournament, True), True

        if not bracket.tournament_id:
            raise NotFoundError(f"Bracket {bracket_id} has no owning tournament")
        tournament, finalized = run_optimistic(
            lambda: self._storage.get_tournament(bracket.tournament_id),
            close_tournament,
            self._storage.replace_tournament,
            attempts=self._attempts,
            describe=f"tournament {bracket.tournament_id}",
        )
        if finalized:
            log.info(
                "Tournament %s completed: winner %s, runner-up %s",
                tournament.tournament_id,
                champion.participant_id,
                runner_up.participant_id if runner_up else None,
            )
        else:
            log.info(
                "Tournament %s already completed; leaving winner %s in place",
                tournament.tournament_id,
                tournament.winner.participant_id if tournament.winner else None,
            )
        return CompletionResult(
            completed=finalized, tournament=tournament, bracket=bracket
        )


__all__ = ["CompletionDetector", "CompletionResult"]
