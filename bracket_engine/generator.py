from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import uuid4

from .bracket import max_competitors, opening_round_label, pair_round
from .models import (
    DEFAULT_ROUND_LABELS,
    Bracket,
    Match,
    ParticipantRef,
    Tournament,
    utc_now_iso,
)
from .reporters import ReporterPolicy
from .storage import TournamentStorage
from .transactions import run_optimistic
from .validation import (
    PreconditionFailedError,
    validate_competitors,
    validate_round_labels,
)

log = logging.getLogger(__name__)


class BracketGenerator:
    """One-time seeding of a tournament's bracket and its opening round."""

    def __init__(
        self,
        storage: TournamentStorage,
        policy: ReporterPolicy,
        *,
        min_competitors: int = 2,
        round_labels: Sequence[str] = DEFAULT_ROUND_LABELS,
        max_write_attempts: int = 5,
    ) -> None:
        self._storage = storage
        self._policy = policy
        self._min_competitors = max(2, min_competitors)
        self._labels = validate_round_labels(round_labels)
        self._attempts = max_write_attempts

    def generate(
        self, tournament_id: str, competitors: Sequence[ParticipantRef]
    ) -> Bracket:
        """Seed the bracket, or finish seeding one a failed call left behind.

        The tournament is claimed first. A claimed tournament whose bracket
        item or opening round is missing is resumed under the same bracket
        id; match keys are deterministic, so already written matches are
        skipped.
        """
        seeded = validate_competitors(
            competitors,
            minimum=self._min_competitors,
            maximum=max_competitors(self._labels),
        )
        now = utc_now_iso()
        new_bracket_id = uuid4().hex

        def claim(tournament: Tournament) -> tuple[tuple[str, bool], bool]:
            if tournament.bracket_id:
                if tournament.status == "active" and not self._is_seeded(
                    tournament.bracket_id
                ):
                    return (tournament.bracket_id, True), False
                raise PreconditionFailedError(
                    f"Tournament {tournament.tournament_id} already has bracket "
                    f"{tournament.bracket_id}"
                )
            if tournament.status not in ("open", "full"):
                raise PreconditionFailedError(
                    f"Tournament {tournament.tournament_id} is {tournament.status}"
                )
            tournament.bracket_id = new_bracket_id
            tournament.status = "active"
            tournament.updated_at = now
            return (new_bracket_id, False), True

        bracket_id, resumed = run_optimistic(
            lambda: self._storage.get_tournament(tournament_id),
            claim,
            self._storage.replace_tournament,
            attempts=self._attempts,
            describe=f"Tournament {tournament_id}",
        )
        if resumed:
            log.warning(
                "Resuming interrupted bracket %s for tournament %s",
                bracket_id,
                tournament_id,
            )

        bracket = self._storage.get_bracket(bracket_id)
        if bracket is None:
            bracket = Bracket(
                bracket_id=bracket_id,
                tournament_id=tournament_id,
                participants=list(seeded),
                status="active",
                round_labels=list(self._labels),
                created_at=now,
                updated_at=now,
            )
            if not self._storage.insert_bracket(bracket):
                # a concurrent resume stored it first; seed from its copy
                bracket = self._storage.get_bracket(bracket_id)
                if bracket is None:
                    raise PreconditionFailedError(
                        f"Bracket {bracket_id} could not be stored"
                    )

        matches = self._opening_matches(bracket)
        inserted = self._storage.insert_matches(matches)
        log.info(
            "Generated bracket %s for tournament %s: %s competitors, "
            "%s %s matches (%s new)",
            bracket_id,
            tournament_id,
            len(bracket.participants),
            len(matches),
            matches[0].round if matches else "-",
            inserted,
        )
        return bracket

    def _opening_matches(self, bracket: Bracket) -> list[Match]:
        opening = opening_round_label(
            bracket.round_labels, len(bracket.participants)
        )
        return pair_round(
            bracket.bracket_id,
            opening,
            bracket.participants,
            self._policy,
            created_at=bracket.created_at,
        )

    def _is_seeded(self, bracket_id: str) -> bool:
        """Whether the bracket item and its whole opening round are stored."""
        bracket = self._storage.get_bracket(bracket_id)
        if bracket is None:
            return False
        expected = self._opening_matches(bracket)
        if not expected:
            return True
        stored = self._storage.list_round_matches(bracket_id, expected[0].round)
        return len(stored) >= len(expected)


__all__ = ["BracketGenerator"]
