"""Entry point that wires the engine components around one storage backend."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .advancement import AdvancementResult, RoundAdvancer
from .bracket import find_duplicate_matches, group_by_round, render_bracket
from .completion import CompletionDetector, CompletionResult
from .config import EngineConfig
from .consensus import ResultConsensus, SubmissionOutcome
from .generator import BracketGenerator
from .models import Bracket, Match, ParticipantRef, Tournament, utc_now_iso
from .reporters import Authorizer, ReporterPolicy, build_reporter_policy
from .scheduling import MatchScheduler
from .storage import TournamentStorage
from .transactions import run_optimistic
from .validation import (
    NotFoundError,
    PreconditionFailedError,
    normalize_identifier,
    validate_max_teams,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class BracketSnapshot:
    bracket: Bracket
    matches: list[Match]

    def rounds(self) -> list[tuple[str, list[Match]]]:
        return group_by_round(self.bracket.round_labels, self.matches)

    def render(self) -> str:
        return render_bracket(self.bracket, self.matches)


class TournamentEngine:
    def __init__(
        self,
        storage: TournamentStorage,
        *,
        config: EngineConfig | None = None,
        policy: ReporterPolicy | None = None,
        authorizer: Authorizer | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.storage = storage
        self.policy = policy or build_reporter_policy(
            self.config, authorizer=authorizer
        )
        attempts = self.config.max_write_attempts
        self.completion = CompletionDetector(storage, max_write_attempts=attempts)
        self.advancer = RoundAdvancer(storage, self.policy, self.completion)
        self.consensus = ResultConsensus(
            storage, self.policy, self.advancer, max_write_attempts=attempts
        )
        self.generator = BracketGenerator(
            storage,
            self.policy,
            min_competitors=self.config.min_competitors,
            round_labels=self.config.round_labels,
            max_write_attempts=attempts,
        )
        self.scheduler = MatchScheduler(storage, max_write_attempts=attempts)

    # ----- Tournaments -----
    def create_tournament(
        self,
        tournament_id: str,
        game: str,
        max_teams: int,
        *,
        region: str | None = None,
    ) -> Tournament:
        identifier = normalize_identifier(tournament_id, label="Tournament id")
        now = utc_now_iso()
        tournament = Tournament(
            tournament_id=identifier,
            game=game.strip(),
            max_teams=validate_max_teams(max_teams),
            region=region.strip() if region else None,
            created_at=now,
            updated_at=now,
        )
        if not self.storage.insert_tournament(tournament):
            raise PreconditionFailedError(f"Tournament {identifier} already exists")
        log.info(
            "Created tournament %s (%s, %s teams)",
            identifier,
            tournament.game,
            max_teams,
        )
        return tournament

    def register_competitor(self, tournament_id: str) -> Tournament:
        """Count one more registration against the tournament's capacity."""

        def register(tournament: Tournament) -> tuple[Tournament, bool]:
            if tournament.status != "open":
                raise PreconditionFailedError(
                    f"Tournament {tournament.tournament_id} is {tournament.status}; "
                    "registration is closed"
                )
            if tournament.registered_teams >= tournament.max_teams:
                raise PreconditionFailedError(
                    f"Tournament {tournament.tournament_id} is full"
                )
            tournament.registered_teams += 1
            if tournament.registered_teams >= tournament.max_teams:
                tournament.status = "full"
            tournament.updated_at = utc_now_iso()
            return tournament, True

        tournament = run_optimistic(
            lambda: self.storage.get_tournament(tournament_id),
            register,
            self.storage.replace_tournament,
            attempts=self.config.max_write_attempts,
            describe=f"Tournament {tournament_id}",
        )
        log.info(
            "Tournament %s registrations: %s/%s",
            tournament.tournament_id,
            tournament.registered_teams,
            tournament.max_teams,
        )
        return tournament

    def generate_bracket(
        self, tournament_id: str, competitors: Sequence[ParticipantRef]
    ) -> Bracket:
        return self.generator.generate(tournament_id, competitors)

    # ----- Matches -----
    def submit_result(
        self,
        match_id: str,
        submitter_id: str,
        claimed_winner_id: str,
        notes: str = "",
        *,
        region: str | None = None,
    ) -> SubmissionOutcome:
        return self.consensus.submit(
            match_id, submitter_id, claimed_winner_id, notes, region=region
        )

    def propose_time(self, match_id: str, proposer_id: str, when: str) -> Match:
        return self.scheduler.propose_time(match_id, proposer_id, when)

    def approve_time(self, match_id: str, approver_id: str) -> Match:
        return self.scheduler.approve_time(match_id, approver_id)

    def start_match(self, match_id: str) -> Match:
        return self.scheduler.start_match(match_id)

    def resolve_conflict(
        self, match_id: str, admin_id: str, winner_id: str, notes: str = ""
    ) -> tuple[Match, AdvancementResult]:
        return self.consensus.adjudicate(match_id, admin_id, winner_id, notes)

    # ----- Brackets -----
    def advance_round(self, bracket_id: str, round_label: str) -> AdvancementResult:
        return self.advancer.advance(bracket_id, round_label)

    def complete_tournament(self, bracket_id: str) -> CompletionResult:
        """Re-run completion for a bracket whose final has been decided."""
        snapshot = self.bracket_snapshot(bracket_id)
        rounds = snapshot.rounds()
        if not rounds:
            raise PreconditionFailedError(f"Bracket {bracket_id} has no matches")
        label, final_round = rounds[-1]
        if len(final_round) != 1 or final_round[0].status != "completed":
            raise PreconditionFailedError(
                f"Round {label} of bracket {bracket_id} has not produced a champion"
            )
        return self.completion.complete(bracket_id, final_round[0])

    def bracket_snapshot(self, bracket_id: str) -> BracketSnapshot:
        bracket = self.storage.get_bracket(bracket_id)
        if bracket is None:
            raise NotFoundError(f"Bracket {bracket_id} not found")
        return BracketSnapshot(
            bracket=bracket, matches=self.storage.list_bracket_matches(bracket_id)
        )

    def cleanup_duplicates(
        self, bracket_id: str, *, execute: bool = False
    ) -> list[Match]:
        """Find (and with ``execute`` delete) matches re-pairing a competitor."""
        snapshot = self.bracket_snapshot(bracket_id)
        duplicates = find_duplicate_matches(
            snapshot.bracket.round_labels, snapshot.matches
        )
        for match in duplicates:
            log.info(
                "%s duplicate match %s (%s)",
                "Deleting" if execute else "Would delete",
                match.match_id,
                match.display(),
            )
        if execute and duplicates:
            deleted = self.storage.delete_matches(duplicates)
            log.info(
                "Deleted %s duplicate matches from bracket %s", deleted, bracket_id
            )
        return duplicates


__all__ = ["BracketSnapshot", "TournamentEngine"]
