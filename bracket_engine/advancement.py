"""Round advancement.

Advancement is driven by "is this round fully completed" rather than by the
match that just finished, so any number of triggers for the same round
converge on one set of next-round matches. Next-round match keys are derived
from the bracket, round and position, and are inserted with conditional puts:
a concurrent invocation that loses the race finds its items already present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from .bracket import is_final_round, next_round_label, pair_round
from .completion import CompletionDetector, CompletionResult
from .models import Match, ParticipantRef, utc_now_iso
from .reporters import ReporterPolicy
from .storage import TournamentStorage
from .validation import NotFoundError, PreconditionFailedError

log = logging.getLogger(__name__)

AdvancementStatus = Literal["incomplete", "advanced", "already_advanced", "final"]


@dataclass(slots=True)
class AdvancementResult:
    status: AdvancementStatus
    round: str
    next_round: str | None = None
    created: list[Match] = field(default_factory=list)
    completion: CompletionResult | None = None


class RoundAdvancer:
    def __init__(
        self,
        storage: TournamentStorage,
        policy: ReporterPolicy,
        completion: CompletionDetector,
    ) -> None:
        self._storage = storage
        self._policy = policy
        self._completion = completion

    def advance(self, bracket_id: str, round_label: str) -> AdvancementResult:
        bracket = self._storage.get_bracket(bracket_id)
        if bracket is None:
            raise NotFoundError(f"Bracket {bracket_id} not found")

        matches = self._storage.list_round_matches(bracket_id, round_label)
        if not matches:
            raise NotFoundError(f"Round {round_label} of bracket {bracket_id} is empty")
        open_matches = [match for match in matches if match.status != "completed"]
        if open_matches:
            log.debug(
                "Round %s of bracket %s still has %s open matches",
                round_label,
                bracket_id,
                len(open_matches),
            )
            return AdvancementResult(status="incomplete", round=round_label)

        winners: list[ParticipantRef] = []
        for match in matches:
            if match.winner is None:
                raise PreconditionFailedError(
                    f"Completed match {match.match_id} has no winner recorded"
                )
            winners.append(match.winner)

        labels = bracket.round_labels
        if is_final_round(labels, round_label, len(winners)):
            if len(matches) != 1:
                raise PreconditionFailedError(
                    f"Final round {round_label} of bracket {bracket_id} "
                    f"produced {len(winners)} winners"
                )
            completion = self._completion.complete(bracket_id, matches[0])
            return AdvancementResult(
                status="final", round=round_label, completion=completion
            )

        next_label = next_round_label(labels, round_label, len(winners))
        if self._storage.list_round_matches(bracket_id, next_label):
            log.info(
                "Round %s of bracket %s already advanced to %s",
                round_label,
                bracket_id,
                next_label,
            )
            return AdvancementResult(
                status="already_advanced", round=round_label, next_round=next_label
            )

        pairings = pair_round(
            bracket_id,
            next_label,
            winners,
            self._policy,
            created_at=utc_now_iso(),
        )
        inserted = self._storage.insert_matches(pairings)
        if inserted == 0:
            return AdvancementResult(
                status="already_advanced", round=round_label, next_round=next_label
            )
        log.info(
            "Bracket %s advanced %s -> %s with %s matches",
            bracket_id,
            round_label,
            next_label,
            len(pairings),
        )
        return AdvancementResult(
            status="advanced",
            round=round_label,
            next_round=next_label,
            created=pairings,
        )


__all__ = ["AdvancementResult", "RoundAdvancer"]
