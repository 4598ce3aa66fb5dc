"""Who may attest to a match result, and how many attestations settle it.

Both reporting variants share one consensus procedure. A policy only decides
which *parties* a match needs to hear from (stored on the match as
``Match.reporters``) and which party, if any, a submitter speaks for. A party
listed twice needs two attestations.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import ClassVar

from .config import EngineConfig
from .models import Match, MatchStatus, ParticipantRef

log = logging.getLogger(__name__)

# (match, submitter_id, party) -> whether the submitter may speak for party
Authorizer = Callable[[Match, str, str], bool]

DEFAULT_HOST_REGION = "global"


class ReporterPolicy(ABC):
    mode: ClassVar[str] = ""
    pending_status: ClassVar[MatchStatus | None] = None
    conflict_status: ClassVar[MatchStatus] = "results_conflict"

    def __init__(
        self,
        *,
        required_reporters: int = 2,
        authorizer: Authorizer | None = None,
    ) -> None:
        if required_reporters < 1:
            raise ValueError("required_reporters must be at least 1")
        self.required_reporters = required_reporters
        self._authorizer = authorizer

    @abstractmethod
    def designate(
        self,
        competitor_one: ParticipantRef | None,
        competitor_two: ParticipantRef | None,
    ) -> list[str]:
        """Parties that must attest to a match between these competitors."""

    @abstractmethod
    def resolve_party(
        self, match: Match, submitter_id: str, region: str | None = None
    ) -> str | None:
        """Party ``submitter_id`` speaks for in ``match``, or ``None``."""

    def required_count(self, match: Match) -> int:
        if not match.reporters:
            return self.required_reporters
        return min(self.required_reporters, len(match.reporters))

    def seats_left(self, match: Match, party: str) -> int:
        """Attestations ``party`` may still add to ``match``."""
        allowed = match.reporters.count(party)
        used = sum(1 for entry in match.submissions if entry.party == party)
        return allowed - used

    def _authorized(self, match: Match, submitter_id: str, party: str) -> bool:
        if self._authorizer is None:
            return False
        return bool(self._authorizer(match, submitter_id, party))


class SelfReportPolicy(ReporterPolicy):
    """Each competitor reports through its own organizer or clan leader."""

    mode = "self_report"
    pending_status = "results_pending"
    conflict_status = "results_conflict"

    def designate(
        self,
        competitor_one: ParticipantRef | None,
        competitor_two: ParticipantRef | None,
    ) -> list[str]:
        return [
            slot.participant_id
            for slot in (competitor_one, competitor_two)
            if slot is not None
        ]

    def resolve_party(
        self, match: Match, submitter_id: str, region: str | None = None
    ) -> str | None:
        del region
        for competitor in match.competitors():
            if submitter_id in competitor.reporters:
                return competitor.participant_id
        for competitor in match.competitors():
            if self._authorized(match, submitter_id, competitor.participant_id):
                return competitor.participant_id
        return None


class HostConfirmationPolicy(ReporterPolicy):
    """Regional hosts attest for the competitors from their region."""

    mode = "host_confirmation"
    pending_status = None
    conflict_status = "disputed"

    def __init__(
        self,
        *,
        required_reporters: int = 2,
        authorizer: Authorizer | None = None,
        default_region: str = DEFAULT_HOST_REGION,
    ) -> None:
        super().__init__(required_reporters=required_reporters, authorizer=authorizer)
        self.default_region = default_region

    def designate(
        self,
        competitor_one: ParticipantRef | None,
        competitor_two: ParticipantRef | None,
    ) -> list[str]:
        return [
            slot.region or self.default_region
            for slot in (competitor_one, competitor_two)
            if slot is not None
        ]

    def resolve_party(
        self, match: Match, submitter_id: str, region: str | None = None
    ) -> str | None:
        if region is None or region not in match.reporters:
            return None
        if not self._authorized(match, submitter_id, region):
            log.info(
                "Submitter %s is not a host of %s for match %s",
                submitter_id,
                region,
                match.match_id,
            )
            return None
        return region


def host_region_authorizer(hosts: Iterable[tuple[str, str]]) -> Authorizer:
    """Authorize submitters listed as hosts of the region they attest for."""
    allowed = {(host.strip().lower(), region.strip()) for host, region in hosts}

    def authorize(_match: Match, submitter_id: str, region: str) -> bool:
        return (submitter_id, region) in allowed

    return authorize


def build_reporter_policy(
    config: EngineConfig, *, authorizer: Authorizer | None = None
) -> ReporterPolicy:
    if config.consensus_mode == "host_confirmation":
        if authorizer is None:
            if not config.result_hosts:
                log.warning(
                    "Host confirmation enabled without RESULT_HOSTS; "
                    "every attestation will be rejected"
                )
            authorizer = host_region_authorizer(config.result_hosts)
        return HostConfirmationPolicy(
            required_reporters=config.required_reporters, authorizer=authorizer
        )
    return SelfReportPolicy(
        required_reporters=config.required_reporters, authorizer=authorizer
    )


__all__ = [
    "Authorizer",
    "ReporterPolicy",
    "SelfReportPolicy",
    "HostConfirmationPolicy",
    "build_reporter_policy",
    "host_region_authorizer",
]
