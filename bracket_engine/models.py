from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar, Literal

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

ParticipantKind = Literal["team", "clan"]
TournamentStatus = Literal["open", "full", "active", "completed"]
BracketStatus = Literal["pending", "active", "completed"]
MatchStatus = Literal[
    "pending",
    "scheduled",
    "ready",
    "active",
    "awaiting_results",
    "results_pending",
    "results_conflict",
    "disputed",
    "completed",
]

OPEN_MATCH_STATUSES: frozenset[str] = frozenset(
    {
        "pending",
        "scheduled",
        "ready",
        "active",
        "awaiting_results",
        "results_pending",
    }
)
CONFLICT_MATCH_STATUSES: frozenset[str] = frozenset({"results_conflict", "disputed"})

DEFAULT_ROUND_LABELS: tuple[str, ...] = (
    "first",
    "round_of_64",
    "round_of_32",
    "round_of_16",
    "quarter",
    "semi",
    "final",
)


def utc_now_iso() -> str:
    """UTC now, formatted for storage."""
    return datetime.now(UTC).strftime(ISO_FORMAT)


def _optional_str(value: object) -> str | None:
    if value in (None, "", "None"):
        return None
    return str(value)


def _str_list(value: object) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(entry) for entry in value]


def _dict_list(value: object) -> list[dict[str, object]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


@dataclass(slots=True)
class ParticipantRef:
    """Canonical reference to a competitor, whatever format it registered in."""

    kind: ParticipantKind
    participant_id: str
    label: str
    reporters: list[str] = field(default_factory=list)
    region: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "kind": self.kind,
            "participant_id": self.participant_id,
            "label": self.label,
        }
        if self.reporters:
            data["reporters"] = list(self.reporters)
        if self.region is not None:
            data["region"] = self.region
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ParticipantRef:
        kind = str(data.get("kind", "team"))
        return cls(
            kind="clan" if kind == "clan" else "team",
            participant_id=str(data.get("participant_id", "")),
            label=str(data.get("label", "")),
            reporters=_str_list(data.get("reporters")),
            region=_optional_str(data.get("region")),
        )

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> ParticipantRef:
        """Normalize a team-format or clan-format registration payload.

        Team payloads carry ``id``/``name``/``organizer``; clan payloads carry
        ``clanId``/``name``/``leader`` and optionally a hosting ``region``.
        """
        region = _optional_str(payload.get("region"))
        clan_id = payload.get("clanId") or payload.get("clan_id")
        if clan_id is not None:
            leader = payload.get("leader")
            return cls(
                kind="clan",
                participant_id=str(clan_id),
                label=str(payload.get("name") or payload.get("tag") or clan_id),
                reporters=[str(leader).lower()] if leader else [],
                region=region,
            )
        team_id = payload.get("id") or payload.get("team_id") or payload.get("_id")
        if team_id is None:
            raise ValueError("Participant payload has no team or clan identifier")
        organizer = payload.get("organizer")
        return cls(
            kind="team",
            participant_id=str(team_id),
            label=str(payload.get("name") or team_id),
            reporters=[str(organizer).lower()] if organizer else [],
            region=region,
        )

    def same_as(self, other: ParticipantRef | None) -> bool:
        if other is None:
            return False
        return self.kind == other.kind and self.participant_id == other.participant_id

    def display(self) -> str:
        return self.label or self.participant_id


@dataclass(slots=True)
class ResultSubmission:
    submitter_id: str
    claimed_winner_id: str
    submitted_at: str
    party: str
    notes: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "submitter_id": self.submitter_id,
            "claimed_winner_id": self.claimed_winner_id,
            "submitted_at": self.submitted_at,
            "party": self.party,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ResultSubmission:
        return cls(
            submitter_id=str(data.get("submitter_id", "")),
            claimed_winner_id=str(data.get("claimed_winner_id", "")),
            submitted_at=str(data.get("submitted_at", "")),
            party=str(data.get("party", "")),
            notes=str(data.get("notes", "")),
        )


@dataclass(slots=True)
class ConflictRecord:
    submissions: list[ResultSubmission]
    detected_at: str

    def to_dict(self) -> dict[str, object]:
        return {
            "submissions": [entry.to_dict() for entry in self.submissions],
            "detected_at": self.detected_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ConflictRecord:
        return cls(
            submissions=[
                ResultSubmission.from_dict(entry)
                for entry in _dict_list(data.get("submissions"))
            ],
            detected_at=str(data.get("detected_at", "")),
        )


@dataclass(slots=True)
class Tournament:
    tournament_id: str
    game: str
    max_teams: int
    registered_teams: int = 0
    status: TournamentStatus = "open"
    region: str | None = None
    bracket_id: str | None = None
    winner: ParticipantRef | None = None
    runner_up: ParticipantRef | None = None
    completed_at: str | None = None
    created_at: str = ""
    updated_at: str = ""
    version: int = 0

    PK_TEMPLATE: ClassVar[str] = "TOURNAMENT#%s"
    SK_VALUE: ClassVar[str] = "META"

    @classmethod
    def key(cls, tournament_id: str) -> dict[str, str]:
        return {"pk": cls.PK_TEMPLATE % tournament_id, "sk": cls.SK_VALUE}

    def to_item(self) -> dict[str, object]:
        item = self.key(self.tournament_id)
        item.update(
            {
                "tournament_id": self.tournament_id,
                "game": self.game,
                "max_teams": self.max_teams,
                "registered_teams": self.registered_teams,
                "status": self.status,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
                "version": self.version,
            }
        )
        if self.region is not None:
            item["region"] = self.region
        if self.bracket_id is not None:
            item["bracket_id"] = self.bracket_id
        if self.winner is not None:
            item["winner"] = self.winner.to_dict()
        if self.runner_up is not None:
            item["runner_up"] = self.runner_up.to_dict()
        if self.completed_at is not None:
            item["completed_at"] = self.completed_at
        return item

    @classmethod
    def from_item(cls, item: dict[str, object]) -> Tournament:
        tournament_id = str(
            item.get("tournament_id") or str(item["pk"]).split("#", 1)[1]
        )
        winner_data = item.get("winner")
        runner_up_data = item.get("runner_up")
        return cls(
            tournament_id=tournament_id,
            game=str(item.get("game", "")),
            max_teams=_as_int(item.get("max_teams")),
            registered_teams=_as_int(item.get("registered_teams")),
            status=str(item.get("status", "open")),  # type: ignore[arg-type]
            region=_optional_str(item.get("region")),
            bracket_id=_optional_str(item.get("bracket_id")),
            winner=(
                ParticipantRef.from_dict(winner_data)  # type: ignore[arg-type]
                if isinstance(winner_data, dict)
                else None
            ),
            runner_up=(
                ParticipantRef.from_dict(runner_up_data)  # type: ignore[arg-type]
                if isinstance(runner_up_data, dict)
                else None
            ),
            completed_at=_optional_str(item.get("completed_at")),
            created_at=str(item.get("created_at", "")),
            updated_at=str(item.get("updated_at", "")),
            version=_as_int(item.get("version")),
        )


@dataclass(slots=True)
class Bracket:
    bracket_id: str
    tournament_id: str
    participants: list[ParticipantRef]
    status: BracketStatus = "pending"
    round_labels: list[str] = field(default_factory=lambda: list(DEFAULT_ROUND_LABELS))
    winner: ParticipantRef | None = None
    created_at: str = ""
    updated_at: str = ""
    version: int = 0

    PK_TEMPLATE: ClassVar[str] = "BRACKET#%s"
    SK_VALUE: ClassVar[str] = "META"

    @classmethod
    def key(cls, bracket_id: str) -> dict[str, str]:
        return {"pk": cls.PK_TEMPLATE % bracket_id, "sk": cls.SK_VALUE}

    def to_item(self) -> dict[str, object]:
        item = self.key(self.bracket_id)
        item.update(
            {
                "bracket_id": self.bracket_id,
                "tournament_id": self.tournament_id,
                "participants": [entry.to_dict() for entry in self.participants],
                "status": self.status,
                "round_labels": list(self.round_labels),
                "created_at": self.created_at,
                "updated_at": self.updated_at,
                "version": self.version,
            }
        )
        if self.winner is not None:
            item["winner"] = self.winner.to_dict()
        return item

    @classmethod
    def from_item(cls, item: dict[str, object]) -> Bracket:
        bracket_id = str(item.get("bracket_id") or str(item["pk"]).split("#", 1)[1])
        winner_data = item.get("winner")
        return cls(
            bracket_id=bracket_id,
            tournament_id=str(item.get("tournament_id", "")),
            participants=[
                ParticipantRef.from_dict(entry)
                for entry in _dict_list(item.get("participants"))
            ],
            status=str(item.get("status", "pending")),  # type: ignore[arg-type]
            round_labels=_str_list(item.get("round_labels"))
            or list(DEFAULT_ROUND_LABELS),
            winner=(
                ParticipantRef.from_dict(winner_data)  # type: ignore[arg-type]
                if isinstance(winner_data, dict)
                else None
            ),
            created_at=str(item.get("created_at", "")),
            updated_at=str(item.get("updated_at", "")),
            version=_as_int(item.get("version")),
        )


@dataclass(slots=True)
class Match:
    bracket_id: str
    round: str
    position: int
    competitor_one: ParticipantRef | None
    competitor_two: ParticipantRef | None
    status: MatchStatus = "pending"
    reporters: list[str] = field(default_factory=list)
    submissions: list[ResultSubmission] = field(default_factory=list)
    winner: ParticipantRef | None = None
    loser: ParticipantRef | None = None
    conflict: ConflictRecord | None = None
    scheduled_at: str | None = None
    proposed_at: str | None = None
    proposed_by: str | None = None
    resolved_by: str | None = None
    created_at: str = ""
    completed_at: str | None = None
    version: int = 0

    PK_TEMPLATE: ClassVar[str] = "BRACKET#%s"
    SK_TEMPLATE: ClassVar[str] = "ROUND#%s#MATCH#%03d"
    SK_ROUND_PREFIX: ClassVar[str] = "ROUND#%s#MATCH#"
    ID_SEPARATOR: ClassVar[str] = ":"

    @classmethod
    def key(cls, bracket_id: str, round_label: str, position: int) -> dict[str, str]:
        return {
            "pk": cls.PK_TEMPLATE % bracket_id,
            "sk": cls.SK_TEMPLATE % (round_label, position),
        }

    @classmethod
    def build_id(cls, bracket_id: str, round_label: str, position: int) -> str:
        return cls.ID_SEPARATOR.join((bracket_id, round_label, str(position)))

    @classmethod
    def parse_id(cls, match_id: str) -> tuple[str, str, int]:
        """Split a match id into ``(bracket_id, round, position)``."""
        parts = match_id.rsplit(cls.ID_SEPARATOR, 2)
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Malformed match id: {match_id!r}")
        try:
            position = int(parts[2])
        except ValueError as exc:
            raise ValueError(f"Malformed match id: {match_id!r}") from exc
        return parts[0], parts[1], position

    @property
    def match_id(self) -> str:
        return self.build_id(self.bracket_id, self.round, self.position)

    def to_item(self) -> dict[str, object]:
        item = self.key(self.bracket_id, self.round, self.position)
        item.update(
            {
                "match_id": self.match_id,
                "bracket_id": self.bracket_id,
                "round": self.round,
                "position": self.position,
                "status": self.status,
                "reporters": list(self.reporters),
                "submissions": [entry.to_dict() for entry in self.submissions],
                "created_at": self.created_at,
                "version": self.version,
            }
        )
        optional: dict[str, object | None] = {
            "competitor_one": (
                self.competitor_one.to_dict() if self.competitor_one else None
            ),
            "competitor_two": (
                self.competitor_two.to_dict() if self.competitor_two else None
            ),
            "winner": self.winner.to_dict() if self.winner else None,
            "loser": self.loser.to_dict() if self.loser else None,
            "conflict": self.conflict.to_dict() if self.conflict else None,
            "scheduled_at": self.scheduled_at,
            "proposed_at": self.proposed_at,
            "proposed_by": self.proposed_by,
            "resolved_by": self.resolved_by,
            "completed_at": self.completed_at,
        }
        for name, value in optional.items():
            if value is not None:
                item[name] = value
        return item

    @classmethod
    def from_item(cls, item: dict[str, object]) -> Match:
        def participant(name: str) -> ParticipantRef | None:
            data = item.get(name)
            if isinstance(data, dict):
                return ParticipantRef.from_dict(data)
            return None

        conflict_data = item.get("conflict")
        return cls(
            bracket_id=str(item.get("bracket_id", "")),
            round=str(item.get("round", "")),
            position=_as_int(item.get("position"), default=1),
            competitor_one=participant("competitor_one"),
            competitor_two=participant("competitor_two"),
            status=str(item.get("status", "pending")),  # type: ignore[arg-type]
            reporters=_str_list(item.get("reporters")),
            submissions=[
                ResultSubmission.from_dict(entry)
                for entry in _dict_list(item.get("submissions"))
            ],
            winner=participant("winner"),
            loser=participant("loser"),
            conflict=(
                ConflictRecord.from_dict(conflict_data)  # type: ignore[arg-type]
                if isinstance(conflict_data, dict)
                else None
            ),
            scheduled_at=_optional_str(item.get("scheduled_at")),
            proposed_at=_optional_str(item.get("proposed_at")),
            proposed_by=_optional_str(item.get("proposed_by")),
            resolved_by=_optional_str(item.get("resolved_by")),
            created_at=str(item.get("created_at", "")),
            completed_at=_optional_str(item.get("completed_at")),
            version=_as_int(item.get("version")),
        )

    def competitors(self) -> list[ParticipantRef]:
        return [
            slot
            for slot in (self.competitor_one, self.competitor_two)
            if slot is not None
        ]

    def competitor_by_id(self, participant_id: str) -> ParticipantRef | None:
        """Slot holding ``participant_id``; ``None`` if absent or ambiguous."""
        found = [
            slot for slot in self.competitors() if slot.participant_id == participant_id
        ]
        return found[0] if len(found) == 1 else None

    def opponent_of(self, participant: ParticipantRef) -> ParticipantRef | None:
        if self.competitor_one is not None and self.competitor_one.same_as(
            participant
        ):
            return self.competitor_two
        if self.competitor_two is not None and self.competitor_two.same_as(
            participant
        ):
            return self.competitor_one
        return None

    def is_bye(self) -> bool:
        return len(self.competitors()) == 1

    def submitter_ids(self) -> list[str]:
        return [entry.submitter_id for entry in self.submissions]

    def display(self) -> str:
        one = self.competitor_one.display() if self.competitor_one else "BYE"
        two = self.competitor_two.display() if self.competitor_two else "BYE"
        return f"{one} vs {two}"


__all__ = [
    "BracketStatus",
    "MatchStatus",
    "ParticipantKind",
    "TournamentStatus",
    "OPEN_MATCH_STATUSES",
    "CONFLICT_MATCH_STATUSES",
    "DEFAULT_ROUND_LABELS",
    "ISO_FORMAT",
    "ParticipantRef",
    "ResultSubmission",
    "ConflictRecord",
    "Tournament",
    "Bracket",
    "Match",
    "utc_now_iso",
]
