from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from .models import Bracket, Match, Tournament

log = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


class TournamentStorage:
    """Typed access to tournament, bracket and match items in one table."""

    def __init__(self, table) -> None:
        self._table = table

    def ensure_table(self) -> None:
        if self._table is None:
            raise RuntimeError("Tournament table is not configured")

    def _conditional_put(self, item: dict[str, object], condition) -> bool:
        self.ensure_table()
        try:
            self._table.put_item(Item=item, ConditionExpression=condition)
        except ClientError as exc:
            if _is_condition_failure(exc):
                return False
            raise
        return True

    def _query_all(self, condition) -> list[dict[str, object]]:
        self.ensure_table()
        kwargs: dict[str, object] = {
            "KeyConditionExpression": condition,
            "Select": "ALL_ATTRIBUTES",
        }
        items: list[dict[str, object]] = []
        while True:
            resp = self._table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return items

    # ----- Tournaments -----
    def get_tournament(self, tournament_id: str) -> Tournament | None:
        self.ensure_table()
        resp = self._table.get_item(Key=Tournament.key(tournament_id))
        item = resp.get("Item")
        if not item:
            return None
        return Tournament.from_item(item)

    def insert_tournament(self, tournament: Tournament) -> bool:
        tournament.version = 1
        return self._conditional_put(tournament.to_item(), Attr("pk").not_exists())

    def replace_tournament(self, tournament: Tournament, expected_version: int) -> bool:
        """Write ``tournament`` only if the stored version is ``expected_version``."""
        tournament.version = expected_version + 1
        written = self._conditional_put(
            tournament.to_item(), Attr("version").eq(expected_version)
        )
        if not written:
            tournament.version = expected_version
            log.debug(
                "Stale write rejected for tournament %s (version %s)",
                tournament.tournament_id,
                expected_version,
            )
        return written

    # ----- Brackets -----
    def get_bracket(self, bracket_id: str) -> Bracket | None:
        self.ensure_table()
        resp = self._table.get_item(Key=Bracket.key(bracket_id))
        item = resp.get("Item")
        if not item:
            return None
        return Bracket.from_item(item)

    def insert_bracket(self, bracket: Bracket) -> bool:
        bracket.version = 1
        return self._conditional_put(bracket.to_item(), Attr("pk").not_exists())

    def replace_bracket(self, bracket: Bracket, expected_version: int) -> bool:
        bracket.version = expected_version + 1
        written = self._conditional_put(
            bracket.to_item(), Attr("version").eq(expected_version)
        )
        if not written:
            bracket.version = expected_version
        return written

    # ----- Matches -----
    def get_match(self, match_id: str) -> Match | None:
        self.ensure_table()
        try:
            bracket_id, round_label, position = Match.parse_id(match_id)
        except ValueError:
            return None
        resp = self._table.get_item(Key=Match.key(bracket_id, round_label, position))
        item = resp.get("Item")
        if not item:
            return None
        return Match.from_item(item)

    def replace_match(self, match: Match, expected_version: int) -> bool:
        match.version = expected_version + 1
        written = self._conditional_put(
            match.to_item(), Attr("version").eq(expected_version)
        )
        if not written:
            match.version = expected_version
            log.debug(
                "Stale write rejected for match %s (version %s)",
                match.match_id,
                expected_version,
            )
        return written

    def insert_matches(self, matches: Sequence[Match]) -> int:
        """Insert each match unless its key already exists; return inserted count."""
        inserted = 0
        for match in matches:
            match.version = 1
            if self._conditional_put(match.to_item(), Attr("pk").not_exists()):
                inserted += 1
            else:
                log.info("Match %s already exists; skipping insert", match.match_id)
        return inserted

    def list_round_matches(self, bracket_id: str, round_label: str) -> list[Match]:
        items = self._query_all(
            Key("pk").eq(Match.PK_TEMPLATE % bracket_id)
            & Key("sk").begins_with(Match.SK_ROUND_PREFIX % round_label)
        )
        matches = [Match.from_item(item) for item in items]
        matches.sort(key=lambda match: match.position)
        return matches

    def list_bracket_matches(self, bracket_id: str) -> list[Match]:
        items = self._query_all(
            Key("pk").eq(Match.PK_TEMPLATE % bracket_id)
            & Key("sk").begins_with("ROUND#")
        )
        return [Match.from_item(item) for item in items]

    def delete_match(self, match: Match) -> bool:
        self.ensure_table()
        try:
            self._table.delete_item(
                Key=Match.key(match.bracket_id, match.round, match.position),
                ConditionExpression=Attr("pk").exists(),
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                return False
            raise
        return True

    def delete_matches(self, matches: Iterable[Match]) -> int:
        return sum(1 for match in matches if self.delete_match(match))


__all__ = ["TournamentStorage"]
