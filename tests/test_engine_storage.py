import pytest
from botocore.exceptions import ClientError
from fakes import FakeTable, team

from bracket_engine import Bracket, Match, Tournament, TournamentStorage


def build_storage(**kwargs) -> tuple[TournamentStorage, FakeTable]:
    table = FakeTable(**kwargs)
    return TournamentStorage(table), table


def sample_tournament() -> Tournament:
    return Tournament(tournament_id="cup", game="clash", max_teams=4)


def make_match(position: int, round_label: str = "first") -> Match:
    return Match(
        bracket_id="b1",
        round=round_label,
        position=position,
        competitor_one=team(f"a{position}"),
        competitor_two=team(f"b{position}"),
        reporters=[f"a{position}", f"b{position}"],
    )


def test_ensure_table_raises_when_missing():
    storage = TournamentStorage(None)
    with pytest.raises(RuntimeError):
        storage.ensure_table()


def test_insert_tournament_only_once():
    storage, _table = build_storage()
    assert storage.insert_tournament(sample_tournament()) is True
    assert storage.insert_tournament(sample_tournament()) is False

    restored = storage.get_tournament("cup")
    assert restored is not None
    assert restored.version == 1


def test_get_missing_entities_returns_none():
    storage, _table = build_storage()
    assert storage.get_tournament("nope") is None
    assert storage.get_bracket("nope") is None
    assert storage.get_match("b1:first:1") is None
    assert storage.get_match("not-a-match-id") is None


def test_replace_tournament_checks_version():
    storage, _table = build_storage()
    storage.insert_tournament(sample_tournament())

    first = storage.get_tournament("cup")
    stale = storage.get_tournament("cup")
    first.registered_teams = 1
    assert storage.replace_tournament(first, 1) is True
    assert first.version == 2

    stale.registered_teams = 5
    assert storage.replace_tournament(stale, 1) is False
    assert stale.version == 1
    assert storage.get_tournament("cup").registered_teams == 1


def test_replace_bracket_checks_version():
    storage, _table = build_storage()
    bracket = Bracket(bracket_id="b1", tournament_id="cup", participants=[])
    assert storage.insert_bracket(bracket) is True
    assert storage.insert_bracket(bracket) is False

    bracket.status = "active"
    assert storage.replace_bracket(bracket, 1) is True
    assert storage.replace_bracket(bracket, 1) is False
    assert storage.get_bracket("b1").status == "active"


def test_insert_matches_skips_existing_keys():
    storage, table = build_storage()
    assert storage.insert_matches([make_match(1), make_match(2)]) == 2

    again = make_match(1)
    again.competitor_one = team("intruder")
    assert storage.insert_matches([again, make_match(3)]) == 1
    stored = storage.get_match("b1:first:1")
    assert stored.competitor_one.participant_id == "a1"
    assert len(table.items) == 3


def test_replace_match_checks_version():
    storage, _table = build_storage()
    storage.insert_matches([make_match(1)])

    match = storage.get_match("b1:first:1")
    match.status = "scheduled"
    assert storage.replace_match(match, 1) is True
    assert storage.replace_match(match, 1) is False
    assert storage.get_match("b1:first:1").version == 2


def test_list_round_matches_sorts_and_filters_by_round():
    storage, _table = build_storage()
    storage.insert_matches([make_match(2), make_match(1), make_match(1, "semi")])

    first_round = storage.list_round_matches("b1", "first")
    assert [match.position for match in first_round] == [1, 2]
    assert [match.round for match in storage.list_round_matches("b1", "semi")] == [
        "semi"
    ]
    assert len(storage.list_bracket_matches("b1")) == 3


def test_queries_follow_pagination():
    storage, table = build_storage(page_size=2)
    storage.insert_matches([make_match(position) for position in range(1, 6)])

    matches = storage.list_round_matches("b1", "first")
    assert [match.position for match in matches] == [1, 2, 3, 4, 5]
    assert table.query_calls == 3


def test_list_bracket_matches_excludes_bracket_meta():
    storage, _table = build_storage()
    storage.insert_bracket(
        Bracket(bracket_id="b1", tournament_id="cup", participants=[])
    )
    storage.insert_matches([make_match(1)])
    assert [match.match_id for match in storage.list_bracket_matches("b1")] == [
        "b1:first:1"
    ]


def test_delete_match_outcome():
    storage, _table = build_storage()
    storage.insert_matches([make_match(1), make_match(2)])
    match = storage.get_match("b1:first:1")

    assert storage.delete_match(match) is True
    assert storage.delete_match(match) is False
    assert storage.delete_matches([match, storage.get_match("b1:first:2")]) == 1


def test_other_client_errors_propagate():
    storage, table = build_storage()

    def broken_put_item(**_kwargs):
        raise ClientError({"Error": {"Code": "ThrottlingException"}}, "PutItem")

    table.put_item = broken_put_item  # type: ignore[assignment]

    with pytest.raises(ClientError):
        storage.insert_tournament(sample_tournament())
