import pytest
from fakes import team

from bracket_engine import (
    InvalidValueError,
    Match,
    NotFoundError,
    PreconditionFailedError,
)


def test_create_tournament(engine):
    tournament = engine.create_tournament(" summer-open ", " clash ", 8, region="eu")
    assert tournament.tournament_id == "summer-open"
    assert tournament.game == "clash"
    assert tournament.status == "open"
    assert tournament.version == 1
    assert engine.storage.get_tournament("summer-open").region == "eu"


def test_create_tournament_rejects_duplicates_and_bad_input(engine):
    engine.create_tournament("cup", "clash", 4)
    with pytest.raises(PreconditionFailedError):
        engine.create_tournament("cup", "clash", 4)
    with pytest.raises(InvalidValueError):
        engine.create_tournament("bad id", "clash", 4)
    with pytest.raises(InvalidValueError):
        engine.create_tournament("tiny", "clash", 1)


def test_registration_fills_tournament(engine):
    engine.create_tournament("cup", "clash", 2)

    first = engine.register_competitor("cup")
    assert first.registered_teams == 1
    assert first.status == "open"

    second = engine.register_competitor("cup")
    assert second.registered_teams == 2
    assert second.status == "full"

    with pytest.raises(PreconditionFailedError):
        engine.register_competitor("cup")
    assert engine.storage.get_tournament("cup").registered_teams == 2


def test_registration_missing_tournament(engine):
    with pytest.raises(NotFoundError):
        engine.register_competitor("missing")


def test_concurrent_registration_counts_both(engine, table):
    engine.create_tournament("cup", "clash", 2)

    def rival_registers(_item):
        engine.register_competitor("cup")

    table.before_next_put(rival_registers)
    tournament = engine.register_competitor("cup")
    assert tournament.registered_teams == 2
    assert tournament.status == "full"


def test_full_tournament_can_generate_bracket(engine):
    engine.create_tournament("cup", "clash", 2)
    engine.register_competitor("cup")
    engine.register_competitor("cup")

    bracket = engine.generate_bracket("cup", [team("alpha"), team("bravo")])
    assert engine.storage.get_tournament("cup").bracket_id == bracket.bracket_id
    with pytest.raises(PreconditionFailedError):
        engine.register_competitor("cup")


def test_bracket_snapshot_renders_rounds(engine, seed_bracket):
    bracket = seed_bracket([team("alpha"), team("bravo"), team("charlie")])
    snapshot = engine.bracket_snapshot(bracket.bracket_id)

    assert [label for label, _ in snapshot.rounds()] == ["first"]
    text = snapshot.render()
    assert text.startswith("First\n")
    assert "Alpha vs Bravo (pending)" in text
    assert "Charlie vs BYE (completed)" in text

    with pytest.raises(NotFoundError):
        engine.bracket_snapshot("missing")


def test_cleanup_duplicates_dry_run_then_execute(engine, seed_bracket, table):
    names = ("alpha", "bravo", "charlie", "delta")
    bracket = seed_bracket([team(name) for name in names])
    stray = Match(
        bracket_id=bracket.bracket_id,
        round="first",
        position=3,
        competitor_one=team("alpha"),
        competitor_two=team("delta"),
        reporters=["alpha", "delta"],
        created_at="9999-01-01T00:00:00.000000Z",
    )
    engine.storage.insert_matches([stray])

    planned = engine.cleanup_duplicates(bracket.bracket_id)
    assert [match.match_id for match in planned] == [stray.match_id]
    assert engine.storage.get_match(stray.match_id) is not None

    removed = engine.cleanup_duplicates(bracket.bracket_id, execute=True)
    assert [match.match_id for match in removed] == [stray.match_id]
    assert engine.storage.get_match(stray.match_id) is None
    assert len(engine.storage.list_round_matches(bracket.bracket_id, "first")) == 2
    assert engine.cleanup_duplicates(bracket.bracket_id, execute=True) == []
