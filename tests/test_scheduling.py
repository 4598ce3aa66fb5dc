import pytest
from fakes import team

from bracket_engine import (
    InvalidTransitionError,
    InvalidValueError,
    Match,
    NotFoundError,
    PreconditionFailedError,
    UnauthorizedError,
)


@pytest.fixture
def match_id(seed_bracket):
    bracket = seed_bracket([team("alpha"), team("bravo"), team("charlie")])
    return Match.build_id(bracket.bracket_id, "first", 1)


def test_propose_and_approve_schedules_match(engine, match_id):
    proposed = engine.propose_time(match_id, "0xAlpha", "2024-05-01T20:00+02:00")
    assert proposed.proposed_at == "2024-05-01T18:00:00.000000Z"
    assert proposed.proposed_by == "0xalpha"
    assert proposed.status == "pending"

    scheduled = engine.approve_time(match_id, "0xbravo")
    assert scheduled.status == "scheduled"
    assert scheduled.scheduled_at == "2024-05-01T18:00:00.000000Z"
    assert scheduled.proposed_at is None
    assert scheduled.proposed_by is None
    assert engine.storage.get_match(match_id).status == "scheduled"


def test_proposer_cannot_approve_own_time(engine, match_id):
    engine.propose_time(match_id, "0xalpha", "2024-05-01 18:00")
    with pytest.raises(UnauthorizedError):
        engine.approve_time(match_id, "0xalpha")


def test_teammate_cannot_approve_own_side(engine, seed_bracket):
    alpha = team("alpha")
    alpha.reporters.append("0xcaptain")
    bracket = seed_bracket([alpha, team("bravo")])
    target = Match.build_id(bracket.bracket_id, "final", 1)
    engine.propose_time(target, "0xalpha", "2024-05-01 18:00")
    with pytest.raises(UnauthorizedError):
        engine.approve_time(target, "0xcaptain")


def test_outsiders_cannot_schedule(engine, match_id):
    with pytest.raises(UnauthorizedError):
        engine.propose_time(match_id, "0xcharlie", "2024-05-01 18:00")
    engine.propose_time(match_id, "0xalpha", "2024-05-01 18:00")
    with pytest.raises(UnauthorizedError):
        engine.approve_time(match_id, "0xcharlie")


def test_approve_without_proposal(engine, match_id):
    with pytest.raises(PreconditionFailedError):
        engine.approve_time(match_id, "0xbravo")


def test_reproposal_replaces_previous_time(engine, match_id):
    engine.propose_time(match_id, "0xalpha", "2024-05-01 18:00")
    engine.approve_time(match_id, "0xbravo")
    engine.propose_time(match_id, "0xbravo", "2024-05-02 18:00")
    rescheduled = engine.approve_time(match_id, "0xalpha")
    assert rescheduled.status == "scheduled"
    assert rescheduled.scheduled_at.startswith("2024-05-02T18:00")


def test_bye_matches_cannot_be_scheduled(engine, seed_bracket):
    bracket = seed_bracket([team("alpha"), team("bravo"), team("charlie")])
    bye_id = Match.build_id(bracket.bracket_id, "first", 2)
    with pytest.raises(PreconditionFailedError):
        engine.propose_time(bye_id, "0xcharlie", "2024-05-01 18:00")


def test_invalid_time_is_rejected(engine, match_id):
    with pytest.raises(InvalidValueError):
        engine.propose_time(match_id, "0xalpha", "next tuesday")


def test_start_requires_schedule(engine, match_id):
    with pytest.raises(InvalidTransitionError):
        engine.start_match(match_id)

    engine.propose_time(match_id, "0xalpha", "2024-05-01 18:00")
    engine.approve_time(match_id, "0xbravo")
    started = engine.start_match(match_id)
    assert started.status == "awaiting_results"

    with pytest.raises(PreconditionFailedError):
        engine.propose_time(match_id, "0xalpha", "2024-05-03 18:00")


def test_results_flow_after_start(engine, match_id):
    engine.propose_time(match_id, "0xalpha", "2024-05-01 18:00")
    engine.approve_time(match_id, "0xbravo")
    engine.start_match(match_id)

    engine.submit_result(match_id, "0xalpha", "bravo")
    outcome = engine.submit_result(match_id, "0xbravo", "bravo")
    assert outcome.status == "completed"
    assert outcome.match.scheduled_at == "2024-05-01T18:00:00.000000Z"


def test_scheduling_missing_match(engine):
    with pytest.raises(NotFoundError):
        engine.propose_time("b:first:1", "0xalpha", "2024-05-01 18:00")
