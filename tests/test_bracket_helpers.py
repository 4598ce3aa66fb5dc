import pytest
from fakes import team

from bracket_engine import Bracket, Match, PreconditionFailedError, SelfReportPolicy
from bracket_engine.bracket import (
    find_duplicate_matches,
    group_by_round,
    is_final_round,
    max_competitors,
    next_round_label,
    opening_round_label,
    pair_round,
    render_bracket,
    round_capacity,
)
from bracket_engine.models import DEFAULT_ROUND_LABELS
from bracket_engine.states import complete_with_winner

LABELS = list(DEFAULT_ROUND_LABELS)


def test_round_capacities():
    assert round_capacity(LABELS, "first") is None
    assert round_capacity(LABELS, "final") == 2
    assert round_capacity(LABELS, "semi") == 4
    assert round_capacity(LABELS, "quarter") == 8
    assert round_capacity(LABELS, "round_of_64") == 64
    assert max_competitors(LABELS) == 128


def test_opening_round_label():
    assert opening_round_label(LABELS, 2) == "final"
    assert opening_round_label(LABELS, 3) == "first"
    assert opening_round_label(LABELS, 16) == "first"


@pytest.mark.parametrize(
    ("current", "winners", "expected"),
    [
        ("first", 2, "final"),
        ("first", 3, "semi"),
        ("first", 4, "semi"),
        ("first", 5, "quarter"),
        ("first", 16, "round_of_16"),
        ("first", 64, "round_of_64"),
        ("quarter", 4, "semi"),
        ("semi", 2, "final"),
    ],
)
def test_next_round_label_picks_smallest_fitting_round(current, winners, expected):
    assert next_round_label(LABELS, current, winners) == expected


def test_next_round_label_errors():
    with pytest.raises(PreconditionFailedError):
        next_round_label(LABELS, "semi", 3)
    with pytest.raises(PreconditionFailedError):
        next_round_label(LABELS, "group_stage", 2)


def test_is_final_round():
    assert is_final_round(LABELS, "final", 1)
    assert is_final_round(LABELS, "semi", 1)
    assert not is_final_round(LABELS, "semi", 2)


def test_pair_round_gives_trailing_competitor_a_bye():
    competitors = [team("alpha"), team("bravo"), team("charlie")]
    matches = pair_round(
        "b1",
        "first",
        competitors,
        SelfReportPolicy(),
        created_at="2024-01-01T00:00:00.000Z",
    )
    assert [match.match_id for match in matches] == ["b1:first:1", "b1:first:2"]
    playable, bye = matches
    assert playable.status == "pending"
    assert playable.reporters == ["alpha", "bravo"]
    assert bye.status == "completed"
    assert bye.winner.participant_id == "charlie"
    assert bye.competitor_two is None


def _match(round_label, position, one, two, created_at="2024-01-01T00:00:00.000Z"):
    return Match(
        bracket_id="b1",
        round=round_label,
        position=position,
        competitor_one=team(one),
        competitor_two=team(two) if two else None,
        created_at=created_at,
    )


def test_group_by_round_uses_label_order():
    matches = [
        _match("final", 1, "a", "b"),
        _match("first", 2, "c", "d"),
        _match("first", 1, "a", "e"),
    ]
    grouped = group_by_round(LABELS, matches)
    assert [label for label, _ in grouped] == ["first", "final"]
    assert [match.position for match in grouped[0][1]] == [1, 2]


def test_find_duplicate_matches_keeps_earliest():
    original = _match("semi", 1, "alpha", "bravo", "2024-01-01T00:00:00.000Z")
    other = _match("semi", 2, "charlie", "delta", "2024-01-01T00:00:00.000Z")
    repeat = _match("semi", 3, "alpha", "bravo", "2024-01-01T00:05:00.000Z")
    overlap = _match("semi", 4, "delta", "echo", "2024-01-01T00:06:00.000Z")
    final = _match("final", 1, "alpha", "delta")

    matches = [repeat, overlap, original, other, final]
    duplicates = find_duplicate_matches(LABELS, matches)
    assert [match.match_id for match in duplicates] == ["b1:semi:3", "b1:semi:4"]


def test_render_bracket_shows_winners_conflicts_and_champion():
    semi_one = _match("semi", 1, "alpha", "bravo")
    complete_with_winner(semi_one, team("alpha"))
    semi_two = _match("semi", 2, "charlie", None)
    complete_with_winner(semi_two, team("charlie"))
    final = _match("final", 1, "alpha", "charlie")
    bracket = Bracket(bracket_id="b1", tournament_id="cup", participants=[])

    text = render_bracket(bracket, [final, semi_two, semi_one])
    assert text.splitlines() == [
        "Semi",
        "  [b1:semi:1] Alpha vs Bravo (completed)",
        "    -> Winner: Alpha",
        "  [b1:semi:2] Charlie vs BYE (completed)",
        "    -> Winner: Charlie",
        "",
        "Final",
        "  [b1:final:1] Alpha vs Charlie (pending)",
        "    -> Winner: TBD",
    ]

    complete_with_winner(final, team("charlie"))
    bracket.winner = final.winner
    assert render_bracket(bracket, [final]).endswith("Champion: Charlie")
