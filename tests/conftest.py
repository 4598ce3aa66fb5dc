from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest
from fakes import FakeTable

from bracket_engine import (
    Bracket,
    EngineConfig,
    ParticipantRef,
    TournamentEngine,
    TournamentStorage,
)


@pytest.fixture
def table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def storage(table: FakeTable) -> TournamentStorage:
    return TournamentStorage(table)


@pytest.fixture
def engine(storage: TournamentStorage) -> TournamentEngine:
    return TournamentEngine(storage, config=EngineConfig())


@pytest.fixture
def seed_bracket(
    engine: TournamentEngine,
) -> Callable[[Sequence[ParticipantRef]], Bracket]:
    """Create a tournament and generate its bracket from ``competitors``."""

    def _seed(
        competitors: Sequence[ParticipantRef], tournament_id: str = "spring-cup"
    ) -> Bracket:
        engine.create_tournament(tournament_id, "clash", max(2, len(competitors)))
        return engine.generate_bracket(tournament_id, competitors)

    return _seed
