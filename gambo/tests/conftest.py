"""Shared fixtures."""

from datetime import timedelta

import pytest

from gambo.config import EngineConfig
from gambo.tests.factories import KICKOFF, make_game
from gambo.types import GameData


@pytest.fixture
def game() -> GameData:
    return make_game()


@pytest.fixture
def seeded_config() -> EngineConfig:
    return EngineConfig(random_seed=7, posterior_samples=200)


@pytest.fixture
def later():
    """Kickoff offsets far enough apart to avoid the timing correlation term."""
    return lambda hours: KICKOFF + timedelta(hours=hours)
