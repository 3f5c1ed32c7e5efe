import os

# Keep the shared in-memory rate limiter out of the way unless a test opts in
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from adola.config import EngineConfig
from adola.core.game_logic import GameLogicService
from adola.core.rng import SeededRNG
from adola.core.tables import default_tables


class ScriptedRNG(SeededRNG):
    """SeededRNG that hands out queued floats first."""

    def __init__(self, floats=(), seed=0):
        super().__init__(seed)
        self.floats = list(floats)

    def random_float(self) -> float:
        if self.floats:
            return self.floats.pop(0)
        return super().random_float()


ALWAYS_WIN = EngineConfig(pattern_wins=10, pattern_length=10, pattern_follow_rate=1.0)
ALWAYS_LOSE = EngineConfig(pattern_wins=0, pattern_length=10, pattern_follow_rate=1.0)


@pytest.fixture
def scripted_rng():
    return ScriptedRNG


@pytest.fixture
def engine():
    return GameLogicService(rng=SeededRNG(1234), tables=default_tables())


@pytest.fixture
def winning_engine():
    """Engine whose every decision is a win; multiplier picks follow the seed."""
    return GameLogicService(rng=SeededRNG(7), tables=default_tables(), config=ALWAYS_WIN)


@pytest.fixture
def losing_engine():
    return GameLogicService(rng=SeededRNG(7), tables=default_tables(), config=ALWAYS_LOSE)
