"""
Shared fixtures for the token football test suite.
"""

import numpy as np
import pytest

from token_football.engine.config import EngineConfig, TimingConfig
from token_football.engine.match import MatchEngine
from token_football.engine.team import Team, create_squad


def build_teams(seed: int = 7, home_staff=None, away_staff=None, reach_presence: float = 0.5):
    """Two freshly generated teams; equal seeds give identical rosters."""
    rng = np.random.default_rng(seed)
    home = Team("HOME", "Home United", create_squad("HOME", rng, "4-3-3"), is_home=True,
                staff=home_staff, reach_presence=reach_presence)
    away = Team("AWAY", "Away City", create_squad("AWAY", rng, "4-4-2"), is_home=False,
                staff=away_staff, reach_presence=reach_presence)
    return home, away


@pytest.fixture
def make_teams():
    return build_teams


@pytest.fixture
def teams():
    return build_teams()


@pytest.fixture
def short_config():
    """Twenty-minute matches keep loop tests fast."""
    return EngineConfig(timing=TimingConfig(match_duration=1200, snapshot_interval=120,
                                            late_match_minute=15)).validate()


@pytest.fixture(scope="session")
def full_match():
    """One full-length match with the default configuration, shared across tests."""
    home, away = build_teams(seed=42)
    engine = MatchEngine(home, away, random_seed=42, match_id="test_match")
    result = engine.simulate_match()
    return engine, result


class FixedRandom:
    """Stand-in generator returning a fixed value from ``random()``."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def fixed_random():
    return FixedRandom
