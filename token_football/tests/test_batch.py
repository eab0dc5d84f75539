"""
Test batch simulation and per-fixture failure isolation.
"""

import numpy as np
import pytest

from token_football.engine.batch import (Fixture, simulate_batch, simulate_single_match)
from token_football.engine.config import StaffSpecialization
from token_football.engine.match import MatchResult
from token_football.engine.team import StaffMember, create_squad


def make_fixture(match_id: str, seed: int, away_team_id: str = "AWAY") -> Fixture:
    rng = np.random.default_rng(seed)
    return Fixture(
        match_id=match_id,
        home_team_id="HOME",
        away_team_id=away_team_id,
        home_roster=tuple(create_squad("HOME", rng)),
        away_roster=tuple(create_squad("AWAY", rng)),
        home_staff=(StaffMember("S1", "Coach", StaffSpecialization.TECHNICAL),),
        seed=seed,
    )


def test_single_match_success_shape(short_config):
    outcome = simulate_single_match(make_fixture("m1", 1), config=short_config)
    assert outcome["success"] is True
    assert isinstance(outcome["result"], MatchResult)
    assert "error" not in outcome


def test_single_match_failure_shape(short_config):
    """A roster that does not belong to its team fails without raising."""
    outcome = simulate_single_match(make_fixture("bad", 1, away_team_id="RIVALS"), config=short_config)
    assert outcome["success"] is False
    assert "ConfigurationError" in outcome["error"]


def test_failing_fixture_does_not_affect_others(short_config):
    fixtures = [make_fixture("m1", 1), make_fixture("bad", 2, away_team_id="RIVALS"), make_fixture("m3", 3)]
    outcomes = simulate_batch(fixtures, config=short_config, max_workers=1)

    assert [o.match_id for o in outcomes] == ["m1", "bad", "m3"]
    assert [o.success for o in outcomes] == [True, False, True]
    assert outcomes[1].result is None
    assert outcomes[1].error


def test_batch_matches_single_runs(short_config):
    """A fixture gives the same result alone or inside a batch."""
    fixture = make_fixture("m7", 7)
    alone = simulate_single_match(fixture, config=short_config, record_bags=False)["result"]
    batched = simulate_batch([make_fixture("m6", 6), fixture], config=short_config, max_workers=1)[1].result
    assert alone.to_dict(strip_debug=True) == batched.to_dict(strip_debug=True)


def test_parallel_batch_keeps_fixture_order(short_config):
    fixtures = [make_fixture(f"p{i}", i) for i in range(3)]
    outcomes = simulate_batch(fixtures, config=short_config, max_workers=2)
    assert [o.match_id for o in outcomes] == ["p0", "p1", "p2"]
    assert all(o.success for o in outcomes)
    serial = simulate_batch(fixtures, config=short_config, max_workers=1)
    assert [o.result.final_score for o in outcomes] == [o.result.final_score for o in serial]


def test_empty_batch():
    assert simulate_batch([]) == []


def test_outcome_to_dict_is_stripped(short_config):
    outcome = simulate_batch([make_fixture("m1", 1)], config=short_config, max_workers=1,
                             record_bags=True)[0]
    data = outcome.to_dict()
    assert data["success"] is True
    assert all("bag" not in event for event in data["result"]["events"])
