"""
Test configuration defaults, validation and JSON overrides.
"""

import json
from dataclasses import replace

import pytest

from token_football.engine.config import (BalancingConfig, EngineConfig, ImpactKind,
                                          StaffSpecialization, TimingConfig, get_default_config,
                                          load_config)
from token_football.engine.errors import ConfigurationError
from token_football.engine.match import MatchEngine
from token_football.engine.tokens import TokenFamily


def test_defaults_are_valid():
    config = get_default_config()
    assert config.timing.match_duration == 5400
    assert config.timing.half_duration == 2700
    assert config.timing.kick_off_delay == 60
    for spec in StaffSpecialization:
        assert config.impacts_for(spec)


def test_default_config_is_cached():
    assert get_default_config() is get_default_config()


def test_invalid_values_rejected():
    with pytest.raises(ConfigurationError):
        EngineConfig(timing=TimingConfig(match_duration=0)).validate()
    with pytest.raises(ConfigurationError):
        EngineConfig(balancing=BalancingConfig(max_pressure=0.5)).validate()
    with pytest.raises(ConfigurationError):
        EngineConfig(balancing=BalancingConfig(fatigue_threshold=100)).validate()


def test_missing_staff_entry_rejected():
    impacts = dict(get_default_config().staff_impacts)
    del impacts[StaffSpecialization.PHYSIO]
    with pytest.raises(ConfigurationError):
        replace(get_default_config(), staff_impacts=impacts).validate()


def test_engine_construction_validates_config(teams):
    home, away = teams
    with pytest.raises(ConfigurationError):
        MatchEngine(home, away, config=EngineConfig(timing=TimingConfig(default_tick=-1)))


def test_load_config_overrides(tmp_path):
    path = tmp_path / "overrides.json"
    path.write_text(json.dumps({
        "timing": {"kick_off_delay": 45},
        "balancing": {"max_pressure": 1.3},
        "staff_impacts": {
            "TECHNICAL": [{"family": "CROSS", "kind": "QUALITATIVE", "value": 0.1}],
        },
    }))
    config = load_config(path)
    assert config.timing.kick_off_delay == 45
    assert config.timing.match_duration == 5400
    assert config.balancing.max_pressure == 1.3
    technical = config.impacts_for(StaffSpecialization.TECHNICAL)
    assert technical[0].family is TokenFamily.CROSS
    assert technical[0].kind is ImpactKind.QUALITATIVE
    assert config.impacts_for(StaffSpecialization.PHYSIO)


def test_load_config_rejects_unknown_keys(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"timing": {"half_time_show": 900}}))
    with pytest.raises(ConfigurationError):
        load_config(path)

    path.write_text(json.dumps({"weather": {}}))
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_load_config_rejects_malformed_staff(tmp_path):
    path = tmp_path / "staff.json"
    path.write_text(json.dumps({"staff_impacts": {"TECHNICAL": [{"family": "JUGGLING"}]}}))
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_load_config_rejects_unreadable_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.json")


@pytest.mark.parametrize("overrides", [
    {"physics": {"step_x": "2"}},
    {"physics": {"long_step_x": 2.5}},
    {"timing": {"kick_off_delay": None}},
    {"balancing": {"max_pressure": True}},
    {"timing": ["match_duration", 600]},
])
def test_load_config_rejects_mistyped_values(tmp_path, overrides):
    path = tmp_path / "typed.json"
    path.write_text(json.dumps(overrides))
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_load_config_coerces_numbers_to_field_types(tmp_path):
    path = tmp_path / "numbers.json"
    path.write_text(json.dumps({"physics": {"long_step_x": 3.0}, "timing": {"default_tick": 8}}))
    config = load_config(path)
    assert config.physics.long_step_x == 3
    assert isinstance(config.physics.long_step_x, int)
    assert isinstance(config.timing.default_tick, float)
