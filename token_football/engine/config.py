"""
Tuning tables for the token match engine.

Timing, physics, balancing and staff-impact tables are typed, immutable and
validated once when loaded. ``load_config`` applies optional JSON overrides on
top of the defaults; ``get_default_config`` caches the default bundle for the
lifetime of the process.
"""

import json
import logging
import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from .errors import ConfigurationError
from .pitch import ZoneCatalogue
from .tokens import TokenFamily

logger = logging.getLogger(__name__)


class StaffSpecialization(Enum):
    """Backroom staff roles that bias a team's bags."""
    TECHNICAL = "TECHNICAL"
    TACTICAL = "TACTICAL"
    PHYSIO = "PHYSIO"


class ImpactKind(Enum):
    """
    How a staff bonus is applied.

    QUALITATIVE scales the weight of a token family by a percentage.
    QUANTITATIVE adds a flat amount to a token family's weight.
    """
    QUALITATIVE = "QUALITATIVE"
    QUANTITATIVE = "QUANTITATIVE"


@dataclass(frozen=True)
class TimingConfig:
    """Clock settings, all in seconds of match time."""
    match_duration: float = 90 * 60
    kick_off_delay: float = 60.0  # celebration + replay + restart
    default_tick: float = 10.0
    goal_stoppage: float = 30.0
    injury_stoppage: float = 60.0
    card_stoppage: float = 20.0
    max_stoppage_per_half: float = 300.0
    snapshot_interval: float = 300.0
    late_match_minute: float = 70.0

    @property
    def half_duration(self) -> float:
        return self.match_duration / 2


@dataclass(frozen=True)
class PhysicsConfig:
    """Ball displacement rules on the zone grid."""
    step_x: int = 1
    step_y: int = 1
    lateral_drift_probability: float = 0.35
    long_step_x: int = 2


@dataclass(frozen=True)
class BalancingConfig:
    """
    Coefficients combining skill, fatigue, pressure and staff into token weights.

    Attributes:
        base_success: Skill value mapping to a neutral (1.0) weight factor
        max_pressure: Cap on the defensive pressure multiplier
        pressure_per_defender: Pressure added by one fully present average defender
        fatigue_threshold: Fatigue above which a player's tokens degrade
        fatigue_max_penalty: Weight reduction reached at fatigue 100
        fatigue_per_second: Baseline fatigue gained per second on the pitch
        action_fatigue: Extra fatigue for the player who resolved the action
        fatigue_token_cost: Extra fatigue when a FATIGUE token is drawn
        fallback_weight: Weight of the safe token added to every bag
        style_bias: Extra weight share for the tokens a possession style favours
        reach_presence: Presence of a player in a reach zone (active zones are 1.0)
    """
    base_success: float = 50.0
    max_pressure: float = 1.6
    pressure_per_defender: float = 0.12
    fatigue_threshold: float = 60.0
    fatigue_max_penalty: float = 0.5
    fatigue_per_second: float = 0.012
    action_fatigue: float = 0.4
    fatigue_token_cost: float = 2.0
    fallback_weight: float = 1.0
    style_bias: float = 0.15
    reach_presence: float = 0.5


@dataclass(frozen=True)
class StaffImpact:
    """One bonus a staff specialization applies to a token family."""
    family: TokenFamily
    kind: ImpactKind
    value: float


def _default_staff_impacts() -> Dict[StaffSpecialization, Tuple[StaffImpact, ...]]:
    return {
        StaffSpecialization.TECHNICAL: (
            StaffImpact(TokenFamily.PASS, ImpactKind.QUALITATIVE, 0.05),
            StaffImpact(TokenFamily.DRIBBLE, ImpactKind.QUALITATIVE, 0.05),
        ),
        StaffSpecialization.TACTICAL: (
            StaffImpact(TokenFamily.INTERCEPT, ImpactKind.QUANTITATIVE, 2.0),
            StaffImpact(TokenFamily.TACKLE, ImpactKind.QUANTITATIVE, 2.0),
        ),
        StaffSpecialization.PHYSIO: (
            StaffImpact(TokenFamily.FATIGUE, ImpactKind.QUANTITATIVE, -3.0),
        ),
    }


@dataclass(frozen=True)
class EngineConfig:
    """Complete configuration bundle handed to the match engine."""
    timing: TimingConfig = field(default_factory=TimingConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    balancing: BalancingConfig = field(default_factory=BalancingConfig)
    staff_impacts: Dict[StaffSpecialization, Tuple[StaffImpact, ...]] = field(
        default_factory=_default_staff_impacts)
    zones: ZoneCatalogue = field(default_factory=ZoneCatalogue.default)

    def validate(self) -> "EngineConfig":
        """
        Check every table for completeness and sane ranges.

        Returns:
            The same config, so calls can be chained

        Raises:
            ConfigurationError: On the first problem found
        """
        t = self.timing
        if t.match_duration <= 0:
            raise ConfigurationError("timing.match_duration must be positive")
        if t.default_tick <= 0:
            raise ConfigurationError("timing.default_tick must be positive")
        if t.snapshot_interval <= 0:
            raise ConfigurationError("timing.snapshot_interval must be positive")
        for name in ("kick_off_delay", "goal_stoppage", "injury_stoppage",
                     "card_stoppage", "max_stoppage_per_half"):
            if getattr(t, name) < 0:
                raise ConfigurationError(f"timing.{name} must not be negative")

        p = self.physics
        if p.step_x < 1 or p.step_y < 0 or p.long_step_x < p.step_x:
            raise ConfigurationError("physics steps must satisfy 1 <= step_x <= long_step_x, step_y >= 0")
        if not 0.0 <= p.lateral_drift_probability <= 1.0:
            raise ConfigurationError("physics.lateral_drift_probability must be within [0, 1]")

        b = self.balancing
        if b.base_success <= 0:
            raise ConfigurationError("balancing.base_success must be positive")
        if b.max_pressure < 1.0:
            raise ConfigurationError("balancing.max_pressure must be at least 1.0")
        if not 0.0 <= b.fatigue_threshold < 100.0:
            raise ConfigurationError("balancing.fatigue_threshold must be within [0, 100)")
        if not 0.0 <= b.fatigue_max_penalty < 1.0:
            raise ConfigurationError("balancing.fatigue_max_penalty must be within [0, 1)")
        if b.fallback_weight <= 0:
            raise ConfigurationError("balancing.fallback_weight must be positive")
        for name in ("pressure_per_defender", "fatigue_per_second", "action_fatigue",
                     "fatigue_token_cost", "reach_presence", "style_bias"):
            if getattr(b, name) < 0:
                raise ConfigurationError(f"balancing.{name} must not be negative")

        for spec in StaffSpecialization:
            impacts = self.staff_impacts.get(spec)
            if not impacts:
                raise ConfigurationError(f"missing staff impact entry for {spec.value}")
            for impact in impacts:
                if impact.kind is ImpactKind.QUALITATIVE and impact.value <= -1.0:
                    raise ConfigurationError(
                        f"qualitative impact for {spec.value} would remove all weight")

        self.zones.validate()
        return self

    def impacts_for(self, specialization: StaffSpecialization) -> Tuple[StaffImpact, ...]:
        return self.staff_impacts[specialization]


_SCALAR_SECTIONS = {
    "timing": TimingConfig,
    "physics": PhysicsConfig,
    "balancing": BalancingConfig,
}


def _coerce(section: str, name: str, declared: type, value):
    """Convert a JSON scalar to the field's declared type (int or float)."""
    # bool is an int subclass but never a valid tuning value
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigurationError(
            f"{section}.{name} must be a number, got {type(value).__name__} {value!r}")
    if declared is int:
        if not float(value).is_integer():
            raise ConfigurationError(f"{section}.{name} must be a whole number, got {value!r}")
        return int(value)
    return float(value)


def _apply_section(base, section: str, overrides: Dict):
    if not isinstance(overrides, dict):
        raise ConfigurationError(f"config section {section} must be a JSON object")
    declared = {f.name: f.type for f in fields(base)}
    unknown = sorted(set(overrides) - set(declared))
    if unknown:
        raise ConfigurationError(f"unknown {section} keys: {', '.join(unknown)}")
    values = {name: _coerce(section, name, declared[name], value) for name, value in overrides.items()}
    return replace(base, **values)


def _parse_staff(raw: Dict) -> Dict[StaffSpecialization, Tuple[StaffImpact, ...]]:
    impacts = _default_staff_impacts()
    for spec_name, entries in raw.items():
        try:
            spec = StaffSpecialization(spec_name)
            impacts[spec] = tuple(
                StaffImpact(
                    family=TokenFamily(entry["family"]),
                    kind=ImpactKind(entry["kind"]),
                    value=float(entry["value"]),
                )
                for entry in entries
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise ConfigurationError(f"malformed staff impact for {spec_name!r}: {exc}") from exc
    return impacts


def load_config(overrides_path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Build and validate an engine configuration.

    Args:
        overrides_path: Optional JSON file with ``timing``, ``physics``,
            ``balancing`` and ``staff_impacts`` sections overriding defaults

    Returns:
        Validated EngineConfig

    Raises:
        ConfigurationError: If the file is unreadable or any value is invalid
    """
    config = EngineConfig()
    if overrides_path is None:
        return config.validate()

    path = Path(overrides_path)
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot read config overrides {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"config overrides in {path} must be a JSON object")

    unknown = sorted(set(data) - set(_SCALAR_SECTIONS) - {"staff_impacts"})
    if unknown:
        raise ConfigurationError(f"unknown config sections: {', '.join(unknown)}")

    changes = {}
    for section in _SCALAR_SECTIONS:
        if section in data:
            changes[section] = _apply_section(getattr(config, section), section, data[section])
    if "staff_impacts" in data:
        changes["staff_impacts"] = _parse_staff(data["staff_impacts"])

    logger.info("Loaded config overrides from %s (%s)", path, ", ".join(sorted(changes)) or "none")
    return replace(config, **changes).validate()


@lru_cache(maxsize=1)
def get_default_config() -> EngineConfig:
    """Return the validated default configuration, built once per process."""
    return load_config()
