"""
Batch simulation of independent fixtures.

Each fixture builds its own teams and engine from immutable inputs, so
fixtures can run in worker processes with ``ProcessPoolExecutor``. A failure
in one fixture is captured in its outcome and never affects the others.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import EngineConfig, get_default_config
from .match import MatchEngine, MatchResult
from .player import PlayerRecord
from .team import StaffMember, Team, TeamStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fixture:
    """Everything needed to simulate one match."""
    match_id: str
    home_team_id: str
    away_team_id: str
    home_roster: Tuple[PlayerRecord, ...]
    away_roster: Tuple[PlayerRecord, ...]
    home_name: str = "Home"
    away_name: str = "Away"
    home_staff: Tuple[StaffMember, ...] = ()
    away_staff: Tuple[StaffMember, ...] = ()
    home_strategy: Optional[TeamStrategy] = None
    away_strategy: Optional[TeamStrategy] = None
    seed: Optional[int] = None


@dataclass
class FixtureOutcome:
    """Result or error for one fixture of a batch."""
    match_id: str
    success: bool
    result: Optional[MatchResult] = None
    error: Optional[str] = None

    def to_dict(self, strip_debug: bool = True) -> Dict[str, Any]:
        if self.success:
            return {"match_id": self.match_id, "success": True,
                    "result": self.result.to_dict(strip_debug=strip_debug)}
        return {"match_id": self.match_id, "success": False, "error": self.error}


def build_engine(fixture: Fixture,
                 config: Optional[EngineConfig] = None,
                 strict: bool = False,
                 record_bags: bool = True) -> MatchEngine:
    """
    Create fresh teams and an engine for a fixture.

    Raises:
        ConfigurationError: If the fixture's rosters or teams are invalid
    """
    config = config or get_default_config()
    reach = config.balancing.reach_presence
    home = Team(fixture.home_team_id, fixture.home_name, fixture.home_roster, is_home=True,
                staff=fixture.home_staff, strategy=fixture.home_strategy, reach_presence=reach)
    away = Team(fixture.away_team_id, fixture.away_name, fixture.away_roster, is_home=False,
                staff=fixture.away_staff, strategy=fixture.away_strategy, reach_presence=reach)
    return MatchEngine(home, away, config=config, random_seed=fixture.seed,
                       match_id=fixture.match_id, strict=strict, record_bags=record_bags)


def run_fixture(fixture: Fixture,
                config: Optional[EngineConfig] = None,
                strict: bool = False,
                record_bags: bool = True) -> FixtureOutcome:
    """Simulate one fixture, capturing any failure in the outcome."""
    try:
        result = build_engine(fixture, config, strict, record_bags).simulate_match()
    except Exception as exc:
        logger.exception("Fixture %s failed", fixture.match_id)
        return FixtureOutcome(fixture.match_id, False, error=f"{type(exc).__name__}: {exc}")
    return FixtureOutcome(fixture.match_id, True, result=result)


def simulate_single_match(fixture: Fixture,
                          config: Optional[EngineConfig] = None,
                          strict: bool = False,
                          record_bags: bool = True) -> Dict[str, Any]:
    """
    Simulate a single fixture.

    Returns:
        {"success": True, "result": MatchResult} or {"success": False, "error": message}
    """
    outcome = run_fixture(fixture, config, strict, record_bags)
    if outcome.success:
        return {"success": True, "result": outcome.result}
    return {"success": False, "error": outcome.error}


def simulate_batch(fixtures: Sequence[Fixture],
                   config: Optional[EngineConfig] = None,
                   max_workers: Optional[int] = None,
                   strict: bool = False,
                   record_bags: bool = False) -> List[FixtureOutcome]:
    """
    Simulate independent fixtures, in parallel when more than one worker is allowed.

    Args:
        fixtures: Fixtures to simulate
        config: Shared engine configuration
        max_workers: Worker processes (None uses the CPU count, 1 runs serially)
        strict: Raise on invariant violations inside each fixture
        record_bags: Keep bag and drawn token on every event

    Returns:
        One outcome per fixture, in fixture order
    """
    config = (config or get_default_config()).validate()
    if not fixtures:
        return []

    workers = max_workers or os.cpu_count() or 1
    if workers == 1 or len(fixtures) == 1:
        outcomes = [run_fixture(f, config, strict, record_bags) for f in fixtures]
    else:
        outcomes = _run_parallel(fixtures, config, strict, record_bags, min(workers, len(fixtures)))

    succeeded = sum(1 for o in outcomes if o.success)
    logger.info("Batch finished: %d/%d fixtures succeeded", succeeded, len(fixtures))
    return outcomes


def _run_parallel(fixtures: Sequence[Fixture],
                  config: EngineConfig,
                  strict: bool,
                  record_bags: bool,
                  workers: int) -> List[FixtureOutcome]:
    outcomes: List[Optional[FixtureOutcome]] = [None] * len(fixtures)
    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(run_fixture, fixture, config, strict, record_bags): index
            for index, fixture in enumerate(fixtures)
        }
        for future in as_completed(futures):
            index = futures[future]
            try:
                outcomes[index] = future.result()
            except Exception as exc:
                # Worker crashed or the outcome could not be sent back
                match_id = fixtures[index].match_id
                logger.error("Fixture %s failed in worker: %s", match_id, exc)
                outcomes[index] = FixtureOutcome(match_id, False, error=f"{type(exc).__name__}: {exc}")

    return outcomes
