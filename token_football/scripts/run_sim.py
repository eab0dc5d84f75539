"""
Main simulation script for running token football matches.

Provides CLI interface and batch simulation capabilities.
"""

import argparse
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional

import numpy as np

from ..engine.batch import Fixture, FixtureOutcome, simulate_batch
from ..engine.config import StaffSpecialization, load_config
from ..engine.errors import SimulationError
from ..engine.team import StaffMember, TeamStrategy, create_squad
from ..logger.event_logger import MatchEventLog


def create_default_fixture(match_id: str, seed: int) -> Fixture:
    """
    Create a fixture between two generated default squads.

    Args:
        match_id: Fixture identifier
        seed: Seed for squad generation and the match itself
    """
    rng = np.random.default_rng(seed)
    home_roster = create_squad("HOME", rng, formation="4-3-3")
    away_roster = create_squad("AWAY", rng, formation="4-4-2")

    return Fixture(
        match_id=match_id,
        home_team_id="HOME",
        away_team_id="AWAY",
        home_roster=tuple(home_roster),
        away_roster=tuple(away_roster),
        home_name="Home United",
        away_name="Away City",
        home_staff=(
            StaffMember("HOME_S1", "Technical Coach", StaffSpecialization.TECHNICAL),
            StaffMember("HOME_S2", "Physio", StaffSpecialization.PHYSIO),
        ),
        away_staff=(
            StaffMember("AWAY_S1", "Tactical Coach", StaffSpecialization.TACTICAL),
        ),
        home_strategy=TeamStrategy(formation="4-3-3", pressing_intensity=0.6, possession_style="balanced"),
        away_strategy=TeamStrategy(formation="4-4-2", pressing_intensity=0.5, possession_style="defensive"),
        seed=seed,
    )


def simulate_matches(n_matches: int = 1,
                     random_seed: Optional[int] = None,
                     out_dir: str = "logs",
                     workers: Optional[int] = None,
                     config_path: Optional[str] = None,
                     verbose: bool = True) -> List[FixtureOutcome]:
    """
    Simulate multiple football matches and export their logs.

    Args:
        n_matches: Number of matches to simulate
        random_seed: Base random seed (match i uses seed + i)
        out_dir: Output directory for logs
        workers: Worker processes for the batch
        config_path: Optional JSON file with engine config overrides
        verbose: Print detailed output

    Returns:
        One outcome per match
    """
    if verbose:
        print(f"Starting simulation of {n_matches} matches")
        print(f"Output directory: {out_dir}")

    os.makedirs(out_dir, exist_ok=True)
    config = load_config(config_path)
    base_seed = random_seed if random_seed is not None else int(np.random.SeedSequence().entropy % (2 ** 31))
    fixtures = [create_default_fixture(f"match_{base_seed + i}", base_seed + i) for i in range(n_matches)]

    total_start_time = time.time()
    outcomes = simulate_batch(fixtures, config=config, max_workers=workers, record_bags=False)
    total_time = time.time() - total_start_time

    for outcome in outcomes:
        if not outcome.success:
            print(f"Warning: {outcome.match_id} failed: {outcome.error}")
            continue
        export_outcome(outcome, out_dir)
        if verbose:
            print_match_summary(outcome)

    if verbose:
        print(f"\n=== SIMULATION SUMMARY ===")
        print(f"Total matches: {n_matches}")
        print(f"Total time: {total_time:.2f} seconds")
        print(f"Average time per match: {total_time / max(1, n_matches):.2f} seconds")
        print_batch_summary(outcomes)

    return outcomes


def export_outcome(outcome: FixtureOutcome, out_dir: str) -> Dict[str, str]:
    """Write CSV, XES and JSON summary files for a successful outcome."""
    result = outcome.result
    event_log = MatchEventLog.from_events(outcome.match_id, result.events)
    paths = {
        "csv": os.path.join(out_dir, f"{outcome.match_id}.csv"),
        "xes": os.path.join(out_dir, f"{outcome.match_id}.xes"),
        "json": os.path.join(out_dir, f"{outcome.match_id}.json"),
    }
    event_log.export_to_csv(paths["csv"])
    event_log.export_to_xes(paths["xes"])
    with open(paths["json"], "w") as fh:
        json.dump(result.to_dict(strip_debug=True), fh, indent=2)
    return paths


def print_match_summary(outcome: FixtureOutcome) -> None:
    """Print formatted match summary."""
    result = outcome.result
    home, away = result.home_team_id, result.away_team_id
    print(f"\n=== MATCH SUMMARY: {outcome.match_id} ===")
    print(f"Final Score: {home} {result.home_goals}-{result.away_goals} {away}")
    print(f"Full time at {result.final_time / 60:.1f}' ({result.stoppage_time / 60:.1f}' stoppage)")

    print(f"\nPossession:")
    print(f"  {home}: {result.possession[home]:.1f}%")
    print(f"  {away}: {result.possession[away]:.1f}%")

    print(f"\nShots (on target):")
    for team_id in (home, away):
        stats = result.stats[team_id]
        print(f"  {team_id}: {stats['shots']:.0f} ({stats['shots_on_target']:.0f})")

    print(f"\nExpected Goals (xG):")
    print(f"  {home}: {result.stats[home]['xg']:.2f}")
    print(f"  {away}: {result.stats[away]['xg']:.2f}")

    print(f"\nPass Accuracy:")
    print(f"  {home}: {result.pass_accuracy[home]:.1f}%")
    print(f"  {away}: {result.pass_accuracy[away]:.1f}%")
    print(f"\nEvents logged: {len(result.events)}")


def print_batch_summary(outcomes: List[FixtureOutcome]) -> None:
    """Print summary statistics across multiple matches."""
    results = [o.result for o in outcomes if o.success]
    failed = len(outcomes) - len(results)
    if failed:
        print(f"\nFailed matches: {failed}")
    if not results:
        return

    total_goals = sum(r.home_goals + r.away_goals for r in results)
    home_wins = sum(1 for r in results if r.home_goals > r.away_goals)
    away_wins = sum(1 for r in results if r.away_goals > r.home_goals)
    draws = len(results) - home_wins - away_wins

    avg_possession_home = sum(r.possession[r.home_team_id] for r in results) / len(results)
    avg_xg_home = sum(r.stats[r.home_team_id]['xg'] for r in results) / len(results)
    avg_xg_away = sum(r.stats[r.away_team_id]['xg'] for r in results) / len(results)

    print(f"\nResults Distribution:")
    print(f"  Home wins: {home_wins} ({home_wins / len(results) * 100:.1f}%)")
    print(f"  Away wins: {away_wins} ({away_wins / len(results) * 100:.1f}%)")
    print(f"  Draws: {draws} ({draws / len(results) * 100:.1f}%)")

    print(f"\nAverages per match:")
    print(f"  Goals: {total_goals / len(results):.2f}")
    print(f"  Home possession: {avg_possession_home:.1f}%")
    print(f"  Home xG: {avg_xg_home:.2f}")
    print(f"  Away xG: {avg_xg_away:.2f}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description='Token Football Match Simulation')
    parser.add_argument('--matches', type=int, default=1, help='Number of matches to simulate')
    parser.add_argument('--seed', type=int, default=42, help='Random seed for reproducibility')
    parser.add_argument('--workers', type=int, default=None, help='Worker processes (1 runs serially)')
    parser.add_argument('--config', type=str, default=None, help='JSON file with engine config overrides')
    parser.add_argument('--output-dir', type=str, default='logs', help='Output directory for logs')
    parser.add_argument('--quiet', action='store_true', help='Suppress detailed output')

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        outcomes = simulate_matches(
            n_matches=args.matches,
            random_seed=args.seed,
            out_dir=args.output_dir,
            workers=args.workers,
            config_path=args.config,
            verbose=not args.quiet
        )
    except KeyboardInterrupt:
        print("\nSimulation interrupted by user")
        return 1
    except SimulationError as e:
        print(f"Error during simulation: {e}")
        return 1

    if not all(o.success for o in outcomes):
        return 1
    print(f"\nSimulation completed successfully!")
    print(f"Logs saved to: {os.path.abspath(args.output_dir)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
