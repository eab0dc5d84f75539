"""
Token football simulation engine components.

This module contains the core simulation engine including:
- Pitch grid, zone templates and role influence
- Token catalogue and bag construction
- Players, teams and backroom staff
- Token resolution into ball, possession and score effects
- Main match loop and batch simulation
"""

from .bag_builder import Bag, BagBuilder
from .batch import Fixture, FixtureOutcome, simulate_batch, simulate_single_match
from .config import EngineConfig, StaffSpecialization, get_default_config, load_config
from .errors import ConfigurationError, EmptyBagError, InvariantViolation, SimulationError
from .match import MatchEngine, MatchResult, MatchState
from .pitch import PitchZones, Zone
from .player import PlayerAttributes, PlayerRecord, PlayerRole, TokenPlayer
from .resolver import TokenResolver
from .team import StaffMember, Team, TeamStrategy, create_squad
from .tokens import MatchPhase, Token, TokenCategory, TokenType

__all__ = [
    'Bag', 'BagBuilder',
    'Fixture', 'FixtureOutcome', 'simulate_batch', 'simulate_single_match',
    'EngineConfig', 'StaffSpecialization', 'get_default_config', 'load_config',
    'ConfigurationError', 'EmptyBagError', 'InvariantViolation', 'SimulationError',
    'MatchEngine', 'MatchResult', 'MatchState',
    'PitchZones', 'Zone',
    'PlayerAttributes', 'PlayerRecord', 'PlayerRole', 'TokenPlayer',
    'TokenResolver',
    'StaffMember', 'Team', 'TeamStrategy', 'create_squad',
    'MatchPhase', 'Token', 'TokenCategory', 'TokenType',
]
