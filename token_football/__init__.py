"""
Token Football Simulation Package

A token-bag football match simulator producing process-mining event logs.
"""

__version__ = "1.0.0"
__author__ = "Token Football Sim Team"

from .engine.match import MatchEngine
from .engine.batch import simulate_batch
from .scripts.run_sim import simulate_matches

__all__ = ["MatchEngine", "simulate_batch", "simulate_matches"]
