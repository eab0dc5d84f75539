"""
Event logging system for token football match simulation.
Provides DataFrame, CSV and PM4Py XES exports of match event logs.
"""

from .event_logger import MatchEvent, MatchEventLog

__all__ = ['MatchEvent', 'MatchEventLog']
