"""
Match event logging for analysis and process mining.

Keeps the append-only, chronologically ordered event log of one match and
exports it as a pandas DataFrame, CSV or PM4Py-compatible XES.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd
import pm4py

if TYPE_CHECKING:
    from ..engine.pitch import Zone
    from ..engine.tokens import Token

logger = logging.getLogger(__name__)

# Match second 0 is mapped onto this instant for process-mining timestamps
BASE_TIMESTAMP = datetime(2000, 1, 1)

# Columns that are legitimately empty for engine events (kick-off, half time)
OPTIONAL_COLUMNS = ("actor_player_id",)

GOAL_EVENT_TYPES = ("SHOOT_GOAL", "HEADER_GOAL", "FREE_KICK_GOAL", "PENALTY_GOAL", "CORNER_GOAL", "OWN_GOAL")


@dataclass(frozen=True)
class MatchEvent:
    """
    Single match event.

    Ball position, possession and score describe the state right after the
    event was applied. Bag and drawn token are debug payload and may be None.
    """
    time: float
    type: str
    narrative_key: str
    team_id: str
    possession_team_id: str
    ball_position: 'Zone'
    score: Tuple[int, int]
    half: int
    phase: str
    sequence_number: int
    actor_player_id: Optional[str] = None
    narrative_params: Dict[str, Any] = field(default_factory=dict)
    bag: Optional[Tuple['Token', ...]] = None
    drawn_token: Optional['Token'] = None

    def to_dict(self, strip_debug: bool = False) -> Dict[str, Any]:
        data = {
            "time": self.time,
            "type": self.type,
            "narrativeKey": self.narrative_key,
            "narrativeParams": dict(self.narrative_params),
            "actorPlayerId": self.actor_player_id,
            "teamId": self.team_id,
            "possessionTeamId": self.possession_team_id,
            "ballPosition": self.ball_position.to_dict(),
            "score": {"home": self.score[0], "away": self.score[1]},
            "half": self.half,
            "phase": self.phase,
            "sequence": self.sequence_number,
        }
        if not strip_debug:
            if self.bag is not None:
                data["bag"] = [token.to_dict() for token in self.bag]
            if self.drawn_token is not None:
                data["drawnToken"] = self.drawn_token.to_dict()
        return data

    def to_row(self, match_id: str) -> Dict[str, Any]:
        """Flat record for tabular export."""
        return {
            "match_id": match_id,
            "time_seconds": self.time,
            "event_type": self.type,
            "narrative_key": self.narrative_key,
            "actor_player_id": self.actor_player_id,
            "team_id": self.team_id,
            "possession_team_id": self.possession_team_id,
            "ball_x": self.ball_position.x,
            "ball_y": self.ball_position.y,
            "home_score": self.score[0],
            "away_score": self.score[1],
            "half": self.half,
            "phase": self.phase,
            "sequence_number": self.sequence_number,
            "bag_size": len(self.bag) if self.bag is not None else 0,
        }


class MatchEventLog:
    """
    Append-only event log for one match.

    Events must arrive in non-decreasing match time; the sequence number
    orders events that share a timestamp.
    """

    def __init__(self, match_id: str):
        """
        Initialize event log for a match.

        Args:
            match_id: Unique identifier for the match (the process-mining case id)
        """
        self.match_id = match_id
        self._events: List[MatchEvent] = []

    @classmethod
    def from_events(cls, match_id: str, events: Iterable[MatchEvent]) -> 'MatchEventLog':
        """Rebuild a log from already-recorded events, e.g. from a MatchResult."""
        log = cls(match_id)
        for event in events:
            log.append(event)
        return log

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[MatchEvent]:
        return iter(self._events)

    @property
    def events(self) -> Tuple[MatchEvent, ...]:
        return tuple(self._events)

    def append(self, event: MatchEvent) -> None:
        """
        Append one event.

        Raises:
            ValueError: If the event is earlier than the last logged event
        """
        if self._events and event.time < self._events[-1].time:
            raise ValueError(
                f"event {event.type} at {event.time}s precedes last event at {self._events[-1].time}s")
        self._events.append(event)

    def to_records(self, strip_debug: bool = False) -> List[Dict[str, Any]]:
        return [event.to_dict(strip_debug=strip_debug) for event in self._events]

    def to_dataframe(self) -> pd.DataFrame:
        """
        Event log as a DataFrame with PM4Py column names added.

        Returns:
            One row per event, empty DataFrame if nothing was logged
        """
        df = pd.DataFrame([event.to_row(self.match_id) for event in self._events])
        if df.empty:
            return df
        df['case:concept:name'] = df['match_id']
        df['concept:name'] = df['event_type']
        df['time:timestamp'] = BASE_TIMESTAMP + pd.to_timedelta(df['time_seconds'], unit='s')
        return df

    def export_to_csv(self, filepath: str) -> None:
        """
        Export event log to CSV format.

        Args:
            filepath: Output file path
        """
        df = self.to_dataframe()
        if df.empty:
            logger.warning("No events to export for %s", self.match_id)
            return
        df.to_csv(filepath, index=False)
        logger.info("Event log exported to %s", filepath)
        self._validate_export(df)

    def export_to_xes(self, filepath: str) -> None:
        """
        Export event log to XES format using PM4Py.

        Args:
            filepath: Output file path (.xes)
        """
        df = self.to_dataframe()
        if df.empty:
            logger.warning("No events to export for %s", self.match_id)
            return
        event_log = pm4py.format_dataframe(
            df,
            case_id='case:concept:name',
            activity_key='concept:name',
            timestamp_key='time:timestamp'
        )
        pm4py.write_xes(event_log, filepath)
        logger.info("XES event log exported to %s", filepath)

    def _validate_export(self, df: pd.DataFrame) -> None:
        """Log warnings about gaps or ordering problems in an exported log."""
        required = df.drop(columns=[c for c in OPTIONAL_COLUMNS if c in df.columns])
        missing_percentage = (required.isnull().sum() / len(required)) * 100
        high_missing = missing_percentage[missing_percentage > 1.0]
        if not high_missing.empty:
            logger.warning("High missing values in columns: %s", high_missing.to_dict())

        if not df['time_seconds'].is_monotonic_increasing:
            logger.warning("Timestamps are not in chronological order for %s", self.match_id)

    def get_summary_stats(self) -> Dict[str, Any]:
        """Get summary statistics for the event log."""
        df = self.to_dataframe()
        if df.empty:
            return {}

        duration_minutes = df['time_seconds'].max() / 60
        return {
            'total_events': len(df),
            'unique_event_types': df['event_type'].nunique(),
            'match_duration_minutes': duration_minutes,
            'events_per_minute': len(df) / max(1.0, duration_minutes),
            'events_by_team': df.groupby('team_id').size().to_dict(),
            'goals_logged': int(df['event_type'].isin(GOAL_EVENT_TYPES).sum()),
            'passes_logged': int(df['event_type'].str.startswith('PASS_').sum()),
            'tackles_logged': int((df['event_type'] == 'TACKLE').sum()),
        }

    def zone_heatmap(self) -> pd.DataFrame:
        """Event counts per ball zone as a rows x columns table."""
        df = self.to_dataframe()
        if df.empty:
            return df
        return df.pivot_table(index='ball_y', columns='ball_x', values='sequence_number',
                              aggfunc='count', fill_value=0)

