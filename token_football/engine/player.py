"""
Player model for the token match engine.

A static ``PlayerRecord`` comes in from the roster; the engine wraps it in a
``TokenPlayer`` that carries fatigue, discipline and per-match statistics for
the duration of one match.
"""

import numpy as np
from typing import Dict, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from .pitch import PitchZones, Zone


class PlayerRole(Enum):
    """
    Role catalog for the token simulation.

    Position Responsibilities:
    - GK: Shot stopping, claiming crosses, distribution
    - CB: Central defending, aerial duels, clearances
    - FB: Wing defending, overlapping runs
    - DM: Screening, interceptions, recycling possession
    - CM: Box-to-box passing and pressing
    - AM: Creative passing and shooting between the lines
    - W: Wing play, dribbling and crossing
    - ST: Finishing and pressing from the front
    """
    GOALKEEPER = "GK"
    CENTRE_BACK = "CB"
    FULLBACK = "FB"
    DEFENSIVE_MIDFIELDER = "DM"
    CENTRE_MIDFIELDER = "CM"
    ATTACKING_MIDFIELDER = "AM"
    WINGER = "W"
    STRIKER = "ST"


class Lane(Enum):
    """Side of the pitch a player occupies (home orientation, row 0 = left)."""
    LEFT = "L"
    CENTRE = "C"
    RIGHT = "R"


# (role, lane) -> influence profile in PitchZones.ROLE_ZONES
ZONE_PROFILES: Dict[Tuple[PlayerRole, Lane], str] = {
    (PlayerRole.GOALKEEPER, Lane.CENTRE): "GK",
    (PlayerRole.CENTRE_BACK, Lane.CENTRE): "DC",
    (PlayerRole.CENTRE_BACK, Lane.LEFT): "DCL",
    (PlayerRole.CENTRE_BACK, Lane.RIGHT): "DCR",
    (PlayerRole.FULLBACK, Lane.LEFT): "DL",
    (PlayerRole.FULLBACK, Lane.RIGHT): "DR",
    (PlayerRole.DEFENSIVE_MIDFIELDER, Lane.CENTRE): "DM",
    (PlayerRole.CENTRE_MIDFIELDER, Lane.CENTRE): "MC",
    (PlayerRole.CENTRE_MIDFIELDER, Lane.LEFT): "MCL",
    (PlayerRole.CENTRE_MIDFIELDER, Lane.RIGHT): "MCR",
    (PlayerRole.ATTACKING_MIDFIELDER, Lane.CENTRE): "AMC",
    (PlayerRole.ATTACKING_MIDFIELDER, Lane.LEFT): "AML",
    (PlayerRole.ATTACKING_MIDFIELDER, Lane.RIGHT): "AMR",
    (PlayerRole.WINGER, Lane.LEFT): "LW",
    (PlayerRole.WINGER, Lane.RIGHT): "RW",
    (PlayerRole.STRIKER, Lane.CENTRE): "ST",
    (PlayerRole.STRIKER, Lane.LEFT): "STL",
    (PlayerRole.STRIKER, Lane.RIGHT): "STR",
}

# Lane used when a role has no profile for the requested one
_DEFAULT_LANE = {
    PlayerRole.GOALKEEPER: Lane.CENTRE,
    PlayerRole.FULLBACK: Lane.LEFT,
    PlayerRole.DEFENSIVE_MIDFIELDER: Lane.CENTRE,
    PlayerRole.WINGER: Lane.LEFT,
}


def zone_profile(role: PlayerRole, lane: Lane) -> str:
    """Influence profile for a role played in a lane."""
    profile = ZONE_PROFILES.get((role, lane))
    if profile is None:
        profile = ZONE_PROFILES[(role, _DEFAULT_LANE.get(role, Lane.CENTRE))]
    return profile


@dataclass
class PlayerAttributes:
    """Player attributes on a 1-99 scale; 50 is the neutral reference."""
    passing: float
    dribbling: float
    crossing: float
    shooting: float
    heading: float
    tackling: float
    positioning: float
    goalkeeping: float
    stamina: float
    pace: float

    @classmethod
    def generate_for_role(cls,
                          role: PlayerRole,
                          rng: np.random.Generator,
                          variance: float = 8.0) -> 'PlayerAttributes':
        """
        Generate realistic attributes for a player role.

        Args:
            role: Tactical role
            rng: Random generator (seeded by the caller for reproducible rosters)
            variance: Standard deviation around the role profile

        Returns:
            PlayerAttributes clipped to [1, 99]
        """
        # passing, dribbling, crossing, shooting, heading, tackling, positioning, goalkeeping, stamina, pace
        profiles = {
            PlayerRole.GOALKEEPER: (60, 30, 25, 20, 40, 35, 70, 80, 65, 45),
            PlayerRole.CENTRE_BACK: (62, 45, 40, 35, 78, 78, 75, 10, 72, 58),
            PlayerRole.FULLBACK: (68, 62, 68, 40, 58, 70, 66, 10, 80, 76),
            PlayerRole.DEFENSIVE_MIDFIELDER: (74, 58, 55, 50, 66, 76, 76, 10, 80, 62),
            PlayerRole.CENTRE_MIDFIELDER: (80, 68, 62, 60, 58, 64, 70, 10, 82, 66),
            PlayerRole.ATTACKING_MIDFIELDER: (82, 78, 68, 72, 52, 45, 66, 10, 72, 72),
            PlayerRole.WINGER: (72, 80, 76, 66, 50, 42, 60, 10, 76, 84),
            PlayerRole.STRIKER: (64, 70, 50, 82, 76, 38, 72, 10, 72, 78),
        }
        values = np.clip(rng.normal(profiles[role], variance), 1, 99)
        return cls(*(float(v) for v in values))

    def get(self, name: Optional[str]) -> float:
        """Attribute by name; None maps to the neutral reference value."""
        if name is None:
            return 50.0
        return getattr(self, name)


@dataclass(frozen=True)
class PlayerRecord:
    """Static roster entry handed to the engine."""
    player_id: str
    name: str
    team_id: str
    role: PlayerRole
    attributes: PlayerAttributes
    lane: Lane = Lane.CENTRE


class TokenPlayer:
    """
    Simulation-time player state.

    Owned by one MatchEngine for one match. Fatigue only increases during a
    match and is clamped to [0, 100]. The match rating starts at 6.0 and moves
    with every token the player resolves, clamped to [4, 10].
    """

    MAX_FATIGUE = 100.0
    BASE_RATING = 6.0
    MIN_RATING = 4.0
    MAX_RATING = 10.0

    def __init__(self, record: PlayerRecord, is_home: bool, reach_presence: float = 0.5):
        """
        Wrap a roster record for one match.

        Args:
            record: Static player record
            is_home: Whether the player's team attacks towards column 5
            reach_presence: Presence credited in reach zones (active zones are 1.0)
        """
        self.record = record
        self.player_id = record.player_id
        self.name = record.name
        self.team_id = record.team_id
        self.role = record.role
        self.attributes = record.attributes
        self.is_home = is_home
        self.profile = zone_profile(record.role, record.lane)
        self._active, self._reach = PitchZones.influence(self.profile, is_home)
        self._reach_presence = reach_presence

        # State variables
        self.fatigue = 0.0
        self.yellow_cards = 0
        self.sent_off = False
        self.stats: Dict[str, float] = {}
        self.rating = self.BASE_RATING

    @property
    def on_pitch(self) -> bool:
        return not self.sent_off

    @property
    def is_goalkeeper(self) -> bool:
        return self.role == PlayerRole.GOALKEEPER

    def presence(self, zone: Zone) -> float:
        """How strongly the player covers a zone: 1.0 active, reach value, else 0."""
        cell = zone.as_tuple()
        if cell in self._active:
            return 1.0
        if cell in self._reach:
            return self._reach_presence
        return 0.0

    def skill(self, attribute: Optional[str]) -> float:
        return self.attributes.get(attribute)

    def add_fatigue(self, amount: float) -> None:
        """Accumulate fatigue, clamped to [0, 100]."""
        self.fatigue = min(self.MAX_FATIGUE, max(0.0, self.fatigue + amount))

    def record_stat(self, name: str, amount: float = 1) -> None:
        self.stats[name] = self.stats.get(name, 0) + amount

    def adjust_rating(self, delta: float) -> None:
        self.rating = min(self.MAX_RATING, max(self.MIN_RATING, self.rating + delta))

    def book(self) -> bool:
        """
        Show the player a yellow card.

        Returns:
            True if this was a second booking and the player is sent off
        """
        self.yellow_cards += 1
        self.record_stat("yellow_cards")
        if self.yellow_cards >= 2:
            self.send_off()
            return True
        return False

    def send_off(self) -> None:
        self.sent_off = True
        self.record_stat("red_cards")

    def to_dict(self) -> Dict:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "team_id": self.team_id,
            "role": self.role.value,
            "fatigue": round(self.fatigue, 3),
            "yellow_cards": self.yellow_cards,
            "sent_off": self.sent_off,
            "rating": round(self.rating, 2),
            "stats": dict(sorted(self.stats.items())),
        }
