"""
Team model with roster, backroom staff, strategy and match statistics.
"""

import numpy as np
from typing import List, Dict, Optional, Sequence, Tuple
from dataclasses import dataclass, replace

from .config import StaffSpecialization
from .errors import ConfigurationError
from .player import Lane, PlayerAttributes, PlayerRecord, PlayerRole, TokenPlayer


@dataclass
class TeamStrategy:
    """
    Team tactical strategy configuration.

    Defines high-level approach including:
    - Formation used to generate default squads
    - Pressing intensity, which scales defensive pressure in bags
    - Possession style, which favours direct or patient tokens in bags and
      is adapted late in the match
    """
    formation: str = "4-4-2"
    pressing_intensity: float = 0.5  # 0-1 scale
    possession_style: str = "balanced"  # "defensive", "balanced", "attacking"


@dataclass(frozen=True)
class StaffMember:
    """Backroom staff member whose specialization biases the team's bags."""
    staff_id: str
    name: str
    specialization: StaffSpecialization


# Formation -> (role, lane) for 11 players, goalkeeper first
FORMATIONS: Dict[str, List[Tuple[PlayerRole, Lane]]] = {
    "4-4-2": [
        (PlayerRole.GOALKEEPER, Lane.CENTRE),
        (PlayerRole.FULLBACK, Lane.LEFT),
        (PlayerRole.CENTRE_BACK, Lane.LEFT),
        (PlayerRole.CENTRE_BACK, Lane.RIGHT),
        (PlayerRole.FULLBACK, Lane.RIGHT),
        (PlayerRole.WINGER, Lane.LEFT),
        (PlayerRole.CENTRE_MIDFIELDER, Lane.LEFT),
        (PlayerRole.CENTRE_MIDFIELDER, Lane.RIGHT),
        (PlayerRole.WINGER, Lane.RIGHT),
        (PlayerRole.STRIKER, Lane.LEFT),
        (PlayerRole.STRIKER, Lane.RIGHT),
    ],
    "4-3-3": [
        (PlayerRole.GOALKEEPER, Lane.CENTRE),
        (PlayerRole.FULLBACK, Lane.LEFT),
        (PlayerRole.CENTRE_BACK, Lane.LEFT),
        (PlayerRole.CENTRE_BACK, Lane.RIGHT),
        (PlayerRole.FULLBACK, Lane.RIGHT),
        (PlayerRole.DEFENSIVE_MIDFIELDER, Lane.CENTRE),
        (PlayerRole.CENTRE_MIDFIELDER, Lane.LEFT),
        (PlayerRole.CENTRE_MIDFIELDER, Lane.RIGHT),
        (PlayerRole.WINGER, Lane.LEFT),
        (PlayerRole.STRIKER, Lane.CENTRE),
        (PlayerRole.WINGER, Lane.RIGHT),
    ],
    "4-2-3-1": [
        (PlayerRole.GOALKEEPER, Lane.CENTRE),
        (PlayerRole.FULLBACK, Lane.LEFT),
        (PlayerRole.CENTRE_BACK, Lane.LEFT),
        (PlayerRole.CENTRE_BACK, Lane.RIGHT),
        (PlayerRole.FULLBACK, Lane.RIGHT),
        (PlayerRole.CENTRE_MIDFIELDER, Lane.LEFT),
        (PlayerRole.CENTRE_MIDFIELDER, Lane.RIGHT),
        (PlayerRole.ATTACKING_MIDFIELDER, Lane.LEFT),
        (PlayerRole.ATTACKING_MIDFIELDER, Lane.CENTRE),
        (PlayerRole.ATTACKING_MIDFIELDER, Lane.RIGHT),
        (PlayerRole.STRIKER, Lane.CENTRE),
    ],
}


def create_squad(team_id: str,
                 rng: np.random.Generator,
                 formation: str = "4-4-2") -> List[PlayerRecord]:
    """
    Create 11 roster records with generated attributes for a formation.

    Args:
        team_id: Team identifier used to prefix player ids
        rng: Random generator for attribute generation
        formation: Key into FORMATIONS

    Returns:
        Ordered roster, goalkeeper first
    """
    try:
        layout = FORMATIONS[formation]
    except KeyError:
        raise ConfigurationError(f"unknown formation {formation!r}") from None

    return [
        PlayerRecord(
            player_id=f"{team_id}_P{i+1:02d}",
            name=f"Player {i+1}",
            team_id=team_id,
            role=role,
            attributes=PlayerAttributes.generate_for_role(role, rng),
            lane=lane,
        )
        for i, (role, lane) in enumerate(layout)
    ]


class Team:
    """
    Football team taking part in one match.

    Manages:
    - The roster wrapped as TokenPlayers
    - Staff specializations applied to bags
    - Match statistics and possession time
    - Strategy adaptation during the match
    """

    STAT_KEYS = (
        "passes", "passes_completed", "shots", "shots_on_target", "goals", "xg",
        "fouls", "tackles", "interceptions", "corners", "offsides",
        "yellow_cards", "red_cards", "saves", "clearances", "duels_won", "duels_lost",
        "own_goals", "possession_ticks",
    )

    def __init__(self,
                 team_id: str,
                 name: str,
                 roster: Sequence[PlayerRecord],
                 is_home: bool,
                 staff: Optional[Sequence[StaffMember]] = None,
                 strategy: Optional[TeamStrategy] = None,
                 reach_presence: float = 0.5):
        """
        Initialize team with players, staff and tactical setup.

        Args:
            team_id: Unique team identifier
            name: Team name
            roster: Ordered player records (order is kept for tie-breaking)
            is_home: True if the team attacks towards column 5
            staff: Backroom staff members
            strategy: Tactical strategy (default if None)
            reach_presence: Presence credited to players in their reach zones
        """
        if not roster:
            raise ConfigurationError(f"team {team_id} has an empty roster")
        foreign = [r.player_id for r in roster if r.team_id != team_id]
        if foreign:
            raise ConfigurationError(f"players {foreign} do not belong to team {team_id}")

        self.team_id = team_id
        self.name = name
        self.is_home = is_home
        self.staff = list(staff or [])
        self.strategy = replace(strategy) if strategy else TeamStrategy()
        self.players = [TokenPlayer(record, is_home, reach_presence) for record in roster]

        # Performance metrics
        self.possession_time = 0.0
        self.stats: Dict[str, float] = {key: 0 for key in self.STAT_KEYS}

    def active_players(self) -> List[TokenPlayer]:
        """On-pitch players in roster order."""
        return [p for p in self.players if p.on_pitch]

    def goalkeeper(self) -> Optional[TokenPlayer]:
        for player in self.players:
            if player.on_pitch and player.is_goalkeeper:
                return player
        return None

    def get_player(self, player_id: str) -> Optional[TokenPlayer]:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def staff_specializations(self) -> List[StaffSpecialization]:
        """Specializations present on the staff, in declaration order, without duplicates."""
        present = {member.specialization for member in self.staff}
        return [spec for spec in StaffSpecialization if spec in present]

    def get_possession_percentage(self, total_time: float) -> float:
        """Calculate possession percentage for the team."""
        if total_time <= 0:
            return 0.0
        return (self.possession_time / total_time) * 100.0

    def get_pass_accuracy(self) -> float:
        """Calculate pass completion percentage."""
        if self.stats["passes"] == 0:
            return 0.0
        return (self.stats["passes_completed"] / self.stats["passes"]) * 100.0

    def update_stats(self, increments: Dict[str, float]) -> None:
        """Apply stat increments keyed by stat name."""
        for key, amount in increments.items():
            if key not in self.stats:
                raise KeyError(f"unknown team stat {key!r}")
            self.stats[key] += amount

    def get_role_stats(self) -> Dict[str, Dict[str, float]]:
        """
        Aggregate player statistics per role.

        Returns:
            Role name -> summed player stats plus ``players`` (squad count) and
            ``rating`` (mean match rating of the role)
        """
        by_role: Dict[str, List[TokenPlayer]] = {}
        for player in self.players:
            by_role.setdefault(player.role.value, []).append(player)

        summary = {}
        for role, players in by_role.items():
            totals: Dict[str, float] = {}
            for player in players:
                for key, amount in player.stats.items():
                    totals[key] = totals.get(key, 0) + amount
            totals["players"] = len(players)
            totals["rating"] = round(float(np.mean([p.rating for p in players])), 2)
            summary[role] = dict(sorted(totals.items()))
        return summary

    def adapt_strategy(self, match_minute: float, score_difference: int, late_minute: float = 70.0) -> None:
        """
        Adapt strategy based on match situation.

        Args:
            match_minute: Current match time in minutes
            score_difference: Goal difference (positive if winning)
            late_minute: Minute after which the team reacts to the score
        """
        if match_minute <= late_minute:
            return
        if score_difference < 0:  # Losing - press harder
            self.strategy.pressing_intensity = min(1.0, self.strategy.pressing_intensity + 0.2)
            self.strategy.possession_style = "attacking"
        elif score_difference > 0:  # Winning - sit deeper
            self.strategy.pressing_intensity = max(0.2, self.strategy.pressing_intensity - 0.1)
            self.strategy.possession_style = "defensive"
