"""
Pitch grid and zone catalogue for the token match engine.

The pitch is a 6x5 grid of zones. Home attacks towards column 5, away towards
column 0. Zone templates are declared from the attacking team's point of view
(attack-relative column 0 = own goal line, 5 = opponent's box) so the same
catalogue serves both teams.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from .errors import ConfigurationError, InvariantViolation
from .tokens import TOKEN_CATALOGUE, MatchPhase, TokenFamily, TokenType


class PitchZones:
    """
    Grid geometry and tactical influence areas.

    Zones are used for:
    - Ball position (one zone at all times)
    - Player presence when building bags
    - Attack-relative template lookup
    """

    COLUMNS = 6
    ROWS = 5
    CENTRE = (2, 2)
    WING_ROWS = frozenset({0, 4})
    LAST_COLUMN = COLUMNS - 1

    # Influence areas for a home player (attacking towards x=5); away players
    # are mirrored on the x axis.
    ROLE_ZONES: Dict[str, Dict[str, Tuple[Tuple[int, int], ...]]] = {
        "GK": {"active": ((0, 2),), "reach": ((0, 1), (0, 3), (1, 2))},
        "DC": {"active": ((1, 1), (1, 2), (1, 3)), "reach": ((0, 1), (0, 2), (0, 3), (2, 2))},
        "DCL": {"active": ((1, 1), (1, 2)), "reach": ((0, 1), (0, 2), (2, 1))},
        "DCR": {"active": ((1, 2), (1, 3)), "reach": ((0, 2), (0, 3), (2, 3))},
        "DL": {"active": ((1, 0), (2, 0)), "reach": ((0, 0), (1, 1), (3, 0))},
        "DR": {"active": ((1, 4), (2, 4)), "reach": ((0, 4), (1, 3), (3, 4))},
        "DM": {"active": ((2, 1), (2, 2), (2, 3)), "reach": ((1, 1), (1, 2), (1, 3), (3, 2))},
        "MC": {"active": ((2, 2), (3, 2)), "reach": ((2, 1), (2, 3), (3, 1), (3, 3), (4, 2))},
        "MCL": {"active": ((2, 1), (3, 1)), "reach": ((2, 2), (3, 2), (2, 0))},
        "MCR": {"active": ((2, 3), (3, 3)), "reach": ((2, 2), (3, 2), (2, 4))},
        "AMC": {"active": ((3, 2), (4, 2)), "reach": ((3, 1), (3, 3), (4, 1), (4, 3), (5, 2))},
        "AML": {"active": ((3, 0), (4, 0)), "reach": ((2, 0), (5, 0), (4, 1), (5, 1))},
        "AMR": {"active": ((3, 4), (4, 4)), "reach": ((2, 4), (5, 4), (4, 3), (5, 3))},
        "LW": {"active": ((4, 0), (5, 0)), "reach": ((3, 0), (4, 1), (5, 1))},
        "RW": {"active": ((4, 4), (5, 4)), "reach": ((3, 4), (4, 3), (5, 3))},
        "ST": {"active": ((4, 2), (5, 1), (5, 2), (5, 3)), "reach": ((3, 2), (4, 1), (4, 3))},
        "STL": {"active": ((4, 1), (5, 1), (5, 2)), "reach": ((3, 1), (4, 2), (5, 0))},
        "STR": {"active": ((4, 3), (5, 2), (5, 3)), "reach": ((3, 3), (4, 2), (5, 4))},
    }

    @classmethod
    def in_bounds(cls, x: int, y: int) -> bool:
        return 0 <= x < cls.COLUMNS and 0 <= y < cls.ROWS

    @classmethod
    def clamp(cls, x: int, y: int) -> Tuple[int, int]:
        """Clamp raw coordinates onto the grid."""
        return min(max(x, 0), cls.COLUMNS - 1), min(max(y, 0), cls.ROWS - 1)

    @classmethod
    def relative_column(cls, x: int, attacking_home: bool) -> int:
        """Column seen from the attacking team: 0 = own byline, 5 = opponent's byline."""
        return x if attacking_home else cls.LAST_COLUMN - x

    @classmethod
    def absolute_column(cls, rel_x: int, attacking_home: bool) -> int:
        return rel_x if attacking_home else cls.LAST_COLUMN - rel_x

    @classmethod
    def influence(cls, profile: str, is_home: bool) -> Tuple[FrozenSet[Tuple[int, int]], FrozenSet[Tuple[int, int]]]:
        """
        Active and reach zones for a zone profile, oriented for the team's side.

        Returns:
            (active zones, reach zones) as absolute coordinates
        """
        try:
            zones = cls.ROLE_ZONES[profile]
        except KeyError:
            raise ConfigurationError(f"unknown zone profile {profile!r}") from None
        if is_home:
            return frozenset(zones["active"]), frozenset(zones["reach"])
        active = frozenset((cls.LAST_COLUMN - x, y) for x, y in zones["active"])
        reach = frozenset((cls.LAST_COLUMN - x, y) for x, y in zones["reach"])
        return active, reach


@dataclass(frozen=True)
class Zone:
    """One cell of the pitch grid. Building a zone off the grid is an invariant violation."""
    x: int
    y: int

    def __post_init__(self):
        if not PitchZones.in_bounds(self.x, self.y):
            raise InvariantViolation(f"zone ({self.x}, {self.y}) is outside the {PitchZones.COLUMNS}x{PitchZones.ROWS} grid")

    @classmethod
    def centre(cls) -> "Zone":
        return cls(*PitchZones.CENTRE)

    @classmethod
    def penalty_spot(cls, attacking_home: bool) -> "Zone":
        return cls(PitchZones.absolute_column(PitchZones.LAST_COLUMN, attacking_home), 2)

    @classmethod
    def goal_area(cls, defending_home: bool) -> "Zone":
        """Zone in front of a team's own goal, where goal kicks are taken."""
        return cls(PitchZones.absolute_column(0, defending_home), 2)

    def relative_x(self, attacking_home: bool) -> int:
        return PitchZones.relative_column(self.x, attacking_home)

    def as_tuple(self) -> Tuple[int, int]:
        return self.x, self.y

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class TemplateEntry:
    """
    One token type offered by a zone template.

    Attributes:
        type: Token type
        weight: Base weight before skill, fatigue, pressure and staff scaling
        roles: Role codes allowed to contribute (None = any outfield player)
        min_column: Lowest attack-relative column where the entry applies
        max_column: Highest attack-relative column where the entry applies
        wing: True = wing rows only, False = central rows only, None = any row
    """
    type: TokenType
    weight: float
    roles: Optional[FrozenSet[str]] = None
    min_column: int = 0
    max_column: int = PitchZones.LAST_COLUMN
    wing: Optional[bool] = None

    def applies_to(self, rel_x: int, y: int) -> bool:
        if not self.min_column <= rel_x <= self.max_column:
            return False
        if self.wing is None:
            return True
        return (y in PitchZones.WING_ROWS) == self.wing


@dataclass(frozen=True)
class ZoneTemplate:
    """Offensive bundle for the team in possession and defensive bundle for the other."""
    offense: Tuple[TemplateEntry, ...]
    defense: Tuple[TemplateEntry, ...]

    def filtered(self, rel_x: int, y: int) -> "ZoneTemplate":
        return ZoneTemplate(
            offense=tuple(e for e in self.offense if e.applies_to(rel_x, y)),
            defense=tuple(e for e in self.defense if e.applies_to(rel_x, y)),
        )


GK_ONLY = frozenset({"GK"})


def _e(token_type: TokenType, weight: float, **kwargs) -> TemplateEntry:
    return TemplateEntry(token_type, weight, **kwargs)


T = TokenType

# Offensive bundles by attack-relative column band
BUILD_UP = (
    _e(T.PASS_SHORT, 12), _e(T.PASS_LATERAL, 6), _e(T.PASS_BACK, 3, min_column=1),
    _e(T.PASS_LONG, 4), _e(T.DRIBBLE, 4), _e(T.MISPLACED_PASS, 2), _e(T.BAD_TOUCH, 1.5),
    _e(T.FATIGUE, 5), _e(T.INJURY, 0.15),
)
MIDFIELD = (
    _e(T.PASS_SHORT, 12), _e(T.PASS_LATERAL, 4), _e(T.PASS_BACK, 4), _e(T.PASS_LONG, 3),
    _e(T.PASS_SWITCH, 2, wing=True), _e(T.ONE_TWO, 3), _e(T.THROUGH_BALL, 3, min_column=3),
    _e(T.DRIBBLE, 6), _e(T.DRIBBLE_WIDE, 3, wing=True), _e(T.MISPLACED_PASS, 2),
    _e(T.BAD_TOUCH, 1.5), _e(T.DUEL_LOST, 1.5), _e(T.FATIGUE, 5), _e(T.INJURY, 0.15),
)
APPROACH = (
    _e(T.PASS_SHORT, 9), _e(T.PASS_BACK, 4), _e(T.THROUGH_BALL, 4, wing=False),
    _e(T.ONE_TWO, 3, wing=False), _e(T.DRIBBLE, 6), _e(T.DRIBBLE_WIDE, 3, wing=True),
    _e(T.CROSS, 6, wing=True), _e(T.SHOOT_GOAL, 0.8, wing=False), _e(T.SHOOT_SAVED, 2, wing=False),
    _e(T.SHOOT_OFF_TARGET, 3, wing=False), _e(T.SHOOT_WOODWORK, 0.3, wing=False),
    _e(T.WOODWORK_OUT, 0.2, wing=False), _e(T.MISPLACED_PASS, 2), _e(T.CROSS_OVERHIT, 1.5, wing=True),
    _e(T.BAD_TOUCH, 1.5), _e(T.DUEL_LOST, 1.5), _e(T.FATIGUE, 5), _e(T.INJURY, 0.15),
)
FINISH_CENTRAL = (
    _e(T.SHOOT_GOAL, 3.5), _e(T.SHOOT_SAVED, 4), _e(T.SHOOT_SAVED_CORNER, 2),
    _e(T.SHOOT_OFF_TARGET, 4), _e(T.SHOOT_WOODWORK, 0.5), _e(T.WOODWORK_OUT, 0.3),
    _e(T.HEADER_GOAL, 1.5), _e(T.HEADER_OFF_TARGET, 2), _e(T.REBOUND, 1), _e(T.PASS_SHORT, 4),
    _e(T.PASS_BACK, 3), _e(T.DRIBBLE, 2), _e(T.BAD_TOUCH, 1.5), _e(T.FATIGUE, 5),
)
FINISH_HALF_SPACE = (
    _e(T.SHOOT_GOAL, 2), _e(T.SHOOT_SAVED, 3), _e(T.SHOOT_SAVED_CORNER, 1),
    _e(T.SHOOT_OFF_TARGET, 4), _e(T.SHOOT_WOODWORK, 0.4), _e(T.WOODWORK_OUT, 0.3),
    _e(T.REBOUND, 0.8), _e(T.CUT_BACK, 3), _e(T.PASS_SHORT, 5), _e(T.PASS_BACK, 3), _e(T.DRIBBLE, 3),
    _e(T.BAD_TOUCH, 1.5), _e(T.FATIGUE, 5),
)
FINISH_WIDE = (
    _e(T.CROSS, 9), _e(T.CUT_BACK, 4), _e(T.DRIBBLE_WIDE, 3), _e(T.PASS_BACK, 4),
    _e(T.PASS_SHORT, 3), _e(T.CROSS_OVERHIT, 2), _e(T.FATIGUE, 5),
)

# Defensive bundles, indexed by the attacker's relative column
HIGH_PRESS = (
    _e(T.PRESS, 8), _e(T.INTERCEPT, 4), _e(T.BALL_RECOVERY, 2), _e(T.DUEL_WON, 2), _e(T.TACKLE, 3),
    _e(T.FOUL, 1.2), _e(T.YELLOW_CARD, 0.3), _e(T.FATIGUE, 5),
)
MIDFIELD_BLOCK = (
    _e(T.PRESS, 6), _e(T.TACKLE, 5), _e(T.INTERCEPT, 6), _e(T.BALL_RECOVERY, 3), _e(T.DUEL_WON, 3),
    _e(T.FOUL, 2), _e(T.YELLOW_CARD, 0.5), _e(T.RED_CARD, 0.03), _e(T.OFFSIDE, 0.8, min_column=3),
    _e(T.FATIGUE, 5),
)
LOW_BLOCK = (
    _e(T.TACKLE, 6), _e(T.INTERCEPT, 6), _e(T.BALL_RECOVERY, 2), _e(T.DUEL_WON, 2), _e(T.PRESS, 3),
    _e(T.CLEARANCE, 3), _e(T.CLEARANCE_KEEP, 1.5), _e(T.CLEARANCE_LOSE, 1.5),
    _e(T.CLEARANCE_THROW, 1.5, wing=True), _e(T.BLOCK, 2, wing=False),
    _e(T.GK_SWEEPER, 1, roles=GK_ONLY, wing=False), _e(T.FOUL, 2), _e(T.YELLOW_CARD, 0.6),
    _e(T.RED_CARD, 0.03), _e(T.OFFSIDE, 2), _e(T.FATIGUE, 5),
)
BOX_DEFENCE = (
    _e(T.TACKLE, 4), _e(T.INTERCEPT, 3), _e(T.BLOCK, 4, wing=False), _e(T.CLEARANCE, 5),
    _e(T.CLEARANCE_KEEP, 2), _e(T.CLEARANCE_LOSE, 2), _e(T.CLEARANCE_CORNER, 2),
    _e(T.CLEARANCE_THROW, 1, wing=True),
    _e(T.GK_SAVE, 3, roles=GK_ONLY, wing=False), _e(T.GK_CLAIM, 3, roles=GK_ONLY),
    _e(T.GK_PUNCH, 1, roles=GK_ONLY), _e(T.FOUL, 1.5), _e(T.FOUL_PENALTY, 0.5, wing=False),
    _e(T.YELLOW_CARD, 0.5), _e(T.RED_CARD, 0.03), _e(T.OFFSIDE, 1.5), _e(T.OWN_GOAL, 0.08, wing=False),
    _e(T.FATIGUE, 5),
)

SET_PIECE_TEMPLATES: Dict[MatchPhase, ZoneTemplate] = {
    MatchPhase.KICK_OFF: ZoneTemplate(
        offense=(_e(T.PASS_SHORT, 6), _e(T.PASS_LATERAL, 4)),
        defense=(),
    ),
    MatchPhase.GOAL_KICK: ZoneTemplate(
        offense=(_e(T.GK_SHORT, 6, roles=GK_ONLY), _e(T.GK_LONG, 4, roles=GK_ONLY)),
        defense=(),
    ),
    MatchPhase.CORNER: ZoneTemplate(
        offense=(_e(T.CORNER_CROSS, 8), _e(T.CORNER_SHORT, 3), _e(T.HEADER_GOAL, 1.0),
                 _e(T.HEADER_OFF_TARGET, 1.5), _e(T.HEAD_PASS, 1.5), _e(T.CORNER_GOAL, 0.6)),
        defense=(_e(T.GK_CLAIM, 3, roles=GK_ONLY), _e(T.GK_PUNCH, 1.5, roles=GK_ONLY),
                 _e(T.CLEARANCE, 5), _e(T.CLEARANCE_KEEP, 1.5), _e(T.CLEARANCE_LOSE, 2),
                 _e(T.CLEARANCE_CORNER, 1.5), _e(T.OWN_GOAL, 0.05), _e(T.FOUL, 0.5)),
    ),
    MatchPhase.THROW_IN: ZoneTemplate(
        offense=(_e(T.THROW_IN_SHORT, 8), _e(T.THROW_IN_LONG, 3)),
        defense=(_e(T.INTERCEPT, 1.5),),
    ),
    MatchPhase.FREE_KICK: ZoneTemplate(
        offense=(_e(T.FREE_KICK_PASS, 8), _e(T.FREE_KICK_CROSS, 3, min_column=3),
                 _e(T.FREE_KICK_GOAL, 0.4, min_column=4), _e(T.FREE_KICK_SAVED, 1, min_column=4),
                 _e(T.FREE_KICK_OFF_TARGET, 1.5, min_column=4), _e(T.FREE_KICK_WALL, 1.5, min_column=4)),
        defense=(_e(T.BLOCK, 1.5, min_column=4), _e(T.INTERCEPT, 1.5),
                 _e(T.GK_CLAIM, 1, roles=GK_ONLY, min_column=3)),
    ),
    MatchPhase.PENALTY: ZoneTemplate(
        offense=(_e(T.PENALTY_GOAL, 7.6), _e(T.PENALTY_MISS, 0.8)),
        defense=(_e(T.PENALTY_SAVED, 1.6, roles=GK_ONLY),),
    ),
}

FALLBACK_TOKENS: Dict[MatchPhase, TokenType] = {
    MatchPhase.NORMAL: T.PASS_SHORT,
    MatchPhase.KICK_OFF: T.PASS_SHORT,
    MatchPhase.GOAL_KICK: T.GK_SHORT,
    MatchPhase.CORNER: T.CORNER_SHORT,
    MatchPhase.THROW_IN: T.THROW_IN_SHORT,
    MatchPhase.FREE_KICK: T.FREE_KICK_PASS,
    MatchPhase.PENALTY: T.PENALTY_GOAL,
}


def _offense_bundle(rel_x: int, y: int) -> Tuple[TemplateEntry, ...]:
    if rel_x <= 1:
        return BUILD_UP
    if rel_x <= 3:
        return MIDFIELD
    if rel_x == 4:
        return APPROACH
    if y in PitchZones.WING_ROWS:
        return FINISH_WIDE
    return FINISH_CENTRAL if y == 2 else FINISH_HALF_SPACE


def _defense_bundle(rel_x: int) -> Tuple[TemplateEntry, ...]:
    if rel_x <= 1:
        return HIGH_PRESS
    if rel_x <= 3:
        return MIDFIELD_BLOCK
    return LOW_BLOCK if rel_x == 4 else BOX_DEFENCE


@dataclass(frozen=True)
class ZoneCatalogue:
    """
    Which token types can enter a bag, per zone and match phase.

    Open-play templates are keyed by (attack-relative column, row). Set-piece
    phases use one template each, filtered by column when the bag is built.
    """
    open_play: Dict[Tuple[int, int], ZoneTemplate]
    set_pieces: Dict[MatchPhase, ZoneTemplate]
    fallbacks: Dict[MatchPhase, TokenType]

    @classmethod
    def default(cls) -> "ZoneCatalogue":
        open_play = {}
        for rel_x in range(PitchZones.COLUMNS):
            for y in range(PitchZones.ROWS):
                template = ZoneTemplate(_offense_bundle(rel_x, y), _defense_bundle(rel_x))
                open_play[(rel_x, y)] = template.filtered(rel_x, y)
        return cls(open_play=open_play, set_pieces=dict(SET_PIECE_TEMPLATES),
                   fallbacks=dict(FALLBACK_TOKENS))

    def template_for(self, zone: Zone, phase: MatchPhase, attacking_home: bool) -> ZoneTemplate:
        """
        Resolve the template for the ball zone from the attacking team's view.

        Args:
            zone: Current ball zone
            phase: Current match phase
            attacking_home: True when the home team has possession

        Returns:
            Template with entries restricted to the zone
        """
        rel_x = zone.relative_x(attacking_home)
        if phase is MatchPhase.NORMAL:
            template = self.open_play[(rel_x, zone.y)]
        else:
            template = self.set_pieces[phase]
        return template.filtered(rel_x, zone.y)

    def fallback_for(self, phase: MatchPhase) -> TokenType:
        return self.fallbacks[phase]

    def validate(self) -> None:
        """Raise ConfigurationError if any zone or phase lacks a usable template."""
        missing = [(x, y) for x in range(PitchZones.COLUMNS) for y in range(PitchZones.ROWS)
                   if (x, y) not in self.open_play]
        if missing:
            raise ConfigurationError(f"zone templates missing for {missing}")
        for phase in MatchPhase:
            if phase not in self.fallbacks:
                raise ConfigurationError(f"no fallback token for phase {phase.value}")
            if phase is not MatchPhase.NORMAL and phase not in self.set_pieces:
                raise ConfigurationError(f"no template for set-piece phase {phase.value}")

        for (rel_x, y), template in self.open_play.items():
            if not template.offense:
                raise ConfigurationError(f"zone template {(rel_x, y)} has no offensive entries")
            for entry in template.offense + template.defense:
                self._check_entry(entry, f"zone {(rel_x, y)}")
                spec = TOKEN_CATALOGUE[entry.type]
                if spec.family is TokenFamily.SET_PIECE:
                    raise ConfigurationError(f"set-piece token {entry.type.value} in open-play zone {(rel_x, y)}")
                if spec.family is TokenFamily.SHOOT and rel_x < 4:
                    raise ConfigurationError(f"shooting token {entry.type.value} too far from goal in zone {(rel_x, y)}")

        for phase, template in self.set_pieces.items():
            if not template.offense:
                raise ConfigurationError(f"set-piece template {phase.value} has no offensive entries")
            for entry in template.offense + template.defense:
                self._check_entry(entry, f"phase {phase.value}")

    @staticmethod
    def _check_entry(entry: TemplateEntry, where: str) -> None:
        if entry.type not in TOKEN_CATALOGUE:
            raise ConfigurationError(f"unknown token type {entry.type!r} in {where}")
        if entry.weight <= 0:
            raise ConfigurationError(f"non-positive weight for {entry.type.value} in {where}")
