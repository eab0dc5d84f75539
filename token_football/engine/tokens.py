"""
Token catalogue for the bag-draw match engine.

Every action the engine can resolve is a token type. Each type has a fixed
category (offensive, defensive or neutral), a family used by staff bonuses,
and the player attribute that scales its weight. The declaration order of
``TokenType`` is the catalogue order used to break draw ties.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class TokenCategory(Enum):
    """Balance classification of a token type."""
    OFFENSIVE = "offensive"
    DEFENSIVE = "defensive"
    NEUTRAL = "neutral"


class TokenFamily(Enum):
    """Groups of token types targeted by staff impacts and statistics."""
    PASS = "PASS"
    DRIBBLE = "DRIBBLE"
    CROSS = "CROSS"
    SHOOT = "SHOOT"
    TACKLE = "TACKLE"
    INTERCEPT = "INTERCEPT"
    BLOCK = "BLOCK"
    CLEARANCE = "CLEARANCE"
    GOALKEEPING = "GOALKEEPING"
    DISCIPLINE = "DISCIPLINE"
    SET_PIECE = "SET_PIECE"
    ERROR = "ERROR"
    FATIGUE = "FATIGUE"
    SYSTEM = "SYSTEM"


class MatchPhase(Enum):
    """Coarse match situation gating which templates feed the bag."""
    NORMAL = "NORMAL"
    KICK_OFF = "KICK_OFF"
    GOAL_KICK = "GOAL_KICK"
    CORNER = "CORNER"
    THROW_IN = "THROW_IN"
    FREE_KICK = "FREE_KICK"
    PENALTY = "PENALTY"

    @property
    def is_set_piece(self) -> bool:
        return self is not MatchPhase.NORMAL


class TokenType(Enum):
    # Passing
    PASS_SHORT = "PASS_SHORT"
    PASS_LATERAL = "PASS_LATERAL"
    PASS_BACK = "PASS_BACK"
    PASS_LONG = "PASS_LONG"
    PASS_SWITCH = "PASS_SWITCH"
    THROUGH_BALL = "THROUGH_BALL"
    ONE_TWO = "ONE_TWO"
    CUT_BACK = "CUT_BACK"
    HEAD_PASS = "HEAD_PASS"
    # Carrying
    DRIBBLE = "DRIBBLE"
    DRIBBLE_WIDE = "DRIBBLE_WIDE"
    # Crossing
    CROSS = "CROSS"
    # Shooting
    SHOOT_GOAL = "SHOOT_GOAL"
    SHOOT_SAVED = "SHOOT_SAVED"
    SHOOT_SAVED_CORNER = "SHOOT_SAVED_CORNER"
    SHOOT_OFF_TARGET = "SHOOT_OFF_TARGET"
    SHOOT_WOODWORK = "SHOOT_WOODWORK"
    WOODWORK_OUT = "WOODWORK_OUT"
    REBOUND = "REBOUND"
    HEADER_GOAL = "HEADER_GOAL"
    HEADER_OFF_TARGET = "HEADER_OFF_TARGET"
    FREE_KICK_GOAL = "FREE_KICK_GOAL"
    FREE_KICK_SAVED = "FREE_KICK_SAVED"
    FREE_KICK_OFF_TARGET = "FREE_KICK_OFF_TARGET"
    PENALTY_GOAL = "PENALTY_GOAL"
    PENALTY_MISS = "PENALTY_MISS"
    FREE_KICK_WALL = "FREE_KICK_WALL"
    CORNER_GOAL = "CORNER_GOAL"
    # Defending
    TACKLE = "TACKLE"
    PRESS = "PRESS"
    INTERCEPT = "INTERCEPT"
    BALL_RECOVERY = "BALL_RECOVERY"
    DUEL_WON = "DUEL_WON"
    BLOCK = "BLOCK"
    CLEARANCE = "CLEARANCE"
    CLEARANCE_KEEP = "CLEARANCE_KEEP"
    CLEARANCE_LOSE = "CLEARANCE_LOSE"
    CLEARANCE_CORNER = "CLEARANCE_CORNER"
    CLEARANCE_THROW = "CLEARANCE_THROW"
    # Goalkeeping
    GK_SAVE = "GK_SAVE"
    GK_CLAIM = "GK_CLAIM"
    GK_PUNCH = "GK_PUNCH"
    GK_SWEEPER = "GK_SWEEPER"
    GK_SHORT = "GK_SHORT"
    GK_LONG = "GK_LONG"
    PENALTY_SAVED = "PENALTY_SAVED"
    # Discipline
    FOUL = "FOUL"
    FOUL_PENALTY = "FOUL_PENALTY"
    YELLOW_CARD = "YELLOW_CARD"
    RED_CARD = "RED_CARD"
    OFFSIDE = "OFFSIDE"
    # Restarts
    THROW_IN_SHORT = "THROW_IN_SHORT"
    THROW_IN_LONG = "THROW_IN_LONG"
    CORNER_SHORT = "CORNER_SHORT"
    CORNER_CROSS = "CORNER_CROSS"
    FREE_KICK_PASS = "FREE_KICK_PASS"
    FREE_KICK_CROSS = "FREE_KICK_CROSS"
    # Mistakes
    BAD_TOUCH = "BAD_TOUCH"
    MISPLACED_PASS = "MISPLACED_PASS"
    CROSS_OVERHIT = "CROSS_OVERHIT"
    DUEL_LOST = "DUEL_LOST"
    OWN_GOAL = "OWN_GOAL"
    # Body
    FATIGUE = "FATIGUE"
    INJURY = "INJURY"
    # Engine
    NEUTRAL_POSSESSION = "NEUTRAL_POSSESSION"


@dataclass(frozen=True)
class TokenSpec:
    """
    Static description of a token type.

    Attributes:
        category: Offensive / defensive / neutral classification
        family: Staff-impact and statistics family
        skill: Player attribute scaling the weight (None for skill-neutral tokens)
        xg: Expected-goals value credited when the token is a shot
        duration: Seconds consumed by the action (None uses the default tick)
        on_target: Whether a shot token counts as on target
    """
    category: TokenCategory
    family: TokenFamily
    skill: Optional[str] = None
    xg: float = 0.0
    duration: Optional[float] = None
    on_target: bool = False


_O = TokenCategory.OFFENSIVE
_D = TokenCategory.DEFENSIVE
_N = TokenCategory.NEUTRAL
_F = TokenFamily

TOKEN_CATALOGUE: Dict[TokenType, TokenSpec] = {
    TokenType.PASS_SHORT: TokenSpec(_O, _F.PASS, "passing"),
    TokenType.PASS_LATERAL: TokenSpec(_O, _F.PASS, "passing"),
    TokenType.PASS_BACK: TokenSpec(_O, _F.PASS, "passing", duration=6.0),
    TokenType.PASS_LONG: TokenSpec(_O, _F.PASS, "passing", duration=12.0),
    TokenType.PASS_SWITCH: TokenSpec(_O, _F.PASS, "passing", duration=12.0),
    TokenType.THROUGH_BALL: TokenSpec(_O, _F.PASS, "passing", duration=12.0),
    TokenType.ONE_TWO: TokenSpec(_O, _F.PASS, "passing", duration=8.0),
    TokenType.CUT_BACK: TokenSpec(_O, _F.PASS, "crossing", duration=8.0),
    TokenType.HEAD_PASS: TokenSpec(_O, _F.PASS, "heading", duration=6.0),
    TokenType.DRIBBLE: TokenSpec(_O, _F.DRIBBLE, "dribbling", duration=12.0),
    TokenType.DRIBBLE_WIDE: TokenSpec(_O, _F.DRIBBLE, "pace", duration=12.0),
    TokenType.CROSS: TokenSpec(_O, _F.CROSS, "crossing", duration=8.0),
    TokenType.SHOOT_GOAL: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.35, duration=15.0, on_target=True),
    TokenType.SHOOT_SAVED: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.15, duration=15.0, on_target=True),
    TokenType.SHOOT_SAVED_CORNER: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.15, duration=15.0, on_target=True),
    TokenType.SHOOT_OFF_TARGET: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.10, duration=20.0),
    TokenType.SHOOT_WOODWORK: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.20, duration=15.0),
    TokenType.WOODWORK_OUT: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.18, duration=15.0),
    TokenType.REBOUND: TokenSpec(_O, _F.DRIBBLE, "positioning", duration=3.0),
    TokenType.HEADER_GOAL: TokenSpec(_O, _F.SHOOT, "heading", xg=0.12, duration=15.0, on_target=True),
    TokenType.HEADER_OFF_TARGET: TokenSpec(_O, _F.SHOOT, "heading", xg=0.08, duration=20.0),
    TokenType.FREE_KICK_GOAL: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.08, duration=30.0, on_target=True),
    TokenType.FREE_KICK_SAVED: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.08, duration=30.0, on_target=True),
    TokenType.FREE_KICK_OFF_TARGET: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.05, duration=30.0),
    TokenType.PENALTY_GOAL: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.76, duration=25.0, on_target=True),
    TokenType.PENALTY_MISS: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.76, duration=25.0),
    TokenType.FREE_KICK_WALL: TokenSpec(_O, _F.SHOOT, "shooting", xg=0.03, duration=30.0),
    TokenType.CORNER_GOAL: TokenSpec(_O, _F.SHOOT, "heading", xg=0.18, duration=15.0, on_target=True),
    TokenType.TACKLE: TokenSpec(_D, _F.TACKLE, "tackling"),
    TokenType.PRESS: TokenSpec(_D, _F.TACKLE, "pace"),
    TokenType.INTERCEPT: TokenSpec(_D, _F.INTERCEPT, "positioning"),
    TokenType.BALL_RECOVERY: TokenSpec(_D, _F.INTERCEPT, "positioning", duration=4.0),
    TokenType.DUEL_WON: TokenSpec(_D, _F.TACKLE, "tackling", duration=4.0),
    TokenType.BLOCK: TokenSpec(_D, _F.BLOCK, "positioning", duration=8.0),
    TokenType.CLEARANCE: TokenSpec(_D, _F.CLEARANCE, "heading", duration=8.0),
    TokenType.CLEARANCE_KEEP: TokenSpec(_D, _F.CLEARANCE, "heading", duration=8.0),
    TokenType.CLEARANCE_LOSE: TokenSpec(_D, _F.CLEARANCE, "heading", duration=8.0),
    TokenType.CLEARANCE_CORNER: TokenSpec(_D, _F.CLEARANCE, "heading", duration=8.0),
    TokenType.CLEARANCE_THROW: TokenSpec(_D, _F.CLEARANCE, "tackling", duration=8.0),
    TokenType.GK_SAVE: TokenSpec(_D, _F.GOALKEEPING, "goalkeeping", duration=8.0),
    TokenType.GK_CLAIM: TokenSpec(_D, _F.GOALKEEPING, "goalkeeping", duration=8.0),
    TokenType.GK_PUNCH: TokenSpec(_D, _F.GOALKEEPING, "goalkeeping", duration=6.0),
    TokenType.GK_SWEEPER: TokenSpec(_D, _F.GOALKEEPING, "pace", duration=6.0),
    TokenType.GK_SHORT: TokenSpec(_D, _F.GOALKEEPING, "passing", duration=15.0),
    TokenType.GK_LONG: TokenSpec(_D, _F.GOALKEEPING, "passing", duration=15.0),
    TokenType.PENALTY_SAVED: TokenSpec(_D, _F.GOALKEEPING, "goalkeeping", duration=25.0),
    TokenType.FOUL: TokenSpec(_D, _F.DISCIPLINE, duration=20.0),
    TokenType.FOUL_PENALTY: TokenSpec(_D, _F.DISCIPLINE, duration=30.0),
    TokenType.YELLOW_CARD: TokenSpec(_D, _F.DISCIPLINE, duration=25.0),
    TokenType.RED_CARD: TokenSpec(_D, _F.DISCIPLINE, duration=40.0),
    TokenType.OFFSIDE: TokenSpec(_D, _F.DISCIPLINE, "positioning", duration=15.0),
    TokenType.THROW_IN_SHORT: TokenSpec(_N, _F.SET_PIECE, "passing", duration=10.0),
    TokenType.THROW_IN_LONG: TokenSpec(_N, _F.SET_PIECE, "pace", duration=10.0),
    TokenType.CORNER_SHORT: TokenSpec(_N, _F.SET_PIECE, "passing", duration=12.0),
    TokenType.CORNER_CROSS: TokenSpec(_N, _F.SET_PIECE, "crossing", duration=12.0),
    TokenType.FREE_KICK_PASS: TokenSpec(_N, _F.SET_PIECE, "passing", duration=15.0),
    TokenType.FREE_KICK_CROSS: TokenSpec(_N, _F.SET_PIECE, "crossing", duration=15.0),
    TokenType.BAD_TOUCH: TokenSpec(_N, _F.ERROR, "dribbling"),
    TokenType.MISPLACED_PASS: TokenSpec(_N, _F.ERROR, "passing"),
    TokenType.CROSS_OVERHIT: TokenSpec(_N, _F.ERROR, "crossing"),
    TokenType.DUEL_LOST: TokenSpec(_N, _F.ERROR, "dribbling", duration=4.0),
    TokenType.OWN_GOAL: TokenSpec(_N, _F.ERROR, "positioning", duration=15.0),
    TokenType.FATIGUE: TokenSpec(_N, _F.FATIGUE, "stamina", duration=5.0),
    TokenType.INJURY: TokenSpec(_N, _F.FATIGUE, duration=30.0),
    TokenType.NEUTRAL_POSSESSION: TokenSpec(_N, _F.SYSTEM),
}

# Catalogue declaration order, used as the draw tie-break
CATALOGUE_ORDER: Dict[TokenType, int] = {t: i for i, t in enumerate(TokenType)}

# Tokens whose inverse skill makes them more likely (low stamina -> more fatigue)
INVERSE_SKILL_FAMILIES = frozenset({TokenFamily.FATIGUE, TokenFamily.ERROR})

# Match rating change for the player who resolved a token; unlisted types are 0
RATING_IMPACT: Dict[TokenType, float] = {
    TokenType.PASS_SHORT: 0.02,
    TokenType.PASS_LATERAL: 0.01,
    TokenType.PASS_BACK: 0.01,
    TokenType.PASS_LONG: 0.03,
    TokenType.PASS_SWITCH: 0.04,
    TokenType.THROUGH_BALL: 0.08,
    TokenType.ONE_TWO: 0.04,
    TokenType.CUT_BACK: 0.05,
    TokenType.HEAD_PASS: 0.03,
    TokenType.DRIBBLE: 0.06,
    TokenType.DRIBBLE_WIDE: 0.05,
    TokenType.CROSS: 0.03,
    TokenType.SHOOT_GOAL: 0.50,
    TokenType.SHOOT_SAVED: 0.02,
    TokenType.SHOOT_SAVED_CORNER: 0.03,
    TokenType.SHOOT_OFF_TARGET: -0.03,
    TokenType.SHOOT_WOODWORK: 0.05,
    TokenType.WOODWORK_OUT: 0.04,
    TokenType.REBOUND: 0.03,
    TokenType.HEADER_GOAL: 0.50,
    TokenType.HEADER_OFF_TARGET: -0.03,
    TokenType.FREE_KICK_GOAL: 0.45,
    TokenType.FREE_KICK_SAVED: 0.02,
    TokenType.FREE_KICK_OFF_TARGET: -0.03,
    TokenType.PENALTY_GOAL: 0.35,
    TokenType.PENALTY_MISS: -0.20,
    TokenType.FREE_KICK_WALL: -0.02,
    TokenType.CORNER_GOAL: 0.45,
    TokenType.TACKLE: 0.05,
    TokenType.PRESS: 0.04,
    TokenType.INTERCEPT: 0.06,
    TokenType.BALL_RECOVERY: 0.04,
    TokenType.DUEL_WON: 0.04,
    TokenType.BLOCK: 0.04,
    TokenType.CLEARANCE: 0.03,
    TokenType.CLEARANCE_KEEP: 0.03,
    TokenType.CLEARANCE_LOSE: 0.01,
    TokenType.CLEARANCE_CORNER: 0.02,
    TokenType.CLEARANCE_THROW: 0.01,
    TokenType.GK_SAVE: 0.15,
    TokenType.GK_CLAIM: 0.08,
    TokenType.GK_PUNCH: 0.06,
    TokenType.GK_SWEEPER: 0.10,
    TokenType.GK_SHORT: 0.02,
    TokenType.GK_LONG: 0.02,
    TokenType.PENALTY_SAVED: 0.25,
    TokenType.FOUL: -0.04,
    TokenType.FOUL_PENALTY: -0.25,
    TokenType.YELLOW_CARD: -0.10,
    TokenType.RED_CARD: -0.40,
    TokenType.OFFSIDE: -0.02,
    TokenType.THROW_IN_SHORT: 0.01,
    TokenType.THROW_IN_LONG: 0.01,
    TokenType.CORNER_SHORT: 0.02,
    TokenType.CORNER_CROSS: 0.03,
    TokenType.FREE_KICK_PASS: 0.02,
    TokenType.FREE_KICK_CROSS: 0.03,
    TokenType.BAD_TOUCH: -0.15,
    TokenType.MISPLACED_PASS: -0.15,
    TokenType.CROSS_OVERHIT: -0.15,
    TokenType.DUEL_LOST: -0.04,
    TokenType.OWN_GOAL: -0.60,
    TokenType.FATIGUE: -0.02,
    TokenType.INJURY: -0.05,
}


def spec_for(token_type: TokenType) -> TokenSpec:
    """Return the catalogue entry for a token type."""
    return TOKEN_CATALOGUE[token_type]


def category_of(token_type: TokenType) -> TokenCategory:
    return TOKEN_CATALOGUE[token_type].category


def family_of(token_type: TokenType) -> TokenFamily:
    return TOKEN_CATALOGUE[token_type].family


def rating_impact(token_type: TokenType) -> float:
    return RATING_IMPACT.get(token_type, 0.0)


@dataclass(frozen=True)
class Token:
    """
    One weighted candidate action in a bag.

    Tokens are immutable. ``player_id`` is None only for engine-generated
    substitutes.
    """
    type: TokenType
    team_id: str
    weight: float
    player_id: Optional[str] = None

    @property
    def category(self) -> TokenCategory:
        return category_of(self.type)

    @property
    def family(self) -> TokenFamily:
        return family_of(self.type)

    def to_dict(self) -> Dict:
        return {
            "type": self.type.value,
            "teamId": self.team_id,
            "playerId": self.player_id,
            "weight": round(self.weight, 6),
        }
