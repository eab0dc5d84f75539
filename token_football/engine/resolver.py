"""
Token resolution: weighted draw plus the effect rules of every token type.

The resolver never touches match state. It returns an ``ActionEffect`` (one
variant per effect shape) inside a ``TokenActionResult`` and the match loop
applies it.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from .bag_builder import Bag
from .config import EngineConfig, get_default_config
from .errors import EmptyBagError
from .pitch import PitchZones, Zone
from .tokens import MatchPhase, Token, TokenFamily, TokenType, spec_for


@dataclass(frozen=True)
class Movement:
    """Ball moves by (dx, dy); the acting team keeps or takes the ball with it."""
    dx: int
    dy: int


@dataclass(frozen=True)
class PossessionChange:
    """Turnover: ``team_id`` takes the ball, which moves by (dx, dy)."""
    team_id: str
    dx: int = 0
    dy: int = 0


@dataclass(frozen=True)
class Goal:
    scoring_team_id: str


@dataclass(frozen=True)
class OutOfPlay:
    """Dead ball: play restarts with ``restart`` for ``restart_team_id`` at ``next_ball``."""
    restart: MatchPhase
    restart_team_id: str
    next_ball: Zone


@dataclass(frozen=True)
class StatOnly:
    """No change to ball or possession."""


ActionEffect = Union[Movement, PossessionChange, Goal, OutOfPlay, StatOnly]


@dataclass(frozen=True)
class TokenActionResult:
    """
    Outcome of resolving one token.

    Attributes:
        effect: What happens to ball and possession
        duration: Seconds consumed (None means the default tick)
        stats: Increments for the token's team (and its player)
        opponent_stats: Increments for the other team
        narrative_key: Lookup key for commentary text
        narrative_params: Interpolation parameters for the narrative
        stoppage: Seconds added to the half's stoppage budget
        fatigue_cost: Extra fatigue for the acting player
        card: "yellow" or "red" when the actor is booked
    """
    effect: ActionEffect
    duration: Optional[float] = None
    stats: Dict[str, float] = field(default_factory=dict)
    opponent_stats: Dict[str, float] = field(default_factory=dict)
    narrative_key: str = ""
    narrative_params: Dict = field(default_factory=dict)
    stoppage: float = 0.0
    fatigue_cost: float = 0.0
    card: Optional[str] = None


# Vertical behaviour of a ball move
DRIFT = "drift"            # maybe +-1 with the lateral drift probability
LATERAL = "lateral"        # explicit +-1, may leave the pitch for a throw-in
TO_CENTRE = "to_centre"    # one step towards row 2
SWITCH = "switch"          # to the opposite wing
STAY = "stay"

# token -> (attack-relative dx in steps, vertical behaviour, kicked?)
# Kicked balls are received on the opponent's byline at the furthest; one
# crossing the kicker's own byline or a touchline is a restart. Carried balls
# are clamped.
# A dx of "long" uses the long step.
MOVES: Dict[TokenType, Tuple[Union[int, str], str, bool]] = {
    TokenType.PASS_SHORT: (1, DRIFT, True),
    TokenType.PASS_LATERAL: (0, LATERAL, True),
    TokenType.PASS_BACK: (-1, DRIFT, True),
    TokenType.PASS_LONG: ("long", DRIFT, True),
    TokenType.PASS_SWITCH: (0, SWITCH, True),
    TokenType.THROUGH_BALL: ("long", STAY, True),
    TokenType.ONE_TWO: (1, STAY, True),
    TokenType.HEAD_PASS: (0, TO_CENTRE, True),
    TokenType.DRIBBLE: (1, DRIFT, False),
    TokenType.DRIBBLE_WIDE: (1, STAY, False),
    TokenType.REBOUND: (0, TO_CENTRE, False),
    TokenType.FREE_KICK_PASS: (1, DRIFT, True),
    TokenType.THROW_IN_SHORT: (0, TO_CENTRE, True),
    TokenType.THROW_IN_LONG: (1, TO_CENTRE, True),
    TokenType.CORNER_SHORT: (0, TO_CENTRE, True),
    TokenType.GK_SHORT: (1, DRIFT, True),
    TokenType.GK_LONG: ("long", DRIFT, True),
}

# Deliveries aimed at a fixed attack-relative zone
TARGETS: Dict[TokenType, Tuple[int, int]] = {
    TokenType.CROSS: (5, 2),
    TokenType.CORNER_CROSS: (5, 2),
    TokenType.FREE_KICK_CROSS: (5, 2),
    TokenType.CUT_BACK: (4, 2),
}

GOALS = frozenset({TokenType.SHOOT_GOAL, TokenType.HEADER_GOAL, TokenType.FREE_KICK_GOAL,
                   TokenType.PENALTY_GOAL, TokenType.CORNER_GOAL})
SAVED = frozenset({TokenType.SHOOT_SAVED, TokenType.FREE_KICK_SAVED})
MISSED = frozenset({TokenType.SHOOT_OFF_TARGET, TokenType.HEADER_OFF_TARGET,
                    TokenType.FREE_KICK_OFF_TARGET, TokenType.PENALTY_MISS, TokenType.WOODWORK_OUT})
BLOCKED = frozenset({TokenType.FREE_KICK_WALL})
PASSING_FAMILIES = frozenset({TokenFamily.PASS, TokenFamily.SET_PIECE, TokenFamily.GOALKEEPING})


class TokenResolver:
    """
    Draws a token from a bag and turns it into an effect.

    Effect rules are dispatched per token type; every type in the catalogue
    has exactly one rule.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_default_config()
        self._rules: Dict[TokenType, Callable] = {}
        for token_type in MOVES:
            self._rules[token_type] = self._resolve_move
        for token_type in TARGETS:
            self._rules[token_type] = self._resolve_delivery
        shots = GOALS | SAVED | MISSED | BLOCKED | {TokenType.SHOOT_SAVED_CORNER, TokenType.SHOOT_WOODWORK}
        for token_type in shots:
            self._rules[token_type] = self._resolve_shot
        self._rules.update({
            TokenType.TACKLE: self._resolve_ball_won,
            TokenType.PRESS: self._resolve_ball_won,
            TokenType.INTERCEPT: self._resolve_ball_won,
            TokenType.BALL_RECOVERY: self._resolve_ball_won,
            TokenType.DUEL_WON: self._resolve_ball_won,
            TokenType.GK_CLAIM: self._resolve_ball_won,
            TokenType.GK_SWEEPER: self._resolve_ball_won,
            TokenType.BLOCK: self._resolve_shot_stopped,
            TokenType.GK_SAVE: self._resolve_shot_stopped,
            TokenType.PENALTY_SAVED: self._resolve_shot_stopped,
            TokenType.CLEARANCE: self._resolve_clearance,
            TokenType.CLEARANCE_KEEP: self._resolve_clearance,
            TokenType.CLEARANCE_LOSE: self._resolve_clearance,
            TokenType.GK_PUNCH: self._resolve_clearance,
            TokenType.CLEARANCE_CORNER: self._resolve_clearance_out,
            TokenType.CLEARANCE_THROW: self._resolve_clearance_out,
            TokenType.FOUL: self._resolve_foul,
            TokenType.YELLOW_CARD: self._resolve_foul,
            TokenType.RED_CARD: self._resolve_foul,
            TokenType.FOUL_PENALTY: self._resolve_foul,
            TokenType.OFFSIDE: self._resolve_offside,
            TokenType.BAD_TOUCH: self._resolve_mistake,
            TokenType.MISPLACED_PASS: self._resolve_mistake,
            TokenType.CROSS_OVERHIT: self._resolve_mistake,
            TokenType.DUEL_LOST: self._resolve_mistake,
            TokenType.OWN_GOAL: self._resolve_own_goal,
            TokenType.FATIGUE: self._resolve_body,
            TokenType.INJURY: self._resolve_body,
            TokenType.NEUTRAL_POSSESSION: self._resolve_neutral,
        })

    def resolve(self, bag: Bag, rng: np.random.Generator) -> Tuple[Token, TokenActionResult]:
        """
        Draw one token and compute its effect.

        Args:
            bag: Bag built for the current step
            rng: Match random generator

        Returns:
            (drawn token, result)

        Raises:
            EmptyBagError: If the bag has no positive weight
        """
        token = self.draw(bag.tokens, rng)
        return token, self.apply(token, bag, rng)

    @staticmethod
    def draw(tokens: Sequence[Token], rng: np.random.Generator) -> Token:
        """
        Cumulative-weight draw.

        ``r`` is uniform in [0, total); the first token whose running weight
        exceeds ``r`` wins, so ties go to the earlier token.
        """
        total = 0.0
        for token in tokens:
            total += token.weight
        if not tokens or total <= 0:
            raise EmptyBagError(f"cannot draw from a bag of {len(tokens)} tokens with total weight {total}")

        r = rng.random() * total
        cumulative = 0.0
        for token in tokens:
            cumulative += token.weight
            if cumulative > r:
                return token
        # Float rounding can leave r at the very top of the range
        return tokens[-1]

    def apply(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        """Compute the effect of an already drawn token."""
        rule = self._rules[token.type]
        return rule(token, bag, rng)

    # --- helpers ---

    @staticmethod
    def _other(bag: Bag, team_id: str) -> str:
        return bag.away_team_id if team_id == bag.home_team_id else bag.home_team_id

    def _token_home(self, token: Token, bag: Bag) -> bool:
        return token.team_id == bag.home_team_id

    @staticmethod
    def _narrative(token: Token, bag: Bag, **extra) -> Tuple[str, Dict]:
        params = {
            "playerId": token.player_id,
            "teamId": token.team_id,
            "zone": bag.zone.to_dict(),
        }
        params.update(extra)
        return f"token.{token.type.value.lower()}", params

    def _result(self, token: Token, bag: Bag, effect: ActionEffect, **kwargs) -> TokenActionResult:
        key, params = self._narrative(token, bag, **kwargs.pop("params", {}))
        kwargs.setdefault("duration", spec_for(token.type).duration)
        return TokenActionResult(effect=effect, narrative_key=key, narrative_params=params, **kwargs)

    def _vertical(self, mode: str, y: int, rng: np.random.Generator) -> int:
        """Vertical displacement for a move; only LATERAL may leave the grid."""
        step = self.config.physics.step_y
        if mode == STAY:
            return 0
        if mode == TO_CENTRE:
            centre = PitchZones.CENTRE[1]
            return 0 if y == centre else (step if y < centre else -step)
        if mode == SWITCH:
            target = PitchZones.ROWS - 1 if y < PitchZones.CENTRE[1] else 0
            return target - y
        if mode == LATERAL:
            return step if rng.random() < 0.5 else -step
        # DRIFT
        if rng.random() >= self.config.physics.lateral_drift_probability:
            return 0
        dy = step if rng.random() < 0.5 else -step
        return min(max(y + dy, 0), PitchZones.ROWS - 1) - y

    def _kicked_out(self, token: Token, bag: Bag, new_x: int, new_y: int,
                    kicking_home: bool) -> Optional[OutOfPlay]:
        """
        Restart for a kicked ball leaving the grid, or None if it stays on.

        Forward moves are already capped at the opponent's byline, so a ball
        off either end has crossed the kicking team's own byline.
        """
        opponent = self._other(bag, token.team_id)
        y = min(max(new_y, 0), PitchZones.ROWS - 1)
        if not 0 <= new_x < PitchZones.COLUMNS:
            # Over the kicking team's own byline: corner to the opponent
            corner_row = 0 if y < PitchZones.CENTRE[1] else PitchZones.ROWS - 1
            return OutOfPlay(MatchPhase.CORNER, opponent,
                             Zone(PitchZones.absolute_column(0, kicking_home), corner_row))
        if not 0 <= new_y < PitchZones.ROWS:
            column = min(max(new_x, 0), PitchZones.LAST_COLUMN)
            return OutOfPlay(MatchPhase.THROW_IN, opponent, Zone(column, y))
        return None

    def _corner_for(self, attacking_team_id: str, bag: Bag) -> OutOfPlay:
        """Corner at the byline the attacking team is attacking, on the ball's side."""
        attacking_home = attacking_team_id == bag.home_team_id
        row = 0 if bag.zone.y < PitchZones.CENTRE[1] else PitchZones.ROWS - 1
        zone = Zone(PitchZones.absolute_column(PitchZones.LAST_COLUMN, attacking_home), row)
        return OutOfPlay(MatchPhase.CORNER, attacking_team_id, zone)

    def _goal_kick_for(self, defending_team_id: str, bag: Bag) -> OutOfPlay:
        return OutOfPlay(MatchPhase.GOAL_KICK, defending_team_id,
                         Zone.goal_area(defending_home=defending_team_id == bag.home_team_id))

    # --- rules ---

    def _resolve_move(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        rel_dx, vertical, kicked = MOVES[token.type]
        physics = self.config.physics
        if rel_dx == "long":
            rel_dx = physics.long_step_x
        else:
            rel_dx *= physics.step_x
        home = self._token_home(token, bag)
        # A completed pass is collected on the last column at the furthest
        rel_dx = min(rel_dx, PitchZones.LAST_COLUMN - bag.zone.relative_x(home))
        dx = rel_dx if home else -rel_dx
        dy = self._vertical(vertical, bag.zone.y, rng)
        new_x, new_y = bag.zone.x + dx, bag.zone.y + dy

        is_pass = spec_for(token.type).family in PASSING_FAMILIES
        stats = {"passes": 1, "passes_completed": 1} if is_pass else {}

        if token.type is TokenType.GK_LONG and rng.random() < 0.5:
            # Contested long ball
            new_x, new_y = PitchZones.clamp(new_x, new_y)
            effect = PossessionChange(self._other(bag, token.team_id),
                                      new_x - bag.zone.x, new_y - bag.zone.y)
            return self._result(token, bag, effect, stats={"passes": 1}, params={"contested": True})

        if kicked:
            out = self._kicked_out(token, bag, new_x, new_y, home)
            if out is not None:
                lost = {"passes": 1} if is_pass else {}
                return self._result(token, bag, out, stats=lost, params={"outOfPlay": out.restart.value})
        new_x, new_y = PitchZones.clamp(new_x, new_y)
        return self._result(token, bag, Movement(new_x - bag.zone.x, new_y - bag.zone.y), stats=stats)

    def _resolve_delivery(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        rel_x, y = TARGETS[token.type]
        target_x = PitchZones.absolute_column(rel_x, self._token_home(token, bag))
        stats = {"passes": 1, "passes_completed": 1}
        return self._result(token, bag, Movement(target_x - bag.zone.x, y - bag.zone.y), stats=stats)

    def _resolve_shot(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        spec = spec_for(token.type)
        opponent = self._other(bag, token.team_id)
        stats = {"shots": 1, "xg": spec.xg}
        opponent_stats = {}
        if spec.on_target:
            stats["shots_on_target"] = 1

        if token.type in GOALS:
            stats["goals"] = 1
            effect = Goal(token.team_id)
            return self._result(token, bag, effect, stats=stats,
                                stoppage=self.config.timing.goal_stoppage)
        if token.type in SAVED:
            opponent_stats["saves"] = 1
            effect = PossessionChange(opponent)
        elif token.type in BLOCKED:
            effect = PossessionChange(opponent)
        elif token.type is TokenType.SHOOT_SAVED_CORNER:
            opponent_stats["saves"] = 1
            effect = self._corner_for(token.team_id, bag)
        elif token.type is TokenType.SHOOT_WOODWORK:
            # Rebound falls to either side
            effect = Movement(0, 0) if rng.random() < 0.5 else PossessionChange(opponent)
        else:
            effect = self._goal_kick_for(opponent, bag)
        return self._result(token, bag, effect, stats=stats, opponent_stats=opponent_stats)

    def _resolve_ball_won(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        stats = {}
        if token.type in (TokenType.TACKLE, TokenType.PRESS):
            stats["tackles"] = 1
        elif token.type in (TokenType.INTERCEPT, TokenType.BALL_RECOVERY):
            stats["interceptions"] = 1
        elif token.type is TokenType.DUEL_WON:
            stats["duels_won"] = 1
        return self._result(token, bag, PossessionChange(token.team_id), stats=stats)

    def _resolve_shot_stopped(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        """Defensive tokens that imply an opponent shot was taken."""
        shooter_stats = {"shots": 1}
        stats = {}
        if token.type is TokenType.PENALTY_SAVED:
            shooter_stats.update(shots_on_target=1, xg=spec_for(TokenType.PENALTY_GOAL).xg)
            stats["saves"] = 1
        elif token.type is TokenType.GK_SAVE:
            shooter_stats.update(shots_on_target=1, xg=spec_for(TokenType.SHOOT_SAVED).xg)
            stats["saves"] = 1
        return self._result(token, bag, PossessionChange(token.team_id), stats=stats,
                            opponent_stats=shooter_stats)

    def _resolve_clearance(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        physics = self.config.physics
        step = physics.step_x if token.type is TokenType.GK_PUNCH else physics.long_step_x
        dx = step if self._token_home(token, bag) else -step
        new_x, new_y = PitchZones.clamp(bag.zone.x + dx, bag.zone.y + self._vertical(DRIFT, bag.zone.y, rng))
        move = (new_x - bag.zone.x, new_y - bag.zone.y)

        kept = token.type is not TokenType.CLEARANCE_LOSE
        if token.type is TokenType.CLEARANCE:
            # Loose clearance: either side can pick it up
            kept = rng.random() < 0.5
        if kept:
            effect = PossessionChange(token.team_id, *move)
        else:
            # Attackers collect the second ball further from goal
            effect = Movement(*move)
        stats = {} if token.type is TokenType.GK_PUNCH else {"clearances": 1}
        return self._result(token, bag, effect, stats=stats)

    def _resolve_clearance_out(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        opponent = self._other(bag, token.team_id)
        if token.type is TokenType.CLEARANCE_CORNER:
            effect = self._corner_for(opponent, bag)
        else:
            effect = OutOfPlay(MatchPhase.THROW_IN, opponent, bag.zone)
        return self._result(token, bag, effect)

    def _resolve_foul(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        timing = self.config.timing
        fouled = self._other(bag, token.team_id)
        stats = {"fouls": 1}
        card = None
        stoppage = 0.0
        if token.type is TokenType.YELLOW_CARD:
            card = "yellow"
            stoppage = timing.card_stoppage
        elif token.type is TokenType.RED_CARD:
            card = "red"
            stoppage = timing.card_stoppage

        if token.type is TokenType.FOUL_PENALTY:
            effect = OutOfPlay(MatchPhase.PENALTY, fouled,
                               Zone.penalty_spot(attacking_home=fouled == bag.home_team_id))
        else:
            effect = OutOfPlay(MatchPhase.FREE_KICK, fouled, bag.zone)
        return self._result(token, bag, effect, stats=stats, card=card, stoppage=stoppage)

    def _resolve_offside(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        effect = OutOfPlay(MatchPhase.FREE_KICK, token.team_id, bag.zone)
        return self._result(token, bag, effect, opponent_stats={"offsides": 1})

    def _resolve_mistake(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        opponent = self._other(bag, token.team_id)
        if token.type is TokenType.CROSS_OVERHIT:
            return self._result(token, bag, self._goal_kick_for(opponent, bag))
        if token.type is TokenType.MISPLACED_PASS:
            dx = self.config.physics.step_x if self._token_home(token, bag) else -self.config.physics.step_x
            new_x, new_y = PitchZones.clamp(bag.zone.x + dx, bag.zone.y)
            effect = PossessionChange(opponent, new_x - bag.zone.x, new_y - bag.zone.y)
            return self._result(token, bag, effect, stats={"passes": 1})
        if token.type is TokenType.DUEL_LOST:
            return self._result(token, bag, PossessionChange(opponent), stats={"duels_lost": 1},
                                opponent_stats={"duels_won": 1})
        return self._result(token, bag, PossessionChange(opponent))

    def _resolve_own_goal(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        """A defender turns the ball into their own net; the goal counts for the other team."""
        opponent = self._other(bag, token.team_id)
        return self._result(token, bag, Goal(opponent), stats={"own_goals": 1},
                            opponent_stats={"goals": 1}, stoppage=self.config.timing.goal_stoppage)

    def _resolve_body(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        if token.type is TokenType.INJURY:
            return self._result(token, bag, StatOnly(), stoppage=self.config.timing.injury_stoppage)
        cost = self.config.balancing.fatigue_token_cost
        return self._result(token, bag, StatOnly(), fatigue_cost=cost)

    def _resolve_neutral(self, token: Token, bag: Bag, rng: np.random.Generator) -> TokenActionResult:
        return self._result(token, bag, StatOnly())
