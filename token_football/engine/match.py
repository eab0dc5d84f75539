"""
Main match engine for the token football simulation.

Drives the match state machine, repeatedly building a bag for the ball zone,
drawing a token and applying its effect, while tracking clock, score,
fatigue, statistics and the event log.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from .bag_builder import Bag, BagBuilder
from .config import EngineConfig, get_default_config
from .errors import ConfigurationError, EmptyBagError, InvariantViolation
from .pitch import PitchZones, Zone
from .resolver import (Goal, Movement, OutOfPlay, PossessionChange, StatOnly,
                       TokenActionResult, TokenResolver)
from .team import Team
from .tokens import MatchPhase, Token, TokenType, rating_impact
from ..logger.event_logger import MatchEvent, MatchEventLog

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """States of the match loop. FULL_TIME is terminal."""
    KICKOFF = "KICKOFF"
    IN_PLAY = "IN_PLAY"
    GOAL_STOPPAGE = "GOAL_STOPPAGE"
    HALF_BREAK = "HALF_BREAK"
    FULL_TIME = "FULL_TIME"


@dataclass
class MatchState:
    """Current state of the football match."""
    home_team_id: str
    away_team_id: str
    possession_team_id: str
    time: float = 0.0  # seconds, never decreases
    ball: Zone = field(default_factory=Zone.centre)
    phase: MatchPhase = MatchPhase.KICK_OFF
    half: int = 1
    half_start: float = 0.0
    loop_state: LoopState = LoopState.KICKOFF
    score: Dict[str, int] = field(default_factory=dict)
    stoppage: Dict[int, float] = field(default_factory=lambda: {1: 0.0, 2: 0.0})
    first_kickoff_team_id: Optional[str] = None
    last_goal_team_id: Optional[str] = None

    def __post_init__(self):
        if not self.score:
            self.score = {self.home_team_id: 0, self.away_team_id: 0}

    @property
    def home_score(self) -> int:
        return self.score[self.home_team_id]

    @property
    def away_score(self) -> int:
        return self.score[self.away_team_id]

    @property
    def minute(self) -> float:
        return self.time / 60.0

    def score_tuple(self) -> Tuple[int, int]:
        return self.home_score, self.away_score


@dataclass(frozen=True)
class MatchSnapshot:
    """Periodic snapshot of match state, including every player's fatigue."""
    time: float
    half: int
    score: Tuple[int, int]
    ball: Zone
    possession_team_id: str
    fatigue: Dict[str, float]

    def to_dict(self) -> Dict:
        return {
            "time": self.time,
            "half": self.half,
            "score": {"home": self.score[0], "away": self.score[1]},
            "ballPosition": self.ball.to_dict(),
            "possessionTeamId": self.possession_team_id,
            "fatigue": dict(self.fatigue),
        }


@dataclass
class MatchResult:
    """Final outcome of one simulated match."""
    match_id: str
    home_team_id: str
    away_team_id: str
    final_score: Dict[str, int]
    stats: Dict[str, Dict[str, float]]
    possession: Dict[str, float]
    pass_accuracy: Dict[str, float]
    player_stats: List[Dict]
    role_stats: Dict[str, Dict[str, Dict[str, float]]]
    stoppage_time: float
    stoppage_by_half: Dict[int, float]
    final_time: float
    events: List[MatchEvent]
    snapshots: List[MatchSnapshot]

    @property
    def home_goals(self) -> int:
        return self.final_score[self.home_team_id]

    @property
    def away_goals(self) -> int:
        return self.final_score[self.away_team_id]

    def to_dict(self, strip_debug: bool = False) -> Dict:
        """
        Serializable view of the result.

        Args:
            strip_debug: Drop bag and drawn token from every event
        """
        return {
            "match_id": self.match_id,
            "teams": {"home": self.home_team_id, "away": self.away_team_id},
            "final_score": {"home": self.home_goals, "away": self.away_goals},
            "stats": {team_id: dict(values) for team_id, values in self.stats.items()},
            "possession": dict(self.possession),
            "pass_accuracy": dict(self.pass_accuracy),
            "player_stats": list(self.player_stats),
            "role_stats": {team_id: dict(roles) for team_id, roles in self.role_stats.items()},
            "stoppage_time": self.stoppage_time,
            "final_time": self.final_time,
            "events": [event.to_dict(strip_debug=strip_debug) for event in self.events],
            "snapshots": [snapshot.to_dict() for snapshot in self.snapshots],
        }


class MatchEngine:
    """
    Token-bag football match simulation engine.

    Implements:
    - KICKOFF -> IN_PLAY <-> GOAL_STOPPAGE -> HALF_BREAK -> KICKOFF -> FULL_TIME
    - One bag draw per IN_PLAY tick, time advanced by the token's duration
    - Stoppage time accumulated per half from goals, injuries and cards
    - Fatigue, discipline and statistics per player and team
    - Append-only event log and periodic snapshots

    All randomness comes from one injected numpy Generator, so equal seeds
    produce identical event logs.
    """

    def __init__(self,
                 home_team: Team,
                 away_team: Team,
                 config: Optional[EngineConfig] = None,
                 bag_builder: Optional[BagBuilder] = None,
                 resolver: Optional[TokenResolver] = None,
                 rng: Optional[np.random.Generator] = None,
                 random_seed: Optional[int] = None,
                 match_id: str = "match",
                 strict: bool = False,
                 record_bags: bool = True):
        """
        Initialize match engine with two teams.

        Args:
            home_team: Home team (attacks towards column 5)
            away_team: Away team
            config: Engine configuration (process default if None)
            bag_builder: Bag builder (built from config if None)
            resolver: Token resolver (built from config if None)
            rng: Random generator; takes precedence over random_seed
            random_seed: Seed for a fresh generator
            match_id: Identifier used in logs and results
            strict: Raise on invariant violations instead of degrading
            record_bags: Keep the bag and drawn token on every event

        Raises:
            ConfigurationError: If config or teams are unusable
        """
        if home_team.team_id == away_team.team_id:
            raise ConfigurationError(f"both teams share the id {home_team.team_id!r}")
        if not home_team.is_home or away_team.is_home:
            raise ConfigurationError("home_team must attack towards column 5 and away_team towards column 0")

        self.home_team = home_team
        self.away_team = away_team
        self.config = (config or get_default_config()).validate()
        self.bag_builder = bag_builder or BagBuilder(self.config)
        self.resolver = resolver or TokenResolver(self.config)
        self.rng = rng if rng is not None else np.random.default_rng(random_seed)
        self.match_id = match_id
        self.strict = strict
        self.record_bags = record_bags

        self.state = MatchState(
            home_team_id=home_team.team_id,
            away_team_id=away_team.team_id,
            possession_team_id=home_team.team_id,
        )
        self.event_log = MatchEventLog(match_id)
        self.snapshots: List[MatchSnapshot] = []
        self._next_snapshot = 0.0
        self._strategy_adapted = False

    # --- public API ---

    def simulate_match(self) -> MatchResult:
        """
        Simulate the match to full time.

        Returns:
            MatchResult with score, statistics, events and snapshots
        """
        logger.info("Starting match %s: %s vs %s", self.match_id, self.home_team.name, self.away_team.name)
        while self.state.loop_state is not LoopState.FULL_TIME:
            self._simulate_step()
        return self._generate_match_result()

    def team(self, team_id: str) -> Team:
        if team_id == self.home_team.team_id:
            return self.home_team
        if team_id == self.away_team.team_id:
            return self.away_team
        raise InvariantViolation(f"team {team_id!r} is not part of match {self.match_id}")

    def opponent_of(self, team_id: str) -> Team:
        return self.away_team if team_id == self.home_team.team_id else self.home_team

    def build_current_bag(self) -> Bag:
        s = self.state
        return self.bag_builder.build_bag(s.ball, s.phase, s.possession_team_id, self.home_team, self.away_team)

    # --- state machine ---

    def _simulate_step(self) -> None:
        """Advance the state machine by one transition."""
        loop_state = self.state.loop_state
        if loop_state is LoopState.KICKOFF:
            self._first_kickoff()
        elif loop_state is LoopState.IN_PLAY:
            self._play_tick()
        elif loop_state is LoopState.GOAL_STOPPAGE:
            self._restart_after_goal()
        elif loop_state is LoopState.HALF_BREAK:
            self._start_second_half()

    def _first_kickoff(self) -> None:
        home_first = self.rng.random() < 0.5
        team_id = self.home_team.team_id if home_first else self.away_team.team_id
        self.state.first_kickoff_team_id = team_id
        self._take_snapshots()
        self._kickoff(team_id)

    def _kickoff(self, team_id: str) -> None:
        """Ball to the centre zone, possession to the kicking team."""
        s = self.state
        s.ball = Zone.centre()
        s.possession_team_id = team_id
        s.phase = MatchPhase.KICK_OFF
        s.loop_state = LoopState.IN_PLAY
        self._log_engine_event("KICK_OFF", "match.kick_off", team_id, half=s.half)

    def _play_tick(self) -> None:
        """Build bag, resolve, apply, log, then fatigue and bookkeeping."""
        s = self.state
        bag = self.build_current_bag()
        token, result = self._resolve(bag)

        possession_before = s.possession_team_id
        duration = result.duration if result.duration is not None else self.config.timing.default_tick
        elapsed = self._advance_clock(duration)
        self._add_stoppage(result.stoppage)
        self._credit_possession(possession_before, elapsed)

        self._apply_stats(token, result)
        sent_off = self._apply_discipline(token, result)
        boundary = self._apply_effect(result)

        self.event_log.append(MatchEvent(
            time=s.time,
            type=token.type.value,
            narrative_key=result.narrative_key,
            narrative_params=result.narrative_params,
            actor_player_id=token.player_id,
            team_id=token.team_id,
            possession_team_id=s.possession_team_id,
            ball_position=s.ball,
            score=s.score_tuple(),
            half=s.half,
            phase=s.phase.value,
            sequence_number=len(self.event_log),
            bag=bag.tokens if self.record_bags else None,
            drawn_token=token if self.record_bags else None,
        ))
        if sent_off:
            self._log_engine_event("SENT_OFF", "match.sent_off", token.team_id,
                                   actor_player_id=token.player_id, playerId=token.player_id)

        self._apply_fatigue(elapsed, token, result)
        self._take_snapshots()
        self._maybe_adapt_strategy()

        if isinstance(result.effect, Goal):
            s.loop_state = LoopState.GOAL_STOPPAGE
        elif self._half_is_over(boundary):
            self._end_half()

    def _restart_after_goal(self) -> None:
        """Celebration and restart: the conceding team kicks off after the delay."""
        s = self.state
        self._advance_clock(self.config.timing.kick_off_delay)
        self._take_snapshots()
        conceding = self.opponent_of(s.last_goal_team_id).team_id
        if s.time >= self._regular_end():
            # The half ends without a kick-off but the ball is back on the centre spot
            s.ball = Zone.centre()
            s.possession_team_id = conceding
            self._end_half()
            return
        self._kickoff(conceding)

    def _start_second_half(self) -> None:
        s = self.state
        s.half = 2
        s.half_start = s.time
        second = self.opponent_of(s.first_kickoff_team_id).team_id
        self._kickoff(second)

    def _end_half(self) -> None:
        s = self.state
        if s.half == 1:
            s.loop_state = LoopState.HALF_BREAK
            self._log_engine_event("HALF_TIME", "match.half_time", s.possession_team_id)
            logger.info("Half-time in %s: %s %d-%d %s", self.match_id, self.home_team.name,
                        s.home_score, s.away_score, self.away_team.name)
        else:
            s.loop_state = LoopState.FULL_TIME
            self._log_engine_event("FULL_TIME", "match.full_time", s.possession_team_id)
            logger.info("Full-time in %s: %s %d-%d %s", self.match_id, self.home_team.name,
                        s.home_score, s.away_score, self.away_team.name)

    # --- clock ---

    def _regular_end(self) -> float:
        return self.state.half_start + self.config.timing.half_duration

    def _half_limit(self) -> float:
        return self._regular_end() + self.state.stoppage[self.state.half]

    def _advance_clock(self, seconds: float) -> float:
        """Move the clock forward, never past the half's regular time plus stoppage."""
        s = self.state
        target = min(s.time + seconds, self._half_limit())
        elapsed = max(0.0, target - s.time)
        s.time += elapsed
        return elapsed

    def _add_stoppage(self, seconds: float) -> None:
        if seconds <= 0:
            return
        s = self.state
        cap = self.config.timing.max_stoppage_per_half
        s.stoppage[s.half] = min(cap, s.stoppage[s.half] + seconds)

    def _half_is_over(self, boundary: bool) -> bool:
        s = self.state
        if s.time < self._regular_end():
            return False
        return boundary or s.time >= self._half_limit()

    # --- applying results ---

    def _resolve(self, bag: Bag) -> Tuple[Token, TokenActionResult]:
        try:
            return self.resolver.resolve(bag, self.rng)
        except EmptyBagError:
            if self.strict:
                raise
            logger.warning("Empty bag at %s (%s) in match %s; substituting neutral possession",
                           bag.zone.as_tuple(), bag.phase.value, self.match_id)
            token = Token(TokenType.NEUTRAL_POSSESSION, self.state.possession_team_id, 1.0)
            return token, self.resolver.apply(token, bag, self.rng)

    def _credit_possession(self, team_id: str, elapsed: float) -> None:
        team = self.team(team_id)
        team.possession_time += elapsed
        team.update_stats({"possession_ticks": 1})

    def _apply_stats(self, token: Token, result: TokenActionResult) -> None:
        actor_team = self.team(token.team_id)
        actor_team.update_stats(result.stats)
        self.opponent_of(token.team_id).update_stats(result.opponent_stats)

        player = actor_team.get_player(token.player_id) if token.player_id else None
        if player is not None:
            player.record_stat("actions")
            player.adjust_rating(rating_impact(token.type))
            for key, amount in result.stats.items():
                player.record_stat(key, amount)

        effect = result.effect
        if isinstance(effect, OutOfPlay) and effect.restart is MatchPhase.CORNER:
            self.team(effect.restart_team_id).update_stats({"corners": 1})

    def _apply_discipline(self, token: Token, result: TokenActionResult) -> bool:
        """
        Book or send off the actor.

        Returns:
            True if the actor was sent off
        """
        if result.card is None or token.player_id is None:
            return False
        team = self.team(token.team_id)
        player = team.get_player(token.player_id)
        if player is None:
            return False

        if result.card == "yellow":
            team.update_stats({"yellow_cards": 1})
            sent_off = player.book()
        else:
            player.send_off()
            sent_off = True
        if sent_off:
            team.update_stats({"red_cards": 1})
            logger.info("%s sent off in %s at %.0f'", player.player_id, self.match_id, self.state.minute)
        return sent_off

    def _apply_effect(self, result: TokenActionResult) -> bool:
        """
        Update ball, possession, phase and score.

        Returns:
            True if the effect is a boundary event (goal or ball out of play)
        """
        s = self.state
        effect = result.effect
        if isinstance(effect, Movement):
            s.ball = self._checked_zone(s.ball.x + effect.dx, s.ball.y + effect.dy)
            s.phase = MatchPhase.NORMAL
            return False
        if isinstance(effect, PossessionChange):
            s.ball = self._checked_zone(s.ball.x + effect.dx, s.ball.y + effect.dy)
            s.possession_team_id = self._checked_team(effect.team_id)
            s.phase = MatchPhase.NORMAL
            return False
        if isinstance(effect, Goal):
            scorer = self._checked_team(effect.scoring_team_id)
            s.score[scorer] += 1
            s.last_goal_team_id = scorer
            logger.debug("Goal for %s at %.0f' (%d-%d)", scorer, s.minute, s.home_score, s.away_score)
            return True
        if isinstance(effect, OutOfPlay):
            s.ball = effect.next_ball
            s.possession_team_id = self._checked_team(effect.restart_team_id)
            s.phase = effect.restart
            return True
        if isinstance(effect, StatOnly):
            return False
        raise InvariantViolation(f"unknown action effect {effect!r}")

    def _checked_zone(self, x: int, y: int) -> Zone:
        if PitchZones.in_bounds(x, y):
            return Zone(x, y)
        if self.strict:
            raise InvariantViolation(f"ball moved off the grid to ({x}, {y}) in match {self.match_id}")
        logger.warning("Ball moved off the grid to (%d, %d) in match %s; clamping", x, y, self.match_id)
        return Zone(*PitchZones.clamp(x, y))

    def _checked_team(self, team_id: str) -> str:
        if team_id in (self.home_team.team_id, self.away_team.team_id):
            return team_id
        if self.strict:
            raise InvariantViolation(f"foreign team id {team_id!r} in match {self.match_id}")
        logger.warning("Foreign team id %r in match %s; keeping possession", team_id, self.match_id)
        return self.state.possession_team_id

    def _apply_fatigue(self, elapsed: float, token: Token, result: TokenActionResult) -> None:
        """Time-proportional fatigue for everyone on the pitch, plus the actor's action cost."""
        balancing = self.config.balancing
        for team in (self.home_team, self.away_team):
            for player in team.active_players():
                rate = balancing.fatigue_per_second * (1.5 - player.attributes.stamina / 100.0)
                player.add_fatigue(elapsed * rate)

        if token.player_id is None:
            return
        actor = self.team(token.team_id).get_player(token.player_id)
        if actor is not None and actor.on_pitch:
            actor.add_fatigue(balancing.action_fatigue + result.fatigue_cost)

    def _take_snapshots(self) -> None:
        s = self.state
        while s.time >= self._next_snapshot:
            fatigue = {p.player_id: p.fatigue
                       for team in (self.home_team, self.away_team) for p in team.players}
            self.snapshots.append(MatchSnapshot(
                time=s.time,
                half=s.half,
                score=s.score_tuple(),
                ball=s.ball,
                possession_team_id=s.possession_team_id,
                fatigue=fatigue,
            ))
            self._next_snapshot += self.config.timing.snapshot_interval

    def _maybe_adapt_strategy(self) -> None:
        """Late in the match each team reacts once to the score."""
        if self._strategy_adapted:
            return
        late_minute = self.config.timing.late_match_minute
        s = self.state
        if s.minute <= late_minute:
            return
        diff = s.home_score - s.away_score
        self.home_team.adapt_strategy(s.minute, diff, late_minute)
        self.away_team.adapt_strategy(s.minute, -diff, late_minute)
        self._strategy_adapted = True

    def _log_engine_event(self, event_type: str, narrative_key: str, team_id: str,
                          actor_player_id: Optional[str] = None, **params) -> None:
        s = self.state
        self.event_log.append(MatchEvent(
            time=s.time,
            type=event_type,
            narrative_key=narrative_key,
            narrative_params=params,
            actor_player_id=actor_player_id,
            team_id=team_id,
            possession_team_id=s.possession_team_id,
            ball_position=s.ball,
            score=s.score_tuple(),
            half=s.half,
            phase=s.phase.value,
            sequence_number=len(self.event_log),
        ))

    # --- results ---

    def _generate_match_result(self) -> MatchResult:
        s = self.state
        total_possession = self.home_team.possession_time + self.away_team.possession_time
        teams = (self.home_team, self.away_team)
        return MatchResult(
            match_id=self.match_id,
            home_team_id=self.home_team.team_id,
            away_team_id=self.away_team.team_id,
            final_score=dict(s.score),
            stats={t.team_id: dict(t.stats) for t in teams},
            possession={t.team_id: t.get_possession_percentage(total_possession) for t in teams},
            pass_accuracy={t.team_id: t.get_pass_accuracy() for t in teams},
            player_stats=[p.to_dict() for t in teams for p in t.players],
            role_stats={t.team_id: t.get_role_stats() for t in teams},
            stoppage_time=s.stoppage[1] + s.stoppage[2],
            stoppage_by_half=dict(s.stoppage),
            final_time=s.time,
            events=list(self.event_log.events),
            snapshots=list(self.snapshots),
        )

    def export_logs(self, output_dir: str = "logs") -> Tuple[str, str]:
        """
        Export the event log to CSV and XES files.

        Args:
            output_dir: Directory for the log files

        Returns:
            (csv path, xes path)
        """
        os.makedirs(output_dir, exist_ok=True)
        csv_path = os.path.join(output_dir, f"{self.match_id}.csv")
        xes_path = os.path.join(output_dir, f"{self.match_id}.xes")
        self.event_log.export_to_csv(csv_path)
        self.event_log.export_to_xes(xes_path)
        return csv_path, xes_path
