"""
Test token draws and the effect rules of the resolver.
"""

import numpy as np
import pytest

from token_football.engine.bag_builder import Bag
from token_football.engine.errors import EmptyBagError
from token_football.engine.pitch import PitchZones, Zone
from token_football.engine.resolver import (Goal, Movement, OutOfPlay, PossessionChange,
                                            StatOnly, TokenActionResult, TokenResolver)
from token_football.engine.tokens import MatchPhase, Token, TokenType


def make_bag(zone: Zone, possession: str = "HOME", phase: MatchPhase = MatchPhase.NORMAL, tokens=()):
    return Bag(tokens=tuple(tokens), zone=zone, phase=phase, possession_team_id=possession,
               home_team_id="HOME", away_team_id="AWAY")


def test_draw_frequencies_follow_weights():
    """Over many draws each token is picked in proportion to its weight."""
    tokens = [Token(TokenType.PASS_SHORT, "HOME", 1.0, "H1"),
              Token(TokenType.DRIBBLE, "HOME", 3.0, "H2")]
    rng = np.random.default_rng(2024)
    n = 40000
    dribbles = sum(1 for _ in range(n) if TokenResolver.draw(tokens, rng).type is TokenType.DRIBBLE)
    assert dribbles / n == pytest.approx(0.75, abs=0.01)


def test_draw_walks_tokens_in_order(fixed_random):
    tokens = [Token(TokenType.PASS_SHORT, "HOME", 1.0, "H1"),
              Token(TokenType.PASS_SHORT, "HOME", 1.0, "H2")]
    assert TokenResolver.draw(tokens, fixed_random(0.0)).player_id == "H1"
    assert TokenResolver.draw(tokens, fixed_random(0.49)).player_id == "H1"
    assert TokenResolver.draw(tokens, fixed_random(0.51)).player_id == "H2"
    assert TokenResolver.draw(tokens, fixed_random(0.999999)).player_id == "H2"


def test_draw_from_empty_bag_raises(fixed_random):
    with pytest.raises(EmptyBagError):
        TokenResolver.draw([], fixed_random(0.5))
    with pytest.raises(EmptyBagError):
        TokenResolver.draw([Token(TokenType.PASS_SHORT, "HOME", 0.0, "H1")], fixed_random(0.5))


def test_every_token_type_has_a_rule():
    """Every catalogue type resolves to one of the effect variants."""
    resolver = TokenResolver()
    bag = make_bag(Zone(3, 2))
    rng = np.random.default_rng(0)
    for token_type in TokenType:
        result = resolver.apply(Token(token_type, "HOME", 1.0, "H1"), bag, rng)
        assert isinstance(result, TokenActionResult)
        assert isinstance(result.effect, (Movement, PossessionChange, Goal, OutOfPlay, StatOnly))
        assert result.narrative_key == f"token.{token_type.value.lower()}"


def test_pass_on_the_last_column_stays_with_the_passer(fixed_random):
    """A completed pass in front of goal is collected there instead of giving a goal kick."""
    resolver = TokenResolver()
    home = resolver.apply(Token(TokenType.PASS_SHORT, "HOME", 1.0, "H1"),
                          make_bag(Zone(5, 2)), fixed_random(0.99))
    away = resolver.apply(Token(TokenType.PASS_SHORT, "AWAY", 1.0, "A1"),
                          make_bag(Zone(0, 2), possession="AWAY"), fixed_random(0.99))
    assert home.effect == Movement(0, 0)
    assert away.effect == Movement(0, 0)
    assert home.stats == {"passes": 1, "passes_completed": 1}


def test_through_ball_is_capped_at_the_byline(fixed_random):
    resolver = TokenResolver()
    home = resolver.apply(Token(TokenType.THROUGH_BALL, "HOME", 1.0, "H8"),
                          make_bag(Zone(4, 2)), fixed_random(0.5))
    away = resolver.apply(Token(TokenType.THROUGH_BALL, "AWAY", 1.0, "A8"),
                          make_bag(Zone(1, 2), possession="AWAY"), fixed_random(0.5))
    assert home.effect == Movement(1, 0)
    assert away.effect == Movement(-1, 0)


@pytest.mark.parametrize("phase", [p for p in MatchPhase if p is not MatchPhase.PENALTY])
def test_fallback_token_never_gives_the_ball_away(phase):
    """From every zone and for both teams the safe token keeps possession."""
    resolver = TokenResolver()
    fallback = resolver.config.zones.fallback_for(phase)
    rng = np.random.default_rng(17)
    for x in range(PitchZones.COLUMNS):
        for y in range(PitchZones.ROWS):
            for team in ("HOME", "AWAY"):
                bag = make_bag(Zone(x, y), possession=team, phase=phase)
                for _ in range(40):
                    result = resolver.apply(Token(fallback, team, 1.0, "P1"), bag, rng)
                    assert isinstance(result.effect, Movement), (phase, x, y, team, result.effect)
                    assert 0 <= x + result.effect.dx < PitchZones.COLUMNS
                    assert 0 <= y + result.effect.dy < PitchZones.ROWS


def test_kicked_ball_over_own_byline_is_corner(fixed_random):
    resolver = TokenResolver()
    bag = make_bag(Zone(0, 3))
    result = resolver.apply(Token(TokenType.PASS_BACK, "HOME", 1.0, "H1"), bag, fixed_random(0.99))
    assert result.effect == OutOfPlay(MatchPhase.CORNER, "AWAY", Zone(0, 4))


def test_lateral_pass_off_touchline_is_throw_in(fixed_random):
    resolver = TokenResolver()
    bag = make_bag(Zone(2, 0))
    result = resolver.apply(Token(TokenType.PASS_LATERAL, "HOME", 1.0, "H1"), bag, fixed_random(0.9))
    assert result.effect == OutOfPlay(MatchPhase.THROW_IN, "AWAY", Zone(2, 0))


def test_carried_ball_is_clamped(fixed_random):
    resolver = TokenResolver()
    bag = make_bag(Zone(5, 2))
    result = resolver.apply(Token(TokenType.DRIBBLE, "HOME", 1.0, "H1"), bag, fixed_random(0.99))
    assert result.effect == Movement(0, 0)


def test_movement_direction_follows_team(fixed_random):
    resolver = TokenResolver()
    home_move = resolver.apply(Token(TokenType.PASS_SHORT, "HOME", 1.0, "H1"),
                               make_bag(Zone(2, 2)), fixed_random(0.99))
    away_move = resolver.apply(Token(TokenType.PASS_SHORT, "AWAY", 1.0, "A1"),
                               make_bag(Zone(2, 2), possession="AWAY"), fixed_random(0.99))
    assert home_move.effect == Movement(1, 0)
    assert away_move.effect == Movement(-1, 0)
    assert home_move.stats == {"passes": 1, "passes_completed": 1}


def test_cross_targets_the_box_centre():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.CROSS, "AWAY", 1.0, "A1"),
                            make_bag(Zone(1, 4), possession="AWAY"), np.random.default_rng(1))
    assert result.effect == Movement(0 - 1, 2 - 4)


def test_goal_effect_and_stoppage():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.SHOOT_GOAL, "HOME", 1.0, "H9"),
                            make_bag(Zone(5, 2)), np.random.default_rng(1))
    assert result.effect == Goal("HOME")
    assert result.stats["goals"] == 1
    assert result.stats["shots_on_target"] == 1
    assert result.stats["xg"] > 0
    assert result.stoppage == resolver.config.timing.goal_stoppage


def test_saved_shot_turns_over_possession():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.SHOOT_SAVED, "HOME", 1.0, "H9"),
                            make_bag(Zone(5, 2)), np.random.default_rng(1))
    assert result.effect == PossessionChange("AWAY")
    assert result.opponent_stats == {"saves": 1}


def test_off_target_shot_gives_goal_kick():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.SHOOT_OFF_TARGET, "AWAY", 1.0, "A9"),
                            make_bag(Zone(0, 2), possession="AWAY"), np.random.default_rng(1))
    assert result.effect == OutOfPlay(MatchPhase.GOAL_KICK, "HOME", Zone(0, 2))


def test_tackle_wins_the_ball():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.TACKLE, "AWAY", 1.0, "A4"),
                            make_bag(Zone(3, 3)), np.random.default_rng(1))
    assert result.effect == PossessionChange("AWAY")
    assert result.stats == {"tackles": 1}


def test_penalty_foul_awards_penalty_to_attackers():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.FOUL_PENALTY, "AWAY", 1.0, "A3"),
                            make_bag(Zone(5, 2)), np.random.default_rng(1))
    assert result.effect == OutOfPlay(MatchPhase.PENALTY, "HOME", Zone(5, 2))
    assert result.stats == {"fouls": 1}


def test_cards_are_reported_with_stoppage():
    resolver = TokenResolver()
    bag = make_bag(Zone(2, 2))
    yellow = resolver.apply(Token(TokenType.YELLOW_CARD, "AWAY", 1.0, "A5"), bag, np.random.default_rng(1))
    red = resolver.apply(Token(TokenType.RED_CARD, "AWAY", 1.0, "A5"), bag, np.random.default_rng(1))
    assert yellow.card == "yellow"
    assert red.card == "red"
    assert yellow.effect == OutOfPlay(MatchPhase.FREE_KICK, "HOME", Zone(2, 2))
    assert red.stoppage == resolver.config.timing.card_stoppage


def test_injury_adds_stoppage_without_moving_ball():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.INJURY, "HOME", 1.0, "H2"),
                            make_bag(Zone(2, 2)), np.random.default_rng(1))
    assert result.effect == StatOnly()
    assert result.stoppage == resolver.config.timing.injury_stoppage


def test_fatigue_token_costs_extra_fatigue():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.FATIGUE, "HOME", 1.0, "H2"),
                            make_bag(Zone(2, 2)), np.random.default_rng(1))
    assert result.effect == StatOnly()
    assert result.fatigue_cost == resolver.config.balancing.fatigue_token_cost


def test_resolve_returns_drawn_token():
    resolver = TokenResolver()
    token = Token(TokenType.INTERCEPT, "AWAY", 2.0, "A6")
    bag = make_bag(Zone(2, 2), tokens=[token])
    drawn, result = resolver.resolve(bag, np.random.default_rng(3))
    assert drawn == token
    assert result.effect == PossessionChange("AWAY")


def test_woodwork_out_gives_goal_kick():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.WOODWORK_OUT, "HOME", 1.0, "H9"),
                            make_bag(Zone(5, 2)), np.random.default_rng(1))
    assert result.effect == OutOfPlay(MatchPhase.GOAL_KICK, "AWAY", Zone(5, 2))
    assert result.stats["shots"] == 1
    assert "shots_on_target" not in result.stats


def test_rebound_keeps_the_ball_in_the_box():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.REBOUND, "HOME", 1.0, "H9"),
                            make_bag(Zone(5, 1)), np.random.default_rng(1))
    assert result.effect == Movement(0, 1)
    assert result.duration == 3.0


def test_own_goal_counts_for_the_other_team():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.OWN_GOAL, "AWAY", 1.0, "A4"),
                            make_bag(Zone(5, 2)), np.random.default_rng(1))
    assert result.effect == Goal("HOME")
    assert result.stats == {"own_goals": 1}
    assert result.opponent_stats == {"goals": 1}
    assert result.stoppage == resolver.config.timing.goal_stoppage


def test_corner_goal_and_free_kick_wall():
    resolver = TokenResolver()
    corner = resolver.apply(Token(TokenType.CORNER_GOAL, "HOME", 1.0, "H5"),
                            make_bag(Zone(5, 0), phase=MatchPhase.CORNER), np.random.default_rng(1))
    wall = resolver.apply(Token(TokenType.FREE_KICK_WALL, "HOME", 1.0, "H10"),
                          make_bag(Zone(4, 2), phase=MatchPhase.FREE_KICK), np.random.default_rng(1))
    assert corner.effect == Goal("HOME")
    assert corner.stats["goals"] == 1
    assert wall.effect == PossessionChange("AWAY")
    assert wall.stats["shots"] == 1


@pytest.mark.parametrize("token_type, stat", [
    (TokenType.BALL_RECOVERY, "interceptions"),
    (TokenType.DUEL_WON, "duels_won"),
])
def test_defensive_recoveries_win_the_ball(token_type, stat):
    resolver = TokenResolver()
    result = resolver.apply(Token(token_type, "AWAY", 1.0, "A6"),
                            make_bag(Zone(2, 2)), np.random.default_rng(1))
    assert result.effect == PossessionChange("AWAY")
    assert result.stats == {stat: 1}


def test_lost_duel_turns_the_ball_over():
    resolver = TokenResolver()
    result = resolver.apply(Token(TokenType.DUEL_LOST, "HOME", 1.0, "H7"),
                            make_bag(Zone(3, 1)), np.random.default_rng(1))
    assert result.effect == PossessionChange("AWAY")
    assert result.stats == {"duels_lost": 1}
    assert result.opponent_stats == {"duels_won": 1}


def test_clearance_outcomes(fixed_random):
    """Kept clearances find a teammate, lost ones leave the attackers on the ball further out."""
    resolver = TokenResolver()
    bag = make_bag(Zone(1, 2), possession="AWAY")
    keep = resolver.apply(Token(TokenType.CLEARANCE_KEEP, "HOME", 1.0, "H4"), bag, fixed_random(0.99))
    lose = resolver.apply(Token(TokenType.CLEARANCE_LOSE, "HOME", 1.0, "H4"), bag, fixed_random(0.99))
    won = resolver.apply(Token(TokenType.CLEARANCE, "HOME", 1.0, "H4"), bag, fixed_random(0.1))
    loose = resolver.apply(Token(TokenType.CLEARANCE, "HOME", 1.0, "H4"), bag, fixed_random(0.99))
    assert keep.effect == PossessionChange("HOME", 2, 0)
    assert lose.effect == Movement(2, 0)
    assert won.effect == PossessionChange("HOME", 2, 1)
    assert loose.effect == Movement(2, 0)
    assert keep.stats == {"clearances": 1}
