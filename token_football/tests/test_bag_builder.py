"""
Test bag construction: coverage, weighting and staff impacts.
"""

import pytest

from token_football.engine.bag_builder import BagBuilder
from token_football.engine.config import StaffSpecialization
from token_football.engine.errors import InvariantViolation
from token_football.engine.pitch import PitchZones, Zone
from token_football.engine.team import StaffMember
from token_football.engine.tokens import (CATALOGUE_ORDER, MatchPhase, TokenCategory,
                                          TokenFamily, TokenType)


def all_zones():
    return [Zone(x, y) for x in range(PitchZones.COLUMNS) for y in range(PitchZones.ROWS)]


def test_every_zone_and_possession_gives_a_drawable_bag(teams):
    """All 30 zones x 2 possessions produce a non-empty bag with positive total weight."""
    home, away = teams
    builder = BagBuilder()
    for zone in all_zones():
        for team in (home, away):
            bag = builder.build_bag(zone, MatchPhase.NORMAL, team.team_id, home, away)
            assert len(bag) > 0
            assert bag.total_weight() > 0
            assert all(token.weight > 0 for token in bag)


def test_bag_tokens_are_in_catalogue_order(teams):
    home, away = teams
    bag = BagBuilder().build_bag(Zone(3, 2), MatchPhase.NORMAL, home.team_id, home, away)
    order = [CATALOGUE_ORDER[token.type] for token in bag]
    assert order == sorted(order)


def test_offensive_tokens_belong_to_possession_team(teams):
    """Offensive tokens come from the attackers, defensive tokens from the defenders."""
    home, away = teams
    builder = BagBuilder()
    for zone in all_zones():
        bag = builder.build_bag(zone, MatchPhase.NORMAL, away.team_id, home, away)
        for token in bag:
            if token.category is TokenCategory.OFFENSIVE:
                assert token.team_id == away.team_id
            elif token.category is TokenCategory.DEFENSIVE:
                assert token.team_id == home.team_id


def test_token_owners_are_on_their_team(teams):
    home, away = teams
    bag = BagBuilder().build_bag(Zone(4, 1), MatchPhase.NORMAL, home.team_id, home, away)
    for token in bag:
        team = home if token.team_id == home.team_id else away
        assert team.get_player(token.player_id) is not None


def test_goalkeeping_tokens_only_for_goalkeepers(teams):
    home, away = teams
    bag = BagBuilder().build_bag(Zone(5, 2), MatchPhase.NORMAL, home.team_id, home, away)
    keeper_tokens = [t for t in bag if t.type in (TokenType.GK_SAVE, TokenType.GK_CLAIM)]
    assert keeper_tokens
    for token in keeper_tokens:
        assert away.get_player(token.player_id).is_goalkeeper


def test_foreign_possession_team_is_rejected(teams):
    home, away = teams
    with pytest.raises(InvariantViolation):
        BagBuilder().build_bag(Zone(2, 2), MatchPhase.NORMAL, "NOBODY", home, away)


def test_fatigue_degrades_a_players_weight(teams):
    """A fully tired player keeps 1 - max_penalty of their non-fatigue weight."""
    home, away = teams
    builder = BagBuilder()
    zone = Zone(2, 2)
    fresh = builder.build_bag(zone, MatchPhase.NORMAL, home.team_id, home, away)
    player_id = next(t.player_id for t in fresh if t.type is TokenType.DRIBBLE and t.team_id == home.team_id)
    types = [TokenType.DRIBBLE, TokenType.PASS_LONG, TokenType.ONE_TWO]
    before = fresh.weight_of(player_id=player_id, types=types)

    home.get_player(player_id).add_fatigue(100)
    tired = builder.build_bag(zone, MatchPhase.NORMAL, home.team_id, home, away)
    after = tired.weight_of(player_id=player_id, types=types)

    penalty = builder.config.balancing.fatigue_max_penalty
    assert after < before
    assert after == pytest.approx(before * (1 - penalty))


def test_fatigue_below_threshold_has_no_effect(teams):
    home, away = teams
    builder = BagBuilder()
    fresh = builder.build_bag(Zone(2, 2), MatchPhase.NORMAL, home.team_id, home, away)
    for player in home.players:
        player.add_fatigue(builder.config.balancing.fatigue_threshold)
    rested = builder.build_bag(Zone(2, 2), MatchPhase.NORMAL, home.team_id, home, away)
    assert rested.weight_of(team_id=home.team_id, families=[TokenFamily.PASS]) == pytest.approx(
        fresh.weight_of(team_id=home.team_id, families=[TokenFamily.PASS]))


def test_technical_staff_scales_pass_and_dribble(make_teams):
    """TECHNICAL staff multiply PASS and DRIBBLE weight by 1.05 and leave other families alone."""
    plain_home, plain_away = make_teams(seed=3)
    staff = [StaffMember("S1", "Technical Coach", StaffSpecialization.TECHNICAL)]
    coached_home, coached_away = make_teams(seed=3, home_staff=staff)
    builder = BagBuilder()
    zone = Zone(3, 1)

    plain = builder.build_bag(zone, MatchPhase.NORMAL, "HOME", plain_home, plain_away)
    coached = builder.build_bag(zone, MatchPhase.NORMAL, "HOME", coached_home, coached_away)

    for family in (TokenFamily.PASS, TokenFamily.DRIBBLE):
        assert coached.weight_of(team_id="HOME", families=[family]) == pytest.approx(
            plain.weight_of(team_id="HOME", families=[family]) * 1.05)
    for family in (TokenFamily.ERROR, TokenFamily.FATIGUE):
        assert coached.weight_of(team_id="HOME", families=[family]) == pytest.approx(
            plain.weight_of(team_id="HOME", families=[family]))
    assert coached.weight_of(team_id="AWAY") == pytest.approx(plain.weight_of(team_id="AWAY"))


def test_physio_reduces_fatigue_tokens(make_teams):
    plain_home, plain_away = make_teams(seed=5)
    staff = [StaffMember("S2", "Physio", StaffSpecialization.PHYSIO)]
    treated_home, treated_away = make_teams(seed=5, home_staff=staff)
    builder = BagBuilder()

    plain = builder.build_bag(Zone(2, 2), MatchPhase.NORMAL, "HOME", plain_home, plain_away)
    treated = builder.build_bag(Zone(2, 2), MatchPhase.NORMAL, "HOME", treated_home, treated_away)

    before = plain.weight_of(team_id="HOME", types=[TokenType.FATIGUE])
    after = treated.weight_of(team_id="HOME", types=[TokenType.FATIGUE])
    assert before > 0
    assert after < before


def test_tactical_staff_adds_flat_defensive_weight(make_teams):
    plain_home, plain_away = make_teams(seed=9)
    staff = [StaffMember("S3", "Tactical Coach", StaffSpecialization.TACTICAL)]
    coached_home, coached_away = make_teams(seed=9, away_staff=staff)
    builder = BagBuilder()

    plain = builder.build_bag(Zone(2, 2), MatchPhase.NORMAL, "HOME", plain_home, plain_away)
    coached = builder.build_bag(Zone(2, 2), MatchPhase.NORMAL, "HOME", coached_home, coached_away)

    amount = 2.0
    assert coached.weight_of(team_id="AWAY", families=[TokenFamily.INTERCEPT]) == pytest.approx(
        plain.weight_of(team_id="AWAY", families=[TokenFamily.INTERCEPT]) + amount)


def test_duplicate_staff_count_once(make_teams):
    one = [StaffMember("S1", "Coach A", StaffSpecialization.TECHNICAL)]
    two = one + [StaffMember("S4", "Coach B", StaffSpecialization.TECHNICAL)]
    home_one, away_one = make_teams(seed=11, home_staff=one)
    home_two, away_two = make_teams(seed=11, home_staff=two)
    builder = BagBuilder()
    a = builder.build_bag(Zone(1, 2), MatchPhase.NORMAL, "HOME", home_one, away_one)
    b = builder.build_bag(Zone(1, 2), MatchPhase.NORMAL, "HOME", home_two, away_two)
    assert a.total_weight() == pytest.approx(b.total_weight())


def test_defensive_pressure_is_capped(teams):
    home, away = teams
    builder = BagBuilder()
    for zone in all_zones():
        pressure = builder.defensive_pressure(zone, away)
        assert 1.0 <= pressure <= builder.config.balancing.max_pressure


def test_pressing_raises_defensive_weight(make_teams):
    home, away = make_teams(seed=13)
    builder = BagBuilder()
    zone = Zone(2, 2)
    away.strategy.pressing_intensity = 0.0
    passive = builder.build_bag(zone, MatchPhase.NORMAL, "HOME", home, away)
    away.strategy.pressing_intensity = 1.0
    pressing = builder.build_bag(zone, MatchPhase.NORMAL, "HOME", home, away)
    assert pressing.weight_of(team_id="AWAY", families=[TokenFamily.TACKLE]) > \
        passive.weight_of(team_id="AWAY", families=[TokenFamily.TACKLE])
    assert pressing.weight_of(team_id="HOME", families=[TokenFamily.PASS]) < \
        passive.weight_of(team_id="HOME", families=[TokenFamily.PASS])


def test_set_piece_uses_single_best_taker(teams):
    """A corner is taken by the best crosser among outfield players."""
    home, away = teams
    bag = BagBuilder().build_bag(Zone(5, 0), MatchPhase.CORNER, home.team_id, home, away)
    crosses = [t for t in bag if t.type is TokenType.CORNER_CROSS]
    assert len(crosses) == 1
    outfield = [p for p in home.active_players() if not p.is_goalkeeper]
    best = max(p.attributes.crossing for p in outfield)
    assert home.get_player(crosses[0].player_id).attributes.crossing == best


def test_goal_kick_taken_by_goalkeeper(teams):
    home, away = teams
    bag = BagBuilder().build_bag(Zone(0, 2), MatchPhase.GOAL_KICK, home.team_id, home, away)
    assert {t.type for t in bag} <= {TokenType.GK_SHORT, TokenType.GK_LONG}
    for token in bag:
        assert home.get_player(token.player_id).is_goalkeeper


def test_sent_off_players_leave_the_bag(teams):
    home, away = teams
    builder = BagBuilder()
    zone = Zone(2, 2)
    bag = builder.build_bag(zone, MatchPhase.NORMAL, home.team_id, home, away)
    player_id = next(t.player_id for t in bag if t.team_id == home.team_id and t.type is TokenType.DRIBBLE)
    home.get_player(player_id).send_off()
    after = builder.build_bag(zone, MatchPhase.NORMAL, home.team_id, home, away)
    assert after.weight_of(player_id=player_id) == 0


def test_builder_does_not_mutate_players(teams):
    home, away = teams
    before = [(p.fatigue, dict(p.stats)) for p in home.players + away.players]
    BagBuilder().build_bag(Zone(4, 2), MatchPhase.NORMAL, home.team_id, home, away)
    assert [(p.fatigue, dict(p.stats)) for p in home.players + away.players] == before


@pytest.mark.parametrize("style, favoured, untouched", [
    ("attacking", TokenType.THROUGH_BALL, TokenType.PASS_BACK),
    ("defensive", TokenType.PASS_BACK, TokenType.THROUGH_BALL),
])
def test_possession_style_biases_its_tokens(make_teams, style, favoured, untouched):
    plain_home, plain_away = make_teams(seed=12)
    styled_home, styled_away = make_teams(seed=12)
    styled_home.strategy.possession_style = style
    builder = BagBuilder()
    zone = Zone(3, 1)

    plain = builder.build_bag(zone, MatchPhase.NORMAL, "HOME", plain_home, plain_away)
    styled = builder.build_bag(zone, MatchPhase.NORMAL, "HOME", styled_home, styled_away)

    bias = 1.0 + builder.config.balancing.style_bias
    assert plain.weight_of(team_id="HOME", types=[favoured]) > 0
    assert styled.weight_of(team_id="HOME", types=[favoured]) == pytest.approx(
        plain.weight_of(team_id="HOME", types=[favoured]) * bias)
    assert styled.weight_of(team_id="HOME", types=[untouched]) == pytest.approx(
        plain.weight_of(team_id="HOME", types=[untouched]))
