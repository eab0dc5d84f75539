"""
Bag construction for one resolution step.

A bag holds every candidate token for the current ball zone, possession and
match phase. Weights combine, in this fixed order:

    base * presence share * skill * fatigue * pressure * style * (1 + qualitative staff %)

after which quantitative staff amounts are added per token family and tokens
with no positive weight are dropped. A phase-specific safe token is always
added for the team in possession, so a bag for a live phase is never empty.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import EngineConfig, ImpactKind, get_default_config
from .errors import InvariantViolation
from .pitch import TemplateEntry, Zone
from .player import TokenPlayer
from .team import Team
from .tokens import (CATALOGUE_ORDER, INVERSE_SKILL_FAMILIES, MatchPhase, Token,
                     TokenCategory, TokenFamily, TokenSpec, TokenType, spec_for)

logger = logging.getLogger(__name__)

# Token types a team's possession style leans towards
STYLE_TOKENS: Dict[str, frozenset] = {
    "attacking": frozenset({TokenType.THROUGH_BALL, TokenType.PASS_LONG, TokenType.DRIBBLE,
                            TokenType.CROSS, TokenType.CUT_BACK}),
    "defensive": frozenset({TokenType.PASS_BACK, TokenType.PASS_LATERAL, TokenType.PASS_SWITCH}),
}


@dataclass(frozen=True)
class Bag:
    """Ordered, immutable set of tokens plus the context it was built for."""
    tokens: Tuple[Token, ...]
    zone: Zone
    phase: MatchPhase
    possession_team_id: str
    home_team_id: str
    away_team_id: str

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    def total_weight(self) -> float:
        return sum(token.weight for token in self.tokens)

    def weight_of(self,
                  team_id: Optional[str] = None,
                  families: Optional[Iterable[TokenFamily]] = None,
                  types: Optional[Iterable[TokenType]] = None,
                  player_id: Optional[str] = None) -> float:
        """Summed weight of the tokens matching every given filter."""
        families = set(families) if families is not None else None
        types = set(types) if types is not None else None
        total = 0.0
        for token in self.tokens:
            if team_id is not None and token.team_id != team_id:
                continue
            if families is not None and token.family not in families:
                continue
            if types is not None and token.type not in types:
                continue
            if player_id is not None and token.player_id != player_id:
                continue
            total += token.weight
        return total


class BagBuilder:
    """
    Builds weighted token bags from zone templates and both rosters.

    The builder reads player and team state but never mutates it.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_default_config()

    def build_bag(self,
                  zone: Zone,
                  phase: MatchPhase,
                  possession_team_id: str,
                  home: Team,
                  away: Team) -> Bag:
        """
        Build the bag for one resolution step.

        Args:
            zone: Ball zone
            phase: Current match phase
            possession_team_id: Team in possession (must be home or away)
            home: Home team with roster, staff and strategy
            away: Away team with roster, staff and strategy

        Returns:
            Bag ordered by catalogue declaration order

        Raises:
            InvariantViolation: If the possession team is not part of the fixture
        """
        if possession_team_id == home.team_id:
            attack, defence = home, away
        elif possession_team_id == away.team_id:
            attack, defence = away, home
        else:
            raise InvariantViolation(
                f"possession team {possession_team_id!r} is neither {home.team_id!r} nor {away.team_id!r}")

        template = self.config.zones.template_for(zone, phase, attack.is_home)
        pressure = 1.0 if phase.is_set_piece else self.defensive_pressure(zone, defence)

        tokens: List[Token] = []
        tokens.extend(self._team_tokens(template.offense, attack, zone, phase, pressure))
        tokens.extend(self._team_tokens(template.defense, defence, zone, phase, pressure))
        tokens.append(self._fallback_token(zone, phase, attack))
        # Stable sort keeps roster order within a token type
        tokens.sort(key=lambda token: CATALOGUE_ORDER[token.type])

        bag = Bag(
            tokens=tuple(tokens),
            zone=zone,
            phase=phase,
            possession_team_id=possession_team_id,
            home_team_id=home.team_id,
            away_team_id=away.team_id,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Bag at %s (%s, %s in possession): %d tokens, pressure %.2f, total %.2f",
                         zone.as_tuple(), phase.value, possession_team_id, len(bag), pressure,
                         bag.total_weight())
        return bag

    def defensive_pressure(self, zone: Zone, defence: Team) -> float:
        """
        Pressure the defending team puts on the ball zone.

        Each defender adds presence * (tackling + positioning) / 200, scaled by
        the per-defender coefficient and the team's pressing intensity.

        Returns:
            Multiplier in [1, max_pressure]
        """
        balancing = self.config.balancing
        coverage = 0.0
        for player in defence.active_players():
            presence = player.presence(zone)
            if presence > 0:
                coverage += presence * (player.attributes.tackling + player.attributes.positioning) / 200.0
        pressing = 0.5 + defence.strategy.pressing_intensity
        pressure = 1.0 + pressing * coverage * balancing.pressure_per_defender
        return min(balancing.max_pressure, pressure)

    def skill_factor(self, player: TokenPlayer, spec: TokenSpec) -> float:
        skill = player.skill(spec.skill)
        if spec.family in INVERSE_SKILL_FAMILIES and spec.skill is not None:
            skill = 100.0 - skill
        return skill / self.config.balancing.base_success

    def fatigue_factor(self, player: TokenPlayer, spec: TokenSpec) -> float:
        """Linear decay from 1.0 at the threshold to 1 - max_penalty at fatigue 100."""
        if spec.family is TokenFamily.FATIGUE:
            return 1.0
        balancing = self.config.balancing
        if player.fatigue <= balancing.fatigue_threshold:
            return 1.0
        excess = (player.fatigue - balancing.fatigue_threshold) / (100.0 - balancing.fatigue_threshold)
        return 1.0 - balancing.fatigue_max_penalty * excess

    @staticmethod
    def pressure_factor(spec: TokenSpec, pressure: float) -> float:
        if spec.category is TokenCategory.OFFENSIVE:
            return 1.0 / pressure
        if spec.category is TokenCategory.DEFENSIVE:
            return pressure
        return 1.0

    def style_factor(self, team: Team, token_type: TokenType) -> float:
        favoured = STYLE_TOKENS.get(team.strategy.possession_style, frozenset())
        return 1.0 + self.config.balancing.style_bias if token_type in favoured else 1.0

    def staff_bonuses(self, team: Team) -> Tuple[Dict[TokenFamily, float], Dict[TokenFamily, float]]:
        """
        Sum a team's staff impacts per token family.

        Returns:
            (qualitative percentages, quantitative flat amounts)
        """
        qualitative: Dict[TokenFamily, float] = {}
        quantitative: Dict[TokenFamily, float] = {}
        for specialization in team.staff_specializations():
            for impact in self.config.impacts_for(specialization):
                target = qualitative if impact.kind is ImpactKind.QUALITATIVE else quantitative
                target[impact.family] = target.get(impact.family, 0.0) + impact.value
        return qualitative, quantitative

    def _team_tokens(self,
                     entries: Sequence[TemplateEntry],
                     team: Team,
                     zone: Zone,
                     phase: MatchPhase,
                     pressure: float) -> List[Token]:
        qualitative, quantitative = self.staff_bonuses(team)

        weighted: List[Tuple[TokenType, TokenPlayer, float]] = []
        for entry in entries:
            spec = spec_for(entry.type)
            bonus = 1.0 + qualitative.get(spec.family, 0.0)
            style = self.style_factor(team, entry.type)
            for player, share in self._contributors(entry, team, zone, phase, spec):
                weight = (entry.weight * share
                          * self.skill_factor(player, spec)
                          * self.fatigue_factor(player, spec)
                          * self.pressure_factor(spec, pressure)
                          * style
                          * bonus)
                weighted.append((entry.type, player, weight))

        # Flat staff amounts are spread over the family in proportion to weight
        for family, amount in quantitative.items():
            family_total = sum(w for t, _, w in weighted if spec_for(t).family is family)
            if family_total <= 0:
                continue
            scale = (family_total + amount) / family_total
            weighted = [
                (t, p, w * scale if spec_for(t).family is family else w)
                for t, p, w in weighted
            ]

        return [
            Token(type=t, team_id=team.team_id, weight=w, player_id=p.player_id)
            for t, p, w in weighted
            if w > 0
        ]

    def _contributors(self,
                      entry: TemplateEntry,
                      team: Team,
                      zone: Zone,
                      phase: MatchPhase,
                      spec: TokenSpec) -> List[Tuple[TokenPlayer, float]]:
        """Players contributing to an entry, with their share of its weight."""
        eligible = [p for p in team.active_players() if self._role_allowed(entry, p)]
        if not eligible:
            return []

        if phase.is_set_piece:
            taker = self._best_for(eligible, spec.skill)
            return [(taker, 1.0)]

        present = [(p, p.presence(zone)) for p in eligible]
        present = [(p, presence) for p, presence in present if presence > 0]
        total = sum(presence for _, presence in present)
        if total <= 0:
            return []
        return [(p, presence / total) for p, presence in present]

    @staticmethod
    def _role_allowed(entry: TemplateEntry, player: TokenPlayer) -> bool:
        if entry.roles is None:
            return not player.is_goalkeeper
        return player.role.value in entry.roles

    @staticmethod
    def _best_for(players: Sequence[TokenPlayer], attribute: Optional[str]) -> TokenPlayer:
        """Highest-rated player for an attribute; ties keep roster order."""
        best = players[0]
        for player in players[1:]:
            if player.skill(attribute) > best.skill(attribute):
                best = player
        return best

    def _fallback_token(self, zone: Zone, phase: MatchPhase, attack: Team) -> Token:
        token_type = self.config.zones.fallback_for(phase)
        spec = spec_for(token_type)
        qualitative, _ = self.staff_bonuses(attack)
        weight = self.config.balancing.fallback_weight * (1.0 + qualitative.get(spec.family, 0.0))
        owner = self._fallback_owner(zone, phase, attack, spec)
        return Token(
            type=token_type,
            team_id=attack.team_id,
            weight=weight,
            player_id=owner.player_id if owner else None,
        )

    def _fallback_owner(self, zone: Zone, phase: MatchPhase, attack: Team,
                        spec: TokenSpec) -> Optional[TokenPlayer]:
        players = attack.active_players()
        if not players:
            return None
        if spec.family is TokenFamily.GOALKEEPING:
            return attack.goalkeeper() or self._best_for(players, spec.skill)

        outfield = [p for p in players if not p.is_goalkeeper] or players
        if phase.is_set_piece:
            return self._best_for(outfield, spec.skill)

        owner = outfield[0]
        best_presence = owner.presence(zone)
        for player in outfield[1:]:
            presence = player.presence(zone)
            if presence > best_presence:
                owner, best_presence = player, presence
        return owner
