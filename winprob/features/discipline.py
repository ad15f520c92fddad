"""
Discipline aggregate: how foul/card prone a team's players are.

Player composite
    Weighted mean of percentiles for fouls committed (0.50), yellow cards
    (0.35) and red cards (0.15); at least 2 of the 3 must be present.

Team aggregate
    Mean of player composites. A numeric score needs >= 3 players, but
    coverage is always reported. The starting XI is used when its coverage
    is >= 0.40; otherwise the squad (non-XI) aggregate under the same gate;
    otherwise the signal is dropped.

A high composite means undisciplined. The opponent of the more
undisciplined team gets a small lambda boost (see discipline_multipliers).
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from winprob.features.lineup_resolution import match_player
from winprob.features.percentiles import clamp
from winprob.features.player_strength import season_percentiles
from winprob.features.team_strength import STARTING_XI
from winprob.models import LineupSide, PlayerProfile

logger = logging.getLogger(__name__)

DISCIPLINE_WEIGHTS = {
    "fouls_committed": 0.50,
    "yellow_cards": 0.35,
    "red_cards": 0.15,
}
MIN_STATS_PER_PLAYER = 2
MIN_PLAYERS_FOR_SCORE = 3
MIN_TEAM_COVERAGE = 0.40

DISCIPLINE_K = 0.08
DISCIPLINE_MAX_MULT = 1.06


@dataclass(frozen=True)
class DisciplineAggregate:
    score: Optional[float]  # 0-100, None below MIN_PLAYERS_FOR_SCORE
    coverage: float
    resolved: int
    source: str  # "xi" | "squad"

    @property
    def usable(self) -> bool:
        return self.score is not None and self.coverage >= MIN_TEAM_COVERAGE


def player_discipline(profile: PlayerProfile) -> Optional[float]:
    percentiles = season_percentiles(profile)
    weighted = 0.0
    w_sum = 0.0
    present = 0
    for key, w in DISCIPLINE_WEIGHTS.items():
        pct = percentiles.get(key)
        if pct is None:
            continue
        weighted += w * pct
        w_sum += w
        present += 1

    if present < MIN_STATS_PER_PLAYER or w_sum <= 0:
        return None
    return weighted / w_sum


def aggregate_discipline(
    profiles: Iterable[Optional[PlayerProfile]], denominator: int, source: str
) -> DisciplineAggregate:
    scores = []
    for profile in profiles:
        if profile is None:
            continue
        value = player_discipline(profile)
        if value is not None:
            scores.append(value)

    resolved = len(scores)
    coverage = min(resolved / denominator, 1.0) if denominator > 0 else 0.0
    score = sum(scores) / resolved if resolved >= MIN_PLAYERS_FOR_SCORE else None
    return DisciplineAggregate(score=score, coverage=coverage, resolved=resolved, source=source)


def lineup_discipline(
    lineup: LineupSide, players: Mapping[int, PlayerProfile]
) -> DisciplineAggregate:
    profiles = (match_player(slot, players, lineup.team) for slot in lineup.starting)
    return aggregate_discipline(profiles, STARTING_XI, "xi")


def squad_discipline(
    team_id: Optional[int],
    players: Mapping[int, PlayerProfile],
    squads: Mapping[int, tuple[int, ...]],
) -> Optional[DisciplineAggregate]:
    if team_id is None:
        return None
    squad = squads.get(team_id) or ()
    if not squad:
        return None
    return aggregate_discipline((players.get(pid) for pid in squad), len(squad), "squad")


def team_discipline(
    lineup: Optional[LineupSide],
    team_id: Optional[int],
    players: Mapping[int, PlayerProfile],
    squads: Mapping[int, tuple[int, ...]],
) -> Optional[DisciplineAggregate]:
    """Accepted discipline aggregate for one team, or None if the signal drops."""
    if lineup is not None:
        xi = lineup_discipline(lineup, players)
        if xi.usable:
            return xi
        logger.debug(
            f"[DISCIPLINE] {lineup.team}: XI coverage {xi.coverage:.2f} "
            f"({xi.resolved} players), trying squad"
        )

    squad = squad_discipline(team_id, players, squads)
    if squad is not None and squad.usable:
        return squad
    return None


def discipline_multipliers(
    home: Optional[DisciplineAggregate], away: Optional[DisciplineAggregate]
) -> tuple[float, float]:
    """
    (home lambda multiplier, away lambda multiplier).

    The opponent of the more undisciplined team gets
    clamp(1 + 0.08 * |delta / 100|, 1.0, 1.06). Ties apply nothing.
    """
    if home is None or away is None or home.score is None or away.score is None:
        return 1.0, 1.0

    delta = home.score - away.score
    mult = clamp(1.0 + DISCIPLINE_K * abs(delta / 100.0), 1.0, DISCIPLINE_MAX_MULT)
    if delta > 0:
        return 1.0, mult
    if delta < 0:
        return mult, 1.0
    return 1.0, 1.0
