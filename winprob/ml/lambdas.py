"""
Pre-match expected goals (lambda) per team for the full match.

    diff = K_STRENGTH * ((s_home - s_away) + player_impact_signal)
    lh   = clamp(base/2 + ha/2 + diff/2, 0.20, 3.80)
    la   = clamp(base/2 - ha/2 - diff/2, 0.20, 3.80)

then the discipline multipliers (see features/discipline.py) are applied
to whichever side they target, staying inside the same clamp.
"""

from dataclasses import dataclass

from winprob.features.percentiles import clamp
from winprob.ml.league_params import LeagueParams

K_STRENGTH = 0.45

LAMBDA_PRE_MIN = 0.20
LAMBDA_PRE_MAX = 3.80


@dataclass(frozen=True)
class PrematchLambdas:
    home: float
    away: float


def prematch_lambdas(
    params: LeagueParams,
    s_home: float = 0.0,
    s_away: float = 0.0,
    player_impact_signal: float = 0.0,
    discipline_mult: tuple[float, float] = (1.0, 1.0),
    include_home_adv: bool = True,
) -> PrematchLambdas:
    """
    Full-match lambdas for both teams.

    include_home_adv=False gives the neutral-venue baseline used by the
    explainability trace.
    """
    base = params.goals_total_base
    ha = params.home_adv_goals if include_home_adv else 0.0
    diff = K_STRENGTH * ((s_home - s_away) + player_impact_signal)

    lam_home = clamp(base / 2.0 + ha / 2.0 + diff / 2.0, LAMBDA_PRE_MIN, LAMBDA_PRE_MAX)
    lam_away = clamp(base / 2.0 - ha / 2.0 - diff / 2.0, LAMBDA_PRE_MIN, LAMBDA_PRE_MAX)

    mult_home, mult_away = discipline_mult
    lam_home = clamp(lam_home * mult_home, LAMBDA_PRE_MIN, LAMBDA_PRE_MAX)
    lam_away = clamp(lam_away * mult_away, LAMBDA_PRE_MIN, LAMBDA_PRE_MAX)
    return PrematchLambdas(home=lam_home, away=lam_away)
