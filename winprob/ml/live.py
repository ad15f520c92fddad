"""
In-play adjustment of the remaining expected goals.

Starting point: remaining lambda = pre-match lambda x remaining time
fraction, where the total length includes a stoppage estimate
(90 + min(7, goals + cards + subs from the 60th minute)).

Signals, in order:
1. xG (strongest): rescale by how far each team is over/under the xG
   expected at this point, damped by elapsed time.
   Else shots on target: nudge by the on-target differential.
2. Red cards: carded team down 0.80^n (floor 0.55), opponent up 1.10^n
   (cap 1.35).
3. Without xG, weaker stats each nudge the split, each bounded to +/-15%.
4. From the 75th minute with a non-level score, both teams x0.90.

All remaining lambdas stay in [0.05, 3.00].
"""

import logging
from dataclasses import dataclass
from typing import Optional

from winprob.etl.name_normalization import normalize_team_key
from winprob.etl.stat_parsing import extract_stat_pair
from winprob.features.percentiles import clamp
from winprob.models import EventKind, MatchContext

logger = logging.getLogger(__name__)

REGULATION_MINUTES = 90.0
MAX_STOPPAGE_MINUTES = 7
STOPPAGE_FROM_MINUTE = 60

LAMBDA_REM_MIN = 0.05
LAMBDA_REM_MAX = 3.00

XG_KEYS = ("xg", "expected goals", "expected goals (xg)")
SHOTS_ON_TARGET_KEYS = ("shots on target",)

XG_PRIOR_SMOOTHING = 0.10
XG_MULT_MIN = 0.60
XG_MULT_MAX = 1.70
XG_ALPHA_MAX = 0.75

SHOTS_ON_TARGET_K = 0.05
WEAK_SIGNAL_T_MAX = 0.50
WEAK_SIGNAL_BOUND = 0.15

RED_CARD_PENALTY = 0.80
RED_CARD_PENALTY_FLOOR = 0.55
RED_CARD_BOOST = 1.10
RED_CARD_BOOST_CAP = 1.35
RED_CARD_RESCINDED = ("overturned", "rescinded", "cancelled", "canceled", "var: no")

LEAD_PROTECTION_MINUTE = 75
LEAD_PROTECTION_FACTOR = 0.90

# (stat names, coefficient, unit scale). Percent stats are per 100 points.
WEAK_SIGNALS: tuple[tuple[tuple[str, ...], float, float], ...] = (
    (("big chances",), 0.06, 1.0),
    (("xgot", "xg on target"), 0.04, 1.0),
    (("ball possession", "possession"), 0.10, 0.01),
    (("total shots", "shots"), 0.015, 1.0),
    (("pass accuracy", "passes accuracy", "accurate passes %"), 0.08, 0.01),
    (("ground duels won", "ground duels won %"), 0.08, 0.01),
    (("fouls committed", "fouls"), -0.01, 1.0),
)
TACKLES_INTERCEPTIONS_K = 0.01


@dataclass(frozen=True)
class LiveAdjustment:
    lambda_home_rem: float
    lambda_away_rem: float
    estimated_total: float
    t: float  # Elapsed fraction of estimated_total
    xg_present: bool
    used_live_stats: bool
    red_home: int = 0
    red_away: int = 0


def _clamp_rem(value: float) -> float:
    return clamp(value, LAMBDA_REM_MIN, LAMBDA_REM_MAX)


def estimate_total_minutes(match: MatchContext) -> float:
    """Regulation time plus a stoppage estimate from late event volume."""
    if not match.is_live:
        return REGULATION_MINUTES

    late_events = sum(
        1 for e in match.events
        if e.minute >= STOPPAGE_FROM_MINUTE
        and e.kind in (EventKind.GOAL, EventKind.CARD, EventKind.SUB)
    )
    return REGULATION_MINUTES + min(late_events, MAX_STOPPAGE_MINUTES)


def count_red_cards(match: MatchContext) -> tuple[int, int]:
    """Confirmed red cards per side, inferred from card event descriptions."""
    home_keys = {normalize_team_key(match.home_label), normalize_team_key(match.home)} - {""}
    away_keys = {normalize_team_key(match.away_label), normalize_team_key(match.away)} - {""}

    red_home = 0
    red_away = 0
    for e in match.events:
        if e.kind != EventKind.CARD:
            continue
        desc = e.description.lower()
        if "red" not in desc or any(tok in desc for tok in RED_CARD_RESCINDED):
            continue
        team_key = normalize_team_key(e.team)
        if team_key in home_keys:
            red_home += 1
        elif team_key in away_keys:
            red_away += 1
    return red_home, red_away


def red_card_multipliers(n: int) -> tuple[float, float]:
    """(penalty for the carded team, boost for the opponent)."""
    if n <= 0:
        return 1.0, 1.0
    penalty = clamp(RED_CARD_PENALTY ** n, RED_CARD_PENALTY_FLOOR, 1.0)
    boost = clamp(RED_CARD_BOOST ** n, 1.0, RED_CARD_BOOST_CAP)
    return penalty, boost


def _tackles_interceptions(match: MatchContext) -> Optional[tuple[float, float]]:
    tackles = extract_stat_pair(match.stats, ("tackles", "tackles won"))
    interceptions = extract_stat_pair(match.stats, ("interceptions",))
    if tackles is None and interceptions is None:
        return None
    th, ta = tackles or (0.0, 0.0)
    ih, ia = interceptions or (0.0, 0.0)
    return th + ih, ta + ia


def adjust_live(match: MatchContext, lambda_home_pre: float, lambda_away_pre: float) -> LiveAdjustment:
    """Remaining-match lambdas for an in-play fixture."""
    total = estimate_total_minutes(match)
    minute = min(max(float(match.minute), 1.0), total)
    t = minute / total
    remain = (total - minute) / total

    lam_h = lambda_home_pre * remain
    lam_a = lambda_away_pre * remain
    xg_present = False
    used_live_stats = False
    b = min(t, WEAK_SIGNAL_T_MAX)

    xg = extract_stat_pair(match.stats, XG_KEYS)
    if xg is not None:
        xg_present = True
        used_live_stats = True
        xg_h, xg_a = xg
        mult_h = clamp(
            (xg_h + XG_PRIOR_SMOOTHING) / (lambda_home_pre * t + XG_PRIOR_SMOOTHING),
            XG_MULT_MIN, XG_MULT_MAX,
        )
        mult_a = clamp(
            (xg_a + XG_PRIOR_SMOOTHING) / (lambda_away_pre * t + XG_PRIOR_SMOOTHING),
            XG_MULT_MIN, XG_MULT_MAX,
        )
        alpha = clamp(t, 0.0, XG_ALPHA_MAX)
        lam_h = _clamp_rem(lambda_home_pre * mult_h ** alpha * remain)
        lam_a = _clamp_rem(lambda_away_pre * mult_a ** alpha * remain)
    else:
        sot = extract_stat_pair(match.stats, SHOTS_ON_TARGET_KEYS)
        if sot is not None:
            used_live_stats = True
            delta = sot[0] - sot[1]
            lam_h = _clamp_rem(lam_h * (1.0 + SHOTS_ON_TARGET_K * delta * b))
            lam_a = _clamp_rem(lam_a * (1.0 - SHOTS_ON_TARGET_K * delta * b))

    red_home, red_away = count_red_cards(match)
    if red_home:
        penalty, boost = red_card_multipliers(red_home)
        lam_h = _clamp_rem(lam_h * penalty)
        lam_a = _clamp_rem(lam_a * boost)
    if red_away:
        penalty, boost = red_card_multipliers(red_away)
        lam_a = _clamp_rem(lam_a * penalty)
        lam_h = _clamp_rem(lam_h * boost)

    if not xg_present:
        pairs = [
            (extract_stat_pair(match.stats, keys), k, scale)
            for keys, k, scale in WEAK_SIGNALS
        ]
        pairs.append((_tackles_interceptions(match), TACKLES_INTERCEPTIONS_K, 1.0))
        for pair, k, scale in pairs:
            if pair is None:
                continue
            used_live_stats = True
            x = clamp(k * (pair[0] - pair[1]) * scale * b, -WEAK_SIGNAL_BOUND, WEAK_SIGNAL_BOUND)
            lam_h = _clamp_rem(lam_h * (1.0 + x))
            lam_a = _clamp_rem(lam_a * (1.0 - x))

    if match.minute >= LEAD_PROTECTION_MINUTE and match.score_home != match.score_away:
        lam_h = _clamp_rem(lam_h * LEAD_PROTECTION_FACTOR)
        lam_a = _clamp_rem(lam_a * LEAD_PROTECTION_FACTOR)

    lam_h = _clamp_rem(lam_h)
    lam_a = _clamp_rem(lam_a)

    if red_home or red_away:
        logger.debug(
            f"[LIVE] match={match.match_id} red cards H{red_home} A{red_away} applied"
        )

    return LiveAdjustment(
        lambda_home_rem=lam_h,
        lambda_away_rem=lam_a,
        estimated_total=total,
        t=t,
        xg_present=xg_present,
        used_live_stats=used_live_stats,
        red_home=red_home,
        red_away=red_away,
    )
