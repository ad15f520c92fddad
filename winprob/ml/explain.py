"""
Explainability trace for pre-match predictions.

Stages are recorded as successive H/D/A snapshots (percent):

    baseline -> home_adv -> rating -> lineup -> player_impact
             -> calibrated -> final (market)

Each stage's contribution is the change in p_home from the previous
snapshot, so the contributions telescope: their sum equals
p_home(final) - p_home(baseline).
"""

from typing import Optional

from winprob.features.discipline import DisciplineAggregate
from winprob.features.team_strength import STARTING_XI, TeamStrength
from winprob.models import PredictionExplain

Pct3 = tuple[float, float, float]

STAGES = (
    "baseline",
    "home_adv",
    "rating",
    "lineup",
    "player_impact",
    "calibrated",
    "final",
)


class ExplainTraceBuilder:
    """Collects stage snapshots and signal tags; build() once all stages are set."""

    def __init__(self) -> None:
        self._snapshots: dict[str, Pct3] = {}
        self._signals: list[str] = []

    def record(self, stage: str, probs: Pct3) -> "ExplainTraceBuilder":
        if stage not in STAGES:
            raise ValueError(f"unknown explain stage: {stage}")
        self._snapshots[stage] = tuple(round(p, 4) for p in probs)
        return self

    def signal(self, tag: Optional[str]) -> "ExplainTraceBuilder":
        if tag:
            self._signals.append(tag)
        return self

    def build(self) -> PredictionExplain:
        # A stage that was not recorded inherits the previous snapshot (zero delta)
        filled: dict[str, Pct3] = {}
        prev: Optional[Pct3] = None
        for stage in STAGES:
            snap = self._snapshots.get(stage, prev)
            if snap is None:
                raise ValueError("explain trace needs a baseline snapshot")
            filled[stage] = snap
            prev = snap

        def pp(stage: str, before: str) -> float:
            return filled[stage][0] - filled[before][0]

        return PredictionExplain(
            p_baseline=filled["baseline"],
            p_home_adv=filled["home_adv"],
            p_rating=filled["rating"],
            p_lineup=filled["lineup"],
            p_player_impact=filled["player_impact"],
            p_calibrated=filled["calibrated"],
            p_final=filled["final"],
            pp_home_adv=pp("home_adv", "baseline"),
            pp_rating=pp("rating", "home_adv"),
            pp_lineup=pp("lineup", "rating"),
            pp_player_impact=pp("player_impact", "lineup"),
            pp_calibration=pp("calibrated", "player_impact"),
            pp_market=pp("final", "calibrated"),
            signals=list(self._signals),
        )


# ═════════════════════════════════════════════════════════════════════════════
# Signal tags (machine-readable, stable format)
# ═════════════════════════════════════════════════════════════════════════════


def home_adv_tag(home_adv_goals: float) -> str:
    return f"HA_{home_adv_goals:+.2f}"


def lineup_tag(home: Optional[TeamStrength], away: Optional[TeamStrength]) -> Optional[str]:
    if home is None and away is None:
        return None
    h = f"{home.resolved}/{STARTING_XI}" if home else "-"
    a = f"{away.resolved}/{STARTING_XI}" if away else "-"
    return f"LINEUP_{h}_{a}"


def rating_tag(s_home: Optional[float], s_away: Optional[float]) -> Optional[str]:
    if s_home is None and s_away is None:
        return None
    h = f"{s_home:+.2f}" if s_home is not None else "-"
    a = f"{s_away:+.2f}" if s_away is not None else "-"
    return f"RATING_H{h}_A{a}"


def discipline_tag(
    home: Optional[DisciplineAggregate],
    away: Optional[DisciplineAggregate],
    multipliers: tuple[float, float],
) -> Optional[str]:
    if home is None or away is None or home.score is None or away.score is None:
        return None
    return (
        f"DISC_H{home.score:.0f}_A{away.score:.0f}"
        f"_COV{home.resolved}/{away.resolved}"
        f"_M{multipliers[0]:.2f}/{multipliers[1]:.2f}"
    )


def player_impact_tag(model_tag: str) -> str:
    return f"PLAYER_IMPACT_{model_tag}"


def market_tag(weight_market: float, bookmakers: int) -> str:
    return f"MARKET_BLEND_{weight_market:.2f}_BK{bookmakers}"
