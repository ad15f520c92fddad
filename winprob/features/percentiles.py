"""
Percentile rank -> directional z-score.

A percentile of 50 is league-average (z=0); 15 percentile points are
treated as one standard deviation. Lower-is-better stats are negated so a
positive z always means "good for the player's team".
"""

from typing import Optional

PERCENTILE_MEAN = 50.0
PERCENTILE_PER_SD = 15.0
Z_CLAMP = 3.0

# Canonical keys where a high percentile is bad
LOWER_IS_BETTER = frozenset({
    "fouls_committed",
    "yellow_cards",
    "red_cards",
    "goals_conceded",
    "goals_conceded_on_pitch",
    "dribbled_past",
    "xg_against",
    "xg_against_on_pitch",
})


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def percentile_to_z(percentile: float, lower_is_better: bool = False) -> float:
    """z = clamp((percentile - 50) / 15, -3, 3), negated for lower-is-better."""
    z = clamp((percentile - PERCENTILE_MEAN) / PERCENTILE_PER_SD, -Z_CLAMP, Z_CLAMP)
    return -z if lower_is_better else z


def stat_z(stat_key: str, percentile: Optional[float]) -> Optional[float]:
    """Directional z for a canonical stat key; None when the percentile is absent."""
    if percentile is None:
        return None
    return percentile_to_z(percentile, stat_key in LOWER_IS_BETTER)
