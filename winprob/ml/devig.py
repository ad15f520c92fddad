"""
No-vig conversion of 1X2 decimal odds.

- devig_proportional: normalize 1/odds to sum to 1 (default).
- devig_power: solve sum((1/o_i)^k) = 1 by bisection; shades favourites
  less than longshots, closer to how books load margin.

Invalid odds (any <= 1.0) return None; callers treat that as "no market".
"""

import math
from typing import Callable, Optional

Probs3 = tuple[float, float, float]

POWER_K_LOW = 0.1
POWER_K_HIGH = 3.0
POWER_ITERATIONS = 60


def _valid(*odds: Optional[float]) -> bool:
    return all(o is not None and math.isfinite(o) and o > 1.0 for o in odds)


def devig_proportional(odds_home: float, odds_draw: float, odds_away: float) -> Optional[Probs3]:
    """(p_home, p_draw, p_away) fractions summing to 1, or None for invalid odds."""
    if not _valid(odds_home, odds_draw, odds_away):
        return None

    implied = (1 / odds_home, 1 / odds_draw, 1 / odds_away)
    total = sum(implied)
    return (implied[0] / total, implied[1] / total, implied[2] / total)


def devig_power(odds_home: float, odds_draw: float, odds_away: float) -> Optional[Probs3]:
    """Power-method no-vig probabilities, or None for invalid odds."""
    if not _valid(odds_home, odds_draw, odds_away):
        return None

    implied = (1 / odds_home, 1 / odds_draw, 1 / odds_away)
    if abs(sum(implied) - 1.0) < 1e-3:
        return devig_proportional(odds_home, odds_draw, odds_away)

    k_low, k_high = POWER_K_LOW, POWER_K_HIGH
    for _ in range(POWER_ITERATIONS):
        k_mid = (k_low + k_high) / 2
        # sum(p^k) decreases in k for p < 1
        if sum(p ** k_mid for p in implied) > 1.0:
            k_low = k_mid
        else:
            k_high = k_mid

    k = (k_low + k_high) / 2
    fair = [p ** k for p in implied]
    total = sum(fair)
    return (fair[0] / total, fair[1] / total, fair[2] / total)


def get_devig_function(method: str = "proportional") -> Callable[[float, float, float], Optional[Probs3]]:
    """'power' selects devig_power; anything else is proportional."""
    if method == "power":
        return devig_power
    return devig_proportional
