"""
Scoreline model: truncated Poisson convolution with optional Dixon-Coles
low-score correction.

Each team's remaining goals ~ Poisson(lambda), truncated at MAX_GOALS with
the tail mass folded into the last bucket so every pmf sums to 1.

Dixon-Coles tau on the four low-score cells (pre-match only):
    tau(0,0) = 1 - rho * lh * la
    tau(0,1) = 1 + rho * lh
    tau(1,0) = 1 + rho * la
    tau(1,1) = 1 - rho
each clamped to [0, 2]. Live predictions pass rho=0 (independent Poisson).
"""

import numpy as np

MAX_GOALS = 10


def poisson_pmf(lam: float, max_k: int = MAX_GOALS) -> np.ndarray:
    """Poisson pmf over 0..max_k, residual tail folded into bucket max_k."""
    max_k = max(int(max_k), 0)
    lam = max(float(lam), 0.0)

    out = np.zeros(max_k + 1)
    out[0] = np.exp(-lam)
    for k in range(1, max_k + 1):
        out[k] = out[k - 1] * lam / k

    total = out.sum()
    if total < 1.0:
        out[max_k] += 1.0 - total
    return out


def dixon_coles_tau(lam_home: float, lam_away: float, rho: float) -> np.ndarray:
    """2x2 tau weights for cells (0,0), (0,1), (1,0), (1,1)."""
    tau = np.array([
        [1.0 - rho * lam_home * lam_away, 1.0 + rho * lam_home],
        [1.0 + rho * lam_away, 1.0 - rho],
    ])
    return np.clip(tau, 0.0, 2.0)


def outcome_probs(
    goals_home: int,
    goals_away: int,
    lam_home: float,
    lam_away: float,
    rho: float = 0.0,
    max_goals: int = MAX_GOALS,
) -> tuple[float, float, float]:
    """
    P(home win), P(draw), P(away win) at full time given the current score
    and the remaining expected goals. Fractions summing to 1.
    """
    pmf_h = poisson_pmf(lam_home, max_goals)
    pmf_a = poisson_pmf(lam_away, max_goals)
    joint = np.outer(pmf_h, pmf_a)  # joint[i, j] = P(home scores i more, away j more)

    if rho != 0.0 and max_goals >= 1:
        joint[:2, :2] *= dixon_coles_tau(lam_home, lam_away, rho)

    goals = np.arange(max_goals + 1)
    final_h = goals_home + goals[:, None]
    final_a = goals_away + goals[None, :]

    p_home = float(joint[final_h > final_a].sum())
    p_draw = float(joint[final_h == final_a].sum())
    p_away = float(joint[final_h < final_a].sum())

    total = p_home + p_draw + p_away
    if total <= 0.0:
        return 1 / 3, 1 / 3, 1 / 3
    return p_home / total, p_draw / total, p_away / total


def to_percent(p_home: float, p_draw: float, p_away: float) -> tuple[float, float, float]:
    """
    Scale to percentages summing to exactly 100.

    Any rounding residue goes to the draw (least visually jarring).
    """
    total = max(p_home + p_draw + p_away, 1e-4)
    h = p_home / total * 100.0
    d = p_draw / total * 100.0
    a = p_away / total * 100.0
    d += 100.0 - (h + d + a)
    return h, d, a
