"""
Pre-match calibration fitted per league by the backtest tool.

    logits = log(p)
    logits *= prematch_logit_scale      (scale > 1 sharpens, < 1 flattens)
    logits[draw] += prematch_draw_bias
    p' = softmax(logits)

scale=1, bias=0 is the identity.
"""

import numpy as np

PROB_FLOOR = 1e-10


def apply_prematch_calibration(
    probs: tuple[float, float, float],
    logit_scale: float = 1.0,
    draw_bias: float = 0.0,
) -> tuple[float, float, float]:
    """Calibrate H/D/A fractions. Returns fractions summing to 1."""
    if logit_scale == 1.0 and draw_bias == 0.0:
        return probs

    p = np.maximum(np.asarray(probs, dtype=float), PROB_FLOOR)
    logits = np.log(p / p.sum()) * logit_scale
    logits[1] += draw_bias

    # Softmax (with numerical stability)
    logits -= logits.max()
    exp_logits = np.exp(logits)
    out = exp_logits / exp_logits.sum()
    return float(out[0]), float(out[1]), float(out[2])


def calibration_tag(logit_scale: float, draw_bias: float) -> str:
    return f"CAL_S{logit_scale:.2f}_D{draw_bias:+.2f}"
