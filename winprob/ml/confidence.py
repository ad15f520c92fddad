"""
Quality tier and confidence score.

Quality
    Track  - lineup-based team strength used with blend weight > 0.10
    Event  - no usable lineup, but a live statistical signal was applied
    Basic  - neither

Confidence (0-100)
    live:      clamp(30 + 50t + 10[xG present] + 10[track], 5, 95)
    pre-match: clamp(35 + 60 * w_lineup, 5, 95)
    finished:  95
"""

from winprob.features.percentiles import clamp
from winprob.models import ModelQuality, WinProbRow

TRACK_MIN_BLEND_WEIGHT = 0.10
FINISHED_CONFIDENCE = 95


def quality_tier(blend_w_lineup: float, used_live_stats: bool) -> ModelQuality:
    if blend_w_lineup > TRACK_MIN_BLEND_WEIGHT:
        return ModelQuality.TRACK
    if used_live_stats:
        return ModelQuality.EVENT
    return ModelQuality.BASIC


def live_confidence(t: float, xg_present: bool, track: bool) -> int:
    score = 30.0 + 50.0 * t
    if xg_present:
        score += 10.0
    if track:
        score += 10.0
    return int(round(clamp(score, 5.0, 95.0)))


def prematch_confidence(blend_w_lineup: float) -> int:
    return int(round(clamp(35.0 + 60.0 * blend_w_lineup, 5.0, 95.0)))


def finished_row(score_home: int, score_away: int) -> WinProbRow:
    """Deterministic result row for a finished match."""
    if score_home > score_away:
        probs = (100.0, 0.0, 0.0)
    elif score_home < score_away:
        probs = (0.0, 0.0, 100.0)
    else:
        probs = (0.0, 100.0, 0.0)
    return WinProbRow(
        p_home=probs[0],
        p_draw=probs[1],
        p_away=probs[2],
        delta_home=0.0,
        quality=ModelQuality.BASIC,
        confidence=FINISHED_CONFIDENCE,
    )
