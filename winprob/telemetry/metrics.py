"""
Prometheus metrics for the win-probability engine.

Best-effort: recording never raises into the prediction path.

Labels are LOW-CARDINALITY only:
- phase:    "prematch", "live", "finished"
- quality:  "Basic", "Event", "Track"
- signal:   "lineup_home", "lineup_away", "rating", "discipline",
            "player_impact"
- outcome:  "applied", "disabled", "no_snapshot", "no_as_of", "stale",
            "expired", "no_implied", "zero_weight"

Match ids, team names and player names are NEVER labels; use logs.
"""

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)

winprob_predictions_total = Counter(
    "winprob_predictions_total",
    "Total win-probability computations",
    ["phase", "quality"],
)

winprob_signal_unavailable_total = Counter(
    "winprob_signal_unavailable_total",
    "Signals dropped because inputs were absent or below coverage",
    ["signal"],
)

winprob_market_blend_total = Counter(
    "winprob_market_blend_total",
    "Market blend attempts by outcome",
    ["outcome"],
)

winprob_compute_latency_ms = Histogram(
    "winprob_compute_latency_ms",
    "compute_win_prob latency in milliseconds",
    ["phase"],
    buckets=[0.5, 1, 2.5, 5, 10, 25, 50, 100, 250],
)


def record_prediction(phase: str, quality: str, latency_ms: float) -> None:
    """Record one finished computation."""
    try:
        winprob_predictions_total.labels(phase=phase, quality=quality).inc()
        winprob_compute_latency_ms.labels(phase=phase).observe(latency_ms)
    except Exception as e:
        logger.warning(f"Failed to record prediction metric: {e}")


def record_signal_unavailable(signal: str) -> None:
    try:
        winprob_signal_unavailable_total.labels(signal=signal).inc()
    except Exception as e:
        logger.warning(f"Failed to record signal metric: {e}")


def record_market_blend(outcome: str) -> None:
    try:
        winprob_market_blend_total.labels(outcome=outcome).inc()
    except Exception as e:
        logger.warning(f"Failed to record market blend metric: {e}")
