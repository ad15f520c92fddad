"""
Prediction telemetry.

Provides Prometheus metrics for:
- Predictions by phase and quality tier
- Signals that were unavailable (dropped) during a computation
- Market blend outcomes
- Computation latency
"""

from winprob.telemetry.metrics import (
    winprob_predictions_total,
    winprob_signal_unavailable_total,
    winprob_market_blend_total,
    winprob_compute_latency_ms,
    record_prediction,
    record_signal_unavailable,
    record_market_blend,
)

__all__ = [
    "winprob_predictions_total",
    "winprob_signal_unavailable_total",
    "winprob_market_blend_total",
    "winprob_compute_latency_ms",
    "record_prediction",
    "record_signal_unavailable",
    "record_market_blend",
]
