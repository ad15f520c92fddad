"""
Probability-space blend with the no-vig market (pre-match only).

Feature-flagged (MARKET_BLEND_ENABLED, default OFF). Applies only when a
snapshot and an as_of time are present, the snapshot is not flagged stale
and no older than the TTL, and all three implied probabilities are known
(derived from decimal odds by no-vig when the feed left them empty).

    p = p_model * w_model + p_market * w_market    (weights renormalized)

Both inputs and the result are percentages summing to 100, residue to draw.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from winprob.ml.devig import get_devig_function
from winprob.ml.scoreline import to_percent
from winprob.models import MarketOddsSnapshot

logger = logging.getLogger(__name__)

Pct3 = tuple[float, float, float]


@dataclass(frozen=True)
class MarketBlendResult:
    probs: Pct3
    applied: bool
    # "applied" | "disabled" | "no_snapshot" | "no_as_of" | "stale"
    # | "expired" | "no_implied" | "zero_weight"
    reason: str
    weight_market: float = 0.0
    bookmakers: int = 0
    market_probs: Optional[Pct3] = None


def market_implied_pct(
    snapshot: MarketOddsSnapshot, devig_method: str = "proportional"
) -> Optional[Pct3]:
    """Market-implied H/D/A renormalized to 100, or None if incomplete."""
    implied = (snapshot.home_implied, snapshot.draw_implied, snapshot.away_implied)
    if all(v is not None and v >= 0 for v in implied) and sum(implied) > 0:
        return to_percent(*implied)

    devig = get_devig_function(devig_method)
    fair = devig(snapshot.home_odds, snapshot.draw_odds, snapshot.away_odds)
    if fair is None:
        return None
    return to_percent(*fair)


def snapshot_age(snapshot: MarketOddsSnapshot, as_of: datetime) -> timedelta:
    fetched_at = snapshot.fetched_at
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=timezone.utc)
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    return as_of - fetched_at


def blend_with_market(
    model_probs: Pct3,
    snapshot: Optional[MarketOddsSnapshot],
    as_of: Optional[datetime],
    enabled: bool = False,
    weight_model: float = 0.65,
    weight_market: float = 0.35,
    ttl_minutes: float = 30.0,
    devig_method: str = "proportional",
) -> MarketBlendResult:
    """Blend model and market probabilities; unchanged model probs when any gate fails."""
    if not enabled:
        return MarketBlendResult(model_probs, False, "disabled")
    if snapshot is None:
        return MarketBlendResult(model_probs, False, "no_snapshot")
    if as_of is None:
        return MarketBlendResult(model_probs, False, "no_as_of")
    if snapshot.stale:
        return MarketBlendResult(model_probs, False, "stale")
    if snapshot_age(snapshot, as_of) > timedelta(minutes=ttl_minutes):
        return MarketBlendResult(model_probs, False, "expired")

    market = market_implied_pct(snapshot, devig_method)
    if market is None:
        return MarketBlendResult(model_probs, False, "no_implied")

    w_model = max(weight_model, 0.0)
    w_market = max(weight_market, 0.0)
    w_total = w_model + w_market
    if w_total <= 0 or w_market <= 0:
        return MarketBlendResult(model_probs, False, "zero_weight", market_probs=market)
    w_model /= w_total
    w_market /= w_total

    blended = to_percent(*(m * w_model + k * w_market for m, k in zip(model_probs, market)))

    logger.info(
        f"[MARKET] Blend applied: w_market={w_market:.2f} books={snapshot.bookmakers_used} "
        f"H {model_probs[0]:.1f}->{blended[0]:.1f}"
    )
    return MarketBlendResult(
        probs=blended,
        applied=True,
        reason="applied",
        weight_market=w_market,
        bookmakers=snapshot.bookmakers_used,
        market_probs=market,
    )
