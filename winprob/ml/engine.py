"""
Win-probability engine.

compute_win_prob() is a pure function of one PredictionSnapshot:

    phase = FINISHED | PREMATCH | LIVE   (decided once)

    FINISHED  -> deterministic 100/0/0, 0/100/0 or 0/0/100
    PREMATCH  -> strengths -> lambdas -> Dixon-Coles scoreline
                 -> calibration -> market blend (flagged) + explain trace
    LIVE      -> strengths -> lambdas -> live adjustment
                 -> independent Poisson on the remaining goals

Missing inputs never raise: every signal degrades to "absent" and the
quality tier reports how much real signal was used.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Optional

from winprob.config import Settings
from winprob.features.discipline import (
    DisciplineAggregate,
    discipline_multipliers,
    team_discipline,
)
from winprob.features.lineup_resolution import pair_lineup_sides
from winprob.features.player_impact import PlayerImpactResult, player_impact_signal
from winprob.features.team_strength import (
    TeamStrength,
    lineup_blend_weight,
    lineup_team_strength,
    team_rating_prior,
)
from winprob.ml.calibration import apply_prematch_calibration, calibration_tag
from winprob.ml.confidence import (
    finished_row,
    live_confidence,
    prematch_confidence,
    quality_tier,
)
from winprob.ml.explain import (
    ExplainTraceBuilder,
    discipline_tag,
    home_adv_tag,
    lineup_tag,
    market_tag,
    player_impact_tag,
    rating_tag,
)
from winprob.ml.lambdas import PrematchLambdas, prematch_lambdas
from winprob.ml.league_params import LeagueParams
from winprob.ml.live import adjust_live
from winprob.ml.market import blend_with_market
from winprob.ml.scoreline import outcome_probs, to_percent
from winprob.models import (
    LineupSide,
    MatchContext,
    MatchPhase,
    ModelQuality,
    PredictionExtras,
    PredictionSnapshot,
    WinProbResult,
    WinProbRow,
)
from winprob.telemetry.metrics import (
    record_market_blend,
    record_prediction,
    record_signal_unavailable,
)

logger = logging.getLogger(__name__)

FINISHED_MINUTE = 90


@dataclass(frozen=True)
class StrengthInputs:
    """Everything both non-finished phases derive from the snapshot."""

    params: LeagueParams
    lineup_home: Optional[TeamStrength]
    lineup_away: Optional[TeamStrength]
    blend_w_lineup: float
    rating_home: Optional[float]
    rating_away: Optional[float]
    discipline_home: Optional[DisciplineAggregate]
    discipline_away: Optional[DisciplineAggregate]
    discipline_mult: tuple[float, float]
    impact: Optional[PlayerImpactResult]

    @property
    def s_rating_home(self) -> float:
        return (1.0 - self.blend_w_lineup) * (self.rating_home or 0.0)

    @property
    def s_rating_away(self) -> float:
        return (1.0 - self.blend_w_lineup) * (self.rating_away or 0.0)

    @property
    def s_home(self) -> float:
        lineup = self.lineup_home.strength if self.lineup_home else 0.0
        return self.s_rating_home + self.blend_w_lineup * lineup

    @property
    def s_away(self) -> float:
        lineup = self.lineup_away.strength if self.lineup_away else 0.0
        return self.s_rating_away + self.blend_w_lineup * lineup

    @property
    def impact_signal(self) -> float:
        return self.impact.signal if self.impact else 0.0

    def full_lambdas(self) -> PrematchLambdas:
        return prematch_lambdas(
            self.params,
            s_home=self.s_home,
            s_away=self.s_away,
            player_impact_signal=self.impact_signal,
            discipline_mult=self.discipline_mult,
        )


def match_phase(match: MatchContext) -> MatchPhase:
    if match.is_live:
        return MatchPhase.LIVE
    if match.minute >= FINISHED_MINUTE:
        return MatchPhase.FINISHED
    return MatchPhase.PREMATCH


def _impact_player_names(
    snapshot: PredictionSnapshot,
    side: Optional[LineupSide],
    strength: Optional[TeamStrength],
    team_id: Optional[int],
) -> list[str]:
    """Starting XI names when the lineup strength is usable, else the squad's profiles."""
    if side is not None and side.starting and strength is not None:
        return [slot.name for slot in side.starting]
    if team_id is None:
        return []
    return [
        snapshot.players[pid].name
        for pid in snapshot.squads.get(team_id, ())
        if pid in snapshot.players
    ]


def gather_strength_inputs(snapshot: PredictionSnapshot, settings: Settings) -> StrengthInputs:
    match = snapshot.match
    params = snapshot.league_params or LeagueParams.defaults(match.league_id)

    home_side, away_side = pair_lineup_sides(match, snapshot.lineups)
    lineup_home = lineup_team_strength(home_side, snapshot.players) if home_side else None
    lineup_away = lineup_team_strength(away_side, snapshot.players) if away_side else None
    w_lineup = lineup_blend_weight(lineup_home, lineup_away)

    rating_home = team_rating_prior(match.home_label, snapshot.team_ratings)
    rating_away = team_rating_prior(match.away_label, snapshot.team_ratings)

    disc_home = team_discipline(home_side, match.home_team_id, snapshot.players, snapshot.squads)
    disc_away = team_discipline(away_side, match.away_team_id, snapshot.players, snapshot.squads)
    disc_mult = discipline_multipliers(disc_home, disc_away)

    impact = player_impact_signal(
        snapshot.registry,
        match.league_id,
        match.home_label,
        _impact_player_names(snapshot, home_side, lineup_home, match.home_team_id),
        match.away_label,
        _impact_player_names(snapshot, away_side, lineup_away, match.away_team_id),
        use_shared_prior=settings.PLAYER_IMPACT_USE_SHARED_PRIOR,
    )

    if settings.METRICS_ENABLED:
        if lineup_home is None:
            record_signal_unavailable("lineup_home")
        if lineup_away is None:
            record_signal_unavailable("lineup_away")
        if rating_home is None and rating_away is None:
            record_signal_unavailable("rating")
        if disc_home is None or disc_away is None:
            record_signal_unavailable("discipline")
        if impact is None:
            record_signal_unavailable("player_impact")

    return StrengthInputs(
        params=params,
        lineup_home=lineup_home,
        lineup_away=lineup_away,
        blend_w_lineup=w_lineup,
        rating_home=rating_home,
        rating_away=rating_away,
        discipline_home=disc_home,
        discipline_away=disc_away,
        discipline_mult=disc_mult,
        impact=impact,
    )


def _scoreline_pct(lams: PrematchLambdas, rho: float) -> tuple[float, float, float]:
    return to_percent(*outcome_probs(0, 0, lams.home, lams.away, rho=rho))


def _compute_prematch(
    snapshot: PredictionSnapshot, inputs: StrengthInputs, settings: Settings
) -> WinProbResult:
    params = inputs.params
    rho = params.dc_rho
    trace = ExplainTraceBuilder()

    baseline = prematch_lambdas(params, include_home_adv=False)
    trace.record("baseline", _scoreline_pct(baseline, rho))

    trace.record("home_adv", _scoreline_pct(prematch_lambdas(params), rho))
    trace.signal(home_adv_tag(params.home_adv_goals))

    rated = prematch_lambdas(params, s_home=inputs.s_rating_home, s_away=inputs.s_rating_away)
    trace.record("rating", _scoreline_pct(rated, rho))
    trace.signal(rating_tag(inputs.rating_home, inputs.rating_away))

    with_lineup = prematch_lambdas(
        params,
        s_home=inputs.s_home,
        s_away=inputs.s_away,
        discipline_mult=inputs.discipline_mult,
    )
    trace.record("lineup", _scoreline_pct(with_lineup, rho))
    trace.signal(lineup_tag(inputs.lineup_home, inputs.lineup_away))
    trace.signal(discipline_tag(inputs.discipline_home, inputs.discipline_away, inputs.discipline_mult))

    lams = inputs.full_lambdas()
    model_fractions = outcome_probs(0, 0, lams.home, lams.away, rho=rho)
    trace.record("player_impact", to_percent(*model_fractions))
    if inputs.impact is not None:
        trace.signal(player_impact_tag(inputs.impact.tag))

    calibrated = to_percent(*apply_prematch_calibration(
        model_fractions, params.prematch_logit_scale, params.prematch_draw_bias
    ))
    trace.record("calibrated", calibrated)
    trace.signal(calibration_tag(params.prematch_logit_scale, params.prematch_draw_bias))

    blend = blend_with_market(
        calibrated,
        snapshot.market_odds,
        snapshot.as_of,
        enabled=settings.MARKET_BLEND_ENABLED,
        weight_model=settings.MARKET_BLEND_WEIGHT_MODEL,
        weight_market=settings.MARKET_BLEND_WEIGHT_MARKET,
        ttl_minutes=settings.MARKET_ODDS_TTL_MINUTES,
        devig_method=settings.MARKET_DEVIG_METHOD,
    )
    if settings.METRICS_ENABLED:
        record_market_blend(blend.reason)
    trace.record("final", blend.probs)
    if blend.applied:
        trace.signal(market_tag(blend.weight_market, blend.bookmakers))

    quality = quality_tier(inputs.blend_w_lineup, used_live_stats=False)
    p_home, p_draw, p_away = blend.probs
    row = WinProbRow(
        p_home=p_home,
        p_draw=p_draw,
        p_away=p_away,
        quality=quality,
        confidence=prematch_confidence(inputs.blend_w_lineup),
    )
    extras = PredictionExtras(
        lambda_home_pre=lams.home,
        lambda_away_pre=lams.away,
        s_home_lineup=inputs.lineup_home.strength if inputs.lineup_home else None,
        s_away_lineup=inputs.lineup_away.strength if inputs.lineup_away else None,
        s_home_rating=inputs.rating_home,
        s_away_rating=inputs.rating_away,
        lineup_coverage_home=inputs.lineup_home.coverage if inputs.lineup_home else None,
        lineup_coverage_away=inputs.lineup_away.coverage if inputs.lineup_away else None,
        blend_w_lineup=inputs.blend_w_lineup,
        player_impact_signal=inputs.impact_signal,
        discipline_multipliers=inputs.discipline_mult,
        market_blend_weight=blend.weight_market,
        explain=trace.build(),
    )
    return WinProbResult(row=row, phase=MatchPhase.PREMATCH, extras=extras)


def _compute_live(match: MatchContext, inputs: StrengthInputs) -> WinProbResult:
    lams = inputs.full_lambdas()
    live = adjust_live(match, lams.home, lams.away)

    p_home, p_draw, p_away = to_percent(*outcome_probs(
        match.score_home, match.score_away, live.lambda_home_rem, live.lambda_away_rem, rho=0.0
    ))
    quality = quality_tier(inputs.blend_w_lineup, live.used_live_stats)
    row = WinProbRow(
        p_home=p_home,
        p_draw=p_draw,
        p_away=p_away,
        quality=quality,
        confidence=live_confidence(live.t, live.xg_present, quality == ModelQuality.TRACK),
    )
    return WinProbResult(row=row, phase=MatchPhase.LIVE)


def compute_win_prob(
    snapshot: PredictionSnapshot, settings: Settings
) -> WinProbResult:
    """
    Compute H/D/A probabilities (percent, summing to 100) for one fixture.

    Args:
        snapshot: immutable inputs assembled by the caller for this recompute
        settings: engine settings owned by the caller

    Returns:
        WinProbResult with the row, the phase, and for pre-match calls the
        explainability extras. delta_home is left at 0 (see apply_delta_home).
    """
    started = time.perf_counter()
    match = snapshot.match
    phase = match_phase(match)

    if phase == MatchPhase.FINISHED:
        result = WinProbResult(
            row=finished_row(match.score_home, match.score_away), phase=phase
        )
    else:
        inputs = gather_strength_inputs(snapshot, settings)
        if phase == MatchPhase.PREMATCH:
            result = _compute_prematch(snapshot, inputs, settings)
        else:
            result = _compute_live(match, inputs)

    row = result.row
    latency_ms = (time.perf_counter() - started) * 1000.0
    logger.debug(
        f"[ENGINE] match={match.match_id} phase={phase.value} "
        f"H/D/A={row.p_home:.1f}/{row.p_draw:.1f}/{row.p_away:.1f} "
        f"quality={row.quality.value} conf={row.confidence} ({latency_ms:.2f}ms)"
    )
    if settings.METRICS_ENABLED:
        record_prediction(phase.value, row.quality.value, latency_ms)
    return result


def apply_delta_home(row: WinProbRow, previous: Optional[WinProbRow]) -> WinProbRow:
    """Set delta_home against the previously stored row for the same match."""
    if previous is None:
        return replace(row, delta_home=0.0)
    return replace(row, delta_home=row.p_home - previous.p_home)
