"""
End-to-end tests for compute_win_prob().

Covers the engine-level properties: normalization, finished-match
determinism, lead protection, coverage gating, symmetry, market blend
monotonicity and explainability conservation.
"""

from datetime import timedelta

import pytest
from prometheus_client import REGISTRY

from winprob.features.player_impact import PlayerImpactRegistry
from winprob.ml.engine import apply_delta_home, compute_win_prob, match_phase
from winprob.ml.league_params import LeagueParams
from winprob.models import (
    MarketOddsSnapshot,
    MatchPhase,
    ModelQuality,
    StatRow,
    TeamRating,
    WinProbRow,
)

from builders import AS_OF, build_team


def probs(result):
    row = result.row
    return row.p_home, row.p_draw, row.p_away


def full_lineups(home_pct=50.0, away_pct=50.0, **kwargs):
    home, home_players = build_team("Arsenal", 100, percentile=home_pct, **kwargs)
    away, away_players = build_team("Chelsea", 200, percentile=away_pct, **kwargs)
    return (home, away), {**home_players, **away_players}


def impact_registry(entries):
    return PlayerImpactRegistry.from_document({
        "version": 1,
        "generated_at": "2026-01-05T08:00:00Z",
        "leagues": [{"league_id": 47, "k_player_impact": 0.5, "entries": entries}],
    })


def impact_entry(team, player_norm, prior):
    return {"team_norm": team, "player_norm": player_norm,
            "prior": prior, "samples": 20, "minutes": 1800.0}


def market(home_implied, **overrides):
    fields = dict(
        fetched_at=AS_OF - timedelta(minutes=5),
        bookmakers_used=5,
        home_implied=home_implied,
        draw_implied=(100.0 - home_implied) / 2,
        away_implied=(100.0 - home_implied) / 2,
    )
    fields.update(overrides)
    return MarketOddsSnapshot(**fields)


class TestPhase:

    def test_phase_decision(self, make_match):
        assert match_phase(make_match()) == MatchPhase.PREMATCH
        assert match_phase(make_match(is_live=True, minute=95)) == MatchPhase.LIVE
        assert match_phase(make_match(minute=90)) == MatchPhase.FINISHED


class TestSettingsArgument:

    def test_settings_are_required(self, make_snapshot):
        with pytest.raises(TypeError):
            compute_win_prob(make_snapshot())


class TestNormalization:

    @pytest.mark.parametrize("overrides", [
        {},
        {"is_live": True, "minute": 1},
        {"is_live": True, "minute": 60, "score_home": 0, "score_away": 3},
        {"is_live": True, "minute": 89, "score_home": 4, "score_away": 4},
        {"is_live": True, "minute": 30, "stats": (StatRow("xG", "2.1", "0.1"),)},
    ])
    def test_probabilities_sum_to_100(self, make_match, make_snapshot, settings, overrides):
        result = compute_win_prob(make_snapshot(make_match(**overrides)), settings)
        assert sum(probs(result)) == pytest.approx(100.0, abs=0.01)
        assert all(p >= 0.0 for p in probs(result))


class TestFinishedMatch:

    @pytest.mark.parametrize("score,expected", [
        ((2, 0), (100.0, 0.0, 0.0)),
        ((1, 3), (0.0, 0.0, 100.0)),
        ((2, 2), (0.0, 100.0, 0.0)),
    ])
    def test_deterministic(self, make_match, make_snapshot, settings, score, expected):
        match = make_match(minute=93, score_home=score[0], score_away=score[1])
        result = compute_win_prob(make_snapshot(match), settings)
        assert probs(result) == expected
        assert result.row.confidence == 95
        assert result.row.quality == ModelQuality.BASIC
        assert result.phase == MatchPhase.FINISHED
        assert result.extras is None


class TestLive:

    def test_lead_protection(self, make_match, make_snapshot, settings):
        match = make_match(is_live=True, minute=80, score_home=2, score_away=0)
        result = compute_win_prob(make_snapshot(match), settings)
        assert result.row.p_home > 95.0
        assert result.phase == MatchPhase.LIVE
        assert result.extras is None

    def test_live_stats_give_event_quality(self, make_match, make_snapshot, settings):
        match = make_match(is_live=True, minute=30, stats=(StatRow("Shots on target", "4", "1"),))
        result = compute_win_prob(make_snapshot(match), settings)
        assert result.row.quality == ModelQuality.EVENT

    def test_track_quality_with_lineups(self, make_match, make_snapshot, settings):
        lineups, players = full_lineups()
        match = make_match(is_live=True, minute=30)
        result = compute_win_prob(make_snapshot(match, lineups=lineups, players=players), settings)
        assert result.row.quality == ModelQuality.TRACK
        # 30 + 50t + 10 (track)
        assert result.row.confidence == round(30 + 50 * 30 / 90 + 10)


class TestPrematch:

    def test_no_data_is_basic(self, make_snapshot, settings):
        result = compute_win_prob(make_snapshot(), settings)
        assert result.row.quality == ModelQuality.BASIC
        assert result.row.confidence == 35
        assert result.row.p_home > result.row.p_away  # home advantage

    def test_full_lineups_are_track(self, make_snapshot, settings):
        lineups, players = full_lineups()
        result = compute_win_prob(make_snapshot(lineups=lineups, players=players), settings)
        assert result.row.quality == ModelQuality.TRACK
        assert result.row.confidence == 95
        assert result.extras.blend_w_lineup == pytest.approx(1.0)
        assert "LINEUP_11/11_11/11" in result.extras.explain.signals

    def test_stronger_home_lineup_raises_home(self, make_snapshot, settings):
        neutral = compute_win_prob(make_snapshot(), settings)
        lineups, players = full_lineups(home_pct=80.0, away_pct=35.0)
        strong = compute_win_prob(make_snapshot(lineups=lineups, players=players), settings)
        assert strong.row.p_home > neutral.row.p_home

    def test_coverage_gating(self, make_snapshot, settings):
        """Two resolvable starters change nothing versus no lineup data."""
        home, home_players = build_team("Arsenal", 100, percentile=90.0, resolved=2)
        away, away_players = build_team("Chelsea", 200, percentile=20.0, resolved=2)
        gated = compute_win_prob(
            make_snapshot(lineups=(home, away), players={**home_players, **away_players}),
            settings,
        )
        bare = compute_win_prob(make_snapshot(), settings)
        assert gated.row.quality != ModelQuality.TRACK
        assert gated.row.p_home == pytest.approx(bare.row.p_home, abs=0.001)

    def test_coverage_gating_with_registry(self, make_snapshot, settings):
        """Unusable lineups do not feed player impact either."""
        home, home_players = build_team("Arsenal", 100, percentile=90.0, resolved=2)
        away, away_players = build_team("Chelsea", 200, percentile=20.0, resolved=2)
        registry = impact_registry(
            [impact_entry("arsenal", f"arsenal_player_{i}", 0.6) for i in range(1, 12)]
            + [impact_entry("chelsea", f"chelsea_player_{i}", 0.0) for i in range(1, 12)]
        )
        common = dict(
            players={**home_players, **away_players},
            squads={1: (100, 101), 2: (200, 201)},
            registry=registry,
        )
        gated = compute_win_prob(make_snapshot(lineups=(home, away), **common), settings)
        bare = compute_win_prob(make_snapshot(**common), settings)
        assert gated.extras.player_impact_signal == pytest.approx(
            bare.extras.player_impact_signal
        )
        assert gated.row.p_home == pytest.approx(bare.row.p_home, abs=0.001)

    def test_single_lineup_side_is_not_used_twice(self, make_snapshot, settings):
        away, away_players = build_team("Chelsea", 200)
        result = compute_win_prob(make_snapshot(lineups=(away,), players=away_players), settings)
        assert result.row.quality != ModelQuality.TRACK
        assert result.extras.s_home_lineup is None
        assert "LINEUP_-_11/11" in result.extras.explain.signals

    @pytest.mark.parametrize("rho", [0.0, -0.10, -0.25])
    def test_symmetry(self, make_snapshot, settings, rho):
        lineups, players = full_lineups(home_pct=70.0, away_pct=70.0)
        params = LeagueParams(league_id=47, home_adv_goals=0.0, dc_rho=rho)
        result = compute_win_prob(
            make_snapshot(lineups=lineups, players=players, league_params=params), settings
        )
        assert result.row.p_home == pytest.approx(result.row.p_away, abs=0.01)

    def test_rating_prior(self, make_snapshot, settings):
        ratings = (
            TeamRating("Arsenal", fifa_points=1900),
            TeamRating("Chelsea", fifa_points=1500),
        )
        bare = compute_win_prob(make_snapshot(), settings)
        rated = compute_win_prob(make_snapshot(team_ratings=ratings), settings)
        assert rated.row.p_home > bare.row.p_home
        assert rated.extras.s_home_rating == pytest.approx(0.75)
        assert "RATING_H+0.75_A-0.25" in rated.extras.explain.signals
        assert rated.extras.explain.pp_rating > 0

    def test_discipline_boosts_opponent_of_undisciplined(self, make_snapshot, settings):
        home, home_players = build_team("Arsenal", 100, discipline=80.0)
        away, away_players = build_team("Chelsea", 200, discipline=30.0)
        result = compute_win_prob(
            make_snapshot(lineups=(home, away), players={**home_players, **away_players}),
            settings,
        )
        mult_home, mult_away = result.extras.discipline_multipliers
        assert mult_home == 1.0
        assert mult_away == pytest.approx(1.04)
        assert "DISC_H80_A30_COV11/11_M1.00/1.04" in result.extras.explain.signals

    def test_player_impact_from_squads(self, make_snapshot, settings):
        registry = impact_registry([
            impact_entry("arsenal", "arsenal_player_1", 0.6),
            impact_entry("chelsea", "chelsea_player_1", 0.0),
        ])
        _, home_players = build_team("Arsenal", 100, resolved=1)
        _, away_players = build_team("Chelsea", 200, resolved=1)
        bare = compute_win_prob(make_snapshot(), settings)
        result = compute_win_prob(
            make_snapshot(
                players={**home_players, **away_players},
                squads={1: (100,), 2: (200,)},
                registry=registry,
            ),
            settings,
        )
        assert result.extras.player_impact_signal == pytest.approx(0.3)
        assert result.row.p_home > bare.row.p_home
        assert "PLAYER_IMPACT_V1_1_+0.50" in result.extras.explain.signals

    def test_calibration_applied(self, make_snapshot, settings):
        params = LeagueParams(league_id=47, prematch_draw_bias=0.3)
        bare = compute_win_prob(make_snapshot(), settings)
        result = compute_win_prob(make_snapshot(league_params=params), settings)
        assert result.row.p_draw > bare.row.p_draw
        assert "CAL_S1.00_D+0.30" in result.extras.explain.signals


class TestMarketBlend:

    def test_market_above_model_increases_home(self, make_snapshot, settings):
        enabled = settings.model_copy(update={"MARKET_BLEND_ENABLED": True})
        model_only = compute_win_prob(make_snapshot(), settings)
        blended = compute_win_prob(make_snapshot(market_odds=market(75.0)), enabled)
        assert blended.row.p_home > model_only.row.p_home
        assert blended.extras.market_blend_weight == pytest.approx(0.35)
        assert "MARKET_BLEND_0.35_BK5" in blended.extras.explain.signals

    def test_disabled_is_unchanged(self, make_snapshot, settings):
        model_only = compute_win_prob(make_snapshot(), settings)
        result = compute_win_prob(make_snapshot(market_odds=market(75.0)), settings)
        assert result.row.p_home == pytest.approx(model_only.row.p_home, abs=0.01)
        assert result.extras.market_blend_weight == 0.0

    def test_stale_is_unchanged(self, make_snapshot, settings):
        enabled = settings.model_copy(update={"MARKET_BLEND_ENABLED": True})
        model_only = compute_win_prob(make_snapshot(), settings)
        stale = compute_win_prob(make_snapshot(market_odds=market(75.0, stale=True)), enabled)
        expired = compute_win_prob(
            make_snapshot(market_odds=market(75.0, fetched_at=AS_OF - timedelta(hours=2))),
            enabled,
        )
        assert stale.row.p_home == pytest.approx(model_only.row.p_home, abs=0.01)
        assert expired.row.p_home == pytest.approx(model_only.row.p_home, abs=0.01)

    def test_missing_as_of_skips_blend(self, make_snapshot, settings):
        enabled = settings.model_copy(update={"MARKET_BLEND_ENABLED": True})
        model_only = compute_win_prob(make_snapshot(), settings)
        result = compute_win_prob(
            make_snapshot(market_odds=market(75.0), as_of=None), enabled
        )
        assert result.row.p_home == pytest.approx(model_only.row.p_home, abs=0.01)
        assert result.extras.market_blend_weight == 0.0

    def test_live_never_blends(self, make_match, make_snapshot, settings):
        enabled = settings.model_copy(update={"MARKET_BLEND_ENABLED": True})
        match = make_match(is_live=True, minute=20)
        plain = compute_win_prob(make_snapshot(match), enabled)
        with_market = compute_win_prob(make_snapshot(match, market_odds=market(90.0)), enabled)
        assert with_market.row.p_home == pytest.approx(plain.row.p_home)


class TestExplainConservation:

    def test_deltas_reconstruct_final(self, make_snapshot, settings):
        enabled = settings.model_copy(update={"MARKET_BLEND_ENABLED": True})
        home, home_players = build_team("Arsenal", 100, percentile=75.0, discipline=70.0)
        away, away_players = build_team("Chelsea", 200, percentile=45.0, discipline=40.0, resolved=8)
        snapshot = make_snapshot(
            lineups=(home, away),
            players={**home_players, **away_players},
            team_ratings=(TeamRating("Arsenal", fifa_rank=5), TeamRating("Chelsea", fifa_rank=30)),
            league_params=LeagueParams(
                league_id=47, home_adv_goals=0.3, prematch_logit_scale=1.1, prematch_draw_bias=0.05
            ),
            market_odds=market(40.0),
        )
        result = compute_win_prob(snapshot, enabled)
        explain = result.extras.explain

        assert explain.p_final[0] == pytest.approx(result.row.p_home, abs=1e-3)
        assert explain.pp_total == pytest.approx(
            explain.p_final[0] - explain.p_baseline[0], abs=0.05
        )
        assert explain.pp_home_adv > 0
        assert explain.pp_lineup > 0
        assert explain.pp_market < 0
        assert explain.signals[0] == "HA_+0.30"
        assert "LINEUP_11/11_8/11" in explain.signals

    def test_baseline_is_neutral(self, make_snapshot, settings):
        result = compute_win_prob(make_snapshot(), settings)
        baseline = result.extras.explain.p_baseline
        assert baseline[0] == pytest.approx(baseline[2], abs=1e-3)


class TestDeltaHome:

    def test_against_previous(self):
        previous = WinProbRow(p_home=40.0, p_draw=30.0, p_away=30.0)
        row = WinProbRow(p_home=46.5, p_draw=27.0, p_away=26.5)
        assert apply_delta_home(row, previous).delta_home == pytest.approx(6.5)

    def test_first_row(self):
        row = WinProbRow(p_home=46.5, p_draw=27.0, p_away=26.5, delta_home=3.0)
        assert apply_delta_home(row, None).delta_home == 0.0


class TestMetrics:

    def test_prediction_counted(self, make_match, make_snapshot, settings):
        enabled = settings.model_copy(update={"METRICS_ENABLED": True})
        labels = {"phase": "finished", "quality": "Basic"}
        before = REGISTRY.get_sample_value("winprob_predictions_total", labels) or 0.0
        compute_win_prob(make_snapshot(make_match(minute=90, score_home=1)), enabled)
        after = REGISTRY.get_sample_value("winprob_predictions_total", labels)
        assert after == before + 1

    def test_dropped_signals_counted(self, make_snapshot, settings):
        enabled = settings.model_copy(update={"METRICS_ENABLED": True})
        labels = {"signal": "player_impact"}
        before = REGISTRY.get_sample_value("winprob_signal_unavailable_total", labels) or 0.0
        compute_win_prob(make_snapshot(), enabled)
        after = REGISTRY.get_sample_value("winprob_signal_unavailable_total", labels)
        assert after == before + 1
