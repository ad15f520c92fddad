"""Tests for the in-play lambda adjustment."""

import pytest

from winprob.ml.live import (
    LAMBDA_REM_MAX,
    LAMBDA_REM_MIN,
    adjust_live,
    count_red_cards,
    estimate_total_minutes,
    red_card_multipliers,
)
from winprob.models import EventKind, MatchEvent, StatRow

LH, LA = 1.45, 1.15


def card(minute, team, description="Red card"):
    return MatchEvent(minute=minute, kind=EventKind.CARD, team=team, description=description)


class TestStoppageEstimate:

    def test_not_live_is_regulation(self, make_match):
        assert estimate_total_minutes(make_match(is_live=False)) == 90.0

    def test_counts_late_events_only(self, make_match):
        events = (
            MatchEvent(30, EventKind.GOAL, "Arsenal"),
            MatchEvent(61, EventKind.SUB, "Arsenal"),
            MatchEvent(70, EventKind.CARD, "Chelsea", "Yellow card"),
            MatchEvent(75, EventKind.SHOT, "Chelsea"),
        )
        match = make_match(is_live=True, minute=80, events=events)
        assert estimate_total_minutes(match) == 92.0

    def test_capped_at_seven(self, make_match):
        events = tuple(MatchEvent(60 + i, EventKind.SUB, "Arsenal") for i in range(12))
        match = make_match(is_live=True, minute=85, events=events)
        assert estimate_total_minutes(match) == 97.0


class TestRedCards:

    def test_counts_by_team(self, make_match):
        match = make_match(is_live=True, minute=50, events=(
            card(20, "Arsenal"),
            card(40, "Chelsea", "Second yellow - red card"),
            card(45, "Chelsea", "Yellow card"),
        ))
        assert count_red_cards(match) == (1, 1)

    def test_rescinded_ignored(self, make_match):
        match = make_match(is_live=True, minute=50, events=(
            card(20, "ARS", "Red card (overturned by VAR)"),
        ))
        assert count_red_cards(match) == (0, 0)

    def test_short_label_matches(self, make_match):
        match = make_match(is_live=True, minute=50, events=(card(20, "CHE"),))
        assert count_red_cards(match) == (0, 1)

    @pytest.mark.parametrize("n,penalty,boost", [
        (0, 1.0, 1.0),
        (1, 0.80, 1.10),
        (2, 0.64, 1.21),
        (3, 0.55, 1.331),
        (4, 0.55, 1.35),
    ])
    def test_multipliers(self, n, penalty, boost):
        p, b = red_card_multipliers(n)
        assert p == pytest.approx(penalty)
        assert b == pytest.approx(boost)


class TestAdjustLive:

    def test_remaining_fraction_without_stats(self, make_match):
        match = make_match(is_live=True, minute=45)
        result = adjust_live(match, LH, LA)
        assert result.lambda_home_rem == pytest.approx(LH * 0.5)
        assert result.lambda_away_rem == pytest.approx(LA * 0.5)
        assert result.t == pytest.approx(0.5)
        assert not result.used_live_stats
        assert not result.xg_present

    def test_minute_clamped_to_one(self, make_match):
        result = adjust_live(make_match(is_live=True, minute=0), LH, LA)
        assert result.t == pytest.approx(1 / 90)

    def test_xg_over_expectation_raises_lambda(self, make_match):
        stats = (StatRow("Expected goals (xG)", "1.80", "0.20"),)
        base = adjust_live(make_match(is_live=True, minute=45), LH, LA)
        with_xg = adjust_live(make_match(is_live=True, minute=45, stats=stats), LH, LA)
        assert with_xg.xg_present
        assert with_xg.used_live_stats
        assert with_xg.lambda_home_rem > base.lambda_home_rem
        assert with_xg.lambda_away_rem < base.lambda_away_rem

    def test_shots_on_target_nudge(self, make_match):
        stats = (StatRow("Shots on target", "6", "1"),)
        result = adjust_live(make_match(is_live=True, minute=45, stats=stats), LH, LA)
        assert result.used_live_stats
        assert not result.xg_present
        # b = 0.5 -> x0.5 remaining; then shots +/-12.5%, then no weak signals
        assert result.lambda_home_rem == pytest.approx(LH * 0.5 * 1.125)
        assert result.lambda_away_rem == pytest.approx(LA * 0.5 * 0.875)

    def test_weak_signal_bounded(self, make_match):
        stats = (StatRow("Big chances", "20", "0"),)
        result = adjust_live(make_match(is_live=True, minute=45, stats=stats), LH, LA)
        assert result.lambda_home_rem == pytest.approx(LH * 0.5 * 1.15)
        assert result.lambda_away_rem == pytest.approx(LA * 0.5 * 0.85)

    def test_weak_signals_ignored_with_xg(self, make_match):
        xg = StatRow("xG", "0.7", "0.6")
        plain = adjust_live(make_match(is_live=True, minute=45, stats=(xg,)), LH, LA)
        noisy = adjust_live(
            make_match(is_live=True, minute=45, stats=(xg, StatRow("Ball possession", "70%", "30%"))),
            LH, LA,
        )
        assert noisy.lambda_home_rem == pytest.approx(plain.lambda_home_rem)

    def test_red_card_shifts_lambdas(self, make_match):
        match = make_match(is_live=True, minute=45, events=(card(30, "Arsenal"),))
        result = adjust_live(match, LH, LA)
        assert result.red_home == 1
        assert result.lambda_home_rem == pytest.approx(LH * 0.5 * 0.80)
        assert result.lambda_away_rem == pytest.approx(LA * 0.5 * 1.10)

    def test_lead_protection(self, make_match):
        level = adjust_live(make_match(is_live=True, minute=80, score_home=1, score_away=1), LH, LA)
        ahead = adjust_live(make_match(is_live=True, minute=80, score_home=2, score_away=0), LH, LA)
        assert ahead.lambda_home_rem == pytest.approx(max(level.lambda_home_rem * 0.9, LAMBDA_REM_MIN))

    def test_bounds(self, make_match):
        stats = (StatRow("xG", "9.0", "0.0"),)
        result = adjust_live(make_match(is_live=True, minute=10, stats=stats), 3.8, 0.2)
        assert LAMBDA_REM_MIN <= result.lambda_home_rem <= LAMBDA_REM_MAX
        assert LAMBDA_REM_MIN <= result.lambda_away_rem <= LAMBDA_REM_MAX
