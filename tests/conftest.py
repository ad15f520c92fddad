"""Shared fixtures for engine and feature tests."""

import pytest

from winprob.config import Settings
from winprob.models import MatchContext, PredictionSnapshot

from builders import AS_OF


@pytest.fixture
def settings():
    """Engine settings independent of the host environment."""
    return Settings(
        _env_file=None,
        MARKET_BLEND_ENABLED=False,
        METRICS_ENABLED=False,
    )


@pytest.fixture
def make_match():
    def _make(**overrides):
        fields = dict(
            match_id="m-1",
            home="ARS",
            away="CHE",
            home_team="Arsenal",
            away_team="Chelsea",
            league_id=47,
            home_team_id=1,
            away_team_id=2,
        )
        fields.update(overrides)
        return MatchContext(**fields)

    return _make


@pytest.fixture
def make_snapshot(make_match):
    def _make(match=None, **kwargs):
        kwargs.setdefault("as_of", AS_OF)
        return PredictionSnapshot(match=match or make_match(), **kwargs)

    return _make
