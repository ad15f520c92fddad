"""
Player-impact registry: externally fitted per-player priors by league.

The offline fitting tool writes a versioned JSON artifact:

    {
      "version": 1,
      "generated_at": "...",
      "leagues": [
        {"league_id": 47, "k_player_impact": 0.4, "min_player_samples": 8,
         "model_v2": {"feature_names": [...7], "feature_means": [...7],
                      "feature_stds": [...7], "coeffs": [...7], ...},
         "entries": [{"team_norm": "arsenal", "player_norm": "bukayo_saka",
                      "prior": 0.21, "samples": 30, "minutes": 2400.0, ...}]}
      ],
      "shared_prior": {...same shape as a league...}
    }

Loading (from_document) happens on the caller side and may raise
RegistryLoadError. Lookups used by the engine never raise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field, ValidationError

from winprob.etl.name_normalization import normalize_registry_name, registry_key
from winprob.features.percentiles import clamp

logger = logging.getLogger(__name__)

PLAYER_IMPACT_FEATURE_NAMES = (
    "impact_diff",
    "rating_diff",
    "shots_on_target_diff",
    "key_passes_diff",
    "tackles_interceptions_diff",
    "duel_win_rate_diff",
    "cards_diff",
)

SIGNAL_CLAMP = 1.5
MINUTES_FULL_WEIGHT = 900.0


class RegistryLoadError(ValueError):
    """Player-impact artifact could not be parsed or validated."""


# ═════════════════════════════════════════════════════════════════════════════
# Artifact schema
# ═════════════════════════════════════════════════════════════════════════════


class PlayerImpactEntry(BaseModel):
    team_norm: str
    player_norm: str
    prior: float
    samples: int = 0
    minutes: float = 0.0
    rating: float = 0.0
    shots_on_target: float = 0.0
    key_passes: float = 0.0
    tackles_interceptions: float = 0.0
    duel_win_rate: float = 0.0
    cards: float = 0.0


class PlayerImpactLinearModel(BaseModel):
    feature_names: list[str] = Field(default_factory=list)
    feature_means: list[float] = Field(default_factory=list)
    feature_stds: list[float] = Field(default_factory=list)
    coeffs: list[float] = Field(default_factory=list)
    recency_half_life_days: float = 0.0
    l2: float = 0.0
    # Fit diagnostics (informational)
    train_log_loss: float = 0.0
    val_log_loss: float = 0.0
    baseline_val_log_loss: float = 0.0
    train_samples: int = 0
    val_samples: int = 0


class LeaguePlayerImpactArtifact(BaseModel):
    league_id: int
    k_player_impact: float = 0.0
    min_player_samples: int = 1
    model_v2: Optional[PlayerImpactLinearModel] = None
    entries: list[PlayerImpactEntry] = Field(default_factory=list)


class PlayerImpactRegistryArtifact(BaseModel):
    version: int
    generated_at: str
    source: Optional[str] = None
    leagues: list[LeaguePlayerImpactArtifact] = Field(default_factory=list)
    shared_prior: Optional[LeaguePlayerImpactArtifact] = None


# ═════════════════════════════════════════════════════════════════════════════
# Runtime model
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TeamImpactFeatures:
    impact: float
    rating: float
    shots_on_target: float
    key_passes: float
    tackles_interceptions: float
    duel_win_rate: float
    cards: float
    coverage: float  # matched / named players
    matched: int

    def as_vector(self) -> tuple[float, ...]:
        return (
            self.impact,
            self.rating,
            self.shots_on_target,
            self.key_passes,
            self.tackles_interceptions,
            self.duel_win_rate,
            self.cards,
        )


class LeaguePlayerImpactModel:
    """Entries of one league indexed by 'team_norm|player_norm'."""

    def __init__(self, artifact: LeaguePlayerImpactArtifact):
        self.artifact = artifact
        self._by_key = {
            registry_key(e.team_norm, e.player_norm): e for e in artifact.entries
        }

    @property
    def league_id(self) -> int:
        return self.artifact.league_id

    @property
    def linear_model(self) -> Optional[PlayerImpactLinearModel]:
        model = self.artifact.model_v2
        if model is None or not model.coeffs:
            return None
        return model

    def entry_weight(self, entry: PlayerImpactEntry) -> float:
        """Sample-count shrinkage x minutes share."""
        n = max(entry.samples, 1)
        w_samples = clamp(n / max(self.artifact.min_player_samples, 1), 0.2, 1.0)
        w_minutes = clamp(entry.minutes / MINUTES_FULL_WEIGHT, 0.4, 1.0)
        return w_samples * w_minutes

    def team_features(
        self, team_name: str, player_names: Iterable[str]
    ) -> Optional[TeamImpactFeatures]:
        """Weighted team feature vector; None unless some matched weight > 0."""
        team_norm = normalize_registry_name(team_name)
        if not team_norm:
            return None

        total_w = 0.0
        sums = [0.0] * len(PLAYER_IMPACT_FEATURE_NAMES)
        seen = 0
        matched = 0

        for name in player_names:
            player_norm = normalize_registry_name(name)
            if not player_norm:
                continue
            seen += 1
            entry = self._by_key.get(registry_key(team_norm, player_norm))
            if entry is None:
                continue
            w = self.entry_weight(entry)
            total_w += w
            for idx, value in enumerate((
                entry.prior,
                entry.rating,
                entry.shots_on_target,
                entry.key_passes,
                entry.tackles_interceptions,
                entry.duel_win_rate,
                entry.cards,
            )):
                sums[idx] += value * w
            matched += 1

        if seen == 0 or matched == 0 or total_w <= 0:
            return None

        means = [s / total_w for s in sums]
        return TeamImpactFeatures(*means, coverage=matched / seen, matched=matched)

    def impact_signal(self, home: TeamImpactFeatures, away: TeamImpactFeatures) -> float:
        """Scalar home-minus-away impact signal in [-1.5, 1.5]."""
        model = self.linear_model
        if model is not None:
            diffs = [h - a for h, a in zip(home.as_vector(), away.as_vector())]
            total = 0.0
            for idx, coeff in enumerate(model.coeffs[: len(diffs)]):
                mean = model.feature_means[idx] if idx < len(model.feature_means) else 0.0
                std = model.feature_stds[idx] if idx < len(model.feature_stds) else 1.0
                total += coeff * (diffs[idx] - mean) / max(std, 1e-6)
            return clamp(total, -SIGNAL_CLAMP, SIGNAL_CLAMP)

        return clamp(
            self.artifact.k_player_impact * (home.impact - away.impact),
            -SIGNAL_CLAMP,
            SIGNAL_CLAMP,
        )

    def debug_tag(self) -> str:
        """'V2_<n coeffs>_<first coeff>' or 'V1_1_<k>'."""
        model = self.linear_model
        if model is not None:
            return f"V2_{len(model.coeffs)}_{model.coeffs[0]:+.2f}"
        return f"V1_1_{self.artifact.k_player_impact:+.2f}"


class PlayerImpactRegistry:
    """Read-only registry of per-league impact models."""

    def __init__(self, artifact: PlayerImpactRegistryArtifact):
        self.version = artifact.version
        self.generated_at = artifact.generated_at
        self._leagues = {
            league.league_id: LeaguePlayerImpactModel(league) for league in artifact.leagues
        }
        self._shared_prior = (
            LeaguePlayerImpactModel(artifact.shared_prior)
            if artifact.shared_prior is not None
            else None
        )

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "PlayerImpactRegistry":
        """Build from an already-parsed JSON document.

        Raises:
            RegistryLoadError: if the document does not match the artifact schema
        """
        try:
            artifact = PlayerImpactRegistryArtifact.model_validate(document)
        except ValidationError as e:
            logger.warning(f"[IMPACT] Invalid player impact artifact: {e.error_count()} errors")
            raise RegistryLoadError(f"invalid player impact artifact: {e}") from e

        registry = cls(artifact)
        logger.info(
            f"[IMPACT] Registry v{artifact.version} loaded: {len(registry._leagues)} leagues, "
            f"shared_prior={'yes' if registry._shared_prior else 'no'}"
        )
        return registry

    def model_for_league(
        self, league_id: Optional[int], use_shared_prior: bool = True
    ) -> Optional[LeaguePlayerImpactModel]:
        if league_id is None:
            return None
        model = self._leagues.get(league_id)
        if model is not None:
            return model
        return self._shared_prior if use_shared_prior else None


@dataclass(frozen=True)
class PlayerImpactResult:
    signal: float
    home: TeamImpactFeatures
    away: TeamImpactFeatures
    tag: str


def player_impact_signal(
    registry: Optional[PlayerImpactRegistry],
    league_id: Optional[int],
    home_team: str,
    home_players: Iterable[str],
    away_team: str,
    away_players: Iterable[str],
    use_shared_prior: bool = True,
) -> Optional[PlayerImpactResult]:
    """Home-vs-away impact signal, or None when either side has no matched weight."""
    if registry is None:
        return None
    model = registry.model_for_league(league_id, use_shared_prior)
    if model is None:
        return None

    home = model.team_features(home_team, home_players)
    away = model.team_features(away_team, away_players)
    if home is None or away is None:
        logger.debug(
            f"[IMPACT] league={league_id}: unmatched side "
            f"(home={'ok' if home else 'none'}, away={'ok' if away else 'none'})"
        )
        return None

    return PlayerImpactResult(
        signal=model.impact_signal(home, away),
        home=home,
        away=away,
        tag=model.debug_tag(),
    )
