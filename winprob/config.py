"""Engine configuration using Pydantic Settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (WINPROB_ prefix).

    Host processes resolve a Settings instance once, usually through the
    cached get_settings(), and pass it into compute_win_prob().
    """

    # ═══════════════════════════════════════════════════════════════
    # Market blend (pre-match only)
    # ═══════════════════════════════════════════════════════════════

    MARKET_BLEND_ENABLED: bool = False  # Feature flag (default OFF until validated)
    MARKET_BLEND_WEIGHT_MODEL: float = 0.65
    MARKET_BLEND_WEIGHT_MARKET: float = 0.35
    MARKET_ODDS_TTL_MINUTES: float = 30.0  # Snapshots older than this are stale
    MARKET_DEVIG_METHOD: str = "proportional"  # "proportional" | "power"

    # ═══════════════════════════════════════════════════════════════
    # Player impact registry
    # ═══════════════════════════════════════════════════════════════

    # Fall back to the artifact's shared prior when a league has no entry
    PLAYER_IMPACT_USE_SHARED_PRIOR: bool = True

    # ═══════════════════════════════════════════════════════════════

    # Telemetry
    METRICS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"

    class Config:
        env_prefix = "WINPROB_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
