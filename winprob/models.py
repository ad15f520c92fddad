"""
Input snapshot and output types for the win-probability engine.

Every input type is a frozen dataclass: the caller assembles one
PredictionSnapshot per recompute and hands it to compute_win_prob(),
which never mutates it and never keeps a reference to it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional, Union

if TYPE_CHECKING:
    from winprob.features.player_impact import PlayerImpactRegistry
    from winprob.ml.league_params import LeagueParams

# Raw cell as delivered by the feed: "58%", "1.72", "-", or already a number
StatValue = Union[str, float, int, None]


class MatchPhase(str, Enum):
    """Phase of a fixture, decided once per call."""

    PREMATCH = "prematch"
    LIVE = "live"
    FINISHED = "finished"


class ModelQuality(str, Enum):
    """How much real signal fed a prediction."""

    BASIC = "Basic"
    EVENT = "Event"
    TRACK = "Track"


class Role(str, Enum):
    GOALKEEPER = "Goalkeeper"
    DEFENDER = "Defender"
    MIDFIELDER = "Midfielder"
    ATTACKER = "Attacker"


class EventKind(str, Enum):
    GOAL = "goal"
    CARD = "card"
    SUB = "sub"
    SHOT = "shot"


# ═════════════════════════════════════════════════════════════════════════════
# Match state
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class MatchEvent:
    minute: int
    kind: EventKind
    team: str = ""
    description: str = ""


@dataclass(frozen=True)
class StatRow:
    """One live statistic, home and away cells as raw text."""

    name: str
    home: StatValue
    away: StatValue


@dataclass(frozen=True)
class MatchContext:
    """One fixture at a point in time."""

    match_id: str
    home: str  # Short label (usually an abbreviation)
    away: str
    minute: int = 0
    score_home: int = 0
    score_away: int = 0
    is_live: bool = False
    league_id: Optional[int] = None
    home_team: Optional[str] = None  # Full name from match details
    away_team: Optional[str] = None
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    events: tuple[MatchEvent, ...] = ()
    stats: tuple[StatRow, ...] = ()

    @property
    def home_label(self) -> str:
        """Full home name when known, else the short label."""
        if self.home_team and self.home_team.strip():
            return self.home_team
        return self.home

    @property
    def away_label(self) -> str:
        if self.away_team and self.away_team.strip():
            return self.away_team
        return self.away


# ═════════════════════════════════════════════════════════════════════════════
# Lineups and players
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PlayerSlot:
    name: str
    id: Optional[int] = None
    position: Optional[str] = None  # Free-text label ("CB", "Left Winger", ...)
    number: Optional[int] = None


@dataclass(frozen=True)
class LineupSide:
    """One team's starting XI and bench."""

    team: str
    team_abbr: str = ""
    formation: str = ""
    starting: tuple[PlayerSlot, ...] = ()
    subs: tuple[PlayerSlot, ...] = ()


@dataclass(frozen=True)
class PlayerStat:
    """A season statistic with its percentile rank among peers (0-100)."""

    title: str
    value: StatValue = None
    percentile_rank: StatValue = None
    percentile_rank_per90: StatValue = None


@dataclass(frozen=True)
class PlayerProfile:
    """Season and form record for one player.

    recent_ratings is ordered newest first.
    """

    id: int
    name: str
    team: Optional[str] = None
    position: Optional[str] = None
    positions: tuple[str, ...] = ()
    season_stats: tuple[PlayerStat, ...] = ()
    recent_ratings: tuple[StatValue, ...] = ()

    @property
    def is_stub(self) -> bool:
        return not self.season_stats and not self.recent_ratings


@dataclass(frozen=True)
class TeamRating:
    """Coarse external team rating (FIFA points / rank)."""

    name: str
    fifa_points: Optional[float] = None
    fifa_rank: Optional[int] = None


@dataclass(frozen=True)
class MarketOddsSnapshot:
    """Aggregated 1X2 market quote. Implied values are percentages."""

    fetched_at: datetime
    source: str = ""
    bookmakers_used: int = 0
    home_odds: Optional[float] = None
    draw_odds: Optional[float] = None
    away_odds: Optional[float] = None
    home_implied: Optional[float] = None
    draw_implied: Optional[float] = None
    away_implied: Optional[float] = None
    stale: bool = False


@dataclass(frozen=True)
class PredictionSnapshot:
    """Everything one engine invocation may read.

    players: player id -> profile. squads: team id -> player ids.
    as_of: reference time for market staleness (defaults to now, UTC).
    """

    match: MatchContext
    lineups: tuple[LineupSide, ...] = ()
    players: Mapping[int, PlayerProfile] = field(default_factory=dict)
    squads: Mapping[int, tuple[int, ...]] = field(default_factory=dict)
    league_params: Optional["LeagueParams"] = None
    registry: Optional["PlayerImpactRegistry"] = None
    market_odds: Optional[MarketOddsSnapshot] = None
    team_ratings: tuple[TeamRating, ...] = ()
    as_of: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════════════
# Output
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class WinProbRow:
    p_home: float
    p_draw: float
    p_away: float
    delta_home: float = 0.0
    quality: ModelQuality = ModelQuality.BASIC
    confidence: int = 0


@dataclass
class PredictionExplain:
    """Pre-match probability snapshots (percent) and home-win contributions."""

    p_baseline: tuple[float, float, float]
    p_home_adv: tuple[float, float, float]
    p_rating: tuple[float, float, float]
    p_lineup: tuple[float, float, float]
    p_player_impact: tuple[float, float, float]
    p_calibrated: tuple[float, float, float]
    p_final: tuple[float, float, float]

    # Percentage-point contributions to p_home, one per stage
    pp_home_adv: float = 0.0
    pp_rating: float = 0.0
    pp_lineup: float = 0.0
    pp_player_impact: float = 0.0
    pp_calibration: float = 0.0
    pp_market: float = 0.0

    signals: list[str] = field(default_factory=list)

    @property
    def pp_total(self) -> float:
        return (
            self.pp_home_adv + self.pp_rating + self.pp_lineup
            + self.pp_player_impact + self.pp_calibration + self.pp_market
        )


@dataclass
class PredictionExtras:
    lambda_home_pre: float
    lambda_away_pre: float
    s_home_lineup: Optional[float]
    s_away_lineup: Optional[float]
    s_home_rating: Optional[float]
    s_away_rating: Optional[float]
    lineup_coverage_home: Optional[float]
    lineup_coverage_away: Optional[float]
    blend_w_lineup: float
    player_impact_signal: float
    discipline_multipliers: tuple[float, float]
    market_blend_weight: float
    explain: PredictionExplain


@dataclass
class WinProbResult:
    row: WinProbRow
    phase: MatchPhase
    extras: Optional[PredictionExtras] = None
