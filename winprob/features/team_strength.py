"""
Team strength from the starting XI, plus a coarse team-rating prior.

Lineup strength
    Each resolved starter contributes score/2 (player scores live in
    [-2, 2], so contributions live in [-1, 1]); team strength is their
    mean. At least MIN_RESOLVED_PLAYERS scored starters are required,
    otherwise the team has NO lineup strength (None, not 0).

Team-rating prior
    FIFA points (1600 = 0, +/-400 = +/-1) or, failing that, FIFA rank.
    Carries the weight the lineup signal does not: 1 - w_lineup.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from winprob.etl.name_normalization import abbreviate_team_key, normalize_team_key
from winprob.features.lineup_resolution import match_player
from winprob.features.percentiles import clamp
from winprob.features.player_strength import score_player
from winprob.models import LineupSide, PlayerProfile, TeamRating

logger = logging.getLogger(__name__)

STARTING_XI = 11
MIN_RESOLVED_PLAYERS = 3


@dataclass(frozen=True)
class TeamStrength:
    strength: float  # [-1, 1]
    coverage: float  # resolved / 11
    resolved: int


def lineup_team_strength(
    lineup: LineupSide, players: Mapping[int, PlayerProfile]
) -> Optional[TeamStrength]:
    """Aggregate scored starters into one strength; None below 3 players."""
    total = 0.0
    resolved = 0

    for slot in lineup.starting:
        profile = match_player(slot, players, lineup.team)
        if profile is None:
            continue
        score = score_player(profile, slot.position).score
        if score is None:
            continue
        total += score / 2.0
        resolved += 1

    if resolved < MIN_RESOLVED_PLAYERS:
        logger.debug(
            f"[STRENGTH] {lineup.team}: {resolved}/{STARTING_XI} scored starters, "
            f"below minimum {MIN_RESOLVED_PLAYERS}"
        )
        return None

    return TeamStrength(
        strength=clamp(total / resolved, -1.0, 1.0),
        coverage=min(resolved, STARTING_XI) / STARTING_XI,
        resolved=resolved,
    )


def lineup_blend_weight(
    home: Optional[TeamStrength], away: Optional[TeamStrength]
) -> float:
    """Weight of the lineup signal: the weaker side's coverage, 0 unless both exist."""
    if home is None or away is None:
        return 0.0
    return min(home.coverage, away.coverage)


def rating_strength(rating: TeamRating) -> Optional[float]:
    if rating.fifa_points is not None:
        return clamp((rating.fifa_points - 1600.0) / 400.0, -1.0, 1.0)
    if rating.fifa_rank is not None:
        return clamp((100.0 - rating.fifa_rank) / 100.0, -1.0, 1.0)
    return None


def team_rating_prior(label: str, ratings: tuple[TeamRating, ...]) -> Optional[float]:
    """Rating prior for a team label, matched by name key or abbreviation."""
    key = normalize_team_key(label)
    if not key:
        return None
    for rating in ratings:
        if normalize_team_key(rating.name) == key or abbreviate_team_key(rating.name) == key:
            return rating_strength(rating)
    return None
