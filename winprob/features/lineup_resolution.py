"""
Lineup resolution: pair lineup sides to home/away, and lineup slots to
player profiles.

Ids first, names only as fallback (see etl/name_normalization.py for the
collision policy).
"""

import logging
from typing import Mapping, Optional

from winprob.etl.name_normalization import normalize_player_name, normalize_team_key
from winprob.models import LineupSide, MatchContext, PlayerProfile, PlayerSlot

logger = logging.getLogger(__name__)


def pair_lineup_sides(
    match: MatchContext, lineups: tuple[LineupSide, ...]
) -> tuple[Optional[LineupSide], Optional[LineupSide]]:
    """
    Map lineup sides to (home, away).

    1. Full team name from match details vs side.team
    2. Short match label vs side.team_abbr
    3. Feed order (home first, then away)
    """
    if not lineups:
        return None, None

    home_side: Optional[LineupSide] = None
    away_side: Optional[LineupSide] = None

    home_key = normalize_team_key(match.home_team or "")
    away_key = normalize_team_key(match.away_team or "")
    for side in lineups:
        team_key = normalize_team_key(side.team)
        if home_side is None and home_key and team_key == home_key:
            home_side = side
        if away_side is None and away_key and team_key == away_key:
            away_side = side

    if home_side is None or away_side is None:
        home_abbr = normalize_team_key(match.home)
        away_abbr = normalize_team_key(match.away)
        for side in lineups:
            if side is home_side or side is away_side:
                continue
            abbr = normalize_team_key(side.team_abbr)
            if home_side is None and home_abbr and abbr == home_abbr:
                home_side = side
            if away_side is None and away_abbr and abbr == away_abbr:
                away_side = side

    # Feed order only for sides not already paired by name
    unpaired = [s for s in lineups if s is not home_side and s is not away_side]
    if home_side is None and unpaired:
        home_side = unpaired.pop(0)
    if away_side is None and unpaired:
        away_side = unpaired.pop(0)
    return home_side, away_side


def match_player(
    slot: PlayerSlot,
    players: Mapping[int, PlayerProfile],
    team_hint: Optional[str] = None,
) -> Optional[PlayerProfile]:
    """
    Resolve a lineup slot to a cached profile.

    By id when the id is cached. Otherwise by normalized name: a unique
    candidate on the hinted team wins, else a unique candidate overall.
    Ambiguous names resolve to None.
    """
    if slot.id is not None:
        profile = players.get(slot.id)
        if profile is not None:
            return profile

    slot_key = normalize_player_name(slot.name)
    if not slot_key:
        return None

    exact = [p for p in players.values() if normalize_player_name(p.name) == slot_key]
    if not exact:
        return None

    team_key = normalize_team_key(team_hint) if team_hint else ""
    if team_key:
        on_team = [
            p for p in exact
            if p.team and normalize_team_key(p.team) == team_key
        ]
        if len(on_team) == 1:
            return on_team[0]

    if len(exact) == 1:
        return exact[0]

    logger.debug(f"[LINEUP] Ambiguous name '{slot.name}' ({len(exact)} candidates), skipped")
    return None
