"""
Stat cell parsing and stat-title canonicalization.

Feed cells arrive as text ("58%", "1,204", "1.72", "-") or numbers.
Anything that does not parse becomes None and the caller skips that
single stat; it never aborts the containing aggregate.
"""

import math
import re
from typing import Iterable, Optional

from winprob.models import StatRow, StatValue

# Canonical stat keys used by the scoring baskets.
# Key: normalized display title (see normalize_stat_title). Value: canonical key.
STAT_ALIASES: dict[str, str] = {
    # Attack
    "goals": "goals",
    "xg_without_penalty": "npxg",
    "non_penalty_xg": "npxg",
    "npxg": "npxg",
    "expected_goals_xg": "xg",
    "xg": "xg",
    "expected_assists_xa": "xa",
    "xa": "xa",
    "expected_assists": "xa",
    "chances_created": "chances_created",
    "big_chances_created": "big_chances_created",
    "touches_in_opposition_box": "touches_in_box",
    "touches_in_box": "touches_in_box",
    "shots_on_target": "shots_on_target",
    "successful_dribbles": "successful_dribbles",
    "dribbles_succeeded": "successful_dribbles",
    "accurate_passes": "accurate_passes_pct",
    "pass_accuracy": "accurate_passes_pct",
    "accurate_long_balls": "accurate_long_balls",
    "fotmob_rating": "rating",
    "rating": "rating",
    "average_rating": "rating",
    # Defense
    "tackles_won": "tackles",
    "tackles": "tackles",
    "interceptions": "interceptions",
    "clearances": "clearances",
    "blocked_shots": "blocks",
    "blocks": "blocks",
    "recoveries": "recoveries",
    "possession_won_final_3rd": "possession_won_final_third",
    "possession_won_final_third": "possession_won_final_third",
    "duels_won": "duels_won_pct",
    "duels_won_pct": "duels_won_pct",
    "aerial_duels_won": "aerials_won",
    "aerials_won": "aerials_won",
    "dribbled_past": "dribbled_past",
    "goals_conceded_while_on_pitch": "goals_conceded_on_pitch",
    "goals_conceded_on_pitch": "goals_conceded_on_pitch",
    "xg_against_while_on_pitch": "xg_against_on_pitch",
    "xg_against_on_pitch": "xg_against_on_pitch",
    # Goalkeeping
    "saves": "saves",
    "save_percentage": "save_pct",
    "save_pct": "save_pct",
    "goals_prevented": "goals_prevented",
    "clean_sheets": "clean_sheets",
    "goals_conceded": "goals_conceded",
    "xg_against": "xg_against",
    # Discipline
    "fouls_committed": "fouls_committed",
    "fouls": "fouls_committed",
    "yellow_cards": "yellow_cards",
    "red_cards": "red_cards",
}


def parse_stat_cell(raw: StatValue) -> Optional[float]:
    """
    Parse one stat cell into a float.

    Examples:
        "58%"   -> 58.0
        "1,204" -> 1204.0
        "1.72"  -> 1.72
        "-"     -> None
        "bad"   -> None
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None

    s = str(raw).strip()
    if not s or s == "-":
        return None
    s = s.rstrip("%").replace(",", "").strip()
    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def normalize_stat_title(title: str) -> str:
    """Lowercase snake form of a display title ("Shots on target" -> "shots_on_target")."""
    s = title.strip().lower().replace("%", " pct ")
    s = re.sub(r"[^a-z0-9]+", "_", s)
    return s.strip("_")


def canonical_stat_key(title: str) -> str:
    """Map a display title to its canonical key; unknown titles keep their snake form."""
    norm = normalize_stat_title(title)
    return STAT_ALIASES.get(norm, norm)


def extract_stat_pair(
    stats: Iterable[StatRow], keys: Iterable[str]
) -> Optional[tuple[float, float]]:
    """
    Find the first live stat row whose name matches one of `keys`
    (case-insensitive) and parse both cells.

    Returns None if no row matches or the matched row does not parse on
    both sides.
    """
    wanted = {k.strip().lower() for k in keys}
    for row in stats:
        if row.name.strip().lower() not in wanted:
            continue
        home = parse_stat_cell(row.home)
        away = parse_stat_cell(row.away)
        if home is None or away is None:
            return None
        return home, away
    return None
