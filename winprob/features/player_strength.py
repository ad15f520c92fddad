"""
Player strength: composite season z-score blended with recent form.

Season score
    Two weighted baskets per role (attack, defense). Each basket is the
    weighted mean of directional z-scores over the stats that are present;
    a basket whose present weight covers less than 40% of its total weight
    is discarded. Surviving baskets are role-weighted into one z, clamped
    to [-2, 2].

Form score
    Last 8 match ratings (newest first), exponentially down-weighted by
    0.85 per match, shrunk toward 6.80 until 5 ratings are available,
    standardized with a fixed 0.60 rating SD, clamped to [-2, 2].

Final score = 0.70 * season + 0.30 * form; either alone when the other
is missing; None when both are missing.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from winprob.etl.stat_parsing import canonical_stat_key, parse_stat_cell
from winprob.features.percentiles import clamp, stat_z
from winprob.features.roles import infer_role
from winprob.models import PlayerProfile, Role

BASELINE_RATING = 6.80
RATING_STDDEV = 0.60
FORM_WINDOW = 8
FORM_DECAY = 0.85
FORM_FULL_WEIGHT_SAMPLES = 5

MIN_BASKET_COVERAGE = 0.40
PLAYER_Z_CLAMP = 2.0

SEASON_WEIGHT = 0.70
FORM_WEIGHT = 0.30

ATTACK_BASKETS: dict[Role, dict[str, float]] = {
    Role.ATTACKER: {
        "goals": 1.2,
        "npxg": 2.0,
        "xa": 1.2,
        "chances_created": 1.0,
        "touches_in_box": 0.9,
        "shots_on_target": 0.7,
        "rating": 0.6,
    },
    Role.MIDFIELDER: {
        "xa": 1.2,
        "chances_created": 1.2,
        "npxg": 0.8,
        "accurate_passes_pct": 0.8,
        "successful_dribbles": 0.6,
        "goals": 0.6,
        "rating": 0.8,
    },
    Role.DEFENDER: {
        "accurate_passes_pct": 0.8,
        "accurate_long_balls": 0.6,
        "xa": 0.5,
        "chances_created": 0.4,
        "goals": 0.4,
        "rating": 0.6,
    },
    Role.GOALKEEPER: {
        "accurate_long_balls": 0.5,
        "accurate_passes_pct": 0.5,
        "rating": 0.6,
    },
}

DEFENSE_BASKETS: dict[Role, dict[str, float]] = {
    Role.ATTACKER: {
        "possession_won_final_third": 0.9,
        "duels_won_pct": 0.8,
        "tackles": 0.6,
        "aerials_won": 0.5,
        "interceptions": 0.4,
        "fouls_committed": 0.3,
    },
    Role.MIDFIELDER: {
        "tackles": 1.0,
        "interceptions": 1.0,
        "duels_won_pct": 0.9,
        "recoveries": 0.8,
        "dribbled_past": 0.6,
        "fouls_committed": 0.4,
    },
    Role.DEFENDER: {
        "tackles": 1.0,
        "interceptions": 1.0,
        "duels_won_pct": 1.0,
        "clearances": 0.9,
        "aerials_won": 0.8,
        "dribbled_past": 0.8,
        "goals_conceded_on_pitch": 0.7,
        "xg_against_on_pitch": 0.5,
    },
    Role.GOALKEEPER: {
        "goals_prevented": 1.5,
        "save_pct": 1.2,
        "saves": 1.0,
        "goals_conceded": 0.9,
        "clean_sheets": 0.8,
        "xg_against": 0.6,
    },
}

# (attack share, defense share)
ROLE_BLEND: dict[Role, tuple[float, float]] = {
    Role.ATTACKER: (0.70, 0.30),
    Role.MIDFIELDER: (0.50, 0.50),
    Role.DEFENDER: (0.30, 0.70),
    Role.GOALKEEPER: (0.15, 0.85),
}


@dataclass(frozen=True)
class PlayerScore:
    """Per-player composite. All z values are None when unavailable."""

    role: Role
    season_z: Optional[float]
    form_z: Optional[float]
    score: Optional[float]


def season_percentiles(profile: PlayerProfile) -> dict[str, float]:
    """Canonical stat key -> percentile, per-90 rank preferred over total.

    Stats whose percentile does not parse are left out.
    """
    out: dict[str, float] = {}
    for stat in profile.season_stats:
        pct = parse_stat_cell(stat.percentile_rank_per90)
        if pct is None:
            pct = parse_stat_cell(stat.percentile_rank)
        if pct is None:
            continue
        key = canonical_stat_key(stat.title)
        # First occurrence wins (feeds list the headline stat group first)
        out.setdefault(key, pct)
    return out


def basket_score(percentiles: dict[str, float], basket: dict[str, float]) -> Optional[float]:
    total_w = sum(basket.values())
    if total_w <= 0:
        return None

    covered_w = 0.0
    weighted = 0.0
    for key, w in basket.items():
        z = stat_z(key, percentiles.get(key))
        if z is None:
            continue
        covered_w += w
        weighted += w * z

    if covered_w / total_w < MIN_BASKET_COVERAGE:
        return None
    return weighted / covered_w


def season_z_score(profile: PlayerProfile, role: Role) -> Optional[float]:
    percentiles = season_percentiles(profile)
    if not percentiles:
        return None

    attack = basket_score(percentiles, ATTACK_BASKETS[role])
    defense = basket_score(percentiles, DEFENSE_BASKETS[role])
    w_att, w_def = ROLE_BLEND[role]

    parts = []
    if attack is not None:
        parts.append((w_att, attack))
    if defense is not None:
        parts.append((w_def, defense))
    if not parts:
        return None

    w_sum = sum(w for w, _ in parts)
    z = sum(w * v for w, v in parts) / w_sum
    return clamp(z, -PLAYER_Z_CLAMP, PLAYER_Z_CLAMP)


def form_rating(ratings: Iterable, window: int = FORM_WINDOW) -> Optional[float]:
    """Recency-weighted mean rating shrunk toward BASELINE_RATING.

    Unparseable ratings are skipped but still consume their slot in the
    window, so the decay reflects match recency rather than data quality.
    """
    if window <= 0:
        return None

    weighted = 0.0
    weight_sum = 0.0
    count = 0
    for k, raw in enumerate(ratings):
        if k >= window:
            break
        r = parse_stat_cell(raw)
        if r is None:
            continue
        w = FORM_DECAY ** k
        weighted += w * r
        weight_sum += w
        count += 1

    if count == 0 or weight_sum <= 0:
        return None

    mean = weighted / weight_sum
    shrink = min(count / FORM_FULL_WEIGHT_SAMPLES, 1.0)
    return shrink * mean + (1.0 - shrink) * BASELINE_RATING


def form_z_score(profile: PlayerProfile) -> Optional[float]:
    r = form_rating(profile.recent_ratings)
    if r is None:
        return None
    return clamp((r - BASELINE_RATING) / RATING_STDDEV, -PLAYER_Z_CLAMP, PLAYER_Z_CLAMP)


def score_player(profile: PlayerProfile, position_label: Optional[str] = None) -> PlayerScore:
    """Score one player. The lineup slot label takes precedence for the role."""
    role = infer_role([position_label, profile.position, *profile.positions])
    if profile.is_stub:
        return PlayerScore(role=role, season_z=None, form_z=None, score=None)
    season = season_z_score(profile, role)
    form = form_z_score(profile)

    if season is not None and form is not None:
        score = SEASON_WEIGHT * season + FORM_WEIGHT * form
    elif season is not None:
        score = season
    else:
        score = form

    return PlayerScore(role=role, season_z=season, form_z=form, score=score)
