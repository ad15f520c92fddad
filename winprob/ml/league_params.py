"""
League-level priors fitted offline by the backtest tool.

Schema (one object per league, keyed by league id in the cached document):
    {league_id, sample_matches, goals_total_base, home_adv_goals, dc_rho,
     prematch_logit_scale, prematch_draw_bias}
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

GOALS_TOTAL_BASE = 2.60
HOME_ADV_GOALS = 0.15
DC_RHO_DEFAULT = -0.10


class LeagueParamsError(ValueError):
    """League params document could not be validated."""


class LeagueParams(BaseModel):
    """Read-only during inference."""

    model_config = ConfigDict(frozen=True)

    league_id: int
    sample_matches: int = 0
    goals_total_base: float = GOALS_TOTAL_BASE
    home_adv_goals: float = HOME_ADV_GOALS
    # Dixon-Coles rho (typically negative to inflate low-score draws)
    dc_rho: float = DC_RHO_DEFAULT
    # Pre-match calibration: logit temperature and additive draw-logit bias
    prematch_logit_scale: float = 1.0
    prematch_draw_bias: float = 0.0

    @classmethod
    def defaults(cls, league_id: Optional[int] = None) -> "LeagueParams":
        return cls(league_id=league_id if league_id is not None else 0)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "LeagueParams":
        """
        Validate one league entry.

        Raises:
            LeagueParamsError: if the entry does not match the schema
        """
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise LeagueParamsError(f"invalid league params: {e}") from e


def load_league_params_map(document: dict[Any, Any]) -> dict[int, LeagueParams]:
    """
    Parse the cached {league_id: params} document.

    Raises:
        LeagueParamsError: if any entry fails validation
    """
    out: dict[int, LeagueParams] = {}
    for raw_id, raw in document.items():
        try:
            params = LeagueParams.from_dict(raw)
        except LeagueParamsError as e:
            logger.warning(f"[PARAMS] Rejected entry for league {raw_id}")
            raise LeagueParamsError(f"league {raw_id}: {e}") from e
        out[params.league_id] = params

    logger.info(f"[PARAMS] Loaded params for {len(out)} leagues")
    return out
