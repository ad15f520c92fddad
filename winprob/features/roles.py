"""
Role inference from free-text position labels.

infer_role() is total: anything it cannot classify is a Midfielder.
"""

from typing import Iterable, Optional

from winprob.models import Role

_GOALKEEPER_CODES = {"gk", "g", "por", "tw"}
_DEFENDER_CODES = {
    "cb", "lb", "rb", "lcb", "rcb", "lwb", "rwb", "wb", "sw", "d", "df", "def",
}
_ATTACKER_CODES = {
    "st", "cf", "lw", "rw", "lf", "rf", "ss", "fw", "f", "att", "fwd",
}


def role_from_label(label: Optional[str]) -> Optional[Role]:
    """Classify one label, or None if it carries no role information."""
    if not label:
        return None
    s = label.strip().lower()
    if not s:
        return None

    code = s.replace("-", "").replace(" ", "")
    if code in _GOALKEEPER_CODES:
        return Role.GOALKEEPER
    if code in _DEFENDER_CODES:
        return Role.DEFENDER
    if code in _ATTACKER_CODES:
        return Role.ATTACKER

    if "goalkeeper" in s or "keeper" in s:
        return Role.GOALKEEPER
    if "defender" in s or "back" in s:
        return Role.DEFENDER
    if "midfield" in s:
        return Role.MIDFIELDER
    if (
        "attacker" in s
        or "forward" in s
        or "striker" in s
        or "wing" in s
    ):
        return Role.ATTACKER
    return None


def infer_role(labels: Iterable[Optional[str]]) -> Role:
    """First classifiable label wins; Midfielder when none classifies."""
    for label in labels:
        role = role_from_label(label)
        if role is not None:
            return role
    return Role.MIDFIELDER
