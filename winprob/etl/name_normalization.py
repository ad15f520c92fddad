"""
Shared name normalization for lineup, squad and registry matching.

Single source of truth: team/player matching in features/ MUST import
from here.

Collision policy:
- Numeric ids are always tried first; names are a fallback only.
- A name lookup that yields more than one candidate resolves to nothing
  (never to the first hit).
- Registry keys follow the offline fitting tool byte for byte, so they do
  NOT fold diacritics ("Müller" -> "m_ller"), unlike the team/player keys.
"""

import re
import unicodedata


_NAME_SUFFIXES = {"jr", "sr", "ii", "iii", "iv"}


def _fold_ascii(name: str) -> str:
    # Manual replacements for chars NFKD doesn't decompose (Nordic letters)
    name = name.replace("ø", "o").replace("æ", "ae").replace("ð", "d")
    name = unicodedata.normalize("NFKD", name)
    return "".join(c for c in name if not unicodedata.combining(c))


def normalize_team_key(name: str) -> str:
    """
    Normalize a team label for equality matching.

    Steps:
    1. Lowercase + trim
    2. Strip diacritics (NFKD)
    3. Drop everything that is not ASCII alphanumeric or whitespace
    4. Collapse whitespace

    Examples:
        "Manchester United"  -> "manchester united"
        "Atlético Madrid"    -> "atletico madrid"
        "Bodø/Glimt"         -> "bodoglimt"
        "  LIV "             -> "liv"
    """
    if not name:
        return ""

    name = _fold_ascii(name.strip().lower())
    name = "".join(c for c in name if (c.isascii() and c.isalnum()) or c.isspace())
    return " ".join(name.split())


def abbreviate_team_key(name: str) -> str:
    """Initials of a team key ("manchester city" -> "mc"), 2-3 chars.

    Short keys (<= 3 chars) are returned unchanged; single-word names fall
    back to their first three letters.
    """
    key = normalize_team_key(name)
    if len(key) <= 3:
        return key

    abbr = ""
    for part in key.split():
        abbr += part[0]
        if len(abbr) >= 3:
            break

    if len(abbr) >= 2:
        return abbr
    return key.replace(" ", "")[:3]


def normalize_player_name(name: str) -> str:
    """
    Normalize a player name for lineup <-> profile matching.

    Same folding as normalize_team_key, plus generational suffixes
    (Jr, Sr, II, III, IV) are dropped.

    Examples:
        "Vinícius Júnior"   -> "vinicius junior"
        "Neymar Jr."        -> "neymar"
        "Ian Maatsen III"   -> "ian maatsen"
    """
    key = normalize_team_key(name)
    return " ".join(p for p in key.split() if p not in _NAME_SUFFIXES)


def normalize_registry_name(name: str) -> str:
    """
    Normalize a team or player name into a player-impact registry key part.

    Lowercase ASCII alphanumerics are kept, '&' becomes 'a', every other
    run of characters collapses into a single '_', and leading/trailing
    underscores are trimmed.

    Examples:
        " Man City "         -> "man_city"
        "AC-Milan"           -> "ac_milan"
        "Brighton & Hove"    -> "brighton_a_hove"
    """
    if not name:
        return ""

    lower = name.strip().lower()
    out = []
    prev_us = False
    for ch in lower:
        if ch.isascii() and ch.isalnum():
            mapped = ch
        elif ch == "&":
            mapped = "a"
        else:
            mapped = None

        if mapped is not None:
            out.append(mapped)
            prev_us = False
        elif not prev_us and out:
            out.append("_")
            prev_us = True

    return re.sub(r"_+$", "", "".join(out))


def registry_key(team_norm: str, player_norm: str) -> str:
    return f"{team_norm}|{player_norm}"
