"""
Name matching between picks, the season catalog and result feeds.

Names are the identities the engine works with. Different sources spell
them differently ("Sergio Pérez", "sergio perez ", "Sergio  Perez"), so
every comparison goes through `normalize_name`.
"""

import logging
import unicodedata
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

NONE_SENTINEL = "None"


def normalize_name(name: str) -> str:
    """Normalize a name for comparison (accents, case and whitespace ignored)."""
    if not name:
        return ""
    decomposed = unicodedata.normalize('NFKD', str(name))
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return ' '.join(stripped.split()).casefold()


def is_blank(name: Optional[str]) -> bool:
    """True for an unset or whitespace-only pick, or the 'None' sentinel"""
    normalized = normalize_name(name)
    return not normalized or normalized == normalize_name(NONE_SENTINEL)


def names_match(left: str, right: str) -> bool:
    return bool(left) and bool(right) and normalize_name(left) == normalize_name(right)


def match_entity(name: str, population: Iterable[str]) -> Optional[str]:
    """
    Canonical spelling of `name` within `population`.

    Priority: exact → normalized → unique last name. Returns None when
    nothing (or more than one candidate) matches.
    """
    if is_blank(name):
        return None

    population = list(population)
    if name in population:
        return name

    normalized = normalize_name(name)
    if not normalized:
        return None
    for candidate in population:
        if normalize_name(candidate) == normalized:
            return candidate

    last = normalized.split()[-1]
    by_last_name = [c for c in population if normalize_name(c).split()[-1:] == [last]]
    if len(by_last_name) == 1 and ' ' not in normalized:
        logger.info(f"Matched by unique last name: {name} -> {by_last_name[0]}")
        return by_last_name[0]

    return None


def index_by_name(rows, attr: str) -> dict:
    """Map normalized name -> row, first row wins"""
    index = {}
    for row in rows:
        key = normalize_name(getattr(row, attr))
        if key and key not in index:
            index[key] = row
    return index
