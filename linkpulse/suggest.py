"""Typo-tolerant suggestions for missing anchors."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from rapidfuzz.distance import Levenshtein

RELATIVE_THRESHOLD = 0.5
MAX_PROPOSALS = 4


def propose(value: str, candidates: Sequence[str]) -> List[str]:
    """Return up to four *candidates* that look like typos of *value*.

    Candidates are scored by edit distance relative to the length of
    *value*; only scores below 0.5 are kept, best first. Equal scores keep
    their input order.
    """
    if not value:
        return []

    scored = [
        (candidate, Levenshtein.distance(value, candidate) / len(value))
        for candidate in candidates
    ]
    scored.sort(key=lambda item: item[1])
    return [
        candidate for candidate, score in scored if score < RELATIVE_THRESHOLD
    ][:MAX_PROPOSALS]


def format_disjunction(items: Iterable[str]) -> str:
    """Join *items* as an English "or" list: ``a``, ``a or b``, ``a, b, or c``."""
    values = list(items)
    if not values:
        return ""
    if len(values) == 1:
        return values[0]
    if len(values) == 2:
        return f"{values[0]} or {values[1]}"
    return ", ".join(values[:-1]) + ", or " + values[-1]
