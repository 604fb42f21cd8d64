"""Engine-range heuristics.

Ranges are read loosely: only the major component of each comparator is
considered, and prerelease tags are ignored.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

_HYPHEN_RANGE = re.compile(r"(\d+)\s*-\s*\d+")
_TOKEN_MAJOR = re.compile(r"v?(\d+)")
_TOKEN_START = re.compile(r"^[0-9^~=>v]")
_BOUNDED_TOKEN = re.compile(r"^(?:[\^~]|=|v)?\d")


def _split_clauses(range_: str) -> list[str]:
    return [clause.strip() for clause in range_.split("||") if clause.strip()]


def _tokens(clause: str) -> list[str]:
    return clause.replace(",", " ").split()


def parse_major_from_token(token: str) -> int | None:
    """Major version implied by a lower-bound style comparator token."""
    trimmed = token.strip()
    if not trimmed or not _TOKEN_START.match(trimmed):
        return None
    match = _TOKEN_MAJOR.search(trimmed)
    if match is None:
        return None
    return int(match.group(1))


def parse_min_major_from_clause(clause: str) -> int | None:
    """Strongest lower bound within one space-separated clause.

    ``<`` comparators are upper bounds and never contribute.
    """
    hyphen = _HYPHEN_RANGE.search(clause)
    if hyphen is not None:
        return int(hyphen.group(1))

    clause_min: int | None = None
    for token in _tokens(clause):
        if token.startswith("<"):
            continue
        major = parse_major_from_token(token)
        if major is None:
            continue
        if clause_min is None or major > clause_min:
            clause_min = major
    return clause_min


def parse_min_major_from_range(range_: str) -> int | None:
    """Minimum major admitted by a ``||``-joined range.

    A clause with no lower bound admits any version, so the whole range is
    treated as unbounded.

    Examples:
        >>> parse_min_major_from_range(">=14 || >=16")
        14
        >>> parse_min_major_from_range("^18.0.0")
        18
        >>> parse_min_major_from_range("* || >=16") is None
        True
    """
    clauses = _split_clauses(range_)
    if not clauses:
        return None

    range_min: int | None = None
    for clause in clauses:
        clause_min = parse_min_major_from_clause(clause)
        if clause_min is None:
            return None
        if range_min is None or clause_min < range_min:
            range_min = clause_min
    return range_min


def derive_min_required_major(ranges: Iterable[str]) -> int | None:
    """Strictest minimum major over all ranges; unbounded ranges are skipped."""
    strictest: int | None = None
    for range_ in ranges:
        min_major = parse_min_major_from_range(range_)
        if min_major is None:
            continue
        if strictest is None or min_major > strictest:
            strictest = min_major
    return strictest


def _clause_has_upper_bound(clause: str) -> bool:
    if _HYPHEN_RANGE.search(clause):
        return True
    for token in _tokens(clause):
        if token.startswith("<"):
            return True
        if _BOUNDED_TOKEN.match(token) and not re.search(r"[xX*]", token):
            return True
    return False


def engine_has_upper_bound(range_: str) -> bool:
    """True when every clause of an engine range caps the allowed major.

    ``<``, hyphen ranges, caret, tilde and exact versions are all capped;
    ``>=``, ``*`` and wildcards are not.

    Examples:
        >>> engine_has_upper_bound(">=14 <19")
        True
        >>> engine_has_upper_bound("^16 || >=18")
        False
    """
    clauses = _split_clauses(range_)
    if not clauses:
        return False
    return all(_clause_has_upper_bound(clause) for clause in clauses)


__all__ = [
    "derive_min_required_major",
    "engine_has_upper_bound",
    "parse_major_from_token",
    "parse_min_major_from_clause",
    "parse_min_major_from_range",
]
