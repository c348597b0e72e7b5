from __future__ import annotations

import re
from typing import Final, List, Optional

DISCRETE_SEP: Final[str] = "|"
RANGE_SEP: Final[str] = "-"

# longer tokens are treated as unparsable, staying under int()'s digit limit
MAX_DIGITS: Final[int] = 4000

_INT_RE = re.compile(r"[+-]?\d{1,%d}" % MAX_DIGITS)
_RANGE_RE = re.compile(r"([+-]?\d{1,%d})-([+-]?\d{1,%d})" % (MAX_DIGITS, MAX_DIGITS))


def _to_int(token: str) -> Optional[int]:
    token = token.strip()
    if not _INT_RE.fullmatch(token):
        return None
    return int(token)


def discrete_values(bounds: str) -> List[int]:
    """
    Return the integers listed in a discrete bounds string.
    Empty or unparsable pieces are skipped.
    """
    values = []
    for piece in bounds.split(DISCRETE_SEP):
        v = _to_int(piece)
        if v is not None:
            values.append(v)
    return values


def continuous_range(bounds: str) -> Optional[tuple[int, int]]:
    """
    Return (lo, hi) for a continuous bounds string such as "0-16535",
    or None if the string does not have that shape.
    """
    m = _RANGE_RE.fullmatch(bounds.strip())
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2))


def is_allowed(value: int, bounds: str) -> bool:
    """
    Check a candidate register value against a bounds specification.
    Args:
        value (int): Candidate value
        bounds (str): "lo-hi" (exclusive on both ends) or "v1|v2|...|vn"
    Returns:
        bool: True if the value satisfies the bounds. Malformed bounds reject everything.
    """
    if DISCRETE_SEP in bounds:
        return value in discrete_values(bounds)

    rng = continuous_range(bounds)
    if rng is None:
        return False
    lo, hi = rng
    return lo < value < hi


def describe(bounds: str) -> str:
    """Human readable rendering of a bounds string, used by the client menu."""
    if DISCRETE_SEP in bounds:
        values = discrete_values(bounds)
        if not values:
            return f"no valid values ({bounds})"
        return "one of " + ", ".join(str(v) for v in values)
    rng = continuous_range(bounds)
    if rng is None:
        return f"no valid values ({bounds})"
    return f"between {rng[0]} and {rng[1]} (exclusive)"
