# shiftcare/numeric.py
from __future__ import annotations

import math
from typing import Any


def num(x: Any, default: float) -> float:
    """
    Coerce a raw input to float.
    - None -> default ("not logged")
    - anything unparsable -> NaN, which clamp() maps to the range minimum
    """
    if x is None:
        return float(default)
    if isinstance(x, bool):
        return float(x)
    try:
        return float(x)
    except (TypeError, ValueError):
        return math.nan


def clamp(x: float, lo: float, hi: float) -> float:
    v = x if isinstance(x, (int, float)) and math.isfinite(x) else lo
    return max(lo, min(hi, v))


def round_half_up(x: float, digits: int = 0) -> float:
    if not math.isfinite(x):
        return x
    q = 10 ** digits
    return math.floor(x * q + 0.5) / q


def round1(x: float) -> float:
    return round_half_up(x, 1)
