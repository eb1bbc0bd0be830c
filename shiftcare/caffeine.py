# shiftcare/caffeine.py
from __future__ import annotations

from typing import Any, Optional, Tuple

from . import constants as C
from .numeric import clamp, num


def resolve_sleep_timing(timing: Any, shift: str) -> str:
    """'auto'/unknown timing resolves to day sleep after a night shift, night sleep otherwise."""
    if timing in ("night", "day", "mixed"):
        return timing
    return "day" if shift == "N" else "night"


def circadian_factor(timing: str) -> float:
    return C.CIRCADIAN_FACTOR.get(timing, C.CIRCADIAN_FACTOR["day"])


def default_sleep_start_hour(shift: str, timing: str) -> int:
    if timing == "day":
        return 9  # day sleep after a night shift
    if timing == "mixed":
        return 1
    if shift == "E":
        return 1
    if shift == "M":
        return 0
    return 23


def parse_clock(raw: Any) -> Optional[Tuple[int, int]]:
    """'HH:mm' -> (hh, mm); None when missing or out of range."""
    if not raw:
        return None
    try:
        hh_s, mm_s = str(raw).strip().split(":")[:2]
        hh, mm = int(hh_s), int(mm_s)
    except (TypeError, ValueError):
        return None
    if not (0 <= hh <= 23 and 0 <= mm <= 59):
        return None
    return hh, mm


def hours_until(clock: Tuple[int, int], sleep_start_hour: float) -> float:
    diff = sleep_start_hour - (clock[0] + clock[1] / 60.0)
    if diff < 0:
        diff += 24.0
    return diff


def caffeine_half_life(caffeine_sensitivity: Any) -> float:
    sens = clamp(num(caffeine_sensitivity, C.CAFFEINE_SENSITIVITY_DEFAULT), *C.CAFFEINE_SENSITIVITY_RANGE)
    return C.CAFFEINE_HALF_LIFE_H * sens


def caffeine_at_sleep(
    caffeine_mg: Any,
    caffeine_last_at: Any,
    shift: str,
    timing: str,
    caffeine_sensitivity: Any = C.CAFFEINE_SENSITIVITY_DEFAULT,
) -> float:
    """
    Residual caffeine (mg) at the expected sleep onset.

    Exponential decay with half-life 5h scaled by sensitivity. When the
    last-intake clock time is unknown a per-shift gap is assumed.
    """
    mg = clamp(num(caffeine_mg, 0.0), 0.0, C.CAFFEINE_MG_MAX)
    half_life = caffeine_half_life(caffeine_sensitivity)

    clock = parse_clock(caffeine_last_at)
    if clock is not None:
        gap = hours_until(clock, default_sleep_start_hour(shift, timing))
    else:
        gap = C.CAFFEINE_FALLBACK_GAP_H.get(shift, C.CAFFEINE_FALLBACK_GAP_H["OFF"])
    return max(0.0, mg * 0.5 ** (gap / half_life))


def caffeine_impact_factor(remaining_mg: float) -> float:
    """CIF: 1 = no sleep-onset impairment, floored at 0.4."""
    return clamp(1.0 - C.CIF_SLOPE * (remaining_mg / 100.0), C.CIF_FLOOR, 1.0)
