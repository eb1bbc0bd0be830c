# shiftcare/strain.py
from __future__ import annotations

from typing import Any
import math

from . import constants as C
from .numeric import clamp, num


def _opt(x: Any) -> float:
    v = num(x, 0.0)
    return v if v == v else 0.0  # NaN -> 0


def compute_csi(
    shift: str,
    night_streak: Any,
    nights_in_30: Any = 0,
    quick_return_hours: Any = None,
    shift_length_hours: Any = None,
    overtime_hours: Any = None,
    chronotype: Any = C.CHRONOTYPE_DEFAULT,
    non_night_flags: bool = True,
) -> float:
    """
    Circadian Strain Index in [0, 1].

    Night shifts: 0.5 x consecutive-night multiplier x schedule-harshness
    multiplier. Other shifts only pick up strain from quick returns and long
    days. Evening types (chronotype -> 0) are scaled up, morning types down.

    non_night_flags=False keeps the v3 behaviour where the non-night branch
    used the penalty magnitudes instead of 0/1 flags.
    """
    streak = _opt(night_streak)
    nights = _opt(nights_in_30)

    # unparsable or non-finite gap = no quick return
    gap = num(quick_return_hours, math.nan)
    quick = math.isfinite(gap) and gap < C.CSI_QUICK_RETURN_H
    long_day = _opt(shift_length_hours) + _opt(overtime_hours) >= C.CSI_LONG_SHIFT_H

    quick_penalty = C.CSI_QUICK_RETURN_PENALTY if quick else 0.0
    if nights > C.CSI_MONTHLY_HEAVY[0]:
        monthly_penalty = C.CSI_MONTHLY_HEAVY[1]
    elif nights > C.CSI_MONTHLY_MODERATE[0]:
        monthly_penalty = C.CSI_MONTHLY_MODERATE[1]
    else:
        monthly_penalty = 0.0
    long_penalty = C.CSI_LONG_SHIFT_PENALTY if long_day else 0.0

    if shift == "N":
        consec = 1.0 + C.CSI_CONSECUTIVE_STEP * max(0.0, streak - 1.0)
        schedule = 1.0 + quick_penalty + monthly_penalty + long_penalty
        csi = C.CSI_NIGHT_BASE * consec * schedule
    elif non_night_flags:
        csi = C.CSI_DAY_QUICK_WEIGHT * float(quick) + C.CSI_DAY_LONG_WEIGHT * float(long_day)
    else:
        csi = C.CSI_DAY_QUICK_WEIGHT * quick_penalty + C.CSI_DAY_LONG_WEIGHT * long_penalty

    chrono = clamp(num(chronotype, C.CHRONOTYPE_DEFAULT), 0.0, 1.0)
    return clamp(csi * (C.CSI_CHRONO_BASE - C.CSI_CHRONO_SLOPE * chrono), 0.0, 1.0)
