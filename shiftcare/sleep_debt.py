# shiftcare/sleep_debt.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from . import constants as C
from .numeric import clamp, num


@dataclass(frozen=True)
class DebtUpdate:
    sleep_debt_next: float
    debt_n: float


def target_sleep_hours(shift: str) -> float:
    return C.TARGET_SLEEP_H + C.TARGET_SLEEP_BONUS.get(shift, 0.0)


def _normalized(debt: float) -> DebtUpdate:
    return DebtUpdate(debt, clamp(debt / C.DEBT_NORM_DIV, 0.0, 1.0))


def update_sleep_debt(
    shift: str,
    sleep_for_debt: Optional[float],
    sleep_debt_prev: float,
    has_sleep_duration_log: bool,
    has_prior_sleep_log: bool = True,
    prev_shift: Optional[str] = None,
) -> DebtUpdate:
    """
    Roll the sleep-debt balance forward one day.

    - no sleep logged: debt persists with slow decay and a small passive
      recovery; it is never reset by missing data
    - first ever log: seed from today's deficit only (max 4.5h)
    - otherwise: 12%/day decay, full accrual on shortfall, 75% recovery on surplus
    """
    prev = clamp(num(sleep_debt_prev, 0.0), 0.0, C.SLEEP_DEBT_MAX)

    if not has_sleep_duration_log or sleep_for_debt is None:
        night_context = shift == "N" or prev_shift == "N"
        carry = C.DEBT_CARRY_UNLOGGED_NIGHT if night_context else C.DEBT_CARRY_UNLOGGED
        passive = C.DEBT_PASSIVE_RECOVERY_REST if shift in C.REST_SHIFTS else C.DEBT_PASSIVE_RECOVERY
        return _normalized(clamp(prev * carry - passive, 0.0, C.SLEEP_DEBT_MAX))

    deficit = target_sleep_hours(shift) - clamp(num(sleep_for_debt, 0.0), 0.0, C.SLEEP_HOURS_MAX)

    if not has_prior_sleep_log and prev < C.DEBT_SEED_NEAR_ZERO:
        return _normalized(clamp(max(0.0, deficit), 0.0, C.DEBT_SEED_MAX))

    nxt = prev * C.DEBT_CARRY + max(0.0, deficit) * C.DEBT_ACCRUE - max(0.0, -deficit) * C.DEBT_RECOVER
    return _normalized(clamp(nxt, 0.0, C.SLEEP_DEBT_MAX))


def update_sleep_debt_legacy(shift: str, sleep_eff: float, sleep_debt_prev: float) -> DebtUpdate:
    """v3 rule: 15%/day decay, 35% recovery on surplus, debt driven by effective sleep."""
    prev = num(sleep_debt_prev, 0.0)
    deficit = target_sleep_hours(shift) - sleep_eff
    nxt = prev * C.LEGACY_DEBT_CARRY + max(0.0, deficit) - C.LEGACY_DEBT_RECOVER * max(0.0, -deficit)
    return _normalized(clamp(nxt, 0.0, C.SLEEP_DEBT_MAX))
