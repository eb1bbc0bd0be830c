# shiftcare/menstrual.py
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from . import constants as C
from .dates import add_days, diff_days, parse_iso
from .numeric import num, round_half_up


PHASES = ("period", "pms", "ovulation", "follicular", "luteal", "none")


@dataclass(frozen=True)
class PhaseResult:
    phase: str
    day_index: int


@dataclass
class MenstrualSettings:
    enabled: bool = False
    last_period_start: Optional[str] = None
    cycle_length: int = C.CYCLE_LEN_DEFAULT
    period_length: int = C.PERIOD_LEN_DEFAULT
    pms_days: int = C.PMS_DAYS


@dataclass
class MenstrualContext:
    iso: str
    enabled: bool
    phase: str
    day_index_in_cycle: int      # 0..cycle_length-1
    day_in_cycle: Optional[int]  # 1..cycle_length, None when not tracked
    label: str
    cycle_length: int
    period_length: int


def _clamp_int(x: Any, lo: int, hi: int, default: int) -> int:
    v = num(x, default)
    iv = int(math.floor(v)) if math.isfinite(v) else lo
    return max(lo, min(hi, iv))


def _phase_for_index(cyc: int, cycle_len: int, period_len: int, pms_days: int) -> str:
    ovulation_day = max(C.OVULATION_MIN_DAY, min(cycle_len - C.OVULATION_TAIL, cycle_len - C.LUTEAL_OFFSET))
    pms_start = max(0, cycle_len - pms_days)
    if 0 <= cyc <= period_len - 1:
        return "period"
    if cyc >= pms_start:
        return "pms"
    if cyc == ovulation_day:
        return "ovulation"
    if cyc < ovulation_day:
        return "follicular"
    return "luteal"


def menstrual_phase(
    date_iso: Any,
    lmp_date_iso: Any = None,
    cycle_len_avg: Any = None,
    period_len: Any = None,
) -> PhaseResult:
    """
    Predicted cycle phase for a date.
    Returns phase "none" when no last-period date is known, or the date
    precedes it.
    """
    if not lmp_date_iso or parse_iso(lmp_date_iso) is None or parse_iso(date_iso) is None:
        return PhaseResult("none", 0)
    delta = diff_days(date_iso, lmp_date_iso)
    if delta < 0:
        return PhaseResult("none", 0)

    cycle_len = _clamp_int(cycle_len_avg, *C.CYCLE_LEN_RANGE, C.CYCLE_LEN_DEFAULT)
    p_len = _clamp_int(period_len, *C.PERIOD_LEN_RANGE, C.PERIOD_LEN_DEFAULT)
    cyc = delta % cycle_len
    return PhaseResult(_phase_for_index(cyc, cycle_len, p_len, C.PMS_DAYS), cyc)


def period_signal(menstrual_status: Any, menstrual_flow: Any) -> bool:
    flow = num(menstrual_flow, 0.0)
    return (math.isfinite(flow) and flow > 0) or menstrual_status == "period"


def resolve_phase(predicted: str, menstrual_status: Any = None, menstrual_flow: Any = None) -> str:
    """A logged period or PMS day beats the cycle prediction."""
    if period_signal(menstrual_status, menstrual_flow):
        return "period"
    if menstrual_status == "pms":
        return "pms"
    return predicted


# ----------------------------
# Settings-based context (UI)
# ----------------------------

_LABELS = {
    "period": "생리 기간",
    "pms": "생리 직전 기간",
    "ovulation": "컨디션 안정 기간",
    "follicular": "컨디션 안정 기간",
    "luteal": "컨디션 변화가 큰 날",
}


def label_from_phase(phase: str) -> str:
    return _LABELS.get(phase, "주기")


def menstrual_context_for_date(iso: str, settings: Optional[MenstrualSettings]) -> MenstrualContext:
    ms = settings or MenstrualSettings()
    cycle_length = _clamp_int(ms.cycle_length, *C.CYCLE_LEN_RANGE, C.CYCLE_LEN_DEFAULT)
    period_length = _clamp_int(ms.period_length, *C.PERIOD_LEN_RANGE, C.PERIOD_LEN_DEFAULT)

    def _none(enabled: bool) -> MenstrualContext:
        return MenstrualContext(iso, enabled, "none", 0, None, label_from_phase("none"), cycle_length, period_length)

    last = ms.last_period_start
    if not ms.enabled or not last or parse_iso(last) is None:
        return _none(False)

    delta = diff_days(iso, last)
    if delta < 0:
        return _none(ms.enabled)

    idx = delta % cycle_length
    pms_days = _clamp_int(ms.pms_days, 2, 10, 5)
    phase = _phase_for_index(idx, cycle_length, period_length, pms_days)
    return MenstrualContext(
        iso=iso,
        enabled=True,
        phase=phase,
        day_index_in_cycle=idx,
        day_in_cycle=idx + 1,
        label=label_from_phase(phase),
        cycle_length=cycle_length,
        period_length=period_length,
    )


# ----------------------------
# Learning from logs
# ----------------------------

def _field(bio: Any, name: str) -> Any:
    if bio is None:
        return None
    if isinstance(bio, Mapping):
        return bio.get(name)
    return getattr(bio, name, None)


def _flow_level(bio: Any) -> int:
    return _clamp_int(_field(bio, "menstrual_flow"), 0, 3, 0)


def _status_of(bio: Any) -> Optional[str]:
    raw = _field(bio, "menstrual_status")
    return raw if raw in ("period", "pms", "none") else None


def _is_period_day(bio: Any) -> bool:
    return _flow_level(bio) > 0 or _status_of(bio) == "period"


def auto_adjust_menstrual_settings(
    settings: MenstrualSettings,
    iso: str,
    bio: Any,
    prev_bio: Any = None,
    bio_map: Optional[Mapping[str, Any]] = None,
) -> Optional[MenstrualSettings]:
    """
    Nudge cycle settings from what was logged today.
    - period start: record it and blend the observed cycle gap (70/30)
    - period end: blend the observed run length into period_length
    - logged PMS: make sure at least 4 PMS days are predicted
    Returns None when nothing changed.
    """
    if bio is None:
        return None

    is_period = _is_period_day(bio)
    was_period = _is_period_day(prev_bio)
    started = is_period and not was_period
    ended = (not is_period) and was_period

    nxt = replace(
        settings,
        enabled=bool(settings.enabled),
        cycle_length=_clamp_int(settings.cycle_length, *C.CYCLE_LEN_RANGE, C.CYCLE_LEN_DEFAULT),
        period_length=_clamp_int(settings.period_length, *C.PERIOD_LEN_RANGE, C.PERIOD_LEN_DEFAULT),
    )
    changed = False

    if is_period and not nxt.enabled:
        nxt.enabled = True
        changed = True

    if started:
        last = nxt.last_period_start
        if last and parse_iso(last) is not None:
            observed = diff_days(iso, last)
            if C.CYCLE_LEN_RANGE[0] <= observed <= C.CYCLE_LEN_RANGE[1]:
                blended = _clamp_int(round_half_up(nxt.cycle_length * 0.7 + observed * 0.3), *C.CYCLE_LEN_RANGE, C.CYCLE_LEN_DEFAULT)
                if blended != nxt.cycle_length:
                    nxt.cycle_length = blended
                    changed = True
        if nxt.last_period_start != iso:
            nxt.last_period_start = iso
            changed = True

    if ended and bio_map:
        run = 0
        d = add_days(iso, -1)
        while run < 15 and _is_period_day(bio_map.get(d)):
            run += 1
            d = add_days(d, -1)
        if C.PERIOD_LEN_RANGE[0] <= run <= C.PERIOD_LEN_RANGE[1]:
            blended = _clamp_int(round_half_up(nxt.period_length * 0.7 + run * 0.3), *C.PERIOD_LEN_RANGE, C.PERIOD_LEN_DEFAULT)
            if blended != nxt.period_length:
                nxt.period_length = blended
                changed = True

    if _status_of(bio) == "pms":
        cur = _clamp_int(nxt.pms_days, 2, 10, 5)
        bumped = max(cur, 4)
        if bumped != nxt.pms_days:
            nxt.pms_days = bumped
            changed = True

    return nxt if changed else None
