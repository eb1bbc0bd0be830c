from __future__ import annotations

import datetime as dt
import re
from typing import Dict, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from shiftcare.constants import SHIFTS
from shiftcare.dates import add_days, parse_iso

TZ = ZoneInfo("Asia/Seoul")

# (start hh, start mm, end hh, end mm, end day offset)
_SHIFT_CLOCK: Dict[str, Tuple[int, int, int, int, int]] = {
    "D": (7, 0, 15, 0, 0),
    "M": (11, 0, 19, 0, 0),
    "E": (15, 0, 23, 0, 0),
    "N": (23, 0, 7, 0, 1),
}

_MAX_PATTERN_COUNT = 365


def normalize_shift(v) -> str:
    raw = str(v or "OFF").strip().upper()
    return raw if raw in SHIFTS else "OFF"


def shift_times(iso: str, shift: str) -> Optional[Tuple[dt.datetime, dt.datetime]]:
    """Clock window of a working shift in local time. OFF/VAC -> None."""
    clock = _SHIFT_CLOCK.get(normalize_shift(shift))
    d = parse_iso(iso)
    if clock is None or d is None:
        return None
    sh, sm, eh, em, offset = clock
    start = dt.datetime(d.year, d.month, d.day, sh, sm, tzinfo=TZ)
    end_day = d + dt.timedelta(days=offset)
    end = dt.datetime(end_day.year, end_day.month, end_day.day, eh, em, tzinfo=TZ)
    return start, end


def shift_length_hours(iso: str, shift: str) -> float:
    w = shift_times(iso, shift)
    if not w:
        return 0.0
    return (w[1] - w[0]).total_seconds() / 3600.0


def hours_between_shifts(prev_iso: str, prev_shift: str, iso: str, shift: str) -> Optional[float]:
    """Rest gap between the end of yesterday's shift and the start of today's. None if either is off."""
    prev = shift_times(prev_iso, prev_shift)
    cur = shift_times(iso, shift)
    if not prev or not cur:
        return None
    return (cur[0] - prev[1]).total_seconds() / 3600.0


def count_nights_in_window(schedule: Mapping[str, Optional[str]], iso: str, window_days: int = 30) -> int:
    """Night shifts in the `window_days` days ending on iso (inclusive)."""
    count = 0
    for i in range(max(0, int(window_days))):
        if normalize_shift(schedule.get(add_days(iso, -i))) == "N":
            count += 1
    return count


# ----------------------------
# Pattern parsing
# ----------------------------

_SEPARATORS = re.compile(r"[\s,/|]+")
_PART_RE = re.compile(r"^([A-Z가-힣\-_0]+)(\d+)?$")
_TOKEN_RE = re.compile(r"(OFF|VAC|VA|D|E|N|M|O|-|_|0|V)(\d+)?")
_BARE_TOKEN_RE = re.compile(r"(OFF|VAC|VA|D|E|N|M|O|-|_|0|V)")

_TOKEN_MAP = {
    "OFF": "OFF", "O": "OFF", "-": "OFF", "_": "OFF", "0": "OFF",
    "VAC": "VAC", "VA": "VAC", "V": "VAC",
    "D": "D", "DAY": "D",
    "E": "E", "EVE": "E",
    "N": "N", "NIGHT": "N",
    "M": "M", "MID": "M", "MIDDLE": "M",
}

# loose Korean hints, checked in order
_KOREAN_HINTS = (
    (("오",), "OFF"),
    (("연", "휴"), "VAC"),
    (("데", "주"), "D"),
    (("나",), "N"),
    (("이", "석"), "E"),
    (("미",), "M"),
)


def _map_token(t: str) -> Optional[str]:
    if t in _TOKEN_MAP:
        return _TOKEN_MAP[t]
    for hints, shift in _KOREAN_HINTS:
        if any(h in t for h in hints):
            return shift
    return None


def _clamp_count(raw: Optional[str]) -> int:
    if not raw:
        return 1
    return max(1, min(_MAX_PATTERN_COUNT, int(raw)))


def parse_pattern(text: str) -> List[str]:
    """
    Parse a rotation pattern into a list of shift codes.

    Accepts "D D E E N N OFF OFF", "DDEENN--", "D2 E2 N2 OFF2", "D2E2N2OFF2".
    Unknown tokens are skipped.
    """
    up = str(text or "").strip().upper()
    if not up:
        return []

    out: List[str] = []
    if _SEPARATORS.search(up):
        for part in filter(None, _SEPARATORS.split(up)):
            m = _PART_RE.match(part)
            base = m.group(1) if m else part
            s = _map_token(base)
            if s:
                out.extend([s] * _clamp_count(m.group(2) if m else None))
                continue
            # run-together tokens inside one part, e.g. "DDEE"
            for tk in _BARE_TOKEN_RE.findall(base):
                ss = _map_token(tk)
                if ss:
                    out.append(ss)
        return out

    for base, count in _TOKEN_RE.findall(up):
        s = _map_token(base)
        if s:
            out.extend([s] * _clamp_count(count))
    return out


def apply_pattern_to_schedule(
    pattern: List[str],
    start_iso: str,
    days: int,
    mode: str = "overwrite",
    existing: Optional[Mapping[str, Optional[str]]] = None,
) -> Dict[str, str]:
    """
    Repeat `pattern` from start_iso for `days` days and return the patch.
    mode="fill-empty" skips dates that already have a shift.
    """
    if not pattern or days <= 0:
        return {}
    existing = existing or {}
    total = max(1, min(_MAX_PATTERN_COUNT, int(days)))
    patch: Dict[str, str] = {}
    for i in range(total):
        iso = add_days(start_iso, i)
        val = pattern[i % len(pattern)]
        if mode == "fill-empty" and existing.get(iso) is not None:
            continue
        patch[iso] = val
    return patch
