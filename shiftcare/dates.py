# shiftcare/dates.py
from __future__ import annotations

import datetime as dt
import re
from typing import Any, Iterator, Optional, Union

DateLike = Union[str, dt.date]

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_iso_date(v: Any) -> bool:
    return isinstance(v, str) and bool(_ISO_RE.match(v)) and parse_iso(v) is not None


def parse_iso(s: Any) -> Optional[dt.date]:
    if isinstance(s, dt.datetime):
        return s.date()
    if isinstance(s, dt.date):
        return s
    try:
        return dt.date.fromisoformat(str(s).strip())
    except (TypeError, ValueError):
        return None


def to_iso(d: dt.date) -> str:
    return d.isoformat()


def _as_date(v: DateLike) -> dt.date:
    d = parse_iso(v)
    if d is None:
        raise ValueError(f"not an ISO date: {v!r}")
    return d


def add_days(iso: DateLike, days: int) -> str:
    return to_iso(_as_date(iso) + dt.timedelta(days=int(days)))


def diff_days(a: DateLike, b: DateLike) -> int:
    """Whole days from b to a (a - b)."""
    return (_as_date(a) - _as_date(b)).days


def iso_range(start: DateLike, end: DateLike) -> Iterator[str]:
    """Inclusive ascending range of ISO dates. Empty when end < start."""
    cur = _as_date(start)
    last = _as_date(end)
    while cur <= last:
        yield to_iso(cur)
        cur += dt.timedelta(days=1)
