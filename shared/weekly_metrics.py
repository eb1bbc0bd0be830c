from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from shiftcare.constants import SHIFTS

from .vitals import DailyVital


@dataclass
class ShiftStat:
    shift: str
    days: int
    avg_mental: float
    avg_body: float


@dataclass
class WardWeather:
    title: str
    detail: str
    top_tags: List[Tuple[str, int]]


def compute_shift_stats(vitals: List[DailyVital]) -> List[ShiftStat]:
    """Average battery per shift type, highest mental average first."""
    rows: List[ShiftStat] = []
    for s in SHIFTS:
        group = [v for v in vitals if v.shift == s]
        if not group:
            rows.append(ShiftStat(s, 0, 0.0, 0.0))
            continue
        rows.append(
            ShiftStat(
                shift=s,
                days=len(group),
                avg_mental=sum(v.mental_value for v in group) / len(group),
                avg_body=sum(v.body_value for v in group) / len(group),
            )
        )
    rows.sort(key=lambda r: r.avg_mental, reverse=True)
    return rows


def best_shift(stats: List[ShiftStat]) -> Optional[ShiftStat]:
    filled = [r for r in stats if r.days > 0]
    if not filled:
        return None
    best = filled[0]
    for r in filled:
        if r.avg_mental > best.avg_mental:
            best = r
    return best


def worst_shift(stats: List[ShiftStat]) -> Optional[ShiftStat]:
    filled = [r for r in stats if r.days > 0]
    if not filled:
        return None
    worst = filled[0]
    for r in filled:
        if r.avg_mental < worst.avg_mental:
            worst = r
    return worst


def best_and_worst_day(vitals: List[DailyVital]) -> Tuple[Optional[DailyVital], Optional[DailyVital]]:
    if not vitals:
        return None, None
    best = worst = vitals[0]
    for v in vitals:
        if v.mental_value > best.mental_value:
            best = v
        if v.mental_value < worst.mental_value:
            worst = v
    return best, worst


def compute_ward_weather(vitals: List[DailyVital]) -> WardWeather:
    """Mood 'weather' over the last 7 days plus the most used #tags."""
    last7 = vitals[-7:]
    freq: Counter = Counter()
    for v in last7:
        if v.emotion is None:
            continue
        freq.update(t for t in v.emotion.tags if t.startswith("#"))
    # stable order for equal counts: first seen wins
    top_tags = sorted(freq.items(), key=lambda kv: -kv[1])[:5]

    avg = sum(v.mental_value for v in last7) / max(1, len(last7))
    if avg >= 70:
        title = "매우 맑음 ☀️"
    elif avg >= 50:
        title = "대체로 맑음 🌤️"
    elif avg >= 35:
        title = "흐림 ☁️"
    else:
        title = "폭풍우 🌩️"

    if top_tags:
        detail = "최근 7일 키워드: " + " ".join(t for t, _ in top_tags[:3])
    else:
        detail = "최근 7일 키워드 기록이 없어요"
    return WardWeather(title, detail, top_tags)


def summarize_window(vitals: List[DailyVital]) -> Dict[str, float]:
    """Period summary used by the weekly view."""
    if not vitals:
        return {
            "days": 0, "avg_body": 0.0, "avg_mental": 0.0,
            "night_days": 0, "danger_days": 0, "warning_days": 0, "sleep_debt_end": 0.0,
        }
    n = len(vitals)
    return {
        "days": n,
        "avg_body": sum(v.body_value for v in vitals) / n,
        "avg_mental": sum(v.mental_value for v in vitals) / n,
        "night_days": sum(1 for v in vitals if v.shift == "N"),
        "danger_days": sum(1 for v in vitals if v.burnout.level == "danger"),
        "warning_days": sum(1 for v in vitals if v.burnout.level == "warning"),
        "sleep_debt_end": float(vitals[-1].engine.get("sleep_debt_hours", 0.0)),
    }
