# shiftcare/coach.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .numeric import clamp

FACTOR_KEYS = ("sleep", "stress", "activity", "shift", "caffeine", "menstrual", "mood")

_FACTOR_LABELS = {
    "sleep": "수면",
    "stress": "스트레스",
    "activity": "활동량",
    "shift": "근무 리듬",
    "caffeine": "카페인",
    "menstrual": "생리 주기",
    "mood": "기분",
}


@dataclass
class Burnout:
    level: str     # ok | warning | danger
    reason: str


def tone_from_score(score: float) -> str:
    """0..100 -> red / orange / green."""
    if score < 40:
        return "red"
    if score < 60:
        return "orange"
    return "green"


def burnout_from(body: float, mental: float, shift: str) -> Burnout:
    if body < 20 or mental < 25:
        reason = "나이트 + 저회복 구간입니다. 실수/과부하 주의" if shift == "N" else "회복이 많이 부족해요. 오늘은 생존 모드"
        return Burnout("danger", reason)
    if body < 35 or mental < 40:
        reason = "나이트/수면 영향이 커요. 루틴 업무 우선" if shift == "N" else "피로 누적 신호. 쉬는 시간 확보"
        return Burnout("warning", reason)
    return Burnout("ok", "컨디션 안정 구간")


def _get(d: Any, name: str, default: float) -> float:
    v = d.get(name, default) if isinstance(d, dict) else getattr(d, name, default)
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def factor_breakdown(diagnostics: Any) -> Dict[str, float]:
    """
    Share (0..1, sums to 1) of each drain factor for one day.
    All zeros when nothing drained.
    """
    sri = _get(diagnostics, "sri", 1.0)
    impacts = {
        "sleep": clamp((1 - sri) + _get(diagnostics, "debt_n", 0.0), 0, 2),
        "stress": clamp(_get(diagnostics, "slf", 0.0), 0, 1),
        "activity": clamp(_get(diagnostics, "activity_n", 0.0), 0, 1),
        "shift": clamp(_get(diagnostics, "csi", 0.0), 0, 1),
        "caffeine": clamp(1 - _get(diagnostics, "cif", 1.0), 0, 1),
        "menstrual": clamp(1 - _get(diagnostics, "mif", 1.0), 0, 1),
        "mood": clamp(_get(diagnostics, "mood_bad_n", 0.0) + (1 - _get(diagnostics, "mf", 1.0)), 0, 1),
    }
    total = sum(impacts.values())
    if total <= 0:
        return {k: 0.0 for k in FACTOR_KEYS}
    return {k: impacts[k] / total for k in FACTOR_KEYS}


def top_factors(factors: Dict[str, float], max_n: int = 2) -> List[str]:
    ranked = sorted(((v, k) for k, v in factors.items() if v > 0), reverse=True)
    return [k for _, k in ranked[:max_n]]


def interpret_vital(vital: Any) -> List[str]:
    """
    Short suggestion-style insights for one day.
    Tone: "~일 수 있어요", "~가 도움이 될 수 있어요"
    """
    insights: List[str] = []
    body = vital.body_value
    mental = vital.mental_value
    engine = vital.engine or {}

    top = top_factors(vital.factors or {})
    if top:
        labels = ", ".join(_FACTOR_LABELS[k] for k in top)
        insights.append(f"오늘 배터리를 가장 많이 깎은 요인은 **{labels}**일 수 있어요.")

    debt = float(engine.get("sleep_debt_hours", 0.0))
    if debt >= 4:
        insights.append(f"누적 수면부채가 약 {debt:.1f}시간이에요. 다음 오프에 1–2시간 더 자는 것이 회복에 도움이 될 수 있어요.")

    if vital.shift == "N":
        streak = int(engine.get("night_streak", 0))
        if streak >= 3:
            insights.append(f"나이트 {streak}연속 구간이에요. 퇴근길 햇빛 차단과 암실 수면이 도움이 될 수 있어요.")
        else:
            insights.append("나이트 근무일이에요. 새벽 3–5시에는 중요한 처치를 더블 체크하는 것이 안전할 수 있어요.")

    if float(engine.get("csd", 0.0)) >= 0.2:
        insights.append("잠들 무렵 카페인이 남아 있을 수 있어요. 마지막 커피 시간을 조금 앞당겨 보세요.")

    if body >= 70 and mental >= 70:
        insights.append("몸과 마음 모두 안정 구간이에요. 지금 리듬을 유지하는 것이 좋을 수 있어요.")
    elif mental < body - 15:
        insights.append("몸보다 마음 배터리가 더 낮아요. 짧은 휴식이나 대화가 회복에 도움이 될 수 있어요.")
    elif body < mental - 15:
        insights.append("마음보다 몸 배터리가 더 낮아요. 수분과 스트레칭, 일찍 잠들기가 도움이 될 수 있어요.")

    if vital.burnout.level != "ok":
        insights.append(vital.burnout.reason)
    return insights
