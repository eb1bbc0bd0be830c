# shiftcare/rhythm.py
"""
Hour-by-hour battery simulation over a shift schedule.

Coarser than the daily recovery engine and independent of it: every hour is
classified as Work / Sleep / Rest from fixed shift clock windows, the battery
drains or charges at a flat rate, and each day is summarized by its lowest
battery inside the hours that matter for that shift.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from . import constants as C
from .dates import add_days, iso_range
from .numeric import clamp, round1, round_half_up

Schedule = Mapping[str, str]

WORK = "Work"
REST = "Rest"
SLEEP = "Sleep"


@dataclass
class HourResult:
    hour: int
    battery: float
    status: str
    change: float
    message: str


@dataclass
class HourContext:
    activity: str
    schedule_type: str               # Day | Eve | Night | Off
    night_start_iso: Optional[str] = None


@dataclass
class BatteryDay:
    date: str
    shift: str
    level: int                       # lowest battery in the evaluation window
    band: str                        # 위험 | 주의 | 양호
    color: str                       # red | orange | green
    notes: List[str] = field(default_factory=list)
    sleep_window: str = ""
    caffeine_cutoff: str = ""


class NurseBioRhythm:
    """Stateful hour stepper. consecutive_night_count is set by the caller before each hour."""

    max_battery = 100.0
    min_battery = 0.0

    def __init__(self, name: str = "간호사", start_battery: float = C.FORECAST_START_BATTERY):
        self.name = name
        self.battery = float(start_battery)
        self.consecutive_night_count = 0

    def circadian_penalty(self, hour: int) -> float:
        """Extra drain around 04:00, a bell shape over 02..06."""
        if 2 <= hour <= 6:
            distance = abs(hour - C.ZOMBIE_PEAK_HOUR)
            intensity = max(0.0, 1.0 - distance * C.ZOMBIE_FALLOFF)
            return C.PENALTY_ZOMBIE_ZONE * intensity
        return 0.0

    def generate_message(self, hour: int, status: str, battery: float, is_night_shift: bool) -> str:
        if status == SLEEP:
            if 8 <= hour <= 16:
                return "😴 암막 커튼 필수! 멜라토닌이 부족해요. 푹 주무세요."
            return "🌙 내일 근무를 위해 충전 중... 좋은 꿈 꾸세요."

        if status == WORK:
            if hour in (7, 15, 23):
                if battery > 70:
                    return f"💪 {self.name} 선생님, 인계 파이팅! 컨디션 좋네요."
                return "🔥 전쟁 같은 인계 시간... 정신 바짝 차려야 해요!"
            if 3 <= hour <= 5:
                if battery < 30:
                    return "🚨 [위험] 투약 사고 주의보! 반드시 더블 체크 하세요. 카페인 수혈 시급!"
                return "🧟‍♀️ 마의 시간 4시입니다. 스트레칭 한 번 하고 차트 보세요."
            if battery < 20:
                return "🪫 선생님 쓰러지기 일보 직전... 동료에게 도움을 요청하세요."
            if battery < 50:
                return "⚠️ 집중력이 떨어지고 있어요. 루틴 업무만 처리하고 복잡한 건 미루세요."
            return "💉 오늘도 평화로운 병동... 이기를 바랍니다."

        if status == REST:
            if battery < 30:
                return "🏠 제발 집에 가서 주무세요. 놀 체력이 아닙니다."
            if is_night_shift and hour < 14:
                return "☀️ 나이트 퇴근하셨군요! 선글라스 끼고 퇴근하세요 (수면 유도)."
            return "☕ 맛있는 거 먹고 넷플릭스 보면서 힐링하세요!"

        return "상태 확인 중..."

    def process_hour(self, hour: int, activity: str, schedule_type: str) -> HourResult:
        is_night = schedule_type == "Night"

        night_factor = 1.0
        if is_night and activity == WORK and self.consecutive_night_count >= 2:
            night_factor = C.PENALTY_CONSECUTIVE_NIGHT

        drain = 0.0
        charge = 0.0
        if activity == SLEEP:
            charge = C.CHARGE_NIGHT_SLEEP if (hour >= 22 or hour <= 8) else C.CHARGE_DAY_SLEEP
            self.battery += charge
        else:
            base = C.DRAIN_WORKING if activity == WORK else C.DRAIN_RESTING
            drain = (base + self.circadian_penalty(hour)) * night_factor
            self.battery -= drain

        self.battery = clamp(self.battery, self.min_battery, self.max_battery)
        return HourResult(
            hour=hour,
            battery=round1(self.battery),
            status=activity,
            change=round1(charge - drain),
            message=self.generate_message(hour, activity, self.battery, is_night),
        )


# ----------------------------
# Schedule -> hour context
# ----------------------------

_SLEEP_WINDOW = {
    "D": "23:00–07:00",
    "M": "00:00–08:00",
    "E": "01:00–09:00",
    "N": "10:30–17:30 (암실)",
    "OFF": "00:00–08:00 (자율)",
    "VAC": "00:00–08:30 (회복)",
}

_CAFFEINE_CUTOFF = {
    "D": "14:00 이전",
    "M": "15:00 이전",
    "E": "17:00 이전",
    "N": "03:00 이전",
    "OFF": "16:00 이전",
    "VAC": "16:00 이전",
}


def sleep_window(shift: str) -> str:
    return _SLEEP_WINDOW.get(shift, _SLEEP_WINDOW["OFF"])


def caffeine_cutoff(shift: str) -> str:
    return _CAFFEINE_CUTOFF.get(shift, _CAFFEINE_CUTOFF["OFF"])


def band_from_level(level: float) -> Tuple[str, str]:
    if level < C.BAND_DANGER:
        return "위험", "red"
    if level < C.BAND_CAUTION:
        return "주의", "orange"
    return "양호", "green"


def shift_to_schedule_type(shift: str) -> str:
    if shift == "D":
        return "Day"
    if shift in ("E", "M"):
        return "Eve"
    if shift == "N":
        return "Night"
    return "Off"


def hour_context(schedule: Schedule, date_iso: str, hour: int) -> HourContext:
    """What a nurse on this schedule is most likely doing at date/hour."""
    cur = schedule.get(date_iso) or "OFF"
    prev_iso = add_days(date_iso, -1)
    prev = schedule.get(prev_iso) or "OFF"

    # work blocks
    if prev == "N" and 0 <= hour <= 7:
        return HourContext(WORK, "Night", prev_iso)
    if cur == "D" and 7 <= hour <= 14:
        return HourContext(WORK, "Day")
    if cur == "M" and 11 <= hour <= 19:
        return HourContext(WORK, "Eve")
    if cur == "E" and 15 <= hour <= 22:
        return HourContext(WORK, "Eve")
    if cur == "N" and hour in (22, 23):
        return HourContext(WORK, "Night", date_iso)

    # sleep blocks
    if prev == "N" and 9 <= hour <= 13:
        return HourContext(SLEEP, shift_to_schedule_type(cur))
    if cur == "N" and 9 <= hour <= 13:
        return HourContext(SLEEP, "Night")
    if cur == "D" and (hour == 23 or hour <= 6):
        return HourContext(SLEEP, "Day")
    if cur == "E" and 1 <= hour <= 8:
        return HourContext(SLEEP, "Eve")
    if cur in ("OFF", "VAC") and hour <= 7:
        return HourContext(SLEEP, "Off")

    return HourContext(REST, shift_to_schedule_type(cur))


def consecutive_night_map(schedule: Schedule, start: str, end: str) -> Dict[str, int]:
    out: Dict[str, int] = {}
    count = 0
    for iso in iso_range(start, end):
        count = count + 1 if (schedule.get(iso) or "OFF") == "N" else 0
        out[iso] = count
    return out


def hours_to_evaluate(shift: str, date_iso: str) -> List[Tuple[str, int]]:
    """
    Hours whose minimum battery represents the day's risk.
    D/E: the shift hours. N: 22-23 plus 00-07 next day. Others: noon.
    """
    if shift == "D":
        return [(date_iso, 7 + i) for i in range(8)]
    if shift == "E":
        return [(date_iso, 15 + i) for i in range(8)]
    if shift == "N":
        nxt = add_days(date_iso, 1)
        return [(date_iso, 22), (date_iso, 23)] + [(nxt, h) for h in range(8)]
    return [(date_iso, 12)]


def simulate_hours(
    schedule: Schedule,
    start: str,
    end: str,
    start_battery: float = C.FORECAST_START_BATTERY,
    nurse_name: str = "간호사",
) -> Dict[Tuple[str, int], HourResult]:
    """Run the hour stepper over [start, end] inclusive."""
    night_map = consecutive_night_map(schedule, start, end)
    ai = NurseBioRhythm(nurse_name, start_battery)
    hourly: Dict[Tuple[str, int], HourResult] = {}
    for iso in iso_range(start, end):
        for hour in range(24):
            ctx = hour_context(schedule, iso, hour)
            if ctx.schedule_type == "Night" and ctx.activity == WORK:
                ai.consecutive_night_count = night_map.get(ctx.night_start_iso or iso, 0)
            else:
                ai.consecutive_night_count = 0
            hourly[(iso, hour)] = ai.process_hour(hour, ctx.activity, ctx.schedule_type)
    return hourly


def forecast_battery(
    schedule: Schedule,
    start_date: str,
    days: int,
    start_battery: float = C.FORECAST_START_BATTERY,
    nurse_name: str = "간호사",
) -> List[BatteryDay]:
    """
    Per-day battery outlook for `days` days from start_date.
    The simulation starts a week earlier so the first day is not a cold start.
    """
    if days <= 0:
        return []
    sim_start = add_days(start_date, -C.FORECAST_WARMUP_DAYS)
    sim_end = add_days(start_date, days + 1)
    hourly = simulate_hours(schedule, sim_start, sim_end, start_battery, nurse_name)

    out: List[BatteryDay] = []
    for i in range(days):
        iso = add_days(start_date, i)
        shift = schedule.get(iso) or "OFF"
        eval_hours = hours_to_evaluate(shift, iso)

        min_battery: Optional[float] = None
        min_at = eval_hours[0]
        for key in eval_hours:
            entry = hourly.get(key)
            if entry is None:
                continue
            if min_battery is None or entry.battery < min_battery:
                min_battery = entry.battery
                min_at = key
        if min_battery is None:
            min_battery = start_battery

        band, color = band_from_level(min_battery)
        notes: List[str] = []
        msg_entry = hourly.get(min_at)
        if msg_entry is not None and msg_entry.message:
            notes.append(msg_entry.message)
        if shift == "N":
            notes.append("🧠 새벽 3–5시는 실수 위험이 커져요. 중요한 투약/처치는 더블 체크를 루틴으로!")

        out.append(
            BatteryDay(
                date=iso,
                shift=shift,
                level=int(round_half_up(min_battery)),
                band=band,
                color=color,
                notes=notes,
                sleep_window=sleep_window(shift),
                caffeine_cutoff=caffeine_cutoff(shift),
            )
        )
    return out


def summarize_battery(days: List[BatteryDay]) -> Dict[str, int]:
    if not days:
        return {"avg": 0, "min": 0, "max": 0, "risk_days": 0, "caution_days": 0}
    levels = [d.level for d in days]
    return {
        "avg": int(round_half_up(sum(levels) / len(levels))),
        "min": min(levels),
        "max": max(levels),
        "risk_days": sum(1 for d in days if d.band == "위험"),
        "caution_days": sum(1 for d in days if d.band == "주의"),
    }
