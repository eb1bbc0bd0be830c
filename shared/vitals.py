# shared/vitals.py
"""
Caller side of the recovery engine: turns the stored app state (schedule,
daily logs, emotions, settings) into engine inputs and folds the engine over
consecutive days.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from domain.shift import count_nights_in_window, hours_between_shifts, normalize_shift, shift_length_hours
from shiftcare.coach import Burnout, burnout_from, factor_breakdown, tone_from_score
from shiftcare.dates import add_days, diff_days, is_iso_date, iso_range
from shiftcare.engine import DailyDiagnostics, DailyInputs, Profile, RecoveryEngine, default_state, get_engine
from shiftcare.menstrual import MenstrualContext, MenstrualSettings, menstrual_context_for_date
from shiftcare.numeric import clamp, round1

from .health_log import BioLog, Emotion, bio_from_mapping, emotion_from_mapping

logger = logging.getLogger(__name__)

# input_reliability = base + span * (core fields logged / core field count)
_RELIABILITY_BASE = 0.4
_RELIABILITY_SPAN = 0.6
_CORE_FIELDS = ("sleep_hours", "stress", "activity", "mood")

_ESTIMATED_FLAGS = {
    "sleep_hours": "estimated_sleep",
    "stress": "estimated_stress",
    "activity": "estimated_activity",
    "mood": "estimated_mood",
    "caffeine_mg": "estimated_caffeine",
}


@dataclass
class AppSettings:
    menstrual: MenstrualSettings = field(default_factory=MenstrualSettings)
    profile: Optional[Profile] = None
    default_schedule_pattern: str = "D2E2N2M2OFF2"


@dataclass
class AppState:
    schedule: Dict[str, str] = field(default_factory=dict)
    notes: Dict[str, str] = field(default_factory=dict)
    emotions: Dict[str, Emotion] = field(default_factory=dict)
    bio: Dict[str, BioLog] = field(default_factory=dict)
    settings: AppSettings = field(default_factory=AppSettings)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AppState":
        """Parse an app-state export. Entries with non-ISO keys are dropped."""
        raw = raw or {}

        def _dated(obj: Any) -> Dict[str, Any]:
            if not isinstance(obj, dict):
                return {}
            out = {}
            for k, v in obj.items():
                if is_iso_date(k) and v is not None:
                    out[k] = v
                else:
                    logger.debug("dropping state entry %r", k)
            return out

        schedule = {k: normalize_shift(v) for k, v in _dated(raw.get("schedule")).items()}
        notes = {k: str(v) for k, v in _dated(raw.get("notes")).items()}
        emotions: Dict[str, Emotion] = {}
        for k, v in _dated(raw.get("emotions")).items():
            emo = emotion_from_mapping(v)
            if emo is not None:
                emotions[k] = emo
        bio = {k: bio_from_mapping(v) for k, v in _dated(raw.get("bio")).items()}
        return cls(schedule, notes, emotions, bio, _settings_from_dict(raw.get("settings")))


def _settings_from_dict(raw: Any) -> AppSettings:
    if not isinstance(raw, dict):
        return AppSettings()
    m = raw.get("menstrual")
    if not isinstance(m, dict):
        m = {}
    p = raw.get("profile")
    defaults = MenstrualSettings()
    menstrual = MenstrualSettings(
        enabled=bool(m.get("enabled", False)),
        last_period_start=m.get("lastPeriodStart", m.get("last_period_start", m.get("startISO"))),
        cycle_length=m.get("cycleLength", m.get("cycle_length", defaults.cycle_length)),
        period_length=m.get("periodLength", m.get("period_length", defaults.period_length)),
        pms_days=m.get("pmsDays", m.get("pms_days", defaults.pms_days)),
    )
    profile = None
    if isinstance(p, dict):
        profile = Profile(
            chronotype=p.get("chronotype", Profile.chronotype),
            caffeine_sensitivity=p.get("caffeineSensitivity", p.get("caffeine_sensitivity", Profile.caffeine_sensitivity)),
        )
    pattern = str(raw.get("defaultSchedulePattern") or AppSettings.default_schedule_pattern)
    return AppSettings(menstrual=menstrual, profile=profile, default_schedule_pattern=pattern)


@dataclass
class DailyVital:
    date_iso: str
    shift: str
    bio: BioLog
    menstrual: MenstrualContext
    body_value: float
    body_change: float
    body_tone: str
    mental_value: float
    mental_change: float
    mental_tone: str
    burnout: Burnout
    factors: Dict[str, float]
    engine: Dict[str, float]
    diagnostics: DailyDiagnostics
    note: Optional[str] = None
    emotion: Optional[Emotion] = None


# ----------------------------
# Input assembly
# ----------------------------

def _has_any_input(bio: Optional[BioLog], emotion: Optional[Emotion]) -> bool:
    return emotion is not None or (bio is not None and not bio.is_empty())


def _input_reliability(bio: BioLog, mood: Optional[int]) -> float:
    logged = sum(1 for name in _CORE_FIELDS if (mood if name == "mood" else getattr(bio, name)) is not None)
    return clamp(_RELIABILITY_BASE + _RELIABILITY_SPAN * logged / len(_CORE_FIELDS), 0.0, 1.0)


def build_daily_inputs(
    state: AppState,
    iso: str,
    days_since_any_input: Optional[int],
    has_prior_sleep_log: bool,
) -> DailyInputs:
    """One day of engine inputs. Fields that were not logged stay None."""
    shift = normalize_shift(state.schedule.get(iso))
    prev_iso = add_days(iso, -1)
    prev_shift = normalize_shift(state.schedule.get(prev_iso))
    bio = state.bio.get(iso) or BioLog()
    emotion = state.emotions.get(iso)
    ms = state.settings.menstrual

    mood = emotion.mood if emotion is not None else bio.mood

    kwargs: Dict[str, Any] = {name: bio.is_estimated(key) for key, name in _ESTIMATED_FLAGS.items()}
    return DailyInputs(
        date_iso=iso,
        shift=shift,
        sleep_hours=bio.sleep_hours,
        nap_hours=bio.nap_hours,
        sleep_quality=bio.sleep_quality,
        sleep_timing=bio.sleep_timing,
        caffeine_mg=bio.caffeine_mg,
        caffeine_last_at=bio.caffeine_last_at,
        stress_lvl=None if bio.stress is None else bio.stress + 1,
        activity_lvl=None if bio.activity is None else bio.activity + 1,
        mood_lvl=mood,
        fatigue_lvl=bio.fatigue_level,
        lmp_date_iso=ms.last_period_start if ms.enabled else None,
        cycle_len_avg=ms.cycle_length,
        period_len=ms.period_length,
        symptom_severity=bio.symptom_severity,
        menstrual_status=bio.menstrual_status,
        menstrual_flow=bio.menstrual_flow,
        nights_in_30=count_nights_in_window(state.schedule, iso, 30),
        quick_return_hours=hours_between_shifts(prev_iso, prev_shift, iso, shift),
        shift_length_hours=shift_length_hours(iso, shift),
        overtime_hours=bio.shift_overtime_hours,
        input_reliability=_input_reliability(bio, mood),
        days_since_any_input=days_since_any_input,
        has_prior_sleep_log=has_prior_sleep_log,
        **kwargs,
    )


def _engine_snapshot(next_state, d: DailyDiagnostics) -> Dict[str, float]:
    return {
        "sleep_debt_hours": clamp(next_state.sleep_debt, 0, 20),
        "night_streak": int(next_state.night_streak),
        "cmf": d.cmf,
        "srs": d.srs,
        "csd": d.csd,
        "csi": d.csi,
        "sri": d.sri,
        "cif": d.cif,
        "slf": d.slf,
        "mif": d.mif,
        "mf": d.mf,
        "caf_sleep": d.caf_sleep,
        "debt_n": d.debt_n,
        "sleep_eff": d.sleep_eff,
        "input_reliability": d.input_reliability,
        "uncertainty_penalty": d.uncertainty_penalty,
        "stale_penalty": d.stale_penalty,
    }


def _earliest_stored_date(state: AppState) -> Optional[str]:
    keys = [k for k in list(state.schedule) + list(state.bio) + list(state.emotions) if k]
    return min(keys) if keys else None


# ----------------------------
# Fold
# ----------------------------

def compute_vitals_range(
    state: AppState,
    start: str,
    end: str,
    engine: Optional[RecoveryEngine] = None,
) -> List[DailyVital]:
    """
    Daily vitals for [start, end].

    The engine carries hidden state, so the fold starts at the earliest stored
    date (or start, whichever is earlier) and only the requested range is returned.
    """
    if not is_iso_date(start) or not is_iso_date(end) or end < start:
        return []

    eng = engine or get_engine()
    earliest = _earliest_stored_date(state)
    compute_start = earliest if earliest and earliest < start else start
    profile = state.settings.profile
    logger.debug("vitals fold %s..%s (requested %s..%s, engine %s)", compute_start, end, start, end, eng.version)

    cur = default_state()
    last_input_iso: Optional[str] = None
    has_prior_sleep_log = False
    out: List[DailyVital] = []

    for iso in iso_range(compute_start, end):
        bio = state.bio.get(iso)
        emotion = state.emotions.get(iso)
        if _has_any_input(bio, emotion):
            last_input_iso = iso
        days_since = diff_days(iso, last_input_iso) if last_input_iso else None

        inputs = build_daily_inputs(state, iso, days_since, has_prior_sleep_log)
        res = eng.step(cur, inputs, profile)
        prev = cur
        cur = res.next_state
        if bio is not None and bio.sleep_hours is not None and not bio.is_estimated("sleep_hours"):
            has_prior_sleep_log = True

        if iso < start:
            continue

        out.append(
            DailyVital(
                date_iso=iso,
                shift=inputs.shift,
                bio=bio or BioLog(),
                menstrual=menstrual_context_for_date(iso, state.settings.menstrual),
                body_value=cur.bb,
                body_change=round1(cur.bb - prev.bb),
                body_tone=tone_from_score(cur.bb),
                mental_value=cur.mb,
                mental_change=round1(cur.mb - prev.mb),
                mental_tone=tone_from_score(cur.mb),
                burnout=burnout_from(cur.bb, cur.mb, inputs.shift),
                factors=factor_breakdown(res.diagnostics),
                engine=_engine_snapshot(cur, res.diagnostics),
                diagnostics=res.diagnostics,
                note=state.notes.get(iso),
                emotion=emotion,
            )
        )
    return out


def vital_map_by_iso(vitals: List[DailyVital]) -> Dict[str, DailyVital]:
    return {v.date_iso: v for v in vitals or [] if v and v.date_iso}
