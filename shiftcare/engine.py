# shiftcare/engine.py
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol
import logging
import math

from . import constants as C
from .caffeine import caffeine_at_sleep, caffeine_impact_factor, circadian_factor, resolve_sleep_timing
from .menstrual import menstrual_phase, resolve_phase
from .numeric import clamp, num, round1
from .sleep_debt import update_sleep_debt, update_sleep_debt_legacy
from .strain import compute_csi

logger = logging.getLogger(__name__)


# ----------------------------
# Data models
# ----------------------------

@dataclass
class Profile:
    """Static per-user settings. chronotype: 0 = evening type .. 1 = morning type."""
    chronotype: float = C.CHRONOTYPE_DEFAULT
    caffeine_sensitivity: float = C.CAFFEINE_SENSITIVITY_DEFAULT


@dataclass
class HiddenState:
    """The only thing carried from one day to the next."""
    bb: float = C.DEFAULT_BB
    mb: float = C.DEFAULT_MB
    prev_shift: str = "OFF"
    night_streak: int = 0
    sleep_debt: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DailyInputs:
    """
    One calendar day of raw inputs.
    None on any optional field means "not logged"; do not pass 0 for that.
    """
    date_iso: str
    shift: str = "OFF"

    sleep_hours: Optional[float] = None
    nap_hours: Optional[float] = None
    sleep_quality: Optional[int] = None        # 1..5
    sleep_timing: Optional[str] = None         # auto | night | day | mixed

    caffeine_mg: Optional[float] = None
    caffeine_last_at: Optional[str] = None     # HH:mm

    stress_lvl: Optional[float] = None         # 1..4
    activity_lvl: Optional[float] = None       # 1..4
    mood_lvl: Optional[float] = None           # 1..5
    fatigue_lvl: Optional[float] = None        # 0..10

    lmp_date_iso: Optional[str] = None
    cycle_len_avg: Optional[float] = None
    period_len: Optional[float] = None
    symptom_severity: Optional[float] = None   # 0..3
    menstrual_status: Optional[str] = None     # none | pms | period
    menstrual_flow: Optional[float] = None     # 0..3

    night_streak: Optional[int] = None
    nights_in_30: Optional[int] = None
    quick_return_hours: Optional[float] = None
    shift_length_hours: Optional[float] = None
    overtime_hours: Optional[float] = None

    # reliability metadata
    input_reliability: Optional[float] = None  # 0..1, None = fully reliable
    days_since_any_input: Optional[int] = None
    has_prior_sleep_log: Optional[bool] = None
    estimated_sleep: bool = False
    estimated_stress: bool = False
    estimated_activity: bool = False
    estimated_mood: bool = False
    estimated_caffeine: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "DailyInputs":
        """Build from a dict using either snake_case or the app's camelCase keys. Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for k, v in raw.items():
            name = _INPUT_ALIASES.get(k, k)
            if name in known:
                kwargs[name] = v
        if "date_iso" not in kwargs:
            kwargs["date_iso"] = str(raw.get("date", ""))
        return cls(**kwargs)

    def estimated_count(self) -> int:
        return sum(
            1
            for flag in (
                self.estimated_sleep,
                self.estimated_stress,
                self.estimated_activity,
                self.estimated_mood,
                self.estimated_caffeine,
            )
            if flag
        )


_INPUT_ALIASES: Dict[str, str] = {
    "dateISO": "date_iso",
    "sleepHours": "sleep_hours",
    "napHours": "nap_hours",
    "sleepQuality": "sleep_quality",
    "sleepTiming": "sleep_timing",
    "caffeineMg": "caffeine_mg",
    "caffeineLastAt": "caffeine_last_at",
    "stressLvl": "stress_lvl",
    "activityLvl": "activity_lvl",
    "moodLvl": "mood_lvl",
    "fatigueLvl": "fatigue_lvl",
    "lmpDateISO": "lmp_date_iso",
    "cycleLenAvg": "cycle_len_avg",
    "periodLen": "period_len",
    "symptomSeverity": "symptom_severity",
    "menstrualStatus": "menstrual_status",
    "menstrualFlow": "menstrual_flow",
    "nightStreak": "night_streak",
    "nightsIn30": "nights_in_30",
    "quickReturnHours": "quick_return_hours",
    "shiftLengthHours": "shift_length_hours",
    "overtimeHours": "overtime_hours",
    "inputReliability": "input_reliability",
    "daysSinceAnyInput": "days_since_any_input",
    "hasPriorSleepLog": "has_prior_sleep_log",
    "estimatedSleep": "estimated_sleep",
    "estimatedStress": "estimated_stress",
    "estimatedActivity": "estimated_activity",
    "estimatedMood": "estimated_mood",
    "estimatedCaffeine": "estimated_caffeine",
}


@dataclass
class DailyDiagnostics:
    # normalized sub-scores
    stress_n: float
    activity_n: float
    mood_bad_n: float
    fatigue_n: float
    sleep_eff: float
    sleep_n: float
    caf_n: float
    sym_n: float

    # core indices
    sri: float
    csi: float
    slf: float
    mif: float
    cif: float
    mf: float

    # intermediate
    sleep_debt_next: float
    debt_n: float
    caf_sleep: float
    csd: float
    phase: str

    # aggregation
    body_penalty: float
    mental_penalty: float
    body_target: float
    mental_target: float
    recovery_score: float
    uncertainty_penalty: float
    stale_penalty: float
    input_reliability: float

    # UI-facing
    cmf: float
    men_phys: float
    men_mood: float
    sleep_suppress: float
    srs: float
    phys_depl: float
    ment_depl: float
    phys_recv: float
    ment_recv: float
    sat_bb: float
    sat_mb: float
    d_bb: float
    d_mb: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StepResult:
    next_state: HiddenState
    diagnostics: DailyDiagnostics


class RecoveryEngine(Protocol):
    version: str

    def step(self, state: HiddenState, inputs: DailyInputs, profile: Optional[Profile] = None) -> StepResult:
        ...


# ----------------------------
# Helpers
# ----------------------------

def default_state() -> HiddenState:
    return HiddenState()


def sat(batt: float) -> float:
    """How depleted a battery reads on a log curve (0 = full, 1 = empty)."""
    denom = math.log(1 + 100 / C.SAT_KNEE)
    ratio = (100 - batt) / C.SAT_KNEE
    if not math.isfinite(ratio) or ratio <= -1:
        return 0.0
    return clamp(math.log(1 + ratio) / denom, 0.0, 1.0)


def _shift(x: Any) -> str:
    s = str(x or "OFF").strip().upper()
    return s if s in C.SHIFTS else "OFF"


def _is_logged(x: Any) -> bool:
    v = num(x, math.nan)
    return math.isfinite(v)


def _profile_values(profile: Optional[Profile]):
    p = profile or Profile()
    chronotype = clamp(num(p.chronotype, C.CHRONOTYPE_DEFAULT), 0.0, 1.0)
    sensitivity = clamp(num(p.caffeine_sensitivity, C.CAFFEINE_SENSITIVITY_DEFAULT), *C.CAFFEINE_SENSITIVITY_RANGE)
    return chronotype, sensitivity


def _aggregate(penalties: Mapping[str, float], weights: Mapping[str, float]) -> float:
    return sum(w * penalties.get(k, 0.0) for k, w in weights.items())


def _smooth(prev: float, target: float) -> float:
    return clamp(round1(prev * C.SMOOTH_PREV + target * C.SMOOTH_TARGET), 0.0, 100.0)


def _ui_fields(mif: float, csd: float, slf: float, csi: float, debt_n: float,
               body_penalty: float, mental_penalty: float,
               body_target: float, mental_target: float) -> Dict[str, float]:
    menstrual_impact = clamp(1 - mif, 0.0, 0.6)
    return {
        "men_phys": clamp(menstrual_impact * 0.6, 0.0, 0.6),
        "men_mood": clamp(menstrual_impact * 0.4, 0.0, 0.6),
        "sleep_suppress": clamp(0.35 * csd + 0.25 * slf + 0.20 * csi + 0.20 * debt_n, 0.0, C.SLEEP_SUPPRESS_MAX),
        "phys_depl": clamp(body_penalty / 100, 0.0, 1.0),
        "ment_depl": clamp(mental_penalty / 100, 0.0, 1.0),
        "phys_recv": clamp(body_target / 100, 0.0, 1.0),
        "ment_recv": clamp(mental_target / 100, 0.0, 1.0),
    }


def _norm_levels(inputs: DailyInputs) -> Dict[str, float]:
    stress = clamp(num(inputs.stress_lvl, 1), 1, 4)
    activity = clamp(num(inputs.activity_lvl, 1), 1, 4)
    mood = clamp(num(inputs.mood_lvl, 3), 1, 5)
    fatigue = clamp(num(inputs.fatigue_lvl, 0), 0, C.FATIGUE_MAX)
    symptom = clamp(num(inputs.symptom_severity, 0), 0, C.SYMPTOM_MAX)
    return {
        "stress_n": (stress - 1) / 3,
        "activity_n": (activity - 1) / 3,
        "mood_bad_n": (5 - mood) / 4,
        "fatigue_n": clamp(fatigue / C.FATIGUE_MAX, 0.0, 1.0),
        "sym_n": clamp(symptom / C.SYMPTOM_MAX, 0.0, 1.0),
    }


def _next_night_streak(state: HiddenState, inputs: DailyInputs, shift: str) -> int:
    if inputs.night_streak is not None:
        v = num(inputs.night_streak, 0)
        return int(clamp(v, 0, C.NIGHT_STREAK_MAX))
    prev = int(clamp(num(state.night_streak, 0), 0, C.NIGHT_STREAK_MAX))
    return min(C.NIGHT_STREAK_MAX, prev + 1) if shift == "N" else 0


# ----------------------------
# Engines
# ----------------------------

class RecoveryEngineV4:
    """
    Current engine.

    Unlogged sleep falls back to a shift baseline instead of zero, sleep debt
    decays (not resets) across gaps, menstrual impact comes from a per-phase
    table, and stale or imputed input costs points via the uncertainty and
    staleness penalties.
    """
    version = "v4"

    def step(self, state: HiddenState, inputs: DailyInputs, profile: Optional[Profile] = None) -> StepResult:
        chronotype, sensitivity = _profile_values(profile)
        shift = _shift(inputs.shift)
        prev_bb = clamp(num(state.bb, C.DEFAULT_BB), 0.0, 100.0)
        prev_mb = clamp(num(state.mb, C.DEFAULT_MB), 0.0, 100.0)
        prev_debt = clamp(num(state.sleep_debt, 0.0), 0.0, C.SLEEP_DEBT_MAX)

        lv = _norm_levels(inputs)
        timing = resolve_sleep_timing(inputs.sleep_timing, shift)

        # caffeine
        caffeine_mg = clamp(num(inputs.caffeine_mg, 0), 0, C.CAFFEINE_MG_MAX)
        caf_remaining = caffeine_at_sleep(caffeine_mg, inputs.caffeine_last_at, shift, timing, sensitivity)
        caf_sleep = clamp(caf_remaining / C.CAF_SLEEP_SCALE, 0.0, 1.0)
        cif = caffeine_impact_factor(caf_remaining)
        csd = clamp(1 - cif, 0.0, 1.0)

        # sleep recovery
        sleep_logged = _is_logged(inputs.sleep_hours)
        total_sleep: Optional[float] = None
        if sleep_logged:
            sleep_hours = clamp(num(inputs.sleep_hours, 0), 0, C.SLEEP_HOURS_MAX)
            nap_hours = clamp(num(inputs.nap_hours, 0), 0, C.NAP_HOURS_MAX)
            total_sleep = clamp(sleep_hours + C.NAP_WEIGHT * nap_hours, 0, C.SLEEP_HOURS_MAX)
            hours_norm = clamp(total_sleep / C.SLEEP_HOURS_NORM, 0, C.HOURS_NORM_CAP)
            if _is_logged(inputs.sleep_quality):
                quality_norm = clamp(
                    C.QUALITY_BASE + C.QUALITY_STEP * num(inputs.sleep_quality, 5), *C.QUALITY_RANGE
                )
            else:
                quality_norm = 1.0
            sri = clamp(hours_norm * quality_norm * circadian_factor(timing), 0.0, 1.0) * cif
        else:
            baseline = C.UNLOGGED_SRI_BASELINE.get(shift, C.UNLOGGED_SRI_DEFAULT)
            drag = clamp(prev_debt / C.UNLOGGED_DEBT_DRAG_DIV, 0.0, C.UNLOGGED_DEBT_DRAG_MAX)
            sri = max(C.UNLOGGED_SRI_FLOOR, baseline - drag)
        sri = clamp(sri, 0.0, 1.0)

        has_prior = True if inputs.has_prior_sleep_log is None else bool(inputs.has_prior_sleep_log)
        debt = update_sleep_debt(
            shift=shift,
            sleep_for_debt=total_sleep,
            sleep_debt_prev=prev_debt,
            has_sleep_duration_log=sleep_logged and not inputs.estimated_sleep,
            has_prior_sleep_log=has_prior,
            prev_shift=_shift(state.prev_shift),
        )

        night_streak = _next_night_streak(state, inputs, shift)
        csi = compute_csi(
            shift=shift,
            night_streak=night_streak,
            nights_in_30=inputs.nights_in_30,
            quick_return_hours=inputs.quick_return_hours,
            shift_length_hours=inputs.shift_length_hours,
            overtime_hours=inputs.overtime_hours,
            chronotype=chronotype,
        )

        slf = clamp(C.SLF_STRESS_WEIGHT * lv["stress_n"] + C.SLF_FATIGUE_WEIGHT * lv["fatigue_n"], 0.0, 1.0)
        mf = clamp(1 - C.MF_SLOPE * lv["mood_bad_n"], C.MF_FLOOR, 1.0)

        predicted = menstrual_phase(inputs.date_iso, inputs.lmp_date_iso, inputs.cycle_len_avg, inputs.period_len)
        phase = resolve_phase(predicted.phase, inputs.menstrual_status, inputs.menstrual_flow)
        flow = clamp(num(inputs.menstrual_flow, 0), 0, C.FLOW_MAX)
        impact = C.PHASE_IMPACT.get(phase, 0.0) + lv["sym_n"] * C.MIF_SYMPTOM_WEIGHT + flow * C.MIF_FLOW_WEIGHT
        if shift == "N" and phase in ("period", "pms"):
            impact += C.MIF_NIGHT_BLEED_PENALTY
        mif = clamp(1 - impact, C.MIF_FLOOR, 1.0)

        reliability = clamp(num(inputs.input_reliability, 1.0), 0.0, 1.0)
        reliability = clamp(reliability - C.ESTIMATED_FIELD_RELIABILITY_COST * inputs.estimated_count(), 0.0, 1.0)
        uncertainty_penalty = clamp((1 - reliability) * C.UNCERTAINTY_SCALE, 0.0, C.UNCERTAINTY_MAX)
        days_since = clamp(num(inputs.days_since_any_input, 0), 0, 3650)
        stale_penalty = 0.0
        if days_since > C.STALE_GRACE_DAYS:
            stale_penalty = clamp((days_since - C.STALE_GRACE_DAYS) * C.STALE_STEP, 0.0, C.STALE_MAX)

        penalties = {
            "sleep": (1 - sri) * C.PENALTY_SCALE["sleep"],
            "debt": debt.debt_n * C.PENALTY_SCALE["debt"],
            "csi": csi * C.PENALTY_SCALE["csi"],
            "stress": slf * C.PENALTY_SCALE["stress"],
            "menstrual": (1 - mif) * C.PENALTY_SCALE["menstrual"],
            "mood": lv["mood_bad_n"] * C.PENALTY_SCALE["mood"],
            "activity": lv["activity_n"] * C.PENALTY_SCALE["activity"],
            "uncertainty": uncertainty_penalty,
            "stale": stale_penalty,
        }
        body_penalty = _aggregate(penalties, C.BODY_WEIGHTS)
        mental_penalty = _aggregate(penalties, C.MENTAL_WEIGHTS)
        recovery_score = clamp(100 - sum(penalties.values()), 0.0, 100.0)

        body_target = clamp(100 - body_penalty, 0.0, 100.0)
        mental_target = clamp(100 - mental_penalty, 0.0, 100.0)
        bb = _smooth(prev_bb, body_target)
        mb = _smooth(prev_mb, mental_target)

        next_state = HiddenState(
            bb=bb,
            mb=mb,
            prev_shift=shift,
            night_streak=night_streak,
            sleep_debt=debt.sleep_debt_next,
        )
        diagnostics = DailyDiagnostics(
            stress_n=lv["stress_n"],
            activity_n=lv["activity_n"],
            mood_bad_n=lv["mood_bad_n"],
            fatigue_n=lv["fatigue_n"],
            sleep_eff=clamp(sri * C.SLEEP_HOURS_NORM, 0, C.SLEEP_HOURS_MAX),
            sleep_n=sri,
            caf_n=clamp(caffeine_mg / C.CAF_DAILY_SCALE, 0, 3),
            sym_n=lv["sym_n"],
            sri=sri,
            csi=csi,
            slf=slf,
            mif=mif,
            cif=cif,
            mf=mf,
            sleep_debt_next=debt.sleep_debt_next,
            debt_n=debt.debt_n,
            caf_sleep=caf_sleep,
            csd=csd,
            phase=phase,
            body_penalty=body_penalty,
            mental_penalty=mental_penalty,
            body_target=body_target,
            mental_target=mental_target,
            recovery_score=recovery_score,
            uncertainty_penalty=uncertainty_penalty,
            stale_penalty=stale_penalty,
            input_reliability=reliability,
            cmf=csi,
            srs=sri,
            sat_bb=sat(prev_bb),
            sat_mb=sat(prev_mb),
            d_bb=round1(bb - prev_bb),
            d_mb=round1(mb - prev_mb),
            **_ui_fields(mif, csd, slf, csi, debt.debt_n, body_penalty, mental_penalty, body_target, mental_target),
        )
        return StepResult(next_state, diagnostics)


class LegacyRecoveryEngineV3:
    """
    The v3.0 engine kept for parity with diagnostics stored before v4.

    Missing sleep counts as 0h, missing quality as 0.8, and there is no
    reliability or staleness handling.
    """
    version = "v3"

    def step(self, state: HiddenState, inputs: DailyInputs, profile: Optional[Profile] = None) -> StepResult:
        chronotype, sensitivity = _profile_values(profile)
        shift = _shift(inputs.shift)
        prev_bb = clamp(num(state.bb, C.DEFAULT_BB), 0.0, 100.0)
        prev_mb = clamp(num(state.mb, C.DEFAULT_MB), 0.0, 100.0)
        prev_debt = clamp(num(state.sleep_debt, 0.0), 0.0, C.SLEEP_DEBT_MAX)

        lv = _norm_levels(inputs)
        timing = resolve_sleep_timing(inputs.sleep_timing, shift)

        sleep_hours = clamp(num(inputs.sleep_hours, 0), 0, C.SLEEP_HOURS_MAX)
        nap_hours = clamp(num(inputs.nap_hours, 0), 0, C.NAP_HOURS_MAX)
        caffeine_mg = clamp(num(inputs.caffeine_mg, 0), 0, C.CAFFEINE_MG_MAX)

        night_streak = _next_night_streak(state, inputs, shift)
        nights_in_30 = num(inputs.nights_in_30, 0)

        total_sleep = clamp(sleep_hours + C.NAP_WEIGHT * nap_hours, 0, C.SLEEP_HOURS_MAX)
        hours_norm = clamp(total_sleep / C.SLEEP_HOURS_NORM, 0, C.HOURS_NORM_CAP)
        if inputs.sleep_quality is None:
            quality_norm = C.LEGACY_QUALITY_DEFAULT
        else:
            quality_norm = clamp(num(inputs.sleep_quality, 5) / 5, *C.LEGACY_QUALITY_RANGE)

        caf_remaining = caffeine_at_sleep(caffeine_mg, inputs.caffeine_last_at, shift, timing, sensitivity)
        caf_sleep = clamp(caf_remaining / C.CAF_SLEEP_SCALE, 0.0, 1.0)
        cif = caffeine_impact_factor(caf_remaining)
        csd = clamp(1 - cif, 0.0, 1.0)

        sri_raw = clamp(hours_norm * quality_norm * circadian_factor(timing), 0.0, 1.0)
        sri = clamp(sri_raw * cif, 0.0, 1.0)
        sleep_eff = clamp(sri * C.SLEEP_HOURS_NORM, 0, C.SLEEP_HOURS_MAX)

        debt = update_sleep_debt_legacy(shift, sleep_eff, prev_debt)

        csi = compute_csi(
            shift=shift,
            night_streak=night_streak,
            nights_in_30=nights_in_30,
            quick_return_hours=inputs.quick_return_hours,
            shift_length_hours=inputs.shift_length_hours,
            overtime_hours=inputs.overtime_hours,
            chronotype=chronotype,
            non_night_flags=False,
        )

        slf = clamp(C.SLF_STRESS_WEIGHT * lv["stress_n"] + C.SLF_FATIGUE_WEIGHT * lv["fatigue_n"], 0.0, 1.0)
        mf = clamp(1 - C.MF_SLOPE * lv["mood_bad_n"], C.MF_FLOOR, 1.0)

        predicted = menstrual_phase(inputs.date_iso, inputs.lmp_date_iso, inputs.cycle_len_avg, inputs.period_len)
        phase = resolve_phase(predicted.phase, inputs.menstrual_status, inputs.menstrual_flow)
        mif = 1.0
        if phase in ("period", "pms"):
            mif = C.LEGACY_MIF_CYCLE
        mif -= C.LEGACY_MIF_SYMPTOM * lv["sym_n"] * 3
        if shift == "N" and phase in ("period", "pms"):
            mif -= C.LEGACY_MIF_NIGHT
        mif = clamp(mif, C.LEGACY_MIF_FLOOR, 1.0)

        penalties = {
            "sleep": (1 - sri) * C.PENALTY_SCALE["sleep"],
            "debt": debt.debt_n * C.PENALTY_SCALE["debt"],
            "csi": csi * C.PENALTY_SCALE["csi"],
            "stress": slf * C.PENALTY_SCALE["stress"],
            "menstrual": (1 - mif) * C.PENALTY_SCALE["menstrual"],
            "mood": lv["mood_bad_n"] * C.PENALTY_SCALE["mood"],
            "activity": lv["activity_n"] * C.PENALTY_SCALE["activity"],
        }
        recovery_score = clamp(100 - sum(penalties.values()), 0.0, 100.0)
        body_penalty = _aggregate(penalties, C.LEGACY_BODY_WEIGHTS)
        mental_penalty = _aggregate(penalties, C.LEGACY_MENTAL_WEIGHTS)

        body_target = clamp(100 - body_penalty, 0.0, 100.0)
        mental_target = clamp(100 - mental_penalty, 0.0, 100.0)
        bb = _smooth(prev_bb, body_target)
        mb = _smooth(prev_mb, mental_target)

        next_state = HiddenState(
            bb=bb,
            mb=mb,
            prev_shift=shift,
            night_streak=night_streak,
            sleep_debt=debt.sleep_debt_next,
        )
        diagnostics = DailyDiagnostics(
            stress_n=lv["stress_n"],
            activity_n=lv["activity_n"],
            mood_bad_n=lv["mood_bad_n"],
            fatigue_n=lv["fatigue_n"],
            sleep_eff=sleep_eff,
            sleep_n=sri,
            caf_n=clamp(caffeine_mg / C.CAF_DAILY_SCALE, 0, 3),
            sym_n=lv["sym_n"],
            sri=sri,
            csi=csi,
            slf=slf,
            mif=mif,
            cif=cif,
            mf=mf,
            sleep_debt_next=debt.sleep_debt_next,
            debt_n=debt.debt_n,
            caf_sleep=caf_sleep,
            csd=csd,
            phase=phase,
            body_penalty=body_penalty,
            mental_penalty=mental_penalty,
            body_target=body_target,
            mental_target=mental_target,
            recovery_score=recovery_score,
            uncertainty_penalty=0.0,
            stale_penalty=0.0,
            input_reliability=1.0,
            cmf=csi,
            srs=sri,
            sat_bb=sat(prev_bb),
            sat_mb=sat(prev_mb),
            d_bb=bb - prev_bb,
            d_mb=mb - prev_mb,
            **_ui_fields(mif, csd, slf, csi, debt.debt_n, body_penalty, mental_penalty, body_target, mental_target),
        )
        return StepResult(next_state, diagnostics)


# ----------------------------
# Public API
# ----------------------------

ENGINE_REGISTRY: Dict[str, RecoveryEngine] = {
    "v4": RecoveryEngineV4(),
    "v3": LegacyRecoveryEngineV3(),
}
ENGINE_ALIASES = {"current": "v4", "canonical": "v4", "legacy": "v3"}
DEFAULT_ENGINE_VERSION = "v4"


def get_engine(version: Optional[str] = None) -> RecoveryEngine:
    key = str(version or DEFAULT_ENGINE_VERSION).strip().lower()
    key = ENGINE_ALIASES.get(key, key)
    if key not in ENGINE_REGISTRY:
        raise ValueError(f"unknown engine version: {version!r} (expected one of {sorted(ENGINE_REGISTRY)})")
    return ENGINE_REGISTRY[key]


def step_battery_engine(
    state: HiddenState,
    inputs: DailyInputs,
    profile: Optional[Profile] = None,
    engine: Optional[RecoveryEngine] = None,
) -> StepResult:
    """One calendar day. Call strictly in ascending date order, threading next_state."""
    return (engine or get_engine()).step(state, inputs, profile)


def run_days(
    days: Iterable[DailyInputs],
    state: Optional[HiddenState] = None,
    profile: Optional[Profile] = None,
    engine: Optional[RecoveryEngine] = None,
) -> List[StepResult]:
    """Fold the engine over consecutive days. `days` must already be in date order."""
    eng = engine or get_engine()
    cur = replace(state) if state is not None else default_state()
    out: List[StepResult] = []
    last_iso = ""
    for inputs in days:
        if last_iso and inputs.date_iso and inputs.date_iso <= last_iso:
            logger.warning("run_days: %s does not follow %s; results depend on caller ordering", inputs.date_iso, last_iso)
        last_iso = inputs.date_iso or last_iso
        res = eng.step(cur, inputs, profile)
        out.append(res)
        cur = res.next_state
    return out
