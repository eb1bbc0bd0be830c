# shiftcare/constants.py
"""
Tuning table for the recovery engines.

Every number the engines use lives here so tuning and tests have a single
place to look. Values are grouped by the calculator that consumes them.
The legacy (v3) engine has its own block at the bottom.
"""
from __future__ import annotations

from typing import Dict


# ----------------------------
# Shift codes
# ----------------------------

SHIFTS = ("D", "E", "N", "M", "OFF", "VAC")
REST_SHIFTS = ("OFF", "VAC")


# ----------------------------
# Input ranges
# ----------------------------

SLEEP_HOURS_MAX = 14.0
NAP_HOURS_MAX = 4.0
NAP_WEIGHT = 0.6
CAFFEINE_MG_MAX = 1200.0
FATIGUE_MAX = 10.0
SYMPTOM_MAX = 3.0
FLOW_MAX = 3.0
NIGHT_STREAK_MAX = 5
SLEEP_DEBT_MAX = 20.0

CHRONOTYPE_DEFAULT = 0.5
CAFFEINE_SENSITIVITY_DEFAULT = 1.0
CAFFEINE_SENSITIVITY_RANGE = (0.5, 1.5)


# ----------------------------
# Default hidden state
# ----------------------------

DEFAULT_BB = 70.0
DEFAULT_MB = 70.0


# ----------------------------
# Caffeine
# ----------------------------

CAFFEINE_HALF_LIFE_H = 5.0
# hours between last intake and sleep when no clock time was logged
CAFFEINE_FALLBACK_GAP_H: Dict[str, float] = {"D": 6.0, "E": 4.0, "N": 2.0, "M": 5.0, "OFF": 5.0, "VAC": 5.0}
CIF_SLOPE = 0.5          # CIF = 1 - 0.5 * (remaining / 100)
CIF_FLOOR = 0.4
CAF_SLEEP_SCALE = 200.0
CAF_DAILY_SCALE = 400.0


# ----------------------------
# Sleep recovery
# ----------------------------

SLEEP_HOURS_NORM = 8.0
HOURS_NORM_CAP = 1.2
CIRCADIAN_FACTOR: Dict[str, float] = {"night": 1.0, "mixed": 0.9, "day": 0.8}

# quality 1..5 -> 0.65, 0.75, 0.85, 0.95, 1.0
QUALITY_BASE = 0.55
QUALITY_STEP = 0.1
QUALITY_RANGE = (0.6, 1.0)

# SRI assumed for a day without a sleep log
UNLOGGED_SRI_BASELINE: Dict[str, float] = {"N": 0.64, "E": 0.70, "M": 0.72}
UNLOGGED_SRI_DEFAULT = 0.75
UNLOGGED_SRI_FLOOR = 0.5
UNLOGGED_DEBT_DRAG_DIV = 16.0
UNLOGGED_DEBT_DRAG_MAX = 0.25


# ----------------------------
# Sleep debt
# ----------------------------

TARGET_SLEEP_H = 7.0
TARGET_SLEEP_BONUS: Dict[str, float] = {"N": 0.5, "E": 0.25, "M": 0.15}
DEBT_CARRY = 0.88
DEBT_ACCRUE = 1.0
DEBT_RECOVER = 0.75
DEBT_NORM_DIV = 10.0
DEBT_CARRY_UNLOGGED_NIGHT = 0.992
DEBT_CARRY_UNLOGGED = 0.978
DEBT_PASSIVE_RECOVERY_REST = 0.22
DEBT_PASSIVE_RECOVERY = 0.08
DEBT_SEED_MAX = 4.5
DEBT_SEED_NEAR_ZERO = 0.5


# ----------------------------
# Circadian strain
# ----------------------------

CSI_NIGHT_BASE = 0.5
CSI_CONSECUTIVE_STEP = 0.2
CSI_QUICK_RETURN_H = 11.0
CSI_QUICK_RETURN_PENALTY = 0.2
CSI_MONTHLY_MODERATE = (8, 0.1)    # nights in 30d above -> penalty
CSI_MONTHLY_HEAVY = (15, 0.2)
CSI_LONG_SHIFT_H = 12.0
CSI_LONG_SHIFT_PENALTY = 0.1
CSI_DAY_QUICK_WEIGHT = 0.5
CSI_DAY_LONG_WEIGHT = 0.4
CSI_CHRONO_BASE = 1.1
CSI_CHRONO_SLOPE = 0.2


# ----------------------------
# Stress / mood
# ----------------------------

SLF_STRESS_WEIGHT = 0.7
SLF_FATIGUE_WEIGHT = 0.3
MF_SLOPE = 0.1
MF_FLOOR = 0.85


# ----------------------------
# Menstrual
# ----------------------------

CYCLE_LEN_DEFAULT = 28
CYCLE_LEN_RANGE = (20, 45)
PERIOD_LEN_DEFAULT = 5
PERIOD_LEN_RANGE = (2, 10)
PMS_DAYS = 5
LUTEAL_OFFSET = 14
OVULATION_MIN_DAY = 6
OVULATION_TAIL = 8

PHASE_IMPACT: Dict[str, float] = {
    "period": 0.16,
    "pms": 0.11,
    "luteal": 0.06,
    "follicular": 0.02,
    "ovulation": 0.01,
    "none": 0.0,
}
MIF_SYMPTOM_WEIGHT = 0.2
MIF_FLOW_WEIGHT = 0.03
MIF_NIGHT_BLEED_PENALTY = 0.04
MIF_FLOOR = 0.55


# ----------------------------
# Penalty aggregation
# ----------------------------

PENALTY_SCALE: Dict[str, float] = {
    "sleep": 100.0,      # (1 - SRI) * 100
    "debt": 15.0,        # debt_n * 15
    "csi": 20.0,         # CSI * 20
    "stress": 15.0,      # SLF * 15
    "menstrual": 100.0,  # (1 - MIF) * 100
    "mood": 5.0,         # mood_bad_n * 5
    "activity": 5.0,     # activity_n * 5
}

# stress and mood do not reach Body, activity does not reach Mental
BODY_WEIGHTS: Dict[str, float] = {
    "sleep": 0.6,
    "debt": 0.6,
    "csi": 0.6,
    "activity": 1.2,
    "menstrual": 0.8,
    "uncertainty": 1.0,
    "stale": 1.0,
}
MENTAL_WEIGHTS: Dict[str, float] = {
    "sleep": 0.5,
    "debt": 0.5,
    "csi": 0.7,
    "stress": 1.0,
    "mood": 1.5,
    "menstrual": 0.5,
    "uncertainty": 1.0,
    "stale": 1.0,
}

UNCERTAINTY_SCALE = 14.0
UNCERTAINTY_MAX = 10.0
STALE_GRACE_DAYS = 2
STALE_STEP = 1.2
STALE_MAX = 8.0
ESTIMATED_FIELD_RELIABILITY_COST = 0.1


# ----------------------------
# Smoothing / saturation
# ----------------------------

SMOOTH_PREV = 0.65
SMOOTH_TARGET = 0.35
SAT_KNEE = 25.0
SLEEP_SUPPRESS_MAX = 0.9


# ----------------------------
# Legacy v3 engine
# ----------------------------

LEGACY_QUALITY_DEFAULT = 0.8
LEGACY_QUALITY_RANGE = (0.4, 1.0)
LEGACY_DEBT_CARRY = 0.85
LEGACY_DEBT_RECOVER = 0.35
LEGACY_MIF_CYCLE = 0.8
LEGACY_MIF_SYMPTOM = 0.05
LEGACY_MIF_NIGHT = 0.05
LEGACY_MIF_FLOOR = 0.6
LEGACY_BODY_WEIGHTS: Dict[str, float] = {k: v for k, v in BODY_WEIGHTS.items() if k not in ("uncertainty", "stale")}
LEGACY_MENTAL_WEIGHTS: Dict[str, float] = {k: v for k, v in MENTAL_WEIGHTS.items() if k not in ("uncertainty", "stale")}


# ----------------------------
# Hour-level simulator
# ----------------------------

DRAIN_RESTING = 3.5
DRAIN_WORKING = 7.5
CHARGE_NIGHT_SLEEP = 15.0
CHARGE_DAY_SLEEP = 9.0
PENALTY_ZOMBIE_ZONE = 6.0
ZOMBIE_PEAK_HOUR = 4
ZOMBIE_FALLOFF = 0.35
PENALTY_CONSECUTIVE_NIGHT = 1.1
FORECAST_START_BATTERY = 90.0
FORECAST_WARMUP_DAYS = 7
BAND_DANGER = 20
BAND_CAUTION = 50
