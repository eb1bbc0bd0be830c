# shared/health_log.py
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
import datetime as dt
import json
import logging
import math

logger = logging.getLogger(__name__)


@dataclass
class BioLog:
    """
    One day of self-reported inputs as the app stores them.
    Levels use the app's scales: stress/activity 0..3, mood 1..5.
    None = not logged.
    """
    sleep_hours: Optional[float] = None
    nap_hours: Optional[float] = None
    sleep_quality: Optional[int] = None
    sleep_timing: Optional[str] = None
    stress: Optional[int] = None
    activity: Optional[int] = None
    caffeine_mg: Optional[float] = None
    caffeine_last_at: Optional[str] = None
    fatigue_level: Optional[float] = None
    mood: Optional[int] = None
    symptom_severity: Optional[int] = None
    menstrual_status: Optional[str] = None
    menstrual_flow: Optional[int] = None
    shift_overtime_hours: Optional[float] = None
    # field names whose value was imputed rather than entered
    estimated: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self) if f.name != "estimated")

    def is_estimated(self, name: str) -> bool:
        return name in self.estimated


@dataclass
class Emotion:
    mood: int = 3
    tags: List[str] = field(default_factory=list)
    note: str = ""


# app export keys and older names -> BioLog field
_BIO_KEYS: Dict[str, str] = {
    "sleepHours": "sleep_hours",
    "sleep": "sleep_hours",
    "napHours": "nap_hours",
    "nap": "nap_hours",
    "sleepQuality": "sleep_quality",
    "sleepTiming": "sleep_timing",
    "stressLevel": "stress",
    "activityLevel": "activity",
    "caffeineMg": "caffeine_mg",
    "caffeine": "caffeine_mg",
    "caffeineLastAt": "caffeine_last_at",
    "fatigueLevel": "fatigue_level",
    "fatigue": "fatigue_level",
    "symptomSeverity": "symptom_severity",
    "menstrualStatus": "menstrual_status",
    "menstrualFlow": "menstrual_flow",
    "shiftOvertimeHours": "shift_overtime_hours",
    "overtime": "shift_overtime_hours",
}

_FLOAT_FIELDS = {"sleep_hours", "nap_hours", "caffeine_mg", "fatigue_level", "shift_overtime_hours"}
_INT_FIELDS = {"sleep_quality", "stress", "activity", "mood", "symptom_severity", "menstrual_flow"}
_STR_FIELDS = {"sleep_timing", "caffeine_last_at", "menstrual_status"}

_EXPORT_KEYS: Dict[str, str] = {
    "sleep_hours": "sleepHours",
    "nap_hours": "napHours",
    "sleep_quality": "sleepQuality",
    "sleep_timing": "sleepTiming",
    "stress": "stress",
    "activity": "activity",
    "caffeine_mg": "caffeineMg",
    "caffeine_last_at": "caffeineLastAt",
    "fatigue_level": "fatigueLevel",
    "mood": "mood",
    "symptom_severity": "symptomSeverity",
    "menstrual_status": "menstrualStatus",
    "menstrual_flow": "menstrualFlow",
    "shift_overtime_hours": "shiftOvertimeHours",
}


def parse_time_hhmm(s: Any, fallback: Optional[dt.time] = None) -> Optional[dt.time]:
    try:
        hh, mm = str(s).strip().split(":")
        return dt.time(int(hh), int(mm))
    except (TypeError, ValueError):
        return fallback


def _coerce(name: str, v: Any) -> Any:
    if v is None or v == "":
        return None
    try:
        if name in _FLOAT_FIELDS:
            f = float(v)
            return f if math.isfinite(f) else None
        if name in _INT_FIELDS:
            return int(round(float(v)))
    except (TypeError, ValueError, OverflowError):
        logger.debug("bio field %s: dropping unparsable value %r", name, v)
        return None
    if name == "caffeine_last_at":
        t = parse_time_hhmm(v)
        return t.strftime("%H:%M") if t else None
    return str(v).strip() or None


def bio_from_mapping(raw: Any) -> BioLog:
    """Dict -> BioLog. Accepts snake_case, the app's camelCase keys and older key names."""
    if not isinstance(raw, dict):
        return BioLog()
    known = {f.name for f in fields(BioLog)}
    kwargs: Dict[str, Any] = {}
    for k, v in raw.items():
        name = _BIO_KEYS.get(k, k)
        if name not in known or name == "estimated":
            continue
        # new keys win over legacy aliases
        if name in kwargs and k not in known and k not in _EXPORT_KEYS.values():
            continue
        kwargs[name] = _coerce(name, v)
    est = raw.get("estimated", raw.get("estimatedFields", []))
    if isinstance(est, list):
        kwargs["estimated"] = [_BIO_KEYS.get(str(x), str(x)) for x in est]
    return BioLog(**kwargs)


def bio_from_json(s: Optional[str]) -> BioLog:
    if not s:
        return BioLog()
    try:
        raw = json.loads(s)
    except (TypeError, ValueError):
        logger.debug("bio_from_json: not JSON, treating as empty log")
        return BioLog()
    return bio_from_mapping(raw)


def bio_to_mapping(bio: BioLog) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name, key in _EXPORT_KEYS.items():
        v = getattr(bio, name)
        if v is not None:
            out[key] = v
    if bio.estimated:
        out["estimated"] = [_EXPORT_KEYS.get(x, x) for x in bio.estimated]
    return out


def bio_to_json(bio: BioLog) -> str:
    """
    Store only logged fields, camelCase keys.
    Example:
      {"sleepHours": 6.5, "stress": 2, "caffeineMg": 150.0}
    """
    return json.dumps(bio_to_mapping(bio), ensure_ascii=False)


def emotion_from_mapping(raw: Any) -> Optional[Emotion]:
    if not isinstance(raw, dict):
        return None
    try:
        mood = int(raw.get("mood", 3))
    except (TypeError, ValueError, OverflowError):
        mood = 3
    tags = raw.get("tags") or []
    return Emotion(
        mood=max(1, min(5, mood)),
        tags=[str(t) for t in tags] if isinstance(tags, list) else [],
        note=str(raw.get("note") or ""),
    )
