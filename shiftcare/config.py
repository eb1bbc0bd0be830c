# shiftcare/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
import logging
import tomllib

from . import constants as C
from .engine import DEFAULT_ENGINE_VERSION, ENGINE_ALIASES, ENGINE_REGISTRY, Profile

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class AppConfig:
    """
    Runtime settings. Read from the [shiftcare] table of a TOML document:
    `.streamlit/secrets.toml` for the app, any TOML file for the CLI.
    """
    timezone: str = "Asia/Seoul"
    engine_version: str = DEFAULT_ENGINE_VERSION
    nurse_name: str = "간호사"
    start_battery: float = C.FORECAST_START_BATTERY
    forecast_days: int = 14
    log_level: str = "INFO"
    profile: Profile = field(default_factory=Profile)


def _coerce_float(x: Any, default: float) -> float:
    try:
        if x is None or x == "":
            return default
        return float(x)
    except (TypeError, ValueError):
        return default


def _coerce_int(x: Any, default: int) -> int:
    try:
        if x is None or x == "":
            return default
        return int(x)
    except (TypeError, ValueError):
        return default


def _coerce_str(x: Any, default: str) -> str:
    s = str(x).strip() if x is not None else ""
    return s or default


def config_from_mapping(raw: Optional[Mapping[str, Any]]) -> AppConfig:
    """Unknown keys are ignored. Bad values fall back to the defaults."""
    d = AppConfig()
    if not raw:
        return d

    version = _coerce_str(raw.get("engine_version"), d.engine_version).lower()
    version = ENGINE_ALIASES.get(version, version)
    if version not in ENGINE_REGISTRY:
        logger.warning("config: unknown engine_version %r, using %s", version, d.engine_version)
        version = d.engine_version

    level = _coerce_str(raw.get("log_level"), d.log_level).upper()
    if level not in _LOG_LEVELS:
        level = d.log_level

    p = raw.get("profile") or {}
    profile = Profile(
        chronotype=min(1.0, max(0.0, _coerce_float(p.get("chronotype"), C.CHRONOTYPE_DEFAULT))),
        caffeine_sensitivity=min(
            C.CAFFEINE_SENSITIVITY_RANGE[1],
            max(C.CAFFEINE_SENSITIVITY_RANGE[0], _coerce_float(p.get("caffeine_sensitivity"), C.CAFFEINE_SENSITIVITY_DEFAULT)),
        ),
    )

    return AppConfig(
        timezone=_coerce_str(raw.get("timezone"), d.timezone),
        engine_version=version,
        nurse_name=_coerce_str(raw.get("nurse_name"), d.nurse_name),
        start_battery=min(100.0, max(0.0, _coerce_float(raw.get("start_battery"), d.start_battery))),
        forecast_days=min(60, max(1, _coerce_int(raw.get("forecast_days"), d.forecast_days))),
        log_level=level,
        profile=profile,
    )


def load_config(path: Optional[str] = None) -> AppConfig:
    """Read [shiftcare] from a TOML file. Missing file -> defaults."""
    if not path:
        return AppConfig()
    try:
        with open(path, "rb") as f:
            doc = tomllib.load(f)
    except FileNotFoundError:
        logger.warning("config file %s not found, using defaults", path)
        return AppConfig()
    return config_from_mapping(doc.get("shiftcare", doc))


def config_from_secrets(secrets: Mapping[str, Any]) -> AppConfig:
    """`st.secrets` (or any mapping) -> AppConfig, using its [shiftcare] table when present."""
    if "shiftcare" in secrets:
        return config_from_mapping(dict(secrets["shiftcare"]))
    return AppConfig()
