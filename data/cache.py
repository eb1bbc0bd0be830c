from __future__ import annotations

import datetime as dt
import json
from typing import List, Optional, Tuple

import streamlit as st

from shared.vitals import AppState, DailyVital, compute_vitals_range
from shiftcare.engine import get_engine
from shiftcare.rhythm import BatteryDay, forecast_battery


def _parse_date_iso(s: str) -> Optional[dt.date]:
    try:
        return dt.date.fromisoformat(str(s))
    except (TypeError, ValueError):
        return None


@st.cache_data(ttl=300, show_spinner=False)
def _cached_state(raw_json: str) -> AppState:
    return AppState.from_dict(json.loads(raw_json or "{}"))


@st.cache_data(ttl=300, show_spinner=False)
def _cached_vitals(raw_json: str, start_iso: str, end_iso: str, engine_version: str) -> List[DailyVital]:
    return compute_vitals_range(_cached_state(raw_json), start_iso, end_iso, engine=get_engine(engine_version))


@st.cache_data(ttl=300, show_spinner=False)
def _cached_forecast(
    schedule_items: Tuple[Tuple[str, str], ...],
    start_iso: str,
    days: int,
    start_battery: float,
    nurse_name: str,
) -> List[BatteryDay]:
    return forecast_battery(dict(schedule_items), start_iso, days, start_battery, nurse_name)


def _invalidate_caches() -> None:
    _cached_state.clear()
    _cached_vitals.clear()
    _cached_forecast.clear()


def _recent_vitals_window(raw_json: str, end_date: dt.date, engine_version: str, days: int = 7) -> List[DailyVital]:
    start_date = end_date - dt.timedelta(days=days - 1)
    return _cached_vitals(raw_json, start_date.isoformat(), end_date.isoformat(), engine_version)
