# shiftcare_app.py
from __future__ import annotations

import datetime as dt
import json
import logging
from zoneinfo import ZoneInfo

import matplotlib.pyplot as plt
import streamlit as st

from data.cache import (
    _cached_forecast,
    _cached_state,
    _invalidate_caches,
    _parse_date_iso,
    _recent_vitals_window,
)
from domain.shift import apply_pattern_to_schedule, parse_pattern
from shared.weekly_metrics import (
    best_and_worst_day,
    best_shift,
    compute_shift_stats,
    compute_ward_weather,
    summarize_window,
    worst_shift,
)
from shiftcare.coach import interpret_vital
from shiftcare.config import AppConfig, config_from_secrets
from shiftcare.plots import plot_forecast, plot_vitals
from shiftcare.rhythm import summarize_battery

logger = logging.getLogger(__name__)

_TONE_ICON = {"green": "🟢", "orange": "🟠", "red": "🔴"}


def _load_config() -> AppConfig:
    try:
        return config_from_secrets(st.secrets)
    except FileNotFoundError:
        # no .streamlit/secrets.toml
        return AppConfig()


def _render_header() -> None:
    st.title("ShiftCare")
    st.caption("교대근무 간호사를 위한 회복 배터리.")


def _render_sidebar(cfg: AppConfig):
    st.sidebar.header("데이터")
    uploaded = st.sidebar.file_uploader("앱 상태 JSON", type=["json"])
    raw_json = uploaded.getvalue().decode("utf-8") if uploaded is not None else "{}"

    today = dt.datetime.now(ZoneInfo(cfg.timezone)).date()
    selected = st.sidebar.date_input("기준 날짜", value=today)
    window = st.sidebar.slider("조회 기간(일)", min_value=7, max_value=60, value=14)

    st.sidebar.subheader("근무 패턴")
    pattern_text = st.sidebar.text_input("패턴", value="")
    st.sidebar.caption("예: D2E2N2OFF2, DDEENN--")
    if st.sidebar.button("캐시 새로고침", use_container_width=True):
        _invalidate_caches()
    return raw_json, selected, window, pattern_text


def _render_today(vital) -> None:
    st.subheader(f"{vital.date_iso} · {vital.shift}")
    m1, m2, m3 = st.columns(3)
    m1.metric(f"{_TONE_ICON[vital.body_tone]} Body", f"{vital.body_value:.1f}", f"{vital.body_change:+.1f}")
    m2.metric(f"{_TONE_ICON[vital.mental_tone]} Mental", f"{vital.mental_value:.1f}", f"{vital.mental_change:+.1f}")
    m3.metric("수면부채", f"{vital.engine.get('sleep_debt_hours', 0.0):.1f}h")
    for line in interpret_vital(vital):
        st.write(f"- {line}")


def _render_insights(vitals) -> None:
    stats = compute_shift_stats(vitals)
    best, worst = best_shift(stats), worst_shift(stats)
    weather = compute_ward_weather(vitals)
    summary = summarize_window(vitals)

    st.subheader(f"병동 날씨: {weather.title}")
    st.caption(weather.detail)
    c1, c2 = st.columns(2)
    if best is not None:
        c1.write(f"가장 편한 근무: **{best.shift}** (Mental {best.avg_mental:.0f})")
    if worst is not None:
        c2.write(f"가장 힘든 근무: **{worst.shift}** (Mental {worst.avg_mental:.0f})")
    best_day, worst_day = best_and_worst_day(vitals)
    if best_day is not None and worst_day is not None:
        st.caption(f"최고의 날 {best_day.date_iso} · 최저의 날 {worst_day.date_iso}")
    st.caption(
        f"{summary['days']}일 중 나이트 {summary['night_days']}일, "
        f"위험 {summary['danger_days']}일, 주의 {summary['warning_days']}일"
    )


def main() -> None:
    st.set_page_config(page_title="ShiftCare", layout="wide")
    cfg = _load_config()
    logging.basicConfig(level=cfg.log_level)
    _render_header()

    raw_json, selected, window, pattern_text = _render_sidebar(cfg)
    end = _parse_date_iso(str(selected)) or dt.date.today()

    try:
        state = _cached_state(raw_json)
    except json.JSONDecodeError as e:
        logger.warning("state upload is not valid JSON: %s", e)
        st.error("JSON 형식이 올바르지 않습니다.")
        return

    schedule = dict(state.schedule)
    pattern = parse_pattern(pattern_text)
    if pattern:
        schedule.update(
            apply_pattern_to_schedule(pattern, end.isoformat(), cfg.forecast_days, mode="fill-empty", existing=schedule)
        )

    vitals = _recent_vitals_window(raw_json, end, cfg.engine_version, days=window)
    tab1, tab2, tab3 = st.tabs(["오늘", "추이", "예보"])

    with tab1:
        if vitals:
            _render_today(vitals[-1])
            _render_insights(vitals)
        else:
            st.info("기록이 없습니다. 앱 상태 JSON을 올려 주세요.")

    with tab2:
        if vitals:
            fig = plot_vitals(vitals, show_debt=True)
            st.pyplot(fig)
            plt.close(fig)

    with tab3:
        days = _cached_forecast(
            tuple(sorted(schedule.items())), end.isoformat(), cfg.forecast_days, cfg.start_battery, cfg.nurse_name
        )
        summary = summarize_battery(days)
        st.caption(f"평균 {summary['avg']} · 최저 {summary['min']} · 위험 {summary['risk_days']}일")
        fig = plot_forecast(days)
        st.pyplot(fig)
        plt.close(fig)
        for d in days:
            with st.expander(f"{d.date} {d.shift} · {d.band} {d.level}"):
                st.write(f"수면 권장: {d.sleep_window}")
                st.write(f"카페인 컷오프: {d.caffeine_cutoff}")
                for n in d.notes:
                    st.write(f"- {n}")


if __name__ == "__main__":
    main()
