#!/usr/bin/env python3
"""
scripts/simulate_vitals.py

Fold the recovery engine over an exported app state and print daily vitals,
optionally followed by the hour-level battery forecast.

  python scripts/simulate_vitals.py state.json --start 2024-03-01 --end 2024-03-14
  python scripts/simulate_vitals.py state.json --forecast 7 --config shiftcare.toml
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys

# project root, for running from a checkout without installing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from shared.vitals import AppState, compute_vitals_range
from shiftcare.config import load_config
from shiftcare.dates import add_days, is_iso_date
from shiftcare.engine import get_engine
from shiftcare.rhythm import forecast_battery, summarize_battery

logger = logging.getLogger("simulate_vitals")


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Print ShiftCare daily vitals for an app-state export.")
    p.add_argument("state", help="app state JSON file")
    p.add_argument("--start", help="first date (YYYY-MM-DD); default: 13 days before --end")
    p.add_argument("--end", help="last date (YYYY-MM-DD); default: latest stored date")
    p.add_argument("--engine", help="engine version (v4, v3, legacy)")
    p.add_argument("--config", help="TOML file with a [shiftcare] table")
    p.add_argument("--forecast", type=int, default=0, help="also print an N-day battery forecast after --end")
    return p.parse_args(argv)


def _latest_date(state: AppState) -> str:
    keys = list(state.schedule) + list(state.bio) + list(state.emotions)
    return max(keys) if keys else ""


def main(argv=None) -> int:
    args = _parse_args(argv)
    cfg = load_config(args.config)
    logging.basicConfig(level=cfg.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        with open(args.state, encoding="utf-8") as f:
            state = AppState.from_dict(json.load(f))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("could not read %s: %s", args.state, e)
        return 1

    end = args.end or _latest_date(state)
    if not is_iso_date(end):
        logger.error("no end date: pass --end or a state with dated entries")
        return 1
    start = args.start or add_days(end, -13)

    try:
        engine = get_engine(args.engine or cfg.engine_version)
    except ValueError as e:
        logger.error("%s", e)
        return 2
    if state.settings.profile is None:
        state.settings.profile = cfg.profile

    vitals = compute_vitals_range(state, start, end, engine=engine)
    logger.info("engine %s: %d days (%s..%s)", engine.version, len(vitals), start, end)

    print(f"{'date':<10}  {'shift':<5}  {'body':>5}  {'Δ':>5}  {'mental':>6}  {'Δ':>5}  {'debt':>5}  burnout")
    for v in vitals:
        print(
            f"{v.date_iso:<10}  {v.shift:<5}  {v.body_value:5.1f}  {v.body_change:+5.1f}  "
            f"{v.mental_value:6.1f}  {v.mental_change:+5.1f}  {v.engine['sleep_debt_hours']:5.1f}  {v.burnout.level}"
        )

    if args.forecast > 0:
        days = forecast_battery(state.schedule, add_days(end, 1), args.forecast, cfg.start_battery, cfg.nurse_name)
        print()
        for d in days:
            print(f"{d.date}  {d.shift:<4} {d.level:3d}  {d.band}  {d.sleep_window}  caffeine {d.caffeine_cutoff}")
        s = summarize_battery(days)
        print(f"avg {s['avg']}  min {s['min']}  max {s['max']}  risk {s['risk_days']}  caution {s['caution_days']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
