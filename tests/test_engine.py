from __future__ import annotations

import math
import unittest
from dataclasses import replace

from shiftcare.engine import (
    DailyInputs,
    HiddenState,
    LegacyRecoveryEngineV3,
    Profile,
    RecoveryEngineV4,
    default_state,
    get_engine,
    run_days,
    sat,
    step_battery_engine,
)


def _baseline_day(**overrides) -> DailyInputs:
    kw = dict(
        date_iso="2024-03-04",
        shift="D",
        sleep_hours=8,
        sleep_quality=4,
        stress_lvl=1,
        activity_lvl=2,
        mood_lvl=4,
        caffeine_mg=0,
    )
    kw.update(overrides)
    return DailyInputs(**kw)


class EngineScenarioTests(unittest.TestCase):
    def test_baseline_day_shift_well_rested(self):
        res = step_battery_engine(default_state(), _baseline_day())
        d = res.diagnostics

        self.assertAlmostEqual(d.sri, 0.95, places=6)
        self.assertAlmostEqual(d.csi, 0.0, places=6)
        self.assertGreater(res.next_state.bb, 70.0)
        self.assertGreater(res.next_state.mb, 70.0)
        # body: 0.6 * 5 (sleep) + 1.2 * 5/3 (activity)
        self.assertAlmostEqual(d.body_target, 95.0, places=6)
        # mental: 0.5 * 5 (sleep) + 1.5 * 1.25 (mood)
        self.assertAlmostEqual(d.mental_target, 95.625, places=6)
        # 70 * 0.65 + 95 * 0.35 = 78.75 sits on the rounding edge
        self.assertAlmostEqual(res.next_state.bb, 78.75, delta=0.051)
        self.assertAlmostEqual(res.next_state.mb, 79.0, places=6)
        self.assertAlmostEqual(d.d_bb, res.next_state.bb - 70.0, places=6)
        self.assertAlmostEqual(d.d_mb, 9.0, places=6)

    def test_stress_and_mood_stay_out_of_body(self):
        inputs = _baseline_day(sleep_quality=5, stress_lvl=4, mood_lvl=1, activity_lvl=1)
        d = step_battery_engine(default_state(), inputs).diagnostics
        self.assertAlmostEqual(d.body_penalty, 0.0, places=6)
        # 1.0 * 0.7 * 15 (stress) + 1.5 * 5 (mood)
        self.assertAlmostEqual(d.mental_penalty, 18.0, places=6)

    def test_activity_stays_out_of_mental(self):
        calm = step_battery_engine(default_state(), _baseline_day(activity_lvl=1)).diagnostics
        busy = step_battery_engine(default_state(), _baseline_day(activity_lvl=4)).diagnostics
        self.assertAlmostEqual(busy.body_penalty - calm.body_penalty, 6.0, places=6)
        self.assertAlmostEqual(busy.mental_penalty, calm.mental_penalty, places=6)

    def test_third_consecutive_night_on_four_hours(self):
        inputs = DailyInputs(date_iso="2024-03-04", shift="N", night_streak=3, sleep_hours=4, stress_lvl=3)
        res = step_battery_engine(default_state(), inputs)
        d = res.diagnostics

        self.assertGreater(d.csi, 0.5)
        self.assertAlmostEqual(d.csi, 0.7, places=6)
        self.assertLess(d.sri, 0.5)
        self.assertAlmostEqual(d.sri, 0.4, places=6)
        self.assertGreater(res.next_state.sleep_debt, 0.0)
        self.assertAlmostEqual(res.next_state.sleep_debt, 3.5, places=6)
        self.assertLess(res.next_state.bb, 70.0)
        self.assertEqual(res.next_state.night_streak, 3)

    def test_period_day_with_high_symptoms(self):
        neutral = step_battery_engine(default_state(), DailyInputs(date_iso="2024-03-04"))
        res = step_battery_engine(
            default_state(),
            DailyInputs(date_iso="2024-03-04", menstrual_status="period", symptom_severity=3),
        )
        d = res.diagnostics

        self.assertEqual(d.phase, "period")
        self.assertGreaterEqual(d.mif, 0.55)
        self.assertLessEqual(d.mif, 0.65)
        self.assertLess(d.body_target, neutral.diagnostics.body_target - 20)
        self.assertLess(d.mental_target, neutral.diagnostics.mental_target - 10)

    def test_heavy_flow_hits_mif_floor(self):
        res = step_battery_engine(
            default_state(),
            DailyInputs(date_iso="2024-03-04", menstrual_status="period", symptom_severity=3, menstrual_flow=3),
        )
        self.assertAlmostEqual(res.diagnostics.mif, 0.55, places=6)

    def test_stale_input_costs_exactly_the_stale_penalty(self):
        fresh = step_battery_engine(default_state(), _baseline_day(days_since_any_input=0))
        stale = step_battery_engine(default_state(), _baseline_day(days_since_any_input=5))

        self.assertAlmostEqual(stale.diagnostics.stale_penalty, 3.6, places=6)
        self.assertAlmostEqual(fresh.diagnostics.stale_penalty, 0.0, places=6)
        self.assertAlmostEqual(fresh.diagnostics.recovery_score - stale.diagnostics.recovery_score, 3.6, places=6)
        self.assertAlmostEqual(fresh.diagnostics.body_target - stale.diagnostics.body_target, 3.6, places=6)

    def test_stale_penalty_within_grace_and_capped(self):
        two = step_battery_engine(default_state(), _baseline_day(days_since_any_input=2))
        many = step_battery_engine(default_state(), _baseline_day(days_since_any_input=90))
        self.assertEqual(two.diagnostics.stale_penalty, 0.0)
        self.assertAlmostEqual(many.diagnostics.stale_penalty, 8.0, places=6)

    def test_uncertainty_penalty_from_reliability_and_estimates(self):
        res = step_battery_engine(default_state(), _baseline_day(input_reliability=0.5))
        self.assertAlmostEqual(res.diagnostics.uncertainty_penalty, 7.0, places=6)

        est = step_battery_engine(default_state(), _baseline_day(estimated_stress=True, estimated_mood=True))
        self.assertAlmostEqual(est.diagnostics.input_reliability, 0.8, places=6)
        self.assertAlmostEqual(est.diagnostics.uncertainty_penalty, 2.8, places=6)

        floor = step_battery_engine(default_state(), _baseline_day(input_reliability=0.0))
        self.assertAlmostEqual(floor.diagnostics.uncertainty_penalty, 10.0, places=6)


class EngineInvariantTests(unittest.TestCase):
    DIRTY = [
        {},
        {"sleep_hours": float("nan"), "stress_lvl": float("inf"), "mood_lvl": -7},
        {"sleep_hours": "abc", "caffeine_mg": "lots", "caffeine_last_at": "99:99"},
        {"sleep_hours": 40, "nap_hours": 12, "caffeine_mg": 5000, "fatigue_lvl": 100},
        {"shift": "N", "night_streak": 99, "nights_in_30": 31, "quick_return_hours": -3, "overtime_hours": 10},
        {"shift": "weird", "sleep_quality": 0, "sleep_timing": "sideways"},
        {"lmp_date_iso": "not-a-date", "cycle_len_avg": "x", "menstrual_flow": 9, "symptom_severity": 10},
        {"input_reliability": -4, "days_since_any_input": float("nan")},
    ]

    def _assert_ranges(self, res):
        s, d = res.next_state, res.diagnostics
        self.assertTrue(0.0 <= s.bb <= 100.0)
        self.assertTrue(0.0 <= s.mb <= 100.0)
        self.assertTrue(0.0 <= s.sleep_debt <= 20.0)
        self.assertTrue(0 <= s.night_streak <= 5)
        for name in ("stress_n", "activity_n", "mood_bad_n", "sleep_n", "sym_n", "debt_n",
                     "sri", "csi", "slf", "caf_sleep", "csd"):
            v = getattr(d, name)
            self.assertTrue(math.isfinite(v), name)
            self.assertTrue(0.0 <= v <= 1.0, f"{name}={v}")
        self.assertTrue(0.55 <= d.mif <= 1.0)
        self.assertTrue(0.4 <= d.cif <= 1.0)
        self.assertTrue(0.85 <= d.mf <= 1.0)

    def test_dirty_inputs_never_raise_and_stay_in_range(self):
        for engine in (RecoveryEngineV4(), LegacyRecoveryEngineV3()):
            for raw in self.DIRTY:
                with self.subTest(engine=engine.version, raw=raw):
                    res = engine.step(default_state(), DailyInputs(date_iso="2024-03-04", **raw))
                    self._assert_ranges(res)

    def test_corrupt_state_is_absorbed(self):
        states = [
            HiddenState(bb=float("nan"), mb=250.0, prev_shift="???", night_streak=-4, sleep_debt=1e9),
            HiddenState(bb=float("inf"), mb=float("-inf"), sleep_debt=float("nan")),
            HiddenState(bb="full", mb=None, night_streak="x", sleep_debt="?"),
        ]
        for engine in (RecoveryEngineV4(), LegacyRecoveryEngineV3()):
            for state in states:
                with self.subTest(engine=engine.version, state=state):
                    res = engine.step(state, _baseline_day())
                    self._assert_ranges(res)
                    self.assertTrue(math.isfinite(res.diagnostics.d_bb))
                    self.assertTrue(math.isfinite(res.diagnostics.sat_bb))

    def test_long_night_run_stays_bounded(self):
        days = [DailyInputs(date_iso=f"2024-03-{i + 1:02d}", shift="N", sleep_hours=2, stress_lvl=4) for i in range(30)]
        for res in run_days(days):
            self._assert_ranges(res)
        self.assertEqual(res.next_state.night_streak, 5)

    def test_step_does_not_mutate_state_and_is_repeatable(self):
        state = HiddenState(bb=55.0, mb=60.0, prev_shift="N", night_streak=2, sleep_debt=3.0)
        snapshot = replace(state)
        a = step_battery_engine(state, _baseline_day())
        b = step_battery_engine(state, _baseline_day())
        self.assertEqual(state, snapshot)
        self.assertEqual(a.next_state, b.next_state)
        self.assertEqual(a.diagnostics.to_dict(), b.diagnostics.to_dict())


class EngineMonotonicityTests(unittest.TestCase):
    def test_more_sleep_never_lowers_sri(self):
        sris = [
            step_battery_engine(default_state(), _baseline_day(sleep_hours=h)).diagnostics.sri
            for h in (0, 2, 4, 6, 7, 8)
        ]
        self.assertEqual(sris, sorted(sris))

    def test_more_stress_never_lowers_slf(self):
        slfs = [
            step_battery_engine(default_state(), _baseline_day(stress_lvl=s)).diagnostics.slf
            for s in (1, 2, 3, 4)
        ]
        self.assertEqual(slfs, sorted(slfs))

    def test_longer_night_streak_never_lowers_csi(self):
        csis = [
            step_battery_engine(default_state(), _baseline_day(shift="N", night_streak=n)).diagnostics.csi
            for n in (1, 2, 3, 4, 5)
        ]
        self.assertEqual(csis, sorted(csis))


class EngineMissingDataTests(unittest.TestCase):
    def test_unlogged_sleep_decays_debt_and_keeps_sri_in_baseline_band(self):
        state = replace(default_state(), sleep_debt=10.0)
        prev_debt_n = 1.0
        for i in range(14):
            res = step_battery_engine(state, DailyInputs(date_iso=f"2024-03-{i + 1:02d}", shift="D"))
            d = res.diagnostics
            self.assertLessEqual(d.debt_n, prev_debt_n)
            self.assertGreaterEqual(d.sri, 0.5)
            self.assertLessEqual(d.sri, 0.75)
            prev_debt_n = d.debt_n
            state = res.next_state
        self.assertLess(state.sleep_debt, 10.0)

    def test_estimated_sleep_does_not_feed_debt(self):
        logged = step_battery_engine(default_state(), _baseline_day(sleep_hours=3))
        estimated = step_battery_engine(default_state(), _baseline_day(sleep_hours=3, estimated_sleep=True))
        self.assertGreater(logged.next_state.sleep_debt, 0.0)
        self.assertEqual(estimated.next_state.sleep_debt, 0.0)
        self.assertAlmostEqual(logged.diagnostics.sri, estimated.diagnostics.sri, places=6)

    def test_first_sleep_log_seeds_debt_from_today_only(self):
        res = step_battery_engine(default_state(), _baseline_day(sleep_hours=1, has_prior_sleep_log=False))
        self.assertAlmostEqual(res.next_state.sleep_debt, 4.5, places=6)


class EngineConvergenceTests(unittest.TestCase):
    def test_identical_days_converge_to_target(self):
        state = default_state()
        for i in range(80):
            res = step_battery_engine(state, _baseline_day(date_iso="2024-01-01"))
            state = res.next_state
        d = res.diagnostics
        # one-decimal state quantization leaves a fixed point just short of the target
        self.assertLessEqual(abs(state.bb - d.body_target), 0.15)
        self.assertLessEqual(abs(state.mb - d.mental_target), 0.15)

    def test_sat_curve(self):
        self.assertAlmostEqual(sat(100.0), 0.0, places=6)
        self.assertAlmostEqual(sat(0.0), 1.0, places=6)
        self.assertLess(sat(80.0), sat(40.0))


class EngineRegistryTests(unittest.TestCase):
    def test_aliases_and_default(self):
        self.assertEqual(get_engine().version, "v4")
        self.assertEqual(get_engine("current").version, "v4")
        self.assertEqual(get_engine("Legacy").version, "v3")

    def test_unknown_version_raises(self):
        with self.assertRaises(ValueError):
            get_engine("v9")

    def test_legacy_engine_reproduces_v3_numbers(self):
        res = get_engine("v3").step(default_state(), _baseline_day())
        d = res.diagnostics
        self.assertAlmostEqual(d.sri, 0.8, places=6)
        self.assertAlmostEqual(d.sleep_eff, 6.4, places=6)
        self.assertAlmostEqual(res.next_state.sleep_debt, 0.6, places=6)
        self.assertAlmostEqual(res.next_state.bb, 75.4, places=6)
        self.assertAlmostEqual(res.next_state.mb, 76.2, places=6)
        self.assertEqual(d.stale_penalty, 0.0)

    def test_versions_diverge_on_same_day(self):
        a = get_engine("v4").step(default_state(), _baseline_day())
        b = get_engine("v3").step(default_state(), _baseline_day())
        self.assertNotEqual(a.next_state.bb, b.next_state.bb)

    def test_from_mapping_accepts_camel_case(self):
        inputs = DailyInputs.from_mapping(
            {"dateISO": "2024-03-04", "shift": "N", "sleepHours": 5, "nightStreak": 2, "unknownKey": 1}
        )
        self.assertEqual(inputs.date_iso, "2024-03-04")
        self.assertEqual(inputs.sleep_hours, 5)
        self.assertEqual(inputs.night_streak, 2)

    def test_profile_chronotype_scales_night_strain(self):
        day = _baseline_day(shift="N", night_streak=1)
        owl = step_battery_engine(default_state(), day, Profile(chronotype=0.0)).diagnostics.csi
        lark = step_battery_engine(default_state(), day, Profile(chronotype=1.0)).diagnostics.csi
        self.assertGreater(owl, lark)


if __name__ == "__main__":
    unittest.main()
