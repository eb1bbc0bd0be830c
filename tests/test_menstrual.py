from __future__ import annotations

import unittest

from shared.health_log import BioLog
from shiftcare.menstrual import (
    MenstrualSettings,
    auto_adjust_menstrual_settings,
    menstrual_context_for_date,
    menstrual_phase,
    resolve_phase,
)

LMP = "2024-03-01"


class MenstrualPhaseTests(unittest.TestCase):
    def test_phases_across_a_28_day_cycle(self):
        cases = {
            "2024-03-01": ("period", 0),
            "2024-03-05": ("period", 4),
            "2024-03-06": ("follicular", 5),
            "2024-03-15": ("ovulation", 14),
            "2024-03-21": ("luteal", 20),
            "2024-03-24": ("pms", 23),
            "2024-03-28": ("pms", 27),
            "2024-03-29": ("period", 0),
        }
        for iso, (phase, idx) in cases.items():
            with self.subTest(iso=iso):
                res = menstrual_phase(iso, LMP, 28, 5)
                self.assertEqual(res.phase, phase)
                self.assertEqual(res.day_index, idx)

    def test_unknown_or_future_lmp_is_none(self):
        self.assertEqual(menstrual_phase("2024-03-01", None).phase, "none")
        self.assertEqual(menstrual_phase("2024-03-01", "nope").phase, "none")
        self.assertEqual(menstrual_phase("2024-02-20", LMP).phase, "none")

    def test_out_of_range_lengths_are_clamped(self):
        # cycle 99 -> 45, period 0 -> 2
        self.assertEqual(menstrual_phase("2024-04-15", LMP, 99, 0).day_index, 45 % 45)
        self.assertEqual(menstrual_phase("2024-03-02", LMP, 28, 0).phase, "period")
        self.assertEqual(menstrual_phase("2024-03-03", LMP, 28, 0).phase, "follicular")

    def test_pure(self):
        self.assertEqual(menstrual_phase("2024-03-10", LMP, 30, 6), menstrual_phase("2024-03-10", LMP, 30, 6))

    def test_logged_status_overrides_prediction(self):
        self.assertEqual(resolve_phase("luteal", "none", 2), "period")
        self.assertEqual(resolve_phase("luteal", "pms", 0), "pms")
        self.assertEqual(resolve_phase("luteal", None, None), "luteal")


class MenstrualContextTests(unittest.TestCase):
    def test_disabled_tracking(self):
        ctx = menstrual_context_for_date("2024-03-05", MenstrualSettings(enabled=False, last_period_start=LMP))
        self.assertFalse(ctx.enabled)
        self.assertEqual(ctx.phase, "none")
        self.assertIsNone(ctx.day_in_cycle)

    def test_default_settings_agree_with_engine_phase(self):
        s = MenstrualSettings(enabled=True, last_period_start=LMP)
        self.assertEqual(s.pms_days, 5)
        self.assertEqual(menstrual_context_for_date("2024-03-24", s).phase, "pms")
        for day in range(1, 32):
            iso = f"2024-03-{day:02d}"
            with self.subTest(iso=iso):
                self.assertEqual(menstrual_context_for_date(iso, s).phase, menstrual_phase(iso, LMP).phase)

    def test_enabled_uses_settings_pms_days(self):
        s = MenstrualSettings(enabled=True, last_period_start=LMP, pms_days=4)
        self.assertEqual(menstrual_context_for_date("2024-03-24", s).phase, "luteal")
        ctx = menstrual_context_for_date("2024-03-25", s)
        self.assertEqual(ctx.phase, "pms")
        self.assertEqual(ctx.day_in_cycle, 25)
        self.assertEqual(ctx.label, "생리 직전 기간")


class AutoAdjustTests(unittest.TestCase):
    def test_period_start_blends_observed_cycle(self):
        s = MenstrualSettings(enabled=True, last_period_start=LMP, cycle_length=28)
        out = auto_adjust_menstrual_settings(s, "2024-03-31", BioLog(menstrual_flow=2))
        self.assertIsNotNone(out)
        # 28 * 0.7 + 30 * 0.3 = 28.6
        self.assertEqual(out.cycle_length, 29)
        self.assertEqual(out.last_period_start, "2024-03-31")
        self.assertEqual(s.cycle_length, 28)

    def test_logged_period_enables_tracking(self):
        out = auto_adjust_menstrual_settings(MenstrualSettings(), "2024-03-31", {"menstrual_status": "period"})
        self.assertTrue(out.enabled)
        self.assertEqual(out.last_period_start, "2024-03-31")

    def test_period_end_blends_run_length(self):
        bio_map = {f"2024-03-{d:02d}": BioLog(menstrual_flow=1) for d in range(25, 32)}
        s = MenstrualSettings(enabled=True, last_period_start="2024-03-25", period_length=5)
        out = auto_adjust_menstrual_settings(
            s, "2024-04-01", BioLog(menstrual_flow=0), prev_bio=bio_map["2024-03-31"], bio_map=bio_map
        )
        # 5 * 0.7 + 7 * 0.3 = 5.6
        self.assertEqual(out.period_length, 6)

    def test_pms_log_raises_pms_days(self):
        s = MenstrualSettings(enabled=True, last_period_start=LMP, pms_days=2)
        out = auto_adjust_menstrual_settings(s, "2024-03-20", BioLog(menstrual_status="pms"))
        self.assertEqual(out.pms_days, 4)

    def test_pms_log_keeps_default_pms_days(self):
        s = MenstrualSettings(enabled=True, last_period_start=LMP)
        self.assertIsNone(auto_adjust_menstrual_settings(s, "2024-03-25", BioLog(menstrual_status="pms")))

    def test_nothing_to_learn_returns_none(self):
        s = MenstrualSettings(enabled=True, last_period_start=LMP)
        self.assertIsNone(auto_adjust_menstrual_settings(s, "2024-03-10", BioLog(sleep_hours=7)))
        self.assertIsNone(auto_adjust_menstrual_settings(s, "2024-03-10", None))


if __name__ == "__main__":
    unittest.main()
