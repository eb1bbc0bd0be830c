from __future__ import annotations

import unittest
from types import SimpleNamespace

from shared.health_log import Emotion
from shared.weekly_metrics import (
    best_and_worst_day,
    best_shift,
    compute_shift_stats,
    compute_ward_weather,
    summarize_window,
    worst_shift,
)
from shiftcare.coach import burnout_from


def _vital(iso, shift, body, mental, tags=None, debt=0.0):
    return SimpleNamespace(
        date_iso=iso,
        shift=shift,
        body_value=body,
        mental_value=mental,
        burnout=burnout_from(body, mental, shift),
        emotion=Emotion(tags=tags) if tags is not None else None,
        engine={"sleep_debt_hours": debt},
    )


WEEK = [
    _vital("2024-03-01", "D", 80, 75, ["#평온"]),
    _vital("2024-03-02", "D", 70, 65),
    _vital("2024-03-03", "N", 40, 30, ["#바쁨", "#피곤"]),
    _vital("2024-03-04", "N", 18, 20, ["#피곤", "야근"]),
    _vital("2024-03-05", "OFF", 60, 70, ["#피곤"], debt=3.5),
]


class WeeklyMetricsTests(unittest.TestCase):
    def test_shift_stats_sorted_by_mental(self):
        stats = compute_shift_stats(WEEK)
        by_shift = {r.shift: r for r in stats}
        self.assertEqual(by_shift["D"].days, 2)
        self.assertAlmostEqual(by_shift["D"].avg_mental, 70.0)
        self.assertAlmostEqual(by_shift["N"].avg_body, 29.0)
        self.assertEqual(by_shift["VAC"].days, 0)
        self.assertEqual(stats[0].shift, "D")
        self.assertEqual(best_shift(stats).shift, "D")
        self.assertEqual(worst_shift(stats).shift, "N")

    def test_no_filled_shift(self):
        self.assertIsNone(best_shift(compute_shift_stats([])))
        self.assertIsNone(worst_shift([]))

    def test_best_and_worst_day(self):
        best, worst = best_and_worst_day(WEEK)
        self.assertEqual(best.date_iso, "2024-03-01")
        self.assertEqual(worst.date_iso, "2024-03-04")
        self.assertEqual(best_and_worst_day([]), (None, None))

    def test_ward_weather(self):
        w = compute_ward_weather(WEEK)
        # mental avg 52
        self.assertEqual(w.title, "대체로 맑음 🌤️")
        self.assertEqual(w.top_tags[0], ("#피곤", 3))
        self.assertNotIn("야근", [t for t, _ in w.top_tags])
        self.assertTrue(w.detail.startswith("최근 7일 키워드: #피곤"))

    def test_ward_weather_without_tags(self):
        w = compute_ward_weather([_vital("2024-03-01", "N", 20, 20)])
        self.assertEqual(w.title, "폭풍우 🌩️")
        self.assertEqual(w.top_tags, [])
        self.assertEqual(w.detail, "최근 7일 키워드 기록이 없어요")

    def test_summarize_window(self):
        s = summarize_window(WEEK)
        self.assertEqual(s["days"], 5)
        self.assertAlmostEqual(s["avg_body"], 53.6)
        self.assertEqual(s["night_days"], 2)
        self.assertEqual(s["danger_days"], 1)
        self.assertEqual(s["warning_days"], 1)
        self.assertEqual(s["sleep_debt_end"], 3.5)
        self.assertEqual(summarize_window([])["days"], 0)


if __name__ == "__main__":
    unittest.main()
