from __future__ import annotations

import unittest

from domain.shift import (
    apply_pattern_to_schedule,
    count_nights_in_window,
    hours_between_shifts,
    normalize_shift,
    parse_pattern,
    shift_length_hours,
    shift_times,
)


class ShiftClockTests(unittest.TestCase):
    def test_normalize(self):
        self.assertEqual(normalize_shift(" n "), "N")
        self.assertEqual(normalize_shift(None), "OFF")
        self.assertEqual(normalize_shift("X"), "OFF")

    def test_night_ends_next_morning(self):
        start, end = shift_times("2024-03-01", "N")
        self.assertEqual((start.day, start.hour), (1, 23))
        self.assertEqual((end.day, end.hour), (2, 7))
        self.assertEqual(shift_length_hours("2024-03-01", "N"), 8.0)
        self.assertIsNone(shift_times("2024-03-01", "OFF"))
        self.assertEqual(shift_length_hours("2024-03-01", "VAC"), 0.0)

    def test_rest_gap(self):
        self.assertEqual(hours_between_shifts("2024-03-01", "E", "2024-03-02", "D"), 8.0)
        self.assertEqual(hours_between_shifts("2024-03-01", "N", "2024-03-02", "D"), 0.0)
        self.assertEqual(hours_between_shifts("2024-03-01", "D", "2024-03-02", "D"), 16.0)
        self.assertIsNone(hours_between_shifts("2024-03-01", "OFF", "2024-03-02", "D"))

    def test_count_nights_in_window(self):
        sched = {"2024-03-01": "N", "2024-03-15": "N", "2024-03-31": "N", "2024-01-01": "N"}
        self.assertEqual(count_nights_in_window(sched, "2024-03-31"), 2)
        self.assertEqual(count_nights_in_window(sched, "2024-03-31", 31), 3)
        self.assertEqual(count_nights_in_window({}, "2024-03-31"), 0)


class PatternTests(unittest.TestCase):
    ROTATION = ["D", "D", "E", "E", "N", "N", "OFF", "OFF"]

    def test_compact_counts(self):
        self.assertEqual(parse_pattern("D2E2N2OFF2"), self.ROTATION)

    def test_run_together_letters(self):
        self.assertEqual(parse_pattern("ddeenn--"), self.ROTATION)

    def test_separated_with_counts(self):
        self.assertEqual(parse_pattern("D2 E2 N2 OFF2"), self.ROTATION)
        self.assertEqual(parse_pattern("D, D / E | E"), ["D", "D", "E", "E"])

    def test_mixed_parts(self):
        self.assertEqual(parse_pattern("DDEE NN"), ["D", "D", "E", "E", "N", "N"])

    def test_korean_words(self):
        self.assertEqual(parse_pattern("데이 나이트 오프"), ["D", "N", "OFF"])
        self.assertEqual(parse_pattern("이브닝 연차"), ["E", "VAC"])

    def test_counts_are_capped(self):
        self.assertEqual(len(parse_pattern("N999")), 365)
        self.assertEqual(parse_pattern(""), [])
        self.assertEqual(parse_pattern(None), [])

    def test_apply_overwrite_repeats_pattern(self):
        patch = apply_pattern_to_schedule(["D", "N", "OFF"], "2024-02-28", 4)
        self.assertEqual(
            patch,
            {"2024-02-28": "D", "2024-02-29": "N", "2024-03-01": "OFF", "2024-03-02": "D"},
        )

    def test_apply_fill_empty_keeps_existing(self):
        existing = {"2024-03-02": "VAC"}
        patch = apply_pattern_to_schedule(["N"], "2024-03-01", 3, mode="fill-empty", existing=existing)
        self.assertEqual(patch, {"2024-03-01": "N", "2024-03-03": "N"})

    def test_apply_nothing(self):
        self.assertEqual(apply_pattern_to_schedule([], "2024-03-01", 3), {})
        self.assertEqual(apply_pattern_to_schedule(["D"], "2024-03-01", 0), {})


if __name__ == "__main__":
    unittest.main()
