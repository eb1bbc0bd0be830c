from __future__ import annotations

import os
import tempfile
import unittest

from shiftcare.config import AppConfig, config_from_mapping, config_from_secrets, load_config


class ConfigFromMappingTests(unittest.TestCase):
    def test_defaults(self):
        cfg = config_from_mapping(None)
        self.assertEqual(cfg, AppConfig())
        self.assertEqual(cfg.engine_version, "v4")
        self.assertEqual(cfg.timezone, "Asia/Seoul")

    def test_aliases_and_coercion(self):
        cfg = config_from_mapping(
            {
                "engine_version": "Legacy",
                "start_battery": "150",
                "forecast_days": "abc",
                "log_level": "debug",
                "nurse_name": "  ",
                "profile": {"chronotype": 2, "caffeine_sensitivity": "0.1"},
            }
        )
        self.assertEqual(cfg.engine_version, "v3")
        self.assertEqual(cfg.start_battery, 100.0)
        self.assertEqual(cfg.forecast_days, 14)
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertEqual(cfg.nurse_name, "간호사")
        self.assertEqual(cfg.profile.chronotype, 1.0)
        self.assertEqual(cfg.profile.caffeine_sensitivity, 0.5)

    def test_unknown_engine_falls_back_with_warning(self):
        with self.assertLogs("shiftcare.config", level="WARNING"):
            cfg = config_from_mapping({"engine_version": "v9"})
        self.assertEqual(cfg.engine_version, "v4")

    def test_bad_log_level_and_horizon(self):
        cfg = config_from_mapping({"log_level": "LOUD", "forecast_days": 500})
        self.assertEqual(cfg.log_level, "INFO")
        self.assertEqual(cfg.forecast_days, 60)

    def test_secrets_table(self):
        cfg = config_from_secrets({"shiftcare": {"nurse_name": "박"}, "other": {}})
        self.assertEqual(cfg.nurse_name, "박")
        self.assertEqual(config_from_secrets({}), AppConfig())


class LoadConfigTests(unittest.TestCase):
    def test_missing_file_gives_defaults(self):
        with self.assertLogs("shiftcare.config", level="WARNING"):
            cfg = load_config("/nonexistent/shiftcare.toml")
        self.assertEqual(cfg, AppConfig())
        self.assertEqual(load_config(None), AppConfig())

    def test_reads_shiftcare_table(self):
        body = (
            "[shiftcare]\n"
            'engine_version = "current"\n'
            "forecast_days = 21\n"
            "\n"
            "[shiftcare.profile]\n"
            "chronotype = 0.2\n"
        )
        fd, path = tempfile.mkstemp(suffix=".toml")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(body)
            cfg = load_config(path)
        finally:
            os.remove(path)
        self.assertEqual(cfg.engine_version, "v4")
        self.assertEqual(cfg.forecast_days, 21)
        self.assertAlmostEqual(cfg.profile.chronotype, 0.2)
        self.assertEqual(cfg.profile.caffeine_sensitivity, 1.0)


if __name__ == "__main__":
    unittest.main()
