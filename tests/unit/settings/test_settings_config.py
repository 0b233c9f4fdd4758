from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from slntree import config


class SettingsConfigTests(unittest.TestCase):
    def test_missing_config_yields_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("slntree.config.CONFIG_PATH", Path(tmp) / "missing.json"):
                settings = config.load_settings()

        self.assertEqual(settings, config.Settings())
        self.assertEqual(settings.debounce_seconds, 0.3)
        self.assertEqual(settings.rapid_update_threshold, 3)
        self.assertEqual(settings.rapid_update_window_seconds, 2.0)
        self.assertIn("bin", settings.skip_directories)

    def test_invalid_values_fall_back_per_key(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "slntree.json"
            config_path.write_text(
                json.dumps(
                    {
                        "debounce_seconds": -1,
                        "rapid_update_threshold": True,
                        "rapid_update_window_seconds": 5,
                        "poll_seconds": "fast",
                        "show_hidden": True,
                        "skip_directories": ["out", 3],
                    }
                ),
                encoding="utf-8",
            )
            with mock.patch("slntree.config.CONFIG_PATH", config_path):
                settings = config.load_settings()

        self.assertEqual(settings.debounce_seconds, 0.3)
        self.assertEqual(settings.rapid_update_threshold, 3)
        self.assertEqual(settings.rapid_update_window_seconds, 5.0)
        self.assertEqual(settings.poll_seconds, 0.5)
        self.assertTrue(settings.show_hidden)
        self.assertEqual(settings.skip_directories, config.Settings().skip_directories)

    def test_save_settings_keeps_unrelated_keys(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "nested" / "slntree.json"
            with mock.patch("slntree.config.CONFIG_PATH", config_path):
                config.save_config({"theme": "dark"})
                config.save_settings(
                    config.Settings(debounce_seconds=1.5, skip_directories=frozenset({"out", "Bin"}))
                )

                saved = config.load_config()
                self.assertEqual(saved.get("theme"), "dark")
                self.assertEqual(saved.get("skip_directories"), ["Bin", "out"])
                self.assertEqual(config.load_settings().debounce_seconds, 1.5)

    def test_non_object_config_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "slntree.json"
            config_path.write_text("[1, 2, 3]", encoding="utf-8")
            with mock.patch("slntree.config.CONFIG_PATH", config_path):
                self.assertEqual(config.load_config(), {})

    def test_malformed_json_reads_as_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "slntree.json"
            config_path.write_text('{"debounce_seconds": ', encoding="utf-8")
            with mock.patch("slntree.config.CONFIG_PATH", config_path):
                self.assertEqual(config.load_config(), {})
                self.assertEqual(config.load_settings(), config.Settings())

    def test_unwritable_location_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "blocker"
            blocker.write_text("", encoding="utf-8")
            config_path = blocker / "slntree.json"
            with mock.patch("slntree.config.CONFIG_PATH", config_path):
                config.save_config({"poll_seconds": 1.0})

                self.assertEqual(config.load_config(), {})


if __name__ == "__main__":
    unittest.main()
