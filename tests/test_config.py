from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lazyjj import config


class ConfigBehaviorTests(unittest.TestCase):
    def test_missing_config_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("lazyjj.config.CONFIG_PATH", Path(tmp) / "missing.json"):
                self.assertEqual(config.load_settings(), config.Settings())

    def test_malformed_values_fall_back_per_key(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "config.json"
            config_path.write_text(
                json.dumps(
                    {
                        "describe_editor": "nano",
                        "log_limit": True,
                        "split_percent": 150,
                        "floating_percent": 60,
                        "style": "  ",
                        "jj_executable": "/opt/jj",
                    }
                ),
                encoding="utf-8",
            )
            with mock.patch("lazyjj.config.CONFIG_PATH", config_path):
                settings = config.load_settings()

        self.assertEqual(settings.describe_editor, "buffer")
        self.assertEqual(settings.log_limit, config.DEFAULT_LOG_LIMIT)
        self.assertEqual(settings.split_percent, 40.0)
        self.assertEqual(settings.floating_ratio, 0.6)
        self.assertEqual(settings.style, "monokai")
        self.assertEqual(settings.jj_executable, "/opt/jj")

    def test_non_object_json_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "config.json"
            config_path.write_text("[1, 2]", encoding="utf-8")
            with mock.patch("lazyjj.config.CONFIG_PATH", config_path):
                self.assertEqual(config.load_config(), {})

    def test_save_split_percent_clamps_and_round_trips(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "nested" / "config.json"
            with mock.patch("lazyjj.config.CONFIG_PATH", config_path):
                config.save_split_percent(100, 95)
                self.assertEqual(config.load_config().get("split_percent"), 90.0)
                config.save_split_percent(40, 10)
                self.assertEqual(config.load_settings().split_percent, 25.0)


if __name__ == "__main__":
    unittest.main()
