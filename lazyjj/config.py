"""Persistent JSON config helpers.

Stores the describe-editor mode, log limit, region proportions, highlight
style, and the ``jj`` executable name. All access is defensive: malformed or
missing config falls back to defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir, user_log_dir

APP_NAME = "lazyjj"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
LOG_PATH = Path(user_log_dir(APP_NAME, appauthor=False)) / "lazyjj.log"

DESCRIBE_EDITORS = ("buffer", "input")
DEFAULT_LOG_LIMIT = 20


@dataclass(frozen=True)
class Settings:
    describe_editor: str = "buffer"
    log_limit: int = DEFAULT_LOG_LIMIT
    split_percent: float = 40.0
    floating_percent: float = 80.0
    style: str = "monokai"
    jj_executable: str = "jj"

    @property
    def split_ratio(self) -> float:
        return self.split_percent / 100.0

    @property
    def floating_ratio(self) -> float:
        return self.floating_percent / 100.0


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON; write errors are ignored."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def _load_percent(data: dict[str, object], key: str, default: float) -> float:
    """Read a percentage constrained to the open interval (0, 100)."""
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value <= 0 or value >= 100:
        return default
    return float(value)


def _load_string(data: dict[str, object], key: str, default: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        return default
    stripped = value.strip()
    return stripped if stripped else default


def load_settings() -> Settings:
    data = load_config()
    describe_editor = _load_string(data, "describe_editor", Settings.describe_editor)
    if describe_editor not in DESCRIBE_EDITORS:
        describe_editor = Settings.describe_editor

    log_limit = data.get("log_limit")
    if isinstance(log_limit, bool) or not isinstance(log_limit, int) or log_limit <= 0:
        log_limit = DEFAULT_LOG_LIMIT

    return Settings(
        describe_editor=describe_editor,
        log_limit=log_limit,
        split_percent=_load_percent(data, "split_percent", Settings.split_percent),
        floating_percent=_load_percent(data, "floating_percent", Settings.floating_percent),
        style=_load_string(data, "style", Settings.style),
        jj_executable=_load_string(data, "jj_executable", Settings.jj_executable),
    )


def save_split_percent(total_rows: int, split_rows: int) -> None:
    """Store the split height as a percentage clamped to ``[10, 90]``."""
    if total_rows <= 0:
        return
    percent = max(10.0, min(90.0, (split_rows / total_rows) * 100.0))
    config = load_config()
    config["split_percent"] = round(percent, 2)
    save_config(config)
