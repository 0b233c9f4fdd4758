"""User settings for slntree, kept in a JSON file under the platform config dir.

Holds tree-sync debounce timing, the rapid-update guard, polling interval and
which directories listings skip. Bad or missing values fall back to defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

logger = logging.getLogger(__name__)

APP_NAME = "slntree"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULT_SKIP_DIRECTORIES = (
    "bin",
    "obj",
    "node_modules",
    ".git",
    ".vs",
    ".vscode",
    "packages",
    ".nuget",
    "TestResults",
    "coverage",
    "build",
)


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings."""

    debounce_seconds: float = 0.3
    rapid_update_threshold: int = 3
    rapid_update_window_seconds: float = 2.0
    poll_seconds: float = 0.5
    show_hidden: bool = False
    skip_directories: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_SKIP_DIRECTORIES))


def load_config() -> dict[str, object]:
    """Read the raw slntree settings object from ``CONFIG_PATH``.

    A missing file, bad JSON or a non-object top level all read as ``{}`` so
    ``load_settings`` falls back to its defaults key by key.
    """
    try:
        raw = CONFIG_PATH.read_text(encoding="utf-8")
        data = json.loads(raw)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.debug("ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    if not isinstance(data, dict):
        logger.debug("ignoring config %s: top level is %s", CONFIG_PATH, type(data).__name__)
        return {}
    return data


def save_config(data: dict[str, object]) -> None:
    """Write ``data`` to ``CONFIG_PATH``, creating its directory.

    A tree session keeps running with in-memory settings when the file cannot
    be written.
    """
    text = json.dumps(data, indent=2, sort_keys=True) + "\n"
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(text, encoding="utf-8")
    except OSError as exc:
        logger.debug("could not write config %s: %s", CONFIG_PATH, exc)


def _positive_float(data: dict[str, object], key: str, default: float) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value <= 0:
        return default
    return float(value)


def _positive_int(data: dict[str, object], key: str, default: int) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    if value <= 0:
        return default
    return value


def load_settings() -> Settings:
    """Build ``Settings`` from persisted config, ignoring invalid values."""
    data = load_config()
    defaults = Settings()

    show_hidden = data.get("show_hidden")
    if not isinstance(show_hidden, bool):
        show_hidden = defaults.show_hidden

    skip_raw = data.get("skip_directories")
    if isinstance(skip_raw, list) and all(isinstance(name, str) and name for name in skip_raw):
        skip_directories = frozenset(skip_raw)
    else:
        skip_directories = defaults.skip_directories

    return Settings(
        debounce_seconds=_positive_float(data, "debounce_seconds", defaults.debounce_seconds),
        rapid_update_threshold=_positive_int(data, "rapid_update_threshold", defaults.rapid_update_threshold),
        rapid_update_window_seconds=_positive_float(
            data,
            "rapid_update_window_seconds",
            defaults.rapid_update_window_seconds,
        ),
        poll_seconds=_positive_float(data, "poll_seconds", defaults.poll_seconds),
        show_hidden=show_hidden,
        skip_directories=skip_directories,
    )


def save_settings(settings: Settings) -> None:
    """Persist ``settings`` while keeping unrelated config keys."""
    config = load_config()
    config["debounce_seconds"] = settings.debounce_seconds
    config["rapid_update_threshold"] = settings.rapid_update_threshold
    config["rapid_update_window_seconds"] = settings.rapid_update_window_seconds
    config["poll_seconds"] = settings.poll_seconds
    config["show_hidden"] = settings.show_hidden
    config["skip_directories"] = sorted(settings.skip_directories, key=str.casefold)
    save_config(config)
