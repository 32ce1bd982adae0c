"""Persistent JSON config helpers.

Stores the search root, ignored directory names, fetch deadline, and an
optional cache location. Malformed or missing config values fall back to
defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .cache import DEFAULT_CACHE_PATH
from .discovery import DEFAULT_IGNORE_DIRS
from .status import DEFAULT_FETCH_TIMEOUT_SECONDS

APP_NAME = "lazyrepos"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME


@dataclass(frozen=True)
class Settings:
    search_root: Path
    ignore_dirs: tuple[str, ...]
    fetch_timeout_seconds: float
    cache_path: Path


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Write errors are ignored; the next run simply sees the previous values.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass


def _path_value(value: object) -> Path | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return Path(value.strip()).expanduser()


def load_search_root(data: dict[str, object] | None = None) -> Path:
    """Return the configured search root, defaulting to the home directory."""
    config = load_config() if data is None else data
    return _path_value(config.get("search_root")) or Path.home()


def save_search_root(path: Path) -> None:
    config = load_config()
    config["search_root"] = str(path)
    save_config(config)


def load_ignore_dirs(data: dict[str, object] | None = None) -> tuple[str, ...]:
    """Return ignored directory names; a non-list or empty-string entry is dropped."""
    config = load_config() if data is None else data
    value = config.get("ignore_dirs")
    if not isinstance(value, list):
        return DEFAULT_IGNORE_DIRS
    return tuple(item for item in value if isinstance(item, str) and item)


def load_fetch_timeout_seconds(data: dict[str, object] | None = None) -> float:
    """Return a positive fetch deadline; booleans and non-positive values are rejected."""
    config = load_config() if data is None else data
    value = config.get("fetch_timeout_seconds")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return DEFAULT_FETCH_TIMEOUT_SECONDS
    return float(value)


def load_cache_path(data: dict[str, object] | None = None) -> Path:
    config = load_config() if data is None else data
    return _path_value(config.get("cache_path")) or DEFAULT_CACHE_PATH


def load_settings() -> Settings:
    """Read the config file once and resolve every setting."""
    data = load_config()
    return Settings(
        search_root=load_search_root(data),
        ignore_dirs=load_ignore_dirs(data),
        fetch_timeout_seconds=load_fetch_timeout_seconds(data),
        cache_path=load_cache_path(data),
    )


__all__ = [
    "CONFIG_PATH",
    "Settings",
    "load_cache_path",
    "load_config",
    "load_fetch_timeout_seconds",
    "load_ignore_dirs",
    "load_search_root",
    "load_settings",
    "save_config",
    "save_search_root",
]
