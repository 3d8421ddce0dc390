"""Loading of the optional JSON settings file."""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger("spooky_relay.settings")
BASE_DIR = Path(__file__).resolve().parents[1]


def settings_path() -> Path:
    """Resolve the settings file location from the environment."""
    env_path = os.getenv("SPOOKY_SETTINGS_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return BASE_DIR / "config" / os.getenv("SPOOKY_SETTINGS_FILE", "settings.json")


def flatten_sections(data: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten one level of grouping, so ``{"led": {"color": ...}}`` becomes ``led_color``.

    Top-level keys win over grouped ones with the same flattened name.
    """
    flat: Dict[str, Any] = {}
    for section, value in data.items():
        if isinstance(value, dict):
            for key, inner in value.items():
                flat.setdefault(f"{section}_{key}", inner)
    for key, value in data.items():
        if not isinstance(value, dict):
            flat[key] = value
    return flat


@lru_cache(maxsize=1)
def load_settings() -> Dict[str, Any]:
    """Return the flattened settings file contents, or ``{}`` when absent or unreadable."""
    config_path = settings_path()
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Failed to load settings file %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Settings file %s must contain a JSON object.", config_path)
        return {}
    logger.debug("Loaded settings from %s", config_path)
    return flatten_sections(data)


__all__ = ["flatten_sections", "load_settings", "settings_path"]
