from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict

logger = logging.getLogger(__name__)

CONFIG_FILE = os.path.join(os.path.expanduser("~/.config/pacbrowse"), "config.json")

@dataclass(frozen=True)
class Settings:
    aur_helper: str = "paru"
    min_query_len: int = 2
    detail_debounce: float = 0.15
    confirm_window: int = 10
    panel_max: int = 10
    query_char_limit: int = 100
    theme: str = "catppuccin-mocha"
    interactive_actions: bool = True

def load_json_safe(path: str, default: Any) -> Any:
    try:
        if not os.path.exists(path):
            return default
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
        if not raw.strip():
            return default
        return json.loads(raw)
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable config %s", path, exc_info=True)
        return default

def settings_from_dict(data: Dict[str, Any], base: Settings = Settings()) -> Settings:
    changes: Dict[str, Any] = {}
    for f in fields(Settings):
        if f.name not in data:
            continue
        value = data[f.name]
        expected = type(getattr(base, f.name))
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if type(value) is not expected:
            logger.warning("Config key %r: expected %s, got %r", f.name, expected.__name__, value)
            continue
        changes[f.name] = value
    return replace(base, **changes)

def load_settings(path: str = CONFIG_FILE) -> Settings:
    cfg = load_json_safe(path, {})
    if not isinstance(cfg, dict):
        logger.warning("Config %s is not a JSON object, using defaults", path)
        cfg = {}
    return settings_from_dict(cfg)
