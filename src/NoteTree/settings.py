from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .list_styles import FONT_NAME, FONT_SIZE_PT

logger = logging.getLogger(__name__)


@dataclass
class EditorSettings:
    font_family: str = FONT_NAME
    font_size: float = FONT_SIZE_PT
    # Seconds an exported preview stays valid without a mutation.
    preview_cache_seconds: float = 0.1
    # Characters the caret may drift when restored after an edit.
    caret_tolerance: int = 2


def settings_from_mapping(data: Mapping[str, Any]) -> EditorSettings:
    """Build settings from a mapping, coercing values to the field types."""
    known = {field.name: field for field in fields(EditorSettings)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in known:
            logger.warning("Ignoring unknown setting %r", key)
            continue
        if value is None:
            continue
        if name == "font_family":
            values[name] = str(value)
        elif name == "caret_tolerance":
            values[name] = int(value)
        else:
            values[name] = float(value)
    return EditorSettings(**values)


def parse_settings(text: str) -> EditorSettings:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("Settings YAML root must be a mapping.")
    return settings_from_mapping(data)


def load_settings(path: str | Path) -> EditorSettings:
    settings_path = Path(path).expanduser()
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")
    logger.debug("Loading settings from %s", settings_path)
    return parse_settings(settings_path.read_text(encoding="utf-8"))
