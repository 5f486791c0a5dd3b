from __future__ import annotations

from dataclasses import dataclass, fields, replace
import json
import logging
from pathlib import Path
from typing import Any

CONFIG_DIR = Path.home() / ".pathfinderx"
CONFIG_PATH = CONFIG_DIR / "config.json"

logger = logging.getLogger("pathfinderx.engine")


@dataclass(frozen=True, slots=True)
class EngineSettings:
    strategy: str = "stable"
    max_candidates: int = 5
    max_alternates: int = 4
    max_relations: int = 6
    anchor_max_hops: int = 6
    triangulation_attribute_limit: int = 8
    structural_segment_limit: int = 8
    css_length_limit: int = 100
    text_min_length: int = 2
    text_max_length: int = 50


_INT_FIELDS = tuple(item.name for item in fields(EngineSettings) if item.name != "strategy")


def load_settings(config_path: Path | None = None) -> EngineSettings:
    path = config_path or CONFIG_PATH
    defaults = EngineSettings()
    if not path.exists() or not path.is_file():
        return defaults

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, TypeError):
        logger.debug("Ignoring unreadable settings file %s", path)
        return defaults

    if not isinstance(payload, dict):
        return defaults
    return settings_from_mapping(payload, defaults)


def settings_from_mapping(payload: dict[str, Any], base: EngineSettings | None = None) -> EngineSettings:
    settings = base or EngineSettings()
    changes: dict[str, Any] = {}

    strategy = payload.get("strategy")
    if isinstance(strategy, str) and strategy.strip():
        changes["strategy"] = strategy.strip().lower()

    for name in _INT_FIELDS:
        raw = payload.get(name)
        if raw is None or isinstance(raw, bool):
            continue
        try:
            value = int(raw)
        except (TypeError, ValueError, OverflowError):
            continue
        changes[name] = max(1, value)

    return replace(settings, **changes)
