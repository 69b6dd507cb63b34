# uiflow/utils/config.py
"""
Minimal config loader with caching and gentle fallbacks.

- Reads ./uiflow.yaml if present.
- Merges simple environment overrides (currently: logging.level).
- Returns a plain dict so callers can do .get(...) safely.
- Exposes reload_config() for tests.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from uiflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "uiflow.yaml"

_CONFIG_CACHE: Dict[str, Any] | None = None


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level is not a mapping", path)
        return {}
    return data


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    level = os.environ.get("UIFLOW_LOG_LEVEL")
    if level:
        section = dict(cfg.get("logging") or {})
        section["level"] = level
        cfg["logging"] = section
    return cfg


def get_config() -> Dict[str, Any]:
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    cfg = _read_yaml(Path(CONFIG_FILENAME))
    cfg = _apply_env_overrides(cfg)
    _CONFIG_CACHE = cfg
    return _CONFIG_CACHE


def reload_config() -> Dict[str, Any]:
    """Clear cache and reload (primarily for tests)."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = None
    return get_config()
