"""Configuration manager for PageGraph CLI using TOML files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List

import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("PAGEGRAPH_HOME", str(Path.home() / ".pagegraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_SCAN_CONFIG: Dict[str, Any] = {
    "max_workers": 4,
    "ignore_dirs": [],
}

SCAN_KEYS = tuple(DEFAULT_SCAN_CONFIG)


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s: %s", CONFIG_FILE, exc)
        return {}


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    try:
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write %s: %s", CONFIG_FILE, exc)
        return False


def load_scan_config() -> Dict[str, Any]:
    """Load the ``[scan]`` section merged over the defaults.

    Invalid values are ignored with a warning so a broken config file never
    prevents a scan.
    """
    merged = {key: (list(value) if isinstance(value, list) else value)
              for key, value in DEFAULT_SCAN_CONFIG.items()}
    section = load_full_config().get("scan", {})
    if not isinstance(section, dict):
        return merged

    workers = section.get("max_workers")
    if workers is not None:
        try:
            merged["max_workers"] = max(1, int(workers))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid scan.max_workers=%r", workers)

    ignore = section.get("ignore_dirs")
    if isinstance(ignore, list):
        merged["ignore_dirs"] = [str(d) for d in ignore]
    elif ignore is not None:
        logger.warning("Ignoring invalid scan.ignore_dirs=%r", ignore)

    return merged


def save_scan_setting(key: str, value: str) -> bool:
    """Persist one ``[scan]`` setting given as text from the command line.

    ``ignore_dirs`` takes a comma separated list.

    Raises:
        KeyError: If *key* is not a known scan setting.
        ValueError: If *value* cannot be converted.
    """
    if key not in SCAN_KEYS:
        raise KeyError(key)

    parsed: Any
    if key == "max_workers":
        parsed = int(value)
        if parsed < 1:
            raise ValueError("max_workers must be at least 1")
    else:
        parsed = _split_list(value)

    config = load_full_config()
    scan_section = config.get("scan")
    if not isinstance(scan_section, dict):
        scan_section = {}
    scan_section[key] = parsed
    config["scan"] = scan_section
    return _save_full_config(config)


def _split_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]
