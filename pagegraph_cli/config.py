"""Configuration paths and scan defaults for PageGraph."""

from __future__ import annotations

# Overrides come from ~/.pagegraph/config.toml (set via `pagegraph set-config`)
from .config_manager import BASE_DIR, CONFIG_FILE, load_scan_config

SOURCE_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js")

SKIP_DIRS = {
    "node_modules", ".next", ".nuxt", "dist", "build", "out", ".git",
    ".turbo", ".vercel", ".cache", "coverage", ".explorer", ".storybook",
}

# Module-level directives are only looked for in this many leading characters.
DIRECTIVE_WINDOW = 500

_scan_config = load_scan_config()

MAX_WORKERS: int = _scan_config["max_workers"]
IGNORED_DIRS = SKIP_DIRS | set(_scan_config["ignore_dirs"])

__all__ = [
    "BASE_DIR",
    "CONFIG_FILE",
    "DIRECTIVE_WINDOW",
    "IGNORED_DIRS",
    "MAX_WORKERS",
    "SKIP_DIRS",
    "SOURCE_EXTENSIONS",
]
