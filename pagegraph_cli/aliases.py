"""Import-specifier resolution through tsconfig/jsconfig path aliases."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

CONFIG_FILES = ("tsconfig.json", "jsconfig.json")

PROBE_SUFFIXES = (
    "", ".ts", ".tsx", ".js", ".jsx",
    "/index.ts", "/index.tsx", "/index.js", "/index.jsx",
)

DEFAULT_ALIAS_PREFIXES = ("@/", "~/")

# Group 1 keeps string literals intact so "//" inside a URL survives.
_COMMENT_RE = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.S)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments plus trailing commas from JSONC text."""
    without_comments = _COMMENT_RE.sub(lambda m: m.group(1) or "", text)
    return _TRAILING_COMMA_RE.sub(r"\1", without_comments)


def _join(*parts: str) -> str:
    return os.path.normpath(os.path.join(*parts))


class AliasResolver:
    """Resolves import specifiers to files for one project.

    Configuration is read once, at construction; build a fresh resolver for
    every scan.
    """

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root).resolve()
        self.config_file: Optional[Path] = None
        # (prefix, exact?, target directories), longest prefix first
        self.aliases: List[Tuple[str, bool, List[str]]] = []
        self._load()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _read_compiler_options(self) -> Dict:
        for name in CONFIG_FILES:
            path = self.project_root / name
            if not path.is_file():
                continue
            try:
                config = json.loads(strip_json_comments(path.read_text(encoding="utf-8")))
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                logger.warning("Could not parse %s, using default aliases: %s", path, exc)
                continue
            options = config.get("compilerOptions") if isinstance(config, dict) else None
            self.config_file = path
            return options if isinstance(options, dict) else {}
        return {}

    def _load(self) -> None:
        root = str(self.project_root)
        options = self._read_compiler_options()
        base_url = options.get("baseUrl") or "."
        paths = options.get("paths") or {}

        table: Dict[str, Tuple[bool, List[str]]] = {}
        if isinstance(paths, dict):
            for pattern, targets in paths.items():
                if not isinstance(targets, list):
                    continue
                exact = not pattern.endswith("*")
                prefix = pattern[:-1] if not exact else pattern
                dirs = [
                    _join(root, str(base_url), re.sub(r"/?\*$", "", str(target)))
                    for target in targets
                ]
                table[prefix] = (exact, dirs)

        defaults = [_join(root, "src"), root]
        for prefix in DEFAULT_ALIAS_PREFIXES:
            table.setdefault(prefix, (False, defaults))

        self.aliases = sorted(
            ((prefix, exact, dirs) for prefix, (exact, dirs) in table.items()),
            key=lambda entry: len(entry[0]),
            reverse=True,
        )
        logger.debug("Aliases for %s: %s", root, [a[0] for a in self.aliases])

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @staticmethod
    def _probe(base: str) -> Optional[Path]:
        for suffix in PROBE_SUFFIXES:
            candidate = Path(base + suffix)
            if candidate.is_file():
                return candidate
        return None

    def resolve_relative(self, specifier: str, from_file: Path) -> str:
        """Join a relative *specifier* onto the importer's directory (no probing)."""
        return _join(str(Path(from_file).parent), specifier)

    def resolve(self, specifier: str, from_file: Path) -> Optional[Path]:
        """Absolute path of the file *specifier* refers to, or ``None``."""
        if specifier.startswith("."):
            return self._probe(self.resolve_relative(specifier, from_file))

        for prefix, exact, dirs in self.aliases:
            if exact:
                if specifier != prefix:
                    continue
                remainder = ""
            elif specifier.startswith(prefix):
                remainder = specifier[len(prefix):]
            else:
                continue
            for target in dirs:
                found = self._probe(_join(target, remainder) if remainder else target)
                if found:
                    return found
        return None

    def alias_prefixes(self) -> List[str]:
        return [prefix for prefix, exact, _ in self.aliases if prefix and not exact]
