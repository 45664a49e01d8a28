"""Scan entry point: ``scan(project_root) -> Catalog``."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .aliases import AliasResolver
from .catalog import CatalogBuilder
from .graph import RelationshipGraphBuilder
from .models import Catalog
from .walker import detect_framework_and_router

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def scan(project_root: Union[str, Path], max_workers: Optional[int] = None) -> Catalog:
    """Build the complete catalog for the project at *project_root*.

    Per-file problems never abort the scan.  A missing directory yields an
    empty catalog with router type ``unknown``.
    """
    root = Path(project_root).expanduser().resolve()
    if not root.is_dir():
        logger.warning("Project directory not found: %s", root)
        return Catalog(
            project_path=str(root),
            project_name=root.name,
            framework="unknown",
            router_type="unknown",
            scanned_at=_timestamp(),
        )

    started = time.perf_counter()
    logger.info("Scanning %s", root)

    # One resolver per scan; nothing is cached across scans.
    resolver = AliasResolver(root)
    framework, router_type = detect_framework_and_router(root)
    logger.info("Detected %s with %s routing", framework, router_type)

    catalog = CatalogBuilder(root, max_workers=max_workers).build(framework, router_type)
    RelationshipGraphBuilder(catalog, resolver).build()
    catalog.scanned_at = _timestamp()

    logger.info("Scan complete in %.2fs", time.perf_counter() - started)
    return catalog
