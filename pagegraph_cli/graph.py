"""Relationship graph: usage back-references, server-action provenance, closures."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .aliases import AliasResolver
from .models import (
    Catalog,
    ComponentEntity,
    DependencyClosure,
    Edge,
    EdgeType,
    HookEntity,
    ImportRecord,
    ServerActionFile,
    ServerActionRef,
)

logger = logging.getLogger(__name__)

_SOURCE_EXT_RE = re.compile(r"\.(?:tsx?|jsx?)$")


def normalize_key(name: str) -> str:
    """Case- and separator-insensitive form: ``Side_Bar-Nav`` -> ``sidebarnav``."""
    return re.sub(r"[-_]", "", name).lower()


def _strip_ext(path: str) -> str:
    return _SOURCE_EXT_RE.sub("", path.replace("\\", "/"))


def _append_unique(items: List[str], value: str) -> bool:
    if value in items:
        return False
    items.append(value)
    return True


# ===================================================================
# Candidate index
# ===================================================================

class CandidateIndex:
    """Name -> entity-id lookup over three tiers: exact, lowercase, normalized.

    Lookups try the tiers in that order.  Inside a tier the first
    registration of a key is kept; later registrations of the same key for a
    different entity are counted as collisions.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._tiers: Tuple[Dict[str, str], Dict[str, str], Dict[str, str]] = ({}, {}, {})
        self.collisions = 0

    @staticmethod
    def _keys(name: str) -> Tuple[str, str, str]:
        return name, name.lower(), normalize_key(name)

    def register(self, name: str, entity_id: str) -> None:
        if not name:
            return
        for tier, key in zip(self._tiers, self._keys(name)):
            existing = tier.setdefault(key, entity_id)
            if existing != entity_id:
                self.collisions += 1
                logger.debug("%s key %r: keeping %s over %s", self.kind, key, existing, entity_id)

    def register_all(self, entries: Iterable[Tuple[str, str]]) -> None:
        for name, entity_id in entries:
            self.register(name, entity_id)

    def lookup(self, name: str) -> Optional[str]:
        for tier, key in zip(self._tiers, self._keys(name)):
            if key in tier:
                return tier[key]
        return None

    def __len__(self) -> int:
        return len(self._tiers[0])


# ===================================================================
# Graph builder
# ===================================================================

# Import-target kinds in linking priority order.
LINK_ORDER = ("component", "hook", "context", "utility", "store")


class RelationshipGraphBuilder:
    """Populates back-references, closures and edges of a freshly built catalog.

    Runs single-threaded; once :meth:`build` returns the catalog is final.
    """

    def __init__(self, catalog: Catalog, resolver: AliasResolver):
        self.catalog = catalog
        self.resolver = resolver
        self.entities: Dict[str, Any] = {}
        self.indexes: Dict[str, CandidateIndex] = {kind: CandidateIndex(kind) for kind in LINK_ORDER}
        self.edges: Set[Edge] = set()
        # component id -> imported entity ids per kind
        self.adjacency: Dict[str, Dict[str, List[str]]] = {}

    # ------------------------------------------------------------------
    # Index construction
    # ------------------------------------------------------------------

    def _build_indexes(self) -> None:
        cat = self.catalog
        for group in (cat.pages, cat.components, cat.hooks, cat.contexts,
                      cat.utilities, cat.stores, cat.server_action_files):
            for entity in group:
                self.entities[entity.entity_id] = entity

        idx = self.indexes
        # Primary names first so they win over export names.
        idx["component"].register_all((c.name, c.entity_id) for c in cat.components)
        idx["component"].register_all((e, c.entity_id) for c in cat.components for e in c.exports)
        idx["hook"].register_all((h.name, h.entity_id) for h in cat.hooks)
        idx["context"].register_all((c.name, c.entity_id) for c in cat.contexts)
        idx["context"].register_all((c.provider_name, c.entity_id) for c in cat.contexts)
        idx["utility"].register_all((u.name, u.entity_id) for u in cat.utilities)
        idx["utility"].register_all((e, u.entity_id) for u in cat.utilities for e in u.exports)
        idx["store"].register_all((s.name, s.entity_id) for s in cat.stores)
        idx["store"].register_all((e, s.entity_id) for s in cat.stores for e in s.exports)

        collisions = sum(index.collisions for index in idx.values())
        if collisions:
            logger.debug("Lookup key collisions: %d", collisions)

    def _edge(self, src: str, dst: str, edge_type: EdgeType) -> None:
        self.edges.add(Edge(src=src, dst=dst, edge_type=edge_type))

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    def link_pages(self) -> int:
        links = 0
        index = self.indexes["component"]
        for page in self.catalog.pages:
            refs = ([page.component_name] if page.component_name else []) + page.components
            for ref in refs:
                target = index.lookup(ref)
                if target is None:
                    continue
                component = self.entities[target]
                if _append_unique(component.used_in_pages, page.route):
                    links += 1
                self._edge(page.entity_id, target, "renders")
        return links

    def _resolve_import(self, component: ComponentEntity, name: str) -> Optional[Tuple[str, str]]:
        for kind in LINK_ORDER:
            target = self.indexes[kind].lookup(name)
            if target is None:
                continue
            if kind == "component" and target == component.entity_id:
                continue
            return kind, target
        return None

    def link_components(self) -> int:
        links = 0
        for component in self.catalog.components:
            targets: Dict[str, List[str]] = {kind: [] for kind in LINK_ORDER}
            self.adjacency[component.entity_id] = targets
            for name in component.imports:
                resolved = self._resolve_import(component, name)
                if resolved is None:
                    continue
                kind, target_id = resolved
                _append_unique(targets[kind], target_id)
                target = self.entities[target_id]
                back_refs = target.used_in_components if kind == "component" else target.used_in
                if _append_unique(back_refs, component.name):
                    links += 1
                self._edge(component.entity_id, target_id, "imports")
        return links

    # ------------------------------------------------------------------
    # Server actions
    # ------------------------------------------------------------------

    def _matches_action_file(self, specifier: str, action: ServerActionFile, from_file: Path) -> bool:
        rel = _strip_ext(action.relative_path)
        rel_variants = {rel}
        if rel.endswith("/index"):
            rel_variants.add(rel[: -len("/index")])

        def suffix_match(tail: str) -> bool:
            tail = tail.strip("/")
            return bool(tail) and any(v == tail or v.endswith("/" + tail) for v in rel_variants)

        if specifier.startswith("."):
            resolved = _strip_ext(self.resolver.resolve_relative(specifier, from_file))
            target = _strip_ext(action.file_path)
            return resolved in (target, re.sub(r"/index$", "", target))

        for prefix in self.resolver.alias_prefixes():
            if specifier.startswith(prefix):
                return suffix_match(specifier[len(prefix):])

        return suffix_match(_strip_ext(specifier))

    @staticmethod
    def _named_value_imports(record: ImportRecord) -> List[str]:
        if record.is_type_only or record.is_side_effect:
            return []
        return [n for n in record.named_imports if n not in record.type_names]

    def link_server_actions(self) -> int:
        links = 0
        actions = self.catalog.server_action_files
        if not actions:
            return 0
        for component in self.catalog.components:
            from_file = Path(component.file_path)
            for record in component.import_records:
                names = self._named_value_imports(record)
                if not names:
                    continue
                for action in actions:
                    if not self._matches_action_file(record.source, action, from_file):
                        continue
                    for name in names:
                        if name not in action.exported_functions:
                            continue
                        exists = any(
                            ref.function_name == name and ref.source_file_path == action.file_path
                            for ref in component.server_actions
                        )
                        if not exists:
                            component.server_actions.append(ServerActionRef(
                                function_name=name,
                                import_path=action.relative_path,
                                source_file_path=action.file_path,
                            ))
                            links += 1
                        self._edge(component.entity_id, action.entity_id, "calls_action")
        return links

    # ------------------------------------------------------------------
    # Closures
    # ------------------------------------------------------------------

    def compute_closures(self) -> None:
        hooks_by_name: Dict[str, HookEntity] = {}
        for hook in self.catalog.hooks:
            hooks_by_name.setdefault(hook.name, hook)

        for component in self.catalog.components:
            closure = DependencyClosure()
            visited = {component.entity_id}
            stack = [component.entity_id]
            while stack:
                current = stack.pop()
                targets = self.adjacency.get(current, {})
                for hook_id in targets.get("hook", []):
                    hook = self.entities[hook_id]
                    _append_unique(closure.hooks, hook.name)
                    for dep in hook.dependencies:
                        if dep in hooks_by_name:
                            _append_unique(closure.hooks, dep)
                for context_id in targets.get("context", []):
                    _append_unique(closure.contexts, self.entities[context_id].name)
                for utility_id in targets.get("utility", []):
                    _append_unique(closure.utilities, self.entities[utility_id].name)
                for child_id in reversed(targets.get("component", [])):
                    if child_id in visited:
                        continue
                    visited.add(child_id)
                    _append_unique(closure.components, self.entities[child_id].name)
                    stack.append(child_id)
            component.all_dependencies = closure

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------

    @staticmethod
    def _matcher_regex(pattern: str) -> Optional[re.Pattern[str]]:
        expr = re.sub(r"/:\w+\*", "(?:/.*)?", pattern)
        expr = re.sub(r"/:\w+\+", "/.+", expr)
        expr = re.sub(r"/:\w+\?", "(?:/[^/]+)?", expr)
        expr = re.sub(r":\w+", "[^/]+", expr)
        try:
            return re.compile(f"^{expr}$")
        except re.error:
            logger.debug("Unsupported middleware matcher %r", pattern)
            return None

    def link_middleware(self) -> None:
        middleware = self.catalog.middleware
        if middleware is None:
            return
        routes = [p.route for p in self.catalog.pages if p.kind == "page"]
        if not middleware.matcher_patterns:
            for route in routes:
                _append_unique(middleware.used_in, route)
            return
        matchers = [m for m in map(self._matcher_regex, middleware.matcher_patterns) if m]
        for route in routes:
            if any(m.match(route) for m in matchers):
                _append_unique(middleware.used_in, route)

    # ------------------------------------------------------------------

    def build(self) -> Catalog:
        self._build_indexes()
        page_links = self.link_pages()
        component_links = self.link_components()
        action_links = self.link_server_actions()
        # Closures read the adjacency completed above.
        self.compute_closures()
        self.link_middleware()
        self.catalog.edges = sorted(self.edges, key=lambda e: (e.src, e.dst, e.edge_type))
        logger.info(
            "Relationships: %d page, %d component, %d server-action links; %d edges",
            page_links, component_links, action_links, len(self.catalog.edges),
        )
        return self.catalog
