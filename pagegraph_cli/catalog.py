"""Entity catalog assembly: conventional directories, kind guards, parallel extraction."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .config import MAX_WORKERS
from .extractor import (
    extract,
    extract_exported_component_names,
    extract_hook_exports,
    extract_props,
    extract_server_action_exports,
    has_hook_definition,
    import_names,
    mentions_server_directive,
)
from .models import (
    Catalog,
    ComponentEntity,
    ContextEntity,
    Framework,
    HookEntity,
    PageEntity,
    RouterType,
    ServerActionFile,
    SourceFact,
    StoreEntity,
    UtilityEntity,
)
from .walker import (
    PageCandidate,
    build_layout_hierarchy,
    discover_api_routes,
    discover_middleware,
    discover_pages,
    list_source_files,
    read_text,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Conventional directories per entity kind
# ---------------------------------------------------------------------------
COMPONENT_DIRS = (
    "components", "src/components", "app/components", "src/app/components",
    "lib/components", "src/lib/components",
    "src/ui", "ui", "src/design-system", "design-system",
    "src/features", "features", "src/modules", "modules",
    "src/views", "views", "src/screens", "screens",
    "src/shared/components", "shared/components",
    "src/common/components", "common/components",
    "src/widgets", "widgets",
)

HOOK_DIRS = (
    "hooks", "src/hooks", "lib/hooks", "src/lib/hooks", "app/hooks", "src/app/hooks",
    "src/common/hooks", "common/hooks", "src/shared/hooks", "shared/hooks",
    "src/utils/hooks", "utils/hooks",
)
HOOK_LIB_DIRS = ("lib", "src/lib")

CONTEXT_DIRS = (
    "context", "contexts", "src/context", "src/contexts",
    "providers", "src/providers", "lib", "src/lib",
)
PROVIDER_COMPONENT_DIRS = ("components", "src/components")

UTILITY_DIRS = ("utils", "src/utils", "lib", "src/lib", "helpers", "src/helpers")

STORE_DIRS = (
    "store", "stores", "src/store", "src/stores", "src/state", "state",
    "src/redux", "redux", "src/lib/store", "lib/store", "src/features", "features",
)
STORE_LIB_DIRS = ("lib", "src/lib", "src")

_HOOK_FILE_RE = re.compile(r"^use|hook")
_PROVIDER_FILE_RE = re.compile(r"Provider|Context")
_STORE_FILE_RE = re.compile(r"store|slice|atoms", re.I)
_USE_IDENT_RE = re.compile(r"use[A-Z]\w+")
_CONTEXT_DEF_RE = re.compile(r"(?:export\s+)?(?:const|let)\s+(\w+)\s*=\s*(?:React\.)?createContext")
_PROVIDER_DEF_RE = re.compile(r"(?:const|function)\s+(\w*Provider)\b")
_UTILITY_EXPORT_RE = re.compile(r"export\s+(?:async\s+)?(?:const|function|class|type|interface)\s+(\w+)")
_UTILITY_DEFAULT_RE = re.compile(r"export\s+default\s+(?:function\s+)?(\w+)")


def _looks_like_markup(content: str) -> bool:
    return bool(re.search(r"=>\s*\(?\s*<", content)) or (
        "return" in content and bool(re.search(r"<[A-Z]", content))
    )


def _unique(items: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


# ---------------------------------------------------------------------------
# Store detection (first match wins)
# ---------------------------------------------------------------------------

def _imports_from(content: str, module: str) -> bool:
    return f"from '{module}'" in content or f'from "{module}"' in content


def detect_store(content: str) -> Optional[Tuple[str, List[str]]]:
    """``(kind, exported state names)`` for a state-management module."""
    if any(k in content for k in ("createSlice", "configureStore", "createStore", "combineReducers")):
        names: List[str] = []
        slice_match = re.search(r"""createSlice\s*\(\s*\{[^}]*name:\s*['"](\w+)['"]""", content)
        if slice_match:
            names.append(slice_match.group(1) + "Slice")
        names.extend(re.findall(r"export\s+const\s+(\w+)\s*=", content))
        return "redux", _unique(names)
    if ("create(" in content and "zustand" in content) or _imports_from(content, "zustand"):
        match = re.search(r"(?:export\s+)?const\s+(\w+)\s*=\s*create", content)
        return "zustand", [match.group(1)] if match else []
    recoil = _unique(re.findall(r"(?:export\s+)?const\s+(\w+)\s*=\s*(?:atom|selector)\s*\(", content))
    jotai = _unique(re.findall(r"(?:export\s+)?const\s+(\w+)\s*=\s*atom", content))
    # Explicit imports decide; recoil's atom({...}) also looks like a jotai atom(.
    if _imports_from(content, "recoil"):
        return "recoil", recoil
    if _imports_from(content, "jotai"):
        return "jotai", jotai
    if "atom({" in content or "selector({" in content:
        return "recoil", recoil
    if "atom(" in content:
        return "jotai", jotai
    if any(k in content for k in ("makeObservable", "makeAutoObservable", "@observable")) or _imports_from(
        content, "mobx"
    ):
        return "mobx", _unique(re.findall(r"(?:export\s+)?class\s+(\w+Store)", content))
    if "proxy(" in content or _imports_from(content, "valtio"):
        return "valtio", _unique(re.findall(r"(?:export\s+)?const\s+(\w+)\s*=\s*proxy\s*\(", content))
    return None


# ===================================================================
# Builder
# ===================================================================

class CatalogBuilder:
    """Reads every candidate file once and assembles typed entity lists.

    Extraction runs on a thread pool; results are merged on the calling
    thread in sorted path order.
    """

    def __init__(self, project_root: Path, max_workers: Optional[int] = None):
        self.root = Path(project_root)
        self.max_workers = max(1, max_workers or MAX_WORKERS)
        self._facts: Dict[Path, SourceFact] = {}

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_file(path: Path) -> Optional[SourceFact]:
        content = read_text(path)
        return extract(content) if content is not None else None

    def load(self, paths: Iterable[Path]) -> None:
        """Extract facts for *paths* not seen yet; unreadable files are dropped."""
        pending = sorted(set(paths) - set(self._facts))
        if not pending:
            return
        results: List[Optional[SourceFact]] = [None] * len(pending)
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self._extract_file, path): i for i, path in enumerate(pending)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as exc:
                    logger.debug("Failed to extract %s: %s", pending[index], exc)
        for path, fact in zip(pending, results):
            if fact is not None:
                self._facts[path] = fact
        logger.info("Extracted %d of %d files", sum(r is not None for r in results), len(pending))

    def fact(self, path: Path) -> Optional[SourceFact]:
        return self._facts.get(path)

    # ------------------------------------------------------------------
    # Candidate listing
    # ------------------------------------------------------------------

    def _files_in(self, dirs: Iterable[str], **kwargs) -> List[Path]:
        files: List[Path] = []
        seen: Set[Path] = set()
        for rel in dirs:
            for path in list_source_files(self.root / rel, **kwargs):
                if path not in seen:
                    seen.add(path)
                    files.append(path)
        return files

    def _named_files_in(self, dirs: Iterable[str], name_re: re.Pattern[str]) -> List[Path]:
        return [p for p in self._files_in(dirs, recursive=False) if name_re.search(p.stem)]

    # ------------------------------------------------------------------
    # Kind analyzers
    # ------------------------------------------------------------------

    def analyze_page(self, candidate: PageCandidate) -> Optional[PageEntity]:
        page = candidate.page
        if not candidate.analyze:
            return page
        fact = self.fact(Path(page.file_path))
        if fact is None:
            logger.debug("Dropping page %s: file unreadable", page.file_path)
            return None
        page.components = import_names(fact, local_only=True)
        page.links_to = list(fact.links)
        page.data_dependencies = list(fact.data_dependencies)
        return page

    def analyze_component(self, path: Path) -> Optional[ComponentEntity]:
        fact = self.fact(path)
        if fact is None:
            return None
        content = fact.content
        if path.stem == "index" and not any(k in content for k in ("function", "=>", "forwardRef")):
            logger.debug("Skipping re-export index %s", path)
            return None
        if not fact.has_jsx:
            return None
        names = extract_exported_component_names(content)
        name = names[0] if names else path.stem
        return ComponentEntity(
            name=name,
            file_path=str(path),
            file_name=path.name,
            is_client_component=fact.has_client_directive,
            props=extract_props(content, name),
            imports=import_names(fact, local_only=False),
            exports=list(fact.exports),
            data_dependencies=list(fact.data_dependencies),
            import_records=list(fact.imports),
        )

    def analyze_hooks(self, path: Path) -> List[HookEntity]:
        fact = self.fact(path)
        if fact is None:
            return []
        content = fact.content
        names = extract_hook_exports(content)
        if not names:
            if not has_hook_definition(content):
                return []
            names = [path.stem]
        used = _unique(_USE_IDENT_RE.findall(content))
        return [
            HookEntity(
                name=name,
                file_path=str(path),
                file_name=path.name,
                dependencies=[u for u in used if u != name][:10],
            )
            for name in names
        ]

    @staticmethod
    def _provider_for(content: str, context_name: str) -> str:
        base = context_name[:-len("Context")] if context_name.endswith("Context") else context_name
        exact = re.search(rf"(?:const|function)\s+({re.escape(base)}Provider)\b", content)
        if exact:
            return exact.group(1)
        any_provider = _PROVIDER_DEF_RE.search(content)
        return any_provider.group(1) if any_provider else f"{context_name}Provider"

    def analyze_contexts(self, path: Path) -> List[ContextEntity]:
        fact = self.fact(path)
        if fact is None or "createContext" not in fact.content:
            return []
        content = fact.content
        names = _unique(_CONTEXT_DEF_RE.findall(content)) or [path.stem]
        return [
            ContextEntity(
                name=name,
                provider_name=self._provider_for(content, name),
                file_path=str(path),
                file_name=path.name,
            )
            for name in names
        ]

    def analyze_utility(self, path: Path) -> Optional[UtilityEntity]:
        fact = self.fact(path)
        if fact is None:
            return None
        content = fact.content
        if _looks_like_markup(content):
            return None
        if re.search(r"export\s+(?:const|function)\s+use[A-Z]", content) or "createContext" in content:
            return None
        exports = _unique(_UTILITY_EXPORT_RE.findall(content))
        default = _UTILITY_DEFAULT_RE.search(content)
        if default and default.group(1) not in exports:
            exports.append(default.group(1))
        if not exports:
            return None
        return UtilityEntity(name=path.stem, file_path=str(path), file_name=path.name, exports=exports)

    def analyze_store(self, path: Path) -> Optional[StoreEntity]:
        fact = self.fact(path)
        if fact is None:
            return None
        detected = detect_store(fact.content)
        if detected is None:
            return None
        kind, exports = detected
        return StoreEntity(name=path.stem, file_path=str(path), file_name=path.name, kind=kind, exports=exports)

    def analyze_server_actions(self, path: Path) -> Optional[ServerActionFile]:
        fact = self.fact(path)
        if fact is None or not mentions_server_directive(fact.content):
            return None
        functions = extract_server_action_exports(fact.content)
        if not functions:
            return None
        return ServerActionFile(
            file_path=str(path),
            relative_path=path.relative_to(self.root).as_posix(),
            exported_functions=functions,
        )

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def build(self, framework: Framework, router_type: RouterType) -> Catalog:
        """Discover and classify every entity; relationships are left empty."""
        candidates = discover_pages(self.root, router_type)

        component_files = self._files_in(COMPONENT_DIRS)
        hook_files = [p for p in self._files_in(HOOK_DIRS) if p.stem != "index" and not p.name.endswith(".d.ts")]
        hook_files += [p for p in self._named_files_in(HOOK_LIB_DIRS, _HOOK_FILE_RE) if p not in hook_files]
        context_files = self._files_in(CONTEXT_DIRS)
        context_files += [
            p for p in self._named_files_in(PROVIDER_COMPONENT_DIRS, _PROVIDER_FILE_RE) if p not in context_files
        ]
        utility_files = [p for p in self._files_in(UTILITY_DIRS) if not p.stem.startswith("use")]
        store_files = [p for p in self._files_in(STORE_DIRS) if not p.name.endswith(".d.ts")]
        store_files += [p for p in self._named_files_in(STORE_LIB_DIRS, _STORE_FILE_RE) if p not in store_files]
        all_files = list_source_files(self.root)

        self.load(
            [Path(c.page.file_path) for c in candidates if c.analyze]
            + component_files + hook_files + context_files + utility_files + store_files + all_files
        )

        pages = [p for p in (self.analyze_page(c) for c in candidates) if p is not None]

        # Priority: component > hook > context > utility.
        claimed: Set[Path] = set()
        components: List[ComponentEntity] = []
        for path in component_files:
            component = self.analyze_component(path)
            if component:
                components.append(component)
                claimed.add(path)

        hooks: List[HookEntity] = []
        for path in hook_files:
            if path in claimed:
                continue
            found = self.analyze_hooks(path)
            if found:
                hooks.extend(found)
                claimed.add(path)

        contexts: List[ContextEntity] = []
        for path in context_files:
            if path in claimed:
                continue
            found_contexts = self.analyze_contexts(path)
            if found_contexts:
                contexts.extend(found_contexts)
                claimed.add(path)

        utilities: List[UtilityEntity] = []
        for path in utility_files:
            if path in claimed:
                continue
            utility = self.analyze_utility(path)
            if utility:
                utilities.append(utility)
                claimed.add(path)

        stores = [s for s in (self.analyze_store(p) for p in store_files) if s is not None]
        actions = [a for a in (self.analyze_server_actions(p) for p in all_files) if a is not None]

        catalog = Catalog(
            project_path=str(self.root),
            project_name=self.root.name,
            framework=framework,
            router_type=router_type,
            pages=sorted(pages, key=lambda p: (p.route, p.file_path)),
            components=sorted(components, key=lambda c: (c.file_path, c.name)),
            hooks=sorted(hooks, key=lambda h: (h.file_path, h.name)),
            contexts=sorted(contexts, key=lambda c: (c.file_path, c.name)),
            utilities=sorted(utilities, key=lambda u: u.file_path),
            stores=sorted(stores, key=lambda s: s.file_path),
            server_action_files=sorted(actions, key=lambda a: a.relative_path),
        )
        if framework == "nextjs":
            catalog.middleware = discover_middleware(self.root)
            catalog.api_routes = discover_api_routes(self.root)
        if router_type == "nextjs-app":
            catalog.layout_hierarchy = build_layout_hierarchy(self.root)

        logger.info(
            "Catalog: %d pages, %d components, %d hooks, %d contexts, %d utilities, %d stores, %d action files",
            len(catalog.pages), len(components), len(hooks), len(contexts),
            len(utilities), len(stores), len(actions),
        )
        return catalog
