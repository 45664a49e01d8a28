"""Core data models produced by extraction, discovery and linking."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

DataKind = Literal[
    "fetch", "prisma", "drizzle", "useQuery", "useSWR",
    "serverAction", "trpc", "graphql", "axios", "unknown",
]
RouterType = Literal["nextjs-app", "nextjs-pages", "react-router", "unknown"]
Framework = Literal["nextjs", "react", "unknown"]
StoreKind = Literal["redux", "zustand", "jotai", "recoil", "mobx", "valtio"]
EdgeType = Literal["renders", "imports", "calls_action"]


# ---------------------------------------------------------------------------
# Extraction facts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImportRecord:
    """One import statement."""
    names: List[str]
    source: str
    is_local: bool
    aliases: Dict[str, str] = field(default_factory=dict)
    is_default: bool = False
    is_namespace: bool = False
    is_type_only: bool = False
    is_side_effect: bool = False
    namespace_name: Optional[str] = None
    type_names: List[str] = field(default_factory=list)

    @property
    def named_imports(self) -> List[str]:
        """Names imported through the ``{ ... }`` clause."""
        skip = 0
        if self.is_default:
            skip += 1
        if self.is_namespace:
            skip += 1
        return self.names[skip:]


@dataclass(frozen=True)
class DataDependency:
    kind: DataKind
    source: str
    line: int


@dataclass(frozen=True)
class PropInfo:
    name: str
    type: str
    required: bool
    default_value: Optional[str] = None


@dataclass(frozen=True)
class SourceFact:
    """Everything the extractor learns from one file's text."""
    imports: List[ImportRecord]
    exports: List[str]
    links: List[str]
    data_dependencies: List[DataDependency]
    has_client_directive: bool
    has_server_directive: bool
    has_jsx: bool
    content: str = field(repr=False, default="")


# ---------------------------------------------------------------------------
# Catalog entities
# ---------------------------------------------------------------------------

@dataclass
class PageEntity:
    route: str
    file_path: str
    file_name: str
    is_layout: bool = False
    is_loading: bool = False
    is_error: bool = False
    is_template: bool = False
    is_not_found: bool = False
    is_global_error: bool = False
    is_default: bool = False
    is_api_route: bool = False
    component_name: Optional[str] = None
    components: List[str] = field(default_factory=list)
    links_to: List[str] = field(default_factory=list)
    data_dependencies: List[DataDependency] = field(default_factory=list)

    @property
    def entity_id(self) -> str:
        return f"page:{self.route}@{self.file_path}"

    @property
    def kind(self) -> str:
        for flag, label in _PAGE_KINDS:
            if getattr(self, flag):
                return label
        return "page"


_PAGE_KINDS = (
    ("is_layout", "layout"),
    ("is_loading", "loading"),
    ("is_error", "error"),
    ("is_template", "template"),
    ("is_not_found", "not-found"),
    ("is_global_error", "global-error"),
    ("is_default", "default"),
    ("is_api_route", "route"),
)


@dataclass
class ServerActionRef:
    function_name: str
    import_path: str
    source_file_path: str


@dataclass
class DependencyClosure:
    """Everything reachable from a component by following its imports."""
    components: List[str] = field(default_factory=list)
    hooks: List[str] = field(default_factory=list)
    contexts: List[str] = field(default_factory=list)
    utilities: List[str] = field(default_factory=list)


@dataclass
class ComponentEntity:
    name: str
    file_path: str
    file_name: str
    is_client_component: bool = False
    props: List[PropInfo] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    data_dependencies: List[DataDependency] = field(default_factory=list)
    server_actions: List[ServerActionRef] = field(default_factory=list)
    used_in_pages: List[str] = field(default_factory=list)
    used_in_components: List[str] = field(default_factory=list)
    all_dependencies: Optional[DependencyClosure] = None
    import_records: List[ImportRecord] = field(default_factory=list, repr=False)

    @property
    def entity_id(self) -> str:
        return f"component:{self.file_path}"


@dataclass
class HookEntity:
    name: str
    file_path: str
    file_name: str
    dependencies: List[str] = field(default_factory=list)
    used_in: List[str] = field(default_factory=list)

    @property
    def entity_id(self) -> str:
        return f"hook:{self.name}@{self.file_path}"


@dataclass
class ContextEntity:
    name: str
    provider_name: str
    file_path: str
    file_name: str
    used_in: List[str] = field(default_factory=list)

    @property
    def entity_id(self) -> str:
        return f"context:{self.name}@{self.file_path}"


@dataclass
class UtilityEntity:
    name: str
    file_path: str
    file_name: str
    exports: List[str] = field(default_factory=list)
    used_in: List[str] = field(default_factory=list)

    @property
    def entity_id(self) -> str:
        return f"utility:{self.file_path}"


@dataclass
class StoreEntity:
    name: str
    file_path: str
    file_name: str
    kind: StoreKind
    exports: List[str] = field(default_factory=list)
    used_in: List[str] = field(default_factory=list)

    @property
    def entity_id(self) -> str:
        return f"store:{self.file_path}"


@dataclass
class ServerActionFile:
    file_path: str
    relative_path: str
    exported_functions: List[str] = field(default_factory=list)

    @property
    def entity_id(self) -> str:
        return f"action:{self.relative_path}"


@dataclass
class MiddlewareEntity:
    file_path: str
    file_name: str
    matcher_patterns: List[str] = field(default_factory=list)
    used_in: List[str] = field(default_factory=list)


@dataclass
class ApiRouteEntity:
    route: str
    file_path: str
    file_name: str
    methods: List[str] = field(default_factory=list)


@dataclass
class LayoutNode:
    route: str
    file_path: str
    children: List["LayoutNode"] = field(default_factory=list)


@dataclass(frozen=True)
class Edge:
    src: str
    dst: str
    edge_type: EdgeType


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass
class Catalog:
    """Result of one scan.  Read-only once :func:`scanner.scan` returns."""
    project_path: str
    project_name: str
    framework: Framework
    router_type: RouterType
    pages: List[PageEntity] = field(default_factory=list)
    components: List[ComponentEntity] = field(default_factory=list)
    hooks: List[HookEntity] = field(default_factory=list)
    contexts: List[ContextEntity] = field(default_factory=list)
    utilities: List[UtilityEntity] = field(default_factory=list)
    stores: List[StoreEntity] = field(default_factory=list)
    server_action_files: List[ServerActionFile] = field(default_factory=list)
    middleware: Optional[MiddlewareEntity] = None
    api_routes: List[ApiRouteEntity] = field(default_factory=list)
    layout_hierarchy: Optional[LayoutNode] = None
    edges: List[Edge] = field(default_factory=list)
    scanned_at: str = ""

    def find_page(self, route: str) -> Optional[PageEntity]:
        """Return the page (not a layout/loading/... file) serving *route*."""
        fallback = None
        for page in self.pages:
            if page.route != route:
                continue
            if page.kind == "page":
                return page
            fallback = fallback or page
        return fallback

    def find_component(self, name: str) -> Optional[ComponentEntity]:
        lowered = name.lower()
        for component in self.components:
            if component.name == name:
                return component
        for component in self.components:
            if component.name.lower() == lowered or name in component.exports:
                return component
        return None

    def entities_for_file(self, file_path: str) -> List[Any]:
        """All entities defined in *file_path* (absolute or project-relative)."""
        target = Path(file_path)
        if not target.is_absolute():
            target = Path(self.project_path) / target
        wanted = str(target)
        groups: List[List[Any]] = [
            self.pages, self.components, self.hooks, self.contexts,
            self.utilities, self.stores, self.server_action_files,
        ]
        return [entity for group in groups for entity in group if entity.file_path == wanted]

    def component_registry(self) -> Dict[str, Dict[str, str]]:
        """Map component and page names to import paths relative to ``src/``."""
        registry: Dict[str, Dict[str, str]] = {}
        for component in self.components:
            registry[component.name] = {
                "name": component.name,
                "path": _registry_path(component.file_path),
                "type": "component",
            }
        for page in self.pages:
            page_name = Path(page.file_name).stem
            registry.setdefault(page_name, {
                "name": page_name,
                "path": _registry_path(page.file_path),
                "type": "page",
            })
        return registry

    def counts(self) -> Dict[str, int]:
        return {
            "pages": sum(1 for p in self.pages if p.kind == "page"),
            "layouts": sum(1 for p in self.pages if p.is_layout),
            "components": len(self.components),
            "hooks": len(self.hooks),
            "contexts": len(self.contexts),
            "utilities": len(self.utilities),
            "stores": len(self.stores),
            "server_action_files": len(self.server_action_files),
            "api_routes": len(self.api_routes) + sum(1 for p in self.pages if p.is_api_route),
            "edges": len(self.edges),
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _registry_path(file_path: str) -> str:
    normalized = file_path.replace("\\", "/")
    idx = normalized.rfind("/src/")
    tail = normalized[idx + 5:] if idx != -1 else normalized.rsplit("/", 1)[-1]
    return str(Path(tail).with_suffix("")).replace("\\", "/")
