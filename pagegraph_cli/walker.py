"""Routing-convention detection and page / route discovery."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Set, Tuple

from .config import IGNORED_DIRS, SOURCE_EXTENSIONS
from .models import ApiRouteEntity, Framework, LayoutNode, MiddlewareEntity, PageEntity, RouterType

logger = logging.getLogger(__name__)

# App Router special files -> PageEntity flag (None marks an ordinary page)
APP_SPECIAL_FILES: Dict[str, Optional[str]] = {
    "page": None,
    "layout": "is_layout",
    "loading": "is_loading",
    "error": "is_error",
    "template": "is_template",
    "not-found": "is_not_found",
    "global-error": "is_global_error",
    "default": "is_default",
    "route": "is_api_route",
}

# Route directories may legitimately contain segments named "build" or "out".
ROUTE_SKIP_DIRS = ("node_modules",)

_TEST_FILE_RE = re.compile(r"\.(?:test|spec|stories)\.[jt]sx?$")

ENTRY_FILES = (
    "src/App.tsx", "src/App.jsx", "src/App.js",
    "src/main.tsx", "src/main.jsx", "src/main.js",
    "src/index.tsx", "src/index.jsx", "src/index.js",
    "App.tsx", "App.jsx", "App.js",
)

ROUTE_FILES = (
    "src/App.tsx", "src/App.jsx", "src/App.js",
    "src/routes.tsx", "src/routes.jsx", "src/routes.js",
    "src/router.tsx", "src/router.jsx", "src/router.js",
    "src/Routes.tsx", "src/Routes.jsx", "src/Routes.js",
    "src/Router.tsx", "src/Router.jsx", "src/Router.js",
    "App.tsx", "App.jsx", "App.js",
    "src/config/routes.tsx", "src/config/routes.ts",
    "src/routing/index.tsx", "src/routing/index.ts",
    "src/routing/routes.tsx", "src/routing/routes.ts",
    "src/app/routes.tsx", "src/app/routes.ts",
    "src/main.tsx", "src/main.jsx", "src/main.js",
    "src/index.tsx", "src/index.jsx", "src/index.js",
)

_ROUTE_FILE_NAME_RE = re.compile(r"(?:routes|router|Routes|Router)")


class PageCandidate(NamedTuple):
    """A discovered page; *analyze* is False when its source file is unknown."""
    page: PageEntity
    analyze: bool = True


# ===================================================================
# Filesystem helpers
# ===================================================================

def read_text(path: Path) -> Optional[str]:
    """File contents, or ``None`` when the file cannot be read as UTF-8 text."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Skipping unreadable file %s: %s", path, exc)
        return None


def list_source_files(
    directory: Path,
    recursive: bool = True,
    skip_tests: bool = True,
    skip_dirs: Iterable[str] = IGNORED_DIRS,
) -> List[Path]:
    """Sorted ``.ts/.tsx/.js/.jsx`` files under *directory*."""
    if not directory.is_dir():
        return []
    skip = set(skip_dirs)
    pattern = "**/*" if recursive else "*"
    files: List[Path] = []
    for path in sorted(directory.glob(pattern)):
        if path.suffix not in SOURCE_EXTENSIONS or not path.is_file():
            continue
        if any(part in skip for part in path.relative_to(directory).parts[:-1]):
            continue
        if skip_tests and _TEST_FILE_RE.search(path.name):
            continue
        files.append(path)
    return files


def _load_manifest(root: Path) -> Dict:
    manifest = root / "package.json"
    if not manifest.is_file():
        logger.debug("No package.json in %s", root)
        return {}
    text = read_text(manifest)
    if text is None:
        return {}
    try:
        data = json.loads(text)
    except ValueError as exc:
        logger.warning("Malformed package.json in %s: %s", root, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _app_dirs(root: Path) -> List[Path]:
    return [d for d in (root / "app", root / "src" / "app") if d.is_dir()]


def _pages_dirs(root: Path) -> List[Path]:
    return [d for d in (root / "pages", root / "src" / "pages") if d.is_dir()]


# ===================================================================
# Detection
# ===================================================================

def _uses_react_router(root: Path) -> bool:
    for name in ENTRY_FILES:
        path = root / name
        if not path.is_file():
            continue
        content = read_text(path) or ""
        if "react-router" in content or "<Routes>" in content or "<Route" in content:
            logger.debug("React Router usage found in %s", name)
            return True
    return False


def detect_framework_and_router(root: Path) -> Tuple[Framework, RouterType]:
    """Classify the project from its manifest, falling back to directory layout."""
    manifest = _load_manifest(root)
    deps: Dict = {}
    for section in ("dependencies", "devDependencies"):
        if isinstance(manifest.get(section), dict):
            deps.update(manifest[section])

    if "next" in deps:
        if _app_dirs(root):
            return "nextjs", "nextjs-app"
        if _pages_dirs(root):
            return "nextjs", "nextjs-pages"

    if "react-router-dom" in deps or "react-router" in deps:
        return "react", "react-router"

    if "react" in deps:
        return "react", ("react-router" if _uses_react_router(root) else "unknown")

    # No recognised dependency: go by layout.
    for app_dir in _app_dirs(root):
        if any(f.stem == "page" for f in list_source_files(app_dir, skip_dirs=ROUTE_SKIP_DIRS)):
            return "nextjs", "nextjs-app"
    if any(list_source_files(d) for d in _pages_dirs(root)):
        return "nextjs", "nextjs-pages"
    if _uses_react_router(root):
        return "react", "react-router"
    return "unknown", "unknown"


# ===================================================================
# Routes
# ===================================================================

_CATCH_ALL_RE = re.compile(r"\[\[?\.\.\.(\w+)\]\]?")
_DYNAMIC_RE = re.compile(r"\[(\w+)\]")


def file_path_to_route(rel_path: str, router_type: RouterType) -> str:
    """Route string for a file path relative to its routing directory.

    >>> file_path_to_route("blog/[slug]/page.tsx", "nextjs-app")
    '/blog/:slug'
    """
    normalized = rel_path.replace("\\", "/")
    normalized = re.sub(r"\.(?:tsx|ts|jsx|js)$", "", normalized)
    segments = [s for s in normalized.split("/") if s]

    if segments:
        last = segments[-1]
        if last in ("page", "index") or (router_type == "nextjs-app" and last in APP_SPECIAL_FILES):
            segments.pop()

    route_segments: List[str] = []
    for segment in segments:
        if router_type == "nextjs-app" and (
            (segment.startswith("(") and segment.endswith(")")) or segment.startswith("@")
        ):
            continue
        segment = _CATCH_ALL_RE.sub("*", segment)
        segment = _DYNAMIC_RE.sub(r":\1", segment)
        route_segments.append(segment)
    return "/" + "/".join(route_segments)


def _normalize_declared_route(route: str) -> str:
    return route if route.startswith("/") else "/" + route


# ===================================================================
# Page discovery
# ===================================================================

def _discover_app_router(root: Path) -> List[PageCandidate]:
    candidates: List[PageCandidate] = []
    for app_dir in _app_dirs(root):
        logger.info("Scanning App Router directory %s", app_dir)
        for path in list_source_files(app_dir, skip_dirs=ROUTE_SKIP_DIRS):
            if path.stem not in APP_SPECIAL_FILES:
                continue
            rel = path.relative_to(app_dir).as_posix()
            page = PageEntity(
                route=file_path_to_route(rel, "nextjs-app"),
                file_path=str(path),
                file_name=path.name,
            )
            flag = APP_SPECIAL_FILES[path.stem]
            if flag:
                setattr(page, flag, True)
            candidates.append(PageCandidate(page))
    return candidates


def _discover_pages_router(root: Path) -> List[PageCandidate]:
    candidates: List[PageCandidate] = []
    for pages_dir in _pages_dirs(root):
        logger.info("Scanning Pages Router directory %s", pages_dir)
        for path in list_source_files(pages_dir, skip_dirs=ROUTE_SKIP_DIRS):
            rel = path.relative_to(pages_dir).as_posix()
            if rel.startswith("api/") or path.stem in ("_app", "_document"):
                continue
            candidates.append(PageCandidate(PageEntity(
                route=file_path_to_route(rel, "nextjs-pages"),
                file_path=str(path),
                file_name=path.name,
            )))
    return candidates


class _RouteMatcher(NamedTuple):
    pattern: re.Pattern[str]
    route_group: Optional[int]
    component_group: int
    fixed_route: Optional[str] = None
    from_import: bool = False


_ROUTE_MATCHERS: Tuple[_RouteMatcher, ...] = (
    # <Route path="/x" element={<X />} />
    _RouteMatcher(re.compile(r"""<Route\s+[^>]*path=["']([^"']+)["'][^>]*element=\{<(\w+)[^}]*\}"""), 1, 2),
    _RouteMatcher(re.compile(r"""<Route[^>]*\n?\s*path=["']([^"']+)["'][^>]*\n?\s*element=\{<(\w+)"""), 1, 2),
    _RouteMatcher(re.compile(r"""<Route\s+(?:[^>]*?)path=["']([^"']+)["'](?:[^>]*?)element=\{\s*<(\w+)""", re.S), 1, 2),
    # <Route element={<X />} path="/x" />
    _RouteMatcher(re.compile(
        r"""<Route\s+(?:[^>]*?)element=\{\s*<(\w+)[^}]*\}(?:[^>]*?)path=["']([^"']+)["']""", re.S), 2, 1),
    # { path: "/x", element: <X /> }
    _RouteMatcher(re.compile(r"""\{\s*path:\s*["']([^"']+)["']\s*,\s*element:\s*<(\w+)"""), 1, 2),
    _RouteMatcher(re.compile(r"""\{\s*element:\s*<(\w+)[^}]*/?\s*>\s*,\s*path:\s*["']([^"']+)["']"""), 2, 1),
    # { path: "/x", lazy: () => import("./pages/X") }
    _RouteMatcher(re.compile(
        r"""\{\s*path:\s*["']([^"']+)["'][^}]*lazy:\s*\(\)\s*=>\s*import\s*\(\s*["']([^"']+)["']\s*\)"""),
        1, 2, from_import=True),
    # { path: "/x", Component: X }
    _RouteMatcher(re.compile(r"""\{\s*path:\s*["']([^"']+)["'][^}]*Component:\s*(\w+)"""), 1, 2),
    # { index: true, element: <X /> }
    _RouteMatcher(re.compile(r"""\{\s*index:\s*true\s*,\s*element:\s*<(\w+)"""), None, 1, fixed_route="/"),
    _RouteMatcher(re.compile(r"""\{\s*path:\s*["']\*["']\s*,\s*element:\s*<(\w+)"""), None, 1, fixed_route="*"),
)


def parse_react_router_routes(content: str, file_path: Path) -> List[PageEntity]:
    """Route declarations in a React Router file, one page per distinct route."""
    pages: List[PageEntity] = []
    seen: Set[Tuple[str, str]] = set()
    routes: Set[str] = set()
    for matcher in _ROUTE_MATCHERS:
        for match in matcher.pattern.finditer(content):
            raw_route = matcher.fixed_route or match.group(matcher.route_group)
            component = match.group(matcher.component_group)
            if matcher.from_import:
                component = re.sub(r"\.(?:tsx?|jsx?)$", "", component.rsplit("/", 1)[-1])
            route = _normalize_declared_route(raw_route)
            # Index routes may share "/" with another declaration.
            if (route in routes and matcher.fixed_route != "/") or (route, component) in seen:
                continue
            routes.add(route)
            seen.add((route, component))
            pages.append(PageEntity(
                route=route,
                file_path=str(file_path),
                file_name=f"{component}.tsx",
                component_name=component,
            ))
    logger.debug("Parsed %d routes from %s", len(pages), file_path)
    return pages


def find_component_file(root: Path, component_name: str) -> Optional[Path]:
    """Locate the file defining *component_name* by naming convention."""
    conventional = (
        f"src/components/{component_name}.tsx",
        f"src/components/{component_name}.jsx",
        f"src/components/{component_name}.js",
        f"src/components/{component_name}/{component_name}.tsx",
        f"src/components/{component_name}/index.tsx",
        f"components/{component_name}.tsx",
        f"components/{component_name}.jsx",
        f"src/pages/{component_name}.tsx",
        f"src/views/{component_name}.tsx",
        f"src/screens/{component_name}.tsx",
        f"src/{component_name}.tsx",
    )
    for rel in conventional:
        candidate = root / rel
        if candidate.is_file():
            return candidate
    for path in list_source_files(root):
        if path.stem == component_name:
            return path
    logger.debug("No file found for route component %s", component_name)
    return None


def _looks_like_route_file(content: str, strict: bool) -> bool:
    if "<Route" in content or "createBrowserRouter" in content:
        return True
    if strict:
        return (
            "createHashRouter" in content
            or "createMemoryRouter" in content
            or "RouteObject" in content
            or ("path:" in content and "element:" in content)
        )
    return "path:" in content


def _discover_react_router(root: Path) -> List[PageCandidate]:
    route_files: List[Tuple[Path, bool]] = [(root / rel, True) for rel in ROUTE_FILES]
    route_files += [
        (path, False)
        for path in list_source_files(root / "src")
        if _ROUTE_FILE_NAME_RE.search(path.stem)
    ]

    pages: List[PageEntity] = []
    processed: Set[Path] = set()
    for path, strict in route_files:
        if path in processed or not path.is_file():
            continue
        processed.add(path)
        content = read_text(path)
        if content is None or not _looks_like_route_file(content, strict):
            continue
        logger.info("Found React Router routes in %s", path)
        pages.extend(parse_react_router_routes(content, path))

    candidates: List[PageCandidate] = []
    for page in pages:
        component_file = find_component_file(root, page.component_name or "")
        if component_file is None:
            candidates.append(PageCandidate(page, analyze=False))
            continue
        page.file_path = str(component_file)
        page.file_name = component_file.name
        candidates.append(PageCandidate(page))
    return candidates


def discover_pages(root: Path, router_type: RouterType) -> List[PageCandidate]:
    """Page candidates for *router_type*; ``unknown`` uses the React Router strategy."""
    if router_type == "nextjs-app":
        return _discover_app_router(root)
    if router_type == "nextjs-pages":
        return _discover_pages_router(root)
    if router_type == "unknown":
        logger.info("Unknown router type, trying React Router discovery")
    return _discover_react_router(root)


# ===================================================================
# Layouts, middleware, API routes
# ===================================================================

def _layout_contains(outer: LayoutNode, inner: LayoutNode) -> bool:
    # Directories, not routes: sibling route groups share the route "/".
    return Path(outer.file_path).parent in Path(inner.file_path).parents


def _insert_layout(parent: LayoutNode, node: LayoutNode) -> None:
    for child in parent.children:
        if _layout_contains(child, node):
            _insert_layout(child, node)
            return
    parent.children.append(node)


def build_layout_hierarchy(root: Path) -> Optional[LayoutNode]:
    """Tree of App Router layouts rooted at the top-level ``layout`` file."""
    for app_dir in _app_dirs(root):
        layouts = [p for p in list_source_files(app_dir, skip_dirs=ROUTE_SKIP_DIRS) if p.stem == "layout"]
        if not layouts:
            return None
        layouts.sort(key=lambda p: (len(p.relative_to(app_dir).parts), p.as_posix()))

        tree: Optional[LayoutNode] = None
        for path in layouts:
            node = LayoutNode(
                route=file_path_to_route(path.relative_to(app_dir).as_posix(), "nextjs-app"),
                file_path=str(path),
            )
            if tree is None:
                if path.parent != app_dir:
                    return None
                tree = node
            else:
                _insert_layout(tree, node)
        return tree
    return None


_MATCHER_ARRAY_RE = re.compile(r"matcher:\s*\[([^\]]+)\]", re.S)
_MATCHER_STRING_RE = re.compile(r"""matcher:\s*['"]([^'"]+)['"]""")


def discover_middleware(root: Path) -> Optional[MiddlewareEntity]:
    """The project's ``middleware`` file with its ``config.matcher`` patterns."""
    for base in (root, root / "src"):
        for ext in (".ts", ".tsx", ".js", ".jsx"):
            path = base / f"middleware{ext}"
            if not path.is_file():
                continue
            content = read_text(path)
            if content is None:
                continue
            patterns: List[str] = []
            array_match = _MATCHER_ARRAY_RE.search(content)
            if array_match:
                patterns.extend(re.findall(r"""['"]([^'"]+)['"]""", array_match.group(1)))
            string_match = _MATCHER_STRING_RE.search(content)
            if string_match:
                patterns.append(string_match.group(1))
            logger.debug("Middleware %s with %d matcher patterns", path, len(patterns))
            return MiddlewareEntity(file_path=str(path), file_name=path.name, matcher_patterns=patterns)
    return None


HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")


def detect_http_methods(content: str) -> List[str]:
    methods: List[str] = []
    if re.search(r"export\s+default\s+(?:async\s+)?function", content) or re.search(
        r"export\s+default\s+handler", content
    ):
        for method in HTTP_METHODS[:5]:
            if f"req.method === '{method}'" in content or f'req.method === "{method}"' in content:
                methods.append(method)
        if not methods:
            methods.append("*")
    for method in HTTP_METHODS:
        if re.search(rf"export\s+(?:async\s+)?function\s+{method}\b", content) and method not in methods:
            methods.append(method)
    return methods or ["*"]


def discover_api_routes(root: Path) -> List[ApiRouteEntity]:
    """Pages Router API handlers under ``pages/api``."""
    routes: List[ApiRouteEntity] = []
    for pages_dir in _pages_dirs(root):
        api_dir = pages_dir / "api"
        for path in list_source_files(api_dir, skip_dirs=ROUTE_SKIP_DIRS):
            content = read_text(path)
            if content is None:
                continue
            rel = path.relative_to(pages_dir).as_posix()
            routes.append(ApiRouteEntity(
                route=file_path_to_route(rel, "nextjs-pages"),
                file_path=str(path),
                file_name=path.name,
                methods=detect_http_methods(content),
            ))
    return routes
