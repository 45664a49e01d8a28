"""Tests for the relationship graph builder."""

from pathlib import Path
from typing import List

from pagegraph_cli.aliases import AliasResolver
from pagegraph_cli.extractor import extract_imports
from pagegraph_cli.graph import CandidateIndex, RelationshipGraphBuilder, normalize_key
from pagegraph_cli.models import (
    Catalog,
    ComponentEntity,
    ContextEntity,
    HookEntity,
    MiddlewareEntity,
    PageEntity,
    ServerActionFile,
    UtilityEntity,
)


def _component(root: Path, name: str, imports: List[str], exports: List[str] = None) -> ComponentEntity:
    path = root / "src" / "components" / f"{name}.tsx"
    return ComponentEntity(
        name=name,
        file_path=str(path),
        file_name=path.name,
        imports=imports,
        exports=exports if exports is not None else [name],
    )


def _catalog(root: Path, **lists) -> Catalog:
    return Catalog(
        project_path=str(root),
        project_name=root.name,
        framework="react",
        router_type="unknown",
        **lists,
    )


def _build(root: Path, catalog: Catalog) -> RelationshipGraphBuilder:
    builder = RelationshipGraphBuilder(catalog, AliasResolver(root))
    builder.build()
    return builder


def test_normalize_key():
    assert normalize_key("Side_Bar-Nav") == "sidebarnav"


class TestCandidateIndex:
    """Three-tier lookup with a first-registration-wins policy."""

    def test_tiers(self):
        index = CandidateIndex("component")
        index.register("SideBar", "a")
        assert index.lookup("SideBar") == "a"
        assert index.lookup("sidebar") == "a"
        assert index.lookup("side-bar") == "a"
        assert index.lookup("Header") is None

    def test_exact_match_beats_earlier_fuzzy_key(self):
        index = CandidateIndex("component")
        index.register("SideBar", "a")
        index.register("Sidebar", "b")
        assert index.lookup("Sidebar") == "b"
        assert index.lookup("sidebar") == "a"
        assert index.collisions == 2

    def test_same_entity_is_not_a_collision(self):
        index = CandidateIndex("component")
        index.register("Card", "a")
        index.register("card", "a")
        assert index.collisions == 0


# ===================================================================
# Linking
# ===================================================================

def test_page_links_are_bidirectional(temp_dir: Path):
    hero = _component(temp_dir, "Hero", [])
    page = PageEntity(route="/", file_path=str(temp_dir / "app/page.tsx"), file_name="page.tsx",
                      components=["Hero", "Unknown"])
    catalog = _catalog(temp_dir, pages=[page], components=[hero])
    _build(temp_dir, catalog)

    assert hero.used_in_pages == ["/"]
    assert [(e.src, e.dst, e.edge_type) for e in catalog.edges] == [
        (page.entity_id, hero.entity_id, "renders"),
    ]


def test_route_component_reference(temp_dir: Path):
    """React Router pages link through their declared element component."""
    settings = _component(temp_dir, "Settings", [])
    page = PageEntity(route="/settings", file_path=str(temp_dir / "src/App.tsx"),
                      file_name="Settings.tsx", component_name="Settings")
    _build(temp_dir, _catalog(temp_dir, pages=[page], components=[settings]))
    assert settings.used_in_pages == ["/settings"]


def test_import_resolves_through_export_name(temp_dir: Path):
    widgets = _component(temp_dir, "Widgets", [], exports=["Widgets", "Gauge"])
    panel = _component(temp_dir, "Panel", ["Gauge"])
    _build(temp_dir, _catalog(temp_dir, components=[panel, widgets]))
    assert widgets.used_in_components == ["Panel"]


def test_component_kind_priority(temp_dir: Path):
    """A name matching several kinds links under the first kind in priority order."""
    theme = _component(temp_dir, "Theme", [])
    page_shell = _component(temp_dir, "Shell", ["Theme", "useTheme", "formatDate"])
    theme_util = UtilityEntity(name="Theme", file_path=str(temp_dir / "src/lib/Theme.ts"),
                               file_name="Theme.ts", exports=["Theme"])
    hook = HookEntity(name="useTheme", file_path=str(temp_dir / "src/hooks/useTheme.ts"), file_name="useTheme.ts")
    dates = UtilityEntity(name="dates", file_path=str(temp_dir / "src/lib/dates.ts"),
                          file_name="dates.ts", exports=["formatDate"])
    _build(temp_dir, _catalog(temp_dir, components=[page_shell, theme], hooks=[hook],
                              utilities=[dates, theme_util]))

    assert theme.used_in_components == ["Shell"]
    assert theme_util.used_in == []
    assert hook.used_in == ["Shell"]
    assert dates.used_in == ["Shell"]


def test_self_import_is_ignored(temp_dir: Path):
    card = _component(temp_dir, "Card", ["Card"])
    catalog = _catalog(temp_dir, components=[card])
    _build(temp_dir, catalog)
    assert card.used_in_components == []
    assert catalog.edges == []


def test_context_linked_by_provider_name(temp_dir: Path):
    context = ContextEntity(name="AuthContext", provider_name="AuthProvider",
                            file_path=str(temp_dir / "src/contexts/AuthContext.tsx"), file_name="AuthContext.tsx")
    layout = _component(temp_dir, "AppShell", ["AuthProvider"])
    _build(temp_dir, _catalog(temp_dir, components=[layout], contexts=[context]))
    assert context.used_in == ["AppShell"]
    assert layout.all_dependencies.contexts == ["AuthContext"]


# ===================================================================
# Closures
# ===================================================================

def test_closure_reaches_hooks_of_imported_components(temp_dir: Path):
    a = _component(temp_dir, "A", ["B"])
    b = _component(temp_dir, "B", ["useH"])
    hook = HookEntity(name="useH", file_path=str(temp_dir / "src/hooks/useH.ts"), file_name="useH.ts",
                      dependencies=["useInner", "useState"])
    inner = HookEntity(name="useInner", file_path=str(temp_dir / "src/hooks/useInner.ts"), file_name="useInner.ts")
    _build(temp_dir, _catalog(temp_dir, components=[a, b], hooks=[hook, inner]))

    assert a.all_dependencies.components == ["B"]
    assert a.all_dependencies.hooks == ["useH", "useInner"]
    assert b.all_dependencies.components == []
    assert b.used_in_components == ["A"]
    assert hook.used_in == ["B"]


def test_mutual_imports_terminate(temp_dir: Path):
    a = _component(temp_dir, "A", ["B"])
    b = _component(temp_dir, "B", ["A"])
    _build(temp_dir, _catalog(temp_dir, components=[a, b]))

    assert a.all_dependencies.components == ["B"]
    assert b.all_dependencies.components == ["A"]


def test_closure_through_cycle_keeps_every_component(temp_dir: Path):
    a = _component(temp_dir, "A", ["B"])
    b = _component(temp_dir, "B", ["C"])
    c = _component(temp_dir, "C", ["A", "B"])
    _build(temp_dir, _catalog(temp_dir, components=[a, b, c]))
    assert sorted(a.all_dependencies.components) == ["B", "C"]
    assert sorted(c.all_dependencies.components) == ["A", "B"]


# ===================================================================
# Server actions
# ===================================================================

def _action_project(temp_dir: Path):
    action = ServerActionFile(
        file_path=str(temp_dir / "src" / "actions" / "posts.ts"),
        relative_path="src/actions/posts.ts",
        exported_functions=["createPost", "deletePost"],
    )
    form = _component(temp_dir, "Form", [])
    form.import_records = extract_imports(
        "import { createPost, notAnAction } from '@/actions/posts';\n"
        "import { deletePost } from '../actions/posts';\n"
        "import type { Post } from '@/actions/posts';\n"
    )
    bare = _component(temp_dir, "Bare", [])
    bare.import_records = extract_imports("import { createPost } from 'actions/posts';\n")
    other = _component(temp_dir, "Other", [])
    other.import_records = extract_imports("import { createPost } from '@/lib/elsewhere';\n")
    return action, form, bare, other


def test_server_action_strategies(temp_dir: Path):
    action, form, bare, other = _action_project(temp_dir)
    catalog = _catalog(temp_dir, components=[bare, form, other], server_action_files=[action])
    _build(temp_dir, catalog)

    assert [(r.function_name, r.import_path) for r in form.server_actions] == [
        ("createPost", "src/actions/posts.ts"),
        ("deletePost", "src/actions/posts.ts"),
    ]
    assert [r.function_name for r in bare.server_actions] == ["createPost"]
    assert other.server_actions == []
    action_edges = [(e.src, e.dst) for e in catalog.edges if e.edge_type == "calls_action"]
    assert action_edges == [
        (bare.entity_id, action.entity_id),
        (form.entity_id, action.entity_id),
    ]


def test_relative_action_import_with_catch_all_alias(temp_dir: Path):
    """A bare '*' path mapping must not shadow relative imports."""
    (temp_dir / "tsconfig.json").write_text('{"compilerOptions": {"paths": {"*": ["src/*"]}}}', encoding="utf-8")
    action = ServerActionFile(
        file_path=str(temp_dir / "src" / "components" / "actions.ts"),
        relative_path="src/components/actions.ts",
        exported_functions=["save"],
    )
    form = _component(temp_dir, "Form", [])
    form.import_records = extract_imports("import { save } from './actions';\n")
    _build(temp_dir, _catalog(temp_dir, components=[form], server_action_files=[action]))

    assert [r.function_name for r in form.server_actions] == ["save"]


# ===================================================================
# Middleware and ordering
# ===================================================================

def _pages(temp_dir: Path, *routes: str) -> List[PageEntity]:
    return [
        PageEntity(route=r, file_path=str(temp_dir / "app" / r.strip("/") / "page.tsx"), file_name="page.tsx")
        for r in routes
    ]


def test_middleware_matcher_routes(temp_dir: Path):
    middleware = MiddlewareEntity(file_path=str(temp_dir / "middleware.ts"), file_name="middleware.ts",
                                  matcher_patterns=["/admin/:path*"])
    catalog = _catalog(temp_dir, pages=_pages(temp_dir, "/", "/admin", "/admin/users", "/blog"),
                       middleware=middleware)
    _build(temp_dir, catalog)
    assert middleware.used_in == ["/admin", "/admin/users"]


def test_middleware_without_matcher_applies_everywhere(temp_dir: Path):
    middleware = MiddlewareEntity(file_path=str(temp_dir / "middleware.ts"), file_name="middleware.ts")
    catalog = _catalog(temp_dir, pages=_pages(temp_dir, "/", "/blog"), middleware=middleware)
    _build(temp_dir, catalog)
    assert middleware.used_in == ["/", "/blog"]


def test_edges_are_sorted_and_unique(temp_dir: Path):
    a = _component(temp_dir, "A", ["B", "B", "C"])
    b = _component(temp_dir, "B", [])
    c = _component(temp_dir, "C", [])
    catalog = _catalog(temp_dir, components=[c, b, a])
    _build(temp_dir, catalog)
    keys = [(e.src, e.dst, e.edge_type) for e in catalog.edges]
    assert keys == sorted(set(keys))
    assert len(keys) == 2
