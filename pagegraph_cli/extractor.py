"""Heuristic lexical extractor for JavaScript / TypeScript / JSX sources.

Turns raw file text into :class:`~pagegraph_cli.models.SourceFact` records
without a language parser:

- imports (default, named with ``as`` alias and ``type`` qualifier,
  namespace, side-effect, type-only) classified as local or external
- exports, internal link targets and module directives
- data-access call sites, evaluated through an ordered matcher table
- a JSX-likelihood verdict and per-component prop declarations

Every function here is pure and total: malformed input yields empty results,
never an exception.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Tuple

from .config import DIRECTIVE_WINDOW
from .models import DataDependency, ImportRecord, PropInfo, SourceFact

logger = logging.getLogger(__name__)

LOCAL_PREFIXES: Tuple[str, ...] = (".", "@/", "~/", "#", "$")


# ===================================================================
# Imports
# ===================================================================

_IMPORT_RE = re.compile(
    r"""import\s+(?:(type)\s+)?(?:(\w+)\s*,?\s*)?(?:\*\s+as\s+(\w+)\s*)?"""
    r"""(?:\{([^}]*)\})?\s*(?:from\s+)?['"]([^'"]+)['"]"""
)
_ALIAS_RE = re.compile(r"^(\w+)\s+as\s+(\w+)$")
_TYPE_PREFIX_RE = re.compile(r"^type\s+")
_INLINE_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.S)


def is_local_import(source: str) -> bool:
    return source.startswith(LOCAL_PREFIXES)


def extract_imports(content: str) -> List[ImportRecord]:
    """Return one :class:`ImportRecord` per import statement, in file order."""
    records: List[ImportRecord] = []
    for match in _IMPORT_RE.finditer(content):
        type_kw, default_name, namespace_name, named_block, source = match.groups()
        is_local = is_local_import(source)

        if not default_name and not namespace_name and named_block is None:
            records.append(ImportRecord(
                names=[],
                source=source,
                is_local=is_local,
                is_type_only=bool(type_kw),
                is_side_effect=True,
            ))
            continue

        names: List[str] = []
        aliases: Dict[str, str] = {}
        type_names: List[str] = []
        if default_name:
            names.append(default_name)
        if namespace_name:
            names.append(namespace_name)

        for item in _INLINE_COMMENT_RE.sub("", named_block or "").split(","):
            item = item.strip()
            if not item:
                continue
            is_type = item.startswith("type ")
            clean = _TYPE_PREFIX_RE.sub("", item) if is_type else item
            alias_match = _ALIAS_RE.match(clean)
            name = alias_match.group(1) if alias_match else clean
            if alias_match:
                aliases[name] = alias_match.group(2)
            names.append(name)
            if is_type:
                type_names.append(name)

        records.append(ImportRecord(
            names=names,
            source=source,
            is_local=is_local,
            aliases=aliases,
            is_default=bool(default_name),
            is_namespace=bool(namespace_name),
            is_type_only=bool(type_kw),
            namespace_name=namespace_name,
            type_names=type_names,
        ))
    return records


def import_names(fact: SourceFact, local_only: bool = True) -> List[str]:
    """Flat list of imported value names, as used for linking.

    Type-only statements and ``type``-qualified members are left out; aliased
    members contribute their original (exported) name.
    """
    names: List[str] = []
    for record in fact.imports:
        if record.is_side_effect or record.is_type_only:
            continue
        if local_only and not record.is_local:
            continue
        names.extend(n for n in record.names if n not in record.type_names)
    return names


# ===================================================================
# Exports
# ===================================================================

_DEFAULT_FUNCTION_RE = re.compile(r"export\s+default\s+(?:async\s+)?function\s+(\w+)")
_DEFAULT_VALUE_RE = re.compile(r"export\s+default\s+(?!function|class|async)(\w+)")
_DEFAULT_CLASS_RE = re.compile(r"export\s+default\s+class\s+(\w+)")
_NAMED_EXPORT_RES = (
    re.compile(r"export\s+(?:async\s+)?function\s+(\w+)"),
    re.compile(r"export\s+const\s+(\w+)"),
    re.compile(r"export\s+class\s+(\w+)"),
    re.compile(r"export\s+(?:let|var)\s+(\w+)"),
)
_REEXPORT_RE = re.compile(r"export\s+\{([^}]+)\}")
_REEXPORT_ALIAS_RE = re.compile(r"(\w+)\s+as\s+(\w+)")


def extract_exports(content: str) -> List[str]:
    """Exported names, deduplicated by the name a consumer would import."""
    exports: List[str] = []

    def add(name: str) -> None:
        if name and name not in exports:
            exports.append(name)

    for pattern in (_DEFAULT_FUNCTION_RE, _DEFAULT_VALUE_RE, _DEFAULT_CLASS_RE):
        match = pattern.search(content)
        if match:
            add(match.group(1))

    for pattern in _NAMED_EXPORT_RES:
        for match in pattern.finditer(content):
            add(match.group(1))

    for match in _REEXPORT_RE.finditer(content):
        for item in match.group(1).split(","):
            item = _TYPE_PREFIX_RE.sub("", item.strip())
            alias_match = _REEXPORT_ALIAS_RE.search(item)
            add(alias_match.group(2) if alias_match else item)
    return exports


# ===================================================================
# Links
# ===================================================================

_LINK_RES = (
    re.compile(r"""<Link[^>]*href=["'{]([^"'}`]+)["'}`]"""),
    re.compile(r"""<NavLink[^>]*to=["'{]([^"'}`]+)["'}`]"""),
    re.compile(r"""<Link[^>]*to=["'{]([^"'}`]+)["'}`]"""),
    re.compile(r"""router\.push\(\s*['"`]([^'"`]+)['"`]\s*\)"""),
    re.compile(r"""router\.replace\(\s*['"`]([^'"`]+)['"`]\s*\)"""),
    re.compile(r"""navigate\(\s*['"`]([^'"`]+)['"`]\s*\)"""),
    re.compile(r"""redirect\(\s*['"`]([^'"`]+)['"`]\s*\)"""),
    re.compile(r"""permanentRedirect\(\s*['"`]([^'"`]+)['"`]\s*\)"""),
)


def extract_links(content: str) -> List[str]:
    """Internal navigation targets (``/``-rooted, no template interpolation)."""
    links: List[str] = []
    for pattern in _LINK_RES:
        for match in pattern.finditer(content):
            target = match.group(1)
            if target.startswith("/") and "${" not in target and target not in links:
                links.append(target)
    return links


# ===================================================================
# Directives
# ===================================================================

def _has_directive(content: str, directive: str, window: Optional[int]) -> bool:
    head = content if window is None else content[:window]
    return f"'{directive}'" in head or f'"{directive}"' in head


def is_client_component(content: str) -> bool:
    return _has_directive(content, "use client", DIRECTIVE_WINDOW)


def is_server_module(content: str) -> bool:
    return _has_directive(content, "use server", DIRECTIVE_WINDOW)


def mentions_server_directive(content: str) -> bool:
    """True when ``'use server'`` appears anywhere, inline actions included."""
    return _has_directive(content, "use server", None)


# ===================================================================
# Data dependencies
# ===================================================================

@dataclass(frozen=True)
class _DataMatcher:
    """One tagged line pattern.

    Matchers sharing a *group* are mutually exclusive on a line: the first one
    to fire (the known-shape variant comes first) claims the group.
    """
    kind: str
    pattern: re.Pattern[str]
    source: Callable[[re.Match[str], str], str]
    group: Optional[str] = None


_USE_QUERY_KEY_RE = re.compile(
    r"""useQuery\s*(?:<[^>]*>)?\s*\(\s*(?:\[?\s*['"`]([^'"`\]]+)['"`]|(\{))"""
)


def _query_key(_match: re.Match[str], line: str) -> str:
    key = _USE_QUERY_KEY_RE.search(line)
    return key.group(1) if key and key.group(1) else "(query)"


def _fixed(text: str) -> Callable[[re.Match[str], str], str]:
    return lambda _match, _line: text


DATA_MATCHERS: Tuple[_DataMatcher, ...] = (
    _DataMatcher("fetch", re.compile(r"""fetch\s*\(\s*['"`]([^'"`]+)['"`]"""),
                 lambda m, _l: m.group(1), group="fetch"),
    _DataMatcher("fetch", re.compile(r"""fetch\s*\(\s*(?:`[^`]*\$\{|[\w.]+)"""),
                 _fixed("(dynamic URL)"), group="fetch"),
    _DataMatcher("prisma", re.compile(r"prisma\.(\w+)\.(\w+)"),
                 lambda m, _l: f"prisma.{m.group(1)}.{m.group(2)}()"),
    _DataMatcher("drizzle", re.compile(r"db\.(?:select|insert|update|delete|query)"),
                 lambda _m, line: line.strip()),
    _DataMatcher("useQuery", re.compile(r"useQuery\s*[<(]"), _query_key),
    _DataMatcher("useQuery", re.compile(r"useMutation\s*[<(]"), _fixed("(mutation)")),
    _DataMatcher("useQuery", re.compile(r"useInfiniteQuery\s*[<(]"), _fixed("(infinite query)")),
    _DataMatcher("useSWR", re.compile(r"""useSWR\s*[<(]\s*['"`]([^'"`]+)['"`]"""),
                 lambda m, _l: m.group(1)),
    _DataMatcher("useSWR", re.compile(r"""useSWRMutation\s*[<(]\s*['"`]([^'"`]+)['"`]"""),
                 lambda m, _l: f"{m.group(1)} (mutation)"),
    _DataMatcher("trpc", re.compile(r"trpc\.(\w+)\.(\w+)\.(?:useQuery|useMutation|query|mutate)"),
                 lambda m, _l: f"trpc.{m.group(1)}.{m.group(2)}"),
    _DataMatcher("trpc", re.compile(r"api\.(\w+)\.(\w+)\.(?:useQuery|useMutation)"),
                 lambda m, _l: f"api.{m.group(1)}.{m.group(2)}"),
    _DataMatcher("graphql", re.compile(
        r"(?:useQuery|useMutation|useLazyQuery|useSubscription)\s*\(\s*(?:gql`|[A-Z_]+_(?:QUERY|MUTATION))"
    ), _fixed("(GraphQL operation)")),
    _DataMatcher("graphql", re.compile(r"client\.(?:query|mutate|subscribe)\s*\("),
                 _fixed("(Apollo operation)")),
    _DataMatcher("axios", re.compile(
        r"""axios\.(?:get|post|put|patch|delete|request)\s*\(\s*['"`]([^'"`]+)['"`]"""
    ), lambda m, _l: m.group(1), group="axios"),
    _DataMatcher("axios", re.compile(
        r"""(?:api|client|http|instance)\.(?:get|post|put|patch|delete)\s*\(\s*['"`]([^'"`]+)['"`]"""
    ), lambda m, _l: m.group(1), group="axios"),
    _DataMatcher("serverAction", re.compile(r"""['"]use server['"]"""), _fixed("Server Action")),
)

_MULTILINE_FETCH_RE = re.compile(r"""fetch\s*\(\s*\n?\s*['"`]([^'"`]+)['"`]""")
_MULTILINE_QUERY_RE = re.compile(
    r"""useQuery\s*(?:<[^>]*>)?\s*\(\s*\n?\s*\[?\s*['"`]([^'"`\]]+)['"`]"""
)


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def extract_data_dependencies(content: str) -> List[DataDependency]:
    """Detect data-access call sites, ordered by line."""
    deps: List[DataDependency] = []
    seen: Set[Tuple[str, str, int]] = set()
    fetch_lines: Set[int] = set()

    def add(kind: str, source: str, line: int) -> None:
        key = (kind, source, line)
        if key not in seen:
            seen.add(key)
            deps.append(DataDependency(kind=kind, source=source, line=line))

    for index, line in enumerate(content.split("\n")):
        line_no = index + 1
        claimed: Set[str] = set()
        for matcher in DATA_MATCHERS:
            if matcher.group and matcher.group in claimed:
                continue
            match = matcher.pattern.search(line)
            if not match:
                continue
            if matcher.group:
                claimed.add(matcher.group)
            add(matcher.kind, matcher.source(match, line), line_no)
        if "fetch" in claimed:
            fetch_lines.add(line_no)

    # Calls whose literal argument wraps onto the following line.
    for match in _MULTILINE_FETCH_RE.finditer(content):
        line_no = _line_of(content, match.start())
        if line_no not in fetch_lines:
            fetch_lines.add(line_no)
            add("fetch", match.group(1), line_no)

    for match in _MULTILINE_QUERY_RE.finditer(content):
        line_no = _line_of(content, match.start())
        same_line = [d for d in deps if d.kind == "useQuery" and d.line == line_no]
        if not same_line:
            add("useQuery", match.group(1), line_no)
            continue
        # A wrapped key upgrades the placeholder recorded by the line pass.
        for dep in same_line:
            if dep.source == "(query)":
                deps[deps.index(dep)] = DataDependency("useQuery", match.group(1), line_no)
                seen.discard(("useQuery", "(query)", line_no))
                seen.add(("useQuery", match.group(1), line_no))
                break

    deps.sort(key=lambda d: d.line)
    return deps


# ===================================================================
# JSX heuristic
# ===================================================================

_REACT_IMPORT_RE = re.compile(r"""import\s+(?:React|\{[^}]*\})\s+from\s+['"]react['"]""")
_JSX_PRAGMA_RE = re.compile(r"/\*\*?\s*@jsx\s")
_RETURN_JSX_RE = re.compile(r"return\s*\(\s*<(?:[A-Z]|>)")
_RETURN_INTRINSIC_RE = re.compile(r"return\s*\(\s*<([a-z][\w.-]*)[\s>/]")
_ARROW_JSX_RE = re.compile(r"=>\s*\(?\s*<(?:[A-Z]|>)")
_CREATE_ELEMENT_RE = re.compile(r"React\.createElement\s*\(")
_FORWARD_REF_RE = re.compile(r"forwardRef\s*\([^)]*\)\s*(?:=>|{)")
_JSX_ASSIGNMENT_RE = re.compile(r"(?:const|let|var)\s+\w+\s*=\s*<[A-Z]")
_JSX_SPREAD_RE = re.compile(r"<[A-Z]\w*[^>]*\{\.\.\.\w+\}")
_GENERIC_RE = re.compile(r"<[A-Z]\w*(?:,\s*[A-Z]\w*)*>")
_JSX_ELEMENT_RE = re.compile(r"<[A-Z]\w*[\s>/]")
_STRING_LITERAL_RE = re.compile(r"""(['"`])(?:(?!\1)[^\\]|\\.)*\1""")


def _returns_intrinsic_element(content: str) -> bool:
    """``return (<div ...`` backed by a matching close tag (not a type assertion)."""
    for match in _RETURN_INTRINSIC_RE.finditer(content):
        tag = re.escape(match.group(1))
        if re.search(rf"</{tag}\s*>", content) or re.search(rf"<{tag}\b[^>]*/>", content):
            return True
    return False


def has_react_jsx(content: str) -> bool:
    """Best-effort guess whether *content* renders JSX.

    Generic-heavy TypeScript (``Array<T>``, ``Map<K, V>``) is rejected unless a
    structural signal (JSX return, arrow-returned JSX, ``createElement``) fires.
    """
    if "<" not in content:
        return False

    returns_jsx = bool(_RETURN_JSX_RE.search(content)) or _returns_intrinsic_element(content)
    arrow_jsx = bool(_ARROW_JSX_RE.search(content))
    create_element = bool(_CREATE_ELEMENT_RE.search(content))

    generic_count = len(_GENERIC_RE.findall(content))
    element_count = len(_JSX_ELEMENT_RE.findall(content))
    if generic_count and not element_count and not (returns_jsx or arrow_jsx or create_element):
        return False

    react_import = bool(_REACT_IMPORT_RE.search(content))
    jsx_in_code = bool(re.search(r"<[A-Z]", _STRING_LITERAL_RE.sub('""', content)))

    return (
        returns_jsx
        or arrow_jsx
        or create_element
        or bool(_FORWARD_REF_RE.search(content))
        or bool(_JSX_ASSIGNMENT_RE.search(content))
        or (react_import and jsx_in_code)
        or bool(_JSX_PRAGMA_RE.search(content))
        or bool(_JSX_SPREAD_RE.search(content))
    )


# ===================================================================
# Props
# ===================================================================

_PROP_LINE_RE = re.compile(r"^\s*(\w+)(\??):\s*(.+?)\s*$")
_DEFAULT_ENTRY_RE = re.compile(r"^\s*(\w+)\s*(?::\s*\w+\s*)?=\s*(.+?)\s*$", re.S)
_GENERIC_PROPS_RES = (
    re.compile(r"interface\s+Props\s*(?:extends[^{]+)?\{([^}]+)\}", re.S),
    re.compile(r"type\s+Props\s*=\s*\{([^}]+)\}", re.S),
)


def _split_members(body: str) -> List[str]:
    """Split a type literal body on ``;``, newlines and top-level commas."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    prev = ""
    for ch in body:
        if ch in "([<":
            depth += 1
        elif ch in ")]" or (ch == ">" and prev != "="):
            depth = max(depth - 1, 0)
        if ch in ";\n" or (ch == "," and depth == 0):
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        prev = ch
    parts.append("".join(current))
    return [p for p in parts if p.strip()]


def _props_body(content: str, name: str) -> str:
    escaped = re.escape(name)
    candidates = (
        (re.compile(rf"interface\s+{escaped}Props\s*(?:extends[^{{]+)?\{{([^}}]+)\}}", re.S), 1),
        (re.compile(rf"type\s+{escaped}Props\s*=\s*\{{([^}}]+)\}}", re.S), 1),
        (re.compile(rf"function\s+{escaped}\s*\(\s*\{{([^}}]+)\}}\s*:\s*\{{([^}}]+)\}}", re.S), 2),
        (_GENERIC_PROPS_RES[0], 1),
        (_GENERIC_PROPS_RES[1], 1),
    )
    for pattern, group in candidates:
        match = pattern.search(content)
        if match and match.group(group).strip():
            return match.group(group)
    return ""


def _destructured_defaults(content: str, name: str) -> Dict[str, str]:
    escaped = re.escape(name)
    pattern = re.compile(
        rf"(?:function\s+{escaped}\s*|(?:const|let)\s+{escaped}\s*(?::[^=]+)?=\s*"
        rf"(?:[\w.]+\s*(?:<[^>]*>)?\s*\(\s*)?(?:async\s*)?)\(\s*\{{([^}}]*)\}}",
        re.S,
    )
    match = pattern.search(content)
    if not match:
        return {}
    defaults: Dict[str, str] = {}
    for entry in _split_members(match.group(1)):
        default_match = _DEFAULT_ENTRY_RE.match(entry)
        if default_match:
            defaults[default_match.group(1)] = default_match.group(2)
    return defaults


def extract_props(content: str, component_name: str) -> List[PropInfo]:
    """Declared props of *component_name*; the first non-empty declaration wins."""
    body = _props_body(content, component_name)
    if not body:
        return []

    defaults = _destructured_defaults(content, component_name)
    props: List[PropInfo] = []
    for line in _split_members(body):
        stripped = line.strip()
        if stripped.startswith(("//", "/*", "*")):
            continue
        match = _PROP_LINE_RE.match(line)
        if not match:
            continue
        name, optional, type_text = match.groups()
        props.append(PropInfo(
            name=name,
            type=type_text.strip(),
            required=optional != "?",
            default_value=defaults.get(name),
        ))
    logger.debug("Props for %s: %d", component_name, len(props))
    return props


# ===================================================================
# Named-export helpers
# ===================================================================

def extract_exported_component_names(content: str) -> List[str]:
    """Capitalised exported names, in the order a reader would spot them."""
    names: List[str] = []

    def add(name: str) -> None:
        if name not in names:
            names.append(name)

    for pattern in (
        r"export\s+default\s+(?:async\s+)?function\s+([A-Z]\w*)",
        r"export\s+default\s+class\s+([A-Z]\w*)",
    ):
        match = re.search(pattern, content)
        if match:
            add(match.group(1))
    for match in re.finditer(r"export\s+(?:async\s+)?function\s+([A-Z]\w*)", content):
        add(match.group(1))
    for match in re.finditer(r"export\s+const\s+([A-Z]\w*)\s*=", content):
        add(match.group(1))

    match = re.search(r"export\s+default\s+([A-Z]\w*)\s*[;\n]", content)
    if match and match.group(1) not in names:
        defined = re.search(rf"(?:const|let|var|function|class)\s+{match.group(1)}\b", content)
        if defined:
            add(match.group(1))

    for match in re.finditer(r"export\s+const\s+([A-Z]\w*)\s*=\s*(?:React\.)?(?:forwardRef|memo)", content):
        add(match.group(1))
    return names


def extract_hook_exports(content: str) -> List[str]:
    hooks: List[str] = []
    for pattern in (
        r"export\s+(?:async\s+)?function\s+(use[A-Z]\w*)",
        r"export\s+const\s+(use[A-Z]\w*)\s*=",
        r"export\s+default\s+function\s+(use[A-Z]\w*)",
    ):
        for match in re.finditer(pattern, content):
            if match.group(1) not in hooks:
                hooks.append(match.group(1))
    return hooks


def has_hook_definition(content: str) -> bool:
    return bool(re.search(r"export\s+(?:const|function|default\s+function)\s+use[A-Z]", content))


def extract_server_action_exports(content: str) -> List[str]:
    """Functions a server-action module exposes to client code."""
    names: List[str] = []
    for pattern in (
        r"export\s+(?:async\s+)?function\s+(\w+)",
        r"export\s+const\s+(\w+)\s*=\s*(?:async\s*)?\(",
        r"export\s+const\s+(\w+)\s*=\s*(?:async\s*)?(?:\([^)]*\)|\w+)\s*=>",
    ):
        for match in re.finditer(pattern, content):
            if match.group(1) not in names:
                names.append(match.group(1))
    return names


# ===================================================================
# Facade
# ===================================================================

def extract(content: str) -> SourceFact:
    """Run every extractor over *content*."""
    fact = SourceFact(
        imports=extract_imports(content),
        exports=extract_exports(content),
        links=extract_links(content),
        data_dependencies=extract_data_dependencies(content),
        has_client_directive=is_client_component(content),
        has_server_directive=is_server_module(content),
        has_jsx=has_react_jsx(content),
        content=content,
    )
    logger.debug(
        "Extracted %d imports, %d exports, %d data deps",
        len(fact.imports), len(fact.exports), len(fact.data_dependencies),
    )
    return fact
