"""Catalog export helpers for JSON, Graphviz DOT and standalone HTML outputs."""

from __future__ import annotations

import json
from html import escape
from pathlib import Path
from typing import Dict, List

from .models import Catalog


def _entity_kind(entity_id: str) -> str:
    return entity_id.split(":", 1)[0]


def graph_nodes(catalog: Catalog) -> Dict[str, dict]:
    """Every catalogued entity as ``{id, kind, name, file_path}`` keyed by id."""
    nodes: Dict[str, dict] = {}
    for page in catalog.pages:
        nodes[page.entity_id] = {
            "id": page.entity_id,
            "kind": page.kind,
            "name": page.route,
            "file_path": page.file_path,
        }
    for group in (catalog.components, catalog.hooks, catalog.contexts,
                  catalog.utilities, catalog.stores):
        for entity in group:
            nodes[entity.entity_id] = {
                "id": entity.entity_id,
                "kind": _entity_kind(entity.entity_id),
                "name": entity.name,
                "file_path": entity.file_path,
            }
    for action in catalog.server_action_files:
        nodes[action.entity_id] = {
            "id": action.entity_id,
            "kind": "action",
            "name": action.relative_path,
            "file_path": action.file_path,
        }
    return nodes


def graph_edges(catalog: Catalog) -> List[dict]:
    return [{"src": e.src, "dst": e.dst, "edge_type": e.edge_type} for e in catalog.edges]


def export_json(catalog: Catalog, output_file: Path) -> None:
    """Write the full catalog (entities, relationships, edges) as JSON."""
    output_file.write_text(json.dumps(catalog.to_dict(), indent=2), encoding="utf-8")


def export_dot(catalog: Catalog, output_file: Path, focus: str = "") -> None:
    nodes = graph_nodes(catalog)
    selected = _focused_subgraph(nodes, graph_edges(catalog), focus)

    lines = ["digraph PageGraph {"]
    lines.append("  rankdir=LR;")

    for node_id in selected["nodes"]:
        node = nodes[node_id]
        label = f"{_esc(node['kind'])}\\n{_esc(node['name'])}"
        lines.append(f'  "{_esc(node_id)}" [label="{label}"];')

    for edge in selected["edges"]:
        lines.append(
            f'  "{_esc(edge["src"])}" -> "{_esc(edge["dst"])}" [label="{_esc(edge["edge_type"])}"];'
        )

    lines.append("}")
    output_file.write_text("\n".join(lines), encoding="utf-8")


_HTML_KIND_ORDER = (
    "page", "layout", "route", "loading", "error", "not-found", "template",
    "component", "hook", "context", "utility", "store", "action",
)


def export_html(catalog: Catalog, output_file: Path, focus: str = "") -> None:
    """Export the usage graph as a static HTML page, one section per entity kind."""
    nodes = graph_nodes(catalog)
    selected = _focused_subgraph(nodes, graph_edges(catalog), focus)

    outgoing: Dict[str, List[dict]] = {}
    for edge in selected["edges"]:
        outgoing.setdefault(edge["src"], []).append(edge)

    by_kind: Dict[str, List[dict]] = {}
    for node_id in selected["nodes"]:
        by_kind.setdefault(nodes[node_id]["kind"], []).append(nodes[node_id])
    rank = {kind: i for i, kind in enumerate(_HTML_KIND_ORDER)}
    kinds = sorted(by_kind, key=lambda k: (rank.get(k, len(rank)), k))

    sections = []
    for kind in kinds:
        items = []
        for node in by_kind[kind]:
            targets = "".join(
                f"<li>{escape(e['edge_type'])} &rarr; {escape(nodes[e['dst']]['name'])}</li>"
                for e in outgoing.get(node["id"], [])
            )
            items.append(
                f'<li><span title="{escape(node["file_path"])}">{escape(kind)}: {escape(node["name"])}</span>'
                + (f"<ul>{targets}</ul>" if targets else "")
                + "</li>"
            )
        sections.append(f"<h2>{escape(kind)} ({len(items)})</h2>\n<ul>{''.join(items)}</ul>")

    document = "\n".join([
        "<!doctype html>",
        '<html><head><meta charset="utf-8" /><title>PageGraph Export</title>',
        "<style>body { font-family: monospace; margin: 20px; } li > ul { color: #555; }</style>",
        "</head><body>",
        f"<h1>PageGraph: {escape(catalog.project_name)}</h1>",
        f"<p>{escape(catalog.framework)} / {escape(catalog.router_type)}</p>",
        *sections,
        "</body></html>",
        "",
    ])
    output_file.write_text(document, encoding="utf-8")


def _focused_subgraph(nodes: Dict[str, dict], edges: List[dict], focus: str) -> Dict[str, List]:
    edges = [e for e in edges if e["src"] in nodes and e["dst"] in nodes]
    if not focus:
        return {"nodes": sorted(nodes), "edges": edges}

    focus_ids = {
        node_id
        for node_id, node in nodes.items()
        if focus in node_id or focus in node["name"]
    }

    if not focus_ids:
        return {"nodes": sorted(nodes), "edges": edges}

    edge_subset = [e for e in edges if e["src"] in focus_ids or e["dst"] in focus_ids]
    node_subset = set(focus_ids)
    for e in edge_subset:
        node_subset.add(e["src"])
        node_subset.add(e["dst"])
    return {"nodes": sorted(node_subset), "edges": edge_subset}


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
