"""Typer-based CLI for PageGraph front-end relationship scanning."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__, config_manager
from .config_manager import SCAN_KEYS, load_scan_config, save_scan_setting
from .graph_export import export_dot, export_html, export_json
from .models import Catalog, ComponentEntity
from .scanner import scan

console = Console()

app = typer.Typer(
    help="PageGraph CLI: map pages, components, hooks and their usage graph in JS/TS front-ends.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

EXPORT_FORMATS = ("json", "dot", "html")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"PageGraph CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log per-file decisions."),
):
    """PageGraph CLI: static relationship graph for React / Next.js projects."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )


def _run_scan(project_path: Path, workers: Optional[int] = None) -> Catalog:
    with console.status(f"Scanning {escape(str(project_path))}..."):
        return scan(project_path, max_workers=workers)


def _relative(catalog: Catalog, file_path: str) -> str:
    try:
        return Path(file_path).relative_to(catalog.project_path).as_posix()
    except ValueError:
        return file_path


def _joined(items: List[str], limit: int = 6) -> str:
    if not items:
        return "-"
    shown = ", ".join(items[:limit])
    if len(items) > limit:
        shown += f" (+{len(items) - limit})"
    return escape(shown)


# ===================================================================
# Commands
# ===================================================================

@app.command("scan")
def scan_project(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Path to the front-end project."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the catalog as JSON to this file."),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Parallel file readers."),
):
    """Scan a project and print a summary of what was found."""
    catalog = _run_scan(project_path, workers)

    console.print(
        f"[bold]{escape(catalog.project_name)}[/bold]  "
        f"framework=[cyan]{catalog.framework}[/cyan]  router=[cyan]{catalog.router_type}[/cyan]"
    )

    table = Table(title="Catalog", show_header=True)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", justify="right")
    for name, count in catalog.counts().items():
        table.add_row(name.replace("_", " "), str(count))
    console.print(table)

    if output is not None:
        export_json(catalog, output)
        console.print(f"[green]✓[/green] Catalog written to {escape(str(output))}")


@app.command("pages")
def list_pages(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Path to the front-end project."),
):
    """List discovered routes with the components they render."""
    catalog = _run_scan(project_path)
    if not catalog.pages:
        typer.echo("No pages found.")
        raise typer.Exit(code=0)

    table = Table(title=f"Pages ({catalog.router_type})", show_header=True)
    table.add_column("Route", style="cyan")
    table.add_column("Kind")
    table.add_column("File")
    table.add_column("Components")
    for page in catalog.pages:
        table.add_row(
            escape(page.route),
            page.kind,
            escape(_relative(catalog, page.file_path)),
            _joined(page.components),
        )
    console.print(table)


def _print_component(catalog: Catalog, component: ComponentEntity) -> None:
    console.print(f"[bold cyan]{escape(component.name)}[/bold cyan]  {escape(_relative(catalog, component.file_path))}")
    console.print(f"  client component: {'yes' if component.is_client_component else 'no'}")
    if component.props:
        console.print("  props:")
        for prop in component.props:
            marker = "" if prop.required else "?"
            default = f" = {prop.default_value}" if prop.default_value is not None else ""
            console.print(f"    {escape(prop.name)}{marker}: {escape(prop.type)}{escape(default)}")
    console.print(f"  used in pages: {_joined(component.used_in_pages, limit=20)}")
    console.print(f"  used in components: {_joined(component.used_in_components, limit=20)}")
    for dep in component.data_dependencies:
        console.print(f"  data: {dep.kind} {escape(dep.source)} (line {dep.line})")
    for ref in component.server_actions:
        console.print(f"  server action: {escape(ref.function_name)} from {escape(ref.import_path)}")
    closure = component.all_dependencies
    if closure is not None:
        console.print(f"  closure components: {_joined(closure.components, limit=20)}")
        console.print(f"  closure hooks: {_joined(closure.hooks, limit=20)}")
        console.print(f"  closure contexts: {_joined(closure.contexts, limit=20)}")
        console.print(f"  closure utilities: {_joined(closure.utilities, limit=20)}")


@app.command("components")
def list_components(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Path to the front-end project."),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Show details for one component."),
):
    """List components, or show one component's usage and dependency closure."""
    catalog = _run_scan(project_path)

    if name:
        component = catalog.find_component(name)
        if component is None:
            typer.echo(f"Component '{name}' not found.", err=True)
            raise typer.Exit(code=1)
        _print_component(catalog, component)
        return

    if not catalog.components:
        typer.echo("No components found.")
        raise typer.Exit(code=0)

    table = Table(title="Components", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Client")
    table.add_column("Pages")
    table.add_column("Imported by")
    for component in catalog.components:
        table.add_row(
            escape(component.name),
            "yes" if component.is_client_component else "",
            _joined(component.used_in_pages),
            _joined(component.used_in_components),
        )
    console.print(table)


@app.command("export-graph")
def export_graph(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Path to the front-end project."),
    fmt: str = typer.Option("html", "--format", "-f", help="Export format: json, dot or html."),
    focus: str = typer.Option("", "--focus", help="Only export entities matching this name and their neighbours."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path."),
):
    """Export the usage graph to JSON, Graphviz DOT or standalone HTML."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise typer.BadParameter("Format must be one of: json, dot, html")

    catalog = _run_scan(project_path)
    if output is None:
        output = Path.cwd() / f"{catalog.project_name}_graph.{fmt}"

    if fmt == "json":
        export_json(catalog, output)
    elif fmt == "dot":
        export_dot(catalog, output, focus=focus)
    else:
        export_html(catalog, output, focus=focus)

    typer.echo(f"Exported graph to {output}")


@app.command("show-config")
def show_config():
    """Show the scan settings in effect."""
    settings = load_scan_config()
    table = Table(title="Scan configuration", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key in SCAN_KEYS:
        value = settings[key]
        table.add_row(key, escape(", ".join(value) if isinstance(value, list) else str(value)))
    console.print(table)
    console.print(f"[dim]Config file: {escape(str(config_manager.CONFIG_FILE))}[/dim]")


@app.command("set-config")
def set_config(
    key: str = typer.Argument(..., help=f"Setting name ({', '.join(SCAN_KEYS)})."),
    value: str = typer.Argument(..., help="New value; ignore_dirs takes a comma separated list."),
):
    """Persist a scan setting in the config file."""
    try:
        saved = save_scan_setting(key, value)
    except KeyError:
        raise typer.BadParameter(f"Unknown setting '{key}'. Choose from: {', '.join(SCAN_KEYS)}")
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid value for {key}: {exc}")

    if not saved:
        typer.echo("Could not write the config file.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Set scan.{key} = {value}")


if __name__ == "__main__":
    app()
