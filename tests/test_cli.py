"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from pagegraph_cli import __version__
from pagegraph_cli.cli import app


runner = CliRunner()

# Wide enough that rich never wraps table cells.
WIDE = {"COLUMNS": "200"}


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"v{__version__}" in result.stdout


class TestScanCommand:
    """Tests for 'pagegraph scan'."""

    def test_scan_summary(self, sample_project_path: Path):
        result = runner.invoke(app, ["scan", str(sample_project_path)], env=WIDE)

        assert result.exit_code == 0
        assert "nextjs-app" in result.stdout
        assert "components" in result.stdout
        assert "server action files" in result.stdout

    def test_scan_writes_catalog(self, sample_project_path: Path, temp_dir: Path):
        output = temp_dir / "catalog.json"
        result = runner.invoke(app, ["scan", str(sample_project_path), "-o", str(output), "--workers", "2"], env=WIDE)

        assert result.exit_code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["framework"] == "nextjs"
        assert {c["name"] for c in data["components"]} == {"Button", "Card", "Hero"}

    def test_scan_nonexistent_path(self):
        result = runner.invoke(app, ["scan", "/nonexistent/path"])
        assert result.exit_code != 0


class TestListingCommands:
    """Tests for 'pagegraph pages' and 'pagegraph components'."""

    def test_pages(self, sample_project_path: Path):
        result = runner.invoke(app, ["pages", str(sample_project_path)], env=WIDE)

        assert result.exit_code == 0
        assert "/blog/:slug" in result.stdout
        assert "app/(marketing)/about/page.tsx" in result.stdout
        assert "layout" in result.stdout

    def test_pages_empty_project(self, temp_dir: Path):
        result = runner.invoke(app, ["pages", str(temp_dir)])

        assert result.exit_code == 0
        assert "No pages" in result.stdout

    def test_components(self, sample_project_path: Path):
        result = runner.invoke(app, ["components", str(sample_project_path)], env=WIDE)

        assert result.exit_code == 0
        for name in ("Button", "Card", "Hero"):
            assert name in result.stdout

    def test_component_details(self, sample_project_path: Path):
        result = runner.invoke(app, ["components", str(sample_project_path), "--name", "Hero"], env=WIDE)

        assert result.exit_code == 0
        assert "used in pages: /" in result.stdout
        assert "data: fetch /api/hero" in result.stdout
        assert "server action: subscribe" in result.stdout
        assert "closure hooks: useCart" in result.stdout

    def test_component_not_found(self, sample_project_path: Path):
        result = runner.invoke(app, ["components", str(sample_project_path), "--name", "Nope"])
        assert result.exit_code == 1


class TestExportGraphCommand:
    """Tests for 'pagegraph export-graph'."""

    def test_export_dot(self, sample_project_path: Path, temp_dir: Path):
        output = temp_dir / "graph.dot"
        result = runner.invoke(app, ["export-graph", str(sample_project_path), "--format", "dot", "-o", str(output)])

        assert result.exit_code == 0
        assert "Exported graph" in result.stdout
        assert output.read_text(encoding="utf-8").startswith("digraph PageGraph {")

    def test_export_json(self, sample_project_path: Path, temp_dir: Path):
        output = temp_dir / "graph.json"
        result = runner.invoke(app, ["export-graph", str(sample_project_path), "-f", "json", "-o", str(output)])

        assert result.exit_code == 0
        assert "edges" in json.loads(output.read_text(encoding="utf-8"))

    def test_export_unknown_format(self, sample_project_path: Path):
        result = runner.invoke(app, ["export-graph", str(sample_project_path), "--format", "svg"])
        assert result.exit_code != 0


class TestConfigCommands:
    """Tests for 'pagegraph show-config' and 'pagegraph set-config'."""

    def test_show_defaults(self, temp_config_file: Path):
        result = runner.invoke(app, ["show-config"], env=WIDE)

        assert result.exit_code == 0
        assert "max_workers" in result.stdout
        assert "ignore_dirs" in result.stdout

    def test_set_and_show(self, temp_config_file: Path):
        result = runner.invoke(app, ["set-config", "max_workers", "3"])

        assert result.exit_code == 0
        assert "Set scan.max_workers = 3" in result.stdout
        assert "max_workers = 3" in temp_config_file.read_text(encoding="utf-8")

    def test_set_unknown_key(self, temp_config_file: Path):
        result = runner.invoke(app, ["set-config", "colour", "blue"])

        assert result.exit_code != 0
        assert not temp_config_file.exists()

    def test_set_invalid_value(self, temp_config_file: Path):
        result = runner.invoke(app, ["set-config", "max_workers", "zero"])
        assert result.exit_code != 0
