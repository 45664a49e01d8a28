"""Tests for the TOML-backed scan configuration."""

from pathlib import Path

import pytest
import toml

from pagegraph_cli import config_manager
from pagegraph_cli.config_manager import load_full_config, load_scan_config, save_scan_setting


def test_defaults_without_file(temp_config_file: Path):
    assert not temp_config_file.exists()
    assert load_scan_config() == {"max_workers": 4, "ignore_dirs": []}


def test_save_and_load(temp_config_file: Path):
    assert save_scan_setting("max_workers", "8")
    assert save_scan_setting("ignore_dirs", "storybook-static, generated,")

    assert load_scan_config() == {"max_workers": 8, "ignore_dirs": ["storybook-static", "generated"]}
    assert toml.load(temp_config_file)["scan"]["max_workers"] == 8


def test_other_sections_are_preserved(temp_config_file: Path):
    temp_config_file.parent.mkdir(parents=True, exist_ok=True)
    temp_config_file.write_text('[ui]\ntheme = "dark"\n', encoding="utf-8")

    save_scan_setting("max_workers", "2")
    assert load_full_config() == {"ui": {"theme": "dark"}, "scan": {"max_workers": 2}}


def test_unknown_key(temp_config_file: Path):
    with pytest.raises(KeyError):
        save_scan_setting("colour", "blue")


@pytest.mark.parametrize("value", ["many", "0"])
def test_invalid_worker_count(temp_config_file: Path, value: str):
    with pytest.raises(ValueError):
        save_scan_setting("max_workers", value)


def test_malformed_file_falls_back_to_defaults(temp_config_file: Path):
    temp_config_file.parent.mkdir(parents=True, exist_ok=True)
    temp_config_file.write_text("[scan\nmax_workers = ", encoding="utf-8")
    assert load_full_config() == {}
    assert load_scan_config()["max_workers"] == 4


def test_invalid_values_are_ignored(temp_config_file: Path):
    temp_config_file.parent.mkdir(parents=True, exist_ok=True)
    temp_config_file.write_text('[scan]\nmax_workers = "lots"\nignore_dirs = "vendor"\n', encoding="utf-8")
    assert load_scan_config() == {"max_workers": 4, "ignore_dirs": []}


def test_config_file_lives_under_base_dir():
    assert config_manager.CONFIG_FILE == config_manager.BASE_DIR / "config.toml"
