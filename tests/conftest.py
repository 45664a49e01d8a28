"""Pytest configuration and fixtures for PageGraph CLI tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the sample Next.js App Router project."""
    return Path(__file__).parent / "fixtures" / "sample_next_app"


@pytest.fixture
def write_files(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Return a helper that lays out ``{relative path: content}`` under temp_dir."""

    def _write(files: Dict[str, str]) -> Path:
        for rel, content in files.items():
            path = temp_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return temp_dir

    return _write


@pytest.fixture
def temp_config_file(temp_dir: Path, monkeypatch) -> Path:
    """Point the TOML config at a throwaway file."""
    config_file = temp_dir / "home" / "config.toml"
    monkeypatch.setattr("pagegraph_cli.config_manager.CONFIG_FILE", config_file)
    return config_file


@pytest.fixture
def hero_component_source() -> str:
    """A client component with props, a fetch call and local imports."""
    return """'use client';

import { useState } from 'react';
import Button, { type ButtonProps } from './Button';
import * as api from '@/lib/api';
import './hero.css';

interface HeroProps {
  title: string;
  subtitle?: string;
  onAction: (id: number, label: string) => void;
}

export function Hero({ title, subtitle = 'Welcome' }: HeroProps) {
  const [open, setOpen] = useState(false);
  const res = fetch('/api/hero');
  return (
    <section>
      <Button label={title} />
    </section>
  );
}
"""
