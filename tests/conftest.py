"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from polyrelease.ecosystems import EcosystemContext


@pytest.fixture
def logs() -> list[str]:
    """Captures log and warning lines from an EcosystemContext."""
    return []


@pytest.fixture
def make_ctx(tmp_path: Path, logs: list[str]) -> Callable[..., EcosystemContext]:
    """Build an EcosystemContext rooted at tmp_path unless a path is given."""

    def _make(path: Path | None = None, **kwargs: Any) -> EcosystemContext:
        return EcosystemContext(
            path=path or tmp_path, log=logs.append, warn=logs.append, **kwargs
        )

    return _make


@pytest.fixture
def cargo_workspace(tmp_path: Path) -> Path:
    """A Cargo workspace at version 3.0.0 with one inheriting member.

    Returns the member's directory.
    """
    (tmp_path / "Cargo.toml").write_text(
        """\
[workspace]
members = ["crates/*"]

[workspace.package]
version = "3.0.0"  # shared
edition = "2021"
"""
    )
    member = tmp_path / "crates" / "core"
    member.mkdir(parents=True)
    (member / "Cargo.toml").write_text(
        """\
[package]
name = "core"
version.workspace = true
edition.workspace = true

[dependencies]
serde = "1"
"""
    )
    return member


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"  # bumped by CI
dependencies = [
    "requests>=2.0",
]

[tool.uv]
dev-dependencies = ["pytest>=8.0"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject
