"""TOML manifest helpers.

Uses tomlkit so that writing a version back into Cargo.toml or
pyproject.toml keeps comments, key order and whitespace intact.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .errors import ManifestError, ManifestNotFoundError


def load_manifest(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a TOML manifest.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ManifestNotFoundError: If the file does not exist.
        ManifestError: If the file is not valid TOML.
    """
    if not path.exists():
        raise ManifestNotFoundError(f"Manifest not found: {path}")
    try:
        return tomlkit.parse(path.read_text())
    except TOMLKitError as exc:
        raise ManifestError(f"Invalid TOML in {path}: {exc}") from exc


def save_manifest(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_table(doc: Any, *keys: str) -> dict | None:
    """Walk nested tables, returning None if any step is missing.

    Example:
        get_table(doc, "workspace", "package") → the [workspace.package] table
    """
    current = doc
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current if isinstance(current, dict) else None


def get_string(table: dict | None, key: str) -> str | None:
    """Return table[key] if it is a plain string, else None."""
    if table is None:
        return None
    value = table.get(key)
    return str(value) if isinstance(value, str) else None
