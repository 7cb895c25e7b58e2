"""Tests for polyrelease.toml."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from polyrelease.errors import ManifestError, ManifestNotFoundError
from polyrelease.toml import get_string, get_table, load_manifest, save_manifest


class TestLoadSaveManifest:
    def test_save_preserves_comments(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text('# top\n[package]\nname = "a"  # name\nversion = "1.0.0"\n')

        doc = load_manifest(path)
        doc["package"]["version"] = "2.0.0"
        save_manifest(path, doc)

        assert path.read_text() == '# top\n[package]\nname = "a"  # name\nversion = "2.0.0"\n'

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestNotFoundError):
            load_manifest(tmp_path / "Cargo.toml")

    def test_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text("[package\n")
        with pytest.raises(ManifestError, match="Invalid TOML"):
            load_manifest(path)


class TestGetTable:
    def test_nested(self) -> None:
        doc = tomlkit.parse('[workspace.package]\nversion = "3.0.0"\n')
        assert get_string(get_table(doc, "workspace", "package"), "version") == "3.0.0"

    def test_missing_step(self) -> None:
        doc = tomlkit.parse('[package]\nname = "a"\n')
        assert get_table(doc, "workspace", "package") is None

    def test_non_table_value(self) -> None:
        doc = tomlkit.parse('[package]\nname = "a"\n')
        assert get_table(doc, "package", "name") is None

    def test_get_string_ignores_tables(self) -> None:
        doc = tomlkit.parse("[package]\nversion.workspace = true\n")
        assert get_string(get_table(doc, "package"), "version") is None
