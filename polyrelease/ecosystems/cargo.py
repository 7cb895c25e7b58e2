"""Rust crates (Cargo.toml), including workspace version inheritance.

A workspace member may declare ``version.workspace = true`` instead of a
version. Its real version then lives in ``[workspace.package].version`` of
the workspace root, found by walking up from the member. Reads and writes
for such a member go to the root manifest.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import tomlkit

from ..errors import ManifestVersionError, WorkspaceRootNotFoundError
from ..shell import run
from ..toml import get_string, get_table, load_manifest, save_manifest
from .base import EcosystemContext, manifest_path, relative_to

MANIFEST = "Cargo.toml"
LOCKFILE = "Cargo.lock"

# Parent directories searched for a workspace root.
MAX_WORKSPACE_DEPTH = 10


@dataclass
class VersionSource:
    """Where a crate's version is actually declared.

    Attributes:
        path: Manifest holding the version.
        doc: Parsed manifest.
        workspace: True if the version is [workspace.package].version,
                   False if it is [package].version.
    """

    path: Path
    doc: tomlkit.TOMLDocument
    workspace: bool


def inherits_workspace_version(doc: tomlkit.TOMLDocument) -> bool:
    """Return True for a manifest with ``version.workspace = true``."""
    version = (get_table(doc, "package") or {}).get("version")
    return isinstance(version, dict) and bool(version.get("workspace"))


def find_workspace_root(start: Path) -> tuple[Path, tomlkit.TOMLDocument]:
    """Find the workspace manifest declaring the shared version.

    Searches ``start`` and its parents, MAX_WORKSPACE_DEPTH directories in
    all, for a Cargo.toml with a ``[workspace]`` table. The first one found must
    declare ``[workspace.package].version``.

    Raises:
        WorkspaceRootNotFoundError: If no such manifest exists within range,
                                    or the nearest one has no version.
    """
    directory = start.resolve()
    for _ in range(MAX_WORKSPACE_DEPTH):
        candidate = directory / MANIFEST
        if candidate.exists():
            doc = load_manifest(candidate)
            if "workspace" in doc:
                if get_string(get_table(doc, "workspace", "package"), "version"):
                    return candidate, doc
                raise WorkspaceRootNotFoundError(
                    f"{candidate} has no [workspace.package].version to inherit"
                )
        if directory.parent == directory:
            break
        directory = directory.parent
    raise WorkspaceRootNotFoundError(
        f"No workspace root with [workspace.package].version found above {start}"
    )


def resolve_version_source(manifest: Path) -> VersionSource:
    """Locate the manifest and table that hold a crate's version.

    Raises:
        ManifestNotFoundError: If ``manifest`` does not exist.
        ManifestVersionError: If there is no version to read.
        WorkspaceRootNotFoundError: If an inherited version has no root.
    """
    doc = load_manifest(manifest)
    package_version = get_string(get_table(doc, "package"), "version")
    if package_version is not None:
        return VersionSource(manifest, doc, workspace=False)

    if get_string(get_table(doc, "workspace", "package"), "version"):
        return VersionSource(manifest, doc, workspace=True)

    if inherits_workspace_version(doc):
        root, root_doc = find_workspace_root(manifest.parent.parent)
        return VersionSource(root, root_doc, workspace=True)

    raise ManifestVersionError(f"No version field in {manifest}")


class CargoEcosystem:
    name = "cargo"
    unpublish_unsupported_reason = (
        "crates.io does not support unpublishing. "
        "Use `cargo yank` to prevent new dependents on a version."
    )

    def detect(self, path: Path) -> bool:
        return (path / MANIFEST).exists()

    def read_version(self, ctx: EcosystemContext) -> str:
        source = resolve_version_source(manifest_path(ctx, MANIFEST))
        table = (
            get_table(source.doc, "workspace", "package")
            if source.workspace
            else get_table(source.doc, "package")
        )
        return get_string(table, "version") or ""

    def write_version(self, ctx: EcosystemContext, version: str) -> None:
        source = resolve_version_source(manifest_path(ctx, MANIFEST))
        key = "[workspace.package]" if source.workspace else "[package]"
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would set {key} version in {source.path} to {version}")
            return

        if source.workspace:
            source.doc["workspace"]["package"]["version"] = version
        else:
            source.doc["package"]["version"] = version
        save_manifest(source.path, source.doc)
        ctx.log(f"Set {key} version in {source.path} to {version}")

    def get_version_files(self, ctx: EcosystemContext) -> list[str]:
        manifest = manifest_path(ctx, MANIFEST)
        source = resolve_version_source(manifest)
        files = [relative_to(source.path, ctx.path)]
        lockfile = source.path.parent / LOCKFILE
        if lockfile.exists():
            files.append(relative_to(lockfile, ctx.path))
        return files

    def post_write_hook(self, ctx: EcosystemContext) -> None:
        """Refresh Cargo.lock so workspace crate versions match."""
        source = resolve_version_source(manifest_path(ctx, MANIFEST))
        if not (source.path.parent / LOCKFILE).exists():
            return
        if ctx.dry_run:
            ctx.log("[dry-run] Would run cargo update --workspace")
            return
        run("cargo", "update", "--workspace", cwd=source.path.parent)

    def publish(self, ctx: EcosystemContext) -> None:
        env = None
        if ctx.registry and ctx.registry.cargo_token:
            env = {"CARGO_REGISTRY_TOKEN": ctx.registry.cargo_token}
        if ctx.dry_run:
            ctx.log("[dry-run] Would run cargo publish --allow-dirty")
            return
        run("cargo", "publish", "--allow-dirty", cwd=ctx.path, env=env)
