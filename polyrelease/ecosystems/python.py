"""Python packages (pyproject.toml).

The version is read from ``[project].version`` (PEP 621) or, for Poetry
projects, ``[tool.poetry].version``. Values must be valid PEP 440.
"""

from __future__ import annotations

import sys
from pathlib import Path

from packaging.version import InvalidVersion, Version

from ..errors import ManifestVersionError
from ..shell import run, which
from ..toml import get_string, get_table, load_manifest, save_manifest
from .base import EcosystemContext, manifest_path, present_files

MANIFEST = "pyproject.toml"
LOCKFILES = ("uv.lock", "poetry.lock", "pdm.lock")


def _version_table(doc, path: Path) -> dict:
    project = get_table(doc, "project")
    if project is not None:
        if "version" in project.get("dynamic", []):
            raise ManifestVersionError(
                f"{path} declares a dynamic version; set it in the build backend"
            )
        if get_string(project, "version") is not None:
            return project

    poetry = get_table(doc, "tool", "poetry")
    if get_string(poetry, "version") is not None:
        return poetry

    raise ManifestVersionError(
        f"No version in [project] or [tool.poetry] of {path}"
    )


class PythonEcosystem:
    name = "python"
    unpublish_unsupported_reason = (
        "PyPI does not support unpublishing via API. "
        "Yank the release from the project's PyPI page instead."
    )

    def detect(self, path: Path) -> bool:
        return (path / MANIFEST).exists()

    def read_version(self, ctx: EcosystemContext) -> str:
        path = manifest_path(ctx, MANIFEST)
        version = str(_version_table(load_manifest(path), path)["version"])
        try:
            Version(version)
        except InvalidVersion as exc:
            raise ManifestVersionError(
                f"Invalid PEP 440 version {version!r} in {path}"
            ) from exc
        return version

    def write_version(self, ctx: EcosystemContext, version: str) -> None:
        path = manifest_path(ctx, MANIFEST)
        doc = load_manifest(path)
        table = _version_table(doc, path)
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would set {path} version to {version}")
            return
        table["version"] = version
        save_manifest(path, doc)
        ctx.log(f"Set {path} version to {version}")

    def get_version_files(self, ctx: EcosystemContext) -> list[str]:
        return [ctx.version_file or MANIFEST, *present_files(ctx.path, LOCKFILES)]

    def post_write_hook(self, ctx: EcosystemContext) -> None:
        """Re-lock so the project's own entry in uv.lock carries the new version."""
        if not (ctx.path / "uv.lock").exists():
            return
        if ctx.dry_run:
            ctx.log("[dry-run] Would run uv lock")
            return
        run("uv", "lock", cwd=ctx.path)

    def publish(self, ctx: EcosystemContext) -> None:
        """Build and upload with uv when available, else build and twine."""
        use_uv = which("uv")
        build = ["uv", "build"] if use_uv else [sys.executable, "-m", "build"]
        if ctx.dry_run:
            upload = "uv publish" if use_uv else "python -m twine upload dist/*"
            ctx.log(f"[dry-run] Would run {' '.join(build)} && {upload}")
            return

        run(*build, cwd=ctx.path)
        if use_uv:
            run("uv", "publish", cwd=ctx.path)
        else:
            # dist/ only exists once the build has run.
            dist = sorted(str(p) for p in (ctx.path / "dist").iterdir())
            run(sys.executable, "-m", "twine", "upload", *dist, cwd=ctx.path)
