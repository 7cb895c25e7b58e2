"""PHP packages (composer.json)."""

from __future__ import annotations

from pathlib import Path

from .base import (
    EcosystemContext,
    manifest_path,
    present_files,
    read_json_version,
    write_json_version,
)

MANIFEST = "composer.json"
LOCKFILES = ("composer.lock",)


class ComposerEcosystem:
    """Composer packages are published by Packagist from git tags."""

    name = "composer"
    unpublish_unsupported_reason = (
        "Packagist does not support programmatic package deletion."
    )

    def detect(self, path: Path) -> bool:
        return (path / MANIFEST).exists()

    def read_version(self, ctx: EcosystemContext) -> str:
        return read_json_version(manifest_path(ctx, MANIFEST))

    def write_version(self, ctx: EcosystemContext, version: str) -> None:
        path = manifest_path(ctx, MANIFEST)
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would set {path} version to {version}")
            return
        write_json_version(path, version, default_indent=4)
        ctx.log(f"Set {path} version to {version}")

    def get_version_files(self, ctx: EcosystemContext) -> list[str]:
        return [ctx.version_file or MANIFEST, *present_files(ctx.path, LOCKFILES)]
