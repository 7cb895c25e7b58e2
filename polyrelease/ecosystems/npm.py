"""npm packages (package.json)."""

from __future__ import annotations

from pathlib import Path

from ..shell import run
from ..versions import parse_version
from .base import (
    EcosystemContext,
    load_json_manifest,
    manifest_path,
    present_files,
    read_json_version,
    write_json_version,
)

MANIFEST = "package.json"
LOCKFILES = ("package-lock.json", "npm-shrinkwrap.json")


def _dist_tag(version: str) -> str | None:
    """Return the dist-tag for a prerelease ("1.2.0-beta.1" → "beta")."""
    parsed = parse_version(version)
    if parsed is None or parsed.prerelease is None:
        return None
    return parsed.prerelease.split(".")[0]


class NpmEcosystem:
    name = "npm"
    unpublish_unsupported_reason = ""

    def detect(self, path: Path) -> bool:
        return (path / MANIFEST).exists()

    def read_version(self, ctx: EcosystemContext) -> str:
        return read_json_version(manifest_path(ctx, MANIFEST))

    def write_version(self, ctx: EcosystemContext, version: str) -> None:
        path = manifest_path(ctx, MANIFEST)
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would set {path} version to {version}")
            return
        write_json_version(path, version, default_indent=2)
        ctx.log(f"Set {path} version to {version}")

    def get_version_files(self, ctx: EcosystemContext) -> list[str]:
        return [ctx.version_file or MANIFEST, *present_files(ctx.path, LOCKFILES)]

    def post_write_hook(self, ctx: EcosystemContext) -> None:
        """Refresh the lockfile so its root version matches package.json."""
        if not present_files(ctx.path, LOCKFILES):
            return
        if ctx.dry_run:
            ctx.log("[dry-run] Would run npm install --package-lock-only")
            return
        run("npm", "install", "--package-lock-only", cwd=ctx.path)

    def publish(self, ctx: EcosystemContext) -> None:
        args = ["npm", "publish"]
        tag = _dist_tag(ctx.version) if ctx.version and ctx.is_prerelease else None
        if tag:
            # npm would otherwise move "latest" to the prerelease.
            args += ["--tag", tag]
        env = None
        if ctx.registry:
            if ctx.registry.npm_registry:
                args += ["--registry", ctx.registry.npm_registry]
            if ctx.registry.npm_token:
                env = {"NODE_AUTH_TOKEN": ctx.registry.npm_token}

        if ctx.dry_run:
            ctx.log(f"[dry-run] Would run {' '.join(args)}")
            return
        run(*args, cwd=ctx.path, env=env)

    def unpublish(self, ctx: EcosystemContext, version: str) -> bool:
        name = load_json_manifest(manifest_path(ctx, MANIFEST)).get("name")
        if not name:
            ctx.warn(f"No package name in {manifest_path(ctx, MANIFEST)}")
            return False
        target = f"{name}@{version}"
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would unpublish {target}")
            return True
        run("npm", "unpublish", target, cwd=ctx.path)
        ctx.log(f"Unpublished {target}")
        return True
