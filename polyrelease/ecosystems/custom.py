"""Packages versioned by a plain text file.

The version file (``VERSION`` unless overridden) is scanned for the first
semver-looking string. Publishing runs whatever command is configured.
"""

from __future__ import annotations

import re
import shlex
from pathlib import Path

from ..shell import run
from .base import SENTINEL_VERSION, EcosystemContext, manifest_path

DEFAULT_VERSION_FILE = "VERSION"
VERSION_PATTERN = re.compile(r"v?(\d+\.\d+\.\d+(?:-[a-zA-Z0-9.]+)?)")


class CustomEcosystem:
    """Fallback ecosystem; detects any directory."""

    name = "custom"
    unpublish_unsupported_reason = (
        "Custom ecosystems do not have a standard unpublish mechanism."
    )

    def detect(self, path: Path) -> bool:
        return True

    def read_version(self, ctx: EcosystemContext) -> str:
        path = manifest_path(ctx, DEFAULT_VERSION_FILE)
        if not path.exists():
            ctx.log(f"{path} not found; using {SENTINEL_VERSION}")
            return SENTINEL_VERSION
        match = VERSION_PATTERN.search(path.read_text())
        if match is None:
            ctx.log(f"No version found in {path}; using {SENTINEL_VERSION}")
            return SENTINEL_VERSION
        return match.group(1)

    def write_version(self, ctx: EcosystemContext, version: str) -> None:
        path = manifest_path(ctx, DEFAULT_VERSION_FILE)
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would set {path} version to {version}")
            return

        if not path.exists():
            path.write_text(f"{version}\n")
            ctx.log(f"Created {path} with version {version}")
            return

        content = path.read_text()
        match = VERSION_PATTERN.search(content)
        if match is None:
            ctx.warn(f"No version found in {path}; left unchanged")
            return
        start, end = match.span(1)
        path.write_text(content[:start] + version + content[end:])
        ctx.log(f"Set {path} version to {version}")

    def get_version_files(self, ctx: EcosystemContext) -> list[str]:
        return [ctx.version_file or DEFAULT_VERSION_FILE]

    def publish(self, ctx: EcosystemContext) -> None:
        if not ctx.publish_command:
            ctx.log("No publish_command configured; nothing to publish")
            return
        command = [*shlex.split(ctx.publish_command), *ctx.publish_args]
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would run {' '.join(command)}")
            return
        run(*command, cwd=ctx.path)
