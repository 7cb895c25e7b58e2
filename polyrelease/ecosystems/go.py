"""Go modules (go.mod).

Go module versions live only in git tags, so there is nothing to read or
write here beyond logging.
"""

from __future__ import annotations

from pathlib import Path

from .base import SENTINEL_VERSION, EcosystemContext

MANIFEST = "go.mod"


class GoEcosystem:
    name = "go"
    unpublish_unsupported_reason = (
        "Go modules use git tags for versioning. "
        "Delete the tag to remove a version from the module proxy's view."
    )

    def detect(self, path: Path) -> bool:
        return (path / MANIFEST).exists()

    def read_version(self, ctx: EcosystemContext) -> str:
        ctx.log("Go modules are versioned by git tags; using 0.0.0")
        return SENTINEL_VERSION

    def write_version(self, ctx: EcosystemContext, version: str) -> None:
        ctx.log(f"Go modules are versioned by git tags; {version} will be tagged")

    def get_version_files(self, ctx: EcosystemContext) -> list[str]:
        return [MANIFEST]
