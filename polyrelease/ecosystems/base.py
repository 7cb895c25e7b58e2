"""Shared pieces of the ecosystem layer.

An ecosystem is any object with ``name``, ``detect``, ``read_version``,
``write_version`` and ``get_version_files``. ``publish``, ``unpublish`` and
``post_write_hook`` are optional capabilities: callers test them with
supports() and skip the step when absent. There is no base class; the
helpers below are plain functions the implementations call.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ..config import DockerConfig, PackageConfig, RegistryConfig
from ..errors import ManifestError, ManifestNotFoundError, ManifestVersionError
from ..shell import info, warn
from ..versions import is_prerelease

PUBLISH = "publish"
UNPUBLISH = "unpublish"
POST_WRITE_HOOK = "post_write_hook"

# Returned by ecosystems that have no version of their own.
SENTINEL_VERSION = "0.0.0"


class EcosystemContext(BaseModel):
    """Everything an ecosystem needs to act on one package.

    Attributes:
        path: Package directory.
        version_file: Manifest override, relative to path.
        dry_run: Log mutations instead of performing them.
        log: Sink for progress lines.
        warn: Sink for warnings.
        registry: Registry credentials for publish.
        version: The version being published or written.
        is_prerelease: Whether ``version`` is a prerelease.
        docker: Image settings, required by the docker ecosystem.
        publish_command: Command run by the custom ecosystem's publish.
        publish_args: Arguments for publish_command.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: Path
    version_file: str | None = None
    dry_run: bool = False
    log: Callable[[str], None] = info
    warn: Callable[[str], None] = warn
    registry: RegistryConfig | None = None
    version: str | None = None
    is_prerelease: bool = False
    docker: DockerConfig | None = None
    publish_command: str | None = None
    publish_args: list[str] = Field(default_factory=list)


def context_for(
    package: PackageConfig,
    root: Path,
    *,
    dry_run: bool = False,
    registry: RegistryConfig | None = None,
    version: str | None = None,
    log: Callable[[str], None] = info,
    warn: Callable[[str], None] = warn,
) -> EcosystemContext:
    """Build the context for a configured package rooted at ``root``."""
    return EcosystemContext(
        path=root / package.path,
        version_file=package.version_file,
        dry_run=dry_run,
        log=log,
        warn=warn,
        registry=registry,
        version=version,
        is_prerelease=bool(version) and is_prerelease(version),
        docker=package.docker,
        publish_command=package.publish_command,
        publish_args=list(package.publish_args),
    )


@runtime_checkable
class Ecosystem(Protocol):
    """The capabilities every ecosystem provides."""

    name: str
    unpublish_unsupported_reason: str

    def detect(self, path: Path) -> bool: ...

    def read_version(self, ctx: EcosystemContext) -> str: ...

    def write_version(self, ctx: EcosystemContext, version: str) -> None: ...

    def get_version_files(self, ctx: EcosystemContext) -> list[str]: ...


def supports(ecosystem: object, capability: str) -> bool:
    """Return True if the ecosystem implements an optional capability.

    Example:
        supports(CargoEcosystem(), UNPUBLISH) → False
    """
    return callable(getattr(ecosystem, capability, None))


def manifest_path(ctx: EcosystemContext, default_name: str) -> Path:
    """Resolve the manifest for a package, honouring version_file."""
    return ctx.path / (ctx.version_file or default_name)


def present_files(directory: Path, names: Iterable[str]) -> list[str]:
    """Return those of ``names`` that exist in ``directory``."""
    return [name for name in names if (directory / name).exists()]


def relative_to(path: Path, base: Path) -> str:
    """Express ``path`` relative to ``base``, walking up with ``..`` if needed."""
    return Path(os.path.relpath(path.resolve(), base.resolve())).as_posix()


def detect_indent(content: str, default: str | int = 2) -> str:
    """Detect the indentation of a JSON document.

    Returns the leading whitespace of the first indented key ("\\t" for
    tab-indented files), or ``default`` when nothing is indented.
    """
    match = re.search(r'^([ \t]+)"', content, re.MULTILINE)
    if match:
        return match.group(1)
    return " " * default if isinstance(default, int) else default


def load_json_manifest(path: Path) -> dict:
    """Read a JSON manifest.

    Raises:
        ManifestNotFoundError: If the file does not exist.
        ManifestError: If the file is not a JSON object.
    """
    if not path.exists():
        raise ManifestNotFoundError(f"Manifest not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"Expected a JSON object in {path}")
    return data


def read_json_version(path: Path) -> str:
    """Return the top-level "version" of a JSON manifest."""
    version = load_json_manifest(path).get("version")
    if not isinstance(version, str):
        raise ManifestVersionError(f"No version field in {path}")
    return version


def write_json_version(path: Path, version: str, default_indent: int = 2) -> None:
    """Set the top-level "version" of a JSON manifest in place.

    The existing version value is substituted textually so that key order,
    spacing and indentation stay byte-for-byte the same. Files where the
    field cannot be located that way (minified, or no version yet) are
    re-serialized with the detected indentation.
    """
    content = path.read_text()
    data = load_json_manifest(path)
    indent = detect_indent(content, default_indent)

    if isinstance(data.get("version"), str):
        pattern = re.compile(
            rf'^({re.escape(indent)}"version"\s*:\s*)"(?:[^"\\]|\\.)*"', re.MULTILINE
        )
        updated, count = pattern.subn(
            lambda m: f"{m.group(1)}{json.dumps(version)}", content, count=1
        )
        if count:
            path.write_text(updated)
            return

    data["version"] = version
    trailing = "\n" if content.endswith("\n") else ""
    path.write_text(json.dumps(data, indent=indent, ensure_ascii=False) + trailing)
