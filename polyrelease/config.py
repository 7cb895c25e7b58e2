"""Release configuration.

Configuration is read with tomlkit from either a standalone ``release.toml``
or the ``[tool.polyrelease]`` table of ``pyproject.toml`` and validated into
Pydantic models with every default applied. Keys are snake_case; the
hyphenated spelling common in TOML (``tag-prefix``) is accepted too.

Example ``release.toml``::

    release_order = ["core", "cli"]

    [labels]
    skip = "no-release"

    [[packages]]
    name = "core"
    path = "crates/core"
    ecosystem = "cargo"

    [cleanup]
    enabled = true
    dev = { tags = true, releases = true, keep = 5 }
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tomlkit.exceptions import TOMLKitError

from .errors import ConfigError
from .models import BumpType, ReleaseType

EcosystemName = Literal["npm", "cargo", "python", "go", "composer", "docker", "custom"]

CONFIG_FILENAME = "release.toml"


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=lambda name: name.replace("_", "-"),
        populate_by_name=True,
        extra="forbid",
    )


class LabelConfig(_Section):
    """Label name used for each release role."""

    major: str = "release:major"
    minor: str = "release:minor"
    patch: str = "release:patch"
    skip: str = "release:skip"
    alpha: str = "release:alpha"
    beta: str = "release:beta"
    rc: str = "release:rc"

    def label_for(self, role: str) -> str:
        """Return the configured label for a role such as "minor" or "rc"."""
        return getattr(self, role)

    def role_labels(self) -> set[str]:
        """Return all seven configured label strings."""
        return {self.major, self.minor, self.patch, self.skip, self.alpha, self.beta, self.rc}


class VersionConfig(_Section):
    default_bump: BumpType = "patch"
    dev_release: bool = False
    dev_suffix: str = "dev"


class GitConfig(_Section):
    tag_prefix: str = "v"
    commit_message: str = "chore(release): {version}"


class PublishConfig(_Section):
    enabled: bool = True
    delay_between_packages: int = Field(default=30, ge=0)


class DockerConfig(_Section):
    """Image build and registry settings for a docker package."""

    registry: str = "docker.io"
    image: str
    username: str | None = None
    password: str | None = None
    dockerfile: str = "Dockerfile"
    context: str | None = None
    build_args: dict[str, str] = Field(default_factory=dict)
    platforms: list[str] = Field(default_factory=list)
    target: str | None = None
    tags: list[str] = Field(default_factory=lambda: ["latest", "{version}"])
    dev_tags: list[str] = Field(default_factory=lambda: ["dev", "{version}"])
    push: bool = True


class RegistryConfig(_Section):
    """Registry credentials, falling back to the usual environment variables."""

    npm_token: str | None = Field(default_factory=lambda: os.environ.get("NPM_TOKEN"))
    npm_registry: str | None = None
    cargo_token: str | None = Field(
        default_factory=lambda: os.environ.get("CARGO_REGISTRY_TOKEN")
    )


class PackageConfig(_Section):
    """One releasable package.

    Attributes:
        name: Display name, also used in release_order.
        path: Package directory relative to the repository root.
        ecosystem: Which ecosystem implementation handles it.
        version_file: Manifest override, relative to path.
        publish: Whether the publish step applies to this package.
        publish_command: Command for the custom ecosystem's publish.
        publish_args: Arguments for publish_command.
        docker: Required for docker packages.
    """

    name: str
    path: str = "."
    ecosystem: EcosystemName
    version_file: str | None = None
    publish: bool = True
    publish_command: str | None = None
    publish_args: list[str] = Field(default_factory=list)
    docker: DockerConfig | None = None


class CleanupPolicy(_Section):
    """What to delete for one release type, and how many to keep.

    ``keep = 0`` retains everything.
    """

    tags: bool = False
    releases: bool = False
    published: bool = False
    keep: int = Field(default=0, ge=0)

    @property
    def active(self) -> bool:
        return self.tags or self.releases or self.published


class CleanupConfig(_Section):
    enabled: bool = False
    dev: CleanupPolicy = Field(default_factory=CleanupPolicy)
    alpha: CleanupPolicy = Field(default_factory=CleanupPolicy)
    beta: CleanupPolicy = Field(default_factory=CleanupPolicy)
    rc: CleanupPolicy = Field(default_factory=CleanupPolicy)
    stable: CleanupPolicy = Field(default_factory=CleanupPolicy)

    def policy_for(self, release_type: ReleaseType) -> CleanupPolicy:
        return getattr(self, release_type)


class VersionFileUpdate(_Section):
    """A regex replacement applied to a non-manifest file on each bump.

    ``replace`` may use the {version}, {major}, {minor} and {patch}
    placeholders.
    """

    file: str
    pattern: str
    replace: str


class ReleaseConfig(_Section):
    """Top-level release configuration."""

    packages: list[PackageConfig] = Field(default_factory=list)
    release_order: list[str] | None = None
    labels: LabelConfig = Field(default_factory=LabelConfig)
    version: VersionConfig = Field(default_factory=VersionConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    version_files: list[VersionFileUpdate] = Field(default_factory=list)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)


def _format_validation_error(exc: ValidationError) -> str:
    lines = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "/"
        lines.append(f"  {location}: {err['msg']}")
    return "\n".join(lines)


def load_config(path: Path) -> ReleaseConfig:
    """Load and validate a release configuration file.

    ``pyproject.toml`` files are read from their ``[tool.polyrelease]``
    table; any other file is treated as a standalone config. An empty file
    yields the defaults.

    Raises:
        ConfigError: If the file is missing, is not valid TOML, or does not
                     match the schema.
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        doc = tomlkit.parse(path.read_text())
    except TOMLKitError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    data = doc.unwrap()
    if path.name == "pyproject.toml":
        data = data.get("tool", {}).get("polyrelease", {})

    try:
        return ReleaseConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid configuration in {path}:\n{_format_validation_error(exc)}"
        ) from exc


def find_config(root: Path) -> Path | None:
    """Locate the configuration file for a repository.

    Prefers ``release.toml``; falls back to ``pyproject.toml`` when it has a
    ``[tool.polyrelease]`` table.
    """
    candidate = root / CONFIG_FILENAME
    if candidate.exists():
        return candidate

    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        try:
            doc = tomlkit.parse(pyproject.read_text())
        except TOMLKitError:
            return None
        if "polyrelease" in doc.get("tool", {}):
            return pyproject
    return None


def load_or_default(path: Path | None, root: Path) -> ReleaseConfig:
    """Load the given config, the discovered one, or the defaults."""
    resolved = path or find_config(root)
    if resolved is None:
        return ReleaseConfig()
    return load_config(resolved)


def ordered_packages(config: ReleaseConfig) -> list[PackageConfig]:
    """Return packages in release order.

    Packages named in ``release_order`` come first, in that order; the
    rest follow in declaration order.

    Raises:
        ConfigError: If release_order names an unknown package.
    """
    by_name = {pkg.name: pkg for pkg in config.packages}
    order = config.release_order or []

    unknown = [name for name in order if name not in by_name]
    if unknown:
        raise ConfigError(f"release_order names unknown packages: {', '.join(unknown)}")

    ordered = [by_name[name] for name in order]
    ordered.extend(pkg for pkg in config.packages if pkg.name not in order)
    return ordered
