"""Exception types raised by polyrelease.

Only input, manifest, workspace and configuration problems are raised.
Failures of external operations (publish, unpublish, deleting releases or
tags) are collected as warnings by the caller instead.
"""

from __future__ import annotations

import subprocess

import requests


class ReleaseError(Exception):
    """Base class for all polyrelease errors."""


class InvalidVersionError(ReleaseError, ValueError):
    """A version string is not valid semver."""

    def __init__(self, version: str) -> None:
        super().__init__(f"Invalid version: {version!r}")
        self.version = version


class ManifestError(ReleaseError):
    """A package manifest cannot be used to read or write a version."""


class ManifestNotFoundError(ManifestError, FileNotFoundError):
    """The manifest file does not exist."""


class ManifestVersionError(ManifestError):
    """The manifest exists but has no usable version field."""


class WorkspaceRootNotFoundError(ManifestError):
    """A member inherits its version but no workspace root declares one."""


class ConfigError(ReleaseError):
    """The release configuration is missing or invalid."""


# Failures of external operations (publish, unpublish, deletions) that
# callers record as warnings instead of propagating.
EXTERNAL_ERRORS: tuple[type[BaseException], ...] = (
    ReleaseError,
    OSError,
    ValueError,
    subprocess.SubprocessError,
    requests.RequestException,
)
