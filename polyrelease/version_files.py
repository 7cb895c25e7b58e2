"""Version references outside package manifests.

Some repositories mention the release version in other files: README
badges, install snippets, action pins. Each configured VersionFileUpdate
is a regex whose matches are replaced with a templated string on every
bump; the template may refer to groups as in re.sub (``\\g<1>``).
Problems are reported per file rather than raised so that one stale
pattern does not block a release.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from pathlib import Path

from pydantic import BaseModel

from .config import VersionFileUpdate
from .shell import info
from .versions import require_version


class VersionParts(BaseModel):
    """A version split into the values available to templates."""

    version: str
    major: int
    minor: int
    patch: int

    @classmethod
    def from_version(cls, version: str) -> VersionParts:
        parsed = require_version(version)
        return cls(
            version=version.removeprefix("v"),
            major=parsed.major,
            minor=parsed.minor,
            patch=parsed.patch,
        )


class VersionFileResult(BaseModel):
    """Outcome of applying one VersionFileUpdate.

    Attributes:
        file: Path from the update, relative to the repository root.
        updated: True if the file content changed (or would, in dry-run).
        matches: Number of pattern matches found.
        error: Why nothing was updated, if something went wrong.
    """

    file: str
    updated: bool = False
    matches: int = 0
    error: str | None = None


def apply_version_template(template: str, parts: VersionParts) -> str:
    """Fill the {version}, {major}, {minor} and {patch} placeholders.

    Other braces are left alone, so templates may contain regex
    quantifiers or shell syntax.

    Example:
        apply_version_template("v{major}", VersionParts.from_version("2.1.0")) → "v2"
    """
    result = template
    for key, value in parts.model_dump().items():
        result = result.replace(f"{{{key}}}", str(value))
    return result


def update_version_file(
    update: VersionFileUpdate,
    version: str,
    root: Path,
    dry_run: bool = False,
    log: Callable[[str], None] = info,
) -> VersionFileResult:
    """Apply one version-reference update.

    Args:
        update: File, regex and replacement template.
        version: The new version.
        root: Repository root that ``update.file`` is relative to.
        dry_run: Count matches but leave the file untouched.
        log: Sink for progress lines.

    Returns:
        A VersionFileResult; a missing file, a bad regex or a pattern with
        no matches is reported in ``error``.
    """
    path = root / update.file
    if not path.exists():
        return VersionFileResult(file=update.file, error=f"File not found: {update.file}")

    try:
        pattern = re.compile(update.pattern, re.MULTILINE)
    except re.error as exc:
        return VersionFileResult(
            file=update.file, error=f"Invalid pattern {update.pattern!r}: {exc}"
        )

    content = path.read_text()
    replacement = apply_version_template(update.replace, VersionParts.from_version(version))
    new_content, matches = pattern.subn(replacement, content)
    if matches == 0:
        return VersionFileResult(
            file=update.file, error=f"Pattern {update.pattern!r} not found in {update.file}"
        )

    changed = new_content != content
    if dry_run:
        log(f"[dry-run] Would update {matches} match(es) in {update.file}")
    elif changed:
        path.write_text(new_content)
        log(f"Updated {matches} match(es) in {update.file}")
    return VersionFileResult(file=update.file, updated=changed, matches=matches)


def update_version_files(
    updates: Iterable[VersionFileUpdate],
    version: str,
    root: Path,
    dry_run: bool = False,
    log: Callable[[str], None] = info,
) -> list[VersionFileResult]:
    """Apply each update in turn."""
    return [update_version_file(u, version, root, dry_run, log) for u in updates]


def updated_files(results: Iterable[VersionFileResult]) -> list[str]:
    """Return the files that changed and should be staged."""
    return [r.file for r in results if r.updated]
