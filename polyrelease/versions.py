"""Version parsing, bumping and prerelease utilities.

Thin layer over the ``semver`` package. Versions may carry a leading ``v``
(as tags do); everything else must be a full ``major.minor.patch`` semver
string. Bumps always start from the stripped core version, so bumping a
prerelease yields a clean stable successor.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

import semver

from .errors import InvalidVersionError
from .models import BUMP_PRIORITY, BumpDecision, BumpType

# Fixed width so prerelease tokens sort in creation order as strings and
# as semver numeric identifiers.
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def parse_version(text: str) -> semver.Version | None:
    """Parse a version string into a semver.Version object.

    Accepts an optional leading ``v``. Returns None instead of raising when
    the string is not valid semver, including when it has fewer than three
    numeric components:
    - "1.2.3" → Version(1, 2, 3)
    - "v1.2.3-rc.1" → Version(1, 2, 3, prerelease="rc.1")
    - "1.2" → None
    """
    if not isinstance(text, str):
        return None
    candidate = text.strip()
    if candidate.startswith("v"):
        candidate = candidate[1:]
    try:
        return semver.Version.parse(candidate)
    except ValueError:
        return None


def require_version(text: str) -> semver.Version:
    """Parse a version string, raising InvalidVersionError if it is invalid."""
    version = parse_version(text)
    if version is None:
        raise InvalidVersionError(text)
    return version


def _core(version: semver.Version) -> semver.Version:
    return semver.Version(version.major, version.minor, version.patch)


def bump_version(version: str, bump_type: BumpType) -> str:
    """Bump a version and return the new version string (no ``v`` prefix).

    Prerelease and build metadata are discarded before bumping.

    Examples:
        bump_version("1.2.3", "major") → "2.0.0"
        bump_version("1.2.3", "minor") → "1.3.0"
        bump_version("1.2.3-dev.20260101000000", "patch") → "1.2.4"

    Raises:
        InvalidVersionError: If the version cannot be parsed.
    """
    core = _core(require_version(version))
    if bump_type == "major":
        return str(core.bump_major())
    if bump_type == "minor":
        return str(core.bump_minor())
    if bump_type == "patch":
        return str(core.bump_patch())
    raise ValueError(f"Unknown bump type: {bump_type!r}")


def prerelease_token(now: datetime | None = None) -> str:
    """Return the UTC timestamp token used in prerelease identifiers."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def create_prerelease(
    version: str, channel: str = "dev", now: datetime | None = None
) -> str:
    """Create a prerelease version on the given channel.

    Any existing prerelease or build metadata is dropped, then
    ``-{channel}.{YYYYMMDDHHMMSS}`` is appended.

    Examples:
        create_prerelease("1.2.3") → "1.2.3-dev.20260131153000"
        create_prerelease("v1.2.3-rc.1", "beta") → "1.2.3-beta.20260131153000"
    """
    core = _core(require_version(version))
    return f"{core}-{channel}.{prerelease_token(now)}"


def compare_versions(a: str, b: str) -> int:
    """Compare two versions by semver precedence.

    Returns 1 if a > b, -1 if a < b, 0 if equal. A stable version is
    greater than any prerelease of the same core version.
    """
    return require_version(a).compare(require_version(b))


def is_prerelease(version: str) -> bool:
    """Check if a version has a prerelease component.

    Build metadata alone ("1.2.3+build.5") does not count. Invalid
    versions are not prereleases.
    """
    parsed = parse_version(version)
    return parsed is not None and parsed.prerelease is not None


def highest_bump(
    bumps: Iterable[BumpType], default: BumpType | None = "patch"
) -> BumpType | None:
    """Return the highest priority bump type (major > minor > patch).

    ``default`` is returned when ``bumps`` is empty; pass ``None`` to
    tell "no bump requested" apart from a patch.
    """
    present = set(bumps)
    for bump in BUMP_PRIORITY:
        if bump in present:
            return bump
    return default


def next_version(
    current: str,
    decision: BumpDecision,
    *,
    default_bump: BumpType = "patch",
    dev: bool = False,
    dev_suffix: str = "dev",
    now: datetime | None = None,
) -> str | None:
    """Compute the version to release from the current one.

    Returns None when the decision is to skip. Otherwise bumps by the
    decided type (or ``default_bump``), then appends a prerelease
    identifier for the decided channel, or for ``dev_suffix`` when this is
    a dev run and no channel label was present.

    Example:
        next_version("1.4.2", BumpDecision(bump_type="minor")) → "1.5.0"
    """
    if decision.skip:
        return None
    bumped = bump_version(current, decision.bump_type or default_bump)
    channel = decision.prerelease or (dev_suffix if dev else None)
    if channel:
        return create_prerelease(bumped, channel, now=now)
    return bumped
