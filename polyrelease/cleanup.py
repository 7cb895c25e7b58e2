"""Retention and cleanup of old releases, tags and published packages.

Every version is classified into a release type (dev, alpha, beta, rc,
stable) from its prerelease marker. For each type the configured policy
says which artifacts to prune and how many of the newest to keep. All
deletions are best effort: a failure is recorded as a warning and the run
carries on.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Protocol, TypeVar

from .config import CleanupConfig, CleanupPolicy
from .ecosystems.base import UNPUBLISH, Ecosystem, EcosystemContext, supports
from .errors import EXTERNAL_ERRORS
from .models import RELEASE_TYPES, CleanupResult, ReleaseRecord, ReleaseType
from .shell import info, warn

T = TypeVar("T")

# Checked in this order; the first marker found decides the type.
PRERELEASE_MARKERS: tuple[tuple[str, ReleaseType], ...] = (
    ("-dev", "dev"),
    ("-alpha", "alpha"),
    ("-beta", "beta"),
    ("-rc", "rc"),
)


class ReleaseHost(Protocol):
    def delete_release(self, release_id: int) -> None: ...


class TagStore(Protocol):
    def delete_tag(self, name: str) -> None: ...


def strip_prefix(tag: str, tag_prefix: str) -> str:
    """Remove the tag prefix, if present ("v1.2.3" → "1.2.3")."""
    if tag_prefix and tag.startswith(tag_prefix):
        return tag[len(tag_prefix):]
    return tag


def classify(version_or_tag: str, tag_prefix: str = "") -> ReleaseType:
    """Determine the release type of a version or tag.

    Examples:
        classify("1.2.3-rc.1") → "rc"
        classify("v1.2.3-dev.20260101000000", "v") → "dev"
        classify("v1.2.3", "v") → "stable"
    """
    version = strip_prefix(version_or_tag, tag_prefix)
    for marker, release_type in PRERELEASE_MARKERS:
        if marker in version:
            return release_type
    return "stable"


def select_for_cleanup(items: Sequence[T], keep: int) -> list[T]:
    """Return the items beyond the newest ``keep``.

    ``items`` must already be sorted newest first. ``keep = 0`` means keep
    everything, so nothing is selected.
    """
    if keep <= 0 or len(items) <= keep:
        return []
    return list(items[keep:])


def releases_to_cleanup(
    releases: Iterable[ReleaseRecord],
    release_type: ReleaseType,
    tag_prefix: str,
    keep: int,
) -> list[ReleaseRecord]:
    """Select releases of one type to delete, newest ``keep`` by publish date retained."""
    matching = [r for r in releases if classify(r.tag_name, tag_prefix) == release_type]
    matching.sort(key=lambda r: r.published_at, reverse=True)
    return select_for_cleanup(matching, keep)


def tags_to_cleanup(
    tags: Iterable[str],
    release_type: ReleaseType,
    tag_prefix: str,
    keep: int,
) -> list[str]:
    """Select tags of one type to delete.

    Tags carry no date, so they are ordered by name, descending. For
    prerelease tags the fixed-width timestamp makes that creation order;
    for stable tags it is lexicographic ("v1.10.0" sorts before "v1.9.0").
    """
    matching = sorted(
        (t for t in tags if classify(t, tag_prefix) == release_type), reverse=True
    )
    return select_for_cleanup(matching, keep)


class _Cleaner:
    """Applies cleanup policies, sharing state across release types."""

    def __init__(
        self,
        release_host: ReleaseHost,
        tag_store: TagStore,
        packages: Sequence[tuple[Ecosystem, EcosystemContext]],
        tag_prefix: str,
        dry_run: bool,
        log: Callable[[str], None],
        warn: Callable[[str], None],
    ) -> None:
        self.release_host = release_host
        self.tag_store = tag_store
        self.packages = packages
        self.tag_prefix = tag_prefix
        self.dry_run = dry_run
        self.log = log
        self.warn = warn
        # Ecosystems already warned about missing unpublish support.
        self.warned: set[str] = set()

    def _failed(self, result: CleanupResult, message: str) -> None:
        result.warnings.append(message)
        self.warn(message)

    def clean_type(
        self,
        release_type: ReleaseType,
        policy: CleanupPolicy,
        releases: Sequence[ReleaseRecord],
        tags: Sequence[str],
    ) -> CleanupResult:
        result = CleanupResult()
        if not policy.active:
            return result

        self.log(f"Cleaning up {release_type} releases (keep: {policy.keep})")
        stale = releases_to_cleanup(releases, release_type, self.tag_prefix, policy.keep)

        if policy.releases:
            for release in stale:
                if self.dry_run:
                    self.log(f"[dry-run] Would delete release {release.tag_name}")
                    continue
                try:
                    self.release_host.delete_release(release.id)
                except EXTERNAL_ERRORS as exc:
                    self._failed(result, f"Failed to delete release {release.tag_name}: {exc}")
                    continue
                self.log(f"Deleted release {release.tag_name}")
                result.releases_deleted += 1

        if policy.tags:
            for tag in tags_to_cleanup(tags, release_type, self.tag_prefix, policy.keep):
                if self.dry_run:
                    self.log(f"[dry-run] Would delete tag {tag}")
                    continue
                try:
                    self.tag_store.delete_tag(tag)
                except EXTERNAL_ERRORS as exc:
                    self._failed(result, f"Failed to delete tag {tag}: {exc}")
                    continue
                self.log(f"Deleted tag {tag}")
                result.tags_deleted += 1

        if policy.published and stale:
            versions = [strip_prefix(r.tag_name, self.tag_prefix) for r in stale]
            for ecosystem, ctx in self.packages:
                self._unpublish(ecosystem, ctx, versions, result)

        return result

    def _unpublish(
        self,
        ecosystem: Ecosystem,
        ctx: EcosystemContext,
        versions: list[str],
        result: CleanupResult,
    ) -> None:
        if not supports(ecosystem, UNPUBLISH):
            if ecosystem.name not in self.warned:
                self.warned.add(ecosystem.name)
                self._failed(result, ecosystem.unpublish_unsupported_reason)
            return

        for version in versions:
            if self.dry_run:
                self.log(f"[dry-run] Would unpublish {version} ({ecosystem.name}, {ctx.path})")
                continue
            try:
                unpublished = ecosystem.unpublish(ctx, version)
            except EXTERNAL_ERRORS as exc:
                self._failed(result, f"Failed to unpublish {version} ({ecosystem.name}): {exc}")
                continue
            if unpublished:
                result.packages_unpublished += 1
            else:
                self._failed(result, f"Could not unpublish {version} ({ecosystem.name})")


def run_cleanup(
    config: CleanupConfig,
    *,
    releases: Sequence[ReleaseRecord],
    tags: Sequence[str],
    release_host: ReleaseHost,
    tag_store: TagStore,
    packages: Sequence[tuple[Ecosystem, EcosystemContext]] = (),
    tag_prefix: str = "v",
    dry_run: bool = False,
    log: Callable[[str], None] = info,
    warn: Callable[[str], None] = warn,
) -> CleanupResult:
    """Apply the cleanup policy of every release type.

    Types are processed in the order dev, alpha, beta, rc, stable, each
    independently of the others. In dry-run mode intended deletions are
    logged and nothing is counted.

    Args:
        config: Cleanup section of the release configuration.
        releases: All hosted releases.
        tags: All tag names.
        release_host: Deletes hosted releases by id.
        tag_store: Deletes tags by name.
        packages: Ecosystem and context for each package whose published
                  versions may be unpublished.
        tag_prefix: Prefix stripped from tags before classifying.
        dry_run: Log instead of deleting.
        log: Sink for progress lines.
        warn: Sink for warnings.

    Returns:
        Totals across all types, with every warning raised along the way.
    """
    total = CleanupResult()
    if not config.enabled:
        log("Cleanup is disabled")
        return total

    cleaner = _Cleaner(release_host, tag_store, packages, tag_prefix, dry_run, log, warn)
    for release_type in RELEASE_TYPES:
        total.merge(
            cleaner.clean_type(release_type, config.policy_for(release_type), releases, tags)
        )

    log(
        f"Cleanup complete: {total.releases_deleted} releases, "
        f"{total.tags_deleted} tags, {total.packages_unpublished} packages removed"
    )
    return total
