"""Release label resolution.

Turns the labels on a batch of merged pull requests into one BumpDecision.
Matching is exact and case-sensitive.
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import LabelConfig
from .models import BUMP_PRIORITY, CHANNEL_PRIORITY, BumpDecision, PullRequest
from .versions import highest_bump


def extract_release_labels(prs: Iterable[PullRequest], config: LabelConfig) -> set[str]:
    """Collect the configured release labels present across pull requests.

    Bump and prerelease labels are unioned over all PRs. The skip label is
    only kept when every PR carries it: one unlabelled PR means the batch
    holds a change worth releasing.

    Args:
        prs: Merged pull requests since the last stable release.
        config: Label names for each role.

    Returns:
        Set of matching label strings.
    """
    known = config.role_labels()
    found: set[str] = set()
    all_skip = True
    seen_any = False

    for pr in prs:
        seen_any = True
        labels = set(pr.labels)
        found.update(labels & known)
        if config.skip not in labels:
            all_skip = False

    if not (seen_any and all_skip):
        found.discard(config.skip)
    return found


def resolve_bump(labels: Iterable[str], config: LabelConfig) -> BumpDecision:
    """Determine the bump decision from a set of release labels.

    Skip wins over everything. Otherwise the bump type is the highest of
    major > minor > patch present, and the prerelease channel is the
    highest of rc > beta > alpha present; the two are independent.

    Example:
        resolve_bump({"release:minor", "release:beta"}, LabelConfig())
        → BumpDecision(bump_type="minor", skip=False, prerelease="beta")
    """
    present = set(labels)
    if config.skip in present:
        return BumpDecision(skip=True)

    bump_type = highest_bump(
        (b for b in BUMP_PRIORITY if config.label_for(b) in present), default=None
    )
    prerelease = next(
        (c for c in CHANNEL_PRIORITY if config.label_for(c) in present), None
    )
    return BumpDecision(bump_type=bump_type, prerelease=prerelease)


def resolve_bump_from_prs(prs: Iterable[PullRequest], config: LabelConfig) -> BumpDecision:
    """Extract release labels from pull requests and resolve them."""
    return resolve_bump(extract_release_labels(prs, config), config)
