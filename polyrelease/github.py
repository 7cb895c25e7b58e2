"""GitHub releases and git tags, via the gh and git CLIs.

These are the collaborators the cleanup engine deletes through. gh fills
the ``{owner}`` and ``{repo}`` placeholders from the current repository.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

from .models import ReleaseRecord
from .shell import gh, git

RELEASES_ENDPOINT = "repos/{owner}/{repo}/releases"

# Drafts have no publish date and are never cleanup candidates.
RELEASE_FIELDS = (
    ".[] | select(.published_at != null) | "
    "{id: .id, tagName: .tag_name, publishedAt: .published_at, isPrerelease: .prerelease}"
)


def list_releases() -> list[ReleaseRecord]:
    """Return every published release of the current repository."""
    output = gh("api", "--paginate", RELEASES_ENDPOINT, "--jq", RELEASE_FIELDS)
    return [ReleaseRecord.model_validate(json.loads(line)) for line in output.splitlines()]


class GitHubReleaseHost:
    def delete_release(self, release_id: int) -> None:
        gh("api", "-X", "DELETE", f"{RELEASES_ENDPOINT}/{release_id}")


class GitTagStore:
    """Tags in a local clone and its remote."""

    def __init__(self, cwd: Path | None = None, remote: str = "origin") -> None:
        self.cwd = cwd
        self.remote = remote

    def list_tags(self) -> list[str]:
        output = git("tag", "--list", cwd=self.cwd)
        return [line for line in output.splitlines() if line]

    def delete_tag(self, name: str) -> None:
        """Delete a tag from the remote, then locally.

        The local tag is removed even when the push fails, but the push
        error is still raised afterwards since the tag survives on the
        remote. A tag that only exists on the remote is not an error.
        """
        remote_error: subprocess.CalledProcessError | None = None
        try:
            git("push", self.remote, "--delete", name, cwd=self.cwd)
        except subprocess.CalledProcessError as exc:
            remote_error = exc
        try:
            git("tag", "-d", name, cwd=self.cwd)
        except subprocess.CalledProcessError:
            if remote_error is not None:
                raise remote_error from None
        if remote_error is not None:
            raise remote_error
