"""Data models for polyrelease.

These Pydantic models represent the values passed between the label,
version, ecosystem and cleanup layers. All of them are recomputed on every
run from upstream inputs; nothing here is persisted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

BumpType = Literal["major", "minor", "patch"]
PrereleaseChannel = Literal["alpha", "beta", "rc"]
ReleaseType = Literal["dev", "alpha", "beta", "rc", "stable"]

# Highest priority first.
BUMP_PRIORITY: tuple[BumpType, ...] = ("major", "minor", "patch")
CHANNEL_PRIORITY: tuple[PrereleaseChannel, ...] = ("rc", "beta", "alpha")
RELEASE_TYPES: tuple[ReleaseType, ...] = ("dev", "alpha", "beta", "rc", "stable")


class PullRequest(BaseModel):
    """A merged pull request and the labels it carried.

    Accepts both plain label strings and the ``{"name": ...}`` objects that
    ``gh pr list --json labels`` emits.
    """

    model_config = ConfigDict(populate_by_name=True)

    number: int
    merged_at: datetime | None = Field(default=None, alias="mergedAt")
    labels: list[str] = Field(default_factory=list)

    @field_validator("labels", mode="before")
    @classmethod
    def _label_names(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [v["name"] if isinstance(v, dict) else v for v in value]
        return value


class BumpDecision(BaseModel):
    """Outcome of label resolution for one batch of pull requests.

    Attributes:
        bump_type: Highest bump label present, or None (caller applies the
                   configured default).
        skip: True when every PR in the batch carried the skip label.
        prerelease: Highest prerelease channel label present, if any.
    """

    bump_type: BumpType | None = None
    skip: bool = False
    prerelease: PrereleaseChannel | None = None

    @model_validator(mode="after")
    def _skip_is_terminal(self) -> BumpDecision:
        if self.skip and (self.bump_type is not None or self.prerelease is not None):
            raise ValueError("a skip decision carries no bump type or prerelease")
        return self


class ReleaseRecord(BaseModel):
    """A hosted release as listed by the forge."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    tag_name: str = Field(alias="tagName")
    published_at: datetime = Field(alias="publishedAt")
    prerelease: bool = Field(default=False, alias="isPrerelease")


class CleanupResult(BaseModel):
    """Totals and warnings from a cleanup run."""

    tags_deleted: int = 0
    releases_deleted: int = 0
    packages_unpublished: int = 0
    warnings: list[str] = Field(default_factory=list)

    def merge(self, other: CleanupResult) -> None:
        """Add another result's counts and warnings into this one."""
        self.tags_deleted += other.tags_deleted
        self.releases_deleted += other.releases_deleted
        self.packages_unpublished += other.packages_unpublished
        self.warnings.extend(other.warnings)
