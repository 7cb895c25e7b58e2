"""Tests for polyrelease.cleanup."""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from polyrelease.cleanup import (
    classify,
    releases_to_cleanup,
    run_cleanup,
    select_for_cleanup,
    tags_to_cleanup,
)
from polyrelease.config import CleanupConfig, CleanupPolicy
from polyrelease.ecosystems import (
    CargoEcosystem,
    EcosystemContext,
    GoEcosystem,
    NpmEcosystem,
)
from polyrelease.github import GitTagStore
from polyrelease.models import ReleaseRecord

MakeCtx = Callable[..., EcosystemContext]
BASE = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _release(release_id: int, tag: str, days: int = 0) -> ReleaseRecord:
    return ReleaseRecord(id=release_id, tag_name=tag, published_at=BASE + timedelta(days=days))


STABLE = [_release(i, f"v1.0.{i}", days=i) for i in range(5)]


class FakeHost:
    def __init__(self, fail: set[int] | None = None) -> None:
        self.deleted: list[int] = []
        self.fail = fail or set()

    def delete_release(self, release_id: int) -> None:
        if release_id in self.fail:
            raise subprocess.CalledProcessError(1, "gh")
        self.deleted.append(release_id)


class FakeTags:
    def __init__(self) -> None:
        self.deleted: list[str] = []

    def delete_tag(self, name: str) -> None:
        self.deleted.append(name)


def _config(**policies: CleanupPolicy) -> CleanupConfig:
    return CleanupConfig(enabled=True, **policies)


class TestClassify:
    @pytest.mark.parametrize(
        "value,prefix,expected",
        [
            ("1.2.3-rc.1", "v", "rc"),
            ("v1.2.3", "v", "stable"),
            ("v1.2.3-dev.20260101000000", "v", "dev"),
            ("1.2.3-alpha.2", "", "alpha"),
            ("release-1.2.3-beta.1", "release-", "beta"),
            ("1.2.3+build.5", "", "stable"),
        ],
    )
    def test_classify(self, value: str, prefix: str, expected: str) -> None:
        assert classify(value, prefix) == expected

    def test_tag_and_version_agree(self) -> None:
        assert classify("v2.0.0-beta.7", "v") == classify("2.0.0-beta.7")


class TestSelectForCleanup:
    def test_keep_zero_keeps_everything(self) -> None:
        assert select_for_cleanup([3, 2, 1], keep=0) == []

    def test_fewer_than_keep(self) -> None:
        assert select_for_cleanup([3, 2], keep=2) == []

    def test_beyond_keep(self) -> None:
        assert select_for_cleanup([5, 4, 3, 2, 1], keep=2) == [3, 2, 1]


class TestReleasesToCleanup:
    def test_oldest_stable_beyond_keep(self) -> None:
        stale = releases_to_cleanup(STABLE, "stable", "v", keep=2)
        assert [r.tag_name for r in stale] == ["v1.0.2", "v1.0.1", "v1.0.0"]

    def test_filters_by_type(self) -> None:
        releases = [*STABLE, _release(10, "v1.1.0-rc.1", days=10)]
        assert releases_to_cleanup(releases, "rc", "v", keep=1) == []
        assert len(releases_to_cleanup(releases, "stable", "v", keep=1)) == 4

    def test_sorted_by_publish_date_not_input_order(self) -> None:
        shuffled = [STABLE[3], STABLE[0], STABLE[4], STABLE[1], STABLE[2]]
        stale = releases_to_cleanup(shuffled, "stable", "v", keep=3)
        assert [r.id for r in stale] == [1, 0]


class TestTagsToCleanup:
    def test_sorted_by_name_descending(self) -> None:
        tags = [
            "v1.0.0-dev.20260101000000",
            "v1.0.0-dev.20260103000000",
            "v1.0.0",
            "v1.0.0-dev.20260102000000",
        ]
        assert tags_to_cleanup(tags, "dev", "v", keep=1) == [
            "v1.0.0-dev.20260102000000",
            "v1.0.0-dev.20260101000000",
        ]


class TestRunCleanup:
    def test_disabled(self) -> None:
        host, tags = FakeHost(), FakeTags()
        config = CleanupConfig(stable=CleanupPolicy(releases=True, keep=1))
        result = run_cleanup(
            config, releases=STABLE, tags=[], release_host=host, tag_store=tags, log=lambda _: None
        )
        assert result.releases_deleted == 0
        assert host.deleted == []

    def test_stable_releases_keep_two(self) -> None:
        host, tags = FakeHost(), FakeTags()
        result = run_cleanup(
            _config(stable=CleanupPolicy(releases=True, keep=2)),
            releases=STABLE,
            tags=[r.tag_name for r in STABLE],
            release_host=host,
            tag_store=tags,
            log=lambda _: None,
        )
        assert sorted(host.deleted) == [0, 1, 2]
        assert tags.deleted == []
        assert result.releases_deleted == 3
        assert result.warnings == []

    def test_types_are_independent(self) -> None:
        host, tags = FakeHost(), FakeTags()
        dev_tags = [f"v1.0.0-dev.2026010{i}000000" for i in range(1, 5)]
        result = run_cleanup(
            _config(
                dev=CleanupPolicy(tags=True, keep=1),
                stable=CleanupPolicy(tags=True, keep=4),
            ),
            releases=[],
            tags=[*dev_tags, *(r.tag_name for r in STABLE)],
            release_host=host,
            tag_store=tags,
            log=lambda _: None,
        )
        assert tags.deleted == [
            "v1.0.0-dev.20260103000000",
            "v1.0.0-dev.20260102000000",
            "v1.0.0-dev.20260101000000",
            "v1.0.0",
        ]
        assert result.tags_deleted == 4

    def test_failures_become_warnings(self) -> None:
        host, tags = FakeHost(fail={1}), FakeTags()
        warnings: list[str] = []
        result = run_cleanup(
            _config(stable=CleanupPolicy(releases=True, keep=2)),
            releases=STABLE,
            tags=[],
            release_host=host,
            tag_store=tags,
            log=lambda _: None,
            warn=warnings.append,
        )
        assert result.releases_deleted == 2
        assert len(result.warnings) == 1
        assert "v1.0.1" in result.warnings[0]
        assert warnings == result.warnings

    @patch("polyrelease.github.git")
    def test_remote_tag_failure_is_a_warning(self, mock_git: MagicMock) -> None:
        def fake_git(*args: str, **kwargs: object) -> str:
            if args[0] == "push":
                raise subprocess.CalledProcessError(128, "git")
            return ""

        mock_git.side_effect = fake_git
        result = run_cleanup(
            _config(stable=CleanupPolicy(tags=True, keep=4)),
            releases=[],
            tags=[r.tag_name for r in STABLE],
            release_host=FakeHost(),
            tag_store=GitTagStore(),
            log=lambda _: None,
            warn=lambda _: None,
        )
        assert result.tags_deleted == 0
        assert len(result.warnings) == 1
        assert "v1.0.0" in result.warnings[0]

    def test_dry_run_counts_nothing(self) -> None:
        host, tags = FakeHost(), FakeTags()
        lines: list[str] = []
        result = run_cleanup(
            _config(stable=CleanupPolicy(releases=True, tags=True, keep=2)),
            releases=STABLE,
            tags=[r.tag_name for r in STABLE],
            release_host=host,
            tag_store=tags,
            dry_run=True,
            log=lines.append,
        )
        assert host.deleted == [] and tags.deleted == []
        assert result.releases_deleted == result.tags_deleted == 0
        assert sum(line.startswith("[dry-run]") for line in lines) == 6

    def test_unsupported_unpublish_warns_once_per_ecosystem(
        self, tmp_path: Path, make_ctx: MakeCtx
    ) -> None:
        releases = [
            *STABLE,
            *(_release(10 + i, f"v2.0.0-rc.{i}", days=10 + i) for i in range(3)),
        ]
        packages = [
            (CargoEcosystem(), make_ctx(tmp_path / "a")),
            (CargoEcosystem(), make_ctx(tmp_path / "b")),
            (GoEcosystem(), make_ctx(tmp_path / "c")),
        ]
        result = run_cleanup(
            _config(
                rc=CleanupPolicy(published=True, keep=1),
                stable=CleanupPolicy(published=True, keep=1),
            ),
            releases=releases,
            tags=[],
            release_host=FakeHost(),
            tag_store=FakeTags(),
            packages=packages,
            log=lambda _: None,
            warn=lambda _: None,
        )
        assert result.warnings == [
            CargoEcosystem().unpublish_unsupported_reason,
            GoEcosystem().unpublish_unsupported_reason,
        ]
        assert result.packages_unpublished == 0

    def test_unpublishes_stale_versions(self, make_ctx: MakeCtx) -> None:
        npm = NpmEcosystem()
        npm.unpublish = MagicMock(side_effect=[True, False, True])  # type: ignore[method-assign]
        ctx = make_ctx()
        result = run_cleanup(
            _config(stable=CleanupPolicy(published=True, keep=2)),
            releases=STABLE,
            tags=[],
            release_host=FakeHost(),
            tag_store=FakeTags(),
            packages=[(npm, ctx)],
            log=lambda _: None,
            warn=lambda _: None,
        )
        assert [c.args for c in npm.unpublish.call_args_list] == [
            (ctx, "1.0.2"),
            (ctx, "1.0.1"),
            (ctx, "1.0.0"),
        ]
        assert result.packages_unpublished == 2
        assert result.warnings == ["Could not unpublish 1.0.1 (npm)"]
