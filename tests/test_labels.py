"""Tests for polyrelease.labels."""

from __future__ import annotations

from polyrelease.config import LabelConfig
from polyrelease.labels import extract_release_labels, resolve_bump, resolve_bump_from_prs
from polyrelease.models import BumpDecision, PullRequest

LABELS = LabelConfig()


def _pr(number: int, *labels: str) -> PullRequest:
    return PullRequest(number=number, labels=list(labels))


class TestExtractReleaseLabels:
    def test_unions_matching_labels(self) -> None:
        prs = [_pr(1, "release:minor", "docs"), _pr(2, "release:beta")]
        assert extract_release_labels(prs, LABELS) == {"release:minor", "release:beta"}

    def test_ignores_unknown_and_case_mismatch(self) -> None:
        prs = [_pr(1, "Release:Major", "bug")]
        assert extract_release_labels(prs, LABELS) == set()

    def test_skip_requires_every_pr(self) -> None:
        prs = [_pr(1, "release:skip", "release:minor"), _pr(2, "release:patch")]
        assert extract_release_labels(prs, LABELS) == {"release:minor", "release:patch"}

    def test_skip_kept_when_unanimous(self) -> None:
        prs = [_pr(1, "release:skip"), _pr(2, "release:skip", "chore")]
        assert extract_release_labels(prs, LABELS) == {"release:skip"}

    def test_empty_batch(self) -> None:
        assert extract_release_labels([], LABELS) == set()

    def test_custom_label_names(self) -> None:
        config = LabelConfig(minor="feature", skip="no-release")
        prs = [_pr(1, "feature"), _pr(2, "release:minor")]
        assert extract_release_labels(prs, config) == {"feature"}


class TestResolveBump:
    def test_highest_bump_wins(self) -> None:
        labels = {"release:patch", "release:minor", "release:major"}
        assert resolve_bump(labels, LABELS).bump_type == "major"

    def test_highest_channel_wins(self) -> None:
        decision = resolve_bump({"release:rc", "release:alpha"}, LABELS)
        assert decision.prerelease == "rc"
        assert decision.bump_type is None

    def test_bump_and_channel_are_independent(self) -> None:
        decision = resolve_bump({"release:minor", "release:beta"}, LABELS)
        assert decision == BumpDecision(bump_type="minor", prerelease="beta")

    def test_skip_wins(self) -> None:
        decision = resolve_bump({"release:skip", "release:major", "release:rc"}, LABELS)
        assert decision == BumpDecision(skip=True)

    def test_no_labels(self) -> None:
        assert resolve_bump(set(), LABELS) == BumpDecision()


class TestResolveBumpFromPrs:
    def test_mixed_skip_is_not_skipped(self) -> None:
        prs = [_pr(1, "release:skip", "release:minor"), _pr(2, "release:patch")]
        decision = resolve_bump_from_prs(prs, LABELS)
        assert not decision.skip
        assert decision.bump_type == "minor"

    def test_gh_label_objects(self) -> None:
        pr = PullRequest.model_validate(
            {"number": 7, "mergedAt": "2026-01-31T15:30:00Z", "labels": [{"name": "release:rc"}]}
        )
        assert resolve_bump_from_prs([pr], LABELS).prerelease == "rc"
