"""CLI entry point for polyrelease."""

from __future__ import annotations

import json
import posixpath
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from pydantic import ValidationError

from .cleanup import run_cleanup
from .config import ReleaseConfig, load_or_default, ordered_packages
from .ecosystems import (
    POST_WRITE_HOOK,
    PUBLISH,
    context_for,
    create_default_registry,
    supports,
)
from .errors import EXTERNAL_ERRORS, ReleaseError
from .github import GitHubReleaseHost, GitTagStore, list_releases
from .labels import resolve_bump_from_prs
from .models import PullRequest
from .shell import info, step, warn
from .version_files import update_version_files, updated_files
from .versions import next_version, require_version


@contextmanager
def _release_errors() -> Iterator[None]:
    """Report polyrelease errors as click errors (exit code 1)."""
    try:
        yield
    except ReleaseError as exc:
        raise click.ClickException(str(exc)) from exc


def _config(ctx: click.Context) -> ReleaseConfig:
    with _release_errors():
        return load_or_default(ctx.obj["config_path"], Path.cwd())


def _read_prs(path: Path) -> list[PullRequest]:
    try:
        data = json.loads(path.read_text())
        return [PullRequest.model_validate(item) for item in data]
    except (json.JSONDecodeError, TypeError, ValidationError) as exc:
        raise click.ClickException(f"Cannot read pull requests from {path}: {exc}") from exc


def _write_github_output(path: Path, outputs: dict[str, str]) -> None:
    with path.open("a") as f:
        for key, value in outputs.items():
            f.write(f"{key}={value}\n")


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: release.toml, or [tool.polyrelease] in pyproject.toml).",
)
@click.version_option(package_name="polyrelease")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Label-driven versioning and release cleanup for polyglot repositories."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option(
    "--prs",
    "prs_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON list of merged PRs, as from `gh pr list --json number,mergedAt,labels`.",
)
@click.option("--current", help="Current version (default: the first package's).")
@click.option("--dev", is_flag=True, help="Mint a dev prerelease when no channel label is set.")
@click.option(
    "--github-output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Append skip/bump/prerelease/version outputs to this file.",
)
@click.pass_context
def plan(
    ctx: click.Context,
    prs_path: Path,
    current: str | None,
    dev: bool,
    github_output: Path | None,
) -> None:
    """Decide the next version from merged pull request labels."""
    config = _config(ctx)
    prs = _read_prs(prs_path)

    with _release_errors():
        if current is None:
            packages = ordered_packages(config)
            if not packages:
                raise click.ClickException("No packages configured; pass --current.")
            package = packages[0]
            ecosystem = create_default_registry().get(package.ecosystem)
            current = ecosystem.read_version(context_for(package, Path.cwd()))

        decision = resolve_bump_from_prs(prs, config.labels)
        version = next_version(
            current,
            decision,
            default_bump=config.version.default_bump,
            dev=dev or config.version.dev_release,
            dev_suffix=config.version.dev_suffix,
        )

    if version is None:
        click.echo(f"Skipping release: every PR is labelled {config.labels.skip}")
    else:
        click.echo(f"Current version: {current}")
        click.echo(f"Bump: {decision.bump_type or config.version.default_bump}")
        if decision.prerelease:
            click.echo(f"Prerelease: {decision.prerelease}")
        click.echo(f"Next version: {version}")

    if github_output:
        _write_github_output(
            github_output,
            {
                "skip": str(decision.skip).lower(),
                "bump": "" if decision.skip else decision.bump_type or config.version.default_bump,
                "prerelease": decision.prerelease or "",
                "version": version or "",
            },
        )


@cli.command()
@click.argument("version")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing.")
@click.pass_context
def bump(ctx: click.Context, version: str, dry_run: bool) -> None:
    """Write VERSION into every package and version-reference file."""
    config = _config(ctx)
    root = Path.cwd()
    registry = create_default_registry()
    files: list[str] = []

    with _release_errors():
        require_version(version)
        version = version.removeprefix("v")
        for package in ordered_packages(config):
            step(f"{package.name} ({package.ecosystem})")
            ecosystem = registry.get(package.ecosystem)
            eco_ctx = context_for(package, root, dry_run=dry_run, version=version)
            ecosystem.write_version(eco_ctx, version)
            if supports(ecosystem, POST_WRITE_HOOK):
                ecosystem.post_write_hook(eco_ctx)
            for name in ecosystem.get_version_files(eco_ctx):
                files.append(posixpath.normpath(f"{Path(package.path).as_posix()}/{name}"))

    if config.version_files:
        step("Version references")
        results = update_version_files(config.version_files, version, root, dry_run)
        for result in results:
            if result.error:
                warn(result.error)
        files.extend(updated_files(results))

    step("Files to stage")
    for name in dict.fromkeys(files):
        click.echo(name)
    message = config.git.commit_message.replace("{version}", version)
    click.echo(f"Commit message: {message}")


@cli.command()
@click.argument("version")
@click.option("--dry-run", is_flag=True, help="Show what would be published.")
@click.pass_context
def publish(ctx: click.Context, version: str, dry_run: bool) -> None:
    """Publish VERSION of every publishable package, in release order."""
    config = _config(ctx)
    if not config.publish.enabled:
        info("Publishing is disabled")
        return

    root = Path.cwd()
    registry = create_default_registry()
    with _release_errors():
        require_version(version)
        version = version.removeprefix("v")
        targets = []
        for package in ordered_packages(config):
            ecosystem = registry.get(package.ecosystem)
            if package.publish and supports(ecosystem, PUBLISH):
                targets.append((package, ecosystem))

    failed: list[str] = []
    delay = config.publish.delay_between_packages
    for index, (package, ecosystem) in enumerate(targets):
        step(f"Publishing {package.name} {version}")
        eco_ctx = context_for(
            package, root, dry_run=dry_run, registry=config.registry, version=version
        )
        try:
            ecosystem.publish(eco_ctx)
        except EXTERNAL_ERRORS as exc:
            warn(f"Failed to publish {package.name}: {exc}")
            failed.append(package.name)
            continue
        if not dry_run and delay and index < len(targets) - 1:
            info(f"Waiting {delay}s before the next package")
            time.sleep(delay)

    if failed:
        raise click.ClickException(f"Failed to publish: {', '.join(failed)}")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would be deleted.")
@click.pass_context
def cleanup(ctx: click.Context, dry_run: bool) -> None:
    """Delete old releases, tags and packages per the cleanup policy."""
    config = _config(ctx)
    if not config.cleanup.enabled:
        info("Cleanup is disabled")
        return

    root = Path.cwd()
    registry = create_default_registry()
    tag_store = GitTagStore(root)
    with _release_errors():
        packages = []
        for package in ordered_packages(config):
            eco_ctx = context_for(package, root, dry_run=dry_run, registry=config.registry)
            packages.append((registry.get(package.ecosystem), eco_ctx))

    try:
        releases = list_releases()
        tags = tag_store.list_tags()
    except EXTERNAL_ERRORS as exc:
        raise click.ClickException(f"Cannot list releases and tags: {exc}") from exc

    step("Cleanup")
    result = run_cleanup(
        config.cleanup,
        releases=releases,
        tags=tags,
        release_host=GitHubReleaseHost(),
        tag_store=tag_store,
        packages=packages,
        tag_prefix=config.git.tag_prefix,
        dry_run=dry_run,
    )
    if result.warnings:
        click.echo(f"{len(result.warnings)} warning(s) during cleanup")
