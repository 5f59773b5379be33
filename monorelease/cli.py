"""CLI entry point for monorelease."""

from __future__ import annotations

import functools
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn

import click

from .config import read_plugin_options
from .errors import AggregateReleaseError, ReleaseError
from .models import Commit, Context, Release, RepositoryOptions
from .plugin import ReleaseSession
from .shell import ConsoleLogger, git, step


def _context_options(func: Callable[..., Any]) -> Callable[..., Any]:
    @click.option(
        "--cwd",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=".",
        show_default=True,
        help="Repository root.",
    )
    @click.option("--next-version", help="Version being released, e.g. 1.2.0.")
    @click.option("--channel", help="Release channel, mapped to the npm dist-tag.")
    @click.option("--last-tag", help="Tag of the previous release.")
    @click.option("--repository-url", default="", help="Repository URL for release notes.")
    @click.option(
        "--config",
        "config_file",
        help="TOML options file (default: .releaserc.toml when present).",
    )
    @functools.wraps(func)
    def wrapper(**kwargs: Any) -> Any:
        return func(**kwargs)

    return wrapper


def build_context(
    cwd: Path,
    next_version: str | None,
    channel: str | None,
    last_tag: str | None,
    repository_url: str,
) -> Context:
    """Build a release context for the current process."""
    return Context(
        cwd=cwd.resolve(),
        env=dict(os.environ),
        logger=ConsoleLogger(),
        last_release=Release(git_tag=last_tag),
        next_release=Release(version=next_version, channel=channel),
        options=RepositoryOptions(repository_url=repository_url),
    )


def _raise_for(exc: ReleaseError) -> NoReturn:
    errors = exc.errors if isinstance(exc, AggregateReleaseError) else [exc]
    lines = []
    for error in errors:
        lines.append(str(error))
        if error.details:
            lines.append(error.details)
    raise click.ClickException("\n".join(lines)) from exc


def _require_version(next_version: str | None) -> str:
    if not next_version:
        raise click.ClickException("--next-version is required for this command.")
    return next_version


@click.group()
@click.version_option()
def cli() -> None:
    """Release changed npm packages of a monorepo, with their dependents."""


@cli.command()
@_context_options
def verify(cwd, next_version, channel, last_tag, repository_url, config_file) -> None:
    """Check options, the git working copy and npm credentials."""
    context = build_context(cwd, next_version, channel, last_tag, repository_url)
    try:
        options = read_plugin_options(context.cwd, config_file)
        step("Verifying release conditions")
        ReleaseSession().verify_conditions(options, context)
    except ReleaseError as exc:
        _raise_for(exc)
    click.echo("✓ Release conditions verified")


@cli.command()
@_context_options
def prepare(cwd, next_version, channel, last_tag, repository_url, config_file) -> None:
    """Bump versions of changed packages and their dependents."""
    next_version = _require_version(next_version)
    context = build_context(cwd, next_version, channel, last_tag, repository_url)
    try:
        options = read_plugin_options(context.cwd, config_file)
        session = ReleaseSession()
        step("Verifying release conditions")
        session.verify_conditions(options, context)
        step(f"Preparing release {next_version}")
        bumps = session.prepare(options, context)
    except ReleaseError as exc:
        _raise_for(exc)
    click.echo(f"✓ Bumped {len(bumps)} package.json file(s)")


@cli.command()
@_context_options
def publish(cwd, next_version, channel, last_tag, repository_url, config_file) -> None:
    """Publish every package version not yet on the registry."""
    next_version = _require_version(next_version)
    context = build_context(cwd, next_version, channel, last_tag, repository_url)
    try:
        options = read_plugin_options(context.cwd, config_file)
        step(f"Publishing release {next_version}")
        info = ReleaseSession().publish(options, context)
    except ReleaseError as exc:
        _raise_for(exc)
    if info is None:
        click.echo("Nothing published")
    else:
        click.echo(f"✓ Published to {info.name}" + (f": {info.url}" if info.url else ""))


@cli.command()
@_context_options
def notes(cwd, next_version, channel, last_tag, repository_url, config_file) -> None:
    """Print release notes for the commits since --last-tag."""
    context = build_context(cwd, next_version, channel, last_tag, repository_url)
    context.commits = _commits_since(last_tag, context.cwd)
    try:
        options = read_plugin_options(context.cwd, config_file)
        text = ReleaseSession().generate_notes(options, context)
    except ReleaseError as exc:
        _raise_for(exc)
    click.echo(text, nl=False)


def _commits_since(last_tag: str | None, cwd: Path) -> list[Commit]:
    rev_range = f"{last_tag}..HEAD" if last_tag else "HEAD"
    out = git("log", "--format=%H%x1f%B%x1e", rev_range, cwd=cwd)
    commits = []
    for record in out.split("\x1e"):
        record = record.strip()
        if not record:
            continue
        sha, _, message = record.partition("\x1f")
        commits.append(Commit(hash=sha.strip(), message=message.strip()))
    return commits
