"""Lifecycle hooks called by the release orchestrator.

A :class:`ReleaseSession` is created once per run and threaded through the
hooks in order: ``verify_conditions`` → ``prepare`` → ``publish`` (and
``generate_notes`` when release notes are wanted). It remembers whether the
conditions were verified and owns the temporary npmrc that carries registry
credentials between hooks.
"""

from __future__ import annotations

import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .auth import verify_auth
from .errors import AggregateReleaseError, ReleaseError
from .manifest import get_pkg
from .models import Context, PluginConfig, ReleaseInfo, VersionBump
from .notes import ChangelogWriter
from .notes import generate_notes as write_notes
from .prepare import prepare_packages
from .publish import publish_packages
from .verify import parse_config, verify_config, verify_git


def _collect(errors: list[ReleaseError], exc: ReleaseError) -> None:
    if isinstance(exc, AggregateReleaseError):
        errors.extend(exc.errors)
    else:
        errors.append(exc)


class ReleaseSession:
    """State shared by the lifecycle hooks of one release run."""

    def __init__(self) -> None:
        self.verified = False
        self._npmrc: Path | None = None

    @property
    def npmrc(self) -> Path:
        """Temporary npmrc path, created on first use."""
        if self._npmrc is None:
            self._npmrc = Path(tempfile.mkdtemp(prefix="monorelease-")) / ".npmrc"
        return self._npmrc

    def verify_conditions(self, plugin_config: Mapping[str, Any], context: Context) -> None:
        """Validate options, the git working copy and registry credentials.

        Raises:
            AggregateReleaseError: Listing every problem found.
        """
        config_errors = verify_config(plugin_config)
        errors: list[ReleaseError] = [*config_errors, *verify_git(context)]

        # Auth needs valid options only; git problems are reported alongside.
        if not config_errors:
            config = parse_config(plugin_config)
            if config.npm_verify_auth:
                try:
                    pkg = get_pkg(config, context.cwd)
                    verify_auth(self.npmrc, pkg, context)
                except ReleaseError as exc:
                    _collect(errors, exc)

        if errors:
            raise AggregateReleaseError(errors)

        self.verified = True

    def prepare(self, plugin_config: Mapping[str, Any], context: Context) -> list[VersionBump]:
        """Bump versions of the changed packages, their dependents and the root."""
        errors: list[ReleaseError] = [] if self.verified else list(verify_config(plugin_config))
        if errors:
            raise AggregateReleaseError(errors)

        config = parse_config(plugin_config)
        if config.npm_verify_auth:
            try:
                pkg = get_pkg(config, context.cwd)
                verify_auth(self.npmrc, pkg, context)
            except ReleaseError as exc:
                _collect(errors, exc)
        if errors:
            raise AggregateReleaseError(errors)

        return prepare_packages(self.npmrc, config, context)

    def publish(self, plugin_config: Mapping[str, Any], context: Context) -> ReleaseInfo | None:
        """Publish the released packages unless ``npmPublish`` is false."""
        config = parse_config(plugin_config)
        pkg = get_pkg(config, context.cwd)

        if not self.verified and config.npm_publish is not False and not pkg.private:
            try:
                verify_auth(self.npmrc, pkg, context)
            except ReleaseError as exc:
                raise AggregateReleaseError([exc]) from exc
            self.verified = True

        return publish_packages(self.npmrc, config, pkg, context)

    def generate_notes(
        self,
        plugin_config: Mapping[str, Any],
        context: Context,
        writer: ChangelogWriter | None = None,
    ) -> str:
        """Release notes for ``context.commits``, or "" when disabled."""
        config = parse_config(plugin_config)
        return write_notes(config, context, writer)
