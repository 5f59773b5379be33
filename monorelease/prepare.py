"""Prepare step: bump versions and dependency ranges for the next release.

1. Detect which packages changed since the last release tag
2. Write the next version into each changed package.json, rewriting
   ranges that point at other changed packages
3. Write the next version into lerna.json
4. Write the next version into the root package.json and refresh its
   lockfile (unless ``rootVersion`` is false)

Manifests are written one after another. A failing step aborts the run and
leaves already-written files in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from .changes import get_changed_packages
from .deps import rewrite_dependencies
from .lockfile import update_lockfile
from .manifest import read_package, write_package
from .models import Context, Package, PluginConfig, VersionBump
from .project import Project


def update_lerna_json(base_path: Path, context: Context) -> None:
    """Write the next version to lerna.json, if the project has one."""
    version = context.next_release.version
    project = Project(base_path, context.logger)
    if not project.lerna_config_location.exists():
        return
    context.logger.log("Write version %s to lerna.json in %s", version, base_path)
    project.version = version
    project.serialize_config()


def update_package(
    pkg: Package,
    context: Context,
    current_versions: Mapping[str, str] | None = None,
) -> VersionBump:
    """Set the next version on ``pkg`` and rewrite its internal ranges.

    Args:
        pkg: Package to update (modified in place and written to disk).
        context: Release context; ``next_release.version`` is written.
        current_versions: Name → pre-bump version of every released package.
    """
    version = context.next_release.version
    context.logger.log("Write version %s to package.json in %s", version, pkg.location)

    bump = VersionBump(name=pkg.name, old=pkg.version, new=version)
    pkg.version = version
    rewrite_dependencies(pkg, version, current_versions or {})
    write_package(pkg)
    return bump


def prepare_packages(npmrc: Path, config: PluginConfig, context: Context) -> list[VersionBump]:
    """Run the prepare step.

    Returns:
        One VersionBump per package.json written, root last.
    """
    logger = context.logger
    cwd = context.cwd.resolve()
    base_path = (cwd / config.pkg_root).resolve() if config.pkg_root else cwd
    root_pkg = read_package(base_path)

    changed = get_changed_packages(
        config.latch,
        cwd=cwd,
        logger=logger,
        version=context.next_release.version,
        ignore_changes=config.ignore_changes,
    )
    if not changed:
        logger.log("No packages changed, applying version bump on root package only")
        update_lerna_json(base_path, context)
        return [update_package(root_pkg, context)]

    logger.log(
        "%d package%s need version bump: %s",
        len(changed),
        "s" if len(changed) > 1 else "",
        [pkg.name for pkg in changed],
    )

    current_versions = {
        pkg.name: pkg.version for pkg in changed if pkg.version is not None
    }

    bumps = [update_package(pkg, context, current_versions) for pkg in changed]

    update_lerna_json(base_path, context)

    if config.root_version:
        bumps.append(update_package(root_pkg, context, current_versions))
        update_lockfile(root_pkg.location, npmrc, context)
    else:
        logger.log("Don't write version to root package.json")

    for bump in bumps:
        logger.log("%s: %s → %s", bump.name, bump.old, bump.new)
    return bumps
