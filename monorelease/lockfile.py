"""Lockfile handling for npm, pnpm and yarn.

Each package manager is described by one table entry carrying its lockfile
name and the command that refreshes the lockfile without running install
scripts.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import NamedTuple

from .models import Context
from .shell import run


class PackageManager(str, Enum):
    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"


class PackageManagerConfig(NamedTuple):
    lockfile: str
    update_lockfile_command: tuple[str, ...]


PACKAGE_MANAGERS: dict[PackageManager, PackageManagerConfig] = {
    PackageManager.NPM: PackageManagerConfig(
        lockfile="package-lock.json",
        update_lockfile_command=(
            "npm",
            "install",
            "--package-lock-only",
            "--ignore-scripts",
            "--no-audit",
        ),
    ),
    PackageManager.PNPM: PackageManagerConfig(
        lockfile="pnpm-lock.yaml",
        update_lockfile_command=("pnpm", "install", "--lockfile-only", "--ignore-scripts"),
    ),
    PackageManager.YARN: PackageManagerConfig(
        lockfile="yarn.lock",
        update_lockfile_command=("yarn", "install"),
    ),
}


def detect_package_manager(location: Path) -> PackageManager:
    """Return the first package manager whose lockfile exists, npm otherwise."""
    for manager, config in PACKAGE_MANAGERS.items():
        if (location / config.lockfile).exists():
            return manager
    return PackageManager.NPM


def update_lockfile_command(manager: PackageManager, npmrc: Path) -> list[str]:
    """Build the lockfile refresh command; npm also gets the session npmrc."""
    command = list(PACKAGE_MANAGERS[manager].update_lockfile_command)
    if manager is PackageManager.NPM:
        command.extend(["--userconfig", str(npmrc)])
    return command


def update_lockfile(location: Path, npmrc: Path, context: Context) -> bool:
    """Refresh the lockfile in ``location``.

    No-op if the detected package manager's lockfile does not exist.

    Returns:
        True if the lockfile was updated.
    """
    manager = detect_package_manager(location)
    lockfile = PACKAGE_MANAGERS[manager].lockfile
    if not (location / lockfile).exists():
        return False

    context.logger.log("Update %s file in %s", lockfile, location)
    run(
        *update_lockfile_command(manager, npmrc),
        cwd=location,
        env=context.env,
        stdout=context.stdout,
        stderr=context.stderr,
    )
    return True
