"""Change detection: which packages changed since the last release.

The last release is found with ``git describe``; each package directory is
then diffed against it. Packages without changes may still be released
when the latch policy bundles everything, or when no release tag exists.
"""

from __future__ import annotations

import os
import posixpath
import re
import subprocess
from collections.abc import Callable, Sequence
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .dependents import collect_packages
from .graph import DependencyGraph, DependencyGraphNode
from .latch import should_latch
from .models import LatchSetting, Package
from .project import Project
from .shell import git

_SHA_RE = re.compile(r"^([\da-f]{7,40})(-dirty)?$")
_DESCRIBE_RE = re.compile(r"^((?:.*@)?(.*))-(\d+)-g([\da-f]+)(-dirty)?$")


class DescribeResult(BaseModel):
    """Parsed ``git describe`` output.

    Attributes:
        last_tag_name: Nearest tag, or None when the repo has no tags.
        last_version: Tag with any ``name@`` prefix removed.
        ref_count: Commits since the tag (or since the first commit).
        sha: Abbreviated HEAD sha.
        is_dirty: True when the working tree has uncommitted changes.
    """

    last_tag_name: str | None = None
    last_version: str | None = None
    ref_count: int = 0
    sha: str | None = None
    is_dirty: bool = False


def has_tags(cwd: Path, logger: Any) -> bool:
    """Return True if any git tag is reachable."""
    try:
        return bool(git("tag", cwd=cwd))
    except subprocess.CalledProcessError as exc:
        logger.warn("No git tags were reachable from this branch!")
        logger.warn("hasTags error: %s", exc.stderr or exc)
        return False


def describe_ref(cwd: Path) -> DescribeResult:
    """Describe HEAD relative to the last tag on the first-parent chain."""
    stdout = git(
        "describe",
        "--tags",
        # Fallback to short sha if no tags located
        "--always",
        # Always return full result, helps identify existing release
        "--long",
        # Annotate if uncommitted changes present
        "--dirty",
        # Prefer tags originating on upstream branch
        "--first-parent",
        cwd=cwd,
    )
    return parse_describe(stdout, cwd)


def parse_describe(stdout: str, cwd: Path) -> DescribeResult:
    """Parse ``git describe --long`` output.

    Examples:
        "v1.2.0-3-gabc1234" → tag "v1.2.0", 3 commits since
        "pkg@1.2.0-0-gabc1234-dirty" → version "1.2.0", dirty
        "abc1234" → no tag; commits counted with ``git rev-list``
    """
    sha_match = _SHA_RE.match(stdout)
    if sha_match:
        sha, dirty = sha_match.groups()
        ref_count = git("rev-list", "--count", sha, cwd=cwd)
        return DescribeResult(ref_count=int(ref_count), sha=sha, is_dirty=bool(dirty))

    match = _DESCRIBE_RE.match(stdout)
    if not match:
        return DescribeResult()
    last_tag_name, last_version, ref_count, sha, dirty = match.groups()
    return DescribeResult(
        last_tag_name=last_tag_name,
        last_version=last_version,
        ref_count=int(ref_count),
        sha=sha,
        is_dirty=bool(dirty),
    )


def diff_since_in(committish: str, location: Path, cwd: Path) -> str:
    """List files changed in ``location`` since ``committish``."""
    args = ["diff", "--name-only", committish]
    relative = Path(os.path.relpath(location, cwd)).as_posix()
    # A package at the repository root diffs the whole tree.
    if relative != ".":
        args.extend(["--", relative])
    return git(*args, cwd=cwd)


def _match_segments(parts: Sequence[str], pattern: Sequence[str]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        # Zero or more directories.
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))
    return bool(parts) and fnmatchcase(parts[0], head) and _match_segments(parts[1:], rest)


def is_ignored(path: str, patterns: Sequence[str]) -> bool:
    """Return True if ``path`` matches one of the ignore globs.

    Globs are matched one path segment at a time, so ``*`` never crosses a
    ``/`` while ``**`` spans any number of directories, including none.
    A glob without a slash is matched against the basename. Dotfiles are
    matched like any other file.

    Examples:
        ("README.md", ["**/*.md"]) → True
        ("packages/foo/README.md", ["*.md"]) → True
        ("docs/a/b.md", ["docs/*"]) → False
    """
    parts = path.split("/")
    for pattern in patterns:
        pattern = pattern.removeprefix("./").lstrip("/")
        if "/" not in pattern:
            if fnmatchcase(posixpath.basename(path), pattern):
                return True
        elif _match_segments(parts, pattern.split("/")):
            return True
    return False


def make_diff_predicate(
    committish: str,
    cwd: Path,
    logger: Any,
    ignore_changes: Sequence[str] = (),
) -> Callable[[DependencyGraphNode | Package], bool]:
    """Build a predicate telling whether a package changed since ``committish``.

    Args:
        committish: Tag, sha or range (e.g. "abc123^!") to diff against.
        cwd: Repository root.
        logger: Context logger.
        ignore_changes: Globs for files that never count as a change.
    """
    if ignore_changes:
        logger.log("ignoring diff in paths matching %s", list(ignore_changes))

    def has_diff_since_that_isnt_ignored(node: DependencyGraphNode | Package) -> bool:
        diff = diff_since_in(committish, node.location, cwd)
        if not diff:
            return False

        changed_files = [
            path for path in diff.splitlines() if not is_ignored(path, ignore_changes)
        ]

        if changed_files:
            logger.log("filtered diff %s", changed_files)
        else:
            logger.log("no diff found in %s (after filtering)", node.name)

        return bool(changed_files)

    return has_diff_since_that_isnt_ignored


def collect_updates(
    graph: DependencyGraph,
    *,
    cwd: Path,
    logger: Any,
    version: str,
    latch: LatchSetting,
    ignore_changes: Sequence[str] = (),
) -> list[DependencyGraphNode]:
    """Select the graph nodes to release at ``version``.

    1. If HEAD is already the last tag, nothing is released.
    2. If the latch policy matches ``version``, everything is released.
    3. Without a release tag, everything is released.
    4. Otherwise packages changed since the tag, plus their dependents.
    """
    committish: str | None = None

    if has_tags(cwd, logger):
        described = describe_ref(cwd)
        if described.ref_count == 0:
            logger.warn("Current HEAD is already released, skipping change detection.")
            return []
        # If no tags found, this is None and every package is released
        committish = described.last_tag_name

    if should_latch(version, latch):
        logger.log(
            "Bumping all packages because configuration is set to latch on %s and higher",
            latch,
        )
        return collect_packages(graph)

    if not committish:
        logger.log("Failed to find last release tag, assuming all packages changed")
        return collect_packages(graph)

    logger.log("Looking for changed packages since %s", committish)
    has_diff = make_diff_predicate(committish, cwd, logger, ignore_changes)
    return collect_packages(graph, is_candidate=has_diff)


def get_changed_packages(
    latch: LatchSetting,
    *,
    cwd: Path,
    logger: Any,
    version: str,
    ignore_changes: Sequence[str] = (),
) -> list[Package]:
    """Discover the workspace and return the packages to release, in order."""
    project = Project(cwd, logger)
    packages = project.get_packages()
    graph = DependencyGraph(packages)
    logger.log(
        "%d package%s found: %s",
        len(packages),
        "" if len(packages) == 1 else "s",
        [pkg.name for pkg in packages],
    )

    updates = collect_updates(
        graph,
        cwd=project.root_path,
        logger=logger,
        version=version,
        latch=latch,
        ignore_changes=ignore_changes,
    )
    return [node.package for node in updates]
