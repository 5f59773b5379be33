"""Dependency graph of the workspace packages.

Each node records the local packages that depend on it (its "dependents").
Edges are derived from the devDependencies, optionalDependencies and
dependencies of every package, in that order, with later sections winning
when a name appears more than once.

A declared range links two workspace packages when it resolves to the
local directory (``file:``, ``link:`` or a bare path) or when the local
package's version satisfies it. Ranges using the ``workspace:`` protocol
must resolve locally.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from .errors import DuplicatePackageNameError, WorkspaceResolutionError
from .models import Package
from .versions import satisfies

WORKSPACE_ALIASES = ("*", "^", "~")

# Hosted git shortcuts and URLs, e.g. "github:org/repo#v1", "org/repo#semver:^1".
_GIT_SPEC_RE = re.compile(
    r"^(git\+|git://|github:|gitlab:|bitbucket:|gist:|[\w.-]+/[\w.-]+(#|$))"
)

# Bare local paths: "../foo", "/abs/foo", "~/foo", "C:/foo".
_PATH_SPEC_RE = re.compile(r"^(?:\.|~/|/|[A-Za-z]:)")


class ResolvedSpec(NamedTuple):
    """A dependency range resolved relative to the declaring package.

    Only one of ``fetch_spec`` (path or semver range), ``git_range`` or
    ``git_committish`` is meaningful, depending on ``type``.
    """

    type: str
    fetch_spec: str
    git_range: str | None = None
    git_committish: str | None = None


def resolve_spec(spec: str, where: Path) -> ResolvedSpec:
    """Classify a dependency range the way npm would.

    Examples:
        resolve_spec("file:../foo", Path("/r/packages/bar"))
            → ResolvedSpec("directory", "/r/packages/foo")
        resolve_spec("../foo", Path("/r/packages/bar"))
            → ResolvedSpec("directory", "/r/packages/foo")
        resolve_spec("org/repo#semver:^1.0.0", ...) → git range "^1.0.0"
        resolve_spec("^1.0.0", ...) → ResolvedSpec("range", "^1.0.0")
    """
    if spec.startswith("file:"):
        target = spec[len("file:"):]
        return ResolvedSpec("directory", str((where / target).resolve()))

    # Checked before git shortcuts, which "../foo" would otherwise match.
    if _PATH_SPEC_RE.match(spec):
        target = Path(spec).expanduser()
        return ResolvedSpec("directory", str((where / target).resolve()))

    if _GIT_SPEC_RE.match(spec):
        _, _, fragment = spec.partition("#")
        if fragment.startswith("semver:"):
            return ResolvedSpec("git", spec, git_range=fragment[len("semver:"):])
        return ResolvedSpec("git", spec, git_committish=fragment or None)

    return ResolvedSpec("range", spec.strip() or "*")


@dataclass(eq=False)
class DependencyGraphNode:
    """A package plus the workspace packages that depend on it.

    ``local_dependents`` is filled once while the graph is built and is
    read-only afterwards. Nodes compare by identity.
    """

    package: Package
    local_dependents: dict[str, DependencyGraphNode] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def version(self) -> str | None:
        return self.package.version

    @property
    def location(self) -> Path:
        return self.package.location

    def satisfies(self, resolved: ResolvedSpec) -> bool:
        """Return True if this package's version satisfies ``resolved``."""
        target = resolved.git_committish or resolved.git_range or resolved.fetch_spec
        return satisfies(self.version, target)

    def __repr__(self) -> str:
        return f"DependencyGraphNode({self.name!r})"


def graph_dependencies(pkg: Package) -> dict[str, str]:
    """Merge a package's dependency sections; later sections win."""
    return {**pkg.dev_dependencies, **pkg.optional_dependencies, **pkg.dependencies}


class DependencyGraph(Mapping[str, DependencyGraphNode]):
    """Graph of workspace packages keyed by name, in input order.

    Args:
        packages: All workspace packages.

    Raises:
        DuplicatePackageNameError: If two packages share a name.
        WorkspaceResolutionError: If a ``workspace:`` range cannot be
            satisfied by the local package.
    """

    def __init__(self, packages: Sequence[Package]):
        _check_duplicate_names(packages)
        self._nodes: dict[str, DependencyGraphNode] = {
            pkg.name: DependencyGraphNode(pkg) for pkg in packages
        }
        for node in self._nodes.values():
            self._link_dependencies(node)

    def __getitem__(self, name: str) -> DependencyGraphNode:
        return self._nodes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def raw_package_list(self) -> list[Package]:
        return [node.package for node in self._nodes.values()]

    def _link_dependencies(self, current: DependencyGraphNode) -> None:
        for dep_name, declared in graph_dependencies(current.package).items():
            dep_node = self._nodes.get(dep_name)
            if dep_node is None:
                # External dependency
                continue

            # Yarn's "link:" behaves like "file:".
            spec = re.sub(r"^link:", "file:", declared)

            is_workspace_spec = spec.startswith("workspace:")
            if is_workspace_spec:
                spec = spec[len("workspace:"):]
                if spec in WORKSPACE_ALIASES:
                    spec = _expand_workspace_alias(spec, dep_node.version)

            resolved = resolve_spec(spec, current.location)
            if resolved.fetch_spec == str(dep_node.location) or dep_node.satisfies(resolved):
                dep_node.local_dependents[current.name] = current
            elif is_workspace_spec:
                raise WorkspaceResolutionError(dep_name, spec)


def _expand_workspace_alias(alias: str, version: str | None) -> str:
    """Turn "workspace:*|^|~" into a concrete range for ``version``.

    Examples:
        ("*", "1.2.3") → "1.2.3"
        ("^", "1.2.3") → "^1.2.3"
        ("~", None) → "*"
    """
    if not version:
        return "*"
    prefix = "" if alias == "*" else alias
    return f"{prefix}{version}"


def _check_duplicate_names(packages: Sequence[Package]) -> None:
    seen: dict[str, list[str]] = {}
    for pkg in packages:
        seen.setdefault(pkg.name, []).append(str(pkg.location))
    for name, locations in seen.items():
        if len(locations) > 1:
            raise DuplicatePackageNameError(name, locations)
