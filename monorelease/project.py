"""Workspace discovery: which package.json files make up the monorepo.

Package globs are read, in priority order, from:

1. ``pnpm-workspace.yaml`` (``packages:`` list)
2. the root ``package.json`` ``workspaces`` field (a list, or an object
   with a ``packages`` list as yarn uses)
3. ``lerna.json`` ``packages``
4. the default ``packages/*``

Globs starting with ``!`` exclude the matching directories.
"""

from __future__ import annotations

import glob
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from .errors import MissingPackagesDeclarationError, PackageConfigError
from .manifest import load_manifest, read_package, save_manifest
from .models import Package
from .shell import ConsoleLogger

PACKAGE_GLOB = "packages/*"
GLOB_CONCURRENCY = 4
READ_CONCURRENCY = 50


def parse_workspace_yaml(text: str) -> dict[str, list[str]]:
    """Minimal YAML reader for pnpm-workspace.yaml.

    The file is a mapping of keys to flat string lists::

        packages:
          - 'packages/*'
          - '!packages/scratch'

    Anything more elaborate (nested mappings, flow sequences) is ignored.
    """
    result: dict[str, list[str]] = {}
    current_key: str | None = None

    for line in text.splitlines():
        stripped = line.split(" #", 1)[0].strip()
        if not stripped or stripped.startswith("#"):
            continue

        # Key line: "packages:"
        if stripped.endswith(":") and not stripped.startswith("-"):
            current_key = stripped[:-1].strip()
            result[current_key] = []
            continue

        # List item: "  - 'packages/*'"
        if stripped.startswith("-") and current_key is not None:
            value = stripped[1:].strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
                value = value[1:-1]
            result[current_key].append(value)
        elif not line.startswith((" ", "\t")):
            # Top-level scalar such as "linkWorkspacePackages: true".
            current_key = None

    return result


def validate_package_globs(package_configs: list[str]) -> list[str]:
    """Return extra ignore patterns for ``package_configs``.

    Globstar patterns ("packages/**") must not descend into node_modules,
    so matches below any node_modules directory are ignored.

    Raises:
        PackageConfigError: If a globstar pattern is combined with an
            explicit node_modules path.
    """
    if not any("**" in cfg for cfg in package_configs):
        return []
    if any("node_modules" in cfg for cfg in package_configs):
        raise PackageConfigError(
            "An explicit node_modules package path does not allow globstars (**)"
        )
    return ["node_modules"]


class Project:
    """The monorepo rooted at ``root``.

    Args:
        root: Repository root containing the root package.json.
        logger: Logger with ``log`` / ``warn`` methods.
    """

    def __init__(self, root: Path, logger: Any = None):
        self.root_path = Path(root).resolve()
        self.logger = logger or ConsoleLogger()
        self.lerna_config_location = self.root_path / "lerna.json"
        self.config: dict[str, Any] = (
            load_manifest(self.lerna_config_location)
            if self.lerna_config_location.exists()
            else {}
        )

    @property
    def version(self) -> str | None:
        return self.config.get("version")

    @version.setter
    def version(self, value: str) -> None:
        self.config["version"] = value

    @property
    def package_configs(self) -> list[str]:
        """Workspace globs, from the highest-priority source that has them."""
        pnpm_config = self.root_path / "pnpm-workspace.yaml"
        if pnpm_config.exists():
            packages = parse_workspace_yaml(pnpm_config.read_text()).get("packages")
            if not packages:
                raise MissingPackagesDeclarationError(
                    "No 'packages' property found in pnpm-workspace.yaml. See "
                    "https://pnpm.io/workspaces for help configuring workspaces in pnpm."
                )
            return packages

        npm_config = self.root_path / "package.json"
        if npm_config.exists():
            workspaces = load_manifest(npm_config).get("workspaces")
            if isinstance(workspaces, dict):
                workspaces = workspaces.get("packages")
            if workspaces:
                return list(workspaces)

        packages = self.config.get("packages")
        if packages:
            return list(packages)

        self.logger.warn(
            "No packages defined in lerna.json. Defaulting to packages in %s",
            PACKAGE_GLOB,
        )
        return [PACKAGE_GLOB]

    def find_manifests(self) -> list[Path]:
        """Expand the workspace globs into a sorted list of package.json paths."""
        configs = self.package_configs
        ignored_segments = validate_package_globs(configs)

        includes = sorted(cfg for cfg in configs if not cfg.startswith("!"))
        excludes = [cfg[1:] for cfg in configs if cfg.startswith("!")]

        with ThreadPoolExecutor(max_workers=GLOB_CONCURRENCY) as pool:
            expanded = list(pool.map(self._expand_manifest_glob, includes))
            excluded_dirs = {
                Path(match)
                for matches in pool.map(self._expand_dir_glob, excludes)
                for match in matches
            }

        manifests: set[Path] = set()
        for matches in expanded:
            for match in matches:
                path = Path(os.path.normpath(match))
                if ignored_segments and any(
                    segment in path.relative_to(self.root_path).parts
                    for segment in ignored_segments
                ):
                    continue
                if path.parent in excluded_dirs:
                    continue
                manifests.add(path)

        return sorted(manifests)

    def get_packages(self) -> list[Package]:
        """Load every workspace package, ordered by manifest path."""
        manifests = self.find_manifests()
        with ThreadPoolExecutor(max_workers=READ_CONCURRENCY) as pool:
            return list(pool.map(lambda path: read_package(path.parent), manifests))

    def serialize_config(self) -> None:
        """Write the (possibly updated) lerna.json back to disk."""
        save_manifest(self.lerna_config_location, self.config)

    def _expand_manifest_glob(self, pattern: str) -> list[str]:
        return sorted(
            glob.glob(os.path.join(self.root_path, pattern, "package.json"), recursive=True)
        )

    def _expand_dir_glob(self, pattern: str) -> list[str]:
        return [
            os.path.normpath(match)
            for match in glob.glob(os.path.join(self.root_path, pattern), recursive=True)
        ]
