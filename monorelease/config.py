"""Plugin options stored in a TOML file.

Uses tomlkit so a ``.releaserc.toml`` reads the same way the rest of the
toolchain's TOML does. Options live in a ``[monorelease]`` table, or at the
top level of the document when there is no such table::

    [monorelease]
    latch = "patch"
    rootVersion = false
    ignoreChanges = ["*.md"]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import ParseError

from .errors import ReleaseError

DEFAULT_CONFIG_FILE = ".releaserc.toml"
CONFIG_TABLE = "monorelease"


def load_config(path: Path) -> tomlkit.TOMLDocument:
    """Parse a TOML options file.

    Raises:
        ReleaseError: If the file is not valid TOML (code EINVALIDCONFIG).
    """
    try:
        return tomlkit.parse(path.read_text())
    except ParseError as exc:
        raise ReleaseError(
            f"Invalid configuration file {path}.", str(exc), code="EINVALIDCONFIG"
        ) from exc


def read_plugin_options(cwd: Path, config_file: str | None = None) -> dict[str, Any]:
    """Return the plugin options mapping for a repository.

    Args:
        cwd: Repository root.
        config_file: Options file, relative to ``cwd``. When omitted, the
            default file is used if it exists.

    Returns:
        Plain (unwrapped) option values; an empty dict without a file.
    """
    path = cwd / (config_file or DEFAULT_CONFIG_FILE)
    if not path.exists():
        if config_file:
            raise ReleaseError(
                f"Configuration file {path} does not exist.", code="ENOCONFIG"
            )
        return {}

    doc = load_config(path)
    table = doc.get(CONFIG_TABLE, doc)
    return dict(table.unwrap()) if hasattr(table, "unwrap") else dict(table)
