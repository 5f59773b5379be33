"""package.json reading and writing utilities.

Writes keep the original file's indentation and trailing-newline
convention so that version bumps produce minimal, diff-friendly changes.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from .errors import ManifestParseError, NoPackageManifestError, NoPackageNameError
from .models import DEPENDENCY_FIELDS, Package, PluginConfig

DEFAULT_INDENT = "  "

_INDENT_RE = re.compile(r"^([ \t]+)\S", re.MULTILINE)


def detect_indent(text: str) -> str:
    """Return the indentation of the first indented line, or two spaces."""
    match = _INDENT_RE.search(text)
    return match.group(1) if match else DEFAULT_INDENT


def load_manifest(path: Path) -> dict[str, Any]:
    """Load and parse a JSON manifest (package.json, lerna.json).

    Raises:
        NoPackageManifestError: If the file does not exist.
        ManifestParseError: If the file is not a JSON object.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NoPackageManifestError(str(path)) from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestParseError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestParseError(f"{path} is not a JSON object")
    return data


def save_manifest(path: Path, data: dict[str, Any]) -> None:
    """Write ``data`` as JSON, matching the existing file's formatting.

    New files get two-space indentation and a trailing newline.
    """
    indent = DEFAULT_INDENT
    trailing_newline = "\n"
    if path.exists():
        existing = path.read_text(encoding="utf-8")
        indent = detect_indent(existing)
        if not existing.endswith("\n"):
            trailing_newline = ""
    text = json.dumps(data, indent=indent, ensure_ascii=False)
    path.write_text(f"{text}{trailing_newline}", encoding="utf-8")


def read_package(location: Path) -> Package:
    """Load the package.json in ``location`` into a Package.

    Raises:
        NoPackageManifestError: If there is no package.json.
        NoPackageNameError: If the manifest has no ``name``.
    """
    manifest_path = location / "package.json"
    data = load_manifest(manifest_path)
    if not data.get("name"):
        raise NoPackageNameError(str(manifest_path))
    return Package.from_manifest(data, location)


def write_package(pkg: Package) -> None:
    """Persist a Package's version and dependency ranges to its package.json.

    The manifest is re-read from disk so that fields monorelease does not
    model (scripts, files, ...) survive untouched. Dependency sections are
    only written when the manifest already declares them.
    """
    data = load_manifest(pkg.manifest_location)
    if pkg.version is not None:
        data["version"] = pkg.version
    for key, attr in DEPENDENCY_FIELDS.items():
        if key in data:
            data[key] = dict(getattr(pkg, attr))
    save_manifest(pkg.manifest_location, data)


def get_pkg(config: PluginConfig, cwd: Path) -> Package:
    """Load the root package (``pkgRoot`` relative to ``cwd`` if configured)."""
    root = (cwd / config.pkg_root).resolve() if config.pkg_root else cwd
    return read_package(root)
