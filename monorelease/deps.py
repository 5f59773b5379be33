"""Dependency range rewriting.

When workspace packages are bumped, every package that depends on them
gets its declared ranges updated so they still resolve to the new version,
keeping the shape of the original range where possible.
"""

from __future__ import annotations

from collections.abc import Mapping

from .models import Package
from .versions import is_valid_range, parse_version, satisfies

# Sections rewritten on a bump; optionalDependencies are left alone.
REWRITTEN_SECTIONS = ("dependencies", "dev_dependencies", "peer_dependencies")


def bump_range(range_str: str, current: str, new: str) -> str | None:
    """Return the rewritten range, or None when it should stay as is.

    Shapes are tried in order:

    - exact pin "1.2.3" → new version
    - "^1.2.3" → "^" + new version
    - "^1.2" → "^" + new major.minor
    - "^1" → "^" + new major
    - any other valid range that no longer admits the new version is
      replaced, keeping a leading "^" and as many dot-separated components
      as the original range had

    Examples:
        bump_range("^1.2", "1.2.5", "1.3.0") → "^1.3"
        bump_range(">=1.0.0 <2.0.0", "1.4.0", "2.0.0") → "2.0.0"
        bump_range(">=1.0.0", "1.4.0", "2.0.0") → None
    """
    current_parsed = parse_version(current)
    new_parsed = parse_version(new)
    if current_parsed is None or new_parsed is None:
        return None

    if range_str == current:
        return new
    if range_str == f"^{current}":
        return f"^{new}"
    if range_str == f"^{current_parsed.major}.{current_parsed.minor}":
        return f"^{new_parsed.major}.{new_parsed.minor}"
    if range_str == f"^{current_parsed.major}":
        return f"^{new_parsed.major}"

    if is_valid_range(range_str) and not satisfies(new, range_str):
        hat = "^" if range_str.startswith("^") else ""
        num_components = range_str.count(".") + 1
        components = [new_parsed.major, new_parsed.minor, new_parsed.patch]
        return hat + ".".join(str(c) for c in components[:num_components])

    return None


def bump_dependency(
    dependencies: dict[str, str],
    new_version: str,
    current_versions: Mapping[str, str],
) -> None:
    """Rewrite ranges in one dependency mapping, modifying it in place.

    Only dependencies listed in ``current_versions`` (the packages being
    released) are touched.

    Args:
        dependencies: Name → range mapping (modified in place).
        new_version: Version every released package is bumped to.
        current_versions: Name → version before the bump.
    """
    if parse_version(new_version) is None:
        return
    for dep, range_str in dependencies.items():
        current = current_versions.get(dep)
        if not current:
            continue
        bumped = bump_range(range_str, current, new_version)
        if bumped is not None:
            dependencies[dep] = bumped


def rewrite_dependencies(
    pkg: Package,
    new_version: str,
    current_versions: Mapping[str, str],
) -> None:
    """Rewrite the dependencies, devDependencies and peerDependencies of ``pkg``.

    Each section is processed independently; with an empty
    ``current_versions`` this is a no-op.
    """
    for section in REWRITTEN_SECTIONS:
        bump_dependency(getattr(pkg, section), new_version, current_versions)
