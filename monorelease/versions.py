"""Version and range utilities.

Versions are parsed with ``semver``; npm range syntax (carets, tildes,
x-ranges, hyphen ranges, ``||`` unions) is evaluated with
``semantic_version.NpmSpec``.
"""

from __future__ import annotations

import re

import semantic_version
import semver

# npm allows whitespace between an operator and its version (">= 1.0.0").
_OPERATOR_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~)\s+")


def parse_version(version_str: str) -> semver.Version | None:
    """Parse a full semver string, returning None when it is not one.

    Unlike range matching, no padding is applied: "1.2" is not a version.
    """
    try:
        return semver.Version.parse(version_str)
    except (TypeError, ValueError):
        return None


def _npm_spec(range_str: str) -> semantic_version.NpmSpec | None:
    # An empty range means "any version", as npm treats it.
    try:
        normalized = _OPERATOR_SPACE_RE.sub(r"\1", range_str.strip())
        return semantic_version.NpmSpec(normalized or "*")
    except ValueError:
        return None


def is_valid_range(range_str: str) -> bool:
    """Return True if ``range_str`` is a syntactically valid npm semver range.

    Examples:
        "^1.2.3" → True
        ">=1.0.0 <2.0.0" → True
        "latest" → False
        "workspace:^" → False
    """
    return _npm_spec(range_str) is not None


def satisfies(version_str: str | None, range_str: str) -> bool:
    """Return True if ``version_str`` falls inside the npm range ``range_str``.

    Invalid versions or ranges never satisfy anything.
    """
    if not version_str:
        return False
    spec = _npm_spec(range_str)
    if spec is None:
        return False
    try:
        version = semantic_version.Version(version_str)
    except ValueError:
        return False
    return spec.match(version)
