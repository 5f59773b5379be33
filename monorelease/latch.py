"""Latch policy: when should every package be bumped together?

The policy is cumulative. A setting latches on its own granularity and on
every coarser one, so "minor" latches for X.Y.0 and X.0.0 alike, and
"patch" latches for any plain release version.
"""

from __future__ import annotations

import re

from .models import LatchSetting

LATCH_PATTERNS: dict[str, re.Pattern[str]] = {
    "major": re.compile(r"^\d+\.0\.0$"),
    "minor": re.compile(r"^\d+\.\d+\.0$"),
    "patch": re.compile(r"^\d+\.\d+\.\d+$"),
    "prerelease": re.compile(r"^\d+\.\d+\.\d+(-(.*\.)?\d+)?$"),
}


def should_latch(next_version: str, latch: LatchSetting | str) -> bool:
    """Return True if all packages should be released at ``next_version``.

    Args:
        next_version: The version the release orchestrator computed.
        latch: One of "major", "minor", "patch", "prerelease" or "none".
               Unknown settings behave like "none".

    Examples:
        should_latch("2.0.0", "major") → True
        should_latch("2.1.0", "major") → False
        should_latch("2.0.0", "minor") → True
        should_latch("2.1.1", "minor") → False
        should_latch("2.1.0-beta.1", "prerelease") → True
    """
    pattern = LATCH_PATTERNS.get(latch)
    if pattern is None:
        return False
    return pattern.fullmatch(next_version) is not None
