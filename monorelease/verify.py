"""Pre-release checks: plugin options and git working copy.

Both checks return lists of errors instead of raising, so the caller can
report every problem in one pass.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .errors import (
    AggregateReleaseError,
    ConfigValidationError,
    GitDirtyWorkingCopyError,
    ReleaseError,
)
from .models import Context, PluginConfig
from .shell import git

EXPECTED: dict[str, str] = {
    "npmPublish": "a `Boolean`",
    "npmVerifyAuth": "a `Boolean`",
    "rootVersion": "a `Boolean`",
    "generateNotes": "a `Boolean`",
    "tarballDir": "a non empty `String`",
    "pkgRoot": "a non empty `String`",
    "latch": "one of `major`, `minor`, `patch`, `prerelease` or `none`",
    "ignoreChanges": "an `Array` of glob `String`s",
}


def _config_errors(exc: ValidationError, raw: Mapping[str, Any]) -> list[ConfigValidationError]:
    errors: list[ConfigValidationError] = []
    seen: set[str] = set()
    for error in exc.errors():
        option = str(error["loc"][0]) if error["loc"] else "config"
        if option in seen:
            continue
        seen.add(option)
        errors.append(
            ConfigValidationError(option, raw.get(option), EXPECTED.get(option, "valid"))
        )
    return errors


def verify_config(raw: Mapping[str, Any]) -> list[ConfigValidationError]:
    """Validate plugin options, returning one error per invalid option."""
    try:
        PluginConfig.model_validate(dict(raw))
    except ValidationError as exc:
        return _config_errors(exc, raw)
    return []


def parse_config(raw: Mapping[str, Any]) -> PluginConfig:
    """Validate and return plugin options.

    Raises:
        AggregateReleaseError: Listing every invalid option.
    """
    try:
        return PluginConfig.model_validate(dict(raw))
    except ValidationError as exc:
        raise AggregateReleaseError(_config_errors(exc, raw)) from exc


def verify_git(context: Context) -> list[ReleaseError]:
    """Fail when tracked files have uncommitted changes.

    Untracked files ("??" in porcelain output) are ignored, but they are
    listed in the error alongside tracked changes.
    """
    status = git("status", "--porcelain", cwd=context.cwd)
    files = [line for line in status.split("\n") if line]
    tracked = [line for line in files if not line.startswith("??")]
    if tracked:
        return [GitDirtyWorkingCopyError(files)]
    return []
