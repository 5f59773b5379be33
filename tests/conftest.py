"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from monorelease.models import Context, Release


class RecordingLogger:
    """Logger that keeps formatted messages for assertions."""

    def __init__(self) -> None:
        self.logs: list[str] = []
        self.warnings: list[str] = []

    def log(self, msg: str, *args: object) -> None:
        self.logs.append(msg % args if args else msg)

    def warn(self, msg: str, *args: object) -> None:
        self.warnings.append(msg % args if args else msg)


def write_json(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path


def read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text())


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A monorepo with root, foo and bar; bar depends on foo via ^0.0.0."""
    root = tmp_path.resolve()
    write_json(
        root / "package.json",
        {"name": "root", "version": "0.0.0", "private": True, "workspaces": ["packages/*"]},
    )
    write_json(root / "packages" / "foo" / "package.json", {"name": "foo", "version": "0.0.0"})
    write_json(
        root / "packages" / "bar" / "package.json",
        {"name": "bar", "version": "0.0.0", "dependencies": {"foo": "^0.0.0"}},
    )
    return root


@pytest.fixture
def make_context(logger: RecordingLogger, tmp_path: Path):
    """Build a Context rooted at a directory, isolated from the user's npmrc."""

    def _make(cwd: Path, version: str | None = None, **kwargs: Any) -> Context:
        env = {"NPM_CONFIG_USERCONFIG": str(tmp_path / "no-user-npmrc")}
        env.update(kwargs.pop("env", {}))
        return Context(
            cwd=cwd,
            env=env,
            logger=logger,
            next_release=Release(version=version, channel=kwargs.pop("channel", None)),
            **kwargs,
        )

    return _make


def fake_git(tags: str = "v0.0.0", describe: str = "v0.0.0-1-gabc1234", diffs=None):
    """Build a git() stand-in answering tag, describe and diff queries.

    ``diffs`` maps a package pathspec (relative to the repo root) to the
    ``git diff --name-only`` output for it.
    """
    diffs = diffs or {}

    def _git(*args: str, cwd=None, check=True) -> str:
        if args[0] == "tag":
            return tags
        if args[0] == "describe":
            return describe
        if args[0] == "rev-list":
            return "4"
        if args[0] == "diff":
            pathspec = args[4] if len(args) > 4 else "."
            return diffs.get(pathspec, "")
        raise AssertionError(f"unexpected git call {args}")

    return _git
