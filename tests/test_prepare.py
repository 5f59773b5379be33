"""Tests for monorelease.prepare."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from monorelease.manifest import read_package
from monorelease.models import PluginConfig
from monorelease.prepare import prepare_packages, update_lerna_json, update_package

from conftest import fake_git, read_json, write_json


def manifest(workspace: Path, name: str | None = None) -> dict:
    location = workspace / "packages" / name if name else workspace
    return read_json(location / "package.json")


class TestUpdatePackage:
    def test_writes_version_and_ranges(self, workspace: Path, make_context) -> None:
        pkg = read_package(workspace / "packages" / "bar")
        bump = update_package(pkg, make_context(workspace, "0.1.0"), {"foo": "0.0.0"})
        assert (bump.name, bump.old, bump.new) == ("bar", "0.0.0", "0.1.0")
        assert manifest(workspace, "bar") == {
            "name": "bar",
            "version": "0.1.0",
            "dependencies": {"foo": "^0.1.0"},
        }


class TestUpdateLernaJson:
    def test_updates_existing(self, workspace: Path, make_context) -> None:
        write_json(workspace / "lerna.json", {"version": "0.0.0"})
        update_lerna_json(workspace, make_context(workspace, "0.1.0"))
        assert read_json(workspace / "lerna.json") == {"version": "0.1.0"}

    def test_does_not_create(self, workspace: Path, make_context) -> None:
        update_lerna_json(workspace, make_context(workspace, "0.1.0"))
        assert not (workspace / "lerna.json").exists()


@patch("monorelease.lockfile.run")
class TestPreparePackages:
    def prepare(self, workspace: Path, context, config: PluginConfig | None = None, **git_kwargs):
        with patch("monorelease.changes.git", side_effect=fake_git(**git_kwargs)):
            return prepare_packages(workspace / ".npmrc", config or PluginConfig(), context)

    def test_minor_latch_bumps_everything(
        self, mock_run: MagicMock, workspace: Path, make_context
    ) -> None:
        diffs = {"packages/foo": "packages/foo/index.js"}
        bumps = self.prepare(workspace, make_context(workspace, "0.1.0"), diffs=diffs)

        assert [b.name for b in bumps] == ["bar", "foo", "root"]
        assert manifest(workspace, "foo")["version"] == "0.1.0"
        assert manifest(workspace, "bar")["version"] == "0.1.0"
        assert manifest(workspace, "bar")["dependencies"] == {"foo": "^0.1.0"}
        assert manifest(workspace)["version"] == "0.1.0"

    def test_patch_bumps_changed_and_dependents_only(
        self, mock_run: MagicMock, workspace: Path, make_context
    ) -> None:
        write_json(workspace / "packages" / "baz" / "package.json", {"name": "baz", "version": "0.0.0"})
        diffs = {"packages/foo": "packages/foo/index.js"}

        bumps = self.prepare(workspace, make_context(workspace, "0.0.1"), diffs=diffs)

        assert [b.name for b in bumps] == ["bar", "foo", "root"]
        assert manifest(workspace, "bar")["dependencies"] == {"foo": "^0.0.1"}
        assert manifest(workspace, "baz")["version"] == "0.0.0"

    def test_no_changes_bumps_root_only(
        self, mock_run: MagicMock, workspace: Path, make_context, logger
    ) -> None:
        bumps = self.prepare(workspace, make_context(workspace, "0.0.1"))

        assert [b.name for b in bumps] == ["root"]
        assert manifest(workspace)["version"] == "0.0.1"
        assert manifest(workspace, "foo")["version"] == "0.0.0"
        assert "No packages changed, applying version bump on root package only" in logger.logs

    def test_root_version_disabled(
        self, mock_run: MagicMock, workspace: Path, make_context, logger
    ) -> None:
        config = PluginConfig(rootVersion=False)
        bumps = self.prepare(workspace, make_context(workspace, "0.1.0"), config)

        assert [b.name for b in bumps] == ["bar", "foo"]
        assert manifest(workspace)["version"] == "0.0.0"
        assert "Don't write version to root package.json" in logger.logs

    def test_updates_lerna_json_and_lockfile(
        self, mock_run: MagicMock, workspace: Path, make_context
    ) -> None:
        write_json(workspace / "lerna.json", {"version": "0.0.0", "npmClient": "npm"})
        (workspace / "package-lock.json").write_text("{}\n")

        self.prepare(workspace, make_context(workspace, "0.1.0"))

        assert read_json(workspace / "lerna.json")["version"] == "0.1.0"
        args = mock_run.call_args.args
        assert args[:3] == ("npm", "install", "--package-lock-only")
        assert args[-2:] == ("--userconfig", str(workspace / ".npmrc"))

    def test_root_dependencies_are_rewritten(
        self, mock_run: MagicMock, workspace: Path, make_context
    ) -> None:
        write_json(
            workspace / "package.json",
            {
                "name": "root",
                "version": "0.0.0",
                "workspaces": ["packages/*"],
                "devDependencies": {"foo": "0.0.0"},
            },
        )
        self.prepare(workspace, make_context(workspace, "0.1.0"))
        assert manifest(workspace)["devDependencies"] == {"foo": "0.1.0"}

    def test_ignored_changes(self, mock_run: MagicMock, workspace: Path, make_context) -> None:
        config = PluginConfig(ignoreChanges=["*.md"])
        diffs = {"packages/foo": "packages/foo/CHANGELOG.md"}
        bumps = self.prepare(workspace, make_context(workspace, "0.0.1"), config, diffs=diffs)
        assert [b.name for b in bumps] == ["root"]
