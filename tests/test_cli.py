"""Tests for monorelease.cli."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from monorelease.cli import cli
from monorelease.errors import AggregateReleaseError, ConfigValidationError
from monorelease.models import ReleaseInfo, VersionBump


class TestVerify:
    """Tests for the verify command."""

    @patch("monorelease.cli.ReleaseSession")
    def test_success(self, mock_session: MagicMock, tmp_path: Path) -> None:
        (tmp_path / ".releaserc.toml").write_text('latch = "patch"\n')

        result = CliRunner().invoke(cli, ["verify", "--cwd", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "Release conditions verified" in result.output
        options, context = mock_session.return_value.verify_conditions.call_args.args
        assert options == {"latch": "patch"}
        assert context.cwd == tmp_path.resolve()

    @patch("monorelease.cli.ReleaseSession")
    def test_reports_every_error(self, mock_session: MagicMock, tmp_path: Path) -> None:
        """Each aggregated error is listed with its details."""
        mock_session.return_value.verify_conditions.side_effect = AggregateReleaseError(
            [
                ConfigValidationError("latch", "weekly", "one of `major`"),
                ConfigValidationError("rootVersion", "yes", "a `Boolean`"),
            ]
        )

        result = CliRunner().invoke(cli, ["verify", "--cwd", str(tmp_path)])

        assert result.exit_code == 1
        assert "EINVALIDLATCH: Invalid `latch` option." in result.output
        assert "EINVALIDROOTVERSION" in result.output


class TestPrepare:
    """Tests for the prepare command."""

    def test_requires_next_version(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["prepare", "--cwd", str(tmp_path)])
        assert result.exit_code == 1
        assert "--next-version is required" in result.output

    @patch("monorelease.cli.ReleaseSession")
    def test_runs_verify_then_prepare(self, mock_session: MagicMock, tmp_path: Path) -> None:
        session = mock_session.return_value
        session.prepare.return_value = [VersionBump(name="foo", old="1.0.0", new="1.1.0")]

        result = CliRunner().invoke(
            cli, ["prepare", "--cwd", str(tmp_path), "--next-version", "1.1.0"]
        )

        assert result.exit_code == 0, result.output
        session.verify_conditions.assert_called_once()
        context = session.prepare.call_args.args[1]
        assert context.next_release.version == "1.1.0"
        assert "Bumped 1 package.json file(s)" in result.output


class TestPublish:
    """Tests for the publish command."""

    @patch("monorelease.cli.ReleaseSession")
    def test_prints_release_info(self, mock_session: MagicMock, tmp_path: Path) -> None:
        mock_session.return_value.publish.return_value = ReleaseInfo(
            name="npm package (@next dist-tag)",
            url="https://www.npmjs.com/package/foo/v/1.1.0",
            channel="next",
        )

        result = CliRunner().invoke(
            cli,
            ["publish", "--cwd", str(tmp_path), "--next-version", "1.1.0", "--channel", "next"],
        )

        assert result.exit_code == 0, result.output
        assert "npm package (@next dist-tag)" in result.output
        context = mock_session.return_value.publish.call_args.args[1]
        assert context.next_release.channel == "next"

    @patch("monorelease.cli.ReleaseSession")
    def test_skipped(self, mock_session: MagicMock, tmp_path: Path) -> None:
        mock_session.return_value.publish.return_value = None
        result = CliRunner().invoke(
            cli, ["publish", "--cwd", str(tmp_path), "--next-version", "1.1.0"]
        )
        assert result.exit_code == 0
        assert "Nothing published" in result.output


class TestNotes:
    """Tests for the notes command."""

    @patch("monorelease.cli.ReleaseSession")
    @patch("monorelease.cli.git")
    def test_reads_commits_since_last_tag(
        self, mock_git: MagicMock, mock_session: MagicMock, tmp_path: Path
    ) -> None:
        mock_git.return_value = "abc\x1ffeat: one\x1e\ndef\x1ffix: two\n\nbody\x1e"
        mock_session.return_value.generate_notes.return_value = "## 1.1.0\n"

        result = CliRunner().invoke(
            cli, ["notes", "--cwd", str(tmp_path), "--last-tag", "v1.0.0", "--next-version", "1.1.0"]
        )

        assert result.exit_code == 0, result.output
        assert result.output == "## 1.1.0\n"
        assert mock_git.call_args.args[-1] == "v1.0.0..HEAD"
        context = mock_session.return_value.generate_notes.call_args.args[1]
        assert [(c.hash, c.message) for c in context.commits] == [
            ("abc", "feat: one"),
            ("def", "fix: two\n\nbody"),
        ]
