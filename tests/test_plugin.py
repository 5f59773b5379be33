"""Tests for monorelease.plugin."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from monorelease.errors import AggregateReleaseError, AuthenticationError
from monorelease.plugin import ReleaseSession


class TestNpmrc:
    def test_created_once(self) -> None:
        session = ReleaseSession()
        assert session.npmrc == session.npmrc
        assert session.npmrc.name == ".npmrc"

    def test_separate_sessions_do_not_share(self) -> None:
        assert ReleaseSession().npmrc != ReleaseSession().npmrc


class TestVerifyConditions:
    @patch("monorelease.plugin.verify_auth")
    @patch("monorelease.verify.git", return_value=" M package.json")
    def test_collects_every_error(
        self, mock_git: MagicMock, mock_auth: MagicMock, workspace: Path, make_context
    ) -> None:
        session = ReleaseSession()
        with pytest.raises(AggregateReleaseError) as exc_info:
            session.verify_conditions({"latch": "weekly", "rootVersion": 1}, make_context(workspace))

        codes = sorted(error.code for error in exc_info.value)
        assert codes == ["EDIRTYWC", "EINVALIDLATCH", "EINVALIDROOTVERSION"]
        assert session.verified is False
        mock_auth.assert_not_called()

    @patch("monorelease.verify.git", return_value=" M package.json")
    def test_dirty_working_copy_still_checks_auth(
        self, mock_git: MagicMock, workspace: Path, make_context
    ) -> None:
        # No NPM_TOKEN and no npmrc: auth fails before npm is ever run.
        with pytest.raises(AggregateReleaseError) as exc_info:
            ReleaseSession().verify_conditions({}, make_context(workspace))
        assert [error.code for error in exc_info.value] == ["EDIRTYWC", "ENONPMTOKEN"]

    @patch("monorelease.plugin.verify_auth")
    @patch("monorelease.verify.git", return_value="")
    def test_auth_failure_is_aggregated(
        self, mock_git: MagicMock, mock_auth: MagicMock, workspace: Path, make_context
    ) -> None:
        mock_auth.side_effect = AuthenticationError("No npm token specified.", code="ENONPMTOKEN")
        with pytest.raises(AggregateReleaseError) as exc_info:
            ReleaseSession().verify_conditions({}, make_context(workspace))
        assert [error.code for error in exc_info.value] == ["ENONPMTOKEN"]

    @patch("monorelease.plugin.verify_auth")
    @patch("monorelease.verify.git", return_value="")
    def test_success_marks_session_verified(
        self, mock_git: MagicMock, mock_auth: MagicMock, workspace: Path, make_context
    ) -> None:
        session = ReleaseSession()
        session.verify_conditions({}, make_context(workspace))
        assert session.verified is True
        assert mock_auth.call_args.args[0] == session.npmrc

    @patch("monorelease.plugin.verify_auth")
    @patch("monorelease.verify.git", return_value="")
    def test_auth_check_can_be_disabled(
        self, mock_git: MagicMock, mock_auth: MagicMock, workspace: Path, make_context
    ) -> None:
        ReleaseSession().verify_conditions({"npmVerifyAuth": False}, make_context(workspace))
        mock_auth.assert_not_called()


class TestPrepare:
    def test_unverified_session_validates_config(self, workspace: Path, make_context) -> None:
        with pytest.raises(AggregateReleaseError) as exc_info:
            ReleaseSession().prepare({"latch": "weekly"}, make_context(workspace, "0.1.0"))
        assert [error.code for error in exc_info.value] == ["EINVALIDLATCH"]

    @patch("monorelease.plugin.prepare_packages", return_value=[])
    @patch("monorelease.plugin.verify_auth")
    def test_runs_prepare(
        self, mock_auth: MagicMock, mock_prepare: MagicMock, workspace: Path, make_context
    ) -> None:
        session = ReleaseSession()
        context = make_context(workspace, "0.1.0")
        session.prepare({"latch": "patch"}, context)

        npmrc, config, passed_context = mock_prepare.call_args.args
        assert npmrc == session.npmrc
        assert config.latch == "patch"
        assert passed_context is context
        mock_auth.assert_called_once()


class TestPublish:
    @patch("monorelease.plugin.publish_packages", return_value=None)
    @patch("monorelease.plugin.verify_auth")
    def test_disabled_publish_skips_auth(
        self, mock_auth: MagicMock, mock_publish: MagicMock, workspace: Path, make_context
    ) -> None:
        assert ReleaseSession().publish({"npmPublish": False}, make_context(workspace, "0.1.0")) is None
        mock_auth.assert_not_called()
        mock_publish.assert_called_once()

    @patch("monorelease.plugin.publish_packages", return_value=None)
    @patch("monorelease.plugin.verify_auth")
    def test_private_root_skips_auth(
        self, mock_auth: MagicMock, mock_publish: MagicMock, workspace: Path, make_context
    ) -> None:
        ReleaseSession().publish({}, make_context(workspace, "0.1.0"))
        mock_auth.assert_not_called()

    @patch("monorelease.plugin.publish_packages", return_value=None)
    @patch("monorelease.plugin.verify_auth")
    def test_unverified_public_root_checks_auth(
        self, mock_auth: MagicMock, mock_publish: MagicMock, workspace: Path, make_context
    ) -> None:
        session = ReleaseSession()
        session.publish({"pkgRoot": "packages/foo"}, make_context(workspace, "0.1.0"))
        mock_auth.assert_called_once()
        assert session.verified is True

    @patch("monorelease.plugin.publish_packages", return_value=None)
    @patch("monorelease.plugin.verify_auth")
    def test_verified_session_skips_auth(
        self, mock_auth: MagicMock, mock_publish: MagicMock, workspace: Path, make_context
    ) -> None:
        session = ReleaseSession()
        session.verified = True
        session.publish({"pkgRoot": "packages/foo"}, make_context(workspace, "0.1.0"))
        mock_auth.assert_not_called()


class TestGenerateNotes:
    def test_disabled(self, workspace: Path, make_context, logger) -> None:
        assert ReleaseSession().generate_notes({}, make_context(workspace, "0.1.0")) == ""
        assert logger.logs == ["Release notes scope disabled, skipping"]
