"""Tests for monorelease.latch."""

from __future__ import annotations

import pytest

from monorelease.latch import should_latch


class TestShouldLatch:
    @pytest.mark.parametrize("version", ["1.0.0", "10.0.0"])
    def test_major_shaped_latches_on_major_and_minor(self, version: str) -> None:
        assert should_latch(version, "major")
        assert should_latch(version, "minor")

    def test_minor_shaped_does_not_latch_on_major(self) -> None:
        assert not should_latch("1.2.0", "major")
        assert should_latch("1.2.0", "minor")
        assert should_latch("1.2.0", "patch")

    def test_patch_shaped_only_latches_on_patch(self) -> None:
        assert not should_latch("1.2.3", "major")
        assert not should_latch("1.2.3", "minor")
        assert should_latch("1.2.3", "patch")

    def test_prerelease(self) -> None:
        assert should_latch("1.2.3-beta.1", "prerelease")
        assert should_latch("1.2.3", "prerelease")
        assert not should_latch("1.2.3-beta.1", "patch")

    def test_none_never_latches(self) -> None:
        assert not should_latch("1.0.0", "none")

    def test_unknown_setting_never_latches(self) -> None:
        assert not should_latch("1.0.0", "weekly")

    def test_requires_whole_string_match(self) -> None:
        assert not should_latch("1.0.0-rc.1", "major")
