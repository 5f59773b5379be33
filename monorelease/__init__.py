"""Release automation for multi-package npm repositories."""

from monorelease.plugin import ReleaseSession

__all__ = ["ReleaseSession"]
