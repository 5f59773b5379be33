"""Data models for monorelease.

These Pydantic models represent the packages, plugin options and
orchestrator context that flow through the release lifecycle.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationInfo,
    field_validator,
)

LatchSetting = Literal["major", "minor", "patch", "prerelease", "none"]

# Manifest keys holding name → range mappings, paired with model attributes.
DEPENDENCY_FIELDS: dict[str, str] = {
    "dependencies": "dependencies",
    "devDependencies": "dev_dependencies",
    "optionalDependencies": "optional_dependencies",
    "peerDependencies": "peer_dependencies",
}


class Package(BaseModel):
    """A single package.json in the workspace.

    Attributes:
        name: Package name, unique within the workspace.
        version: Version string; root manifests may omit it.
        location: Absolute path of the directory holding package.json.
        private: True when the package must never be published.
        dependencies / dev_dependencies / optional_dependencies /
        peer_dependencies: Declared name → range mappings. Mutated in place
            when dependency ranges are rewritten.
        publish_config: The manifest's ``publishConfig`` block.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    version: str | None = None
    location: Path
    private: bool = False
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    optional_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="optionalDependencies"
    )
    peer_dependencies: dict[str, str] = Field(default_factory=dict, alias="peerDependencies")
    publish_config: dict[str, Any] = Field(default_factory=dict, alias="publishConfig")

    @classmethod
    def from_manifest(cls, data: dict[str, Any], location: Path) -> Package:
        """Build a Package from parsed package.json data."""
        return cls.model_validate({**data, "location": location})

    @property
    def manifest_location(self) -> Path:
        return self.location / "package.json"


class VersionBump(BaseModel):
    """Records a version change written to one manifest."""

    name: str
    old: str | None
    new: str


class PluginConfig(BaseModel):
    """Validated plugin options.

    Options arrive camelCase from the release orchestrator; unknown keys
    are kept so that other plugins sharing the same block are unaffected.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    npm_publish: StrictBool | None = Field(default=None, alias="npmPublish")
    npm_verify_auth: StrictBool = Field(default=True, alias="npmVerifyAuth")
    tarball_dir: StrictStr | None = Field(default=None, alias="tarballDir")
    pkg_root: StrictStr | None = Field(default=None, alias="pkgRoot")
    root_version: StrictBool = Field(default=True, alias="rootVersion")
    latch: LatchSetting = "minor"
    generate_notes: StrictBool = Field(default=False, alias="generateNotes")
    ignore_changes: list[StrictStr] = Field(default_factory=list, alias="ignoreChanges")

    # Changelog options
    preset: StrictStr | None = None
    config: StrictStr | None = None
    parser_opts: dict[str, Any] = Field(default_factory=dict, alias="parserOpts")
    writer_opts: dict[str, Any] = Field(default_factory=dict, alias="writerOpts")
    host: str | None = None
    link_compare: bool | None = Field(default=None, alias="linkCompare")
    link_references: bool | None = Field(default=None, alias="linkReferences")
    commit: str | None = None
    issue: str | None = None

    @field_validator("tarball_dir", "pkg_root")
    @classmethod
    def _non_empty(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("must be a non empty string")
        return value

    @field_validator("latch", mode="before")
    @classmethod
    def _default_latch(cls, value: Any) -> Any:
        return "minor" if value is None else value

    @field_validator("npm_verify_auth", "root_version", "generate_notes", mode="before")
    @classmethod
    def _default_flag(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value


class Release(BaseModel):
    """A release as described by the orchestrator (last or next)."""

    model_config = ConfigDict(populate_by_name=True)

    version: str | None = None
    git_tag: str | None = Field(default=None, alias="gitTag")
    git_head: str | None = Field(default=None, alias="gitHead")
    channel: str | None = None


class Commit(BaseModel):
    """A raw commit handed over for release notes."""

    hash: str
    message: str


class RepositoryOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repository_url: str = Field(default="", alias="repositoryUrl")


class Context(BaseModel):
    """Everything a lifecycle hook may read about the current run.

    Attributes:
        cwd: Repository root the release runs in.
        env: Environment passed to subprocesses.
        logger: Object with printf-style ``log`` and ``warn`` methods.
        stdout / stderr: Text sinks receiving subprocess output.
        commits: Commits since the last release (release notes only).
        last_release: The previous release, if any.
        next_release: The release being prepared.
        options: Global orchestrator options.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    cwd: Path
    env: dict[str, str] = Field(default_factory=dict)
    logger: Any
    stdout: Any = Field(default_factory=lambda: sys.stdout)
    stderr: Any = Field(default_factory=lambda: sys.stderr)
    commits: list[Commit] = Field(default_factory=list)
    last_release: Release = Field(default_factory=Release, alias="lastRelease")
    next_release: Release = Field(default_factory=Release, alias="nextRelease")
    options: RepositoryOptions = Field(default_factory=RepositoryOptions)


class ReleaseInfo(BaseModel):
    """What publish reports back to the orchestrator."""

    name: str
    url: str | None = None
    channel: str
