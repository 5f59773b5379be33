"""Release notes: conventional-commit changelog scoped to workspace packages.

Commits are parsed as conventional commits, reverted pairs are dropped, and
commits without an explicit scope get the names of the public packages they
touched as their scope. The resulting list, plus a templating context
derived from the repository URL, is handed to a :class:`ChangelogWriter`.
"""

from __future__ import annotations

import importlib
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import date
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from .changes import make_diff_predicate
from .errors import ConfigValidationError
from .manifest import load_manifest
from .models import Context, PluginConfig
from .project import Project

DEFAULT_PARSER_OPTS: dict[str, Any] = {
    "headerPattern": r"^(\w*)(?:\((.*)\))?(!)?: (.*)$",
    "revertPattern": r'^(?:Revert|revert:)\s"?([\s\S]+?)"?\s*This reverts commit (\w*)\.',
    "noteKeywords": ["BREAKING CHANGE", "BREAKING-CHANGE"],
    "referenceActions": [],
    "issuePrefixes": ["#"],
}

PRESETS: dict[str, dict[str, Any]] = {
    "angular": {"parserOpts": {}, "writerOpts": {}},
    "conventionalcommits": {"parserOpts": {}, "writerOpts": {}},
}


class HostConfig(BaseModel):
    hostname: str | None
    issue: str
    commit: str
    reference_actions: list[str] = Field(default_factory=list)
    issue_prefixes: list[str] = Field(default_factory=lambda: ["#"])


_CLOSING_ACTIONS = [
    "close", "closes", "closed", "fix", "fixes", "fixed", "resolve", "resolves", "resolved",
]

HOSTS_CONFIG: dict[str, HostConfig] = {
    "github": HostConfig(
        hostname="github.com",
        issue="issues",
        commit="commit",
        reference_actions=_CLOSING_ACTIONS,
    ),
    "bitbucket": HostConfig(
        hostname="bitbucket.org",
        issue="issue",
        commit="commits",
        reference_actions=[*_CLOSING_ACTIONS, "closing", "fixing", "resolving"],
    ),
    "gitlab": HostConfig(
        hostname="gitlab.com",
        issue="issues",
        commit="commit",
        reference_actions=[*_CLOSING_ACTIONS, "closing", "implement", "implements"],
        issue_prefixes=["#", "!"],
    ),
    "default": HostConfig(
        hostname=None,
        issue="issues",
        commit="commit",
        reference_actions=_CLOSING_ACTIONS,
    ),
}


class Note(BaseModel):
    title: str
    text: str


class Reference(BaseModel):
    action: str | None = None
    prefix: str
    issue: str


class ParsedCommit(BaseModel):
    """A commit message split into its conventional-commit parts."""

    hash: str
    message: str
    type: str | None = None
    scope: str | None = None
    subject: str | None = None
    header: str = ""
    body: str | None = None
    breaking: bool = False
    notes: list[Note] = Field(default_factory=list)
    references: list[Reference] = Field(default_factory=list)
    revert_hash: str | None = None


class ChangelogContext(BaseModel):
    """Values available to the changelog writer."""

    version: str | None
    host: str
    owner: str | None = None
    repository: str | None = None
    previous_tag: str | None = None
    current_tag: str | None = None
    link_compare: bool = False
    link_references: bool = True
    issue: str = "issues"
    commit: str = "commit"
    package_data: dict[str, Any] = Field(default_factory=dict)

    @property
    def repo_url(self) -> str:
        return "/".join(part for part in (self.host, self.owner, self.repository) if part)

    def commit_url(self, sha: str) -> str:
        return f"{self.repo_url}/{self.commit}/{sha}"

    def issue_url(self, issue: str) -> str:
        return f"{self.repo_url}/{self.issue}/{issue}"

    def compare_url(self) -> str:
        return f"{self.repo_url}/compare/{self.previous_tag}...{self.current_tag}"


class ChangelogWriter(Protocol):
    def write(
        self,
        commits: Sequence[ParsedCommit],
        context: ChangelogContext,
        writer_opts: Mapping[str, Any],
    ) -> str: ...


class MarkdownChangelogWriter:
    """Renders an angular-style markdown changelog section."""

    SECTIONS = {
        "feat": "Features",
        "fix": "Bug Fixes",
        "perf": "Performance Improvements",
        "revert": "Reverts",
    }

    def write(
        self,
        commits: Sequence[ParsedCommit],
        context: ChangelogContext,
        writer_opts: Mapping[str, Any],
    ) -> str:
        release_date = writer_opts.get("date") or date.today().isoformat()
        title = context.version or ""
        if context.link_compare:
            title = f"[{title}]({context.compare_url()})"
        lines = [f"## {title} ({release_date})", ""]

        breaking = [(c, note) for c in commits for note in c.notes]
        if breaking:
            lines.append("### ⚠ BREAKING CHANGES")
            lines.append("")
            for commit, note in breaking:
                lines.append(f"* {self._scoped(commit, note.text)}")
            lines.append("")

        for commit_type, heading in self.SECTIONS.items():
            items = [c for c in commits if c.type == commit_type]
            if not items:
                continue
            lines.append(f"### {heading}")
            lines.append("")
            for commit in items:
                lines.append(f"* {self._entry(commit, context)}")
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"

    @staticmethod
    def _scoped(commit: ParsedCommit, text: str) -> str:
        return f"**{commit.scope}:** {text}" if commit.scope else text

    def _entry(self, commit: ParsedCommit, context: ChangelogContext) -> str:
        subject = commit.subject or commit.header
        if context.link_references:
            for ref in commit.references:
                subject = subject.replace(
                    f"{ref.prefix}{ref.issue}",
                    f"[{ref.prefix}{ref.issue}]({context.issue_url(ref.issue)})",
                )
        short = commit.hash[:7]
        link = f"[{short}]({context.commit_url(commit.hash)})" if context.link_references else short
        return f"{self._scoped(commit, subject)} ({link})"


def parse_commit(hash: str, message: str, opts: Mapping[str, Any]) -> ParsedCommit:
    """Parse one commit message.

    Examples:
        "feat(core): add x" → type "feat", scope "core", subject "add x"
        "fix!: drop y" → type "fix", breaking
        "update readme" → no type (filtered from the changelog)
    """
    header, _, body = message.strip().partition("\n")
    body = body.strip() or None
    parsed = ParsedCommit(hash=hash, message=message, header=header, body=body)

    match = re.match(opts["headerPattern"], header)
    if match:
        groups = match.groups()
        if len(groups) >= 4:
            commit_type, scope, bang, subject = groups[:4]
        else:
            commit_type, scope, subject = (groups + (None, None, None))[:3]
            bang = None
        parsed.type = commit_type or None
        parsed.scope = scope or None
        parsed.subject = subject
        parsed.breaking = bool(bang)

    revert = re.match(opts["revertPattern"], message.strip())
    if revert:
        parsed.revert_hash = revert.group(2)
        if not parsed.type:
            parsed.type = "revert"
            parsed.subject = revert.group(1)

    for keyword in opts["noteKeywords"]:
        for note in re.finditer(rf"^{re.escape(keyword)}:\s*([\s\S]*?)(?:\n\n|\Z)", body or "", re.M):
            parsed.notes.append(Note(title="BREAKING CHANGES", text=note.group(1).strip()))
    if parsed.breaking and not parsed.notes and parsed.subject:
        parsed.notes.append(Note(title="BREAKING CHANGES", text=parsed.subject))

    prefixes = "|".join(re.escape(p) for p in opts["issuePrefixes"])
    actions = "|".join(re.escape(a) for a in opts["referenceActions"])
    action_group = rf"(?:\b({actions})\s+)?" if actions else "()"
    for ref in re.finditer(rf"{action_group}({prefixes})(\d+)", message, re.I):
        parsed.references.append(
            Reference(action=ref.group(1) or None, prefix=ref.group(2), issue=ref.group(3))
        )

    return parsed


def filter_reverted(commits: Sequence[ParsedCommit]) -> list[ParsedCommit]:
    """Drop commits reverted later in the list, along with their reverts."""
    dropped: set[str] = set()
    for commit in commits:
        if not commit.revert_hash:
            continue
        target = next(
            (c for c in commits if c.hash.startswith(commit.revert_hash) and c is not commit),
            None,
        )
        if target is not None:
            dropped.update({target.hash, commit.hash})
    return [c for c in commits if c.hash not in dropped]


def parse_repository_url(repository_url: str) -> tuple[str, str | None, str | None]:
    """Split a repository URL into (host, owner, repository).

    Examples:
        "https://github.com/org/repo.git" → ("https://github.com", "org", "repo")
        "git@gitlab.com:org/repo.git" → ("https://gitlab.com", "org", "repo")
        "http://host:8080/org/repo" → ("http://host:8080", "org", "repo")
    """
    url = re.sub(r"\.git$", "", repository_url, flags=re.I)
    scp = re.match(r"^(?!.+://)(?:(?P<auth>.*)@)?(?P<host>.*?):(?P<path>.*)$", url)
    if scp:
        auth = f"{scp['auth']}@" if scp["auth"] else ""
        url = f"ssh://{auth}{scp['host']}/{scp['path']}"

    parts = urlsplit(url)
    protocol = "http" if parts.scheme == "http" else "https"
    port = "" if "ssh" in parts.scheme or parts.port is None else f":{parts.port}"
    host = f"{protocol}://{parts.hostname or ''}{port}"

    path = re.match(r"^/(?P<owner>[^/]+)?/?(?P<repository>.+)?$", parts.path or "/")
    owner = path["owner"] if path else None
    repository = path["repository"] if path else None
    return host, owner, repository


def _import_config(spec: str) -> Callable[[], Mapping[str, Any]]:
    module_name, _, attr = spec.partition(":")
    module = importlib.import_module(module_name)
    return getattr(module, attr or "changelog_config")


def load_changelog_config(config: PluginConfig) -> tuple[dict[str, Any], dict[str, Any]]:
    """Resolve parser and writer options from preset/config plus overrides.

    Raises:
        ConfigValidationError: For an unknown preset.
    """
    if config.preset:
        loaded = PRESETS.get(config.preset.lower())
        if loaded is None:
            raise ConfigValidationError("preset", config.preset, f"one of {sorted(PRESETS)}")
    elif config.config:
        loaded = dict(_import_config(config.config)())
    else:
        loaded = PRESETS["angular"]

    parser_opts = {**loaded.get("parserOpts", {}), **config.parser_opts}
    writer_opts = {**loaded.get("writerOpts", {}), **config.writer_opts}
    return parser_opts, writer_opts


def _root_package_data(cwd: Path) -> dict[str, Any]:
    manifest = cwd / "package.json"
    return load_manifest(manifest) if manifest.exists() else {}


def generate_notes(
    config: PluginConfig,
    context: Context,
    writer: ChangelogWriter | None = None,
) -> str:
    """Generate release notes for ``context.commits``.

    Returns:
        The changelog text, or "" when ``generateNotes`` is disabled.
    """
    logger = context.logger
    if not config.generate_notes:
        logger.log("Release notes scope disabled, skipping")
        return ""

    loaded_parser_opts, writer_opts = load_changelog_config(config)
    host, owner, repository = parse_repository_url(context.options.repository_url)
    hostname = urlsplit(host).hostname
    host_config = next(
        (conf for conf in HOSTS_CONFIG.values() if conf.hostname == hostname),
        HOSTS_CONFIG["default"],
    )
    parser_opts = {
        **DEFAULT_PARSER_OPTS,
        "referenceActions": host_config.reference_actions,
        "issuePrefixes": host_config.issue_prefixes,
        **loaded_parser_opts,
    }

    project = Project(context.cwd, logger)
    packages = [pkg for pkg in project.get_packages() if not pkg.private]

    def fill_scope(commit: ParsedCommit) -> ParsedCommit:
        if commit.scope:
            return commit
        has_diff = make_diff_predicate(f"{commit.hash}^!", project.root_path, logger)
        scope = [pkg.name for pkg in packages if has_diff(pkg)]
        if scope:
            commit.scope = ", ".join(scope)
        return commit

    parsed = filter_reverted(
        [
            parse_commit(raw.hash, raw.message, parser_opts)
            for raw in context.commits
            if raw.message.strip()
        ]
    )
    parsed = [fill_scope(commit) for commit in parsed if commit.type]

    previous_tag = context.last_release.git_tag or context.last_release.git_head
    current_tag = context.next_release.git_tag or context.next_release.git_head
    changelog_context = ChangelogContext(
        version=context.next_release.version,
        host=config.host or host,
        owner=owner,
        repository=repository,
        previous_tag=previous_tag,
        current_tag=current_tag,
        link_compare=(
            config.link_compare
            if config.link_compare is not None
            else bool(current_tag and previous_tag)
        ),
        link_references=config.link_references if config.link_references is not None else True,
        issue=config.issue or host_config.issue,
        commit=config.commit or host_config.commit,
        package_data=_root_package_data(context.cwd),
    )

    return (writer or MarkdownChangelogWriter()).write(parsed, changelog_context, writer_opts)


__all__ = [
    "ChangelogContext",
    "ChangelogWriter",
    "MarkdownChangelogWriter",
    "generate_notes",
    "parse_commit",
    "parse_repository_url",
]
