"""Error types raised by monorelease.

Every domain error carries a short ``code`` (e.g. ``EDIRTYWC``), a one-line
``message`` and optional multi-line ``details`` meant for the person running
the release. Validation problems are collected into an
:class:`AggregateReleaseError` so they can all be reported in one pass.
"""

from __future__ import annotations

from collections.abc import Iterable


class ReleaseError(Exception):
    """Base class for all monorelease errors."""

    code: str = "ERELEASE"

    def __init__(self, message: str, details: str = "", *, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ConfigValidationError(ReleaseError):
    """A plugin option has an invalid value or shape."""

    def __init__(self, option: str, value: object, expected: str):
        super().__init__(
            f"Invalid `{option}` option.",
            f"The `{option}` option, if defined, must be {expected}.\n\n"
            f"Your configuration for the `{option}` option is `{value!r}`.",
            code=f"EINVALID{option.upper()}",
        )
        self.option = option
        self.value = value


class PackageConfigError(ReleaseError):
    """Workspace globs cannot be expanded safely."""

    code = "EPKGCONFIG"


class MissingPackagesDeclarationError(ReleaseError):
    """A workspace file exists but declares no package globs."""

    code = "EWORKSPACES"


class DuplicatePackageNameError(ReleaseError):
    """Two or more workspace packages share a name."""

    code = "ENAME"

    def __init__(self, name: str, locations: Iterable[str]):
        self.name = name
        self.locations = list(locations)
        super().__init__(
            "\n\t".join([f'Package name "{name}" used in multiple packages:', *self.locations])
        )


class WorkspaceResolutionError(ReleaseError):
    """A ``workspace:`` range does not match the local package."""

    code = "EWORKSPACE"

    def __init__(self, dep_name: str, spec: str):
        self.dep_name = dep_name
        self.spec = spec
        super().__init__(
            f'Package specification "{dep_name}@{spec}" could not be resolved within '
            "the workspace. To reference a non-matching, remote version of a local "
            "dependency, remove the 'workspace:' prefix."
        )


class GitDirtyWorkingCopyError(ReleaseError):
    """The git working copy has tracked modifications."""

    code = "EDIRTYWC"

    def __init__(self, files: list[str]):
        self.files = files
        listing = "".join(f"{line}\n" for line in files)
        super().__init__(
            "Dirty git working copy.",
            f"The git working copy must be clean before releasing:\n\n{listing}",
        )


class AuthenticationError(ReleaseError):
    """Registry credentials are missing or rejected."""

    code = "EINVALIDNPMTOKEN"


class NoPackageNameError(ReleaseError):
    """The root manifest has no ``name``."""

    code = "ENOPKGNAME"

    def __init__(self, path: str = "package.json"):
        super().__init__(
            "Missing `name` property in `package.json`.",
            f"The `package.json`'s name property is required in order to publish "
            f"a package to the npm registry ({path}).",
        )


class NoPackageManifestError(ReleaseError):
    """The expected ``package.json`` does not exist."""

    code = "ENOPKG"

    def __init__(self, path: str = "package.json"):
        super().__init__(
            "Missing `package.json` file.",
            f"A package.json file at the root of your project is required "
            f"to release on npm (looked for {path}).",
        )


class ManifestParseError(ReleaseError):
    """A manifest file is not a valid JSON object."""

    code = "EMANIFEST"


class AggregateReleaseError(ReleaseError):
    """Several errors found during one validation pass."""

    code = "EAGGREGATE"

    def __init__(self, errors: Iterable[ReleaseError]):
        self.errors = list(errors)
        super().__init__(
            f"{len(self.errors)} error(s) found",
            "\n".join(str(error) for error in self.errors),
        )

    def __iter__(self):
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)
