"""npm registry resolution and authentication.

The user's npmrc files are merged into a temporary npmrc owned by the
release session. When no token is configured for the target registry,
``NPM_TOKEN`` is written into it. ``npm whoami`` then proves the
credentials work.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from urllib.parse import urlsplit

from .errors import AuthenticationError
from .models import Context, Package
from .shell import run

OFFICIAL_REGISTRY = "https://registry.npmjs.org/"

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def npmrc_locations(context: Context) -> list[Path]:
    """Existing npmrc files, lowest priority first (user, then project)."""
    user_config = context.env.get("NPM_CONFIG_USERCONFIG")
    candidates = [
        Path(user_config) if user_config else Path.home() / ".npmrc",
        context.cwd / ".npmrc",
    ]
    seen: list[Path] = []
    for path in candidates:
        if path.is_file() and path not in seen:
            seen.append(path)
    return seen


def parse_npmrc(text: str, env: dict[str, str]) -> dict[str, str]:
    """Parse ``key = value`` lines, expanding ``${VAR}`` from ``env``."""
    config: dict[str, str] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", ";")) or "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        value = value.strip().strip("'\"")
        config[key.strip()] = _ENV_VAR_RE.sub(lambda m: env.get(m.group(1), ""), value)
    return config


def read_npm_config(context: Context) -> dict[str, str]:
    config: dict[str, str] = {}
    for path in npmrc_locations(context):
        config.update(parse_npmrc(path.read_text(), context.env))
    return config


def nerf_dart(url: str) -> str:
    """Reduce a registry URL to the ``//host/path/`` key npm uses for auth.

    Examples:
        "https://registry.npmjs.org/" → "//registry.npmjs.org/"
        "http://localhost:4873/npm" → "//localhost:4873/"
        "https://r.example.com/npm/" → "//r.example.com/npm/"
    """
    parts = urlsplit(url)
    path = parts.path
    if not path.endswith("/"):
        path = path.rsplit("/", 1)[0] + "/"
    return f"//{parts.netloc}{path}"


def get_registry(pkg: Package, context: Context) -> str:
    """Resolve the registry a package publishes to."""
    registry = pkg.publish_config.get("registry")
    if registry:
        return registry
    if context.env.get("NPM_CONFIG_REGISTRY"):
        return context.env["NPM_CONFIG_REGISTRY"]

    config = read_npm_config(context)
    if pkg.name.startswith("@"):
        scope = pkg.name.split("/", 1)[0]
        if config.get(f"{scope}:registry"):
            return config[f"{scope}:registry"]
    return config.get("registry", OFFICIAL_REGISTRY)


def has_auth_token(registry: str, config: dict[str, str]) -> bool:
    nerfed = nerf_dart(registry)
    if config.get(f"{nerfed}:_authToken") or config.get(f"{nerfed}:_auth"):
        return True
    if config.get(f"{nerfed}:username") and config.get(f"{nerfed}:_password"):
        return True
    return bool(config.get("_authToken") or config.get("_auth"))


def set_npmrc_auth(npmrc: Path, registry: str, context: Context) -> None:
    """Write the session npmrc, adding ``NPM_TOKEN`` when nothing else authenticates.

    Raises:
        AuthenticationError: If no credentials exist for ``registry``.
    """
    logger = context.logger
    logger.log("Verify authentication for registry %s", registry)

    locations = npmrc_locations(context)
    if locations:
        logger.log("Reading npm config from %s", ", ".join(str(p) for p in locations))
    current_config = "\n".join(path.read_text() for path in locations)

    npmrc.parent.mkdir(parents=True, exist_ok=True)
    if has_auth_token(registry, read_npm_config(context)):
        npmrc.write_text(current_config)
        return

    if context.env.get("NPM_TOKEN"):
        old_config = f"{current_config}\n" if current_config else ""
        npmrc.write_text(f"{old_config}{nerf_dart(registry)}:_authToken = ${{NPM_TOKEN}}")
        logger.log("Wrote NPM_TOKEN to %s", npmrc)
        return

    raise AuthenticationError(
        "No npm token specified.",
        f"An npm token must be created and set in the `NPM_TOKEN` environment "
        f"variable on your CI environment to publish to {registry}.",
        code="ENONPMTOKEN",
    )


def verify_auth(npmrc: Path, pkg: Package, context: Context) -> None:
    """Check that the configured credentials are accepted by the registry.

    Raises:
        AuthenticationError: If no token is configured or npm rejects it.
    """
    registry = get_registry(pkg, context)
    set_npmrc_auth(npmrc, registry, context)

    try:
        run(
            "npm",
            "whoami",
            "--userconfig",
            str(npmrc),
            "--registry",
            registry,
            cwd=context.cwd,
            env=context.env,
            stdout=context.stdout,
            stderr=context.stderr,
        )
    except subprocess.CalledProcessError as exc:
        raise AuthenticationError(
            "Invalid npm token.",
            f"The npm token configured in the `NPM_TOKEN` environment variable "
            f"must be a valid token allowing to publish to the registry {registry}.",
            code="EINVALIDNPMTOKEN",
        ) from exc
