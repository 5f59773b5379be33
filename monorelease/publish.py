"""Publishing the released packages to the npm registry."""

from __future__ import annotations

from pathlib import Path

from .auth import OFFICIAL_REGISTRY, get_registry
from .models import Context, Package, PluginConfig, ReleaseInfo
from .shell import run
from .versions import is_valid_range


def get_channel(channel: str | None) -> str:
    """Map a release channel to an npm dist-tag.

    Examples:
        None → "latest"
        "next" → "next"
        "1.x" → "release-1.x"
    """
    if not channel:
        return "latest"
    return f"release-{channel}" if is_valid_range(channel) else channel


def get_release_info(
    pkg: Package, context: Context, dist_tag: str, registry: str
) -> ReleaseInfo:
    version = context.next_release.version
    url = None
    if registry.rstrip("/") == OFFICIAL_REGISTRY.rstrip("/"):
        url = f"https://www.npmjs.com/package/{pkg.name}/v/{version}"
    return ReleaseInfo(
        name=f"npm package (@{dist_tag} dist-tag)",
        url=url,
        channel=dist_tag,
    )


def publish_packages(
    npmrc: Path, config: PluginConfig, pkg: Package, context: Context
) -> ReleaseInfo | None:
    """Publish every package whose manifest version is not yet on the registry.

    Delegates to ``lerna publish from-package``, one package at a time.

    Returns:
        Release info, or None when ``npmPublish`` is false.
    """
    logger = context.logger
    if config.npm_publish is False:
        logger.log("Skip publishing to npm registry as npmPublish false")
        return None

    registry = get_registry(pkg, context)
    dist_tag = get_channel(context.next_release.channel)

    logger.log("Publishing version %s to npm registry", context.next_release.version)
    run(
        "npx",
        "--no-install",
        "lerna",
        "publish",
        "from-package",
        "--loglevel",
        "verbose",
        "--yes",
        "--concurrency",
        "1",
        # auth was verified already, and lerna does not pass it through
        "--no-verify-access",
        "--dist-tag",
        dist_tag,
        "--registry",
        registry,
        cwd=context.cwd,
        # lerna does not support --userconfig
        env={**context.env, "NPM_CONFIG_USERCONFIG": str(npmrc)},
        stdout=context.stdout,
        stderr=context.stderr,
    )

    return get_release_info(pkg, context, dist_tag, registry)
