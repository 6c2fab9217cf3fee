"""Version bump engine.

Decides which version a release gets from three inputs: an explicit target
given on the command line, a bump level (--major/--minor/--patch), and the
two versions on record (latest Git tag and Cargo.toml).
"""

from __future__ import annotations

from collections.abc import Iterable

import semver

from .errors import ConsistencyError, InvariantViolation
from .versions import Bump, bump_version


def next_release_version(
    tag_version: semver.Version | None,
    manifest_version: semver.Version,
    *,
    target: semver.Version | None = None,
    level: Bump | None = None,
) -> semver.Version:
    """Compute the version to release.

    Args:
        tag_version: Version of the latest release tag, if any.
        manifest_version: Version currently in Cargo.toml.
        target: Explicit version; used verbatim, skipping all checks.
        level: Component to bump relative to ``tag_version``.

    Returns:
        The new release version.

    Raises:
        InvariantViolation: ``level`` given but there is no tag, or the tag
            is a prerelease.
        ConsistencyError: No ``level`` and the tag is not below the
            manifest version.

    Examples:
        tag 1.2.3, manifest 1.2.4-dev            → 1.2.4
        tag 1.2.3-alpha, manifest 1.2.3-alpha.1  → 1.2.3
        tag 1.2.3, level MINOR                   → 1.3.0
    """
    if target is not None:
        return target
    if level is not None:
        if tag_version is None:
            raise InvariantViolation("No Git tag to bump")
        if tag_version.prerelease:
            raise InvariantViolation("Latest Git tag is a prerelease; cannot bump")
        return bump_version(tag_version, level)
    if tag_version is not None and tag_version.compare(manifest_version) >= 0:
        raise ConsistencyError("Latest Git-tagged version exceeds manifest version")
    return semver.Version(
        manifest_version.major, manifest_version.minor, manifest_version.patch
    )


def check_untagged(version: semver.Version, tags: Iterable[str], prefix: str = "") -> None:
    """Refuse to release a version that already has a tag.

    Both ``{prefix}v{version}`` and ``{prefix}{version}`` count.

    Raises:
        ConsistencyError: If either tag exists.
    """
    existing = set(tags)
    if f"{prefix}v{version}" in existing or f"{prefix}{version}" in existing:
        raise ConsistencyError(f"New version v{version} already tagged")
