"""Dependency cascade: carry one package's version change to its dependents.

When a workspace package moves to a new version, every other member that
depends on it through a ``path`` dependency may need its requirement
rewritten. A rewritten normal dependency is a user-visible change of the
dependent, so the dependent is moved into development (if it isn't there
already) and gets a changelog bullet, which may in turn cascade further.

Example:
    foo moves 0.3.0-dev → 0.3.0 and bar declares ``foo = "^0.3.0-dev"``:

    - bar's requirement becomes ``foo = "0.3.0"``
    - bar 0.2.0 moves to 0.3.0-dev (propagated to bar's own dependents)
    - bar's changelog gains "- Increase `foo` dependency to `0.3.0`"
"""

from __future__ import annotations

import semver

from .changelog import ChangelogSection, InProgress, Released
from .models import Action, Package
from .package import (
    add_dependency_bullet,
    load_changelog,
    save_changelog,
    set_cargo_version,
)
from .toml import load_manifest, save_manifest, set_dependency_requirement
from .versions import VersionReq, next_dev_version, parse_version
from .workspace import PackageSet


def requirement_outdated(requirement: str, version: semver.Version) -> bool:
    """Whether a dependent's requirement needs rewriting for ``version``.

    True when the requirement does not match, and also when ``version`` is a
    plain release still matched by a caret requirement on a prerelease
    ("^0.3.0-dev" matches 0.3.0 but pins the wrong side of the release).
    Requirements without comparators ("*", a path dependency without a
    version) never need rewriting.
    """
    req = VersionReq.parse(requirement)
    if not req.comparators:
        return False
    if not req.matches(version):
        return True
    return not version.prerelease and req.has_caret_prerelease()


def propagate(
    pkgset: PackageSet, package: Package, new_version: semver.Version
) -> set[tuple[str, Action]]:
    """Update every dependent of ``package`` for its move to ``new_version``.

    Dependents are visited in name order. Each outdated requirement is
    rewritten in place in the dependent's Cargo.toml, and the recorded
    requirement in ``package.dependents`` is updated so a repeated call
    with the same version does nothing.

    Returns:
        (package name, action) pairs for everything that was changed,
        including changes made by nested begin-dev steps.

    Raises:
        ConsistencyError: If a recorded dependent is not in ``pkgset``.
    """
    actions: set[tuple[str, Action]] = set()
    for name in sorted(package.dependents):
        requirement = package.dependents[name]
        dependent = pkgset.require(name)
        if not requirement_outdated(requirement, new_version):
            continue

        doc = load_manifest(dependent.manifest_path)
        touched = set_dependency_requirement(doc, package.name, str(new_version))
        if not touched:
            continue
        save_manifest(dependent.manifest_path, doc)
        package.dependents[name] = str(new_version)
        print(f"  {name}: {package.name} {requirement} → {new_version}")

        if "dependencies" in touched:
            actions |= begin_dev(pkgset, dependent)
            add_dependency_bullet(dependent, package.name, new_version)
            actions.add((name, Action.DEPENDENCY_BUMPED))
        else:
            actions.add((name, Action.REQUIREMENT_BUMPED))
    return actions


def begin_dev(pkgset: PackageSet, package: Package) -> set[tuple[str, Action]]:
    """Move a package into its next development cycle.

    A released version (no prerelease) becomes the next minor version with
    a "-dev" suffix, which is then propagated to the package's dependents.
    A version already in development is left as it is.

    Either way, a changelog whose top section is a released version (or
    which has no sections) gets an "in development" section for the
    upcoming version.
    """
    actions: set[tuple[str, Action]] = set()
    old = parse_version(package.version)
    new = next_dev_version(old)
    if new is not None:
        set_cargo_version(package, new)
        print(f"  {package.name}: {old} → {new}")
        actions.add((package.name, Action.BEGAN_DEV))
        actions |= propagate(pkgset, package, new)

    chlog = load_changelog(package)
    if chlog is not None and (
        not chlog.sections or isinstance(chlog.sections[0].header, Released)
    ):
        current = parse_version(package.version)
        upcoming = semver.Version(current.major, current.minor, current.patch)
        chlog.sections.insert(
            0, ChangelogSection(header=InProgress(version=upcoming))
        )
        save_changelog(package, chlog)
    return actions
