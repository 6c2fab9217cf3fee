"""Release pipeline: version → manifests → changelog/readme/license → git → dev.

This module orchestrates releasing one package of a Cargo workspace:
1. Decide the new version from the latest tag and Cargo.toml
2. Write it to Cargo.toml (and Cargo.lock for binaries)
3. Carry the new version to workspace dependents
4. Date the changelog section, update README badges/links and LICENSE years
5. Commit, tag, publish to crates.io and push
6. Begin the next development cycle

It also hosts the smaller commands that share these steps (begin-dev,
set-msrv) and the git queries they need.
"""

from __future__ import annotations

import datetime
import re
from pathlib import Path

import semver

from . import cascade
from .bump import check_untagged, next_release_version
from .changelog import Changelog, ChangelogSection, InProgress, Released
from .errors import InvariantViolation, VersionParseError
from .models import Action, Package, VersionBump
from .package import (
    load_changelog,
    load_readme,
    save_changelog,
    save_readme,
    set_cargo_version,
    set_rust_version,
    update_license_years,
    update_lockfile,
)
from .readme import Repostatus, repostatus_badge
from .shell import git, run, step
from .versions import Bump, RustVersion, bump_version, parse_version
from .workspace import PackageSet

_GITHUB_REMOTE_RE = re.compile(
    r"(?:https://|ssh://git@|git@)github\.com[:/]"
    r"(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?"
)


def list_tags(cwd: Path | None = None) -> list[str]:
    return git("tag", "--list", cwd=cwd).splitlines()


def latest_tag_version(prefix: str = "", cwd: Path | None = None) -> semver.Version | None:
    """Version of the most recently created ``{prefix}v*`` tag.

    Returns None if no such tag exists yet.
    """
    tags = git("tag", "--list", f"{prefix}v*", "--sort=-creatordate", cwd=cwd)
    if not tags:
        return None
    tag = tags.splitlines()[0]
    try:
        return parse_version(tag.removeprefix(prefix))
    except VersionParseError as exc:
        raise VersionParseError(
            f"Failed to parse latest Git tag {tag!r} as a version"
        ) from exc


def commit_years(cwd: Path | None = None) -> set[int]:
    """Years in which commits were authored."""
    out = git("log", "--format=%ad", "--date=format:%Y", cwd=cwd)
    return {int(y) for y in out.splitlines() if y}


def default_branch(cwd: Path | None = None) -> str:
    """Guess the repository's default branch.

    init.defaultBranch wins if such a branch exists, then the first of
    main/master/trunk/draft that does.
    """
    branches = set(git("branch", "--format=%(refname:short)", cwd=cwd).splitlines())
    configured = git("config", "--get", "init.defaultBranch", check=False, cwd=cwd)
    if configured and configured in branches:
        return configured
    for guess in ("main", "master", "trunk", "draft"):
        if guess in branches:
            return guess
    raise InvariantViolation("Could not determine default Git branch")


def github_repo(cwd: Path | None = None) -> tuple[str, str] | None:
    """(owner, repo) of the ``origin`` remote if it is hosted on GitHub."""
    url = git("remote", "get-url", "origin", check=False, cwd=cwd)
    m = _GITHUB_REMOTE_RE.fullmatch(url)
    if m is None:
        return None
    return m.group("owner"), m.group("repo")


def changelog_url(pkg: Package, owner: str, repo: str) -> str:
    """GitHub URL of the package's CHANGELOG.md on the default branch."""
    toplevel = Path(git("rev-parse", "--show-toplevel", cwd=pkg.path))
    rel = (pkg.path / "CHANGELOG.md").resolve().relative_to(toplevel.resolve())
    branch = default_branch(cwd=pkg.path)
    return f"https://github.com/{owner}/{repo}/blob/{branch}/{rel.as_posix()}"


def determine_version(
    pkgset: PackageSet,
    package: Package,
    *,
    target: semver.Version | None = None,
    level: Bump | None = None,
) -> VersionBump:
    """Pick the new version and make sure it hasn't been released yet."""
    step(f"Determining version for {package.name}")
    prefix = pkgset.tag_prefix(package)
    tag_version = latest_tag_version(prefix, cwd=package.path)
    print(f"  latest tag: {f'{prefix}v{tag_version}' if tag_version else '<none>'}")
    new = next_release_version(
        tag_version, parse_version(package.version), target=target, level=level
    )
    check_untagged(new, list_tags(cwd=package.path), prefix)
    print(f"  {package.name}: {package.version} → {new}")
    return VersionBump(old=package.version, new=str(new))


def write_version(
    pkgset: PackageSet, package: Package, version: semver.Version
) -> set[tuple[str, Action]]:
    """Set the version in Cargo.toml/Cargo.lock and update dependents."""
    step("Setting version")
    if str(version) != package.version:
        set_cargo_version(package, version)
        print(f"  Cargo.toml: {version}")
    if package.is_bin and update_lockfile(package, version, pkgset.root_manifest.parent):
        print(f"  Cargo.lock: {version}")
    return cascade.propagate(pkgset, package, version)


def mark_released(
    package: Package, version: semver.Version, date: datetime.date
) -> str | None:
    """Date the top changelog section.

    Returns:
        The section's content for the commit message, or None if the
        package has no changelog.

    Raises:
        InvariantViolation: If there is no section, or the top one is
            already released.
    """
    chlog = load_changelog(package)
    if chlog is None:
        return None
    section = chlog.latest()
    if isinstance(section.header, Released):
        raise InvariantViolation("No changelog section to update")
    section.header = Released(version=version, date=date)
    save_changelog(package, chlog)
    print(f"  CHANGELOG.md: {section.header}")
    return section.content


def update_readme(package: Package, version: semver.Version) -> bool:
    """Activate a WIP repostatus badge and add crates.io links.

    Returns:
        True if the repostatus badge went from WIP to Active.

    Raises:
        InvariantViolation: If the package has no README.md.
    """
    readme = load_readme(package)
    if readme is None:
        raise InvariantViolation("Package lacks README.md")
    changed = False
    activated = False
    if not version.prerelease and readme.repostatus() is Repostatus.WIP:
        readme.set_repostatus_badge(repostatus_badge(Repostatus.ACTIVE))
        print("  README.md: repostatus → Active")
        changed = activated = True
    if package.publish and readme.ensure_crates_links(package.name, package.is_lib):
        print("  README.md: added crates.io links")
        changed = True
    if changed:
        save_readme(package, readme)
    return activated


def commit_and_tag(
    package: Package, version: semver.Version, tag: str, notes: str | None
) -> None:
    """Commit all changes and create an annotated release tag."""
    step("Committing and tagging")
    body = "Initial release" if notes is None else notes.strip() or f"Version {version}"
    git("commit", "-a", "-m", f"v{version}", "-m", body, cwd=package.path)
    git("tag", "-a", "-m", f"Version {version}", tag, cwd=package.path)
    print(f"  {tag}")


def publish_and_push(package: Package) -> None:
    """``cargo publish`` (unless disabled) and push commit and tag."""
    if package.publish:
        step(f"Publishing {package.name}")
        run("cargo", "publish", "--manifest-path", str(package.manifest_path))
    step("Pushing")
    git("push", "--follow-tags", cwd=package.path)


def prepare_next(
    pkgset: PackageSet,
    package: Package,
    version: semver.Version,
    date: datetime.date,
) -> set[tuple[str, Action]]:
    """Start the next development cycle after a release.

    The package always moves to the minor version after ``version`` with a
    "-dev" suffix, also when ``version`` itself was a prerelease
    (1.0.0-rc.1 → 1.1.0-dev). A package without a changelog gets one, with
    an "Initial release" section for ``version``, before the in-development
    section is added.
    """
    step("Preparing for work on next version")
    upcoming = bump_version(version, Bump.MINOR)
    dev = upcoming.replace(prerelease="dev")
    set_cargo_version(package, dev)
    print(f"  {package.name}: {version} → {dev}")
    actions = {(package.name, Action.BEGAN_DEV)}
    actions |= cascade.propagate(pkgset, package, dev)

    chlog = load_changelog(package)
    if chlog is None:
        chlog = Changelog(
            sections=[
                ChangelogSection(
                    header=Released(version=version, date=date),
                    content="Initial release\n",
                )
            ]
        )
    chlog.sections.insert(0, ChangelogSection(header=InProgress(version=upcoming)))
    save_changelog(package, chlog)

    gh = github_repo(cwd=package.path)
    readme = load_readme(package)
    if gh is not None and readme is not None:
        if readme.ensure_changelog_link(changelog_url(package, *gh)):
            save_readme(package, readme)
            print("  README.md: added Changelog link")
    return actions


def run_release(
    pkgset: PackageSet,
    package: Package,
    *,
    target: semver.Version | None = None,
    level: Bump | None = None,
    today: datetime.date | None = None,
) -> semver.Version:
    """Execute the full release pipeline for one package.

    Args:
        pkgset: The workspace the package belongs to.
        package: Package to release.
        target: Explicit version to release.
        level: Bump relative to the latest tag instead.
        today: Release date (default: today).

    Returns:
        The released version.
    """
    today = today or datetime.date.today()
    bump = determine_version(pkgset, package, target=target, level=level)
    version = parse_version(bump.new)

    write_version(pkgset, package, version)

    step("Updating release metadata")
    notes = mark_released(package, version, today)
    update_readme(package, version)
    years = commit_years(cwd=package.path) | {today.year}
    update_license_years(package, years)
    print(f"  LICENSE: {', '.join(str(y) for y in sorted(years))}")

    tag = f"{pkgset.tag_prefix(package)}v{version}"
    commit_and_tag(package, version, tag, notes)
    publish_and_push(package)

    prepare_next(pkgset, package, version, today)
    print(f"\n{'=' * 60}\nReleased {package.name} {version}\n{'=' * 60}")
    return version


def run_begin_dev(pkgset: PackageSet, package: Package) -> set[tuple[str, Action]]:
    """Move ``package`` into development and cascade to its dependents."""
    step(f"Beginning development of {package.name}")
    actions = cascade.begin_dev(pkgset, package)
    if not actions:
        print(f"  {package.name} {package.version} is already in development")
    return actions


def run_set_msrv(package: Package, msrv: RustVersion) -> None:
    """Set rust-version, the README MSRV badge and a changelog bullet."""
    step(f"Setting MSRV of {package.name} to {msrv}")
    set_rust_version(package, msrv)
    print(f"  Cargo.toml: rust-version = {msrv}")

    readme = load_readme(package)
    if readme is not None and readme.set_msrv(msrv):
        save_readme(package, readme)
        print("  README.md: MSRV badge updated")

    chlog = load_changelog(package)
    if chlog is not None and chlog.sections:
        prefix = "- Increased MSRV to "
        if chlog.sections[0].upsert_bullet(prefix, f"{prefix}{msrv}"):
            save_changelog(package, chlog)
            print("  CHANGELOG.md: MSRV bullet updated")


def describe(pkgset: PackageSet, cwd: Path | None = None, workspace: bool = False) -> dict:
    """Machine-readable summary of the project for ``inspect``."""

    def details(pkg: Package) -> dict:
        return {
            "name": pkg.name,
            "version": pkg.version,
            "manifest_path": str(pkg.manifest_path),
            "bin": pkg.is_bin,
            "lib": pkg.is_lib,
            "publish": pkg.publish,
            "root_package": pkg.is_root,
            "dependents": dict(sorted(pkg.dependents.items())),
        }

    gh = github_repo(cwd=pkgset.root_manifest.parent)
    current = pkgset.current_package(cwd)
    out: dict = {
        "manifest_path": str(pkgset.root_manifest),
        "is_workspace": pkgset.is_workspace,
        "is_virtual_workspace": pkgset.is_workspace and pkgset.root_package() is None,
        "repository": f"{gh[0]}/{gh[1]}" if gh else None,
        "current_package": details(current) if current else None,
    }
    if workspace:
        out["packages"] = [details(p) for p in pkgset.ordered()]
    return out

