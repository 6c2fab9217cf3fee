"""Per-package file operations.

Each function reads one of a package's files (Cargo.toml, CHANGELOG.md,
README.md, LICENSE), changes it, and writes the whole file back. Files
that a package may legitimately lack load as None.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TypeVar

import semver

from .changelog import Changelog
from .copyright import update_copyright_years
from .errors import FileParseError, InvariantViolation, ParseError
from .models import Package
from .readme import Readme
from .shell import run
from .toml import load_manifest, save_manifest, set_package_field
from .versions import RustVersion

CHANGELOG_FILE = "CHANGELOG.md"
README_FILE = "README.md"
LICENSE_FILE = "LICENSE"

T = TypeVar("T")


def _load(path: Path, parse: Callable[[str], T]) -> T | None:
    if not path.exists():
        return None
    try:
        return parse(path.read_text())
    except ParseError as exc:
        raise FileParseError(path.name, exc) from exc


def load_changelog(pkg: Package) -> Changelog | None:
    return _load(pkg.path / CHANGELOG_FILE, Changelog.parse)


def save_changelog(pkg: Package, chlog: Changelog) -> None:
    (pkg.path / CHANGELOG_FILE).write_text(str(chlog))


def load_readme(pkg: Package) -> Readme | None:
    return _load(pkg.path / README_FILE, Readme.parse)


def save_readme(pkg: Package, readme: Readme) -> None:
    (pkg.path / README_FILE).write_text(str(readme))


def set_cargo_version(pkg: Package, version: semver.Version) -> None:
    """Write [package].version and update ``pkg.version`` to match.

    Raises:
        InvariantViolation: If the manifest has no [package] table or the
            version is inherited from [workspace.package].
    """
    doc = load_manifest(pkg.manifest_path)
    package = doc.get("package")
    current = package.get("version") if isinstance(package, dict) else None
    if isinstance(current, dict) and current.get("workspace"):
        raise InvariantViolation(
            f"Version of {pkg.name} is inherited from [workspace.package];"
            " cannot set it per package"
        )
    set_package_field(doc, "version", str(version))
    save_manifest(pkg.manifest_path, doc)
    pkg.version = str(version)


def set_rust_version(pkg: Package, msrv: RustVersion) -> None:
    """Write [package].rust-version."""
    doc = load_manifest(pkg.manifest_path)
    set_package_field(doc, "rust-version", str(msrv))
    save_manifest(pkg.manifest_path, doc)


def update_lockfile(pkg: Package, version: semver.Version, lock_dir: Path) -> bool:
    """Pin the package's entry in ``lock_dir``/Cargo.lock to ``version``.

    Returns:
        False if there is no Cargo.lock to update.
    """
    if not (lock_dir / "Cargo.lock").exists():
        return False
    run(
        "cargo",
        "update",
        "-p",
        pkg.name,
        "--precise",
        str(version),
        "--offline",
        cwd=lock_dir,
    )
    return True


def update_license_years(pkg: Package, years: Iterable[int]) -> None:
    """Add ``years`` to the copyright line of the package's LICENSE.

    Raises:
        InvariantViolation: If LICENSE is missing or has no copyright line.
    """
    path = pkg.path / LICENSE_FILE
    if not path.exists():
        raise InvariantViolation(f"{pkg.name} has no {LICENSE_FILE} file")
    text = path.read_text()
    new = update_copyright_years(text, years)
    if new != text:
        path.write_text(new)


def dependency_bullet(dependency: str, version: semver.Version) -> tuple[str, str]:
    """Changelog (prefix, line) recording a dependency requirement increase."""
    prefix = f"- Increase `{dependency}` dependency to"
    return prefix, f"{prefix} `{version}`"


def add_dependency_bullet(
    pkg: Package, dependency: str, version: semver.Version
) -> bool:
    """Record a dependency increase in the top section of the changelog.

    A previous bullet for the same dependency is replaced rather than
    duplicated. Packages without a CHANGELOG.md are left alone.

    Returns:
        True if CHANGELOG.md was rewritten.
    """
    chlog = load_changelog(pkg)
    if chlog is None:
        return False
    if not chlog.latest().upsert_bullet(*dependency_bullet(dependency, version)):
        return False
    save_changelog(pkg, chlog)
    return True
