"""Workspace discovery: packages, manifests and reverse dependency edges.

Reads the workspace root Cargo.toml to find member packages, then records
for each package which other members depend on it (through a ``path``
dependency) and with what version requirement. Those "dependents" edges are
what the cascade walks when a version changes.
"""

from __future__ import annotations

import glob
from collections.abc import Iterable, Iterator
from pathlib import Path

from .errors import ConsistencyError, InvariantViolation
from .models import Package
from .toml import (
    dependency_requirement,
    get_package_name,
    get_package_version,
    get_publish,
    get_workspace_members,
    has_bin_table,
    has_lib_table,
    iter_dependency_tables,
    load_manifest,
)


def find_root_manifest(start: Path) -> Path:
    """Find the manifest of the project containing ``start``.

    The nearest Cargo.toml at or above ``start`` that declares a
    [workspace] wins; without one, the nearest Cargo.toml is used.
    """
    start = start.resolve()
    candidates = [
        d / "Cargo.toml" for d in (start, *start.parents) if (d / "Cargo.toml").is_file()
    ]
    if not candidates:
        raise InvariantViolation(
            f"Could not find Cargo.toml in {start} or any parent directory"
        )
    for manifest in candidates:
        if "workspace" in load_manifest(manifest):
            return manifest
    return candidates[0]


class PackageSet:
    """All packages of a workspace, indexed by name and by manifest path."""

    def __init__(
        self,
        packages: Iterable[Package],
        root_manifest: Path,
        is_workspace: bool = False,
    ) -> None:
        self.root_manifest = root_manifest
        self.is_workspace = is_workspace
        self._by_name: dict[str, Package] = {}
        for pkg in packages:
            if pkg.name in self._by_name:
                raise ConsistencyError(
                    f"Workspace contains multiple packages named {pkg.name!r};"
                    " not proceeding"
                )
            self._by_name[pkg.name] = pkg
        self._by_manifest = {p.manifest_path: p for p in self._by_name.values()}

    @classmethod
    def locate(cls, cwd: Path | None = None) -> PackageSet:
        """Discover the workspace containing ``cwd`` (default: current dir)."""
        return cls.discover(find_root_manifest(cwd or Path.cwd()))

    @classmethod
    def discover(cls, root_manifest: Path) -> PackageSet:
        """Scan a workspace starting from its root Cargo.toml.

        Members come from [workspace].members globs minus
        [workspace].exclude, plus the root [package] if there is one.

        Raises:
            InvariantViolation: If no packages are found.
            ConsistencyError: On duplicate package names or a dependency cycle.
        """
        root_manifest = root_manifest.resolve()
        root = root_manifest.parent
        root_doc = load_manifest(root_manifest)

        manifests: list[Path] = []
        if "package" in root_doc:
            manifests.append(root_manifest)
        members, exclude = get_workspace_members(root_doc)
        excluded = {
            Path(match).resolve()
            for pattern in exclude
            for match in glob.glob(str(root / pattern))
        }
        for pattern in members:
            for match in sorted(glob.glob(str(root / pattern))):
                d = Path(match).resolve()
                manifest = d / "Cargo.toml"
                if d in excluded or not manifest.is_file() or manifest in manifests:
                    continue
                manifests.append(manifest)

        if not manifests:
            raise InvariantViolation(f"No packages found in {root_manifest}")

        # First pass: basic info from each manifest
        packages: list[Package] = []
        docs = {}
        for manifest in manifests:
            doc = load_manifest(manifest)
            d = manifest.parent
            pkg = Package(
                name=get_package_name(doc, d.name),
                manifest_path=manifest,
                version=get_package_version(doc, root_doc),
                is_bin=(d / "src" / "main.rs").exists()
                or (d / "src" / "bin").is_dir()
                or has_bin_table(doc),
                is_lib=(d / "src" / "lib.rs").exists() or has_lib_table(doc),
                publish=get_publish(doc),
                is_root=manifest == root_manifest,
            )
            packages.append(pkg)
            docs[pkg.name] = doc

        pkgset = cls(packages, root_manifest, is_workspace="workspace" in root_doc)

        # Second pass: path dependencies pointing at other members
        by_dir = {p.path: p for p in pkgset}
        for pkg in pkgset:
            for kind, table in iter_dependency_tables(docs[pkg.name]):
                for entry in table.values():
                    if not isinstance(entry, dict) or "path" not in entry:
                        continue
                    target = by_dir.get((pkg.path / str(entry["path"])).resolve())
                    if target is None or target.name == pkg.name:
                        continue
                    # Normal dependencies are seen first and take precedence
                    target.dependents.setdefault(
                        pkg.name, dependency_requirement(entry)
                    )
                    if kind == "dependencies" and target.name not in pkg.deps:
                        pkg.deps.append(target.name)

        pkgset.ordered()
        return pkgset

    def __iter__(self) -> Iterator[Package]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def by_name(self, name: str) -> Package | None:
        return self._by_name.get(name)

    def by_manifest_path(self, manifest_path: Path) -> Package | None:
        return self._by_manifest.get(manifest_path.resolve())

    def require(self, name: str) -> Package:
        """Look up a package that the workspace graph says must exist.

        Raises:
            ConsistencyError: If the package is not part of the workspace.
        """
        pkg = self.by_name(name)
        if pkg is None:
            raise ConsistencyError(
                f"Package {name!r} is recorded as a dependent but is not in"
                " the current workspace"
            )
        return pkg

    def root_package(self) -> Package | None:
        return next((p for p in self if p.is_root), None)

    def current_package(self, cwd: Path | None = None) -> Package | None:
        """The package whose directory is, or contains, ``cwd``."""
        start = (cwd or Path.cwd()).resolve()
        for d in (start, *start.parents):
            pkg = self.by_manifest_path(d / "Cargo.toml")
            if pkg is not None:
                return pkg
        return None

    def get(self, name: str | None = None, cwd: Path | None = None) -> Package:
        """Select a package by name, or the current package if name is None.

        Raises:
            InvariantViolation: If no such package exists.
        """
        if name is not None:
            pkg = self.by_name(name)
            if pkg is None:
                raise InvariantViolation(
                    f"No package named {name!r} found in current project"
                )
            return pkg
        pkg = self.current_package(cwd)
        if pkg is None:
            raise InvariantViolation("Not currently located in a package")
        return pkg

    def ordered(self) -> list[Package]:
        """Packages with their [dependencies] on other members first.

        Packages are visited by name, so the order is stable.

        Raises:
            ConsistencyError: If normal dependencies form a cycle; the
                message spells out the cycle, e.g. "a → b → a".
        """
        order: list[Package] = []
        # False while a package is on the current path, True once placed
        placed: dict[str, bool] = {}

        def visit(pkg: Package, path: list[str]) -> None:
            state = placed.get(pkg.name)
            if state:
                return
            if state is False:
                cycle = [*path[path.index(pkg.name) :], pkg.name]
                raise ConsistencyError(
                    "Dependency cycle between workspace packages: "
                    + " → ".join(cycle)
                )
            placed[pkg.name] = False
            for dep in sorted(pkg.deps):
                if dep in self._by_name:
                    visit(self._by_name[dep], [*path, pkg.name])
            placed[pkg.name] = True
            order.append(pkg)

        for name in sorted(self._by_name):
            visit(self._by_name[name], [])
        return order

    def tag_prefix(self, package: Package) -> str:
        """Prefix of the package's Git tags: "" for the root package,
        "{name}/" for other workspace members."""
        if package.is_root or not self.is_workspace:
            return ""
        return f"{package.name}/"
