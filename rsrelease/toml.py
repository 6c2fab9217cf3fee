"""Cargo.toml reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying manifests.
This matters because every rewrite ends up in a release commit.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import tomlkit

from .errors import InvariantViolation

# Dependency table names and the kind each one counts as. The underscore
# spellings are accepted by Cargo for backwards compatibility.
DEPENDENCY_TABLES = {
    "dependencies": "dependencies",
    "dev-dependencies": "dev-dependencies",
    "dev_dependencies": "dev-dependencies",
    "build-dependencies": "build-dependencies",
    "build_dependencies": "build-dependencies",
}


def load_manifest(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a Cargo.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def save_manifest(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_package_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract [package].name, or ``fallback`` if it is not set."""
    return str(doc.get("package", {}).get("name", fallback))


def get_package_version(
    doc: tomlkit.TOMLDocument, workspace_doc: tomlkit.TOMLDocument | None = None
) -> str:
    """Extract [package].version, defaulting to '0.0.0'.

    ``version.workspace = true`` is resolved against
    [workspace.package].version of ``workspace_doc``.
    """
    version = doc.get("package", {}).get("version", "0.0.0")
    if isinstance(version, dict) and version.get("workspace"):
        ws = workspace_doc if workspace_doc is not None else doc
        version = ws.get("workspace", {}).get("package", {}).get("version", "0.0.0")
    return str(version)


def get_publish(doc: tomlkit.TOMLDocument) -> bool:
    """Whether the package may be published to a registry.

    ``publish = false`` and ``publish = []`` both disable publishing.
    """
    return bool(doc.get("package", {}).get("publish", True))


def get_workspace_members(doc: tomlkit.TOMLDocument) -> tuple[list[str], list[str]]:
    """Extract [workspace].members and [workspace].exclude glob patterns."""
    workspace = doc.get("workspace", {})
    return list(workspace.get("members", [])), list(workspace.get("exclude", []))


def has_bin_table(doc: tomlkit.TOMLDocument) -> bool:
    return bool(doc.get("bin"))


def has_lib_table(doc: tomlkit.TOMLDocument) -> bool:
    return "lib" in doc


def set_package_field(doc: tomlkit.TOMLDocument, key: str, value: Any) -> None:
    """Set a key in [package], keeping the table's existing shape.

    Raises:
        InvariantViolation: If there is no [package] table.
    """
    package = doc.get("package")
    if not isinstance(package, dict):
        raise InvariantViolation("No [package] table in Cargo.toml")
    package[key] = value


def iter_dependency_tables(doc: tomlkit.TOMLDocument) -> Iterator[tuple[str, dict]]:
    """Yield (kind, table) for every dependency table in a manifest.

    Covers the top-level tables and their [target.<cfg>.*] counterparts.
    """
    containers: list[dict] = [doc]
    targets = doc.get("target")
    if isinstance(targets, dict):
        containers.extend(t for t in targets.values() if isinstance(t, dict))
    for container in containers:
        for table_name, kind in DEPENDENCY_TABLES.items():
            table = container.get(table_name)
            if isinstance(table, dict):
                yield kind, table


def dependency_target(key: str, entry: Any) -> str:
    """Name of the package a dependency entry refers to.

    Renamed dependencies (``alias = { package = "real-name", ... }``) refer
    to their ``package`` value rather than their key.
    """
    if isinstance(entry, dict) and "package" in entry:
        return str(entry["package"])
    return key


def dependency_requirement(entry: Any) -> str:
    """The version requirement of a dependency entry ("*" if none is given)."""
    if isinstance(entry, dict):
        return str(entry.get("version", "*"))
    return str(entry)


def set_dependency_requirement(
    doc: tomlkit.TOMLDocument, package: str, requirement: str
) -> set[str]:
    """Rewrite every requirement on ``package`` to ``requirement``.

    Each entry keeps its shape: ``foo = "1.0"`` stays a string, inline
    tables and [dependencies.foo] tables get their ``version`` key set.
    Entries inheriting from the workspace (``workspace = true``) and table
    entries without a ``version`` key (bare ``path`` dependencies) are left
    alone.

    Returns:
        The dependency kinds ("dependencies", "dev-dependencies",
        "build-dependencies") whose tables were modified.
    """
    touched: set[str] = set()
    for kind, table in iter_dependency_tables(doc):
        for key in list(table.keys()):
            entry = table[key]
            if dependency_target(key, entry) != package:
                continue
            if isinstance(entry, dict):
                if entry.get("workspace") or "version" not in entry:
                    continue
                if entry["version"] == requirement:
                    continue
                entry["version"] = requirement
            else:
                if str(entry) == requirement:
                    continue
                table[key] = requirement
            touched.add(kind)
    return touched
