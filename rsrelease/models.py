"""Data models for rsrelease.

These Pydantic models describe workspace packages and the changes made to
them while releasing or cascading a version bump.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class Package(BaseModel):
    """Metadata for a single package in a Cargo workspace.

    Attributes:
        name: Package name from [package].name.
        manifest_path: Absolute path to the package's Cargo.toml.
        version: Current version string from the manifest.
        is_bin: Whether the package builds a binary target.
        is_lib: Whether the package builds a library target.
        publish: False when the manifest sets ``publish = false`` or
                 ``publish = []``.
        is_root: Whether this is the package in the workspace root manifest.
        deps: Names of workspace packages this one depends on through
              [dependencies] (dev- and build-dependencies excluded).
        dependents: Map of workspace package name → the version requirement
                    it declares on this package.
    """

    name: str
    manifest_path: Path
    version: str
    is_bin: bool = False
    is_lib: bool = False
    publish: bool = True
    is_root: bool = False
    deps: list[str] = Field(default_factory=list)
    dependents: dict[str, str] = Field(default_factory=dict)

    @property
    def path(self) -> Path:
        """Directory containing the package's Cargo.toml."""
        return self.manifest_path.parent


class VersionBump(BaseModel):
    """Records a version change for a package.

    Attributes:
        old: The version before bumping.
        new: The version after bumping.
    """

    old: str
    new: str


class Action(Enum):
    """What the cascade did to a package."""

    # A dev- or build-dependency requirement was rewritten
    REQUIREMENT_BUMPED = "requirement-bumped"
    # A normal dependency requirement was rewritten and a changelog entry added
    DEPENDENCY_BUMPED = "dependency-bumped"
    # The package's own version moved to the next "-dev" version
    BEGAN_DEV = "began-dev"
