"""Tests for rsrelease.models."""

from __future__ import annotations

from pathlib import Path

from rsrelease.models import Action, Package, VersionBump


class TestPackage:
    def test_create_with_required_fields(self) -> None:
        pkg = Package(name="foo", manifest_path=Path("/ws/foo/Cargo.toml"), version="1.0.0")
        assert pkg.path == Path("/ws/foo")
        assert pkg.publish
        assert not pkg.is_root
        assert pkg.deps == []
        assert pkg.dependents == {}

    def test_dependents_are_per_instance(self) -> None:
        a = Package(name="a", manifest_path=Path("a/Cargo.toml"), version="1.0.0")
        b = Package(name="b", manifest_path=Path("b/Cargo.toml"), version="1.0.0")
        a.dependents["c"] = "^1.0"
        assert b.dependents == {}

    def test_version_is_mutable(self) -> None:
        pkg = Package(name="foo", manifest_path=Path("Cargo.toml"), version="1.0.0")
        pkg.version = "1.1.0-dev"
        assert pkg.version == "1.1.0-dev"


class TestVersionBump:
    def test_create(self) -> None:
        bump = VersionBump(old="0.3.0-dev", new="0.3.0")
        assert bump.old == "0.3.0-dev"
        assert bump.new == "0.3.0"


def test_action_values() -> None:
    assert {a.value for a in Action} == {
        "requirement-bumped",
        "dependency-bumped",
        "began-dev",
    }
