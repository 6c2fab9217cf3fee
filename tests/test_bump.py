"""Tests for rsrelease.bump."""

from __future__ import annotations

import pytest
import semver

from rsrelease.bump import check_untagged, next_release_version
from rsrelease.errors import ConsistencyError, InvariantViolation
from rsrelease.versions import Bump


def v(text: str) -> semver.Version:
    return semver.Version.parse(text)


class TestNextReleaseVersion:
    @pytest.mark.parametrize(
        ("tag", "manifest", "expected"),
        [
            (None, "0.1.0-dev", "0.1.0"),
            (None, "0.1.0", "0.1.0"),
            ("1.2.3", "1.2.4-dev", "1.2.4"),
            ("1.2.3", "1.3.0-dev", "1.3.0"),
            ("1.2.3-alpha", "1.2.3-alpha.1", "1.2.3"),
            ("1.2.3", "1.3.0+build.5", "1.3.0"),
        ],
    )
    def test_from_manifest(self, tag: str | None, manifest: str, expected: str) -> None:
        tag_version = v(tag) if tag is not None else None
        assert next_release_version(tag_version, v(manifest)) == v(expected)

    @pytest.mark.parametrize(("tag", "manifest"), [("1.2.3", "1.2.3"), ("1.3.0", "1.2.4-dev")])
    def test_tag_not_below_manifest(self, tag: str, manifest: str) -> None:
        with pytest.raises(ConsistencyError, match="exceeds manifest version"):
            next_release_version(v(tag), v(manifest))

    @pytest.mark.parametrize(
        ("level", "expected"),
        [(Bump.MAJOR, "2.0.0"), (Bump.MINOR, "1.3.0"), (Bump.PATCH, "1.2.4")],
    )
    def test_bump_level(self, level: Bump, expected: str) -> None:
        assert next_release_version(v("1.2.3"), v("1.3.0-dev"), level=level) == v(expected)

    def test_bump_ignores_manifest(self) -> None:
        # The manifest may lag behind or run ahead; bumps follow the tag.
        assert next_release_version(v("1.2.3"), v("0.1.0"), level=Bump.PATCH) == v("1.2.4")

    def test_bump_without_tag(self) -> None:
        with pytest.raises(InvariantViolation, match="No Git tag to bump"):
            next_release_version(None, v("0.1.0-dev"), level=Bump.MINOR)

    def test_bump_prerelease_tag(self) -> None:
        with pytest.raises(InvariantViolation, match="prerelease"):
            next_release_version(v("1.0.0-rc.1"), v("1.0.0-rc.2"), level=Bump.PATCH)

    def test_explicit_target(self) -> None:
        target = v("5.0.0-beta.1")
        assert next_release_version(v("9.0.0"), v("1.0.0"), target=target) == target


class TestCheckUntagged:
    def test_free(self) -> None:
        check_untagged(v("1.2.4"), ["v1.2.2", "v1.2.3"])

    @pytest.mark.parametrize("tag", ["v1.2.3", "1.2.3"])
    def test_already_tagged(self, tag: str) -> None:
        with pytest.raises(ConsistencyError, match="New version v1.2.3 already tagged"):
            check_untagged(v("1.2.3"), [tag])

    def test_prefix(self) -> None:
        check_untagged(v("1.2.3"), ["v1.2.3"], prefix="foo/")
        with pytest.raises(ConsistencyError):
            check_untagged(v("1.2.3"), ["foo/v1.2.3"], prefix="foo/")
