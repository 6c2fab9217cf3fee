"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import tomlkit

FOO_CHANGELOG = """\
v0.3.0 (in development)
-----------------------
- Added a frobnicator

v0.2.0 (2024-01-01)
-------------------
Initial release
"""

BAR_CHANGELOG = """\
v0.2.0 (2024-02-01)
-------------------
Initial release
"""

README = """\
[![Project Status: WIP – Initial development is in progress, but there has not yet been a stable, usable release suitable for the public.](https://www.repostatus.org/badges/latest/wip.svg)](https://www.repostatus.org/#wip)
[![CI Status](https://github.com/jdoe/foo/actions/workflows/test.yml/badge.svg)](https://github.com/jdoe/foo/actions/workflows/test.yml)
[![MIT License](https://img.shields.io/github/license/jdoe/foo.svg)](https://opensource.org/licenses/MIT)

[GitHub](https://github.com/jdoe/foo) | [Issues](https://github.com/jdoe/foo/issues)

This is the body.
"""

LICENSE = """\
MIT License

Copyright (c) 2023 Jane Doe

Permission is hereby granted, free of charge, to any person obtaining a copy
"""


def write_package(
    path: Path,
    name: str,
    version: str,
    *,
    extra: str = "",
    lib: bool = True,
    bin: bool = False,
    files: dict[str, str] | None = None,
) -> Path:
    """Create a crate directory with a Cargo.toml and source stubs."""
    path.mkdir(parents=True, exist_ok=True)
    (path / "Cargo.toml").write_text(
        f'[package]\nname = "{name}"\nversion = "{version}"\nedition = "2021"\n'
        + extra
    )
    (path / "src").mkdir(exist_ok=True)
    if lib:
        (path / "src" / "lib.rs").write_text("")
    if bin:
        (path / "src" / "main.rs").write_text("fn main() {}\n")
    for filename, content in (files or {}).items():
        (path / filename).write_text(content)
    return path / "Cargo.toml"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A three-crate workspace: bar depends on foo, baz dev-depends on bar.

    foo 0.3.0-dev is in development; bar 0.2.0 and baz 1.0.0 are released.
    """
    (tmp_path / "Cargo.toml").write_text(
        '[workspace]\nmembers = ["crates/*"]\nresolver = "2"\n'
    )
    crates = tmp_path / "crates"
    write_package(
        crates / "foo",
        "foo",
        "0.3.0-dev",
        files={"CHANGELOG.md": FOO_CHANGELOG, "README.md": README, "LICENSE": LICENSE},
    )
    write_package(
        crates / "bar",
        "bar",
        "0.2.0",
        extra='\n[dependencies]\nfoo = { path = "../foo", version = "^0.3.0-dev" }\n',
        files={"CHANGELOG.md": BAR_CHANGELOG},
    )
    write_package(
        crates / "baz",
        "baz",
        "1.0.0",
        extra='\n[dev-dependencies]\nbar = { path = "../bar", version = "0.2.0" }\n',
        lib=False,
        bin=True,
    )
    return tmp_path


@pytest.fixture
def single_package(tmp_path: Path) -> Path:
    """A standalone crate with README, CHANGELOG and LICENSE."""
    write_package(
        tmp_path,
        "foo",
        "0.3.0-dev",
        files={"CHANGELOG.md": FOO_CHANGELOG, "README.md": README, "LICENSE": LICENSE},
    )
    return tmp_path


@pytest.fixture
def sample_manifest() -> tomlkit.TOMLDocument:
    """A manifest using every shape of dependency entry."""
    content = """\
[package]
name = "bar"
version = "0.2.0"
edition = "2021"

[dependencies]
foo = "0.1.0"
quux = { path = "../quux", version = "1.0" }
renamed = { package = "foo", path = "../foo", version = "0.1.0" }
shared = { workspace = true }

[dependencies.glarch]
path = "../glarch"
version = "2.0"

[dev-dependencies]
foo = { path = "../foo", version = "0.1.0" }

[target.'cfg(unix)'.build-dependencies]
foo = "0.1"
"""
    return tomlkit.parse(content)


@pytest.fixture
def make_package() -> Callable[..., Path]:
    """Factory for extra crates: ``make_package(path, name, version, ...)``."""
    return write_package
