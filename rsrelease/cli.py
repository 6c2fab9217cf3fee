"""CLI entry point for rsrelease."""

from __future__ import annotations

import functools
import json
import os
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
import semver

from .errors import RsReleaseError
from .release import describe, run_begin_dev, run_release, run_set_msrv
from .versions import Bump, RustVersion, parse_version
from .workspace import PackageSet


def _fatal_errors(f: Callable[..., Any]) -> Callable[..., Any]:
    """Turn library and subprocess failures into click errors (exit 1)."""

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except RsReleaseError as exc:
            raise click.ClickException(str(exc)) from exc
        except subprocess.CalledProcessError as exc:
            cmd = " ".join(str(a) for a in exc.cmd)
            raise click.ClickException(
                f"Command `{cmd}` failed with exit status {exc.returncode}"
            ) from exc

    return wrapper


def _version_arg(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> semver.Version | None:
    if value is None:
        return None
    try:
        return parse_version(value)
    except RsReleaseError as exc:
        raise click.BadParameter(str(exc)) from exc


def _msrv_arg(ctx: click.Context, param: click.Parameter, value: str) -> RustVersion:
    try:
        return RustVersion.parse(value)
    except RsReleaseError as exc:
        raise click.BadParameter(str(exc)) from exc


package_option = click.option(
    "-p",
    "--package",
    "package_name",
    metavar="NAME",
    help="Operate on this workspace package instead of the current one.",
)


@click.group()
@click.version_option(package_name="rsrelease")
@click.option(
    "-C",
    "--chdir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Change to this directory before doing anything.",
)
def cli(chdir: Path | None) -> None:
    """Release and changelog automation for Rust projects."""
    if chdir is not None:
        os.chdir(chdir)


@cli.command()
@click.argument("version", required=False, callback=_version_arg)
@click.option("--major", "level", flag_value="major", help="Release the next major version.")
@click.option("--minor", "level", flag_value="minor", help="Release the next minor version.")
@click.option("--patch", "level", flag_value="patch", help="Release the next patch version.")
@package_option
@_fatal_errors
def release(
    version: semver.Version | None, level: str | None, package_name: str | None
) -> None:
    """Prepare & publish a new release for a package.

    Without VERSION or a bump option, the Cargo.toml version is released
    with any prerelease suffix removed.
    """
    if version is not None and level is not None:
        raise click.UsageError("VERSION cannot be combined with a bump option")
    pkgset = PackageSet.locate()
    package = pkgset.get(package_name)
    run_release(
        pkgset, package, target=version, level=Bump(level) if level else None
    )


@cli.command("begin-dev")
@package_option
@_fatal_errors
def begin_dev(package_name: str | None) -> None:
    """Prepare for development of the next version of a package."""
    pkgset = PackageSet.locate()
    run_begin_dev(pkgset, pkgset.get(package_name))


@cli.command("set-msrv")
@click.argument("msrv", metavar="VERSION", callback=_msrv_arg)
@package_option
@_fatal_errors
def set_msrv(msrv: RustVersion, package_name: str | None) -> None:
    """Update a package's minimum supported Rust version."""
    pkgset = PackageSet.locate()
    run_set_msrv(pkgset.get(package_name), msrv)


@cli.command()
@click.option("--workspace", is_flag=True, help="Also describe every workspace package.")
@_fatal_errors
def inspect(workspace: bool) -> None:
    """Print details about the current project as JSON."""
    pkgset = PackageSet.locate()
    click.echo(json.dumps(describe(pkgset, workspace=workspace), indent=4))
