"""Tests for the rsrelease command line."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import semver
from click.testing import CliRunner

from rsrelease.cli import cli
from rsrelease.errors import ConsistencyError
from rsrelease.versions import Bump, RustVersion


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestInspect:
    @patch("rsrelease.release.git", return_value="")
    def test_current_package(
        self,
        mock_git: MagicMock,
        runner: CliRunner,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(workspace / "crates" / "foo")
        result = runner.invoke(cli, ["inspect"])
        assert result.exit_code == 0, result.output
        info = json.loads(result.output)
        assert info["current_package"]["name"] == "foo"
        assert info["current_package"]["version"] == "0.3.0-dev"
        assert "packages" not in info

    @patch("rsrelease.release.git", return_value="")
    def test_workspace_flag_and_chdir(
        self,
        mock_git: MagicMock,
        runner: CliRunner,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(workspace)
        result = runner.invoke(
            cli, ["-C", str(workspace / "crates" / "baz"), "inspect", "--workspace"]
        )
        assert result.exit_code == 0, result.output
        info = json.loads(result.output)
        assert info["current_package"]["bin"] is True
        assert len(info["packages"]) == 3


class TestRelease:
    @patch("rsrelease.cli.run_release")
    def test_bump_option(
        self,
        mock_release: MagicMock,
        runner: CliRunner,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(workspace)
        result = runner.invoke(cli, ["release", "--minor", "-p", "bar"])
        assert result.exit_code == 0, result.output
        (_, package), kwargs = mock_release.call_args
        assert package.name == "bar"
        assert kwargs == {"target": None, "level": Bump.MINOR}

    @patch("rsrelease.cli.run_release")
    def test_explicit_version(
        self,
        mock_release: MagicMock,
        runner: CliRunner,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(workspace / "crates" / "foo")
        result = runner.invoke(cli, ["release", "v1.0.0"])
        assert result.exit_code == 0, result.output
        assert mock_release.call_args.kwargs["target"] == semver.Version(1, 0, 0)

    def test_version_and_bump(
        self, runner: CliRunner, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(workspace / "crates" / "foo")
        result = runner.invoke(cli, ["release", "1.0.0", "--patch"])
        assert result.exit_code == 2
        assert "cannot be combined" in result.output

    def test_bad_version(
        self, runner: CliRunner, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(workspace / "crates" / "foo")
        result = runner.invoke(cli, ["release", "one.two"])
        assert result.exit_code == 2
        assert "invalid version" in result.output

    @patch("rsrelease.cli.run_release")
    def test_library_error(
        self,
        mock_release: MagicMock,
        runner: CliRunner,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        mock_release.side_effect = ConsistencyError("New version v0.3.0 already tagged")
        monkeypatch.chdir(workspace / "crates" / "foo")
        result = runner.invoke(cli, ["release"])
        assert result.exit_code == 1
        assert "Error: New version v0.3.0 already tagged" in result.output

    @patch("rsrelease.cli.run_release")
    def test_command_failure(
        self,
        mock_release: MagicMock,
        runner: CliRunner,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        mock_release.side_effect = subprocess.CalledProcessError(128, ["git", "push"])
        monkeypatch.chdir(workspace / "crates" / "foo")
        result = runner.invoke(cli, ["release"])
        assert result.exit_code == 1
        assert "Command `git push` failed with exit status 128" in result.output


class TestOtherCommands:
    def test_begin_dev_outside_package(
        self, runner: CliRunner, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(workspace)
        result = runner.invoke(cli, ["begin-dev"])
        assert result.exit_code == 1
        assert "Not currently located in a package" in result.output

    def test_begin_dev(
        self, runner: CliRunner, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(workspace)
        result = runner.invoke(cli, ["begin-dev", "--package", "baz"])
        assert result.exit_code == 0, result.output
        manifest = (workspace / "crates" / "baz" / "Cargo.toml").read_text()
        assert 'version = "1.1.0-dev"' in manifest

    @patch("rsrelease.cli.run_set_msrv")
    def test_set_msrv(
        self,
        mock_set_msrv: MagicMock,
        runner: CliRunner,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(workspace / "crates" / "bar")
        result = runner.invoke(cli, ["set-msrv", "1.70"])
        assert result.exit_code == 0, result.output
        package, msrv = mock_set_msrv.call_args.args
        assert package.name == "bar"
        assert msrv == RustVersion(1, 70)

    def test_set_msrv_invalid(
        self, runner: CliRunner, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(workspace / "crates" / "bar")
        result = runner.invoke(cli, ["set-msrv", "1.70-beta"])
        assert result.exit_code == 2
        assert "invalid Rust version" in result.output
