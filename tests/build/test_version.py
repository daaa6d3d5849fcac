# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for version resolution.

One test runs real git against a throwaway repository when git is
available; the rest script git's answers through the FakeRunner.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from shipyard.build.version import parse_describe_output, resolve_version_tag
from shipyard.exceptions import ToolNotFoundError, VersionResolutionError


class TestParseDescribeOutput:
    def test_plain_tag(self) -> None:
        assert parse_describe_output("0.17.2\n").value == "0.17.2"

    def test_tag_with_distance(self) -> None:
        assert parse_describe_output("0.17.2-12-gabc1234").value == "0.17.2-12-gabc1234"

    def test_empty_output_fails(self) -> None:
        with pytest.raises(VersionResolutionError, match="no version"):
            parse_describe_output("  \n")

    def test_multiline_output_fails(self) -> None:
        with pytest.raises(VersionResolutionError, match="2 lines"):
            parse_describe_output("v1\nv2\n")

    @pytest.mark.parametrize("raw", ['v1"; panic!("', "v1 beta", "v1$(id)"])
    def test_unsafe_characters_fail(self, raw: str) -> None:
        with pytest.raises(VersionResolutionError, match="Malformed"):
            parse_describe_output(raw)


class TestResolveVersionTag:
    def test_runs_git_describe_in_root(self, tmp_path: Path, fake_runner) -> None:
        fake_runner.on(["git", "describe", "--tag"], stdout="v2.0.0-3-g1234567\n")

        version = resolve_version_tag(tmp_path, runner=fake_runner)

        assert version.value == "v2.0.0-3-g1234567"
        assert str(version) == "v2.0.0-3-g1234567"
        assert fake_runner.calls[0].cwd == tmp_path

    def test_git_failure_is_fatal(self, tmp_path: Path, fake_runner) -> None:
        fake_runner.on(["git"], exit_code=128, stderr="fatal: not a git repository")

        with pytest.raises(VersionResolutionError) as excinfo:
            resolve_version_tag(tmp_path, runner=fake_runner)
        assert "not a git repository" in excinfo.value.diagnostics

    def test_missing_git_is_a_version_error(self, tmp_path: Path) -> None:
        def runner(argv, **kwargs):
            raise ToolNotFoundError("'git' not found")

        with pytest.raises(VersionResolutionError, match="not found"):
            resolve_version_tag(tmp_path, runner=runner)

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_real_tagless_repository_fails(self, tmp_path: Path) -> None:
        subprocess.run(["git", "init", "-q", str(tmp_path)], check=True)
        subprocess.run(
            [
                "git", "-C", str(tmp_path),
                "-c", "user.email=ci@example.com", "-c", "user.name=ci",
                "commit", "-q", "--allow-empty", "-m", "initial",
            ],
            check=True,
        )

        with pytest.raises(VersionResolutionError):
            resolve_version_tag(tmp_path)
