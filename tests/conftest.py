# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for shipyard tests.

Neither docker nor cargo is assumed to be installed. Pipelines take a
`runner` callable, and tests hand them a FakeRunner that records every
command and answers from a small table of scripted responses.
"""

import textwrap
from pathlib import Path
from typing import Callable, NamedTuple, Optional, Sequence

import pytest

from shipyard.utils.process import ToolResult


class RecordedCall(NamedTuple):
    argv: tuple[str, ...]
    cwd: Optional[Path]
    input_text: Optional[str]


class FakeRunner:
    """
    Stand-in for run_tool.

    `on(prefix, ...)` registers a response for every command whose argv starts
    with `prefix`. Later registrations win. Unmatched commands succeed with
    empty output. `effect` runs before the response is returned, which is how
    tests simulate a tool editing files.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._responses: list[tuple[tuple[str, ...], int, str, str, Optional[Callable]]] = []

    def on(
        self,
        prefix: Sequence[str],
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
        effect: Optional[Callable[[RecordedCall], None]] = None,
    ) -> "FakeRunner":
        self._responses.append((tuple(prefix), exit_code, stdout, stderr, effect))
        return self

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        input_text: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
    ) -> ToolResult:
        call = RecordedCall(tuple(argv), cwd, input_text)
        self.calls.append(call)

        for prefix, exit_code, stdout, stderr, effect in reversed(self._responses):
            if call.argv[: len(prefix)] == prefix:
                if effect is not None:
                    effect(call)
                return ToolResult(call.argv, exit_code, stdout, stderr, 0.0)
        return ToolResult(call.argv, 0, "", "", 0.0)

    def commands_starting_with(self, *prefix: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.argv[: len(prefix)] == prefix]

    def built_targets(self) -> list[str]:
        """Targets passed to `docker build --target`, in call order."""
        return [c.argv[3] for c in self.commands_starting_with("docker", "build")]


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def source_tree(tmp_path: Path) -> Path:
    """A minimal cargo workspace with one member crate."""
    root = tmp_path / "server"
    (root / "crates" / "utils" / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text(
        textwrap.dedent("""\
            [workspace]
            members = ["crates/utils"]
        """),
        encoding="utf-8",
    )
    (root / "crates" / "utils" / "Cargo.toml").write_text(
        '[package]\nname = "utils"\nversion = "0.1.0"\nedition = "2021"\n',
        encoding="utf-8",
    )
    (root / "crates" / "utils" / "src" / "lib.rs").write_text(
        "pub mod version;\n", encoding="utf-8",
    )
    (root / "crates" / "utils" / "src" / "version.rs").write_text(
        'pub const VERSION: &str = "unknown";\n', encoding="utf-8",
    )
    return root


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """The smallest config that passes schema validation."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "shipyard-test"
          log_level: "DEBUG"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (missing required field)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "shipyard-test"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file
