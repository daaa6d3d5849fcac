# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the fix-then-format lint workflow.

cargo is replaced with the FakeRunner. Effects attached to the fake
responses edit files the way clippy --fix and rustfmt would, so the change
tracking is exercised against a real directory tree.
"""

import json
from pathlib import Path

import pytest

from shipyard.exceptions import FormatterError, LintAnalyzerError, UnfixableLintViolation
from shipyard.lint.remediator import LintRemediator
from shipyard.lint.rules import DEFAULT_RULE_SET

CLIPPY = ("cargo", "clippy")
FMT = ("cargo", "+nightly", "fmt")


def _lint_error(code: str) -> str:
    return json.dumps(
        {
            "reason": "compiler-message",
            "message": {
                "message": f"{code} violated",
                "code": {"code": code},
                "level": "error",
                "spans": [{"file_name": "crates/utils/src/lib.rs", "line_start": 1, "is_primary": True}],
                "rendered": f"error: {code} violated\n",
            },
        }
    )


class TestCommands:
    def test_analyzer_command_covers_whole_workspace(self, source_tree: Path) -> None:
        command = LintRemediator(source_tree).analyzer_command()
        separator = command.index("--")

        assert command[:2] == ["cargo", "clippy"]
        for flag in (
            "--workspace", "--fix", "--allow-staged", "--allow-dirty",
            "--tests", "--all-targets", "--all-features",
        ):
            assert flag in command[:separator]
        assert command[separator + 1:] == DEFAULT_RULE_SET.analyzer_flags()

    def test_formatter_uses_nightly(self, source_tree: Path) -> None:
        assert LintRemediator(source_tree).formatter_command() == list(FMT)


class TestOrdering:
    def test_fix_runs_before_format(self, source_tree: Path, fake_runner) -> None:
        LintRemediator(source_tree, runner=fake_runner).run()

        assert [call.argv[:3] for call in fake_runner.calls] == [
            ("cargo", "clippy", "--workspace"),
            FMT,
        ]

    def test_every_call_runs_in_workspace_root(self, source_tree: Path, fake_runner) -> None:
        LintRemediator(source_tree, runner=fake_runner).run()
        assert {call.cwd for call in fake_runner.calls} == {source_tree}


class TestCleanTree:
    def test_clean_tree_reports_nothing(self, source_tree: Path, fake_runner) -> None:
        report = LintRemediator(source_tree, runner=fake_runner).run()

        assert report.is_clean
        assert report.fixed_files == ()
        assert report.formatted_files == ()
        assert report.workspace == source_tree

    def test_second_run_is_a_no_op(self, source_tree: Path, fake_runner) -> None:
        lib = source_tree / "crates" / "utils" / "src" / "lib.rs"

        def fix_once(call) -> None:
            if "use std::collections::*;" in lib.read_text(encoding="utf-8"):
                lib.write_text("use std::collections::HashMap;\npub mod version;\n", encoding="utf-8")

        lib.write_text("use std::collections::*;\npub mod version;\n", encoding="utf-8")
        fake_runner.on(CLIPPY, effect=fix_once)
        remediator = LintRemediator(source_tree, runner=fake_runner)

        first = remediator.run()
        second = remediator.run()

        assert first.fixed_files == ("crates/utils/src/lib.rs",)
        assert second.is_clean


class TestRemediation:
    def test_wildcard_import_is_fixed_then_formatted(self, source_tree: Path, fake_runner) -> None:
        lib = source_tree / "crates" / "utils" / "src" / "lib.rs"
        lib.write_text("use std::collections::*;\npub mod version;\nfn f() { let _m: HashMap<u8,u8> = HashMap::new(); }\n", encoding="utf-8")
        seen_by_formatter = []

        def clippy_fix(call) -> None:
            text = lib.read_text(encoding="utf-8")
            lib.write_text(text.replace("std::collections::*", "std::collections::HashMap"), encoding="utf-8")

        def rustfmt(call) -> None:
            text = lib.read_text(encoding="utf-8")
            seen_by_formatter.append(text)
            lib.write_text(text.replace("HashMap<u8,u8>", "HashMap<u8, u8>"), encoding="utf-8")

        fake_runner.on(CLIPPY, effect=clippy_fix)
        fake_runner.on(FMT, effect=rustfmt)

        report = LintRemediator(source_tree, runner=fake_runner).run()

        assert "std::collections::HashMap" in seen_by_formatter[0]
        assert report.fixed_files == ("crates/utils/src/lib.rs",)
        assert report.formatted_files == ("crates/utils/src/lib.rs",)
        assert "HashMap<u8, u8>" in lib.read_text(encoding="utf-8")
        assert not report.is_clean


class TestFailures:
    def test_unfixable_violation_stops_before_format(self, source_tree: Path, fake_runner) -> None:
        fake_runner.on(CLIPPY, exit_code=101, stdout=_lint_error("clippy::unused_self"))

        with pytest.raises(UnfixableLintViolation) as excinfo:
            LintRemediator(source_tree, runner=fake_runner).run()

        assert [v.code for v in excinfo.value.violations] == ["clippy::unused_self"]
        assert "clippy::unused_self violated" in excinfo.value.diagnostics
        assert fake_runner.commands_starting_with(*FMT) == []

    def test_compiler_error_is_an_analyzer_error(self, source_tree: Path, fake_runner) -> None:
        fake_runner.on(CLIPPY, exit_code=101, stdout="\n".join([_lint_error("E0425"), _lint_error("deprecated")]))

        with pytest.raises(LintAnalyzerError) as excinfo:
            LintRemediator(source_tree, runner=fake_runner).run()

        assert "E0425" in excinfo.value.diagnostics
        assert fake_runner.commands_starting_with(*FMT) == []

    def test_analyzer_failure_without_diagnostics(self, source_tree: Path, fake_runner) -> None:
        fake_runner.on(CLIPPY, exit_code=1, stderr="error: toolchain 'stable' is not installed")

        with pytest.raises(LintAnalyzerError) as excinfo:
            LintRemediator(source_tree, runner=fake_runner).run()

        assert "not installed" in excinfo.value.diagnostics

    def test_formatter_failure(self, source_tree: Path, fake_runner) -> None:
        fake_runner.on(FMT, exit_code=1, stderr="error: toolchain 'nightly' is not installed")

        with pytest.raises(FormatterError) as excinfo:
            LintRemediator(source_tree, runner=fake_runner).run()

        assert "nightly" in excinfo.value.diagnostics
