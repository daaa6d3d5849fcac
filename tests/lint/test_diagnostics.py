# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for parsing the analyzer's JSON message stream.
"""

import json

from shipyard.lint.diagnostics import parse_compiler_messages


def compiler_message(code, level="error", file_name="src/lib.rs", line=3, message="bad"):
    return json.dumps(
        {
            "reason": "compiler-message",
            "package_id": "utils 0.1.0",
            "message": {
                "message": message,
                "code": {"code": code, "explanation": None} if code else None,
                "level": level,
                "spans": [
                    {"file_name": "src/other.rs", "line_start": 1, "is_primary": False},
                    {"file_name": file_name, "line_start": line, "is_primary": True},
                ],
                "rendered": f"{level}: {message}\n --> {file_name}:{line}\n",
            },
        }
    )


def test_extracts_lint_errors() -> None:
    stdout = compiler_message("clippy::dbg_macro", message="the `dbg!` macro is intended as a debugging tool")
    [violation] = parse_compiler_messages(stdout)

    assert violation.code == "clippy::dbg_macro"
    assert violation.file == "src/lib.rs"
    assert violation.line == 3
    assert violation.location() == "src/lib.rs:3"
    assert not violation.is_compiler_error
    assert "dbg!" in violation.rendered


def test_ignores_warnings_and_uncoded_summaries() -> None:
    stdout = "\n".join(
        [
            compiler_message("clippy::perf", level="warning"),
            compiler_message(None, message="aborting due to 1 previous error"),
        ]
    )
    assert parse_compiler_messages(stdout) == []


def test_ignores_non_json_and_other_reasons() -> None:
    stdout = "\n".join(
        [
            "    Checking utils v0.1.0",
            "{not json",
            json.dumps({"reason": "compiler-artifact", "target": {}}),
            json.dumps({"reason": "build-finished", "success": False}),
        ]
    )
    assert parse_compiler_messages(stdout) == []


def test_flags_hard_compiler_errors() -> None:
    [violation] = parse_compiler_messages(compiler_message("E0425"))
    assert violation.is_compiler_error


def test_deduplicates_per_target_repeats() -> None:
    line = compiler_message("clippy::wildcard_imports")
    assert len(parse_compiler_messages("\n".join([line, line]))) == 1


def test_message_without_spans() -> None:
    record = json.loads(compiler_message("deprecated"))
    record["message"]["spans"] = []
    [violation] = parse_compiler_messages(json.dumps(record))
    assert violation.file is None
    assert violation.location() == "<unknown>"
