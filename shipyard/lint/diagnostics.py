# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Parsing analyzer output.

The analyzer runs with `--message-format=json`, so stdout is one JSON object
per line. We only care about `compiler-message` entries at error level: with
every rule denied, anything the fixer could not rewrite comes back as an
error. Lint errors carry a lint name as their code (`clippy::wildcard_imports`,
`deprecated`); hard compiler errors carry an `E` code (`E0425`) and mean the
code doesn't build at all, which is a different failure.
"""

import json
import re
from dataclasses import dataclass
from typing import Optional

_COMPILER_ERROR_CODE = re.compile(r"^E\d{4}$")


@dataclass(frozen=True)
class LintViolation:
    """A single diagnostic left behind after the fix pass."""

    code: str
    level: str
    message: str
    file: Optional[str]
    line: Optional[int]
    rendered: str

    @property
    def is_compiler_error(self) -> bool:
        return bool(_COMPILER_ERROR_CODE.match(self.code))

    def location(self) -> str:
        if self.file is None:
            return "<unknown>"
        return f"{self.file}:{self.line}" if self.line is not None else self.file


def _primary_span(spans: list[dict]) -> tuple[Optional[str], Optional[int]]:
    for span in spans:
        if span.get("is_primary"):
            return span.get("file_name"), span.get("line_start")
    if spans:
        return spans[0].get("file_name"), spans[0].get("line_start")
    return None, None


def parse_compiler_messages(stdout: str) -> list[LintViolation]:
    """Extract error-level diagnostics with a code from cargo's JSON output."""
    violations: list[LintViolation] = []
    seen: set[tuple] = set()

    for raw_line in stdout.splitlines():
        line = raw_line.strip()
        if not line.startswith("{"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            # cargo interleaves plain-text progress with the JSON stream
            continue

        if record.get("reason") != "compiler-message":
            continue
        message = record.get("message") or {}
        code = (message.get("code") or {}).get("code")
        if message.get("level") != "error" or not code:
            continue

        file_name, line_start = _primary_span(message.get("spans") or [])
        key = (code, file_name, line_start, message.get("message"))
        # The same diagnostic is reported once per target (lib, tests, ...).
        if key in seen:
            continue
        seen.add(key)

        violations.append(
            LintViolation(
                code=code,
                level=message["level"],
                message=message.get("message", ""),
                file=file_name,
                line=line_start,
                rendered=message.get("rendered") or "",
            )
        )

    return violations
