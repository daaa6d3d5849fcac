# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Lint remediation: analyze and auto-fix the whole workspace, then format it.

    1. fix     cargo clippy --fix over every crate, target and feature, with
               the compiled-in rule table
    2. format  cargo +nightly fmt

The order is fixed. Auto-fixes reshape code and the formatter has to see the
result; formatting first could leave fixed code unformatted. The format step
only runs if the fix step exited cleanly.

The fix step runs with --allow-dirty and --allow-staged, so it works on a tree
with uncommitted changes. Anything the analyzer can't fix aborts the run with
the remaining violations: those need a human.

Both steps fingerprint the sources before and after, so the report says
exactly which files each step touched. On a clean tree both lists are empty,
which is also how you check that a second run is a no-op.
"""

from dataclasses import dataclass, field
from pathlib import Path

from shipyard.exceptions import FormatterError, LintAnalyzerError, UnfixableLintViolation
from shipyard.lint.diagnostics import parse_compiler_messages
from shipyard.lint.rules import DEFAULT_RULE_SET, RuleSet
from shipyard.lint.workspace import changed_files, snapshot_sources
from shipyard.logging.logger import get_logger
from shipyard.utils.process import Runner, run_tool

logger = get_logger(__name__)

# The nightly rustfmt implements the unstable options in rustfmt.toml.
FORMATTER_TOOLCHAIN = "nightly"


@dataclass(frozen=True)
class LintReport:
    """What one remediation run changed."""

    workspace: Path
    fixed_files: tuple[str, ...]
    formatted_files: tuple[str, ...]
    commands: tuple[tuple[str, ...], ...] = field(default=())

    @property
    def is_clean(self) -> bool:
        """True if neither step had anything to change."""
        return not self.fixed_files and not self.formatted_files


class LintRemediator:
    """Fix-then-format over one cargo workspace."""

    def __init__(
        self,
        workspace: Path,
        rule_set: RuleSet = DEFAULT_RULE_SET,
        runner: Runner = run_tool,
    ) -> None:
        self._workspace = workspace
        self._rule_set = rule_set
        self._runner = runner

    @property
    def workspace(self) -> Path:
        return self._workspace

    def analyzer_command(self) -> list[str]:
        return [
            "cargo",
            "clippy",
            "--workspace",
            "--fix",
            "--allow-staged",
            "--allow-dirty",
            "--tests",
            "--all-targets",
            "--all-features",
            "--message-format=json",
            "--",
            *self._rule_set.analyzer_flags(),
        ]

    def formatter_command(self) -> list[str]:
        return ["cargo", f"+{FORMATTER_TOOLCHAIN}", "fmt"]

    def run(self) -> LintReport:
        """Run fix then format. Raises on the first failure."""
        logger.info(
            "Lint remediation started",
            extra={"workspace": str(self._workspace), "rules": len(self._rule_set)},
        )

        fixed = self.fix()
        formatted = self.format()

        report = LintReport(
            workspace=self._workspace,
            fixed_files=fixed,
            formatted_files=formatted,
            commands=(tuple(self.analyzer_command()), tuple(self.formatter_command())),
        )
        logger.info(
            "Lint remediation finished",
            extra={
                "fixed_files": len(report.fixed_files),
                "formatted_files": len(report.formatted_files),
                "clean": report.is_clean,
            },
        )
        return report

    def fix(self) -> tuple[str, ...]:
        """
        Apply analyzer fixes in place.

        Returns the files the fixer changed.

        Raises:
            UnfixableLintViolation: Lint errors remain after fixing.
            LintAnalyzerError: The analyzer failed for any other reason.
        """
        before = snapshot_sources(self._workspace)
        result = self._runner(self.analyzer_command(), cwd=self._workspace)
        after = snapshot_sources(self._workspace)
        fixed = changed_files(before, after)

        if not result.ok:
            violations = parse_compiler_messages(result.stdout)
            lint_violations = tuple(v for v in violations if not v.is_compiler_error)

            if violations and len(lint_violations) == len(violations):
                for violation in lint_violations:
                    logger.error(
                        "Unfixable lint violation",
                        extra={
                            "rule": violation.code,
                            "location": violation.location(),
                            "message": violation.message,
                        },
                    )
                raise UnfixableLintViolation(
                    f"{len(lint_violations)} lint violation(s) need manual fixes",
                    violations=lint_violations,
                    diagnostics="\n".join(v.rendered for v in lint_violations).strip(),
                )

            raise LintAnalyzerError(
                f"cargo clippy failed (exit {result.exit_code})",
                diagnostics="\n".join(v.rendered for v in violations).strip()
                or result.diagnostics(),
            )

        logger.info("Fix step finished", extra={"changed_files": list(fixed)})
        return fixed

    def format(self) -> tuple[str, ...]:
        """
        Reformat the workspace. Returns the files the formatter changed.

        Raises:
            FormatterError: The formatter exited non-zero.
        """
        before = snapshot_sources(self._workspace)
        result = self._runner(self.formatter_command(), cwd=self._workspace)
        if not result.ok:
            raise FormatterError(
                f"cargo +{FORMATTER_TOOLCHAIN} fmt failed (exit {result.exit_code})",
                diagnostics=result.diagnostics(),
            )
        formatted = changed_files(before, snapshot_sources(self._workspace))

        logger.info("Format step finished", extra={"changed_files": list(formatted)})
        return formatted
