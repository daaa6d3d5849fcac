# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Version stamping.

The version string comes from `git describe --tag` (nearest tag plus commit
distance) and is compiled into the binary as a Rust constant. It has to be
known before compilation starts, so it is resolved first and then passed
into the build as an explicit value.

There is no fallback. A shallow or tagless checkout fails the build here,
before anything is compiled: a release artifact that can't be traced back to
a commit is worse than no artifact.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from shipyard.exceptions import ToolNotFoundError, VersionResolutionError
from shipyard.logging.logger import get_logger
from shipyard.utils.process import Runner, run_tool

logger = get_logger(__name__)

# Characters that are safe inside a Rust string literal and a shell word.
_VERSION_PATTERN = re.compile(r"^[0-9A-Za-z._+/-]+$")


@dataclass(frozen=True)
class VersionTag:
    """A resolved, immutable version string."""

    value: str

    def __str__(self) -> str:
        return self.value


def parse_describe_output(output: str) -> VersionTag:
    """
    Turn raw `git describe` output into a VersionTag.

    Raises:
        VersionResolutionError: Empty, multi-line, or contains characters that
            can't be embedded in the generated constant.
    """
    lines = [line for line in output.strip().splitlines() if line.strip()]
    if not lines:
        raise VersionResolutionError("git describe returned no version")
    if len(lines) > 1:
        raise VersionResolutionError(
            f"git describe returned {len(lines)} lines, expected one", diagnostics=output
        )

    value = lines[0].strip()
    if not _VERSION_PATTERN.match(value):
        raise VersionResolutionError(f"Malformed version string: '{value}'")
    return VersionTag(value=value)


def resolve_version_tag(root: Path, runner: Runner = run_tool) -> VersionTag:
    """
    Describe the source tree at `root`.

    Raises:
        VersionResolutionError: git is missing, the tree is not a repository,
            no tag is reachable, or the output is unusable.
    """
    try:
        result = runner(["git", "describe", "--tag"], cwd=root)
    except ToolNotFoundError as err:
        raise VersionResolutionError(f"Cannot describe {root}: {err}") from err

    if not result.ok:
        raise VersionResolutionError(
            f"git describe failed in {root} (exit {result.exit_code}). "
            "Shallow or tagless checkouts cannot be released.",
            diagnostics=result.diagnostics(),
        )

    version = parse_describe_output(result.stdout)
    logger.info("Version resolved", extra={"version": version.value, "root": str(root)})
    return version
