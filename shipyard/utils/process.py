# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
External tool invocation.

Every call to git, docker or cargo goes through `run_tool`. It runs one
command, blocks until it exits, captures everything and hands back a
ToolResult. It never raises on a non-zero exit: the caller checks the
result right away and decides which error it maps to. That keeps the
"abort on first failure" rule visible at each call site instead of hiding
it in here.

Only argv lists are accepted. No shell=True, no string commands.
"""

import os
import subprocess
import time
from pathlib import Path
from typing import Callable, NamedTuple, Optional, Sequence

from shipyard.exceptions import ToolNotFoundError
from shipyard.logging.logger import get_logger

logger = get_logger(__name__)

# How much of a tool's output we keep when attaching it to an error.
DIAGNOSTIC_TAIL_LINES = 60


class ToolResult(NamedTuple):
    """Outcome of a single external command."""

    argv: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def diagnostics(self, max_lines: int = DIAGNOSTIC_TAIL_LINES) -> str:
        """The tail of stderr (or stdout if stderr is empty) for error reports."""
        text = self.stderr.strip() or self.stdout.strip()
        lines = text.splitlines()
        return "\n".join(lines[-max_lines:])


Runner = Callable[..., ToolResult]


def run_tool(
    argv: Sequence[str],
    *,
    cwd: Optional[Path] = None,
    input_text: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
) -> ToolResult:
    """
    Run a command and capture its result.

    Args:
        argv: Program and arguments. argv[0] is looked up on PATH.
        cwd: Working directory. Always passed explicitly by the pipelines,
             never inherited from wherever the operator happens to be.
        input_text: Text to feed on stdin (used for Dockerfiles read from "-").
        env: Extra environment variables layered over the current environment.

    Returns:
        ToolResult with exit code and captured output.

    Raises:
        ToolNotFoundError: If argv[0] is not installed.
    """
    command = tuple(str(part) for part in argv)
    full_env = dict(os.environ)
    if env:
        full_env.update(env)

    logger.debug(
        "Running tool",
        extra={"argv": list(command), "cwd": str(cwd) if cwd else None},
    )
    start = time.monotonic()

    try:
        completed = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            input=input_text,
            capture_output=True,
            text=True,
            env=full_env,
            check=False,
        )
    except FileNotFoundError as err:
        raise ToolNotFoundError(
            f"'{command[0]}' not found. Is it installed and on PATH?"
        ) from err

    elapsed = time.monotonic() - start
    logger.debug(
        "Tool finished",
        extra={
            "tool": command[0],
            "exit_code": completed.returncode,
            "elapsed_seconds": round(elapsed, 3),
        },
    )

    return ToolResult(
        argv=command,
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        elapsed_seconds=elapsed,
    )
