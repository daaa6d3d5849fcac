# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Environment validation for shipyard.

Checks that the machine meets the minimum requirements and reports which of
the external tools the workflows drive are available. `shipyard info` prints
this; the workflows themselves don't pre-check, they fail on the first
missing tool with a ToolNotFoundError.
"""

import platform
import shutil
import sys
from typing import NamedTuple, Optional

MINIMUM_PYTHON_MAJOR = 3
MINIMUM_PYTHON_MINOR = 11

# Which workflow needs which executable.
REQUIRED_TOOLS: dict[str, tuple[str, ...]] = {
    "git": ("build",),
    "docker": ("build",),
    "cargo": ("lint",),
}


class SystemInfo(NamedTuple):
    """Snapshot of the current system environment."""

    python_version: str
    platform: str
    architecture: str
    hostname: str


class ToolStatus(NamedTuple):
    name: str
    path: Optional[str]
    needed_by: tuple[str, ...]

    @property
    def available(self) -> bool:
        return self.path is not None


def check_minimum_python() -> None:
    """
    Verify we're running Python 3.11+ (tomllib, modern typing syntax).

    Raises:
        RuntimeError: If Python version is below 3.11.
    """
    major, minor = sys.version_info[:2]
    if major < MINIMUM_PYTHON_MAJOR or (
        major == MINIMUM_PYTHON_MAJOR and minor < MINIMUM_PYTHON_MINOR
    ):
        raise RuntimeError(
            f"shipyard requires Python >= {MINIMUM_PYTHON_MAJOR}.{MINIMUM_PYTHON_MINOR}, "
            f"but you're running {major}.{minor}. Please upgrade."
        )


def get_system_info() -> SystemInfo:
    """Collect basic system information for logging and diagnostics."""
    return SystemInfo(
        python_version=platform.python_version(),
        platform=platform.system(),
        architecture=platform.machine(),
        hostname=platform.node(),
    )


def check_tools() -> list[ToolStatus]:
    """Look up every external tool on PATH."""
    return [
        ToolStatus(name=name, path=shutil.which(name), needed_by=needed_by)
        for name, needed_by in REQUIRED_TOOLS.items()
    ]
