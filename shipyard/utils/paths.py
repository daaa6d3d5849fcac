# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path utilities for shipyard.

Both workflows resolve their root directory exactly once, up front, and pass
it explicitly to every tool invocation. Nothing depends on the process's
current directory after that point.
"""

from pathlib import Path
from typing import Callable, Optional


def find_ancestor(start: Path, predicate: Callable[[Path], bool]) -> Optional[Path]:
    """
    Walk up from `start` (inclusive) and return the first directory matching
    `predicate`, or None if the filesystem root is reached first.
    """
    current = start.resolve()
    if current.is_file():
        current = current.parent
    while True:
        if predicate(current):
            return current
        if current == current.parent:
            return None
        current = current.parent
