# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release build state machine.

A build walks a single straight line of states. There are no branches, no
skips and no going back: any step failure stops the build where it is, and
the next attempt starts again from START.

    START → DEPENDENCIES_INSTALLED → SOURCE_COPIED → VERSION_STAMPED
          → COMPILED → ARTIFACT_EXTRACTED → RUNTIME_ASSEMBLED
          → OWNERSHIP_FIXED → READY
"""

from enum import Enum
from typing import Optional

from shipyard.logging.logger import get_logger

logger = get_logger(__name__)


class BuildState(str, Enum):
    START = "start"
    DEPENDENCIES_INSTALLED = "dependencies_installed"
    SOURCE_COPIED = "source_copied"
    VERSION_STAMPED = "version_stamped"
    COMPILED = "compiled"
    ARTIFACT_EXTRACTED = "artifact_extracted"
    RUNTIME_ASSEMBLED = "runtime_assembled"
    OWNERSHIP_FIXED = "ownership_fixed"
    READY = "ready"


BUILD_STATE_ORDER: tuple[BuildState, ...] = tuple(BuildState)


class InvalidTransitionError(RuntimeError):
    """Raised when a build tries to jump, repeat or rewind a state."""


class BuildProgress:
    """
    Tracks where one build invocation currently is.

    Each ReleaseBuilder owns one of these. It only knows how to move forward by
    exactly one state; the builder calls `advance` after each step succeeds.
    """

    def __init__(self, build_id: str) -> None:
        self._build_id = build_id
        self._history: list[BuildState] = [BuildState.START]

    @property
    def state(self) -> BuildState:
        return self._history[-1]

    @property
    def history(self) -> tuple[BuildState, ...]:
        return tuple(self._history)

    @property
    def is_ready(self) -> bool:
        return self.state is BuildState.READY

    def next_state(self) -> Optional[BuildState]:
        index = BUILD_STATE_ORDER.index(self.state)
        if index + 1 >= len(BUILD_STATE_ORDER):
            return None
        return BUILD_STATE_ORDER[index + 1]

    def advance(self, target: BuildState) -> None:
        expected = self.next_state()
        if target is not expected:
            allowed = expected.value if expected is not None else "none"
            raise InvalidTransitionError(
                f"Cannot move build {self._build_id} from {self.state.value} "
                f"to {target.value}. Allowed: {allowed}"
            )

        logger.info(
            "Build state changed",
            extra={
                "build_id": self._build_id,
                "from_state": self.state.value,
                "to_state": target.value,
            },
        )
        self._history.append(target)
