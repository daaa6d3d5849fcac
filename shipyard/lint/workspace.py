# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Cargo workspace discovery and source fingerprinting.

The workspace root is resolved once and passed to every tool call as its
working directory, so the lint workflow behaves the same no matter where in
the tree the operator runs it from.
"""

import tomllib
from pathlib import Path
from typing import Optional

from shipyard.exceptions import WorkspaceNotFoundError
from shipyard.utils.hashing import compute_sha256
from shipyard.utils.paths import find_ancestor

MANIFEST_NAME = "Cargo.toml"

# Directories that never contain sources we lint or format.
_SKIPPED_DIRECTORIES = frozenset({"target", ".git", "node_modules"})


def _declares_workspace(directory: Path) -> bool:
    manifest = directory / MANIFEST_NAME
    if not manifest.is_file():
        return False
    try:
        data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as err:
        raise WorkspaceNotFoundError(f"Unreadable manifest {manifest}: {err}") from err
    return "workspace" in data


def resolve_workspace_root(start: Path, explicit: Optional[Path] = None) -> Path:
    """
    Find the cargo workspace to lint.

    An explicit path wins and must contain a Cargo.toml. Otherwise we walk up
    from `start` looking for a manifest with a [workspace] table, and fall
    back to the nearest Cargo.toml for single-crate projects. Without an
    explicit path, `start` (the CLI passes the current directory) has to be
    inside the workspace.

    Raises:
        WorkspaceNotFoundError: Nothing suitable was found.
    """
    if explicit is not None:
        root = explicit.resolve()
        if not (root / MANIFEST_NAME).is_file():
            raise WorkspaceNotFoundError(f"No {MANIFEST_NAME} in {explicit}")
        return root

    workspace = find_ancestor(start, _declares_workspace)
    if workspace is not None:
        return workspace

    crate = find_ancestor(start, lambda directory: (directory / MANIFEST_NAME).is_file())
    if crate is not None:
        return crate

    raise WorkspaceNotFoundError(
        f"No {MANIFEST_NAME} found in {start} or any parent directory. "
        "Run from inside the workspace or pass --workspace."
    )


def snapshot_sources(root: Path) -> dict[str, str]:
    """
    SHA-256 of every .rs file under `root`, keyed by POSIX path relative to root.

    Build output and VCS directories are skipped.
    """
    snapshot: dict[str, str] = {}
    for path in sorted(root.rglob("*.rs")):
        relative = path.relative_to(root)
        if any(part in _SKIPPED_DIRECTORIES for part in relative.parts[:-1]):
            continue
        if path.is_file():
            snapshot[relative.as_posix()] = compute_sha256(path)
    return snapshot


def changed_files(before: dict[str, str], after: dict[str, str]) -> tuple[str, ...]:
    """Paths added, removed or modified between two snapshots, sorted."""
    paths = set(before) | set(after)
    return tuple(sorted(p for p in paths if before.get(p) != after.get(p)))
