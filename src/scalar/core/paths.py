"""Enlistment root locator.

The single source of truth for "which enlistment is this path in?".
Every other path (objects, packs, logs) derives from the roots found here.

Algorithm
---------
1. Normalise *path* (absolute, symlinks resolved).  The path itself may
   not exist yet, so climb to the nearest ancestor that does.
2. Fast path: if ``<ancestor>/src/.git`` exists, the ancestor is the
   enlistment root and ``<ancestor>/src`` is the working directory.
3. Fallback: walk upward looking for a ``.git`` marker (a directory, or a
   file for linked worktrees).  A marked directory whose path ends in
   ``/src`` makes its parent the enlistment root; any other marked
   directory is both the enlistment root and the working directory.

The existence predicate is injectable so the walk can be tested without
touching disk.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog

from scalar.core.errors import EnlistmentNotFound

logger = structlog.get_logger()

WORKING_DIRECTORY_ROOT_NAME = "src"
DOT_GIT = ".git"

ExistsPredicate = Callable[[Path], bool]


@dataclass(frozen=True)
class EnlistmentRoots:
    """Resolved roots of an enlistment."""

    enlistment_root: Path
    working_directory_root: Path


def path_exists(path: Path) -> bool:
    """Default existence check: a directory or a file."""
    return path.exists()


def normalize_path(path: str | os.PathLike[str]) -> Path:
    """Return *path* as an absolute path with symlinks resolved.

    Raises
    ------
    EnlistmentNotFound
        If the path cannot be normalised (symlink loop, NUL byte, ...).
    """
    try:
        return Path(path).expanduser().resolve(strict=False)
    except (OSError, RuntimeError, ValueError) as exc:
        raise EnlistmentNotFound(start_path=str(path), reason=f"cannot normalise path: {exc}") from exc


def find_enlistment_root(
    path: str | os.PathLike[str] | None = None,
    *,
    exists: ExistsPredicate | None = None,
) -> EnlistmentRoots:
    """Return the enlistment and working-directory roots containing *path*.

    Parameters
    ----------
    path:
        Any path inside (or below a not-yet-created part of) an
        enlistment.  Defaults to ``Path.cwd()``.
    exists:
        Existence predicate.  Defaults to :func:`path_exists`.

    Returns
    -------
    EnlistmentRoots
        Absolute, normalised roots.

    Raises
    ------
    EnlistmentNotFound
        If no ancestor carries a ``.git`` marker.
    """
    exists = exists or path_exists
    origin = normalize_path(path if path is not None else Path.cwd())

    current = origin
    while not exists(current):
        if current.parent == current:
            raise EnlistmentNotFound(start_path=str(origin), reason="no existing ancestor")
        current = current.parent

    appended_src = current / WORKING_DIRECTORY_ROOT_NAME
    if exists(appended_src) and exists(appended_src / DOT_GIT):
        roots = EnlistmentRoots(enlistment_root=current, working_directory_root=appended_src)
        logger.debug("enlistment_located", strategy="fast", **_as_log_fields(roots))
        return roots

    while True:
        parent = current.parent
        if exists(current / DOT_GIT):
            # .git may be a directory or a worktree pointer file.
            if str(current).endswith(os.sep + WORKING_DIRECTORY_ROOT_NAME):
                enlistment_root = parent
            else:
                enlistment_root = current
            roots = EnlistmentRoots(enlistment_root=enlistment_root, working_directory_root=current)
            logger.debug("enlistment_located", strategy="fallback", **_as_log_fields(roots))
            return roots

        if not str(parent) or len(str(parent)) >= len(str(current)):
            break
        current = parent

    raise EnlistmentNotFound(start_path=str(origin))


def _as_log_fields(roots: EnlistmentRoots) -> dict[str, str]:
    return {
        "enlistment_root": str(roots.enlistment_root),
        "working_directory_root": str(roots.working_directory_root),
    }
