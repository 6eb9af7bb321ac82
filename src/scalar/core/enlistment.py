"""Enlistment path model.

An :class:`Enlistment` owns the canonical paths of one checkout:

* ``enlistment_root`` / ``working_directory_root``: from the locator.
* ``local_objects_root``: the in-tree ``<wd>/.git/objects``, fixed at
  construction.
* ``local_cache_root`` / ``git_objects_root`` / ``git_pack_root``: set
  by :meth:`Enlistment.initialize_cache_paths`.  The pack root is always
  ``git_objects_root / "pack"``; it is never passed in.

``uses_remote_protocol`` is true exactly when the chosen cache root is
not the in-tree objects root, i.e. objects come from a shared cache.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, Generic, TypeVar, overload

import structlog

from scalar.core.config_store import ENLISTMENT_ID_KEY, ORIGIN_URL_KEY, ConfigStore, GitConfigStore
from scalar.core.errors import EnlistmentNotFound, ValueAlreadySet
from scalar.core.paths import DOT_GIT, WORKING_DIRECTORY_ROOT_NAME, ExistsPredicate, find_enlistment_root

logger = structlog.get_logger()

T = TypeVar("T")

AclInitializer = Callable[[Path], None]

_UNSET: Any = object()


class WriteOnce(Generic[T]):
    """Descriptor for an attribute that may be assigned exactly once.

    Reading an unassigned field returns ``None``.  A second assignment
    raises :class:`ValueAlreadySet`, even with an equal value.
    """

    def __set_name__(self, owner: type, name: str) -> None:
        self.public_name = name
        self.private_name = f"_write_once_{name}"

    @overload
    def __get__(self, instance: None, owner: type) -> WriteOnce[T]: ...

    @overload
    def __get__(self, instance: object, owner: type) -> T | None: ...

    def __get__(self, instance: object | None, owner: type) -> WriteOnce[T] | T | None:
        if instance is None:
            return self
        value = instance.__dict__.get(self.private_name, _UNSET)
        return None if value is _UNSET else value

    def __set__(self, instance: object, value: T) -> None:
        if self.private_name in instance.__dict__:
            raise ValueAlreadySet(self.public_name)
        instance.__dict__[self.private_name] = value


def _default_acl_initializer(path: Path) -> None:
    # Owner-only access on POSIX; other platforms keep inherited ACLs.
    if os.name == "posix":
        path.chmod(0o700)


class Enlistment:
    """Paths and identity of one enlistment.

    Parameters
    ----------
    enlistment_root:
        Root directory of the enlistment.
    repo_url:
        Origin URL.  When ``None`` it is read lazily from
        ``remote.origin.url`` through *config*.
    working_directory_root:
        Defaults to ``enlistment_root / "src"`` (a new enlistment).
    config:
        Configuration store.  Defaults to a :class:`GitConfigStore` rooted
        at the working directory.
    """

    git_version: WriteOnce[str] = WriteOnce()
    scalar_version: WriteOnce[str] = WriteOnce()

    def __init__(
        self,
        enlistment_root: Path,
        repo_url: str | None = None,
        *,
        working_directory_root: Path | None = None,
        git_binary: str = "git",
        config: ConfigStore | None = None,
    ) -> None:
        self.enlistment_root = Path(enlistment_root)
        self.working_directory_root = (
            Path(working_directory_root)
            if working_directory_root is not None
            else self.enlistment_root / WORKING_DIRECTORY_ROOT_NAME
        )
        self.git_binary = git_binary
        self.config: ConfigStore = config or GitConfigStore(self.working_directory_root, git_binary=git_binary)
        self._repo_url = repo_url

        dot_git = self.working_directory_root / DOT_GIT
        self.logs_root = dot_git / "logs"
        self.local_objects_root = dot_git / "objects"

        self.local_cache_root: Path | None = None
        self.git_objects_root: Path | None = None
        self.git_pack_root: Path | None = None
        self.uses_remote_protocol = False

    # ── Construction from disk ──────────────────────────────
    @classmethod
    def create_from_directory(
        cls,
        directory: Path,
        *,
        git_binary: str = "git",
        config: ConfigStore | None = None,
        exists: ExistsPredicate | None = None,
    ) -> Enlistment:
        """Build an :class:`Enlistment` for the existing checkout containing *directory*.

        Raises
        ------
        EnlistmentNotFound
            If *directory* does not exist or no enlistment root is found.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise EnlistmentNotFound(start_path=str(directory), reason="directory does not exist")

        roots = find_enlistment_root(directory, exists=exists)
        return cls(
            roots.enlistment_root,
            working_directory_root=roots.working_directory_root,
            git_binary=git_binary,
            config=config,
        )

    # ── Identity ────────────────────────────────────────────
    @property
    def repo_url(self) -> str:
        if self._repo_url is None:
            self._repo_url = (self.config.get(ORIGIN_URL_KEY) or "").strip()
        return self._repo_url

    def get_enlistment_id(self) -> str:
        value = self.config.get(ENLISTMENT_ID_KEY, local_only=True)
        return (value or "").strip()

    def set_git_version(self, version: str) -> None:
        self.git_version = version

    def set_scalar_version(self, version: str) -> None:
        self.scalar_version = version

    # ── Cache paths ─────────────────────────────────────────
    def initialize_cache_paths_from_key(self, local_cache_root: Path, cache_key: str) -> None:
        local_cache_root = Path(local_cache_root)
        self.initialize_cache_paths(local_cache_root, local_cache_root / cache_key)

    def initialize_cache_paths(self, local_cache_root: Path, git_objects_root: Path) -> None:
        """Set the cache roots and derive the pack root and protocol mode."""
        self.local_cache_root = Path(local_cache_root)
        self.git_objects_root = Path(git_objects_root)
        self.git_pack_root = self.git_objects_root / "pack"
        self.uses_remote_protocol = self.local_cache_root != self.local_objects_root
        logger.debug(
            "cache_paths_initialized",
            local_cache_root=str(self.local_cache_root),
            git_objects_root=str(self.git_objects_root),
            uses_remote_protocol=self.uses_remote_protocol,
        )

    # ── Disk setup ──────────────────────────────────────────
    def create_enlistment_folders(self, acl_initializer: AclInitializer | None = None) -> bool:
        """Create the enlistment root and working directory if missing.

        Returns ``False`` instead of raising on any filesystem failure.
        """
        init_acls = acl_initializer or _default_acl_initializer
        try:
            self.enlistment_root.mkdir(parents=True, exist_ok=True)
            init_acls(self.enlistment_root)
            self.working_directory_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("enlistment_folders_failed", enlistment_root=str(self.enlistment_root), error=str(exc))
            return False
        return True

    def new_log_file_name(self, log_type: str, log_id: str | None = None) -> Path:
        """Return an unused ``scalar_<type>_<timestamp>.log`` path under ``logs_root``."""
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        stem = f"scalar_{log_type}_{stamp}"
        if log_id:
            stem += f"_{log_id}"

        candidate = self.logs_root / f"{stem}.log"
        counter = 1
        while candidate.exists():
            candidate = self.logs_root / f"{stem}_{counter}.log"
            counter += 1
        return candidate
