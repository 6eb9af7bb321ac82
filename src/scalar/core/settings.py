"""Scalar runtime settings (Pydantic v2 Settings).

Centralises every configurable path / flag so that:

* The CLI never hard-codes relative paths.
* Environment overrides work (``SCALAR_LOCAL_CACHE_ROOT``, etc.).
* Tests can inject a custom root via ``Settings(enlistment_root=tmp_path)``.

Usage
-----
::

    from scalar.core.settings import get_settings

    s = get_settings()          # auto-detects the enlistment from cwd
    enlistment = s.enlistment()
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scalar.core.config_store import ConfigStore
from scalar.core.enlistment import Enlistment
from scalar.core.paths import WORKING_DIRECTORY_ROOT_NAME, find_enlistment_root


class Settings(BaseSettings):
    """All runtime configuration for Scalar.

    *enlistment_root* anchors every derived path.  If not supplied, it is
    auto-detected via :func:`scalar.core.paths.find_enlistment_root`.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCALAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Roots ───────────────────────────────────────────────
    enlistment_root: Path | None = None
    working_directory_root: Path | None = None

    # ── Object cache ────────────────────────────────────────
    local_cache_root: Path | None = None
    cache_key: str | None = None

    # ── Git ─────────────────────────────────────────────────
    git_binary: str = "git"

    # ── Registry document ───────────────────────────────────
    registry_path: Path | None = None
    registry_max_size_kb: int = 512

    # ── Logging ─────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @model_validator(mode="after")
    def _resolve_roots(self) -> "Settings":
        """Fill in any root that was not explicitly overridden."""
        if self.enlistment_root is None:
            roots = find_enlistment_root(self.working_directory_root)
            self.enlistment_root = roots.enlistment_root
            if self.working_directory_root is None:
                self.working_directory_root = roots.working_directory_root
        elif self.working_directory_root is None:
            self.working_directory_root = self.enlistment_root / WORKING_DIRECTORY_ROOT_NAME
        return self

    @model_validator(mode="after")
    def _check_cache_key(self) -> "Settings":
        """A cache key names a directory under the shared cache root."""
        if self.cache_key and self.local_cache_root is None:
            raise ValueError("cache_key requires local_cache_root")
        return self

    # ── Convenience ─────────────────────────────────────────
    @property
    def registry_max_size_bytes(self) -> int:
        return self.registry_max_size_kb * 1024

    def enlistment(self, *, config: ConfigStore | None = None) -> Enlistment:
        """Build the :class:`Enlistment` these settings describe.

        Cache paths are initialised from ``local_cache_root`` (plus
        ``cache_key`` when set); without a cache root the in-tree objects
        directory serves as both roots and the remote protocol is off.
        """
        assert self.enlistment_root is not None  # guaranteed after validation
        enlistment = Enlistment(
            self.enlistment_root,
            working_directory_root=self.working_directory_root,
            git_binary=self.git_binary,
            config=config,
        )
        if self.local_cache_root is None:
            enlistment.initialize_cache_paths(enlistment.local_objects_root, enlistment.local_objects_root)
        elif self.cache_key:
            enlistment.initialize_cache_paths_from_key(self.local_cache_root, self.cache_key)
        else:
            enlistment.initialize_cache_paths(self.local_cache_root, self.local_cache_root)
        return enlistment


@lru_cache(maxsize=1)
def get_settings(**overrides: object) -> Settings:
    """Return a cached :class:`Settings` instance.

    In production the cache avoids repeated filesystem walks.
    In tests, call ``Settings(enlistment_root=tmp_path)`` directly.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
