"""Shared fakes: in-memory config store and a fake existence predicate."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from scalar.core.config_store import ConfigResult
from scalar.core.errors import ConfigReadError
from scalar.registry import CacheServerEntry, CacheServerRegistry


class MemoryConfigStore:
    """ConfigStore fake: a local dict layered over a global dict."""

    def __init__(
        self,
        local: dict[str, str] | None = None,
        global_: dict[str, str] | None = None,
        *,
        write_error: str | None = None,
        read_error: str | None = None,
    ) -> None:
        self.local = dict(local or {})
        self.global_ = dict(global_ or {})
        self.write_error = write_error
        self.read_error = read_error

    def get(self, key: str, *, local_only: bool = False) -> str | None:
        if self.read_error:
            raise ConfigReadError(self.read_error)
        if key in self.local:
            return self.local[key]
        if local_only:
            return None
        return self.global_.get(key)

    def set_local(self, key: str, value: str | None, *, replace_all: bool = True) -> ConfigResult:
        if self.write_error:
            return ConfigResult(exit_code=255, errors=self.write_error)
        if value is None:
            self.local.pop(key, None)
        else:
            self.local[key] = value
        return ConfigResult(exit_code=0)


def fake_exists(paths: Iterable[Path]) -> Callable[[Path], bool]:
    """Predicate that reports *paths* and all their ancestors as existing."""
    known: set[Path] = set()
    for p in paths:
        known.add(p)
        known.update(p.parents)
    return lambda candidate: candidate in known


REPO_URL = "https://dev.example/org/repo"


@pytest.fixture()
def root(tmp_path: Path) -> Path:
    """Resolved tmp dir, so comparisons survive symlinked temp roots."""
    return tmp_path.resolve()


@pytest.fixture()
def config() -> MemoryConfigStore:
    return MemoryConfigStore(global_={"remote.origin.url": REPO_URL})


@pytest.fixture()
def registry() -> CacheServerRegistry:
    return CacheServerRegistry(
        cache_servers=[
            CacheServerEntry(name="East", url="https://cache.east", global_default=True),
            CacheServerEntry(name="West", url="https://cache.west", global_default=False),
        ]
    )
