"""Key-value configuration store backed by ``git config``.

The resolver and the enlistment never shell out themselves; they receive
a :class:`ConfigStore` and call ``get`` / ``set_local`` on it.  Tests pass
an in-memory fake with the same two methods.

Exit codes
----------
``git config --get`` exits 1 when the key is simply missing; that is
reported as ``None``.  Any other non-zero exit is a malformed or
unreadable config and raises :class:`ConfigReadError` carrying git's
own message.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from scalar.core.errors import ConfigReadError

logger = structlog.get_logger()

# git config keys
CACHE_SERVER_KEY = "gvfs.cache-server"
ENLISTMENT_ID_KEY = "scalar.enlistment-id"
ORIGIN_URL_KEY = "remote.origin.url"

_MISSING_KEY_EXIT_CODE = 1
_DEFAULT_TIMEOUT_S = 30


@dataclass(frozen=True)
class ConfigResult:
    """Outcome of a config write."""

    exit_code: int
    output: str = ""
    errors: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ConfigStore(Protocol):
    def get(self, key: str, *, local_only: bool = False) -> str | None: ...

    def set_local(self, key: str, value: str | None, *, replace_all: bool = True) -> ConfigResult: ...


class GitConfigStore:
    """:class:`ConfigStore` that runs the ``git`` binary in *working_dir*."""

    def __init__(
        self,
        working_dir: Path,
        *,
        git_binary: str = "git",
        timeout: float = _DEFAULT_TIMEOUT_S,
    ) -> None:
        self.working_dir = working_dir
        self.git_binary = git_binary
        self.timeout = timeout

    def get(self, key: str, *, local_only: bool = False) -> str | None:
        """Read *key*; ``None`` when it is not set.

        Raises
        ------
        ConfigReadError
            If git fails for any reason other than a missing key.
        """
        args = ["config"]
        if local_only:
            args.append("--local")
        args += ["--get", key]

        result = self._run(args)
        if result.exit_code == _MISSING_KEY_EXIT_CODE and not result.errors:
            return None
        if not result.ok:
            raise ConfigReadError(result.errors or f"git config --get {key} exited {result.exit_code}")
        return result.output.rstrip("\n")

    def set_local(self, key: str, value: str | None, *, replace_all: bool = True) -> ConfigResult:
        """Write *key* to the local config.  Never raises; inspect the result.

        A ``None`` value removes every local occurrence of the key.
        """
        args = ["config", "--local"]
        if value is None:
            args += ["--unset-all", key]
        else:
            if replace_all:
                args.append("--replace-all")
            args += [key, value]

        result = self._run(args)
        logger.debug("config_written", key=key, value=value, ok=result.ok)
        return result

    def _run(self, args: list[str]) -> ConfigResult:
        command = [self.git_binary, *args]
        try:
            proc = subprocess.run(
                command,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            return ConfigResult(exit_code=-1, errors=str(exc))
        return ConfigResult(exit_code=proc.returncode, output=proc.stdout, errors=proc.stderr.strip())
