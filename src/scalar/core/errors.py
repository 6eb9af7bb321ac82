"""Scalar domain exceptions.

Every module raises typed exceptions so callers can handle failures
explicitly instead of catching bare ValueError/RuntimeError.

Two families live here:

* :class:`ScalarError` subclasses are ordinary runtime failures that a
  CLI layer reports and exits on.
* :class:`ContractViolation` subclasses mean the caller broke a
  precondition (blank identifier, second write to a write-once field).
  Well-formed callers never see them.
"""

from __future__ import annotations


# ── Base ────────────────────────────────────────────────────
class ScalarError(Exception):
    """Root exception for Scalar runtime errors."""


class ContractViolation(Exception):
    """A programmer-contract precondition was broken.

    Not a :class:`ScalarError`, so ``except ScalarError`` never catches it.
    """


# ── Enlistment / filesystem ────────────────────────────────
class EnlistmentNotFound(ScalarError):
    """No enlistment root is discoverable from the given path."""

    def __init__(self, start_path: str | None = None, reason: str | None = None) -> None:
        where = f" (searched from {start_path})" if start_path else ""
        detail = reason or "no .git marker in parent chain"
        super().__init__(f"Enlistment root not found{where}: {detail}")
        self.start_path = start_path


class ValueAlreadySet(ContractViolation):
    """A write-once field was assigned a second time."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Value already set: {field}")
        self.field = field


# ── Configuration store ────────────────────────────────────
class ConfigReadError(ScalarError):
    """A configuration value could not be read or is malformed."""


# ── Cache servers ──────────────────────────────────────────
class InvalidCacheServerArgument(ContractViolation, ValueError):
    """An empty or whitespace identifier was passed where one is required."""


class CacheServerNotFound(ScalarError, LookupError):
    """A named or URL-keyed cache server is absent from the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"no cache server found with name {name}")
        self.name = name


class CacheServerTransitionInvalid(ScalarError):
    """An illegal cache-server resolution step was attempted."""

    def __init__(self, from_state: str, to_state: str) -> None:
        super().__init__(f"Invalid transition: {from_state} → {to_state}")
        self.from_state = from_state
        self.to_state = to_state


# ── Registry document ──────────────────────────────────────
class RegistryNotFound(ScalarError):
    """The cache-server registry document does not exist."""


class RegistryInvalid(ScalarError):
    """The registry document failed safe-load or schema validation."""


class RegistryTooLarge(RegistryInvalid):
    """The registry document exceeds the allowed size limit."""
