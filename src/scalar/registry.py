"""Cache-server registry loader.

The remote server publishes a configuration document listing the cache
servers an enlistment may use.  Fetching it is a collaborator's job; this
module validates whatever was fetched:

* Size limit (default 512 KB) when loading from disk.
* ``yaml.safe_load`` only (JSON documents are valid YAML).
* Keys accepted as ``camelCase``, ``snake_case`` or ``PascalCase``.
* Typed exceptions (:class:`RegistryNotFound`, :class:`RegistryInvalid`,
  :class:`RegistryTooLarge`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from scalar.core.errors import RegistryInvalid, RegistryNotFound, RegistryTooLarge
from scalar.core.models import CacheServerInfo

_DEFAULT_MAX_SIZE_BYTES = 512 * 1024  # 512 KB


# ── Pydantic v2 strict models ──────────────────────────────
class CacheServerEntry(BaseModel):
    """A single cache server advertised by the remote."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str = Field(validation_alias=AliasChoices("name", "Name"))
    url: str = Field(validation_alias=AliasChoices("url", "Url"))
    global_default: bool = Field(
        default=False,
        validation_alias=AliasChoices("global_default", "globalDefault", "GlobalDefault"),
    )

    @field_validator("name", "url")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cache server name and url must not be blank")
        return v

    def to_info(self) -> CacheServerInfo:
        return CacheServerInfo(url=self.url, name=self.name)


class CacheServerRegistry(BaseModel):
    """Ordered list of cache servers; order decides ties."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    cache_servers: list[CacheServerEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("cache_servers", "cacheServers", "CacheServers"),
    )
    allowed_client_versions: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "allowed_client_versions", "allowedScalarClientVersions", "AllowedScalarClientVersions"
        ),
    )

    def global_default(self) -> CacheServerEntry | None:
        """First entry flagged as the global default, if any."""
        return next((c for c in self.cache_servers if c.global_default), None)

    def find_by_name(self, name: str) -> CacheServerEntry | None:
        folded = name.casefold()
        return next((c for c in self.cache_servers if c.name.casefold() == folded), None)

    def find_by_url(self, url: str) -> CacheServerEntry | None:
        folded = url.casefold()
        return next((c for c in self.cache_servers if c.url.casefold() == folded), None)


class RegistrySource(Protocol):
    def fetch(self) -> CacheServerRegistry: ...


class FileRegistrySource:
    """:class:`RegistrySource` reading a document saved on disk."""

    def __init__(self, path: Path, *, max_size_bytes: int = _DEFAULT_MAX_SIZE_BYTES) -> None:
        self.path = path
        self.max_size_bytes = max_size_bytes

    def fetch(self) -> CacheServerRegistry:
        return load_registry(self.path, max_size_bytes=self.max_size_bytes)


# ── Parsing ─────────────────────────────────────────────────
def parse_registry(raw: Any) -> CacheServerRegistry:
    """Validate an already-decoded registry document.

    Accepts the server document shape (``{"CacheServers": [...]}`` in any
    supported key casing), or a bare list of entries.  ``None`` yields an
    empty registry.

    Raises
    ------
    RegistryInvalid
        Wrong top-level shape or an entry failing validation.
    """
    if raw is None:
        return CacheServerRegistry()
    if isinstance(raw, list):
        raw = {"cache_servers": raw}
    if not isinstance(raw, dict):
        raise RegistryInvalid("registry schema invalid: expected list or mapping with 'cacheServers'")

    try:
        return CacheServerRegistry.model_validate(raw)
    except ValidationError as exc:
        raise RegistryInvalid(f"registry schema invalid: {exc}") from exc


def load_registry(
    path: Path,
    *,
    max_size_bytes: int = _DEFAULT_MAX_SIZE_BYTES,
) -> CacheServerRegistry:
    """Load and validate a registry document from *path*.

    Raises
    ------
    RegistryNotFound
        File does not exist.
    RegistryTooLarge
        File exceeds *max_size_bytes*.
    RegistryInvalid
        Encoding, YAML/JSON parse error or schema validation failure.
    """
    if not path.exists():
        raise RegistryNotFound(f"registry not found: {path}")

    size = path.stat().st_size
    if size > max_size_bytes:
        raise RegistryTooLarge(f"registry {path.name} is {size:,} bytes (limit {max_size_bytes:,})")

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise RegistryInvalid(f"registry is not valid UTF-8: {exc}") from exc

    try:
        raw: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RegistryInvalid(f"YAML parse error: {exc}") from exc

    return parse_registry(raw)
