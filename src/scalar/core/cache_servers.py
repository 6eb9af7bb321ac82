"""Cache-server resolution.

Turns any of three starting points into one canonical
:class:`CacheServerInfo`:

* the local config override (``gvfs.cache-server``),
* a friendly name looked up in the remote registry,
* raw user input (friendly name, URL, or a reserved keyword).

Precedence and sentinels
------------------------
* No local override means "talk to the origin": the info is tagged
  ``None`` and carries the repository URL.
* ``Default`` (any case) defers to the registry's global default; a
  registry without one resolves to ``None``.
* A URL that is neither the origin nor a registry entry is
  ``User Defined``.

Legitimate misses come back as ``(None, error_text)``; only blank
required inputs raise (:class:`InvalidCacheServerArgument`).
"""

from __future__ import annotations

import structlog

from scalar.core.config_store import CACHE_SERVER_KEY
from scalar.core.enlistment import Enlistment
from scalar.core.errors import CacheServerNotFound, InvalidCacheServerArgument
from scalar.core.models import CacheServerInfo, ReservedName
from scalar.core.state import CacheServerState, state_of, transition
from scalar.modules.url_guard import is_absolute_uri, redact_credentials, urls_match
from scalar.registry import CacheServerRegistry

logger = structlog.get_logger()


def get_url_from_config(enlistment: Enlistment) -> str:
    """Local cache-server override, or the repository URL when unset.

    Raises
    ------
    ConfigReadError
        If the local config cannot be read.
    """
    value = enlistment.config.get(CACHE_SERVER_KEY, local_only=True)
    return value if value is not None else enlistment.repo_url


def get_cache_server_from_config(enlistment: Enlistment) -> CacheServerInfo:
    """Configured cache server; its friendly name is left for a registry lookup."""
    url = get_url_from_config(enlistment)
    return CacheServerInfo(
        url=url,
        name=ReservedName.NONE if url == enlistment.repo_url else None,
    )


def describe(cache: CacheServerInfo) -> str:
    """Human-readable form: ``name (url)`` or whichever half is known."""
    name = cache.name.value if isinstance(cache.name, ReservedName) else cache.name
    url = redact_credentials(cache.url) if cache.url else None
    if not name:
        return url or ""
    if not url:
        return name
    return f"{name} ({url})"


class CacheServerResolver:
    """Resolves cache-server identifiers for one enlistment."""

    def __init__(self, enlistment: Enlistment) -> None:
        self.enlistment = enlistment

    def try_resolve_url_from_remote(
        self,
        cache_server_name: str,
        registry: CacheServerRegistry,
    ) -> tuple[CacheServerInfo | None, str | None]:
        """Look up *cache_server_name* in *registry*.

        Returns ``(info, None)`` on success and ``(None, error)`` when no
        entry carries that name.
        """
        if cache_server_name is None or not cache_server_name.strip():
            raise InvalidCacheServerArgument("An empty name is not supported")

        if ReservedName.parse(cache_server_name) is ReservedName.DEFAULT:
            entry = registry.global_default()
            return (entry.to_info() if entry else self._create_none()), None

        entry = registry.find_by_name(cache_server_name)
        if entry is None:
            return None, f"no cache server found with name {cache_server_name}"
        return entry.to_info(), None

    def resolve_name_from_remote(
        self,
        cache_server_url: str,
        registry: CacheServerRegistry,
    ) -> CacheServerInfo:
        """Attach the registry name to *cache_server_url*, or tag it ``User Defined``."""
        if cache_server_url is None or not cache_server_url.strip():
            raise InvalidCacheServerArgument("An empty url is not supported")

        if self._matches_enlistment_url(cache_server_url):
            return self._create_none()

        entry = registry.find_by_url(cache_server_url)
        if entry is not None:
            return entry.to_info()
        return CacheServerInfo.user_defined(cache_server_url)

    def parse_url_or_friendly_name(self, user_input: str | None) -> CacheServerInfo:
        """Classify raw user input.

        ``None`` means "unspecified" and maps to ``Default``; an empty
        string is a caller bug.
        """
        if user_input is None:
            return CacheServerInfo.default()

        if not user_input.strip():
            raise InvalidCacheServerArgument(
                "A missing input (None) is fine, but an empty input (empty string) is not supported"
            )

        if self._matches_enlistment_url(user_input) or ReservedName.parse(user_input) is ReservedName.NONE:
            return self._create_none()

        if is_absolute_uri(user_input):
            return CacheServerInfo.user_defined(user_input)
        return CacheServerInfo(url=None, name=user_input)

    def try_save_url_to_local_config(self, cache: CacheServerInfo) -> tuple[bool, str]:
        """Persist ``cache.url`` as the local override; never raises."""
        result = self.enlistment.config.set_local(CACHE_SERVER_KEY, cache.url, replace_all=True)
        if result.ok:
            logger.info("cache_server_saved", url=cache.url)
        else:
            logger.warning("cache_server_save_failed", url=cache.url, error=result.errors)
        return result.ok, result.errors

    def resolve(self, cache: CacheServerInfo, registry: CacheServerRegistry) -> CacheServerInfo:
        """Drive *cache* to a terminal state using *registry*.

        Raises
        ------
        CacheServerNotFound
            If a friendly name has no registry entry.
        """
        current = state_of(cache)
        if current in (CacheServerState.DEFAULT, CacheServerState.UNRESOLVED_NAME):
            assert cache.name is not None  # guaranteed by state_of
            name = cache.name.value if isinstance(cache.name, ReservedName) else cache.name
            resolved, _ = self.try_resolve_url_from_remote(name, registry)
            if resolved is None:
                raise CacheServerNotFound(name)
        elif current is CacheServerState.UNRESOLVED_URL:
            assert cache.url is not None  # guaranteed by state_of
            resolved = self.resolve_name_from_remote(cache.url, registry)
        else:
            return cache

        logger.debug("cache_server_resolved", from_state=current.value, cache_server=describe(resolved))
        return transition(cache, resolved)

    # ── Private helpers ─────────────────────────────────────
    def _create_none(self) -> CacheServerInfo:
        return CacheServerInfo.none(self.enlistment.repo_url)

    def _matches_enlistment_url(self, user_input: str) -> bool:
        return urls_match(self.enlistment.repo_url, user_input)
