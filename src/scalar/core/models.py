"""Scalar domain models — reserved cache-server names and value objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReservedName(str, Enum):
    NONE = "None"
    DEFAULT = "Default"
    USER_DEFINED = "User Defined"

    @classmethod
    def parse(cls, text: str) -> ReservedName | None:
        """Case-insensitive lookup of a reserved keyword, or ``None``."""
        folded = text.casefold()
        for member in cls:
            if member.value.casefold() == folded:
                return member
        return None


@dataclass(frozen=True)
class CacheServerInfo:
    """A cache server: its URL and either a reserved name or a registry name.

    ``name is None`` means the URL is known but its friendly name has not
    been looked up yet.  ``url is None`` means a name is known but its URL
    has not been looked up yet.
    """

    url: str | None
    name: ReservedName | str | None

    @classmethod
    def none(cls, repo_url: str) -> CacheServerInfo:
        """Talk to the origin directly; no cache server."""
        return cls(url=repo_url, name=ReservedName.NONE)

    @classmethod
    def default(cls) -> CacheServerInfo:
        return cls(url=None, name=ReservedName.DEFAULT)

    @classmethod
    def user_defined(cls, url: str) -> CacheServerInfo:
        return cls(url=url, name=ReservedName.USER_DEFINED)
