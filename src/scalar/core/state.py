"""Cache-server resolution state machine.

A :class:`CacheServerInfo` starts unresolved (a friendly name without a
URL, a URL without a name, or the ``Default`` placeholder) and ends in
one of four terminal forms.  Terminal forms never move again.
"""

from __future__ import annotations

from enum import Enum

from scalar.core.errors import CacheServerTransitionInvalid
from scalar.core.models import CacheServerInfo, ReservedName


class CacheServerState(str, Enum):
    UNRESOLVED_NAME = "unresolved_name"
    UNRESOLVED_URL = "unresolved_url"
    DEFAULT = "default"
    NONE = "none"
    NAMED = "named"
    USER_DEFINED = "user_defined"


# Rules: which state each lookup may land in
ALLOWED_TRANSITIONS: dict[CacheServerState, set[CacheServerState]] = {
    CacheServerState.DEFAULT: {CacheServerState.NAMED, CacheServerState.NONE},
    # "default" typed as a name may land on None
    CacheServerState.UNRESOLVED_NAME: {CacheServerState.NAMED, CacheServerState.NONE},
    CacheServerState.UNRESOLVED_URL: {
        CacheServerState.NAMED,
        CacheServerState.NONE,
        CacheServerState.USER_DEFINED,
    },
    CacheServerState.NONE: set(),
    CacheServerState.NAMED: set(),
    CacheServerState.USER_DEFINED: set(),
}


def state_of(info: CacheServerInfo) -> CacheServerState:
    if info.name is None:
        return CacheServerState.UNRESOLVED_URL
    reserved = info.name if isinstance(info.name, ReservedName) else None
    if reserved is ReservedName.NONE:
        return CacheServerState.NONE
    if reserved is ReservedName.DEFAULT:
        return CacheServerState.DEFAULT
    if reserved is ReservedName.USER_DEFINED:
        return CacheServerState.USER_DEFINED
    if info.url is None:
        return CacheServerState.UNRESOLVED_NAME
    return CacheServerState.NAMED


def is_terminal(info: CacheServerInfo) -> bool:
    return not ALLOWED_TRANSITIONS[state_of(info)]


def can_transition(from_state: CacheServerState, to_state: CacheServerState) -> bool:
    return to_state in ALLOWED_TRANSITIONS.get(from_state, set())


def transition(current: CacheServerInfo, resolved: CacheServerInfo) -> CacheServerInfo:
    """Validate that *current* may resolve into *resolved* and return it."""
    from_state = state_of(current)
    to_state = state_of(resolved)
    if not can_transition(from_state, to_state):
        raise CacheServerTransitionInvalid(from_state.value, to_state.value)
    return resolved
