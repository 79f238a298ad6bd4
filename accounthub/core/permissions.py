"""
Capability-based permission evaluation.

A role grants a set of capability tokens (``Role.allowed``). Authorization is
decided only by membership of the required capability in that set; the role's
``kind`` is a label used to seed defaults and is never consulted here.

Pure Python - no database access, no FastAPI imports.
"""

from enum import Enum
from typing import Iterable


class Capability(str, Enum):
    """Capability tokens a role can grant."""

    VIEW_BILLING = "view_billing"
    MANAGE_BILLING = "manage_billing"
    MANAGE_USERS = "manage_users"
    MANAGE_ROLES = "manage_roles"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_ACCOUNTS = "manage_accounts"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_CONTENT = "manage_content"


ALL_CAPABILITIES: frozenset[str] = frozenset(c.value for c in Capability)


def _token(capability: "Capability | str") -> str:
    return capability.value if isinstance(capability, Capability) else capability


def can(allowed: Iterable[str] | None, capability: "Capability | str") -> bool:
    """
    Decide whether a capability set grants a capability.

    Args:
        allowed: The role's granted capability tokens (None means nothing)
        capability: Required capability

    Returns:
        True if the capability is in the granted set
    """
    if not allowed:
        return False
    return _token(capability) in set(allowed)


def can_all(allowed: Iterable[str] | None, capabilities: Iterable["Capability | str"]) -> bool:
    """True if every capability is granted."""
    granted = set(allowed or ())
    return all(_token(c) in granted for c in capabilities)


def can_any(allowed: Iterable[str] | None, capabilities: Iterable["Capability | str"]) -> bool:
    """True if at least one capability is granted."""
    granted = set(allowed or ())
    return any(_token(c) in granted for c in capabilities)


def merged_capabilities(allowed_sets: Iterable[Iterable[str] | None]) -> set[str]:
    """Union of several roles' capability sets."""
    merged: set[str] = set()
    for allowed in allowed_sets:
        merged.update(allowed or ())
    return merged


def unknown_capabilities(allowed: Iterable[str]) -> list[str]:
    """Tokens in ``allowed`` that are not known capabilities, in input order."""
    return [token for token in allowed if token not in ALL_CAPABILITIES]
