"""Role gating for chat-triggered timer commands."""

from __future__ import annotations

from typing import Protocol

# Role hierarchy (higher index = higher privilege)
ROLE_HIERARCHY = ["everyone", "mods", "broadcaster"]


class _HasRoles(Protocol):
    is_broadcaster: bool
    is_moderator: bool


def role_level(actor: _HasRoles) -> int:
    if actor.is_broadcaster:
        return ROLE_HIERARCHY.index("broadcaster")
    if actor.is_moderator:
        return ROLE_HIERARCHY.index("mods")
    return 0


def is_authorized(actor: _HasRoles, policy: str) -> bool:
    """Check if *actor* may run a command under access *policy*.

    ``everyone`` always passes, ``broadcaster`` needs the channel owner,
    any other value is treated as moderators-and-above.
    """
    if policy == "everyone":
        return True
    min_role = policy if policy in ROLE_HIERARCHY else "mods"
    return role_level(actor) >= ROLE_HIERARCHY.index(min_role)
