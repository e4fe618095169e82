"""Inbound event variants and the normalization layer that produces them.

Every "which field might this be called" question about external payloads
is answered here; handlers only ever see the dataclasses below.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

LOGGER = logging.getLogger("EventRouter")


@dataclass(frozen=True)
class Actor:
    """Snapshot of the user behind an event."""

    display_name: str = "User"
    is_broadcaster: bool = False
    is_moderator: bool = False


@dataclass(frozen=True)
class ChatMessage:
    actor: Actor
    text: str


@dataclass(frozen=True)
class Subscription:
    actor: Actor
    plan: str = ""
    is_prime: bool = False
    is_gift: bool = False
    count: int = 1
    months: int = 0


@dataclass(frozen=True)
class Cheer:
    actor: Actor
    bits: float = 0


@dataclass(frozen=True)
class Tip:
    actor: Actor
    amount: float = 0
    currency: str = ""


InboundEvent = Union[ChatMessage, Subscription, Cheer, Tip]

_CHAT_TAGS = {"message", "message-received", "chat"}
_SUB_TAGS = {"subscriber", "subscription", "sub", "resub"}
_CHEER_TAGS = {"cheer", "bits"}
_TIP_TAGS = {"tip", "donation"}


def to_number(value: Any) -> float:
    """Coerce *value* to a finite float; anything else becomes 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def actor_from_payload(data: Mapping[str, Any], channel: str | None = None) -> Actor:
    """Build an :class:`Actor` from chat-style user fields.

    Broadcaster: role ``broadcaster``, a broadcaster badge, or a login /
    display name equal to the channel. Moderator: role ``moderator``, a
    truthy ``mod`` tag, or a moderator badge.
    """
    tags = data.get("tags") or {}
    if not isinstance(tags, Mapping):
        tags = {}
    badges = tags.get("badges") or data.get("badges") or ""
    if isinstance(badges, (list, tuple, set)):
        badges = ",".join(str(b) for b in badges)
    badges = str(badges).lower()
    role = _text(_first(data, "role", "userRole")).lower()

    channel = _text(channel or data.get("channel")).lower()
    names = {
        _text(data.get("displayName")).lower(),
        _text(data.get("username")).lower(),
        _text(data.get("nick")).lower(),
    } - {""}

    is_broadcaster = (
        role == "broadcaster" or "broadcaster" in badges or (bool(channel) and channel in names)
    )
    is_moderator = (
        role == "moderator" or tags.get("mod") in (True, 1, "1") or "moderator" in badges
    )
    name = _text(_first(data, "displayName", "nick", "username", "name")) or "User"
    return Actor(display_name=name, is_broadcaster=is_broadcaster, is_moderator=is_moderator)


def normalize_event(raw: Any, channel: str | None = None) -> InboundEvent | None:
    """Map a tagged event payload onto one of the inbound event variants.

    Accepts ``{"type": <tag>, "data": {...}}`` as well as a flat payload
    carrying ``type``/``listener`` next to its fields. Returns ``None`` for
    anything unrecognized.
    """
    if not isinstance(raw, Mapping):
        return None

    tag = _text(raw.get("type") or raw.get("listener")).lower()
    data = raw.get("data") if isinstance(raw.get("data"), Mapping) else raw
    if not isinstance(data, Mapping):
        return None
    actor = actor_from_payload(data, channel)

    if tag in _CHAT_TAGS:
        return ChatMessage(actor=actor, text=_text(_first(data, "text", "message", "body")))

    if tag in _SUB_TAGS:
        is_gift = bool(data.get("gifted") or data.get("bulkGifted") or data.get("isGift"))
        count = int(to_number(_first(data, "amount", "count"))) or 1
        months = data.get("months")
        if months is None and not is_gift:
            months = data.get("amount")
        plan = _text(_first(data, "tier", "plan"))
        return Subscription(
            actor=actor,
            plan=plan,
            is_prime=bool(data.get("isPrime") or data.get("prime")),
            is_gift=is_gift,
            count=max(1, count),
            months=int(to_number(months)),
        )

    if tag in _CHEER_TAGS:
        return Cheer(actor=actor, bits=to_number(_first(data, "amount", "bits")))

    if tag in _TIP_TAGS:
        return Tip(
            actor=actor,
            amount=to_number(data.get("amount")),
            currency=_text(data.get("currency")),
        )

    LOGGER.debug(f"Ignoring unrecognized event tag: {tag!r}")
    return None
