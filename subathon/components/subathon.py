"""EventSub listeners that drive the subathon timer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import twitchio
from twitchio.ext import commands

from subathon.core.events import Actor, ChatMessage, Cheer, InboundEvent, Subscription

if TYPE_CHECKING:
    from subathon.core.bot import Bot


LOGGER: logging.Logger = logging.getLogger("SubathonComponent")


def _actor_from_user(user: Any, *, broadcaster: bool = False, moderator: bool = False) -> Actor:
    if user is None:
        return Actor(display_name="Anonymous")
    name = getattr(user, "display_name", None) or getattr(user, "name", None) or "User"
    return Actor(display_name=name, is_broadcaster=broadcaster, is_moderator=moderator)


def chat_message_event(payload: twitchio.ChatMessage) -> ChatMessage:
    chatter = payload.chatter
    actor = _actor_from_user(
        chatter,
        broadcaster=bool(getattr(chatter, "broadcaster", False)),
        moderator=bool(getattr(chatter, "moderator", False)),
    )
    return ChatMessage(actor=actor, text=payload.text or "")


def subscribe_event(payload: twitchio.ChannelSubscribe) -> Subscription:
    return Subscription(actor=_actor_from_user(payload.user), plan=str(payload.tier or ""))


def subscription_message_event(payload: twitchio.ChannelSubscriptionMessage) -> Subscription:
    months = getattr(payload, "cumulative_months", None) or getattr(payload, "months", 0)
    return Subscription(
        actor=_actor_from_user(payload.user),
        plan=str(payload.tier or ""),
        months=int(months or 0),
    )


def subscription_gift_event(payload: twitchio.ChannelSubscriptionGift) -> Subscription:
    user = None if getattr(payload, "anonymous", False) else payload.user
    return Subscription(
        actor=_actor_from_user(user),
        plan=str(payload.tier or ""),
        is_gift=True,
        count=max(1, int(payload.total or 1)),
    )


def cheer_event(payload: twitchio.ChannelCheer) -> Cheer:
    user = None if getattr(payload, "anonymous", False) else payload.user
    return Cheer(actor=_actor_from_user(user), bits=float(payload.bits or 0))


class SubathonComponent(commands.Component):
    """Translate EventSub notifications into timer events."""

    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    def _dispatch(self, event: InboundEvent) -> str | None:
        return self.bot.runtime.dispatch(event)

    @commands.Component.listener()
    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        if payload.chatter.id == self.bot.bot_id:
            return

        feedback = self._dispatch(chat_message_event(payload))
        if feedback and self.bot.reply_in_chat and payload.broadcaster:
            try:
                await payload.broadcaster.send_message(
                    message=feedback,
                    sender=self.bot.bot_id,
                    token_for=self.bot.bot_id,
                )
            except Exception as e:
                LOGGER.error(f"[{payload.broadcaster.name}] Feedback failed: {e}")

    @commands.Component.listener()
    async def event_subscription(self, payload: twitchio.ChannelSubscribe) -> None:
        # Gifted subs are counted once, by event_subscription_gift
        if payload.gift:
            return
        self._dispatch(subscribe_event(payload))

    @commands.Component.listener()
    async def event_subscription_message(
        self, payload: twitchio.ChannelSubscriptionMessage
    ) -> None:
        self._dispatch(subscription_message_event(payload))

    @commands.Component.listener()
    async def event_subscription_gift(self, payload: twitchio.ChannelSubscriptionGift) -> None:
        self._dispatch(subscription_gift_event(payload))

    @commands.Component.listener()
    async def event_cheer(self, payload: twitchio.ChannelCheer) -> None:
        self._dispatch(cheer_event(payload))


async def setup(bot: Bot) -> None:
    await bot.add_component(SubathonComponent(bot))
    LOGGER.info("SubathonComponent loaded")


async def teardown(bot: Bot) -> None: ...
