"""Twitch bot feeding channel events into the subathon timer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import twitchio
from twitchio import eventsub
from twitchio.ext import commands

from shared.repositories.token import TokenRepository

from .subscriptions import get_channel_subscriptions

if TYPE_CHECKING:
    from .runtime import SubathonRuntime

LOGGER: logging.Logger = logging.getLogger("Bot")


class Bot(commands.AutoBot):
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        bot_id: str,
        owner_id: str,
        broadcaster_id: str,
        conduit_id: str | None,
        runtime: SubathonRuntime,
        tokens: TokenRepository | None = None,
        reply_in_chat: bool = True,
    ) -> None:
        self.runtime = runtime
        self.tokens = tokens
        self.broadcaster_id = broadcaster_id
        self.reply_in_chat = reply_in_chat
        self._subscribed = False

        subs: list[eventsub.SubscriptionPayload] = []
        if broadcaster_id:
            subs = get_channel_subscriptions(broadcaster_id, bot_id)

        init_kwargs: dict = dict(
            client_id=client_id,
            client_secret=client_secret,
            bot_id=bot_id,
            owner_id=owner_id or None,
            prefix="!",
            subscriptions=subs,
            force_subscribe=True,
        )
        if conduit_id:
            init_kwargs["conduit_id"] = conduit_id

        super().__init__(**init_kwargs)

    async def setup_hook(self) -> None:
        await self.load_module("subathon.components.subathon")

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def add_token(
        self, token: str, refresh: str
    ) -> twitchio.authentication.ValidateTokenPayload:
        resp: twitchio.authentication.ValidateTokenPayload = await super().add_token(
            token, refresh
        )
        if self.tokens is not None:
            await self.tokens.upsert(resp.user_id, token, refresh)
            LOGGER.info(f"Added token to database: {resp.login or 'unknown'} ({resp.user_id})")
        return resp

    async def load_tokens(self, path: str | None = None) -> None:
        if self.tokens is None:
            await super().load_tokens(path)
            return

        for row in await self.tokens.list_all():
            await self.add_token(row.token, row.refresh)

    async def save_tokens(self, path: str | None = None) -> None:
        # Database-backed tokens are saved as they arrive
        if self.tokens is None:
            await super().save_tokens(path)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def event_ready(self) -> None:
        LOGGER.info("Successfully logged in as: %s", self.bot_id)

    async def event_oauth_authorized(
        self, payload: twitchio.authentication.UserTokenPayload
    ) -> None:
        await self.add_token(payload.access_token, payload.refresh_token)

        if not payload.user_id:
            return

        if payload.user_id == self.bot_id:
            LOGGER.info("Bot account authorized")
            return

        if payload.user_id == self.broadcaster_id and not self._subscribed:
            await self.subscribe_channel_events()

    async def subscribe_channel_events(self) -> None:
        try:
            resp = await self.multi_subscribe(
                get_channel_subscriptions(self.broadcaster_id, self.bot_id)
            )
            non_conflict = [e for e in resp.errors if "409" not in str(e)]
            if non_conflict:
                LOGGER.warning(f"Subscription errors: {non_conflict}")
            self._subscribed = True
            LOGGER.info(f"Subscribed to events for channel: {self.broadcaster_id}")
        except Exception as e:
            LOGGER.exception(f"Failed to subscribe channel {self.broadcaster_id}: {e}")

    async def event_eventsub_error(self, error: Exception) -> None:
        LOGGER.error(f"EventSub error: {error}")
