from types import SimpleNamespace

import pytest

from subathon.components.subathon import (
    SubathonComponent,
    chat_message_event,
    cheer_event,
    subscribe_event,
    subscription_gift_event,
    subscription_message_event,
)
from subathon.core.events import Actor, Cheer, Subscription


def user(name="viewer", user_id="100"):
    return SimpleNamespace(id=user_id, name=name.lower(), display_name=name)


class FakeBroadcaster:
    name = "streamer"

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send_message(self, *, message, sender, token_for):
        self.sent.append(message)


class FakeRuntime:
    def __init__(self, feedback=None) -> None:
        self.events = []
        self.feedback = feedback

    def dispatch(self, event):
        self.events.append(event)
        return self.feedback


def make_component(feedback=None, reply_in_chat=True):
    bot = SimpleNamespace(
        bot_id="999", runtime=FakeRuntime(feedback), reply_in_chat=reply_in_chat
    )
    return SubathonComponent(bot), bot


def chat_payload(text, *, chatter_id="100", moderator=False, broadcaster=False):
    chatter = SimpleNamespace(
        id=chatter_id,
        name="mod",
        display_name="Mod",
        moderator=moderator,
        broadcaster=broadcaster,
    )
    return SimpleNamespace(chatter=chatter, text=text, broadcaster=FakeBroadcaster())


class TestConversions:
    def test_chat_message_roles(self):
        event = chat_message_event(chat_payload("!addtime 5m", moderator=True))
        assert event.text == "!addtime 5m"
        assert event.actor == Actor(display_name="Mod", is_moderator=True)

    def test_new_sub(self):
        event = subscribe_event(SimpleNamespace(user=user("Alice"), tier="2000", gift=False))
        assert event == Subscription(actor=Actor(display_name="Alice"), plan="2000")

    def test_resub_uses_cumulative_months(self):
        payload = SimpleNamespace(user=user(), tier="1000", cumulative_months=7, months=1)
        assert subscription_message_event(payload).months == 7

    def test_gift_bundle(self):
        payload = SimpleNamespace(user=user("Gifter"), tier="3000", total=10, anonymous=False)
        event = subscription_gift_event(payload)
        assert event.is_gift
        assert event.count == 10
        assert event.actor.display_name == "Gifter"

    def test_anonymous_gift(self):
        payload = SimpleNamespace(user=None, tier="1000", total=None, anonymous=True)
        event = subscription_gift_event(payload)
        assert event.actor.display_name == "Anonymous"
        assert event.count == 1

    def test_cheer(self):
        event = cheer_event(SimpleNamespace(user=user(), bits=500, anonymous=False))
        assert event == Cheer(actor=Actor(display_name="viewer"), bits=500)


class TestListeners:
    @pytest.mark.asyncio
    async def test_feedback_is_sent_to_chat(self):
        component, bot = make_component(feedback="Mod added 5m → 0:05:00")
        payload = chat_payload("!addtime 5m", moderator=True)
        await component.event_message(payload)
        assert payload.broadcaster.sent == ["Mod added 5m → 0:05:00"]

    @pytest.mark.asyncio
    async def test_feedback_stays_local_when_chat_replies_disabled(self):
        component, bot = make_component(feedback="ok", reply_in_chat=False)
        payload = chat_payload("!addtime 5m", moderator=True)
        await component.event_message(payload)
        assert len(bot.runtime.events) == 1
        assert payload.broadcaster.sent == []

    @pytest.mark.asyncio
    async def test_own_messages_are_ignored(self):
        component, bot = make_component(feedback="ok")
        await component.event_message(chat_payload("!addtime 5m", chatter_id="999"))
        assert bot.runtime.events == []

    @pytest.mark.asyncio
    async def test_gifted_recipient_is_skipped(self):
        component, bot = make_component()
        await component.event_subscription(SimpleNamespace(user=user(), tier="1000", gift=True))
        assert bot.runtime.events == []

        await component.event_subscription(SimpleNamespace(user=user(), tier="1000", gift=False))
        assert len(bot.runtime.events) == 1

    @pytest.mark.asyncio
    async def test_gift_and_cheer_are_dispatched(self):
        component, bot = make_component()
        await component.event_subscription_gift(
            SimpleNamespace(user=user(), tier="1000", total=3, anonymous=False)
        )
        await component.event_cheer(SimpleNamespace(user=user(), bits=100, anonymous=False))
        kinds = [type(e).__name__ for e in bot.runtime.events]
        assert kinds == ["Subscription", "Cheer"]


def test_channel_subscriptions_cover_every_listener():
    from subathon.core.subscriptions import get_channel_subscriptions

    subs = get_channel_subscriptions("1234", "5678")
    assert [type(s).__name__ for s in subs] == [
        "ChatMessageSubscription",
        "ChannelSubscribeSubscription",
        "ChannelSubscribeMessageSubscription",
        "ChannelSubscriptionGiftSubscription",
        "ChannelCheerSubscription",
    ]
