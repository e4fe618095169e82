from twitchio import eventsub


def get_channel_subscriptions(
    broadcaster_user_id: str, bot_id: str
) -> list[eventsub.SubscriptionPayload]:
    """EventSub subscriptions that feed the subathon timer."""
    return [
        eventsub.ChatMessageSubscription(broadcaster_user_id=broadcaster_user_id, user_id=bot_id),
        eventsub.ChannelSubscribeSubscription(broadcaster_user_id=broadcaster_user_id),
        eventsub.ChannelSubscribeMessageSubscription(broadcaster_user_id=broadcaster_user_id),
        eventsub.ChannelSubscriptionGiftSubscription(broadcaster_user_id=broadcaster_user_id),
        eventsub.ChannelCheerSubscription(broadcaster_user_id=broadcaster_user_id),
    ]
