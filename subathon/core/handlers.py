"""Turn inbound events into timer mutations."""

from __future__ import annotations

import logging
import math

from .duration import format_remaining, human_delta, parse_duration
from .engine import TimerEngine
from .events import ChatMessage, Cheer, InboundEvent, Subscription, Tip
from .guards import is_authorized
from .tiers import multiplier_for, resolve_tier

LOGGER = logging.getLogger("EventHandlers")

INVALID_DURATION_MESSAGE = "Invalid time. Try: 90s, 2m, 1h30m, 02:15:30"


def render_feedback(template: str, user: str, op: str, delta: str, remaining: str) -> str:
    """Fill the first occurrence of each feedback placeholder."""
    return (
        template.replace("{user}", user, 1)
        .replace("{op}", op, 1)
        .replace("{delta}", delta, 1)
        .replace("{remaining}", remaining, 1)
    )


class EventHandlers:
    """Handlers for each inbound event variant, bound to one engine."""

    def __init__(self, engine: TimerEngine) -> None:
        self.engine = engine

    @property
    def config(self):
        return self.engine.config

    def handle(self, event: InboundEvent) -> str | None:
        """Apply *event* to the engine. Returns feedback text, if any."""
        if isinstance(event, ChatMessage):
            return self.handle_chat_message(event)
        if isinstance(event, Subscription):
            self.handle_subscription(event)
        elif isinstance(event, Cheer):
            self.handle_cheer(event)
        elif isinstance(event, Tip):
            self.handle_tip(event)
        return None

    # ------------------------------------------------------------------
    # Support events
    # ------------------------------------------------------------------

    def handle_subscription(self, event: Subscription) -> float:
        """Grant time for a sub, resub or gift bundle. Returns seconds granted."""
        cfg = self.config
        tier = resolve_tier(event.plan, is_prime=event.is_prime)
        mult = multiplier_for(tier, cfg)

        if event.is_gift:
            per_gift = cfg.gift_sub_seconds * (mult if cfg.apply_tier_to_gifts else 1)
            granted = max(1, event.count) * per_gift
            self.engine.add_seconds(granted)
            LOGGER.info(
                f"Gift x{event.count} ({tier.value}) from {event.actor.display_name}: +{granted:g}s"
            )
            return granted

        granted = cfg.sub_seconds * mult
        self.engine.add_seconds(granted)

        # First month is covered by the base grant
        if event.months > 1:
            per_month = cfg.resub_per_month_seconds * (
                mult if cfg.apply_tier_to_resub_months else 1
            )
            bonus = (event.months - 1) * per_month
            self.engine.add_seconds(bonus)
            granted += bonus

        LOGGER.info(
            f"Sub ({tier.value}, months={event.months}) from {event.actor.display_name}: "
            f"+{granted:g}s"
        )
        return granted

    def handle_cheer(self, event: Cheer) -> int:
        bits_per_second = max(1.0, self.config.bits_per_second or 10)
        granted = math.floor(event.bits / bits_per_second)
        if self.engine.add_seconds(granted):
            LOGGER.info(f"Cheer {event.bits:g} bits from {event.actor.display_name}: +{granted}s")
        return granted

    def handle_tip(self, event: Tip) -> int:
        per_second = max(0.01, self.config.tip_per_second or 1)
        granted = math.floor(event.amount / per_second)
        if self.engine.add_seconds(granted):
            LOGGER.info(
                f"Tip {event.amount:g}{event.currency and ' ' + event.currency} "
                f"from {event.actor.display_name}: +{granted}s"
            )
        return granted

    # ------------------------------------------------------------------
    # Chat commands
    # ------------------------------------------------------------------

    def match_command(self, text: str) -> tuple[int, str] | None:
        """Return ``(sign, argument)`` if *text* invokes a timer command."""
        cfg = self.config
        lower = text.lower()
        for command, sign in (
            (cfg.add_time_command.lower(), 1),
            (cfg.sub_time_command.lower(), -1),
        ):
            if command and (lower == command or lower.startswith(command + " ")):
                return sign, text[len(command):].strip()
        return None

    def handle_chat_message(self, event: ChatMessage) -> str | None:
        cfg = self.config
        if not cfg.enable_chat_commands:
            return None

        text = event.text.strip()
        if not text:
            return None
        matched = self.match_command(text)
        if matched is None:
            return None

        # Unauthorized users get no reply at all
        if not is_authorized(event.actor, cfg.who_can_use):
            LOGGER.debug(f"Ignoring timer command from unauthorized {event.actor.display_name}")
            return None

        sign, argument = matched
        seconds = parse_duration(argument)
        if seconds <= 0:
            return INVALID_DURATION_MESSAGE if cfg.command_feedback else None

        if not self.engine.apply_command_delta(seconds, sign):
            return INVALID_DURATION_MESSAGE if cfg.command_feedback else None
        op = "added" if sign > 0 else "removed"
        LOGGER.info(f"{event.actor.display_name} {op} {seconds}s via chat")

        if not cfg.command_feedback:
            return None
        return render_feedback(
            cfg.feedback_format,
            user=event.actor.display_name,
            op=op,
            delta=human_delta(seconds),
            remaining=format_remaining(self.engine.remaining),
        )
