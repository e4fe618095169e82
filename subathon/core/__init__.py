"""Core modules for the subathon timer."""

from .config import (
    BOT_SCOPES,
    BROADCASTER_SCOPES,
    SubathonSettings,
    TimerConfig,
    get_settings,
    oauth_url,
)
from .duration import format_remaining, human_delta, parse_duration
from .engine import TimerEngine, TimerState
from .events import Actor, ChatMessage, Cheer, InboundEvent, Subscription, Tip, normalize_event
from .guards import is_authorized
from .handlers import EventHandlers
from .persistence import (
    InMemoryTimerStateStore,
    JsonFileTimerStateStore,
    TimerStateStore,
    WriteBehindPersister,
)
from .runtime import NotReadyError, RuntimeState, SubathonRuntime
from .sinks import FileRenderSink, LogRenderSink, RenderSink
from .tiers import Tier, multiplier_for, resolve_tier

__all__ = [
    # Settings
    "BOT_SCOPES",
    "BROADCASTER_SCOPES",
    "SubathonSettings",
    "TimerConfig",
    "get_settings",
    "oauth_url",
    # Parsing and formatting
    "format_remaining",
    "human_delta",
    "parse_duration",
    # Classification
    "Tier",
    "multiplier_for",
    "resolve_tier",
    "is_authorized",
    # Events
    "Actor",
    "ChatMessage",
    "Cheer",
    "InboundEvent",
    "Subscription",
    "Tip",
    "normalize_event",
    # Timer
    "TimerEngine",
    "TimerState",
    "EventHandlers",
    # Persistence
    "InMemoryTimerStateStore",
    "JsonFileTimerStateStore",
    "TimerStateStore",
    "WriteBehindPersister",
    # Runtime
    "NotReadyError",
    "RuntimeState",
    "SubathonRuntime",
    "FileRenderSink",
    "LogRenderSink",
    "RenderSink",
]
