"""Shared repository layer for subathon services."""

from .timer_state import TimerStateRepository
from .token import TokenRepository

__all__ = [
    "TimerStateRepository",
    "TokenRepository",
]
