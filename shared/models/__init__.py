"""Shared data models for subathon services."""

from .timer_state import TimerStateRecord
from .token import Token

__all__ = [
    "TimerStateRecord",
    "Token",
]
