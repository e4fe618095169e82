"""Subathon countdown timer driven by Twitch chat, subs, cheers and tips."""

__version__ = "0.1.0"
