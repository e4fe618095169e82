"""Data model for the tokens table."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Token:
    """OAuth token record."""

    user_id: str
    token: str
    refresh: str
