"""Data model for the subathon_state table."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class TimerStateRecord:
    """Persisted timer snapshot, one row per storage key."""

    storage_key: str
    snapshot: dict = field(default_factory=dict)
    updated_at: datetime | None = None
