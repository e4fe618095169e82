"""Duration parsing and time formatting helpers."""

from __future__ import annotations

import math
import re

_CLOCK_PATTERN = re.compile(r"\d{1,2}:\d{1,2}(?::\d{1,2})?")
_UNIT_PATTERN = re.compile(r"(\d+)\s*([hms])?")

UNIT_SECONDS = {"h": 3600, "m": 60, "s": 1}


def parse_duration(value: object) -> int:
    """Convert a duration string to whole seconds.

    Accepts ``MM:SS`` / ``HH:MM:SS`` clock notation or any mix of
    ``<digits>[h|m|s]`` tokens (``"1h30m"``, ``"90s"``, ``"2m 5"``); bare
    digits count as seconds. Anything unparseable yields 0, never an error.
    """
    if not isinstance(value, str):
        return 0
    text = value.strip().lower()
    if not text:
        return 0

    if _CLOCK_PATTERN.fullmatch(text):
        parts = [int(p) for p in text.split(":")]
        if len(parts) == 2:
            minutes, seconds = parts
            return minutes * 60 + seconds
        hours, minutes, seconds = parts
        return hours * 3600 + minutes * 60 + seconds

    total = 0
    for match in _UNIT_PATTERN.finditer(text):
        total += int(match.group(1)) * UNIT_SECONDS[match.group(2) or "s"]
    return total


def format_remaining(seconds: float) -> str:
    """Format seconds as ``[D:]H:MM:SS``.

    Hours are zero-padded only when a day component is present. Negative
    input is rendered by magnitude with a trailing ``-``.
    """
    negative = seconds < 0
    total = int(math.floor(abs(seconds)))
    days, total = divmod(total, 86400)
    hours, total = divmod(total, 3600)
    minutes, secs = divmod(total, 60)

    hh = f"{hours:02d}" if days > 0 else str(hours)
    text = f"{hh}:{minutes:02d}:{secs:02d}"
    if days > 0:
        text = f"{days}:{text}"
    return text + ("-" if negative else "")


def human_delta(seconds: float) -> str:
    """Render a delta magnitude as ``"1h 5m"``, ``"30s"`` or ``"0s"``."""
    total = abs(int(math.floor(seconds)))
    hours, total = divmod(total, 3600)
    minutes, secs = divmod(total, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not (hours or minutes):
        parts.append(f"{secs}s")
    return " ".join(parts)
