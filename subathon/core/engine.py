"""Delta-based countdown state.

The timer stores remaining seconds plus the wall-clock instant at which that
value was last correct, and derives elapsed time on each tick. Nothing here
stores an absolute end time, so a frozen or restarted process loses no time
and gains none.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .config import TimerConfig

LOGGER = logging.getLogger("TimerEngine")


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


@dataclass
class TimerState:
    remaining_seconds: float = 0.0
    is_running: bool = False
    last_observed_at: float = 0.0

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "remaining_seconds": self.remaining_seconds,
            "is_running": self.is_running,
            "last_observed_at": self.last_observed_at,
        }

    @classmethod
    def from_snapshot(cls, data: Any, now: float) -> TimerState | None:
        """Rebuild state from a persisted snapshot.

        Also reads the legacy ``remaining``/``isRunning``/``lastWallClock``
        (milliseconds) layout. Returns ``None`` when there is no numeric
        remaining value. A missing timestamp is taken as *now*.
        """
        if not isinstance(data, Mapping):
            return None

        if "remaining_seconds" in data:
            remaining = _finite(data.get("remaining_seconds"))
            running = data.get("is_running")
            observed = _finite(data.get("last_observed_at"))
        else:
            remaining = _finite(data.get("remaining"))
            running = data.get("isRunning")
            observed = _finite(data.get("lastWallClock"))
            if observed is not None:
                observed /= 1000

        if remaining is None:
            return None
        return cls(
            remaining_seconds=max(0.0, remaining),
            is_running=bool(running),
            last_observed_at=now if observed is None else observed,
        )


class TimerEngine:
    """Single source of truth for the countdown.

    Mutators never raise; invalid numeric input is a no-op. ``on_change`` is
    called after every meaningful mutation so the owner can persist.
    """

    def __init__(
        self,
        config: TimerConfig,
        *,
        clock: Callable[[], float] = time.time,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.config = config
        self._clock = clock
        self.on_change = on_change
        self.state = TimerState(last_observed_at=clock())

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def remaining(self) -> float:
        return self.state.remaining_seconds

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    def now(self) -> float:
        return self._clock()

    def snapshot(self) -> dict[str, Any]:
        return self.state.to_snapshot()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _settle(self, now: float) -> None:
        """Apply elapsed time up to *now* without any state transition."""
        dt = max(0.0, now - self.state.last_observed_at)
        if self.state.is_running:
            self.state.remaining_seconds = max(0.0, self.state.remaining_seconds - dt)
        self.state.last_observed_at = now

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def tick(self, now: float | None = None) -> float:
        """Apply wall-clock time elapsed since the last observation.

        Auto-pauses once when the countdown reaches zero and
        ``pause_on_zero`` is set. Returns the remaining seconds.
        """
        self._settle(self._clock() if now is None else now)

        state = self.state
        if self.config.pause_on_zero and state.is_running and state.remaining_seconds <= 0:
            state.is_running = False
            LOGGER.info("Timer reached zero, pausing")
            self._changed()
        return state.remaining_seconds

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _revive(self) -> None:
        if self.config.pause_on_zero and self.state.remaining_seconds > 0:
            self.state.is_running = True

    def add_seconds(self, delta: Any) -> bool:
        """Grant *delta* seconds. Returns False when *delta* was ignored."""
        seconds = _finite(delta)
        if seconds is None or seconds <= 0:
            return False
        if not math.isfinite(self.state.remaining_seconds + seconds):
            return False

        self._settle(self._clock())
        self.state.remaining_seconds += seconds
        self._revive()
        LOGGER.debug(f"Added {seconds:g}s, remaining={self.state.remaining_seconds:.1f}s")
        self._changed()
        return True

    def apply_command_delta(self, seconds: Any, sign: int) -> bool:
        """Add (``sign > 0``) or remove (``sign < 0``) time, flooring at zero."""
        magnitude = _finite(seconds)
        if magnitude is None or magnitude <= 0 or not sign:
            return False
        if not math.isfinite(self.state.remaining_seconds + magnitude):
            return False

        self._settle(self._clock())
        delta = magnitude if sign > 0 else -magnitude
        self.state.remaining_seconds = max(0.0, self.state.remaining_seconds + delta)
        self._revive()
        self._changed()
        return True

    def start(self) -> None:
        """Resume counting down, if not already running."""
        if self.state.is_running:
            return
        self._settle(self._clock())
        self.state.is_running = True
        LOGGER.info("Timer started")
        self._changed()

    def pause(self) -> None:
        if not self.state.is_running:
            return
        self._settle(self._clock())
        self.state.is_running = False
        LOGGER.info("Timer paused")
        self._changed()

    def toggle_pause(self) -> bool:
        """Flip the running flag. Returns the new value."""
        self._settle(self._clock())
        self.state.is_running = not self.state.is_running
        LOGGER.info("Timer resumed" if self.state.is_running else "Timer paused")
        self._changed()
        return self.state.is_running

    def reset(self) -> None:
        """Reinitialize from the configured start duration and autostart flag."""
        self.state = TimerState(
            remaining_seconds=max(0.0, float(self.config.start_seconds)),
            is_running=self.config.autostart,
            last_observed_at=self._clock(),
        )
        LOGGER.info(
            f"Timer reset to {self.state.remaining_seconds:g}s "
            f"({'running' if self.state.is_running else 'paused'})"
        )
        self._changed()

    def restore(self, snapshot: Any) -> bool:
        """Load a persisted snapshot and reconcile time elapsed while absent.

        A running snapshot observed N seconds ago loses N seconds (clamped at
        zero) before anything is rendered. Returns False if *snapshot* is
        unusable, leaving the current state untouched.
        """
        now = self._clock()
        state = TimerState.from_snapshot(snapshot, now)
        if state is None:
            return False

        before = state.remaining_seconds
        self.state = state
        self.tick(now)
        LOGGER.info(
            f"Restored timer: remaining={self.state.remaining_seconds:.1f}s "
            f"(reconciled {before - self.state.remaining_seconds:.1f}s), "
            f"running={self.state.is_running}"
        )
        self._changed()
        return True
