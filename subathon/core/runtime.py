"""Runtime wiring: initialization, render loop and event dispatch."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from .config import TimerConfig
from .duration import format_remaining
from .engine import TimerEngine
from .events import InboundEvent
from .handlers import EventHandlers
from .persistence import TimerStateStore, WriteBehindPersister
from .sinks import RenderSink

LOGGER = logging.getLogger("SubathonRuntime")


class RuntimeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class NotReadyError(RuntimeError):
    """Raised by manual operations before the timer is initialized."""


class SubathonRuntime:
    """Owns the one timer engine of a running service.

    ``load`` is the primary initialization path; ``bootstrap`` falls back to
    a default configuration if no ``load`` happened within a grace period.
    Re-loading cancels the previous render loop before starting a new one.
    """

    def __init__(
        self,
        store: TimerStateStore,
        *,
        sinks: Iterable[RenderSink] = (),
        render_fps: float = 10,
        persist_interval: float = 3.0,
        persist_debounce: float = 0.5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.sinks: list[RenderSink] = list(sinks)
        self.frame_interval = 1.0 / render_fps
        self.persist_interval = persist_interval
        self.persist_debounce = persist_debounce
        self._clock = clock

        self.state = RuntimeState.UNINITIALIZED
        self.engine: TimerEngine | None = None
        self.handlers: EventHandlers | None = None
        self.persister: WriteBehindPersister | None = None
        self._render_task: asyncio.Task | None = None
        self._loaded = asyncio.Event()
        self._load_lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self.state is RuntimeState.READY

    def _require_engine(self) -> TimerEngine:
        if not self.ready or self.engine is None:
            raise NotReadyError("Timer is not initialized yet")
        return self.engine

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self, config: TimerConfig) -> None:
        """Initialize (or re-initialize) the timer from *config*.

        Reads the persisted snapshot once and reconciles time that elapsed
        while the service was down; starts fresh when nothing was stored.
        """
        async with self._load_lock:
            await self._cancel_render_loop()
            if self.persister is not None:
                await self.persister.stop()

            self.state = RuntimeState.INITIALIZING
            LOGGER.info(f"Initializing timer (storage key '{config.storage_key}')")

            engine = TimerEngine(config, clock=self._clock)
            persister = WriteBehindPersister(
                self.store,
                config.storage_key,
                engine.snapshot,
                interval=self.persist_interval,
                debounce=self.persist_debounce,
            )

            try:
                snapshot = await self.store.get(config.storage_key)
            except Exception as e:
                LOGGER.warning(f"Failed to read persisted timer state: {e}")
                snapshot = None

            if not engine.restore(snapshot):
                LOGGER.info("No persisted timer state, starting fresh")
                engine.reset()

            if config.autostart and engine.remaining > 0:
                engine.start()

            engine.on_change = persister.mark_dirty
            await persister.flush()

            self.engine = engine
            self.handlers = EventHandlers(engine)
            self.persister = persister
            self.state = RuntimeState.READY
            self._loaded.set()

            persister.start()
            self._render_task = asyncio.create_task(self._render_loop())
            LOGGER.info(
                f"Timer ready: {format_remaining(engine.remaining)} "
                f"({'running' if engine.is_running else 'paused'})"
            )

    async def bootstrap(
        self, config: TimerConfig | None = None, grace_seconds: float = 0
    ) -> None:
        """Wait up to *grace_seconds* for ``load``, then fall back to *config*."""
        if grace_seconds > 0:
            try:
                await asyncio.wait_for(self._loaded.wait(), timeout=grace_seconds)
                return
            except asyncio.TimeoutError:
                LOGGER.warning(
                    f"No configuration received within {grace_seconds:g}s, using defaults"
                )
        if self.state is RuntimeState.UNINITIALIZED:
            await self.load(config or TimerConfig())

    async def stop(self) -> None:
        """Stop rendering and write the final state."""
        await self._cancel_render_loop()
        if self.persister is not None:
            await self.persister.stop()
        for sink in self.sinks:
            try:
                await sink.flush()
            except Exception as e:
                LOGGER.warning(f"{type(sink).__name__} flush failed: {e}")
        LOGGER.info("Subathon runtime stopped")

    async def _cancel_render_loop(self) -> None:
        if self._render_task is None:
            return
        self._render_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._render_task
        self._render_task = None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def _render_loop(self) -> None:
        while True:
            self.render_frame()
            await asyncio.sleep(self.frame_interval)

    def render_frame(self) -> str:
        """Advance the clock and push the formatted time to every sink."""
        engine = self._require_engine()
        engine.tick()
        text = format_remaining(engine.remaining)
        for sink in self.sinks:
            try:
                sink.render(text)
            except Exception as e:
                LOGGER.warning(f"{type(sink).__name__} render failed: {e}")
        return text

    def show_feedback(self, text: str) -> None:
        timeout = self.engine.config.feedback_seconds if self.engine else 2.5
        for sink in self.sinks:
            try:
                sink.show_feedback(text, timeout)
            except Exception as e:
                LOGGER.warning(f"{type(sink).__name__} feedback failed: {e}")

    # ------------------------------------------------------------------
    # Events and manual control
    # ------------------------------------------------------------------

    def dispatch(self, event: InboundEvent) -> str | None:
        """Handle one inbound event to completion. Returns feedback text."""
        if not self.ready or self.handlers is None:
            LOGGER.debug(f"Dropping {type(event).__name__}: timer not ready")
            return None

        feedback = self.handlers.handle(event)
        if feedback:
            self.show_feedback(feedback)
        return feedback

    def add_seconds(self, seconds: Any) -> bool:
        return self._require_engine().add_seconds(seconds)

    def reset(self) -> None:
        self._require_engine().reset()

    def toggle_pause(self) -> bool:
        return self._require_engine().toggle_pause()

    def snapshot(self) -> dict[str, Any]:
        engine = self._require_engine()
        return {
            **engine.snapshot(),
            "formatted": format_remaining(engine.remaining),
            "storage_key": engine.config.storage_key,
        }
