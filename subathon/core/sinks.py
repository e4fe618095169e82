"""Render sinks: where formatted time and command feedback end up."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger("RenderSink")


class RenderSink(Protocol):
    def render(self, text: str) -> None: ...

    def show_feedback(self, text: str, timeout: float) -> None: ...

    async def flush(self) -> None: ...


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


class FileRenderSink:
    """Text files for streaming software (e.g. an OBS text source).

    The time file is rewritten only when the text changes. Feedback goes to
    *feedback_path* and is blanked on the first render after it expires.

    Inside an event loop, writes run in a worker thread and only the latest
    text per file is kept while a write is in flight.
    """

    def __init__(
        self,
        path: Path | str,
        feedback_path: Path | str | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.feedback_path = Path(feedback_path) if feedback_path else None
        self._clock = clock
        self._last_text: str | None = None
        self._feedback_expires_at: float | None = None
        self._pending: dict[Path, str] = {}
        self._writer: asyncio.Task | None = None

    def _write(self, path: Path, text: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _write_atomic(path, text)
            return

        self._pending[path] = text
        if self._writer is None or self._writer.done():
            self._writer = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending:
            path, text = self._pending.popitem()
            try:
                await asyncio.to_thread(_write_atomic, path, text)
            except OSError as e:
                LOGGER.warning(f"Failed to write {path}: {e}")

    async def flush(self) -> None:
        """Wait for queued writes to reach disk."""
        if self._writer is not None:
            await self._writer

    def render(self, text: str) -> None:
        if text != self._last_text:
            self._write(self.path, text)
            self._last_text = text

        if self._feedback_expires_at is not None and self._clock() >= self._feedback_expires_at:
            self._feedback_expires_at = None
            if self.feedback_path:
                self._write(self.feedback_path, "")

    def show_feedback(self, text: str, timeout: float) -> None:
        if not self.feedback_path:
            return
        self._write(self.feedback_path, text)
        self._feedback_expires_at = self._clock() + timeout


class LogRenderSink:
    """Logs feedback, and time changes at DEBUG."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or LOGGER
        self._last_text: str | None = None

    def render(self, text: str) -> None:
        if text != self._last_text:
            self._last_text = text
            self.logger.debug(f"Remaining: {text}")

    def show_feedback(self, text: str, timeout: float) -> None:
        self.logger.info(f"Feedback: {text}")

    async def flush(self) -> None:
        return None
