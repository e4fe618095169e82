"""Timer state stores and the write-behind persister."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

LOGGER = logging.getLogger("Persistence")


class TimerStateStore(Protocol):
    """Durable key/value store for timer snapshots."""

    async def get(self, storage_key: str) -> dict | None: ...

    async def set(self, storage_key: str, snapshot: dict) -> None: ...


class InMemoryTimerStateStore:
    """Process-local store, for tests and storage-less runs."""

    def __init__(self, initial: dict[str, dict] | None = None) -> None:
        self.data: dict[str, dict] = dict(initial or {})
        self.writes = 0

    async def get(self, storage_key: str) -> dict | None:
        snapshot = self.data.get(storage_key)
        return dict(snapshot) if snapshot is not None else None

    async def set(self, storage_key: str, snapshot: dict) -> None:
        self.data[storage_key] = dict(snapshot)
        self.writes += 1


class JsonFileTimerStateStore:
    """All snapshots in one JSON document, replaced atomically on write."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}

    def _write(self, storage_key: str, snapshot: dict) -> None:
        try:
            data = self._read_all()
        except ValueError:
            LOGGER.warning(f"State file {self.path} is corrupt, rewriting")
            data = {}
        data[storage_key] = snapshot

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    async def get(self, storage_key: str) -> dict | None:
        data = await asyncio.to_thread(self._read_all)
        snapshot = data.get(storage_key)
        return snapshot if isinstance(snapshot, dict) else None

    async def set(self, storage_key: str, snapshot: dict) -> None:
        await asyncio.to_thread(self._write, storage_key, snapshot)


class WriteBehindPersister:
    """Flush timer snapshots in the background.

    Mutations only call :meth:`mark_dirty`. The flush loop writes within
    *debounce* seconds of the first mutation and, while the timer is running,
    at least every *interval* seconds. Failed writes are logged and retried on
    the next cycle; the in-memory state stays authoritative.
    """

    def __init__(
        self,
        store: TimerStateStore,
        storage_key: str,
        snapshot: Callable[[], dict],
        *,
        interval: float = 3.0,
        debounce: float = 0.5,
    ) -> None:
        self.store = store
        self.storage_key = storage_key
        self._snapshot = snapshot
        self.interval = interval
        self.debounce = debounce
        self._dirty = False
        self._wake = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._stopping = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def mark_dirty(self) -> None:
        self._dirty = True
        self._wake.set()

    async def flush(self) -> bool:
        """Write the current snapshot now. Returns False if the write failed."""
        snapshot = self._snapshot()
        self._dirty = False
        try:
            await self.store.set(self.storage_key, snapshot)
        except asyncio.CancelledError:
            self._dirty = True
            raise
        except Exception as e:
            self._dirty = True
            LOGGER.warning(f"Failed to persist timer state '{self.storage_key}': {e}")
            return False
        return True

    async def _wait_for_wake(self) -> bool:
        """Wait up to ``interval`` for a mutation. Returns True if woken."""
        waiter = asyncio.ensure_future(self._wake.wait())
        try:
            done, _ = await asyncio.wait({waiter}, timeout=self.interval)
        finally:
            waiter.cancel()
        return bool(done)

    async def _flush_loop(self) -> None:
        while not self._stopping:
            if await self._wait_for_wake() and self.debounce:
                await asyncio.sleep(self.debounce)
            self._wake.clear()
            if self._stopping:
                return

            if self._dirty or self._snapshot().get("is_running"):
                await self.flush()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._flush_loop())

    async def stop(self) -> None:
        """Stop the flush loop, then write one last time if dirty."""
        if self._task is not None:
            self._stopping = True
            self._wake.set()
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._dirty:
            await self.flush()
