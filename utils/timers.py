"""
Timing Utilities — Shared Scheduling Helpers

THIS MODULE DEFINES NO COMMANDS.

Provides reusable utilities for:
- Fixed duration windows
- Periodic background loops with start/stop
- Keyed one-shot scheduled callbacks that can be cancelled or replaced
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional

logger = logging.getLogger(__name__)

Key = Hashable
Callback = Callable[[], Awaitable[Any]]


def _now() -> float:
    """Return a monotonic timestamp in seconds."""
    return time.monotonic()


def remaining_time(start: float, duration: float, *, now: Optional[float] = None) -> float:
    """Return remaining time in a window, clamped to zero."""
    current = _now() if now is None else now
    return max(0.0, (start + duration) - current)


@dataclass
class TimedWindow:
    """Simple helper for checking fixed duration windows."""

    duration: float
    started_at: float = field(default_factory=_now)

    def remaining(self, *, now: Optional[float] = None) -> float:
        return remaining_time(self.started_at, self.duration, now=now)

    def expired(self, *, now: Optional[float] = None) -> bool:
        return self.remaining(now=now) <= 0.0

    def restart(self, *, now: Optional[float] = None) -> None:
        self.started_at = _now() if now is None else now


class PeriodicTask:
    """Run a coroutine every `interval` seconds until stopped.

    Exceptions raised by the callback are logged and the loop keeps going.
    """

    def __init__(self, name: str, interval: float, callback: Callback, *, run_immediately: bool = False) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.name = name
        self._interval = interval
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        try:
            if not self._run_immediately:
                await asyncio.sleep(self._interval)
            while True:
                try:
                    await self._callback()
                except Exception:
                    logger.exception("periodic_task_error", extra={"task": self.name})
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            logger.info("periodic_task_cancelled", extra={"task": self.name})
            raise

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


class ScheduledTasks:
    """One pending delayed callback per key.

    Scheduling a key that already has a pending callback cancels the old one.
    """

    def __init__(self) -> None:
        self._tasks: Dict[Key, asyncio.Task] = {}

    def __contains__(self, key: object) -> bool:
        return self.pending(key)

    def pending(self, key: Key) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def keys(self) -> List[Key]:
        return [key for key in self._tasks if self.pending(key)]

    def schedule(self, key: Key, delay: float, callback: Callback) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.create_task(self._run(key, max(0.0, delay), callback))
        self._tasks[key] = task
        return task

    async def _run(self, key: Key, delay: float, callback: Callback) -> None:
        try:
            await asyncio.sleep(delay)
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("scheduled_task_error", extra={"key": repr(key)})
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                self._tasks.pop(key, None)

    def cancel(self, key: Key) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def cancel_all(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
