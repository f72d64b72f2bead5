"""
Clock and Scheduler Abstractions

The rate limiter and processing queue never read wall-clock time or create
timers directly. They receive a Clock and a Scheduler so that tests can
drive quota windows and retry backoff without real waiting.

- Clock.monotonic(): seconds for interval arithmetic (rate-limit window)
- Clock.now(): timezone-aware UTC datetime (daily quota, job timestamps)
- Clock.sleep(): suspend the calling coroutine
- Scheduler.call_later(): run a callback on the event loop after a delay

Usage:
    from app.services.clock import SystemClock, LoopScheduler

    limiter = RateLimiter(clock=SystemClock())
    queue = ProcessingQueue(processor, scheduler=LoopScheduler())
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Protocol


class Clock(Protocol):
    def monotonic(self) -> float: ...

    def now(self) -> datetime: ...

    async def sleep(self, seconds: float) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> None: ...


class SystemClock:
    """Real time: time.monotonic, UTC datetime.now, asyncio.sleep."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class LoopScheduler:
    """Delayed callbacks on the running asyncio event loop."""

    def __init__(self):
        self._handles: set[asyncio.TimerHandle] = set()

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        loop = asyncio.get_running_loop()

        def _run() -> None:
            self._handles.discard(handle)
            callback()

        handle = loop.call_later(max(delay, 0.0), _run)
        self._handles.add(handle)

    @property
    def pending(self) -> int:
        """Number of callbacks scheduled but not yet run."""
        return len(self._handles)

    def cancel_all(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
