"""
Outbound Rate Limiter

Paces calls to the generative service so that no more than
RATE_LIMIT_REQUESTS_PER_MINUTE calls start within any trailing window and no
more than RATE_LIMIT_REQUESTS_PER_DAY calls start per UTC calendar day.

Behavior of acquire():
- Daily cap reached -> raise QuotaExceededError immediately (no waiting,
  never retried by the queue)
- Window full -> sleep until the oldest timestamp leaves the window
- Otherwise -> record the call and return

All state changes happen while holding a single asyncio.Lock. A caller that
has to wait keeps the lock while it sleeps, so concurrent callers queue up
behind it and each re-checks the window after the one ahead has recorded
its call. Two callers can therefore never both observe the same free slot.

Usage:
    from app.services.processing.rate_limiter import RateLimiter

    limiter = RateLimiter(requests_per_minute=15, requests_per_day=1500)
    await limiter.acquire()
    response = await llm_client.complete(...)
"""

import asyncio
import logging
from collections import deque
from datetime import date
from typing import Optional

from app.config.processing import processing_settings
from app.services.clock import Clock, SystemClock
from app.services.processing.errors import QuotaExceededError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window and daily-cap limiter for outbound service calls.

    Attributes:
        requests_per_minute: Calls allowed within any trailing window
        requests_per_day: Calls allowed per UTC calendar day
        window_seconds: Length of the sliding window
    """

    def __init__(
        self,
        requests_per_minute: Optional[int] = None,
        requests_per_day: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        self.requests_per_minute = (
            requests_per_minute or processing_settings.RATE_LIMIT_REQUESTS_PER_MINUTE
        )
        self.requests_per_day = (
            requests_per_day or processing_settings.RATE_LIMIT_REQUESTS_PER_DAY
        )
        self.window_seconds = (
            window_seconds or processing_settings.RATE_LIMIT_WINDOW_SECONDS
        )
        self._clock = clock or SystemClock()

        self._request_times: deque[float] = deque()
        self._daily_count = 0
        self._current_day: date = self._clock.now().date()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """
        Wait for a free slot and claim it.

        Raises:
            QuotaExceededError: If the daily cap has been reached
        """
        async with self._lock:
            while True:
                self._roll_day()
                if self._daily_count >= self.requests_per_day:
                    logger.warning(
                        f"Daily request limit reached ({self.requests_per_day}); "
                        f"refusing further calls until the next UTC day"
                    )
                    raise QuotaExceededError(
                        f"Daily request limit exceeded ({self.requests_per_day} requests)"
                    )

                now = self._clock.monotonic()
                self._prune(now)

                if len(self._request_times) < self.requests_per_minute:
                    self._request_times.append(now)
                    self._daily_count += 1
                    return

                wait_seconds = self.window_seconds - (now - self._request_times[0])
                logger.debug(
                    f"Rate limit window full ({len(self._request_times)}/"
                    f"{self.requests_per_minute}); waiting {wait_seconds:.2f}s"
                )
                await self._clock.sleep(max(wait_seconds, 0.0))

    def _roll_day(self) -> None:
        today = self._clock.now().date()
        if today != self._current_day:
            logger.info(
                f"New UTC day {today.isoformat()}; resetting daily request count "
                f"(was {self._daily_count})"
            )
            self._current_day = today
            self._daily_count = 0

    def _prune(self, now: float) -> None:
        while self._request_times and now - self._request_times[0] >= self.window_seconds:
            self._request_times.popleft()

    @property
    def daily_count(self) -> int:
        return self._daily_count

    @property
    def daily_remaining(self) -> int:
        return max(self.requests_per_day - self._daily_count, 0)

    def window_count(self) -> int:
        """Calls recorded within the trailing window as of now."""
        now = self._clock.monotonic()
        return sum(1 for t in self._request_times if now - t < self.window_seconds)
