# nba_ticker/rate_limit.py
"""
Sliding-window rate limit monitor.

One instance is built at process start and handed to every component that
performs network I/O. State is in-process only and mutated from the event
loop thread.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque

from loguru import logger


@dataclass(frozen=True)
class RateLimitStatus:
    """Snapshot of the monitor, polled by the UI status indicator."""
    is_limited: bool
    requests_in_window: int
    max_requests: int
    window_seconds: float
    time_until_reset: float
    total_retries: int


class RateLimitMonitor:
    """Tracks recent request timestamps and computes retry backoff."""

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60.0,
        retry_delay: float = 1.0,
        max_retries: int = 3,
        *,
        time_fn: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            max_requests: Maximum requests allowed inside the window.
            window_seconds: Sliding window duration.
            retry_delay: Base delay for exponential backoff.
            max_retries: Number of retries allowed after a rate-limit failure.
            time_fn: Monotonic clock (injectable for tests).
            sleep: Async sleep used while waiting for availability.
        """
        self.max_requests = max(1, int(max_requests))
        self.window_seconds = float(window_seconds)
        self.retry_delay = float(retry_delay)
        self.max_retries = max(0, int(max_retries))
        self._now = time_fn
        self._sleep = sleep
        self._requests: Deque[float] = deque()
        self.retry_attempts = 0
        self.total_retries = 0

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()

    def record_request(self) -> None:
        """Append the current timestamp to the tracked window."""
        self._requests.append(self._now())

    def is_limited(self) -> bool:
        """Prune expired timestamps and report whether the window is full."""
        self._prune(self._now())
        return len(self._requests) >= self.max_requests

    def time_until_available(self) -> float:
        """Seconds until the oldest tracked request leaves the window (0 when not limited)."""
        if not self.is_limited():
            return 0.0
        return max(0.0, self._requests[0] + self.window_seconds - self._now())

    async def wait_for_availability(self) -> None:
        """
        Suspend the caller until a request may be issued.

        Availability is re-checked after every sleep; other waiters woken at
        the same time may have taken the free slot.
        """
        while (wait := self.time_until_available()) > 0:
            logger.warning(f"Rate limited, waiting {wait:.2f}s before next request")
            await self._sleep(wait)

    def get_retry_delay(self) -> float:
        """Exponential backoff: retry_delay * 2^(retry_attempts - 1)."""
        return self.retry_delay * math.pow(2, self.retry_attempts - 1)

    def should_retry(self) -> bool:
        return self.retry_attempts < self.max_retries

    def increment_retry(self) -> None:
        self.retry_attempts += 1
        self.total_retries += 1

    def reset_retry(self) -> None:
        self.retry_attempts = 0

    def reset(self) -> None:
        """Drop all tracked requests and counters."""
        self._requests.clear()
        self.retry_attempts = 0
        self.total_retries = 0

    def get_status(self) -> RateLimitStatus:
        """Return a point-in-time status snapshot."""
        limited = self.is_limited()
        now = self._now()
        if self._requests:
            until_reset = max(0.0, self._requests[0] + self.window_seconds - now)
        else:
            until_reset = 0.0
        return RateLimitStatus(
            is_limited=limited,
            requests_in_window=len(self._requests),
            max_requests=self.max_requests,
            window_seconds=self.window_seconds,
            time_until_reset=until_reset,
            total_retries=self.total_retries,
        )

    def describe(self) -> str:
        """Human readable status line, e.g. 'Rate limited (12s until reset)'."""
        status = self.get_status()
        if status.is_limited:
            return f"Rate limited ({math.ceil(status.time_until_reset)}s until reset)"
        remaining = status.max_requests - status.requests_in_window
        return f"{remaining} requests remaining in window"
