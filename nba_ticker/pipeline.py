# nba_ticker/pipeline.py
"""
Request pipeline: every outbound fetch goes through here.

Each attempt waits for rate-limit availability, records the request and runs the
blocking fetch in a worker thread. 429s are retried with exponential backoff;
anything else is surfaced immediately.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from .errors import RateLimited, TickerError, classify_error
from .rate_limit import RateLimitMonitor

T = TypeVar("T")


class RequestPipeline:
    """Wraps blocking fetch callables with rate limiting, retry and error classification."""

    def __init__(
        self,
        monitor: RateLimitMonitor,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.monitor = monitor
        self._sleep = sleep

    async def request(self, fn: Callable[[], T], label: str) -> T:
        """
        Run fn with up to monitor.max_retries + 1 attempts.

        Args:
            fn: Zero-argument callable performing exactly one network call.
            label: Short description used in logs and error messages.

        Returns:
            Whatever fn returns.

        Raises:
            RateLimited: retries exhausted on 429 responses.
            RequestFailed: any other failure (not retried).
        """
        attempts = 0
        last_error: Optional[TickerError] = None

        while attempts <= self.monitor.max_retries:
            attempts += 1
            await self.monitor.wait_for_availability()
            self.monitor.record_request()

            try:
                result = await asyncio.to_thread(fn)
            except Exception as exc:
                err = classify_error(exc, label)
                if not isinstance(err, RateLimited):
                    logger.warning(f"{label} failed: {err}")
                    if err is exc:
                        raise
                    raise err from exc

                last_error = err
                if not self.monitor.should_retry():
                    break

                self.monitor.increment_retry()
                delay = self.monitor.get_retry_delay()
                logger.warning(
                    f"{label} rate limited (attempt {attempts}), retrying in {delay:.2f}s"
                )
                await self._sleep(delay)
                continue

            self.monitor.reset_retry()
            return result

        # Give the next logical request its own retry budget.
        self.monitor.reset_retry()
        logger.error(f"{label} still rate limited after {attempts} attempts")
        raise RateLimited(
            f"{label}: rate limited after {attempts} attempts",
            label=label,
            attempts=attempts,
        ) from last_error
