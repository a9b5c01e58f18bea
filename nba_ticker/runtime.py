# nba_ticker/runtime.py
"""
Background event loop for synchronous callers.

The caches, the rate limit monitor and the prefetch scheduler all live on one
asyncio loop running in a daemon thread. WSGI request handlers submit coroutines
to it and block on the result.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class LoopRuntime:
    """Owns an event loop in a background thread."""

    def __init__(self, on_start: Optional[Callable[[], Awaitable[Any]]] = None,
                 on_stop: Optional[Callable[[], Awaitable[Any]]] = None) -> None:
        self._on_start = on_start
        self._on_stop = on_stop
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop thread and wait until it is accepting work."""
        if self.running:
            return
        self._ready.clear()
        self._thread = threading.Thread(target=self._run_in_thread, name="nba-ticker-loop", daemon=True)
        self._thread.start()
        self._ready.wait(timeout=5)

    def _run_in_thread(self) -> None:
        """Run the loop until stop() is called."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            if self._on_start is not None:
                self._loop.run_until_complete(self._on_start())
            self._ready.set()
            self._loop.run_forever()
        finally:
            self._ready.set()
            self._loop.close()

    def run(self, coro: Awaitable[T], timeout: Optional[float] = None) -> T:
        """Submit a coroutine to the loop and block for its result."""
        if not self.running or self._loop is None:
            raise RuntimeError("LoopRuntime is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout=timeout)

    def stop(self) -> None:
        """Run the stop hook, then stop the loop and join the thread."""
        if not self.running or self._loop is None:
            return
        if self._on_stop is not None:
            try:
                self.run(self._on_stop(), timeout=5)
            except Exception as exc:
                logger.warning(f"runtime stop hook failed: {exc}")
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5)
        logger.info("event loop runtime stopped")
