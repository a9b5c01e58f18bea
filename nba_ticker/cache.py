# nba_ticker/cache.py
"""
In-memory stale-while-revalidate cache.

Per-process and per-event-loop: entries hold the last value, when it was
fetched, the load sequence that produced it and the task currently refreshing
it. Concurrent loads for one key are coalesced into that single task.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cached value, the time it was fetched and any in-flight refresh."""
    ts: float = 0.0
    value: Optional[T] = None
    has_value: bool = False
    seq: int = 0
    task: Optional[asyncio.Task] = None


class SWRCache:
    """A small key/value cache serving stale values while refreshing them in the background."""

    def __init__(self, *, time_fn: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty cache store."""
        self._store: Dict[str, CacheEntry] = {}
        self._now = time_fn
        self._seq = 0

    async def get_or_set(
        self,
        key: str,
        ttl_seconds: float,
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Retrieve a cached value, loading it when missing.

        A value older than ttl_seconds is still returned immediately, and a
        background refresh is started unless one is already running.

        Args:
            key: Cache key.
            ttl_seconds: Freshness window for the entry.
            loader: Coroutine function producing the value.

        Returns:
            The cached or newly loaded value.

        Raises:
            Whatever loader raises, when there is no cached value to fall back on.
        """
        entry = self._store.get(key)

        if entry is not None and entry.has_value:
            if not self._is_fresh(entry, ttl_seconds) and entry.task is None:
                logger.debug(f"cache {key}: stale, refreshing in background")
                self._start_load(key, loader, background=True)
            return entry.value

        if entry is not None and entry.task is not None:
            return await asyncio.shield(entry.task)

        task = self._start_load(key, loader, background=False)
        return await asyncio.shield(task)

    async def warm(
        self,
        key: str,
        ttl_seconds: float,
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Make sure key holds a fresh value, waiting for the load if needed.

        Used by prefetching. Failures propagate to the caller and leave any
        existing value untouched.
        """
        entry = self._store.get(key)
        if entry is not None and entry.has_value and self._is_fresh(entry, ttl_seconds):
            return entry.value
        if entry is not None and entry.task is not None:
            return await asyncio.shield(entry.task)
        task = self._start_load(key, loader, background=False)
        return await asyncio.shield(task)

    def peek(self, key: str) -> Optional[Any]:
        """Return the cached value for key without triggering any load."""
        entry = self._store.get(key)
        if entry is None or not entry.has_value:
            return None
        return entry.value

    def has_value(self, key: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and entry.has_value

    def is_fresh(self, key: str, ttl_seconds: float) -> bool:
        entry = self._store.get(key)
        return entry is not None and entry.has_value and self._is_fresh(entry, ttl_seconds)

    def keys(self) -> List[str]:
        return [k for k, e in self._store.items() if e.has_value]

    def invalidate(self, key: str) -> bool:
        """
        Drop the value for key.

        Loads issued before the invalidation can no longer write their result.

        Returns:
            True if a value was present.
        """
        entry = self._store.get(key)
        if entry is None:
            return False
        had_value = entry.has_value
        entry.value = None
        entry.has_value = False
        entry.ts = 0.0
        entry.seq = self._seq
        entry.task = None
        return had_value

    def clear(self) -> None:
        """Clear all cached entries."""
        self._store.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _is_fresh(self, entry: CacheEntry, ttl_seconds: float) -> bool:
        return (self._now() - entry.ts) < ttl_seconds

    def _start_load(self, key: str, loader: Callable[[], Awaitable[T]], background: bool) -> asyncio.Task:
        self._seq += 1
        seq = self._seq
        entry = self._store.setdefault(key, CacheEntry())
        task = asyncio.get_running_loop().create_task(self._load(key, seq, loader))
        entry.task = task

        def _done(t: asyncio.Task) -> None:
            current = self._store.get(key)
            if current is not None and current.task is t:
                current.task = None
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None and background:
                logger.warning(f"cache {key}: background refresh failed, keeping stale value: {exc}")

        task.add_done_callback(_done)
        return task

    async def _load(self, key: str, seq: int, loader: Callable[[], Awaitable[T]]) -> T:
        value = await loader()
        entry = self._store.setdefault(key, CacheEntry())
        if seq > entry.seq:
            entry.value = value
            entry.has_value = True
            entry.ts = self._now()
            entry.seq = seq
            return value

        logger.debug(f"cache {key}: discarding load #{seq}, newer data already stored")
        return entry.value if entry.has_value else value
