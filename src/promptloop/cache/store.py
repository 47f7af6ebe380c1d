"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bounded loading cache with expire-after-write and stale-while-refresh semantics.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Generic, TypeVar

from ..settings import CacheSettings
from .base import CacheEntry, CacheStats, EntryState

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

logger = logging.getLogger("promptloop.cache")


def _completed(value: V) -> Future[V]:
    future: Future[V] = Future()
    future.set_result(value)
    return future


class CacheStore(Generic[K, V]):
    """
    Thread-safe key/value cache backed by an injected loader.

    - Entries are evicted least-recently-used once `max_size` is exceeded.
    - An entry older than `expire_after_write_s` is dropped and reloaded.
    - An entry older than `refresh_after_write_s` keeps being served while a
      background reload runs on the executor; refresh failures leave the
      stale value in place.
    - Concurrent misses on the same key share one load.

    The loader runs without holding the cache lock, so readers of other keys
    and readers of stale entries are never blocked by it.
    """

    def __init__(
        self,
        loader: Callable[[K], V | None],
        *,
        settings: CacheSettings | None = None,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = settings or CacheSettings()
        settings.validate()
        self._loader = loader
        self._max_size = settings.max_size
        self._expire_after_s = settings.expire_after_write_s
        self._refresh_after_s = settings.refresh_after_write_s
        self._clock = clock

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.max_workers,
            thread_name_prefix="promptloop-cache",
        )

        self._lock = threading.Lock()
        self._entries: OrderedDict[K, CacheEntry] = OrderedDict()
        self._loading: dict[K, Future[V | None]] = {}

        self._hits = 0
        self._misses = 0
        self._load_successes = 0
        self._load_failures = 0
        self._evictions = 0
        self._refreshes = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: K) -> Future[V | None]:
        """
        Return a future for the value of `key`, loading it on a miss.

        Hits return an already-completed future. A stale hit also schedules
        one background refresh for the entry.
        """
        refresh_entry: CacheEntry | None = None
        load_future: Future[V | None] | None = None

        with self._lock:
            now = self._clock()
            entry = self._lookup(key, now)
            if entry is not None:
                self._hits += 1
                self._entries.move_to_end(key)
                if entry.state(now, self._refresh_after_s) is EntryState.STALE_SERVING:
                    entry.refreshing = True
                    refresh_entry = entry
                result: Future[V | None] = _completed(entry.value)
            else:
                pending = self._loading.get(key)
                if pending is not None:
                    self._hits += 1
                    return pending
                self._misses += 1
                load_future = Future()
                self._loading[key] = load_future
                result = load_future

        if refresh_entry is not None:
            self._submit_refresh(key, refresh_entry)
        if load_future is not None:
            self._submit_load(key, load_future)
        return result

    def get_sync(self, key: K, *, timeout: float | None = None) -> V | None:
        """
        Block until the value of `key` is available.

        Loader failures are logged and reported as `None`.
        """
        try:
            return self.get(key).result(timeout=timeout)
        except Exception:
            logger.exception("Error getting value from cache for key %r", key)
            return None

    async def get_async(self, key: K) -> V | None:
        """Await the value of `key` without blocking the event loop."""
        return await asyncio.wrap_future(self.get(key))

    def put(self, key: K, value: V) -> None:
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(value=value, inserted_at_s=now, written_at_s=now)
            self._entries.move_to_end(key)
            self._evict_overflow()

    def invalidate(self, key: K) -> None:
        """Drop `key`; an in-flight load for it still completes and populates."""
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def state_of(self, key: K) -> EntryState | None:
        """Return the lifecycle state of `key`, or `None` when absent or expired."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or entry.age_s(now) > self._expire_after_s:
                return None
            return entry.state(now, self._refresh_after_s)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hit_count=self._hits,
                miss_count=self._misses,
                load_success_count=self._load_successes,
                load_failure_count=self._load_failures,
                eviction_count=self._evictions,
                refresh_count=self._refreshes,
            )

    def close(self) -> None:
        """Stop the owned executor; running loads are allowed to finish."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _lookup(self, key: K, now: float) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.age_s(now) > self._expire_after_s:
            del self._entries[key]
            self._evictions += 1
            return None
        return entry

    def _evict_overflow(self) -> None:
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted cache entry %r", evicted)

    def _submit_load(self, key: K, future: Future[V | None]) -> None:
        try:
            self._executor.submit(self._load, key, future)
        except RuntimeError as error:
            self._fail_load(key, future, error)

    def _fail_load(self, key: K, future: Future[V | None], error: BaseException) -> None:
        with self._lock:
            if self._loading.get(key) is future:
                del self._loading[key]
            self._load_failures += 1
        future.set_exception(error)

    def _submit_refresh(self, key: K, entry: CacheEntry) -> None:
        try:
            self._executor.submit(self._refresh, key, entry)
        except RuntimeError:
            logger.warning("Cache executor unavailable; skipping refresh for %r", key)
            with self._lock:
                entry.refreshing = False

    def _load(self, key: K, future: Future[V | None]) -> None:
        logger.debug("Loading cache entry %r", key)
        try:
            value = self._loader(key)
        except Exception as error:
            self._fail_load(key, future, error)
            return
        except BaseException as error:
            self._fail_load(key, future, error)
            raise

        with self._lock:
            if self._loading.get(key) is future:
                del self._loading[key]
            if value is None:
                self._load_failures += 1
            else:
                now = self._clock()
                self._entries[key] = CacheEntry(
                    value=value,
                    inserted_at_s=now,
                    written_at_s=now,
                )
                self._entries.move_to_end(key)
                self._load_successes += 1
                self._evict_overflow()
        future.set_result(value)

    def _refresh(self, key: K, entry: CacheEntry) -> None:
        logger.debug("Refreshing cache entry %r in background", key)
        try:
            value = self._loader(key)
        except Exception:
            logger.warning(
                "Background refresh failed for %r; serving stale value",
                key,
                exc_info=True,
            )
            with self._lock:
                entry.refreshing = False
                self._load_failures += 1
            return
        except BaseException:
            with self._lock:
                entry.refreshing = False
                self._load_failures += 1
            raise

        with self._lock:
            if self._entries.get(key) is not entry:
                # Invalidated or replaced while refreshing.
                return
            if value is None:
                entry.refreshing = False
                self._load_failures += 1
                return
            self._entries[key] = CacheEntry(
                value=value,
                inserted_at_s=entry.inserted_at_s,
                written_at_s=self._clock(),
            )
            self._load_successes += 1
            self._refreshes += 1
