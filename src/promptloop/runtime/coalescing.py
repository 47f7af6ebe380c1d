"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/coalescing.py.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Executor, Future
from typing import Any, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger("promptloop.runtime")


def normalize_fetch_key(body: Mapping[str, Any]) -> str:
    """Build a deterministic dedup key for an outbound request body."""
    normalized = json.dumps(
        body,
        ensure_ascii=True,
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class FetchCoordinator(Generic[T]):
    """
    Deduplicate identical in-flight fetches across threads.

    The first caller for a fetch key registers a shared future and runs the
    supplier (inline, or on `executor` when one is given). Callers arriving
    while it runs receive the same future. The registration is removed before
    the future resolves, so a waiter that retries after a failure always
    starts a fresh fetch instead of observing the finished one.
    """

    def __init__(self, *, executor: Executor | None = None) -> None:
        self._executor = executor
        self._in_flight: dict[str, Future[T]] = {}
        self._lock = threading.Lock()

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def coordinate(self, fetch_key: str, supplier: Callable[[], T]) -> Future[T]:
        with self._lock:
            existing = self._in_flight.get(fetch_key)
            if existing is not None:
                logger.debug("Joining in-flight fetch %s", fetch_key[:12])
                return existing
            future: Future[T] = Future()
            self._in_flight[fetch_key] = future

        if self._executor is None:
            self._run(fetch_key, future, supplier)
        else:
            try:
                self._executor.submit(self._run, fetch_key, future, supplier)
            except RuntimeError as error:
                self._finish(fetch_key, future)
                future.set_exception(error)
        return future

    def _run(self, fetch_key: str, future: Future[T], supplier: Callable[[], T]) -> None:
        try:
            value = supplier()
        except Exception as error:
            self._finish(fetch_key, future)
            future.set_exception(error)
            return
        except BaseException as error:
            self._finish(fetch_key, future)
            future.set_exception(error)
            raise
        self._finish(fetch_key, future)
        future.set_result(value)

    def _finish(self, fetch_key: str, future: Future[T]) -> None:
        with self._lock:
            if self._in_flight.get(fetch_key) is future:
                del self._in_flight[fetch_key]
