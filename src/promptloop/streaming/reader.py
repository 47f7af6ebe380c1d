"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: streaming/reader.py.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from typing import Generic, Protocol, TypeVar

from ..errors import StreamClosedError, StreamEventError
from ..prompts.codec import decode_execute_result
from ..types import ExecuteResult
from .sse import ServerSentEvent, SSEDecoder

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

logger = logging.getLogger("promptloop.stream")


class SSEParser(Protocol[T_co]):
    """Type-specific conversion of decoded events."""

    def parse(self, event: ServerSentEvent) -> T_co | None: ...

    def handle_error(self, event: ServerSentEvent) -> Exception | None: ...


class StreamReader(Generic[T]):
    """
    Single-consumer pull reader over an SSE stream.

    - `recv()` returns the next parsed item, or `None` at end of stream.
    - Error events (as classified by the parser) close the reader and raise.
    - Events without data, events the parser maps to `None`, and events the
      parser fails on are skipped.
    - `close()` is idempotent and releases the decoder and the originating
      response exactly once; `recv()` after `close()` raises
      `StreamClosedError`.
    """

    def __init__(self, decoder: SSEDecoder, parser: SSEParser[T]) -> None:
        self._decoder = decoder
        self._parser = parser
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def recv(self) -> T | None:
        if self._closed:
            raise StreamClosedError("Stream reader is closed")

        while True:
            try:
                event = self._decoder.decode_event()
            except Exception:
                self.close()
                raise
            if event is None:
                self.close()
                return None

            error = self._parser.handle_error(event)
            if error is not None:
                self.close()
                raise error

            if not event.has_data:
                continue

            try:
                result = self._parser.parse(event)
            except Exception as exc:
                logger.debug("Failed to parse SSE event, continuing: %s", exc)
                continue
            if result is not None:
                return result

    def __iter__(self) -> Iterator[T]:
        while not self._closed:
            item = self.recv()
            if item is None:
                return
            yield item

    def __enter__(self) -> "StreamReader[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._decoder.close()


class ExecuteResultParser:
    """Parse execute_streaming chunks into `ExecuteResult` values."""

    def parse(self, event: ServerSentEvent) -> ExecuteResult | None:
        if not event.has_data:
            return None
        payload = json.loads(event.data)
        if not isinstance(payload, dict):
            return None
        return decode_execute_result(payload)

    def handle_error(self, event: ServerSentEvent) -> Exception | None:
        if event.event is None or "error" not in event.event.lower():
            return None
        message = event.data or "Error event received without data"
        return StreamEventError(message, event=event.event)
