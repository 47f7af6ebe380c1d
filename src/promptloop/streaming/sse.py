"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Server-sent events decoding as a pure line reducer plus a line-reading driver.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace

logger = logging.getLogger("promptloop.stream")


@dataclass(frozen=True, slots=True)
class ServerSentEvent:
    """One decoded event; `data` joins all `data:` lines with newlines."""

    event: str | None = None
    data: str = ""
    id: str | None = None
    retry: int | None = None

    @property
    def has_data(self) -> bool:
        return bool(self.data)


@dataclass(frozen=True, slots=True)
class PendingEvent:
    """Fields accumulated for the event currently being read."""

    event: str | None = None
    data_lines: tuple[str, ...] = field(default_factory=tuple)
    id: str | None = None
    retry: int | None = None

    @property
    def has_signal(self) -> bool:
        return bool(self.data_lines) or any(
            value is not None for value in (self.event, self.id, self.retry)
        )


EMPTY_PENDING = PendingEvent()


def finalize(pending: PendingEvent) -> ServerSentEvent | None:
    """Turn accumulated fields into an event, or `None` when nothing was signalled."""
    if not pending.has_signal:
        return None
    return ServerSentEvent(
        event=pending.event,
        data="\n".join(pending.data_lines),
        id=pending.id,
        retry=pending.retry,
    )


def apply_field(pending: PendingEvent, name: str, value: str) -> PendingEvent:
    """Apply one `name: value` field; unknown fields leave `pending` unchanged."""
    name = name.lower()
    if name == "event":
        return replace(pending, event=value)
    if name == "data":
        return replace(pending, data_lines=(*pending.data_lines, value))
    if name == "id":
        return replace(pending, id=value)
    if name == "retry":
        try:
            return replace(pending, retry=int(value.strip()))
        except ValueError:
            logger.debug("Ignoring invalid retry value: %r", value)
            return pending
    return pending


def reduce_line(
    pending: PendingEvent,
    line: str,
) -> tuple[PendingEvent, ServerSentEvent | None]:
    """
    Feed one line (without its terminator) into the decoder state.

    Returns the next state and, when `line` is blank and completes a
    signalled event, that event.
    """
    if not line.strip():
        event = finalize(pending)
        if event is None:
            return pending, None
        return EMPTY_PENDING, event

    name, sep, value = line.partition(":")
    if not sep:
        return apply_field(pending, line.strip(), ""), None
    if value.startswith(" "):
        value = value[1:]
    return apply_field(pending, name.strip(), value), None


def _strip_terminator(raw: bytes | str) -> str:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    return text.rstrip("\r\n")


class SSEDecoder:
    """
    Read server-sent events from a line source.

    `source` is anything yielding lines as bytes or str: an open HTTP
    response, a `BytesIO`, or a plain list in tests. It is closed (once) by
    `close()` when it exposes a `close` method.
    """

    def __init__(self, source: Iterable[bytes] | Iterable[str]) -> None:
        self._source = source
        self._lines: Iterator[bytes | str] = iter(source)
        self._pending = EMPTY_PENDING
        self._exhausted = False
        self._closed = False

    def decode_event(self) -> ServerSentEvent | None:
        """Return the next event, or `None` once the source is exhausted."""
        if self._exhausted or self._closed:
            return None
        for raw in self._lines:
            self._pending, event = reduce_line(self._pending, _strip_terminator(raw))
            if event is not None:
                return event

        self._exhausted = True
        event = finalize(self._pending)
        self._pending = EMPTY_PENDING
        return event

    def __iter__(self) -> Iterator[ServerSentEvent]:
        while True:
            event = self.decode_event()
            if event is None:
                return
            yield event

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._source, "close", None)
        if callable(close):
            close()
