"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed transport contracts consumed by prompt resolution and execution.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Protocol


class ByteStream(Protocol):
    """Open response body handed to the SSE decoder; the caller closes it."""

    def __iter__(self) -> Iterator[bytes]: ...

    def close(self) -> None: ...


class HTTPTransport(Protocol):
    """HTTP collaborator interface. Retry and auth refresh live behind it."""

    def post(self, url: str, body: Mapping[str, Any]) -> str: ...

    def post_stream(self, url: str, body: Mapping[str, Any]) -> ByteStream: ...

    def close(self) -> None: ...
