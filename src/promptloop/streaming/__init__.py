"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: streaming/__init__.py.
"""

from .reader import ExecuteResultParser, SSEParser, StreamReader
from .sse import (
    PendingEvent,
    ServerSentEvent,
    SSEDecoder,
    finalize,
    reduce_line,
)

__all__ = [
    "ExecuteResultParser",
    "PendingEvent",
    "SSEDecoder",
    "SSEParser",
    "ServerSentEvent",
    "StreamReader",
    "finalize",
    "reduce_line",
]
