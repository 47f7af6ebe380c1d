"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: transport/__init__.py.
"""

from .contracts import ByteStream, HTTPTransport
from .http import UrllibTransport

__all__ = [
    "ByteStream",
    "HTTPTransport",
    "UrllibTransport",
]
