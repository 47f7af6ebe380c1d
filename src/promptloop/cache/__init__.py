"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import CacheEntry, CacheStats, EntryState
from .store import CacheStore

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "EntryState",
]
