"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EntryState(str, Enum):
    """Lifecycle of one cached value between two writes."""

    FRESH = "fresh"
    STALE_SERVING = "stale_serving"
    REFRESHING = "refreshing"


@dataclass(slots=True)
class CacheEntry:
    """One cached row with write timestamps used for refresh and expiry."""

    value: Any
    inserted_at_s: float
    written_at_s: float
    refreshing: bool = False

    def age_s(self, now_s: float) -> float:
        return now_s - self.written_at_s

    def state(self, now_s: float, refresh_after_s: float) -> EntryState:
        if self.refreshing:
            return EntryState.REFRESHING
        if self.age_s(now_s) >= refresh_after_s:
            return EntryState.STALE_SERVING
        return EntryState.FRESH


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time counters exposed by `CacheStore.stats()`."""

    hit_count: int = 0
    miss_count: int = 0
    load_success_count: int = 0
    load_failure_count: int = 0
    eviction_count: int = 0
    refresh_count: int = 0

    @property
    def request_count(self) -> int:
        return self.hit_count + self.miss_count

    @property
    def hit_rate(self) -> float:
        total = self.request_count
        return 1.0 if total == 0 else self.hit_count / total
