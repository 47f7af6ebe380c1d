"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/__init__.py.
"""

from .coalescing import FetchCoordinator, normalize_fetch_key

__all__ = [
    "FetchCoordinator",
    "normalize_fetch_key",
]
