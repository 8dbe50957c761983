"""Search index maintenance.

This module provides:
- create_index(): Synchronous index creation with the gather command
- IndexRefresher: Single-flight background refresh with staleness checks
"""

from .builder import MARKER_FILE, create_index, find_error_lines
from .refresher import IndexRefresher, IndexStatus, RefreshResult, RefreshState

__all__ = [
    "MARKER_FILE",
    "IndexRefresher",
    "IndexStatus",
    "RefreshResult",
    "RefreshState",
    "create_index",
    "find_error_lines",
]
