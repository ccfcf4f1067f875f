"""
Persistence layer for memory logs.

Provides:
- Safe per-owner stream paths
- Per-key locks released when idle
- Append-only JSONL streams with per-stream write serialization
"""

from .paths import StreamPaths, ensure_dirs, is_safe_name
from .locks import KeyedLock
from .append_log import AppendLog

__all__ = [
    "StreamPaths",
    "ensure_dirs",
    "is_safe_name",
    "AppendLog",
    "KeyedLock",
]
