"""
Path management for append-only JSONL streams.

One file per (owner, stream) pair, e.g. ``workspace/memory/user1-fact.jsonl``.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List


_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def is_safe_name(name: str) -> bool:
    """True when ``name`` can be embedded in a file name without leaving the directory."""
    if not name or not name.strip():
        return False
    if name in (".", ".."):
        return False
    return not any(ch in name for ch in _FORBIDDEN_CHARS)


@dataclass
class StreamPaths:
    """Centralized paths for a directory of JSONL streams."""

    root: Path                 # e.g., workspace/memory

    def stream_path(self, owner: str, stream: str) -> Path:
        """Path to one owner's stream, ``<owner>-<stream>.jsonl``."""
        if not is_safe_name(owner) or not is_safe_name(stream):
            raise ValueError(f"Unsafe stream name: {owner!r}/{stream!r}")
        return self.root / f"{owner}-{stream}.jsonl"

    def owner_streams(self, owner: str, streams: Iterable[str]) -> List[Path]:
        """Stream paths for an owner, in the given stream order."""
        return [self.stream_path(owner, stream) for stream in streams]


def ensure_dirs(sp: StreamPaths) -> None:
    """
    Create the stream directory if it doesn't exist.

    Args:
        sp: StreamPaths instance
    """
    sp.root.mkdir(parents=True, exist_ok=True)
