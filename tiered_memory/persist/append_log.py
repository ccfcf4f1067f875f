"""
Append-only JSONL log with one stream per (owner, stream) pair.

Every record is one self-contained JSON line. Records are never rewritten;
a stream is only ever removed as a whole file.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .locks import KeyedLock
from .paths import StreamPaths, ensure_dirs


logger = logging.getLogger(__name__)


class AppendLog:
    """
    File-backed append-only record log.

    Appends to the same stream are serialized by an asyncio lock, so
    records never interleave within one process. File I/O runs in a worker
    thread to keep the event loop free. Multi-process writers are not
    coordinated.
    """

    def __init__(self, root: Path, fsync: bool = True):
        """
        Initialize append log.

        Args:
            root: Directory holding the stream files
            fsync: fsync after every append for crash durability
        """
        self.paths = StreamPaths(root=Path(root))
        self.fsync = fsync
        self._locks = KeyedLock()

    @property
    def root(self) -> Path:
        return self.paths.root

    def init(self) -> None:
        """Create the log directory."""
        ensure_dirs(self.paths)

    def stream_path(self, owner: str, stream: str) -> Path:
        return self.paths.stream_path(owner, stream)

    async def append(self, owner: str, stream: str, record: Dict[str, Any]) -> None:
        """
        Durably append one record.

        Args:
            owner: Stream owner (user id)
            stream: Stream name within the owner
            record: JSON-serializable dict

        Raises:
            OSError: If the write fails
        """
        path = self.stream_path(owner, stream)
        line = json.dumps(record, ensure_ascii=False) + "\n"
        async with self._locks.hold((owner, stream)):
            await asyncio.to_thread(self._append_line, path, line)

    def _append_line(self, path: Path, line: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a+b") as f:
            # A torn final line from an interrupted append must not swallow this record
            size = f.seek(0, os.SEEK_END)
            if size:
                f.seek(size - 1)
                if f.read(1) != b"\n":
                    logger.warning("Terminating partial final line in %s", path)
                    line = "\n" + line
            f.write(line.encode("utf-8"))
            f.flush()
            if self.fsync:
                os.fsync(f.fileno())

    async def read(self, owner: str, stream: str) -> List[Dict[str, Any]]:
        """
        Read every record of a stream in append order.

        Missing or unreadable files yield no records. Blank lines are
        ignored; lines that are not a JSON object are logged and skipped.

        Args:
            owner: Stream owner
            stream: Stream name

        Returns:
            List of record dicts
        """
        path = self.stream_path(owner, stream)
        async with self._locks.hold((owner, stream)):
            return await asyncio.to_thread(self._read_records, path)

    def _read_records(self, path: Path) -> List[Dict[str, Any]]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Unreadable log %s, treating as empty: %s", path, e)
            return []

        records = []
        for lineno, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue

            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("Skipping malformed record %s:%d: %s", path, lineno, e)
                continue

            if not isinstance(record, dict):
                logger.warning("Skipping non-object record %s:%d", path, lineno)
                continue

            records.append(record)

        return records

    async def delete(self, owner: str, streams: Iterable[str]) -> int:
        """
        Remove an owner's stream files.

        Args:
            owner: Stream owner
            streams: Stream names to remove

        Returns:
            Number of files deleted (missing files are skipped)
        """
        streams = list(streams)
        deleted = 0
        for stream, path in zip(streams, self.paths.owner_streams(owner, streams)):
            async with self._locks.hold((owner, stream)):
                if await asyncio.to_thread(self._unlink, path):
                    deleted += 1
        return deleted

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True
