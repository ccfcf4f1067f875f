"""
Tiered memory store backed by append-only JSONL logs.

Keeps each user's entries in memory, grouped by category and bounded by
per-category capacity, and records every write in the user's log before it
becomes visible.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from tiered_memory.config.settings import Settings
from tiered_memory.persist.append_log import AppendLog
from tiered_memory.persist.locks import KeyedLock
from tiered_memory.persist.paths import is_safe_name
from .errors import InvalidMemoryError, MemoryWriteError
from .policy import EvictionPolicy
from .recall import RelevanceRanker, ScoredMemory
from .schemas import MemoryCategory, MemoryEntry, MemoryStats, now_ms
from .summarizer import build_markdown_export, build_summary


logger = logging.getLogger(__name__)

Buckets = Dict[MemoryCategory, List[MemoryEntry]]


def _empty_buckets() -> Buckets:
    return {category: [] for category in MemoryCategory}


class MemoryStore:
    """
    Per-user, capacity-bounded memory index with durable logging.

    Layout on disk: ``<workspace>/memory/<user_id>-<category>.jsonl``.

    Write path: validate, append to the log, then insert into the index and
    enforce capacity. A failed append leaves the index untouched, and a
    crash between the two steps loses nothing that replay cannot restore.
    Writes for one user are serialized, so they land in call order.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        log: Optional[AppendLog] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize memory store.

        Args:
            settings: Limits, paths and durability options (default: Settings())
            log: Append log to write to (default: one rooted at settings.paths.memory_dir)
            clock: Returns the current time in epoch seconds
        """
        self.settings = settings or Settings()
        self.log = log or AppendLog(self.settings.paths.memory_dir, fsync=self.settings.fsync)
        self.policy = EvictionPolicy(self.settings.limits)
        self.ranker = RelevanceRanker(clock=clock)
        self.clock = clock

        self._memories: Dict[str, Buckets] = {}
        self._user_locks = KeyedLock()

    async def init(self) -> None:
        """Create the memory directory."""
        await asyncio.to_thread(self.log.init)
        logger.info("Memory store initialized at %s", self.log.root)

    def close(self) -> None:
        """Drop the in-memory index. Every write is already on disk."""
        users = len(self._memories)
        self._memories.clear()
        self._user_locks.clear()
        logger.info("Memory store closed (%d users released)", users)

    async def __aenter__(self) -> "MemoryStore":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    async def add_short_term_memory(
        self,
        user_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MemoryEntry:
        """Store transient, session-related information; expires after the short-term TTL."""
        return await self._write(user_id, content, MemoryCategory.SHORT_TERM, metadata=metadata)

    async def add_long_term_memory(
        self,
        user_id: str,
        content: str,
        importance: int = 70,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MemoryEntry:
        """Store durable information such as preferences or background knowledge."""
        return await self._write(
            user_id, content, MemoryCategory.LONG_TERM, importance=importance, metadata=metadata
        )

    async def add_working_memory(
        self,
        user_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MemoryEntry:
        """Store context for the task at hand. Expired working entries are swept first."""
        return await self._write(user_id, content, MemoryCategory.WORKING, metadata=metadata)

    async def add_fact(
        self,
        user_id: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MemoryEntry:
        """Store a fact the user provided about themselves or their context."""
        return await self._write(user_id, content, MemoryCategory.FACT, metadata=metadata)

    async def _write(
        self,
        user_id: str,
        content: str,
        category: MemoryCategory,
        importance: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MemoryEntry:
        self._check_user(user_id)
        if not content or not content.strip():
            raise InvalidMemoryError("content must be a non-empty string")

        created = now_ms(self.clock)
        ttl = self._ttl_seconds(category)
        expires_at = created + ttl * 1000 if ttl is not None else None

        entry = MemoryEntry.create(
            user_id=user_id,
            content=content,
            category=category,
            created_ms=created,
            importance=importance,
            expires_at=expires_at,
            metadata=metadata,
        )

        try:
            record = entry.to_record()
        except ValueError as e:
            raise InvalidMemoryError(f"metadata must be JSON-serializable: {e}") from e

        async with self._user_locks.hold(user_id):
            if category is MemoryCategory.WORKING:
                self._sweep(user_id, MemoryCategory.WORKING, now_ms(self.clock))

            try:
                await self.log.append(user_id, category.value, record)
            except OSError as e:
                raise MemoryWriteError(
                    f"Failed to persist {category.value} memory for {user_id}: {e}"
                ) from e

            self._store(user_id, entry)

        return entry

    def _ttl_seconds(self, category: MemoryCategory) -> Optional[int]:
        if category is MemoryCategory.SHORT_TERM:
            return self.settings.limits.short_term_ttl_seconds
        if category is MemoryCategory.WORKING:
            return self.settings.limits.working_ttl_seconds
        return None

    def _store(self, user_id: str, entry: MemoryEntry) -> None:
        """Insert into the index and enforce capacity for every category."""
        buckets = self._memories.setdefault(user_id, _empty_buckets())
        buckets[entry.category].append(entry)
        self._memories[user_id] = self.policy.enforce(buckets)

    def _sweep(self, user_id: str, category: MemoryCategory, at_ms: int) -> int:
        buckets = self._memories.get(user_id)
        if not buckets:
            return 0
        before = len(buckets[category])
        buckets[category] = self.policy.sweep_expired(buckets[category], at_ms)
        return before - len(buckets[category])

    def _check_user(self, user_id: str) -> None:
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidMemoryError("user_id must be a non-empty string")
        if not is_safe_name(user_id):
            raise InvalidMemoryError(f"user_id cannot be used as a file name: {user_id!r}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def known_users(self) -> List[str]:
        """User ids with an in-memory index."""
        return list(self._memories)

    def _live_entries(self, user_id: str, at_ms: int) -> List[MemoryEntry]:
        buckets = self._memories.get(user_id)
        if not buckets:
            return []
        return [
            entry
            for category in MemoryCategory
            for entry in buckets[category]
            if not entry.is_expired(at_ms)
        ]

    async def get_available_memories(self, user_id: str) -> List[MemoryEntry]:
        """
        All non-expired entries for a user.

        Returns:
            Entries grouped by category (short-term, long-term, working, fact),
            insertion order within each group
        """
        return self._live_entries(user_id, now_ms(self.clock))

    async def get_relevant_memories(
        self,
        user_id: str,
        query: str,
        limit: Optional[int] = None
    ) -> List[MemoryEntry]:
        """
        Rank a user's live entries against a query.

        Args:
            user_id: Owner
            query: Free text, matched token by token
            limit: Maximum results (default: settings.default_relevant_limit)

        Returns:
            Entries ordered by descending relevance
        """
        scored = await self.search(user_id, query, limit)
        return [s.entry for s in scored]

    async def search(self, user_id: str, query: str, limit: Optional[int] = None) -> List[ScoredMemory]:
        """Like ``get_relevant_memories`` but keeps each entry's score."""
        if limit is None:
            limit = self.settings.default_relevant_limit
        entries = await self.get_available_memories(user_id)
        return self.ranker.rank_scored(entries, query, limit)

    async def generate_memory_summary(self, user_id: str) -> str:
        """Markdown digest of facts, long-term and working memory for a system prompt."""
        return build_summary(await self.get_available_memories(user_id))

    async def export_memories_as_markdown(self, user_id: str) -> str:
        """Every live entry rendered as a markdown document. No side effects."""
        at = now_ms(self.clock)
        return build_markdown_export(user_id, self._live_entries(user_id, at), at)

    async def get_stats(self, user_id: Optional[str] = None) -> MemoryStats:
        """
        Aggregate counts over live entries.

        Args:
            user_id: One user, or None for every known user

        Returns:
            MemoryStats
        """
        at = now_ms(self.clock)
        if user_id is not None:
            entries = self._live_entries(user_id, at)
        else:
            entries = [e for uid in self.known_users() for e in self._live_entries(uid, at)]

        counts = {category: 0 for category in MemoryCategory}
        for entry in entries:
            counts[entry.category] += 1

        total_importance = sum(e.importance for e in entries)
        return MemoryStats(
            total_memories=len(entries),
            short_term_count=counts[MemoryCategory.SHORT_TERM],
            long_term_count=counts[MemoryCategory.LONG_TERM],
            working_count=counts[MemoryCategory.WORKING],
            fact_count=counts[MemoryCategory.FACT],
            total_importance=total_importance,
            average_importance=total_importance / len(entries) if entries else 0.0,
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def purge_expired(self, user_id: Optional[str] = None) -> int:
        """
        Remove expired entries from the in-memory index. The log is untouched.

        Args:
            user_id: One user, or None for every known user

        Returns:
            Number of entries removed
        """
        users = [user_id] if user_id is not None else self.known_users()
        removed = 0
        for uid in users:
            async with self._user_locks.hold(uid):
                at = now_ms(self.clock)
                for category in MemoryCategory:
                    removed += self._sweep(uid, category, at)
        if removed:
            logger.info("Purged %d expired memories", removed)
        return removed

    async def clear_user_memories(self, user_id: str) -> int:
        """
        Forget everything about a user: the index and all four log files.

        Returns:
            Number of log files deleted (missing files are not an error)

        Raises:
            MemoryWriteError: If a log file exists but cannot be removed
        """
        self._check_user(user_id)
        async with self._user_locks.hold(user_id):
            self._memories.pop(user_id, None)
            try:
                deleted = await self.log.delete(user_id, [c.value for c in MemoryCategory])
            except OSError as e:
                raise MemoryWriteError(f"Failed to delete memory logs for {user_id}: {e}") from e

        logger.info("Cleared all memories for user: %s", user_id)
        return deleted

    async def load_persistent_memories(self, user_id: str) -> int:
        """
        Rebuild a user's index from the log.

        Each category stream is replayed in append order through the normal
        insert path, so eviction re-derives the live view. Records that are
        expired, malformed, duplicated, or filed under the wrong user or
        category are skipped.

        Returns:
            Number of entries held for the user after replay
        """
        self._check_user(user_id)
        async with self._user_locks.hold(user_id):
            at = now_ms(self.clock)
            self._memories[user_id] = _empty_buckets()
            seen = set()

            for category in MemoryCategory:
                for record in await self.log.read(user_id, category.value):
                    try:
                        entry = MemoryEntry.from_record(record)
                    except ValidationError as e:
                        logger.warning(
                            "Skipping invalid %s record for %s: %s",
                            category.value, user_id, e.errors()[0].get("msg", e)
                        )
                        continue

                    if entry.user_id != user_id or entry.category is not category:
                        logger.warning(
                            "Skipping misfiled record %s in %s log of %s", entry.id, category.value, user_id
                        )
                        continue
                    if entry.is_expired(at) or entry.id in seen:
                        continue

                    seen.add(entry.id)
                    self._store(user_id, entry)

            loaded = sum(len(bucket) for bucket in self._memories[user_id].values())

        logger.info("Loaded %d persistent memories for user: %s", loaded, user_id)
        return loaded
