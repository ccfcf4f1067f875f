"""
Memory eviction policies.

Decides which entries survive once a category grows past its capacity.
"""

import logging
from typing import Dict, List, Optional

from tiered_memory.config.settings import MemoryLimits
from .schemas import MemoryCategory, MemoryEntry


logger = logging.getLogger(__name__)


def _importance_key(entry: MemoryEntry):
    return (entry.importance, entry.timestamp, entry.id)


def _recency_key(entry: MemoryEntry):
    return (entry.timestamp, entry.id)


class EvictionPolicy:
    """
    Capacity enforcement for a user's in-memory index.

    Policies:
    - short-term, long-term, fact: keep the most important entries
    - working: keep the most recent entries

    Ties fall back to newer timestamp, then id, so the retained set is a
    pure function of the entries. Enforcing after every insert therefore
    keeps the same set as enforcing once over a full replay.
    """

    def __init__(self, limits: Optional[MemoryLimits] = None):
        """
        Initialize eviction policy.

        Args:
            limits: Capacity configuration (defaults: 50 / 1000 / 20 / unbounded facts)
        """
        self.limits = limits or MemoryLimits()

    def limit_for(self, category: MemoryCategory) -> Optional[int]:
        """Capacity for a category, or None when it is unbounded."""
        if category is MemoryCategory.SHORT_TERM:
            return self.limits.short_term_limit
        if category is MemoryCategory.LONG_TERM:
            return self.limits.long_term_limit
        if category is MemoryCategory.WORKING:
            return self.limits.working_limit
        if category is MemoryCategory.FACT:
            return self.limits.fact_limit
        raise ValueError(f"Unknown memory category: {category!r}")

    def select(self, category: MemoryCategory, entries: List[MemoryEntry]) -> List[MemoryEntry]:
        """
        Trim one category's entries to its capacity.

        Args:
            category: Category the entries belong to
            entries: Entries in insertion order

        Returns:
            Surviving entries, still in insertion order
        """
        limit = self.limit_for(category)
        if limit is None or len(entries) <= limit:
            return entries

        key = _recency_key if category is MemoryCategory.WORKING else _importance_key
        keep = {e.id for e in sorted(entries, key=key, reverse=True)[:limit]}
        survivors = [e for e in entries if e.id in keep]

        logger.debug(
            "Evicted %d %s entries (limit %d)",
            len(entries) - len(survivors), category.value, limit
        )
        return survivors

    def enforce(self, by_category: Dict[MemoryCategory, List[MemoryEntry]]) -> Dict[MemoryCategory, List[MemoryEntry]]:
        """Apply ``select`` to every category of a user's index."""
        return {
            category: self.select(category, by_category.get(category, []))
            for category in MemoryCategory
        }

    def sweep_expired(self, entries: List[MemoryEntry], at_ms: int) -> List[MemoryEntry]:
        """Drop entries whose expiry has passed."""
        return [e for e in entries if not e.is_expired(at_ms)]
