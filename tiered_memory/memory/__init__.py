"""
Tiered memory subsystem for per-user conversation recall.

Provides:
- Memory entries in four categories (short-term, long-term, working, fact)
- Capacity-bounded storage with append-only JSONL persistence and replay
- Lexical relevance ranking
- Summaries, markdown export and conversation analysis
"""

from .schemas import MemoryCategory, MemoryEntry, MemoryStats
from .errors import MemoryStoreError, InvalidMemoryError, MemoryWriteError
from .policy import EvictionPolicy
from .recall import RelevanceRanker, ScoredMemory
from .store import MemoryStore
from .analyzer import ConversationAnalyzer
from .integrate import MemoryContext, MemoryIntegration

__all__ = [
    "MemoryCategory",
    "MemoryEntry",
    "MemoryStats",
    "MemoryStoreError",
    "InvalidMemoryError",
    "MemoryWriteError",
    "EvictionPolicy",
    "RelevanceRanker",
    "ScoredMemory",
    "MemoryStore",
    "ConversationAnalyzer",
    "MemoryContext",
    "MemoryIntegration",
]
