"""
Memory recall with lexical relevance scoring.

Ranks a user's live entries against a free-text query.
"""

import time
from dataclasses import dataclass
from typing import Callable, List, Sequence

from .schemas import MS_PER_DAY, MemoryEntry, now_ms


KEYWORD_HIT_SCORE = 10
IMPORTANCE_WEIGHT = 0.5
RECENCY_MAX = 100
RECENCY_DECAY_PER_DAY = 5


@dataclass
class ScoredMemory:
    """An entry paired with its relevance score for one query."""

    entry: MemoryEntry
    score: float


class RelevanceRanker:
    """
    Retrieves relevant memories for a query.

    Scoring (full rescoring pass per query, no index):
    - Keyword hits: +10 for each query token found in the content
    - Importance: importance * 0.5
    - Recency: max(0, 100 - age_days * 5)
    - Category bonus: fact +20, working +15, long-term +10, short-term +0
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize ranker.

        Args:
            clock: Returns the current time in epoch seconds
        """
        self.clock = clock

    @staticmethod
    def tokenize(query: str) -> List[str]:
        """Lower-cased whitespace tokens; repeated tokens are kept."""
        return query.lower().split()

    def score(self, entry: MemoryEntry, tokens: Sequence[str], at_ms: int) -> float:
        """
        Score one entry.

        Args:
            entry: Candidate entry
            tokens: Tokenized query
            at_ms: Reference "now" in epoch milliseconds

        Returns:
            Composite relevance score
        """
        content = entry.content.lower()
        keyword_score = sum(KEYWORD_HIT_SCORE for token in tokens if token in content)

        age_days = (at_ms - entry.timestamp) / MS_PER_DAY
        recency_score = max(0.0, RECENCY_MAX - age_days * RECENCY_DECAY_PER_DAY)

        return (
            keyword_score
            + entry.importance * IMPORTANCE_WEIGHT
            + recency_score
            + entry.category.relevance_bonus
        )

    def rank_scored(self, entries: Sequence[MemoryEntry], query: str, limit: int = 10) -> List[ScoredMemory]:
        """
        Score and order entries, highest first.

        Equal scores keep the order of ``entries``.
        """
        if limit <= 0:
            return []

        tokens = self.tokenize(query)
        at_ms = now_ms(self.clock)
        scored = [ScoredMemory(entry=e, score=self.score(e, tokens, at_ms)) for e in entries]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:limit]

    def rank(self, entries: Sequence[MemoryEntry], query: str, limit: int = 10) -> List[MemoryEntry]:
        """Top ``limit`` entries for ``query``."""
        return [s.entry for s in self.rank_scored(entries, query, limit)]


def format_memory_context(memories: Sequence[MemoryEntry]) -> str:
    """
    Format ranked memories as a numbered list for prompt injection.

    Args:
        memories: Ranked entries

    Returns:
        One ``n. content`` line per entry
    """
    return "".join(f"{i}. {m.content}\n" for i, m in enumerate(memories, start=1))
