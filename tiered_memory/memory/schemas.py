"""
Memory system data models.

Defines MemoryEntry, the four memory categories and the stats summary.
"""

import random
import string
import time
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


_ID_ALPHABET = string.digits + string.ascii_lowercase

MS_PER_DAY = 24 * 60 * 60 * 1000


class MemoryCategory(str, Enum):
    """The four memory kinds, each with its own capacity and eviction rule."""

    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"
    WORKING = "working"
    FACT = "fact"

    @property
    def id_prefix(self) -> str:
        return _ID_PREFIXES[self]

    @property
    def default_importance(self) -> int:
        return _DEFAULT_IMPORTANCE[self]

    @property
    def relevance_bonus(self) -> int:
        return _RELEVANCE_BONUS[self]

    @property
    def can_expire(self) -> bool:
        return self in (MemoryCategory.SHORT_TERM, MemoryCategory.WORKING)


_ID_PREFIXES = {
    MemoryCategory.SHORT_TERM: "st",
    MemoryCategory.LONG_TERM: "lt",
    MemoryCategory.WORKING: "wm",
    MemoryCategory.FACT: "fact",
}

_DEFAULT_IMPORTANCE = {
    MemoryCategory.SHORT_TERM: 50,
    MemoryCategory.LONG_TERM: 70,
    MemoryCategory.WORKING: 80,
    MemoryCategory.FACT: 90,
}

_RELEVANCE_BONUS = {
    MemoryCategory.SHORT_TERM: 0,
    MemoryCategory.LONG_TERM: 10,
    MemoryCategory.WORKING: 15,
    MemoryCategory.FACT: 20,
}


def now_ms(clock=time.time) -> int:
    """Current time from ``clock`` (epoch seconds) as integer milliseconds."""
    return int(clock() * 1000)


def new_entry_id(category: MemoryCategory, created_ms: int) -> str:
    """Generate an id like ``st-1696723200000-k3j9x0a2b``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{category.id_prefix}-{created_ms}-{suffix}"


class MemoryEntry(BaseModel):
    """
    A single memory entry owned by one user.

    Entries are immutable: they are created once, then either evicted,
    filtered out once expired, or cleared together with the user's logs.
    Field aliases are the camelCase keys used in the JSONL log files.
    """

    id: str = Field(..., min_length=1, description="Category-prefixed unique identifier")
    user_id: str = Field(..., alias="userId", min_length=1, description="Owning user")
    content: str = Field(..., min_length=1, description="Free text")
    category: MemoryCategory = Field(..., description="Memory kind")
    timestamp: int = Field(..., description="Creation time, epoch milliseconds")
    importance: int = Field(..., ge=0, le=100, description="Eviction rank within the category")
    expires_at: Optional[int] = Field(None, alias="expiresAt", description="Expiry, epoch milliseconds")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Opaque caller annotations")

    class Config:
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "fact-1696723200000-k3j9x0a2b",
                "userId": "user1",
                "content": "User's name is Ada.",
                "category": "fact",
                "timestamp": 1696723200000,
                "importance": 90,
                "metadata": {"extractedAt": "2023-10-08T00:00:00"}
            }
        }

    @model_validator(mode="after")
    def _only_transient_categories_expire(self) -> "MemoryEntry":
        if self.expires_at is not None and not self.category.can_expire:
            raise ValueError(f"{self.category.value} entries cannot carry expiresAt")
        return self

    @classmethod
    def create(
        cls,
        user_id: str,
        content: str,
        category: MemoryCategory,
        created_ms: int,
        importance: Optional[int] = None,
        expires_at: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "MemoryEntry":
        """Build a new entry with a fresh id and the category's default importance."""
        return cls(
            id=new_entry_id(category, created_ms),
            user_id=user_id,
            content=content,
            category=category,
            timestamp=created_ms,
            importance=category.default_importance if importance is None else importance,
            expires_at=expires_at,
            metadata=metadata,
        )

    def is_expired(self, at_ms: int) -> bool:
        """True once ``expires_at`` has passed."""
        return self.expires_at is not None and self.expires_at < at_ms

    def to_record(self) -> Dict[str, Any]:
        """Convert to the dict written as one log line."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "MemoryEntry":
        """Load from a log record."""
        return cls.model_validate(data)

    def snippet(self, max_chars: int = 100) -> str:
        """Get truncated content for display."""
        if len(self.content) <= max_chars:
            return self.content
        return self.content[:max_chars - 3] + "..."


class MemoryStats(BaseModel):
    """Aggregate counts for one user or for every known user."""

    total_memories: int = 0
    short_term_count: int = 0
    long_term_count: int = 0
    working_count: int = 0
    fact_count: int = 0
    total_importance: int = 0
    average_importance: float = 0.0

    class Config:
        json_schema_extra = {
            "example": {
                "total_memories": 4,
                "short_term_count": 0,
                "long_term_count": 1,
                "working_count": 1,
                "fact_count": 2,
                "total_importance": 340,
                "average_importance": 85.0
            }
        }
