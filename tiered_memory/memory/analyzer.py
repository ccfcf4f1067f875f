"""
Conversation analysis.

Extracts facts and key points from a dialogue turn and writes them to the
memory store.
"""

import re
from datetime import datetime
from typing import List, Optional

from .schemas import MemoryEntry


FACT_PATTERNS = [
    (re.compile(r"\bmy name is (\w+)", re.IGNORECASE), "User's name is {0}."),
    (re.compile(r"\bcall me (\w+)", re.IGNORECASE), "User's name is {0}."),
    (re.compile(r"\bi (live|work) in ([^.!?]+)", re.IGNORECASE), "User {0}s in {1}."),
    (re.compile(r"\bi (?:like|love|enjoy) ([^.!?]+)", re.IGNORECASE), "User likes: {0}."),
]

IMPORTANCE_KEYWORDS = [
    "important",
    "remember",
    "don't forget",
    "key",
    "critical",
    "urgent",
    "special",
    "unique",
]

LONG_MESSAGE_CHARS = 200
DETAILED_MESSAGE_CHARS = 100
LONG_TERM_THRESHOLD = 70


class ConversationAnalyzer:
    """
    Rule-based memory extraction from conversation turns.

    - Self-descriptions in the user message become facts
    - Long, multi-sentence user messages become short-term memories
    - Turns scoring above 70 importance become long-term memories
    """

    def __init__(self, store):
        """
        Initialize analyzer.

        Args:
            store: MemoryStore that receives the extracted memories
        """
        self.store = store

    async def analyze_conversation(
        self,
        user_id: str,
        user_message: str,
        assistant_response: str
    ) -> List[MemoryEntry]:
        """
        Extract and store memories from one exchange.

        Returns:
            Entries written, in write order
        """
        written = await self.extract_user_facts(user_id, user_message)
        written += await self.extract_key_information(user_id, user_message, assistant_response)
        return written

    def extract_facts(self, user_message: str) -> List[str]:
        """Fact sentences found in a message, de-duplicated, in pattern order."""
        facts = []
        for pattern, template in FACT_PATTERNS:
            match = pattern.search(user_message)
            if not match:
                continue
            groups = [g.strip() for g in match.groups()]
            if groups[0].lower() in ("live", "work"):
                groups[0] = groups[0].lower()
            fact = template.format(*groups)
            if fact not in facts:
                facts.append(fact)
        return facts

    async def extract_user_facts(self, user_id: str, user_message: str) -> List[MemoryEntry]:
        written = []
        for fact in self.extract_facts(user_message):
            entry = await self.store.add_fact(user_id, fact, metadata={
                "extractedAt": datetime.now().isoformat(timespec="seconds"),
                "originalMessage": user_message[:100],
            })
            written.append(entry)
        return written

    async def extract_key_information(
        self,
        user_id: str,
        user_message: str,
        assistant_response: str
    ) -> List[MemoryEntry]:
        written = []
        importance = self.calculate_importance(user_message, assistant_response)

        if len(user_message) > DETAILED_MESSAGE_CHARS and len(user_message.split(".")) > 2:
            written.append(await self.store.add_short_term_memory(
                user_id,
                f"User asked: {user_message[:150]}...",
                metadata={"messageLength": len(user_message)},
            ))

        if importance > LONG_TERM_THRESHOLD:
            written.append(await self.store.add_long_term_memory(
                user_id,
                f"Key point from conversation: {user_message[:100]}",
                importance,
            ))

        return written

    def calculate_importance(self, user_message: str, assistant_response: Optional[str] = "") -> int:
        """
        Score a turn from 0 to 100.

        Base 50; +20 for a user message over 200 chars; +15 if an importance
        keyword appears in either side; +10 if the user asked a question.
        """
        importance = 50

        if len(user_message) > LONG_MESSAGE_CHARS:
            importance += 20

        user_lower = user_message.lower()
        response_lower = (assistant_response or "").lower()
        if any(k in user_lower or k in response_lower for k in IMPORTANCE_KEYWORDS):
            importance += 15

        if "?" in user_message:
            importance += 10

        return min(100, importance)
