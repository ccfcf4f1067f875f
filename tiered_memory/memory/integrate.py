"""
Memory integration hooks for the chat session layer.

Provides functions to inject memories into the agent's system prompt before
a turn and to record memories after the agent has responded.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from .analyzer import ConversationAnalyzer
from .recall import format_memory_context
from .schemas import MemoryEntry
from .store import MemoryStore


PROMPT_HEADER = "You are a helpful AI assistant with persistent memory."

PROMPT_GUIDELINES = """When responding, please:
1. Use the stored information to provide personalized responses
2. Remember facts about the user
3. Build on previous conversations
4. Ask clarifying questions if needed to better understand the user's preferences"""


class MemoryContext(BaseModel):
    """Metadata about memory usage in a prompt."""

    used_ids: List[str] = Field(default_factory=list, description="Memory IDs ranked for the turn")
    used_count: int = Field(0, description="Number of memories used")
    snippets: List[str] = Field(default_factory=list, description="Memory content used, truncated for display")
    summary: str = Field("", description="Summary block included in the prompt")


def build_memory_prompt(summary: str, relevant: List[MemoryEntry]) -> str:
    """
    Assemble the system prompt from the memory summary and ranked memories.

    Args:
        summary: Output of MemoryStore.generate_memory_summary
        relevant: Ranked entries for the current message

    Returns:
        Prompt text
    """
    return (
        f"{PROMPT_HEADER}\n\n"
        f"{summary}\n\n"
        "### Relevant Context from Previous Conversations\n"
        f"{format_memory_context(relevant)}\n"
        f"{PROMPT_GUIDELINES}"
    )


class MemoryIntegration:
    """
    Integration layer between a chat session and the memory store.

    Provides:
    - Pre-turn prompt building with summary and relevant memories
    - Post-turn extraction of facts and key points
    """

    def __init__(
        self,
        store: MemoryStore,
        analyzer: Optional[ConversationAnalyzer] = None,
        relevant_limit: int = 5
    ):
        """
        Initialize memory integration.

        Args:
            store: Memory store
            analyzer: Conversation analyzer (default: one writing to ``store``)
            relevant_limit: Number of ranked memories to inject
        """
        self.store = store
        self.analyzer = analyzer or ConversationAnalyzer(store)
        self.relevant_limit = relevant_limit

    async def prepare_context(self, user_id: str, user_message: str) -> Tuple[str, MemoryContext]:
        """
        Record the incoming message and build the memory-aware system prompt.

        Returns:
            (prompt, context metadata)
        """
        await self.store.add_working_memory(
            user_id, f"User said: {user_message}", metadata={"type": "user-message"}
        )

        relevant = await self.store.get_relevant_memories(user_id, user_message, self.relevant_limit)
        summary = await self.store.generate_memory_summary(user_id)

        context = MemoryContext(
            used_ids=[m.id for m in relevant],
            used_count=len(relevant),
            snippets=[m.snippet() for m in relevant],
            summary=summary,
        )
        return build_memory_prompt(summary, relevant), context

    async def record_exchange(
        self,
        user_id: str,
        user_message: str,
        assistant_response: str
    ) -> List[MemoryEntry]:
        """
        Store what the turn taught us about the user.

        Returns:
            Entries written (analyzer output, then the response note)
        """
        written = await self.analyzer.analyze_conversation(user_id, user_message, assistant_response)
        if assistant_response.strip():
            written.append(await self.store.add_working_memory(
                user_id, f"AI responded: {assistant_response[:100]}..."
            ))
        return written
