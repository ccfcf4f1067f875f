"""
Memory API endpoints for a user's tiered memory.

Writes, ranked search, summaries, stats, export, replay and clearing.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from tiered_memory.memory.errors import MemoryWriteError
from tiered_memory.memory.schemas import MemoryCategory, MemoryEntry, MemoryStats
from tiered_memory.memory.store import MemoryStore


router = APIRouter(prefix="/memory", tags=["memory"])


def get_memory_store(request: Request) -> MemoryStore:
    """Store created by the application lifespan."""
    store = getattr(request.app.state, "memory_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Memory store not initialized")
    return store


class AddMemoryRequest(BaseModel):
    """Request to add a memory entry."""

    category: MemoryCategory = Field(..., description="short-term, long-term, working or fact")
    content: str = Field(..., description="Memory text", min_length=1, max_length=4000)
    importance: Optional[int] = Field(None, ge=0, le=100, description="Long-term only (default 70)")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Opaque annotations")

    class Config:
        json_schema_extra = {
            "example": {
                "category": "long-term",
                "content": "User prefers concise answers.",
                "importance": 85,
                "metadata": {"source": "settings"}
            }
        }


class SearchMemoryRequest(BaseModel):
    """Request to rank memories against a query."""

    query: str = Field(..., description="Free-text query")
    limit: int = Field(10, description="Maximum number of results", ge=1, le=100)


class ScoredMemoryResponse(BaseModel):
    entry: MemoryEntry
    score: float


class SearchMemoryResponse(BaseModel):
    """Ranked memories with scores."""

    memories: List[ScoredMemoryResponse] = Field(..., description="Entries, best first")
    count: int = Field(..., description="Number of results returned")


class ListMemoryResponse(BaseModel):
    memories: List[MemoryEntry]
    count: int


class SummaryResponse(BaseModel):
    summary: str


class LoadResponse(BaseModel):
    loaded: int = Field(..., description="Entries held after replay")


class ClearResponse(BaseModel):
    deleted_files: int
    message: str


def _raise_http(e: Exception) -> None:
    if isinstance(e, MemoryWriteError):
        raise HTTPException(status_code=500, detail=str(e))
    if isinstance(e, ValueError):
        raise HTTPException(status_code=400, detail=str(e))
    raise e


# ============================================================================
# API Endpoints
# ============================================================================

@router.get("", response_model=MemoryStats)
async def all_stats(store: MemoryStore = Depends(get_memory_store)):
    """
    Aggregate stats across every user currently loaded.

    Served at the collection root so no user id can shadow it.
    """
    return await store.get_stats()


@router.post("/{user_id}/entries", response_model=MemoryEntry)
async def add_memory(user_id: str, request: AddMemoryRequest, store: MemoryStore = Depends(get_memory_store)):
    """
    Add a memory entry in the requested category.

    Example:
        POST /api/memory/user1/entries
        {"category": "fact", "content": "User's name is Ada."}
    """
    if request.importance is not None and request.category is not MemoryCategory.LONG_TERM:
        raise HTTPException(status_code=400, detail="importance can only be set for long-term memories")

    try:
        if request.category is MemoryCategory.FACT:
            return await store.add_fact(user_id, request.content, request.metadata)
        if request.category is MemoryCategory.LONG_TERM:
            importance = 70 if request.importance is None else request.importance
            return await store.add_long_term_memory(user_id, request.content, importance, request.metadata)
        if request.category is MemoryCategory.WORKING:
            return await store.add_working_memory(user_id, request.content, request.metadata)
        return await store.add_short_term_memory(user_id, request.content, request.metadata)
    except (ValueError, MemoryWriteError) as e:
        _raise_http(e)


@router.get("/{user_id}", response_model=ListMemoryResponse)
async def list_memories(user_id: str, store: MemoryStore = Depends(get_memory_store)):
    """All non-expired entries for a user."""
    memories = await store.get_available_memories(user_id)
    return ListMemoryResponse(memories=memories, count=len(memories))


@router.post("/{user_id}/search", response_model=SearchMemoryResponse)
async def search_memories(user_id: str, request: SearchMemoryRequest, store: MemoryStore = Depends(get_memory_store)):
    """
    Rank a user's memories for a query.

    Scoring combines keyword hits, importance, recency and a category bonus.
    """
    scored = await store.search(user_id, request.query, request.limit)
    return SearchMemoryResponse(
        memories=[ScoredMemoryResponse(entry=s.entry, score=s.score) for s in scored],
        count=len(scored),
    )


@router.get("/{user_id}/summary", response_model=SummaryResponse)
async def memory_summary(user_id: str, store: MemoryStore = Depends(get_memory_store)):
    return SummaryResponse(summary=await store.generate_memory_summary(user_id))


@router.get("/{user_id}/stats", response_model=MemoryStats)
async def user_stats(user_id: str, store: MemoryStore = Depends(get_memory_store)):
    return await store.get_stats(user_id)


@router.get("/{user_id}/export", response_class=PlainTextResponse)
async def export_memories(user_id: str, store: MemoryStore = Depends(get_memory_store)):
    """Markdown export of a user's live memories."""
    markdown = await store.export_memories_as_markdown(user_id)
    return PlainTextResponse(markdown, media_type="text/markdown")


@router.post("/{user_id}/load", response_model=LoadResponse)
async def load_memories(user_id: str, store: MemoryStore = Depends(get_memory_store)):
    """Rebuild a user's memories from the on-disk logs."""
    try:
        return LoadResponse(loaded=await store.load_persistent_memories(user_id))
    except ValueError as e:
        _raise_http(e)


@router.delete("/{user_id}", response_model=ClearResponse)
async def clear_memories(user_id: str, store: MemoryStore = Depends(get_memory_store)):
    """Delete every memory and log file for a user."""
    try:
        deleted = await store.clear_user_memories(user_id)
    except (ValueError, MemoryWriteError) as e:
        _raise_http(e)

    return ClearResponse(deleted_files=deleted, message=f"Cleared all memories for {user_id}")
