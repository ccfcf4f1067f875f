"""
Memory digests and exports.

Renders a user's live entries as a prompt summary or a markdown document.
"""

import json
from datetime import datetime
from typing import Dict, List, Sequence

from .schemas import MemoryCategory, MemoryEntry


NO_MEMORIES = "No stored memories yet."

# (category, heading, max entries) in summary order
SUMMARY_SECTIONS = [
    (MemoryCategory.FACT, "Known Facts", 5),
    (MemoryCategory.LONG_TERM, "Important Information", 5),
    (MemoryCategory.WORKING, "Current Context", 3),
]

EXPORT_SECTIONS = [
    (MemoryCategory.FACT, "Facts"),
    (MemoryCategory.LONG_TERM, "Long-Term Memories"),
    (MemoryCategory.WORKING, "Working Memory"),
    (MemoryCategory.SHORT_TERM, "Short-Term Memories"),
]

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def group_by_category(entries: Sequence[MemoryEntry]) -> Dict[MemoryCategory, List[MemoryEntry]]:
    """Bucket entries by category, preserving order within each bucket."""
    grouped: Dict[MemoryCategory, List[MemoryEntry]] = {c: [] for c in MemoryCategory}
    for entry in entries:
        grouped[entry.category].append(entry)
    return grouped


def format_timestamp(ms: int) -> str:
    """Local time for an epoch-milliseconds value."""
    return datetime.fromtimestamp(ms / 1000).strftime(TIME_FORMAT)


def build_summary(entries: Sequence[MemoryEntry]) -> str:
    """
    Summarize live entries for a system prompt.

    Args:
        entries: The user's non-expired entries

    Returns:
        Markdown digest, or ``NO_MEMORIES`` when there are no entries
    """
    if not entries:
        return NO_MEMORIES

    grouped = group_by_category(entries)
    summary = "## User Memory Summary\n\n"

    for category, heading, max_items in SUMMARY_SECTIONS:
        items = grouped[category]
        if not items:
            continue
        summary += f"### {heading}\n"
        for entry in items[:max_items]:
            summary += f"- {entry.content}\n"
        summary += "\n"

    return summary


def build_markdown_export(user_id: str, entries: Sequence[MemoryEntry], exported_ms: int) -> str:
    """
    Render every live entry as a markdown document.

    Args:
        user_id: Owner shown in the title
        entries: The user's non-expired entries
        exported_ms: Export time, epoch milliseconds

    Returns:
        Markdown text
    """
    grouped = group_by_category(entries)

    lines = [
        f"# Memory Export - {user_id}",
        "",
        f"**Exported**: {format_timestamp(exported_ms)}",
        f"**Total Memories**: {len(entries)}",
        "",
    ]

    for category, heading in EXPORT_SECTIONS:
        items = grouped[category]
        lines.append(f"## {heading} ({len(items)})")
        lines.append("")
        for entry in items:
            if category is MemoryCategory.LONG_TERM:
                lines.append(f"- {entry.content} (Importance: {entry.importance})")
            else:
                lines.append(f"- {entry.content}")
            lines.append(f"  *{format_timestamp(entry.timestamp)}*")
            if entry.metadata:
                lines.append(f"  *{json.dumps(entry.metadata, ensure_ascii=False, sort_keys=True)}*")
        lines.append("")

    return "\n".join(lines)
