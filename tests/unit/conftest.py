"""
Shared fixtures for memory unit tests.
"""
import itertools
from pathlib import Path

import pytest

from tiered_memory.config.settings import Settings, MemoryLimits, Paths
from tiered_memory.memory.schemas import MemoryCategory, MemoryEntry, MS_PER_DAY
from tiered_memory.memory.store import MemoryStore


BASE_TIME = 1_700_000_000.0  # 2023-11-14T22:13:20Z

_entry_seq = itertools.count(1)


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = BASE_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0.0, days: float = 0.0) -> None:
        self.now += seconds + days * 86400

    @property
    def ms(self) -> int:
        return int(self.now * 1000)


@pytest.fixture
def clock():
    """Fixed clock starting at BASE_TIME."""
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary workspace, fsync disabled for speed."""
    return Settings(
        paths=Paths(workspace_root=str(tmp_path / "workspace")),
        fsync=False,
    )


@pytest.fixture
def memory_dir(settings) -> Path:
    return settings.paths.memory_dir


@pytest.fixture
def store(settings, clock):
    """MemoryStore on a temporary workspace with a fake clock."""
    return MemoryStore(settings=settings, clock=clock)


@pytest.fixture
def small_settings(tmp_path):
    """Settings with tiny limits so eviction is easy to trigger."""
    return Settings(
        limits=MemoryLimits(short_term_limit=3, long_term_limit=3, working_limit=2, fact_limit=None),
        paths=Paths(workspace_root=str(tmp_path / "workspace")),
        fsync=False,
    )


@pytest.fixture
def small_store(small_settings, clock):
    return MemoryStore(settings=small_settings, clock=clock)


def make_entry(
    content: str,
    category: MemoryCategory = MemoryCategory.LONG_TERM,
    importance: int = 50,
    age_days: float = 0.0,
    now_ms: int = int(BASE_TIME * 1000),
    entry_id: str = None,
    user_id: str = "user1",
) -> MemoryEntry:
    """Build an entry created ``age_days`` before ``now_ms``."""
    created = now_ms - int(age_days * MS_PER_DAY)
    return MemoryEntry(
        id=entry_id or f"{category.id_prefix}-{created}-{next(_entry_seq):09d}",
        user_id=user_id,
        content=content,
        category=category,
        timestamp=created,
        importance=importance,
    )


@pytest.fixture
def entry_factory():
    """Factory for hand-built entries (see make_entry)."""
    return make_entry
