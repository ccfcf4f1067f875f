"""
Unit tests for KeyedLock.
"""

import asyncio

import pytest

from tiered_memory.persist.locks import KeyedLock


pytestmark = pytest.mark.asyncio


async def test_same_key_is_serialized():
    locks = KeyedLock()
    events = []

    async def worker(name):
        async with locks.hold("user1"):
            events.append(f"{name} in")
            await asyncio.sleep(0)
            events.append(f"{name} out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a in", "a out", "b in", "b out"]


async def test_different_keys_run_concurrently():
    locks = KeyedLock()
    inside = asyncio.Event()

    async def first():
        async with locks.hold("alice"):
            await inside.wait()

    async def second():
        async with locks.hold("bob"):
            inside.set()

    await asyncio.wait_for(asyncio.gather(first(), second()), timeout=1)


async def test_entry_kept_while_waiters_remain():
    locks = KeyedLock()
    release = asyncio.Event()

    async def holder():
        async with locks.hold("k"):
            await release.wait()

    async def waiter():
        async with locks.hold("k"):
            pass

    tasks = [asyncio.create_task(holder()), asyncio.create_task(waiter())]
    await asyncio.sleep(0)
    assert "k" in locks

    release.set()
    await asyncio.gather(*tasks)

    assert len(locks) == 0


async def test_released_after_exception():
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        async with locks.hold("k"):
            raise RuntimeError("boom")

    assert len(locks) == 0
