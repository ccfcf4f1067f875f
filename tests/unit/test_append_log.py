"""
Unit tests for the append-only JSONL log.
"""

import asyncio
import json

import pytest

from tiered_memory.persist import AppendLog, StreamPaths, is_safe_name


pytestmark = pytest.mark.asyncio


@pytest.fixture
def log(tmp_path):
    return AppendLog(tmp_path / "logs", fsync=False)


async def test_append_then_read(log):
    await log.append("user1", "fact", {"id": "a", "n": 1})
    await log.append("user1", "fact", {"id": "b", "n": 2})

    assert await log.read("user1", "fact") == [{"id": "a", "n": 1}, {"id": "b", "n": 2}]


async def test_one_line_per_record(log):
    await log.append("user1", "working", {"content": "line one\nline two"})

    text = log.stream_path("user1", "working").read_text(encoding="utf-8")

    assert text.count("\n") == 1
    assert json.loads(text)["content"] == "line one\nline two"


async def test_streams_are_separate_files(log):
    await log.append("user1", "fact", {"id": "f"})
    await log.append("user1", "working", {"id": "w"})
    await log.append("user2", "fact", {"id": "g"})

    assert sorted(p.name for p in log.root.iterdir()) == [
        "user1-fact.jsonl", "user1-working.jsonl", "user2-fact.jsonl"
    ]
    assert await log.read("user2", "fact") == [{"id": "g"}]


async def test_read_missing_stream(log):
    assert await log.read("nobody", "fact") == []


async def test_read_skips_blank_and_malformed_lines(log, caplog):
    log.init()
    log.stream_path("user1", "fact").write_text(
        '{"id": "a"}\n\n{"id": \n42\n{"id": "b"}\n', encoding="utf-8"
    )

    assert await log.read("user1", "fact") == [{"id": "a"}, {"id": "b"}]
    assert "malformed" in caplog.text
    assert "non-object" in caplog.text


async def test_read_tolerates_truncated_last_line(log):
    """A crash mid-append leaves a partial final line, which is dropped."""
    await log.append("user1", "fact", {"id": "a"})
    with open(log.stream_path("user1", "fact"), "a", encoding="utf-8") as f:
        f.write('{"id": "b", "cont')

    assert await log.read("user1", "fact") == [{"id": "a"}]


async def test_delete(log):
    await log.append("user1", "fact", {"id": "a"})
    await log.append("user1", "working", {"id": "b"})
    await log.append("user2", "fact", {"id": "c"})

    deleted = await log.delete("user1", ["short-term", "long-term", "working", "fact"])

    assert deleted == 2
    assert await log.read("user1", "fact") == []
    assert await log.read("user2", "fact") == [{"id": "c"}]


async def test_delete_missing_is_not_an_error(log):
    assert await log.delete("ghost", ["fact"]) == 0


async def test_concurrent_appends_do_not_interleave(log):
    records = [{"id": i, "payload": "x" * 2000} for i in range(50)]

    await asyncio.gather(*(log.append("user1", "fact", r) for r in records))

    read_back = await log.read("user1", "fact")
    assert sorted(r["id"] for r in read_back) == list(range(50))
    assert all(r["payload"] == "x" * 2000 for r in read_back)


async def test_fsync_enabled_append(tmp_path):
    log = AppendLog(tmp_path, fsync=True)
    await log.append("user1", "fact", {"id": "a"})
    assert await log.read("user1", "fact") == [{"id": "a"}]


@pytest.mark.parametrize("owner", ["", "  ", ".", "..", "a/b", "..\\x", "nul\x00"])
async def test_unsafe_owner_rejected(log, owner):
    with pytest.raises(ValueError):
        await log.append(owner, "fact", {"id": "a"})


async def test_safe_names():
    assert is_safe_name("user-42")
    assert is_safe_name("alice@example.com")
    assert not is_safe_name("../etc")


async def test_owner_streams_order(tmp_path):
    paths = StreamPaths(root=tmp_path)
    assert [p.name for p in paths.owner_streams("u", ["b", "a"])] == ["u-b.jsonl", "u-a.jsonl"]


async def test_append_after_torn_line_starts_a_new_line(log, caplog):
    """A partial line left by an interrupted append stays isolated from later records."""
    await log.append("user1", "fact", {"id": "a"})
    with open(log.stream_path("user1", "fact"), "a", encoding="utf-8") as f:
        f.write('{"id": "torn", "userId": "us')

    await log.append("user1", "fact", {"id": "b"})

    lines = log.stream_path("user1", "fact").read_text(encoding="utf-8").splitlines()
    assert lines[-2:] == ['{"id": "torn", "userId": "us', '{"id": "b"}']
    assert await log.read("user1", "fact") == [{"id": "a"}, {"id": "b"}]
    assert "partial final line" in caplog.text


async def test_append_to_file_without_trailing_newline(log):
    log.init()
    log.stream_path("user1", "fact").write_text('{"id": "a"}', encoding="utf-8")

    await log.append("user1", "fact", {"id": "b"})

    assert await log.read("user1", "fact") == [{"id": "a"}, {"id": "b"}]


async def test_locks_released_when_idle(log):
    await asyncio.gather(*(log.append("user1", s, {"id": s}) for s in ["fact", "working"]))
    await log.read("user1", "fact")
    await log.delete("user1", ["fact", "working"])

    assert len(log._locks) == 0
