"""
Unit tests for API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from tiered_memory.api.main import create_app


@pytest.fixture
def client(settings, store):
    """Test client whose lifespan initializes the temporary store."""
    app = create_app(settings=settings, store=store)
    with TestClient(app) as client:
        yield client


def add(client, user_id, category, content, **extra):
    response = client.post(
        f"/api/memory/{user_id}/entries",
        json={"category": category, "content": content, **extra},
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client, memory_dir):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["memory_dir"] == str(memory_dir)
    assert memory_dir.is_dir()


def test_add_memory(client, clock):
    data = add(client, "user1", "fact", "User's name is Ada.", metadata={"source": "api"})

    assert data["userId"] == "user1"
    assert data["category"] == "fact"
    assert data["importance"] == 90
    assert data["timestamp"] == clock.ms
    assert data["metadata"] == {"source": "api"}
    assert data["id"].startswith("fact-")


def test_add_long_term_with_importance(client):
    assert add(client, "user1", "long-term", "Prefers tea", importance=95)["importance"] == 95
    assert add(client, "user1", "long-term", "Prefers mornings")["importance"] == 70


def test_add_short_term_has_expiry(client, clock):
    data = add(client, "user1", "short-term", "Asked about buses")
    assert data["expiresAt"] == clock.ms + 86_400_000


def test_importance_rejected_outside_long_term(client):
    response = client.post(
        "/api/memory/user1/entries",
        json={"category": "fact", "content": "x", "importance": 50},
    )
    assert response.status_code == 400


@pytest.mark.parametrize("body", [
    {"category": "episodic", "content": "x"},
    {"category": "fact", "content": ""},
    {"category": "long-term", "content": "x", "importance": 101},
])
def test_add_memory_validation(client, body):
    assert client.post("/api/memory/user1/entries", json=body).status_code == 422


def test_blank_content_rejected(client):
    response = client.post("/api/memory/user1/entries", json={"category": "fact", "content": "   "})
    assert response.status_code == 400


def test_unsafe_user_id_rejected(client):
    response = client.post("/api/memory/a%5Cb/entries", json={"category": "fact", "content": "x"})
    assert response.status_code == 400


def test_list_memories(client):
    add(client, "user1", "working", "Planning a trip")
    add(client, "user1", "fact", "Lives in Oslo")
    add(client, "user2", "fact", "Someone else")

    data = client.get("/api/memory/user1").json()

    assert data["count"] == 2
    assert [m["category"] for m in data["memories"]] == ["working", "fact"]


def test_list_unknown_user(client):
    assert client.get("/api/memory/nobody").json() == {"memories": [], "count": 0}


def test_search(client):
    add(client, "user1", "short-term", "Booked a table for dinner")
    add(client, "user1", "short-term", "Bought new shoes")

    data = client.post("/api/memory/user1/search", json={"query": "dinner", "limit": 1}).json()

    assert data["count"] == 1
    assert data["memories"][0]["entry"]["content"] == "Booked a table for dinner"
    assert data["memories"][0]["score"] == pytest.approx(10 + 25 + 100)


def test_search_limit_validated(client):
    assert client.post("/api/memory/user1/search", json={"query": "x", "limit": 0}).status_code == 422


def test_summary(client):
    add(client, "user1", "fact", "User's name is Ada.")

    summary = client.get("/api/memory/user1/summary").json()["summary"]

    assert summary.startswith("## User Memory Summary")
    assert "- User's name is Ada." in summary


def test_stats(client):
    add(client, "user1", "fact", "a")
    add(client, "user1", "long-term", "b", importance=60)
    add(client, "user2", "working", "c")

    user_stats = client.get("/api/memory/user1/stats").json()
    all_stats = client.get("/api/memory").json()

    assert user_stats["total_memories"] == 2
    assert user_stats["average_importance"] == pytest.approx(75.0)
    assert all_stats["total_memories"] == 3
    assert all_stats["working_count"] == 1


def test_export(client):
    add(client, "user1", "long-term", "Prefers tea", importance=88)

    response = client.get("/api/memory/user1/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/markdown")
    assert "# Memory Export - user1" in response.text
    assert "- Prefers tea (Importance: 88)" in response.text


def test_load_replays_log(client, store):
    add(client, "user1", "fact", "a")
    add(client, "user1", "working", "b")
    store.close()

    assert client.get("/api/memory/user1").json()["count"] == 0
    assert client.post("/api/memory/user1/load").json() == {"loaded": 2}
    assert client.get("/api/memory/user1").json()["count"] == 2


def test_clear(client, memory_dir):
    add(client, "user1", "fact", "a")
    add(client, "user1", "short-term", "b")

    data = client.delete("/api/memory/user1").json()

    assert data["deleted_files"] == 2
    assert client.get("/api/memory/user1").json()["count"] == 0
    assert list(memory_dir.glob("user1-*.jsonl")) == []


def test_user_named_stats_is_an_ordinary_user(client):
    add(client, "stats", "fact", "A user literally called stats")
    add(client, "other", "fact", "b")

    own = client.get("/api/memory/stats").json()
    aggregate = client.get("/api/memory").json()

    assert own["count"] == 1
    assert own["memories"][0]["content"] == "A user literally called stats"
    assert aggregate["total_memories"] == 2
