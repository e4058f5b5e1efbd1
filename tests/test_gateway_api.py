import json

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_generator_client, get_orchestrator
from app.services.chat_stream import StreamingOrchestrator
from conftest import EchoGenerator, parse_sse
from main import create_application

HEADERS = {"X-Tenant-Id": "acme"}


@pytest.fixture
def gateway():
    app = create_application()
    generator = EchoGenerator()
    with TestClient(app) as client:
        store = app.state.tenant_store
        orchestrator = StreamingOrchestrator(store, generator, slow_delay_ms=0, fast_delay_ms=0)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        app.dependency_overrides[get_generator_client] = lambda: generator
        yield client, store, generator


def test_stream_hello_world(gateway):
    client, store, generator = gateway

    resp = client.get("/api/v2/chat/stream", params={"text": "hello world"}, headers=HEADERS)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")

    events = parse_sse(resp.text)
    assert events[:2] == [("chunk", '"hello "'), ("chunk", '"world"')]
    assert events[2][0] == "done"
    assert json.loads(events[2][1]) == {"engine": "StubEngine", "total_length": 11, "unit_count": 2}
    assert len(events) == 3

    contents = [m.content for m in store.snapshot("acme").messages]
    assert contents == ["hello world", "hello world"]
    assert generator.calls[0][1] == "acme"


def test_stream_chunk_granularity_and_mode(gateway):
    client, store, generator = gateway

    resp = client.get(
        "/api/v2/chat/stream",
        params={"text": "short reply", "mode": "slow", "granularity": "chunk"},
        headers=HEADERS,
    )
    events = parse_sse(resp.text)
    assert events[0] == ("chunk", '"short reply"')
    assert generator.calls[0][2].value == "slow"


def test_oversized_text_is_rejected_without_mutation(gateway):
    client, store, _ = gateway
    text = "x" * 4097

    stream = client.get("/api/v2/chat/stream", params={"text": text}, headers=HEADERS)
    post = client.post("/api/v2/chat", json={"text": text}, headers=HEADERS)

    assert stream.status_code == 400
    assert post.status_code == 400
    assert stream.json()["error"] == "Validation failed"
    stats = store.global_stats()
    assert (stats.tenant_count, stats.total_message_count) == (0, 0)


def test_empty_or_missing_text_is_rejected(gateway):
    client, store, _ = gateway

    assert client.get("/api/v2/chat/stream", params={"text": ""}, headers=HEADERS).status_code == 400
    assert client.get("/api/v2/chat/stream", headers=HEADERS).status_code == 400
    assert client.post("/api/v2/chat", json={}, headers=HEADERS).status_code == 400
    assert store.global_stats().total_message_count == 0


def test_tenant_header_is_required_and_bounded(gateway):
    client, store, _ = gateway

    missing = client.post("/api/v2/chat", json={"text": "hi"})
    too_long = client.post("/api/v2/chat", json={"text": "hi"}, headers={"X-Tenant-Id": "t" * 129})
    longest = client.post("/api/v2/chat", json={"text": "hi"}, headers={"X-Tenant-Id": "t" * 128})

    assert missing.status_code == 400
    assert too_long.status_code == 400
    assert longest.status_code == 202
    assert store.tenant_ids() == ["t" * 128]


def test_post_chat_records_user_message(gateway):
    client, store, _ = gateway

    resp = client.post("/api/v2/chat", json={"text": "hi", "metadata": {"tags": ["a"]}}, headers=HEADERS)
    assert resp.status_code == 202
    body = resp.json()
    assert body["accepted"] is True

    (message,) = store.snapshot("acme").messages
    assert message.id == body["message_id"]
    assert message.metadata == {"tags": ["a"]}


def test_debug_state_and_clear(gateway):
    client, _, _ = gateway
    client.post("/api/v2/chat", json={"text": "one"}, headers=HEADERS)
    client.post("/api/v2/chat", json={"text": "other"}, headers={"X-Tenant-Id": "globex"})

    state = client.get("/api/v2/debug/state", headers=HEADERS).json()
    assert state["tenant"]["id"] == "acme"
    assert state["tenant"]["message_count"] == 1
    assert [m["content"] for m in state["messages"]] == ["one"]
    assert state["global_stats"] == {"tenant_count": 2, "total_message_count": 2}

    first = client.delete("/api/v2/debug/state", headers=HEADERS).json()
    second = client.delete("/api/v2/debug/state", headers=HEADERS).json()
    assert first == {"success": True, "cleared": True, "tenant_id": "acme"}
    assert second["cleared"] is False


def test_health_and_info(gateway):
    client, _, _ = gateway

    health = client.get("/health").json()
    assert health["status"] == "ok"
    assert health["responder_status"] == "connected"

    info = client.get("/info").json()
    assert "GET /api/v2/chat/stream" in info["endpoints"]
