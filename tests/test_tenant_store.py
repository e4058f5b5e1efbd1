from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from app.models import MessageRole
from app.services.tenant_store import TenantStore


def test_get_or_create_is_idempotent(store):
    first = store.get_or_create("acme")
    second = store.get_or_create("acme")

    assert first.tenant_id == "acme"
    assert first.messages == ()
    assert first.created_at == second.created_at
    assert store.global_stats().tenant_count == 1


def test_append_records_message_and_activity(store):
    message = store.append("acme", MessageRole.user, "hi", {"source": "test"})
    history = store.snapshot("acme")

    assert history.messages == (message,)
    assert message.role == MessageRole.user
    assert message.metadata == {"source": "test"}
    assert history.last_activity_at == message.timestamp


def test_append_order_and_monotonic_timestamps(store):
    contents = [f"m{i}" for i in range(20)]
    for i, content in enumerate(contents):
        store.append("acme", MessageRole.user if i % 2 == 0 else MessageRole.assistant, content)

    messages = store.snapshot("acme").messages
    assert [m.content for m in messages] == contents
    stamps = [m.timestamp for m in messages]
    assert stamps == sorted(stamps)
    assert len({m.id for m in messages}) == len(messages)


def test_tenants_are_isolated(store):
    store.append("tenant-x", MessageRole.user, "secret for x")
    store.append("tenant-y", MessageRole.user, "hello from y")

    x = store.snapshot("tenant-x")
    y = store.snapshot("tenant-y")
    assert [m.content for m in x.messages] == ["secret for x"]
    assert [m.content for m in y.messages] == ["hello from y"]


def test_snapshot_does_not_change_after_later_appends(store):
    store.append("acme", MessageRole.user, "one")
    before = store.snapshot("acme")
    store.append("acme", MessageRole.assistant, "two")

    assert before.message_count == 1
    assert store.snapshot("acme").message_count == 2


def test_messages_are_immutable(store):
    message = store.append("acme", MessageRole.user, "hi")
    with pytest.raises(ValidationError):
        message.content = "changed"


def test_clear_existing_tenant(store):
    store.append("acme", MessageRole.user, "one")
    store.append("acme", MessageRole.assistant, "two")

    assert store.clear("acme") is True
    assert store.get_or_create("acme").messages == ()


def test_clear_unknown_tenant(store):
    assert store.clear("nobody") is False
    assert store.tenant_ids() == []


def test_global_stats(store):
    store.append("a", MessageRole.user, "1")
    store.append("a", MessageRole.assistant, "2")
    store.append("b", MessageRole.user, "3")

    stats = store.global_stats()
    assert stats.tenant_count == 2
    assert stats.total_message_count == 3
    assert sorted(store.tenant_ids()) == ["a", "b"]


def test_concurrent_appends_are_not_lost():
    store = TenantStore()

    def worker(n):
        for i in range(100):
            store.append("shared", MessageRole.user, f"{n}-{i}")

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(8)))

    messages = store.snapshot("shared").messages
    assert len(messages) == 800
    # per-worker order is preserved
    for n in range(8):
        mine = [m.content for m in messages if m.content.startswith(f"{n}-")]
        assert mine == [f"{n}-{i}" for i in range(100)]


def test_close_releases_everything(store):
    store.append("a", MessageRole.user, "1")
    store.close()
    assert store.global_stats().tenant_count == 0


def test_append_racing_clear_lands_in_fresh_history(store, monkeypatch):
    store.append("acme", MessageRole.user, "old")
    lookup = store._record
    raced = []

    def clearing_lookup(tenant_id):
        record = lookup(tenant_id)
        if not raced:
            # another request clears the tenant after this one found its record
            raced.append(True)
            store.clear(tenant_id)
        return record

    monkeypatch.setattr(store, "_record", clearing_lookup)
    store.append("acme", MessageRole.user, "new")
    monkeypatch.undo()

    assert [m.content for m in store.snapshot("acme").messages] == ["new"]
    assert store.global_stats().total_message_count == 1
