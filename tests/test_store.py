# tests/test_store.py
import asyncio
import threading
import time

import pytest

from webhook_hub.store import (
    DuplicateRequestIdError,
    Outcome,
    RequestStatus,
    RequestStore,
    new_request_id,
)


def test_request_ids_are_unique():
    ids = {new_request_id() for _ in range(10_000)}
    assert len(ids) == 10_000
    assert all(len(i) == 32 for i in ids)


def test_new_record_starts_pending_with_fixed_expiry(store, clock):
    record = store.new_record("hi", "https://x", display_name="bot")
    assert record.status is RequestStatus.PENDING
    assert record.created_at == clock.now
    assert record.expires_at == clock.now + 60
    assert record.outcome is None


def test_create_then_get_returns_snapshot(store):
    record = store.create(store.new_record("hi", "https://x"))
    fetched = store.get(record.id)
    assert fetched == record
    fetched.content = "changed"
    assert store.get(record.id).content == "hi"


def test_get_unknown_id_is_none(store):
    assert store.get("nope") is None


def test_duplicate_id_is_loud(store):
    record = store.new_record("hi", "https://x")
    store.create(record)
    with pytest.raises(DuplicateRequestIdError):
        store.create(record.model_copy(update={"content": "other"}))
    assert store.get(record.id).content == "hi"
    assert isinstance(DuplicateRequestIdError("x"), AssertionError)


def test_partial_update_preserves_other_fields(store):
    record = store.create(store.new_record("hi", "https://x", display_name="bot", avatar_ref="https://a/p.png"))
    store.update(record.id, status=RequestStatus.FAILED)
    updated = store.get(record.id)
    assert updated.status is RequestStatus.FAILED
    assert updated.content == "hi"
    assert updated.destination == "https://x"
    assert updated.display_name == "bot"
    assert updated.avatar_ref == "https://a/p.png"
    assert updated.created_at == record.created_at
    assert updated.expires_at == record.expires_at


def test_update_accepts_plain_values(store):
    record = store.create(store.new_record("hi", "https://x"))
    store.update(record.id, status="COMPLETED", outcome={"status_code": 204, "observed_at": 1.0})
    updated = store.get(record.id)
    assert updated.status is RequestStatus.COMPLETED
    assert updated.outcome.status_code == 204


def test_update_unknown_id_is_silent(store):
    assert store.update("missing", status=RequestStatus.COMPLETED) is None
    assert len(store) == 0


def test_update_rejects_immutable_fields(store):
    record = store.create(store.new_record("hi", "https://x"))
    with pytest.raises(ValueError):
        store.update(record.id, expires_at=0)


def test_terminal_status_is_permanent(store, clock):
    record = store.create(store.new_record("hi", "https://x"))
    outcome = Outcome(status_code=200, body={"ok": True}, observed_at=clock.now)
    store.update(record.id, status=RequestStatus.COMPLETED, outcome=outcome)
    store.update(record.id, status=RequestStatus.FAILED, outcome=Outcome(status_code=500, observed_at=clock.now))
    store.update(record.id, status=RequestStatus.PENDING)
    clock.advance(120)
    fetched = store.get(record.id)
    assert fetched.status is RequestStatus.COMPLETED
    assert fetched.outcome.body == {"ok": True}


def test_lazy_expiry_on_read(store, clock):
    record = store.create(store.new_record("hi", "https://x"))
    clock.advance(61)
    assert store.get(record.id).status is RequestStatus.TIMEOUT
    # the transition is persisted, later dispatch results are ignored
    store.update(record.id, status=RequestStatus.COMPLETED)
    assert store.get(record.id).status is RequestStatus.TIMEOUT
    assert store.get(record.id).expires_at == record.expires_at


def test_lazy_expiry_with_real_clock():
    store = RequestStore(ttl=0.1)
    record = store.create(store.new_record("hi", "https://x"))
    time.sleep(0.15)
    assert store.get(record.id).status is RequestStatus.TIMEOUT


def test_sweep_removes_terminal_and_pending_alike():
    store = RequestStore(ttl=0.05)
    done = store.create(store.new_record("a", "https://x"))
    pending = store.create(store.new_record("b", "https://x"))
    store.update(done.id, status=RequestStatus.COMPLETED)
    time.sleep(0.1)
    assert store.sweep() == 2
    assert store.get(done.id) is None
    assert store.get(pending.id) is None
    assert store.completion_signal(done.id) is None


def test_sweep_keeps_unexpired_records(store, clock):
    old = store.create(store.new_record("a", "https://x"))
    clock.advance(45)
    fresh = store.create(store.new_record("b", "https://x"))
    clock.advance(20)
    assert store.sweep() == 1
    assert store.get(old.id) is None
    assert store.get(fresh.id).status is RequestStatus.PENDING


def test_completion_signal_set_on_terminal_update(store, clock):
    record = store.create(store.new_record("hi", "https://x"))
    signal = store.completion_signal(record.id)
    assert not signal.is_set()
    store.update(record.id, outcome=Outcome(status_code=0, observed_at=clock.now))
    assert not signal.is_set()
    store.update(record.id, status=RequestStatus.FAILED)
    assert signal.is_set()


def test_completion_signal_set_on_lazy_expiry(store, clock):
    record = store.create(store.new_record("hi", "https://x"))
    clock.advance(61)
    store.get(record.id)
    assert store.completion_signal(record.id).is_set()


def test_stats_counts_by_status(store):
    a = store.create(store.new_record("a", "https://x"))
    store.create(store.new_record("b", "https://x"))
    store.update(a.id, status=RequestStatus.COMPLETED)
    stats = store.stats()
    assert stats["total"] == 2
    assert stats["COMPLETED"] == 1
    assert stats["PENDING"] == 1
    assert stats["FAILED"] == 0


def test_sweep_task_runs_until_shutdown():
    async def scenario():
        store = RequestStore(ttl=0.01, sweep_interval=0.02)
        store.create(store.new_record("a", "https://x"))
        store.start()
        assert store.running
        await asyncio.sleep(0.1)
        remaining = len(store)
        await store.shutdown()
        return store, remaining

    store, remaining = asyncio.run(scenario())
    assert remaining == 0
    assert not store.running


def test_shutdown_without_start_is_noop(store):
    asyncio.run(store.shutdown())
    assert not store.running


def test_concurrent_updates_and_reads_never_lose_fields():
    store = RequestStore()
    record = store.create(store.new_record("hi", "https://x", display_name="bot", avatar_ref="https://a/p.png"))
    problems = []
    start = threading.Barrier(9)

    def writer(code):
        start.wait()
        for i in range(200):
            store.update(record.id, outcome=Outcome(status_code=code, body={"i": i}, observed_at=0.0))
        store.update(record.id, status=RequestStatus.COMPLETED, outcome=Outcome(status_code=code, observed_at=1.0))

    def reader():
        start.wait()
        seen_terminal = False
        for _ in range(400):
            snap = store.get(record.id)
            if (snap.content, snap.destination, snap.display_name, snap.avatar_ref) != (
                "hi", "https://x", "bot", "https://a/p.png"
            ):
                problems.append("fields changed")
            if seen_terminal and snap.status is not RequestStatus.COMPLETED:
                problems.append("status went backwards")
            seen_terminal = seen_terminal or snap.status.is_terminal

    threads = [threading.Thread(target=writer, args=(200 + n,)) for n in range(4)]
    threads += [threading.Thread(target=reader) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert problems == []
    final = store.get(record.id)
    assert final.status is RequestStatus.COMPLETED
    # whichever writer finished first wins; its terminal outcome stays intact
    assert final.outcome.observed_at == 1.0
    assert final.outcome.status_code in {200, 201, 202, 203}
    assert final.expires_at == record.expires_at
