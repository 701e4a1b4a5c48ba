"""
Tests for the offline queue and the durable local storage behind it.
"""

import json

import pytest

from backend.errors import SyncFailure
from backend.offline.queue import OfflineQueue
from backend.offline.schemas import PendingReport
from backend.offline.storage import PENDING_REPORTS_KEY, LocalStorage

PHOTO_URI = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


# ────────────────────────────────
# Fixtures and helpers
# ────────────────────────────────
@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "state.json"))


def pending(description="Pothole", **overrides):
    fields = dict(
        description=description,
        category="Roads",
        latitude=17.385,
        longitude=78.4867,
        photo=PHOTO_URI,
    )
    fields.update(overrides)
    return PendingReport(**fields)


def always_ok(calls):
    def _submit(item):
        calls.append(item.description)
        return item
    return _submit


def always_fail(item):
    raise ConnectionError("network down")


# ────────────────────────────────
# Local storage
# ────────────────────────────────
def test_storage_persists_across_instances(tmp_path):
    path = str(tmp_path / "state.json")
    LocalStorage(path).set("civic_pulse_user", {"id": "s1"})
    assert LocalStorage(path).get("civic_pulse_user") == {"id": "s1"}


def test_storage_remove_and_default(storage):
    storage.set("k", [1, 2])
    storage.remove("k")
    assert storage.get("k", []) == []
    storage.remove("never-set")


def test_storage_returns_copies(storage):
    storage.set("k", [1])
    storage.get("k").append(2)
    assert storage.get("k") == [1]


def test_storage_recovers_from_corrupt_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")
    assert LocalStorage(str(path)).get("anything") is None


# ────────────────────────────────
# Enqueue
# ────────────────────────────────
def test_enqueue_persists_immediately(storage, tmp_path):
    queue = OfflineQueue(storage, online=False)
    queue.enqueue(pending("one"))
    queue.enqueue(pending("two"))

    on_disk = json.loads((tmp_path / "state.json").read_text())[PENDING_REPORTS_KEY]
    assert [item["description"] for item in on_disk] == ["one", "two"]
    assert "queuedAt" in on_disk[0]

    reloaded = OfflineQueue(LocalStorage(str(tmp_path / "state.json")))
    assert [p.description for p in reloaded.pending] == ["one", "two"]


# ────────────────────────────────
# Flush
# ────────────────────────────────
def test_flush_success_empties_queue_in_order(storage):
    queue = OfflineQueue(storage, online=False)
    for name in ("a", "b", "c"):
        queue.enqueue(pending(name))

    calls = []
    assert queue.flush(always_ok(calls)) == 3
    assert calls == ["a", "b", "c"]
    assert len(queue) == 0
    assert storage.get(PENDING_REPORTS_KEY) is None
    assert queue.last_failure is None


def test_flush_failure_leaves_queue_unchanged(storage):
    queue = OfflineQueue(storage, online=False)
    queue.enqueue(pending("a"))
    queue.enqueue(pending("b"))
    before_memory = queue.pending
    before_disk = storage.get(PENDING_REPORTS_KEY)

    assert queue.flush(always_fail) == 0
    assert queue.pending == before_memory
    assert storage.get(PENDING_REPORTS_KEY) == before_disk
    assert isinstance(queue.last_failure, SyncFailure)
    assert queue.last_failure.item_index == 0


def test_flush_partial_failure_keeps_whole_batch(storage):
    queue = OfflineQueue(storage, online=False)
    for name in ("a", "b", "c"):
        queue.enqueue(pending(name))

    calls = []

    def fail_on_b(item):
        calls.append(item.description)
        if item.description == "b":
            raise RuntimeError("server said no")

    assert queue.flush(fail_on_b) == 0
    assert calls == ["a", "b"]  # stops at the first failure
    assert [p.description for p in queue.pending] == ["a", "b", "c"]
    assert queue.last_failure.item_index == 1

    # next attempt resubmits everything (at-least-once)
    calls.clear()
    assert queue.flush(always_ok(calls)) == 3
    assert calls == ["a", "b", "c"]


def test_flush_empty_queue_is_a_no_op(storage):
    calls = []
    assert OfflineQueue(storage).flush(always_ok(calls)) == 0
    assert calls == []


def test_flush_without_submit_function(storage):
    queue = OfflineQueue(storage)
    queue.enqueue(pending())
    with pytest.raises(ValueError):
        queue.flush()


# ────────────────────────────────
# Connectivity transitions
# ────────────────────────────────
def test_going_online_triggers_one_flush(storage):
    calls = []
    queue = OfflineQueue(storage, submit=always_ok(calls), online=False)
    queue.enqueue(pending("a"))

    assert queue.set_online(True) == 1
    assert calls == ["a"]
    assert queue.online is True

    # already online: no second flush
    queue.enqueue(pending("b"))
    assert queue.set_online(True) is None
    assert calls == ["a"]
    assert len(queue) == 1


def test_going_offline_does_not_flush(storage):
    calls = []
    queue = OfflineQueue(storage, submit=always_ok(calls), online=True)
    queue.enqueue(pending("a"))
    assert queue.set_online(False) is None
    assert calls == []


def test_failed_reconnect_flush_is_not_retried(storage):
    attempts = []

    def flaky(item):
        attempts.append(item.description)
        raise ConnectionError("still flaky")

    queue = OfflineQueue(storage, submit=flaky, online=False)
    queue.enqueue(pending("a"))
    assert queue.set_online(True) == 0
    assert attempts == ["a"]
    assert len(queue) == 1

    # the next offline -> online transition tries again, exactly once
    queue.set_online(False)
    queue.set_online(True)
    assert attempts == ["a", "a"]
