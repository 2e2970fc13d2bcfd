"""Tests for TaskStore id assignment, mutations and filtered views."""

import json

import pytest

from terminal_tasks.models import TaskFilter
from terminal_tasks.storage import Storage, StorageError
from terminal_tasks.store import TaskStore


def _reload(store, clock=None):
    fresh = TaskStore(store.path, clock=clock)
    fresh.initialize()
    return fresh


def test_fresh_store_starts_at_one(store):
    assert len(store) == 0
    assert store.next_id == 1
    assert store.path.exists()


def test_construction_does_no_io(tasks_path):
    TaskStore(tasks_path)
    assert not tasks_path.exists()


def test_operations_require_initialize(tasks_path):
    s = TaskStore(tasks_path)
    with pytest.raises(RuntimeError):
        s.add_task("too early")


def test_add_task(store):
    task_id = store.add_task("Buy groceries")
    assert task_id == 1
    task = store.get_task(1)
    assert task.description == "Buy groceries"
    assert task.completed is False
    assert task.completed_at is None
    assert task.created_at.microsecond == 0
    assert store.next_id == 2


def test_add_task_persists_immediately(store, tasks_path):
    store.add_task("persisted")
    data = json.loads(tasks_path.read_text())
    assert data["1"]["description"] == "persisted"
    assert data["1"]["completed"] is False


def test_empty_description_is_ignored(store):
    store.add_task("first")
    assert store.add_task("") is None
    assert len(store) == 1
    assert store.next_id == 2
    assert store.add_task("second") == 2


def test_whitespace_description_is_accepted(store):
    assert store.add_task(" ") == 1


def test_ids_strictly_increase_across_deletes(store):
    ids = [store.add_task("a"), store.add_task("b")]
    assert store.delete_task(2)
    ids.append(store.add_task("c"))
    assert store.delete_task(1)
    ids.append(store.add_task("d"))
    assert ids == [1, 2, 3, 4]


def test_deleted_ids_are_not_reused_after_clear(store):
    store.add_task("a")
    store.add_task("b")
    store.clear_tasks(TaskFilter.ALL)
    assert store.next_id == 3
    assert store.add_task("c") == 3


def test_delete_missing_task_reports_not_found(store):
    store.add_task("keep")
    assert store.delete_task(99) is False
    assert len(store) == 1


def test_toggle_twice_restores_state(store):
    store.add_task("flip")
    before = store.get_task(1)
    done = store.toggle_task(1)
    assert done.completed is True
    assert done.completed_at is not None
    again = store.toggle_task(1)
    assert again.completed == before.completed
    assert again.completed_at == before.completed_at


def test_toggle_missing_task(store):
    assert store.toggle_task(5) is None


def test_complete_and_uncheck(store):
    store.add_task("task")
    first = store.complete_task(1)
    assert first.completed and first.completed_at is not None
    second = store.complete_task(1)
    assert second.completed_at == first.completed_at
    pending = store.uncheck_task(1)
    assert pending.completed is False
    assert pending.completed_at is None
    assert store.uncheck_task(1).completed is False
    assert store.complete_task(42) is None
    assert store.uncheck_task(42) is None


def test_completed_at_set_iff_completed(store):
    for desc in ("a", "b", "c", "d"):
        store.add_task(desc)
    store.toggle_task(1)
    store.complete_task(2)
    store.toggle_task(3)
    store.toggle_task(3)
    store.uncheck_task(4)
    for task in store.list_tasks(TaskFilter.ALL):
        assert (task.completed_at is None) == (not task.completed)


def test_list_returns_sorted_snapshot(store):
    for desc in ("one", "two", "three"):
        store.add_task(desc)
    store.toggle_task(2)
    listing = store.list_tasks(TaskFilter.PENDING)
    assert listing.ids == [1, 3]
    assert listing.empty is False
    assert [t.description for t in store.list_tasks(TaskFilter.COMPLETED)] == ["two"]
    assert store.list_tasks().ids == [1, 2, 3]

    listing.tasks[0].description = "changed"
    assert store.get_task(1).description == "one"


def test_list_empty_store_signals_empty(store):
    listing = store.list_tasks(TaskFilter.ALL)
    assert listing.empty is True
    assert len(listing) == 0


def test_list_filter_without_matches_is_not_empty(store):
    store.add_task("pending")
    listing = store.list_tasks(TaskFilter.COMPLETED)
    assert listing.empty is False
    assert listing.ids == []


def test_list_does_not_persist(store, tasks_path):
    store.add_task("x")
    before = tasks_path.stat().st_mtime_ns
    content = tasks_path.read_text()
    store.list_tasks()
    assert tasks_path.read_text() == content
    assert tasks_path.stat().st_mtime_ns == before


def test_clear_completed_then_pending_empties_store(store):
    for desc in ("a", "b", "c"):
        store.add_task(desc)
    store.toggle_task(2)
    assert store.clear_tasks(TaskFilter.COMPLETED) == 1
    assert store.list_tasks().ids == [1, 3]
    assert store.clear_tasks(TaskFilter.PENDING) == 2
    assert len(store) == 0


def test_clear_persists_even_without_matches(store, tasks_path):
    tasks_path.write_text("")
    assert store.clear_tasks(TaskFilter.COMPLETED) == 0
    assert json.loads(tasks_path.read_text()) == {}


def test_reinitialize_next_id_from_max(tasks_path):
    entry = {"description": "x", "completed": False,
             "createdAt": "2024-01-01T00:00:00Z", "completedAt": "0001-01-01T00:00:00Z"}
    done = dict(entry, completed=True, completedAt="2024-01-02T00:00:00Z")
    tasks_path.write_text(json.dumps({"1": entry, "2": done, "3": entry}))
    s = TaskStore(tasks_path)
    s.initialize()
    assert s.next_id == 4
    assert s.get_task(2).completed is True

    tasks_path.write_text(json.dumps({"5": entry, "9": entry}))
    s = TaskStore(tasks_path)
    s.initialize()
    assert s.next_id == 10


def test_round_trip_through_disk(store, clock):
    store.add_task("plain")
    store.add_task("multi\\nline")
    store.toggle_task(2)
    reloaded = _reload(store, clock)
    assert reloaded.list_tasks().tasks == store.list_tasks().tasks
    assert reloaded.next_id == store.next_id


def test_scenario(store, clock):
    assert store.add_task("buy milk") == 1
    assert store.add_task("write report") == 2
    task = store.toggle_task(2)
    assert task.completed and task.completed_at is not None
    assert store.delete_task(1)
    assert store.list_tasks().ids == [2]

    reloaded = _reload(store, clock)
    assert reloaded.list_tasks().tasks == store.list_tasks().tasks

    reloaded.clear_tasks(TaskFilter.ALL)
    assert len(reloaded) == 0
    assert reloaded.next_id == 3


def test_missing_id_leaves_file_untouched(store, tasks_path):
    store.add_task("keep")
    stamp = tasks_path.stat().st_mtime_ns
    content = tasks_path.read_text()
    assert store.delete_task(99) is False
    assert store.toggle_task(99) is None
    assert store.complete_task(99) is None
    assert store.uncheck_task(99) is None
    assert tasks_path.stat().st_mtime_ns == stamp
    assert tasks_path.read_text() == content


def test_failed_save_leaves_store_unchanged(store, monkeypatch):
    store.add_task("one")
    store.add_task("two")

    def broken_save(path, tasks):
        raise StorageError("could not write task file", path)

    monkeypatch.setattr(Storage, "save_tasks", staticmethod(broken_save))
    with pytest.raises(StorageError):
        store.add_task("three")
    with pytest.raises(StorageError):
        store.toggle_task(1)
    with pytest.raises(StorageError):
        store.delete_task(2)
    with pytest.raises(StorageError):
        store.clear_tasks(TaskFilter.ALL)
    assert store.next_id == 3
    assert store.list_tasks().ids == [1, 2]
    assert store.get_task(1).completed is False
