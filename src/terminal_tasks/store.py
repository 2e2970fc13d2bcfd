"""Task store: holds the id -> Task mapping, id management and mutations.

Every mutating operation persists the whole mapping through Storage before
returning. Not-found is reported through return values; storage failures
propagate as StorageError.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

from .models import Task, TaskFilter, TaskListing
from .storage import PathLike, Storage

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStore:
    def __init__(self, path: PathLike, clock: Optional[Clock] = None):
        self._path: Path = Path(path)
        self._clock: Clock = clock or utc_now
        self._tasks: Dict[int, Task] = {}
        self._next_id: int = 1
        self._initialized: bool = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._tasks)

    # -------------------- loading --------------------
    def initialize(self) -> None:
        """Load persisted tasks and derive the next id from the highest one."""
        self._tasks = Storage.load_tasks(self._path)
        self._next_id = max(self._tasks, default=0) + 1
        self._initialized = True
        log.debug("store %s initialized: %d task(s), next id %d",
                  self._path, len(self._tasks), self._next_id)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("TaskStore.initialize() must be called first")

    def _commit(self, tasks: Dict[int, Task]) -> None:
        """Persist ``tasks`` and only then make it the store's state."""
        Storage.save_tasks(self._path, tasks)
        self._tasks = tasks

    def _staged_update(self, task_id: int) -> Optional[Dict[int, Task]]:
        """Copy of the mapping with task ``task_id`` copied for editing."""
        task = self._tasks.get(task_id)
        if task is None:
            return None
        staged = dict(self._tasks)
        staged[task_id] = task.copy()
        return staged

    # -------------------- clock --------------------
    def _now(self) -> datetime:
        return self._clock().replace(microsecond=0)

    # -------------------- queries --------------------
    def get_task(self, task_id: int) -> Optional[Task]:
        self._require_initialized()
        task = self._tasks.get(task_id)
        return task.copy() if task else None

    def list_tasks(self, task_filter: TaskFilter = TaskFilter.ALL) -> TaskListing:
        """Snapshot of matching tasks in ascending id order."""
        self._require_initialized()
        if not self._tasks:
            return TaskListing(tasks=[], empty=True)
        matched = [self._tasks[tid].copy() for tid in sorted(self._tasks)
                   if task_filter.matches(self._tasks[tid])]
        return TaskListing(tasks=matched, empty=False)

    # -------------------- task operations --------------------
    def add_task(self, description: str) -> Optional[int]:
        """Create a task and return its id; an empty description is ignored (None)."""
        self._require_initialized()
        if len(description) == 0:
            log.debug("ignoring task with empty description")
            return None
        task = Task(id=self._next_id, description=description, created_at=self._now())
        staged = dict(self._tasks)
        staged[task.id] = task
        self._commit(staged)
        self._next_id += 1
        log.info("added task %d", task.id)
        return task.id

    def delete_task(self, task_id: int) -> bool:
        self._require_initialized()
        if task_id not in self._tasks:
            log.debug("delete: task %d not found", task_id)
            return False
        staged = dict(self._tasks)
        del staged[task_id]
        self._commit(staged)
        log.info("deleted task %d", task_id)
        return True

    def toggle_task(self, task_id: int) -> Optional[Task]:
        """Flip completion state; returns the updated task or None if absent."""
        self._require_initialized()
        staged = self._staged_update(task_id)
        if staged is None:
            log.debug("toggle: task %d not found", task_id)
            return None
        task = staged[task_id]
        if task.completed:
            task.mark_pending()
        else:
            task.mark_completed(self._now())
        self._commit(staged)
        log.info("task %d marked %s", task_id, "completed" if task.completed else "pending")
        return task.copy()

    def complete_task(self, task_id: int) -> Optional[Task]:
        self._require_initialized()
        staged = self._staged_update(task_id)
        if staged is None:
            log.debug("complete: task %d not found", task_id)
            return None
        task = staged[task_id]
        if not task.completed:
            task.mark_completed(self._now())
        self._commit(staged)
        log.info("task %d marked completed", task_id)
        return task.copy()

    def uncheck_task(self, task_id: int) -> Optional[Task]:
        self._require_initialized()
        staged = self._staged_update(task_id)
        if staged is None:
            log.debug("uncheck: task %d not found", task_id)
            return None
        task = staged[task_id]
        task.mark_pending()
        self._commit(staged)
        log.info("task %d marked pending", task_id)
        return task.copy()

    def clear_tasks(self, task_filter: TaskFilter = TaskFilter.ALL) -> int:
        """Remove matching tasks and persist (even when nothing matched)."""
        self._require_initialized()
        staged = {tid: task for tid, task in self._tasks.items() if not task_filter.matches(task)}
        removed = len(self._tasks) - len(staged)
        self._commit(staged)
        log.info("cleared %d task(s) (filter=%s)", removed, task_filter.value)
        return removed
