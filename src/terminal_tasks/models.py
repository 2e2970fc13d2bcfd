"""Data models for the terminal task tracker.

Exposes the Task dataclass, the three-way TaskFilter and the TaskListing
snapshot returned by list queries. An unset completion timestamp is kept
as None in memory; the on-disk zero value is a storage detail.
"""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional


class TaskFilter(Enum):
    """Selection used by list and clear operations."""
    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"

    def matches(self, task: "Task") -> bool:
        if self is TaskFilter.COMPLETED:
            return task.completed
        if self is TaskFilter.PENDING:
            return not task.completed
        return True


@dataclass
class Task:
    """A single to-do item.

    Fields:
        id: Positive integer, unique within a store, never reused.
        description: Free text; literal "\\n" sequences are line breaks on display.
        completed: Completion flag.
        created_at: UTC timestamp set once at creation.
        completed_at: UTC timestamp when completed, None while pending.
    """
    id: int
    description: str
    created_at: datetime
    completed: bool = False
    completed_at: Optional[datetime] = None

    def mark_completed(self, now: datetime) -> None:
        self.completed = True
        self.completed_at = now

    def mark_pending(self) -> None:
        self.completed = False
        self.completed_at = None

    def copy(self) -> "Task":
        return replace(self)

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"Task(id={self.id}, description={self.description!r}, completed={self.completed})"


@dataclass
class TaskListing:
    """Ordered snapshot of tasks matching a filter.

    ``empty`` is True only when the store holds no tasks at all, which
    presentation reports differently from a filter that matched nothing.
    """
    tasks: List[Task] = field(default_factory=list)
    empty: bool = False

    @property
    def ids(self) -> List[int]:
        return [t.id for t in self.tasks]

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self):
        return iter(self.tasks)
