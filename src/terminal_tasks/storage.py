"""Persistence helpers (load/save) for the task file.

Decisions:
- The file is a JSON object keyed by decimal task id; field names are
  camelCase ("createdAt", "completedAt") for compatibility with files
  written by earlier versions of the tool.
- Timestamps are RFC 3339 UTC with one-second resolution. An unset
  completion time is written as the zero value 0001-01-01T00:00:00Z.
- Saves go to a temp file in the same directory and are renamed over the
  destination, so the file on disk is always a complete document.
- Any failure is raised as StorageError; nothing is silently repaired.
"""
import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .models import Task

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]
TaskMap = Dict[int, Task]
TaskEntry = Dict[str, Any]

ZERO_TIME = "0001-01-01T00:00:00Z"
_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|z|[+-]\d{2}:\d{2})$"
)
_KEY_RE = re.compile(r"[1-9][0-9]*")


class StorageError(Exception):
    """Fatal failure reading or writing the task file."""

    def __init__(self, message: str, path: PathLike):
        super().__init__(f"{message}: {os.fspath(path)}")
        self.path = Path(path)


# -------------------- timestamps --------------------
def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ZERO_TIME
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(raw: str) -> Optional[datetime]:
    """Parse an RFC 3339 string; the zero value maps to None.

    Fractional seconds of any length are accepted and dropped.
    """
    m = _RFC3339_RE.match(raw.strip())
    if not m:
        raise ValueError(f"invalid timestamp {raw!r}")
    base = datetime.fromisoformat(m.group("base"))
    if base == datetime(1, 1, 1):
        return None
    tz = m.group("tz")
    if tz in ("Z", "z"):
        tz = "+00:00"
    parsed = datetime.fromisoformat(m.group("base") + tz)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as exc:
        raise ValueError(f"timestamp {raw!r} is out of range") from exc


# -------------------- entry codec --------------------
def task_to_entry(task: Task) -> TaskEntry:
    return {
        "description": task.description,
        "completed": task.completed,
        "createdAt": format_timestamp(task.created_at),
        "completedAt": format_timestamp(task.completed_at),
    }


def task_from_entry(key: str, raw: Any) -> Task:
    """Build a Task from one JSON entry; raises ValueError when malformed."""
    if not _KEY_RE.fullmatch(key):
        raise ValueError(f"task key {key!r} is not a positive integer")
    if not isinstance(raw, dict):
        raise ValueError(f"task {key} is not an object")
    description = raw.get("description")
    completed = raw.get("completed", False)
    if not isinstance(description, str):
        raise ValueError(f"task {key} has no description")
    if not isinstance(completed, bool):
        raise ValueError(f"task {key} has a non-boolean completed flag")
    created_raw = raw.get("createdAt")
    if not isinstance(created_raw, str):
        raise ValueError(f"task {key} has no createdAt")
    created_at = parse_timestamp(created_raw)
    if created_at is None:
        raise ValueError(f"task {key} has an unset createdAt")
    completed_raw = raw.get("completedAt", ZERO_TIME)
    if not isinstance(completed_raw, str):
        raise ValueError(f"task {key} has a non-string completedAt")
    completed_at = parse_timestamp(completed_raw)
    if completed != (completed_at is not None):
        raise ValueError(f"task {key} completion flag disagrees with completedAt")
    return Task(
        id=int(key),
        description=description,
        created_at=created_at,
        completed=completed,
        completed_at=completed_at,
    )


class Storage:
    @staticmethod
    def load_tasks(path: PathLike) -> TaskMap:
        """Load the id -> Task mapping from ``path``.

        Missing file -> created empty, empty mapping.
        Zero-length file -> empty mapping.
        """
        target = Path(path)
        try:
            if not target.exists():
                target.parent.mkdir(parents=True, exist_ok=True)
                target.touch()
                log.debug("created empty task file %s", target)
                return {}
            with open(target, "r", encoding="utf-8") as f:
                data = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError("could not open task file", target) from exc
        if not data:
            return {}
        try:
            document = json.loads(data)
            if not isinstance(document, dict):
                raise ValueError("top-level JSON value is not an object")
            tasks = {}
            for key, raw in document.items():
                task = task_from_entry(key, raw)
                tasks[task.id] = task
        except ValueError as exc:
            raise StorageError(f"malformed task file ({exc})", target) from exc
        log.debug("loaded %d task(s) from %s", len(tasks), target)
        return tasks

    @staticmethod
    def save_tasks(path: PathLike, tasks: Mapping[int, Task]) -> None:
        """Persist tasks atomically (pretty-printed, ascending ids)."""
        target = Path(path)
        document = {str(tid): task_to_entry(tasks[tid]) for tid in sorted(tasks)}
        payload = json.dumps(document, indent=1, ensure_ascii=False)
        tmp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
            )
            os.chmod(tmp_name, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as exc:
            raise StorageError("could not write task file", target) from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    log.warning("could not remove temporary file %s", tmp_name)
        log.debug("saved %d task(s) to %s", len(tasks), target)
