"""Text rendering of task listings: table and compact views.

Timestamps show in local time; an unset completion time shows as
NOT_COMPLETED. Literal "\\n" sequences in a description become line breaks
here, never in the store.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .models import Task
from .theme import color, status_color, BOLD, HEADER_COLOR, ID_COLOR, RULE_COLOR

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
NOT_COMPLETED = "NOT_COMPLETED"
EMPTY_MESSAGE = "No tasks to show."
TABLE_RULE = "-" * 67
COMPACT_RULE = "-" * 44


def format_local(value: Optional[datetime]) -> str:
    if value is None:
        return NOT_COMPLETED
    return value.astimezone().strftime(DISPLAY_FORMAT)


def days_ago(created_at: datetime, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return max(0, (now - created_at).days)


def description_lines(description: str) -> List[str]:
    """Split on real newlines and on the two-character escape ``\\n``."""
    return description.replace("\\n", "\n").split("\n")


def render_table(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[str]:
    lines = [
        color(f"{'ID':<5} {'Completed':<10} {'Created At':<20} {'Completed At':<20} {'Days Ago':<10}",
              HEADER_COLOR, BOLD).rstrip(),
        color(TABLE_RULE, RULE_COLOR),
    ]
    for task in tasks:
        completed = "Yes" if task.completed else "No"
        row = (
            color(f"{task.id:<5}", ID_COLOR) + " "
            + color(f"{completed:<10}", status_color(task.completed)) + " "
            + f"{format_local(task.created_at):<20} "
            + f"{format_local(task.completed_at):<20} "
            + f"{days_ago(task.created_at, now)}"
        )
        lines.append(row)
        lines.extend(description_lines(task.description))
        lines.append(color(TABLE_RULE, RULE_COLOR))
    return lines


def render_compact(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[str]:
    lines = [color(COMPACT_RULE, RULE_COLOR)]
    for task in tasks:
        marker = "[x]" if task.completed else "[ ]"
        lines.append(color(marker, status_color(task.completed)) + " Task ID: " + color(str(task.id), ID_COLOR))
        lines.append("Description:")
        lines.extend(description_lines(task.description))
        lines.append(f"Created At: {format_local(task.created_at)} ({days_ago(task.created_at, now)} days ago)")
        if task.completed:
            lines.append(f"Completed At: {format_local(task.completed_at)}")
        lines.append(color(COMPACT_RULE, RULE_COLOR))
    return lines
