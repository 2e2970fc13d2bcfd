"""Command-line interface for the task tracker.

Each invocation runs one subcommand against the task file and exits.
Usage errors (bad filter, missing or non-integer ids) are rejected by click
before the store is touched; storage failures exit with status 1.
"""
import logging
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import Settings, load_settings
from .logging_setup import setup_logging
from .models import TaskFilter
from .render import EMPTY_MESSAGE, render_compact, render_table
from .storage import StorageError
from .store import TaskStore

log = logging.getLogger(__name__)

FILTER_ALIASES = {
    'a': TaskFilter.ALL,
    'all': TaskFilter.ALL,
    'c': TaskFilter.COMPLETED,
    'completed': TaskFilter.COMPLETED,
    'nc': TaskFilter.PENDING,
    'p': TaskFilter.PENDING,
    'pending': TaskFilter.PENDING,
}


class FilterParam(click.ParamType):
    name = "filter"

    def convert(self, value, param, ctx):
        if isinstance(value, TaskFilter):
            return value
        task_filter = FILTER_ALIASES.get(str(value).strip().lower())
        if task_filter is None:
            self.fail(f"{value!r} is not a valid filter; use a (all), c (completed) or nc (pending).",
                      param, ctx)
        return task_filter


FILTER = FilterParam()


class AppContext:
    """Per-invocation state; the store is opened on first use."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._store: Optional[TaskStore] = None

    @property
    def store(self) -> TaskStore:
        if self._store is None:
            store = TaskStore(self.settings.tasks_file)
            store.initialize()
            self._store = store
        return self._store


pass_app = click.make_pass_decorator(AppContext)


def _fatal(exc: StorageError) -> click.ClickException:
    log.debug("storage failure", exc_info=exc)
    return click.ClickException(str(exc))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-f", "--file", "tasks_file", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Task file (default: $TM_FILE or ./tasks.json).")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.version_option(__version__, prog_name="tm")
@click.pass_context
def cli(ctx: click.Context, tasks_file: Optional[Path], verbose: bool) -> None:
    """A small local task tracker."""
    settings = load_settings()
    if tasks_file is not None:
        settings = Settings(tasks_file=tasks_file, log_level=settings.log_level,
                            log_file=settings.log_file)
    setup_logging(console_level=logging.DEBUG if verbose else settings.log_level,
                  log_file=settings.log_file)
    ctx.obj = AppContext(settings)


# -------------------- queries --------------------
@cli.command("list")
@click.argument("task_filter", type=FILTER, default="a", required=False)
@click.option("--compact", is_flag=True, help="Display tasks in a compact format.")
@pass_app
def list_cmd(app: AppContext, task_filter: TaskFilter, compact: bool) -> None:
    """List tasks: a (all), c (completed) or nc (pending)."""
    try:
        listing = app.store.list_tasks(task_filter)
    except StorageError as exc:
        raise _fatal(exc)
    if listing.empty:
        click.echo(EMPTY_MESSAGE)
        return
    lines = render_compact(listing) if compact else render_table(listing)
    click.echo("\n".join(lines))


# -------------------- task operations --------------------
@cli.command("add")
@click.argument("descriptions", nargs=-1, required=True)
@pass_app
def add_cmd(app: AppContext, descriptions) -> None:
    """Add one task per DESCRIPTION."""
    try:
        for description in descriptions:
            task_id = app.store.add_task(description)
            if task_id is None:
                click.echo("Skipped empty description.")
            else:
                click.echo(f"Task added successfully. ID={task_id}")
    except StorageError as exc:
        raise _fatal(exc)


@cli.command("delete")
@click.argument("task_ids", nargs=-1, type=int, required=True)
@pass_app
def delete_cmd(app: AppContext, task_ids) -> None:
    """Delete tasks by id."""
    try:
        for task_id in task_ids:
            if app.store.delete_task(task_id):
                click.echo(f"Task {task_id} has been deleted.")
            else:
                click.echo(f"Task {task_id} not found.")
    except StorageError as exc:
        raise _fatal(exc)


def _report_marked(task_id: int, task) -> None:
    if task is None:
        click.echo(f"Task {task_id} not found.")
        return
    marked = "completed" if task.completed else "pending"
    click.echo(f"Task {task_id} has been marked {marked}.")


@cli.command("toggle")
@click.argument("task_ids", nargs=-1, type=int, required=True)
@pass_app
def toggle_cmd(app: AppContext, task_ids) -> None:
    """Flip the completion state of tasks."""
    try:
        for task_id in task_ids:
            _report_marked(task_id, app.store.toggle_task(task_id))
    except StorageError as exc:
        raise _fatal(exc)


@cli.command("complete")
@click.argument("task_ids", nargs=-1, type=int, required=True)
@pass_app
def complete_cmd(app: AppContext, task_ids) -> None:
    """Mark tasks as completed."""
    try:
        for task_id in task_ids:
            _report_marked(task_id, app.store.complete_task(task_id))
    except StorageError as exc:
        raise _fatal(exc)


@cli.command("uncheck")
@click.argument("task_ids", nargs=-1, type=int, required=True)
@pass_app
def uncheck_cmd(app: AppContext, task_ids) -> None:
    """Mark tasks as pending again."""
    try:
        for task_id in task_ids:
            _report_marked(task_id, app.store.uncheck_task(task_id))
    except StorageError as exc:
        raise _fatal(exc)


@cli.command("clear")
@click.argument("task_filter", type=FILTER)
@pass_app
def clear_cmd(app: AppContext, task_filter: TaskFilter) -> None:
    """Remove tasks: a (all), c (completed) or nc (pending)."""
    try:
        removed = app.store.clear_tasks(task_filter)
    except StorageError as exc:
        raise _fatal(exc)
    click.echo(f"Cleared {removed} task(s).")


@cli.command("help")
@click.pass_context
def help_cmd(ctx: click.Context) -> None:
    """Show this help."""
    click.echo(ctx.parent.get_help())
