import sys
import os
import click
from pathlib import Path
from datetime import date, datetime
from rich import print
from rich.console import Console
from rich.table import Table
from rich import box
from rich.markup import escape

from cadence import __version__
from cadence.cadence_env import CadenceEnvironment
from cadence.controller import Controller
from cadence.errors import FormatError, TaskError, exit_code_for
from cadence.model import DatabaseManager, Task
from cadence.nextdate import next_date
from cadence.rules import parse_date
from cadence.shared import REPEATING, format_stored_date, set_runtime_home, truncate_string


class _NowParam(click.ParamType):
    name = "YYYYMMDD"

    def convert(self, value, param, ctx):
        if value is None:
            return None
        if isinstance(value, (date, datetime)):
            return value
        s = str(value).strip().lower()
        if s in ("today", "now"):
            return datetime.now()
        try:
            return parse_date(s)
        except FormatError:
            self.fail("Expected YYYYMMDD, 'today' or 'now'", param, ctx)


_NOW = _NowParam()


def ensure_database(db_path: str, env: CadenceEnvironment):
    if not Path(db_path).exists():
        print(
            f"[yellow]⚠️ [/yellow]Database not found. Creating new database at {db_path}"
        )
        dbm = DatabaseManager(db_path, env)
        dbm.close()


def _fail(exc: Exception):
    print(f"[red]✘ {escape(str(exc))}[/red]")
    sys.exit(exit_code_for(exc))


def _environment(ctx) -> CadenceEnvironment:
    """Create the workspace on first use by a command that needs it."""
    obj = ctx.ensure_object(dict)
    if "ENV" not in obj:
        env = CadenceEnvironment()
        env.ensure(init_config=True, init_db_fn=lambda path: ensure_database(path, env))
        obj["CONFIG"] = env.load_config()
        set_runtime_home(env.home)
        obj["ENV"] = env
        obj["DB"] = env.db_path
    return obj["ENV"]


def _controller(ctx) -> Controller:
    env = _environment(ctx)
    return Controller(ctx.obj["DB"], env)


def _task_table(tasks: list[Task], display_format: str, width: int = 40) -> Table:
    table = Table(box=box.SIMPLE_HEAD, highlight=False)
    table.add_column("id", justify="right")
    table.add_column("date")
    table.add_column("title")
    table.add_column("repeat")
    for task in tasks:
        flag = f" {REPEATING}" if task.repeat else ""
        table.add_row(
            str(task.id),
            format_stored_date(task.date, display_format),
            escape(truncate_string(task.title, width)) + flag,
            escape(task.repeat),
        )
    return table


def _print_task(task: Task, display_format: str):
    console = Console(highlight=False)
    console.print(f"[bold]{escape(task.title)}[/bold]  (id {task.id})")
    console.print(f"  date:    {format_stored_date(task.date, display_format)}")
    if task.repeat:
        console.print(f"  repeat:  {escape(task.repeat)}")
    if task.comment:
        console.print(f"  comment: {escape(task.comment)}")


@click.group()
@click.version_option(
    __version__, prog_name="cadence", message="%(prog)s version %(version)s"
)
@click.option(
    "--home",
    help="Override the Cadence workspace directory (equivalent to setting $CADENCE_HOME).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, verbose):
    """Cadence CLI – manage recurring tasks from the command line."""
    if home:
        os.environ["CADENCE_HOME"] = (
            home  # Must be set before CadenceEnvironment is instantiated
        )

    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose


@cli.command()
@click.option("--date", "date_str", required=True, help="Start date (YYYYMMDD).")
@click.option("--repeat", default="", help="Recurrence rule, e.g. 'd 7' or 'm 1,-1'.")
@click.option(
    "--now",
    type=_NOW,
    default=None,
    help="Reference date (YYYYMMDD). Defaults to the current time.",
)
@click.pass_context
def nextdate(ctx, date_str, repeat, now):
    """
    Print the next occurrence after NOW of a task starting on DATE.

    Examples:
      cadence nextdate --date 20240229 --repeat y --now 20240301
      cadence nextdate --date 20240115 --repeat "m -1"
    """
    if now is None:
        now = datetime.now()
    if ctx.obj["VERBOSE"]:
        print(f"[blue]now:[/blue] {now}  [blue]date:[/blue] {date_str}  [blue]repeat:[/blue] {escape(repr(repeat))}")
    try:
        result = next_date(now, date_str, repeat)
    except FormatError as e:
        _fail(e)
    click.echo(result)


@cli.command()
@click.argument("title", nargs=-1, required=True)
@click.option("--date", "date_str", default="", help="Task date (YYYYMMDD). Defaults to today.")
@click.option("--comment", default="", help="Free text comment.")
@click.option("--repeat", default="", help="Recurrence rule.")
@click.pass_context
def add(ctx, title, date_str, comment, repeat):
    """Add a task. Past dates are moved forward to the next occurrence."""
    controller = _controller(ctx)
    try:
        task = controller.add_task(" ".join(title), date_str, comment, repeat)
    except TaskError as e:
        _fail(e)
    finally:
        controller.close()
    print(f"[green]✔ Added task {task.id} on {task.date}[/green]")
    if ctx.obj["VERBOSE"]:
        _print_task(task, controller.display_format)


@cli.command()
@click.argument("task_id", type=int)
@click.option("--title", default=None)
@click.option("--date", "date_str", default=None, help="Task date (YYYYMMDD).")
@click.option("--comment", default=None)
@click.option("--repeat", default=None, help="Recurrence rule, '' to stop repeating.")
@click.pass_context
def edit(ctx, task_id, title, date_str, comment, repeat):
    """Change fields of an existing task."""
    controller = _controller(ctx)
    try:
        task = controller.update_task(
            task_id, title=title, date=date_str, comment=comment, repeat=repeat
        )
    except TaskError as e:
        _fail(e)
    finally:
        controller.close()
    print(f"[green]✔ Updated task {task.id}[/green]")
    _print_task(task, controller.display_format)


@cli.command()
@click.argument("task_id", type=int)
@click.pass_context
def show(ctx, task_id):
    """Show a single task."""
    controller = _controller(ctx)
    try:
        task = controller.get_task(task_id)
    except TaskError as e:
        _fail(e)
    finally:
        controller.close()
    _print_task(task, controller.display_format)


@cli.command()
@click.argument("task_id", type=int)
@click.pass_context
def delete(ctx, task_id):
    """Delete a task."""
    controller = _controller(ctx)
    try:
        controller.delete_task(task_id)
    except TaskError as e:
        _fail(e)
    finally:
        controller.close()
    print(f"[green]✔ Deleted task {task_id}[/green]")


@cli.command()
@click.argument("task_id", type=int)
@click.pass_context
def done(ctx, task_id):
    """Mark a task done: one-off tasks are removed, recurring ones move on."""
    controller = _controller(ctx)
    try:
        task = controller.mark_done(task_id)
    except TaskError as e:
        _fail(e)
    finally:
        controller.close()
    if task is None:
        print(f"[green]✔ Task {task_id} finished and removed[/green]")
    else:
        print(f"[green]✔ Task {task_id} next on {task.date}[/green]")


@cli.command(name="list")
@click.option("--limit", type=click.IntRange(0, None), default=None, help="Maximum number of tasks.")
@click.option("--width", type=click.IntRange(10, 200), default=40, help="Maximum title width.")
@click.pass_context
def list_tasks(ctx, limit, width):
    """List tasks, earliest first."""
    controller = _controller(ctx)
    try:
        tasks = controller.list_tasks(limit)
    finally:
        controller.close()
    if not tasks:
        print("[yellow]No tasks.[/yellow]")
        return
    Console(highlight=False).print(_task_table(tasks, controller.display_format, width))


@cli.command()
@click.argument("query", nargs=-1, required=True)
@click.option("--limit", type=click.IntRange(0, None), default=None, help="Maximum number of tasks.")
@click.option("--width", type=click.IntRange(10, 200), default=40, help="Maximum title width.")
@click.pass_context
def search(ctx, query, limit, width):
    """
    Search tasks by date (in the configured search format, e.g. 08.02.2024)
    or by text in the title or comment.
    """
    controller = _controller(ctx)
    try:
        tasks = controller.search(" ".join(query), limit)
    finally:
        controller.close()
    if not tasks:
        print("[yellow]No matching tasks.[/yellow]")
        return
    Console(highlight=False).print(_task_table(tasks, controller.display_format, width))


if __name__ == "__main__":
    cli()
