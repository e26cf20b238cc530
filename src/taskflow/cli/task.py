"""Task management CLI commands.

Commands for the full task lifecycle: add, subtask, list, show, bump,
start, done, update, at-risk.
"""

import json
from datetime import datetime
from typing import Annotated

import typer

from taskflow.cli.common import (
    CORAL,
    ELECTRIC_PURPLE,
    NEON_CYAN,
    SUCCESS_GREEN,
    console,
    create_panel,
    create_table,
    format_score,
    format_status,
    get_manager,
    handle_errors,
    info,
    success,
    truncate,
    warn,
)
from taskflow.config import settings
from taskflow.models import Task, TaskEffort, TaskStatus
from taskflow.tasks.manager import UNSET

app = typer.Typer(
    name="task",
    help="Task lifecycle management",
    no_args_is_help=True,
)

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"]

OwnerOption = Annotated[
    str | None, typer.Option("--owner", "-o", help="Owner id (default: TASKFLOW_DEFAULT_OWNER)")
]
PriorityOption = Annotated[
    int, typer.Option("--priority", "-p", min=1, max=10, help="Importance from 1 to 10")
]
DueOption = Annotated[
    datetime | None, typer.Option("--due", help="Due date (UTC)", formats=DATE_FORMATS)
]
EffortOption = Annotated[
    TaskEffort | None, typer.Option("--effort", "-e", help="Estimated effort")
]
DescriptionOption = Annotated[
    str | None, typer.Option("--description", "-d", help="Longer description")
]


def _task_row(task: Task) -> list[str]:
    due = task.due_date.strftime("%Y-%m-%d") if task.due_date else "-"
    kind = "↳ " if task.is_subtask else ""
    return [
        task.id,
        kind + truncate(task.title, 40),
        format_status(task.status.value),
        format_score(task.priority_score),
        due,
        str(task.bump_count),
    ]


def _print_tasks(tasks: list[Task], title: str, format_: str) -> None:
    if format_ == "json":
        typer.echo(json.dumps([t.model_dump(mode="json") for t in tasks], indent=2))
        return

    if not tasks:
        info("No tasks found")
        return

    table = create_table(title, "ID", "Title", "Status", "Score", "Due", "Bumps")
    for task in tasks:
        table.add_row(*_task_row(task))
    console.print(table)
    console.print(f"\n[dim]Showing {len(tasks)} task(s)[/dim]")


@app.command("add")
def add_task(
    title: Annotated[str, typer.Argument(help="Task title")],
    description: DescriptionOption = None,
    priority: PriorityOption = 5,
    due: DueOption = None,
    effort: EffortOption = None,
    owner: OwnerOption = None,
) -> None:
    """Create a task."""
    with handle_errors():
        task = get_manager().create_task(
            owner or settings.default_owner,
            title,
            description=description,
            user_priority=priority,
            due_date=due,
            estimated_effort=effort,
        )
    success(f"Task created: {task.id}")
    info(f"Priority score: {task.priority_score}")


@app.command("subtask")
def add_subtask(
    parent_id: Annotated[str, typer.Argument(help="Parent task ID")],
    title: Annotated[str, typer.Argument(help="Subtask title")],
    description: DescriptionOption = None,
    priority: PriorityOption = 5,
    due: DueOption = None,
    effort: EffortOption = None,
) -> None:
    """Create a subtask under a regular task."""
    with handle_errors():
        subtask = get_manager().create_subtask(
            parent_id,
            title,
            description=description,
            user_priority=priority,
            due_date=due,
            estimated_effort=effort,
        )
    success(f"Subtask created: {subtask.id}")


@app.command("list")
def list_tasks(
    status: Annotated[
        TaskStatus | None, typer.Option("--status", "-s", help="Filter by status")
    ] = None,
    owner: OwnerOption = None,
    format_: Annotated[
        str, typer.Option("--format", "-f", help="Output format: table, json")
    ] = "table",
) -> None:
    """List tasks, highest priority first."""
    with handle_errors():
        tasks = get_manager().list_tasks(owner or settings.default_owner, status)
    _print_tasks(tasks, "Tasks", format_)


@app.command("at-risk")
def at_risk(
    owner: OwnerOption = None,
    format_: Annotated[
        str, typer.Option("--format", "-f", help="Output format: table, json")
    ] = "table",
) -> None:
    """List open tasks that keep getting bumped or are well past due."""
    with handle_errors():
        tasks = get_manager().list_at_risk(owner or settings.default_owner)
    _print_tasks(tasks, "At-Risk Tasks", format_)


@app.command("show")
def show_task(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
) -> None:
    """Show a task with its score breakdown, subtasks and dependencies."""
    with handle_errors():
        manager = get_manager()
        task = manager.get_task(task_id)
        deps = manager.get_dependency_info(task_id)
        subtasks = manager.get_subtask_info(task_id) if task.can_have_subtasks else None

    lines = [
        f"[{ELECTRIC_PURPLE}]Title:[/{ELECTRIC_PURPLE}] {task.title}",
        f"[{ELECTRIC_PURPLE}]Status:[/{ELECTRIC_PURPLE}] {format_status(task.status.value)}",
        f"[{ELECTRIC_PURPLE}]Score:[/{ELECTRIC_PURPLE}] {format_score(task.priority_score)}"
        f"  (priority {task.user_priority}, bumped {task.bump_count}x)",
    ]
    if task.due_date:
        lines.append(f"[{ELECTRIC_PURPLE}]Due:[/{ELECTRIC_PURPLE}] {task.due_date:%Y-%m-%d %H:%M}")
    if task.estimated_effort:
        lines.append(f"[{ELECTRIC_PURPLE}]Effort:[/{ELECTRIC_PURPLE}] {task.estimated_effort}")
    if task.parent_task_id:
        lines.append(f"[{ELECTRIC_PURPLE}]Parent:[/{ELECTRIC_PURPLE}] {task.parent_task_id}")
    lines += ["", f"[{NEON_CYAN}]Description:[/{NEON_CYAN}]"]
    lines.append(task.description or "[dim]No description[/dim]")

    if task.priority_breakdown:
        b = task.priority_breakdown
        lines += [
            "",
            f"[{NEON_CYAN}]Breakdown:[/{NEON_CYAN}]",
            f"  user priority    {b.user_priority:6.1f}",
            f"  time decay       {b.time_decay:6.1f}",
            f"  deadline urgency {b.deadline_urgency:6.1f}",
            f"  bump penalty     {b.bump_penalty:6.1f}",
            f"  effort boost     {b.effort_boost:6.2f}x",
        ]

    if subtasks and subtasks.total_count:
        lines += [
            "",
            f"[{NEON_CYAN}]Subtasks:[/{NEON_CYAN}] {subtasks.completed_count}/"
            f"{subtasks.total_count} done ({subtasks.completion_rate:.0%})",
        ]

    if deps.blockers:
        lines += ["", f"[{CORAL}]Blocked by:[/{CORAL}]"]
        lines += [f"  {format_status(b.status.value)} {b.title} {b.task_id}" for b in deps.blockers]
    if deps.blocking:
        lines += ["", f"[{NEON_CYAN}]Blocking:[/{NEON_CYAN}]"]
        lines += [f"  {format_status(b.status.value)} {b.title} {b.task_id}" for b in deps.blocking]

    console.print(create_panel("\n".join(lines), title=f"Task {task.id}"))


@app.command("bump")
def bump_task(
    task_id: Annotated[str, typer.Argument(help="Task ID to postpone")],
) -> None:
    """Postpone a task. Each bump raises its score until the cap."""
    with handle_errors():
        task = get_manager().bump_task(task_id)
    success(f"Task bumped ({task.bump_count}x): score {task.priority_score}")
    if task.bump_count >= settings.scoring.at_risk_bump_threshold:
        warn("This task is at risk: consider doing it or dropping it")


@app.command("start")
def start_task(
    task_id: Annotated[str, typer.Argument(help="Task ID to start")],
) -> None:
    """Start working on a task (moves to 'in_progress' status)."""
    with handle_errors():
        get_manager().start_task(task_id)
    success(f"Task started: {task_id}")


@app.command("done")
def complete_task(
    task_id: Annotated[str, typer.Argument(help="Task ID to complete")],
) -> None:
    """Complete a task. Refused while subtasks or blockers are open."""
    with handle_errors():
        result = get_manager().complete_task(task_id)

    success(f"Task completed: {task_id}")
    for unblocked_id in result.unblocked_task_ids:
        console.print(f"  [{SUCCESS_GREEN}]🔓[/{SUCCESS_GREEN}] Unblocked: {unblocked_id}")
    if result.parent_task is not None:
        info(result.message)
        console.print(f"  [dim]taskflow task done {result.parent_task.id}[/dim]")


@app.command("update")
def update_task(
    task_id: Annotated[str, typer.Argument(help="Task ID to update")],
    title: Annotated[str | None, typer.Option("--title", "-t", help="New title")] = None,
    description: DescriptionOption = None,
    priority: Annotated[
        int | None, typer.Option("--priority", "-p", min=1, max=10, help="Importance 1-10")
    ] = None,
    due: DueOption = None,
    clear_due: Annotated[bool, typer.Option("--clear-due", help="Remove the due date")] = False,
    effort: EffortOption = None,
    status: Annotated[
        TaskStatus | None, typer.Option("--status", "-s", help="New status")
    ] = None,
) -> None:
    """Update task fields. Status changes follow the normal lifecycle rules."""
    if clear_due and due is not None:
        warn("Both --due and --clear-due given; clearing the due date")

    with handle_errors():
        task = get_manager().update_task(
            task_id,
            title=title,
            description=description if description is not None else UNSET,
            user_priority=priority,
            due_date=None if clear_due else (due if due is not None else UNSET),
            estimated_effort=effort if effort is not None else UNSET,
            status=status,
        )
    success(f"Task updated: {task.id} (score {task.priority_score})")
