"""Dependency CLI commands: add, rm, show."""

from typing import Annotated

import typer

from taskflow.cli.common import (
    CORAL,
    NEON_CYAN,
    SUCCESS_GREEN,
    console,
    create_table,
    format_status,
    get_manager,
    handle_errors,
    info,
    success,
)

app = typer.Typer(
    name="dep",
    help="Blocked-by dependencies between tasks",
    no_args_is_help=True,
)


@app.command("add")
def add_dependency(
    task_id: Annotated[str, typer.Argument(help="Task that is blocked")],
    blocked_by_id: Annotated[str, typer.Argument(help="Task that must finish first")],
) -> None:
    """Mark TASK_ID as blocked by BLOCKED_BY_ID."""
    with handle_errors():
        deps = get_manager().add_dependency(task_id, blocked_by_id)
    success(f"{task_id} is now blocked by {blocked_by_id}")
    info(f"Open blockers: {len(deps.incomplete_blockers)}")


@app.command("rm")
def remove_dependency(
    task_id: Annotated[str, typer.Argument(help="Task that is blocked")],
    blocked_by_id: Annotated[str, typer.Argument(help="Blocking task")],
) -> None:
    """Remove a blocked-by dependency."""
    with handle_errors():
        get_manager().remove_dependency(task_id, blocked_by_id)
    success(f"Dependency removed: {task_id} no longer blocked by {blocked_by_id}")


@app.command("show")
def show_dependencies(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
) -> None:
    """Show what blocks a task and what it blocks."""
    with handle_errors():
        deps = get_manager().get_dependency_info(task_id)

    if not deps.blockers and not deps.blocking:
        info("No dependencies")
        return

    table = create_table(f"Dependencies of {task_id}", "Relation", "ID", "Title", "Status")
    for b in deps.blockers:
        table.add_row("blocked by", b.task_id, b.title, format_status(b.status.value))
    for b in deps.blocking:
        table.add_row("blocking", b.task_id, b.title, format_status(b.status.value))
    console.print(table)

    if deps.can_complete:
        console.print(f"[{SUCCESS_GREEN}]Ready: no open blockers[/{SUCCESS_GREEN}]")
    else:
        console.print(
            f"[{CORAL}]Waiting on {len(deps.incomplete_blockers)} blocker(s)[/{CORAL}]"
        )
    if deps.blocking:
        console.print(f"[{NEON_CYAN}]Blocking {len(deps.blocking)} task(s)[/{NEON_CYAN}]")
