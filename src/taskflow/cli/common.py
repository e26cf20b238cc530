"""Shared CLI utilities - colors, console, helpers.

SilkCircuit Design Language for consistent terminal output.
"""

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from taskflow.config import settings
from taskflow.errors import DomainError, ErrorKind, StorageError
from taskflow.models import TaskStatus
from taskflow.tasks import TaskManager, get_allowed_transitions

# SilkCircuit color palette
ELECTRIC_PURPLE = "#e135ff"
NEON_CYAN = "#80ffea"
CORAL = "#ff6ac1"
ELECTRIC_YELLOW = "#f1fa8c"
SUCCESS_GREEN = "#50fa7b"
ERROR_RED = "#ff6363"

# Shared console instance
console = Console()


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[{SUCCESS_GREEN}]✓[/{SUCCESS_GREEN}] {message}")


def error(message: str) -> None:
    """Print an error message."""
    console.print(f"[{ERROR_RED}]✗[/{ERROR_RED}] {message}")


def warn(message: str) -> None:
    """Print a warning message."""
    console.print(f"[{ELECTRIC_YELLOW}]![/{ELECTRIC_YELLOW}] {message}")


def info(message: str) -> None:
    """Print an info message."""
    console.print(f"[{NEON_CYAN}]→[/{NEON_CYAN}] {message}")


def hint(message: str) -> None:
    """Print a hint message."""
    console.print(f"[{ELECTRIC_YELLOW}]Hint:[/{ELECTRIC_YELLOW}] {message}")


def create_table(title: str | None = None, *columns: str) -> Table:
    """Create a styled table with SilkCircuit colors."""
    table = Table(title=title, border_style=NEON_CYAN)
    for i, col in enumerate(columns):
        style = ELECTRIC_PURPLE if i == 0 else NEON_CYAN
        justify = "right" if col.lower() in ("score", "bumps", "count") else "left"
        table.add_column(col, style=style, justify=justify, overflow="fold")
    return table


def create_panel(content: str, title: str | None = None, subtitle: str | None = None) -> Panel:
    """Create a styled panel with SilkCircuit colors."""
    return Panel(
        content,
        title=f"[{ELECTRIC_PURPLE}]{title}[/{ELECTRIC_PURPLE}]" if title else None,
        subtitle=subtitle,
        border_style=NEON_CYAN,
    )


def format_status(status: str) -> str:
    """Format a task status with appropriate color."""
    status_colors = {
        "todo": NEON_CYAN,
        "in_progress": ELECTRIC_PURPLE,
        "done": SUCCESS_GREEN,
    }
    color = status_colors.get(status.lower(), NEON_CYAN)
    return f"[{color}]{status}[/{color}]"


def format_score(score: int) -> str:
    """Color a 0-100 priority score by band."""
    if score >= 75:
        color = ERROR_RED
    elif score >= 50:
        color = CORAL
    elif score >= 25:
        color = ELECTRIC_YELLOW
    else:
        color = "dim"
    return f"[{color}]{score}[/{color}]"


def truncate(text: str, max_length: int = 50) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def get_manager() -> TaskManager:
    """Build a TaskManager over the configured database."""
    from taskflow.db import SqlTaskRepository, create_db_engine, init_db

    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    init_db(engine)
    return TaskManager(
        SqlTaskRepository(engine),
        scoring=settings.scoring,
        max_edge_attempts=settings.edge_insert_max_attempts,
    )


def _print_domain_error(e: DomainError) -> None:
    error(e.message)
    match e.kind:
        case ErrorKind.BLOCKED_BY_SUBTASKS:
            for item in e.details.get("remaining", []):  # type: ignore[union-attr]
                console.print(f"  [{CORAL}]•[/{CORAL}] {item['title']} ({item['status']})")
            if e.details.get("reason"):
                warn(str(e.details["reason"]))
            for item in e.details.get("blockers", []):  # type: ignore[union-attr]
                console.print(f"  [{CORAL}]⛔[/{CORAL}] blocked by {item['title']}")
        case ErrorKind.BLOCKED_BY_DEPENDENCY:
            for item in e.details.get("blockers", []):  # type: ignore[union-attr]
                console.print(
                    f"  [{CORAL}]⛔[/{CORAL}] {item['title']} ({item['status']}) {item['task_id']}"
                )
        case ErrorKind.INVALID_STATUS_TRANSITION:
            allowed = get_allowed_transitions(TaskStatus(str(e.details["from"])))
            if allowed:
                hint(f"Allowed from {e.details['from']}: {', '.join(allowed)}")
            else:
                hint(f"{e.details['from']} is final")
        case _:
            pass


@contextmanager
def handle_errors() -> Iterator[None]:
    """Render domain and storage failures and exit non-zero."""
    try:
        yield
    except DomainError as e:
        _print_domain_error(e)
        raise typer.Exit(code=1) from e
    except StorageError as e:
        error(f"Storage error: {e.message}")
        hint(f"Check TASKFLOW_DATABASE_URL ({settings.database_url})")
        raise typer.Exit(code=2) from e
