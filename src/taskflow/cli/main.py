"""Main CLI application - ties all subcommands together.

This is the entry point for the taskflow CLI.
"""

import typer

from taskflow.cli.db import app as db_app
from taskflow.cli.deps import app as deps_app
from taskflow.cli.task import app as task_app
from taskflow.config import settings
from taskflow.main import configure_logging

app = typer.Typer(
    name="taskflow",
    help="Taskflow - prioritized tasks with subtasks and dependencies",
    add_completion=False,
    no_args_is_help=True,
)

app.add_typer(task_app, name="task")
app.add_typer(deps_app, name="dep")
app.add_typer(db_app, name="db")


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def version() -> None:
    """Show version information."""
    from taskflow import __version__

    typer.echo(f"taskflow {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
