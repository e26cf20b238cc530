"""Database operations CLI commands."""

import typer

from taskflow.cli.common import handle_errors, info, success
from taskflow.config import settings
from taskflow.db import create_db_engine, init_db
from taskflow.errors import StorageError

app = typer.Typer(
    name="db",
    help="Database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_database() -> None:
    """Create the task tables if they do not exist."""
    from sqlalchemy.exc import SQLAlchemyError

    info(f"Database: {settings.database_url}")
    with handle_errors():
        engine = create_db_engine(settings.database_url, echo=settings.database_echo)
        try:
            init_db(engine)
        except SQLAlchemyError as e:
            raise StorageError("Could not create tables", details={"error": str(e)}) from e
        finally:
            engine.dispose()
    success("Database initialized")
