"""SQL persistence for tasks and dependency edges."""

from taskflow.db.connection import create_db_engine, init_db
from taskflow.db.models import TaskDependencyRecord, TaskRecord, utcnow_naive
from taskflow.db.repository import SqlTaskRepository, translate_db_error

__all__ = [
    "SqlTaskRepository",
    "TaskDependencyRecord",
    "TaskRecord",
    "create_db_engine",
    "init_db",
    "translate_db_error",
    "utcnow_naive",
]
