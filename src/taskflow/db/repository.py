"""SQL implementation of the task repository.

Each call runs in its own short transaction unless an ``edge_write_scope``
is active, in which case all calls in the current context share that scope's
session and commit together.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar

import structlog
from sqlalchemy import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from taskflow import errors
from taskflow.db.models import TaskDependencyRecord, TaskRecord, to_naive_utc
from taskflow.errors import StorageError, TransientConflictError
from taskflow.models.tasks import DependencyEdge, Task, TaskEdges, TaskStatus, TaskType

log = structlog.get_logger()

# SQLSTATE codes for serialization failure and deadlock
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def translate_db_error(exc: SQLAlchemyError) -> StorageError:
    """Map a driver error onto the storage error hierarchy."""
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in _RETRYABLE_SQLSTATES or "database is locked" in str(orig):
            return TransientConflictError(
                "Transaction conflicted with a concurrent write",
                details={"sqlstate": sqlstate} if sqlstate else {},
            )
    return StorageError("Database operation failed", details={"error": str(exc)})


class SqlTaskRepository:
    """Task and dependency storage backed by SQLModel."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._scoped: ContextVar[Session | None] = ContextVar(
            f"taskflow_edge_scope_{id(self)}", default=None
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        scoped = self._scoped.get()
        if scoped is not None:
            try:
                yield scoped
            except SQLAlchemyError as e:
                raise translate_db_error(e) from e
            return

        with Session(self._engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

    @contextmanager
    def edge_write_scope(self) -> Iterator[None]:
        if self._scoped.get() is not None:
            yield
            return

        with Session(self._engine, expire_on_commit=False) as session:
            token = self._scoped.set(session)
            try:
                # Start the transaction now so the lock is held before any read
                session.connection()
                yield
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                log.debug("edge_write_scope_failed", error=str(e))
                raise translate_db_error(e) from e
            finally:
                self._scoped.reset(token)

    # =========================================================================
    # Tasks
    # =========================================================================

    def get_task(self, task_id: str) -> Task | None:
        with self._session() as session:
            record = session.get(TaskRecord, task_id)
            return record.to_domain() if record else None

    def get_tasks(self, task_ids: Iterable[str]) -> dict[str, Task]:
        ids = list(dict.fromkeys(task_ids))
        if not ids:
            return {}
        with self._session() as session:
            records = session.exec(select(TaskRecord).where(col(TaskRecord.id).in_(ids))).all()
            return {r.id: r.to_domain() for r in records}

    def list_tasks(self, owner_id: str, status: TaskStatus | None = None) -> list[Task]:
        query = select(TaskRecord).where(TaskRecord.owner_id == owner_id)
        if status is not None:
            query = query.where(TaskRecord.status == status.value)
        with self._session() as session:
            records = session.exec(query.order_by(col(TaskRecord.created_at))).all()
            return [r.to_domain() for r in records]

    def list_children(self, parent_id: str) -> list[Task]:
        query = (
            select(TaskRecord)
            .where(TaskRecord.parent_task_id == parent_id)
            .order_by(col(TaskRecord.created_at))
        )
        with self._session() as session:
            return [r.to_domain() for r in session.exec(query).all()]

    def task_exists_and_is_regular(self, task_id: str) -> bool:
        with self._session() as session:
            record = session.get(TaskRecord, task_id)
            return record is not None and record.task_type == TaskType.REGULAR.value

    def save_task(self, task: Task) -> None:
        with self._session() as session:
            session.merge(TaskRecord.from_domain(task))
            session.flush()
        log.debug("task_saved", task_id=task.id, status=task.status.value)

    # =========================================================================
    # Dependency edges
    # =========================================================================

    def list_edges_for_task(self, task_id: str) -> TaskEdges:
        with self._session() as session:
            as_blocked = session.exec(
                select(TaskDependencyRecord)
                .where(TaskDependencyRecord.task_id == task_id)
                .order_by(col(TaskDependencyRecord.created_at))
            ).all()
            as_blocker = session.exec(
                select(TaskDependencyRecord)
                .where(TaskDependencyRecord.blocked_by_id == task_id)
                .order_by(col(TaskDependencyRecord.created_at))
            ).all()
            return TaskEdges(
                as_blocked=[r.to_domain() for r in as_blocked],
                as_blocker=[r.to_domain() for r in as_blocker],
            )

    def insert_edge(self, edge: DependencyEdge) -> None:
        if edge.task_id == edge.blocked_by_id:
            raise errors.self_dependency(edge.task_id)
        record = TaskDependencyRecord(
            task_id=edge.task_id,
            blocked_by_id=edge.blocked_by_id,
            created_at=to_naive_utc(edge.created_at),
        )
        try:
            with self._session() as session:
                session.add(record)
                session.flush()
        except StorageError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise errors.duplicate_dependency(edge.task_id, edge.blocked_by_id) from e
            raise

    def delete_edge(self, task_id: str, blocked_by_id: str) -> bool:
        with self._session() as session:
            record = session.get(TaskDependencyRecord, (task_id, blocked_by_id))
            if record is None:
                return False
            session.delete(record)
            session.flush()
            return True
