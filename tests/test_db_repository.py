"""Tests for the SQL repository on a temporary SQLite database."""

import sqlite3
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import pytest
from fakes import FrozenClock
from sqlalchemy.exc import OperationalError, ProgrammingError

from taskflow.db import (
    SqlTaskRepository,
    TaskDependencyRecord,
    TaskRecord,
    translate_db_error,
)
from taskflow.errors import DomainError, ErrorKind, StorageError, TransientConflictError
from taskflow.models import DependencyEdge, Task, TaskEffort, TaskStatus
from taskflow.tasks import TaskManager

MakeTask = Callable[..., Task]


@pytest.fixture
def sql_manager(sql_repo: SqlTaskRepository, clock: FrozenClock) -> TaskManager:
    return TaskManager(sql_repo, clock=clock)


class TestTaskStorage:
    """Tests for task rows."""

    def test_round_trip(self, sql_repo: SqlTaskRepository, make_task: MakeTask) -> None:
        task = make_task(
            "Renew passport",
            user_priority=7,
            age_days=2,
            due_in_days=5,
            bump_count=2,
            effort=TaskEffort.MEDIUM,
        )
        task.description = "Photos first"
        sql_repo.save_task(task)

        loaded = sql_repo.get_task(task.id)
        assert loaded is not None
        assert loaded.model_dump() == task.model_dump()
        assert loaded.due_date is not None
        assert loaded.due_date.tzinfo is not None

    @pytest.mark.parametrize(
        ("table", "column"),
        [
            (TaskRecord, "due_date"),
            (TaskRecord, "created_at"),
            (TaskRecord, "updated_at"),
            (TaskRecord, "completed_at"),
            (TaskDependencyRecord, "created_at"),
        ],
    )
    def test_timestamps_stored_naive(self, table: type, column: str) -> None:
        """Timestamps are naive UTC columns, matching what the records bind."""
        assert table.__table__.c[column].type.timezone is False  # type: ignore[attr-defined]

    def test_manager_writes_through(self, sql_manager: TaskManager) -> None:
        task = sql_manager.create_task("alice", "Write report")
        blocker = sql_manager.create_task("alice", "Collect data")
        sql_manager.add_dependency(task.id, blocker.id)

        stored = sql_manager.get_task(task.id)
        assert stored.created_at == task.created_at
        assert sql_manager.get_dependency_info(task.id).blockers[0].task_id == blocker.id

    def test_save_overwrites(self, sql_repo: SqlTaskRepository, make_task: MakeTask) -> None:
        task = make_task()
        sql_repo.save_task(task)
        sql_repo.save_task(task.model_copy(update={"status": TaskStatus.IN_PROGRESS}))

        loaded = sql_repo.get_task(task.id)
        assert loaded is not None
        assert loaded.status == TaskStatus.IN_PROGRESS

    def test_missing_task(self, sql_repo: SqlTaskRepository) -> None:
        assert sql_repo.get_task("missing") is None
        assert sql_repo.get_tasks([]) == {}

    def test_queries(self, sql_repo: SqlTaskRepository, make_task: MakeTask) -> None:
        parent = make_task("Parent", age_days=3)
        child = make_task("Child", parent=parent, status=TaskStatus.DONE, age_days=2)
        other = make_task("Other", owner_id="bob", age_days=1)
        for task in (parent, child, other):
            sql_repo.save_task(task)

        assert set(sql_repo.get_tasks([parent.id, other.id, "missing"])) == {parent.id, other.id}
        assert [t.id for t in sql_repo.list_tasks("alice")] == [parent.id, child.id]
        assert [t.id for t in sql_repo.list_tasks("alice", TaskStatus.DONE)] == [child.id]
        assert [t.id for t in sql_repo.list_children(parent.id)] == [child.id]
        assert sql_repo.task_exists_and_is_regular(parent.id)
        assert not sql_repo.task_exists_and_is_regular(child.id)
        assert not sql_repo.task_exists_and_is_regular("missing")


class TestEdgeStorage:
    """Tests for dependency rows."""

    @pytest.fixture
    def pair(self, sql_repo: SqlTaskRepository, make_task: MakeTask) -> tuple[Task, Task]:
        a, b = make_task("A"), make_task("B")
        sql_repo.save_task(a)
        sql_repo.save_task(b)
        return a, b

    def test_insert_list_delete(
        self, sql_repo: SqlTaskRepository, pair: tuple[Task, Task]
    ) -> None:
        a, b = pair
        sql_repo.insert_edge(DependencyEdge(task_id=a.id, blocked_by_id=b.id))

        assert [e.blocked_by_id for e in sql_repo.list_edges_for_task(a.id).as_blocked] == [b.id]
        assert [e.task_id for e in sql_repo.list_edges_for_task(b.id).as_blocker] == [a.id]

        assert sql_repo.delete_edge(a.id, b.id)
        assert not sql_repo.delete_edge(a.id, b.id)
        assert sql_repo.list_edges_for_task(a.id).as_blocked == []

    def test_duplicate_row(self, sql_repo: SqlTaskRepository, pair: tuple[Task, Task]) -> None:
        a, b = pair
        sql_repo.insert_edge(DependencyEdge(task_id=a.id, blocked_by_id=b.id))
        with pytest.raises(DomainError) as exc_info:
            sql_repo.insert_edge(DependencyEdge(task_id=a.id, blocked_by_id=b.id))
        assert exc_info.value.kind == ErrorKind.DUPLICATE_DEPENDENCY

    def test_self_loop_row(self, sql_repo: SqlTaskRepository, pair: tuple[Task, Task]) -> None:
        a, _ = pair
        with pytest.raises(DomainError) as exc_info:
            sql_repo.insert_edge(DependencyEdge(task_id=a.id, blocked_by_id=a.id))
        assert exc_info.value.kind == ErrorKind.SELF_DEPENDENCY

    def test_scope_rolls_back_on_error(
        self, sql_repo: SqlTaskRepository, pair: tuple[Task, Task]
    ) -> None:
        a, b = pair
        with pytest.raises(RuntimeError), sql_repo.edge_write_scope():
            sql_repo.insert_edge(DependencyEdge(task_id=a.id, blocked_by_id=b.id))
            assert len(sql_repo.list_edges_for_task(a.id).as_blocked) == 1
            raise RuntimeError("abort")

        assert sql_repo.list_edges_for_task(a.id).as_blocked == []

    def test_scope_commits(self, sql_repo: SqlTaskRepository, pair: tuple[Task, Task]) -> None:
        a, b = pair
        with sql_repo.edge_write_scope():
            sql_repo.insert_edge(DependencyEdge(task_id=a.id, blocked_by_id=b.id))
        assert len(sql_repo.list_edges_for_task(a.id).as_blocked) == 1


class TestManagerOnSql:
    """The full service over a real database."""

    def test_cycle_rejected(self, sql_manager: TaskManager) -> None:
        x = sql_manager.create_task("alice", "X")
        y = sql_manager.create_task("alice", "Y")
        z = sql_manager.create_task("alice", "Z")
        sql_manager.add_dependency(x.id, y.id)
        sql_manager.add_dependency(y.id, z.id)

        with pytest.raises(DomainError) as exc_info:
            sql_manager.add_dependency(z.id, x.id)
        assert exc_info.value.kind == ErrorKind.DEPENDENCY_CYCLE
        assert sql_manager.get_dependency_info(z.id).blockers == []

    def test_completion_flow(self, sql_manager: TaskManager, clock: FrozenClock) -> None:
        parent = sql_manager.create_task("alice", "Move house")
        packing = sql_manager.create_subtask(parent.id, "Pack boxes")
        blocker = sql_manager.create_task("alice", "Sign lease")
        sql_manager.add_dependency(parent.id, blocker.id)

        with pytest.raises(DomainError) as exc_info:
            sql_manager.complete_task(parent.id)
        assert exc_info.value.kind == ErrorKind.BLOCKED_BY_SUBTASKS

        result = sql_manager.complete_task(packing.id)
        assert result.parent_task is not None

        with pytest.raises(DomainError) as exc_info:
            sql_manager.complete_task(parent.id)
        assert exc_info.value.kind == ErrorKind.BLOCKED_BY_DEPENDENCY

        clock.advance(days=1)
        assert sql_manager.complete_task(blocker.id).unblocked_task_ids == [parent.id]
        done = sql_manager.complete_task(parent.id).completed_task
        assert done.completed_at == clock.now
        assert sql_manager.get_task(parent.id).completed_at == done.completed_at

    def test_concurrent_opposite_edges_cannot_both_succeed(
        self, sql_manager: TaskManager
    ) -> None:
        a = sql_manager.create_task("alice", "A")
        b = sql_manager.create_task("alice", "B")
        barrier = threading.Barrier(2)

        def add(task_id: str, blocked_by_id: str) -> str:
            barrier.wait()
            try:
                sql_manager.add_dependency(task_id, blocked_by_id)
            except DomainError as e:
                return e.kind.value
            return "ok"

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = sorted(pool.map(add, [a.id, b.id], [b.id, a.id]))

        assert outcomes == [ErrorKind.DEPENDENCY_CYCLE.value, "ok"]


class TestTranslateDbError:
    """Tests for driver error mapping."""

    def test_locked_database_is_transient(self) -> None:
        exc = OperationalError(
            "BEGIN IMMEDIATE", {}, sqlite3.OperationalError("database is locked")
        )
        assert isinstance(translate_db_error(exc), TransientConflictError)

    def test_other_errors_are_storage_errors(self) -> None:
        exc = ProgrammingError("SELECT", {}, sqlite3.ProgrammingError("no such table: tasks"))
        err = translate_db_error(exc)
        assert isinstance(err, StorageError)
        assert not isinstance(err, TransientConflictError)
