"""Pytest configuration and fixtures."""

from collections.abc import Callable, Iterator
from datetime import timedelta
from pathlib import Path

import pytest
from fakes import FrozenClock, InMemoryTaskRepository
from sqlalchemy import Engine

from taskflow.db import SqlTaskRepository, create_db_engine, init_db
from taskflow.models import Task, TaskEffort, TaskStatus, TaskType
from taskflow.priority import PriorityCalculator
from taskflow.tasks import TaskManager


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def calculator(clock: FrozenClock) -> PriorityCalculator:
    return PriorityCalculator(clock=clock)


@pytest.fixture
def repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def manager(repo: InMemoryTaskRepository, clock: FrozenClock) -> TaskManager:
    return TaskManager(repo, clock=clock)


@pytest.fixture
def make_task(clock: FrozenClock) -> Callable[..., Task]:
    """Build a Task relative to the frozen clock.

    ``age_days`` sets created_at in the past; ``due_in_days`` sets due_date
    (negative for overdue).
    """

    def _make(
        title: str = "Write report",
        *,
        user_priority: int = 5,
        age_days: float = 0,
        due_in_days: float | None = None,
        bump_count: int = 0,
        effort: TaskEffort | None = None,
        status: TaskStatus = TaskStatus.TODO,
        parent: Task | None = None,
        owner_id: str = "alice",
    ) -> Task:
        created = clock.now - timedelta(days=age_days)
        return Task(
            owner_id=owner_id,
            title=title,
            user_priority=user_priority,
            created_at=created,
            updated_at=created,
            due_date=clock.now + timedelta(days=due_in_days) if due_in_days is not None else None,
            bump_count=bump_count,
            estimated_effort=effort,
            status=status,
            task_type=TaskType.SUBTASK if parent else TaskType.REGULAR,
            parent_task_id=parent.id if parent else None,
        )

    return _make


@pytest.fixture
def sql_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'taskflow.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_repo(sql_engine: Engine) -> SqlTaskRepository:
    return SqlTaskRepository(sql_engine)
