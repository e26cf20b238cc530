"""SQLModel tables for task storage.

- TaskRecord: one row per task or subtask
- TaskDependencyRecord: one row per blocked-by edge
"""

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Index
from sqlmodel import Field, SQLModel

from taskflow.models.tasks import (
    DependencyEdge,
    Task,
    TaskEffort,
    TaskStatus,
    TaskType,
)


def utcnow_naive() -> datetime:
    """Get current UTC time as naive datetime (for TIMESTAMP WITHOUT TIME ZONE)."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


class TaskRecord(SQLModel, table=True):
    """A stored task."""

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("user_priority BETWEEN 1 AND 10", name="ck_tasks_user_priority"),
        CheckConstraint("bump_count >= 0", name="ck_tasks_bump_count"),
        Index("ix_tasks_owner_status", "owner_id", "status"),
    )

    id: str = Field(primary_key=True, max_length=36)
    owner_id: str = Field(max_length=64, index=True)
    title: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    status: str = Field(default=TaskStatus.TODO.value, max_length=16)
    task_type: str = Field(default=TaskType.REGULAR.value, max_length=16)
    parent_task_id: str | None = Field(
        default=None, foreign_key="tasks.id", index=True, max_length=36
    )
    user_priority: int = Field(default=5)
    due_date: datetime | None = Field(default=None, sa_column=Column(DateTime, nullable=True))
    estimated_effort: str | None = Field(default=None, max_length=16)
    bump_count: int = Field(default=0)
    priority_score: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=utcnow_naive, sa_column=Column(DateTime, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow_naive, sa_column=Column(DateTime, nullable=False)
    )
    completed_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime, nullable=True)
    )

    @classmethod
    def from_domain(cls, task: Task) -> "TaskRecord":
        return cls(
            id=task.id,
            owner_id=task.owner_id,
            title=task.title,
            description=task.description,
            status=task.status.value,
            task_type=task.task_type.value,
            parent_task_id=task.parent_task_id,
            user_priority=task.user_priority,
            due_date=to_naive_utc(task.due_date),
            estimated_effort=task.estimated_effort.value if task.estimated_effort else None,
            bump_count=task.bump_count,
            priority_score=task.priority_score,
            created_at=to_naive_utc(task.created_at),
            updated_at=to_naive_utc(task.updated_at),
            completed_at=to_naive_utc(task.completed_at),
        )

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            owner_id=self.owner_id,
            title=self.title,
            description=self.description,
            status=TaskStatus(self.status),
            task_type=TaskType(self.task_type),
            parent_task_id=self.parent_task_id,
            user_priority=self.user_priority,
            due_date=self.due_date,
            estimated_effort=TaskEffort(self.estimated_effort) if self.estimated_effort else None,
            bump_count=self.bump_count,
            priority_score=self.priority_score,
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
        )


class TaskDependencyRecord(SQLModel, table=True):
    """``task_id`` is blocked by ``blocked_by_id``."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        CheckConstraint("task_id <> blocked_by_id", name="ck_task_dependencies_no_self"),
    )

    task_id: str = Field(primary_key=True, foreign_key="tasks.id", max_length=36)
    blocked_by_id: str = Field(
        primary_key=True, foreign_key="tasks.id", index=True, max_length=36
    )
    created_at: datetime = Field(
        default_factory=utcnow_naive, sa_column=Column(DateTime, nullable=False)
    )

    def to_domain(self) -> DependencyEdge:
        return DependencyEdge(
            task_id=self.task_id, blocked_by_id=self.blocked_by_id, created_at=self.created_at
        )
