"""Task domain models."""

from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TaskStatus(StrEnum):
    """Workflow states for a task."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskType(StrEnum):
    """Top-level task or a child of one."""

    REGULAR = "regular"
    SUBTASK = "subtask"


class TaskEffort(StrEnum):
    """Estimated effort for a task."""

    SMALL = "small"  # < 1 hour
    MEDIUM = "medium"  # 1-2 hours
    LARGE = "large"  # 2-4 hours
    XLARGE = "xlarge"  # > 4 hours


class PriorityBreakdown(BaseModel):
    """Individual components of a priority score."""

    # Raw components (0-100, bump_penalty 0-50, effort_boost 1.0-1.3)
    user_priority: float
    time_decay: float
    deadline_urgency: float
    bump_penalty: float
    effort_boost: float

    # Weighted contributions
    user_priority_weighted: float
    time_decay_weighted: float
    deadline_urgency_weighted: float
    bump_penalty_weighted: float

    @property
    def weighted_sum(self) -> float:
        return (
            self.user_priority_weighted
            + self.time_decay_weighted
            + self.deadline_urgency_weighted
            + self.bump_penalty_weighted
        )


class Task(BaseModel):
    """A task owned by a single user.

    Subtasks point at their parent through ``parent_task_id``; the parent never
    holds references to its children.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_id: str
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    status: TaskStatus = TaskStatus.TODO
    task_type: TaskType = TaskType.REGULAR
    parent_task_id: str | None = None

    user_priority: int = Field(default=5, ge=1, le=10)
    due_date: datetime | None = None
    estimated_effort: TaskEffort | None = None
    bump_count: int = Field(default=0, ge=0)
    priority_score: int = Field(default=0, ge=0, le=100)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None

    priority_breakdown: PriorityBreakdown | None = Field(default=None, exclude=True)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be blank")
        return v

    @field_validator("due_date", "created_at", "updated_at", "completed_at")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None

    @model_validator(mode="after")
    def check_parent_link(self) -> "Task":
        if self.task_type == TaskType.SUBTASK and not self.parent_task_id:
            raise ValueError("subtasks require a parent_task_id")
        if self.task_type == TaskType.REGULAR and self.parent_task_id:
            raise ValueError("regular tasks cannot have a parent_task_id")
        return self

    @property
    def is_subtask(self) -> bool:
        return self.task_type == TaskType.SUBTASK

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    @property
    def can_have_subtasks(self) -> bool:
        return self.task_type == TaskType.REGULAR

    def summary(self) -> dict[str, str]:
        """Compact reference used in error details."""
        return {"task_id": self.id, "title": self.title, "status": self.status.value}


class DependencyEdge(BaseModel):
    """``task_id`` cannot complete until ``blocked_by_id`` is done."""

    task_id: str
    blocked_by_id: str
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def key(self) -> tuple[str, str]:
        return (self.task_id, self.blocked_by_id)


class TaskEdges(BaseModel):
    """Edges touching one task."""

    as_blocked: list[DependencyEdge] = Field(default_factory=list)
    as_blocker: list[DependencyEdge] = Field(default_factory=list)


class DependencyWithTask(BaseModel):
    """A blocker or blocked task, with enough detail for display."""

    task_id: str
    title: str
    status: TaskStatus
    created_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "DependencyWithTask":
        return cls(
            task_id=task.id, title=task.title, status=task.status, created_at=task.created_at
        )


class DependencyInfo(BaseModel):
    """Blocked-by state of one task."""

    task_id: str
    blockers: list[DependencyWithTask] = Field(default_factory=list)
    blocking: list[DependencyWithTask] = Field(default_factory=list)
    is_blocked: bool = False
    can_complete: bool = True

    @classmethod
    def build(
        cls,
        task_id: str,
        blockers: list[DependencyWithTask],
        blocking: list[DependencyWithTask],
    ) -> "DependencyInfo":
        incomplete = sum(1 for b in blockers if b.status != TaskStatus.DONE)
        return cls(
            task_id=task_id,
            blockers=blockers,
            blocking=blocking,
            is_blocked=incomplete > 0,
            can_complete=incomplete == 0,
        )

    @property
    def incomplete_blockers(self) -> list[DependencyWithTask]:
        return [b for b in self.blockers if b.status != TaskStatus.DONE]


class BlockerCompletionInfo(BaseModel):
    """Tasks that became unblocked when a blocker completed."""

    completed_task_id: str
    unblocked_task_ids: list[str] = Field(default_factory=list)

    @property
    def unblocked_count(self) -> int:
        return len(self.unblocked_task_ids)


class SubtaskInfo(BaseModel):
    """Aggregated subtask statistics for a parent task."""

    total_count: int = 0
    completed_count: int = 0
    in_progress_count: int = 0
    todo_count: int = 0
    completion_rate: float = 0.0  # 0.0 - 1.0
    all_complete: bool = True


class CompletionResult(BaseModel):
    """Outcome of a successful completion, with advisory signals."""

    completed_task: Task
    unblocked_task_ids: list[str] = Field(default_factory=list)
    all_subtasks_complete: bool = False
    parent_task: Task | None = None
    message: str = ""
