"""Task service facade.

Wires the calculator, dependency graph, subtask aggregator and workflow
engine together over one repository, and performs the task mutations that
trigger score recomputation.
"""

from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

import structlog

from taskflow import errors
from taskflow.config import ScoringConfig
from taskflow.errors import TransientConflictError
from taskflow.models.tasks import (
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    CompletionResult,
    DependencyInfo,
    SubtaskInfo,
    Task,
    TaskEffort,
    TaskStatus,
    TaskType,
    utcnow,
)
from taskflow.ports import TaskRepository
from taskflow.priority.calculator import PriorityCalculator
from taskflow.tasks.dependencies import DependencyManager
from taskflow.tasks.subtasks import SubtaskManager
from taskflow.tasks.workflow import TaskWorkflowEngine

log = structlog.get_logger()

T = TypeVar("T")

# Sentinel for "leave unchanged" in update_task, so None can clear a field
UNSET: object = object()


def _validate_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise errors.validation_error("title", "cannot be empty")
    if len(title) > MAX_TITLE_LENGTH:
        raise errors.validation_error("title", f"exceeds {MAX_TITLE_LENGTH} characters")
    return title


def _validate_description(description: str | None) -> str | None:
    if description is None:
        return None
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise errors.validation_error(
            "description", f"exceeds {MAX_DESCRIPTION_LENGTH} characters"
        )
    return description or None


def _validate_priority(user_priority: int) -> int:
    if not 1 <= user_priority <= 10:
        raise errors.validation_error("user_priority", "must be between 1 and 10")
    return user_priority


class TaskManager:
    """Entry point for handlers and the CLI."""

    def __init__(
        self,
        repository: TaskRepository,
        *,
        scoring: ScoringConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
        max_edge_attempts: int = 3,
    ) -> None:
        self._repo = repository
        self._clock = clock
        self.calculator = PriorityCalculator(scoring, clock=clock)
        self.dependencies = DependencyManager(repository)
        self.subtasks = SubtaskManager(repository)
        self.workflow = TaskWorkflowEngine(repository, self.calculator, self.dependencies)
        self._max_edge_attempts = max(1, max_edge_attempts)

    def _require(self, task_id: str) -> Task:
        task = self._repo.get_task(task_id)
        if task is None:
            raise errors.task_not_found(task_id)
        return task

    def _rescore(self, task: Task) -> Task:
        task.priority_score = self.workflow.score_task(task)
        return task

    # =========================================================================
    # Priority
    # =========================================================================

    def calculate_priority(self, task: Task) -> int:
        return self.calculator.calculate(task)

    def calculate_with_breakdown(self, task: Task) -> Task:
        score, breakdown = self.calculator.calculate_with_breakdown(task)
        return task.model_copy(update={"priority_score": score, "priority_breakdown": breakdown})

    # =========================================================================
    # Task CRUD
    # =========================================================================

    def create_task(
        self,
        owner_id: str,
        title: str,
        *,
        description: str | None = None,
        user_priority: int = 5,
        due_date: datetime | None = None,
        estimated_effort: TaskEffort | None = None,
    ) -> Task:
        now = self._clock()
        task = Task(
            owner_id=owner_id,
            title=_validate_title(title),
            description=_validate_description(description),
            user_priority=_validate_priority(user_priority),
            due_date=due_date,
            estimated_effort=estimated_effort,
            created_at=now,
            updated_at=now,
        )
        self._rescore(task)
        self._repo.save_task(task)
        log.info("task_created", task_id=task.id, priority_score=task.priority_score)
        return task

    def create_subtask(
        self,
        parent_id: str,
        title: str,
        *,
        description: str | None = None,
        user_priority: int = 5,
        due_date: datetime | None = None,
        estimated_effort: TaskEffort | None = None,
    ) -> Task:
        """Create a subtask. Raises PARENT_NOT_FOUND or SUBTASK_DEPTH_EXCEEDED."""
        parent = self.subtasks.validate_parent(parent_id)
        now = self._clock()
        subtask = Task(
            owner_id=parent.owner_id,
            title=_validate_title(title),
            description=_validate_description(description),
            task_type=TaskType.SUBTASK,
            parent_task_id=parent.id,
            user_priority=_validate_priority(user_priority),
            due_date=due_date,
            estimated_effort=estimated_effort,
            created_at=now,
            updated_at=now,
        )
        self._rescore(subtask)
        self._repo.save_task(subtask)
        log.info("subtask_created", task_id=subtask.id, parent_id=parent.id)
        return subtask

    def get_task(self, task_id: str) -> Task:
        """Fetch a task with a freshly computed score and breakdown."""
        task = self.calculate_with_breakdown(self._require(task_id))
        return self._rescore(task) if task.is_subtask else task

    def list_tasks(self, owner_id: str, status: TaskStatus | None = None) -> list[Task]:
        """Tasks for an owner, highest priority first."""
        return self.calculator.rank(
            self._repo.list_tasks(owner_id, status), score=self.workflow.score_task
        )

    def list_at_risk(self, owner_id: str) -> list[Task]:
        return [
            t
            for t in self.list_tasks(owner_id)
            if not t.is_done and self.calculator.is_at_risk(t)
        ]

    def update_task(
        self,
        task_id: str,
        *,
        title: str | None = None,
        description: str | None | object = UNSET,
        user_priority: int | None = None,
        due_date: datetime | None | object = UNSET,
        estimated_effort: TaskEffort | None | object = UNSET,
        status: TaskStatus | None = None,
    ) -> Task:
        """Apply field edits and recompute the score.

        Every field edit is validated before anything is written. A status
        change is then routed through the workflow engine, so a move to done
        is gated exactly like ``complete_task``. Setting the current status
        again is a no-op.
        """
        task = self._require(task_id)
        changes: dict[str, object] = {}
        if title is not None:
            changes["title"] = _validate_title(title)
        if description is not UNSET:
            changes["description"] = _validate_description(description)  # type: ignore[arg-type]
        if user_priority is not None:
            changes["user_priority"] = _validate_priority(user_priority)
        if due_date is not UNSET:
            changes["due_date"] = due_date
        if estimated_effort is not UNSET:
            changes["estimated_effort"] = estimated_effort

        if status is not None and status != task.status:
            self.workflow.transition(task_id, status)
            task = self._require(task_id)

        if not changes:
            return self._rescore(task)

        changes["updated_at"] = self._clock()
        updated = Task.model_validate({**task.model_dump(), **changes})
        self._rescore(updated)
        self._repo.save_task(updated)
        log.info("task_updated", task_id=task_id, fields=sorted(changes))
        return updated

    def bump_task(self, task_id: str) -> Task:
        """Postpone a task: one more bump, higher score."""
        task = self._require(task_id)
        if task.is_done:
            raise errors.validation_error("status", "completed tasks cannot be bumped")
        bumped = task.model_copy(
            update={"bump_count": task.bump_count + 1, "updated_at": self._clock()}
        )
        self._rescore(bumped)
        self._repo.save_task(bumped)
        log.info(
            "task_bumped",
            task_id=task_id,
            bump_count=bumped.bump_count,
            priority_score=bumped.priority_score,
        )
        return bumped

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_task(self, task_id: str) -> Task:
        return self.workflow.transition(task_id, TaskStatus.IN_PROGRESS)

    def complete_task(self, task_id: str) -> CompletionResult:
        return self.workflow.try_complete(task_id)

    def get_subtask_info(self, parent_id: str) -> SubtaskInfo:
        return self.subtasks.get_subtask_info(parent_id)

    # =========================================================================
    # Dependencies
    # =========================================================================

    def add_dependency(self, task_id: str, blocked_by_id: str) -> DependencyInfo:
        return self._with_retry(
            "add_dependency",
            lambda: self.dependencies.add_edge(task_id, blocked_by_id),
        )

    def remove_dependency(self, task_id: str, blocked_by_id: str) -> None:
        self._with_retry(
            "remove_dependency",
            lambda: self.dependencies.remove_edge(task_id, blocked_by_id),
        )

    def get_dependency_info(self, task_id: str) -> DependencyInfo:
        self._require(task_id)
        return self.dependencies.get_dependency_info(task_id)

    def _with_retry(self, operation: str, func: Callable[[], T]) -> T:
        """Re-run ``func`` when its transaction lost a write race."""
        attempt = 1
        while True:
            try:
                return func()
            except TransientConflictError:
                if attempt >= self._max_edge_attempts:
                    log.warning(
                        "edge_write_conflict_exhausted", operation=operation, attempts=attempt
                    )
                    raise
                log.info("edge_write_conflict_retry", operation=operation, attempt=attempt)
                attempt += 1
