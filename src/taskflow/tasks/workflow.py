"""Task lifecycle and the completion gate.

Status flow::

    todo -> in_progress -> done
    todo ------------------> done
    in_progress -> todo

``done`` is terminal here; restoring a finished task is handled elsewhere.
Every path into ``done`` goes through the completion gate, which requires
all subtasks and all blockers of a regular task to be done.
"""

from dataclasses import dataclass, field

import structlog

from taskflow import errors
from taskflow.errors import StorageError
from taskflow.models.tasks import CompletionResult, Task, TaskStatus
from taskflow.ports import TaskRepository
from taskflow.priority.calculator import PriorityCalculator
from taskflow.tasks.dependencies import DependencyManager
from taskflow.tasks.subtasks import compute_subtask_info

log = structlog.get_logger()

VALID_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.DONE}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.TODO, TaskStatus.DONE}),
    TaskStatus.DONE: frozenset(),
}


def is_valid_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, frozenset())


def get_allowed_transitions(current: TaskStatus) -> list[TaskStatus]:
    return sorted(VALID_TRANSITIONS.get(current, frozenset()), key=list(TaskStatus).index)


@dataclass
class CompletionCheck:
    """Both gates, evaluated independently."""

    task_id: str
    remaining_subtasks: list[dict[str, str]] = field(default_factory=list)
    incomplete_blockers: list[dict[str, str]] = field(default_factory=list)
    subtasks_unavailable: bool = False

    @property
    def blocked_by_subtasks(self) -> bool:
        return self.subtasks_unavailable or bool(self.remaining_subtasks)

    @property
    def blocked_by_dependency(self) -> bool:
        return bool(self.incomplete_blockers)

    @property
    def can_complete(self) -> bool:
        return not (self.blocked_by_subtasks or self.blocked_by_dependency)

    def raise_if_blocked(self) -> None:
        if self.blocked_by_subtasks:
            raise errors.blocked_by_subtasks(
                self.task_id,
                self.remaining_subtasks,
                blockers=self.incomplete_blockers,
                reason="subtask state could not be loaded" if self.subtasks_unavailable else None,
            )
        if self.blocked_by_dependency:
            raise errors.blocked_by_dependency(self.task_id, self.incomplete_blockers)


class TaskWorkflowEngine:
    """Governs status transitions and guards the move to done."""

    def __init__(
        self,
        repository: TaskRepository,
        calculator: PriorityCalculator,
        dependencies: DependencyManager | None = None,
    ) -> None:
        self._repo = repository
        self._calc = calculator
        self._deps = dependencies or DependencyManager(repository)

    def _require(self, task_id: str) -> Task:
        task = self._repo.get_task(task_id)
        if task is None:
            raise errors.task_not_found(task_id)
        return task

    def score_task(self, task: Task) -> int:
        """Score a task; subtasks are lifted by part of their parent's score."""
        if task.is_subtask and task.parent_task_id:
            parent = self._repo.get_task(task.parent_task_id)
            parent_score = self._calc.calculate(parent) if parent else 0
            return self._calc.calculate_for_subtask(task, parent_score)
        return self._calc.calculate(task)

    def check_completion(self, task: Task) -> CompletionCheck:
        """Evaluate the subtask and dependency gates for ``task``."""
        check = CompletionCheck(task_id=task.id)
        if task.is_subtask:
            return check

        try:
            children = self._repo.list_children(task.id)
        except StorageError:
            # Fail closed: unknown subtask state blocks completion
            log.warning("subtask_lookup_failed", task_id=task.id, exc_info=True)
            check.subtasks_unavailable = True
        else:
            if not compute_subtask_info(children).all_complete:
                check.remaining_subtasks = [c.summary() for c in children if not c.is_done]

        info = self._deps.get_dependency_info(task.id)
        check.incomplete_blockers = [
            {"task_id": b.task_id, "title": b.title, "status": b.status.value}
            for b in info.incomplete_blockers
        ]
        return check

    def try_complete(self, task_id: str) -> CompletionResult:
        """Move a task to done if both gates allow it.

        Raises:
            DomainError: TASK_NOT_FOUND, INVALID_STATUS_TRANSITION,
                BLOCKED_BY_SUBTASKS or BLOCKED_BY_DEPENDENCY.
        """
        task = self._require(task_id)
        if not is_valid_transition(task.status, TaskStatus.DONE):
            raise errors.invalid_status_transition(task_id, task.status, TaskStatus.DONE)

        check = self.check_completion(task)
        if not check.can_complete:
            log.info(
                "completion_blocked",
                task_id=task_id,
                remaining_subtasks=len(check.remaining_subtasks),
                incomplete_blockers=len(check.incomplete_blockers),
            )
        check.raise_if_blocked()

        now = self._calc.now()
        completed = task.model_copy(
            update={"status": TaskStatus.DONE, "completed_at": now, "updated_at": now}
        )
        completed.priority_score = self.score_task(completed)
        self._repo.save_task(completed)
        log.info("task_completed", task_id=task_id, task_type=completed.task_type.value)

        result = CompletionResult(completed_task=completed)
        if completed.is_subtask:
            self._attach_parent_prompt(result, completed)
        else:
            result.unblocked_task_ids = self._unblocked_after(task_id)
        return result

    def transition(self, task_id: str, target: TaskStatus) -> Task:
        """Move a task along the status graph. Moves to done go through the gate."""
        if target == TaskStatus.DONE:
            return self.try_complete(task_id).completed_task

        task = self._require(task_id)
        if not is_valid_transition(task.status, target):
            raise errors.invalid_status_transition(task_id, task.status, target)

        moved = task.model_copy(update={"status": target, "updated_at": self._calc.now()})
        moved.priority_score = self.score_task(moved)
        self._repo.save_task(moved)
        log.info("task_transitioned", task_id=task_id, from_status=task.status, to_status=target)
        return moved

    def _unblocked_after(self, task_id: str) -> list[str]:
        # Notifications are best-effort; the completion already committed
        try:
            return self._deps.on_blocker_completed(task_id).unblocked_task_ids
        except StorageError:
            log.warning("unblock_notification_failed", task_id=task_id, exc_info=True)
            return []

    def _attach_parent_prompt(self, result: CompletionResult, subtask: Task) -> None:
        parent_id = subtask.parent_task_id
        if parent_id is None:
            return
        try:
            siblings = self._repo.list_children(parent_id)
            parent = self._repo.get_task(parent_id)
        except StorageError:
            log.warning("parent_prompt_lookup_failed", parent_id=parent_id, exc_info=True)
            return

        result.all_subtasks_complete = compute_subtask_info(siblings).all_complete
        if result.all_subtasks_complete and parent is not None and not parent.is_done:
            result.parent_task = parent
            result.message = (
                "All subtasks complete! Would you like to mark the parent task as done?"
            )
