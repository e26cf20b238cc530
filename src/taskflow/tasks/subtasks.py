"""Subtask aggregation."""

from collections.abc import Iterable

from taskflow import errors
from taskflow.models.tasks import SubtaskInfo, Task, TaskStatus
from taskflow.ports import TaskRepository


def compute_subtask_info(children: Iterable[Task]) -> SubtaskInfo:
    """Roll child statuses up into counts and a completion flag.

    A parent with no subtasks counts as all complete, so it is never blocked
    by this mechanism.
    """
    info = SubtaskInfo()
    for child in children:
        info.total_count += 1
        match child.status:
            case TaskStatus.DONE:
                info.completed_count += 1
            case TaskStatus.IN_PROGRESS:
                info.in_progress_count += 1
            case TaskStatus.TODO:
                info.todo_count += 1

    if info.total_count == 0:
        info.completion_rate = 0.0
        info.all_complete = True
    else:
        info.completion_rate = info.completed_count / info.total_count
        info.all_complete = info.completed_count == info.total_count
    return info


def can_complete_parent(children: Iterable[Task]) -> bool:
    return compute_subtask_info(children).all_complete


class SubtaskManager:
    """Parent/child checks backed by the repository."""

    def __init__(self, repository: TaskRepository) -> None:
        self._repo = repository

    def validate_parent(self, parent_id: str) -> Task:
        """Return the parent if it may receive a new subtask."""
        parent = self._repo.get_task(parent_id)
        if parent is None:
            raise errors.parent_not_found(parent_id)
        if not parent.can_have_subtasks:
            raise errors.subtask_depth_exceeded(parent_id)
        return parent

    def get_subtask_info(self, parent_id: str) -> SubtaskInfo:
        self.validate_parent(parent_id)
        return compute_subtask_info(self._repo.list_children(parent_id))

    def incomplete_subtasks(self, parent_id: str) -> list[Task]:
        return [c for c in self._repo.list_children(parent_id) if not c.is_done]
