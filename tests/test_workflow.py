"""Tests for the status lifecycle and completion gate."""

import pytest
from fakes import FrozenClock, InMemoryTaskRepository

from taskflow.errors import DomainError, ErrorKind
from taskflow.models import Task, TaskStatus
from taskflow.tasks import TaskManager, get_allowed_transitions, is_valid_transition


def _parent_with_subtasks(manager: TaskManager) -> tuple[Task, Task, Task]:
    parent = manager.create_task("alice", "Release 1.0")
    done = manager.create_subtask(parent.id, "Write changelog")
    todo = manager.create_subtask(parent.id, "Tag release")
    manager.complete_task(done.id)
    return parent, done, todo


class TestTransitions:
    """Tests for the status graph."""

    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            (TaskStatus.TODO, TaskStatus.IN_PROGRESS, True),
            (TaskStatus.TODO, TaskStatus.DONE, True),
            (TaskStatus.IN_PROGRESS, TaskStatus.DONE, True),
            (TaskStatus.IN_PROGRESS, TaskStatus.TODO, True),
            (TaskStatus.TODO, TaskStatus.TODO, False),
            (TaskStatus.DONE, TaskStatus.TODO, False),
            (TaskStatus.DONE, TaskStatus.IN_PROGRESS, False),
        ],
    )
    def test_is_valid_transition(
        self, current: TaskStatus, target: TaskStatus, allowed: bool
    ) -> None:
        assert is_valid_transition(current, target) is allowed

    def test_allowed_transitions_are_ordered(self) -> None:
        assert get_allowed_transitions(TaskStatus.TODO) == [
            TaskStatus.IN_PROGRESS,
            TaskStatus.DONE,
        ]
        assert get_allowed_transitions(TaskStatus.DONE) == []

    def test_start_and_pause(self, manager: TaskManager) -> None:
        task = manager.create_task("alice", "Refactor")
        assert manager.start_task(task.id).status == TaskStatus.IN_PROGRESS
        paused = manager.workflow.transition(task.id, TaskStatus.TODO)
        assert paused.status == TaskStatus.TODO

    def test_done_is_terminal(self, manager: TaskManager) -> None:
        task = manager.create_task("alice", "Refactor")
        manager.complete_task(task.id)

        with pytest.raises(DomainError) as exc_info:
            manager.start_task(task.id)
        assert exc_info.value.kind == ErrorKind.INVALID_STATUS_TRANSITION
        assert exc_info.value.details == {
            "task_id": task.id,
            "from": TaskStatus.DONE,
            "to": TaskStatus.IN_PROGRESS,
        }

    def test_completing_twice(self, manager: TaskManager) -> None:
        task = manager.create_task("alice", "Refactor")
        manager.complete_task(task.id)
        with pytest.raises(DomainError) as exc_info:
            manager.complete_task(task.id)
        assert exc_info.value.kind == ErrorKind.INVALID_STATUS_TRANSITION

    def test_unknown_task(self, manager: TaskManager) -> None:
        with pytest.raises(DomainError) as exc_info:
            manager.complete_task("missing")
        assert exc_info.value.kind == ErrorKind.TASK_NOT_FOUND


class TestCompletionGate:
    """Tests for the subtask and dependency gates."""

    def test_parent_blocked_by_open_subtask(self, manager: TaskManager) -> None:
        parent, _, todo = _parent_with_subtasks(manager)

        with pytest.raises(DomainError) as exc_info:
            manager.complete_task(parent.id)

        err = exc_info.value
        assert err.kind == ErrorKind.BLOCKED_BY_SUBTASKS
        assert err.details["remaining"] == [
            {"task_id": todo.id, "title": "Tag release", "status": "todo"}
        ]
        assert manager.get_task(parent.id).status == TaskStatus.TODO

    def test_parent_completes_once_subtasks_done(self, manager: TaskManager) -> None:
        parent, _, todo = _parent_with_subtasks(manager)
        manager.complete_task(todo.id)

        result = manager.complete_task(parent.id)
        assert result.completed_task.status == TaskStatus.DONE

    def test_blocked_by_dependency(self, manager: TaskManager) -> None:
        blocker = manager.create_task("alice", "Get approval")
        task = manager.create_task("alice", "Ship")
        manager.add_dependency(task.id, blocker.id)

        with pytest.raises(DomainError) as exc_info:
            manager.complete_task(task.id)

        err = exc_info.value
        assert err.kind == ErrorKind.BLOCKED_BY_DEPENDENCY
        assert err.details["blockers"] == [
            {"task_id": blocker.id, "title": "Get approval", "status": "todo"}
        ]
        assert "Get approval" in err.message

    def test_both_gates_report_subtasks_first(self, manager: TaskManager) -> None:
        parent, _, _ = _parent_with_subtasks(manager)
        blocker = manager.create_task("alice", "Get approval")
        manager.add_dependency(parent.id, blocker.id)

        with pytest.raises(DomainError) as exc_info:
            manager.complete_task(parent.id)

        err = exc_info.value
        assert err.kind == ErrorKind.BLOCKED_BY_SUBTASKS
        assert [b["task_id"] for b in err.details["blockers"]] == [blocker.id]  # type: ignore[union-attr]

    def test_subtask_lookup_failure_blocks_completion(
        self, manager: TaskManager, repo: InMemoryTaskRepository
    ) -> None:
        task = manager.create_task("alice", "Ship")
        repo.fail_list_children = True

        with pytest.raises(DomainError) as exc_info:
            manager.complete_task(task.id)

        assert exc_info.value.kind == ErrorKind.BLOCKED_BY_SUBTASKS
        assert "reason" in exc_info.value.details
        assert repo.tasks[task.id].status == TaskStatus.TODO

    def test_subtasks_ignore_the_gate(self, manager: TaskManager) -> None:
        parent = manager.create_task("alice", "Parent")
        subtask = manager.create_subtask(parent.id, "Child")
        assert manager.complete_task(subtask.id).completed_task.is_done

    def test_check_completion_reports_both_gates(self, manager: TaskManager) -> None:
        parent, _, _ = _parent_with_subtasks(manager)
        blocker = manager.create_task("alice", "Get approval")
        manager.add_dependency(parent.id, blocker.id)

        check = manager.workflow.check_completion(manager.get_task(parent.id))
        assert check.blocked_by_subtasks
        assert check.blocked_by_dependency
        assert not check.can_complete

    def test_status_update_to_done_is_gated(self, manager: TaskManager) -> None:
        parent, _, _ = _parent_with_subtasks(manager)
        with pytest.raises(DomainError) as exc_info:
            manager.update_task(parent.id, status=TaskStatus.DONE)
        assert exc_info.value.kind == ErrorKind.BLOCKED_BY_SUBTASKS


class TestCompletionResult:
    """Tests for the advisory signals returned on completion."""

    def test_completed_at_uses_clock(self, manager: TaskManager, clock: FrozenClock) -> None:
        task = manager.create_task("alice", "Refactor")
        clock.advance(hours=3)
        result = manager.complete_task(task.id)
        assert result.completed_task.completed_at == clock.now

    def test_last_subtask_prompts_for_parent(self, manager: TaskManager) -> None:
        parent, _, todo = _parent_with_subtasks(manager)

        result = manager.complete_task(todo.id)

        assert result.all_subtasks_complete
        assert result.parent_task is not None
        assert result.parent_task.id == parent.id
        assert result.message == (
            "All subtasks complete! Would you like to mark the parent task as done?"
        )
        # Advisory only: the parent is untouched
        assert manager.get_task(parent.id).status == TaskStatus.TODO

    def test_no_prompt_while_siblings_open(self, manager: TaskManager) -> None:
        parent = manager.create_task("alice", "Parent")
        first = manager.create_subtask(parent.id, "First")
        manager.create_subtask(parent.id, "Second")

        result = manager.complete_task(first.id)
        assert not result.all_subtasks_complete
        assert result.parent_task is None
        assert result.message == ""
