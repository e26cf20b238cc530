"""Tests for Pydantic models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from taskflow.models import (
    DependencyInfo,
    DependencyWithTask,
    Task,
    TaskStatus,
    TaskType,
)


class TestTaskModel:
    """Tests for the Task model."""

    def test_defaults(self) -> None:
        task = Task(owner_id="alice", title="Buy milk")
        assert task.status == TaskStatus.TODO
        assert task.task_type == TaskType.REGULAR
        assert task.user_priority == 5
        assert task.bump_count == 0
        assert task.can_have_subtasks
        assert len(task.id) == 36

    def test_naive_datetimes_are_utc(self) -> None:
        task = Task(owner_id="alice", title="Buy milk", due_date=datetime(2026, 5, 1, 9, 0))
        assert task.due_date == datetime(2026, 5, 1, 9, 0, tzinfo=UTC)

    def test_offsets_are_normalized(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        task = Task(owner_id="alice", title="x", due_date=datetime(2026, 5, 1, 9, tzinfo=plus_two))
        assert task.due_date is not None
        assert task.due_date.utcoffset() == timedelta(0)
        assert task.due_date.hour == 7

    def test_subtask_requires_parent(self) -> None:
        with pytest.raises(ValidationError):
            Task(owner_id="alice", title="Child", task_type=TaskType.SUBTASK)

    def test_regular_task_has_no_parent(self) -> None:
        with pytest.raises(ValidationError):
            Task(owner_id="alice", title="x", parent_task_id="p-1")

    def test_priority_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Task(owner_id="alice", title="x", user_priority=11)

    def test_breakdown_not_serialized(self) -> None:
        assert "priority_breakdown" not in Task(owner_id="alice", title="x").model_dump()


class TestDependencyInfo:
    """Tests for the blocker summary."""

    def test_build_counts_incomplete_blockers(self) -> None:
        now = datetime.now(UTC)
        blockers = [
            DependencyWithTask(task_id="a", title="A", status=TaskStatus.DONE, created_at=now),
            DependencyWithTask(task_id="b", title="B", status=TaskStatus.TODO, created_at=now),
        ]
        info = DependencyInfo.build("t", blockers, [])
        assert info.is_blocked
        assert not info.can_complete
        assert [b.task_id for b in info.incomplete_blockers] == ["b"]

    def test_no_blockers(self) -> None:
        info = DependencyInfo.build("t", [], [])
        assert info.can_complete
        assert not info.is_blocked
