"""Pydantic models for taskflow."""

from taskflow.models.tasks import (
    BlockerCompletionInfo,
    CompletionResult,
    DependencyEdge,
    DependencyInfo,
    DependencyWithTask,
    PriorityBreakdown,
    SubtaskInfo,
    Task,
    TaskEdges,
    TaskEffort,
    TaskStatus,
    TaskType,
)

__all__ = [
    "BlockerCompletionInfo",
    "CompletionResult",
    "DependencyEdge",
    "DependencyInfo",
    "DependencyWithTask",
    "PriorityBreakdown",
    "SubtaskInfo",
    "Task",
    "TaskEdges",
    "TaskEffort",
    "TaskStatus",
    "TaskType",
]
