"""Task management: dependencies, subtasks, lifecycle."""

from taskflow.tasks.dependencies import DependencyManager
from taskflow.tasks.manager import TaskManager
from taskflow.tasks.subtasks import SubtaskManager, can_complete_parent, compute_subtask_info
from taskflow.tasks.workflow import (
    CompletionCheck,
    TaskWorkflowEngine,
    get_allowed_transitions,
    is_valid_transition,
)

__all__ = [
    # Workflow
    "TaskManager",
    "TaskWorkflowEngine",
    "CompletionCheck",
    "is_valid_transition",
    "get_allowed_transitions",
    # Dependencies
    "DependencyManager",
    # Subtasks
    "SubtaskManager",
    "compute_subtask_info",
    "can_complete_parent",
]
