"""Exceptions for the taskflow core.

Domain failures are a single tagged exception, ``DomainError``, whose ``kind``
is drawn from the closed ``ErrorKind`` enum. Build them through the factory
functions below so every kind carries the same context fields:

    try:
        manager.add_edge(task_id, blocked_by_id)
    except DomainError as e:
        match e.kind:
            case ErrorKind.DEPENDENCY_CYCLE:
                render_cycle(e.details["path"])
            case _:
                render(e.message)
"""

from collections.abc import Sequence
from enum import StrEnum


class TaskflowError(Exception):
    """Base exception for all taskflow errors."""

    def __init__(self, message: str, *, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ErrorKind(StrEnum):
    """Every user-facing failure the core can report."""

    SELF_DEPENDENCY = "self_dependency"
    DUPLICATE_DEPENDENCY = "duplicate_dependency"
    INVALID_DEPENDENCY_TYPE = "invalid_dependency_type"
    DEPENDENCY_CYCLE = "dependency_cycle"
    DEPENDENCY_NOT_FOUND = "dependency_not_found"
    BLOCKED_BY_DEPENDENCY = "blocked_by_dependency"
    BLOCKED_BY_SUBTASKS = "blocked_by_subtasks"
    PARENT_NOT_FOUND = "parent_not_found"
    SUBTASK_DEPTH_EXCEEDED = "subtask_depth_exceeded"
    TASK_NOT_FOUND = "task_not_found"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    VALIDATION = "validation"


class DomainError(TaskflowError):
    """A recoverable, user-facing failure. Permanent for the given input."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        details: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.kind = kind

    def __repr__(self) -> str:
        return f"DomainError(kind={self.kind.value!r}, message={self.message!r})"


class StorageError(TaskflowError):
    """Raised by repositories when the backing store fails."""


class TransientConflictError(StorageError):
    """Raised when a write lost a race with a concurrent transaction and may be retried."""


# =============================================================================
# Dependency factories
# =============================================================================


def self_dependency(task_id: str) -> DomainError:
    return DomainError(
        ErrorKind.SELF_DEPENDENCY,
        "A task cannot depend on itself",
        details={"task_id": task_id},
    )


def duplicate_dependency(task_id: str, blocked_by_id: str) -> DomainError:
    return DomainError(
        ErrorKind.DUPLICATE_DEPENDENCY,
        f"Task {task_id} is already blocked by {blocked_by_id}",
        details={"task_id": task_id, "blocked_by_id": blocked_by_id},
    )


def invalid_dependency_type(task_id: str, offending_id: str) -> DomainError:
    return DomainError(
        ErrorKind.INVALID_DEPENDENCY_TYPE,
        f"Only regular tasks can have or be dependencies (task {offending_id} is a subtask)",
        details={"task_id": task_id, "offending_id": offending_id},
    )


def dependency_cycle(task_id: str, blocked_by_id: str, path: Sequence[str]) -> DomainError:
    """Cycle error. ``path`` runs from ``blocked_by_id`` to ``task_id`` along existing edges."""
    chain = " -> ".join([task_id, *path])
    return DomainError(
        ErrorKind.DEPENDENCY_CYCLE,
        f"Adding this dependency would create a cycle: {chain}",
        details={"task_id": task_id, "blocked_by_id": blocked_by_id, "path": list(path)},
    )


def dependency_not_found(task_id: str, blocked_by_id: str) -> DomainError:
    return DomainError(
        ErrorKind.DEPENDENCY_NOT_FOUND,
        f"Task {task_id} is not blocked by {blocked_by_id}",
        details={"task_id": task_id, "blocked_by_id": blocked_by_id},
    )


# =============================================================================
# Completion factories
# =============================================================================


def blocked_by_dependency(task_id: str, blockers: Sequence[dict[str, str]]) -> DomainError:
    titles = ", ".join(b.get("title") or b["task_id"] for b in blockers)
    return DomainError(
        ErrorKind.BLOCKED_BY_DEPENDENCY,
        f"Cannot complete task with unresolved blockers: {titles}",
        details={"task_id": task_id, "blockers": list(blockers)},
    )


def blocked_by_subtasks(
    task_id: str,
    remaining: Sequence[dict[str, str]],
    *,
    blockers: Sequence[dict[str, str]] = (),
    reason: str | None = None,
) -> DomainError:
    if reason:
        message = f"Cannot complete task: {reason}"
    else:
        message = f"Cannot complete task with {len(remaining)} incomplete subtask(s)"
    details: dict[str, object] = {"task_id": task_id, "remaining": list(remaining)}
    if blockers:
        details["blockers"] = list(blockers)
    if reason:
        details["reason"] = reason
    return DomainError(ErrorKind.BLOCKED_BY_SUBTASKS, message, details=details)


# =============================================================================
# Task factories
# =============================================================================


def parent_not_found(parent_id: str) -> DomainError:
    return DomainError(
        ErrorKind.PARENT_NOT_FOUND,
        f"Parent task not found: {parent_id}",
        details={"parent_id": parent_id},
    )


def subtask_depth_exceeded(parent_id: str) -> DomainError:
    return DomainError(
        ErrorKind.SUBTASK_DEPTH_EXCEEDED,
        "Subtasks cannot have subtasks (single-level nesting only)",
        details={"parent_id": parent_id},
    )


def task_not_found(task_id: str) -> DomainError:
    return DomainError(
        ErrorKind.TASK_NOT_FOUND,
        f"Task not found: {task_id}",
        details={"task_id": task_id},
    )


def invalid_status_transition(task_id: str, current: str, target: str) -> DomainError:
    return DomainError(
        ErrorKind.INVALID_STATUS_TRANSITION,
        f"Cannot move task from {current} to {target}",
        details={"task_id": task_id, "from": current, "to": target},
    )


def validation_error(field: str, message: str) -> DomainError:
    return DomainError(
        ErrorKind.VALIDATION,
        f"Invalid {field}: {message}",
        details={"field": field},
    )
