"""Interfaces the core consumes from the persistence layer."""

from collections.abc import Iterable
from contextlib import AbstractContextManager
from typing import Protocol

from taskflow.models.tasks import DependencyEdge, Task, TaskEdges, TaskStatus


class TaskRepository(Protocol):
    """Storage for tasks and blocked-by edges.

    Implementations raise ``StorageError`` for infrastructure failures and
    ``TransientConflictError`` when a write loses a race and may be retried.
    """

    def get_task(self, task_id: str) -> Task | None: ...

    def get_tasks(self, task_ids: Iterable[str]) -> dict[str, Task]: ...

    def list_tasks(self, owner_id: str, status: TaskStatus | None = None) -> list[Task]: ...

    def list_children(self, parent_id: str) -> list[Task]: ...

    def list_edges_for_task(self, task_id: str) -> TaskEdges: ...

    def task_exists_and_is_regular(self, task_id: str) -> bool: ...

    def save_task(self, task: Task) -> None: ...

    def insert_edge(self, edge: DependencyEdge) -> None: ...

    def delete_edge(self, task_id: str, blocked_by_id: str) -> bool: ...

    def edge_write_scope(self) -> AbstractContextManager[None]:
        """Serialize edge checks and writes.

        Every repository call made inside the scope must observe one consistent
        snapshot, and the scope must commit atomically on exit.
        """
        ...
