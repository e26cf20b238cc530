"""Blocked-by dependency management.

Edges are created and removed only by explicit user action. Every insert runs
its cycle check and write inside one ``edge_write_scope`` so two concurrent
inserts can never jointly close a cycle.
"""

import structlog

from taskflow import errors
from taskflow.graph.cycles import DependencyGraph
from taskflow.models.tasks import (
    BlockerCompletionInfo,
    DependencyEdge,
    DependencyInfo,
    DependencyWithTask,
    TaskStatus,
    utcnow,
)
from taskflow.ports import TaskRepository

log = structlog.get_logger()


class DependencyManager:
    """Maintains the blocked-by graph and answers blocker/blocking queries."""

    def __init__(self, repository: TaskRepository) -> None:
        self._repo = repository

    def _blocker_ids(self, task_id: str) -> list[str]:
        return [e.blocked_by_id for e in self._repo.list_edges_for_task(task_id).as_blocked]

    def graph(self) -> DependencyGraph:
        """A lazily expanded view of the blocked-by graph."""
        return DependencyGraph(expand=self._blocker_ids)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_edge(self, task_id: str, blocked_by_id: str) -> DependencyInfo:
        """Record that ``task_id`` is blocked by ``blocked_by_id``.

        Raises:
            DomainError: SELF_DEPENDENCY, TASK_NOT_FOUND, INVALID_DEPENDENCY_TYPE,
                DUPLICATE_DEPENDENCY or DEPENDENCY_CYCLE.
        """
        if task_id == blocked_by_id:
            raise errors.self_dependency(task_id)

        with self._repo.edge_write_scope():
            tasks = self._repo.get_tasks([task_id, blocked_by_id])
            for endpoint in (task_id, blocked_by_id):
                if endpoint not in tasks:
                    raise errors.task_not_found(endpoint)
                if not self._repo.task_exists_and_is_regular(endpoint):
                    raise errors.invalid_dependency_type(task_id, endpoint)

            existing = self._blocker_ids(task_id)
            if blocked_by_id in existing:
                raise errors.duplicate_dependency(task_id, blocked_by_id)

            path = self.graph().would_create_cycle(task_id, blocked_by_id)
            if path is not None:
                log.info(
                    "dependency_cycle_rejected",
                    task_id=task_id,
                    blocked_by_id=blocked_by_id,
                    path=path,
                )
                raise errors.dependency_cycle(task_id, blocked_by_id, path)

            self._repo.insert_edge(
                DependencyEdge(task_id=task_id, blocked_by_id=blocked_by_id, created_at=utcnow())
            )

        log.info("dependency_added", task_id=task_id, blocked_by_id=blocked_by_id)
        return self.get_dependency_info(task_id)

    def remove_edge(self, task_id: str, blocked_by_id: str) -> None:
        """Delete a blocked-by edge.

        Raises:
            DomainError: DEPENDENCY_NOT_FOUND if the edge does not exist.
        """
        with self._repo.edge_write_scope():
            if not self._repo.delete_edge(task_id, blocked_by_id):
                raise errors.dependency_not_found(task_id, blocked_by_id)

        log.info("dependency_removed", task_id=task_id, blocked_by_id=blocked_by_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_dependency_info(self, task_id: str) -> DependencyInfo:
        """Blockers, blocked tasks and completion eligibility for one task."""
        edges = self._repo.list_edges_for_task(task_id)
        blocker_ids = [e.blocked_by_id for e in edges.as_blocked]
        blocking_ids = [e.task_id for e in edges.as_blocker]
        related = self._repo.get_tasks([*blocker_ids, *blocking_ids])

        blockers = [DependencyWithTask.from_task(related[i]) for i in blocker_ids if i in related]
        blocking = [DependencyWithTask.from_task(related[i]) for i in blocking_ids if i in related]
        return DependencyInfo.build(task_id, blockers, blocking)

    def count_incomplete_blockers(self, task_id: str) -> int:
        blocker_ids = self._blocker_ids(task_id)
        blockers = self._repo.get_tasks(blocker_ids)
        # Rows whose blocker task is gone are skipped, as in get_dependency_info
        return sum(1 for i in blocker_ids if i in blockers and not blockers[i].is_done)

    def get_transitive_blockers(self, task_id: str) -> list[str]:
        """Every task that must finish, directly or indirectly, before ``task_id``."""
        return self.graph().reachable_from(task_id)

    def on_blocker_completed(self, completed_task_id: str) -> BlockerCompletionInfo:
        """Report the tasks that have no incomplete blockers left.

        Advisory only: used for notifications, never to change status.
        """
        dependent_ids = [
            e.task_id for e in self._repo.list_edges_for_task(completed_task_id).as_blocker
        ]
        dependents = self._repo.get_tasks(dependent_ids)

        unblocked: list[str] = []
        for dependent_id in dependent_ids:
            dependent = dependents.get(dependent_id)
            if dependent is None or dependent.status == TaskStatus.DONE:
                continue
            if self.count_incomplete_blockers(dependent_id) == 0:
                unblocked.append(dependent_id)

        if unblocked:
            log.info(
                "tasks_unblocked",
                completed_task_id=completed_task_id,
                unblocked_task_ids=unblocked,
            )
        return BlockerCompletionInfo(
            completed_task_id=completed_task_id, unblocked_task_ids=unblocked
        )
