"""Adjacency-map view of blocked-by edges, with cycle detection.

Nodes are task ids. An edge ``task -> blocker`` means ``task`` is blocked by
``blocker``. The view is built per operation from persisted rows and never
holds task objects.
"""

from collections.abc import Callable, Iterable

from taskflow.models.tasks import DependencyEdge

# Visit states for cycle detection
_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Directed graph of task ids keyed by the blocked task.

    If ``expand`` is given, a node's outgoing edges are fetched lazily the first
    time a traversal reaches it, so only the rows a query needs are loaded.
    """

    def __init__(
        self,
        adjacency: dict[str, list[str]] | None = None,
        *,
        expand: Callable[[str], Iterable[str]] | None = None,
    ) -> None:
        self._adjacency: dict[str, list[str]] = {
            node: list(targets) for node, targets in (adjacency or {}).items()
        }
        self._expand = expand

    @classmethod
    def from_edges(cls, edges: Iterable[DependencyEdge | tuple[str, str]]) -> "DependencyGraph":
        graph = cls()
        for edge in edges:
            task_id, blocked_by_id = edge.key if isinstance(edge, DependencyEdge) else edge
            graph.add_edge(task_id, blocked_by_id)
        return graph

    def add_edge(self, task_id: str, blocked_by_id: str) -> None:
        targets = self._adjacency.setdefault(task_id, [])
        if blocked_by_id not in targets:
            targets.append(blocked_by_id)
        self._adjacency.setdefault(blocked_by_id, [])

    def remove_edge(self, task_id: str, blocked_by_id: str) -> bool:
        targets = self._adjacency.get(task_id)
        if not targets or blocked_by_id not in targets:
            return False
        targets.remove(blocked_by_id)
        return True

    def neighbors(self, node: str) -> list[str]:
        if node not in self._adjacency and self._expand is not None:
            self._adjacency[node] = list(self._expand(node))
        return self._adjacency.get(node, [])

    def edge_count(self) -> int:
        return sum(len(targets) for targets in self._adjacency.values())

    # =========================================================================
    # Traversal
    # =========================================================================

    def find_path(self, start: str, target: str) -> list[str] | None:
        """Return a path ``[start, ..., target]`` along existing edges, if any.

        Iterative DFS, O(V+E).
        """
        if start == target:
            return [start]

        parents: dict[str, str | None] = {start: None}
        stack = [start]
        while stack:
            node = stack.pop()
            for neighbor in self.neighbors(node):
                if neighbor in parents:
                    continue
                parents[neighbor] = node
                if neighbor == target:
                    return self._unwind(parents, target)
                stack.append(neighbor)
        return None

    def would_create_cycle(self, task_id: str, blocked_by_id: str) -> list[str] | None:
        """Check whether adding ``task_id -> blocked_by_id`` closes a cycle.

        The new edge closes a cycle exactly when ``task_id`` is already
        reachable from ``blocked_by_id``. Returns that existing path, or None.
        """
        if task_id == blocked_by_id:
            return [task_id]
        return self.find_path(blocked_by_id, task_id)

    def reachable_from(self, start: str) -> list[str]:
        """All nodes reachable from ``start``, in discovery order, excluding ``start``."""
        seen = {start}
        order: list[str] = []
        stack = [start]
        while stack:
            node = stack.pop()
            for neighbor in self.neighbors(node):
                if neighbor not in seen:
                    seen.add(neighbor)
                    order.append(neighbor)
                    stack.append(neighbor)
        return order

    def has_cycle(self) -> bool:
        """Three-color DFS over every node currently in the view."""
        colors: dict[str, int] = {}

        for root in list(self._adjacency):
            if colors.get(root, _WHITE) != _WHITE:
                continue
            colors[root] = _GRAY
            stack: list[tuple[str, Iterable[str]]] = [(root, iter(self.neighbors(root)))]
            while stack:
                node, children = stack[-1]
                advanced = False
                for child in children:
                    state = colors.get(child, _WHITE)
                    if state == _GRAY:
                        return True
                    if state == _WHITE:
                        colors[child] = _GRAY
                        stack.append((child, iter(self.neighbors(child))))
                        advanced = True
                        break
                if not advanced:
                    colors[node] = _BLACK
                    stack.pop()
        return False

    @staticmethod
    def _unwind(parents: dict[str, str | None], target: str) -> list[str]:
        path = [target]
        node = parents[target]
        while node is not None:
            path.append(node)
            node = parents[node]
        path.reverse()
        return path
