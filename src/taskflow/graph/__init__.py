"""Dependency graph utilities."""

from taskflow.graph.cycles import DependencyGraph

__all__ = ["DependencyGraph"]
