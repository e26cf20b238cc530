"""Priority scoring."""

from taskflow.priority.calculator import PriorityCalculator

__all__ = ["PriorityCalculator"]
