"""Personal task manager with priority scoring, subtasks and blocked-by dependencies."""

__version__ = "0.1.0"
