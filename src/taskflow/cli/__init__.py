"""Taskflow CLI.

Subcommand groups:
- task: Task lifecycle management
- dep: Blocked-by dependencies
- db: Database operations
"""

from taskflow.cli.main import app, main

__all__ = ["app", "main"]
