"""Bounded concurrency for per-item fetches.

Components:
- TaskPool: fixed-size async worker pool with a cancellation scope
- execute_tasks: supervising consumer placing results by task id
"""

from .task_pool import (
    Task,
    TaskCancelledError,
    TaskPool,
    TaskPoolError,
    TaskResult,
    execute_tasks,
)

__all__ = [
    "Task",
    "TaskCancelledError",
    "TaskPool",
    "TaskPoolError",
    "TaskResult",
    "execute_tasks",
]
