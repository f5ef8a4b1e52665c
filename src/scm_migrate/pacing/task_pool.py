"""Bounded worker pool with index-addressed results.

This module provides a fixed-size async worker pool used to fan out
slow per-item fetches (typically "list comments for PR #N") while
bounding the number of in-flight requests.

Features:
- Exactly ``workers`` worker tasks draining a bounded input queue
- Backpressure: ``submit`` waits while the input queue is full
- A shared cancellation scope (asyncio.Event) passed to every task
- ``force_shutdown`` on the first failure, surfaced as TaskPoolError
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from scm_migrate.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Marks a closed queue
_CLOSED: Any = object()


class TaskPoolError(Exception):
    """Raised when a task in the pool fails; the pool is force-shut down."""

    def __init__(self, message: str, task_id: int | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id


class TaskCancelledError(TaskPoolError):
    """Raised for tasks that observe a cancelled scope."""

    pass


@dataclass
class Task(Generic[T]):
    """A unit of work for the pool.

    ``id`` is the index of the destination slot the result is written to.
    """

    id: int
    """Index into the destination list."""

    execute: Callable[[asyncio.Event], Awaitable[T]]
    """Coroutine factory; receives the pool's cancellation scope."""


@dataclass
class TaskResult(Generic[T]):
    """Outcome of one task."""

    id: int
    """Id of the originating task."""

    data: T | None = None
    """Value returned by the task (None on error)."""

    error: BaseException | None = None
    """Exception raised by the task, if any."""

    @property
    def ok(self) -> bool:
        """True if the task completed without error."""
        return self.error is None


class TaskPool(Generic[T]):
    """Fixed-size worker pool.

    Usage:
        pool = TaskPool(workers=20)
        pool.start()

        consumer = asyncio.create_task(drain(pool))  # reads pool.results()
        for task in tasks:
            await pool.submit(task)
        await pool.shutdown()
        await consumer

    Results may arrive in any order; callers place them by ``TaskResult.id``.
    Every result read must be acknowledged with ``mark_result_read`` so that
    ``shutdown`` knows when all submitted work is done.
    """

    def __init__(self, workers: int, cancel_scope: asyncio.Event | None = None) -> None:
        """Initialize the pool.

        Args:
            workers: Number of concurrent workers (must be >= 1)
            cancel_scope: Shared cancellation scope; a new one is created if omitted
        """
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self._worker_count = workers
        self._cancel = cancel_scope if cancel_scope is not None else asyncio.Event()

        # Bounded input queue gives submit() backpressure
        self._tasks: asyncio.Queue[Any] = asyncio.Queue(maxsize=workers)
        self._results: asyncio.Queue[Any] = asyncio.Queue()

        self._workers: list[asyncio.Task[None]] = []
        self._outstanding = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._forced = False
        self._closed = False

        # Statistics
        self._total_submitted = 0
        self._total_completed = 0
        self._total_failed = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Start the worker tasks (idempotent)."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker_loop(i)) for i in range(self._worker_count)
        ]
        logger.debug("Task pool started (workers={})", self._worker_count)

    async def shutdown(self) -> None:
        """Wait for all outstanding work, then stop workers and close queues.

        Returns early (without waiting) if the pool was force-shut down.
        """
        if self._closed:
            return

        await self._idle.wait()
        if self._forced:
            return

        for _ in self._workers:
            await self._tasks.put(_CLOSED)
        self._cancel.set()
        await asyncio.gather(*self._workers, return_exceptions=True)

        self._closed = True
        self._results.put_nowait(_CLOSED)
        logger.debug(
            "Task pool stopped (completed={}, failed={})",
            self._total_completed,
            self._total_failed,
        )

    async def force_shutdown(self) -> None:
        """Cancel the scope and close both queues immediately.

        Running tasks are cancelled and queued tasks are discarded.
        """
        if self._closed:
            return

        self._forced = True
        self._closed = True
        self._cancel.set()

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)

        # Free the input queue so a blocked submit() can observe cancellation
        while True:
            try:
                self._tasks.get_nowait()
            except asyncio.QueueEmpty:
                break

        self._results.put_nowait(_CLOSED)
        self._idle.set()
        logger.warning("Task pool force-shut down (outstanding={})", self._outstanding)

    @property
    def cancelled(self) -> bool:
        """True once the cancellation scope has been triggered."""
        return self._cancel.is_set()

    # -------------------------------------------------------------------------
    # Submission & Results
    # -------------------------------------------------------------------------
    async def submit(self, task: Task[T]) -> None:
        """Queue a task, waiting while all workers are busy.

        Raises:
            TaskCancelledError: If the pool is cancelled or closed
        """
        if self._cancel.is_set() or self._closed:
            raise TaskCancelledError("task pool is shut down", task_id=task.id)

        self._outstanding += 1
        self._total_submitted += 1
        self._idle.clear()
        await self._tasks.put(task)

        if self._forced:
            raise TaskCancelledError("task pool is shut down", task_id=task.id)

    async def results(self) -> AsyncIterator[TaskResult[T]]:
        """Iterate results until the result queue is closed."""
        while True:
            item = await self._results.get()
            if item is _CLOSED:
                return
            yield item

    def mark_result_read(self) -> None:
        """Acknowledge one consumed result."""
        self._outstanding -= 1
        if self._outstanding <= 0:
            self._outstanding = 0
            self._idle.set()

    # -------------------------------------------------------------------------
    # Worker Loop
    # -------------------------------------------------------------------------
    async def _worker_loop(self, worker_id: int) -> None:
        """Take tasks until the input queue is closed."""
        while True:
            task = await self._tasks.get()
            if task is _CLOSED:
                return

            if self._cancel.is_set():
                result: TaskResult[T] = TaskResult(
                    id=task.id,
                    error=TaskCancelledError("cancelled before execution", task_id=task.id),
                )
            else:
                try:
                    data = await task.execute(self._cancel)
                    result = TaskResult(id=task.id, data=data)
                except asyncio.CancelledError as e:
                    # Only the worker itself being cancelled ends the loop
                    current = asyncio.current_task()
                    if current is not None and current.cancelling():
                        raise
                    result = TaskResult(id=task.id, error=e)
                except BaseException as e:
                    # Every dequeued task yields a result, or shutdown never sees the pool idle
                    result = TaskResult(id=task.id, error=e)

            if result.ok:
                self._total_completed += 1
            else:
                self._total_failed += 1
                logger.debug("Worker {}: task {} failed: {}", worker_id, task.id, result.error)

            await self._results.put(result)

    def get_stats(self) -> dict[str, int | bool]:
        """Get pool statistics.

        Returns:
            Dict with workers, outstanding, totals and cancellation state
        """
        return {
            "workers": self._worker_count,
            "outstanding": self._outstanding,
            "cancelled": self.cancelled,
            "total_submitted": self._total_submitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
        }


async def execute_tasks(
    tasks: Sequence[Task[T]],
    workers: int,
    cancel_scope: asyncio.Event | None = None,
) -> list[T]:
    """Run tasks on a bounded pool and gather results by task id.

    The consumer is started before the first submission, so submitting
    never waits on a reader that does not exist yet. The first failed
    result forces the pool down and is re-raised as TaskPoolError.

    Args:
        tasks: Tasks whose ids are 0..len(tasks)-1
        workers: Maximum concurrent tasks
        cancel_scope: Optional shared cancellation scope

    Returns:
        Result values where ``values[i]`` came from the task with id ``i``

    Raises:
        ValueError: If task ids are not a permutation of 0..len(tasks)-1
        TaskPoolError: If any task fails
    """
    if sorted(t.id for t in tasks) != list(range(len(tasks))):
        raise ValueError("task ids must be unique indexes 0..n-1")

    if not tasks:
        return []

    slots: list[Any] = [None] * len(tasks)
    pool: TaskPool[T] = TaskPool(workers, cancel_scope=cancel_scope)
    failure: list[TaskResult[T]] = []

    async def _supervise() -> None:
        async for result in pool.results():
            pool.mark_result_read()
            if not result.ok:
                failure.append(result)
                await pool.force_shutdown()
                return
            slots[result.id] = result.data

    pool.start()
    consumer = asyncio.create_task(_supervise())

    try:
        for task in tasks:
            await pool.submit(task)
        await pool.shutdown()
    except TaskCancelledError:
        # The supervisor shut the pool down; its failure is reported below
        pass
    except BaseException:
        await pool.force_shutdown()
        consumer.cancel()
        raise

    await consumer

    if failure:
        failed = failure[0]
        if not isinstance(failed.error, (Exception, asyncio.CancelledError)):
            raise failed.error
        raise TaskPoolError(
            f"task {failed.id} failed: {failed.error}", task_id=failed.id
        ) from failed.error

    return slots
