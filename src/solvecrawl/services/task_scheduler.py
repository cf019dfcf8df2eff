"""Bounded-concurrency task scheduler.

This module provides the TaskScheduler class that runs an ordered list of
async tasks with at most K in flight, dispatching them in their original
order and recording every outcome at its original index.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from solvecrawl.services.models import ProgressSnapshot, TaskOutcome
from solvecrawl.shared.constants import CrawlDefaults
from solvecrawl.shared.errors import ErrorCode, ErrorContext, InfrastructureError, SolveCrawlError
from solvecrawl.shared.logging import log_operation_error

logger = logging.getLogger(__name__)

Task = Callable[[], Awaitable[Any]]
ProgressObserver = Callable[[ProgressSnapshot], None]
StartHook = Callable[[int], None]


class TaskScheduler:
    """Async task runner with a concurrency bound.

    K workers pull the next not-yet-started task in original order until
    the list is exhausted. A failing task is recorded as a failed outcome
    and never aborts the others.

    Attributes:
        concurrency: Maximum number of tasks in flight (default: 4)

    Example:
        >>> scheduler = TaskScheduler(concurrency=4)
        >>> outcomes = await scheduler.run([fetch_a, fetch_b, fetch_c])
        >>> [o.value for o in outcomes if o.success]
    """

    def __init__(self, concurrency: int = CrawlDefaults.CONCURRENCY) -> None:
        """Initialize TaskScheduler.

        Args:
            concurrency: Maximum number of tasks in flight

        Raises:
            ValueError: If concurrency is less than 1
        """
        if concurrency < 1:
            msg = f"concurrency must be at least 1, got {concurrency}"
            raise ValueError(msg)

        self._concurrency = concurrency

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def run(
        self,
        tasks: Sequence[Task],
        on_complete: ProgressObserver | None = None,
        on_start: StartHook | None = None,
    ) -> list[TaskOutcome[Any]]:
        """Run all tasks and wait for every one of them to settle.

        Args:
            tasks: Zero-argument coroutine functions, identified by index
            on_complete: Called once per settled task, in settlement order
            on_start: Called with the index of each task as it is dispatched

        Returns:
            Outcomes ordered by original task index
        """
        total = len(tasks)
        if total == 0:
            return []

        outcomes: list[TaskOutcome[Any] | None] = [None] * total
        next_index = 0
        finished = 0

        async def worker() -> None:
            nonlocal next_index, finished
            while next_index < total:
                index = next_index
                next_index += 1

                if on_start is not None:
                    self._notify(on_start, index)

                try:
                    value = await tasks[index]()
                except Exception as e:  # noqa: BLE001
                    self._log_failure(e, index, total)
                    outcome: TaskOutcome[Any] = TaskOutcome(index=index, success=False, error=e)
                else:
                    outcome = TaskOutcome(index=index, success=True, value=value)

                outcomes[index] = outcome
                finished += 1

                if on_complete is not None:
                    self._notify(
                        on_complete,
                        ProgressSnapshot(
                            finished=finished,
                            total=total,
                            index=index,
                            success=outcome.success,
                        ),
                    )

        workers = min(self._concurrency, total)
        await asyncio.gather(*(worker() for _ in range(workers)))

        return [outcome for outcome in outcomes if outcome is not None]

    def _notify(self, callback: Callable[[Any], None], payload: Any) -> None:
        """Invoke an observer, logging instead of propagating its errors."""
        try:
            callback(payload)
        except Exception:
            logger.exception("Task scheduler observer failed")

    def _log_failure(self, error: Exception, index: int, total: int) -> None:
        if isinstance(error, SolveCrawlError):
            log_operation_error(
                logger=logger,
                operation="scheduler_task",
                error=error,
                additional_context={"task_index": index, "total": total},
                level=logging.DEBUG,
            )
            return

        wrapped = InfrastructureError(
            code=ErrorCode.CONCURRENCY_ERROR,
            message=f"Task {index} failed: {error}",
            context=ErrorContext(
                operation="scheduler_task",
                additional_data={"task_index": index, "total": total},
            ),
            original_error=error,
        )
        log_operation_error(logger=logger, operation="scheduler_task", error=wrapped)
