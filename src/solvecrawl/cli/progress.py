"""
Progress Display Utility Module

Wraps Rich's Progress so crawl phases can report progress through the
observer callbacks the services accept.
"""

from __future__ import annotations

from collections.abc import Callable

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from typing_extensions import Self

from solvecrawl.services.models import ProgressSnapshot


class ProgressManager:
    """
    Rich progress display for the crawl command.

    Args:
        disabled: Suppress all output, e.g. for non-interactive runs
        console: Console to render on
    """

    def __init__(self, *, disabled: bool = False, console: Console | None = None) -> None:
        self.disabled = disabled
        self.failed = 0
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console,
            disable=disabled,
            expand=True,
        )

    def __enter__(self) -> Self:
        self._progress.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()

    def observer(self, description: str = "Fetching problems") -> Callable[[ProgressSnapshot], None]:
        """
        Build a progress observer for TaskScheduler snapshots.

        The bar is created on the first snapshot, once the total is known.
        """
        task_id: TaskID | None = None

        def on_progress(snapshot: ProgressSnapshot) -> None:
            nonlocal task_id
            if not snapshot.success:
                self.failed += 1
            if self.disabled:
                return
            if task_id is None:
                task_id = self._progress.add_task(description, total=snapshot.total)
            self._progress.update(task_id, completed=snapshot.finished)

        return on_progress
