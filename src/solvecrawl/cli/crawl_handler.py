"""Crawl command handler.

Wires configuration, cache, site source and orchestrator together for a
single crawl, and guarantees a final cache flush on every exit path,
including Ctrl+C and SIGTERM.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from pathlib import Path

from rich.console import Console
from rich.table import Table

from solvecrawl.cli.progress import ProgressManager
from solvecrawl.config import Settings, reload_config
from solvecrawl.services.http_source import HttpProblemSource
from solvecrawl.services.models import CrawlResult
from solvecrawl.services.orchestrator import CrawlOrchestrator, ProgressObserver
from solvecrawl.services.problem_cache import ProblemCache
from solvecrawl.services.result_saver import ResultSaver
from solvecrawl.shared.constants import CLIDefaults, Logging
from solvecrawl.shared.errors import (
    CliError,
    ErrorCode,
    ErrorContext,
    ProfileUnavailableError,
    SolveCrawlError,
)
from solvecrawl.shared.logging import log_operation_error, setup_structured_logger

logger = logging.getLogger(__name__)


async def run_crawl(
    user: str,
    settings: Settings,
    on_progress: ProgressObserver | None = None,
) -> CrawlResult:
    """Run one crawl with a cache that is always flushed on exit."""
    loop = asyncio.get_running_loop()
    current = asyncio.current_task()
    if current is not None:
        # Not available on every platform; Ctrl+C is still handled by asyncio.run
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signal.SIGTERM, current.cancel)

    cache = ProblemCache.from_settings(settings.cache)
    await cache.init()
    try:
        async with HttpProblemSource(settings.site) as source:
            orchestrator = CrawlOrchestrator(
                source,
                cache,
                settings.crawl,
                on_progress=on_progress,
            )
            return await orchestrator.crawl(user)
    finally:
        await cache.stop()
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(signal.SIGTERM)


def render_summary(result: CrawlResult, saved_to: Path, console: Console) -> None:
    table = Table(title=f"U{result.uid} {result.username}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Submitted", str(result.submit_total))
    table.add_row("Solved", str(result.solved_total))
    table.add_row("Resolved", str(len(result.resolved)))
    table.add_row("Unknown", str(len(result.unknown)))
    table.add_row("Cache hits", str(result.counters.cache_hits))
    table.add_row("List page requests", str(result.counters.bulk_requests))
    table.add_row("Problem requests", str(result.counters.detail_requests))
    table.add_row("Elapsed", f"{result.elapsed_seconds:.1f}s")
    console.print(table)

    if result.unknown:
        console.print(f"[yellow]Unknown problems:[/yellow] {', '.join(result.unknown)}")
    console.print(f"Results saved to [bold]{saved_to}[/bold]")


def apply_overrides(
    settings: Settings,
    *,
    output_dir: Path | None = None,
    log_level: str | None = None,
    concurrency: int | None = None,
) -> Settings:
    update: dict[str, object] = {}
    if output_dir is not None:
        update["output"] = settings.output.model_copy(update={"results_dir": str(output_dir)})
    if log_level is not None:
        update["logging"] = settings.logging.model_copy(update={"level": log_level.upper()})
    if concurrency is not None:
        if concurrency < 1:
            raise CliError(
                ErrorCode.CONFIG_ERROR,
                f"--concurrency must be at least 1, got {concurrency}",
                ErrorContext(operation="apply_overrides"),
            )
        update["crawl"] = settings.crawl.model_copy(update={"concurrency": concurrency})
    return settings.model_copy(update=update) if update else settings


def crawl_command(
    user: str,
    *,
    config_path: Path | None = None,
    output_dir: Path | None = None,
    log_level: str | None = None,
    concurrency: int | None = None,
    show_progress: bool = True,
) -> int:
    """Execute the crawl command and return the process exit code."""
    console = Console()

    try:
        settings = apply_overrides(
            reload_config(config_path),
            output_dir=output_dir,
            log_level=log_level,
            concurrency=concurrency,
        )
    except (SolveCrawlError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return CLIDefaults.EXIT_ERROR

    setup_structured_logger(
        name=Logging.LOGGER_NAME,
        level=settings.logging.level,
        log_file=settings.logging.file or None,
        use_rich_console=settings.logging.console_output,
    )

    progress = ProgressManager(disabled=not show_progress, console=console)
    observer: ProgressObserver = progress.observer()

    try:
        with progress:
            result = asyncio.run(run_crawl(user, settings, observer))
    except ProfileUnavailableError as e:
        log_operation_error(logger=logger, error=e, operation="crawl_command")
        console.print(f"[red]{e.message}[/red]")
        return CLIDefaults.EXIT_ERROR
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("[yellow]Crawl interrupted, cache saved.[/yellow]")
        return CLIDefaults.EXIT_INTERRUPTED

    try:
        saved_to = ResultSaver(settings.output.results_dir).save(result)
    except SolveCrawlError as e:
        console.print(f"[red]{e.message}[/red]")
        return CLIDefaults.EXIT_ERROR

    render_summary(result, saved_to, console)
    return CLIDefaults.EXIT_SUCCESS
