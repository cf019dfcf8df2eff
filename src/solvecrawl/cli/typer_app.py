"""
SolveCrawl Typer CLI Application

Main Typer-based command line interface for SolveCrawl.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from solvecrawl.cli.crawl_handler import crawl_command
from solvecrawl.shared.constants import Application, CLICommands, CLIHelp


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=Application.VERSION))
        raise typer.Exit


app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    rich_markup_mode=CLIHelp.APP_STYLE,
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Crawl solved problems from an online judge."""


@app.command(CLICommands.CRAWL, help=CLIHelp.CRAWL_HELP)
def crawl_command_typer(
    user: str = typer.Argument(..., help=CLIHelp.USER_HELP),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=CLIHelp.CONFIG_HELP,
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help=CLIHelp.OUTPUT_DIR_HELP,
        file_okay=False,
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help=CLIHelp.LOG_LEVEL_HELP),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-j", help=CLIHelp.CONCURRENCY_HELP),
    no_progress: bool = typer.Option(False, "--no-progress", help=CLIHelp.NO_PROGRESS_HELP),
) -> None:
    exit_code = crawl_command(
        user,
        config_path=config,
        output_dir=output_dir,
        log_level=log_level,
        concurrency=concurrency,
        show_progress=not no_progress,
    )
    if exit_code:
        raise typer.Exit(exit_code)


def run() -> None:
    """Console script entry point."""
    app()
