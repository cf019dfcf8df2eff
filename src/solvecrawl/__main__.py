"""
SolveCrawl Package Main Entry Point

Runs the CLI when the package is executed with ``python -m solvecrawl``.
"""

import logging
import sys

from solvecrawl.cli.typer_app import app
from solvecrawl.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Command interrupted by user")
        sys.exit(CLIDefaults.EXIT_INTERRUPTED)
