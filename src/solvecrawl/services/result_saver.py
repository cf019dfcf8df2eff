"""Raw JSON result persistence."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import orjson

from solvecrawl.services.models import CrawlResult
from solvecrawl.shared.errors import ErrorCode, ErrorContext, InfrastructureError
from solvecrawl.shared.logging import log_operation_error

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


class ResultSaver:
    """Write crawl results as ``U<uid>(<username>)_<n>.json``.

    ``n`` starts at 1 and is the first number not yet used in the results
    directory, so earlier results are never overwritten.
    """

    BASENAME = "U{uid}({username})_{count}"
    SUFFIX = ".json"

    def __init__(self, results_dir: Path | str) -> None:
        self.results_dir = Path(results_dir)

    def basename(self, result: CrawlResult, count: int) -> str:
        username = _UNSAFE_CHARS.sub("_", result.username).strip("_")
        return self.BASENAME.format(uid=result.uid, username=username, count=count)

    def next_path(self, result: CrawlResult) -> Path:
        count = 1
        while True:
            path = self.results_dir / f"{self.basename(result, count)}{self.SUFFIX}"
            if not path.exists():
                return path
            count += 1

    def save(self, result: CrawlResult) -> Path:
        """Write ``result`` and return the file path.

        Raises:
            InfrastructureError: If the file cannot be written
        """
        path = self.next_path(result)
        try:
            self.results_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(orjson.dumps(result.to_dict(), option=orjson.OPT_INDENT_2))
        except OSError as e:
            error = InfrastructureError(
                code=ErrorCode.FILE_WRITE_ERROR,
                message=f"Could not save {path.name}: {e}",
                context=ErrorContext(operation="save_result", file_path=str(path)),
                original_error=e,
            )
            log_operation_error(logger=logger, error=error)
            raise error from e

        logger.info("Results saved to %s", path)
        return path
