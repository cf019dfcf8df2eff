"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from solvecrawl.shared.errors import ErrorCode, ErrorContext, InfrastructureError
from solvecrawl.shared.logging import (
    StructuredFormatter,
    log_operation_error,
    log_operation_success,
    setup_structured_logger,
)


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def make_logger(name: str) -> tuple[logging.Logger, ListHandler]:
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = ListHandler()
    logger.addHandler(handler)
    return logger, handler


class TestStructuredFormatter:
    def test_renders_json_with_extras(self) -> None:
        record = logging.LogRecord("solvecrawl.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        record.operation = "crawl_user"
        record.duration_ms = 12.5

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["operation"] == "crawl_user"
        assert entry["duration_ms"] == 12.5


class TestSetupStructuredLogger:
    """Test logger configuration."""

    def test_json_file_output(self, temp_dir: Path) -> None:
        log_file = temp_dir / "logs" / "crawl.log"
        logger = setup_structured_logger(
            name="solvecrawl.test.setup",
            level="debug",
            log_file=str(log_file),
            use_rich_console=False,
        )
        try:
            logger.info("started")
            for handler in logger.handlers:
                handler.flush()

            entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
            assert entry["message"] == "started"
            assert logger.level == logging.DEBUG
            assert logger.propagate is False
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        name = "solvecrawl.test.repeat"
        setup_structured_logger(name=name, use_rich_console=False)
        logger = setup_structured_logger(name=name, use_rich_console=False)

        assert len(logger.handlers) == 1
        logger.handlers.clear()


class TestOperationLogging:
    """Test log_operation_error and log_operation_success."""

    def test_error_carries_code_and_context(self) -> None:
        logger, handler = make_logger("solvecrawl.test.error")
        error = InfrastructureError(
            code=ErrorCode.CACHE_WRITE_FAILED,
            message="Failed to save cache",
            context=ErrorContext(operation="save_cache", file_path="cache/problems.json"),
        )

        log_operation_error(logger, error, additional_context={"entries": 3})

        record = handler.records[0]
        assert record.levelno == logging.ERROR
        assert record.getMessage() == "Failed to save cache"
        assert record.error_code == "CACHE_WRITE_FAILED"
        assert record.operation == "save_cache"
        assert record.context["file_path"] == "cache/problems.json"
        assert record.context["entries"] == 3

    def test_error_level_override(self) -> None:
        logger, handler = make_logger("solvecrawl.test.warning")
        error = InfrastructureError(code=ErrorCode.NETWORK_ERROR, message="flaky")

        log_operation_error(logger, error, operation="fetch", level=logging.WARNING)

        assert handler.records[0].levelno == logging.WARNING
        assert handler.records[0].operation == "fetch"

    def test_success_logged_at_debug(self) -> None:
        logger, handler = make_logger("solvecrawl.test.success")

        log_operation_success(logger, "crawl_user", 250.0, result_info={"resolved": 3})

        record = handler.records[0]
        assert record.levelno == logging.DEBUG
        assert record.result_info == {"resolved": 3}
        assert record.duration_ms == 250.0
