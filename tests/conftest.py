"""
Pytest configuration and shared fixtures for SolveCrawl tests.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from tests.fakes import FakeClock, SleepRecorder


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    """Instant sleep that records requested durations."""
    return SleepRecorder()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep SOLVECRAWL_* variables of the developer shell out of tests."""
    for key in list(os.environ):
        if key.startswith("SOLVECRAWL_"):
            monkeypatch.delenv(key, raising=False)
