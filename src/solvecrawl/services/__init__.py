"""Crawl services: scheduling, retries, caching, range crawl and orchestration."""

from __future__ import annotations

from .models import (
    BulkPage,
    CrawlCounters,
    CrawlResult,
    ProgressSnapshot,
    RangeCrawlReport,
    RetryOutcome,
    TaskOutcome,
    UserProfile,
)
from .orchestrator import CrawlOrchestrator
from .problem_cache import ProblemCache
from .range_crawler import RangeCrawler
from .retry_policy import Failure, FailureKind, RetryPolicy, classify_failure
from .source import ProblemSource
from .task_scheduler import TaskScheduler

__all__ = [
    "BulkPage",
    "CrawlCounters",
    "CrawlOrchestrator",
    "CrawlResult",
    "Failure",
    "FailureKind",
    "ProblemCache",
    "ProblemSource",
    "ProgressSnapshot",
    "RangeCrawlReport",
    "RangeCrawler",
    "RetryOutcome",
    "RetryPolicy",
    "TaskOutcome",
    "TaskScheduler",
    "UserProfile",
    "classify_failure",
]
