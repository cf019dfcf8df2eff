"""Crawl orchestration.

This module provides the CrawlOrchestrator class that turns a user
keyword into a resolved solved-problem list:

1. fetch the user profile
2. serve what the cache already knows
3. range-crawl the bulk listing of every supported category
4. fetch everything still missing one by one, paced and bounded
5. assemble the result in profile order and flush the cache
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from solvecrawl.config.models.crawl_settings import CrawlSettings
from solvecrawl.services.models import (
    CrawlCounters,
    CrawlResult,
    ProblemRecord,
    ProgressSnapshot,
    UserProfile,
)
from solvecrawl.services.problem_cache import ProblemCache
from solvecrawl.services.range_crawler import RangeCrawler
from solvecrawl.services.retry_policy import RetryPolicy, SleepFunc
from solvecrawl.services.source import ProblemSource, require_field
from solvecrawl.services.task_scheduler import TaskScheduler
from solvecrawl.shared.constants import MILLISECONDS_PER_SECOND
from solvecrawl.shared.errors import (
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    ProfileUnavailableError,
)
from solvecrawl.shared.logging import log_operation_success
from solvecrawl.shared.problem_ids import group_by_category

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[ProgressSnapshot], None]


class CrawlOrchestrator:
    """Sequence profile fetch, cache lookup, bulk crawl and per-id fallback.

    Args:
        source: Site collaborator
        cache: Initialized problem cache owned by the caller
        settings: Crawl tunables
        sleep: Coroutine used for pacing and retry waits
        clock: Returns the current time in epoch seconds
        on_progress: Receives a snapshot after every per-id task settles
    """

    def __init__(
        self,
        source: ProblemSource,
        cache: ProblemCache,
        settings: CrawlSettings | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        on_progress: ProgressObserver | None = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.settings = settings or CrawlSettings()
        self.on_progress = on_progress
        self._sleep = sleep
        self._clock = clock

        self.retry_policy = RetryPolicy.from_settings(self.settings, sleep=sleep)
        self.scheduler = TaskScheduler(self.settings.concurrency)
        self.range_crawler = RangeCrawler(
            source=source,
            cache=cache,
            retry_policy=self.retry_policy,
            page_size=self.settings.page_size,
            backtrack_factor=self.settings.backtrack_factor,
            required_field=self.settings.required_field,
        )

    async def crawl(self, user_keyword: str) -> CrawlResult:
        """Crawl the solved problems of ``user_keyword``.

        Returns:
            CrawlResult with resolved records and unknown ids in profile order

        Raises:
            ProfileUnavailableError: If the profile cannot be fetched
        """
        started = self._clock()
        counters = CrawlCounters()

        profile = await self._fetch_profile(user_keyword)
        solved = list(dict.fromkeys(profile.solved))
        logger.info(
            "User %s (%s): %d solved problems",
            profile.uid,
            profile.username,
            len(solved),
        )

        resolved: dict[str, ProblemRecord] = {}
        misses: list[str] = []
        for pid in solved:
            record = self.cache.get(pid)
            if record is None:
                misses.append(pid)
            else:
                resolved[pid] = record
                counters.cache_hits += 1

        remaining = await self._bulk_phase(misses, resolved, counters)
        await self._detail_phase(remaining, resolved, counters)

        result = CrawlResult(
            uid=profile.uid,
            username=profile.username,
            submit_total=profile.submit_total,
            solved_total=profile.solved_total,
            started_at=int(started * MILLISECONDS_PER_SECOND),
            elapsed_seconds=round(self._clock() - started, 3),
            resolved=[resolved[pid] for pid in solved if pid in resolved],
            unknown=[pid for pid in solved if pid not in resolved],
            counters=counters,
        )

        await self.cache.save(force=True)

        log_operation_success(
            logger=logger,
            operation="crawl_user",
            duration_ms=result.elapsed_seconds * 1000,
            result_info={
                "resolved": len(result.resolved),
                "unknown": len(result.unknown),
                **counters.to_dict(),
            },
            context=ErrorContext(operation="crawl_user", additional_data={"uid": profile.uid}),
        )
        return result

    async def _fetch_profile(self, user_keyword: str) -> UserProfile:
        outcome = await self.retry_policy.run(
            lambda: self.source.fetch_profile(user_keyword),
            label=f"profile of {user_keyword}",
        )
        if not outcome.resolved or outcome.value is None:
            raise ProfileUnavailableError(
                user_keyword,
                context=ErrorContext(
                    operation="fetch_profile",
                    additional_data={"attempts": outcome.attempts},
                ),
            )
        return outcome.value

    async def _bulk_phase(
        self,
        misses: Sequence[str],
        resolved: dict[str, ProblemRecord],
        counters: CrawlCounters,
    ) -> list[str]:
        """Range-crawl supported categories; return ids still missing."""
        bulk_categories = self.source.bulk_categories
        remaining: list[str] = []

        for category, pids in group_by_category(misses).items():
            if category not in bulk_categories:
                remaining.extend(pids)
                continue

            report = await self.range_crawler.crawl(category, pids)
            counters.bulk_requests += report.requests
            resolved.update(report.resolved)
            remaining.extend(report.remaining)

        return remaining

    async def _detail_phase(
        self,
        pids: Sequence[str],
        resolved: dict[str, ProblemRecord],
        counters: CrawlCounters,
    ) -> None:
        if not pids:
            return

        logger.info("Fetching %d problems one by one", len(pids))
        tasks = [self._detail_task(pid, counters) for pid in pids]
        outcomes = await self.scheduler.run(tasks, on_complete=self.on_progress)

        for pid, outcome in zip(pids, outcomes):
            if outcome.success and outcome.value is not None:
                resolved[pid] = outcome.value

    def _detail_task(self, pid: str, counters: CrawlCounters):
        """Build the per-id task; it raises InfrastructureError when the id stays unresolved."""

        async def task() -> ProblemRecord:
            await self._sleep(self.settings.item_delay)

            # Another task or the bulk crawl may have filled it meanwhile
            cached = self.cache.get(pid)
            if cached is not None:
                counters.cache_hits += 1
                return cached

            async def fetch() -> ProblemRecord:
                counters.detail_attempts += 1
                record = await self.source.fetch_problem(pid)
                return require_field(record, self.settings.required_field)

            counters.detail_requests += 1
            outcome = await self.retry_policy.run(fetch, label=f"problem {pid}")
            if not outcome.resolved or outcome.value is None:
                raise InfrastructureError(
                    code=ErrorCode.CRAWL_FAILED,
                    message=f"Problem {pid} is unresolved after {outcome.attempts} attempts",
                    context=ErrorContext(operation="fetch_problem", additional_data={"pid": pid}),
                    original_error=outcome.last_error if isinstance(outcome.last_error, Exception) else None,
                )

            self.cache.set(pid, outcome.value)
            return outcome.value

        return task
