"""Binary-search crawl over bulk listing pages.

A category's listing is a sorted, contiguous sequence of pages. Instead
of fetching every wanted problem on its own, the crawler fetches the
middle page of a range, resolves whatever wanted ids it holds, and
recurses into the halves that still contain wanted ids.

A sub-range is abandoned once searching it is not worth it:

    backtrack_factor * log2(hi - lo + 1) + 1 > len(wanted)

Ids of abandoned ranges, of pages that could not be fetched and of gaps
in a page are reported as remaining so the caller can fetch them one by
one. No wanted id is ever dropped.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from solvecrawl.services.models import BulkPage, ProblemRecord, RangeCrawlReport
from solvecrawl.services.problem_cache import ProblemCache
from solvecrawl.services.retry_policy import RetryPolicy
from solvecrawl.services.source import ProblemSource, is_missing
from solvecrawl.shared.constants import CrawlDefaults, SiteDefaults
from solvecrawl.shared.errors import DomainError
from solvecrawl.shared.problem_ids import compare_suffix, sort_pids, suffix_of

logger = logging.getLogger(__name__)


class RangeCrawler:
    """Resolve many problems of one category per bulk page fetch.

    Args:
        source: Site collaborator providing ``fetch_bulk_page``
        cache: Every valid page record is stored here
        retry_policy: Wraps every page fetch
        page_size: Records per listing page
        backtrack_factor: Multiplier of the skip heuristic
        required_field: Records lacking this field are not resolved
    """

    def __init__(
        self,
        source: ProblemSource,
        cache: ProblemCache,
        retry_policy: RetryPolicy,
        page_size: int = CrawlDefaults.PAGE_SIZE,
        backtrack_factor: float = CrawlDefaults.BACKTRACK_FACTOR,
        required_field: str = CrawlDefaults.REQUIRED_FIELD,
    ) -> None:
        if page_size < 1:
            msg = f"page_size must be at least 1, got {page_size}"
            raise ValueError(msg)

        self.source = source
        self.cache = cache
        self.retry_policy = retry_policy
        self.page_size = page_size
        self.backtrack_factor = backtrack_factor
        self.required_field = required_field

    def should_skip(self, lo: int, hi: int, wanted_count: int) -> bool:
        """Whether the range ``[lo, hi]`` is too sparse to search."""
        return self.backtrack_factor * math.log2(hi - lo + 1) + 1 > wanted_count

    async def crawl(self, category: str, wanted: Sequence[str]) -> RangeCrawlReport:
        """Resolve ``wanted`` ids of ``category`` from its listing pages."""
        report = RangeCrawlReport(category=category)
        pending = sort_pids(wanted)
        if not pending:
            return report

        probe = await self._fetch_page(category, 1, report)
        if probe is None or not probe.records:
            report.remaining.extend(pending)
            return report

        pages = max(1, math.ceil(probe.total_count / self.page_size))
        above = self._absorb(probe, pending, report, below_sink=report.remaining)
        await self._search(category, above, 2, pages, report)

        logger.info(
            "Range crawl of %s resolved %d/%d problems with %d page requests",
            category,
            len(report.resolved),
            len(pending),
            report.requests,
        )
        return report

    async def _search(
        self,
        category: str,
        wanted: list[str],
        lo: int,
        hi: int,
        report: RangeCrawlReport,
    ) -> None:
        if not wanted:
            return

        if lo > hi or self.should_skip(lo, hi, len(wanted)):
            report.remaining.extend(wanted)
            return

        mid = (lo + hi) // 2
        page = await self._fetch_page(category, mid, report)
        if page is None or not page.records:
            report.remaining.extend(wanted)
            return

        below: list[str] = []
        above = self._absorb(page, wanted, report, below_sink=below)
        await self._search(category, below, lo, mid - 1, report)
        await self._search(category, above, mid + 1, hi, report)

    async def _fetch_page(
        self,
        category: str,
        page: int,
        report: RangeCrawlReport,
    ) -> BulkPage | None:
        attempts = 0

        async def fetch() -> BulkPage:
            nonlocal attempts
            attempts += 1
            return await self.source.fetch_bulk_page(category, page)

        outcome = await self.retry_policy.run(fetch, label=f"{category} list page {page}")
        report.requests += attempts
        return outcome.value if outcome.resolved else None

    def _absorb(
        self,
        page: BulkPage,
        wanted: list[str],
        report: RangeCrawlReport,
        below_sink: list[str],
    ) -> list[str]:
        """Store a page, resolve the wanted ids it covers and split the rest.

        Ids sorting before the page go to ``below_sink``; ids inside the
        page span that the page lacks go to ``report.remaining``.

        Returns:
            Ids sorting after the page
        """
        by_pid: dict[str, ProblemRecord] = {}
        for record in page.records:
            pid = record.get(SiteDefaults.PID_FIELD)
            if not pid:
                continue
            if not is_missing(record.get(self.required_field)):
                self.cache.set(pid, record)
            by_pid[pid] = record

        try:
            first = suffix_of(page.records[0][SiteDefaults.PID_FIELD])
            last = suffix_of(page.records[-1][SiteDefaults.PID_FIELD])
        except (KeyError, DomainError):
            logger.warning("Listing page of %s has malformed ids, skipping it", report.category)
            report.remaining.extend(wanted)
            return []

        above: list[str] = []
        for pid in wanted:
            suffix = suffix_of(pid)
            if compare_suffix(suffix, first) < 0:
                below_sink.append(pid)
            elif compare_suffix(suffix, last) > 0:
                above.append(pid)
            else:
                record = by_pid.get(pid)
                if record is not None and not is_missing(record.get(self.required_field)):
                    report.resolved[pid] = record
                else:
                    report.remaining.append(pid)
        return above
