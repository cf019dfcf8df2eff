"""Tests for the binary-search range crawler."""

from __future__ import annotations

from pathlib import Path

import pytest

from solvecrawl.services.models import BulkPage, UserProfile
from solvecrawl.services.problem_cache import ProblemCache
from solvecrawl.services.range_crawler import RangeCrawler
from solvecrawl.services.retry_policy import RetryPolicy
from solvecrawl.shared.errors import HttpStatusError
from tests.fakes import FakeSource, SleepRecorder, make_listing, make_record

# 20 pages of 50: page p holds P(1000 + 50*(p-1)) .. P(1049 + 50*(p-1))
LISTING = make_listing("P", range(1000, 2000))
PROFILE = UserProfile(uid="1", username="alice", submit_total=0, solved_total=0)


def page_ids(page: int, count: int = 4) -> list[str]:
    start = 1000 + 50 * (page - 1)
    return [f"P{start + 10 * i}" for i in range(count)]


@pytest.fixture
def cache(temp_dir: Path) -> ProblemCache:
    return ProblemCache(temp_dir / "problems.json", autosave_interval=0)


def make_crawler(
    source: FakeSource,
    cache: ProblemCache,
    sleep: SleepRecorder,
    max_retries: int = 1,
) -> RangeCrawler:
    return RangeCrawler(
        source=source,
        cache=cache,
        retry_policy=RetryPolicy(max_retries, {"other": 0.0}, sleep=sleep),
        page_size=50,
        backtrack_factor=1.8,
        required_field="difficulty",
    )


def assert_partition(report, wanted: list[str]) -> None:
    """Every wanted id ends up resolved or remaining, never both."""
    resolved = set(report.resolved)
    remaining = set(report.remaining)
    assert resolved.isdisjoint(remaining)
    assert resolved | remaining == set(wanted)
    assert len(report.remaining) == len(remaining)


class TestShouldSkip:
    """Test the sparsity heuristic."""

    def test_single_page_with_one_id_is_searched(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        crawler = make_crawler(FakeSource(PROFILE), cache, sleep_recorder)
        assert crawler.should_skip(5, 5, 1) is False

    def test_wide_sparse_range_is_skipped(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        crawler = make_crawler(FakeSource(PROFILE), cache, sleep_recorder)
        # 1.8 * log2(19) + 1 ~= 8.65
        assert crawler.should_skip(2, 20, 8) is True
        assert crawler.should_skip(2, 20, 9) is False

    def test_invalid_page_size(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        with pytest.raises(ValueError, match="page_size"):
            RangeCrawler(FakeSource(PROFILE), cache, RetryPolicy(sleep=sleep_recorder), page_size=0)


class TestRangeCrawl:
    """Test RangeCrawler.crawl."""

    @pytest.mark.asyncio
    async def test_empty_wanted(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        source = FakeSource(PROFILE, listings={"P": LISTING})
        report = await make_crawler(source, cache, sleep_recorder).crawl("P", [])

        assert report.requests == 0
        assert source.page_calls == []

    @pytest.mark.asyncio
    async def test_probe_page_resolves_and_stores(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        """Test the probe resolves its ids and caches every record it holds."""
        source = FakeSource(PROFILE, listings={"P": make_listing("P", range(1000, 1050))})

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", ["P1002"])

        assert report.resolved == {"P1002": make_record("P1002")}
        assert report.remaining == []
        assert report.requests == 1
        assert len(cache) == 50

    @pytest.mark.asyncio
    async def test_dense_wanted_set_fetches_every_page_once(
        self,
        cache: ProblemCache,
        sleep_recorder: SleepRecorder,
    ) -> None:
        source = FakeSource(PROFILE, listings={"P": LISTING})
        wanted = [f"P{n}" for n in range(1000, 2000, 5)]

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", wanted)

        assert set(report.resolved) == set(wanted)
        assert report.remaining == []
        assert report.requests == 20
        assert sorted(page for _, page in source.page_calls) == list(range(1, 21))

    @pytest.mark.asyncio
    async def test_sparse_ranges_fall_back(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        """Test sub-ranges too sparse to search are reported as remaining."""
        source = FakeSource(PROFILE, listings={"P": LISTING})
        wanted = page_ids(3) + page_ids(10) + page_ids(17)

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", wanted)

        # probe, middle page 11, then page 6 of the lower half
        assert [page for _, page in source.page_calls] == [1, 11, 6]
        assert report.requests == 3
        assert report.resolved == {}
        assert sorted(report.remaining) == sorted(wanted)

    @pytest.mark.asyncio
    async def test_nothing_dropped_on_mixed_input(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        source = FakeSource(PROFILE, listings={"P": LISTING})
        wanted = page_ids(1) + [f"P{n}" for n in range(1500, 1700, 3)] + ["P1990", "P5000"]

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", wanted)

        assert_partition(report, wanted)
        assert "P5000" in report.remaining
        assert report.requests <= 20

    @pytest.mark.asyncio
    async def test_gap_in_listing_is_remaining(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        listing = [r for r in make_listing("P", range(1000, 1050)) if r["pid"] != "P1005"]
        source = FakeSource(PROFILE, listings={"P": listing})

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", ["P1004", "P1005"])

        assert set(report.resolved) == {"P1004"}
        assert report.remaining == ["P1005"]

    @pytest.mark.asyncio
    async def test_record_without_required_field(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        """Test listed records lacking the required field stay unresolved and uncached."""
        listing = make_listing("P", range(1000, 1050))
        listing[3] = make_record("P1003", difficulty=None)
        source = FakeSource(PROFILE, listings={"P": listing})

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", ["P1003"])

        assert report.remaining == ["P1003"]
        assert cache.has("P1003") is False

    @pytest.mark.asyncio
    async def test_failed_probe_leaves_everything_remaining(
        self,
        cache: ProblemCache,
        sleep_recorder: SleepRecorder,
    ) -> None:
        source = FakeSource(
            PROFILE,
            listings={"P": LISTING},
            failures={"P:1": [HttpStatusError(503), HttpStatusError(503)]},
        )
        wanted = page_ids(1) + page_ids(12)

        report = await make_crawler(source, cache, sleep_recorder, max_retries=1).crawl("P", wanted)

        assert report.requests == 2
        assert report.resolved == {}
        assert sorted(report.remaining) == sorted(wanted)

    @pytest.mark.asyncio
    async def test_retried_page_counts_every_attempt(
        self,
        cache: ProblemCache,
        sleep_recorder: SleepRecorder,
    ) -> None:
        source = FakeSource(
            PROFILE,
            listings={"P": LISTING[:50]},
            failures={"P:1": [HttpStatusError(429)]},
        )

        report = await make_crawler(source, cache, sleep_recorder, max_retries=2).crawl("P", ["P1001"])

        assert report.requests == 2
        assert set(report.resolved) == {"P1001"}

    @pytest.mark.asyncio
    async def test_empty_listing(self, cache: ProblemCache, sleep_recorder: SleepRecorder) -> None:
        source = FakeSource(PROFILE, listings={"P": []})

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", ["P1001"])

        assert report.remaining == ["P1001"]
        assert report.requests == 1

    @pytest.mark.asyncio
    async def test_single_id_over_huge_listing_costs_one_request(
        self,
        cache: ProblemCache,
        sleep_recorder: SleepRecorder,
    ) -> None:
        """Test the skip heuristic bounds fetches for one id over 5000 pages."""

        class GeneratedListingSource(FakeSource):
            async def fetch_bulk_page(self, category: str, page: int) -> BulkPage:
                self.page_calls.append((category, page))
                start = 1000 + (page - 1) * 50
                return BulkPage(
                    records=make_listing(category, range(start, start + 50)),
                    total_count=5000 * 50,
                )

        source = GeneratedListingSource(PROFILE)

        report = await make_crawler(source, cache, sleep_recorder).crawl("P", ["P123456"])

        assert source.page_calls == [("P", 1)]
        assert report.requests == 1
        assert report.remaining == ["P123456"]
        assert report.resolved == {}
