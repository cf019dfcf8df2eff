"""Tests for the persistent problem cache."""

from __future__ import annotations

import asyncio
from pathlib import Path

import orjson
import pytest

from solvecrawl.config.models.cache_settings import CacheSettings
from solvecrawl.services.problem_cache import ProblemCache
from solvecrawl.shared.constants import BASE_DAY
from tests.fakes import FakeClock, make_record


@pytest.fixture
def cache_path(temp_dir: Path) -> Path:
    return temp_dir / "cache" / "problems.json"


@pytest.fixture
def cache(cache_path: Path, fake_clock: FakeClock) -> ProblemCache:
    return ProblemCache(cache_path, ttl_seconds=BASE_DAY, autosave_interval=0, clock=fake_clock)


def read_store(path: Path) -> dict:
    return orjson.loads(path.read_bytes())


class TestCacheEntries:
    """Test get/has/set and expiry."""

    def test_set_then_get(self, cache: ProblemCache) -> None:
        record = make_record("P1001")
        cache.set("P1001", record)

        assert cache.get("P1001") == record
        assert cache.has("P1001") is True
        assert len(cache) == 1
        assert cache.dirty is True

    def test_missing_entry(self, cache: ProblemCache) -> None:
        assert cache.get("P9999") is None
        assert cache.has("P9999") is False

    def test_expired_entry_dropped_on_read(self, cache: ProblemCache, fake_clock: FakeClock) -> None:
        """Test has() sees an expired entry until get() removes it."""
        cache.set("P1001", make_record("P1001"))
        fake_clock.advance(BASE_DAY + 1)

        assert cache.has("P1001") is True
        assert cache.get("P1001") is None
        assert cache.has("P1001") is False

    def test_entry_at_ttl_boundary_is_fresh(self, cache: ProblemCache, fake_clock: FakeClock) -> None:
        cache.set("P1001", make_record("P1001"))
        fake_clock.advance(BASE_DAY)

        assert cache.get("P1001") is not None

    def test_purge_expired(self, cache: ProblemCache, fake_clock: FakeClock) -> None:
        cache.set("P1001", make_record("P1001"))
        fake_clock.advance(BASE_DAY / 2)
        cache.set("P1002", make_record("P1002"))
        fake_clock.advance(BASE_DAY / 2 + 1)

        assert cache.purge_expired() == 1
        assert cache.has("P1001") is False
        assert cache.has("P1002") is True

    def test_no_ttl_never_expires(self, cache_path: Path, fake_clock: FakeClock) -> None:
        cache = ProblemCache(cache_path, ttl_seconds=None, autosave_interval=0, clock=fake_clock)
        cache.set("P1001", make_record("P1001"))
        fake_clock.advance(BASE_DAY * 10_000)

        assert cache.purge_expired() == 0
        assert cache.get("P1001") is not None

    def test_stats(self, cache: ProblemCache, cache_path: Path) -> None:
        cache.set("P1001", make_record("P1001"))

        assert cache.stats() == {
            "path": str(cache_path),
            "version": 1,
            "entries": 1,
            "dirty": True,
            "ttl_seconds": BASE_DAY,
        }

    def test_from_settings(self, cache_path: Path) -> None:
        """Test a negative TTL in settings disables expiry."""
        cache = ProblemCache.from_settings(CacheSettings(path=str(cache_path), ttl_days=-1, version=3))

        assert cache.ttl_seconds is None
        assert cache.version == 3
        assert cache.path == cache_path


class TestCacheLifecycle:
    """Test init/stop and the durable format."""

    @pytest.mark.asyncio
    async def test_init_creates_file(self, cache: ProblemCache, cache_path: Path) -> None:
        await cache.init()

        assert read_store(cache_path) == {"version": 1, "data": {}}
        assert cache.dirty is False

    @pytest.mark.asyncio
    async def test_round_trip(self, cache: ProblemCache, cache_path: Path, fake_clock: FakeClock) -> None:
        """Test a saved entry is loaded by a fresh instance."""
        await cache.init()
        cache.set("P1001", make_record("P1001"))
        await cache.save()

        stored = read_store(cache_path)
        assert stored["data"]["P1001"]["time"] == int(fake_clock.now * 1000)
        assert stored["data"]["P1001"]["data"]["pid"] == "P1001"

        reloaded = ProblemCache(cache_path, autosave_interval=0, clock=fake_clock)
        await reloaded.init()
        assert reloaded.get("P1001") == make_record("P1001")

    @pytest.mark.asyncio
    async def test_init_purges_expired(self, cache_path: Path, fake_clock: FakeClock) -> None:
        cache_path.parent.mkdir(parents=True)
        old = int((fake_clock.now - 2 * BASE_DAY) * 1000)
        fresh = int(fake_clock.now * 1000)
        cache_path.write_bytes(
            orjson.dumps(
                {
                    "version": 1,
                    "data": {
                        "P1": {"time": old, "data": make_record("P1")},
                        "P2": {"time": fresh, "data": make_record("P2")},
                    },
                },
            ),
        )

        cache = ProblemCache(cache_path, ttl_seconds=BASE_DAY, autosave_interval=0, clock=fake_clock)
        await cache.init()

        assert cache.has("P1") is False
        assert cache.has("P2") is True
        assert set(read_store(cache_path)["data"]) == {"P2"}

    @pytest.mark.asyncio
    async def test_version_mismatch_resets_without_backup(
        self,
        cache: ProblemCache,
        cache_path: Path,
    ) -> None:
        cache_path.parent.mkdir(parents=True)
        cache_path.write_bytes(orjson.dumps({"version": 0, "data": {"P1": {"time": 1, "data": {}}}}))

        await cache.init()

        assert len(cache) == 0
        assert read_store(cache_path) == {"version": 1, "data": {}}
        assert list(cache_path.parent.glob("*.corrupted.*")) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [b"{not json", b'{"version": 1, "data": {"P1": 5}}'])
    async def test_corrupted_file_backed_up(
        self,
        cache: ProblemCache,
        cache_path: Path,
        content: bytes,
    ) -> None:
        """Test unreadable or malformed files are moved aside and replaced."""
        cache_path.parent.mkdir(parents=True)
        cache_path.write_bytes(content)

        await cache.init()

        assert len(cache) == 0
        assert read_store(cache_path) == {"version": 1, "data": {}}
        backups = list(cache_path.parent.glob("problems.corrupted.*.json"))
        assert len(backups) == 1
        assert backups[0].read_bytes() == content

    @pytest.mark.asyncio
    async def test_file_io_runs_in_worker_threads(
        self,
        cache: ProblemCache,
        cache_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test loading, backing up and writing never block the event loop."""
        cache_path.parent.mkdir(parents=True)
        cache_path.write_bytes(b"{not json")
        offloaded: list[str] = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, /, *args, **kwargs):
            offloaded.append(func.__name__)
            return await real_to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

        await cache.init()

        assert offloaded == ["_load", "_backup_corrupted_file", "_write_file"]

    @pytest.mark.asyncio
    async def test_stop_cancels_autosave_and_flushes(self, cache_path: Path, fake_clock: FakeClock) -> None:
        cache = ProblemCache(cache_path, autosave_interval=3600, clock=fake_clock)
        await cache.init()
        assert cache._autosave_task is not None

        cache.set("P1001", make_record("P1001"))
        await cache.stop()

        assert cache._autosave_task is None
        assert "P1001" in read_store(cache_path)["data"]

    @pytest.mark.asyncio
    async def test_async_context_manager(self, cache_path: Path, fake_clock: FakeClock) -> None:
        async with ProblemCache(cache_path, autosave_interval=0, clock=fake_clock) as cache:
            cache.set("P1001", make_record("P1001"))

        assert "P1001" in read_store(cache_path)["data"]


class TestCacheFlushing:
    """Test write coalescing and failure handling."""

    @pytest.mark.asyncio
    async def test_clean_store_is_not_written(
        self,
        cache: ProblemCache,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await cache.init()
        writes: list[bytes] = []

        async def record_persist(blob: bytes) -> None:
            writes.append(blob)

        monkeypatch.setattr(cache, "_persist", record_persist)
        await cache.save()

        assert writes == []

    @pytest.mark.asyncio
    async def test_concurrent_forced_saves_share_one_follow_up(
        self,
        cache: ProblemCache,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test saves requested mid-flush produce exactly one more write."""
        await cache.init()
        gate = asyncio.Event()
        writes: list[bytes] = []

        async def slow_persist(blob: bytes) -> None:
            writes.append(blob)
            await gate.wait()

        monkeypatch.setattr(cache, "_persist", slow_persist)

        cache.set("P1", make_record("P1"))
        first = asyncio.create_task(cache.save())
        while not writes:
            await asyncio.sleep(0)

        cache.set("P2", make_record("P2"))
        second = asyncio.create_task(cache.save())
        third = asyncio.create_task(cache.save())
        await asyncio.sleep(0)
        gate.set()
        await asyncio.gather(first, second, third)

        assert len(writes) == 2
        assert set(orjson.loads(writes[0])["data"]) == {"P1"}
        assert set(orjson.loads(writes[1])["data"]) == {"P1", "P2"}
        assert cache.dirty is False

    @pytest.mark.asyncio
    async def test_periodic_save_dropped_while_flushing(
        self,
        cache: ProblemCache,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await cache.init()
        gate = asyncio.Event()
        writes: list[bytes] = []

        async def slow_persist(blob: bytes) -> None:
            writes.append(blob)
            await gate.wait()

        monkeypatch.setattr(cache, "_persist", slow_persist)

        cache.set("P1", make_record("P1"))
        first = asyncio.create_task(cache.save())
        while not writes:
            await asyncio.sleep(0)

        cache.set("P2", make_record("P2"))
        await cache.save(force=False)
        gate.set()
        await first

        assert len(writes) == 1
        assert cache.dirty is True

    @pytest.mark.asyncio
    async def test_write_failure_keeps_store_dirty(
        self,
        cache: ProblemCache,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a failed write is logged and retried on the next flush."""
        await cache.init()

        async def broken_persist(blob: bytes) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(cache, "_persist", broken_persist)
        cache.set("P1", make_record("P1"))
        await cache.save()

        assert cache.dirty is True
        assert cache.get("P1") is not None
