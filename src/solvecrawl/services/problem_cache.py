"""Persistent problem metadata cache.

This module provides a versioned, TTL-expiring key-value store for
problem records, persisted as a single JSON document:

    {"version": 1, "data": {"P1001": {"time": <epoch ms>, "data": {...}}}}

Writes are coalesced: while a flush is running, any number of forced
flush requests are served by one follow-up flush, and periodic requests
are dropped. The in-memory map is only touched from the event loop, so no
locking is needed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing_extensions import Self

from solvecrawl.config.models.cache_settings import CacheSettings
from solvecrawl.services.models import ProblemRecord
from solvecrawl.shared.constants import BASE_DAY, MILLISECONDS_PER_SECOND, CacheDefaults
from solvecrawl.shared.errors import CacheCorruptionError, ErrorCode, ErrorContext, InfrastructureError
from solvecrawl.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)

VERSION_MISMATCH = "version_mismatch"


class CacheEntry(BaseModel):
    """One cached problem record.

    Attributes:
        time: Epoch milliseconds when the record was stored
        data: The problem record
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "time": 1700000000000,
                "data": {"pid": "P1001", "name": "A+B Problem", "difficulty": 1},
            },
        },
    )

    time: int = Field(..., ge=0, description="Epoch milliseconds when stored")
    data: dict[str, Any] = Field(..., description="The cached problem record")


class CacheStore(BaseModel):
    """The durable document: format version plus entries keyed by pid."""

    version: int = Field(..., ge=1)
    data: dict[str, CacheEntry] = Field(default_factory=dict)


class ProblemCache:
    """TTL-aware problem cache with coalesced, atomic flushes.

    Args:
        path: Cache file location
        ttl_seconds: Entry lifetime, None keeps entries forever
        version: Store format version; files of another version are discarded
        autosave_interval: Seconds between periodic flushes, 0 disables
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        path: Path | str,
        ttl_seconds: float | None = CacheDefaults.TTL_DAYS * BASE_DAY,
        version: int = CacheDefaults.VERSION,
        autosave_interval: float = CacheDefaults.AUTOSAVE_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self.version = version
        self.autosave_interval = autosave_interval
        self._clock = clock

        self._store = CacheStore(version=version)
        self._dirty = False
        self._flush_task: asyncio.Task[None] | None = None
        self._follow_up: asyncio.Future[None] | None = None
        self._autosave_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(
        cls,
        settings: CacheSettings,
        clock: Callable[[], float] = time.time,
    ) -> ProblemCache:
        return cls(
            path=settings.path,
            ttl_seconds=settings.ttl_seconds,
            version=settings.version,
            autosave_interval=settings.autosave_interval,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Load the durable store, sweep it, flush it and start autosave."""
        try:
            self._store = await asyncio.to_thread(self._load)
        except CacheCorruptionError as error:
            log_operation_error(
                logger=logger,
                error=error,
                level=logging.WARNING,
            )
            if error.context.additional_data and (
                error.context.additional_data.get("reason") != VERSION_MISMATCH
            ):
                await asyncio.to_thread(self._backup_corrupted_file)
            self._store = CacheStore(version=self.version)

        purged = self.purge_expired()
        if purged:
            logger.info("Cleaned up %d expired cache entries on startup", purged)

        self._dirty = True
        await self.save(force=True)

        if self.autosave_interval > 0 and self._autosave_task is None:
            self._autosave_task = asyncio.create_task(self._autosave_loop())

    async def stop(self) -> None:
        """Cancel the periodic flush and force a final one."""
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._autosave_task
            self._autosave_task = None

        await self.save(force=True)

    async def __aenter__(self) -> Self:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self.autosave_interval)
            await self.save(force=False)

    # ------------------------------------------------------------------
    # Entry access
    # ------------------------------------------------------------------

    def _now_ms(self) -> int:
        return int(self._clock() * MILLISECONDS_PER_SECOND)

    def _is_expired(self, entry: CacheEntry, now_ms: int) -> bool:
        if self.ttl_seconds is None:
            return False
        return now_ms - entry.time > self.ttl_seconds * MILLISECONDS_PER_SECOND

    def get(self, pid: str) -> ProblemRecord | None:
        """Return the record for ``pid`` unless it is missing or expired.

        An expired entry is dropped on read.
        """
        entry = self._store.data.get(pid)
        if entry is None:
            return None

        if self._is_expired(entry, self._now_ms()):
            del self._store.data[pid]
            self._dirty = True
            return None

        return entry.data

    def has(self, pid: str) -> bool:
        """Whether an entry for ``pid`` exists, expired or not."""
        return pid in self._store.data

    def set(self, pid: str, record: ProblemRecord) -> None:
        self._store.data[pid] = CacheEntry(time=self._now_ms(), data=dict(record))
        self._dirty = True

    def purge_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        if self.ttl_seconds is None:
            return 0

        now_ms = self._now_ms()
        expired = [pid for pid, entry in self._store.data.items() if self._is_expired(entry, now_ms)]
        for pid in expired:
            del self._store.data[pid]

        if expired:
            self._dirty = True
        return len(expired)

    def __len__(self) -> int:
        return len(self._store.data)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def stats(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "version": self.version,
            "entries": len(self._store.data),
            "dirty": self._dirty,
            "ttl_seconds": self.ttl_seconds,
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self, *, force: bool = True) -> None:
        """Flush the store to disk, coalescing concurrent requests.

        Args:
            force: When a flush is already running, a forced request waits
                for one follow-up flush while a non-forced one is dropped
        """
        if self._flush_task is not None and not self._flush_task.done():
            if not force:
                return
            if self._follow_up is None:
                self._follow_up = asyncio.get_running_loop().create_future()
            await asyncio.shield(self._follow_up)
            return

        self._flush_task = asyncio.create_task(self._flush_cycle())
        await asyncio.shield(self._flush_task)

    async def _flush_cycle(self) -> None:
        await self._write_snapshot()
        while self._follow_up is not None:
            waiter, self._follow_up = self._follow_up, None
            try:
                await self._write_snapshot()
            finally:
                if not waiter.done():
                    waiter.set_result(None)

    async def _write_snapshot(self) -> bool:
        """Serialize the current store and persist it if it changed.

        Returns:
            True if a file was written
        """
        if not self._dirty:
            return False

        context = ErrorContext(
            operation="save_cache",
            file_path=str(self.path),
            additional_data={"entries": len(self._store.data)},
        )
        start = time.perf_counter()

        try:
            blob = orjson.dumps(self._store.model_dump())
        except TypeError as e:
            error = InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to serialize cache: {e}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger=logger, error=error)
            return False

        # Changes made while the write is in flight mark the store dirty again
        self._dirty = False
        try:
            await self._persist(blob)
        except OSError as e:
            self._dirty = True
            error = InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to save cache: {e}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger=logger, error=error)
            return False

        log_operation_success(
            logger=logger,
            operation="save_cache",
            duration_ms=(time.perf_counter() - start) * 1000,
            context=context,
        )
        return True

    async def _persist(self, blob: bytes) -> None:
        await asyncio.to_thread(self._write_file, blob)

    def _write_file(self, blob: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(self.path.name + CacheDefaults.TEMP_SUFFIX)
        temp_path.write_bytes(blob)
        os.replace(temp_path, self.path)

    def _load(self) -> CacheStore:
        """Read the durable store.

        Raises:
            CacheCorruptionError: If the file is unreadable, malformed or of
                another version
        """
        if not self.path.exists():
            return CacheStore(version=self.version)

        context_data: dict[str, Any] = {"expected_version": self.version}
        try:
            payload = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            raise CacheCorruptionError(
                message=f"Cache file is unreadable: {e}",
                context=ErrorContext(
                    operation="load_cache",
                    file_path=str(self.path),
                    additional_data={**context_data, "reason": "unreadable"},
                ),
                original_error=e,
            ) from e

        found_version = payload.get(CacheDefaults.VERSION_KEY) if isinstance(payload, dict) else None
        if isinstance(payload, dict) and found_version != self.version:
            raise CacheCorruptionError(
                message=f"Cache version {found_version} does not match {self.version}, discarding",
                context=ErrorContext(
                    operation="load_cache",
                    file_path=str(self.path),
                    additional_data={**context_data, "reason": VERSION_MISMATCH},
                ),
            )

        try:
            return CacheStore.model_validate(payload)
        except ValidationError as e:
            raise CacheCorruptionError(
                message=f"Cache file has an invalid shape: {e.error_count()} errors",
                context=ErrorContext(
                    operation="load_cache",
                    file_path=str(self.path),
                    additional_data={**context_data, "reason": "invalid_shape"},
                ),
                original_error=e,
            ) from e

    def _backup_corrupted_file(self) -> None:
        """Move an unusable cache file aside so it can be inspected."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup = self.path.with_name(f"{self.path.stem}.corrupted.{timestamp}{self.path.suffix}")
        try:
            self.path.rename(backup)
            logger.warning("Corrupted cache file backed up to %s", backup)
        except OSError:
            logger.exception("Failed to back up corrupted cache file %s", self.path)
