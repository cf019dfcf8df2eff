"""Data models shared by the crawl services."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

# A problem record as stored in the cache and in results
ProblemRecord = dict[str, Any]


@dataclass(frozen=True)
class ProgressSnapshot:
    """State of a scheduler run after one task settled.

    Attributes:
        finished: Number of tasks settled so far
        total: Number of tasks in the run
        index: Original index of the task that just settled
        success: Whether that task produced a value
    """

    finished: int
    total: int
    index: int
    success: bool


@dataclass
class TaskOutcome(Generic[T]):
    """Settled result of one scheduled task, stored at its original index."""

    index: int
    success: bool
    value: T | None = None
    error: BaseException | None = None


@dataclass
class RetryOutcome(Generic[T]):
    """Result of running an operation under the retry policy.

    ``resolved`` is False when every attempt failed; ``value`` is then None.
    """

    resolved: bool
    value: T | None = None
    attempts: int = 0
    last_error: BaseException | None = None


@dataclass
class BulkPage:
    """One bulk listing page: an ascending, contiguous slice of a category."""

    records: list[ProblemRecord]
    total_count: int


@dataclass
class UserProfile:
    uid: str
    username: str
    submit_total: int
    solved_total: int
    solved: list[str] = field(default_factory=list)


@dataclass
class RangeCrawlReport:
    """Outcome of a range crawl over one category.

    Every wanted id ends up in exactly one of ``resolved`` or ``remaining``.
    """

    category: str
    resolved: dict[str, ProblemRecord] = field(default_factory=dict)
    remaining: list[str] = field(default_factory=list)
    requests: int = 0


@dataclass
class CrawlCounters:
    """Request and cache statistics for one crawl."""

    bulk_requests: int = 0
    detail_requests: int = 0
    detail_attempts: int = 0
    cache_hits: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class CrawlResult:
    """Final result of a crawl, in profile order."""

    uid: str
    username: str
    submit_total: int
    solved_total: int
    started_at: int  # epoch milliseconds
    elapsed_seconds: float = 0.0
    resolved: list[ProblemRecord] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    counters: CrawlCounters = field(default_factory=CrawlCounters)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form written by the result saver."""
        return {
            "time": self.started_at,
            "uid": self.uid,
            "username": self.username,
            "submitTotal": self.submit_total,
            "solvedTotal": self.solved_total,
            "elapsed": self.elapsed_seconds,
            "solved": self.resolved,
            "solvedUnknown": self.unknown,
            "counters": self.counters.to_dict(),
        }
