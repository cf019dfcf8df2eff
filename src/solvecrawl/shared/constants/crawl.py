"""
Crawl Configuration Constants

Defaults for scheduling, retries and the bulk range crawl.
"""

from typing import ClassVar

from .system import BASE_SECOND


class CrawlDefaults:
    """Scheduling and range crawl defaults."""

    MAX_RETRIES = 3
    CONCURRENCY = 4
    ITEM_DELAY = 0.5 * BASE_SECOND  # pacing before every per-id fetch
    PAGE_SIZE = 50
    # Sub-ranges are skipped once c*log2(pages)+1 exceeds the ids left in them
    BACKTRACK_FACTOR = 1.8
    REQUIRED_FIELD = "difficulty"


class RetryWaits:
    """Wait table keys and default durations in seconds."""

    OTHER_KEY = "other"
    TIMEOUT_KEY = "timeout"
    HTTP_KEY_PREFIX = "http_"

    DEFAULTS: ClassVar[dict[str, float]] = {
        "other": 1.0 * BASE_SECOND,
        "timeout": 2.0 * BASE_SECOND,
        "http_403": 30.0 * BASE_SECOND,
        "http_429": 10.0 * BASE_SECOND,
        "http_503": 5.0 * BASE_SECOND,
    }
