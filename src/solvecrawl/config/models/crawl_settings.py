"""Crawl configuration model.

Scheduling, retry and range crawl tunables.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from solvecrawl.shared.constants import CrawlDefaults, RetryWaits


class CrawlSettings(BaseModel):
    """Crawl behaviour configuration.

    ``retry_waits`` maps ``other``, ``timeout`` and ``http_<status>`` keys to
    wait durations in seconds. Keys that are absent fall back to ``other``.
    """

    max_retries: int = Field(
        default=CrawlDefaults.MAX_RETRIES,
        ge=0,
        description="Retries after the first failed attempt",
    )
    concurrency: int = Field(
        default=CrawlDefaults.CONCURRENCY,
        ge=1,
        description="Maximum per-problem fetches in flight",
    )
    item_delay: float = Field(
        default=CrawlDefaults.ITEM_DELAY,
        ge=0,
        description="Seconds to wait before every per-problem fetch",
    )
    page_size: int = Field(
        default=CrawlDefaults.PAGE_SIZE,
        gt=0,
        description="Records per bulk listing page",
    )
    backtrack_factor: float = Field(
        default=CrawlDefaults.BACKTRACK_FACTOR,
        ge=0,
        description="Range crawl skip threshold multiplier",
    )
    required_field: str = Field(
        default=CrawlDefaults.REQUIRED_FIELD,
        description="Record field that must be non-empty for a problem to count",
    )
    retry_waits: dict[str, float] = Field(
        default_factory=lambda: dict(RetryWaits.DEFAULTS),
        description="Wait in seconds per failure class",
    )

    @field_validator("retry_waits")
    @classmethod
    def _require_fallback(cls, value: dict[str, float]) -> dict[str, float]:
        if any(wait < 0 for wait in value.values()):
            msg = "retry waits must be non-negative"
            raise ValueError(msg)
        merged = dict(value)
        merged.setdefault(RetryWaits.OTHER_KEY, RetryWaits.DEFAULTS[RetryWaits.OTHER_KEY])
        return merged


__all__ = ["CrawlSettings"]
